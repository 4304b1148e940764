"""
Pytest configuration og shared fixtures.
"""

import asyncio
from typing import Dict, List, Optional, Tuple

import pytest

from lpd_gateway.config import Settings
from lpd_gateway.core.exceptions import PrintQueueError
from lpd_gateway.dependencies import reset_singletons
from lpd_gateway.models import (
    JobRecord,
    JobSubmission,
    PrinterInfo,
    PrinterState,
)
from lpd_gateway.print_queue.base_client import PrintQueueClient
from lpd_gateway.protocol.connection import LpdConnection


class MemoryWriter:
    """StreamWriter stand-in collecting everything the daemon sends."""

    def __init__(self, peername=("192.0.2.10", 721)):
        self.data = bytearray()
        self.peername = peername
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.closed:
            raise ConnectionResetError("writer closed")
        self.data += data

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass

    def is_closing(self) -> bool:
        return self.closed

    def get_extra_info(self, name, default=None):
        return self.peername if name == "peername" else default


class FakePrintQueueClient(PrintQueueClient):
    """In-memory print queue recording every request."""

    def __init__(self):
        self.printers: Dict[str, PrinterInfo] = {
            "myprinter": PrinterInfo(
                name="myprinter", state=PrinterState.IDLE, accepting_jobs=True
            )
        }
        self.jobs: List[JobRecord] = []
        self.submissions: List[Tuple[JobSubmission, bytes]] = []
        self.rejected_titles: set = set()
        self.cancelled: List[Tuple[int, str]] = []
        self.cancel_failures: set = set()
        self.jobs_error: Optional[str] = None
        self.job_queries: List[dict] = []
        self.next_job_id = 100

    async def submit(self, submission: JobSubmission) -> int:
        if submission.title in self.rejected_titles:
            raise PrintQueueError("PRINT_JOB", "client-error-document-format-not-supported")
        # Temp files are gone once the job transaction ends
        with open(submission.file_path, "rb") as f:
            content = f.read()
        self.submissions.append((submission, content))
        self.next_job_id += 1
        return self.next_job_id

    async def query_printer(self, queue: str) -> PrinterInfo:
        name = queue.split("/", 1)[0]
        if name not in self.printers:
            raise PrintQueueError("GET_PRINTER_ATTRIBUTES", "client-error-not-found")
        return self.printers[name]

    async def query_jobs(
        self, queue: str, job_id: Optional[int] = None, user: Optional[str] = None
    ) -> List[JobRecord]:
        self.job_queries.append({"queue": queue, "job_id": job_id, "user": user})
        if self.jobs_error:
            raise PrintQueueError("GET_JOBS", self.jobs_error)
        jobs = [job for job in self.jobs if job.destination in (None, queue)]
        if job_id is not None:
            return [job for job in jobs if job.id == job_id]
        if user:
            return [job for job in jobs if job.owner == user]
        return jobs

    async def cancel(self, job_id: int, agent: str) -> None:
        if job_id in self.cancel_failures:
            raise PrintQueueError("CANCEL_JOB", "client-error-not-possible")
        self.cancelled.append((job_id, agent))


@pytest.fixture(autouse=True)
def clean_singletons():
    """Automatically reset singletons before hver test."""
    reset_singletons()
    yield
    reset_singletons()


@pytest.fixture
def settings(tmp_path):
    """Settings with a private spool directory and no lpoptions file."""
    return Settings(
        spool_directory=str(tmp_path / "spool"),
        lpoptions_path="",
        default_options="",
        hostname_lookups=False,
        log_file_path=str(tmp_path / "logs" / "lpd_gateway.log"),
    )


@pytest.fixture
def print_queue():
    return FakePrintQueueClient()


@pytest.fixture
def lpd_stream():
    """
    Factory for an LpdConnection reading `data` and writing to a MemoryWriter.

    Must be called from inside a running event loop.
    """

    def _make(data: bytes, max_line_length: int = 65536) -> Tuple[LpdConnection, MemoryWriter]:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        writer = MemoryWriter()
        return LpdConnection(reader, writer, max_line_length=max_line_length), writer

    return _make


def frame(subcommand: int, name: str, payload: bytes, trailing: bytes = b"\x00") -> bytes:
    """Encode one receive-job sub-command frame as an LPD client sends it."""
    return bytes([subcommand]) + f"{len(payload)} {name}\n".encode() + payload + trailing


@pytest.fixture
def make_frame():
    return frame
