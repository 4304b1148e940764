import asyncio
import logging
import os
import shutil
import tempfile
from typing import Dict, List, Optional

import aiofiles
import aiofiles.os

from lpd_gateway.models import FileKind
from lpd_gateway.protocol.protocol_models import PendingFile


class JobTransaction:
    """
    Owns every temporary file created while receiving one print job.

    Used as an async context manager; on exit all sinks are closed and the
    private scratch directory is removed, whatever the outcome.
    """

    def __init__(self, spool_directory: str = ""):
        self._spool_directory = spool_directory or None
        self.directory: Optional[str] = None
        self.control_file: Optional[PendingFile] = None
        self._data_files: Dict[str, PendingFile] = {}
        self._all_files: List[PendingFile] = []

    async def __aenter__(self) -> "JobTransaction":
        if self._spool_directory:
            await aiofiles.os.makedirs(self._spool_directory, exist_ok=True)
        self.directory = await asyncio.to_thread(
            tempfile.mkdtemp, prefix="lpd-job-", dir=self._spool_directory
        )
        logging.debug(f"Job transaction opened in {self.directory}")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.cleanup()

    @property
    def data_file_count(self) -> int:
        return sum(1 for f in self._all_files if f.kind == FileKind.DATA)

    async def _new_path(self, kind: FileKind) -> str:
        prefix = "cf-" if kind == FileKind.CONTROL else "df-"

        def _create() -> str:
            fd, path = tempfile.mkstemp(prefix=prefix, dir=self.directory)
            os.close(fd)
            return path

        return await asyncio.to_thread(_create)

    async def open_control_file(self, remote_name: str, declared_length: int) -> PendingFile:
        """
        Open the control file sink.

        Some clients (OS/2) send several control files per connection; later
        ones are appended to the first.
        """
        if self.control_file is not None:
            self.control_file.declared_length += declared_length
            self.control_file.sink = await aiofiles.open(self.control_file.path, "ab")
            logging.info(
                f"Appending control file {remote_name} to {self.control_file.remote_name}"
            )
            return self.control_file

        path = await self._new_path(FileKind.CONTROL)
        pending = PendingFile(
            kind=FileKind.CONTROL,
            declared_length=declared_length,
            remote_name=remote_name,
            path=path,
        )
        self._all_files.append(pending)
        pending.sink = await aiofiles.open(path, "wb")
        self.control_file = pending
        return pending

    async def open_data_file(self, remote_name: str, declared_length: int) -> PendingFile:
        path = await self._new_path(FileKind.DATA)
        pending = PendingFile(
            kind=FileKind.DATA,
            declared_length=declared_length,
            remote_name=remote_name,
            path=path,
        )
        self._all_files.append(pending)
        pending.sink = await aiofiles.open(path, "wb")

        if remote_name in self._data_files:
            # First declaration wins, same as a linear search would
            logging.warning(f"Duplicate data file name {remote_name} in job, keeping first")
        else:
            self._data_files[remote_name] = pending
        return pending

    def lookup_data_file(self, remote_name: str) -> Optional[PendingFile]:
        return self._data_files.get(remote_name)

    async def cleanup(self) -> None:
        for pending in self._all_files:
            try:
                await pending.close()
            except OSError as e:
                logging.warning(f"Could not close {pending.path}: {e}")

        if self.directory is not None:
            directory, self.directory = self.directory, None
            await asyncio.to_thread(shutil.rmtree, directory, True)
            logging.debug(
                f"Job transaction cleaned up {len(self._all_files)} file(s) in {directory}"
            )
