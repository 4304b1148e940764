"""
Protocol Models - typed data structures for one LPD connection.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from lpd_gateway.models import FileKind, LpdCommand, StatusCode, SubCommand


@dataclass(frozen=True)
class LpdRequest:
    """The single command that opens an LPD connection."""

    command: int
    destination: str = ""
    argument: str = ""

    @property
    def known_command(self) -> Optional[LpdCommand]:
        try:
            return LpdCommand(self.command)
        except ValueError:
            return None

    def __str__(self) -> str:
        return (
            f"LpdRequest(cmd=0x{self.command:02X}, "
            f"dest={self.destination!r}, arg={self.argument!r})"
        )


@dataclass(frozen=True)
class ControlFileEntry:
    """One directive line of a control file."""

    code: str
    value: str

    def __str__(self) -> str:
        return f"{self.code}{self.value}"


@dataclass(frozen=True)
class SubCommandLine:
    """Parsed `<subcmd><count> <name>` line of the receive-job sub-protocol."""

    subcommand: SubCommand
    count: int = 0
    name: str = ""


@dataclass
class PendingFile:
    """
    A control or data file currently owned by a job transaction.

    The sink is opened for one frame and must be closed exactly once;
    the file on disk lives until the transaction ends.
    """

    kind: FileKind
    declared_length: int
    remote_name: str
    path: str
    sink: Any = field(default=None, repr=False)
    bytes_received: int = 0

    @property
    def is_open(self) -> bool:
        return self.sink is not None

    async def close(self) -> None:
        sink, self.sink = self.sink, None
        if sink is not None:
            await sink.close()

    def __str__(self) -> str:
        return (
            f"PendingFile({self.kind.value}, name={self.remote_name}, "
            f"declared={self.declared_length:,}, received={self.bytes_received:,})"
        )


@dataclass
class FrameResult:
    """Outcome of one transfer frame."""

    status: StatusCode
    pending_file: Optional[PendingFile] = None
    end_of_job: bool = False

    @property
    def success(self) -> bool:
        return self.status == StatusCode.ACCEPTED


@dataclass
class ReceiveResult:
    """Outcome of a complete receive-job session."""

    status: StatusCode
    submitted_job_ids: list[int] = field(default_factory=list)
    failed_directives: list[str] = field(default_factory=list)
    files_received: int = 0

    @property
    def success(self) -> bool:
        return self.status == StatusCode.ACCEPTED

    def __str__(self) -> str:
        status = "SUCCESS" if self.success else "FAILED"
        return (
            f"ReceiveResult({status}, files={self.files_received}, "
            f"jobs={self.submitted_job_ids}, failed={len(self.failed_directives)})"
        )
