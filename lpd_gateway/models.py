from enum import Enum, IntEnum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class LpdCommand(IntEnum):
    """
    Top-level RFC 1179 daemon commands.

    Only one command is processed per connection.
    """

    PRINT_WAITING = 0x01  # "Print any waiting jobs" (no-op)
    RECEIVE_JOB = 0x02  # Receive a printer job
    SHORT_STATUS = 0x03  # Send queue state (short)
    LONG_STATUS = 0x04  # Send queue state (long)
    REMOVE_JOBS = 0x05  # Remove jobs


class SubCommand(IntEnum):
    """Sub-commands of the receive-job transfer sub-protocol."""

    ABORT = 0x01
    RECEIVE_CONTROL = 0x02
    RECEIVE_DATA = 0x03


class StatusCode(IntEnum):
    """
    In-band acknowledgement status.

    Only LpdConnection turns these into wire bytes.
    """

    ACCEPTED = 0
    REJECTED = 1


class FileKind(str, Enum):
    CONTROL = "Control"
    DATA = "Data"


class PrinterState(IntEnum):
    """IPP printer-state enum values."""

    IDLE = 3
    PROCESSING = 4
    STOPPED = 5


class JobState(IntEnum):
    """IPP job-state enum values."""

    PENDING = 3
    HELD = 4
    PROCESSING = 5
    STOPPED = 6
    CANCELED = 7
    ABORTED = 8
    COMPLETED = 9

    @property
    def is_terminal(self) -> bool:
        return self >= JobState.CANCELED


class PrinterInfo(BaseModel):
    """Resolved destination and its availability as reported by the print-queue service."""

    name: str = Field(..., description="Resolved queue name (printer-name)")
    state: PrinterState = Field(
        default=PrinterState.STOPPED, description="printer-state"
    )
    accepting_jobs: bool = Field(
        default=False, description="printer-is-accepting-jobs"
    )
    shared: bool = Field(default=True, description="printer-is-shared")
    info: Optional[str] = Field(default=None, description="printer-info text")


class JobRecord(BaseModel):
    """One job as listed by the print-queue service."""

    id: int = Field(default=0, ge=0, description="job-id")
    owner: Optional[str] = Field(
        default=None, description="job-originating-user-name"
    )
    name: str = Field(default="untitled", description="job-name")
    size_bytes: int = Field(
        default=0, ge=0, description="Job size in bytes (job-k-octets * 1024)"
    )
    state: JobState = Field(default=JobState.PENDING, description="job-state")
    copies: int = Field(default=1, ge=1, description="copies")
    destination: Optional[str] = Field(
        default=None, description="Queue name taken from job-printer-uri"
    )

    @property
    def is_listable(self) -> bool:
        """Jobs without owner or destination are not fully materialized yet."""
        return bool(self.owner) and bool(self.destination) and self.id > 0


class JobSubmission(BaseModel):
    """
    One print request built from a control file print directive.

    Ambient metadata (title, user, document name) is captured at the time
    the directive is processed.
    """

    queue: str = Field(..., description="Destination queue")
    file_path: str = Field(..., description="Local path of the received data file")
    title: str = Field(default="untitled", description="job-name")
    document_name: str = Field(default="", description="document-name")
    user: str = Field(..., min_length=1, description="requesting-user-name")
    style_options: Dict[str, str] = Field(
        default_factory=dict,
        description="Options derived from the print directive code",
    )
    options: Dict[str, str] = Field(
        default_factory=dict,
        description="Queue and gateway default options",
    )

    def all_options(self) -> Dict[str, str]:
        """Defaults first, directive style options on top."""
        merged = dict(self.options)
        merged.update(self.style_options)
        return merged


class QueueStatusView(BaseModel):
    """Fresh snapshot of a queue used to render one status report."""

    printer: PrinterInfo
    jobs: list[JobRecord] = Field(default_factory=list)
