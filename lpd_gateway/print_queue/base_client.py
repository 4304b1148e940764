"""Abstract print-queue client - the request shape the LPD gateway needs."""

from abc import ABC, abstractmethod
from typing import List, Optional

from lpd_gateway.models import JobRecord, JobSubmission, PrinterInfo


class PrintQueueClient(ABC):
    """
    Backend the gateway translates LPD requests into.

    One instance is shared by all connections, so implementations must be
    safe for concurrent use. Failures are raised as PrintQueueError.
    """

    @abstractmethod
    async def submit(self, submission: JobSubmission) -> int:
        """Submit one document as a new job. Returns the job id."""
        pass

    @abstractmethod
    async def query_printer(self, queue: str) -> PrinterInfo:
        """Resolve a destination and return its state."""
        pass

    @abstractmethod
    async def query_jobs(
        self, queue: str, job_id: Optional[int] = None, user: Optional[str] = None
    ) -> List[JobRecord]:
        """List a single job, or the jobs of one user on a queue."""
        pass

    @abstractmethod
    async def cancel(self, job_id: int, agent: str) -> None:
        """Cancel a job acting as `agent`."""
        pass

    async def close(self) -> None:
        """Release transport resources."""
        pass
