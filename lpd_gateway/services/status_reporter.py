"""
Status Reporter - renders the LPD short and long queue state reports.

The layout matches the Solaris LPD mini-daemon:

    lp is ready and printing
    Rank    Owner   Job     File(s)                         Total Size
    active  alice   12      report.txt                      2048 bytes
    1st     bob     13      (stdin)                         1024 bytes
"""

import logging
from typing import List, Optional, Tuple

from lpd_gateway.core.exceptions import PrintQueueError
from lpd_gateway.models import (
    JobRecord,
    JobState,
    PrinterState,
    QueueStatusView,
    StatusCode,
)
from lpd_gateway.print_queue.base_client import PrintQueueClient
from lpd_gateway.protocol.connection import LpdConnection

SHORT_HEADER = "Rank    Owner   Job     File(s)                         Total Size"
NO_ENTRIES = "no entries"

STATE_SENTENCES = {
    PrinterState.IDLE: "{name} is ready",
    PrinterState.PROCESSING: "{name} is ready and printing",
    PrinterState.STOPPED: "{name} is not ready",
}

ORDINAL_SUFFIXES = ("th", "st", "nd", "rd", "th", "th", "th", "th", "th", "th")


def ordinal(rank: int) -> str:
    """1st, 2nd, 3rd, 4th ... 11th, 12th, 13th ... 21st."""
    if 10 <= rank % 100 <= 20:
        return f"{rank}th"
    return f"{rank}{ORDINAL_SUFFIXES[rank % 10]}"


def parse_job_filter(job_list: str) -> Tuple[Optional[int], Optional[str]]:
    """A positive integer selects one job id, anything else is a user name."""
    tokens = job_list.split()
    if not tokens:
        return None, None
    if tokens[0].isascii() and tokens[0].isdigit() and int(tokens[0]) > 0:
        return int(tokens[0]), None
    return None, tokens[0]


class StatusReporter:
    def __init__(self, print_queue: PrintQueueClient):
        self.print_queue = print_queue

    @staticmethod
    def render_state(view: QueueStatusView) -> str:
        return STATE_SENTENCES[view.printer.state].format(name=view.printer.name)

    @staticmethod
    def ranked_jobs(jobs: List[JobRecord]) -> List[Tuple[str, JobRecord]]:
        """Listable jobs that are still queued, with their rank label."""
        ranked = []
        rank = 1
        for job in jobs:
            if not job.is_listable or job.state.is_terminal:
                continue
            if job.state == JobState.PROCESSING:
                ranked.append(("active", job))
            else:
                ranked.append((ordinal(rank), job))
                rank += 1
        return ranked

    def render(self, view: QueueStatusView, long_form: bool) -> str:
        lines = [self.render_state(view)]
        ranked = self.ranked_jobs(view.jobs)

        if not ranked:
            lines.append(NO_ENTRIES)
        elif long_form:
            for rank, job in ranked:
                name = f"{job.copies} copies of {job.name}" if job.copies > 1 else job.name
                lines.append("")
                lines.append(f"{job.owner}: {rank[:33]:<33} [job {job.id} localhost]")
                lines.append(f"        {name[:39]:<39} {job.size_bytes} bytes")
        else:
            lines.append(SHORT_HEADER)
            for rank, job in ranked:
                lines.append(
                    f"{rank:<7} {job.owner[:7]:<7} {job.id:<7} "
                    f"{job.name[:31]:<31} {job.size_bytes} bytes"
                )

        return "\n".join(lines) + "\n"

    async def report(
        self, connection: LpdConnection, destination: str, job_list: str, long_form: bool
    ) -> StatusCode:
        try:
            printer = await self.print_queue.query_printer(destination)
        except PrintQueueError as e:
            logging.error(f"Unable to get printer {destination}: {e}")
            await connection.send_text(f"Unable to get printer {destination}: {e}\n")
            return StatusCode.REJECTED

        job_id, user = parse_job_filter(job_list)
        try:
            jobs = await self.print_queue.query_jobs(printer.name, job_id=job_id, user=user)
        except PrintQueueError as e:
            view = QueueStatusView(printer=printer)
            logging.error(f"get-jobs failed for {printer.name}: {e}")
            await connection.send_text(f"{self.render_state(view)}\nget-jobs failed: {e}\n")
            return StatusCode.REJECTED

        view = QueueStatusView(printer=printer, jobs=jobs)
        await connection.send_text(self.render(view, long_form))
        return StatusCode.ACCEPTED
