"""
Job Canceller - handles the LPD "remove jobs" command.
"""

import logging
from typing import List

from lpd_gateway.core.exceptions import PrintQueueError
from lpd_gateway.models import StatusCode
from lpd_gateway.print_queue.base_client import PrintQueueClient


def parse_job_ids(job_list: str) -> List[int]:
    """Leading positive job ids; parsing stops at the first other token."""
    job_ids = []
    for token in job_list.split():
        if not (token.isascii() and token.isdigit()) or int(token) <= 0:
            break
        job_ids.append(int(token))
    return job_ids


class JobCanceller:
    def __init__(self, print_queue: PrintQueueClient):
        self.print_queue = print_queue

    async def remove(self, destination: str, agent: str, job_list: str) -> StatusCode:
        # Jobs cancelled before a failure stay cancelled
        for job_id in parse_job_ids(job_list):
            try:
                await self.print_queue.cancel(job_id, agent)
            except PrintQueueError as e:
                logging.error(
                    f"Cancel of job {job_id} on {destination} by {agent} failed: {e}",
                    extra={"operation": "remove_jobs", "job_id": job_id},
                )
                return StatusCode.REJECTED

            logging.info(
                f"Job {job_id} on {destination} cancelled by {agent}",
                extra={"operation": "remove_jobs", "job_id": job_id},
            )

        return StatusCode.ACCEPTED
