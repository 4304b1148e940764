"""
IPP print-queue client.

Talks IPP over HTTP to a CUPS-style spooler using one shared
httpx.AsyncClient. The LPD-to-IPP mapping follows RFC 2569.
"""

import itertools
import logging
from typing import AsyncIterator, List, Optional
from urllib.parse import quote

import aiofiles
import httpx

from lpd_gateway.core.exceptions import PrintQueueError
from lpd_gateway.models import (
    JobRecord,
    JobState,
    JobSubmission,
    PrinterInfo,
    PrinterState,
)
from lpd_gateway.print_queue.base_client import PrintQueueClient
from lpd_gateway.print_queue.ipp_encoding import (
    GroupTag,
    IppError,
    IppGroup,
    IppMessage,
    Operation,
    ValueTag,
    encode_job_options,
)

PRINTER_ATTRIBUTES = (
    "printer-info",
    "printer-is-accepting-jobs",
    "printer-is-shared",
    "printer-name",
    "printer-state",
)

JOB_ATTRIBUTES = (
    "job-id",
    "job-k-octets",
    "job-state",
    "job-printer-uri",
    "job-originating-user-name",
    "job-name",
    "copies",
)


class IppPrintQueueClient(PrintQueueClient):
    """PrintQueueClient backed by an IPP spooler."""

    def __init__(
        self,
        base_url: str = "http://localhost:631",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        chunk_size: int = 65536,
        charset: str = "utf-8",
        language: str = "en-us",
    ):
        self.base_url = base_url.rstrip("/")
        self.chunk_size = chunk_size
        self.charset = charset
        self.language = language

        url = httpx.URL(self.base_url)
        port = f":{url.port}" if url.port else ""
        self._ipp_root = f"ipp://{url.host}{port}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )
        self._request_ids = itertools.count(1)

    def printer_uri(self, queue: str) -> str:
        return f"{self._ipp_root}/printers/{quote(queue)}"

    def job_uri(self, job_id: int) -> str:
        return f"{self._ipp_root}/jobs/{job_id}"

    def _new_request(self, operation: Operation) -> IppMessage:
        message = IppMessage(code=operation, request_id=next(self._request_ids))
        message.add(GroupTag.OPERATION, "attributes-charset", ValueTag.CHARSET, self.charset)
        message.add(
            GroupTag.OPERATION,
            "attributes-natural-language",
            ValueTag.NATURAL_LANGUAGE,
            self.language,
        )
        return message

    async def _post(self, path: str, content, operation: Operation) -> IppMessage:
        try:
            response = await self._client.post(
                path, content=content, headers={"Content-Type": "application/ipp"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PrintQueueError(operation.name, f"HTTP error: {e}") from e

        try:
            reply = IppMessage.decode(response.content)
        except IppError as e:
            raise PrintQueueError(operation.name, f"Bad IPP response: {e}") from e

        if not reply.is_successful:
            detail = reply.find("status-message")
            reason = detail.value if detail else f"status 0x{reply.status_code:04X}"
            raise PrintQueueError(operation.name, reason, reply.status_code)
        return reply

    async def _document_stream(self, header: bytes, path: str) -> AsyncIterator[bytes]:
        yield header
        async with aiofiles.open(path, "rb") as document:
            while chunk := await document.read(self.chunk_size):
                yield chunk

    async def submit(self, submission: JobSubmission) -> int:
        request = self._new_request(Operation.PRINT_JOB)
        request.add(
            GroupTag.OPERATION, "printer-uri", ValueTag.URI, self.printer_uri(submission.queue)
        )
        request.add(
            GroupTag.OPERATION, "requesting-user-name", ValueTag.NAME, submission.user
        )
        request.add(GroupTag.OPERATION, "job-name", ValueTag.NAME, submission.title)
        if submission.document_name:
            request.add(
                GroupTag.OPERATION, "document-name", ValueTag.NAME, submission.document_name
            )
        encode_job_options(request, submission.all_options())

        try:
            reply = await self._post(
                f"/printers/{quote(submission.queue)}",
                self._document_stream(request.encode(), submission.file_path),
                Operation.PRINT_JOB,
            )
        except OSError as e:
            raise PrintQueueError(
                Operation.PRINT_JOB.name, f"Cannot read {submission.file_path}: {e}"
            ) from e

        job_id = reply.find("job-id", GroupTag.JOB)
        if job_id is None or not isinstance(job_id.value, int):
            raise PrintQueueError(
                Operation.PRINT_JOB.name, "No job-id attribute found in response from server"
            )

        logging.info(f"Print file - job ID = {job_id.value}")
        return job_id.value

    @staticmethod
    def _printer_from_group(group: IppGroup, fallback_name: str) -> PrinterInfo:
        state = group.get("printer-state")
        try:
            printer_state = PrinterState(state)
        except ValueError:
            printer_state = PrinterState.STOPPED

        shared = group.get("printer-is-shared")
        return PrinterInfo(
            name=group.get("printer-name") or fallback_name,
            state=printer_state,
            accepting_jobs=bool(group.get("printer-is-accepting-jobs", False)),
            shared=True if shared is None else bool(shared),
            info=group.get("printer-info"),
        )

    async def query_printer(self, queue: str) -> PrinterInfo:
        if " " in queue:
            return await self._find_printer_by_info(queue)

        name = queue.split("/", 1)[0]
        request = self._new_request(Operation.GET_PRINTER_ATTRIBUTES)
        request.add(GroupTag.OPERATION, "printer-uri", ValueTag.URI, self.printer_uri(name))
        request.add(
            GroupTag.OPERATION, "requested-attributes", ValueTag.KEYWORD, *PRINTER_ATTRIBUTES
        )
        reply = await self._post("/", request.encode(), Operation.GET_PRINTER_ATTRIBUTES)

        group = next(reply.iter_groups(GroupTag.PRINTER), None)
        if group is None:
            raise PrintQueueError(
                Operation.GET_PRINTER_ATTRIBUTES.name, f"No printer attributes for {name}"
            )
        printer = self._printer_from_group(group, name)
        # The queue name asked for wins over printer-name (case, instances)
        return printer.model_copy(update={"name": name})

    async def _find_printer_by_info(self, description: str) -> PrinterInfo:
        """A destination with a space is looked up by its printer-info text."""
        request = self._new_request(Operation.CUPS_GET_PRINTERS)
        request.add(
            GroupTag.OPERATION, "requested-attributes", ValueTag.KEYWORD, *PRINTER_ATTRIBUTES
        )
        reply = await self._post("/", request.encode(), Operation.CUPS_GET_PRINTERS)

        for group in reply.iter_groups(GroupTag.PRINTER):
            info = group.get("printer-info")
            if info and group.get("printer-name") and info.lower() == description.lower():
                return self._printer_from_group(group, description)

        raise PrintQueueError(
            Operation.CUPS_GET_PRINTERS.name,
            f'Unable to find "{description}" in list of printers',
        )

    @staticmethod
    def _job_from_group(group: IppGroup) -> JobRecord:
        try:
            state = JobState(group.get("job-state", JobState.PENDING))
        except ValueError:
            state = JobState.PENDING

        destination = None
        printer_uri = group.get("job-printer-uri")
        if printer_uri and "/" in printer_uri:
            destination = printer_uri.rsplit("/", 1)[1] or None

        return JobRecord(
            id=max(group.get("job-id", 0) or 0, 0),
            owner=group.get("job-originating-user-name"),
            name=group.get("job-name") or "untitled",
            size_bytes=max(group.get("job-k-octets", 0) or 0, 0) * 1024,
            state=state,
            copies=max(group.get("copies", 1) or 1, 1),
            destination=destination,
        )

    async def query_jobs(
        self, queue: str, job_id: Optional[int] = None, user: Optional[str] = None
    ) -> List[JobRecord]:
        operation = Operation.GET_JOB_ATTRIBUTES if job_id else Operation.GET_JOBS
        request = self._new_request(operation)
        request.add(GroupTag.OPERATION, "printer-uri", ValueTag.URI, self.printer_uri(queue))

        if job_id:
            request.add(GroupTag.OPERATION, "job-id", ValueTag.INTEGER, job_id)
        elif user:
            request.add(GroupTag.OPERATION, "requesting-user-name", ValueTag.NAME, user)
            request.add(GroupTag.OPERATION, "my-jobs", ValueTag.BOOLEAN, True)

        request.add(
            GroupTag.OPERATION, "requested-attributes", ValueTag.KEYWORD, *JOB_ATTRIBUTES
        )
        reply = await self._post("/", request.encode(), operation)
        return [self._job_from_group(group) for group in reply.iter_groups(GroupTag.JOB)]

    async def cancel(self, job_id: int, agent: str) -> None:
        request = self._new_request(Operation.CANCEL_JOB)
        request.add(GroupTag.OPERATION, "job-uri", ValueTag.URI, self.job_uri(job_id))
        request.add(GroupTag.OPERATION, "requesting-user-name", ValueTag.NAME, agent)
        await self._post("/jobs", request.encode(), Operation.CANCEL_JOB)
        logging.info(f"Job ID {job_id} cancelled")

    async def close(self) -> None:
        await self._client.aclose()
