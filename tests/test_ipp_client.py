"""
Tests for IppPrintQueueClient against an httpx.MockTransport spooler.
"""

import httpx
import pytest

from lpd_gateway.core.exceptions import PrintQueueError
from lpd_gateway.models import JobState, JobSubmission, PrinterState
from lpd_gateway.print_queue.ipp_client import IppPrintQueueClient
from lpd_gateway.print_queue.ipp_encoding import (
    GroupTag,
    IppAttribute,
    IppGroup,
    IppMessage,
    Operation,
    ValueTag,
)


def group(tag: int, *attributes: IppAttribute) -> IppGroup:
    return IppGroup(tag=tag, attributes={a.name: a for a in attributes})


def ipp_reply(request: IppMessage, *groups: IppGroup, status: int = 0) -> httpx.Response:
    reply = IppMessage(code=status, request_id=request.request_id)
    reply.add(GroupTag.OPERATION, "attributes-charset", ValueTag.CHARSET, "utf-8")
    reply.groups.extend(groups)
    return httpx.Response(200, content=reply.encode(), headers={"Content-Type": "application/ipp"})


class FakeSpooler:
    """Records decoded IPP requests and answers with a canned handler."""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        body = await request.aread()
        message = IppMessage.decode(body)
        self.requests.append((request, message))
        return self.respond(request, message)


def make_client(spooler) -> IppPrintQueueClient:
    return IppPrintQueueClient(
        base_url="http://localhost:631", transport=httpx.MockTransport(spooler)
    )


class TestSubmit:
    @pytest.mark.asyncio
    async def test_print_job_request(self, tmp_path):
        document = tmp_path / "dfA001"
        document.write_bytes(b"%!PS-Adobe-3.0\nshowpage\n")

        def respond(request, message):
            return ipp_reply(message, group(GroupTag.JOB, IppAttribute("job-id", ValueTag.INTEGER, [77])))

        spooler = FakeSpooler(respond)
        client = make_client(spooler)
        submission = JobSubmission(
            queue="myprinter",
            file_path=str(document),
            title="Report",
            document_name="report.ps",
            user="alice",
            style_options={"raw": ""},
            options={"media": "a4", "document-format": "application/postscript"},
        )

        job_id = await client.submit(submission)
        await client.close()

        assert job_id == 77
        request, message = spooler.requests[0]
        assert request.url.path == "/printers/myprinter"
        assert request.headers["Content-Type"] == "application/ipp"
        assert message.code == Operation.PRINT_JOB
        assert message.find("printer-uri").value == "ipp://localhost:631/printers/myprinter"
        assert message.find("requesting-user-name").value == "alice"
        assert message.find("job-name").value == "Report"
        assert message.find("document-name").value == "report.ps"
        assert message.find("document-format", GroupTag.OPERATION).value == "application/postscript"
        assert message.find("media", GroupTag.JOB).value == "a4"
        assert message.find("raw") is None
        assert message.data == b"%!PS-Adobe-3.0\nshowpage\n"

    @pytest.mark.asyncio
    async def test_ipp_error_status(self, tmp_path):
        document = tmp_path / "dfA001"
        document.write_bytes(b"data")

        def respond(request, message):
            reply = ipp_reply(message, status=0x040A)
            return reply

        client = make_client(FakeSpooler(respond))
        submission = JobSubmission(queue="myprinter", file_path=str(document), user="alice")

        with pytest.raises(PrintQueueError) as exc_info:
            await client.submit(submission)
        assert exc_info.value.status_code == 0x040A

    @pytest.mark.asyncio
    async def test_http_error(self, tmp_path):
        document = tmp_path / "dfA001"
        document.write_bytes(b"data")
        client = make_client(FakeSpooler(lambda request, message: httpx.Response(500)))
        submission = JobSubmission(queue="myprinter", file_path=str(document), user="alice")

        with pytest.raises(PrintQueueError):
            await client.submit(submission)

    @pytest.mark.asyncio
    async def test_missing_job_id(self, tmp_path):
        document = tmp_path / "dfA001"
        document.write_bytes(b"data")
        client = make_client(FakeSpooler(lambda request, message: ipp_reply(message)))
        submission = JobSubmission(queue="myprinter", file_path=str(document), user="alice")

        with pytest.raises(PrintQueueError, match="job-id"):
            await client.submit(submission)


class TestQueryPrinter:
    @pytest.mark.asyncio
    async def test_printer_attributes(self):
        def respond(request, message):
            return ipp_reply(
                message,
                group(
                    GroupTag.PRINTER,
                    IppAttribute("printer-name", ValueTag.NAME, ["MyPrinter"]),
                    IppAttribute("printer-state", ValueTag.ENUM, [4]),
                    IppAttribute("printer-is-accepting-jobs", ValueTag.BOOLEAN, [True]),
                ),
            )

        spooler = FakeSpooler(respond)
        printer = await make_client(spooler).query_printer("myprinter/duplex")

        request, message = spooler.requests[0]
        assert request.url.path == "/"
        assert message.code == Operation.GET_PRINTER_ATTRIBUTES
        assert message.find("printer-uri").value == "ipp://localhost:631/printers/myprinter"
        assert printer.name == "myprinter"
        assert printer.state == PrinterState.PROCESSING
        assert printer.accepting_jobs is True
        assert printer.shared is True

    @pytest.mark.asyncio
    async def test_unknown_printer(self):
        client = make_client(FakeSpooler(lambda request, message: ipp_reply(message, status=0x0406)))
        with pytest.raises(PrintQueueError):
            await client.query_printer("nosuch")

    @pytest.mark.asyncio
    async def test_lookup_by_description(self):
        def printer(name, info):
            return group(
                GroupTag.PRINTER,
                IppAttribute("printer-name", ValueTag.NAME, [name]),
                IppAttribute("printer-info", ValueTag.TEXT, [info]),
                IppAttribute("printer-state", ValueTag.ENUM, [3]),
                IppAttribute("printer-is-accepting-jobs", ValueTag.BOOLEAN, [True]),
                IppAttribute("printer-is-shared", ValueTag.BOOLEAN, [False]),
            )

        def respond(request, message):
            return ipp_reply(message, printer("inkjet", "Photo Inkjet"), printer("laser1", "Office Laser"))

        spooler = FakeSpooler(respond)
        found = await make_client(spooler).query_printer("office laser")

        assert spooler.requests[0][1].code == Operation.CUPS_GET_PRINTERS
        assert found.name == "laser1"
        assert found.state == PrinterState.IDLE
        assert found.shared is False

    @pytest.mark.asyncio
    async def test_description_not_found(self):
        client = make_client(FakeSpooler(lambda request, message: ipp_reply(message)))
        with pytest.raises(PrintQueueError, match="Unable to find"):
            await client.query_printer("Front Desk")


class TestQueryJobs:
    @pytest.mark.asyncio
    async def test_get_jobs_for_user(self):
        def job(job_id, owner, state):
            return group(
                GroupTag.JOB,
                IppAttribute("job-id", ValueTag.INTEGER, [job_id]),
                IppAttribute("job-originating-user-name", ValueTag.NAME, [owner]),
                IppAttribute("job-name", ValueTag.NAME, ["report.txt"]),
                IppAttribute("job-k-octets", ValueTag.INTEGER, [2]),
                IppAttribute("job-state", ValueTag.ENUM, [state]),
                IppAttribute("job-printer-uri", ValueTag.URI, ["ipp://localhost:631/printers/myprinter"]),
            )

        def respond(request, message):
            return ipp_reply(message, job(12, "alice", 5), job(13, "alice", 3))

        spooler = FakeSpooler(respond)
        jobs = await make_client(spooler).query_jobs("myprinter", user="alice")

        message = spooler.requests[0][1]
        assert message.code == Operation.GET_JOBS
        assert message.find("requesting-user-name").value == "alice"
        assert message.find("my-jobs").value is True
        assert [j.id for j in jobs] == [12, 13]
        assert jobs[0].state == JobState.PROCESSING
        assert jobs[0].size_bytes == 2048
        assert jobs[0].destination == "myprinter"
        assert jobs[0].copies == 1
        assert jobs[0].is_listable

    @pytest.mark.asyncio
    async def test_single_job(self):
        spooler = FakeSpooler(lambda request, message: ipp_reply(message))
        jobs = await make_client(spooler).query_jobs("myprinter", job_id=12)

        message = spooler.requests[0][1]
        assert jobs == []
        assert message.code == Operation.GET_JOB_ATTRIBUTES
        assert message.find("job-id").value == 12
        assert message.find("requesting-user-name") is None


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_job(self):
        spooler = FakeSpooler(lambda request, message: ipp_reply(message))

        await make_client(spooler).cancel(12, "root")

        request, message = spooler.requests[0]
        assert request.url.path == "/jobs"
        assert message.code == Operation.CANCEL_JOB
        assert message.find("job-uri").value == "ipp://localhost:631/jobs/12"
        assert message.find("requesting-user-name").value == "root"

    @pytest.mark.asyncio
    async def test_cancel_refused(self):
        client = make_client(FakeSpooler(lambda request, message: ipp_reply(message, status=0x0401)))
        with pytest.raises(PrintQueueError):
            await client.cancel(12, "mallory")
