"""
Job Receiver - receives an LPD print job and submits it to the print queue.
"""

import logging
from typing import Dict, List, Optional

import aiofiles

from lpd_gateway.config import Settings
from lpd_gateway.core.exceptions import (
    ConnectionClosedError,
    DirectiveError,
    PrintQueueError,
    ProtocolError,
    TransferAbortedError,
)
from lpd_gateway.models import JobSubmission, PrinterInfo, StatusCode
from lpd_gateway.print_queue.base_client import PrintQueueClient
from lpd_gateway.protocol.connection import LpdConnection
from lpd_gateway.protocol.control_file import (
    BANNER,
    DOCUMENT_NAME,
    JOB_NAME,
    USER,
    ControlDirectiveParser,
)
from lpd_gateway.protocol.job_transaction import JobTransaction
from lpd_gateway.protocol.protocol_models import ControlFileEntry, ReceiveResult
from lpd_gateway.protocol.transfer_channel import TransferChannel
from lpd_gateway.services.queue_defaults import JobOptions, QueueDefaults

DEFAULT_TITLE = "untitled"


class JobReceiver:
    """
    Receives the control and data files of one job and turns every print
    directive of the control file into a JobSubmission.

    Transfer errors discard the whole job. Directive errors only fail the
    directive they belong to; the rest of the control file is still processed.
    """

    def __init__(
        self,
        settings: Settings,
        print_queue: PrintQueueClient,
        queue_defaults: QueueDefaults,
        parser: Optional[ControlDirectiveParser] = None,
    ):
        self.settings = settings
        self.print_queue = print_queue
        self.queue_defaults = queue_defaults
        self.parser = parser or ControlDirectiveParser()

    async def admit(self, destination: str) -> Optional[PrinterInfo]:
        """Check that the destination exists, is shared and accepts jobs."""
        try:
            printer = await self.print_queue.query_printer(destination)
        except PrintQueueError as e:
            logging.error(f'Unable to get printer information for "{destination}": {e}')
            return None

        if not printer.accepting_jobs or not printer.shared:
            reason = "accepting jobs" if not printer.accepting_jobs else "shared"
            logging.info(f'Rejecting job because "{printer.name}" is not {reason}')
            return None

        return printer

    async def receive(
        self,
        connection: LpdConnection,
        printer: PrinterInfo,
        originating_host: str = "",
    ) -> ReceiveResult:
        async with JobTransaction(self.settings.spool_directory) as transaction:
            channel = TransferChannel(
                connection,
                transaction,
                max_data_files=self.settings.max_data_files,
                chunk_size=self.settings.transfer_chunk_size,
                strict_control_file_order=self.settings.strict_control_file_order,
            )

            files_received = 0
            try:
                while True:
                    frame = await channel.receive_frame()
                    if frame.end_of_job:
                        break
                    if not frame.success:
                        return ReceiveResult(
                            status=StatusCode.REJECTED, files_received=files_received
                        )
                    files_received += 1
            except TransferAbortedError as e:
                logging.info(f"Job for {printer.name} aborted by client: {e}")
                return ReceiveResult(status=StatusCode.REJECTED, files_received=files_received)
            except ProtocolError as e:
                logging.error(f"Protocol error receiving job for {printer.name}: {e}")
                return ReceiveResult(status=StatusCode.REJECTED, files_received=files_received)
            except ConnectionClosedError as e:
                logging.error(f"Error while reading file for {printer.name}: {e}")
                return ReceiveResult(status=StatusCode.REJECTED, files_received=files_received)

            if transaction.control_file is None:
                logging.error(f"Job for {printer.name} has no control file")
                return ReceiveResult(status=StatusCode.REJECTED, files_received=files_received)

            job_options = await self.queue_defaults.job_options(printer, originating_host)
            result = await self.process_control_file(transaction, printer.name, job_options)
            result.files_received = files_received
            return result

    async def _read_control_lines(self, path: str) -> List[str]:
        async with aiofiles.open(path, "rb") as f:
            content = await f.read()

        text = content.decode("utf-8", errors="replace")
        lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
        # Overlong lines are cut, not rejected
        return [line[: self.settings.max_line_length] for line in lines]

    async def process_control_file(
        self, transaction: JobTransaction, queue: str, job_options: JobOptions
    ) -> ReceiveResult:
        result = ReceiveResult(status=StatusCode.ACCEPTED)
        options = job_options.merged()

        title = DEFAULT_TITLE
        document_name = ""
        user = ""

        for entry in self.parser.parse(await self._read_control_lines(transaction.control_file.path)):
            if entry.code == JOB_NAME:
                title = entry.value or DEFAULT_TITLE
            elif entry.code == DOCUMENT_NAME:
                document_name = entry.value
            elif entry.code == USER:
                user = entry.value
            elif entry.code == BANNER:
                options.update(job_options.banner_options(options))
            elif self.parser.is_print_directive(entry):
                try:
                    submission = self.build_submission(
                        entry, transaction, queue, title, document_name, user, options
                    )
                    job_id = await self.print_queue.submit(submission)
                    result.submitted_job_ids.append(job_id)
                    logging.info(
                        f"Submitted {entry.value} to {queue} as job {job_id}",
                        extra={
                            "operation": "submit_job",
                            "queue": queue,
                            "user": user,
                            "job_id": job_id,
                        },
                    )
                except (DirectiveError, PrintQueueError) as e:
                    result.failed_directives.append(str(entry))
                    result.status = StatusCode.REJECTED
                    logging.error(
                        f"Print directive {entry} for {queue} failed: {e}",
                        extra={"operation": "submit_job", "queue": queue},
                    )

        return result

    def build_submission(
        self,
        entry: ControlFileEntry,
        transaction: JobTransaction,
        queue: str,
        title: str,
        document_name: str,
        user: str,
        options: Dict[str, str],
    ) -> JobSubmission:
        if not user:
            raise DirectiveError(entry.code, entry.value, "no user specified before print directive")

        data_file = transaction.lookup_data_file(entry.value)
        if data_file is None:
            raise DirectiveError(entry.code, entry.value, "data file was not received")

        return JobSubmission(
            queue=queue,
            file_path=data_file.path,
            title=title,
            document_name=document_name,
            user=user,
            style_options=self.parser.style_options_for(entry.code, options),
            options=dict(options),
        )
