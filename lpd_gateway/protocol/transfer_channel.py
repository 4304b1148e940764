import logging

from lpd_gateway.core.exceptions import ProtocolError, TransferAbortedError
from lpd_gateway.models import FileKind, StatusCode, SubCommand
from lpd_gateway.protocol.connection import LpdConnection
from lpd_gateway.protocol.job_transaction import JobTransaction
from lpd_gateway.protocol.protocol_models import FrameResult, SubCommandLine


class TransferChannel:
    """
    One frame at a time of the receive-job sub-protocol.

    A frame is `<subcmd><count> <name>\\n`, an acknowledgement, exactly
    `count` payload bytes, a trailing status byte from the client and the
    echoed acknowledgement.
    """

    def __init__(
        self,
        connection: LpdConnection,
        transaction: JobTransaction,
        max_data_files: int = 100,
        chunk_size: int = 8192,
        strict_control_file_order: bool = False,
    ):
        self.connection = connection
        self.transaction = transaction
        self.max_data_files = max_data_files
        self.chunk_size = chunk_size
        self.strict_control_file_order = strict_control_file_order

    @staticmethod
    def parse_subcommand_line(line: bytes) -> SubCommandLine:
        """Parse a sub-command line; raises ProtocolError when malformed."""
        if line[:1] == bytes([SubCommand.ABORT]):
            raise TransferAbortedError("Client aborted the job", line)
        if len(line) < 2:
            raise ProtocolError("Sub-command line too short", line)

        try:
            subcommand = SubCommand(line[0])
        except ValueError:
            raise TransferAbortedError(
                f"Unknown sub-command 0x{line[0]:02X} treated as abort", line
            )

        fields = line[1:].decode("latin-1").split(None, 1)
        if not fields or not (fields[0].isascii() and fields[0].isdigit()):
            raise ProtocolError("Missing or invalid byte count", line)

        name = fields[1].strip() if len(fields) > 1 else ""
        if len(name) < 2:
            kind = "control" if subcommand == SubCommand.RECEIVE_CONTROL else "data"
            raise ProtocolError(f'Bad {kind} file name "{name}"', line)

        return SubCommandLine(subcommand=subcommand, count=int(fields[0]), name=name)

    async def receive_frame(self) -> FrameResult:
        line = await self.connection.read_line()
        if not line:
            # Client closed the connection or sent an empty line: job complete
            return FrameResult(status=StatusCode.ACCEPTED, end_of_job=True)

        try:
            frame = self.parse_subcommand_line(line)
        except ProtocolError:
            await self.connection.send_status(StatusCode.REJECTED)
            raise

        if frame.subcommand == SubCommand.RECEIVE_DATA:
            if self.transaction.data_file_count >= self.max_data_files:
                logging.error(f"Too many data files ({self.transaction.data_file_count})")
                await self.connection.send_status(StatusCode.REJECTED)
                return FrameResult(status=StatusCode.REJECTED)
            if self.strict_control_file_order and self.transaction.control_file is None:
                logging.error(f"Data file {frame.name} sent before control file")
                await self.connection.send_status(StatusCode.REJECTED)
                return FrameResult(status=StatusCode.REJECTED)

        try:
            if frame.subcommand == SubCommand.RECEIVE_CONTROL:
                pending = await self.transaction.open_control_file(frame.name, frame.count)
            else:
                pending = await self.transaction.open_data_file(frame.name, frame.count)
        except OSError as e:
            logging.error(f"Unable to open temporary file for {frame.name}: {e}")
            await self.connection.send_status(StatusCode.REJECTED)
            return FrameResult(status=StatusCode.REJECTED)

        await self.connection.send_status(StatusCode.ACCEPTED)

        try:
            pending.bytes_received += await self.connection.copy_exact(
                pending.sink, frame.count, self.chunk_size
            )
            trailing = await self.connection.read_byte()
        finally:
            await pending.close()

        await self.connection.send_raw_status(trailing)

        if trailing != 0:
            logging.error(
                f"Trailing character after file {frame.name} is not nul ({trailing:02X})"
            )
            return FrameResult(status=StatusCode.REJECTED, pending_file=pending)

        kind = "control" if pending.kind == FileKind.CONTROL else "data"
        logging.debug(f"Received {kind} file {frame.name} ({frame.count:,} bytes)")
        return FrameResult(status=StatusCode.ACCEPTED, pending_file=pending)
