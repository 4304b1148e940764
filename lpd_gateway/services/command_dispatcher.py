"""
Command Dispatcher - reads the opening command of an LPD connection and
routes it to the receiver, the status reporter or the canceller.
"""

import logging
import re

from lpd_gateway.core.exceptions import ConnectionClosedError, ProtocolError
from lpd_gateway.models import LpdCommand, StatusCode
from lpd_gateway.protocol.connection import LpdConnection
from lpd_gateway.protocol.protocol_models import LpdRequest
from lpd_gateway.services.job_canceller import JobCanceller
from lpd_gateway.services.job_receiver import JobReceiver
from lpd_gateway.services.status_reporter import StatusReporter

# destination, whitespace run, argument
_OPERANDS = re.compile(r"(\S*)\s*(.*)", re.DOTALL)


def parse_request(line: bytes) -> LpdRequest:
    """Split `<cmd><destination>[ <argument>]` into an LpdRequest."""
    if not line:
        raise ProtocolError("Empty command line")

    operands = line[1:].decode("utf-8", errors="replace")
    destination, argument = _OPERANDS.match(operands).groups()
    return LpdRequest(command=line[0], destination=destination, argument=argument)


def split_agent(argument: str):
    """Remove-jobs argument is `<agent> <list>`."""
    agent, job_list = _OPERANDS.match(argument).groups()
    return agent, job_list


class CommandDispatcher:
    """One command per connection: AwaitCommand -> Dispatched -> Done."""

    def __init__(
        self,
        receiver: JobReceiver,
        reporter: StatusReporter,
        canceller: JobCanceller,
    ):
        self.receiver = receiver
        self.reporter = reporter
        self.canceller = canceller

    async def handle(self, connection: LpdConnection, originating_host: str = "") -> StatusCode:
        try:
            line = await connection.read_line()
        except (ConnectionClosedError, ProtocolError) as e:
            logging.error(f"Unable to read command line from {connection.peer}: {e}")
            line = None

        if line is None:
            await self._reject(connection)
            return StatusCode.REJECTED

        try:
            request = parse_request(line)
        except ProtocolError as e:
            logging.error(f"Bad command line from {connection.peer}: {e}")
            await self._reject(connection)
            return StatusCode.REJECTED

        command = request.known_command
        if command is None:
            logging.error(
                f"Unknown LPD command 0x{request.command:02X} ({request.destination})",
                extra={"operation": "dispatch", "peer": connection.peer},
            )
            await self._reject(connection)
            return StatusCode.REJECTED

        logging.info(
            f"{command.name} 0x{request.command:02X} for {request.destination!r} from {connection.peer}",
            extra={
                "operation": "dispatch",
                "command": command.name,
                "destination": request.destination,
                "peer": connection.peer,
            },
        )

        try:
            return await self._dispatch(connection, request, command, originating_host)
        except ConnectionClosedError as e:
            logging.error(f"Connection lost during {command.name} for {request.destination}: {e}")
            return StatusCode.REJECTED

    async def _dispatch(
        self,
        connection: LpdConnection,
        request: LpdRequest,
        command: LpdCommand,
        originating_host: str,
    ) -> StatusCode:
        if command == LpdCommand.RECEIVE_JOB:
            printer = await self.receiver.admit(request.destination)
            if printer is None:
                await connection.send_status(StatusCode.REJECTED)
                return StatusCode.REJECTED

            await connection.send_status(StatusCode.ACCEPTED)
            result = await self.receiver.receive(connection, printer, originating_host)
            logging.info(f"Receive job for {printer.name} finished: {result}")
            return result.status

        await connection.send_status(StatusCode.ACCEPTED)

        if command == LpdCommand.PRINT_WAITING:
            return StatusCode.ACCEPTED

        if command in (LpdCommand.SHORT_STATUS, LpdCommand.LONG_STATUS):
            return await self.reporter.report(
                connection,
                request.destination,
                request.argument,
                long_form=command == LpdCommand.LONG_STATUS,
            )

        agent, job_list = split_agent(request.argument)
        return await self.canceller.remove(request.destination, agent, job_list)

    @staticmethod
    async def _reject(connection: LpdConnection) -> None:
        try:
            await connection.send_status(StatusCode.REJECTED)
        except ConnectionClosedError as e:
            logging.debug(f"Could not send rejection to {connection.peer}: {e}")
