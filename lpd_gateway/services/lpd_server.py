"""
LPD Server - asyncio TCP listener running one dispatcher flow per connection.
"""

import asyncio
import logging
import socket
from datetime import datetime
from typing import Any, Dict, Optional

from lpd_gateway.config import Settings
from lpd_gateway.core.exceptions import ConnectionClosedError
from lpd_gateway.models import StatusCode
from lpd_gateway.protocol.connection import LpdConnection
from lpd_gateway.services.command_dispatcher import CommandDispatcher


class LpdServer:
    """
    Accepts LPD clients and hands each connection to the CommandDispatcher.

    Connections are independent; at most `max_concurrent_connections` are
    served at the same time, the rest wait for a free slot.
    """

    def __init__(self, settings: Settings, dispatcher: CommandDispatcher):
        self.settings = settings
        self.dispatcher = dispatcher
        self._server: Optional[asyncio.AbstractServer] = None
        self._semaphore = asyncio.Semaphore(max(1, settings.max_concurrent_connections))
        self._started_at: Optional[datetime] = None

        self.active_connections = 0
        self.total_connections = 0
        self.failed_connections = 0

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def port(self) -> int:
        """Bound port, useful when listen_port is 0."""
        if self._server is None or not self._server.sockets:
            return self.settings.listen_port
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        if self._server is not None:
            logging.warning("LPD server already running")
            return

        self._server = await asyncio.start_server(
            self._handle_client, self.settings.listen_host, self.settings.listen_port
        )
        self._started_at = datetime.now()
        logging.info(
            f"LPD server listening on {self.settings.listen_host}:{self.port}",
            extra={"operation": "server_start", "port": self.port},
        )

    async def stop(self) -> None:
        if self._server is None:
            return

        self._server.close()
        await self._server.wait_closed()
        self._server = None
        logging.info("LPD server stopped", extra={"operation": "server_stop"})

    async def resolve_peer_host(self, peername: Any) -> str:
        """Host name for job-originating-host-name, or the IP address."""
        if not isinstance(peername, tuple) or not peername:
            return "localhost"

        address = str(peername[0])
        if not self.settings.hostname_lookups:
            return address

        loop = asyncio.get_running_loop()
        try:
            host, _ = await loop.getnameinfo(peername[:2], socket.NI_NAMEREQD)
            return host
        except (OSError, socket.gaierror) as e:
            logging.debug(f"Reverse lookup of {address} failed: {e}")
            return address

    async def _handle_client(self, reader: asyncio.StreamReader, writer) -> None:
        connection = LpdConnection(
            reader,
            writer,
            max_line_length=self.settings.max_line_length,
            read_timeout=self.settings.connection_timeout_seconds,
        )

        async with self._semaphore:
            self.active_connections += 1
            self.total_connections += 1
            status = StatusCode.REJECTED
            try:
                host = await self.resolve_peer_host(writer.get_extra_info("peername"))
                logging.info(
                    f"Connection from {host} ({connection.peer})",
                    extra={"operation": "connection", "peer": connection.peer},
                )
                status = await self.dispatcher.handle(connection, host)
            except ConnectionClosedError as e:
                logging.error(f"Connection from {connection.peer} lost: {e}")
            except Exception as e:
                logging.error(
                    f"Unexpected error serving {connection.peer}: {e}", exc_info=True
                )
            finally:
                self.active_connections -= 1
                if status != StatusCode.ACCEPTED:
                    self.failed_connections += 1
                await connection.close()
                logging.debug(
                    f"Connection from {connection.peer} closed with status {status.name}",
                    extra={"operation": "connection", "status": int(status)},
                )

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "is_running": self.is_running,
            "listen_host": self.settings.listen_host,
            "listen_port": self.port,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "active_connections": self.active_connections,
            "total_connections": self.total_connections,
            "failed_connections": self.failed_connections,
        }
