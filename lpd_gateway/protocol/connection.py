import asyncio
import logging
from typing import Optional

from lpd_gateway.core.exceptions import ConnectionClosedError, ProtocolError
from lpd_gateway.models import StatusCode


class LpdConnection:
    """
    Transport wrapper around one LPD client socket.

    All reads and writes of the daemon go through here. Any socket failure is
    reported as ConnectionClosedError and is never retried. This is also the
    only place where StatusCode values become bytes on the wire.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer,
        max_line_length: int = 65536,
        read_timeout: Optional[float] = None,
    ):
        self._reader = reader
        self._writer = writer
        self.max_line_length = max_line_length
        self.read_timeout = read_timeout or None
        self._pushback = b""
        self._closed = False

    @property
    def peer(self) -> str:
        peername = self._writer.get_extra_info("peername")
        if isinstance(peername, tuple) and peername:
            return str(peername[0])
        return "unknown"

    async def _read(self, size: int) -> bytes:
        if self._pushback:
            data, self._pushback = self._pushback[:size], self._pushback[size:]
            return data
        try:
            if self.read_timeout:
                return await asyncio.wait_for(
                    self._reader.read(size), timeout=self.read_timeout
                )
            return await self._reader.read(size)
        except asyncio.TimeoutError as e:
            raise ConnectionClosedError(
                f"Read timed out after {self.read_timeout}s"
            ) from e
        except OSError as e:
            raise ConnectionClosedError(f"Read failed: {e}") from e

    async def read_line(self) -> Optional[bytes]:
        """
        Read one line, removing the trailing CR and/or LF.

        RFC 1179 says LF only, but CR and CR LF are accepted as well.
        Returns None at end of stream when nothing was read.
        """
        line = bytearray()
        while True:
            ch = await self._read(1)
            if not ch:
                return bytes(line) if line else None
            if ch == b"\n":
                return bytes(line)
            if ch == b"\r":
                following = await self._read(1)
                if following and following != b"\n":
                    self._pushback = following + self._pushback
                return bytes(line)
            if len(line) >= self.max_line_length:
                raise ProtocolError(
                    f"Line exceeds {self.max_line_length} bytes", bytes(line[:32])
                )
            line += ch

    async def read_byte(self) -> int:
        data = await self._read(1)
        if not data:
            raise ConnectionClosedError("Connection closed while waiting for status byte")
        return data[0]

    async def copy_exact(self, sink, count: int, chunk_size: int = 8192) -> int:
        """Copy exactly `count` bytes from the client into an open async sink."""
        remaining = count
        while remaining > 0:
            chunk = await self._read(min(chunk_size, remaining))
            if not chunk:
                raise ConnectionClosedError(
                    f"Connection closed with {remaining} of {count} bytes outstanding"
                )
            await sink.write(chunk)
            remaining -= len(chunk)
        return count

    async def _write(self, data: bytes) -> None:
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (OSError, RuntimeError) as e:
            raise ConnectionClosedError(f"Write failed: {e}") from e

    async def send_status(self, status: StatusCode) -> None:
        await self._write(bytes([int(status)]))

    async def send_raw_status(self, value: int) -> None:
        """Echo a client supplied status byte verbatim."""
        await self._write(bytes([value & 0xFF]))

    async def send_text(self, text: str) -> None:
        await self._write(text.encode("utf-8", errors="replace"))

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._writer.close()
            await self._writer.wait_closed()
        except OSError as e:
            logging.debug(f"Ignoring error while closing connection from {self.peer}: {e}")
