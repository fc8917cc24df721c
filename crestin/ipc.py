"""IPC client: command/response correlation and event dispatch over the
player's control socket."""
import asyncio
import itertools
import logging
from typing import Any, Optional

from .config import COMMAND_TIMEOUT, QUIT_TIMEOUT
from .errors import CommandError, CommandTimeout, CrestinError, Disconnected
from .events import Notifier
from .protocol import (
    CommandResponse,
    LineBuffer,
    PropertyChange,
    ServerEvent,
    decode_message,
    encode_command,
)

logger = logging.getLogger(__name__)

# property name -> notification emitted for it
_PROPERTY_EVENTS = {
    "pause": "pause-changed",
    "volume": "volume-changed",
    "duration": "duration-changed",
    "time-pos": "position-changed",
}

_READ_CHUNK = 65536


class IPCClient:
    def __init__(self, timeout: float = COMMAND_TIMEOUT):
        self.timeout = timeout
        self.notifier = Notifier()
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        self._ids = itertools.count(1)
        self._pending: dict[int, asyncio.Future] = {}
        self._buffer = LineBuffer()
        self._closed = True

    @property
    def connected(self) -> bool:
        return self._writer is not None and not self._closed

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ── Connection ─────────────────────────────────────────────────────────────

    async def connect(self, socket_path: str):
        self._reader, self._writer = await asyncio.open_unix_connection(socket_path)
        self._closed = False
        self._read_task = asyncio.create_task(self._read_loop())
        logger.info("Connected to control socket %s", socket_path)

    async def close(self):
        """Close the socket. Pending commands fail with Disconnected. Idempotent."""
        if self._read_task and not self._read_task.done():
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
        self._read_task = None
        await self._shutdown_transport()
        self._on_disconnect()

    async def _shutdown_transport(self):
        writer = self._writer
        self._writer = None
        self._reader = None
        if writer:
            try:
                writer.close()
                await writer.wait_closed()
            except (OSError, ConnectionError):
                pass

    def _on_disconnect(self):
        if self._closed:
            return
        self._closed = True
        for request_id in list(self._pending):
            fut = self._pending.pop(request_id)
            if not fut.done():
                fut.set_exception(Disconnected("Control socket closed"))
        logger.info("Control socket disconnected")
        self.notifier.emit("disconnected")

    # ── Outbound ───────────────────────────────────────────────────────────────

    async def send_command(self, command: list, timeout: Optional[float] = None) -> Any:
        """Send command and wait for its response.

        Returns the response data on success. Raises CommandError when the
        player reports a failure, CommandTimeout when no response arrives in
        time (a late response is then ignored), Disconnected when the socket
        is or becomes closed.
        """
        if not self.connected:
            raise Disconnected("Control socket not connected")
        timeout = self.timeout if timeout is None else timeout

        request_id = next(self._ids)
        fut = asyncio.get_running_loop().create_future()
        self._pending[request_id] = fut
        try:
            await self._write(encode_command(command, request_id))
            try:
                response: CommandResponse = await asyncio.wait_for(fut, timeout)
            except asyncio.TimeoutError:
                raise CommandTimeout(command, timeout) from None
        finally:
            # Exactly-once removal
            self._pending.pop(request_id, None)

        if not response.ok:
            raise CommandError(command, response.error)
        return response.data

    async def observe_property(self, name: str) -> int:
        """Register a property observation. Fire-and-forget: no reply is awaited."""
        if not self.connected:
            raise Disconnected("Control socket not connected")
        observe_id = next(self._ids)
        await self._write(encode_command(["observe_property", observe_id, name], observe_id))
        return observe_id

    async def request_quit(self):
        """Best-effort quit request; never raises."""
        if not self.connected:
            return
        try:
            await self.send_command(["quit"], timeout=QUIT_TIMEOUT)
        except CrestinError as e:
            logger.debug("Quit request not confirmed: %s", e)

    async def _write(self, data: bytes):
        logger.debug("→ %s", data.rstrip())
        try:
            self._writer.write(data)
            await self._writer.drain()
        except (OSError, ConnectionError) as e:
            raise Disconnected(f"Control socket write failed: {e}") from e

    # ── Inbound ────────────────────────────────────────────────────────────────

    async def _read_loop(self):
        """Single consumer: owns buffering and line splitting."""
        try:
            while True:
                chunk = await self._reader.read(_READ_CHUNK)
                if not chunk:
                    break  # EOF, player closed the socket
                for line in self._buffer.feed(chunk):
                    self.handle_line(line)
        except asyncio.CancelledError:
            raise
        except (OSError, ConnectionError) as e:
            logger.debug("IPC reader ended: %s", e)
        await self._shutdown_transport()
        self._on_disconnect()

    def handle_line(self, line: bytes):
        message = decode_message(line)
        if message is None:
            logger.debug("Dropped unparseable line: %r", line[:200])
            return
        logger.debug("← %s", message)

        if isinstance(message, CommandResponse):
            fut = self._pending.get(message.request_id)
            if fut is not None and not fut.done():
                fut.set_result(message)
        elif isinstance(message, PropertyChange):
            event = _PROPERTY_EVENTS.get(message.name)
            if event:
                self.notifier.emit(event, message.data)
        elif isinstance(message, ServerEvent):
            self.notifier.emit("event", message)
