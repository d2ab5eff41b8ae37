"""Duplex text stream to an MPD server.

The session engine only needs four things from its transport: a way to open
it, notifications when it opens, receives data or closes, a way to drain the
newly received text and a way to send text. ``TcpTransport`` provides them
over an asyncio TCP stream.
"""

import asyncio
import codecs
import logging
from collections.abc import Callable
from contextlib import suppress
from typing import Protocol

from mpdctrl.api.protocol import MpdConnectionError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 6600
CONNECT_TIMEOUT = 5.0

# Type aliases for transport notifications
OpenHandler = Callable[[], None]
MessageHandler = Callable[[], None]
CloseHandler = Callable[[], None]


class Transport(Protocol):
    """What the session requires from a line-oriented duplex stream."""

    @property
    def is_open(self) -> bool: ...

    def set_event_handlers(
        self,
        on_open: OpenHandler | None = None,
        on_message: MessageHandler | None = None,
        on_close: CloseHandler | None = None,
    ) -> None: ...

    async def open(self) -> None: ...

    def receive_text(self) -> str: ...

    def send(self, text: str) -> None: ...

    async def close(self) -> None: ...


class TcpTransport:
    """Asyncio TCP transport for the MPD text protocol.

    Bytes are decoded with an incremental UTF-8 decoder, so a multi-byte
    character split across two reads is delivered intact.

    Example:
        transport = TcpTransport("192.168.1.100")
        transport.set_event_handlers(on_message=lambda: print(transport.receive_text()))
        await transport.open()
    """

    _READ_CHUNK_SIZE: int = 4096

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        timeout: float = CONNECT_TIMEOUT,
    ) -> None:
        """Initialize the transport.

        Args:
            host: MPD server hostname or IP.
            port: MPD server port.
            timeout: Connection timeout in seconds.
        """
        self._host = host
        self._port = port
        self._timeout = timeout
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._receive_task: asyncio.Task[None] | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._received: list[str] = []

        self._on_open: OpenHandler | None = None
        self._on_message: MessageHandler | None = None
        self._on_close: CloseHandler | None = None

    @property
    def host(self) -> str:
        """Return server host."""
        return self._host

    @property
    def port(self) -> int:
        """Return server port."""
        return self._port

    @property
    def is_open(self) -> bool:
        """Return True while the stream is usable."""
        return self._writer is not None and not self._writer.is_closing()

    def set_event_handlers(
        self,
        on_open: OpenHandler | None = None,
        on_message: MessageHandler | None = None,
        on_close: CloseHandler | None = None,
    ) -> None:
        """Set notification handlers.

        Args:
            on_open: Called once the connection is established.
            on_message: Called whenever new text can be drained.
            on_close: Called once when the connection ends.
        """
        self._on_open = on_open
        self._on_message = on_message
        self._on_close = on_close

    async def open(self) -> None:
        """Connect to the server and start receiving.

        Raises:
            MpdConnectionError: If the connection fails or times out.
        """
        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._timeout,
            )
        except TimeoutError as e:
            raise MpdConnectionError(f"Connection to {self._host}:{self._port} timed out") from e
        except OSError as e:
            raise MpdConnectionError(f"Failed to connect to {self._host}:{self._port}: {e}") from e

        logger.info("Connected to %s:%d", self._host, self._port)
        self._decoder.reset()
        self._received.clear()
        self._receive_task = asyncio.create_task(self._receive_loop())
        if self._on_open:
            self._on_open()

    def receive_text(self) -> str:
        """Return and forget all text received since the last call."""
        text = "".join(self._received)
        self._received.clear()
        return text

    def send(self, text: str) -> None:
        """Queue text for sending.

        Raises:
            MpdConnectionError: If the transport is not open.
        """
        if not self._writer or self._writer.is_closing():
            raise MpdConnectionError("Not connected")
        self._writer.write(text.encode("utf-8"))

    async def close(self) -> None:
        """Close the connection without emitting a close notification."""
        task = self._receive_task
        self._receive_task = None
        if task:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        await self._close_writer()

    async def _close_writer(self) -> None:
        if self._writer:
            try:
                self._writer.close()
                await asyncio.wait_for(self._writer.wait_closed(), timeout=1.0)
            except (OSError, TimeoutError, asyncio.CancelledError) as e:
                logger.debug("Expected error during disconnect: %s", e)
            finally:
                self._writer = None
                self._reader = None
                logger.info("Disconnected from %s:%d", self._host, self._port)

    async def _receive_loop(self) -> None:
        """Background task delivering received text until EOF."""
        if self._reader is None:
            return

        try:
            while True:
                chunk = await self._reader.read(self._READ_CHUNK_SIZE)
                if not chunk:
                    break
                text = self._decoder.decode(chunk)
                if text:
                    self._received.append(text)
                    if self._on_message:
                        self._on_message()
        except asyncio.CancelledError:
            raise
        except OSError as e:
            logger.warning("Connection to %s:%d lost: %s", self._host, self._port, e)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected error handling data from %s:%d", self._host, self._port)

        self._receive_task = None
        await self._close_writer()
        if self._on_close:
            self._on_close()
