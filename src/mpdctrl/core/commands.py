"""Idle/command cycle control.

While the connection idles, MPD accepts nothing but "noidle". Every command
therefore has to be wrapped as "noidle", the command, "idle". Commands issued
in quick succession are coalesced so a burst costs one round trip.
"""

import asyncio
import logging
from collections.abc import Callable

from mpdctrl.api.protocol import IDLE, NOIDLE
from mpdctrl.core.processor import ReplyConsumer, ResponseProcessor

logger = logging.getLogger(__name__)

BATCH_DELAY = 0.05  # seconds


class CommandBatcher:
    """Debounces commands into one leave-idle/commands/enter-idle write.

    The first command starts the timer; commands issued before it fires join
    the same batch. A batch is only written while the processor idles with
    nothing outstanding; otherwise it is held until the processor reports
    that it is quiescent again.

    Example:
        batcher = CommandBatcher(processor, transport.send)
        batcher.issue("play")
        batcher.issue("setvol 42")
        # 50 ms later: "noidle\\nplay\\nsetvol 42\\nidle\\n"
    """

    def __init__(
        self,
        processor: ResponseProcessor,
        send: Callable[[str], None],
        delay: float = BATCH_DELAY,
    ) -> None:
        """Initialize the batcher.

        Args:
            processor: Tells whether a batch may be written and reads its replies.
            send: Writes raw text to the server.
            delay: Debounce window in seconds.
        """
        self._processor = processor
        self._send = send
        self._delay = delay
        self._batch: list[tuple[str, ReplyConsumer | None]] = []
        self._timer: asyncio.TimerHandle | None = None
        self._held = False

    @property
    def pending(self) -> list[str]:
        """Return the commands waiting to be written."""
        return [command for command, _ in self._batch]

    def issue(self, command: str, consumer: ReplyConsumer | None = None) -> None:
        """Add a command to the current batch.

        Args:
            command: One command line without newline.
            consumer: Receives the command's reply records, if wanted.
        """
        self._batch.append((command, consumer))
        if self._timer is None and not self._held:
            self._timer = asyncio.get_running_loop().call_later(self._delay, self._on_timer)

    def resume(self) -> None:
        """Write a held batch; called when the processor becomes quiescent."""
        if self._held and self._batch:
            self._held = False
            self._flush()

    def cancel(self) -> None:
        """Discard the pending batch and stop the timer."""
        if self._timer:
            self._timer.cancel()
            self._timer = None
        if self._batch:
            logger.warning("Discarding %d unsent command(s)", len(self._batch))
        self._batch.clear()
        self._held = False

    def _on_timer(self) -> None:
        self._timer = None
        if not self._batch:
            return
        if self._processor.is_quiescent:
            self._flush()
        else:
            logger.debug("Holding %d command(s) until idle", len(self._batch))
            self._held = True

    def _flush(self) -> None:
        batch, self._batch = self._batch, []
        commands = "".join(f"{command}\n" for command, _ in batch)
        self._processor.post_idle = tuple(consumer for _, consumer in batch)
        self._send(f"{NOIDLE}\n{commands}{IDLE}\n")
