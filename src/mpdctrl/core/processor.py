"""Response interpretation state machine.

MPD answers every request in order and never says which request a response
belongs to, so the client must know what it is waiting for. The processor
holds exactly one expectation at a time (its state plus the continuation to
run once the response is complete) and interprets the pending lines
accordingly.

States:
    DISCONNECTED: ignore everything.
    AWAITING_GREETING: the "OK MPD <version>" banner.
    AWAITING_LIST: a key/value list terminated by "OK".
    AWAITING_STATUS: a "status" block terminated by "OK".
    IDLE: an "idle" response, i.e. "changed: <subsystem>" lines and "OK".
    AWAITING_REPLIES: one reply per command of a flushed command batch.
"""

import logging
from collections import deque
from collections.abc import Callable, Collection
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from mpdctrl.api.protocol import IDLE, NOIDLE, OK, is_ack, parse_ack, parse_greeting, split_pair
from mpdctrl.api.records import IDENTIFIER_KEYS, Record, parse_records, parse_status_block
from mpdctrl.core.events import (
    DatabaseChangingEvent,
    ErrorEvent,
    Event,
    EventDispatcher,
    StateChangedEvent,
)
from mpdctrl.models.status import StatusUpdate

logger = logging.getLogger(__name__)

ReplyConsumer = Callable[[list[Record]], None]


class ProcessorState(Enum):
    """What the processor is waiting for."""

    DISCONNECTED = auto()
    AWAITING_GREETING = auto()
    AWAITING_LIST = auto()
    AWAITING_STATUS = auto()
    AWAITING_REPLIES = auto()
    IDLE = auto()


@dataclass
class ReloadActions:
    """Data that must be fetched again after an idle change report."""

    everything: bool = False
    playlists: bool = False
    queue: bool = False
    status: bool = False

    def merge(self, other: "ReloadActions") -> "ReloadActions":
        """Return the union of two action sets."""
        return ReloadActions(
            everything=self.everything or other.everything,
            playlists=self.playlists or other.playlists,
            queue=self.queue or other.queue,
            status=self.status or other.status,
        )


# Idle subsystem name -> ReloadActions field. "update" only raises
# DatabaseChanging; sticker, subscription and message need nothing.
SUBSYSTEM_ACTIONS: dict[str, str | None] = {
    "database": "everything",
    "stored_playlist": "playlists",
    "playlist": "queue",
    "player": "status",
    "mixer": "status",
    "output": "status",
    "options": "status",
    "update": None,
    "sticker": None,
    "subscription": None,
    "message": None,
}


class ResponseProcessor:
    """Interprets pending response lines according to the current state.

    Example:
        processor = ResponseProcessor(dispatcher, transport.send)
        processor.expect_greeting(on_greeting)
        processor.process(buffer.lines)
    """

    def __init__(self, dispatcher: EventDispatcher, send: Callable[[str], None]) -> None:
        """Initialize the processor.

        Args:
            dispatcher: Receives Error, StateChanged and list change events.
            send: Writes raw text to the server.
        """
        self._dispatcher = dispatcher
        self._send = send
        self._state = ProcessorState.DISCONNECTED
        self._processing = False

        # Continuation of the current state
        self._on_greeting: Callable[[str], None] | None = None
        self._on_done: Callable[[Any], None] | None = None
        self._event: Callable[[Any], Event] | None = None
        self._transform: Callable[[list[Record]], Any] | None = None
        self._raw_keys: Collection[str] = IDENTIFIER_KEYS
        self._replies: deque[ReplyConsumer | None] = deque()

        # Reply consumers of a flushed batch, picked up when idle ends
        self.post_idle: tuple[ReplyConsumer | None, ...] | None = None
        # Reload actions reported while a batch was in flight
        self.deferred_actions: ReloadActions | None = None

        # Hooks set by the session
        self.on_changes: Callable[[ReloadActions], None] | None = None
        self.on_quiescent: Callable[[], None] | None = None

    @property
    def state(self) -> ProcessorState:
        """Return the current state."""
        return self._state

    @property
    def is_quiescent(self) -> bool:
        """Return True if idling with no batch or reload outstanding."""
        return (
            self._state is ProcessorState.IDLE
            and self.post_idle is None
            and self.deferred_actions is None
        )

    # -- transitions ----------------------------------------------------------

    def _transition(
        self,
        state: ProcessorState,
        *,
        on_greeting: Callable[[str], None] | None = None,
        on_done: Callable[[Any], None] | None = None,
        event: Callable[[Any], Event] | None = None,
        transform: Callable[[list[Record]], Any] | None = None,
        raw_keys: Collection[str] = IDENTIFIER_KEYS,
        replies: tuple[ReplyConsumer | None, ...] = (),
    ) -> None:
        """Replace the current expectation."""
        logger.debug("Processor %s -> %s", self._state.name, state.name)
        self._state = state
        self._on_greeting = on_greeting
        self._on_done = on_done
        self._event = event
        self._transform = transform
        self._raw_keys = raw_keys
        self._replies = deque(replies)

    def expect_greeting(self, on_greeting: Callable[[str], None]) -> None:
        """Wait for the connection banner; on_greeting gets the version."""
        self.post_idle = None
        self.deferred_actions = None
        self._transition(ProcessorState.AWAITING_GREETING, on_greeting=on_greeting)

    def expect_list(
        self,
        on_done: Callable[[Any], None],
        event: Callable[[Any], Event] | None = None,
        transform: Callable[[list[Record]], Any] | None = None,
        raw_keys: Collection[str] = IDENTIFIER_KEYS,
    ) -> None:
        """Wait for a record list.

        Args:
            on_done: Called with the (transformed) records.
            event: Builds the change event to dispatch before on_done.
            transform: Converts the records before they are handed on.
            raw_keys: Keys whose values must not be coerced.
        """
        self._transition(
            ProcessorState.AWAITING_LIST,
            on_done=on_done,
            event=event,
            transform=transform,
            raw_keys=raw_keys,
        )

    def expect_status(self, on_done: Callable[[Any], None]) -> None:
        """Wait for a status block; StateChanged is dispatched before on_done."""
        self._transition(ProcessorState.AWAITING_STATUS, on_done=on_done)

    def resume_idle(self) -> None:
        """Send "idle" and wait for change reports."""
        self._transition(ProcessorState.IDLE)
        self._send(f"{IDLE}\n")
        self._notify_quiescent()

    def reset(self) -> None:
        """Drop every expectation; later lines are ignored."""
        self.post_idle = None
        self.deferred_actions = None
        self._transition(ProcessorState.DISCONNECTED)

    def _notify_quiescent(self) -> None:
        if self.is_quiescent and self.on_quiescent:
            self.on_quiescent()

    # -- processing -----------------------------------------------------------

    def process(self, lines: list[str]) -> None:
        """Consume as many complete responses from lines as possible.

        Lines belonging to an incomplete response are left in place. A call
        made while a response is being handled returns at once; the outer
        call keeps going over the same list.

        Args:
            lines: Pending lines; consumed lines are removed in place.
        """
        if self._processing:
            return
        self._processing = True
        try:
            while lines and self._step(lines):
                pass
        finally:
            self._processing = False

    def _step(self, lines: list[str]) -> bool:
        match self._state:
            case ProcessorState.AWAITING_GREETING:
                return self._handle_greeting(lines)
            case ProcessorState.AWAITING_LIST:
                return self._handle_list(lines)
            case ProcessorState.AWAITING_STATUS:
                return self._handle_status(lines)
            case ProcessorState.IDLE:
                return self._handle_idle(lines)
            case ProcessorState.AWAITING_REPLIES:
                return self._handle_reply(lines)
            case _:
                lines.clear()
                return False

    def _take_block(self, lines: list[str]) -> list[str] | None:
        """Remove and return the lines before the next "OK".

        ACK lines met on the way are reported and dropped. Returns None,
        leaving the data lines in place, if "OK" has not arrived yet.
        """
        i = 0
        while i < len(lines):
            line = lines[i]
            if line == OK:
                block = lines[:i]
                del lines[: i + 1]
                return block
            if is_ack(line):
                del lines[i]
                self._report_ack(line)
                continue
            i += 1
        return None

    def _report_ack(self, line: str) -> None:
        logger.error("Server error: %s", line)
        self._dispatcher.dispatch(ErrorEvent(message=line, error=parse_ack(line)))

    def _handle_greeting(self, lines: list[str]) -> bool:
        line = lines.pop(0)
        if not line.startswith("OK"):
            logger.warning("Unexpected greeting: %s", line)
        on_greeting = self._on_greeting
        if on_greeting:
            on_greeting(parse_greeting(line))
        return True

    def _handle_list(self, lines: list[str]) -> bool:
        block = self._take_block(lines)
        if block is None:
            return False
        records = parse_records(block, self._raw_keys)
        result = self._transform(records) if self._transform else records
        on_done, event = self._on_done, self._event
        if event:
            self._dispatcher.dispatch(event(result))
        if on_done:
            on_done(result)
        return True

    def _handle_status(self, lines: list[str]) -> bool:
        block = self._take_block(lines)
        if block is None:
            return False
        on_done = self._on_done
        status = StatusUpdate.from_status(parse_status_block(block))
        self._dispatcher.dispatch(StateChangedEvent(status=status))
        if on_done:
            on_done(status)
        return True

    def _handle_idle(self, lines: list[str]) -> bool:
        block = self._take_block(lines)
        if block is None:
            return False

        actions = self._fold_changes(block) if block else None
        if actions is not None and self.deferred_actions is not None:
            actions = self.deferred_actions.merge(actions)
        elif actions is None:
            actions = self.deferred_actions

        if self.post_idle is not None:
            # Idle ended (by our noidle or by a change report); the batch
            # replies follow and the changes wait until they are read.
            self.deferred_actions = actions
            replies = self.post_idle
            self.post_idle = None
            self._transition(ProcessorState.AWAITING_REPLIES, replies=replies)
            return True

        self.deferred_actions = None
        if actions is not None:
            if self.on_changes:
                self.on_changes(actions)
            else:
                self.resume_idle()
        return True

    def _fold_changes(self, block: list[str]) -> ReloadActions:
        actions = ReloadActions()
        for line in block:
            _, subsystem = split_pair(line)
            field_name = SUBSYSTEM_ACTIONS.get(subsystem)
            if subsystem == "update":
                self._dispatcher.dispatch(DatabaseChangingEvent())
            elif subsystem not in SUBSYSTEM_ACTIONS:
                logger.debug("Ignoring change in unknown subsystem %r", subsystem)
            if field_name:
                setattr(actions, field_name, True)
        return actions

    def _handle_reply(self, lines: list[str]) -> bool:
        for i, line in enumerate(lines):
            if line == OK or is_ack(line):
                break
        else:
            return False

        block = lines[:i]
        del lines[: i + 1]
        consumer = self._replies.popleft() if self._replies else None
        if is_ack(line):
            self._report_ack(line)
        elif consumer:
            try:
                consumer(parse_records(block))
            except Exception as e:  # noqa: BLE001
                logger.warning("Reply consumer failed: %s", e)
                self._dispatcher.dispatch(ErrorEvent(message=str(e), error=e))

        if not self._replies:
            self._finish_replies()
        return True

    def _finish_replies(self) -> None:
        self._transition(ProcessorState.IDLE)
        if self.deferred_actions is not None:
            # The batch ended with "idle"; leave it to run the reloads.
            self._send(f"{NOIDLE}\n")
        else:
            self._notify_quiescent()
