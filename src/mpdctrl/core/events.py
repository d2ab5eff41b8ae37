"""Typed session events and their dispatcher.

Every event kind has its own payload type. Listeners are registered per kind;
one internal listener per kind runs first so the session state is already
consistent when application code sees the event.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from mpdctrl.models.playlist import Playlist
from mpdctrl.models.session_state import SessionState
from mpdctrl.models.song import QueueSong, Song
from mpdctrl.models.status import StatusUpdate

logger = logging.getLogger(__name__)


class EventKind(Enum):
    """Recognized event names."""

    CONNECT = "Connect"
    DISCONNECT = "Disconnect"
    ERROR = "Error"
    EVENT = "Event"
    UNHANDLED_EVENT = "UnhandledEvent"
    DATABASE_CHANGING = "DatabaseChanging"
    DATA_LOADED = "DataLoaded"
    STATE_CHANGED = "StateChanged"
    QUEUE_CHANGED = "QueueChanged"
    PLAYLISTS_CHANGED = "PlaylistsChanged"
    PLAYLIST_CHANGED = "PlaylistChanged"

    @classmethod
    def from_name(cls, name: "EventKind | str") -> "EventKind":
        """Resolve an event name.

        Raises:
            ValueError: If the name is not a recognized event.
        """
        if isinstance(name, EventKind):
            return name
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"'{name}' is not a supported event") from None


@dataclass(frozen=True, slots=True)
class ConnectEvent:
    """The transport connected."""

    kind: ClassVar[EventKind] = EventKind.CONNECT


@dataclass(frozen=True, slots=True)
class DisconnectEvent:
    """The transport closed."""

    kind: ClassVar[EventKind] = EventKind.DISCONNECT


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """A server error line or a failing listener.

    Attributes:
        message: The raw ACK line, or the exception text.
        error: Parsed MpdError or the exception raised by a listener.
    """

    message: str
    error: Exception | None = None

    kind: ClassVar[EventKind] = EventKind.ERROR


@dataclass(frozen=True, slots=True)
class DatabaseChangingEvent:
    """A database update started or finished."""

    kind: ClassVar[EventKind] = EventKind.DATABASE_CHANGING


@dataclass(frozen=True, slots=True)
class DataLoadedEvent:
    """The full load after connecting (or a database change) completed.

    Attributes:
        state: Snapshot of the session state.
    """

    state: SessionState

    kind: ClassVar[EventKind] = EventKind.DATA_LOADED


@dataclass(frozen=True, slots=True)
class StateChangedEvent:
    """New player status."""

    status: StatusUpdate

    kind: ClassVar[EventKind] = EventKind.STATE_CHANGED


@dataclass(frozen=True, slots=True)
class QueueChangedEvent:
    """The queue was reloaded."""

    queue: list[QueueSong]

    kind: ClassVar[EventKind] = EventKind.QUEUE_CHANGED


@dataclass(frozen=True, slots=True)
class PlaylistsChangedEvent:
    """The list of stored playlists was reloaded; contents are not loaded yet."""

    playlists: list[Playlist]

    kind: ClassVar[EventKind] = EventKind.PLAYLISTS_CHANGED


@dataclass(frozen=True, slots=True)
class PlaylistChangedEvent:
    """The contents of one stored playlist were loaded.

    Attributes:
        index: Index into the session's playlists.
        songs: Playlist contents.
    """

    index: int
    songs: list[Song]

    kind: ClassVar[EventKind] = EventKind.PLAYLIST_CHANGED


@dataclass(frozen=True, slots=True)
class GenericEvent:
    """Any event, re-fired to "Event" listeners.

    Attributes:
        event: The original event; ``event.kind`` is its type tag.
    """

    event: Any

    kind: ClassVar[EventKind] = EventKind.EVENT

    @property
    def type(self) -> EventKind:
        """Return the kind of the wrapped event."""
        return self.event.kind


@dataclass(frozen=True, slots=True)
class UnhandledEvent:
    """An event nobody listens to."""

    event: Any

    kind: ClassVar[EventKind] = EventKind.UNHANDLED_EVENT


Event = (
    ConnectEvent
    | DisconnectEvent
    | ErrorEvent
    | DatabaseChangingEvent
    | DataLoadedEvent
    | StateChangedEvent
    | QueueChangedEvent
    | PlaylistsChangedEvent
    | PlaylistChangedEvent
    | GenericEvent
    | UnhandledEvent
)

Listener = Callable[[Any], None]

# Kinds that are not re-fired as GenericEvent
_WRAPPER_KINDS = frozenset({EventKind.EVENT, EventKind.UNHANDLED_EVENT})


class EventDispatcher:
    """Delivers events to listeners, isolating listener failures.

    Example:
        dispatcher = EventDispatcher()
        dispatcher.on("QueueChanged", lambda event: print(len(event.queue)))
        dispatcher.dispatch(QueueChangedEvent(queue=[]))
    """

    def __init__(self) -> None:
        self._listeners: dict[EventKind, list[Listener]] = {kind: [] for kind in EventKind}
        self._internal: dict[EventKind, Listener] = {}
        self._reporting = False

    def on(self, kind: EventKind | str, listener: Listener) -> None:
        """Register a listener.

        Args:
            kind: Event kind or its name (e.g. "StateChanged").
            listener: Called with the event payload.

        Raises:
            ValueError: If the event name is not recognized.
        """
        self._listeners[EventKind.from_name(kind)].append(listener)

    def off(self, kind: EventKind | str, listener: Listener) -> bool:
        """Unregister a listener.

        Returns:
            True if the listener was registered.
        """
        listeners = self._listeners[EventKind.from_name(kind)]
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def set_internal(self, kind: EventKind, listener: Listener | None) -> None:
        """Set (or clear) the internal listener that runs before all others."""
        if listener is None:
            self._internal.pop(kind, None)
        else:
            self._internal[kind] = listener

    def has_listeners(self, kind: EventKind) -> bool:
        """Return True if application listeners exist for the kind."""
        return bool(self._listeners[kind])

    def dispatch(self, event: Event) -> None:
        """Deliver an event.

        The internal listener runs first and may raise. Application listeners
        run in registration order; an exception in one is reported as an
        Error event and the rest still run. Without application listeners
        the event goes to "UnhandledEvent" listeners instead. Finally every
        event other than the wrapper kinds is re-fired to "Event" listeners.
        """
        kind = event.kind
        internal = self._internal.get(kind)
        if internal:
            internal(event)

        if self._listeners[kind]:
            self._call_listeners(kind, event)
        elif kind not in _WRAPPER_KINDS:
            self._call_listeners(EventKind.UNHANDLED_EVENT, UnhandledEvent(event))

        if kind not in _WRAPPER_KINDS:
            self._call_listeners(EventKind.EVENT, GenericEvent(event))

    def _call_listeners(self, kind: EventKind, event: Event) -> None:
        # Copy: a listener may register or remove listeners while we iterate.
        for listener in list(self._listeners[kind]):
            try:
                listener(event)
            except Exception as e:  # noqa: BLE001
                if kind is EventKind.ERROR or self._reporting:
                    logger.exception("Listener for %s failed while reporting an error", kind.value)
                    continue
                logger.warning("Listener for %s failed: %s", kind.value, e)
                self._reporting = True
                try:
                    self.dispatch(ErrorEvent(message=str(e), error=e))
                finally:
                    self._reporting = False
