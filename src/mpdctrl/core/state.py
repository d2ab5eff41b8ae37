"""Qt bridge re-emitting session events as signals.

The StateStore subscribes to an MpdSession and emits Qt signals when the
mirrored state changes. UI widgets connect to these signals to update
themselves; the session itself stays free of Qt objects.
"""

import logging

from PySide6.QtCore import QObject, Signal

from mpdctrl.core.events import (
    ConnectEvent,
    DatabaseChangingEvent,
    DataLoadedEvent,
    DisconnectEvent,
    ErrorEvent,
    EventKind,
    Listener,
    PlaylistChangedEvent,
    PlaylistsChangedEvent,
    QueueChangedEvent,
    StateChangedEvent,
)
from mpdctrl.core.session import MpdSession
from mpdctrl.models.playlist import Playlist
from mpdctrl.models.song import QueueSong
from mpdctrl.models.status import StatusUpdate

logger = logging.getLogger(__name__)


class StateStore(QObject):
    """Session events as Qt signals.

    Example:
        store = StateStore()
        store.attach(session)
        store.queue_changed.connect(lambda queue: print(f"{len(queue)} songs queued"))
    """

    # Connection state signals
    connection_changed = Signal(bool)  # True=connected, False=disconnected

    # Data change signals
    # Note: Using object for complex types (PySide6 limitation)
    state_changed = Signal(object)  # StatusUpdate
    queue_changed = Signal(object)  # list[QueueSong]
    playlists_changed = Signal(object)  # list[Playlist]
    playlist_changed = Signal(int, object)  # index, list[Song]
    data_loaded = Signal(object)  # SessionState snapshot
    database_changing = Signal()

    # Error signal
    error_occurred = Signal(str)

    def __init__(self) -> None:
        """Initialize the store, detached."""
        super().__init__()
        self._session: MpdSession | None = None
        self._listeners: list[tuple[EventKind, Listener]] = []
        self._connected = False
        self._status: StatusUpdate | None = None
        self._queue: list[QueueSong] = []
        self._playlists: list[Playlist] = []

    @property
    def is_connected(self) -> bool:
        """Return True if the attached session is connected."""
        return self._connected

    @property
    def status(self) -> StatusUpdate | None:
        """Return the last status, or None before the first one."""
        return self._status

    @property
    def queue(self) -> list[QueueSong]:
        """Return the last queue seen."""
        return self._queue

    @property
    def playlists(self) -> list[Playlist]:
        """Return the last playlist list seen."""
        return self._playlists

    def attach(self, session: MpdSession) -> None:
        """Start mirroring a session, detaching from any previous one."""
        self.detach()
        self._session = session
        self._listen(EventKind.CONNECT, self._on_connect)
        self._listen(EventKind.DISCONNECT, self._on_disconnect)
        self._listen(EventKind.STATE_CHANGED, self._on_state_changed)
        self._listen(EventKind.QUEUE_CHANGED, self._on_queue_changed)
        self._listen(EventKind.PLAYLISTS_CHANGED, self._on_playlists_changed)
        self._listen(EventKind.PLAYLIST_CHANGED, self._on_playlist_changed)
        self._listen(EventKind.DATA_LOADED, self._on_data_loaded)
        self._listen(EventKind.DATABASE_CHANGING, self._on_database_changing)
        self._listen(EventKind.ERROR, self._on_error)
        logger.debug("StateStore attached to %s:%d", session.config.host, session.config.port)

    def detach(self) -> None:
        """Stop mirroring the current session."""
        if self._session is None:
            return
        for kind, listener in self._listeners:
            self._session.off(kind, listener)
        self._listeners.clear()
        self._session = None

    def _listen(self, kind: EventKind, listener: Listener) -> None:
        assert self._session is not None
        self._session.on(kind, listener)
        self._listeners.append((kind, listener))

    def _on_connect(self, _: ConnectEvent) -> None:
        if not self._connected:
            self._connected = True
            self.connection_changed.emit(True)

    def _on_disconnect(self, _: DisconnectEvent) -> None:
        if self._connected:
            self._connected = False
            self.connection_changed.emit(False)

    def _on_state_changed(self, event: StateChangedEvent) -> None:
        # Status arrives after every player/mixer/options change; skip repeats.
        if event.status == self._status:
            return
        self._status = event.status
        self.state_changed.emit(event.status)

    def _on_queue_changed(self, event: QueueChangedEvent) -> None:
        self._queue = list(event.queue)
        self.queue_changed.emit(self._queue)

    def _on_playlists_changed(self, event: PlaylistsChangedEvent) -> None:
        self._playlists = list(event.playlists)
        self.playlists_changed.emit(self._playlists)

    def _on_playlist_changed(self, event: PlaylistChangedEvent) -> None:
        self.playlist_changed.emit(event.index, event.songs)

    def _on_data_loaded(self, event: DataLoadedEvent) -> None:
        self.data_loaded.emit(event.state)

    def _on_database_changing(self, _: DatabaseChangingEvent) -> None:
        self.database_changing.emit()

    def _on_error(self, event: ErrorEvent) -> None:
        self.error_occurred.emit(event.message)
