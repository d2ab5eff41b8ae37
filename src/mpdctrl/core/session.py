"""Stateful MPD session.

The session owns one connection, mirrors the server state and exposes the
MPD controls. All work happens on the asyncio event loop: transport
notifications feed the line buffer and the response processor, commands go
through the command batcher, and changes reach application code as events.

Example:
    async with MpdSession(SessionConfig(host="192.168.1.100")) as session:
        session.on("StateChanged", lambda event: print(event.status.playstate))
        session.on("DataLoaded", lambda event: session.play())
        await asyncio.Event().wait()
"""

import asyncio
import copy
import logging
import math
import time
from collections.abc import Callable, Mapping
from typing import Any, Self

from mpdctrl.api.lines import LineBuffer
from mpdctrl.api.protocol import MpdConnectionError, format_command
from mpdctrl.api.records import Record
from mpdctrl.api.transport import TcpTransport, Transport
from mpdctrl.core.commands import CommandBatcher
from mpdctrl.core.config import SessionConfig
from mpdctrl.core.events import (
    ConnectEvent,
    DisconnectEvent,
    ErrorEvent,
    EventDispatcher,
    EventKind,
    Listener,
    PlaylistChangedEvent,
    PlaylistsChangedEvent,
    QueueChangedEvent,
    StateChangedEvent,
)
from mpdctrl.core.loader import CascadingLoader, build_songs
from mpdctrl.core.processor import ProcessorState, ReplyConsumer, ResponseProcessor
from mpdctrl.models.playlist import Playlist
from mpdctrl.models.session_state import SessionState
from mpdctrl.models.song import QueueSong, Song

logger = logging.getLogger(__name__)

TransportFactory = Callable[[SessionConfig], Transport]


def _tcp_transport(config: SessionConfig) -> Transport:
    return TcpTransport(config.host, config.port, config.connect_timeout)


def volume_to_percent(volume: float) -> int:
    """Scale a 0.0-1.0 volume to MPD's 0-100, clamping and rounding half up."""
    volume = max(0.0, min(1.0, volume))
    return math.floor(volume * 100 + 0.5)


class MpdSession:
    """A connection to one MPD server with a local mirror of its state.

    Attributes:
        config: Connection and reconnect settings.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        """Initialize the session (no connection is made yet).

        Args:
            config: Session settings; defaults to localhost:6600.
            transport_factory: Creates the transport for each connection attempt.
            log: Logger receiving the session's messages.
        """
        self.config = config or SessionConfig()
        self._log = log or logger
        self._log_traffic = self.config.log_traffic
        self._transport_factory = transport_factory or _tcp_transport
        self._transport: Transport | None = None
        self._closing = False
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task[None] | None = None

        self._state = SessionState()
        self._buffer = LineBuffer()
        self._dispatcher = EventDispatcher()
        self._processor = ResponseProcessor(self._dispatcher, self._write)
        self._loader = CascadingLoader(self._processor, self._write, self._state, self._dispatcher)
        self._batcher = CommandBatcher(self._processor, self._write, self.config.batch_delay)
        self._processor.on_changes = self._loader.apply_changes
        self._processor.on_quiescent = self._batcher.resume

        self._dispatcher.set_internal(EventKind.CONNECT, self._on_connect)
        self._dispatcher.set_internal(EventKind.DISCONNECT, self._on_disconnect)
        self._dispatcher.set_internal(EventKind.STATE_CHANGED, self._on_state_changed)
        self._dispatcher.set_internal(EventKind.QUEUE_CHANGED, self._on_queue_changed)
        self._dispatcher.set_internal(EventKind.PLAYLISTS_CHANGED, self._on_playlists_changed)
        self._dispatcher.set_internal(EventKind.PLAYLIST_CHANGED, self._on_playlist_changed)

    # -- lifecycle ------------------------------------------------------------

    async def open(self) -> None:
        """Connect to the server; the full data load starts on the greeting.

        Raises:
            MpdConnectionError: If the connection fails.
        """
        self._closing = False
        self._cancel_reconnect()
        transport = self._transport_factory(self.config)
        transport.set_event_handlers(
            on_open=self._on_transport_open,
            on_message=self._on_transport_message,
            on_close=self._on_transport_close,
        )
        self._transport = transport
        try:
            await transport.open()
        except MpdConnectionError:
            self._transport = None
            raise

    async def close(self) -> None:
        """Disconnect for good: no reconnect, pending commands are dropped."""
        self._closing = True
        self._cancel_reconnect()
        self._batcher.cancel()
        transport = self._transport
        if transport is None:
            return
        await transport.close()
        if self._transport is transport:
            self._dispatcher.dispatch(DisconnectEvent())

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        await self.open()
        return self

    async def __aexit__(self, *_: object) -> None:
        """Async context manager exit."""
        await self.close()

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
        task = self._reconnect_task
        self._reconnect_task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _schedule_reconnect(self) -> None:
        delay = self.config.reconnect_delay
        if self._closing or not delay:
            return
        self._log.info("Reconnecting in %.1fs", delay)
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._start_reconnect)

    def _start_reconnect(self) -> None:
        self._reconnect_handle = None
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect())

    async def _reconnect(self) -> None:
        try:
            await self.open()
        except MpdConnectionError as e:
            self._log.warning("Reconnect failed: %s", e)
            self._dispatcher.dispatch(ErrorEvent(message=str(e), error=e))
            self._schedule_reconnect()

    # -- transport notifications ----------------------------------------------

    def _on_transport_open(self) -> None:
        self._dispatcher.dispatch(ConnectEvent())

    def _on_transport_message(self) -> None:
        if self._transport is None:
            return
        completed = self._buffer.feed(self._transport.receive_text())
        if self._log_traffic:
            for line in completed:
                self._log.debug("received: %r", line)
        self._processor.process(self._buffer.lines)

    def _on_transport_close(self) -> None:
        self._dispatcher.dispatch(DisconnectEvent())

    def _write(self, text: str) -> None:
        if self._transport is None:
            raise MpdConnectionError("Not connected")
        if self._log_traffic:
            self._log.debug("sending: %r", text)
        self._transport.send(text)

    # -- internal listeners ---------------------------------------------------

    def _on_connect(self, _: ConnectEvent) -> None:
        self._log.info("Connected to %s:%d", self.config.host, self.config.port)
        self._state.connected = True
        self._buffer.reset()
        self._processor.expect_greeting(self._on_greeting)

    def _on_greeting(self, version: str) -> None:
        self._log.info("MPD protocol version %s", version)
        self._state.version = version
        self._loader.load_everything()

    def _on_disconnect(self, _: DisconnectEvent) -> None:
        self._log.info("Disconnected from %s:%d", self.config.host, self.config.port)
        self._state.reset_connection()
        self._transport = None
        self._processor.reset()
        self._buffer.reset()
        self._batcher.cancel()
        self._schedule_reconnect()

    def _on_state_changed(self, event: StateChangedEvent) -> None:
        self._state.apply_status(event.status, time.monotonic())

    def _on_queue_changed(self, event: QueueChangedEvent) -> None:
        self._state.apply_queue(copy.deepcopy(event.queue))

    def _on_playlists_changed(self, event: PlaylistsChangedEvent) -> None:
        self._state.playlists = copy.deepcopy(event.playlists)

    def _on_playlist_changed(self, event: PlaylistChangedEvent) -> None:
        if 0 <= event.index < len(self._state.playlists):
            self._state.playlists[event.index].songs = copy.deepcopy(event.songs)

    # -- events ---------------------------------------------------------------

    def on(self, kind: EventKind | str, listener: Listener) -> None:
        """Register an event listener.

        Args:
            kind: Event kind or name, e.g. "StateChanged".
            listener: Called with the event payload.

        Raises:
            ValueError: If the event name is not recognized.
        """
        self._dispatcher.on(kind, listener)

    def off(self, kind: EventKind | str, listener: Listener) -> bool:
        """Unregister an event listener."""
        return self._dispatcher.off(kind, listener)

    # -- logging --------------------------------------------------------------

    @property
    def log_traffic(self) -> bool:
        """Return whether sent and received lines are logged."""
        return self._log_traffic

    def enable_logging(self) -> None:
        """Log every sent and received line at DEBUG level."""
        self._log_traffic = True

    def disable_logging(self) -> None:
        """Stop logging protocol traffic."""
        self._log_traffic = False

    # -- accessors ------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        """Return a copy of the mirrored state."""
        return copy.deepcopy(self._state)

    @property
    def processor_state(self) -> ProcessorState:
        """Return what the session is waiting for."""
        return self._processor.state

    @property
    def port(self) -> int:
        """Return the configured server port."""
        return self.config.port

    @property
    def version(self) -> str | None:
        """Return the protocol version from the greeting."""
        return self._state.version

    @property
    def is_connected(self) -> bool:
        """Return True while connected."""
        return self._state.connected

    @property
    def playstate(self) -> str | None:
        """Return "play", "pause" or "stop"."""
        return self._state.playstate

    @property
    def volume(self) -> float | None:
        """Return the volume 0.0-1.0."""
        return self._state.volume

    @property
    def is_repeat(self) -> bool:
        """Return True if repeat mode is on."""
        return self._state.repeat

    @property
    def is_single(self) -> bool:
        """Return True if single mode is on."""
        return self._state.single

    @property
    def is_consume(self) -> bool:
        """Return True if consume mode is on."""
        return self._state.consume

    @property
    def is_random(self) -> bool:
        """Return True if random mode is on."""
        return self._state.random

    @property
    def mix_ramp_threshold(self) -> float | None:
        """Return the MixRamp threshold in dB."""
        return self._state.mix_ramp_threshold

    @property
    def current_song(self) -> QueueSong | None:
        """Return a copy of the current song, if any."""
        return copy.deepcopy(self._state.song_at(self._state.current_song.queue_idx))

    @property
    def current_song_id(self) -> int | None:
        """Return the queue id of the current song."""
        return self._state.current_song.id

    @property
    def current_song_queue_index(self) -> int | None:
        """Return the queue position of the current song."""
        return self._state.current_song.queue_idx

    @property
    def current_song_time(self) -> float:
        """Return seconds played, extrapolated from the last status while playing."""
        song = self._state.song_at(self._state.current_song.queue_idx)
        if song is None:
            return 0.0
        elapsed = self._state.current_song.elapsed_time or 0.0
        if self._state.playstate == "play":
            elapsed += time.monotonic() - self._state.last_status_update
        if song.time is not None:
            elapsed = min(elapsed, song.time)
        return elapsed

    @property
    def next_song(self) -> QueueSong | None:
        """Return a copy of the next song, if any."""
        return copy.deepcopy(self._state.song_at(self._state.next_song.queue_idx))

    @property
    def next_song_id(self) -> int | None:
        """Return the queue id of the next song."""
        return self._state.next_song.id

    @property
    def next_song_queue_index(self) -> int | None:
        """Return the queue position of the next song."""
        return self._state.next_song.queue_idx

    @property
    def queue(self) -> list[QueueSong]:
        """Return a copy of the queue."""
        return copy.deepcopy(self._state.queue)

    @property
    def queue_version(self) -> int | None:
        """Return the queue version from the last status."""
        return self._state.queue_version

    @property
    def playlists(self) -> list[Playlist]:
        """Return a copy of the stored playlists."""
        return copy.deepcopy(self._state.playlists)

    def get_playlist(self, name: str) -> Playlist | None:
        """Return a copy of the stored playlist with the given name."""
        for playlist in self._state.playlists:
            if playlist.name == name:
                return copy.deepcopy(playlist)
        return None

    @property
    def tag_types(self) -> list[str]:
        """Return the tag names known to the session."""
        return list(self._state.tag_values)

    def tag_options(self, tag: str) -> list[str] | None:
        """Return the known values of a tag, or None if unconstrained or unknown."""
        values = self._state.tag_values.get(tag)
        return list(values) if values is not None else None

    # -- commands -------------------------------------------------------------

    def _command(self, command: str, *args: Any, consumer: ReplyConsumer | None = None) -> None:
        if not self._state.connected:
            raise MpdConnectionError("Not connected")
        self._batcher.issue(format_command(command, *args), consumer)

    def play(self, queue_position: int | None = None) -> None:
        """Start playback, optionally at a queue position."""
        if queue_position is None:
            self._command("play")
        else:
            self._command("play", queue_position)

    def play_by_id(self, song_id: int) -> None:
        """Start playback at the song with the given queue id."""
        self._command("playid", song_id)

    def pause(self, do_pause: bool = True) -> None:
        """Pause, or resume with do_pause=False."""
        self._command("pause", 1 if do_pause else 0)

    def next(self) -> None:
        """Skip to the next song."""
        self._command("next")

    def previous(self) -> None:
        """Go back to the previous song."""
        self._command("previous")

    def seek(self, seconds: float) -> None:
        """Seek within the current song."""
        song_id = self._state.current_song.id
        if song_id is None:
            self._log.warning("Cannot seek: no current song")
            return
        self._command("seekid", song_id, seconds)

    def stop(self) -> None:
        """Stop playback."""
        self._command("stop")

    def set_consume(self, enabled: bool) -> None:
        """Enable or disable consume mode."""
        self._command("consume", int(enabled))

    def set_crossfade(self, enabled: bool) -> None:
        """Enable or disable crossfading."""
        self._command("crossfade", int(enabled))

    def set_random(self, enabled: bool) -> None:
        """Enable or disable random play."""
        self._command("random", int(enabled))

    def set_repeat(self, enabled: bool) -> None:
        """Enable or disable repeat."""
        self._command("repeat", int(enabled))

    def set_single(self, enabled: bool) -> None:
        """Enable or disable single mode."""
        self._command("single", int(enabled))

    def set_mix_ramp_db(self, decibels: float) -> None:
        """Set the MixRamp threshold in dB."""
        self._command("mixrampdb", decibels)

    def set_mix_ramp_delay(self, seconds: float) -> None:
        """Set the MixRamp delay in seconds."""
        self._command("mixrampdelay", seconds)

    def set_volume(self, volume: float) -> None:
        """Set the volume (0.0-1.0)."""
        self._command("setvol", volume_to_percent(volume))

    def add_song(self, filename: str) -> None:
        """Append a file (or directory) to the queue."""
        self._command("add", filename)

    def clear_queue(self) -> None:
        """Remove everything from the queue."""
        self._command("clear")

    def remove_song(self, position: int) -> None:
        """Remove the song at a queue position."""
        self._command("delete", position)

    def remove_songs(self, start: int, end: int) -> None:
        """Remove the queue positions start (inclusive) to end (exclusive)."""
        self._command("delete", f"{start}:{end}")

    def remove_song_by_id(self, song_id: int) -> None:
        """Remove the song with the given queue id."""
        self._command("deleteid", song_id)

    def move_song(self, position: int, to: int) -> None:
        """Move the song at a queue position."""
        self._command("move", position, to)

    def move_songs(self, start: int, end: int, to: int) -> None:
        """Move the queue range start (inclusive) to end (exclusive)."""
        self._command("move", f"{start}:{end}", to)

    def move_song_by_id(self, song_id: int, to: int) -> None:
        """Move the song with the given queue id."""
        self._command("moveid", song_id, to)

    def shuffle_queue(self) -> None:
        """Shuffle the queue."""
        self._command("shuffle")

    def swap_songs(self, pos1: int, pos2: int) -> None:
        """Swap two songs by queue position."""
        self._command("swap", pos1, pos2)

    def swap_songs_by_id(self, id1: int, id2: int) -> None:
        """Swap two songs by queue id."""
        self._command("swapid", id1, id2)

    def append_playlist(self, playlist_name: str) -> None:
        """Append a stored playlist to the queue."""
        self._command("load", playlist_name)

    def load_playlist(self, playlist_name: str) -> None:
        """Replace the queue with a stored playlist."""
        self._command("clear")
        self._command("load", playlist_name)

    def save_queue(self, playlist_name: str) -> None:
        """Save the queue as a stored playlist."""
        self._command("save", playlist_name)

    def playlist_add(self, playlist_name: str, filename: str) -> None:
        """Add a file to a stored playlist."""
        self._command("playlistadd", playlist_name, filename)

    def playlist_clear(self, playlist_name: str) -> None:
        """Remove everything from a stored playlist."""
        self._command("playlistclear", playlist_name)

    def playlist_delete(self, playlist_name: str, position: int) -> None:
        """Remove the song at a position of a stored playlist."""
        self._command("playlistdelete", playlist_name, position)

    def playlist_move(self, playlist_name: str, from_position: int, to_position: int) -> None:
        """Move a song within a stored playlist."""
        self._command("playlistmove", playlist_name, from_position, to_position)

    def rename_playlist(self, playlist_name: str, new_name: str) -> None:
        """Rename a stored playlist."""
        self._command("rename", playlist_name, new_name)

    def delete_playlist(self, playlist_name: str) -> None:
        """Delete a stored playlist."""
        self._command("rm", playlist_name)

    def update_database(self) -> None:
        """Ask MPD to rescan the music directory."""
        self._command("update")

    # -- queries --------------------------------------------------------------

    def list_directory(self, path: str, on_done: Callable[[list[Record]], None]) -> None:
        """List a music directory ("" is the root).

        Args:
            path: Directory relative to the music directory.
            on_done: Receives the directory, file and playlist records.
        """
        self._command("lsinfo", path, consumer=on_done)

    def search(self, params: Mapping[str, str], on_done: Callable[[list[Song]], None]) -> None:
        """Search the database (case-insensitive substring match).

        Args:
            params: Tag name to searched value, e.g. {"artist": "Nick Cave"}.
            on_done: Receives the matching songs.
        """
        self._command(
            "search", *_query_args(params), consumer=lambda records: on_done(build_songs(records))
        )

    def search_count(self, params: Mapping[str, str], on_done: Callable[[Record], None]) -> None:
        """Count the songs matching exactly.

        Args:
            params: Tag name to value.
            on_done: Receives the totals, e.g. {"songs": 12, "playtime": 2810}.
        """
        self._command(
            "count",
            *_query_args(params),
            consumer=lambda records: on_done(records[0] if records else {}),
        )


def _query_args(params: Mapping[str, str]) -> list[str]:
    args: list[str] = []
    for tag, value in params.items():
        args.extend((tag, str(value)))
    return args
