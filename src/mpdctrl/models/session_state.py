"""Local mirror of the MPD server state."""

import logging
from dataclasses import dataclass, field
from typing import Any

from mpdctrl.models.playlist import Playlist
from mpdctrl.models.song import QueueSong
from mpdctrl.models.status import SongPosition, StatusUpdate

logger = logging.getLogger(__name__)

# Tags with a None vocabulary accept any value and are not listed on load.
DEFAULT_TAG_VALUES: dict[str, list[str] | None] = {
    "any": None,
    "artist": [],
    "album": [],
    "albumartist": [],
    "title": None,
    "track": None,
    "name": [],
    "genre": [],
    "date": None,
    "composer": [],
    "performer": [],
    "comment": [],
    "disc": [],
}


def default_tag_values() -> dict[str, list[str] | None]:
    """Return a fresh copy of the default tag vocabulary."""
    return {tag: None if values is None else [] for tag, values in DEFAULT_TAG_VALUES.items()}


@dataclass
class SessionState:
    """Everything the session knows about the server.

    Only the session engine mutates this; callers receive deep copies.

    Attributes:
        connected: Whether the transport is open.
        version: Protocol version from the greeting.
        playstate: "play", "pause" or "stop".
        volume: Volume 0.0-1.0, or None.
        repeat: Repeat mode enabled.
        single: Single mode enabled.
        consume: Consume mode enabled.
        random: Random mode enabled.
        mix_ramp_threshold: MixRamp threshold in dB.
        current_song: Reference to the current song on the queue.
        next_song: Reference to the next song on the queue.
        queue: Queue entries in queue order.
        queue_version: Queue version from the last status.
        playlists: Stored playlists.
        tag_values: Known values per tag; None for unconstrained tags.
        extra: Other status fields reported by the server.
        last_status_update: Monotonic time the last status was applied.
    """

    connected: bool = False
    version: str | None = None
    playstate: str | None = None
    volume: float | None = None
    repeat: bool = False
    single: bool = False
    consume: bool = False
    random: bool = False
    mix_ramp_threshold: float | None = None
    current_song: SongPosition = field(default_factory=SongPosition)
    next_song: SongPosition = field(default_factory=SongPosition)
    queue: list[QueueSong] = field(default_factory=list)
    queue_version: int | None = None
    playlists: list[Playlist] = field(default_factory=list)
    tag_values: dict[str, list[str] | None] = field(default_factory=default_tag_values)
    extra: dict[str, Any] = field(default_factory=dict)
    last_status_update: float = 0.0

    def apply_status(self, update: StatusUpdate, now: float) -> None:
        """Copy a status update into the mirror.

        Song references pointing outside the queue are cleared.

        Args:
            update: The renamed status fields.
            now: Monotonic timestamp of the update.
        """
        self.playstate = update.playstate
        self.volume = update.volume
        self.repeat = update.repeat
        self.single = update.single
        self.consume = update.consume
        self.random = update.random
        self.mix_ramp_threshold = update.mix_ramp_threshold
        self.current_song = self._checked(update.current_song, "current")
        self.next_song = self._checked(update.next_song, "next")
        self.queue_version = update.queue_version
        self.extra = dict(update.extra)
        self.last_status_update = now

    def apply_queue(self, queue: list[QueueSong]) -> None:
        """Replace the queue; song references past its end are cleared."""
        self.queue = queue
        self.current_song = self._checked(self.current_song, "current")
        self.next_song = self._checked(self.next_song, "next")

    def _checked(self, position: SongPosition, label: str) -> SongPosition:
        idx = position.queue_idx
        if idx is None or 0 <= idx < len(self.queue):
            return position
        logger.warning(
            "Dropping %s song at position %d: the queue has %d entries",
            label,
            idx,
            len(self.queue),
        )
        return SongPosition()

    def song_at(self, idx: int | None) -> QueueSong | None:
        """Return the queue entry at a position, or None."""
        if idx is None or not 0 <= idx < len(self.queue):
            return None
        return self.queue[idx]

    def reset_connection(self) -> None:
        """Forget connection-scoped fields after a disconnect."""
        self.connected = False
        self.version = None
