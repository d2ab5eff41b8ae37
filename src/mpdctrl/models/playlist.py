"""Stored playlist model."""

from dataclasses import dataclass
from datetime import datetime
from typing import Self

from mpdctrl.api.records import Record
from mpdctrl.models.song import Song


@dataclass(slots=True)
class Playlist:
    """A stored playlist.

    Attributes:
        name: Playlist name.
        last_modified: When the playlist was last changed.
        songs: Playlist contents, or None until they have been loaded.
    """

    name: str
    last_modified: datetime | None = None
    songs: list[Song] | None = None

    @classmethod
    def from_record(cls, record: Record) -> Self:
        """Build a playlist from a parsed "listplaylists" record."""
        last_modified = record.get("last_modified")
        return cls(
            name=str(record.get("playlist", "")),
            last_modified=last_modified if isinstance(last_modified, datetime) else None,
        )

    @property
    def is_loaded(self) -> bool:
        """Return True once the playlist contents are known."""
        return self.songs is not None
