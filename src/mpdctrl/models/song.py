"""Song models built from parsed MPD records."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Self

from mpdctrl.api.records import Record


@dataclass(frozen=True, slots=True)
class Song:
    """A song from the database or a stored playlist.

    MPD only reports the tags a file actually has, so everything except the
    file path may be missing.

    Attributes:
        file: Path relative to MPD's music directory.
        time: Duration in seconds, if known.
        last_modified: Last time the file was altered.
        tags: Remaining fields (artist, title, album, track, ...) keyed by
            normalized tag name.
    """

    file: str
    time: float | None = None
    last_modified: datetime | None = None
    tags: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Record) -> Self:
        """Build a song from a parsed record."""
        tags = {k: v for k, v in record.items() if k not in _SONG_KEYS}
        return cls(
            file=str(record.get("file", "")),
            time=_duration(record),
            last_modified=_as_datetime(record.get("last_modified")),
            tags=tags,
        )

    def tag(self, name: str, default: Any = None) -> Any:
        """Return a tag value, or default when the file lacks it."""
        return self.tags.get(name, default)

    @property
    def title(self) -> str:
        """Return title for display, with filename fallback."""
        title = self.tags.get("title")
        if title:
            return str(title)
        name = self.file.rsplit("/", 1)[-1]
        if "." in name:
            name = name.rsplit(".", 1)[0]
        return name

    @property
    def artist(self) -> str:
        """Return artist, falling back to album artist."""
        return str(self.tags.get("artist") or self.tags.get("albumartist") or "")


@dataclass(frozen=True, slots=True)
class QueueSong(Song):
    """A song on the play queue.

    Attributes:
        pos: Position in the queue.
        id: Queue id, stable while the queue is reordered.
    """

    pos: int = -1
    id: int = -1

    @classmethod
    def from_record(cls, record: Record) -> Self:
        """Build a queue entry from a parsed "playlistinfo" record."""
        tags = {k: v for k, v in record.items() if k not in _QUEUE_KEYS}
        return cls(
            file=str(record.get("file", "")),
            time=_duration(record),
            last_modified=_as_datetime(record.get("last_modified")),
            tags=tags,
            pos=int(record.get("pos", -1)),
            id=int(record.get("id", -1)),
        )


_SONG_KEYS = frozenset({"file", "time", "duration", "last_modified"})
_QUEUE_KEYS = _SONG_KEYS | {"pos", "id"}


def _duration(record: Record) -> float | None:
    # "duration" has sub-second precision, "time" is the legacy whole-second field.
    for key in ("duration", "time"):
        value = record.get(key)
        if isinstance(value, int | float):
            return value
    return None


def _as_datetime(value: Any) -> datetime | None:
    return value if isinstance(value, datetime) else None
