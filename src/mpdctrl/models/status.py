"""Player status as reported by the "status" command."""

from dataclasses import dataclass, field
from typing import Any, Self

# MPD status keys consumed into named fields; everything else lands in extra.
_STATUS_KEYS = frozenset(
    {
        "state",
        "volume",
        "repeat",
        "random",
        "single",
        "consume",
        "song",
        "songid",
        "elapsed",
        "nextsong",
        "nextsongid",
        "mixrampdb",
        "playlist",
    }
)


@dataclass(frozen=True, slots=True)
class SongPosition:
    """Reference to a song on the queue.

    Attributes:
        queue_idx: Position on the queue, or None.
        id: Queue id, or None.
        elapsed_time: Seconds played, only tracked for the current song.
    """

    queue_idx: int | None = None
    id: int | None = None
    elapsed_time: float | None = None


@dataclass(frozen=True, slots=True)
class StatusUpdate:
    """Status fields renamed and normalized for the session state.

    Attributes:
        playstate: "play", "pause" or "stop".
        volume: Volume 0.0-1.0, or None when MPD has no mixer.
        repeat: Repeat mode enabled.
        single: Single mode enabled.
        consume: Consume mode enabled.
        random: Random mode enabled.
        mix_ramp_threshold: MixRamp threshold in dB, or None.
        current_song: Position, id and elapsed time of the current song.
        next_song: Position and id of the next song.
        queue_version: Queue version, bumped on every queue change.
        extra: Other reported fields (bitrate, audio, xfade, ...).
    """

    playstate: str | None = None
    volume: float | None = None
    repeat: bool = False
    single: bool = False
    consume: bool = False
    random: bool = False
    mix_ramp_threshold: float | None = None
    current_song: SongPosition = field(default_factory=SongPosition)
    next_song: SongPosition = field(default_factory=SongPosition)
    queue_version: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_status(cls, data: dict[str, Any]) -> Self:
        """Rename and normalize a raw status mapping.

        Args:
            data: Flat status block with numeric values already coerced.

        Returns:
            StatusUpdate instance.
        """
        volume = _as_number(data.get("volume"))
        return cls(
            playstate=str(data["state"]) if "state" in data else None,
            volume=volume / 100 if volume is not None and volume >= 0 else None,
            repeat=_as_flag(data.get("repeat")),
            single=_as_flag(data.get("single")),
            consume=_as_flag(data.get("consume")),
            random=_as_flag(data.get("random")),
            mix_ramp_threshold=_as_float(data.get("mixrampdb")),
            current_song=SongPosition(
                queue_idx=_as_int(data.get("song")),
                id=_as_int(data.get("songid")),
                elapsed_time=_as_float(data.get("elapsed")),
            ),
            next_song=SongPosition(
                queue_idx=_as_int(data.get("nextsong")),
                id=_as_int(data.get("nextsongid")),
            ),
            queue_version=_as_int(data.get("playlist")),
            extra={k: v for k, v in data.items() if k not in _STATUS_KEYS},
        )


def _as_number(value: Any) -> int | float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return value


def _as_int(value: Any) -> int | None:
    number = _as_number(value)
    return int(number) if number is not None else None


def _as_float(value: Any) -> float | None:
    number = _as_number(value)
    return float(number) if number is not None else None


def _as_flag(value: Any) -> bool:
    return _as_number(value) == 1
