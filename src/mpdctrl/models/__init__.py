"""Data models for the mirrored MPD state: songs, playlists, status."""

from mpdctrl.models.playlist import Playlist
from mpdctrl.models.session_state import DEFAULT_TAG_VALUES, SessionState, default_tag_values
from mpdctrl.models.song import QueueSong, Song
from mpdctrl.models.status import SongPosition, StatusUpdate

__all__ = [
    "DEFAULT_TAG_VALUES",
    "Playlist",
    "QueueSong",
    "SessionState",
    "Song",
    "SongPosition",
    "StatusUpdate",
    "default_tag_values",
]
