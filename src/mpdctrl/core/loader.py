"""Ordered reloading of mirrored data.

Later steps depend on earlier ones: the status names queue positions, so the
queue is always fetched before the status, and playlist contents need the
playlist names. Each step sets the processor's expectation, sends its
request and chains the next step from the completion callback; at most one
request is outstanding at a time.
"""

import copy
import logging
from collections.abc import Callable
from typing import Any

from mpdctrl.api.protocol import format_command
from mpdctrl.api.records import Record
from mpdctrl.core.events import (
    DataLoadedEvent,
    EventDispatcher,
    PlaylistChangedEvent,
    PlaylistsChangedEvent,
    QueueChangedEvent,
)
from mpdctrl.core.processor import ReloadActions, ResponseProcessor
from mpdctrl.models.playlist import Playlist
from mpdctrl.models.session_state import SessionState
from mpdctrl.models.song import QueueSong, Song

logger = logging.getLogger(__name__)

Continuation = Callable[[], None]


def build_queue(records: list[Record]) -> list[QueueSong]:
    """Convert "playlistinfo" records into queue entries."""
    return [QueueSong.from_record(record) for record in records]


def build_songs(records: list[Record]) -> list[Song]:
    """Convert song records into songs."""
    return [Song.from_record(record) for record in records]


def build_playlists(records: list[Record]) -> list[Playlist]:
    """Convert "listplaylists" records into playlists without contents."""
    return [Playlist.from_record(record) for record in records]


class CascadingLoader:
    """Runs the dependent fetch sequences after connect and idle changes."""

    def __init__(
        self,
        processor: ResponseProcessor,
        send: Callable[[str], None],
        state: SessionState,
        dispatcher: EventDispatcher,
    ) -> None:
        """Initialize the loader.

        Args:
            processor: Interprets the responses to the loader's requests.
            send: Writes one command line (newline added here).
            state: Session state read between steps.
            dispatcher: Receives DataLoaded.
        """
        self._processor = processor
        self._send = send
        self._state = state
        self._dispatcher = dispatcher

    def _request(self, command: str, *args: Any) -> None:
        self._send(format_command(command, *args) + "\n")

    # -- sequences ------------------------------------------------------------

    def load_everything(self) -> None:
        """Queue, status, playlists, tag values, DataLoaded, then idle."""
        logger.info("Loading all data")

        def after_queue(_: Any) -> None:
            self.reload_status(lambda: self.load_playlists(lambda: self.load_tag_values(finish)))

        def finish() -> None:
            self._dispatcher.dispatch(DataLoadedEvent(state=copy.deepcopy(self._state)))
            self._processor.resume_idle()

        self._processor.expect_list(
            after_queue, event=lambda queue: QueueChangedEvent(queue=queue), transform=build_queue
        )
        self._request("playlistinfo")

    def apply_changes(self, actions: ReloadActions) -> None:
        """Reload what an idle change report invalidated, then idle again.

        Args:
            actions: The folded change report.
        """
        logger.debug("Applying changes: %s", actions)
        if actions.everything:
            self.load_everything()
            return

        def reload_rest() -> None:
            if actions.queue:
                self.reload_queue(lambda: self.reload_status(self._processor.resume_idle))
            elif actions.status:
                self.reload_status(self._processor.resume_idle)
            else:
                self._processor.resume_idle()

        if actions.playlists:
            self.load_playlists(reload_rest)
        else:
            reload_rest()

    # -- steps ----------------------------------------------------------------

    def reload_queue(self, on_done: Continuation) -> None:
        """Fetch the queue (QueueChanged)."""
        self._processor.expect_list(
            lambda _: on_done(),
            event=lambda queue: QueueChangedEvent(queue=queue),
            transform=build_queue,
        )
        self._request("playlistinfo")

    def reload_status(self, on_done: Continuation) -> None:
        """Fetch the player status (StateChanged)."""
        self._processor.expect_status(lambda _: on_done())
        self._request("status")

    def load_playlists(self, on_done: Continuation) -> None:
        """Fetch the playlist names, then each playlist's contents in turn."""
        self._processor.expect_list(
            lambda _: self._load_playlist_contents(0, on_done),
            event=lambda playlists: PlaylistsChangedEvent(playlists=playlists),
            transform=build_playlists,
        )
        self._request("listplaylists")

    def _load_playlist_contents(self, index: int, on_done: Continuation) -> None:
        if index >= len(self._state.playlists):
            on_done()
            return
        self._processor.expect_list(
            lambda _: self._load_playlist_contents(index + 1, on_done),
            event=lambda songs: PlaylistChangedEvent(index=index, songs=songs),
            transform=build_songs,
        )
        self._request("listplaylistinfo", self._state.playlists[index].name)

    def load_tag_values(self, on_done: Continuation) -> None:
        """Fetch the known values of every constrained tag, one tag at a time."""
        tags = [tag for tag, values in self._state.tag_values.items() if values is not None]
        self._load_tag(tags, 0, on_done)

    def _load_tag(self, tags: list[str], index: int, on_done: Continuation) -> None:
        if index >= len(tags):
            on_done()
            return
        tag = tags[index]

        def store(values: list[str]) -> None:
            self._state.tag_values[tag] = values
            self._load_tag(tags, index + 1, on_done)

        self._processor.expect_list(
            store,
            transform=lambda records: [record.get(tag, "") for record in records],
            raw_keys={tag},
        )
        self._request("list", tag)
