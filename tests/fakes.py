"""In-memory MPD server stand-ins shared by the session tests."""

from collections.abc import Callable

from mpdctrl.api.protocol import MpdConnectionError


class FakeTransport:
    """Transport recording writes and replaying server text on demand."""

    def __init__(self, fail_open: bool = False) -> None:
        self.sent: list[str] = []
        self.fail_open = fail_open
        self.opened = False
        self.closed = False
        self._incoming: list[str] = []
        self._on_open: Callable[[], None] | None = None
        self._on_message: Callable[[], None] | None = None
        self._on_close: Callable[[], None] | None = None

    @property
    def is_open(self) -> bool:
        return self.opened

    def set_event_handlers(self, on_open=None, on_message=None, on_close=None) -> None:
        self._on_open = on_open
        self._on_message = on_message
        self._on_close = on_close

    async def open(self) -> None:
        if self.fail_open:
            raise MpdConnectionError("Connection refused")
        self.opened = True
        if self._on_open:
            self._on_open()

    def receive_text(self) -> str:
        text = "".join(self._incoming)
        self._incoming.clear()
        return text

    def send(self, text: str) -> None:
        self.sent.append(text)

    async def close(self) -> None:
        self.opened = False
        self.closed = True

    def feed(self, text: str) -> None:
        """Deliver text from the server."""
        self._incoming.append(text)
        if self._on_message:
            self._on_message()

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self.opened = False
        if self._on_close:
            self._on_close()

    @property
    def sent_lines(self) -> list[str]:
        return "".join(self.sent).splitlines()


GREETING = "OK MPD 0.23.5\n"

QUEUE_RESPONSE = (
    "file: music/a.mp3\n"
    "Last-Modified: 2023-05-06T07:08:09Z\n"
    "Artist: Alpha\n"
    "Title: First\n"
    "Time: 10\n"
    "duration: 10.250\n"
    "Pos: 0\n"
    "Id: 11\n"
    "file: music/b.mp3\n"
    "Artist: Beta\n"
    "Time: 20\n"
    "Pos: 1\n"
    "Id: 12\n"
    "OK\n"
)

STATUS_RESPONSE = (
    "volume: 42\n"
    "repeat: 1\n"
    "random: 0\n"
    "single: 0\n"
    "consume: 1\n"
    "playlist: 7\n"
    "playlistlength: 2\n"
    "mixrampdb: 0.000000\n"
    "state: play\n"
    "song: 0\n"
    "songid: 11\n"
    "time: 3:10\n"
    "elapsed: 3.500\n"
    "bitrate: 320\n"
    "audio: 44100:16:2\n"
    "nextsong: 1\n"
    "nextsongid: 12\n"
    "OK\n"
)

PLAYLISTS_RESPONSE = (
    "playlist: rock\n"
    "Last-Modified: 2024-01-02T03:04:05Z\n"
    "playlist: Road Trip\n"
    "Last-Modified: 2024-02-03T04:05:06Z\n"
    "OK\n"
)

ROCK_RESPONSE = "file: rock/one.flac\nTime: 200\nfile: rock/two.flac\nTime: 180\nOK\n"
ROAD_TRIP_RESPONSE = "file: trip/song.ogg\nTime: 99\nOK\n"

CONSTRAINED_TAGS = [
    "artist",
    "album",
    "albumartist",
    "name",
    "genre",
    "composer",
    "performer",
    "comment",
    "disc",
]

TAG_RESPONSES = {
    "artist": "Artist: Alpha\nArtist: Beta\nOK\n",
    "album": "Album: Greatest\nOK\n",
    "disc": "Disc: 1\nDisc: 2\nOK\n",
}

FULL_LOAD_REQUESTS = [
    "playlistinfo",
    "status",
    "listplaylists",
    "listplaylistinfo rock",
    'listplaylistinfo "Road Trip"',
    *(f"list {tag}" for tag in CONSTRAINED_TAGS),
    "idle",
]


def full_load_script() -> str:
    """Return everything the server sends from greeting to the last tag list."""
    tags = "".join(TAG_RESPONSES.get(tag, "OK\n") for tag in CONSTRAINED_TAGS)
    return (
        GREETING
        + QUEUE_RESPONSE
        + STATUS_RESPONSE
        + PLAYLISTS_RESPONSE
        + ROCK_RESPONSE
        + ROAD_TRIP_RESPONSE
        + tags
    )
