"""Command-line monitor: connect to MPD and log what changes."""

import argparse
import asyncio
import contextlib
import logging
import sys
from dataclasses import replace

from mpdctrl.api.protocol import MpdConnectionError
from mpdctrl.core.config import ConfigManager, SessionConfig
from mpdctrl.core.discovery import ServerDiscovery
from mpdctrl.core.events import (
    DataLoadedEvent,
    ErrorEvent,
    PlaylistsChangedEvent,
    QueueChangedEvent,
    StateChangedEvent,
)
from mpdctrl.core.session import MpdSession

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

DISCOVERY_TIMEOUT = 3.0  # seconds


def build_config(argv: list[str]) -> tuple[SessionConfig, bool]:
    """Merge stored settings with command line arguments.

    Returns:
        The session config and whether it should be saved.
    """
    parser = argparse.ArgumentParser(prog="mpdctrl", description="Monitor an MPD server")
    parser.add_argument("host", nargs="?", default=None, help="server hostname or IP")
    parser.add_argument("port", nargs="?", type=int, default=None, help="TCP port (default: 6600)")
    parser.add_argument(
        "--reconnect-delay",
        type=float,
        default=None,
        help="seconds before reconnecting; 0 disables",
    )
    parser.add_argument(
        "--discover", action="store_true", help="find a server with zeroconf when no host is given"
    )
    parser.add_argument("--traffic", action="store_true", help="log every protocol line")
    parser.add_argument("--save", action="store_true", help="remember these settings")
    parsed = parser.parse_args(argv)

    config = ConfigManager().load_session_config()
    if parsed.host:
        config = replace(config, host=parsed.host)
    elif parsed.discover:
        server = ServerDiscovery.discover_one(timeout=DISCOVERY_TIMEOUT)
        if server is None:
            logger.warning("No MPD server found, using %s", config.host)
        else:
            config = server.session_config(config)
    if parsed.port is not None:
        config = replace(config, port=parsed.port)
    if parsed.reconnect_delay is not None:
        config = replace(config, reconnect_delay=parsed.reconnect_delay)
    if parsed.traffic:
        config = replace(config, log_traffic=True)
    return config, parsed.save


def _log_state(event: StateChangedEvent) -> None:
    status = event.status
    volume = f"{status.volume:.0%}" if status.volume is not None else "n/a"
    logger.info(
        "Player %s, volume %s, song %s", status.playstate, volume, status.current_song.queue_idx
    )


def _log_queue(event: QueueChangedEvent) -> None:
    logger.info("Queue holds %d song(s)", len(event.queue))


def _log_playlists(event: PlaylistsChangedEvent) -> None:
    logger.info("Stored playlists: %s", ", ".join(p.name for p in event.playlists) or "none")


def _log_loaded(event: DataLoadedEvent) -> None:
    logger.info("Loaded MPD %s state", event.state.version)


def _log_error(event: ErrorEvent) -> None:
    logger.error("%s", event.message)


async def run(config: SessionConfig) -> None:
    """Connect and log events until cancelled."""
    session = MpdSession(config)
    session.on("StateChanged", _log_state)
    session.on("QueueChanged", _log_queue)
    session.on("PlaylistsChanged", _log_playlists)
    session.on("DataLoaded", _log_loaded)
    session.on("Error", _log_error)
    if config.log_traffic:
        logging.getLogger("mpdctrl").setLevel(logging.DEBUG)

    async with session:
        await asyncio.Event().wait()


def main() -> int:
    """Run the monitor.

    Returns:
        Exit code (0 for success).
    """
    config, save = build_config(sys.argv[1:])
    if save:
        ConfigManager().save_session_config(config)

    try:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(run(config))
    except MpdConnectionError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
