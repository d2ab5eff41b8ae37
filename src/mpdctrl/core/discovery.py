"""Zeroconf discovery of MPD servers.

MPD announces itself as ``_mpd._tcp`` when built with zeroconf support
(the default on most distributions). The advertised port is the protocol
port, so a discovered server can be handed straight to a SessionConfig.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace

from zeroconf import ServiceBrowser, ServiceListener, Zeroconf

from mpdctrl.api.transport import DEFAULT_PORT
from mpdctrl.core.config import SessionConfig

logger = logging.getLogger(__name__)

MPD_SERVICE_TYPE = "_mpd._tcp.local."


@dataclass
class DiscoveredServer:
    """An MPD server found on the local network.

    Attributes:
        name: Service instance name, e.g. "Music Player @ pi._mpd._tcp.local.".
        host: First advertised address.
        port: MPD protocol port.
        addresses: Every advertised address.
        hostname: mDNS host name without the trailing dot, e.g. "pi.local".
    """

    name: str
    host: str
    port: int
    addresses: list[str]
    hostname: str = ""

    @property
    def display_name(self) -> str:
        """Return the instance name without the service suffix."""
        return self.name.removesuffix(f".{MPD_SERVICE_TYPE}") or self.host

    def session_config(self, base: SessionConfig | None = None) -> SessionConfig:
        """Return base (or the defaults) pointed at this server."""
        return replace(base or SessionConfig(), host=self.host, port=self.port)


class MpdServiceListener(ServiceListener):
    """Collects MPD service announcements."""

    def __init__(
        self,
        on_found: Callable[[DiscoveredServer], None] | None = None,
        on_removed: Callable[[str], None] | None = None,
    ) -> None:
        self._on_found = on_found
        self._on_removed = on_removed
        self._servers: dict[str, DiscoveredServer] = {}

    @property
    def servers(self) -> list[DiscoveredServer]:
        """Return the servers currently announced."""
        return list(self._servers.values())

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Resolve a new announcement."""
        info = zc.get_service_info(type_, name)
        if info is None:
            logger.debug("Could not resolve service: %s", name)
            return

        addresses = info.parsed_addresses()
        if not addresses:
            logger.debug("No addresses found for service: %s", name)
            return

        server = DiscoveredServer(
            name=name,
            host=addresses[0],
            port=info.port or DEFAULT_PORT,
            addresses=addresses,
            hostname=info.server.rstrip(".") if info.server else "",
        )
        logger.info(
            "Discovered MPD server: %s at %s:%d", server.display_name, server.host, server.port
        )
        self._servers[name] = server

        if self._on_found:
            self._on_found(server)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:  # noqa: ARG002
        """Forget a server that went away."""
        if self._servers.pop(name, None) is not None:
            logger.info("MPD server removed: %s", name)
            if self._on_removed:
                self._on_removed(name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Re-resolve a changed announcement."""
        self.add_service(zc, type_, name)


class ServerDiscovery:
    """Browses the local network for MPD servers.

    Example:
        server = ServerDiscovery.discover_one(timeout=3.0)
        if server:
            session = MpdSession(server.session_config())
    """

    def __init__(self) -> None:
        self._zeroconf: Zeroconf | None = None
        self._browser: ServiceBrowser | None = None
        self._listener: MpdServiceListener | None = None

    @property
    def servers(self) -> list[DiscoveredServer]:
        """Return the servers found so far."""
        if self._listener:
            return self._listener.servers
        return []

    def start(
        self,
        on_found: Callable[[DiscoveredServer], None] | None = None,
        on_removed: Callable[[str], None] | None = None,
    ) -> None:
        """Start browsing in zeroconf's background thread.

        Callbacks run on that thread, not on the asyncio loop.
        """
        if self._zeroconf is not None:
            return

        self._zeroconf = Zeroconf()
        self._listener = MpdServiceListener(on_found=on_found, on_removed=on_removed)
        self._browser = ServiceBrowser(self._zeroconf, MPD_SERVICE_TYPE, self._listener)
        logger.debug("Started mDNS discovery for MPD servers")

    def stop(self) -> None:
        """Stop browsing."""
        if self._browser:
            self._browser.cancel()
            self._browser = None

        if self._zeroconf:
            self._zeroconf.close()
            self._zeroconf = None

        self._listener = None
        logger.debug("Stopped mDNS discovery")

    @staticmethod
    def discover_one(timeout: float = 5.0) -> DiscoveredServer | None:
        """Block until the first server is found.

        Args:
            timeout: Maximum time to wait in seconds.

        Returns:
            First discovered server, or None if none answered in time.
        """
        result: DiscoveredServer | None = None
        found_event = threading.Event()

        def on_found(server: DiscoveredServer) -> None:
            nonlocal result
            if result is None:
                result = server
                found_event.set()

        discovery = ServerDiscovery()
        discovery.start(on_found=on_found)
        try:
            found_event.wait(timeout=timeout)
        finally:
            discovery.stop()
        return result

    @staticmethod
    def discover_all(timeout: float = 5.0) -> list[DiscoveredServer]:
        """Collect every server that answers within timeout."""
        discovery = ServerDiscovery()
        discovery.start()
        try:
            threading.Event().wait(timeout=timeout)
        finally:
            servers = discovery.servers.copy()
            discovery.stop()
        return servers
