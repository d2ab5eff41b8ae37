"""Session configuration, persisted with QSettings."""

import logging
from dataclasses import dataclass

from PySide6.QtCore import QSettings

from mpdctrl.api.transport import CONNECT_TIMEOUT, DEFAULT_HOST, DEFAULT_PORT
from mpdctrl.core.commands import BATCH_DELAY

logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 3.0  # seconds

# Settings keys
_KEY_HOST = "mpd/host"
_KEY_PORT = "mpd/port"
_KEY_RECONNECT_DELAY = "mpd/reconnect_delay"
_KEY_CONNECT_TIMEOUT = "mpd/connect_timeout"
_KEY_LOG_TRAFFIC = "logging/traffic"


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Settings for one MPD session.

    Attributes:
        host: MPD server hostname or IP.
        port: MPD server port.
        reconnect_delay: Seconds to wait before reconnecting after an
            unexpected disconnect; 0 disables reconnecting.
        batch_delay: Debounce window for coalescing commands, in seconds.
        connect_timeout: Connection timeout in seconds.
        log_traffic: Log every sent and received line at DEBUG level.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    batch_delay: float = BATCH_DELAY
    connect_timeout: float = CONNECT_TIMEOUT
    log_traffic: bool = False

    @property
    def auto_reconnect(self) -> bool:
        """Return True if reconnecting after a disconnect is enabled."""
        return bool(self.reconnect_delay)


class ConfigManager:
    """Wrapper around QSettings for type-safe config access.

    QSettings stores config in platform-specific locations:
    - Windows: HKEY_CURRENT_USER\\Software\\mpdctrl\\mpdctrl
    - macOS: ~/Library/Preferences/com.mpdctrl.mpdctrl.plist
    - Linux: ~/.config/mpdctrl/mpdctrl.conf

    Example:
        config = ConfigManager()
        session = MpdSession(config.load_session_config())
    """

    def __init__(self, organization: str = "mpdctrl", application: str = "mpdctrl") -> None:
        """Initialize the config manager.

        Args:
            organization: Organization name for QSettings.
            application: Application name for QSettings.
        """
        self._settings = QSettings(organization, application)

    @property
    def settings(self) -> QSettings:
        """Return the underlying QSettings instance."""
        return self._settings

    def get_host(self) -> str:
        """Return the MPD host (default "localhost")."""
        value = self._settings.value(_KEY_HOST, DEFAULT_HOST, str)
        return str(value) if value else DEFAULT_HOST

    def set_host(self, host: str) -> None:
        """Set the MPD host."""
        self._settings.setValue(_KEY_HOST, host)

    def get_port(self) -> int:
        """Return the MPD port (default 6600)."""
        value = self._settings.value(_KEY_PORT, DEFAULT_PORT, int)
        return max(1, min(65535, int(value)))  # type: ignore[arg-type]

    def set_port(self, port: int) -> None:
        """Set the MPD port (1-65535)."""
        self._settings.setValue(_KEY_PORT, max(1, min(65535, port)))

    def get_reconnect_delay(self) -> float:
        """Return the reconnect delay in seconds; 0 means never reconnect.

        Returns:
            Delay in seconds (default 3, at most 300).
        """
        value = self._settings.value(_KEY_RECONNECT_DELAY, DEFAULT_RECONNECT_DELAY, float)
        return max(0.0, min(300.0, float(value)))  # type: ignore[arg-type]

    def set_reconnect_delay(self, seconds: float) -> None:
        """Set the reconnect delay (0-300 seconds, 0 disables reconnecting)."""
        self._settings.setValue(_KEY_RECONNECT_DELAY, max(0.0, min(300.0, seconds)))

    def get_connect_timeout(self) -> float:
        """Return the connection timeout in seconds (default 5)."""
        value = self._settings.value(_KEY_CONNECT_TIMEOUT, CONNECT_TIMEOUT, float)
        return max(1.0, min(60.0, float(value)))  # type: ignore[arg-type]

    def set_connect_timeout(self, seconds: float) -> None:
        """Set the connection timeout (1-60 seconds)."""
        self._settings.setValue(_KEY_CONNECT_TIMEOUT, max(1.0, min(60.0, seconds)))

    def get_log_traffic(self) -> bool:
        """Return whether protocol traffic is logged."""
        return bool(self._settings.value(_KEY_LOG_TRAFFIC, False, bool))

    def set_log_traffic(self, enabled: bool) -> None:
        """Enable or disable protocol traffic logging."""
        self._settings.setValue(_KEY_LOG_TRAFFIC, enabled)

    def load_session_config(self) -> SessionConfig:
        """Build a SessionConfig from the stored settings."""
        return SessionConfig(
            host=self.get_host(),
            port=self.get_port(),
            reconnect_delay=self.get_reconnect_delay(),
            connect_timeout=self.get_connect_timeout(),
            log_traffic=self.get_log_traffic(),
        )

    def save_session_config(self, config: SessionConfig) -> None:
        """Persist a SessionConfig."""
        self.set_host(config.host)
        self.set_port(config.port)
        self.set_reconnect_delay(config.reconnect_delay)
        self.set_connect_timeout(config.connect_timeout)
        self.set_log_traffic(config.log_traffic)
        logger.debug("Saved session config for %s:%d", config.host, config.port)

    def clear(self) -> None:
        """Clear all settings (useful for testing or reset)."""
        self._settings.clear()

    def sync(self) -> None:
        """Force settings to be written to disk."""
        self._settings.sync()
