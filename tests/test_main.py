"""Tests for the command-line monitor."""

import pytest

import mpdctrl.__main__ as cli
from mpdctrl.api.protocol import MpdConnectionError
from mpdctrl.core.config import ConfigManager, SessionConfig
from mpdctrl.core.discovery import DiscoveredServer


@pytest.fixture
def stored(monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    """Point the CLI at throwaway settings."""
    config = ConfigManager("MpdCtrlTest", "TestMain")
    config.clear()
    monkeypatch.setattr(cli, "ConfigManager", lambda: config)
    return config


class TestBuildConfig:
    """Tests for argument parsing."""

    def test_defaults(self, stored: ConfigManager) -> None:
        """Test that no arguments give the stored settings."""
        config, save = cli.build_config([])
        assert config == stored.load_session_config()
        assert not save

    def test_arguments_override_settings(self, stored: ConfigManager) -> None:
        """Test that command line values win over stored ones."""
        stored.set_host("stored.local")
        stored.set_port(6601)

        config, save = cli.build_config(
            ["mpd.local", "6700", "--reconnect-delay", "0", "--traffic", "--save"]
        )
        assert config.host == "mpd.local"
        assert config.port == 6700
        assert config.reconnect_delay == 0
        assert config.log_traffic
        assert save

    def test_host_only(self, stored: ConfigManager) -> None:
        """Test that the stored port is kept when only a host is given."""
        stored.set_port(6601)
        config, _ = cli.build_config(["mpd.local"])
        assert config.host == "mpd.local"
        assert config.port == 6601

    def test_discover(self, stored: ConfigManager, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that --discover uses the first announced server."""
        server = DiscoveredServer(
            name="pi", host="192.168.1.10", port=6601, addresses=["192.168.1.10"]
        )
        monkeypatch.setattr(cli.ServerDiscovery, "discover_one", lambda timeout: server)

        config, _ = cli.build_config(["--discover"])
        assert (config.host, config.port) == ("192.168.1.10", 6601)

    def test_discover_nothing_found(
        self, stored: ConfigManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that the stored host is kept when discovery finds nothing."""
        stored.set_host("stored.local")
        monkeypatch.setattr(cli.ServerDiscovery, "discover_one", lambda timeout: None)

        config, _ = cli.build_config(["--discover"])
        assert config.host == "stored.local"


class TestMain:
    """Tests for the entry point."""

    def test_connection_failure(
        self, stored: ConfigManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a failed connection exits with status 1."""

        async def failing_run(_: SessionConfig) -> None:
            raise MpdConnectionError("Connection refused")

        monkeypatch.setattr(cli, "run", failing_run)
        monkeypatch.setattr("sys.argv", ["mpdctrl", "mpd.local"])
        assert cli.main() == 1

    def test_save(self, stored: ConfigManager, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that --save persists the settings."""

        async def quick_run(_: SessionConfig) -> None:
            return None

        monkeypatch.setattr(cli, "run", quick_run)
        monkeypatch.setattr("sys.argv", ["mpdctrl", "mpd.local", "--save"])
        assert cli.main() == 0
        assert stored.get_host() == "mpd.local"
