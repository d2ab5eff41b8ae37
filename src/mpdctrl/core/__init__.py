"""Session engine.

This module contains the protocol session logic that sits between the
transport and application code, plus the Qt bridge.

Classes:
    MpdSession: Connection lifecycle, mirrored state and MPD controls.
    EventDispatcher: Typed event delivery with listener isolation.
    ResponseProcessor: Response interpretation state machine.
    CommandBatcher: Debounced idle/command cycles.
    CascadingLoader: Ordered reloads after connect and changes.
    StateStore: Session events as Qt signals.
    ConfigManager: QSettings wrapper for configuration.
    ServerDiscovery: Zeroconf browsing for MPD servers.
"""

from mpdctrl.core.commands import CommandBatcher
from mpdctrl.core.config import ConfigManager, SessionConfig
from mpdctrl.core.discovery import DiscoveredServer, ServerDiscovery
from mpdctrl.core.events import EventDispatcher, EventKind
from mpdctrl.core.loader import CascadingLoader
from mpdctrl.core.processor import ProcessorState, ReloadActions, ResponseProcessor
from mpdctrl.core.session import MpdSession
from mpdctrl.core.state import StateStore

__all__ = [
    "CascadingLoader",
    "CommandBatcher",
    "ConfigManager",
    "DiscoveredServer",
    "EventDispatcher",
    "EventKind",
    "MpdSession",
    "ProcessorState",
    "ReloadActions",
    "ResponseProcessor",
    "SessionConfig",
    "ServerDiscovery",
    "StateStore",
]
