"""Stateful client for the MPD text protocol."""

from mpdctrl.core.config import SessionConfig
from mpdctrl.core.events import EventKind
from mpdctrl.core.session import MpdSession

__all__ = ["EventKind", "MpdSession", "SessionConfig"]
__version__ = "0.1.0"
