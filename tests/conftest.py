"""Test fixtures for mpdctrl tests."""

import os
from collections.abc import Awaitable, Callable, Collection
from typing import Any

import pytest
from fakes import FakeTransport, full_load_script

from mpdctrl.core.config import SessionConfig
from mpdctrl.core.session import MpdSession

# Qt objects are never shown; run pytest-qt without a display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture
def transports() -> list[FakeTransport]:
    """Every transport the session created, oldest first."""
    return []


@pytest.fixture
def make_session(transports: list[FakeTransport]) -> Callable[..., MpdSession]:
    """Build a session wired to FakeTransports.

    Keyword arguments override SessionConfig fields; ``failing_attempts``
    holds the indexes of the connection attempts that fail.
    """

    def _make_session(failing_attempts: Collection[int] = (), **overrides: Any) -> MpdSession:
        settings: dict = {"reconnect_delay": 0, "batch_delay": 0.01}
        settings.update(overrides)

        def factory(_: SessionConfig) -> FakeTransport:
            transport = FakeTransport(fail_open=len(transports) in failing_attempts)
            transports.append(transport)
            return transport

        return MpdSession(SessionConfig(**settings), transport_factory=factory)

    return _make_session


@pytest.fixture
def connect(
    make_session: Callable[..., MpdSession], transports: list[FakeTransport]
) -> Callable[..., Awaitable[MpdSession]]:
    """Return a coroutine function opening a session and running the full load."""

    async def _connect(**overrides: Any) -> MpdSession:
        session = make_session(**overrides)
        await session.open()
        transports[-1].feed(full_load_script())
        return session

    return _connect
