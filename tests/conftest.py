"""Shared fixtures for the meshtopo test suite."""

from __future__ import annotations

import asyncio

import pytest

from meshtopo.devscan.address import normalize
from meshtopo.devscan.transport import BaseTransport
from meshtopo.exceptions import TransportTimeout

# ── transport fakes ───────────────────────────────────────────────────


class FakeTransport(BaseTransport):
    """In-memory devscan transport.

    ``responses`` maps addresses (any textual form) to a payload string or an
    exception instance to raise. Unknown addresses time out.
    """

    def __init__(self, responses=None, delays=None, hang=()):
        super().__init__()
        self.responses = {normalize(a): r for a, r in (responses or {}).items()}
        self.delays = {normalize(a): d for a, d in (delays or {}).items()}
        self.hang = {normalize(a) for a in hang}
        self.requested: list[str] = []
        self.opened = 0
        self.closed = 0
        self.active = 0
        self.max_active = 0

    async def open(self) -> None:
        self.opened += 1

    async def close(self) -> None:
        self.closed += 1

    async def request(self, address: str) -> str:
        self.requested.append(address)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if address in self.hang:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delays.get(address, 0))
            outcome = self.responses.get(address)
            if outcome is None:
                raise TransportTimeout(address)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.active -= 1


@pytest.fixture()
def fake_transport():
    """Factory fixture returning a FakeTransport for the given responses."""

    def _make(responses=None, **kwargs):
        return FakeTransport(responses, **kwargs)

    return _make


# ── address fixtures ──────────────────────────────────────────────────

COORDINATOR = "2222::3"


@pytest.fixture()
def coordinator():
    return COORDINATOR


@pytest.fixture()
def events():
    """List collecting DiscoveryEvents; pass ``events.append`` as on_event."""
    return []
