"""Shared fixtures for relay tests."""

import pytest

from Relay_app.core.connection import Connection


class FakeConnection(Connection):
    """In-memory connection recording everything sent to it."""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.sent = []
        self.live = True
        self.closed = False
        self.fail = fail

    def is_live(self) -> bool:
        return self.live

    async def send_json(self, payload: dict) -> bool:
        if not self.live:
            return False
        if self.fail:
            raise RuntimeError("socket exploded")
        self.sent.append(payload)
        return True

    async def send_bytes(self, data: bytes) -> bool:
        if not self.live:
            return False
        if self.fail:
            raise RuntimeError("socket exploded")
        self.sent.append(data)
        return True

    async def close(self, code: int = 1000) -> None:
        self.closed = True
        self.live = False

    @property
    def json(self) -> list:
        return [m for m in self.sent if isinstance(m, dict)]

    @property
    def frames(self) -> list:
        return [m for m in self.sent if isinstance(m, bytes)]

    @property
    def last(self):
        return self.json[-1] if self.json else None


@pytest.fixture
def make_conn():
    """Factory for FakeConnection instances."""
    return FakeConnection
