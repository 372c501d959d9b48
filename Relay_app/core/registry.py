# Relay_app/core/registry.py
"""Routing tables for the relay.

Only connection ids are stored here. Resolving an id to a live socket is
the hub's job (ConnectionTable.live), so a stale id simply resolves to
nothing.
"""
from typing import Callable, Optional


class StreamRegistry:
    """Multi-producer registry.

    producers:     deviceId -> producer conn id (one per identity)
    subscriptions: viewer conn id -> deviceId (one target per viewer)
    """

    mode = "multi"

    def __init__(self) -> None:
        self._producers: dict[str, int] = {}
        self._device_of: dict[int, str] = {}      # _producers 역방향 인덱스
        self._subscriptions: dict[int, str] = {}

    # ---------------- 스트리머 ----------------
    def register_producer(self, device_id: str, conn_id: int) -> tuple[Optional[int], Optional[str]]:
        """Install `conn_id` as the producer of `device_id`.

        Returns (replaced_conn_id, released_device_id): the connection that
        previously held this identity, and the identity this connection held
        before, if it changed.
        """
        released = self._device_of.get(conn_id)
        if released == device_id:
            released = None
        elif released is not None:
            del self._producers[released]

        replaced = self._producers.get(device_id)
        if replaced == conn_id:
            replaced = None
        elif replaced is not None:
            del self._device_of[replaced]

        self._producers[device_id] = conn_id
        self._device_of[conn_id] = device_id
        return replaced, released

    def producer_for(self, device_id: str) -> Optional[int]:
        return self._producers.get(device_id)

    def device_of(self, conn_id: int) -> Optional[str]:
        return self._device_of.get(conn_id)

    def remove_producer(self, conn_id: int) -> Optional[str]:
        device_id = self._device_of.pop(conn_id, None)
        if device_id is not None:
            del self._producers[device_id]
        return device_id

    # ---------------- 뷰어 ----------------
    def subscribe(self, conn_id: int, device_id: str) -> None:
        self._subscriptions[conn_id] = device_id

    def subscribers_of(self, device_id: str) -> list[int]:
        return [c for c, d in self._subscriptions.items() if d == device_id]

    def remove_consumer(self, conn_id: int) -> bool:
        return self._subscriptions.pop(conn_id, None) is not None

    # ---------------- 유지보수 ----------------
    def prune(self, is_live: Callable[[int], bool]) -> tuple[int, int]:
        """Drop every entry whose connection fails `is_live`. Returns (producers, viewers) removed."""
        dead_producers = [c for c in self._device_of if not is_live(c)]
        for c in dead_producers:
            self.remove_producer(c)
        dead_viewers = [c for c in self._subscriptions if not is_live(c)]
        for c in dead_viewers:
            del self._subscriptions[c]
        return len(dead_producers), len(dead_viewers)

    @property
    def producer_count(self) -> int:
        return len(self._producers)

    @property
    def consumer_count(self) -> int:
        return len(self._subscriptions)


class SingleStreamRegistry(StreamRegistry):
    """Single-producer registry: one producer slot, every viewer watches it.

    Identities are ignored and pinned to SLOT, so routing and reaping are
    shared with the multi-producer table.
    """

    mode = "single"
    SLOT = "default"

    def register_producer(self, device_id: Optional[str], conn_id: int) -> tuple[Optional[int], Optional[str]]:
        return super().register_producer(self.SLOT, conn_id)

    def producer_for(self, device_id: Optional[str] = None) -> Optional[int]:
        return super().producer_for(self.SLOT)

    def subscribe(self, conn_id: int, device_id: Optional[str] = None) -> None:
        super().subscribe(conn_id, self.SLOT)

    def subscribers_of(self, device_id: Optional[str] = None) -> list[int]:
        return super().subscribers_of(self.SLOT)

    @property
    def current_producer(self) -> Optional[int]:
        return self.producer_for()
