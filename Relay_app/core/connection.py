# Relay_app/core/connection.py
import itertools
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterator, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

log = logging.getLogger(__name__)


class Role(str, Enum):
    """Connection role, fixed once at accept time. Values are the wire `clientType`."""
    PRODUCER = "streamer"
    CONSUMER = "viewer"
    UNKNOWN = "unknown"


def classify(path: str) -> Role:
    # 요청 경로 부분 문자열 매칭
    if "/stream" in path:
        return Role.PRODUCER
    if "/view" in path:
        return Role.CONSUMER
    return Role.UNKNOWN


class Connection(ABC):
    """Bidirectional channel as seen by the relay.

    `conn_id` is assigned by the ConnectionTable; the registry only ever
    stores ids, never the connection object itself.
    """

    def __init__(self) -> None:
        self.conn_id: Optional[int] = None
        self.role: Role = Role.UNKNOWN

    @abstractmethod
    def is_live(self) -> bool: ...

    @abstractmethod
    async def send_json(self, payload: dict) -> bool: ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> bool: ...

    @abstractmethod
    async def close(self, code: int = 1000) -> None: ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.conn_id} role={self.role.value}>"


class WebSocketConnection(Connection):
    """starlette WebSocket adapter. Send failures mark the socket dead instead of raising."""

    def __init__(self, ws: WebSocket):
        super().__init__()
        self.ws = ws
        self._failed = False

    def is_live(self) -> bool:
        if self._failed:
            return False
        return (
            self.ws.client_state == WebSocketState.CONNECTED
            and self.ws.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, payload: dict) -> bool:
        if not self.is_live():
            return False
        try:
            await self.ws.send_json(payload)
            return True
        except Exception as e:
            log.warning("[WS] send_json to %r failed: %s", self, e)
            self._failed = True
            return False

    async def send_bytes(self, data: bytes) -> bool:
        if not self.is_live():
            return False
        try:
            await self.ws.send_bytes(data)
            return True
        except Exception as e:
            log.warning("[WS] send_bytes to %r failed: %s", self, e)
            self._failed = True
            return False

    async def close(self, code: int = 1000) -> None:
        if self.ws.application_state != WebSocketState.CONNECTED:
            return
        try:
            await self.ws.close(code=code)
        except Exception as e:
            log.warning("[WS] close of %r failed: %s", self, e)
        finally:
            self._failed = True


class ConnectionTable:
    """Live connections indexed by a stable integer id."""

    def __init__(self) -> None:
        self._conns: dict[int, Connection] = {}
        self._ids = itertools.count(1)

    def add(self, conn: Connection) -> int:
        conn.conn_id = next(self._ids)
        self._conns[conn.conn_id] = conn
        return conn.conn_id

    def get(self, conn_id: int) -> Optional[Connection]:
        return self._conns.get(conn_id)

    def live(self, conn_id: int) -> Optional[Connection]:
        # 없거나 죽은 항목은 "사라진 것"과 동일
        conn = self._conns.get(conn_id)
        if conn is None or not conn.is_live():
            return None
        return conn

    def remove(self, conn_id: Optional[int]) -> Optional[Connection]:
        if conn_id is None:
            return None
        return self._conns.pop(conn_id, None)

    def __contains__(self, conn_id: object) -> bool:
        return conn_id in self._conns

    def __len__(self) -> int:
        return len(self._conns)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._conns.values()))
