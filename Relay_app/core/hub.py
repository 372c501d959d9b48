# Relay_app/core/hub.py
"""Connection registry and fan-out dispatcher.

One RelayHub is built per application and handed to the transport layer.
All registry reads and writes happen under a single asyncio.Lock; sends
happen after the lock is released, against a snapshot of live targets.
"""
import asyncio
import logging
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from Relay_app.core.connection import Connection, ConnectionTable, Role, classify
from Relay_app.core.messages import (
    ControlMessage, Connected, Registered, StreamAvailable, NoStream, StreamEnded,
)
from Relay_app.core.registry import StreamRegistry, SingleStreamRegistry

log = logging.getLogger(__name__)


class RelayHub:
    def __init__(self, mode: str = "multi"):
        if mode not in ("multi", "single"):
            raise ValueError(f"unknown relay mode: {mode!r}")
        self.table = ConnectionTable()
        self.registry: StreamRegistry = SingleStreamRegistry() if mode == "single" else StreamRegistry()
        self._lock = asyncio.Lock()

    @property
    def mode(self) -> str:
        return self.registry.mode

    # ---------------- 전송 계층 이벤트 ----------------
    async def on_connect(self, conn: Connection, path: str) -> Role:
        conn.role = classify(path)
        async with self._lock:
            self.table.add(conn)
        log.info("[RELAY] client connected: %r path=%s", conn, path)

        await conn.send_json(Connected(clientType=conn.role.value).to_wire())

        if self.mode == "single":
            if conn.role is Role.PRODUCER:
                await self._claim_slot(conn)
            elif conn.role is Role.CONSUMER:
                await self._watch_slot(conn)
        return conn.role

    async def on_message(self, conn: Connection, payload: Union[str, bytes]) -> None:
        if conn.role is Role.UNKNOWN:
            return
        if isinstance(payload, (bytes, bytearray, memoryview)):
            await self.dispatch_frame(conn, bytes(payload))
        else:
            await self.handle_control(conn, payload)

    async def on_close(self, conn: Connection) -> None:
        viewers: list[Connection] = []
        async with self._lock:
            if self.table.remove(conn.conn_id) is None:
                return                              # 이미 정리됨
            ended = None
            if conn.role is Role.PRODUCER:
                ended = self.registry.remove_producer(conn.conn_id)
                if ended is not None:
                    viewers = self._live_conns(self.registry.subscribers_of(ended))
            elif conn.role is Role.CONSUMER:
                self.registry.remove_consumer(conn.conn_id)

        if ended is not None:
            log.info("[RELAY] streamer removed: %s (%d viewers notified)", ended, len(viewers))
        else:
            log.info("[RELAY] client disconnected: %r", conn)
        await self._broadcast_json(viewers, StreamEnded().to_wire())

    async def on_error(self, conn: Connection, err: BaseException) -> None:
        log.error("[RELAY] transport error on %r: %s", conn, err)
        await self.on_close(conn)

    # ---------------- 제어 메시지 ----------------
    async def handle_control(self, conn: Connection, raw: Union[str, bytes]) -> None:
        try:
            msg = ControlMessage.model_validate_json(raw)
        except ValidationError as e:
            log.warning("[RELAY] malformed message from %r: %s", conn, e.errors())
            return

        log.info("[RELAY] ⇐ %s from %s", msg.type, conn.role.value)
        if msg.type == "register":
            await self._handle_register(conn, msg)
        elif msg.type == "view":
            await self._handle_view(conn, msg)
        else:
            log.warning("[RELAY] unknown message type: %r", msg.type)

    async def _handle_register(self, conn: Connection, msg: ControlMessage) -> None:
        if conn.role is not Role.PRODUCER:
            log.debug("[RELAY] register from %r ignored", conn)
            return

        if self.mode == "single":
            if await self._claim_slot(conn):
                await conn.send_json(Registered().to_wire())
            return

        device_id = msg.deviceId
        if not device_id:
            log.debug("[RELAY] register without deviceId ignored")
            return

        async with self._lock:
            if conn.conn_id not in self.table:
                return
            replaced, released = self.registry.register_producer(device_id, conn.conn_id)
            waiting = self._live_conns(self.registry.subscribers_of(device_id))
            orphaned = self._live_conns(self.registry.subscribers_of(released)) if released else []

        if replaced is not None:
            log.info("[RELAY] streamer %s replaced connection %d", device_id, replaced)
        log.info("[RELAY] streamer registered: %s", device_id)

        await conn.send_json(Registered(deviceId=device_id).to_wire())
        await self._broadcast_json(orphaned, StreamEnded().to_wire())
        await self._broadcast_json(waiting, StreamAvailable(targetDevice=device_id).to_wire())

    async def _handle_view(self, conn: Connection, msg: ControlMessage) -> None:
        if conn.role is not Role.CONSUMER:
            log.debug("[RELAY] view from %r ignored", conn)
            return

        target = msg.targetDevice
        if self.mode == "multi" and not target:
            log.debug("[RELAY] view without targetDevice ignored")
            return

        async with self._lock:
            if conn.conn_id not in self.table:
                return
            self.registry.subscribe(conn.conn_id, target)
            producer = self._resolve(self.registry.producer_for(target))

        log.info("[RELAY] viewer wants to watch: %s", target or SingleStreamRegistry.SLOT)
        await self._report_availability(conn, producer, target)

    # ---------------- 단일 스트리머 슬롯 ----------------
    async def _claim_slot(self, conn: Connection) -> bool:
        """Make `conn` the sole producer, closing whoever held the slot."""
        async with self._lock:
            if conn.conn_id not in self.table:
                return False
            already = self.registry.producer_for(None) == conn.conn_id
            replaced, _ = self.registry.register_producer(None, conn.conn_id)
            evicted = self.table.get(replaced) if replaced is not None else None
            viewers = [] if already else self._live_conns(self.registry.subscribers_of(None))

        if evicted is not None:
            log.info("[RELAY] evicting previous streamer %r", evicted)
            await evicted.close()
        if not already:
            log.info("[RELAY] streamer took the slot: %r", conn)
        await self._broadcast_json(viewers, StreamAvailable().to_wire())
        return True

    async def _watch_slot(self, conn: Connection) -> None:
        async with self._lock:
            if conn.conn_id not in self.table:
                return
            self.registry.subscribe(conn.conn_id, None)
            producer = self._resolve(self.registry.producer_for(None))
        await self._report_availability(conn, producer, None)

    async def _report_availability(
        self, conn: Connection, producer: Optional[Connection], target: Optional[str]
    ) -> None:
        if producer is not None:
            await conn.send_json(StreamAvailable(targetDevice=target).to_wire())
        else:
            log.info("[RELAY] stream not available: %s", target)
            await conn.send_json(NoStream().to_wire())

    # ---------------- 프레임 중계 ----------------
    async def dispatch_frame(self, conn: Connection, data: bytes) -> int:
        """Forward `data` unchanged to every live viewer of the sender. Returns the delivery count."""
        async with self._lock:
            device_id = self.registry.device_of(conn.conn_id) if conn.conn_id is not None else None
            if device_id is None:
                return 0
            viewers = self._live_conns(self.registry.subscribers_of(device_id))

        delivered = 0
        for viewer in viewers:
            try:
                if await viewer.send_bytes(data):
                    delivered += 1
            except Exception:
                log.exception("[RELAY] frame delivery to %r failed", viewer)
        if delivered:
            log.debug("[RELAY] frame from %s sent to %d viewers", device_id, delivered)
        return delivered

    # ---------------- 정리(reaping) ----------------
    async def sweep(self) -> tuple[int, int]:
        """Drop registry entries whose connection is gone or dead. No notifications are sent."""
        async with self._lock:
            removed = self.registry.prune(lambda c: self._resolve(c) is not None)
            streams = self.registry.producer_count
            viewers = self.registry.consumer_count

        if any(removed):
            log.info("[SWEEP] cleaned up %d dead streams, %d dead viewers", *removed)
        log.info("[SWEEP] Stats: %d streams, %d viewers", streams, viewers)
        return removed

    def stats(self) -> dict:
        return {
            "mode": self.mode,
            "connections": len(self.table),
            "streams": self.registry.producer_count,
            "viewers": self.registry.consumer_count,
        }

    # ---------------- 헬퍼 ----------------
    def _resolve(self, conn_id: Optional[int]) -> Optional[Connection]:
        if conn_id is None:
            return None
        return self.table.live(conn_id)

    def _live_conns(self, conn_ids: Iterable[int]) -> list[Connection]:
        return [c for c in map(self._resolve, conn_ids) if c is not None]

    async def _broadcast_json(self, conns: Iterable[Connection], payload: dict) -> None:
        for c in conns:
            try:
                await c.send_json(payload)
            except Exception:
                log.exception("[RELAY] notify %r failed", c)
