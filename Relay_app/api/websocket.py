# Relay_app/api/websocket.py
import logging
from fastapi import APIRouter, WebSocket

from Relay_app.core.connection import WebSocketConnection
from Relay_app.core.hub import RelayHub

log = logging.getLogger(__name__)
ws_router = APIRouter()

# 역할은 경로로 결정 (/stream → streamer, /view → viewer) → 모든 경로를 여기서 받는다
@ws_router.websocket("/{path:path}")
async def relay_ws(ws: WebSocket, path: str):
    hub: RelayHub = ws.app.state.hub
    await ws.accept()

    conn = WebSocketConnection(ws)
    # 쿼리스트링은 일부러 제외: 역할 판별은 경로(ws.url.path)만 본다
    await hub.on_connect(conn, ws.url.path)
    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                log.info("[WS] client disconnected: code=%s", message.get("code"))
                break
            # 1) 바이너리 → 프레임 중계, 2) 텍스트 → 제어 메시지
            if message.get("bytes") is not None:
                await hub.on_message(conn, message["bytes"])
            elif message.get("text") is not None:
                await hub.on_message(conn, message["text"])
    except Exception as e:
        await hub.on_error(conn, e)
    finally:
        await hub.on_close(conn)
