"""End-to-end tests through the FastAPI WebSocket endpoints."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from Relay_app.config import Settings
from Relay_app.main import create_app


@pytest.fixture
def make_client():
    def _make(**overrides):
        overrides.setdefault("sweep_interval_sec", 3600.0)
        return TestClient(create_app(Settings(**overrides)))
    return _make


def test_healthz(make_client):
    with make_client() as client:
        assert client.get("/healthz").json() == {"status": "ok"}


def test_stream_view_lifecycle(make_client):
    with make_client() as client:
        with client.websocket_connect("/view") as viewer:
            assert viewer.receive_json() == {"type": "connected", "status": "ok", "clientType": "viewer"}

            with client.websocket_connect("/stream") as producer:
                assert producer.receive_json()["clientType"] == "streamer"
                producer.send_json({"type": "register", "deviceId": "dev1"})
                assert producer.receive_json() == {
                    "type": "registered", "status": "success", "deviceId": "dev1",
                }

                viewer.send_json({"type": "view", "targetDevice": "dev1"})
                assert viewer.receive_json() == {
                    "type": "stream_available", "status": "ok", "targetDevice": "dev1",
                }

                assert client.get("/stats").json() == {
                    "mode": "multi", "connections": 2, "streams": 1, "viewers": 1,
                }

                for frame in (b"\x89PNG-1", b"\x89PNG-2"):
                    producer.send_bytes(frame)
                assert viewer.receive_bytes() == b"\x89PNG-1"
                assert viewer.receive_bytes() == b"\x89PNG-2"

                # leaving the block cancels the server task, so close first and wait
                producer.close()
                assert viewer.receive_json() == {"type": "stream_ended", "message": "Stream has ended"}

            viewer.send_json({"type": "view", "targetDevice": "dev1"})
            assert viewer.receive_json()["type"] == "no_stream"


def test_malformed_text_does_not_drop_connection(make_client):
    with make_client() as client:
        with client.websocket_connect("/view") as viewer:
            viewer.receive_json()
            viewer.send_text("{not json")
            viewer.send_json({"type": "hello"})
            viewer.send_json({"type": "view", "targetDevice": "nobody"})
            assert viewer.receive_json() == {
                "type": "no_stream", "status": "error", "message": "Stream not available",
            }


def test_unknown_path_is_tracked_as_unknown(make_client):
    with make_client() as client:
        with client.websocket_connect("/somewhere") as ws:
            assert ws.receive_json() == {"type": "connected", "status": "ok", "clientType": "unknown"}


def test_single_mode_viewer_notified_when_producer_arrives(make_client):
    with make_client(relay_mode="single") as client:
        with client.websocket_connect("/view") as viewer:
            viewer.receive_json()
            assert viewer.receive_json()["type"] == "no_stream"

            with client.websocket_connect("/stream") as producer:
                producer.receive_json()
                assert viewer.receive_json() == {"type": "stream_available", "status": "ok"}

                producer.send_bytes(b"jpeg")
                assert viewer.receive_bytes() == b"jpeg"

                producer.close()
                assert viewer.receive_json()["type"] == "stream_ended"


def test_single_mode_new_producer_evicts_previous(make_client):
    with make_client(relay_mode="single") as client:
        with client.websocket_connect("/view") as viewer:
            viewer.receive_json()
            assert viewer.receive_json()["type"] == "no_stream"

            with client.websocket_connect("/stream") as first:
                first.receive_json()
                assert viewer.receive_json() == {"type": "stream_available", "status": "ok"}

                with client.websocket_connect("/stream") as second:
                    assert second.receive_json()["clientType"] == "streamer"

                    # the previous streamer is closed by the server
                    with pytest.raises(WebSocketDisconnect):
                        first.receive_json()
                    assert viewer.receive_json() == {"type": "stream_available", "status": "ok"}

                    second.send_bytes(b"from-second")
                    assert viewer.receive_bytes() == b"from-second"

                    second.close()
                    assert viewer.receive_json()["type"] == "stream_ended"


def test_query_string_does_not_change_role(make_client):
    with make_client() as client:
        with client.websocket_connect("/ws?next=/stream") as ws:
            assert ws.receive_json()["clientType"] == "unknown"
