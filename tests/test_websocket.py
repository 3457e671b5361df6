"""
Tests for WebSocket endpoint /ws.

Exercises the join handshake and relaying through a real app instance.
"""

from fastapi.testclient import TestClient

from lockrelay.config import Settings
from lockrelay.main import create_app

_KEY = "qwert12345"


def _client() -> TestClient:
    return TestClient(create_app(Settings(device_key=_KEY)))


def _join(role: str, key: str = _KEY) -> dict:
    return {"event": "join", "data": {"key": key, "type": role}}


def test_device_join_success():
    """A device with the right key is acknowledged and gets no status."""
    with _client() as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json(_join("device"))
            assert websocket.receive_json() == {"event": "joined", "data": True}

        body = client.get("/status").json()
        assert body["stats"]["joins_accepted"] == 1


def test_mobile_join_receives_status_then_ack():
    with _client() as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json(_join("mobile"))
            assert websocket.receive_json() == {"event": "status", "data": False}
            assert websocket.receive_json() == {"event": "joined", "data": True}


def test_join_failure_wrong_key():
    with _client() as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json(_join("mobile", key="wrong"))
            assert websocket.receive_json() == {"event": "joined", "data": False}

            # Still unauthenticated, but the socket stays usable.
            websocket.send_json(_join("mobile"))
            assert websocket.receive_json() == {"event": "status", "data": False}
            assert websocket.receive_json() == {"event": "joined", "data": True}


def test_malformed_frame_is_dropped():
    with _client() as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("not json")
            websocket.send_json(["join"])
            websocket.send_json(_join("device"))
            assert websocket.receive_json() == {"event": "joined", "data": True}

        body = client.get("/status").json()
        assert body["stats"]["dropped"]["malformed_frame"] == 2


def test_open_request_and_state_report():
    """Device joins, mobile joins, mobile asks to open, device reports open."""
    with _client() as client:
        with (
            client.websocket_connect("/ws") as device,
            client.websocket_connect("/ws") as mobile,
        ):
            device.send_json(_join("device"))
            assert device.receive_json() == {"event": "joined", "data": True}

            mobile.send_json(_join("mobile"))
            assert mobile.receive_json() == {"event": "status", "data": False}
            assert mobile.receive_json() == {"event": "joined", "data": True}

            mobile.send_json({"event": "send"})
            assert device.receive_json() == {"event": "open"}

            device.send_json({"event": "buka"})
            assert mobile.receive_json() == {"event": "status", "data": True}

            device.send_json({"event": "tutup"})
            assert mobile.receive_json() == {"event": "status", "data": False}

            device.send_json({"event": "buka"})
            assert mobile.receive_json() == {"event": "status", "data": True}

        body = client.get("/status").json()
        assert body["lock"]["open"] is True
        assert body["lock"]["updated_at"] is not None


def test_mobile_state_report_is_ignored():
    with _client() as client:
        with client.websocket_connect("/ws") as mobile:
            mobile.send_json(_join("mobile"))
            mobile.receive_json()
            mobile.receive_json()

            mobile.send_json({"event": "buka"})
            # A second join is answered, so the buka has been handled by now.
            mobile.send_json(_join("mobile"))
            assert mobile.receive_json() == {"event": "status", "data": False}
            assert mobile.receive_json() == {"event": "joined", "data": True}

        body = client.get("/status").json()
        assert body["lock"]["open"] is False
        assert body["stats"]["dropped"]["wrong_role"] == 1


def test_disconnect_cleans_up():
    with _client() as client:
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json(_join("device"))
            websocket.receive_json()
            assert client.get("/status").json()["connections"]["device"] == 1

        connections = client.get("/status").json()["connections"]
        assert connections == {"total": 0, "device": 0, "mobile": 0}
