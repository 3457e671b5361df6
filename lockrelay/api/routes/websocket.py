"""
WebSocket endpoint for the device/mobile relay.

WebSocket /ws
-------------
Every frame in either direction is a JSON object:
    {"event": "<name>", "data": <payload>}
``data`` is omitted for events without a payload.

Handshake
---------
A client must join before anything it sends is honoured:
    {"event": "join", "data": {"key": "<shared secret>", "type": "mobile"}}

The server answers with ``{"event": "joined", "data": true|false}``.  An
accepted mobile client receives ``{"event": "status", "data": <bool>}`` right
before the ``joined`` acknowledgement.

Commands
--------
    mobile → {"event": "send"}   devices receive {"event": "open"}
    device → {"event": "buka"}   mobiles receive {"event": "status", "data": true}
    device → {"event": "tutup"}  mobiles receive {"event": "status", "data": false}

Frames that are not valid JSON objects of that shape are dropped; the
connection stays open.

Usage
-----
    import json
    import websockets

    async with websockets.connect("ws://localhost:3000/ws") as ws:
        await ws.send(json.dumps({"event": "join", "data": {"key": "...", "type": "mobile"}}))
        while True:
            frame = json.loads(await ws.recv())
            if frame["event"] == "status":
                print("open" if frame["data"] else "locked")
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from lockrelay.api.deps import get_ws_engine
from lockrelay.relay import Connection, RelayEngine

logger = logging.getLogger(__name__)
router = APIRouter()


class ClientFrame(BaseModel):
    """A single event frame sent by a client."""

    event: str
    data: Any = None


async def _receive_frame(websocket: WebSocket) -> str | bytes:
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(code=message.get("code", 1000))
    if message.get("text") is not None:
        return message["text"]
    return message.get("bytes") or b""


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket, engine: RelayEngine = Depends(get_ws_engine)
) -> None:
    """
    Relay endpoint for device and mobile clients.

    Frames from one socket are handled one at a time in arrival order.
    """
    await websocket.accept()

    conn: Connection | None = None

    try:
        conn = await engine.connect(websocket)

        while True:
            raw = await _receive_frame(websocket)
            try:
                frame = ClientFrame.model_validate_json(raw)
            except ValidationError:
                engine.report_malformed(conn)
                continue

            await engine.handle(conn, frame.event, frame.data)

    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
    except Exception as exc:
        logger.error("WebSocket error: %s", exc)
    finally:
        if conn is not None:
            await engine.disconnect(conn)
