"""
Shared FastAPI dependencies.
"""

from fastapi import Request, WebSocket

from lockrelay.relay import RelayEngine


def get_engine(request: Request) -> RelayEngine:
    """Return the relay engine owned by the running application."""
    return request.app.state.engine


def get_ws_engine(websocket: WebSocket) -> RelayEngine:
    """WebSocket flavour of ``get_engine``."""
    return websocket.app.state.engine
