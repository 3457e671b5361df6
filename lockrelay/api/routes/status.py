"""
GET /status — relay health and current lock state.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lockrelay.api.deps import get_engine
from lockrelay.relay import RelayEngine

router = APIRouter()


class LockStatus(BaseModel):
    open: bool
    updated_at: str | None


class StatusResponse(BaseModel):
    status: str
    lock: LockStatus
    connections: dict[str, int]
    stats: dict


@router.get("/status", response_model=StatusResponse)
def get_status(engine: RelayEngine = Depends(get_engine)) -> StatusResponse:
    """
    Returns the relay status.

    - **lock**: ``open`` is ``true`` when the device last reported the lock
      open; ``updated_at`` is ``null`` until the first report.
    - **connections**: live connections in total and per group.
    - **stats**: accepted/rejected joins, dropped events by reason and
      relayed events.
    """
    state = engine.state
    return StatusResponse(
        status="ok",
        lock=LockStatus(
            open=state.get(),
            updated_at=state.updated_at.isoformat() if state.updated_at else None,
        ),
        connections=engine.registry.counts(),
        stats=engine.stats.as_dict(),
    )
