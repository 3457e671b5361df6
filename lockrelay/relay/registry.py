"""
Live connection tracking and role-group broadcasting.

Every accepted socket is registered as a ``Connection``.  After a successful
join it also belongs to exactly one of the two fixed groups, ``device`` or
``mobile``.  A connection's role is stored on the connection itself and set
once; the group sets are only a fan-out index.

Broadcasting always targets the group opposite the sender's, so a sender
never receives its own broadcast.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from lockrelay.relay.errors import RoleConflictError

logger = logging.getLogger(__name__)


class Group(str, Enum):
    DEVICE = "device"
    MOBILE = "mobile"

    @property
    def opposite(self) -> "Group":
        return Group.MOBILE if self is Group.DEVICE else Group.DEVICE


@dataclass(eq=False)
class Connection:
    """One live client session."""

    id: str
    websocket: Any
    connected_at: datetime = field(default_factory=datetime.now)
    role: Group | None = None


def make_frame(event: str, payload: Any = None) -> dict[str, Any]:
    frame: dict[str, Any] = {"event": event}
    if payload is not None:
        frame["data"] = payload
    return frame


class ConnectionRegistry:
    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._groups: dict[Group, set[str]] = {group: set() for group in Group}
        self._lock = asyncio.Lock()

    async def register(self, conn: Connection) -> None:
        async with self._lock:
            self._connections[conn.id] = conn
        logger.info(
            "Client connected: %s (total: %d)", conn.id, len(self._connections)
        )

    async def join_group(self, conn_id: str, group: Group) -> None:
        """
        Put *conn_id* into *group*.

        The first successful join fixes the connection's role.  Joining the
        same group again does nothing; joining the other group raises
        ``RoleConflictError`` and leaves membership untouched.
        """
        async with self._lock:
            conn = self._connections.get(conn_id)
            if conn is None:
                raise KeyError(conn_id)
            if conn.role is not None and conn.role is not group:
                raise RoleConflictError(conn_id, conn.role.value, group.value)
            conn.role = group
            self._groups[group].add(conn_id)
        logger.info("Client %s joined group %s", conn_id, group.value)

    def __contains__(self, conn_id: str) -> bool:
        return conn_id in self._connections

    def group_of(self, conn_id: str) -> Group | None:
        conn = self._connections.get(conn_id)
        return conn.role if conn is not None else None

    async def remove(self, conn_id: str) -> None:
        """Forget *conn_id*.  Unknown or never-joined ids are ignored."""
        async with self._lock:
            conn = self._connections.pop(conn_id, None)
            for members in self._groups.values():
                members.discard(conn_id)
        if conn is not None:
            logger.info(
                "Client disconnected: %s (remaining: %d)",
                conn_id,
                len(self._connections),
            )

    async def send(self, conn_id: str, event: str, payload: Any = None) -> bool:
        """Send one event to a single connection.  Returns False if it failed."""
        conn = self._connections.get(conn_id)
        if conn is None:
            return False
        try:
            await conn.websocket.send_json(make_frame(event, payload))
            return True
        except Exception as exc:
            logger.warning("Failed to send to %s: %s - removing client", conn_id, exc)
            await self._evict(conn)
            return False

    async def broadcast(
        self, source_group: Group, event: str, payload: Any = None
    ) -> int:
        """
        Send *event* to every connection in the group opposite *source_group*.

        Returns the number of connections that received it.  Connections whose
        send fails are removed.
        """
        target = source_group.opposite
        async with self._lock:
            targets = [
                self._connections[conn_id]
                for conn_id in self._groups[target]
                if conn_id in self._connections
            ]

        if not targets:
            return 0

        frame = make_frame(event, payload)
        delivered = 0
        disconnected: list[Connection] = []
        for conn in targets:
            try:
                await conn.websocket.send_json(frame)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "Failed to send to %s: %s - removing client", conn.id, exc
                )
                disconnected.append(conn)

        for conn in disconnected:
            await self._evict(conn)

        logger.debug(
            "Broadcast %s to %s: %d delivered", event, target.value, delivered
        )
        return delivered

    async def _evict(self, conn: Connection) -> None:
        """
        Drop a connection whose send failed and close its socket.

        Closing ends the transport's receive loop, which then runs the
        normal disconnect path.
        """
        await self.remove(conn.id)
        try:
            await conn.websocket.close()
        except Exception as exc:
            logger.debug("Closing %s after failed send: %s", conn.id, exc)

    def counts(self) -> dict[str, int]:
        return {
            "total": len(self._connections),
            **{group.value: len(members) for group, members in self._groups.items()},
        }
