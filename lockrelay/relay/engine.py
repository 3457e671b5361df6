"""
Relay engine — the per-event handler behind every WebSocket connection.

Inbound events
--------------
- ``join``  ``{"key": str, "type": "device"|"mobile"}``
    Answered with ``joined: bool``.  An accepted mobile client first gets
    ``status: bool`` with the current lock state.
- ``send``  (mobile only) relayed to the device group as ``open``.
- ``buka``  (device only) lock reported open; mobile group gets ``status: true``.
- ``tutup`` (device only) lock reported closed; mobile group gets ``status: false``.

Authorization
-------------
The sender's role is looked up in the registry on every event rather than
taken from anything the client says.  Events from a connection in the wrong
group (or in no group) are dropped without a reply; only ``join`` ever
answers.  Every drop goes through ``_drop`` which logs it and counts it in
``RelayStats``.
"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from lockrelay.relay.credentials import CredentialValidator
from lockrelay.relay.errors import RejectReason, RoleConflictError
from lockrelay.relay.registry import (
    Connection,
    ConnectionRegistry,
    Group,
    make_frame,
)
from lockrelay.relay.state import LockStateStore

logger = logging.getLogger(__name__)

EVENT_JOIN = "join"
EVENT_SEND = "send"
EVENT_OPENED = "buka"
EVENT_CLOSED = "tutup"

EVENT_JOINED = "joined"
EVENT_STATUS = "status"
EVENT_OPEN = "open"


@dataclass
class RelayStats:
    joins_accepted: int = 0
    joins_rejected: Counter = field(default_factory=Counter)
    dropped: Counter = field(default_factory=Counter)
    relayed: Counter = field(default_factory=Counter)

    def as_dict(self) -> dict[str, Any]:
        return {
            "joins_accepted": self.joins_accepted,
            "joins_rejected": dict(self.joins_rejected),
            "dropped": dict(self.dropped),
            "relayed": dict(self.relayed),
        }


class RelayEngine:
    def __init__(
        self,
        validator: CredentialValidator,
        registry: ConnectionRegistry,
        state: LockStateStore,
        stats: RelayStats | None = None,
    ) -> None:
        self.validator = validator
        self.registry = registry
        self.state = state
        self.stats = stats or RelayStats()
        self._handlers: dict[str, Callable[[Connection, Any], Awaitable[None]]] = {
            EVENT_JOIN: self._on_join,
            EVENT_SEND: self._on_send,
            EVENT_OPENED: self._on_opened,
            EVENT_CLOSED: self._on_closed,
        }

    async def connect(self, websocket: Any) -> Connection:
        conn = Connection(id=uuid.uuid4().hex, websocket=websocket)
        await self.registry.register(conn)
        return conn

    async def disconnect(self, conn: Connection) -> None:
        await self.registry.remove(conn.id)

    async def handle(self, conn: Connection, event: str, data: Any = None) -> None:
        handler = self._handlers.get(event)
        if handler is None:
            self._drop(conn, event, RejectReason.UNKNOWN_EVENT)
            return
        await handler(conn, data)

    def report_malformed(self, conn: Connection) -> None:
        self._drop(conn, None, RejectReason.MALFORMED_FRAME)

    # ── Event handlers ───────────────────────────────────────────────────────

    async def _on_join(self, conn: Connection, payload: Any) -> None:
        result = self.validator.validate(payload)
        if not result.accepted:
            await self._reject_join(conn, result.reason)
            return

        group = Group(result.request.type)
        try:
            await self.registry.join_group(conn.id, group)
        except RoleConflictError:
            await self._reject_join(conn, RejectReason.ROLE_CONFLICT)
            return
        except KeyError:
            # Evicted after a failed send; its socket is already being closed.
            await self._reject_join(conn, RejectReason.UNKNOWN_CONNECTION)
            return

        self.stats.joins_accepted += 1
        logger.info("Client %s joined as %s", conn.id, group.value)
        if group is Group.MOBILE:
            await self.registry.send(conn.id, EVENT_STATUS, self.state.get())
        await self.registry.send(conn.id, EVENT_JOINED, True)

    async def _on_send(self, conn: Connection, _payload: Any) -> None:
        if not self._has_role(conn, EVENT_SEND, Group.MOBILE):
            return
        delivered = await self.registry.broadcast(Group.MOBILE, EVENT_OPEN)
        self.stats.relayed[EVENT_OPEN] += 1
        logger.info("Open request from %s relayed to %d device(s)", conn.id, delivered)

    async def _on_opened(self, conn: Connection, _payload: Any) -> None:
        await self._report_state(conn, EVENT_OPENED, True)

    async def _on_closed(self, conn: Connection, _payload: Any) -> None:
        await self._report_state(conn, EVENT_CLOSED, False)

    # ── Helpers ──────────────────────────────────────────────────────────────

    async def _report_state(self, conn: Connection, event: str, value: bool) -> None:
        if not self._has_role(conn, event, Group.DEVICE):
            return
        async with self.state.lock:
            self.state.set(value)
            delivered = await self.registry.broadcast(Group.DEVICE, EVENT_STATUS, value)
        self.stats.relayed[EVENT_STATUS] += 1
        logger.info(
            "Lock %s by %s, status sent to %d mobile(s)",
            "opened" if value else "closed",
            conn.id,
            delivered,
        )

    def _has_role(self, conn: Connection, event: str, required: Group) -> bool:
        if self.registry.group_of(conn.id) is not required:
            self._drop(conn, event, RejectReason.WRONG_ROLE)
            return False
        return True

    async def _reject_join(self, conn: Connection, reason: RejectReason) -> None:
        self.stats.joins_rejected[reason.value] += 1
        logger.warning("Join rejected for %s: %s", conn.id, reason.value)
        await self._reply(conn, EVENT_JOINED, False)

    async def _reply(self, conn: Connection, event: str, payload: Any) -> None:
        if conn.id in self.registry:
            await self.registry.send(conn.id, event, payload)
            return
        try:
            await conn.websocket.send_json(make_frame(event, payload))
        except Exception as exc:
            logger.debug("Could not reply to unregistered %s: %s", conn.id, exc)

    def _drop(self, conn: Connection, event: str | None, reason: RejectReason) -> None:
        self.stats.dropped[reason.value] += 1
        logger.warning(
            "Dropped event %r from %s: %s", event, conn.id, reason.value
        )
