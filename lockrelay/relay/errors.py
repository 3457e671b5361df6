"""
Rejection and drop reasons shared by the relay components.
"""

from enum import Enum


class RejectReason(str, Enum):
    SCHEMA_INVALID = "schema_invalid"
    BAD_CREDENTIAL = "bad_credential"
    ROLE_CONFLICT = "role_conflict"
    WRONG_ROLE = "wrong_role"
    UNKNOWN_EVENT = "unknown_event"
    MALFORMED_FRAME = "malformed_frame"
    UNKNOWN_CONNECTION = "unknown_connection"


class RoleConflictError(Exception):
    """Raised when a connection that already has a role tries to join another group."""

    def __init__(self, conn_id: str, current: str, requested: str) -> None:
        super().__init__(
            f"connection {conn_id} already joined {current!r}, cannot join {requested!r}"
        )
        self.conn_id = conn_id
        self.current = current
        self.requested = requested
