# Connection lifecycle and event relay
from lockrelay.relay.credentials import CredentialValidator, JoinRequest, compare_secret
from lockrelay.relay.engine import RelayEngine, RelayStats
from lockrelay.relay.errors import RejectReason, RoleConflictError
from lockrelay.relay.registry import Connection, ConnectionRegistry, Group
from lockrelay.relay.state import LockStateStore

__all__ = [
    "CredentialValidator",
    "JoinRequest",
    "compare_secret",
    "RelayEngine",
    "RelayStats",
    "RejectReason",
    "RoleConflictError",
    "Connection",
    "ConnectionRegistry",
    "Group",
    "LockStateStore",
]
