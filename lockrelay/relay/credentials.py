"""
Join request validation.

A join payload must look like ``{"key": "<secret>", "type": "device"|"mobile"}``
with nothing else in it.  The schema is checked first; only a well-formed
payload gets its key compared against the configured shared secret.

Usage
-----
    validator = CredentialValidator(settings.device_key)
    result = validator.validate(payload)
    if result.accepted:
        registry.join_group(conn.id, Group(result.request.type))
"""

import hmac
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from lockrelay.relay.errors import RejectReason

KEY_MAX_LENGTH: int = 20


class JoinRequest(BaseModel):
    """Untrusted join payload sent by a client."""

    key: str = Field(min_length=1, max_length=KEY_MAX_LENGTH)
    type: Literal["device", "mobile"]

    model_config = {"extra": "forbid", "strict": True}


@dataclass(frozen=True)
class JoinResult:
    request: JoinRequest | None = None
    reason: RejectReason | None = None

    @property
    def accepted(self) -> bool:
        return self.request is not None


def compare_secret(candidate: Any, secret: Any) -> bool:
    """
    Compare *candidate* against *secret* without an early exit on mismatch.

    Either side being empty or not a string is a mismatch, as is a length
    mismatch.  Equal-length strings are compared over every byte.
    """
    if not isinstance(candidate, str) or not isinstance(secret, str):
        return False
    if not candidate or not secret:
        return False
    if len(candidate) != len(secret):
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


class CredentialValidator:
    def __init__(self, secret: str) -> None:
        self._secret = secret

    def validate(self, payload: Any) -> JoinResult:
        try:
            request = JoinRequest.model_validate(payload)
        except ValidationError:
            return JoinResult(reason=RejectReason.SCHEMA_INVALID)

        if not compare_secret(request.key, self._secret):
            return JoinResult(reason=RejectReason.BAD_CREDENTIAL)

        return JoinResult(request=request)
