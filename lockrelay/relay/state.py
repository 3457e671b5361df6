"""
Process-wide lock state: ``True`` means open/unlocked, ``False`` locked.

The store is created by whoever builds the ``RelayEngine`` and handed to it;
nothing else writes to it.  ``lock`` is the serialization point for a state
change and the broadcast that announces it, so two devices reporting at the
same time produce status broadcasts in the same order as the writes.  The
last write wins.
"""

import asyncio
from datetime import datetime


class LockStateStore:
    def __init__(self, initial: bool = False) -> None:
        self._value = initial
        self.updated_at: datetime | None = None
        self.lock = asyncio.Lock()

    def get(self) -> bool:
        return self._value

    def set(self, value: bool) -> None:
        self._value = bool(value)
        self.updated_at = datetime.now()
