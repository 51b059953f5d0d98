"""In-memory withdrawal amount cache handed to the resolver."""
from __future__ import annotations

from typing import Dict, Optional


class WithdrawalCache:
    """Resolved tez amounts keyed by "{hash}-{counter}".

    Loaded once by the caller, mutated by the resolver, persisted once
    after the resolution pass.
    """

    def __init__(self, entries: Optional[Dict[str, float]] = None):
        self._entries: Dict[str, float] = dict(entries or {})
        self.dirty = False

    @staticmethod
    def key(op_hash: str, counter: int) -> str:
        return f"{op_hash}-{counter}"

    def get(self, op_hash: str, counter: int) -> Optional[float]:
        return self._entries.get(self.key(op_hash, counter))

    def put(self, op_hash: str, counter: int, amount: float) -> None:
        self._entries[self.key(op_hash, counter)] = amount
        self.dirty = True

    def to_dict(self) -> Dict[str, float]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
