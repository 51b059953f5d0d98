"""Canonical operation records shared by every pipeline stage."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

# mutez per tez; also the stXTZ token's decimal scale
BASE_UNIT = 1_000_000


class OperationKind(str, Enum):
    STAKE = "stake"
    UNSTAKE = "unstake"
    FINALIZE = "finalize"


class OperationSource(str, Enum):
    BAKERY = "bakery"
    PROXY = "stxtz"


@dataclass(frozen=True)
class CanonicalOperation:
    timestamp: datetime
    kind: OperationKind
    amount: float  # tez
    source: OperationSource
    sender: Optional[str] = None

    @property
    def day(self) -> date:
        """UTC calendar date of the operation."""
        ts = self.timestamp
        if ts.tzinfo is None:
            return ts.date()
        return ts.astimezone(timezone.utc).date()


@dataclass(frozen=True)
class PendingWithdrawal:
    """A request_withdrawal call whose tez payout is not yet known."""
    hash: str
    counter: int
    timestamp: datetime
    stxtz_amount: int  # raw derivative-token units
    sender: Optional[str] = None


def to_tez(raw: int | float) -> float:
    return raw / BASE_UNIT
