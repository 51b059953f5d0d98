"""Daily aggregation of canonical operations into chart series.

Bucket dates come from stake/unstake activity only. Finalize operations
are accumulated into an existing bucket but never create one, so a
finalize on a day with no other activity is dropped from the series.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List

from stakeboard.models.operations import CanonicalOperation, OperationKind, OperationSource


@dataclass
class DailyBucket:
    day: date
    bakery_stake: float = 0.0
    bakery_unstake: float = 0.0
    bakery_finalize: float = 0.0
    proxy_deposit: float = 0.0
    proxy_withdraw: float = 0.0
    proxy_finalize: float = 0.0

    def add(self, op: CanonicalOperation) -> None:
        if op.source == OperationSource.BAKERY:
            if op.kind == OperationKind.STAKE:
                self.bakery_stake += op.amount
            elif op.kind == OperationKind.UNSTAKE:
                self.bakery_unstake += op.amount
            elif op.kind == OperationKind.FINALIZE:
                self.bakery_finalize += op.amount
        elif op.source == OperationSource.PROXY:
            if op.kind == OperationKind.STAKE:
                self.proxy_deposit += op.amount
            elif op.kind == OperationKind.UNSTAKE:
                self.proxy_withdraw += op.amount
            elif op.kind == OperationKind.FINALIZE:
                self.proxy_finalize += op.amount


@dataclass
class DailySeries:
    """Per-day series, positionally aligned to ``labels``."""
    labels: List[str] = field(default_factory=list)
    bakery_stakes: List[float] = field(default_factory=list)
    bakery_unstakes: List[float] = field(default_factory=list)
    bakery_finalize: List[float] = field(default_factory=list)
    proxy_deposits: List[float] = field(default_factory=list)
    proxy_withdrawals: List[float] = field(default_factory=list)
    proxy_finalize: List[float] = field(default_factory=list)
    bakery_balance: List[float] = field(default_factory=list)
    proxy_balance: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, list]:
        return {
            "labels": self.labels,
            "bakeryStakes": self.bakery_stakes,
            "bakeryUnstakes": self.bakery_unstakes,
            "bakeryFinalize": self.bakery_finalize,
            "stxtzDeposits": self.proxy_deposits,
            "stxtzWithdrawals": self.proxy_withdrawals,
            "stxtzFinalize": self.proxy_finalize,
            "bakeryBalance": self.bakery_balance,
            "stxtzBalance": self.proxy_balance,
        }


def build_buckets(operations: Iterable[CanonicalOperation]) -> List[DailyBucket]:
    """Zero-initialized buckets for every stake/unstake date, then filled."""
    ops = list(operations)
    days = sorted({op.day for op in ops if op.kind != OperationKind.FINALIZE})
    buckets: Dict[date, DailyBucket] = {d: DailyBucket(day=d) for d in days}

    for op in ops:
        bucket = buckets.get(op.day)
        if bucket is not None:
            bucket.add(op)

    return [buckets[d] for d in days]


def aggregate_daily(operations: Iterable[CanonicalOperation]) -> DailySeries:
    """Six per-day counters plus running balances (stake - finalize) per source."""
    series = DailySeries()
    bakery_balance = 0.0
    proxy_balance = 0.0

    for bucket in build_buckets(operations):
        series.labels.append(bucket.day.isoformat())
        series.bakery_stakes.append(bucket.bakery_stake)
        series.bakery_unstakes.append(bucket.bakery_unstake)
        series.bakery_finalize.append(bucket.bakery_finalize)
        series.proxy_deposits.append(bucket.proxy_deposit)
        series.proxy_withdrawals.append(bucket.proxy_withdraw)
        series.proxy_finalize.append(bucket.proxy_finalize)

        # unstake is only a pending request; funds leave at finalize
        bakery_balance += bucket.bakery_stake - bucket.bakery_finalize
        proxy_balance += bucket.proxy_deposit - bucket.proxy_finalize
        series.bakery_balance.append(bakery_balance)
        series.proxy_balance.append(proxy_balance)

    return series
