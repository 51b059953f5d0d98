"""Map raw TzKT records onto CanonicalOperation.

Bakery records map one-to-one. Proxy records dispatch on entrypoint;
withdrawal requests come back as PendingWithdrawal because their amount
is in stXTZ and has to be resolved against the contract storage first.
"""
from __future__ import annotations

from typing import Any, Iterable, Optional

from stakeboard.models.operations import (
    CanonicalOperation,
    OperationKind,
    OperationSource,
    PendingWithdrawal,
    to_tez,
)
from stakeboard.models.tzkt import BakeryOperation, ProxyTransaction

_BAKERY_KINDS = {
    "stake": OperationKind.STAKE,
    "unstake": OperationKind.UNSTAKE,
    "finalize": OperationKind.FINALIZE,
}


def normalize_bakery(record: BakeryOperation) -> Optional[CanonicalOperation]:
    kind = _BAKERY_KINDS.get(record.action)
    if kind is None or record.amount <= 0:
        return None
    return CanonicalOperation(
        timestamp=record.timestamp,
        kind=kind,
        amount=to_tez(record.amount),
        source=OperationSource.BAKERY,
    )


def normalize_bakery_feed(records: Iterable[BakeryOperation]) -> list[CanonicalOperation]:
    ops = []
    for record in records:
        op = normalize_bakery(record)
        if op is not None:
            ops.append(op)
    return ops


def parse_stxtz_amount(value: Any) -> int:
    """Raw stXTZ amount from a request_withdrawal parameter.

    The entrypoint takes a bare nat, which TzKT renders as a string.
    Anything else counts as zero.
    """
    if not isinstance(value, str):
        return 0
    try:
        return int(value.strip())
    except ValueError:
        return 0


def normalize_proxy(
    record: ProxyTransaction,
) -> CanonicalOperation | PendingWithdrawal | None:
    entrypoint = record.entrypoint

    if entrypoint == "deposit":
        if record.amount <= 0:
            return None
        return CanonicalOperation(
            timestamp=record.timestamp,
            kind=OperationKind.STAKE,
            amount=to_tez(record.amount),
            source=OperationSource.PROXY,
            sender=record.sender_address,
        )

    if entrypoint == "request_withdrawal":
        stxtz_amount = parse_stxtz_amount(record.parameter.value)
        if stxtz_amount <= 0:
            return None
        return PendingWithdrawal(
            hash=record.hash,
            counter=record.counter,
            timestamp=record.timestamp,
            stxtz_amount=stxtz_amount,
            sender=record.sender_address,
        )

    if entrypoint == "finalize_withdrawal":
        if record.amount <= 0:
            return None
        return CanonicalOperation(
            timestamp=record.timestamp,
            kind=OperationKind.FINALIZE,
            amount=to_tez(record.amount),
            source=OperationSource.PROXY,
            sender=record.sender_address,
        )

    return None


def normalize_proxy_feed(
    records: Iterable[ProxyTransaction],
) -> tuple[list[CanonicalOperation], list[PendingWithdrawal]]:
    """Split the proxy feed into known-amount operations and pending withdrawals."""
    ops: list[CanonicalOperation] = []
    pending: list[PendingWithdrawal] = []
    for record in records:
        result = normalize_proxy(record)
        if isinstance(result, PendingWithdrawal):
            pending.append(result)
        elif result is not None:
            ops.append(result)
    return ops, pending
