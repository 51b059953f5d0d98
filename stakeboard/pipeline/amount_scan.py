"""Locate withdrawal queue entries inside a transaction detail payload.

A queue entry is any mapping carrying both ``xtz_amount`` and
``stxtz_amount``. The proxy contract normally appends the new entry to
``storage.pending_queue``, but older storage layouts put it elsewhere, so
the fallback walks the whole payload.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

JsonValue = Union[str, int, float, bool, None, List["JsonValue"], Dict[str, "JsonValue"]]


@dataclass(frozen=True)
class AmountPair:
    xtz_amount: int
    stxtz_amount: int


def as_amount_pair(node: JsonValue) -> Optional[AmountPair]:
    """Read a queue entry, or None if the node is not one."""
    if not isinstance(node, dict):
        return None
    xtz = node.get("xtz_amount")
    stxtz = node.get("stxtz_amount")
    if not xtz or not stxtz:
        return None
    try:
        return AmountPair(xtz_amount=int(xtz), stxtz_amount=int(stxtz))
    except (TypeError, ValueError):
        return None


def find_amount_pairs(root: JsonValue) -> list[AmountPair]:
    """All queue entries at any depth, in pre-order document order."""
    pairs: list[AmountPair] = []
    stack: list[JsonValue] = [root]

    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            pair = as_amount_pair(node)
            if pair is not None:
                pairs.append(pair)
            children = list(node.values())
        elif isinstance(node, list):
            children = node
        else:
            continue
        stack.extend(reversed(children))

    return pairs


def _pending_queue_tail(tx: Dict[str, Any]) -> Optional[AmountPair]:
    storage = tx.get("storage")
    if not isinstance(storage, dict):
        return None
    queue = storage.get("pending_queue")
    if not isinstance(queue, list) or not queue:
        return None
    return as_amount_pair(queue[-1])


def resolve_xtz_amount(transactions: List[JsonValue], expected_stxtz: int) -> Optional[int]:
    """Raw tez amount paired with ``expected_stxtz`` in a detail payload.

    Only request_withdrawal transactions are considered. The tail of
    ``storage.pending_queue`` wins when its stXTZ amount matches exactly;
    otherwise the first exact match anywhere in the transaction, then the
    last entry found. Returns None when the payload holds no entry at all.
    """
    for tx in transactions:
        if not isinstance(tx, dict):
            continue
        parameter = tx.get("parameter")
        if not isinstance(parameter, dict) or parameter.get("entrypoint") != "request_withdrawal":
            continue

        tail = _pending_queue_tail(tx)
        if tail is not None and tail.stxtz_amount == expected_stxtz:
            return tail.xtz_amount

        pairs = find_amount_pairs(tx)
        if pairs:
            for pair in pairs:
                if pair.stxtz_amount == expected_stxtz:
                    return pair.xtz_amount
            return pairs[-1].xtz_amount

    return None
