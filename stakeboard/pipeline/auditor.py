"""Match finalize payouts against resolved withdrawal requests.

Diagnostic only: a poor match rate points at bad withdrawal resolution
(e.g. many 1:1 fallbacks) but never changes the operation stream.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

log = logging.getLogger("stakeboard")

DEFAULT_TOLERANCE = 0.1


@dataclass
class ReconciliationReport:
    total: int = 0
    matched: int = 0
    unmatched_amounts: List[float] = field(default_factory=list)

    @property
    def unmatched(self) -> int:
        return len(self.unmatched_amounts)


def reconcile(
    withdrawals: Iterable[float],
    finalizes: Iterable[float],
    tolerance: float = DEFAULT_TOLERANCE,
) -> ReconciliationReport:
    """Greedy first-fit matching of finalize amounts to withdrawal amounts.

    Each finalize, in order, consumes the first remaining withdrawal within
    ``tolerance``. The first hit in pool order wins, not the closest one.
    """
    pool = list(withdrawals)
    report = ReconciliationReport()

    for amount in finalizes:
        report.total += 1
        for i, candidate in enumerate(pool):
            if abs(candidate - amount) < tolerance:
                del pool[i]
                report.matched += 1
                break
        else:
            report.unmatched_amounts.append(amount)

    return report


def log_report(report: ReconciliationReport) -> None:
    log.info("Finalize matching stats:")
    log.info(f"  Total finalizes: {report.total}")
    log.info(f"  Matched to requests: {report.matched}")
    log.info(f"  Unmatched: {report.unmatched}")
    if 0 < report.unmatched <= 10:
        amounts = ", ".join(f"{a:.2f}" for a in report.unmatched_amounts)
        log.info(f"  Unmatched amounts: {amounts} TEZ")
