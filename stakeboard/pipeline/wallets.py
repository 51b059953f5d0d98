"""Per-source totals, per-wallet positions and the holder leaderboard."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional

from stakeboard.models.operations import (
    CanonicalOperation,
    OperationKind,
    OperationSource,
    to_tez,
)
from stakeboard.models.tzkt import TokenHolder


@dataclass
class SourceStats:
    total_staked: float = 0.0
    total_unstaked: float = 0.0
    total_finalized: float = 0.0
    stake_count: int = 0
    unstake_count: int = 0
    finalize_count: int = 0

    @property
    def net_staked(self) -> float:
        return self.total_staked - self.total_unstaked

    def to_dict(self) -> dict:
        return {**asdict(self), "net_staked": self.net_staked}


def calculate_stats(operations: Iterable[CanonicalOperation]) -> SourceStats:
    stats = SourceStats()
    for op in operations:
        if op.kind == OperationKind.STAKE:
            stats.total_staked += op.amount
            stats.stake_count += 1
        elif op.kind == OperationKind.UNSTAKE:
            stats.total_unstaked += op.amount
            stats.unstake_count += 1
        elif op.kind == OperationKind.FINALIZE:
            stats.total_finalized += op.amount
            stats.finalize_count += 1
    return stats


@dataclass
class WalletStats:
    address: str
    total_deposited: float = 0.0
    total_withdrawn: float = 0.0
    total_finalized: float = 0.0
    net_position: float = 0.0
    deposit_count: int = 0
    withdraw_count: int = 0
    finalize_count: int = 0

    def apply(self, op: CanonicalOperation) -> None:
        if op.kind == OperationKind.STAKE:
            self.total_deposited += op.amount
            self.deposit_count += 1
        elif op.kind == OperationKind.UNSTAKE:
            self.total_withdrawn += op.amount
            self.withdraw_count += 1
        elif op.kind == OperationKind.FINALIZE:
            self.total_finalized += op.amount
            self.finalize_count += 1
        self.net_position = self.total_deposited - self.total_withdrawn


def calculate_wallet_stats(operations: Iterable[CanonicalOperation]) -> List[WalletStats]:
    """One row per proxy sender, highest net position first.

    Ties keep first-seen order.
    """
    wallets: Dict[str, WalletStats] = {}
    for op in operations:
        if op.source != OperationSource.PROXY or not op.sender:
            continue
        wallet = wallets.get(op.sender)
        if wallet is None:
            wallet = wallets[op.sender] = WalletStats(address=op.sender)
        wallet.apply(op)

    return sorted(wallets.values(), key=lambda w: w.net_position, reverse=True)


@dataclass
class LeaderboardRow:
    address: str
    alias: Optional[str]
    balance: float
    net_position: float
    total_deposited: float
    total_withdrawn: float


def _holder_balance(holder: TokenHolder) -> float:
    try:
        return to_tez(float(holder.balance))
    except ValueError:
        return 0.0


def build_leaderboard(
    wallet_stats: Iterable[WalletStats],
    holders: Iterable[TokenHolder],
) -> List[LeaderboardRow]:
    """Merge current holders with flow stats, largest balance first.

    Holders come first; wallets with flow history but no current balance
    are appended with balance 0 before the (stable) sort.
    """
    stats_by_address = {w.address: w for w in wallet_stats}
    rows: List[LeaderboardRow] = []
    seen = set()

    for holder in holders:
        address = holder.account.address
        seen.add(address)
        stats = stats_by_address.get(address)
        rows.append(LeaderboardRow(
            address=address,
            alias=holder.account.alias,
            balance=_holder_balance(holder),
            net_position=stats.net_position if stats else 0.0,
            total_deposited=stats.total_deposited if stats else 0.0,
            total_withdrawn=stats.total_withdrawn if stats else 0.0,
        ))

    for address, stats in stats_by_address.items():
        if address in seen:
            continue
        rows.append(LeaderboardRow(
            address=address,
            alias=None,
            balance=0.0,
            net_position=stats.net_position,
            total_deposited=stats.total_deposited,
            total_withdrawn=stats.total_withdrawn,
        ))

    return sorted(rows, key=lambda r: r.balance, reverse=True)
