"""Console report and JSON export for a loaded dashboard."""
from __future__ import annotations

import json
from pathlib import Path

from stakeboard.dashboard import DashboardData
from stakeboard.pipeline.wallets import SourceStats
from stakeboard.shared.formatting import (
    format_number,
    format_signed_tez,
    format_tez,
    shorten_address,
)
from stakeboard.shared.time_utils import now_utc_display


def _print_source(title: str, stats: SourceStats, labels: tuple[str, str, str]) -> None:
    stake_label, unstake_label, finalize_label = labels
    print(f"[{title}]")
    print(f"  {stake_label:<16} {format_tez(stats.total_staked):>22}  "
          f"({format_number(stats.stake_count)} ops)")
    print(f"  {unstake_label:<16} {format_tez(stats.total_unstaked):>22}  "
          f"({format_number(stats.unstake_count)} ops)")
    print(f"  {finalize_label:<16} {format_tez(stats.total_finalized):>22}  "
          f"({format_number(stats.finalize_count)} ops)")
    print(f"  {'Net staked':<16} {format_signed_tez(stats.net_staked):>22}")


def report(data: DashboardData, top_n: int = 10, days: int = 14) -> None:
    """Print summary stats, recent daily flows and the holder leaderboard."""
    print("stXTZ Staking Dashboard")
    print(f"Time: {now_utc_display()}")
    print(f"{'='*70}\n")

    _print_source("Bakery Staking", data.bakery_stats,
                  ("Total staked", "Total unstaked", "Total finalized"))
    print()
    _print_source("stXTZ Operations", data.proxy_stats,
                  ("Total deposited", "Withdrawals", "Total finalized"))
    print(f"  {'Unique wallets':<16} {format_number(len(data.wallet_stats)):>22}")

    rec = data.reconciliation
    res = data.resolution
    print(f"\n[Withdrawal Resolution]")
    print(f"  Cache hits: {res.cache_hits} | API lookups: {res.lookups} | "
          f"1:1 fallbacks: {res.fallbacks}")
    print(f"  TzKT requests: {format_number(data.api_requests)}")
    print(f"  Finalizes matched: {rec.matched}/{rec.total} | unmatched: {rec.unmatched}")

    daily = data.daily
    print(f"\n[Daily Flows] (last {min(days, len(daily.labels))} of {len(daily.labels)} days)")
    print(f"  {'date':<10} {'bakery +':>12} {'bakery -':>12} {'stxtz +':>12} "
          f"{'stxtz -':>12} {'bakery bal':>14} {'stxtz bal':>14}")
    start = max(0, len(daily.labels) - days)
    for i in range(start, len(daily.labels)):
        print(f"  {daily.labels[i]:<10} {daily.bakery_stakes[i]:>12,.0f} "
              f"{daily.bakery_unstakes[i]:>12,.0f} {daily.proxy_deposits[i]:>12,.0f} "
              f"{daily.proxy_withdrawals[i]:>12,.0f} {daily.bakery_balance[i]:>14,.0f} "
              f"{daily.proxy_balance[i]:>14,.0f}")

    print(f"\n[Top stXTZ Holders] ({min(top_n, len(data.leaderboard))} of {len(data.leaderboard)})")
    for rank, row in enumerate(data.leaderboard[:top_n], start=1):
        name = row.alias or shorten_address(row.address)
        print(f"  {rank:>3}. {name[:24]:<24} {format_tez(row.balance):>20} "
              f"net {format_signed_tez(row.net_position):>20}")


def export_json(data: DashboardData, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(data.to_dict(), f, indent=2, ensure_ascii=False)
