"""Dashboard loader: fetch both feeds, resolve withdrawals, aggregate.

Only TransportError from the feed fetches escapes load_dashboard(); detail
lookup and cache failures are absorbed with a logged fallback.
"""
from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List

from stakeboard.clients.tzkt import TzktClient
from stakeboard.config import AppConfig
from stakeboard.db.cache_repo import WithdrawalCacheRepo
from stakeboard.db.connection import get_connection
from stakeboard.errors import CacheIOError
from stakeboard.models.operations import CanonicalOperation, OperationKind
from stakeboard.models.tzkt import BakeryOperation, ProxyTransaction, TokenHolder
from stakeboard.pipeline.auditor import ReconciliationReport, log_report, reconcile
from stakeboard.pipeline.cache import WithdrawalCache
from stakeboard.pipeline.daily import DailySeries, aggregate_daily
from stakeboard.pipeline.normalizer import normalize_bakery_feed, normalize_proxy_feed
from stakeboard.pipeline.resolver import ResolutionStats, WithdrawalResolver
from stakeboard.pipeline.wallets import (
    LeaderboardRow,
    SourceStats,
    WalletStats,
    build_leaderboard,
    calculate_stats,
    calculate_wallet_stats,
)

log = logging.getLogger("stakeboard")


@dataclass
class DashboardData:
    bakery_ops: List[CanonicalOperation]
    proxy_ops: List[CanonicalOperation]
    holders: List[TokenHolder]
    bakery_stats: SourceStats
    proxy_stats: SourceStats
    wallet_stats: List[WalletStats]
    leaderboard: List[LeaderboardRow]
    daily: DailySeries
    reconciliation: ReconciliationReport
    resolution: ResolutionStats
    api_requests: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready payload for the chart and table renderers."""
        return {
            "stats": {
                "bakery": self.bakery_stats.to_dict(),
                "stxtz": self.proxy_stats.to_dict(),
                "unique_wallets": len(self.wallet_stats),
            },
            "chart": self.daily.to_dict(),
            "leaderboard": [asdict(row) for row in self.leaderboard],
            "reconciliation": {
                "total": self.reconciliation.total,
                "matched": self.reconciliation.matched,
                "unmatched": self.reconciliation.unmatched,
                "unmatched_amounts": self.reconciliation.unmatched_amounts,
            },
            "resolution": asdict(self.resolution),
            "api_requests": self.api_requests,
        }


def read_cache(db_path: Path) -> WithdrawalCache:
    """Load the persisted withdrawal cache, or an empty one on any failure."""
    try:
        conn = get_connection(db_path)
    except (sqlite3.Error, OSError) as e:
        log.warning(f"Withdrawal cache unavailable, starting empty: {e}")
        return WithdrawalCache()

    try:
        return WithdrawalCache(WithdrawalCacheRepo(conn).load())
    except CacheIOError as e:
        log.warning(f"{e}; starting with an empty cache")
        return WithdrawalCache()
    finally:
        conn.close()


def persist_cache(db_path: Path, cache: WithdrawalCache) -> None:
    """Write the cache back. Failures are logged and the write is dropped."""
    if not cache.dirty:
        return
    try:
        conn = get_connection(db_path)
    except (sqlite3.Error, OSError) as e:
        log.warning(f"Failed to save withdrawal cache: {e}")
        return

    try:
        WithdrawalCacheRepo(conn).save(cache.to_dict())
        cache.dirty = False
    except CacheIOError as e:
        log.warning(str(e))
    finally:
        conn.close()


async def _fetch_feeds(
    client: TzktClient,
) -> tuple[list[BakeryOperation], list[ProxyTransaction], list[TokenHolder]]:
    """Fetch the three feeds concurrently.

    If any fetch fails, the unfinished ones are cancelled and awaited before
    the error propagates.
    """
    tasks = [
        asyncio.create_task(client.fetch_bakery_operations()),
        asyncio.create_task(client.fetch_proxy_transactions()),
        asyncio.create_task(client.fetch_token_holders()),
    ]
    try:
        bakery_raw, proxy_raw, holders = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return bakery_raw, proxy_raw, holders


async def load_dashboard(
    config: AppConfig,
    client: TzktClient | None = None,
) -> DashboardData:
    """Run one full fetch / resolve / aggregate cycle.

    A client built here is closed on return; a caller-supplied one is left
    open for the caller to close.

    Raises:
        TransportError: if any feed fetch fails. No partial dashboard.
    """
    if client is not None:
        return await _load(config, client)

    async with TzktClient(config.tzkt, config.bakery, config.proxy) as owned:
        return await _load(config, owned)


async def _load(config: AppConfig, client: TzktClient) -> DashboardData:
    bakery_raw, proxy_raw, holders = await _fetch_feeds(client)

    bakery_ops = normalize_bakery_feed(bakery_raw)
    proxy_ops, pending = normalize_proxy_feed(proxy_raw)

    cache = read_cache(config.cache_db_path)
    resolver = WithdrawalResolver(client, cache, config.resolver)
    unstakes = await resolver.resolve_all(pending)
    persist_cache(config.cache_db_path, cache)

    finalize_amounts = [op.amount for op in proxy_ops if op.kind == OperationKind.FINALIZE]
    proxy_ops = proxy_ops + unstakes

    report = reconcile(
        [op.amount for op in unstakes],
        finalize_amounts,
        tolerance=config.resolver.match_tolerance,
    )
    log_report(report)

    log.info(f"Fetched {len(bakery_ops)} bakery operations")
    log.info(f"Fetched {len(proxy_ops)} stXTZ operations")
    log.info(f"Fetched {len(holders)} stXTZ holders")
    log.debug(f"{client.request_count} TzKT requests this load")

    wallet_stats = calculate_wallet_stats(proxy_ops)

    return DashboardData(
        bakery_ops=bakery_ops,
        proxy_ops=proxy_ops,
        holders=holders,
        bakery_stats=calculate_stats(bakery_ops),
        proxy_stats=calculate_stats(proxy_ops),
        wallet_stats=wallet_stats,
        leaderboard=build_leaderboard(wallet_stats, holders),
        daily=aggregate_daily(bakery_ops + proxy_ops),
        reconciliation=report,
        resolution=resolver.stats,
        api_requests=client.request_count,
    )
