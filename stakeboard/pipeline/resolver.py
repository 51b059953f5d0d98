"""Withdrawal amount resolver.

request_withdrawal calls carry an stXTZ amount, but the dashboard needs
the tez the wallet will receive. The exchange rate only shows up in the
contract storage after the call, so each request is looked up by
hash/counter and the matching queue entry is read from the result.

Lookups are paced toward the API: at most ``batch_size`` in flight, the
i-th request of a batch starts ``i * stagger_delay`` seconds late, and
``batch_pause`` seconds separate consecutive batches.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from stakeboard.clients.tzkt import TzktClient
from stakeboard.config import ResolverConfig
from stakeboard.errors import DetailLookupError
from stakeboard.models.operations import (
    CanonicalOperation,
    OperationKind,
    OperationSource,
    PendingWithdrawal,
    to_tez,
)
from stakeboard.pipeline.amount_scan import resolve_xtz_amount
from stakeboard.pipeline.cache import WithdrawalCache

log = logging.getLogger("stakeboard")


@dataclass
class ResolutionStats:
    cache_hits: int = 0
    lookups: int = 0
    fallbacks: int = 0


class WithdrawalResolver:
    def __init__(
        self,
        client: TzktClient,
        cache: WithdrawalCache,
        config: ResolverConfig | None = None,
    ):
        self.client = client
        self.cache = cache
        self.config = config or ResolverConfig()
        self.stats = ResolutionStats()

    async def resolve_amount(
        self,
        op_hash: str,
        counter: int,
        stxtz_amount: int,
        start_delay: float = 0.0,
    ) -> float:
        """Tez amount for one withdrawal request.

        Cache hits return immediately. On a miss the detail lookup fires
        after ``start_delay`` seconds. Unresolvable requests fall back to
        a 1:1 stXTZ/tez approximation, which is never cached.
        """
        cached = self.cache.get(op_hash, counter)
        if cached is not None:
            self.stats.cache_hits += 1
            return cached

        if start_delay > 0:
            await asyncio.sleep(start_delay)

        self.stats.lookups += 1
        xtz_amount = await self._lookup(op_hash, counter, stxtz_amount)

        if xtz_amount is not None:
            amount = to_tez(xtz_amount)
            self.cache.put(op_hash, counter, amount)
            return amount

        fallback = to_tez(stxtz_amount)
        self.stats.fallbacks += 1
        log.warning(
            f"Could not get xtz_amount for {op_hash}, "
            f"using stxtz as fallback: {fallback:.2f} TEZ"
        )
        return fallback

    async def _lookup(self, op_hash: str, counter: int, stxtz_amount: int) -> Optional[int]:
        try:
            transactions = await self.client.get_transaction_detail(op_hash, counter)
        except DetailLookupError as e:
            log.warning(str(e))
            return None

        xtz_amount = resolve_xtz_amount(transactions, stxtz_amount)
        if xtz_amount is None:
            log.warning(f"No xtz_amount found for {op_hash}/{counter}")
        return xtz_amount

    async def resolve_all(self, pending: list[PendingWithdrawal]) -> list[CanonicalOperation]:
        """Resolve every pending withdrawal into an UNSTAKE operation.

        Output order matches input order.
        """
        batch_size = max(1, self.config.batch_size)
        log.info(f"Processing {len(pending)} withdrawal requests...")

        ops: list[CanonicalOperation] = []
        for start in range(0, len(pending), batch_size):
            batch = pending[start:start + batch_size]
            amounts = await asyncio.gather(*[
                asyncio.create_task(self.resolve_amount(
                    w.hash,
                    w.counter,
                    w.stxtz_amount,
                    start_delay=position * self.config.stagger_delay,
                ))
                for position, w in enumerate(batch)
            ])

            for w, amount in zip(batch, amounts):
                ops.append(CanonicalOperation(
                    timestamp=w.timestamp,
                    kind=OperationKind.UNSTAKE,
                    amount=amount,
                    source=OperationSource.PROXY,
                    sender=w.sender,
                ))

            if start + batch_size < len(pending) and self.config.batch_pause > 0:
                await asyncio.sleep(self.config.batch_pause)

        log.info(
            f"Withdrawal processing complete: {self.stats.cache_hits} cache hits, "
            f"{self.stats.lookups} API lookups, {self.stats.fallbacks} fallbacks"
        )
        return ops
