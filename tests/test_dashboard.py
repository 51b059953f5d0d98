"""End-to-end dashboard load against a mocked TzKT API."""
from __future__ import annotations

import asyncio
import json
import time
from dataclasses import replace

import httpx
import pytest

from stakeboard.clients.tzkt import TzktClient
from stakeboard.config import AppConfig, ResolverConfig, TzktConfig
from stakeboard.dashboard import load_dashboard, persist_cache, read_cache
from stakeboard.db.cache_repo import WITHDRAWAL_CACHE_KEY
from stakeboard.db.connection import get_connection
from stakeboard.errors import TransportError
from stakeboard.pipeline.cache import WithdrawalCache
from stakeboard.report import export_json, report


def _router(bakery=(), proxy=(), holders=(), details=None, fail=None, calls=None):
    details = details or {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if calls is not None:
            calls.append(path)
        if fail and path == fail:
            return httpx.Response(503)
        if path == "/v1/operations/staking":
            return httpx.Response(200, json=list(bakery))
        if path == "/v1/operations/transactions":
            return httpx.Response(200, json=list(proxy))
        if path == "/v1/tokens/balances":
            return httpx.Response(200, json=list(holders))
        if path in details:
            return httpx.Response(200, json=details[path])
        return httpx.Response(404)

    return handler


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        resolver=ResolverConfig(stagger_delay=0.0, batch_pause=0.0),
        cache_db_path=tmp_path / "cache.db",
        export_path=tmp_path / "dashboard.json",
    )


def _tx(counter, entrypoint, amount=0, value=None, sender="tz1alice", ts="2024-05-01T10:00:00Z"):
    return {
        "level": 100 + counter,
        "timestamp": ts,
        "hash": f"oo{counter}",
        "counter": counter,
        "amount": amount,
        "parameter": {"entrypoint": entrypoint, "value": value},
        "sender": {"address": sender},
    }


def test_bakery_stake_and_finalize(make_client, config):
    bakery = [
        # Bucket dates come only from stake and unstake activity, so the unstake
        # at 11:00 is what gives 05-02 a bucket for the finalize to land in.
        # A finalize with no other activity that day is dropped from the series
        # (test_daily.py::test_finalize_only_date_has_no_bucket).
        {"level": 1, "timestamp": "2024-05-01T10:00:00Z", "action": "stake", "amount": 5_000_000},
        {"level": 2, "timestamp": "2024-05-02T10:00:00Z", "action": "finalize", "amount": 2_000_000},
        {"level": 3, "timestamp": "2024-05-02T11:00:00Z", "action": "unstake", "amount": 1_000_000},
        {"level": 4, "timestamp": "2024-05-02T12:00:00Z", "action": "stake", "amount": 0},
    ]
    client = make_client(_router(bakery=bakery))

    data = asyncio.run(load_dashboard(config, client))

    assert data.daily.labels == ["2024-05-01", "2024-05-02"]
    assert data.daily.bakery_stakes == [5.0, 0.0]
    assert data.daily.bakery_finalize == [0.0, 2.0]
    assert data.daily.bakery_balance == [5.0, 3.0]
    assert data.bakery_stats.stake_count == 1
    assert data.bakery_stats.total_finalized == 2.0
    assert data.proxy_ops == []
    assert data.api_requests == 3


def test_proxy_flow_with_resolution_and_cache(make_client, config):
    proxy = [
        _tx(1, "deposit", amount=10_000_000),
        _tx(2, "request_withdrawal", value="4000000", ts="2024-05-02T10:00:00Z"),
        _tx(3, "request_withdrawal", value="1000000", sender="tz1bob", ts="2024-05-02T11:00:00Z"),
        _tx(4, "finalize_withdrawal", amount=4_200_000, ts="2024-05-03T10:00:00Z"),
        _tx(5, "set_admin"),
    ]
    details = {
        "/v1/operations/transactions/oo2/2": [{
            "parameter": {"entrypoint": "request_withdrawal", "value": "4000000"},
            "storage": {"pending_queue": [{"xtz_amount": "4200000", "stxtz_amount": "4000000"}]},
        }],
        # oo3 is missing upstream -> 1:1 fallback
    }
    holders = [{"account": {"address": "tz1alice"}, "balance": "2000000"}]
    calls = []
    client = make_client(_router(proxy=proxy, holders=holders, details=details, calls=calls))

    data = asyncio.run(load_dashboard(config, client))

    unstakes = [op for op in data.proxy_ops if op.kind.value == "unstake"]
    assert [op.amount for op in unstakes] == [4.2, 1.0]
    assert data.resolution.lookups == 2
    assert data.resolution.fallbacks == 1
    assert data.reconciliation.matched == 1
    assert data.reconciliation.unmatched == 0

    # finalize on 05-03 has no stake/unstake that day
    assert data.daily.labels == ["2024-05-01", "2024-05-02"]
    assert data.daily.proxy_withdrawals == pytest.approx([0.0, 5.2])

    alice = next(w for w in data.wallet_stats if w.address == "tz1alice")
    assert alice.net_position == pytest.approx(5.8)
    assert [r.address for r in data.leaderboard] == ["tz1alice", "tz1bob"]

    cache = read_cache(config.cache_db_path)
    assert cache.to_dict() == {"oo2-2": 4.2}

    # second run: resolved request served from cache, fallback looked up again
    calls.clear()
    data = asyncio.run(load_dashboard(config, make_client(
        _router(proxy=proxy, holders=holders, details=details, calls=calls),
    )))
    assert data.resolution.cache_hits == 1
    assert "/v1/operations/transactions/oo2/2" not in calls
    assert "/v1/operations/transactions/oo3/3" in calls


def test_feed_failure_aborts_load(make_client, config):
    client = make_client(_router(fail="/v1/operations/transactions"))
    with pytest.raises(TransportError):
        asyncio.run(load_dashboard(config, client))


def _endless_proxy_feed(calls):
    """Bakery feed fails at once; the proxy feed keeps returning full pages."""
    async def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        calls.append(path)
        if path == "/v1/operations/staking":
            return httpx.Response(503)
        if path == "/v1/operations/transactions":
            await asyncio.sleep(0.05)
            return httpx.Response(200, json=[{"page": len(calls)}])
        return httpx.Response(200, json=[])

    return handler


def test_feed_failure_cancels_other_fetches(make_client, config):
    calls = []
    client = make_client(_endless_proxy_feed(calls), page_size=1)

    async def run():
        with pytest.raises(TransportError):
            await load_dashboard(config, client)
        at_abort = len(calls)
        await asyncio.sleep(0.3)
        return at_abort, len(calls)

    at_abort, after = asyncio.run(run())

    assert after == at_abort


def test_owned_client_closed_after_failed_load(monkeypatch, config):
    calls = []
    created = []
    transport = httpx.MockTransport(_endless_proxy_feed(calls))

    def build_client(*args):
        client = TzktClient(*args, transport=transport)
        created.append(client)
        return client

    monkeypatch.setattr("stakeboard.dashboard.TzktClient", build_client)
    config = replace(config, tzkt=TzktConfig(base_url="https://tzkt.test", page_size=1))

    async def run():
        with pytest.raises(TransportError):
            await load_dashboard(config)
        at_abort = len(calls)
        await asyncio.sleep(0.3)
        return at_abort, len(calls)

    at_abort, after = asyncio.run(run())

    assert after == at_abort
    assert len(created) == 1
    assert created[0].closed


def test_feeds_fetched_concurrently(make_client, config):
    starts = {}
    finishes = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        starts[path] = time.monotonic()
        await asyncio.sleep(0.1)
        finishes[path] = time.monotonic()
        return httpx.Response(200, json=[])

    asyncio.run(load_dashboard(config, make_client(handler)))

    assert set(starts) == {
        "/v1/operations/staking",
        "/v1/operations/transactions",
        "/v1/tokens/balances",
    }
    assert max(starts.values()) < min(finishes.values())


def test_corrupt_cache_reads_as_empty(config):
    conn = get_connection(config.cache_db_path)
    conn.execute(
        "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
        (WITHDRAWAL_CACHE_KEY, "not json", "2026-01-01T00:00:00Z"),
    )
    conn.commit()
    conn.close()

    assert len(read_cache(config.cache_db_path)) == 0


def test_non_database_file_reads_as_empty(config):
    config.cache_db_path.write_bytes(b"not a sqlite database\n" * 64)

    assert len(read_cache(config.cache_db_path)) == 0


def test_unwritable_cache_is_ignored(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    cache = WithdrawalCache()
    cache.put("oo1", 1, 1.0)

    persist_cache(blocker / "cache.db", cache)  # parent is a file

    assert len(read_cache(blocker / "cache.db")) == 0


def test_report_and_export(make_client, config, capsys):
    bakery = [{"level": 1, "timestamp": "2024-05-01T10:00:00Z", "action": "stake", "amount": 5_000_000}]
    data = asyncio.run(load_dashboard(config, make_client(_router(bakery=bakery))))

    report(data)
    out = capsys.readouterr().out
    assert "Bakery Staking" in out
    assert "2024-05-01" in out
    assert "TzKT requests: 3" in out

    export_json(data, config.export_path)
    payload = json.loads(config.export_path.read_text())
    assert payload["chart"]["labels"] == ["2024-05-01"]
    assert payload["stats"]["bakery"]["total_staked"] == 5.0
    assert payload["api_requests"] == 3
