"""Tests for source stats, wallet positions and the leaderboard."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from stakeboard.models.operations import CanonicalOperation, OperationKind, OperationSource
from stakeboard.models.tzkt import TokenHolder
from stakeboard.pipeline.wallets import (
    WalletStats,
    build_leaderboard,
    calculate_stats,
    calculate_wallet_stats,
)

T = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _op(kind, amount, sender=None, source=OperationSource.PROXY):
    return CanonicalOperation(timestamp=T, kind=kind, amount=amount, source=source, sender=sender)


def test_calculate_stats():
    stats = calculate_stats([
        _op(OperationKind.STAKE, 10.0),
        _op(OperationKind.STAKE, 5.0),
        _op(OperationKind.UNSTAKE, 3.0),
        _op(OperationKind.FINALIZE, 2.0),
    ])
    assert stats.total_staked == 15.0
    assert stats.stake_count == 2
    assert stats.total_unstaked == 3.0
    assert stats.total_finalized == 2.0
    assert stats.finalize_count == 1
    assert stats.net_staked == 12.0
    assert stats.to_dict()["net_staked"] == 12.0


def test_net_position_tracks_every_update():
    wallet = WalletStats(address="tz1a")
    for op in [
        _op(OperationKind.UNSTAKE, 4.0, "tz1a"),
        _op(OperationKind.STAKE, 10.0, "tz1a"),
        _op(OperationKind.FINALIZE, 4.0, "tz1a"),
        _op(OperationKind.UNSTAKE, 1.0, "tz1a"),
    ]:
        wallet.apply(op)
        assert wallet.net_position == pytest.approx(wallet.total_deposited - wallet.total_withdrawn)
    assert wallet.net_position == pytest.approx(5.0)
    assert (wallet.deposit_count, wallet.withdraw_count, wallet.finalize_count) == (1, 2, 1)


def test_wallets_sorted_by_net_position_stable():
    rows = calculate_wallet_stats([
        _op(OperationKind.STAKE, 5.0, "tz1a"),
        _op(OperationKind.STAKE, 9.0, "tz1b"),
        _op(OperationKind.STAKE, 5.0, "tz1c"),
        _op(OperationKind.STAKE, 100.0, None),
        _op(OperationKind.STAKE, 50.0, "tz1bakery", OperationSource.BAKERY),
    ])
    assert [w.address for w in rows] == ["tz1b", "tz1a", "tz1c"]


def test_leaderboard_merges_holders_and_history():
    stats = calculate_wallet_stats([
        _op(OperationKind.STAKE, 5.0, "tz1a"),
        _op(OperationKind.STAKE, 9.0, "tz1gone"),
        _op(OperationKind.UNSTAKE, 9.0, "tz1gone"),
    ])
    holders = [
        TokenHolder(account={"address": "tz1new", "alias": "Fresh"}, balance="1000000"),
        TokenHolder(account={"address": "tz1a"}, balance="4500000"),
    ]

    rows = build_leaderboard(stats, holders)

    assert [r.address for r in rows] == ["tz1a", "tz1new", "tz1gone"]
    assert rows[0].balance == 4.5
    assert rows[0].net_position == 5.0
    assert rows[1].alias == "Fresh"
    assert rows[1].net_position == 0.0
    assert rows[2].balance == 0.0
    assert rows[2].total_withdrawn == 9.0
