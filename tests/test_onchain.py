"""Tests for on-chain risk and activity analysis.

Covers holder concentration, the Gini coefficient (including the
single-holder degenerate case), volume volatility, liquidity, whale
tracking and anomaly windows.
"""

import math

import pytest

from signal_engine.errors import InvalidInputError
from signal_engine.risk.models import Holder, OnChainSnapshot, Transaction
from signal_engine.risk.onchain import (
    analyze_activity,
    analyze_onchain,
    assess_concentration_risk,
    assess_liquidity,
    assess_overall_risk,
    calculate_gini,
    calculate_trend,
    calculate_volume_volatility,
    categorize_activity,
    detect_anomalies,
    find_large_transactions,
    find_whale_movements,
    large_transaction_count,
    parse_onchain,
    top_holders_percentage,
    validate_onchain,
    window_stats,
)

HOUR_MS = 60 * 60 * 1000


# ── Helpers ──────────────────────────────────────────────────────────────


def _holders(*balances: float) -> list[Holder]:
    return [Holder(address=f"addr{i}", balance=b) for i, b in enumerate(balances)]


def _tx(value: float, timestamp: int = 0, frm: str = "a", to: str = "b") -> Transaction:
    return Transaction(from_address=frm, to_address=to, value=value, timestamp=timestamp)


# ── Concentration ────────────────────────────────────────────────────────


class TestConcentration:
    def test_single_holder_owns_everything(self):
        """One holder with the whole supply: top-10 share is 100 %."""
        holders = _holders(1000)
        assert top_holders_percentage(holders, 1000, 10) == pytest.approx(100.0)

    def test_top_holders_ranked_by_balance(self):
        holders = _holders(*([1] * 90), 50, 40)  # total 180
        assert top_holders_percentage(holders, 180, 2) == pytest.approx(50.0)

    def test_zero_supply(self):
        assert top_holders_percentage([], 0, 10) == 0.0

    @pytest.mark.parametrize(
        "pct, tier",
        [
            (100.0, "very_high"),
            (80.0, "high"),
            (61.0, "high"),
            (45.0, "medium"),
            (25.0, "low"),
            (20.0, "very_low"),
            (0.0, "very_low"),
        ],
    )
    def test_concentration_tiers(self, pct, tier):
        assert assess_concentration_risk(pct) == tier


# ── Gini ─────────────────────────────────────────────────────────────────


class TestGini:
    def test_single_holder_is_zero(self):
        """A lone holder is trivially equal to itself, so Gini is 0 even
        though concentration is maximal."""
        assert calculate_gini([1000.0]) == 0.0

    def test_perfect_equality(self):
        assert calculate_gini([5.0, 5.0, 5.0, 5.0]) == pytest.approx(0.0)

    def test_one_holder_among_many(self):
        # (n - 1) / n with n = 4
        assert calculate_gini([0.0, 0.0, 0.0, 100.0]) == pytest.approx(0.75)

    def test_approaches_one_as_population_grows(self):
        balances = [0.0] * 999 + [1.0]
        assert calculate_gini(balances) == pytest.approx(0.999)

    def test_order_independent(self):
        assert calculate_gini([3.0, 1.0, 2.0]) == pytest.approx(calculate_gini([1.0, 2.0, 3.0]))

    def test_empty_and_all_zero(self):
        assert calculate_gini([]) == 0.0
        assert calculate_gini([0.0, 0.0]) == 0.0


# ── Volatility & liquidity ──────────────────────────────────────────────


class TestVolatilityAndLiquidity:
    def test_symmetric_changes(self):
        # +10 %, -10 % → population σ of [0.1, -0.1] is 0.1
        assert calculate_volume_volatility([100, 110, 99]) == pytest.approx(0.1)

    def test_zero_base_changes_skipped(self):
        assert calculate_volume_volatility([0, 10, 20]) == 0.0

    def test_too_few_values(self):
        assert calculate_volume_volatility([5]) == 0.0
        assert calculate_volume_volatility([]) == 0.0

    def test_liquid_market(self):
        risk, score, ratio = assess_liquidity([_tx(10), _tx(30)], 10_000)
        assert ratio == pytest.approx(0.002)
        assert risk == "medium"
        assert score == 1.0

    def test_illiquid_market(self):
        risk, score, ratio = assess_liquidity([_tx(10), _tx(30)], 1_000_000)
        assert risk == "high"
        assert score == pytest.approx(0.02)

    def test_no_supply_is_maximally_illiquid(self):
        assert assess_liquidity([_tx(10)], 0) == ("high", 0.0, 0.0)


# ── RiskMetrics ──────────────────────────────────────────────────────────


class TestAnalyzeOnchain:
    def test_single_holder_snapshot(self):
        metrics = analyze_onchain(OnChainSnapshot(holders=_holders(1000)))
        assert metrics.top_10_percentage == pytest.approx(100.0)
        assert metrics.concentration_risk == "very_high"
        assert metrics.gini_coefficient == 0.0
        assert metrics.liquidity_risk == "high"
        # Only the illiquidity term contributes: 1.0 × 0.3
        assert metrics.overall_risk_score == pytest.approx(0.3)
        assert metrics.risk_level == "low"
        assert metrics.holder_count == 1

    def test_wider_holder_shares(self):
        """150 holders: ten of 100, forty of 10, a hundred of 1 (total 1500)."""
        holders = _holders(*([100] * 10), *([10] * 40), *([1] * 100))
        metrics = analyze_onchain(OnChainSnapshot(holders=holders))
        assert metrics.holder_count == 150
        assert metrics.top_10_percentage == pytest.approx(1000 / 1500 * 100)
        assert metrics.top_50_percentage == pytest.approx(1400 / 1500 * 100)
        assert metrics.top_100_percentage == pytest.approx(1450 / 1500 * 100)

    @pytest.mark.parametrize(
        "score, level",
        [(1.0, "high"), (0.71, "high"), (0.7, "medium"), (0.41, "medium"), (0.4, "low"), (0.0, "low")],
    )
    def test_overall_risk_tiers(self, score, level):
        assert assess_overall_risk(score) == level

    def test_overall_risk_bounded(self):
        snapshot = OnChainSnapshot(
            holders=_holders(*([0] * 99), 1_000_000),
            transactions=[_tx(1), _tx(100), _tx(1), _tx(100)],
        )
        metrics = analyze_onchain(snapshot)
        assert 0.0 <= metrics.overall_risk_score <= 1.0
        assert metrics.volume_volatility > 1.0  # capped inside the blend

    def test_to_dict_keys(self):
        data = analyze_onchain(OnChainSnapshot(holders=_holders(1, 2))).to_dict()
        assert set(data) == {
            "concentration_risk", "top_10_percentage", "top_50_percentage",
            "top_100_percentage", "holder_count", "gini_coefficient",
            "volume_volatility", "liquidity_risk", "liquidity_score",
            "overall_risk_score", "risk_level",
        }


# ── Activity ─────────────────────────────────────────────────────────────


class TestActivity:
    def test_large_transactions(self):
        txs = [_tx(1)] * 20 + [_tx(1000)]
        assert find_large_transactions(txs) == [_tx(1000)]

    def test_whale_movements(self):
        """Top 1 % of 50 holders is the single largest; moves > 10 % of its
        balance touching it are whale movements."""
        holders = [Holder("whale", 10_000)] + [Holder(f"h{i}", 100) for i in range(49)]
        txs = [
            _tx(2000, frm="whale", to="h1"),
            _tx(5000, frm="h1", to="h2"),
            _tx(500, frm="h3", to="whale"),
        ]
        moves = find_whale_movements(OnChainSnapshot(holders=holders, transactions=txs))
        assert moves == [txs[0]]

    def test_whale_movements_without_holders(self):
        assert find_whale_movements(OnChainSnapshot(transactions=[_tx(5)])) == []

    def test_activity_tiers(self):
        assert categorize_activity(0, 0, 0.0) == "very_low"
        assert categorize_activity(10**9, 10**9, 1e9) == "very_high"

    def test_reported_large_tx_count_wins(self):
        snapshot = OnChainSnapshot(
            transactions=[_tx(1)] * 20 + [_tx(1000)],
            network_stats={"large_transactions_24h": 75},
        )
        assert large_transaction_count(snapshot) == 75

    def test_large_tx_count_from_transactions(self):
        snapshot = OnChainSnapshot(transactions=[_tx(1)] * 20 + [_tx(1000)])
        assert large_transaction_count(snapshot) == 1

    def test_analyze_activity_summary(self):
        txs = [_tx(10, frm="a"), _tx(20, frm="b"), _tx(30, frm="a")]
        activity = analyze_activity(OnChainSnapshot(transactions=txs))
        assert activity.transaction_count == 3
        assert activity.active_addresses == 2
        assert activity.total_volume == pytest.approx(60.0)
        assert activity.average_transaction_size == pytest.approx(20.0)
        assert activity.hourly_count is None  # no timestamps
        assert activity.windows is None
        assert activity.trends is None


# ── Windows & trends ─────────────────────────────────────────────────────


class TestWindows:
    def test_window_stats(self):
        txs = [_tx(1, frm="a", to="b"), _tx(2, frm="a", to="c"), _tx(100, frm="d", to="a")]
        stats = window_stats(txs)
        assert stats.count == 3
        assert stats.volume == pytest.approx(103.0)
        assert stats.unique_addresses == 4
        assert stats.average_size == pytest.approx(103 / 3)
        assert stats.large_transactions == 0

    def test_empty_window(self):
        stats = window_stats([])
        assert (stats.count, stats.volume, stats.unique_addresses) == (0, 0.0, 0)
        assert stats.average_size == 0.0

    @pytest.mark.parametrize(
        "hourly, daily, trend",
        [
            (16.0, 10.0, "strongly_increasing"),
            (15.0, 10.0, "increasing"),
            (12.0, 10.0, "increasing"),
            (10.0, 10.0, "stable"),
            (9.0, 10.0, "stable"),
            (8.0, 10.0, "decreasing"),
            (4.0, 10.0, "strongly_decreasing"),
            (0.0, 0.0, "stable"),
        ],
    )
    def test_trend_tiers(self, hourly, daily, trend):
        assert calculate_trend(hourly, daily) == trend

    def test_activity_windows_and_trends(self):
        anchor = 1000 * HOUR_MS
        txs = [
            _tx(1, timestamp=anchor, frm="a", to="b"),
            _tx(2, timestamp=anchor - 2 * HOUR_MS, frm="a", to="c"),
            _tx(4, timestamp=anchor - 30 * HOUR_MS, frm="d", to="e"),
            _tx(8, timestamp=anchor - 200 * HOUR_MS, frm="f", to="g"),
        ]
        activity = analyze_activity(OnChainSnapshot(transactions=txs))

        assert set(activity.windows) == {"1h", "24h", "168h"}
        assert activity.windows["1h"].count == 1
        assert activity.windows["24h"].count == 2
        assert activity.windows["24h"].unique_addresses == 3
        assert activity.windows["168h"].count == 3
        assert activity.windows["168h"].volume == pytest.approx(7.0)
        assert activity.trends == {
            # 1 vs 3/24 per hour
            "volume_trend": "strongly_increasing",
            # 1 vs 2/24 per hour
            "frequency_trend": "strongly_increasing",
            # 1.0 vs 1.5 average size
            "size_trend": "decreasing",
        }

    def test_windows_serialise(self):
        txs = [_tx(5, timestamp=HOUR_MS)]
        data = analyze_activity(OnChainSnapshot(transactions=txs)).to_dict()
        assert data["windows"]["24h"] == {
            "count": 1, "volume": 5.0, "unique_addresses": 2,
            "average_size": 5.0, "large_transactions": 0,
        }
        assert set(data["trends"]) == {"volume_trend", "frequency_trend", "size_trend"}


# ── Anomalies ────────────────────────────────────────────────────────────


class TestAnomalies:
    def test_burst_in_last_hour(self):
        anchor = 100 * HOUR_MS
        txs = [_tx(1, timestamp=anchor - k * HOUR_MS) for k in range(1, 24)]
        txs += [_tx(1, timestamp=anchor - m * 60_000) for m in range(10)]

        anomalies, hourly, daily = detect_anomalies(txs)

        assert "high_frequency" in anomalies
        assert "volume_spike" in anomalies
        assert hourly == 11
        assert daily == 33

    def test_steady_flow_is_quiet(self):
        anchor = 100 * HOUR_MS
        txs = [_tx(1, timestamp=anchor - k * HOUR_MS) for k in range(24)]
        anomalies, hourly, daily = detect_anomalies(txs)
        assert anomalies == []
        assert hourly == 2
        assert daily == 24

    def test_without_timestamps(self):
        assert detect_anomalies([_tx(1), _tx(2)]) == ([], None, None)

    def test_new_addresses_in_last_hour(self):
        anchor = 100 * HOUR_MS
        txs = [_tx(1, timestamp=anchor - k * HOUR_MS) for k in range(1, 24)]
        txs += [_tx(1, timestamp=anchor - m * 60_000, frm=f"n{m}") for m in range(5)]

        anomalies, _, _ = detect_anomalies(txs)

        # 5 fresh senders vs 7 distinct addresses / 24 × 2
        assert "new_addresses" in anomalies

    def test_one_newcomer_among_many_is_quiet(self):
        anchor = 100 * HOUR_MS
        txs = [
            _tx(1, timestamp=anchor - 2 * HOUR_MS - i * 20 * 60_000, frm=f"s{i}", to="hub")
            for i in range(48)
        ]
        txs.append(_tx(1, timestamp=anchor, frm="fresh", to="hub"))

        anomalies, _, _ = detect_anomalies(txs)

        # 1 fresh sender vs 50 distinct addresses / 24 × 2
        assert "new_addresses" not in anomalies


# ── Parsing ──────────────────────────────────────────────────────────────


class TestParseOnchain:
    def test_none_passes_through(self):
        assert parse_onchain(None) is None

    def test_accepts_short_and_long_address_keys(self):
        snapshot = parse_onchain({
            "holders": [{"address": "x", "balance": "1000"}],
            "transactions": [
                {"from": "x", "to": "y", "value": 5, "timestamp": 1},
                {"from_address": "y", "to_address": "z", "value": "7"},
            ],
            "network_stats": {"value_locked": 0.25},
        })
        assert snapshot.total_supply == 1000.0
        assert snapshot.transactions[0].from_address == "x"
        assert snapshot.transactions[1].to_address == "z"
        assert snapshot.transactions[1].value == 7.0
        assert snapshot.network_stats == {"value_locked": 0.25}

    def test_empty_payload(self):
        snapshot = parse_onchain({})
        assert snapshot.holders == []
        assert snapshot.transactions == []

    def test_non_numeric_value_raises(self):
        with pytest.raises(ValueError):
            parse_onchain({"transactions": [{"from": "a", "to": "b", "value": "lots"}]})

    @pytest.mark.parametrize(
        "payload, field",
        [
            ({"holders": [{"address": "x", "balance": "nan"}]}, r"holders\[0\]\.balance"),
            ({"transactions": [{"from": "a", "to": "b", "value": math.inf}]}, r"transactions\[0\]\.value"),
            ({"transactions": [{"value": 1, "timestamp": "soon"}]}, r"transactions\[0\]\.timestamp"),
            ({"network_stats": {"value_locked": math.nan}}, "value_locked"),
            ({"network_stats": {"large_transactions_24h": "lots"}}, "large_transactions_24h"),
        ],
    )
    def test_bad_numbers_raise_invalid_input(self, payload, field):
        with pytest.raises(InvalidInputError, match=field):
            parse_onchain(payload)

    def test_network_stats_coerced(self):
        snapshot = parse_onchain({"network_stats": {
            "active_addresses_24h": "12", "large_transactions_24h": 3.0,
            "value_locked": "0.5", "chain": "eth",
        }})
        assert snapshot.network_stats == {
            "active_addresses_24h": 12, "large_transactions_24h": 3,
            "value_locked": 0.5, "chain": "eth",
        }

    def test_validate_directly_built_snapshot(self):
        validate_onchain(OnChainSnapshot(holders=_holders(1, 2), transactions=[_tx(3)]))
        with pytest.raises(InvalidInputError, match="finite"):
            validate_onchain(OnChainSnapshot(transactions=[_tx(math.nan)]))
        with pytest.raises(InvalidInputError, match="value_locked"):
            validate_onchain(OnChainSnapshot(network_stats={"value_locked": math.inf}))
