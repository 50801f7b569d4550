"""Aggregation and consensus testing."""

import random
from decimal import Decimal
from fractions import Fraction

import pytest

from oracle_network.core.consensus import (
    aggregate,
    capped_stake_weights,
    effective_weights,
    filter_outliers,
    unweighted_median,
    weighted_median,
)
from oracle_network.core.models import PriceReport

DEVIATION = Decimal("0.1")
OUTLIER_FRACTION = Decimal("0.4")
CAP = Decimal("0.25")


def make_reports(values, confidence="1"):
    """One report per value, oracles named o0, o1, ..."""
    return [
        PriceReport(
            asset="ETH/USD",
            oracle=f"o{i}",
            value=Decimal(str(value)),
            confidence=Decimal(confidence),
            submitted_at=i,
            round=1,
        )
        for i, value in enumerate(values)
    ]


def equal_stakes(reports, stake=1000):
    """Same stake for every reporter"""
    return {report.oracle: stake for report in reports}


test_medians = [
    ([3000, 3100, 3050], Decimal(3050)),
    ([3000, 3050, 3100, 50000], Decimal(3075)),
    ([1, 2, 3, 4, 10000], Decimal(3)),
]

test_capped_weights = [
    (
        {"a": 10, "b": 1, "c": 1, "d": 1, "e": 1},
        Fraction(1, 4),
        {
            "a": Fraction(1, 4),
            "b": Fraction(3, 16),
            "c": Fraction(3, 16),
            "d": Fraction(3, 16),
            "e": Fraction(3, 16),
        },
    ),
    (
        {"a": 1, "b": 1, "c": 1, "d": 1},
        Fraction(1, 4),
        {"a": Fraction(1, 4), "b": Fraction(1, 4), "c": Fraction(1, 4), "d": Fraction(1, 4)},
    ),
    (
        {"a": 100, "b": 1, "c": 1},
        Fraction(1, 4),
        {"a": Fraction(1, 3), "b": Fraction(1, 3), "c": Fraction(1, 3)},
    ),
    (
        {"a": 3, "b": 1},
        Fraction(1),
        {"a": Fraction(3, 4), "b": Fraction(1, 4)},
    ),
]


class TestConsensus:
    """Tests consensus methods"""

    @pytest.mark.parametrize("values,expected", test_medians)
    def test_unweighted_median(self, values, expected):
        """for different sets of data gives median"""
        assert unweighted_median([Decimal(v) for v in values]) == expected

    def test_filter_outliers(self):
        """reports further than the deviation from the median are discarded"""
        reports = make_reports([3000, 3050, 3100, 50000])
        median = unweighted_median([r.value for r in reports])

        survivors, outliers = filter_outliers(reports, median, DEVIATION)

        assert [r.value for r in survivors] == [3000, 3050, 3100]
        assert [r.value for r in outliers] == [50000]

    @pytest.mark.parametrize("stakes,cap,expected", test_capped_weights)
    def test_capped_stake_weights(self, stakes, cap, expected):
        """weights sum to one and respect the cap when it can be honoured"""
        weights = capped_stake_weights(stakes, cap)
        assert weights == expected
        assert sum(weights.values()) == 1

    def test_effective_weights_use_confidence(self):
        """confidence scales the stake weight before normalisation"""
        reports = make_reports([100, 101], confidence="1")
        reports[1] = PriceReport("ETH/USD", "o1", Decimal(101), Decimal("0.5"), 1, 1)

        weights = effective_weights(reports, equal_stakes(reports), Fraction(1))

        assert weights == {"o0": Fraction(2, 3), "o1": Fraction(1, 3)}

    def test_weighted_median_exact_half_picks_lower(self):
        """on an exact 1/2 split the lower value wins"""
        reports = make_reports([200, 100])
        weights = {"o0": Fraction(1, 2), "o1": Fraction(1, 2)}
        assert weighted_median(reports, weights) == Decimal(100)

    def test_weighted_median_follows_weight(self):
        """a majority of weight decides the value"""
        reports = make_reports([100, 110, 120])
        weights = {"o0": Fraction(1, 10), "o1": Fraction(2, 10), "o2": Fraction(7, 10)}
        assert weighted_median(reports, weights) == Decimal(120)


class TestAggregate:
    """Tests round aggregation outcomes"""

    def _aggregate(self, reports, quorum=3, stakes=None):
        return aggregate(
            reports,
            stakes if stakes is not None else equal_stakes(reports),
            quorum,
            DEVIATION,
            OUTLIER_FRACTION,
            CAP,
        )

    def test_basic_median(self):
        """equal stake and confidence gives the plain median"""
        result = self._aggregate(make_reports([3000, 3100, 3050]))
        assert result.published
        assert result.value == Decimal(3050)
        assert result.failure is None

    def test_outlier_rejection(self):
        """an extreme report is discarded and the rest decide"""
        result = self._aggregate(make_reports([3000, 3050, 3100, 50000]))
        assert result.value == Decimal(3050)
        assert [r.oracle for r in result.outliers] == ["o3"]
        assert "o3" not in result.weights

    def test_no_quorum(self):
        """too few reports"""
        result = self._aggregate(make_reports([3000, 3100]))
        assert not result.published
        assert result.failure == "NoQuorum"
        assert result.survivors == []

    def test_too_many_outliers(self):
        """more than the allowed share of outliers"""
        result = self._aggregate(make_reports([100, 100, 200, 300, 400]))
        assert result.failure == "InsufficientConsensus"
        assert result.median == Decimal(200)
        assert len(result.outliers) == 4

    def test_survivors_below_quorum(self):
        """outlier share allowed but not enough survivors left"""
        result = self._aggregate(make_reports([100, 100, 100, 200, 300]), quorum=4)
        assert result.failure == "InsufficientConsensus"
        assert len(result.survivors) == 3

    def test_zero_confidence(self):
        """zero confidence everywhere falls back to stake weights"""
        reports = make_reports([100, 101, 102], confidence="0")
        stakes = {"o0": 1000, "o1": 1000, "o2": 5000}

        result = self._aggregate(reports, stakes=stakes)

        assert result.published
        assert result.value == Decimal(101)
        assert sum(result.weights.values()) == 1

    def test_zero_confidence_weights(self):
        """effective weights equal the capped stake weights"""
        reports = make_reports([100, 101], confidence="0")
        weights = effective_weights(reports, {"o0": 1, "o1": 3}, Fraction(1))
        assert weights == {"o0": Fraction(1, 4), "o1": Fraction(3, 4)}

    @pytest.mark.parametrize("seed", range(20))
    def test_value_within_surviving_range(self, seed):
        """the consensus value never leaves the surviving values"""
        rng = random.Random(seed)
        values = [rng.randint(9500, 10500) for _ in range(rng.randint(3, 9))]
        reports = make_reports(values)
        stakes = {r.oracle: rng.randint(100, 100_000) for r in reports}

        result = self._aggregate(reports, stakes=stakes)

        if result.published:
            surviving = [r.value for r in result.survivors]
            assert min(surviving) <= result.value <= max(surviving)
        else:
            assert len(result.survivors) < 3 or result.outliers

    @pytest.mark.parametrize("quorum", [1, 3, 5, 7])
    def test_published_iff_survivors_reach_quorum(self, quorum):
        """a value is published exactly when enough reports survive"""
        reports = make_reports([100, 101, 99, 102, 98, 130])
        result = self._aggregate(reports, quorum=quorum)
        assert result.published == (len(result.survivors) >= quorum)

    @pytest.mark.parametrize(
        "extreme", [1, 50, 95, 100, 102, 104, 110, 1000, 10**6]
    )
    def test_single_oracle_cannot_move_consensus(self, extreme):
        """one capped reporter shifts the value by at most one neighbouring report"""
        reports = make_reports([100, 101, 102, 103, extreme])
        result = self._aggregate(reports)
        assert result.published
        assert Decimal(101) <= result.value <= Decimal(102)

    def test_large_staker_is_capped(self):
        """a dominant stake does not outvote the others alone"""
        reports = make_reports([100, 101, 102, 103, 104])
        stakes = equal_stakes(reports, stake=100)
        stakes["o4"] = 1_000_000

        result = self._aggregate(reports, stakes=stakes)

        assert result.weights["o4"] == Fraction(1, 4)
        assert result.value == Decimal(102)

    def test_aggregation_is_deterministic(self):
        """aggregating the same reports twice gives the same value"""
        reports = make_reports([3000, 3001, 3002, 3003])
        first = self._aggregate(reports)
        second = self._aggregate(list(reversed(reports)))
        assert first.value == second.value
