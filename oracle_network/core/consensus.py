""" Business logic for calculating the aggregation and consensus."""
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction
from statistics import median
from typing import Dict, List, Optional, Sequence

from .errors import InsufficientConsensus, NoQuorum
from .models import PriceReport

HALF = Fraction(1, 2)


@dataclass
class AggregationResult:
    """Outcome of aggregating one round.

    ``value`` is None when the round could not reach consensus, in which case
    ``failure`` names the reason. Survivors and outliers are always filled
    once the quorum check passed so the round can still be scored.
    """

    value: Optional[Decimal]
    median: Optional[Decimal] = None
    survivors: List[PriceReport] = field(default_factory=list)
    outliers: List[PriceReport] = field(default_factory=list)
    weights: Dict[str, Fraction] = field(default_factory=dict)
    failure: Optional[str] = None

    @property
    def published(self) -> bool:
        return self.value is not None


def unweighted_median(values: Sequence[Decimal]) -> Decimal:
    """
    Median of the reported values. For an even count this is the mean of the
    two middle values, as ``statistics.median`` computes it.
    """
    return Decimal(median(sorted(values)))


def filter_outliers(
    reports: Sequence[PriceReport], _median: Decimal, max_deviation: Decimal
):
    """
    Split reports into survivors and outliers.
    Parameters:
    - reports: the round reports
    - _median: unweighted median of the reported values
    - max_deviation: allowed relative distance from the median, e.g. 0.1 = 10%
    Returns:
    - A 2-tuple of (survivors, outliers), both sorted by value then oracle id.
    """
    survivors, outliers = [], []
    for report in sorted(reports, key=lambda r: (r.value, r.oracle)):
        if abs(report.value - _median) / _median > max_deviation:
            outliers.append(report)
        else:
            survivors.append(report)
    return survivors, outliers


def capped_stake_weights(stakes: Dict[str, int], cap: Fraction) -> Dict[str, Fraction]:
    """
    Normalise stakes to weights summing to one, none above ``cap``.

    The excess of every capped oracle is redistributed to the uncapped ones in
    proportion to their stake, repeating until no weight exceeds the cap. When
    the cap cannot be honoured (fewer than 1/cap oracles) every oracle gets an
    equal share.

    Example:
    capped_stake_weights({"a": 10, "b": 1, "c": 1, "d": 1, "e": 1}, 1/4)
      -> a: 1/4, b..e: 3/16 each
    """
    oracles = sorted(stakes)
    if not oracles:
        return {}
    if cap * len(oracles) < 1:
        return {oracle: Fraction(1, len(oracles)) for oracle in oracles}
    total = sum(stakes.values())
    if total <= 0:
        return {oracle: Fraction(1, len(oracles)) for oracle in oracles}

    weights: Dict[str, Fraction] = {}
    uncapped = list(oracles)
    remaining = Fraction(1)
    while uncapped:
        pool_stake = sum(stakes[oracle] for oracle in uncapped)
        if pool_stake == 0:
            share = remaining / len(uncapped)
            weights.update({oracle: share for oracle in uncapped})
            break
        over = [
            oracle
            for oracle in uncapped
            if remaining * Fraction(stakes[oracle], pool_stake) > cap
        ]
        if not over:
            for oracle in uncapped:
                weights[oracle] = remaining * Fraction(stakes[oracle], pool_stake)
            break
        for oracle in over:
            weights[oracle] = cap
            remaining -= cap
            uncapped.remove(oracle)
    return weights


def effective_weights(
    reports: Sequence[PriceReport], stakes: Dict[str, int], cap: Fraction
) -> Dict[str, Fraction]:
    """
    Confidence times capped stake weight, normalised to sum to one.
    When every report carries zero confidence the capped stake weights are
    used alone, so a round with enough survivors always has a value.
    """
    stake_weights = capped_stake_weights(
        {report.oracle: stakes.get(report.oracle, 0) for report in reports}, cap
    )
    raw = {
        report.oracle: Fraction(report.confidence) * stake_weights[report.oracle]
        for report in reports
    }
    total = sum(raw.values())
    if total == 0:
        return stake_weights
    return {oracle: weight / total for oracle, weight in raw.items()}


def weighted_median(reports: Sequence[PriceReport], weights: Dict[str, Fraction]) -> Decimal:
    """
    Value at which the cumulative weight first reaches one half.

    Reports are ordered by value (ties broken by oracle id). On an exact 1/2
    split the lower of the two adjacent values is selected, since the
    cumulative weight reaches 1/2 there first.
    """
    ordered = sorted(reports, key=lambda r: (r.value, r.oracle))
    cumulative = Fraction(0)
    for report in ordered:
        cumulative += weights.get(report.oracle, Fraction(0))
        if cumulative >= HALF:
            return report.value
    return ordered[-1].value


def aggregate(
    reports: Sequence[PriceReport],
    stakes: Dict[str, int],
    min_quorum: int,
    max_deviation: Decimal,
    max_outlier_fraction: Decimal,
    max_single_weight: Decimal,
) -> AggregationResult:
    """
    Compute the consensus value of a round.
    Parameters:
    - reports: one report per oracle
    - stakes: staked amount of each reporter at closure
    - min_quorum: surviving reports required to publish
    - max_deviation: relative distance from the median beyond which a report
      is an outlier
    - max_outlier_fraction: largest share of reports that may be discarded
    - max_single_weight: cap on any single oracle's stake weight
    Returns:
    - An AggregationResult. On failure ``value`` is None and ``failure`` is
      ``NoQuorum`` or ``InsufficientConsensus``.
    """
    if len(reports) < min_quorum or not reports:
        return AggregationResult(value=None, failure=NoQuorum.kind)

    _median = unweighted_median([report.value for report in reports])
    survivors, outliers = filter_outliers(reports, _median, max_deviation)
    result = AggregationResult(
        value=None, median=_median, survivors=survivors, outliers=outliers
    )

    if Fraction(len(outliers), len(reports)) > Fraction(max_outlier_fraction):
        result.failure = InsufficientConsensus.kind
        return result
    if len(survivors) < min_quorum:
        result.failure = InsufficientConsensus.kind
        return result

    weights = effective_weights(survivors, stakes, Fraction(max_single_weight))
    result.weights = weights
    result.value = weighted_median(survivors, weights)
    return result
