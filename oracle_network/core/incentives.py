"""Reputation, reward and slashing accounting applied when a round settles."""

import logging
from decimal import ROUND_FLOOR, Decimal
from fractions import Fraction
from typing import Dict

from . import events as ev
from .consensus import AggregationResult
from .events import EventLog
from .models import HistoryEntry, Oracle, OracleStatus, PriceReport, Round
from .registry import OracleRegistry
from .settings import NetworkSettings
from .stake_ledger import REWARD_POOL, StakeLedger, fee_pool

logger = logging.getLogger(__name__)

SCORE_PRECISION = Decimal("1e-18")


def _score(value: Decimal) -> Decimal:
    """Clamp to [0, 1] and bound the precision of a stored score."""
    value = min(max(value, Decimal(0)), Decimal(1))
    return value.quantize(SCORE_PRECISION)


def accuracy(value: Decimal, reference: Decimal) -> Decimal:
    """1 - relative error against the reference, clamped to [0, 1]."""
    return _score(Decimal(1) - abs(value - reference) / reference)


def _floor(amount) -> int:
    """Round a non-negative Fraction or Decimal down to whole units."""
    if isinstance(amount, Fraction):
        return amount.numerator // amount.denominator
    return int(Decimal(amount).to_integral_value(rounding=ROUND_FLOOR))


class IncentiveEngine:
    """Scores reporters against consensus and moves rewards and penalties."""

    def __init__(
        self,
        settings: NetworkSettings,
        registry: OracleRegistry,
        ledger: StakeLedger,
        events: EventLog,
    ):
        self.settings = settings
        self.registry = registry
        self.ledger = ledger
        self.events = events
        self.total_rewards = 0
        self.total_slashed = 0

    def settle(self, rnd: Round, result: AggregationResult, now: int) -> None:
        """Apply every side effect of a closed or expired round."""
        reference = result.value if result.published else result.median
        if reference is not None:
            for report in result.survivors:
                self._score_survivor(report, reference, result.published)
            for report in result.outliers:
                self._score_outlier(rnd, report, reference, now)
        if result.published:
            self._distribute_rewards(rnd, result.weights, now)
        self._track_uptime(rnd, now)

    def _record(self, oracle: Oracle, entry: HistoryEntry) -> None:
        oracle.stats.history.append(entry)

    def _score_survivor(self, report: PriceReport, reference: Decimal, published: bool) -> None:
        oracle = self.registry.get(report.oracle)
        score = accuracy(report.value, reference)
        alpha = self.settings.reputation_alpha
        oracle.reputation = _score(alpha * score + (Decimal(1) - alpha) * oracle.reputation)
        if published:
            oracle.stats.successful_reports += 1
        self._record(oracle, HistoryEntry(report.asset, report.round, score, False))

    def _score_outlier(self, rnd: Round, report: PriceReport, reference: Decimal, now: int) -> None:
        oracle = self.registry.get(report.oracle)
        score = accuracy(report.value, reference)
        oracle.reputation = _score(oracle.reputation - self.settings.outlier_penalty)
        oracle.stats.outlier_reports += 1
        self._record(oracle, HistoryEntry(report.asset, report.round, score, True))
        logger.info(
            "Outlier %s from %s on %s round %s",
            report.value,
            oracle.id,
            rnd.asset,
            rnd.round_id,
            extra={"tag": "outlier", "oracle": oracle.id},
        )
        if self.outlier_rate_exceeded(oracle):
            self.slash(oracle, rnd, now)

    def outlier_rate(self, oracle: Oracle) -> Fraction:
        """Share of outliers in the trailing slash window."""
        window = list(oracle.stats.history)[-self.settings.slash_window :]
        if not window:
            return Fraction(0)
        return Fraction(sum(1 for entry in window if entry.outlier), len(window))

    def outlier_rate_exceeded(self, oracle: Oracle) -> bool:
        window = list(oracle.stats.history)[-self.settings.slash_window :]
        if len(window) < self.settings.slash_min_samples:
            return False
        return self.outlier_rate(oracle) > Fraction(self.settings.slash_threshold)

    def slash(self, oracle: Oracle, rnd: Round, now: int) -> int:
        """Forfeit ``slash_fraction`` of the oracle's locked stake to the reward pool."""
        locked = self.ledger.locked_of(oracle.id)
        if locked <= 0:
            return 0
        amount = max(1, _floor(locked * self.settings.slash_fraction))
        self.ledger.slash(oracle.id, amount, REWARD_POOL)
        oracle.stats.total_slashed += amount
        self.total_slashed += amount
        self.events.emit(
            ev.ORACLE_SLASHED,
            now,
            asset=rnd.asset,
            round_id=rnd.round_id,
            oracle=oracle.id,
            amount=amount,
            outlier_rate=str(float(self.outlier_rate(oracle))),
            remaining=self.ledger.locked_of(oracle.id),
        )
        logger.warning(
            "Slashed oracle %s by %s on %s round %s",
            oracle.id,
            amount,
            rnd.asset,
            rnd.round_id,
            extra={"tag": "slashing", "oracle": oracle.id, "amount": amount},
        )
        self.registry.enforce_min_stake(oracle, now)
        return amount

    def distributable(self, asset: str) -> int:
        """Fees of the asset plus this round's share of the reward pool."""
        return self.ledger.fee_pools.get(asset, 0) + _floor(
            self.ledger.reward_pool * self.settings.reward_pool_share
        )

    def _distribute_rewards(self, rnd: Round, weights: Dict[str, Fraction], now: int) -> None:
        """Pay survivors in proportion to their effective weight.

        Each oracle keeps its commission share as free balance and the rest is
        restaked. Rounding dust stays in the reward pool.
        """
        total = self.distributable(rnd.asset)
        self.ledger.transfer_pool(
            fee_pool(rnd.asset), REWARD_POOL, self.ledger.fee_pools.get(rnd.asset, 0)
        )
        if total <= 0:
            return
        for oracle_id in sorted(weights):
            share = _floor(total * weights[oracle_id])
            if share <= 0:
                continue
            oracle = self.registry.get(oracle_id)
            commission = _floor(share * oracle.commission)
            restaked = share - commission
            self.ledger.credit(oracle_id, commission, REWARD_POOL, lock=False)
            self.ledger.credit(oracle_id, restaked, REWARD_POOL, lock=True)
            oracle.stats.total_rewards += share
            self.total_rewards += share
            self.events.emit(
                ev.ORACLE_REWARDED,
                now,
                asset=rnd.asset,
                round_id=rnd.round_id,
                oracle=oracle_id,
                amount=share,
                commission=commission,
                restaked=restaked,
            )

    def _track_uptime(self, rnd: Round, now: int) -> None:
        """Reset reporters' miss counters and decay oracles that skipped the round."""
        for oracle in list(self.registry.oracles.values()):
            if rnd.asset not in oracle.stats.tracked_assets:
                continue
            if oracle.id in rnd.reports:
                oracle.stats.rounds_eligible += 1
                oracle.stats.rounds_participated += 1
                oracle.stats.consecutive_missed = 0
                continue
            if oracle.status is not OracleStatus.ACTIVE:
                continue
            oracle.stats.rounds_eligible += 1
            oracle.stats.consecutive_missed += 1
            if oracle.stats.consecutive_missed < self.settings.missed_round_limit:
                continue
            oracle.reputation = _score(
                oracle.reputation * (Decimal(1) - self.settings.uptime_decay)
            )
            logger.info(
                "Oracle %s missed %s consecutive rounds, reputation %s",
                oracle.id,
                oracle.stats.consecutive_missed,
                oracle.reputation,
            )
            if oracle.reputation < self.settings.reputation_floor:
                self.registry.suspend(oracle, now, "reputation below floor")
