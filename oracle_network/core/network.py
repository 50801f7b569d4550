"""Oracle network state and its read/write operations."""

import copy
import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from . import events as ev
from .consensus import AggregationResult, aggregate
from .errors import AssetHalted, FeedNotFound, InsufficientFee, InvariantViolation
from .events import Event, EventLog
from .incentives import IncentiveEngine
from .models import (
    AssetFeed,
    NetworkStats,
    OraclePerformance,
    OracleStatus,
    Round,
    RoundStatus,
    StakeEntry,
    SubmitReceipt,
)
from .registry import OracleRegistry
from .report_ledger import ReportLedger
from .settings import NetworkSettings
from .stake_ledger import StakeLedger

logger = logging.getLogger(__name__)


class NetworkState:
    """Every mutable structure of a network."""

    def __init__(self, settings: NetworkSettings):
        self.settings = settings
        self.events = EventLog(settings.event_retention)
        self.ledger = StakeLedger()
        self.registry = OracleRegistry(settings, self.ledger, self.events)
        self.reports = ReportLedger(settings, self.registry, self.events)
        self.incentives = IncentiveEngine(settings, self.registry, self.ledger, self.events)
        self.feeds: Dict[str, AssetFeed] = {}
        self.halted_assets: Set[str] = set()

    def snapshot(self) -> Tuple:
        """What a write may change, copied so it can be undone.

        Retained history (finished rounds, events) is append-only and is
        shared rather than copied, so the cost does not grow with it.
        """
        ledger = self.ledger
        return (
            copy.deepcopy(ledger.entries),
            ledger.reward_pool,
            dict(ledger.fee_pools),
            copy.deepcopy(self.registry.oracles),
            self.reports.snapshot(),
            (self.incentives.total_rewards, self.incentives.total_slashed),
            dict(self.feeds),
            set(self.halted_assets),
            self.events.last_seq,
        )

    def restore(self, snapshot: Tuple) -> None:
        (
            self.ledger.entries,
            self.ledger.reward_pool,
            self.ledger.fee_pools,
            self.registry.oracles,
            reports,
            (self.incentives.total_rewards, self.incentives.total_slashed),
            self.feeds,
            self.halted_assets,
            last_seq,
        ) = snapshot
        self.reports.restore(reports)
        self.events.rollback(last_seq)


class OracleNetwork:
    """Registration, reporting, aggregation and incentives over one state object.

    Every write runs as a single transaction: if it raises, the state (event
    log included) is restored as it was before the call. Invariant violations
    additionally halt the asset they occurred on.
    """

    def __init__(self, settings: Optional[NetworkSettings] = None):
        self.state = NetworkState(settings or NetworkSettings())

    @property
    def settings(self) -> NetworkSettings:
        return self.state.settings

    @property
    def events(self) -> EventLog:
        return self.state.events

    @contextmanager
    def _transaction(self):
        backup = self.state.snapshot()
        try:
            yield self.state
        except InvariantViolation as exc:
            self.state.restore(backup)
            if exc.asset is not None and not isinstance(exc, AssetHalted):
                self.state.halted_assets.add(exc.asset)
                logger.critical("Halted asset %s: %s", exc.asset, exc)
            raise
        except Exception:
            self.state.restore(backup)
            raise

    # Writes

    def register_oracle(
        self,
        oracle_id: str,
        endpoint: str,
        stake: int,
        commission,
        now: int,
        owner: Optional[str] = None,
    ) -> str:
        """Stake ``stake`` and register ``oracle_id`` as an active reporter."""
        with self._transaction() as state:
            state.registry.register(oracle_id, endpoint, stake, commission, now, owner)
        return oracle_id

    def update_endpoint(self, oracle_id: str, caller: str, endpoint: str) -> None:
        with self._transaction() as state:
            state.registry.update_endpoint(oracle_id, caller, endpoint)

    def update_commission(self, oracle_id: str, caller: str, commission) -> None:
        with self._transaction() as state:
            state.registry.update_commission(oracle_id, caller, commission)

    def deregister(self, oracle_id: str, caller: str, now: int) -> None:
        """Exit an oracle. Overdue rounds are closed before checking pending reports."""
        with self._transaction() as state:
            self._close_overdue(now)
            state.registry.deregister(
                oracle_id,
                caller,
                now,
                has_pending_reports=state.reports.has_pending_reports(oracle_id, now),
            )

    def reactivate(self, oracle_id: str, caller: str, top_up: int, now: int) -> None:
        with self._transaction() as state:
            state.registry.reactivate(oracle_id, caller, top_up, now)

    def report_price(
        self,
        oracle_id: str,
        asset: str,
        value,
        confidence,
        now: int,
        round_id: Optional[int] = None,
    ) -> SubmitReceipt:
        """Submit a report and close the round if quorum or deadline is reached."""
        with self._transaction() as state:
            if asset in state.halted_assets:
                raise AssetHalted(f"asset {asset} is halted", asset=asset)
            current = state.reports.current_round(asset)
            if current is not None and current.is_overdue(now):
                self._close(current, now)
            rnd = state.reports.submit(oracle_id, asset, value, confidence, now, round_id)
            if state.reports.ready_to_close(rnd, now):
                self._close(rnd, now)
            return self._receipt(rnd)

    report = report_price

    def request_update(self, asset: str, payment: int, now: int) -> int:
        """Pay the request fee for an asset. Returns the asset's fee pool."""
        with self._transaction() as state:
            if payment < self.settings.request_fee:
                raise InsufficientFee(
                    f"payment {payment} is below the request fee {self.settings.request_fee}"
                )
            pool = state.ledger.pay_fee(asset, payment)
            state.events.emit(ev.UPDATE_REQUESTED, now, asset=asset, payment=payment)
            return pool

    def close_round(self, asset: str, now: int) -> Optional[SubmitReceipt]:
        """Close the open round of an asset if it is ready, and report its status."""
        with self._transaction() as state:
            if asset in state.halted_assets:
                raise AssetHalted(f"asset {asset} is halted", asset=asset)
            rnd = state.reports.current_round(asset)
            if rnd is None:
                rnd = state.reports.latest_round(asset)
                return self._receipt(rnd) if rnd is not None else None
            if state.reports.ready_to_close(rnd, now):
                self._close(rnd, now)
            return self._receipt(rnd)

    def tick(self, now: int) -> List[SubmitReceipt]:
        """Close every overdue round."""
        with self._transaction():
            return [self._receipt(rnd) for rnd in self._close_overdue(now)]

    def withdraw_stake(self, oracle_id: str, amount: int, now: int) -> int:
        """Withdraw free stake. Exited oracles get their stake back after the cooldown."""
        with self._transaction() as state:
            oracle = state.registry.get(oracle_id)
            state.registry.finalize_exit(oracle_id, now)
            minimum = (
                self.settings.min_stake_amount
                if oracle.status is OracleStatus.ACTIVE
                else 0
            )
            balance = state.ledger.withdraw(oracle_id, amount, minimum)
            state.events.emit(
                ev.STAKE_WITHDRAWN, now, oracle=oracle_id, amount=amount, balance=balance
            )
            return balance

    # Round closure

    def _close_overdue(self, now: int) -> List[Round]:
        closed = []
        for rnd in self.state.reports.open_rounds():
            if rnd.asset in self.state.halted_assets or not rnd.is_overdue(now):
                continue
            self._close(rnd, now)
            closed.append(rnd)
        return closed

    def _aggregate(self, rnd: Round) -> AggregationResult:
        settings = self.settings
        return aggregate(
            list(rnd.reports.values()),
            rnd.stake_snapshot,
            settings.min_quorum,
            settings.max_deviation_fraction,
            settings.max_outlier_fraction,
            settings.max_single_weight,
        )

    def _close(self, rnd: Round, now: int) -> AggregationResult:
        """Aggregate, publish or expire, then settle incentives."""
        state = self.state
        try:
            rnd.stake_snapshot = {
                oracle_id: state.registry.stake_of(oracle_id) for oracle_id in rnd.reports
            }
            result = self._aggregate(rnd)
            if result.published:
                self._publish(rnd, result.value, now)
                state.reports.mark_closed(rnd, RoundStatus.CLOSED, now, value=result.value)
                state.events.emit(
                    ev.CONSENSUS_PUBLISHED,
                    now,
                    asset=rnd.asset,
                    round_id=rnd.round_id,
                    value=str(result.value),
                    reports=len(rnd.reports),
                    survivors=len(result.survivors),
                )
                logger.info(
                    "Published %s for %s round %s",
                    result.value,
                    rnd.asset,
                    rnd.round_id,
                    extra={"tag": "consensus", "asset": rnd.asset, "round": rnd.round_id},
                )
            else:
                state.reports.mark_closed(rnd, RoundStatus.EXPIRED, now, failure=result.failure)
                state.events.emit(
                    ev.ROUND_EXPIRED,
                    now,
                    asset=rnd.asset,
                    round_id=rnd.round_id,
                    failure=result.failure,
                    reports=len(rnd.reports),
                )
                logger.warning(
                    "Round %s of %s expired: %s", rnd.round_id, rnd.asset, result.failure
                )
            state.incentives.settle(rnd, result, now)
        except InvariantViolation as exc:
            if exc.asset is None:
                exc.asset = rnd.asset
            raise
        return result

    def _publish(self, rnd: Round, value: Decimal, now: int) -> None:
        feed = self.state.feeds.get(rnd.asset)
        if feed is not None and rnd.round_id <= feed.latest_round:
            raise InvariantViolation(
                f"round {rnd.round_id} of {rnd.asset} published after round {feed.latest_round}",
                asset=rnd.asset,
            )
        self.state.feeds[rnd.asset] = AssetFeed(
            asset=rnd.asset,
            latest_round=rnd.round_id,
            latest_value=value,
            last_updated=now,
        )

    def _receipt(self, rnd: Round) -> SubmitReceipt:
        return SubmitReceipt(
            asset=rnd.asset,
            round_id=rnd.round_id,
            status=rnd.status,
            report_count=len(rnd.reports),
            consensus_value=rnd.consensus_value,
            failure=rnd.failure,
        )

    # Reads

    def get_latest(self, asset: str) -> Tuple[Decimal, int]:
        """Latest consensus value of an asset and the round that produced it."""
        feed = self.get_feed(asset)
        return feed.latest_value, feed.latest_round

    get_median = get_latest

    def get_feed(self, asset: str) -> AssetFeed:
        feed = self.state.feeds.get(asset)
        if feed is None:
            raise FeedNotFound(f"no consensus published for {asset}", asset=asset)
        return copy.copy(feed)

    def get_round(self, asset: str, round_id: int) -> Round:
        return copy.deepcopy(self.state.reports.get_round(asset, round_id))

    def get_stake(self, oracle_id: str) -> StakeEntry:
        entry = self.state.ledger.entries.get(oracle_id)
        return copy.copy(entry) if entry is not None else StakeEntry(oracle=oracle_id)

    def get_active_oracles(self) -> List[str]:
        return sorted(oracle.id for oracle in self.state.registry.active_oracles())

    def is_eligible(self, oracle_id: str) -> bool:
        return self.state.registry.is_eligible(oracle_id)

    def is_halted(self, asset: str) -> bool:
        return asset in self.state.halted_assets

    def events_since(self, seq: int = 0) -> List[Event]:
        return self.state.events.since(seq)

    def total_supply(self) -> int:
        return self.state.ledger.total_supply()

    def get_network_stats(self) -> NetworkStats:
        """Aggregate counters, recomputed from current state."""
        state = self.state
        oracles = state.registry.oracles.values()
        return NetworkStats(
            total_oracles=len(state.registry.oracles),
            active_oracles=sum(1 for o in oracles if o.status is OracleStatus.ACTIVE),
            total_reports=state.reports.total_reports,
            total_value_locked=state.ledger.total_locked(),
            total_rewards=sum(o.stats.total_rewards for o in oracles),
            active_feeds=len(state.feeds),
            reward_pool=state.ledger.reward_pool,
            total_slashed=sum(o.stats.total_slashed for o in oracles),
        )

    def get_oracle_performance(self, oracle_id: str) -> OraclePerformance:
        """Accuracy, uptime and report counters derived from an oracle's history."""
        oracle = self.state.registry.get(oracle_id)
        stats = oracle.stats
        history = list(stats.history)
        accuracy = (
            sum((entry.accuracy for entry in history), Decimal(0)) / len(history)
            if history
            else None
        )
        uptime = (
            Decimal(stats.rounds_participated) / Decimal(stats.rounds_eligible)
            if stats.rounds_eligible
            else None
        )
        response_time = (
            Decimal(stats.response_time_total) / Decimal(stats.response_samples)
            if stats.response_samples
            else None
        )
        return OraclePerformance(
            oracle_id=oracle.id,
            status=oracle.status,
            stake=self.state.registry.stake_of(oracle.id),
            reputation=oracle.reputation,
            accuracy=accuracy,
            uptime=uptime,
            total_reports=stats.total_reports,
            successful_reports=stats.successful_reports,
            outlier_reports=stats.outlier_reports,
            missed_rounds=stats.rounds_eligible - stats.rounds_participated,
            response_time=response_time,
            total_rewards=stats.total_rewards,
            total_slashed=stats.total_slashed,
        )

    def replay_round(self, asset: str, round_id: int) -> Optional[Decimal]:
        """Re-run aggregation of a finished round on its stored reports and stakes."""
        rnd = self.state.reports.get_round(asset, round_id)
        return self._aggregate(rnd).value
