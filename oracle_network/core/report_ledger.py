"""Per-asset rounds of submitted price reports."""

import copy
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple

from . import events as ev
from .errors import (
    InvalidConfidence,
    InvalidValue,
    InvariantViolation,
    RoundClosed,
    StaleReport,
    UnknownRound,
)
from .events import EventLog
from .models import PriceReport, Round, RoundStatus
from .registry import OracleRegistry
from .settings import NetworkSettings

logger = logging.getLogger(__name__)


def _as_decimal(value, error_cls, name: str) -> Decimal:
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise error_cls(f"{name} {value!r} is not a number") from exc
    if not result.is_finite():
        raise error_cls(f"{name} must be finite, got {value!r}")
    return result


class ReportLedger:
    """Stores reports and tracks the open round of every asset."""

    def __init__(self, settings: NetworkSettings, registry: OracleRegistry, events: EventLog):
        self.settings = settings
        self.registry = registry
        self.events = events
        self.rounds: Dict[str, Dict[int, Round]] = {}
        self.total_reports = 0

    def assets(self) -> List[str]:
        return sorted(self.rounds)

    def latest_round(self, asset: str) -> Optional[Round]:
        """Most recent round of an asset, open or not."""
        rounds = self.rounds.get(asset)
        if not rounds:
            return None
        # rounds are inserted in id order
        return next(reversed(rounds.values()))

    def current_round(self, asset: str) -> Optional[Round]:
        """The open round of an asset, if any."""
        latest = self.latest_round(asset)
        return latest if latest is not None and latest.is_open else None

    def get_round(self, asset: str, round_id: int) -> Round:
        try:
            return self.rounds[asset][round_id]
        except KeyError as exc:
            raise UnknownRound(
                f"round {round_id} of {asset} does not exist", asset=asset
            ) from exc

    def open_rounds(self) -> List[Round]:
        """Open rounds, at most one per asset and always its latest."""
        return [
            rnd
            for rnd in (self.latest_round(asset) for asset in self.rounds)
            if rnd is not None and rnd.is_open
        ]

    def snapshot(self) -> Tuple:
        """State needed to undo a write. Finished rounds are never mutated, so
        only the open ones are copied."""
        return (
            {asset: dict(rounds) for asset, rounds in self.rounds.items()},
            [copy.deepcopy(rnd) for rnd in self.open_rounds()],
            self.total_reports,
        )

    def restore(self, snapshot: Tuple) -> None:
        rounds, open_rounds, total_reports = snapshot
        for rnd in open_rounds:
            rounds[rnd.asset][rnd.round_id] = rnd
        self.rounds = rounds
        self.total_reports = total_reports

    def open_round(self, asset: str, now: int) -> Round:
        """Start the next round of an asset."""
        latest = self.latest_round(asset)
        round_id = latest.round_id + 1 if latest is not None else 1
        rnd = Round(
            asset=asset,
            round_id=round_id,
            opened_at=now,
            deadline=now + self.settings.round_duration,
        )
        self.rounds.setdefault(asset, {})[round_id] = rnd
        logger.debug("Opened round %s of %s", round_id, asset)
        return rnd

    def _target_round(self, asset: str, round_id: Optional[int], now: int) -> Round:
        current = self.current_round(asset)
        if round_id is None:
            return current if current is not None else self.open_round(asset, now)
        if current is not None and current.round_id == round_id:
            return current
        rounds = self.rounds.get(asset, {})
        if round_id in rounds:
            raise RoundClosed(
                f"round {round_id} of {asset} is {rounds[round_id].status.value}",
                asset=asset,
            )
        latest = self.latest_round(asset)
        if latest is not None and round_id < latest.round_id:
            raise RoundClosed(f"round {round_id} of {asset} is finished", asset=asset)
        next_id = latest.round_id + 1 if latest is not None else 1
        if current is None and round_id == next_id:
            return self.open_round(asset, now)
        raise UnknownRound(f"round {round_id} of {asset} is not open", asset=asset)

    def submit(
        self,
        oracle_id: str,
        asset: str,
        value,
        confidence,
        now: int,
        round_id: Optional[int] = None,
    ) -> Round:
        """Accept a report into the asset's open round and return that round."""
        self.registry.require_eligible(oracle_id)
        confidence = _as_decimal(confidence, InvalidConfidence, "confidence")
        if not Decimal(0) <= confidence <= Decimal(1):
            raise InvalidConfidence(f"confidence must be within [0, 1], got {confidence}")
        value = _as_decimal(value, InvalidValue, "value")
        if value <= 0:
            raise InvalidValue(f"value must be positive, got {value}")

        current = self.current_round(asset)
        previous = current.reports.get(oracle_id) if current is not None else None
        if previous is not None and (round_id is None or round_id == current.round_id):
            if previous.submitted_at >= now:
                raise StaleReport(
                    f"{oracle_id} already reported at {previous.submitted_at}",
                    asset=asset,
                )

        rnd = self._target_round(asset, round_id, now)
        report = PriceReport(
            asset=asset,
            oracle=oracle_id,
            value=value,
            confidence=confidence,
            submitted_at=now,
            round=rnd.round_id,
        )
        rnd.reports[oracle_id] = report

        oracle = self.registry.get(oracle_id)
        oracle.stats.tracked_assets.add(asset)
        # a replacement keeps counting as the same report
        if previous is None:
            self.total_reports += 1
            oracle.stats.total_reports += 1
            oracle.stats.response_time_total += now - rnd.opened_at
            oracle.stats.response_samples += 1

        self.events.emit(
            ev.PRICE_REPORTED,
            now,
            asset=asset,
            round_id=rnd.round_id,
            oracle=oracle_id,
            value=str(value),
            confidence=str(confidence),
            replaced=previous is not None,
        )
        logger.debug(
            "Report %s for %s round %s from %s",
            value,
            asset,
            rnd.round_id,
            oracle_id,
        )
        return rnd

    def ready_to_close(self, rnd: Round, now: int) -> bool:
        """Quorum of reports reached or deadline elapsed."""
        return rnd.is_open and (
            len(rnd.reports) >= self.settings.reports_to_close or rnd.is_overdue(now)
        )

    def has_pending_reports(self, oracle_id: str, now: int) -> bool:
        """True if the oracle reported in an open round still within its deadline."""
        return any(
            oracle_id in rnd.reports and not rnd.is_overdue(now)
            for rnd in self.open_rounds()
        )

    def mark_closed(self, rnd: Round, status: RoundStatus, now: int, value=None, failure=None):
        """One-way transition out of the open state."""
        if not rnd.is_open:
            raise InvariantViolation(
                f"round {rnd.round_id} of {rnd.asset} is already {rnd.status.value}",
                asset=rnd.asset,
            )
        rnd.status = status
        rnd.closed_at = now
        rnd.consensus_value = value
        rnd.failure = failure
        self._prune(rnd.asset)

    def _prune(self, asset: str) -> None:
        """Keep the latest round_retention finished rounds of an asset."""
        rounds = self.rounds[asset]
        excess = len(rounds) - self.settings.round_retention
        for round_id in list(rounds)[:max(excess, 0)]:
            if rounds[round_id].is_open:
                break
            del rounds[round_id]
