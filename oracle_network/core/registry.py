"""Oracle identities, metadata and lifecycle."""

import logging
from collections import deque
from decimal import Decimal
from typing import Dict, List, Optional

from . import events as ev
from .errors import (
    ActiveRoundsPending,
    AlreadyRegistered,
    InsufficientStake,
    InvalidCommission,
    NotRegistered,
    OracleSuspended,
    Unauthorized,
    UnknownOracle,
)
from .events import EventLog
from .models import Oracle, OracleStats, OracleStatus
from .settings import NetworkSettings
from .stake_ledger import StakeLedger

logger = logging.getLogger(__name__)


class OracleRegistry:
    """Registered oracles. Minimum stake is enforced through the ledger."""

    def __init__(self, settings: NetworkSettings, ledger: StakeLedger, events: EventLog):
        self.settings = settings
        self.ledger = ledger
        self.events = events
        self.oracles: Dict[str, Oracle] = {}

    def get(self, oracle_id: str) -> Oracle:
        oracle = self.oracles.get(oracle_id)
        if oracle is None:
            raise UnknownOracle(f"oracle {oracle_id} is not registered", oracle=oracle_id)
        return oracle

    def stake_of(self, oracle_id: str) -> int:
        """Locked stake of an oracle, the amount at risk."""
        return self.ledger.locked_of(oracle_id)

    def _check_commission(self, commission) -> Decimal:
        commission = Decimal(str(commission))
        if not Decimal(0) <= commission <= self.settings.max_commission:
            raise InvalidCommission(
                f"commission must be within [0, {self.settings.max_commission}], got {commission}"
            )
        return commission

    def register(
        self,
        oracle_id: str,
        endpoint: str,
        stake_amount: int,
        commission,
        now: int,
        owner: Optional[str] = None,
    ) -> Oracle:
        """Stake and register an oracle as active."""
        existing = self.oracles.get(oracle_id)
        if existing is not None and existing.status is not OracleStatus.EXITED:
            raise AlreadyRegistered(
                f"oracle {oracle_id} is already registered", oracle=oracle_id
            )
        if not isinstance(stake_amount, int) or stake_amount < self.settings.min_stake_amount:
            raise InsufficientStake(
                f"stake {stake_amount} is below the minimum {self.settings.min_stake_amount}",
                oracle=oracle_id,
            )
        commission = self._check_commission(commission)

        if existing is not None:
            self.finalize_exit(oracle_id, now)
        self.ledger.deposit(oracle_id, stake_amount)
        self.ledger.lock(oracle_id, stake_amount)

        oracle = Oracle(
            id=oracle_id,
            owner=owner or oracle_id,
            endpoint=endpoint,
            commission=commission,
            status=OracleStatus.ACTIVE,
            reputation=self.settings.neutral_reputation,
            registered_at=now,
            stats=OracleStats(history=deque(maxlen=self.settings.history_size)),
        )
        self.oracles[oracle_id] = oracle
        self.events.emit(
            ev.ORACLE_REGISTERED,
            now,
            oracle=oracle_id,
            owner=oracle.owner,
            endpoint=endpoint,
            stake=stake_amount,
            commission=str(commission),
        )
        logger.info("Registered oracle %s with stake %s", oracle_id, stake_amount)
        return oracle

    def _check_owner(self, oracle: Oracle, caller: str) -> None:
        if caller != oracle.owner:
            raise Unauthorized(
                f"{caller} does not own oracle {oracle.id}", oracle=oracle.id
            )

    def update_endpoint(self, oracle_id: str, caller: str, endpoint: str) -> Oracle:
        oracle = self.get(oracle_id)
        self._check_owner(oracle, caller)
        oracle.endpoint = endpoint
        return oracle

    def update_commission(self, oracle_id: str, caller: str, commission) -> Oracle:
        oracle = self.get(oracle_id)
        self._check_owner(oracle, caller)
        oracle.commission = self._check_commission(commission)
        return oracle

    def is_eligible(self, oracle_id: str) -> bool:
        """Active and holding at least the minimum stake."""
        oracle = self.oracles.get(oracle_id)
        return (
            oracle is not None
            and oracle.status is OracleStatus.ACTIVE
            and self.stake_of(oracle_id) >= self.settings.min_stake_amount
        )

    def require_eligible(self, oracle_id: str) -> Oracle:
        """Return the oracle or raise the matching eligibility error."""
        oracle = self.oracles.get(oracle_id)
        if oracle is not None and oracle.status is OracleStatus.SUSPENDED:
            raise OracleSuspended(f"oracle {oracle_id} is suspended", oracle=oracle_id)
        if not self.is_eligible(oracle_id):
            raise NotRegistered(
                f"oracle {oracle_id} is not an eligible reporter", oracle=oracle_id
            )
        return oracle

    def active_oracles(self) -> List[Oracle]:
        return [o for o in self.oracles.values() if o.status is OracleStatus.ACTIVE]

    def suspend(self, oracle: Oracle, now: int, reason: str) -> None:
        if oracle.status is not OracleStatus.ACTIVE:
            return
        oracle.status = OracleStatus.SUSPENDED
        self.events.emit(ev.ORACLE_SUSPENDED, now, oracle=oracle.id, reason=reason)
        logger.warning("Suspended oracle %s: %s", oracle.id, reason)

    def enforce_min_stake(self, oracle: Oracle, now: int) -> None:
        """Suspend an active oracle whose stake fell under the minimum."""
        if (
            oracle.status is OracleStatus.ACTIVE
            and self.stake_of(oracle.id) < self.settings.min_stake_amount
        ):
            self.suspend(oracle, now, "stake below minimum")

    def deregister(self, oracle_id: str, caller: str, now: int, has_pending_reports: bool) -> Oracle:
        """Mark an oracle as exited. Stake unlocks after the exit cooldown."""
        oracle = self.get(oracle_id)
        self._check_owner(oracle, caller)
        if oracle.status is OracleStatus.EXITED:
            raise NotRegistered(f"oracle {oracle_id} has already exited", oracle=oracle_id)
        if has_pending_reports:
            raise ActiveRoundsPending(
                f"oracle {oracle_id} has reports in open rounds", oracle=oracle_id
            )
        oracle.status = OracleStatus.EXITED
        oracle.exit_requested_at = now
        self.events.emit(
            ev.ORACLE_EXITED,
            now,
            oracle=oracle_id,
            unlocks_at=now + self.settings.exit_cooldown,
        )
        logger.info("Oracle %s exited", oracle_id)
        return oracle

    def finalize_exit(self, oracle_id: str, now: int) -> bool:
        """Release the locked stake of an exited oracle once the cooldown passed."""
        oracle = self.oracles.get(oracle_id)
        if oracle is None or oracle.status is not OracleStatus.EXITED:
            return False
        if oracle.exit_requested_at is None:
            return False
        if now < oracle.exit_requested_at + self.settings.exit_cooldown:
            return False
        locked = self.ledger.locked_of(oracle_id)
        if locked:
            self.ledger.unlock(oracle_id, locked)
        oracle.exit_requested_at = None
        return True

    def reactivate(self, oracle_id: str, caller: str, top_up: int, now: int) -> Oracle:
        """Return a suspended oracle to active after restaking."""
        oracle = self.get(oracle_id)
        self._check_owner(oracle, caller)
        if oracle.status is not OracleStatus.SUSPENDED:
            raise NotRegistered(f"oracle {oracle_id} is not suspended", oracle=oracle_id)
        if top_up:
            self.ledger.deposit(oracle_id, top_up)
            self.ledger.lock(oracle_id, top_up)
        if self.stake_of(oracle_id) < self.settings.min_stake_amount:
            raise InsufficientStake(
                f"oracle {oracle_id} needs {self.settings.min_stake_amount} staked to reactivate",
                oracle=oracle_id,
            )
        oracle.status = OracleStatus.ACTIVE
        oracle.stats.consecutive_missed = 0
        if oracle.reputation < self.settings.reputation_floor:
            oracle.reputation = self.settings.reputation_floor
        self.events.emit(
            ev.ORACLE_REACTIVATED, now, oracle=oracle_id, stake=self.stake_of(oracle_id)
        )
        logger.info("Reactivated oracle %s", oracle_id)
        return oracle
