"""Staked balances, the reward pool and per-asset fee pools."""

import logging
from typing import Dict

from .errors import (
    BelowMinimumStake,
    InsufficientLockedStake,
    InsufficientStake,
    InvalidAmount,
    InvariantViolation,
    StakeLocked,
)
from .models import StakeEntry

logger = logging.getLogger(__name__)

REWARD_POOL = "reward_pool"


def fee_pool(asset: str) -> str:
    """Pool key holding the request fees of an asset."""
    return f"fees:{asset}"


def _require_positive(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise InvalidAmount(f"amount must be a positive integer, got {amount!r}")


class StakeLedger:
    """Token accounting of the network.

    Every unit is held either in an oracle balance, the reward pool or an
    asset fee pool. Only deposits, fee payments and withdrawals move tokens
    across that boundary.
    """

    def __init__(self):
        self.entries: Dict[str, StakeEntry] = {}
        self.reward_pool: int = 0
        self.fee_pools: Dict[str, int] = {}

    def entry(self, oracle: str) -> StakeEntry:
        """Ledger entry of an oracle, created empty on first use."""
        if oracle not in self.entries:
            self.entries[oracle] = StakeEntry(oracle=oracle)
        return self.entries[oracle]

    def balance_of(self, oracle: str) -> int:
        entry = self.entries.get(oracle)
        return entry.balance if entry else 0

    def locked_of(self, oracle: str) -> int:
        entry = self.entries.get(oracle)
        return entry.locked if entry else 0

    def deposit(self, oracle: str, amount: int) -> int:
        """Add external funds to an oracle balance."""
        _require_positive(amount)
        entry = self.entry(oracle)
        entry.balance += amount
        return entry.balance

    def lock(self, oracle: str, amount: int) -> int:
        """Move free balance into locked stake."""
        _require_positive(amount)
        entry = self.entry(oracle)
        if entry.free < amount:
            raise InsufficientStake(
                f"{oracle} has {entry.free} free, cannot lock {amount}",
                oracle=oracle,
            )
        entry.locked += amount
        self.check(oracle)
        return entry.locked

    def unlock(self, oracle: str, amount: int) -> int:
        """Release locked stake back to the free balance."""
        _require_positive(amount)
        entry = self.entry(oracle)
        if entry.locked < amount:
            raise InsufficientLockedStake(
                f"{oracle} has {entry.locked} locked, cannot unlock {amount}",
                oracle=oracle,
            )
        entry.locked -= amount
        return entry.locked

    def slash(self, oracle: str, amount: int, beneficiary: str = REWARD_POOL) -> int:
        """Forfeit locked stake to the beneficiary pool."""
        _require_positive(amount)
        entry = self.entry(oracle)
        if entry.locked < amount:
            raise InsufficientLockedStake(
                f"{oracle} has {entry.locked} locked, cannot slash {amount}",
                oracle=oracle,
            )
        entry.locked -= amount
        entry.balance -= amount
        self._credit_pool(beneficiary, amount)
        self.check(oracle)
        logger.info("Slashed %s from %s to %s", amount, oracle, beneficiary)
        return entry.locked

    def withdraw(self, oracle: str, amount: int, minimum: int = 0) -> int:
        """Pay free balance out of the network.

        ``minimum`` is the balance the oracle must keep, zero unless it is
        still active.
        """
        _require_positive(amount)
        entry = self.entry(oracle)
        if amount > entry.free:
            raise StakeLocked(
                f"{oracle} has {entry.free} withdrawable, requested {amount}",
                oracle=oracle,
            )
        if entry.balance - amount < minimum:
            raise BelowMinimumStake(
                f"{oracle} must keep at least {minimum} staked while active",
                oracle=oracle,
            )
        entry.balance -= amount
        return entry.balance

    def credit(self, oracle: str, amount: int, source: str, lock: bool = False) -> int:
        """Move ``amount`` from a pool to an oracle, optionally as locked stake."""
        if amount <= 0:
            return self.balance_of(oracle)
        self._debit_pool(source, amount)
        entry = self.entry(oracle)
        entry.balance += amount
        if lock:
            entry.locked += amount
        return entry.balance

    def pay_fee(self, asset: str, amount: int) -> int:
        """Credit an external request fee to the asset fee pool."""
        _require_positive(amount)
        self.fee_pools[asset] = self.fee_pools.get(asset, 0) + amount
        return self.fee_pools[asset]

    def pool_balance(self, pool: str) -> int:
        if pool == REWARD_POOL:
            return self.reward_pool
        return self.fee_pools.get(pool.split(":", 1)[1], 0)

    def transfer_pool(self, source: str, target: str, amount: int) -> None:
        """Move funds between pools."""
        if amount <= 0:
            return
        self._debit_pool(source, amount)
        self._credit_pool(target, amount)

    def total_supply(self) -> int:
        """All tokens held by the network."""
        return (
            sum(entry.balance for entry in self.entries.values())
            + self.reward_pool
            + sum(self.fee_pools.values())
        )

    def total_locked(self) -> int:
        return sum(entry.locked for entry in self.entries.values())

    def check(self, oracle: str) -> None:
        """Raise if an entry breaks ``0 <= locked <= balance``."""
        entry = self.entry(oracle)
        if entry.locked < 0 or entry.locked > entry.balance:
            raise InvariantViolation(
                f"{oracle} locked stake {entry.locked} exceeds balance {entry.balance}",
                oracle=oracle,
            )

    def _credit_pool(self, pool: str, amount: int) -> None:
        if pool == REWARD_POOL:
            self.reward_pool += amount
        else:
            asset = pool.split(":", 1)[1]
            self.fee_pools[asset] = self.fee_pools.get(asset, 0) + amount

    def _debit_pool(self, pool: str, amount: int) -> None:
        available = self.pool_balance(pool)
        if available < amount:
            raise InvariantViolation(
                f"pool {pool} holds {available}, cannot pay out {amount}"
            )
        if pool == REWARD_POOL:
            self.reward_pool -= amount
        else:
            self.fee_pools[pool.split(":", 1)[1]] -= amount
