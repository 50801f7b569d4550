"""Deployment parameters of an oracle network."""

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Optional

_FRACTION_FIELDS = (
    "max_commission",
    "max_deviation_fraction",
    "max_outlier_fraction",
    "max_single_weight",
    "neutral_reputation",
    "reputation_alpha",
    "outlier_penalty",
    "slash_threshold",
    "slash_fraction",
    "reward_pool_share",
    "uptime_decay",
    "reputation_floor",
)


@dataclass(frozen=True)
class NetworkSettings:
    """Aggregation and incentive parameters.

    Amounts are integers in the smallest token unit, times are posix
    milliseconds and fractions are Decimals in [0, 1].
    """

    min_stake_amount: int = 100
    request_fee: int = 1
    max_commission: Decimal = Decimal("0.3")
    min_quorum: int = 3
    close_on_reports: Optional[int] = None
    round_duration: int = 60_000
    exit_cooldown: int = 3_600_000
    max_deviation_fraction: Decimal = Decimal("0.1")
    max_outlier_fraction: Decimal = Decimal("0.4")
    max_single_weight: Decimal = Decimal("0.25")
    neutral_reputation: Decimal = Decimal("0.5")
    reputation_alpha: Decimal = Decimal("0.2")
    outlier_penalty: Decimal = Decimal("0.05")
    slash_window: int = 10
    slash_min_samples: int = 5
    slash_threshold: Decimal = Decimal("0.4")
    slash_fraction: Decimal = Decimal("0.1")
    reward_pool_share: Decimal = Decimal("0.1")
    missed_round_limit: int = 5
    uptime_decay: Decimal = Decimal("0.1")
    reputation_floor: Decimal = Decimal("0.1")
    history_size: int = 100
    round_retention: int = 100
    event_retention: int = 10_000

    def __post_init__(self):
        for name in _FRACTION_FIELDS:
            value = Decimal(str(getattr(self, name)))
            if not Decimal(0) <= value <= Decimal(1):
                raise ValueError(f"{name} must be within [0, 1], got {value}")
            object.__setattr__(self, name, value)
        if self.min_stake_amount <= 0:
            raise ValueError("min_stake_amount must be positive")
        if self.min_quorum < 1:
            raise ValueError("min_quorum must be at least 1")
        if self.close_on_reports is not None and self.close_on_reports < self.min_quorum:
            raise ValueError("close_on_reports cannot be lower than min_quorum")
        if self.round_duration <= 0:
            raise ValueError("round_duration must be positive")
        for name in ("history_size", "round_retention", "event_retention"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

    @property
    def reports_to_close(self) -> int:
        """Report count that closes a round before its deadline."""
        return self.close_on_reports or self.min_quorum

    @classmethod
    def from_dict(cls, values: dict) -> "NetworkSettings":
        """Build settings from a config section, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (values or {}).items():
            if key not in known:
                continue
            kwargs[key] = Decimal(str(value)) if key in _FRACTION_FIELDS else value
        return cls(**kwargs)
