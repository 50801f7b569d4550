"""State records held by the oracle network."""

from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Deque, Dict, Optional, Set


class OracleStatus(Enum):
    """Lifecycle state of a registered oracle."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    EXITED = "exited"


class RoundStatus(Enum):
    """Lifecycle state of a round."""

    OPEN = "open"
    CLOSED = "closed"
    EXPIRED = "expired"


@dataclass(frozen=True)
class PriceReport:
    """A single accepted price report."""

    asset: str
    oracle: str
    value: Decimal
    confidence: Decimal
    submitted_at: int
    round: int

    def __deepcopy__(self, memo):
        return self


@dataclass(frozen=True)
class HistoryEntry:
    """Outcome of one scored report."""

    asset: str
    round: int
    accuracy: Decimal
    outlier: bool

    def __deepcopy__(self, memo):
        return self


@dataclass
class OracleStats:
    """Running performance counters of an oracle."""

    total_reports: int = 0
    successful_reports: int = 0
    outlier_reports: int = 0
    rounds_eligible: int = 0
    rounds_participated: int = 0
    consecutive_missed: int = 0
    response_time_total: int = 0
    response_samples: int = 0
    total_rewards: int = 0
    total_slashed: int = 0
    tracked_assets: Set[str] = field(default_factory=set)
    history: Deque[HistoryEntry] = field(default_factory=deque)


@dataclass
class Oracle:
    """Identity, metadata and status of a reporter."""

    id: str
    owner: str
    endpoint: str
    commission: Decimal
    status: OracleStatus
    reputation: Decimal
    registered_at: int
    exit_requested_at: Optional[int] = None
    stats: OracleStats = field(default_factory=OracleStats)


@dataclass
class StakeEntry:
    """Staked balance of an oracle. ``locked`` is the part at risk."""

    oracle: str
    balance: int = 0
    locked: int = 0

    @property
    def free(self) -> int:
        return self.balance - self.locked


@dataclass
class Round:
    """The unit of consensus for one asset."""

    asset: str
    round_id: int
    opened_at: int
    deadline: int
    reports: Dict[str, PriceReport] = field(default_factory=dict)
    status: RoundStatus = RoundStatus.OPEN
    consensus_value: Optional[Decimal] = None
    closed_at: Optional[int] = None
    failure: Optional[str] = None
    stake_snapshot: Dict[str, int] = field(default_factory=dict)

    @property
    def is_open(self) -> bool:
        return self.status is RoundStatus.OPEN

    def is_overdue(self, now: int) -> bool:
        """True once the deadline has been reached."""
        return now >= self.deadline


@dataclass
class AssetFeed:
    """Latest published consensus value of an asset."""

    asset: str
    latest_round: int
    latest_value: Decimal
    last_updated: int


@dataclass(frozen=True)
class SubmitReceipt:
    """Round status returned to a reporter."""

    asset: str
    round_id: int
    status: RoundStatus
    report_count: int
    consensus_value: Optional[Decimal] = None
    failure: Optional[str] = None


@dataclass(frozen=True)
class NetworkStats:
    """Aggregate counters derived from network state."""

    total_oracles: int
    active_oracles: int
    total_reports: int
    total_value_locked: int
    total_rewards: int
    active_feeds: int
    reward_pool: int
    total_slashed: int


@dataclass(frozen=True)
class OraclePerformance:
    """Accuracy, uptime and report counters of one oracle."""

    oracle_id: str
    status: OracleStatus
    stake: int
    reputation: Decimal
    accuracy: Optional[Decimal]
    uptime: Optional[Decimal]
    total_reports: int
    successful_reports: int
    outlier_reports: int
    missed_rounds: int
    response_time: Optional[Decimal]
    total_rewards: int
    total_slashed: int
