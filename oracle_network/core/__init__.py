"""Oracle network core: staking, reporting, consensus and incentives."""

from .consensus import AggregationResult, aggregate, weighted_median
from .errors import (
    ConsensusError,
    EligibilityError,
    InvariantViolation,
    NotFound,
    OracleNetworkError,
    TimingError,
    ValidationError,
)
from .events import Event, EventLog
from .models import (
    AssetFeed,
    NetworkStats,
    OraclePerformance,
    OracleStatus,
    PriceReport,
    Round,
    RoundStatus,
    SubmitReceipt,
)
from .network import OracleNetwork
from .settings import NetworkSettings
