"""init file for models directory."""

from .network_events import NetworkEvent, NetworkEventCreate
from .operational_errors import OperationalError, OperationalErrorCreate
from .oracles import OracleRecord, OracleRecordCreate, OracleRecordUpdate
from .reward_distributions import RewardDistribution, RewardDistributionCreate
from .round_results import RoundResult, RoundResultCreate
from .slashings import Slashing, SlashingCreate
