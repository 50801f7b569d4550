"""Typed errors raised by the oracle network core."""


class OracleNetworkError(Exception):
    """Base error for every rejected core operation."""

    kind = "OracleNetworkError"

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.kind)
        self.context = context

    def __str__(self):
        return f"{self.kind}: {self.args[0]}"


class ValidationError(OracleNetworkError):
    """Bad input. Rejected with no state change."""

    kind = "ValidationError"


class InvalidAmount(ValidationError):
    kind = "InvalidAmount"


class InvalidConfidence(ValidationError):
    kind = "InvalidConfidence"


class InvalidValue(ValidationError):
    kind = "InvalidValue"


class InvalidCommission(ValidationError):
    kind = "InvalidCommission"


class InsufficientFee(ValidationError):
    kind = "InsufficientFee"


class EligibilityError(OracleNetworkError):
    """Caller is not allowed to perform the operation."""

    kind = "EligibilityError"


class NotRegistered(EligibilityError):
    kind = "NotRegistered"


class OracleSuspended(NotRegistered):
    kind = "OracleSuspended"


class InsufficientStake(EligibilityError):
    kind = "InsufficientStake"


class BelowMinimumStake(EligibilityError):
    kind = "BelowMinimumStake"


class StakeLocked(EligibilityError):
    kind = "StakeLocked"


class InsufficientLockedStake(EligibilityError):
    kind = "InsufficientLockedStake"


class AlreadyRegistered(EligibilityError):
    kind = "AlreadyRegistered"


class Unauthorized(EligibilityError):
    kind = "Unauthorized"


class ActiveRoundsPending(EligibilityError):
    kind = "ActiveRoundsPending"


class TimingError(OracleNetworkError):
    """Report arrived out of order or for a finished round."""

    kind = "TimingError"


class StaleReport(TimingError):
    kind = "StaleReport"


class RoundClosed(TimingError):
    kind = "RoundClosed"


class ConsensusError(OracleNetworkError):
    """A round could not produce a consensus value.

    Recorded on the expired round, never raised to submitters.
    """

    kind = "ConsensusError"


class NoQuorum(ConsensusError):
    kind = "NoQuorum"


class InsufficientConsensus(ConsensusError):
    kind = "InsufficientConsensus"


class NotFound(OracleNetworkError):
    kind = "NotFound"


class UnknownOracle(NotFound):
    kind = "UnknownOracle"


class FeedNotFound(NotFound):
    kind = "FeedNotFound"


class UnknownRound(NotFound):
    kind = "UnknownRound"


class InvariantViolation(OracleNetworkError):
    """Internal state is inconsistent. The affected asset is halted."""

    kind = "InvariantViolation"

    def __init__(self, message: str = "", asset=None, **context):
        super().__init__(message, **context)
        self.asset = asset


class AssetHalted(InvariantViolation):
    kind = "AssetHalted"
