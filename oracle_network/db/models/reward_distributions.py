"""Models for reward distributions."""

from .base import BaseUUIDModel, OracleRoundScopedBase


class RewardDistributionBase(OracleRoundScopedBase):
    """Amount paid to one oracle for a published round."""

    amount: int
    commission: int
    restaked: int


class RewardDistribution(RewardDistributionBase, BaseUUIDModel, table=True):
    """Model for reward distribution."""

    pass  # pylint: disable=unnecessary-pass


class RewardDistributionCreate(RewardDistributionBase):
    """Model for creating a reward distribution."""

    pass  # pylint: disable=unnecessary-pass


class RewardDistributionUpdate(RewardDistributionBase):
    """Model for updating a reward distribution."""

    pass  # pylint: disable=unnecessary-pass
