"""Models for slashed stake."""

from .base import BaseUUIDModel, OracleRoundScopedBase


class SlashingBase(OracleRoundScopedBase):
    """Stake forfeited by one oracle and what it has left locked."""

    amount: int
    remaining: int


class Slashing(SlashingBase, BaseUUIDModel, table=True):
    """Model for a slashing record."""

    pass  # pylint: disable=unnecessary-pass


class SlashingCreate(SlashingBase):
    """Model for creating a slashing record."""

    pass  # pylint: disable=unnecessary-pass


class SlashingUpdate(SlashingBase):
    """Model for updating a slashing record."""

    pass  # pylint: disable=unnecessary-pass
