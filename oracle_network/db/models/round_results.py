"""Model for the round results entity."""

from decimal import Decimal
from typing import Optional

from sqlmodel import Field

from .base import BaseUUIDModel, RoundScopedBase


class RoundResultBase(RoundScopedBase):
    """Outcome of a closed or expired round."""

    status: str
    consensus_value: Optional[Decimal] = Field(
        default=None, nullable=True, max_digits=38, decimal_places=18
    )
    failure: Optional[str] = Field(default=None, nullable=True)
    report_count: int
    closed_at: int


class RoundResult(RoundResultBase, BaseUUIDModel, table=True):
    """RoundResult model representing a closed or expired round."""

    pass  # pylint: disable=unnecessary-pass


class RoundResultCreate(RoundResultBase):
    """Model for creating a new round result."""

    pass  # pylint: disable=unnecessary-pass


class RoundResultUpdate(RoundResultBase):
    """Model for updating an existing round result."""

    pass  # pylint: disable=unnecessary-pass
