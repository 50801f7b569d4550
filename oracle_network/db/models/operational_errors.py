"""Rejected or failed operations, as seen by the runner."""

from typing import Optional
from uuid import UUID

from sqlmodel import Field, SQLModel

from .base import BaseUUIDModel


class OperationalErrorBase(SQLModel):
    """A rejected operation with the parameters it was called with."""

    run_id: Optional[UUID] = Field(default=None, nullable=True, index=True)
    operation: str = Field(index=True)
    kind: str = Field(index=True)
    message: str
    asset: Optional[str] = Field(default=None, nullable=True, index=True)
    oracle_id: Optional[str] = Field(default=None, nullable=True)
    # JSON encoded call parameters and error context
    params: Optional[str] = Field(default=None, nullable=True)
    context: Optional[str] = Field(default=None, nullable=True)
    traceback: Optional[str] = Field(default=None, nullable=True)


class OperationalError(OperationalErrorBase, BaseUUIDModel, table=True):
    """Stored operational error."""


class OperationalErrorCreate(OperationalErrorBase):
    """Operational error as built by the db service."""


class OperationalErrorUpdate(SQLModel):
    """Errors are write once."""
