"""Model for the append-only event stream."""

from typing import Optional
from uuid import UUID

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from .base import BaseUUIDModel


class NetworkEventBase(SQLModel):
    """One core event. Sequence numbers restart with every run."""

    run_id: Optional[UUID] = Field(default=None, nullable=True, index=True)
    seq: int = Field(index=True)
    name: str = Field(index=True)
    timestamp: int
    asset: Optional[str] = Field(default=None, nullable=True, index=True)
    round_id: Optional[int] = Field(default=None, nullable=True)
    oracle_id: Optional[str] = Field(default=None, nullable=True, index=True)
    payload: str = "{}"


class NetworkEvent(NetworkEventBase, BaseUUIDModel, table=True):
    """NetworkEvent model representing one emitted core event."""

    __table_args__ = (UniqueConstraint("run_id", "seq", name="uq_networkevent_run_seq"),)


class NetworkEventCreate(NetworkEventBase):
    """Model for creating a new event."""

    pass  # pylint: disable=unnecessary-pass


class NetworkEventUpdate(NetworkEventBase):
    """Model for updating an existing event."""

    pass  # pylint: disable=unnecessary-pass
