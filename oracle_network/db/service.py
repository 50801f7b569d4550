"""Database service functions."""

import json
import logging
import time
import traceback
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from oracle_network.core import events as ev
from oracle_network.core.events import Event

from .crud.network_events_crud import network_event_crud
from .crud.operational_errors_crud import operational_errors_crud
from .crud.oracles_crud import oracle_crud
from .crud.reward_distribution_crud import reward_distribution_crud
from .crud.round_results_crud import round_result_crud
from .crud.slashings_crud import slashing_crud
from .models import (
    NetworkEventCreate,
    OperationalErrorCreate,
    OracleRecordCreate,
    RewardDistributionCreate,
    RoundResultCreate,
    SlashingCreate,
)

# Initialize logging
logger = logging.getLogger("database")
logging.Formatter.converter = time.gmtime

ORACLE_STATUS_BY_EVENT = {
    ev.ORACLE_SUSPENDED: "suspended",
    ev.ORACLE_REACTIVATED: "active",
    ev.ORACLE_EXITED: "exited",
}


def get_traceback_str(exception):
    """Get a formatted traceback string from an exception."""
    return "".join(
        traceback.format_exception(
            type(exception), value=exception, tb=exception.__traceback__
        )
    )


async def store_network_event(
    db_session: AsyncSession, event: Event, run_id: Optional[UUID] = None
) -> None:
    """Store the raw event."""
    await network_event_crud.create(
        db_session=db_session,
        obj_in=NetworkEventCreate(
            run_id=run_id,
            seq=event.seq,
            name=event.name,
            timestamp=event.timestamp,
            asset=event.asset,
            round_id=event.round_id,
            oracle_id=event.oracle,
            payload=json.dumps(event.payload, sort_keys=True, default=str),
        ),
        commit=False,
    )


async def store_oracle(
    db_session: AsyncSession, event: Event, run_id: Optional[UUID] = None
) -> None:
    """Insert or refresh an oracle record on registration."""
    existing = await oracle_crud.get_by_oracle_id(event.oracle, db_session)
    values = {
        "oracle_id": event.oracle,
        "owner": event.payload.get("owner", event.oracle),
        "endpoint": event.payload["endpoint"],
        "commission": Decimal(event.payload["commission"]),
        "status": "active",
        "stake": event.payload["stake"],
        "registered_at": event.timestamp,
    }
    if existing:
        await oracle_crud.update(
            db_obj=existing, obj_in=values, db_session=db_session, commit=False
        )
        return
    await oracle_crud.create(
        db_session=db_session, obj_in=OracleRecordCreate(**values), commit=False
    )


async def update_oracle_status(
    db_session: AsyncSession, event: Event, run_id: Optional[UUID] = None
) -> None:
    """Mirror an oracle status transition."""
    existing = await oracle_crud.get_by_oracle_id(event.oracle, db_session)
    if not existing:
        logger.warning("Status event for unknown oracle %s", event.oracle)
        return
    values = {"status": ORACLE_STATUS_BY_EVENT[event.name]}
    if "stake" in event.payload:
        values["stake"] = event.payload["stake"]
    await oracle_crud.update(
        db_obj=existing, obj_in=values, db_session=db_session, commit=False
    )


async def store_round_result(
    db_session: AsyncSession, event: Event, run_id: Optional[UUID] = None
) -> None:
    """Store a published or expired round."""
    published = event.name == ev.CONSENSUS_PUBLISHED
    await round_result_crud.create(
        db_session=db_session,
        obj_in=RoundResultCreate(
            run_id=run_id,
            asset=event.asset,
            round_id=event.round_id,
            status="closed" if published else "expired",
            consensus_value=event.payload.get("value") if published else None,
            failure=event.payload.get("failure"),
            report_count=event.payload.get("reports", 0),
            closed_at=event.timestamp,
        ),
        commit=False,
    )


async def store_reward_distribution(
    db_session: AsyncSession, event: Event, run_id: Optional[UUID] = None
) -> None:
    """Store one oracle's reward for a round."""
    await reward_distribution_crud.create(
        db_session=db_session,
        obj_in=RewardDistributionCreate(
            run_id=run_id,
            oracle_id=event.oracle,
            asset=event.asset,
            round_id=event.round_id,
            amount=event.payload["amount"],
            commission=event.payload["commission"],
            restaked=event.payload["restaked"],
        ),
        commit=False,
    )


async def store_slashing(
    db_session: AsyncSession, event: Event, run_id: Optional[UUID] = None
) -> None:
    """Store stake forfeited by an oracle."""
    await slashing_crud.create(
        db_session=db_session,
        obj_in=SlashingCreate(
            run_id=run_id,
            oracle_id=event.oracle,
            asset=event.asset,
            round_id=event.round_id,
            amount=event.payload["amount"],
            remaining=event.payload["remaining"],
        ),
        commit=False,
    )


EVENT_HANDLERS = {
    ev.ORACLE_REGISTERED: store_oracle,
    ev.ORACLE_SUSPENDED: update_oracle_status,
    ev.ORACLE_REACTIVATED: update_oracle_status,
    ev.ORACLE_EXITED: update_oracle_status,
    ev.CONSENSUS_PUBLISHED: store_round_result,
    ev.ROUND_EXPIRED: store_round_result,
    ev.ORACLE_REWARDED: store_reward_distribution,
    ev.ORACLE_SLASHED: store_slashing,
}


async def store_events(
    db_session: AsyncSession, events: Iterable[Event], run_id: Optional[UUID] = None
) -> int:
    """Persist events in order. The caller's session commits them together.

    ``run_id`` tells apart runs whose sequence numbers both start at 1.
    """
    count = 0
    for event in events:
        await store_network_event(db_session, event, run_id)
        handler = EVENT_HANDLERS.get(event.name)
        if handler is not None:
            await handler(db_session, event, run_id)
        count += 1
    return count


async def store_operational_error(
    db_session: AsyncSession,
    operation: str,
    exception: Exception,
    asset: Optional[str] = None,
    params: Optional[dict] = None,
    run_id: Optional[UUID] = None,
) -> None:
    """Store a rejected operation with its kind, parameters and context."""
    params = params or {}
    operational_error = OperationalErrorCreate(
        run_id=run_id,
        operation=operation,
        kind=getattr(exception, "kind", type(exception).__name__),
        message=str(exception),
        asset=asset,
        oracle_id=params.get("oracle_id"),
        params=json.dumps(params, sort_keys=True, default=str) if params else None,
        context=json.dumps(getattr(exception, "context", None) or {}, default=str),
        traceback=get_traceback_str(exception),
    )
    await operational_errors_crud.create(
        db_session=db_session, obj_in=operational_error
    )
