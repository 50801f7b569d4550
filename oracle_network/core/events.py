"""Append-only event log written by the core."""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional

ORACLE_REGISTERED = "OracleRegistered"
PRICE_REPORTED = "PriceReported"
CONSENSUS_PUBLISHED = "ConsensusPublished"
ROUND_EXPIRED = "RoundExpired"
ORACLE_SLASHED = "OracleSlashed"
ORACLE_REWARDED = "OracleRewarded"
ORACLE_SUSPENDED = "OracleSuspended"
ORACLE_REACTIVATED = "OracleReactivated"
ORACLE_EXITED = "OracleExited"
STAKE_WITHDRAWN = "StakeWithdrawn"
UPDATE_REQUESTED = "UpdateRequested"


@dataclass(frozen=True)
class Event:
    """A single state transition notification."""

    seq: int
    name: str
    timestamp: int
    asset: Optional[str] = None
    round_id: Optional[int] = None
    oracle: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)


class EventLog:
    """Ordered event sink. Consumers poll with :meth:`since`.

    At most ``retention`` events are kept in memory. Sequence numbers keep
    counting past the ones that were dropped.
    """

    def __init__(self, retention: Optional[int] = None):
        self._events: Deque[Event] = deque(maxlen=retention)
        self._last_seq = 0

    def __len__(self):
        return len(self._events)

    def __iter__(self):
        return iter(self._events)

    @property
    def last_seq(self) -> int:
        return self._last_seq

    def emit(
        self,
        name: str,
        timestamp: int,
        asset: Optional[str] = None,
        round_id: Optional[int] = None,
        oracle: Optional[str] = None,
        **payload,
    ) -> Event:
        """Append an event and return it."""
        self._last_seq += 1
        event = Event(
            seq=self._last_seq,
            name=name,
            timestamp=timestamp,
            asset=asset,
            round_id=round_id,
            oracle=oracle,
            payload=payload,
        )
        self._events.append(event)
        return event

    def since(self, seq: int) -> List[Event]:
        """Retained events with a sequence number greater than ``seq``."""
        newer = []
        for event in reversed(self._events):
            if event.seq <= seq:
                break
            newer.append(event)
        newer.reverse()
        return newer

    def rollback(self, seq: int) -> None:
        """Forget the events emitted after ``seq``."""
        while self._events and self._events[-1].seq > seq:
            self._events.pop()
        self._last_seq = min(self._last_seq, seq)

    def named(self, name: str) -> List[Event]:
        return [event for event in self._events if event.name == name]
