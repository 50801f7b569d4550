"""Single-writer runner in front of the oracle network"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from uuid6 import uuid7

from .core import events as ev
from .core.errors import InvariantViolation, OracleNetworkError
from .core.events import Event
from .core.network import OracleNetwork
from .db.database import get_session
from .db.service import store_events, store_operational_error
from .utils.alerts import AlertManager

logger = logging.getLogger("runner")
logging.Formatter.converter = time.gmtime

WRITE_OPERATIONS = (
    "register_oracle",
    "update_endpoint",
    "update_commission",
    "deregister",
    "reactivate",
    "report_price",
    "report",
    "request_update",
    "close_round",
    "tick",
    "withdraw_stake",
)

READ_OPERATIONS = (
    "get_latest",
    "get_median",
    "get_feed",
    "get_round",
    "get_stake",
    "get_active_oracles",
    "get_network_stats",
    "get_oracle_performance",
    "is_eligible",
    "is_halted",
    "replay_round",
)

# Names used by network clients
OPERATION_ALIASES = {
    "registerOracle": "register_oracle",
    "reportPrice": "report_price",
    "getMedian": "get_median",
    "getLatest": "get_latest",
    "getNetworkStats": "get_network_stats",
    "getActiveOracles": "get_active_oracles",
    "getOraclePerformance": "get_oracle_performance",
    "withdrawStake": "withdraw_stake",
    "requestUpdate": "request_update",
}

# Events after which the active oracle count may have dropped
MEMBERSHIP_EVENTS = (ev.ORACLE_SUSPENDED, ev.ORACLE_EXITED)


def current_millis() -> int:
    """Posix time in milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one operation. Failed operations carry the error kind."""

    operation: str
    ok: bool
    value: Any = None
    error_kind: Optional[str] = None
    error: Optional[str] = None


class NetworkRunner:
    """Serializes writes through a queue processed by a single worker task.

    Reads are answered directly from the in-memory state, which is only ever
    changed by the worker between two reads.
    """

    def __init__(
        self,
        network: OracleNetwork,
        alerts_manager: Optional[AlertManager] = None,
        clock: Callable[[], int] = current_millis,
        queue_size: int = 0,
    ):
        self.network = network
        self.alerts_manager = alerts_manager
        self.clock = clock
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        # stored with every record, sequence numbers restart with each network
        self.run_id = uuid7()
        self.persisted_seq = 0
        self._worker: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def start(self) -> None:
        """Start the writer task."""
        if self.running:
            return
        self._worker = asyncio.create_task(self._run())
        logger.info("Network runner started, run %s", self.run_id)

    async def stop(self) -> None:
        """Drain pending writes and stop the writer task."""
        if not self.running:
            return
        await self.queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        logger.info("Network runner stopped")

    async def submit(self, operation: str, **params) -> OperationResult:
        """Queue an operation and wait for its result.

        Reads skip the queue. Writes are applied in the order they were queued.
        """
        operation = OPERATION_ALIASES.get(operation, operation)
        if operation not in WRITE_OPERATIONS:
            return await self.execute(operation, params)
        if not self.running:
            await self.start()
        future = asyncio.get_running_loop().create_future()
        await self.queue.put((operation, params, future))
        return await future

    async def _run(self):
        """Apply queued writes one at a time."""
        while True:
            operation, params, future = await self.queue.get()
            try:
                result = await self.execute(operation, params)
                if not future.done():
                    future.set_result(result)
            except Exception as exc:  # pylint: disable=broad-except
                logger.exception("Unexpected failure while running %s", operation)
                if not future.done():
                    future.set_exception(exc)
            finally:
                self.queue.task_done()

    def _resolve(self, operation: str) -> Optional[Callable]:
        operation = OPERATION_ALIASES.get(operation, operation)
        if operation not in WRITE_OPERATIONS and operation not in READ_OPERATIONS:
            return None
        return getattr(self.network, operation)

    def _with_clock(self, method: Callable, params: Dict[str, Any]) -> Dict[str, Any]:
        """Stamp writes that take a timestamp with the runner clock when none is given."""
        if "now" in params or "now" not in inspect.signature(method).parameters:
            return params
        return {**params, "now": self.clock()}

    async def execute(self, operation: str, params: Dict[str, Any]) -> OperationResult:
        """Run one operation against the network and persist what it emitted."""
        method = self._resolve(operation)
        if method is None:
            logger.error("Unknown operation %s", operation)
            return OperationResult(
                operation=operation,
                ok=False,
                error_kind="UnknownOperation",
                error=f"unknown operation {operation}",
            )

        try:
            value = method(**self._with_clock(method, params))
        except OracleNetworkError as exc:
            await self._handle_error(operation, params, exc)
            return OperationResult(
                operation=operation, ok=False, error_kind=exc.kind, error=str(exc)
            )
        except (TypeError, ValueError) as exc:
            await self._handle_error(operation, params, exc)
            return OperationResult(
                operation=operation,
                ok=False,
                error_kind=type(exc).__name__,
                error=str(exc),
            )

        await self.persist_events()
        return OperationResult(operation=operation, ok=True, value=value)

    async def _handle_error(self, operation: str, params: Dict[str, Any], exc: Exception):
        asset = getattr(exc, "asset", None) or params.get("asset")
        if isinstance(exc, InvariantViolation):
            logger.error(
                "Invariant violation during %s: %s",
                operation,
                exc,
                extra={"tag": "invariant", "asset": asset},
            )
            if self.alerts_manager:
                await self.alerts_manager.notify_invariant_violation(asset, operation, exc)
        else:
            logger.warning("%s rejected: %s", operation, exc)

        async with get_session() as db_session:
            await store_operational_error(
                db_session,
                operation,
                exc,
                asset=asset,
                params=params,
                run_id=self.run_id,
            )

    async def persist_events(self) -> int:
        """Store events emitted since the last call and raise alerts for them."""
        pending = self.network.events_since(self.persisted_seq)
        if not pending:
            return 0
        async with get_session() as db_session:
            await store_events(db_session, pending, run_id=self.run_id)
        self.persisted_seq = pending[-1].seq
        await self._alert_on(pending)
        return len(pending)

    async def _alert_on(self, events: List[Event]) -> None:
        if not self.alerts_manager:
            return
        for event in events:
            if event.name == ev.ORACLE_SLASHED:
                await self.alerts_manager.notify_slashing(
                    event.oracle, event.payload["amount"], event.asset, event.round_id
                )
        if any(event.name in MEMBERSHIP_EVENTS for event in events):
            await self.alerts_manager.check_active_oracles(
                len(self.network.get_active_oracles())
            )
        if any(event.name == ev.ORACLE_REWARDED for event in events):
            await self.alerts_manager.check_reward_pool(
                self.network.get_network_stats().reward_pool
            )

    async def replay(self, transactions: Iterable[Dict[str, Any]]) -> List[OperationResult]:
        """Run a transaction script in order. Each entry names an ``op`` and its parameters."""
        results = []
        for transaction in transactions:
            params = dict(transaction)
            operation = params.pop("op")
            result = await self.submit(operation, **params)
            if not result.ok:
                logger.info("%s failed with %s", operation, result.error_kind)
            results.append(result)
        await self.stop()
        return results
