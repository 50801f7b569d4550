"""Database service testing."""

from decimal import Decimal

from conftest import ASSET, STAKE, register_all, report_round

import pytest

from oracle_network.core import NetworkSettings, OracleNetwork
from oracle_network.core import events as ev
from oracle_network.core.errors import StaleReport
from oracle_network.db.crud import (
    network_event_crud,
    operational_errors_crud,
    oracle_crud,
    reward_distribution_crud,
    round_result_crud,
    slashing_crud,
)
from oracle_network.db.models import OracleRecord
from oracle_network.db.no_op_session import NoOpSession
from oracle_network.db.service import store_events, store_operational_error

HONEST = {"alice": "3000", "bob": "3100", "carol": "3050"}


@pytest.mark.asyncio
class TestStoreEvents:
    """Tests persisting the event stream"""

    async def test_registration_and_round(self, db_session, staked_network, settings):
        """oracles, raw events and round results are stored"""
        staked_network.request_update(ASSET, 30, 500)
        report_round(staked_network, HONEST, 1000)
        staked_network.report_price("alice", ASSET, "3000", "1", 2000)
        staked_network.tick(2000 + settings.round_duration)

        stored = await store_events(db_session, staked_network.events_since(0))
        await db_session.commit()

        assert stored == len(staked_network.events)
        assert await network_event_crud.get_last_seq(db_session) == stored

        alice = await oracle_crud.get_by_oracle_id("alice", db_session)
        assert alice.stake == STAKE
        assert alice.status == "active"
        assert alice.commission == Decimal("0.05")

        published, expired = await round_result_crud.get_by_asset(ASSET, db_session)
        assert (published.round_id, published.status) == (1, "closed")
        assert published.consensus_value == Decimal(3050)
        assert published.report_count == 3
        assert (expired.round_id, expired.status) == (2, "expired")
        assert expired.failure == "NoQuorum"
        assert expired.consensus_value is None

        rewards = await reward_distribution_crud.get_multi(db_session=db_session)
        assert sorted(r.oracle_id for r in rewards) == ["alice", "bob", "carol"]
        assert all(r.amount == 10 for r in rewards)
        alice_rewards = await reward_distribution_crud.get_by_oracle("alice", db_session)
        assert [r.round_id for r in alice_rewards] == [1]
        assert await reward_distribution_crud.total_paid("alice", db_session) == 10
        assert await reward_distribution_crud.total_paid("dave", db_session) == 0

        reported = await network_event_crud.get_by_name(ev.PRICE_REPORTED, db_session)
        assert len(reported) == 4
        assert '"value": "3000"' in reported[0].payload

    async def test_status_changes_and_slashing(self, db_session):
        """suspensions update the oracle row and slashing is recorded"""
        network = OracleNetwork(
            NetworkSettings(min_stake_amount=950, close_on_reports=4, slash_min_samples=1)
        )
        register_all(network, ("alice", "bob", "carol", "dave"))
        report_round(network, {**HONEST, "dave": "50000"}, 1000)

        await store_events(db_session, network.events_since(0))
        await db_session.commit()

        dave = await oracle_crud.get_by_oracle_id("dave", db_session)
        assert dave.status == "suspended"
        (slashing,) = await slashing_crud.get_multi(db_session=db_session)
        assert (slashing.oracle_id, slashing.amount, slashing.remaining) == ("dave", 100, 900)
        assert slashing.round_id == 1
        suspended = OracleRecord.status == "suspended"
        assert await oracle_crud.get_count(db_session, suspended) == 1

    async def test_reregistration_updates_oracle(self, db_session, staked_network, settings):
        """an oracle that exits and comes back keeps a single row"""
        staked_network.deregister("alice", "alice", 0)
        await store_events(db_session, staked_network.events_since(0))
        seq = staked_network.events.last_seq
        exited = await oracle_crud.get_by_oracle_id("alice", db_session)
        assert exited.status == "exited"

        staked_network.register_oracle(
            "alice", "https://alice-2", 300, "0.1", settings.exit_cooldown
        )
        await store_events(db_session, staked_network.events_since(seq))
        await db_session.commit()

        alice = await oracle_crud.get_by_oracle_id("alice", db_session)
        assert alice.status == "active"
        assert alice.endpoint == "https://alice-2"
        assert alice.stake == 300
        assert await oracle_crud.get_count(db_session) == 3

    async def test_operational_error(self, db_session, staked_network):
        """rejected operations are recorded with their kind"""
        staked_network.report_price("alice", ASSET, "3000", "1", 1000)
        try:
            staked_network.report_price("alice", ASSET, "3000", "1", 900)
        except StaleReport as exc:
            await store_operational_error(
                db_session,
                "report_price",
                exc,
                asset=ASSET,
                params={"oracle_id": "alice", "value": Decimal(3000), "now": 900},
            )

        (error,) = await operational_errors_crud.get_by_kind(
            "StaleReport", db_session, asset=ASSET
        )
        assert error.operation == "report_price"
        assert error.oracle_id == "alice"
        assert error.message.startswith("StaleReport:")
        assert error.params == '{"now": 900, "oracle_id": "alice", "value": "3000"}'
        assert not await operational_errors_crud.get_by_kind(
            "StaleReport", db_session, asset="BTC/USD"
        )

    async def test_no_database(self, staked_network):
        """without a database the events are accepted and dropped"""
        session = NoOpSession()
        stored = await store_events(session, staked_network.events_since(0))
        assert stored == 3
        assert await oracle_crud.get_by_oracle_id("alice", session) is None
        assert await reward_distribution_crud.total_paid("alice", session) == 0
