"""Pytest fixtures for tests"""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from oracle_network.core import NetworkSettings, OracleNetwork
from oracle_network.db import database
from oracle_network.db import models  # noqa: F401  pylint: disable=unused-import

ASSET = "ETH/USD"
ORACLES = ("alice", "bob", "carol")
STAKE = 1000
COMMISSION = Decimal("0.05")


def register_all(network, oracle_ids=ORACLES, stake=STAKE, now=0):
    """Register oracles with the same stake and commission."""
    for oracle_id in oracle_ids:
        network.register_oracle(
            oracle_id, f"https://{oracle_id}.example/feed", stake, COMMISSION, now
        )


def report_round(network, prices, now, asset=ASSET, confidence="1"):
    """Submit one report per oracle one millisecond apart and return the last receipt."""
    receipt = None
    for offset, (oracle_id, price) in enumerate(prices.items()):
        receipt = network.report_price(
            oracle_id, asset, price, confidence, now + offset
        )
    return receipt


@pytest.fixture
def settings():
    """Default network settings"""
    return NetworkSettings()


@pytest.fixture
def network(settings):
    """Empty network"""
    return OracleNetwork(settings)


@pytest.fixture
def staked_network(network):
    """Network with three oracles of equal stake"""
    register_all(network)
    return network


@pytest.fixture
async def db_session(tmp_path):
    """Session on a fresh SQLite database"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'oracle.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
async def configured_database(tmp_path):
    """Point the module level session factory at a fresh SQLite database"""
    database.configure_database(f"sqlite+aiosqlite:///{tmp_path / 'runner.db'}")
    await database.init_db()
    yield database
    await database.close_db()
    database.configure_database(None)
