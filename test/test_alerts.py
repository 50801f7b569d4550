"""Alert manager testing."""

from unittest.mock import AsyncMock

import pytest
from apprise import NotifyType

from oracle_network.utils.alerts import AlertManager

DISCORD = {
    "type": "discord",
    "config": {"webhook_url": "4174216298/JHMHI8qBe7bk2ZwO5U711o3dV_js"},
}


class FakeClock:
    """Manually advanced clock"""

    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    """Fake clock"""
    return FakeClock()


@pytest.fixture
def manager(monkeypatch, clock):
    """Alert manager with one service and a mocked sender"""
    manager = AlertManager(
        "testnet",
        alert_config={"cooldown": 60, "thresholds": {"minimum_active_oracles": 4}},
        notification_configs=[DISCORD],
        clock=clock,
    )
    monkeypatch.setattr(manager.apprise, "async_notify", AsyncMock(return_value=True))
    return manager


@pytest.mark.asyncio
class TestAlertManager:
    """Tests alert delivery and cooldown"""

    async def test_send_alert(self, manager):
        """alerts are sent to the configured services"""
        assert len(manager.apprise) == 1
        assert await manager.send_alert("Oracle Slashed", "*Oracle*: dave")

        manager.apprise.async_notify.assert_awaited_once()
        kwargs = manager.apprise.async_notify.call_args.kwargs
        assert kwargs["title"] == "Oracle Network Alert: Oracle Slashed"
        assert kwargs["notify_type"] == NotifyType.WARNING
        assert "*Network*: *testnet*" in kwargs["body"]

    async def test_cooldown(self, manager, clock):
        """repeated alerts of one type are suppressed within the cooldown"""
        assert await manager.send_alert("Low Reward Pool", "empty")
        assert not await manager.send_alert("Low Reward Pool", "empty")
        assert await manager.send_alert("Low Active Oracles", "two left")

        clock.now += 61
        assert await manager.send_alert("Low Reward Pool", "empty")
        assert manager.apprise.async_notify.await_count == 3

    @pytest.mark.parametrize("active,sent", [(3, True), (4, False), (10, False)])
    async def test_check_active_oracles(self, manager, active, sent):
        """the custom threshold decides when to alert"""
        await manager.check_active_oracles(active)
        assert manager.apprise.async_notify.called is sent

    async def test_invariant_violation(self, manager):
        """invariant violations are reported as failures"""
        await manager.notify_invariant_violation("ETH/USD", "report_price", ValueError("boom"))
        kwargs = manager.apprise.async_notify.call_args.kwargs
        assert kwargs["notify_type"] == NotifyType.FAILURE
        assert "*Asset*: *ETH/USD*" in kwargs["body"]

    async def test_without_services(self, clock):
        """no configured service means nothing is sent"""
        manager = AlertManager("testnet", clock=clock)
        assert manager.thresholds.minimum_active_oracles == 3
        assert not await manager.send_alert("Low Reward Pool", "empty")
