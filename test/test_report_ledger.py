"""Report ledger and round lifecycle testing."""

from conftest import ASSET, register_all, report_round

import pytest

from oracle_network.core import NetworkSettings, OracleNetwork
from oracle_network.core import events as ev
from oracle_network.core.errors import (
    InvalidConfidence,
    InvalidValue,
    NotRegistered,
    RoundClosed,
    StaleReport,
    UnknownRound,
)
from oracle_network.core.models import RoundStatus


class TestSubmit:
    """Tests report validation"""

    def test_first_report_opens_round(self, staked_network, settings):
        """a report with no open round starts round 1"""
        receipt = staked_network.report_price("alice", ASSET, "3000.5", "0.9", 1000)

        assert receipt.round_id == 1
        assert receipt.status is RoundStatus.OPEN
        assert receipt.report_count == 1
        rnd = staked_network.get_round(ASSET, 1)
        assert rnd.deadline == 1000 + settings.round_duration
        assert str(rnd.reports["alice"].value) == "3000.5"

        (event,) = staked_network.events.named(ev.PRICE_REPORTED)
        assert event.payload["value"] == "3000.5"
        assert event.payload["replaced"] is False

    @pytest.mark.parametrize("confidence", ["1.5", "-0.1", "abc", None, float("nan")])
    def test_invalid_confidence(self, staked_network, confidence):
        """confidence must be a number within [0, 1]"""
        with pytest.raises(InvalidConfidence):
            staked_network.report_price("alice", ASSET, "3000", confidence, 1000)
        assert len(staked_network.events.named(ev.PRICE_REPORTED)) == 0

    @pytest.mark.parametrize("value", [0, -1, "x", "Infinity"])
    def test_invalid_value(self, staked_network, value):
        """values must be positive and finite"""
        with pytest.raises(InvalidValue):
            staked_network.report_price("alice", ASSET, value, "1", 1000)

    def test_float_values_keep_their_digits(self, staked_network):
        """floats are read through their shortest representation"""
        staked_network.report_price("alice", ASSET, 3000.1, 0.9, 1000)
        report = staked_network.get_round(ASSET, 1).reports["alice"]
        assert str(report.value) == "3000.1"
        assert str(report.confidence) == "0.9"

    def test_unregistered_oracle(self, staked_network):
        """only registered oracles may report"""
        with pytest.raises(NotRegistered):
            staked_network.report_price("dave", ASSET, "3000", "1", 1000)
        assert staked_network.state.reports.rounds == {}

    @pytest.mark.parametrize("later", [999, 1000])
    def test_stale_report(self, staked_network, later):
        """a resubmission must be newer than the previous one"""
        staked_network.report_price("alice", ASSET, "3000", "1", 1000)
        with pytest.raises(StaleReport):
            staked_network.report_price("alice", ASSET, "3001", "1", later)

    def test_newer_report_replaces_previous(self, staked_network):
        """an oracle holds one report per round"""
        staked_network.report_price("alice", ASSET, "3000", "1", 1000)
        receipt = staked_network.report_price("alice", ASSET, "3010", "1", 1001)

        assert receipt.report_count == 1
        assert staked_network.get_round(ASSET, 1).reports["alice"].value == 3010
        assert staked_network.get_network_stats().total_reports == 1
        assert staked_network.get_oracle_performance("alice").total_reports == 1
        assert staked_network.events.named(ev.PRICE_REPORTED)[-1].payload["replaced"]


class TestRounds:
    """Tests round closing and targeting"""

    def test_quorum_closes_round(self, staked_network):
        """the third report closes and publishes the round"""
        receipt = report_round(
            staked_network, {"alice": "3000", "bob": "3100", "carol": "3050"}, 1000
        )

        assert receipt.status is RoundStatus.CLOSED
        assert receipt.consensus_value == 3050
        assert staked_network.get_latest(ASSET) == (3050, 1)

    def test_report_to_closed_round(self, staked_network):
        """a closed round no longer accepts reports"""
        report_round(
            staked_network, {"alice": "3000", "bob": "3100", "carol": "3050"}, 1000
        )
        with pytest.raises(RoundClosed):
            staked_network.report_price("alice", ASSET, "3000", "1", 2000, round_id=1)

    def test_explicit_round_targeting(self, staked_network):
        """an explicit round must be the open one or the next to open"""
        with pytest.raises(UnknownRound):
            staked_network.report_price("alice", ASSET, "3000", "1", 1000, round_id=5)

        receipt = staked_network.report_price(
            "alice", ASSET, "3000", "1", 1000, round_id=1
        )
        assert receipt.round_id == 1
        with pytest.raises(UnknownRound):
            staked_network.report_price("bob", ASSET, "3000", "1", 1001, round_id=2)

    def test_deadline_expires_round(self, staked_network, settings):
        """a report after the deadline closes the old round first"""
        staked_network.report_price("alice", ASSET, "3000", "1", 0)
        staked_network.report_price("bob", ASSET, "3010", "1", 10)

        receipt = staked_network.report_price(
            "carol", ASSET, "3020", "1", settings.round_duration
        )

        expired = staked_network.get_round(ASSET, 1)
        assert expired.status is RoundStatus.EXPIRED
        assert expired.failure == "NoQuorum"
        assert expired.consensus_value is None
        assert receipt.round_id == 2
        assert receipt.status is RoundStatus.OPEN
        (event,) = staked_network.events.named(ev.ROUND_EXPIRED)
        assert event.payload["failure"] == "NoQuorum"

    def test_tick_closes_overdue_rounds(self, staked_network, settings):
        """tick closes every round past its deadline"""
        staked_network.report_price("alice", ASSET, "3000", "1", 0)
        staked_network.report_price("alice", "BTC/USD", "60000", "1", 5)

        assert staked_network.tick(settings.round_duration - 1) == []
        receipts = staked_network.tick(settings.round_duration + 5)

        assert sorted(r.asset for r in receipts) == [ASSET, "BTC/USD"]
        assert all(r.status is RoundStatus.EXPIRED for r in receipts)
        assert staked_network.state.reports.open_rounds() == []

    def test_close_round(self, staked_network, settings):
        """close_round only closes a round that is due"""
        assert staked_network.close_round(ASSET, 0) is None

        staked_network.report_price("alice", ASSET, "3000", "1", 0)
        assert staked_network.close_round(ASSET, 10).status is RoundStatus.OPEN

        receipt = staked_network.close_round(ASSET, settings.round_duration)
        assert receipt.status is RoundStatus.EXPIRED
        assert staked_network.close_round(ASSET, settings.round_duration + 1) == receipt


class TestRetention:
    """Tests that finished rounds are kept within a bounded window"""

    HONEST = {"alice": "3000", "bob": "3100", "carol": "3050"}

    def test_finished_rounds_pruned(self):
        """only the latest finished rounds stay readable"""
        network = OracleNetwork(NetworkSettings(round_retention=3))
        register_all(network)
        for round_number in range(1, 7):
            report_round(network, self.HONEST, round_number * 1000)

        assert list(network.state.reports.rounds[ASSET]) == [4, 5, 6]
        with pytest.raises(UnknownRound):
            network.get_round(ASSET, 1)
        with pytest.raises(RoundClosed):
            network.report_price("alice", ASSET, "3000", "1", 7000, round_id=2)

        receipt = network.report_price("alice", ASSET, "3000", "1", 7000)
        assert receipt.round_id == 7
        assert network.get_network_stats().total_reports == 19

    def test_restore_undoes_pruning(self):
        """a restored snapshot brings back pruned rounds and open round reports"""
        network = OracleNetwork(NetworkSettings(round_retention=1))
        register_all(network)
        report_round(network, self.HONEST, 1000)
        network.report_price("alice", ASSET, "3000", "1", 2000)
        ledger = network.state.reports
        snapshot = ledger.snapshot()

        network.report_price("bob", ASSET, "3100", "1", 2001)
        network.report_price("carol", ASSET, "3050", "1", 2002)
        assert list(ledger.rounds[ASSET]) == [2]

        ledger.restore(snapshot)
        assert list(ledger.rounds[ASSET]) == [1, 2]
        assert ledger.rounds[ASSET][2].is_open
        assert list(ledger.rounds[ASSET][2].reports) == ["alice"]
        assert ledger.total_reports == 4
