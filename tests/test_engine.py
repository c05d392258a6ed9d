"""Tests for the echo dispatcher and result collector."""

import math

import pytest

from active_monitor.probing.engine import ProbeDispatcher, ResultCollector, parse_value
from active_monitor.probing.state import MeasurementState

from conftest import FakeTransport


@pytest.fixture
def state():
    return MeasurementState("icmp")


@pytest.fixture
def dispatcher(transport, resolver):
    return ProbeDispatcher(transport, resolver)


@pytest.fixture
def collector(transport):
    return ResultCollector(transport)


class TestParseValue:
    """Tests for raw value parsing."""

    @pytest.mark.parametrize("raw,expected", [
        ("12.5", 12.5),
        (12.5, 12.5),
        (3, 3.0),
        (" 7 ", 7.0),
    ])
    def test_numeric_values(self, raw, expected):
        assert parse_value(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "12ms", [], {}, True, math.nan, "inf"])
    def test_non_numeric_values_are_absent(self, raw):
        assert parse_value(raw) is None


class TestDispatch:
    """Tests for ProbeDispatcher.dispatch."""

    def test_sends_one_request_per_resolved_host(self, dispatcher, state, transport, make_hosts):
        sent = dispatcher.dispatch(state, make_hosts("good.example", "other.example"), "min")

        assert sent == 2
        assert sorted(transport.sent) == [("1.2.3.4", False), ("5.6.7.8", False)]
        results = state.snapshot()
        assert results["icmp@good.example"].resolved_addr == "1.2.3.4"
        assert results["icmp@other.example"].resolved_addr == "5.6.7.8"

    def test_ipv6_addresses_flagged(self, dispatcher, state, transport, make_hosts):
        dispatcher.dispatch(state, make_hosts("v6.example"), "min")

        assert transport.sent == [("2001:db8::1", True)]

    def test_unresolved_host_skipped(self, dispatcher, state, transport, make_hosts):
        sent = dispatcher.dispatch(state, make_hosts("good.example", "bad.example"), "min")

        assert sent == 1
        assert transport.sent == [("1.2.3.4", False)]
        assert "icmp@bad.example" not in state.snapshot()

    def test_creates_pending_results(self, dispatcher, state, make_hosts):
        dispatcher.dispatch(state, make_hosts("good.example"), "min")

        result = state.snapshot()["icmp@good.example"]
        assert result.resolved_addr == "1.2.3.4"
        assert result.value is None

    def test_resets_previous_cycle_first(self, dispatcher, state, make_hosts):
        state.register("icmp@stale.example", "9.9.9.9")

        dispatcher.dispatch(state, make_hosts("good.example"), "min")

        assert "icmp@stale.example" not in state.snapshot()
        assert state.set_value("9.9.9.9", 1.0) is None

    def test_empty_hosts_clears_state(self, dispatcher, state, transport):
        state.register("icmp@stale.example", "9.9.9.9")

        assert dispatcher.dispatch(state, {}, "min") == 0
        assert state.snapshot() == {}
        assert transport.sent == []


class TestCollect:
    """Tests for ResultCollector.collect."""

    def test_good_and_bad_host_scenario(self, dispatcher, collector, state, transport, make_hosts):
        dispatcher.dispatch(state, make_hosts("good.example", "bad.example"), "min")
        transport.reply("1.2.3.4", "12.5")

        results = collector.collect(state, "min")

        assert set(results) == {"icmp@good.example"}
        assert results["icmp@good.example"].resolved_addr == "1.2.3.4"
        assert results["icmp@good.example"].value == 12.5

    def test_no_response_leaves_host_without_value(self, dispatcher, collector, state, make_hosts):
        dispatcher.dispatch(state, make_hosts("good.example"), "min")

        results = collector.collect(state, "min")

        assert results["icmp@good.example"].resolved_addr == "1.2.3.4"
        assert results["icmp@good.example"].value is None
        assert results["icmp@good.example"].reachable is False

    def test_malformed_value_counts_as_unreachable(self, dispatcher, collector, state, transport, make_hosts):
        dispatcher.dispatch(state, make_hosts("good.example"), "min")
        transport.reply("1.2.3.4", "timeout")

        results = collector.collect(state, "min")

        assert results["icmp@good.example"].value is None

    def test_unmatched_response_discarded(self, dispatcher, collector, state, transport, make_hosts):
        dispatcher.dispatch(state, make_hosts("good.example"), "min")
        transport.reply("1.2.3.4", 3.2)
        transport.reply("203.0.113.9", 1.0)

        results = collector.collect(state, "min")

        assert set(results) == {"icmp@good.example"}
        assert results["icmp@good.example"].value == 3.2

    def test_drains_both_families(self, dispatcher, collector, state, transport, make_hosts):
        dispatcher.dispatch(state, make_hosts("good.example", "v6.example"), "min")
        transport.reply("1.2.3.4", 4.0)
        transport.reply("2001:db8::1", 8.0, ipv6=True)

        results = collector.collect(state, "min")

        assert sorted(transport.drains) == [False, True]
        assert results["icmp@good.example"].value == 4.0
        assert results["icmp@v6.example"].value == 8.0

    def test_family_drain_order_does_not_matter(self, resolver, make_hosts):
        v4_replies = {"1.2.3.4": "1.5"}
        v6_replies = {"2001:db8::1": "2.5"}

        class BatchTransport(FakeTransport):
            """Answers each drain with the next queued batch."""

            def __init__(self, batches):
                super().__init__()
                self.batches = list(batches)

            def drain_results(self, ipv6):
                self.drains.append(ipv6)
                return self.batches.pop(0)

        outcomes = []
        for batches in ((v6_replies, v4_replies), (v4_replies, v6_replies)):
            transport = BatchTransport(batches)
            state = MeasurementState("icmp")
            ProbeDispatcher(transport, resolver).dispatch(
                state, make_hosts("good.example", "v6.example"), "min"
            )
            outcomes.append(ResultCollector(transport).collect(state, "min"))
            assert len(transport.drains) == 2
            assert transport.batches == []

        assert outcomes[0] == outcomes[1]
        assert outcomes[0]["icmp@good.example"].value == 1.5
        assert outcomes[0]["icmp@v6.example"].value == 2.5

    def test_collision_last_writer_wins(self, dispatcher, collector, state, transport, make_hosts):
        dispatcher.dispatch(state, make_hosts("good.example", "alias.example"), "min")
        transport.reply("1.2.3.4", 6.0)

        results = collector.collect(state, "min")

        assert results["icmp@good.example"].value is None
        assert results["icmp@alias.example"].value == 6.0

    def test_new_dispatch_discards_previous_hosts(self, dispatcher, collector, state, transport, make_hosts):
        dispatcher.dispatch(state, make_hosts("good.example"), "min")
        transport.reply("1.2.3.4", 1.0)
        collector.collect(state, "min")

        dispatcher.dispatch(state, make_hosts("other.example"), "min")
        transport.reply("1.2.3.4", 1.0)
        results = collector.collect(state, "min")

        assert set(results) == {"icmp@other.example"}
        assert results["icmp@other.example"].value is None

    def test_collect_does_not_create_entries(self, collector, state, transport):
        transport.reply("1.2.3.4", 1.0)

        assert collector.collect(state, "min") == {}

    def test_returned_results_are_a_snapshot(self, dispatcher, collector, state, transport, make_hosts):
        dispatcher.dispatch(state, make_hosts("good.example"), "min")
        results = collector.collect(state, "min")

        results["icmp@good.example"].value = 99.0

        assert state.snapshot()["icmp@good.example"].value is None

    def test_measurements_do_not_share_state(self, dispatcher, collector, transport, make_hosts):
        icmp = MeasurementState("icmp")
        other = MeasurementState("icmp6")
        dispatcher.dispatch(icmp, make_hosts("good.example"), "min")
        dispatcher.dispatch(other, make_hosts("other.example"), "min")

        assert set(icmp.snapshot()) == {"icmp@good.example"}
        assert set(other.snapshot()) == {"icmp@other.example"}
