"""Tests for probing helpers and the identifier catalog."""
from __future__ import annotations

import pytest

from conftest import FakeAgent
from fleetwatch import oids
from fleetwatch.errors import ParseError, SnmpTimeout
from fleetwatch.probe import DeviceProbe, ScanPolicy, first_success, parse_float, parse_int


class TestParsing:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("0.15", 0.15), (" 2.50 ", 2.5), ("0.15 load", 0.15), ("-3", -3.0), ("42%", 42.0)],
    )
    def test_parse_float(self, raw, expected):
        assert parse_float(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "abc", "n/a"])
    def test_parse_float_rejects(self, raw):
        with pytest.raises(ParseError):
            parse_float(raw)

    def test_parse_int(self):
        assert parse_int("8388608") == 8388608
        assert parse_int("12 interfaces") == 12

    def test_parse_int_rejects_fractions(self):
        with pytest.raises(ParseError):
            parse_int("1.5")

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_int("x")


def test_first_success_returns_first_non_none():
    attempts = []

    def attempt(value):
        attempts.append(value)
        return None if value < 2 else value * 10

    assert first_success([0, 1, 2, 3], attempt) == 20
    assert attempts == [0, 1, 2]


def test_first_success_exhausted():
    assert first_success(["a", "b"], lambda _: None) is None


class TestDeviceProbe:
    def test_optional_absorbs_unsupported(self, endpoint):
        probe = DeviceProbe(FakeAgent(), endpoint)
        assert probe.optional(oids.SYS_NAME) is None

    def test_optional_does_not_absorb_timeout(self, endpoint):
        probe = DeviceProbe(FakeAgent({endpoint.address: {oids.SYS_NAME: SnmpTimeout("timeout")}}), endpoint)
        with pytest.raises(SnmpTimeout):
            probe.optional(oids.SYS_NAME)

    def test_first_of_walks_candidates_in_order(self, endpoint):
        agent = FakeAgent({endpoint.address: {"1.2.3.2": "7", "1.2.3.3": "9"}})
        probe = DeviceProbe(agent, endpoint)

        assert probe.first_of(("1.2.3.1", "1.2.3.2", "1.2.3.3"), parse_int) == 7
        assert agent.oids_for(endpoint.address) == ["1.2.3.1", "1.2.3.2"]

    def test_dense_scan_stops_at_gap(self, endpoint):
        agent = FakeAgent({endpoint.address: {"1.9.1": "a", "1.9.2": "b", "1.9.4": "d"}})
        rows = list(DeviceProbe(agent, endpoint).scan("1.9", 10, ScanPolicy.DENSE))
        assert rows == [(1, "a"), (2, "b")]

    def test_sparse_scan_runs_to_bound(self, endpoint):
        agent = FakeAgent({endpoint.address: {"1.9.1": "a", "1.9.4": "d", "1.9.6": "f"}})
        rows = list(DeviceProbe(agent, endpoint).scan("1.9", 5, ScanPolicy.SPARSE))
        assert rows == [(1, "a"), (4, "d")]
        assert len(agent.calls) == 5


def test_indexed():
    assert oids.indexed(oids.HR_STORAGE_TYPE, 3) == "1.3.6.1.2.1.25.2.3.1.2.3"
    with pytest.raises(ValueError):
        oids.indexed(oids.HR_STORAGE_TYPE, -1)


def test_catalog_groups():
    assert set(oids.CATALOG) == {"standard", "unix", "windows"}
    assert oids.CATALOG["standard"]["System description"] == oids.SYS_DESCR
