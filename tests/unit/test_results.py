"""Tests for the result aggregator and ScanResult views."""

from __future__ import annotations

from conftest import ListCheck

from cloud_security_scanner.core.cache import CacheEntry, CacheKey
from cloud_security_scanner.core.errors import RateLimited
from cloud_security_scanner.core.framework import FindingStatus, Severity
from cloud_security_scanner.core.results import ResultAggregator


def make_checks():
    high = ListCheck("high", "azure", "sql", "list", severity=Severity.HIGH)
    low = ListCheck("low", "azure", "sql", "list", severity=Severity.LOW)
    return high, low


def test_batches_are_ordered_by_check_and_scope_regardless_of_arrival():
    high, low = make_checks()
    aggregator = ResultAggregator([high, low], ["eastus", "westus"])

    aggregator.add(low, "westus", [low.create_finding("westus", FindingStatus.OK, "l-w")])
    aggregator.add(high, "westus", [high.create_finding("westus", FindingStatus.OK, "h-w")])
    aggregator.add(low, "eastus", [low.create_finding("eastus", FindingStatus.OK, "l-e")])
    aggregator.add(high, "eastus", [
        high.create_finding("eastus", FindingStatus.FAIL, "h-e1"),
        high.create_finding("eastus", FindingStatus.OK, "h-e2"),
    ])

    assert [f.message for f in aggregator.findings()] == ["h-e1", "h-e2", "h-w", "l-e", "l-w"]


def test_zero_findings_for_a_check_is_fine():
    high, low = make_checks()
    aggregator = ResultAggregator([high, low], ["eastus"])
    aggregator.add(high, "eastus", [])

    result = aggregator.result({})

    assert result.findings == ()
    assert not aggregator.has_findings(high, "eastus")
    assert result.check_ids == ("high", "low")


def test_add_error_creates_error_finding():
    high, _ = make_checks()
    aggregator = ResultAggregator([high], ["eastus"])

    finding = aggregator.add_error(high, "eastus", "Unable to evaluate check: boom")

    assert finding.status == FindingStatus.ERROR
    assert finding.check_id == "high"
    assert aggregator.findings() == [finding]


def test_closed_aggregator_drops_late_findings():
    high, _ = make_checks()
    aggregator = ResultAggregator([high], ["eastus"])
    aggregator.close()

    aggregator.add(high, "eastus", [high.create_finding("eastus", FindingStatus.OK, "late")])

    assert aggregator.findings() == []


def test_forced_error_is_recorded_after_close():
    high, _ = make_checks()
    aggregator = ResultAggregator([high], ["eastus"])
    aggregator.close()

    aggregator.add_error(high, "eastus", "Check timed out after 5s", force=True)

    [finding] = aggregator.findings()
    assert finding.status == FindingStatus.ERROR
    assert finding.message == "Check timed out after 5s"


def build_result():
    high, low = make_checks()
    aggregator = ResultAggregator([low, high], ["eastus", "westus"])
    aggregator.add(low, "eastus", [low.create_finding("eastus", FindingStatus.FAIL, "low fail")])
    aggregator.add(high, "eastus", [high.create_finding("eastus", FindingStatus.OK, "high ok")])
    aggregator.add(high, "westus", [
        high.create_finding("westus", FindingStatus.FAIL, "high fail", resource_id="db1")
    ])
    snapshot = {
        CacheKey("sql", "list", "eastus"): CacheEntry(CacheKey("sql", "list", "eastus"), data=[]),
        CacheKey("sql", "list", "westus"): CacheEntry(
            CacheKey("sql", "list", "westus"), error=RateLimited("slow down")
        ),
    }
    return aggregator.result(snapshot)


def test_ranked_puts_highest_severity_failures_first():
    result = build_result()

    assert [f.message for f in result.ranked()] == ["high fail", "high ok", "low fail"]
    assert [f.message for f in result.findings] == ["low fail", "high ok", "high fail"]


def test_failures_and_exit_code_follow_threshold():
    result = build_result()

    assert [f.message for f in result.failures()] == ["low fail", "high fail"]
    assert [f.message for f in result.failures(Severity.HIGH)] == ["high fail"]
    assert result.exit_code(Severity.HIGH) == 1
    assert result.exit_code(Severity.CRITICAL) == 0
    assert result.exit_code("low") == 1


def test_grouping_views():
    result = build_result()

    assert list(result.by_check()) == ["low", "high"]
    assert [f.message for f in result.by_scope()["westus"]] == ["high fail"]
    assert len(result.with_status(FindingStatus.FAIL)) == 2


def test_summary_counts():
    summary = build_result().summary()

    assert summary["total_findings"] == 3
    assert summary["by_status"] == {"OK": 1, "WARN": 0, "FAIL": 2, "ERROR": 0}
    assert summary["failed_by_severity"] == {"LOW": 1, "HIGH": 1}
    assert summary["cache_entries"] == 2
    assert summary["fetch_errors"] == 1
    assert summary["cancelled"] is False


def test_snapshot_dict_nests_entries():
    assert build_result().snapshot_dict() == {
        "sql": {
            "list": {
                "eastus": {"data": []},
                "westus": {"error": {"code": "RateLimited", "message": "slow down"}},
            }
        }
    }
