"""Tests for JSON report generation."""

from __future__ import annotations

import json

from conftest import CountingFetcher, ListCheck

from cloud_security_scanner.core.engine import ScanEngine
from cloud_security_scanner.core.framework import Severity
from cloud_security_scanner.core.output import OutputEngine
from cloud_security_scanner.core.settings import Settings


def run(make_registry, settings):
    fetcher = CountingFetcher({
        ("regions", "list", "global"): ["eastus"],
        ("sql", "list", "eastus"): [{"id": "db1", "open": True}, {"id": "db2"}],
        ("storage", "list", "eastus"): [{"id": "acct1", "open": True}],
    })
    registry = make_registry(
        ListCheck("sql_low", "azure", "sql", "list", severity=Severity.LOW),
        ListCheck("storage_high", "azure", "storage", "list", severity=Severity.HIGH),
    )
    return ScanEngine(fetcher, registry, settings).run_scan()


def test_report_structure(make_registry):
    settings = Settings(provider="azure", suppress=["sql_low:*:db1"])
    result = run(make_registry, settings)

    report = OutputEngine.format_json(result, settings, metadata={"account_id": "sub-1"})

    assert report["metadata"]["provider"] == "azure"
    assert report["metadata"]["account_id"] == "sub-1"
    assert report["metadata"]["regions"] == ["eastus"]
    assert report["metadata"]["checks"] == ["sql_low", "storage_high"]
    assert [f["check_id"] for f in report["findings"]] == ["storage_high", "sql_low", "sql_low"]
    assert [f["suppressed"] for f in report["findings"]] == [False, True, False]
    assert report["summary"]["suppressed"] == 1
    assert report["summary"]["failed_above_threshold"] == 1
    assert report["snapshot"]["sql"]["list"]["eastus"]["data"][0]["id"] == "db1"


def test_report_without_snapshot(make_registry):
    settings = Settings(provider="azure")
    report = OutputEngine.format_json(run(make_registry, settings), settings,
                                      include_snapshot=False)

    assert "snapshot" not in report


def test_exit_code_respects_threshold_and_suppression(make_registry):
    default = Settings(provider="azure")
    assert OutputEngine.exit_code(run(make_registry, default), default) == 1

    critical = Settings(provider="azure", severity_threshold="critical")
    assert OutputEngine.exit_code(run(make_registry, critical), critical) == 0

    suppressed = Settings(provider="azure", suppress=["storage_high"])
    assert OutputEngine.exit_code(run(make_registry, suppressed), suppressed) == 0


def test_save_report(tmp_path, make_registry):
    settings = Settings(provider="azure")
    report = OutputEngine.format_json(run(make_registry, settings), settings)
    path = tmp_path / "reports" / "scan.json"

    OutputEngine.save_report(report, str(path))

    saved = json.loads(path.read_text())
    assert saved["summary"]["total_findings"] == 3
