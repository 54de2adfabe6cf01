"""Tests for findings, severities, dependencies and the check base class."""

from __future__ import annotations

import pytest
from conftest import ListCheck

from cloud_security_scanner.core.cache import CacheKey, SourceCache
from cloud_security_scanner.core.framework import (
    DataDependency,
    Finding,
    FindingStatus,
    Severity,
)


def test_finding_equality_ignores_timestamp():
    a = Finding("c", "title", "cat", FindingStatus.OK, Severity.LOW, "msg", "eastus",
                timestamp="2024-01-01T00:00:00")
    b = Finding("c", "title", "cat", FindingStatus.OK, Severity.LOW, "msg", "eastus",
                timestamp="2025-01-01T00:00:00")

    assert a == b
    assert hash(a) == hash(b)


def test_finding_to_dict_uses_names():
    finding = Finding("c", "title", "cat", FindingStatus.WARN, Severity.CRITICAL,
                      "msg", "eastus", compliance_frameworks=("CIS",))

    data = finding.to_dict()

    assert data["status"] == "WARN"
    assert data["severity"] == "CRITICAL"
    assert data["compliance_frameworks"] == ["CIS"]
    assert data["timestamp"]


def test_severity_parse():
    assert Severity.parse("high") is Severity.HIGH
    assert Severity.parse(" Critical ") is Severity.CRITICAL
    assert Severity.parse(Severity.LOW) is Severity.LOW
    assert Severity.CRITICAL > Severity.HIGH > Severity.INFO
    with pytest.raises(ValueError):
        Severity.parse("urgent")


def test_dependency_follows_or_pins_scope():
    regional = DataDependency("resources", "list")
    pinned = DataDependency("activityLogAlerts", "listByResourceGroup", scope="global")

    assert regional.key_for("eastus") == CacheKey("resources", "list", "eastus")
    assert pinned.key_for("eastus") == CacheKey("activityLogAlerts", "listByResourceGroup", "global")


def test_dependency_carries_no_fetch_params():
    # Equal dependencies must map to one cache entry, so there is nothing
    # besides the key that could make two fetches differ
    assert DataDependency("vcn", "list") == DataDependency("vcn", "list")
    with pytest.raises(TypeError):
        DataDependency("vcn", "list", None, (("compartmentId", "ocid1.c"),))


def test_check_scopes():
    regional = ListCheck("r", "azure", "sql", "list")
    global_check = ListCheck("g", "azure", "sql", "list", global_scope=True)

    assert regional.scopes(["eastus", "westus"]) == ["eastus", "westus"]
    assert global_check.scopes(["eastus", "westus"]) == ["global"]
    assert regional.keys_for("eastus") == [CacheKey("sql", "list", "eastus")]


def test_source_rejects_undeclared_and_unresolved_keys():
    check = ListCheck("r", "azure", "sql", "list")
    cache = SourceCache()

    with pytest.raises(LookupError, match="not a declared dependency"):
        check.source(cache, "storage", "list", "eastus")
    with pytest.raises(LookupError, match="not resolved"):
        check.source(cache, "sql", "list", "eastus")

    cache.ensure(CacheKey("sql", "list", "eastus"), lambda: [])
    assert check.source(cache, "sql", "list", "eastus").data == []


def test_create_finding_fills_remediation_only_for_failures():
    check = ListCheck("r", "azure", "sql", "list")
    check.remediation = "Fix it"

    fail = check.create_finding("eastus", FindingStatus.FAIL, "bad")
    ok = check.create_finding("eastus", FindingStatus.OK, "good")

    assert fail.remediation == "Fix it"
    assert ok.remediation == ""
    assert fail.severity == check.severity
    assert fail.check_title == "r title"
