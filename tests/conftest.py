"""Shared test fixtures."""

from __future__ import annotations

import threading
import time
from collections import Counter

import pytest

from cloud_security_scanner.core.cache import Fetcher, SourceCache
from cloud_security_scanner.core.errors import ResourceNotFound
from cloud_security_scanner.core.framework import (
    DataDependency,
    FindingStatus,
    SecurityCheck,
    Severity,
)
from cloud_security_scanner.core.registry import CheckRegistry
from cloud_security_scanner.core.settings import Settings


class CountingFetcher(Fetcher):
    """Serves canned responses and counts calls per key.

    A response that is an exception instance is raised instead of returned.
    """

    def __init__(self, responses, provider="azure", delay=0.0):
        self.responses = responses
        self.provider = provider
        self.delay = delay
        self.calls = Counter()
        self.params = {}
        self._lock = threading.Lock()

    def fetch(self, service, operation, scope, params=None):
        key = (service, operation, scope)
        with self._lock:
            self.calls[key] += 1
            self.params[key] = params
        if self.delay:
            time.sleep(self.delay)
        if key not in self.responses:
            raise ResourceNotFound(f"nothing recorded for {service}:{operation}:{scope}")
        value = self.responses[key]
        if isinstance(value, Exception):
            raise value
        return value


class ListCheck(SecurityCheck):
    """Fails every listed item with "open": True."""

    def __init__(self, check_id, provider, service, operation,
                 raise_in=(), global_scope=False, severity=Severity.HIGH):
        super().__init__()
        self.check_id = check_id
        self.check_title = f"{check_id} title"
        self.category = "Test"
        self.severity = severity
        self.provider = provider
        self.service = service
        self.operation = operation
        self.global_scope = global_scope
        self.raise_in = set(raise_in)
        self.required_data = [DataDependency(service, operation)]

    def evaluate(self, cache, settings, scope):
        if scope in self.raise_in:
            raise RuntimeError(f"boom in {scope}")
        entry = self.source(cache, self.service, self.operation, scope)
        if not entry.ok:
            return [self.query_error(scope, entry, self.operation)]
        if not entry.data:
            return [self.no_resources(scope)]
        return [
            self.create_finding(
                scope,
                FindingStatus.FAIL if item.get("open") else FindingStatus.OK,
                f"{item['id']} checked",
                resource_id=item["id"],
            )
            for item in entry.data
        ]


@pytest.fixture
def azure_settings() -> Settings:
    return Settings(provider="azure", max_workers=4, timeout=30)


@pytest.fixture
def oracle_settings() -> Settings:
    return Settings(provider="oracle", max_workers=4, timeout=30)


@pytest.fixture
def make_registry():
    def _make(*checks):
        return CheckRegistry(checks)
    return _make


@pytest.fixture
def resolve():
    """Build a cache holding every key a check needs for one scope."""
    def _resolve(check, scope, responses):
        cache = SourceCache(CountingFetcher(responses))
        for key in check.keys_for(scope):
            cache.ensure(key)
        return cache
    return _resolve
