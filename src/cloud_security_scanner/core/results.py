"""
Collects findings from every (check, scope) evaluation into a ScanResult
"""

import logging
import threading
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .cache import CacheEntry, CacheKey
from .framework import Finding, FindingStatus, SecurityCheck, Severity

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ScanResult:
    """Ordered findings of one scan plus the cache it was computed from"""
    findings: Tuple[Finding, ...]
    snapshot: Dict[CacheKey, CacheEntry]
    scopes: Tuple[str, ...] = ()
    check_ids: Tuple[str, ...] = ()
    cancelled: bool = False
    started_at: str = ""
    finished_at: str = ""
    fetch_counts: Dict[CacheKey, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.findings)

    def __iter__(self):
        return iter(self.findings)

    def ranked(self) -> List[Finding]:
        """Findings ordered by severity, then status, highest first"""
        return sorted(self.findings,
                      key=lambda f: (-int(f.severity), -int(f.status)))

    def by_check(self) -> Dict[str, List[Finding]]:
        grouped: Dict[str, List[Finding]] = OrderedDict()
        for finding in self.findings:
            grouped.setdefault(finding.check_id, []).append(finding)
        return grouped

    def by_scope(self) -> Dict[str, List[Finding]]:
        grouped: Dict[str, List[Finding]] = OrderedDict()
        for finding in self.findings:
            grouped.setdefault(finding.scope, []).append(finding)
        return grouped

    def with_status(self, status: FindingStatus) -> List[Finding]:
        return [f for f in self.findings if f.status == status]

    def failures(self, threshold: Severity = Severity.INFO) -> List[Finding]:
        """FAIL findings at or above a severity threshold"""
        threshold = Severity.parse(threshold)
        return [f for f in self.findings
                if f.status == FindingStatus.FAIL and f.severity >= threshold]

    def exit_code(self, threshold: Severity = Severity.HIGH) -> int:
        return 1 if self.failures(threshold) else 0

    def summary(self) -> Dict[str, Any]:
        by_status = Counter(f.status.name for f in self.findings)
        by_severity = Counter(f.severity.name for f in self.findings
                              if f.status == FindingStatus.FAIL)
        by_check = Counter(f.check_id for f in self.findings)
        fetch_errors = sum(1 for entry in self.snapshot.values() if not entry.ok)
        return {
            "total_findings": len(self.findings),
            "by_status": {s.name: by_status.get(s.name, 0) for s in FindingStatus},
            "failed_by_severity": dict(by_severity),
            "by_check": dict(by_check),
            "scopes": len(self.scopes),
            "cache_entries": len(self.snapshot),
            "fetch_errors": fetch_errors,
            "cancelled": self.cancelled,
        }

    def snapshot_dict(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """Cache snapshot as {service: {operation: {scope: entry}}}"""
        nested: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for key in sorted(self.snapshot, key=str):
            entry = self.snapshot[key]
            nested.setdefault(key.service, {}).setdefault(
                key.operation, {})[key.scope] = entry.to_dict()
        return nested


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class ResultAggregator:
    """Thread-safe collector of per-(check, scope) finding batches.

    The final order follows check selection order, then scope order, and
    keeps the order each evaluate call produced, so it does not depend on
    which worker finished first.
    """

    def __init__(self, checks: Sequence[SecurityCheck], scopes: Sequence[str]):
        self._checks = [check.check_id for check in checks]
        self._check_order = {check_id: i for i, check_id in enumerate(self._checks)}
        self._scopes = list(scopes)
        self._scope_order = {scope: i for i, scope in enumerate(self._scopes)}
        self._batches: Dict[Tuple[str, str], List[Finding]] = {}
        self._lock = threading.Lock()
        self._closed = False
        self.started_at = _utcnow()

    def add(self, check: SecurityCheck, scope: str,
            findings: Sequence[Finding], force: bool = False) -> None:
        """Record one batch. force bypasses close(), for the engine's own
        timeout errors."""
        with self._lock:
            if self._closed and not force:
                logger.warning(f"Dropping late findings for {check.check_id} "
                               f"in {scope}: scan already finalized")
                return
            self._batches.setdefault((check.check_id, scope), []).extend(findings)

    def close(self) -> None:
        """Refuse further findings (units still running after a timeout)"""
        with self._lock:
            self._closed = True

    def add_error(self, check: SecurityCheck, scope: str, detail: str,
                  force: bool = False) -> Finding:
        finding = check.create_finding(scope, FindingStatus.ERROR, detail)
        self.add(check, scope, [finding], force=force)
        return finding

    def has_findings(self, check: SecurityCheck, scope: str) -> bool:
        with self._lock:
            return bool(self._batches.get((check.check_id, scope)))

    def _sort_key(self, batch_key: Tuple[str, str]):
        check_id, scope = batch_key
        return (self._check_order.get(check_id, len(self._check_order)),
                self._scope_order.get(scope, len(self._scope_order)),
                scope)

    def findings(self) -> List[Finding]:
        with self._lock:
            ordered: List[Finding] = []
            for batch_key in sorted(self._batches, key=self._sort_key):
                ordered.extend(self._batches[batch_key])
            return ordered

    def result(self, snapshot: Dict[CacheKey, CacheEntry],
               cancelled: bool = False,
               fetch_counts: Optional[Dict[CacheKey, int]] = None) -> ScanResult:
        return ScanResult(
            findings=tuple(self.findings()),
            snapshot=snapshot,
            scopes=tuple(self._scopes),
            check_ids=tuple(self._checks),
            cancelled=cancelled,
            started_at=self.started_at,
            finished_at=_utcnow(),
            fetch_counts=dict(fetch_counts or {}),
        )
