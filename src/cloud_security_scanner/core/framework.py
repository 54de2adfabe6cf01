"""
Core framework classes and interfaces for security checks
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from .cache import CacheEntry, CacheKey, GLOBAL_SCOPE

if TYPE_CHECKING:
    from .cache import SourceCache
    from .settings import Settings


class FindingStatus(IntEnum):
    """Verdict of a check for one scope or resource"""
    OK = 0
    WARN = 1
    FAIL = 2
    ERROR = 3


class Severity(IntEnum):
    INFO = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @classmethod
    def parse(cls, value) -> "Severity":
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown severity: {value}") from None


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Finding:
    """Security finding data structure"""
    check_id: str
    check_title: str
    category: str
    status: FindingStatus
    severity: Severity
    message: str
    scope: str
    resource_id: str = ""
    remediation: str = ""
    compliance_frameworks: Tuple[str, ...] = ()
    timestamp: str = field(default_factory=_utcnow, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert finding to dictionary for JSON output"""
        return {
            "check_id": self.check_id,
            "check_title": self.check_title,
            "category": self.category,
            "status": self.status.name,
            "severity": self.severity.name,
            "message": self.message,
            "scope": self.scope,
            "resource_id": self.resource_id,
            "remediation": self.remediation,
            "compliance_frameworks": list(self.compliance_frameworks),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class DataDependency:
    """A (service, operation) pair a check reads from the source cache.

    With scope=None the dependency follows the scope being evaluated;
    a literal scope such as "global" pins it to one key. Fetch parameters
    come from Settings.fetch_params, so a dependency maps to exactly one
    CacheKey.
    """
    service: str
    operation: str
    scope: Optional[str] = None

    def key_for(self, scope: str) -> CacheKey:
        return CacheKey(self.service, self.operation, self.scope or scope)


class SecurityCheck(ABC):
    """Abstract base class for security checks"""

    def __init__(self):
        self.check_id: str = ""
        self.check_title: str = ""
        self.category: str = ""
        self.severity: Severity = Severity.MEDIUM
        self.compliance_frameworks: List[str] = []
        self.provider: str = ""
        self.service: str = ""
        self.remediation: str = ""
        self.global_scope: bool = False
        self.required_data: List[DataDependency] = []

    @abstractmethod
    def evaluate(self, cache: 'SourceCache', settings: 'Settings',
                 scope: str) -> List[Finding]:
        """Evaluate the check for one scope using cached data only"""
        pass

    def scopes(self, regions: List[str]) -> List[str]:
        """Scopes this check runs in, given the discovered regions"""
        if self.global_scope:
            return [GLOBAL_SCOPE]
        return list(regions)

    def keys_for(self, scope: str) -> List[CacheKey]:
        return [dep.key_for(scope) for dep in self.required_data]

    def source(self, cache: 'SourceCache', service: str, operation: str,
               scope: str) -> CacheEntry:
        """Read one declared dependency from the cache"""
        key = CacheKey(service, operation, scope)
        declared = any(dep.service == service and dep.operation == operation
                       for dep in self.required_data)
        if not declared:
            raise LookupError(f"{key} is not a declared dependency of {self.check_id}")

        entry = cache.get(key)
        if entry is None:
            raise LookupError(f"{key} was not resolved before evaluation")
        return entry

    def create_finding(self, scope: str, status: FindingStatus, message: str,
                       resource_id: str = "",
                       remediation: Optional[str] = None) -> Finding:
        """Helper method to create a finding"""
        if remediation is None:
            remediation = self.remediation if status == FindingStatus.FAIL else ""
        return Finding(
            check_id=self.check_id,
            check_title=self.check_title,
            category=self.category,
            status=status,
            severity=self.severity,
            message=message,
            scope=scope,
            resource_id=resource_id,
            remediation=remediation,
            compliance_frameworks=tuple(self.compliance_frameworks or ()),
        )

    def query_error(self, scope: str, entry: CacheEntry, what: str) -> Finding:
        return self.create_finding(
            scope, FindingStatus.ERROR, f"Unable to query {what}: {entry.error}"
        )

    def no_resources(self, scope: str,
                     message: str = "No matching resources found") -> Finding:
        return self.create_finding(scope, FindingStatus.OK, message)
