"""
Scan settings: region selection, check filters, suppressions, limits
"""

import os
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Any, Dict, List, Optional

from .framework import Finding, FindingStatus, Severity


def _env_list(name: str) -> Optional[List[str]]:
    value = os.environ.get(name)
    if not value:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _env_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Options for one scan.

    Only provider, govcloud and regions are read by the engine (to pick
    scopes). Everything else is handed to checks and the report layer as is.
    """
    provider: str = "aws"
    govcloud: bool = False
    regions: Optional[List[str]] = None
    checks: Optional[List[str]] = None
    services: Optional[List[str]] = None
    excluded_checks: List[str] = field(default_factory=list)
    excluded_services: List[str] = field(default_factory=list)
    suppress: List[str] = field(default_factory=list)
    severity_threshold: Severity = Severity.HIGH
    parallel: bool = True
    max_workers: int = 10
    timeout: Optional[float] = 300
    fetch_params: Dict[str, Any] = field(default_factory=dict)
    check_settings: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        self.provider = self.provider.lower()
        self.severity_threshold = Severity.parse(self.severity_threshold)
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

    @classmethod
    def load(cls, **overrides) -> "Settings":
        """Build settings from SCANNER_* environment variables.

        Keyword arguments that are not None take precedence.
        """
        values: Dict[str, Any] = {}

        provider = os.environ.get("SCANNER_PROVIDER")
        if provider:
            values["provider"] = provider

        govcloud = _env_bool("SCANNER_GOVCLOUD")
        if govcloud is not None:
            values["govcloud"] = govcloud

        for name in ("regions", "checks", "services", "excluded_checks",
                     "excluded_services", "suppress"):
            env_value = _env_list(f"SCANNER_{name.upper()}")
            if env_value is not None:
                values[name] = env_value

        threshold = os.environ.get("SCANNER_SEVERITY_THRESHOLD")
        if threshold:
            values["severity_threshold"] = threshold

        workers = os.environ.get("SCANNER_MAX_WORKERS")
        if workers:
            values["max_workers"] = int(workers)

        timeout = os.environ.get("SCANNER_TIMEOUT")
        if timeout:
            values["timeout"] = float(timeout)

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def for_check(self, check_id: str) -> Dict[str, Any]:
        """Opaque per-check options"""
        return self.check_settings.get(check_id, {})

    def is_suppressed(self, finding: Finding) -> bool:
        """Match a finding against check_id:scope:resource glob patterns"""
        if finding.status == FindingStatus.ERROR:
            return False
        target = f"{finding.check_id}:{finding.scope}:{finding.resource_id or '*'}"
        for pattern in self.suppress:
            parts = pattern.split(":", 2)
            while len(parts) < 3:
                parts.append("*")
            if fnmatchcase(target, ":".join(parts)):
                return True
        return False
