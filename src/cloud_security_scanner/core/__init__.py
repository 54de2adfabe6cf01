"""Core framework components for Cloud Security Scanner"""

from .cache import CacheEntry, CacheKey, Fetcher, SourceCache
from .engine import ScanEngine
from .errors import FetchError, ScanSetupError
from .framework import DataDependency, Finding, FindingStatus, SecurityCheck, Severity
from .registry import CheckRegistry
from .results import ResultAggregator, ScanResult
from .settings import Settings

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CheckRegistry",
    "DataDependency",
    "FetchError",
    "Fetcher",
    "Finding",
    "FindingStatus",
    "ResultAggregator",
    "ScanEngine",
    "ScanResult",
    "ScanSetupError",
    "SecurityCheck",
    "Settings",
    "Severity",
    "SourceCache",
]
