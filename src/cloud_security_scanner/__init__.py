"""
Cloud Security Scanner - compliance checks over cached cloud provider data

This package runs a catalog of compliance checks against AWS, Azure and
Oracle Cloud accounts. Provider responses are fetched once per scan into a
shared cache and every check reads from it.
"""

__version__ = "1.0.0"
__author__ = "Security Team"
__email__ = "security@example.com"

from .core.cache import CacheEntry, CacheKey, Fetcher, SourceCache
from .core.engine import ScanEngine
from .core.framework import DataDependency, Finding, FindingStatus, SecurityCheck, Severity
from .core.output import OutputEngine
from .core.registry import CheckRegistry
from .core.results import ScanResult
from .core.settings import Settings

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CheckRegistry",
    "DataDependency",
    "Fetcher",
    "Finding",
    "FindingStatus",
    "OutputEngine",
    "ScanEngine",
    "ScanResult",
    "SecurityCheck",
    "Settings",
    "Severity",
    "SourceCache",
]
