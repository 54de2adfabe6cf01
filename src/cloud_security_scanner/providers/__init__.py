"""Fetcher adapters for cloud providers"""

from .aws import AWSFetcher
from .oracle import OracleFetcher
from .snapshot import SnapshotFetcher

__all__ = [
    "AWSFetcher",
    "OracleFetcher",
    "SnapshotFetcher",
]
