"""
Fetcher that replays a recorded cache snapshot
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.cache import Fetcher
from ..core.errors import ResourceNotFound, error_from_dict

logger = logging.getLogger(__name__)


class SnapshotFetcher(Fetcher):
    """Serve fetches from {service: {operation: {scope: {"data"|"error"}}}}.

    The layout matches ScanResult.snapshot_dict(), so a recorded scan can be
    replayed offline for any provider.
    """

    def __init__(self, snapshot: Dict[str, Any], provider: str = ""):
        self.snapshot = snapshot
        self.provider = provider

    @classmethod
    def from_file(cls, path: Union[str, Path], provider: str = "") -> "SnapshotFetcher":
        with open(path) as f:
            snapshot = json.load(f)
        logger.info(f"Loaded snapshot from {path}")
        return cls(snapshot, provider=provider)

    def fetch(self, service: str, operation: str, scope: str,
              params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            entry = self.snapshot[service][operation][scope]
        except KeyError:
            raise ResourceNotFound(
                f"No recorded response for {service}:{operation}:{scope}"
            ) from None

        if isinstance(entry, dict) and "error" in entry:
            raise error_from_dict(entry["error"])
        if isinstance(entry, dict) and "data" in entry:
            return entry["data"]
        return entry
