"""
Core scanning engine that orchestrates security checks
"""

import concurrent.futures
import logging
import threading
import time
from typing import List, Optional, Tuple

from .cache import CacheKey, Fetcher, GLOBAL_SCOPE, SourceCache
from .errors import ScanSetupError
from .framework import SecurityCheck
from .registry import CheckRegistry
from .regions import region_set
from .results import ResultAggregator, ScanResult
from .settings import Settings

REGIONS_KEY = CacheKey("regions", "list", GLOBAL_SCOPE)

Unit = Tuple[SecurityCheck, str]


class ScanEngine:
    """Core scanning engine that orchestrates security checks.

    One unit of work is one check evaluated for one scope. Units share a
    per-scan SourceCache, so every provider response is fetched once no
    matter how many checks read it.
    """

    def __init__(self, fetcher: Fetcher, registry: Optional[CheckRegistry] = None,
                 settings: Optional[Settings] = None):
        self.fetcher = fetcher
        self.registry = registry or CheckRegistry()
        self.settings = settings or Settings()
        self._cancel_event = threading.Event()
        self._futures: List[concurrent.futures.Future] = []
        self._lock = threading.Lock()

    def cancel(self):
        """Stop the running scan: unstarted units are dropped, started
        units stop fetching, findings produced so far are kept."""
        logging.warning("Scan cancellation requested")
        with self._lock:
            self._cancel_event.set()
            for future in self._futures:
                future.cancel()

    def run_scan(self, check_ids: List[str] = None,
                 services: List[str] = None) -> ScanResult:
        """Run a security scan and return its result.

        Raises ScanSetupError when the scopes cannot be enumerated.
        """
        settings = self.settings
        with self._lock:
            self._cancel_event = threading.Event()
            self._futures = []
        cancel_event = self._cancel_event

        cache = SourceCache(self.fetcher, cancel_event)
        regions = self.discover_scopes(cache)

        checks = self.registry.select(
            settings.provider,
            check_ids=check_ids or settings.checks,
            services=services or settings.services,
            excluded_checks=settings.excluded_checks,
            excluded_services=settings.excluded_services,
        )

        units: List[Unit] = [(check, scope) for check in checks
                             for scope in check.scopes(regions)]
        scopes = list(regions)
        if any(scope == GLOBAL_SCOPE for _, scope in units) and GLOBAL_SCOPE not in scopes:
            scopes.append(GLOBAL_SCOPE)
        aggregator = ResultAggregator(checks, scopes)

        if not checks:
            logging.warning("No checks selected for scanning")
            return aggregator.result(cache.snapshot(), fetch_counts=cache.fetch_counts())

        logging.info(f"Running {len(checks)} security checks across "
                     f"{len(regions)} regions ({len(units)} units)...")

        if settings.parallel and len(units) > 1:
            self._run_parallel(units, cache, aggregator)
        else:
            self._run_sequential(units, cache, aggregator)

        result = aggregator.result(cache.snapshot(),
                                   cancelled=cancel_event.is_set(),
                                   fetch_counts=cache.fetch_counts())
        logging.info(f"Scan completed. Total findings: {len(result)}, "
                     f"cache entries: {len(cache)}")
        return result

    def discover_scopes(self, cache: SourceCache) -> List[str]:
        """Regions to scan: discovered regions within the selected partition"""
        settings = self.settings
        try:
            catalog = region_set(settings.provider, settings.govcloud)
        except ValueError as e:
            raise ScanSetupError(str(e)) from e

        entry = cache.ensure(REGIONS_KEY, params=settings.fetch_params)
        if not entry.ok:
            raise ScanSetupError(f"Unable to enumerate regions: {entry.error}")

        discovered = set(entry.data or [])
        regions = [region for region in catalog if region in discovered]

        if settings.regions:
            for region in settings.regions:
                if region not in regions:
                    logging.warning(f"Region {region} is not available; skipping")
            regions = [region for region in regions if region in settings.regions]

        if not regions:
            raise ScanSetupError(
                f"No {settings.provider} regions available to scan"
                f"{' (govcloud)' if settings.govcloud else ''}"
            )
        return regions

    def _run_parallel(self, units: List[Unit], cache: SourceCache,
                      aggregator: ResultAggregator):
        settings = self.settings
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=settings.max_workers, thread_name_prefix="scan"
        )
        timed_out = False
        try:
            with self._lock:
                future_to_unit = {
                    executor.submit(self._run_unit, check, scope, cache, aggregator):
                        (check, scope)
                    for check, scope in units
                }
                self._futures = list(future_to_unit)
                if cache.cancel_event.is_set():
                    for future in self._futures:
                        future.cancel()

            done, pending = concurrent.futures.wait(
                future_to_unit, timeout=settings.timeout
            )
            if pending:
                timed_out = True
                cache.cancel_event.set()
                # Units finishing from here on are dropped by the aggregator
                aggregator.close()
                for future in pending:
                    future.cancel()
                    check, scope = future_to_unit[future]
                    if not aggregator.has_findings(check, scope):
                        aggregator.add_error(
                            check, scope, f"Check timed out after {settings.timeout}s",
                            force=True,
                        )
                logging.error(f"Scan timed out with {len(pending)} units pending")

            for future in done:
                if future.cancelled():
                    continue
                try:
                    future.result()
                except Exception as e:
                    check, scope = future_to_unit[future]
                    logging.error(f"Check {check.check_title} failed: {str(e)}")
                    aggregator.add_error(
                        check, scope, f"Unable to evaluate check: {type(e).__name__}: {e}",
                        force=True,
                    )
        finally:
            executor.shutdown(wait=not timed_out, cancel_futures=True)

    def _run_sequential(self, units: List[Unit], cache: SourceCache,
                        aggregator: ResultAggregator):
        timeout = self.settings.timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        timed_out = False
        for check, scope in units:
            if not timed_out and deadline is not None and time.monotonic() > deadline:
                timed_out = True
                cache.cancel_event.set()
                logging.error("Scan timed out; remaining units marked as errors")
            if timed_out:
                aggregator.add_error(check, scope, f"Check timed out after {timeout}s")
                continue
            if cache.cancel_event.is_set():
                break
            self._run_unit(check, scope, cache, aggregator)

    def _run_unit(self, check: SecurityCheck, scope: str, cache: SourceCache,
                  aggregator: ResultAggregator):
        """Resolve one check's data for a scope, then evaluate it"""
        if cache.cancel_event.is_set():
            return

        try:
            for key in check.keys_for(scope):
                entry = cache.ensure(key,
                                     params=self.settings.fetch_params)
                if not entry.fetched:
                    logging.info(f"Check {check.check_id} in {scope} stopped: "
                                 f"{entry.error}")
                    return

            findings = list(check.evaluate(cache, self.settings, scope) or [])
            if not findings:
                logging.warning(f"Check {check.check_id} reported nothing in {scope}")
                findings = [check.no_resources(scope)]
        except Exception as e:
            logging.error(f"Check {check.check_id} failed in {scope}: {str(e)}")
            aggregator.add_error(
                check, scope, f"Unable to evaluate check: {type(e).__name__}: {e}"
            )
            return

        aggregator.add(check, scope, findings)
        logging.info(f"Completed check: {check.check_title} in {scope} "
                     f"({len(findings)} findings)")
