"""
Registry for managing security checks
"""

import logging
from typing import Dict, Iterable, List, Optional

from .framework import SecurityCheck

logger = logging.getLogger(__name__)


class CheckRegistry:
    """Registry for managing security checks"""

    def __init__(self, checks: Optional[Iterable[SecurityCheck]] = None):
        self.checks: Dict[str, SecurityCheck] = {}
        if checks is None:
            self._register_default_checks()
        else:
            for check in checks:
                self.register_check(check)

    def _register_default_checks(self):
        """Register default security checks"""
        from ..checks.ec2 import EC2SecurityGroupOpenPortsCheck
        from ..checks.iam import IAMUserWithoutMFACheck
        from ..checks.azure_logalerts import SQLServerFirewallRuleAlertsCheck
        from ..checks.oracle_vcn import OpenSQLServerCheck

        default_checks = [
            EC2SecurityGroupOpenPortsCheck(),
            IAMUserWithoutMFACheck(),
            SQLServerFirewallRuleAlertsCheck(),
            OpenSQLServerCheck(),
        ]

        for check in default_checks:
            self.register_check(check)

    def register_check(self, check: SecurityCheck):
        """Register a security check"""
        if not check.check_id:
            raise ValueError(f"{type(check).__name__} has no check_id")
        if check.check_id in self.checks:
            raise ValueError(f"Duplicate check id: {check.check_id}")
        self.checks[check.check_id] = check

    def get_check(self, check_id: str) -> Optional[SecurityCheck]:
        """Get a specific check by ID"""
        return self.checks.get(check_id)

    def get_checks_by_service(self, service: str) -> List[SecurityCheck]:
        """Get all checks for a specific service"""
        return [check for check in self.checks.values()
                if check.service == service]

    def get_checks_by_provider(self, provider: str) -> List[SecurityCheck]:
        return [check for check in self.checks.values()
                if check.provider == provider]

    def get_all_checks(self) -> List[SecurityCheck]:
        """Get all registered checks"""
        return list(self.checks.values())

    def select(self, provider: str, check_ids: Optional[List[str]] = None,
               services: Optional[List[str]] = None,
               excluded_checks: Iterable[str] = (),
               excluded_services: Iterable[str] = ()) -> List[SecurityCheck]:
        """Checks to run for a provider, in registration order"""
        if check_ids:
            checks = []
            for check_id in check_ids:
                check = self.get_check(check_id)
                if check is None:
                    logger.warning(f"Unknown check id: {check_id}")
                elif check.provider != provider:
                    logger.warning(f"Check {check_id} targets {check.provider}, "
                                   f"not {provider}; skipping")
                else:
                    checks.append(check)
        else:
            checks = self.get_checks_by_provider(provider)
            if services:
                checks = [check for check in checks if check.service in services]

        excluded_checks = set(excluded_checks)
        excluded_services = set(excluded_services)
        return [check for check in checks
                if check.check_id not in excluded_checks
                and check.service not in excluded_services]

    def list_checks(self) -> Dict[str, str]:
        """List all available checks"""
        return {check_id: check.check_title
                for check_id, check in self.checks.items()}
