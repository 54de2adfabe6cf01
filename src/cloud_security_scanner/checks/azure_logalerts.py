"""
Azure activity log alert checks
"""

from typing import List, Tuple

from ..core.cache import CacheKey, GLOBAL_SCOPE
from ..core.framework import (
    DataDependency,
    Finding,
    FindingStatus,
    SecurityCheck,
    Severity,
)

ALERT_RESOURCE_TYPE = "microsoft.insights/activitylogalerts"
SQL_SERVER_TYPE = "microsoft.sql/servers"
FIREWALL_WRITE = "microsoft.sql/servers/firewallrules/write"
FIREWALL_DELETE = "microsoft.sql/servers/firewallrules/delete"


def _operation_names(alert) -> List[str]:
    conditions = (alert.get('condition') or {}).get('allOf') or []
    return [str(c.get('equals', '')).lower() for c in conditions
            if c.get('field') == 'operationName']


def alert_coverage(alerts, operation: str) -> Tuple[bool, bool]:
    """(exists, enabled) for activity log alerts watching an operation"""
    exists = enabled = False
    for alert in alerts:
        if str(alert.get('type', '')).lower() != ALERT_RESOURCE_TYPE:
            continue
        if any(operation in name for name in _operation_names(alert)):
            exists = True
            enabled = enabled or bool(alert.get('enabled'))
    return exists, enabled


class SQLServerFirewallRuleAlertsCheck(SecurityCheck):
    """Activity log alerts must watch SQL Server firewall rule changes"""

    def __init__(self):
        super().__init__()
        self.check_id = "azure_sql_firewall_rule_alerts"
        self.check_title = "SQL Server Firewall Rule Alerts Monitor"
        self.category = "Log Alerts"
        self.severity = Severity.MEDIUM
        self.compliance_frameworks = ["CIS"]
        self.provider = "azure"
        self.service = "logalerts"
        self.remediation = ("Create activity log alerts for SQL Server firewall rule "
                            "create/update and delete events")
        self.required_data = [
            DataDependency("activityLogAlerts", "listByResourceGroup", scope=GLOBAL_SCOPE),
            DataDependency("resources", "list"),
        ]

    def scopes(self, regions: List[str]) -> List[str]:
        # Every location, plus one subscription-wide finding on alert setup
        return [region for region in regions if region != GLOBAL_SCOPE] + [GLOBAL_SCOPE]

    def keys_for(self, scope: str) -> List[CacheKey]:
        if scope == GLOBAL_SCOPE:
            return [self.required_data[0].key_for(scope)]
        return super().keys_for(scope)

    def evaluate(self, cache, settings, scope) -> List[Finding]:
        alerts = self.source(cache, 'activityLogAlerts', 'listByResourceGroup', GLOBAL_SCOPE)
        if not alerts.ok:
            return [self.query_error(scope, alerts, "activity log alerts")]

        if scope == GLOBAL_SCOPE:
            if not alerts.data:
                return [self.create_finding(
                    scope, FindingStatus.WARN, "Activity log alerts are not setup"
                )]
            return [self.create_finding(scope, FindingStatus.OK, "Activity log alerts are setup")]

        resources = self.source(cache, 'resources', 'list', scope)
        if not resources.ok:
            return [self.query_error(scope, resources, "resources")]

        sql_servers = [r for r in resources.data or []
                       if str(r.get('type', '')).lower() == SQL_SERVER_TYPE]
        if not sql_servers:
            return [self.no_resources(
                scope, "No matching resources found, ignoring monitoring requirement"
            )]

        findings = []
        alert_data = alerts.data or []

        write_exists, write_enabled = alert_coverage(alert_data, FIREWALL_WRITE)
        delete_exists, delete_enabled = alert_coverage(alert_data, FIREWALL_DELETE)

        if write_enabled and delete_enabled:
            findings.append(self.create_finding(
                scope, FindingStatus.OK,
                "SQL Server Firewall Rule events are being monitored for "
                "Create/Update and Delete events"
            ))
            return findings

        for enabled, event in ((write_enabled, "Create/Update"),
                               (delete_enabled, "Delete")):
            if enabled:
                findings.append(self.create_finding(
                    scope, FindingStatus.OK,
                    f"SQL Server Firewall Rule events are being monitored for {event} events"
                ))
            else:
                findings.append(self.create_finding(
                    scope, FindingStatus.FAIL,
                    f"SQL Server Firewall Rule events are not being monitored for {event} events"
                ))

        if not write_exists and not delete_exists:
            findings.append(self.create_finding(
                scope, FindingStatus.FAIL,
                "Activity log alerts are not setup for SQL Server Firewall Rule events"
            ))

        return findings
