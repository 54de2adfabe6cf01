"""
Oracle Cloud virtual cloud network checks
"""

from typing import Dict, List

from ..core.framework import (
    DataDependency,
    Finding,
    FindingStatus,
    SecurityCheck,
    Severity,
)

PUBLIC_SOURCES = {"0.0.0.0/0", "::/0"}
PROTOCOLS = {"6": "tcp", "17": "udp"}


def _port_range(rule, protocol: str):
    options = rule.get(f"{protocol}Options")
    if not options:
        return 0, 65535
    ports = options.get("destinationPortRange") or {}
    return ports.get("min", 0), ports.get("max", 65535)


def open_ports(security_list, ports: Dict[str, List[int]]) -> List[str]:
    """protocol:port strings reachable from the internet through a security list"""
    exposed = []
    for rule in security_list.get("ingressSecurityRules") or []:
        if rule.get("source") not in PUBLIC_SOURCES:
            continue

        rule_protocol = str(rule.get("protocol", "all"))
        if rule_protocol == "all":
            protocols = list(ports)
        elif PROTOCOLS.get(rule_protocol) in ports:
            protocols = [PROTOCOLS[rule_protocol]]
        else:
            continue

        for protocol in protocols:
            low, high = _port_range(rule, protocol)
            for port in ports[protocol]:
                label = f"{protocol}:{port}"
                if low <= port <= high and label not in exposed:
                    exposed.append(label)
    return exposed


class OpenSQLServerCheck(SecurityCheck):
    """Determine if TCP port 1433 or UDP port 1434 for SQL Server is open to the public"""

    ports = {"tcp": [1433], "udp": [1434]}
    service_name = "SQL Server"

    def __init__(self):
        super().__init__()
        self.check_id = "oracle_open_sql_server"
        self.check_title = "Open SQLServer"
        self.category = "Virtual Cloud Network"
        self.severity = Severity.HIGH
        self.compliance_frameworks = ["CIS"]
        self.provider = "oracle"
        self.service = "vcn"
        self.remediation = "Restrict TCP port 1433 and UDP port 1434 to known IP addresses"
        self.required_data = [
            DataDependency("vcn", "list"),
            DataDependency("securityList", "list"),
        ]

    def evaluate(self, cache, settings, scope) -> List[Finding]:
        vcns = self.source(cache, 'vcn', 'list', scope)
        if not vcns.ok:
            return [self.query_error(scope, vcns, "virtual cloud networks")]

        security_lists = self.source(cache, 'securityList', 'list', scope)
        if not security_lists.ok:
            return [self.query_error(scope, security_lists, "security lists")]
        if not security_lists.data:
            return [self.no_resources(scope, "No security lists present")]

        findings = []
        for security_list in security_lists.data:
            exposed = open_ports(security_list, self.ports)
            if exposed:
                name = security_list.get("displayName") or security_list.get("id", "")
                findings.append(self.create_finding(
                    scope, FindingStatus.FAIL,
                    f"{self.service_name} is open to the public on "
                    f"{', '.join(exposed)} in security list {name}",
                    resource_id=security_list.get("id", ""),
                ))

        if not findings:
            findings.append(self.create_finding(
                scope, FindingStatus.OK,
                f"No public open ports found for {self.service_name}"
            ))
        return findings
