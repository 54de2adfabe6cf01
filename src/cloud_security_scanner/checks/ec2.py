"""
EC2 security checks
"""

from typing import List

from ..core.framework import (
    DataDependency,
    Finding,
    FindingStatus,
    SecurityCheck,
    Severity,
)

DANGEROUS_PORTS = [22, 3389, 1433, 3306, 5432, 6379, 27017]
OPEN_CIDRS = {"0.0.0.0/0", "::/0"}


def _open_to_world(rule) -> bool:
    ipv4 = (r.get('CidrIp') for r in rule.get('IpRanges', []))
    ipv6 = (r.get('CidrIpv6') for r in rule.get('Ipv6Ranges', []))
    return any(cidr in OPEN_CIDRS for cidr in list(ipv4) + list(ipv6))


class EC2SecurityGroupOpenPortsCheck(SecurityCheck):
    """Check for EC2 security groups with open ports to internet"""

    def __init__(self):
        super().__init__()
        self.check_id = "ec2_sg_open_ports"
        self.check_title = "Security groups should not allow unrestricted access"
        self.category = "EC2"
        self.severity = Severity.HIGH
        self.compliance_frameworks = ["CIS", "NIST", "PCI-DSS"]
        self.provider = "aws"
        self.service = "ec2"
        self.remediation = "Restrict source IP ranges to only necessary addresses"
        self.required_data = [DataDependency("ec2", "describeSecurityGroups")]

    def evaluate(self, cache, settings, scope) -> List[Finding]:
        groups = self.source(cache, 'ec2', 'describeSecurityGroups', scope)
        if not groups.ok:
            return [self.query_error(scope, groups, "security groups")]
        if not groups.data:
            return [self.no_resources(scope, "No security groups found")]

        dangerous_ports = settings.for_check(self.check_id).get("ports", DANGEROUS_PORTS)
        findings = []

        for sg in groups.data:
            sg_id = sg['GroupId']
            sg_name = sg.get('GroupName', 'Unknown')
            exposed = []

            for rule in sg.get('IpPermissions', []):
                if not _open_to_world(rule):
                    continue
                protocol = rule.get('IpProtocol', '-1')
                from_port = rule.get('FromPort', 0)
                to_port = rule.get('ToPort', 65535)

                # -1 means all protocols and all ports
                if protocol == '-1':
                    exposed.append("all traffic")
                    continue
                for port in dangerous_ports:
                    if from_port <= port <= to_port:
                        exposed.append(f"{protocol}:{port}")

            resource_id = f"{sg_id} ({sg_name})"
            if exposed:
                findings.append(self.create_finding(
                    scope, FindingStatus.FAIL,
                    f"Security group allows unrestricted access on {', '.join(exposed)}",
                    resource_id=resource_id,
                ))
            else:
                findings.append(self.create_finding(
                    scope, FindingStatus.OK,
                    "Security group does not allow unrestricted access to sensitive ports",
                    resource_id=resource_id,
                ))

        return findings
