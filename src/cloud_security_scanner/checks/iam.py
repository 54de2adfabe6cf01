"""
IAM security checks
"""

from typing import List

from ..core.framework import (
    DataDependency,
    Finding,
    FindingStatus,
    SecurityCheck,
    Severity,
)

ROOT_ACCOUNT = "<root_account>"


class IAMUserWithoutMFACheck(SecurityCheck):
    """Check for IAM users without MFA enabled.

    Reads the IAM credential report: password_enabled tells whether the user
    has a login profile, mfa_active covers virtual, hardware and U2F devices.
    """

    def __init__(self):
        super().__init__()
        self.check_id = "iam_user_no_mfa"
        self.check_title = "IAM users should have MFA enabled"
        self.category = "IAM"
        self.severity = Severity.HIGH
        self.compliance_frameworks = ["CIS", "NIST", "FedRAMP"]
        self.provider = "aws"
        self.service = "iam"
        self.remediation = "Enable MFA for IAM user in AWS Console"
        self.global_scope = True
        self.required_data = [DataDependency("iam", "getCredentialReport")]

    def evaluate(self, cache, settings, scope) -> List[Finding]:
        report = self.source(cache, 'iam', 'getCredentialReport', scope)
        if not report.ok:
            return [self.query_error(scope, report, "IAM credential report")]

        users = [row for row in report.data or [] if row.get('user') != ROOT_ACCOUNT]
        if not users:
            return [self.no_resources(scope, "No IAM users found")]

        findings = []
        for user in users:
            has_console_access = _flag(user.get('password_enabled'))
            has_mfa = _flag(user.get('mfa_active'))

            # Only flag users with console access and no MFA
            if has_console_access and not has_mfa:
                status = FindingStatus.FAIL
                message = "IAM user has console access but no MFA device configured"
            elif has_console_access:
                status = FindingStatus.OK
                message = "IAM user has MFA device configured"
            else:
                status = FindingStatus.OK
                message = "IAM user does not have console access"

            findings.append(self.create_finding(
                scope, status, message, resource_id=user['user']
            ))

        return findings


def _flag(value) -> bool:
    # Report cells are "true", "false", "N/A" or "not_supported"
    return str(value).strip().lower() == "true"
