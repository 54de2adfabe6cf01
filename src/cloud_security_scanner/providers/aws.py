"""
AWS fetcher: boto3 session, client management and operation table
"""

import csv
import io
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
    ReadTimeoutError,
)

from ..core.cache import Fetcher, GLOBAL_SCOPE
from ..core.errors import (
    FetchError,
    FetchTimeout,
    PermissionDenied,
    RateLimited,
    ResourceNotFound,
    ScanSetupError,
    ServiceUnavailable,
    UnsupportedOperation,
)

logger = logging.getLogger(__name__)

THROTTLING_CODES = {
    "Throttling", "ThrottlingException", "RequestLimitExceeded",
    "TooManyRequestsException", "SlowDown", "RequestThrottled",
}
ACCESS_DENIED_CODES = {
    "AccessDenied", "AccessDeniedException", "UnauthorizedOperation",
    "AuthFailure", "InvalidClientTokenId", "ExpiredToken", "OptInRequired",
    "UnrecognizedClientException",
}
NOT_FOUND_CODES = {"NoSuchEntity", "NoSuchBucket", "ResourceNotFoundException"}


@dataclass(frozen=True)
class AWSOperation:
    client: str
    method: str
    result_key: Optional[str] = None
    paginate: bool = False
    allowed_params: Tuple[str, ...] = ()
    # Name of an AWSFetcher method that performs the call instead
    handler: Optional[str] = None


OPERATIONS: Dict[Tuple[str, str], AWSOperation] = {
    ("ec2", "describeSecurityGroups"): AWSOperation(
        "ec2", "describe_security_groups", "SecurityGroups", paginate=True,
        allowed_params=("GroupIds", "Filters"),
    ),
    ("iam", "getCredentialReport"): AWSOperation(
        "iam", "get_credential_report", handler="_credential_report",
    ),
}


def classify_client_error(error: ClientError) -> FetchError:
    """Map an AWS error code onto the scanner's error classes"""
    details = error.response.get("Error", {})
    code = details.get("Code", "")
    message = details.get("Message") or str(error)

    if code in THROTTLING_CODES:
        return RateLimited(message)
    if code in ACCESS_DENIED_CODES:
        return PermissionDenied(message)
    if code in NOT_FOUND_CODES or code.endswith("NotFound"):
        return ResourceNotFound(message)
    return FetchError(message, code=code or FetchError.code)


class AWSFetcher(Fetcher):
    """Fetcher for AWS using boto3"""

    provider = "aws"

    def __init__(self, access_key: str = None, secret_key: str = None,
                 session_token: str = None, region: str = 'us-east-1',
                 profile: str = None, session: boto3.Session = None,
                 connect_timeout: int = 10, read_timeout: int = 30,
                 max_attempts: int = 3, report_attempts: int = 10,
                 report_poll_interval: float = 2.0):
        self.access_key = access_key
        self.secret_key = secret_key
        self.session_token = session_token
        self.region = region
        self.profile = profile
        self.session = session
        self.config = Config(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"max_attempts": max_attempts, "mode": "standard"},
        )
        self.report_attempts = report_attempts
        self.report_poll_interval = report_poll_interval
        self._account_id = None
        self._clients = {}
        # boto3 sessions are not thread-safe; client creation is serialized
        self._client_lock = threading.Lock()

        if self.session is None:
            self._initialize_session()

    def _initialize_session(self):
        """Initialize boto3 session with provided credentials"""
        try:
            if self.profile:
                self.session = boto3.Session(profile_name=self.profile)
            elif self.access_key and self.secret_key:
                self.session = boto3.Session(
                    aws_access_key_id=self.access_key,
                    aws_secret_access_key=self.secret_key,
                    aws_session_token=self.session_token,
                    region_name=self.region
                )
            else:
                # Use environment variables or instance metadata
                self.session = boto3.Session(region_name=self.region)

        except ProfileNotFound as e:
            raise ScanSetupError(f"Failed to initialize AWS session: {str(e)}") from e

    @property
    def account_id(self) -> str:
        """AWS account ID, looked up on first use"""
        if self._account_id is None:
            try:
                sts_client = self.get_client('sts')
                self._account_id = sts_client.get_caller_identity()['Account']
            except (ClientError, BotoCoreError) as e:
                logger.warning(f"Could not retrieve account ID: {str(e)}")
                self._account_id = "unknown"
        return self._account_id

    def metadata(self) -> Dict[str, Any]:
        return {"account_id": self.account_id}

    def get_client(self, service_name: str, region: str = None):
        """Get boto3 client for AWS service"""
        if region is None or region == GLOBAL_SCOPE:
            region = self.region

        client_key = f"{service_name}_{region}"
        with self._client_lock:
            if client_key not in self._clients:
                self._clients[client_key] = self.session.client(
                    service_name, region_name=region, config=self.config
                )
            return self._clients[client_key]

    def fetch(self, service: str, operation: str, scope: str,
              params: Optional[Dict[str, Any]] = None) -> Any:
        params = params or {}
        try:
            if (service, operation) == ("regions", "list"):
                return self._list_regions()

            spec = OPERATIONS.get((service, operation))
            if spec is None:
                raise UnsupportedOperation(f"{service}:{operation} is not supported for AWS")

            kwargs = {name: params[name] for name in spec.allowed_params
                      if name in params}
            return self._call(spec, scope, kwargs)

        except ClientError as e:
            raise classify_client_error(e) from e
        except NoCredentialsError as e:
            raise PermissionDenied(str(e)) from e
        except (ConnectTimeoutError, ReadTimeoutError) as e:
            raise FetchTimeout(str(e)) from e
        except EndpointConnectionError as e:
            raise ServiceUnavailable(str(e)) from e
        except BotoCoreError as e:
            raise FetchError(str(e), code=type(e).__name__) from e

    def _call(self, spec: AWSOperation, scope: str, kwargs: Dict[str, Any]) -> Any:
        client = self.get_client(spec.client, scope)
        logger.debug(f"Calling {spec.client}.{spec.method} in {client.meta.region_name}")

        if spec.handler:
            return getattr(self, spec.handler)(client)

        if spec.paginate:
            items: List[Any] = []
            paginator = client.get_paginator(spec.method)
            for page in paginator.paginate(**kwargs):
                items.extend(page.get(spec.result_key, []))
            return items

        response = getattr(client, spec.method)(**kwargs)
        if spec.result_key:
            return response.get(spec.result_key, [])
        return response

    def _list_regions(self) -> List[str]:
        """Get list of regions enabled for the account"""
        client = self.get_client('ec2')
        regions = client.describe_regions()['Regions']
        return [region['RegionName'] for region in regions]

    def _credential_report(self, client) -> List[Dict[str, str]]:
        """Generate the IAM credential report and return its rows"""
        for _ in range(self.report_attempts):
            state = client.generate_credential_report().get('State')
            if state == 'COMPLETE':
                break
            time.sleep(self.report_poll_interval)
        else:
            raise FetchTimeout("IAM credential report was not generated in time")

        content = client.get_credential_report()['Content']
        if isinstance(content, bytes):
            content = content.decode('utf-8')
        return list(csv.DictReader(io.StringIO(content)))
