"""
Oracle Cloud fetcher built from allow-listed REST operation specs

Request signing is done by the injected transport, which receives a
ProviderRequest and returns (status_code, body).
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from ..core.cache import Fetcher, GLOBAL_SCOPE
from ..core.errors import (
    FetchError,
    FetchTimeout,
    PermissionDenied,
    RateLimited,
    ResourceNotFound,
    ServiceUnavailable,
    UnsupportedOperation,
)
from ..core.regions import REGIONS
from ..core.requests import OperationSpec, ProviderRequest

logger = logging.getLogger(__name__)

REST_VERSION = "/20160918"

LIST_QUERY = ("compartmentId", "vcnId", "limit", "page", "displayName",
              "sortBy", "sortOrder", "lifecycleState")

HOSTS = {
    "core": "iaas.{region}.{domain}",
    "identity": "identity.{region}.{domain}",
}

Transport = Callable[[ProviderRequest], Tuple[int, Any]]


@dataclass(frozen=True)
class OracleOperation:
    endpoint: str
    spec: OperationSpec


OPERATIONS: Dict[Tuple[str, str], OracleOperation] = {
    ("regions", "list"): OracleOperation("identity", OperationSpec("GET", "/regions")),
    ("vcn", "list"): OracleOperation(
        "core", OperationSpec("GET", "/vcns", query=("compartmentId", "limit", "page",
                                                      "displayName", "sortBy", "sortOrder",
                                                      "lifecycleState"))),
    ("vcn", "get"): OracleOperation("core", OperationSpec("GET", "/vcns/{vcnId}")),
    ("securityList", "list"): OracleOperation(
        "core", OperationSpec("GET", "/securityLists", query=LIST_QUERY)),
    ("securityList", "get"): OracleOperation(
        "core", OperationSpec("GET", "/securityLists/{securityListId}",
                              headers=("if-match",))),
    ("routeTable", "list"): OracleOperation(
        "core", OperationSpec("GET", "/routeTables", query=LIST_QUERY)),
    ("routeTable", "get"): OracleOperation(
        "core", OperationSpec("GET", "/routeTables/{rtId}")),
}


def endpoint_host(endpoint: str, region: str) -> str:
    domain = ("oraclegovcloud.com" if region in REGIONS["oracle"]["govcloud"]
              else "oraclecloud.com")
    return HOSTS[endpoint].format(region=region, domain=domain)


def error_for_status(status: int, body: Any) -> FetchError:
    message = ""
    if isinstance(body, dict):
        message = body.get("message") or body.get("code") or ""
    elif body:
        message = str(body)
    message = message or f"HTTP {status}"

    if status in (401, 403):
        return PermissionDenied(message)
    if status == 404:
        return ResourceNotFound(message)
    if status == 429:
        return RateLimited(message)
    if status in (408, 504):
        return FetchTimeout(message)
    if status >= 500:
        return ServiceUnavailable(message)
    return FetchError(message, code=str(status))


class OracleFetcher(Fetcher):
    """Read-only fetcher for Oracle Cloud Infrastructure"""

    provider = "oracle"

    def __init__(self, transport: Transport, home_region: str = "us-ashburn-1",
                 rest_version: str = REST_VERSION):
        self.transport = transport
        self.home_region = home_region
        self.rest_version = rest_version

    def build_request(self, service: str, operation: str, scope: str,
                      params: Optional[Dict[str, Any]] = None) -> ProviderRequest:
        op = OPERATIONS.get((service, operation))
        if op is None:
            raise UnsupportedOperation(f"{service}:{operation} is not supported for Oracle")

        region = self.home_region if scope == GLOBAL_SCOPE else scope
        try:
            return op.spec.build(endpoint_host(op.endpoint, region), params or {},
                                 prefix=self.rest_version)
        except ValueError as e:
            raise FetchError(str(e), code="InvalidParameter") from e

    def fetch(self, service: str, operation: str, scope: str,
              params: Optional[Dict[str, Any]] = None) -> Any:
        request = self.build_request(service, operation, scope, params)
        logger.debug(f"{request.method} https://{request.host}{request.path}")

        status, body = self.transport(request)
        if not 200 <= status < 300:
            raise error_for_status(status, body)

        if (service, operation) == ("regions", "list"):
            return [region["name"] if isinstance(region, dict) else region
                    for region in body or []]
        return body
