"""
Allow-list driven request building for REST based fetchers

Each operation names the headers and query parameters it accepts. Only
those are copied from the caller's parameters; anything else is ignored.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Sequence, Tuple
from urllib.parse import quote, urlencode


@dataclass(frozen=True)
class ProviderRequest:
    """A fully built REST call, ready for a signing transport"""
    method: str
    host: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None


def build_headers(allowed: Sequence[str], params: Mapping[str, Any]) -> Dict[str, str]:
    """Copy allow-listed, non-empty headers from params"""
    return {name: str(params[name]) for name in allowed
            if params.get(name) is not None}


def build_query_string(allowed: Sequence[str], params: Mapping[str, Any]) -> str:
    """Encode allow-listed, non-empty query parameters in allow-list order"""
    pairs = [(name, params[name]) for name in allowed
             if params.get(name) is not None]
    return urlencode(pairs)


def build_path(base: str, query: str = "") -> str:
    if query:
        return f"{base}?{query}"
    return base


@dataclass(frozen=True)
class OperationSpec:
    """Static description of one REST operation.

    path may contain {placeholders}; each one is filled from params and
    percent-encoded.
    """
    method: str
    path: str
    headers: Tuple[str, ...] = ()
    query: Tuple[str, ...] = ()
    body: bool = False

    def build(self, host: str, params: Mapping[str, Any],
              prefix: str = "") -> ProviderRequest:
        try:
            path = self.path.format(**{
                name: quote(str(value), safe="") for name, value in params.items()
            })
        except KeyError as e:
            raise ValueError(f"Missing path parameter {e.args[0]} for {self.path}") from None

        return ProviderRequest(
            method=self.method,
            host=host,
            path=build_path(prefix + path, build_query_string(self.query, params)),
            headers=build_headers(self.headers, params),
            body=params.get("body") if self.body else None,
        )
