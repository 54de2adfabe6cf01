"""
Error types shared by fetchers, the source cache and the scan engine
"""

from typing import Optional


class ScannerError(Exception):
    """Base class for scanner errors"""


class ScanSetupError(ScannerError):
    """Scan cannot start (no scopes, no credentials, unknown provider)"""


class FetchError(ScannerError):
    """Classified failure of one provider API call"""

    code = "UnknownError"

    def __init__(self, message: str = "", code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        if self.message:
            return f"{self.code}: {self.message}"
        return self.code

    def __eq__(self, other) -> bool:
        return (type(self) is type(other)
                and self.code == other.code
                and self.message == other.message)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.code, self.message))

    def to_dict(self):
        return {"code": self.code, "message": self.message}


class ResourceNotFound(FetchError):
    code = "NotFound"


class RateLimited(FetchError):
    code = "RateLimited"


class PermissionDenied(FetchError):
    code = "PermissionDenied"


class FetchTimeout(FetchError):
    code = "Timeout"


class ServiceUnavailable(FetchError):
    code = "ServiceUnavailable"


class UnsupportedOperation(FetchError):
    code = "UnsupportedOperation"


class FetchCancelled(FetchError):
    code = "Cancelled"


ERROR_CLASSES = {
    cls.code: cls for cls in (
        ResourceNotFound, RateLimited, PermissionDenied, FetchTimeout,
        ServiceUnavailable, UnsupportedOperation, FetchCancelled,
    )
}


def classify(exc: BaseException) -> FetchError:
    """Turn any exception raised by a fetcher into a FetchError"""
    if isinstance(exc, FetchError):
        return exc
    if isinstance(exc, TimeoutError):
        return FetchTimeout(str(exc) or "fetch timed out")
    if isinstance(exc, PermissionError):
        return PermissionDenied(str(exc))
    if isinstance(exc, ConnectionError):
        return ServiceUnavailable(str(exc))
    return FetchError(f"{type(exc).__name__}: {exc}")


def error_from_dict(payload) -> FetchError:
    """Rebuild a FetchError from its to_dict() form"""
    if isinstance(payload, str):
        return FetchError(payload)
    code = payload.get("code", FetchError.code)
    message = payload.get("message", "")
    cls = ERROR_CLASSES.get(code, FetchError)
    if cls is FetchError:
        return FetchError(message, code=code)
    return cls(message)
