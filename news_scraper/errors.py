from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests


class ScraperError(Exception):
    """Base class for errors raised by the scraping subsystem."""

    kind = "UNKNOWN_ERROR"
    retryable = False

    def __init__(self, message: str, *, source_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.source_id = source_id


class SourceDisabledError(ScraperError):
    kind = "SOURCE_DISABLED"


class FetchTimeoutError(ScraperError):
    kind = "TIMEOUT_ERROR"
    retryable = True


class TransformError(ScraperError):
    """The provider payload did not have the shape the source expects."""

    kind = "PARSING_ERROR"


class NetworkError(ScraperError):
    kind = "NETWORK_ERROR"
    retryable = True


class HttpStatusError(NetworkError):
    """Non-2xx answer from the remote side."""

    def __init__(self, status_code: int, url: str, *, source_id: Optional[str] = None) -> None:
        super().__init__(f"HTTP {status_code} for {url}", source_id=source_id)
        self.status_code = status_code
        self.url = url
        if status_code == 429:
            self.kind = "API_RATE_LIMIT"
            self.retryable = True
        elif status_code >= 500:
            self.kind = "SERVER_ERROR"
            self.retryable = True
        else:
            self.kind = "CLIENT_ERROR"
            self.retryable = False


class UnknownSourceKindError(ScraperError, KeyError):
    kind = "UNKNOWN_SOURCE_KIND"

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message.
        return str(self.args[0]) if self.args else ""


class UnknownSourceError(ScraperError, KeyError):
    kind = "UNKNOWN_SOURCE"

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class InvalidSourceConfigError(ScraperError, ValueError):
    kind = "INVALID_CONFIG"


@dataclass(frozen=True)
class ClassifiedError:
    """Serializable description of a failure, attached to results and events."""

    kind: str
    message: str
    retryable: bool
    error_type: str
    status_code: Optional[int] = None


def classify_error(exc: BaseException) -> ClassifiedError:
    """Map any exception onto the error taxonomy."""
    error_type = type(exc).__name__
    if isinstance(exc, ScraperError):
        return ClassifiedError(
            kind=exc.kind,
            message=str(exc),
            retryable=exc.retryable,
            error_type=error_type,
            status_code=getattr(exc, "status_code", None),
        )
    if isinstance(exc, requests.Timeout):
        return ClassifiedError(FetchTimeoutError.kind, str(exc), True, error_type)
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return classify_error(HttpStatusError(exc.response.status_code, exc.response.url or ""))
    if isinstance(exc, (requests.RequestException, ConnectionError)):
        return ClassifiedError(NetworkError.kind, str(exc), True, error_type)
    if isinstance(exc, TimeoutError):
        return ClassifiedError(FetchTimeoutError.kind, str(exc), True, error_type)
    if isinstance(exc, ValueError):
        return ClassifiedError(TransformError.kind, str(exc), False, error_type)
    return ClassifiedError(ScraperError.kind, str(exc) or error_type, False, error_type)


def as_scraper_error(exc: BaseException, source_id: Optional[str] = None) -> ScraperError:
    """Wrap a foreign exception in the matching taxonomy class.

    Timeouts and connection failures keep their retryable meaning; anything
    else escaping a source hook is treated as a broken payload assumption.
    """
    if isinstance(exc, ScraperError):
        if exc.source_id is None:
            exc.source_id = source_id
        return exc
    message = f"{type(exc).__name__}: {exc}"
    if isinstance(exc, (requests.Timeout, TimeoutError)):
        return FetchTimeoutError(message, source_id=source_id)
    if isinstance(exc, (requests.RequestException, ConnectionError)):
        return NetworkError(message, source_id=source_id)
    return TransformError(message, source_id=source_id)
