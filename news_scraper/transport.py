from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests
from curl_cffi import requests as curl_requests
from curl_cffi.curl import CurlError

from .backoff import BackoffStrategy
from .deadline import Deadline
from .errors import FetchTimeoutError, HttpStatusError, NetworkError, ScraperError, TransformError

logger = logging.getLogger(__name__)

_CURL_TIMEOUT_CODE = 28


@dataclass(frozen=True)
class Response:
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value.lower()
        return ""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except ValueError as exc:
            raise TransformError(f"invalid JSON from {self.url}: {exc}") from exc


class HttpTransport:
    """Blocking HTTP primitive shared by every strategy.

    GETs are idempotent and retried up to ``max_retries`` times with
    exponential backoff when the failure is retryable; HEAD probes are
    never retried. Given a ``deadline``, each attempt is cut to the time
    left and no attempt or backoff sleep starts once it has run out.
    With ``impersonate`` set the requests go through a curl_cffi session
    presenting a browser TLS fingerprint, which is what scraped news
    sites tend to require.
    """

    def __init__(
        self,
        backoff: Optional[BackoffStrategy] = None,
        impersonate: Optional[str] = None,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._backoff = backoff or BackoffStrategy()
        self._impersonate = impersonate
        self._default_headers = dict(default_headers or {})
        # Sessions are not shared across threads.
        self._local = threading.local()

    def get(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout_ms: int = 10000,
        max_retries: int = 0,
        deadline: Optional[Deadline] = None,
    ) -> Response:
        attempt = 0
        while True:
            attempt += 1
            timeout = timeout_ms
            if deadline is not None:
                deadline.check(f"GET {url}")
                timeout = deadline.limit_ms(timeout_ms)
            try:
                return self._request("GET", url, params, headers, timeout)
            except ScraperError as exc:
                if not exc.retryable or attempt > max_retries:
                    raise
                sleep_s = self._backoff.get_sleep(attempt, exc.kind)
                logger.debug("GET %s failed (%s), retry %d in %.2fs", url, exc.kind, attempt, sleep_s)
                if deadline is None:
                    time.sleep(sleep_s)
                elif not deadline.sleep(sleep_s):
                    raise

    def head(
        self,
        url: str,
        timeout_ms: int = 5000,
        headers: Optional[Mapping[str, str]] = None,
        deadline: Optional[Deadline] = None,
    ) -> Response:
        if deadline is not None:
            deadline.check(f"HEAD {url}")
            timeout_ms = deadline.limit_ms(timeout_ms)
        return self._request("HEAD", url, None, headers, timeout_ms)

    def _request(
        self,
        method: str,
        url: str,
        params: Optional[Mapping[str, Any]],
        headers: Optional[Mapping[str, str]],
        timeout_ms: Optional[int],
    ) -> Response:
        merged = {**self._default_headers, **(headers or {})}
        # Drop None-valued query params (e.g. no category filter).
        query = {k: v for k, v in (params or {}).items() if v is not None} or None
        timeout = timeout_ms / 1000 if timeout_ms else None
        try:
            if self._impersonate:
                resp = self._curl_session().request(
                    method=method,
                    url=url,
                    params=query,
                    headers=merged,
                    impersonate=self._impersonate,
                    timeout=timeout,
                )
            else:
                resp = self._requests_session().request(
                    method,
                    url,
                    params=query,
                    headers=merged,
                    timeout=timeout,
                    allow_redirects=True,
                )
        except requests.Timeout as exc:
            raise FetchTimeoutError(f"{method} {url} timed out after {timeout_ms}ms") from exc
        except requests.RequestException as exc:
            raise NetworkError(f"{method} {url} failed: {exc}") from exc
        except CurlError as exc:
            if getattr(exc, "code", None) == _CURL_TIMEOUT_CODE:
                raise FetchTimeoutError(f"{method} {url} timed out after {timeout_ms}ms") from exc
            raise NetworkError(f"{method} {url} failed: {exc}") from exc

        status = int(resp.status_code)
        if status >= 400:
            raise HttpStatusError(status, url)
        return Response(
            status=status,
            headers={str(k): str(v) for k, v in resp.headers.items()},
            body=resp.content or b"",
            url=str(resp.url or url),
        )

    def _requests_session(self) -> requests.Session:
        session = getattr(self._local, "requests_session", None)
        if session is None:
            session = requests.Session()
            self._local.requests_session = session
        return session

    def _curl_session(self) -> curl_requests.Session:
        session = getattr(self._local, "curl_session", None)
        if session is None:
            session = curl_requests.Session()
            self._local.curl_session = session
        return session
