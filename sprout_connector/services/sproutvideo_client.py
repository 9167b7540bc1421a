from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from threading import Lock
from time import monotonic
from typing import Any, Literal, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
from urllib.request import Request, urlopen

from sprout_connector.services.errors import SproutVideoApiError

LOGGER = logging.getLogger("sprout_connector.sproutvideo")

DEFAULT_BASE_URL = "https://api.sproutvideo.com/v1/"
API_KEY_HEADER = "SproutVideo-Api-Key"
DEFAULT_CACHE_TTL_SECONDS = 3600

HttpMethod = Literal["GET", "POST", "PUT"]
QueryParams = Mapping[str, str | Sequence[str]]
_SUPPORTED_METHODS: frozenset[str] = frozenset({"GET", "POST", "PUT"})
_AUTH_FAILURE_STATUSES: frozenset[int] = frozenset({401, 403})


@dataclass(frozen=True)
class FetchRequest:
    method: HttpMethod
    url: str
    headers: Mapping[str, str] = field(default_factory=lambda: {})
    body: bytes | None = None
    cache_ttl_seconds: int = 0


@dataclass(frozen=True)
class FetchResponse:
    status_code: int
    body: Any


class Fetcher(Protocol):
    def fetch(self, request: FetchRequest) -> FetchResponse:
        ...


class UrllibFetcher:
    def __init__(self, *, timeout_seconds: float = 30.0) -> None:
        self._timeout_seconds = max(1.0, float(timeout_seconds))

    def fetch(self, request: FetchRequest) -> FetchResponse:
        http_request = Request(
            url=request.url,
            data=request.body,
            headers=dict(request.headers),
            method=request.method,
        )
        try:
            with urlopen(http_request, timeout=self._timeout_seconds) as response:
                status_code = int(response.status)
                raw_body = response.read().decode("utf-8", errors="replace")
        except HTTPError as exc:
            response_body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
            message = _extract_error_message(response_body) or str(exc)
            auth_failed = exc.code in _AUTH_FAILURE_STATUSES
            if auth_failed:
                message = f"SproutVideo rejected the API key: {message}"
            raise SproutVideoApiError(
                f"SproutVideo API request failed: {message}",
                status_code=exc.code,
                auth_failed=auth_failed,
            ) from exc
        except URLError as exc:
            raise SproutVideoApiError(
                f"SproutVideo request failed: {exc.reason}",
                status_code=None,
            ) from exc

        if not raw_body.strip():
            return FetchResponse(status_code=status_code, body=None)
        try:
            body = json.loads(raw_body)
        except json.JSONDecodeError as exc:
            raise SproutVideoApiError(
                "SproutVideo returned a response that is not valid JSON.",
                status_code=status_code,
            ) from exc
        return FetchResponse(status_code=status_code, body=body)


class CachingFetcher:
    """
    Serves repeated GET requests from memory while their advisory TTL holds.

    Entries are dropped on expiry, and all of them are dropped after a
    successful mutating request. Mutating requests and requests with a TTL
    of zero always reach the wrapped fetcher.
    """

    def __init__(self, inner: Fetcher, *, clock: Callable[[], float] = monotonic) -> None:
        self._inner = inner
        self._clock = clock
        self._lock = Lock()
        self._entries: dict[str, tuple[float, FetchResponse]] = {}

    def fetch(self, request: FetchRequest) -> FetchResponse:
        if request.method != "GET":
            response = self._inner.fetch(request)
            with self._lock:
                self._entries.clear()
            return response
        if request.cache_ttl_seconds <= 0:
            return self._inner.fetch(request)

        now = self._clock()
        with self._lock:
            cached = self._entries.get(request.url)
            if cached is not None:
                expires_at, response = cached
                if expires_at > now:
                    return response
                del self._entries[request.url]

        response = self._inner.fetch(request)
        with self._lock:
            self._entries[request.url] = (now + request.cache_ttl_seconds, response)
        return response


class SproutVideoClient:
    def __init__(
        self,
        *,
        api_key: str,
        fetcher: Fetcher,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self._api_key = api_key
        self._fetcher = fetcher
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"

    @property
    def base_url(self) -> str:
        return self._base_url

    def call(
        self,
        endpoint: str,
        method: str = "GET",
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        params: QueryParams | None = None,
    ) -> Any:
        """Issue one API call and return the decoded JSON body."""
        normalized_method = method.upper()
        if normalized_method not in _SUPPORTED_METHODS:
            raise ValueError(f"Unsupported SproutVideo API method: {method}")

        url = f"{self._base_url}{endpoint}"
        headers = {API_KEY_HEADER: self._api_key, "Accept": "application/json"}

        if normalized_method == "GET":
            request = FetchRequest(
                method="GET",
                url=_with_query_params(url, params),
                headers=headers,
                cache_ttl_seconds=max(0, int(cache_ttl_seconds)),
            )
        else:
            headers["Content-Type"] = "application/json"
            request = FetchRequest(
                method="POST" if normalized_method == "POST" else "PUT",
                url=url,
                headers=headers,
                body=json.dumps(_json_params(params), ensure_ascii=True).encode("utf-8"),
            )

        LOGGER.debug(
            "sproutvideo request method=%s endpoint=%s ttl=%s",
            request.method,
            endpoint,
            request.cache_ttl_seconds,
        )
        return self._fetcher.fetch(request).body

    def strip_base_url(self, url: str) -> str:
        return url.replace(self._base_url, "", 1)


def _with_query_params(url: str, params: QueryParams | None) -> str:
    if not params:
        return url
    parts = urlsplit(url)
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in params
    ]
    for key, value in params.items():
        if isinstance(value, str):
            query.append((key, value))
        else:
            query.extend((key, item) for item in value)
    return urlunsplit(parts._replace(query=urlencode(query)))


def _json_params(params: QueryParams | None) -> dict[str, str | list[str]]:
    if params is None:
        return {}
    return {
        key: value if isinstance(value, str) else list(value)
        for key, value in params.items()
    }


def _extract_error_message(raw_body: str) -> str | None:
    if not raw_body.strip():
        return None
    try:
        parsed = json.loads(raw_body)
    except json.JSONDecodeError:
        return raw_body.strip()[:200]
    if isinstance(parsed, dict):
        for key in ("error", "message", "errors"):
            value = parsed.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None
