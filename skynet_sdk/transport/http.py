from __future__ import annotations

"""
Async HTTP transport to a Skynet portal (httpx).

- One `httpx.AsyncClient` per transport; inject `client=` or `transport=`
  (e.g. `httpx.MockTransport`) for tests.
- Retries network failures and transient HTTP statuses (429/502/503/504) with
  jittered backoff, bounded by `max_retries` and `retry_total_timeout`.
- Non-2xx responses surface as `TransportError`, carrying the portal's JSON
  `message` when it sent one.

Example:
    from skynet_sdk.config import SDKConfig
    from skynet_sdk.transport.http import HttpTransport, Request

    async with HttpTransport(SDKConfig()) as http:
        resp = await http.execute(Request("GET", "/skynet/registry", query={...}))
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

import httpx

from ..config import SDKConfig
from ..errors import TransportError
from ..utils.retry import RetryError, aretry_call

logger = logging.getLogger(__name__)

JSON = Any

_RETRIABLE_STATUSES = (429, 502, 503, 504)


def _is_retriable_http(status: int) -> bool:
    return status in _RETRIABLE_STATUSES


def join_url(base: str, *parts: Optional[str]) -> str:
    """Join URL segments with exactly one slash between them; empty parts are skipped."""
    url = base.rstrip("/")
    for part in parts:
        if not part:
            continue
        part = part.strip("/")
        if part:
            url = f"{url}/{part}"
    return url


@dataclass(frozen=True)
class Request:
    """
    A single portal request.

    `endpoint_path` is joined to the portal URL, then `extra_path`, then the
    url-encoded `query`. Setting `url` bypasses all of that.

    `response_transform` receives the raw body bytes of a successful response
    and its result becomes `Response.data`; without one, JSON bodies are
    decoded and anything else is left as None.

    Statuses listed in `expected_statuses` are returned instead of raised.
    """

    method: str
    endpoint_path: str = "/"
    extra_path: Optional[str] = None
    query: Optional[Mapping[str, Any]] = None
    url: Optional[str] = None
    json: JSON = None
    files: Optional[Mapping[str, Tuple[str, bytes, str]]] = None
    headers: Optional[Mapping[str, str]] = None
    api_key: Optional[str] = None
    custom_user_agent: Optional[str] = None
    response_transform: Optional[Callable[[bytes], Any]] = None
    expected_statuses: Tuple[int, ...] = ()


@dataclass
class Response:
    status: int
    headers: httpx.Headers
    content: bytes = field(repr=False)
    data: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _error_message(r: httpx.Response) -> str:
    """The portal's structured error message, or a generic one."""
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("message"), str) and body["message"]:
        return body["message"]
    return f"Request failed with status code {r.status_code}"


class HttpTransport:
    """Async portal transport; see module docstring."""

    def __init__(
        self,
        config: Optional[SDKConfig] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or SDKConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=self.config.request_timeout,
            transport=transport,
        )

    # --- context manager -------------------------------------------------

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # --- public API ------------------------------------------------------

    @property
    def portal_url(self) -> str:
        return self.config.portal_url

    def build_url(
        self,
        endpoint_path: str,
        *,
        extra_path: Optional[str] = None,
        query: Optional[Mapping[str, Any]] = None,
    ) -> str:
        url = join_url(self.config.portal_url, endpoint_path, extra_path)
        if query:
            url = f"{url}?{urlencode(dict(query))}"
        return url

    async def execute(self, req: Request) -> Response:
        """Send `req`, retrying transient failures; raise TransportError otherwise."""
        try:
            return await aretry_call(
                self._send_once,
                req,
                retries=self.config.max_retries,
                base=self.config.backoff_base,
                max_delay=self.config.max_backoff,
                exceptions=TransportError,
                retry_if=lambda e: getattr(e, "retryable", False),
                total_timeout=self.config.retry_total_timeout,
            )
        except RetryError as e:
            raise e.last_exception from None

    # --- internals -------------------------------------------------------

    def _headers(self, req: Request) -> Dict[str, str]:
        headers = self.config.http_headers()
        if req.custom_user_agent:
            headers["User-Agent"] = req.custom_user_agent
        if req.api_key:
            headers["Skynet-Api-Key"] = req.api_key
        if req.headers:
            headers.update(dict(req.headers))
        return headers

    async def _send_once(self, req: Request) -> Response:
        url = req.url or self.build_url(req.endpoint_path, extra_path=req.extra_path, query=req.query)
        method = req.method.upper()
        kwargs: Dict[str, Any] = {"headers": self._headers(req)}
        if req.json is not None:
            kwargs["content"] = json.dumps(req.json, separators=(",", ":"))
            kwargs["headers"]["Content-Type"] = "application/json"
        if req.files is not None:
            kwargs["files"] = dict(req.files)

        logger.debug("%s %s", method, url)
        try:
            r = await self._client.request(method, url, **kwargs)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise TransportError(f"Network error: {e}", method=method, url=url, retryable=True) from e

        if r.status_code in req.expected_statuses:
            return Response(status=r.status_code, headers=r.headers, content=r.content)

        if not r.is_success:
            raise TransportError(
                _error_message(r),
                status=r.status_code,
                method=method,
                url=url,
                body=r.text[:256],
                retryable=_is_retriable_http(r.status_code),
            )

        content = r.content
        if req.response_transform is not None:
            data = req.response_transform(content)
        elif "json" in r.headers.get("content-type", "") and content:
            try:
                data = json.loads(content)
            except ValueError as e:
                raise TransportError(
                    "Non-JSON response from portal", status=r.status_code, method=method, url=url
                ) from e
        else:
            data = None
        return Response(status=r.status_code, headers=r.headers, content=content, data=data)


__all__ = ["Request", "Response", "HttpTransport", "join_url"]
