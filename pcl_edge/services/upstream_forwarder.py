"""
Upstream Forwarder

Relays an opaque request body to a resolved script backend and brings back
its response text untouched.

- Bounded wall-clock time: the whole call (connect, redirects, body read) is
  cancelled once the deadline passes
- Redirects are followed transparently (script backends answer POST with a
  redirect to the rendered result)
- The body is parsed as JSON for logging only; the caller always gets the
  original text
- Timeouts, transport failures and unusable URLs come back as a
  ForwardResult, never as an exception
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..utils.logging_config import get_logger
from ..utils.sanitization import sanitize_for_log

logger = get_logger(__name__)

USER_AGENT = "PCL-Edge/1.0"


@dataclass
class ForwardResult:
    """Outcome of one upstream call"""
    ok: bool
    status_code: int = 0
    text: str = ""
    content_type: str = ""
    data: Optional[Any] = None
    error: Optional[str] = None
    details: Optional[str] = None
    duration_ms: int = 0

    @property
    def is_json(self) -> bool:
        return self.data is not None

    def failure_body(self) -> Dict[str, Any]:
        """The normalized failure envelope"""
        details: Any = self.details
        if self.status_code and not self.ok:
            details = {"status": self.status_code, "body": sanitize_for_log(self.text, 500)}
        return {"ok": False, "error": self.error or "upstream_error", "details": details}


class UpstreamForwarder:
    """
    Bounded-time HTTP relay.

    A custom httpx transport may be injected (tests use httpx.MockTransport).
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport,
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def _post(
        self,
        url: str,
        content: bytes,
        content_type: str,
        timeout: float,
        headers: Optional[Dict[str, str]]
    ) -> httpx.Response:
        request_headers = {"Content-Type": content_type}
        if headers:
            request_headers.update(headers)
        async with self._client(timeout) as client:
            return await client.post(url, content=content, headers=request_headers)

    async def forward(
        self,
        url: str,
        payload: bytes,
        content_type: str = "application/json",
        timeout: float = 12.0,
        endpoint: str = "upstream",
        headers: Optional[Dict[str, str]] = None
    ) -> ForwardResult:
        """
        POST payload to url and return the upstream's text.

        Args:
            url: Resolved absolute URL
            payload: Request body, sent byte-for-byte
            content_type: Content-Type for the upstream request
            timeout: Wall-clock ceiling in seconds for the whole exchange
            endpoint: Endpoint name for logging
            headers: Extra request headers

        Returns:
            ForwardResult; ok is False on timeout, transport error or non-2xx
        """
        start_time = time.monotonic()

        try:
            response = await asyncio.wait_for(
                self._post(url, payload or b"", content_type, timeout, headers),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.upstream_call(endpoint, 0, duration_ms, False, reason="timeout")
            return ForwardResult(
                ok=False,
                error="upstream_error",
                details=f"timeout after {timeout:g}s",
                duration_ms=duration_ms,
            )
        except httpx.TimeoutException as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.upstream_call(endpoint, 0, duration_ms, False, reason="timeout")
            return ForwardResult(
                ok=False,
                error="upstream_error",
                details=f"timeout: {type(e).__name__}",
                duration_ms=duration_ms,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.upstream_call(endpoint, 0, duration_ms, False, reason=sanitize_for_log(e))
            return ForwardResult(
                ok=False,
                error="upstream_error",
                details=sanitize_for_log(f"{type(e).__name__}: {e}"),
                duration_ms=duration_ms,
            )

        duration_ms = int((time.monotonic() - start_time) * 1000)
        text = response.text
        try:
            data = json.loads(text) if text else None
        except ValueError:
            data = None

        ok = 200 <= response.status_code < 300
        logger.upstream_call(
            endpoint,
            response.status_code,
            duration_ms,
            ok,
            json_body=data is not None,
            body_preview=sanitize_for_log(text, 200) if not ok else None,
        )

        return ForwardResult(
            ok=ok,
            status_code=response.status_code,
            text=text,
            content_type=response.headers.get("content-type", ""),
            data=data,
            error=None if ok else "upstream_error",
            duration_ms=duration_ms,
        )
