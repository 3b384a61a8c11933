"""
Payment Processor Client

Thin wrapper around the processor's Checkout Session API:
- Bearer credential
- Form-encoded body (bracketed keys for nested fields)
- Idempotency-Key header, so a repeated create for the same booking returns
  the original session instead of a second charge target
- No retries: one invocation, one network call
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple
from urllib.parse import urlencode

import httpx

from ..utils.logging_config import get_logger
from ..utils.sanitization import sanitize_for_log

logger = get_logger(__name__)


@dataclass
class ProcessorResponse:
    """Wrapper for processor responses with structured error info"""
    success: bool
    status_code: int
    data: Optional[dict] = None
    error: Optional[Any] = None
    raw_response: Optional[str] = None
    transport_error: Optional[str] = None
    duration_ms: int = 0

    @property
    def url(self) -> Optional[str]:
        return (self.data or {}).get("url")

    @property
    def session_id(self) -> Optional[str]:
        return (self.data or {}).get("id")


class PaymentProcessorClient:
    """
    Client for creating hosted checkout sessions.

    A custom httpx transport may be injected (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.stripe.com/v1",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _get_headers(self, idempotency_key: str) -> dict:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/x-www-form-urlencoded",
            "Idempotency-Key": idempotency_key,
        }

    async def _post(self, url: str, body: str, idempotency_key: str) -> httpx.Response:
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            return await client.post(
                url,
                content=body.encode("utf-8"),
                headers=self._get_headers(idempotency_key),
            )

    async def create_checkout_session(
        self,
        form: Sequence[Tuple[str, str]],
        idempotency_key: str
    ) -> ProcessorResponse:
        """
        Create (or, within the processor's idempotency window, re-fetch) a session.

        Args:
            form: Ordered form fields
            idempotency_key: Stable key for the booking

        Returns:
            ProcessorResponse; success only for HTTP 200 with a body free of "error"
        """
        url = f"{self.base_url}/checkout/sessions"
        body = urlencode(list(form))
        start_time = time.monotonic()

        try:
            response = await asyncio.wait_for(
                self._post(url, body, idempotency_key),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.warning(f"Checkout session request timed out after {self.timeout:g}s")
            return ProcessorResponse(
                success=False,
                status_code=0,
                transport_error=f"timeout after {self.timeout:g}s",
                duration_ms=duration_ms,
            )
        except httpx.HTTPError as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.warning(f"Checkout session request failed: {sanitize_for_log(e)}")
            return ProcessorResponse(
                success=False,
                status_code=0,
                transport_error=f"{type(e).__name__}: {sanitize_for_log(e)}",
                duration_ms=duration_ms,
            )

        duration_ms = int((time.monotonic() - start_time) * 1000)
        text = response.text
        try:
            data = json.loads(text)
        except ValueError:
            data = None

        if data is None or not isinstance(data, dict):
            logger.warning(f"Unparsable processor response ({response.status_code})")
            return ProcessorResponse(
                success=False,
                status_code=response.status_code,
                error={"message": "processor_parse_error"},
                raw_response=text,
                duration_ms=duration_ms,
            )

        if response.status_code != 200 or data.get("error"):
            return ProcessorResponse(
                success=False,
                status_code=response.status_code,
                data=data,
                error=data.get("error") or text,
                raw_response=text,
                duration_ms=duration_ms,
            )

        return ProcessorResponse(
            success=True,
            status_code=response.status_code,
            data=data,
            duration_ms=duration_ms,
        )


def get_payment_client(
    secret_key: str,
    base_url: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> PaymentProcessorClient:
    """Factory function to create a processor client"""
    return PaymentProcessorClient(
        secret_key=secret_key,
        base_url=base_url,
        timeout=timeout,
        transport=transport,
    )
