"""
Fire-and-Forget Notifier

Dispatches best-effort events (booking created) to the chat automation
relay. dispatch() schedules the POST on a detached task and returns at
once; the caller's response never waits for it and never sees its outcome.
Failures are logged and dropped.
"""

import asyncio
import time
from typing import Any, Dict, Optional, Set

import httpx

from ..edge_config import RelayConfig
from ..utils.logging_config import get_logger
from ..utils.sanitization import redact_mapping, sanitize_for_log

logger = get_logger(__name__)


class FireAndForgetNotifier:
    """
    Detached-task dispatcher.

    Strong references to in-flight tasks are kept until they finish so the
    event loop does not garbage-collect them mid-flight.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def dispatch(self, url: str, payload: Dict[str, Any], timeout: float = 10.0) -> asyncio.Task:
        """Schedule the POST and return without awaiting it"""
        task = asyncio.get_running_loop().create_task(self._send(url, payload, timeout))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _send(self, url: str, payload: Dict[str, Any], timeout: float) -> None:
        start_time = time.monotonic()
        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=timeout,
                follow_redirects=True
            ) as client:
                response = await asyncio.wait_for(client.post(url, json=payload), timeout=timeout)
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.upstream_call(
                "notify",
                response.status_code,
                duration_ms,
                200 <= response.status_code < 300,
                event_type=payload.get("type"),
            )
        except Exception as e:
            # Notification failures are never surfaced to the booking path
            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.warning(
                f"Notification dropped: {type(e).__name__}: {sanitize_for_log(e)}",
                extra={"extra_data": redact_mapping(payload), "duration_ms": duration_ms}
            )

    async def drain(self, timeout: float = 5.0) -> None:
        """Give in-flight notifications a bounded chance to finish (used at shutdown)"""
        if not self._pending:
            return
        done, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if pending:
            logger.warning(f"{len(pending)} notification(s) still in flight at shutdown")

    def notify_booking_created(self, relay: RelayConfig, booking_id: str) -> asyncio.Task:
        """Relay {type: booking_created, booking_id, secret} to the automation endpoint"""
        task = self.dispatch(
            relay.url,
            {"type": "booking_created", "booking_id": booking_id, "secret": relay.secret},
            timeout=relay.timeout_seconds,
        )
        logger.notification_dispatched("booking_created", booking_id)
        return task


_notifier: Optional[FireAndForgetNotifier] = None


def get_notifier() -> FireAndForgetNotifier:
    """Process-wide notifier instance"""
    global _notifier
    if _notifier is None:
        _notifier = FireAndForgetNotifier()
    return _notifier
