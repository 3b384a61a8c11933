"""
FastAPI dependencies wiring configuration and outbound clients into the
surfaces. Tests replace get_edge_config / get_http_transport / get_notifier
through app.dependency_overrides.
"""

from typing import Optional

import httpx
from fastapi import Depends

from ..edge_config import EdgeConfig, get_edge_config
from ..services.checkout_orchestrator import CheckoutOrchestrator
from ..services.payment_client import get_payment_client
from ..services.pricing_engine import get_pricing_engine
from ..services.sms_relay import SmsRelay
from ..services.upstream_forwarder import UpstreamForwarder


def get_http_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Outbound transport; None selects httpx's default network transport"""
    return None


def get_forwarder(
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
) -> UpstreamForwarder:
    return UpstreamForwarder(transport=transport)


def get_checkout_orchestrator(
    config: EdgeConfig = Depends(get_edge_config),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_http_transport)
) -> CheckoutOrchestrator:
    payment = config.payment
    client = get_payment_client(
        secret_key=payment.secret_key,
        base_url=payment.api_base,
        timeout=payment.timeout_seconds,
        transport=transport,
    )
    return CheckoutOrchestrator(payment, get_pricing_engine(), client)


def get_sms_relay(
    config: EdgeConfig = Depends(get_edge_config),
    forwarder: UpstreamForwarder = Depends(get_forwarder)
) -> SmsRelay:
    return SmsRelay(config.sms, forwarder)
