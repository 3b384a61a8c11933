"""
Checkout Session Orchestrator

Turns a payment-initiation request into a hosted checkout session:

    RECEIVED -> VALIDATED -> QUOTED -> SESSION_REQUESTED -> SESSION_CREATED
                                                         | SESSION_FAILED

The processor call carries the idempotency key "<namespace>:checkout:<booking id>",
so a pre-warm request and the user's click (or a double click) for the same
booking resolve to the same session. Nothing is retried here; a second client
attempt reuses the same key safely.
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple
from urllib.parse import quote

from pydantic import ValidationError

from ..edge_config import PaymentConfig
from ..errors import ClientError, ConfigurationError, UpstreamError
from ..schemas.checkout import CheckoutRequest
from ..utils.logging_config import get_logger
from .payment_client import PaymentProcessorClient
from .pricing_engine import LineItem, PricingEngine, Quote, addons_total, build_line_items

logger = get_logger(__name__)


class CheckoutState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    QUOTED = "quoted"
    SESSION_REQUESTED = "session_requested"
    SESSION_CREATED = "session_created"
    SESSION_FAILED = "session_failed"


@dataclass
class CheckoutResult:
    url: str
    session_id: Optional[str]
    booking_id: str
    idempotency_key: str
    quote: Quote
    line_items: List[LineItem]
    state: CheckoutState = CheckoutState.SESSION_CREATED


def idempotency_key_for(booking_id: str, namespace: str = "pcl") -> str:
    """Deterministic processor idempotency key for a booking"""
    return f"{namespace}:checkout:{booking_id}"


def _with_query(base: str, query: str) -> str:
    sep = "&" if "?" in base else "?"
    return f"{base}{sep}{query}"


def build_session_form(
    request: CheckoutRequest,
    line_items: List[LineItem],
    payment: PaymentConfig
) -> List[Tuple[str, str]]:
    """
    Form fields for the session-creation call.

    The success URL keeps the processor's {CHECKOUT_SESSION_ID} placeholder
    literal; the booking id is escaped once inside the redirect URLs and
    once more by form encoding.
    """
    bid = request.booking_id
    bid_q = quote(bid, safe="")

    form: List[Tuple[str, str]] = [("mode", "payment")]
    if request.customer_email:
        form.append(("customer_email", request.customer_email))
    form.append((
        "success_url",
        _with_query(payment.success_url_base, f"paid=1&bid={bid_q}&session_id={{CHECKOUT_SESSION_ID}}")
    ))
    form.append(("cancel_url", _with_query(payment.cancel_url_base, f"cancel=1&bid={bid_q}")))
    form.append(("metadata[booking_id]", bid))

    for i, item in enumerate(line_items):
        form.append((f"line_items[{i}][price_data][currency]", payment.currency))
        form.append((f"line_items[{i}][price_data][product_data][name]", item.name))
        form.append((f"line_items[{i}][price_data][unit_amount]", str(item.amount_minor)))
        form.append((f"line_items[{i}][quantity]", str(item.quantity or 1)))
    return form


def parse_checkout_body(raw_body: bytes) -> CheckoutRequest:
    """
    Parse the request body (JSON, also accepted when sent as text/plain).

    Raises:
        ClientError("bad_json"): body is not a JSON object
    """
    try:
        data = json.loads(raw_body) if raw_body and raw_body.strip() else {}
    except ValueError:
        raise ClientError("bad_json", "Request body is not valid JSON")
    if not isinstance(data, dict):
        raise ClientError("bad_json", "Request body must be a JSON object")
    try:
        return CheckoutRequest.model_validate(data)
    except ValidationError:
        raise ClientError("bad_json", "Request body has an unexpected shape")


class CheckoutOrchestrator:
    """
    Composes pricing and the processor call for one payment initiation.

    Exactly one processor call per invocation.
    """

    def __init__(
        self,
        payment: PaymentConfig,
        engine: PricingEngine,
        client: PaymentProcessorClient
    ):
        self.payment = payment
        self.engine = engine
        self.client = client

    def _transition(self, booking_id: str, state: CheckoutState, **extra):
        logger.checkout_session(booking_id or "-", state.value, **extra)

    def validate(self, raw_body: bytes) -> CheckoutRequest:
        """
        RECEIVED -> VALIDATED.

        Raises:
            ConfigurationError("missing_config"): processor credential or redirect bases absent
            ClientError("bad_json"): body not parseable
            ClientError("missing_booking_id"): booking id empty after trimming
        """
        if not self.payment.configured:
            logger.error("Checkout requested but payment configuration is incomplete")
            raise ConfigurationError("missing_config", "Payment configuration is incomplete")

        request = parse_checkout_body(raw_body)
        if not request.booking_id:
            raise ClientError("missing_booking_id", "booking_id is required")

        self._transition(request.booking_id, CheckoutState.VALIDATED)
        return request

    def quote(self, request: CheckoutRequest) -> Tuple[Quote, List[LineItem]]:
        """VALIDATED -> QUOTED"""
        quote = self.engine.quote(request.bags, request.days)
        line_items = build_line_items(quote, request.addons)
        self._transition(
            request.booking_id,
            CheckoutState.QUOTED,
            tier=quote.tier.id,
            bags=quote.bags,
            days=quote.days,
            total=str(quote.total),
            addons=str(addons_total(request.addons)),
            line_items=len(line_items),
        )
        return quote, line_items

    async def create_session(self, raw_body: bytes) -> CheckoutResult:
        """
        Run the full state machine.

        Returns:
            CheckoutResult in SESSION_CREATED

        Raises:
            ClientError / ConfigurationError: validation failures
            UpstreamError: processor rejected the request or was unreachable
        """
        start_time = time.monotonic()
        self._transition("", CheckoutState.RECEIVED)

        request = self.validate(raw_body)
        quote, line_items = self.quote(request)

        key = idempotency_key_for(request.booking_id, self.payment.idempotency_namespace)
        form = build_session_form(request, line_items, self.payment)
        self._transition(request.booking_id, CheckoutState.SESSION_REQUESTED, idempotency_key=key)

        response = await self.client.create_checkout_session(form, key)
        duration_ms = int((time.monotonic() - start_time) * 1000)

        if response.transport_error:
            self._transition(
                request.booking_id,
                CheckoutState.SESSION_FAILED,
                reason="unreachable",
                duration_ms=duration_ms,
            )
            raise UpstreamError("payment_processor_unreachable", details=response.transport_error)

        if not response.success:
            self._transition(
                request.booking_id,
                CheckoutState.SESSION_FAILED,
                reason="rejected",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
            raise UpstreamError(
                "payment_processor_error",
                details=response.error if response.error is not None else response.raw_response,
            )

        if not response.url:
            self._transition(
                request.booking_id,
                CheckoutState.SESSION_FAILED,
                reason="missing_url",
                duration_ms=duration_ms,
            )
            raise UpstreamError("payment_processor_error", details={"message": "session has no url"})

        self._transition(
            request.booking_id,
            CheckoutState.SESSION_CREATED,
            session_id=response.session_id,
            duration_ms=duration_ms,
        )
        return CheckoutResult(
            url=response.url,
            session_id=response.session_id,
            booking_id=request.booking_id,
            idempotency_key=key,
            quote=quote,
            line_items=line_items,
        )
