"""
Checkout Router

Payment initiation: POST {booking_id, customer_email?, bags?, days?, addons?}
-> {ok: true, url} pointing at the processor's hosted checkout page.
Failures keep hard status codes (400 / 500 / 502).
"""

from fastapi import APIRouter, Depends, Request

from ..errors import EdgeError
from ..schemas.checkout import CheckoutResponse, ErrorResponse
from ..services.checkout_orchestrator import CheckoutOrchestrator
from ..services.cors_negotiator import CorsPolicy, CorsRequest, preflight_response
from ..utils.dependencies import get_checkout_orchestrator
from ..utils.rate_limiter import get_rate_limit, limiter
from ..utils.responses import (
    REJECTED_METHODS,
    error_response,
    json_response,
    method_not_allowed,
    request_cors_headers,
)

router = APIRouter(tags=["Checkout"])

CHECKOUT_CORS_POLICY = CorsPolicy.MIRRORED

CHECKOUT_RESPONSES = {
    200: {"model": CheckoutResponse},
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


@router.options("/checkout")
@router.options("/.netlify/functions/checkout")
async def checkout_preflight(request: Request):
    return preflight_response(CHECKOUT_CORS_POLICY, CorsRequest.from_headers(request.headers))


@router.post("/checkout", responses=CHECKOUT_RESPONSES)
@router.post("/.netlify/functions/checkout", responses=CHECKOUT_RESPONSES)
@limiter.limit(get_rate_limit("checkout"))
async def create_checkout(
    request: Request,
    orchestrator: CheckoutOrchestrator = Depends(get_checkout_orchestrator)
):
    """Create (or re-fetch, by idempotency key) the hosted checkout session"""
    headers = request_cors_headers(request, CHECKOUT_CORS_POLICY)
    raw_body = await request.body()

    try:
        result = await orchestrator.create_session(raw_body)
    except EdgeError as e:
        return error_response(e, headers=headers)

    return json_response({"ok": True, "url": result.url}, headers=headers)


@router.api_route("/checkout", methods=REJECTED_METHODS, include_in_schema=False)
@router.api_route("/.netlify/functions/checkout", methods=REJECTED_METHODS, include_in_schema=False)
async def checkout_method_not_allowed(request: Request):
    return method_not_allowed(request, CHECKOUT_CORS_POLICY)
