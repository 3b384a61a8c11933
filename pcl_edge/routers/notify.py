"""
Notify Router

POST {booking_id} -> 202 {ok: true}. The booking_created event is relayed to
the chat automation endpoint on a detached task; its outcome never reaches
the caller.
"""

import json

from fastapi import APIRouter, Depends, Request

from ..edge_config import EdgeConfig, get_edge_config
from ..errors import ClientError, ConfigurationError
from ..services.cors_negotiator import CorsPolicy, CorsRequest, preflight_response
from ..services.notifier import FireAndForgetNotifier, get_notifier
from ..utils.rate_limiter import get_rate_limit, limiter
from ..utils.responses import (
    REJECTED_METHODS,
    error_response,
    json_response,
    method_not_allowed,
    request_cors_headers,
)

router = APIRouter(tags=["Notify"])

NOTIFY_CORS_POLICY = CorsPolicy.WILDCARD


def booking_id_from_body(raw_body: bytes) -> str:
    """booking_id from a JSON body; anything unparsable counts as {}"""
    try:
        payload = json.loads(raw_body) if raw_body and raw_body.strip() else {}
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    value = payload.get("booking_id")
    return str(value).strip() if value is not None else ""


@router.options("/notify-created")
@router.options("/.netlify/functions/notify-created")
async def notify_preflight(request: Request):
    return preflight_response(NOTIFY_CORS_POLICY, CorsRequest.from_headers(request.headers))


@router.post("/notify-created")
@router.post("/.netlify/functions/notify-created")
@limiter.limit(get_rate_limit("notify"))
async def notify_created(
    request: Request,
    config: EdgeConfig = Depends(get_edge_config),
    notifier: FireAndForgetNotifier = Depends(get_notifier)
):
    """Accept a booking_created event and relay it without waiting"""
    headers = request_cors_headers(request, NOTIFY_CORS_POLICY)

    if not config.notify.configured:
        return error_response(
            ConfigurationError("missing_config", "Notification relay is not configured"),
            headers=headers,
        )

    booking_id = booking_id_from_body(await request.body())
    if not booking_id:
        return error_response(ClientError("missing_booking_id", "booking_id is required"), headers=headers)

    notifier.notify_booking_created(config.notify, booking_id)
    return json_response({"ok": True}, status_code=202, headers=headers)


@router.api_route("/notify-created", methods=REJECTED_METHODS, include_in_schema=False)
@router.api_route("/.netlify/functions/notify-created", methods=REJECTED_METHODS, include_in_schema=False)
async def notify_method_not_allowed(request: Request):
    return method_not_allowed(request, NOTIFY_CORS_POLICY)
