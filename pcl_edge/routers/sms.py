"""
Inbound SMS Router

Form-encoded webhook from the SMS provider, answered with TwiML-style XML.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from ..errors import ConfigurationError
from ..services.cors_negotiator import CorsPolicy, CorsRequest, preflight_response
from ..services.sms_relay import SmsRelay
from ..utils.dependencies import get_sms_relay
from ..utils.responses import (
    REJECTED_METHODS,
    error_response,
    method_not_allowed,
    request_cors_headers,
)

router = APIRouter(tags=["SMS"])

SMS_CORS_POLICY = CorsPolicy.WILDCARD


@router.options("/twilio-inbound")
@router.options("/.netlify/functions/twilio-inbound")
async def sms_preflight(request: Request):
    return preflight_response(SMS_CORS_POLICY, CorsRequest.from_headers(request.headers))


@router.post("/twilio-inbound")
@router.post("/.netlify/functions/twilio-inbound")
async def sms_inbound(request: Request, relay: SmsRelay = Depends(get_sms_relay)):
    """Relay an inbound message to the script backend and return its XML reply"""
    try:
        reply = await relay.handle(await request.body())
    except ConfigurationError as e:
        return error_response(e, headers=request_cors_headers(request, SMS_CORS_POLICY))

    return Response(content=reply.xml, status_code=200, media_type="text/xml")


@router.api_route("/twilio-inbound", methods=REJECTED_METHODS, include_in_schema=False)
@router.api_route("/.netlify/functions/twilio-inbound", methods=REJECTED_METHODS, include_in_schema=False)
async def sms_method_not_allowed(request: Request):
    return method_not_allowed(request, SMS_CORS_POLICY)
