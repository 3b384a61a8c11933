"""
Proxy Router

General forwarding: POST {fn, target?, ...} is relayed byte-for-byte to the
script backend that serves fn. The caller always receives parseable JSON:

- 2xx JSON upstream body      -> 200, upstream text verbatim
- 2xx non-JSON upstream body  -> 200 {"raw": text}
- timeout / transport / non-2xx, missing endpoint URL
                              -> 200 {ok: false, error, details}
- unparsable request body     -> 400 bad_json
- no group and no fallback    -> 400 routing_unresolved
"""

import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from ..edge_config import EdgeConfig, get_edge_config
from ..errors import ClientError, EdgeError
from ..services.cors_negotiator import CorsPolicy, CorsRequest, preflight_response
from ..services.upstream_forwarder import UpstreamForwarder
from ..utils.dependencies import get_forwarder
from ..utils.logging_config import get_logger
from ..utils.rate_limiter import get_rate_limit, limiter
from ..utils.responses import (
    REJECTED_METHODS,
    error_response,
    json_response,
    method_not_allowed,
    request_cors_headers,
)

logger = get_logger(__name__)

router = APIRouter(tags=["Proxy"])


def parse_proxy_body(raw_body: bytes) -> Dict[str, Any]:
    """
    Read the routing fields of a forwarding request.

    An empty body counts as {}; a JSON value that is not an object carries
    no routing fields.

    Raises:
        ClientError("bad_json"): body is not valid JSON
    """
    if not raw_body or not raw_body.strip():
        return {}
    try:
        data = json.loads(raw_body)
    except ValueError:
        raise ClientError("bad_json", "Request body is not valid JSON")
    return data if isinstance(data, dict) else {}


def _field(body: Dict[str, Any], name: str) -> str:
    value = body.get(name)
    if value is None:
        return ""
    return str(value).strip()


@router.options("/proxy")
@router.options("/.netlify/functions/proxy")
async def proxy_preflight(request: Request, config: EdgeConfig = Depends(get_edge_config)):
    """
    Preflight: policy of the group named by ?fn=, else the mirrored set.

    The operation normally travels in the body, which a preflight never
    carries; the actual response still applies the resolved group's policy.
    """
    operation = (request.query_params.get("fn") or "").strip()
    policy = config.routes.policy_for(operation).cors_policy if operation else CorsPolicy.MIRRORED
    return preflight_response(policy, CorsRequest.from_headers(request.headers))


@router.post("/proxy")
@router.post("/.netlify/functions/proxy")
@limiter.limit(get_rate_limit("proxy"))
async def proxy(
    request: Request,
    config: EdgeConfig = Depends(get_edge_config),
    forwarder: UpstreamForwarder = Depends(get_forwarder)
):
    """Forward an operation to its script backend"""
    raw_body = await request.body()
    routes = config.routes

    try:
        body = parse_proxy_body(raw_body)
    except ClientError as e:
        return error_response(e, headers=request_cors_headers(request, routes.fallback.cors_policy))

    operation = _field(body, "fn")
    target = _field(body, "target")
    headers = request_cors_headers(request, routes.policy_for(operation).cors_policy)

    try:
        route = routes.resolve(operation, target)
    except EdgeError as e:
        logger.warning(f"Unroutable operation '{operation}': {e.code}")
        return error_response(e, soft=True, headers=headers)

    headers = request_cors_headers(request, route.policy.cors_policy)
    result = await forwarder.forward(
        route.url,
        raw_body,
        content_type=request.headers.get("content-type") or "application/json",
        timeout=route.policy.timeout_seconds,
        endpoint=route.endpoint,
    )

    if not result.ok:
        return json_response(result.failure_body(), headers=headers)

    if result.is_json:
        return Response(
            content=result.text,
            status_code=200,
            media_type="application/json",
            headers=headers,
        )

    return json_response({"raw": result.text}, headers=headers)


@router.api_route("/proxy", methods=REJECTED_METHODS, include_in_schema=False)
@router.api_route("/.netlify/functions/proxy", methods=REJECTED_METHODS, include_in_schema=False)
async def proxy_method_not_allowed(request: Request, config: EdgeConfig = Depends(get_edge_config)):
    return method_not_allowed(request, config.routes.fallback.cors_policy)
