"""
Response helpers shared by the edge surfaces.

Every response carries the CORS headers computed for its surface, and every
failure is the JSON envelope {ok: false, error, details?}.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from ..errors import EdgeError, MethodNotAllowed
from ..services.cors_negotiator import CorsPolicy, CorsRequest, cors_headers

# Methods answered by the catch-all 405 route of each surface
REJECTED_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE"]


def request_cors_headers(request: Request, policy: CorsPolicy) -> Dict[str, str]:
    return cors_headers(policy, CorsRequest.from_headers(request.headers))


def failure_cors_headers(request: Request) -> Dict[str, str]:
    """Headers for failures rendered outside a surface (exception handlers)"""
    return request_cors_headers(request, CorsPolicy.MIRRORED)


def json_response(
    body: Any,
    status_code: int = 200,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=headers)


def error_response(
    error: EdgeError,
    soft: bool = False,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    """Render an EdgeError; soft surfaces turn config/upstream failures into 200"""
    return json_response(error.to_body(), error.status_for(soft), headers)


def method_not_allowed(request: Request, policy: CorsPolicy) -> Response:
    error = MethodNotAllowed(request.method)
    if request.method == "HEAD":
        return Response(status_code=error.status_code, headers=request_cors_headers(request, policy))
    return error_response(error, headers=request_cors_headers(request, policy))
