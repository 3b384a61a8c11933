"""
CORS Negotiator

Computes response headers for browser preflight and actual requests.

Two origin policies coexist, chosen per operation group:
- wildcard: Access-Control-Allow-Origin "*", no credentials (legacy callers)
- mirrored: echoes the caller's exact Origin and allows credentials

Preflight answers are 204 with no body. Vary always lists Origin and both
CORS request headers so caches never conflate distinct origins.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional

from fastapi import Response


ALLOWED_METHODS = "POST, OPTIONS"
DEFAULT_ALLOWED_HEADERS = "Content-Type"
VARY = "Origin, Access-Control-Request-Headers, Access-Control-Request-Method"


class CorsPolicy(str, Enum):
    WILDCARD = "wildcard"
    MIRRORED = "mirrored"


@dataclass(frozen=True)
class CorsRequest:
    """The CORS-relevant part of an inbound request"""
    origin: str = ""
    request_headers: str = ""
    request_method: str = ""

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "CorsRequest":
        return cls(
            origin=(headers.get("origin") or "").strip(),
            request_headers=(headers.get("access-control-request-headers") or "").strip(),
            request_method=(headers.get("access-control-request-method") or "").strip(),
        )


def allow_origin_headers(policy: CorsPolicy, cors: CorsRequest) -> Dict[str, str]:
    """Access-Control-Allow-Origin (and credentials) for the given policy"""
    if policy == CorsPolicy.MIRRORED and cors.origin and cors.origin != "null":
        return {
            "Access-Control-Allow-Origin": cors.origin,
            "Access-Control-Allow-Credentials": "true",
        }
    # Mirrored policy without an Origin degrades to the wildcard answer;
    # credentials are never combined with "*".
    return {"Access-Control-Allow-Origin": "*"}


def cors_headers(policy: CorsPolicy, cors: CorsRequest) -> Dict[str, str]:
    """Full header set shared by preflight and actual responses"""
    headers = allow_origin_headers(policy, cors)
    headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
    headers["Access-Control-Allow-Headers"] = cors.request_headers or DEFAULT_ALLOWED_HEADERS
    headers["Vary"] = VARY
    return headers


def preflight_response(policy: CorsPolicy, cors: CorsRequest) -> Response:
    """204, no body, CORS headers"""
    return Response(status_code=204, headers=cors_headers(policy, cors))


def resolve_policy(value: Optional[str], default: CorsPolicy = CorsPolicy.WILDCARD) -> CorsPolicy:
    """Parse a configured policy name, falling back to the default"""
    try:
        return CorsPolicy((value or "").strip().lower())
    except ValueError:
        return default
