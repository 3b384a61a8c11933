# Services package
from .cors_negotiator import CorsPolicy, CorsRequest, cors_headers, preflight_response
from .pricing_engine import PricingEngine, Quote, get_pricing_engine
from .route_resolver import EndpointIdentity, GroupPolicy, ResolvedRoute, RouteTable, build_route_table
from .upstream_forwarder import ForwardResult, UpstreamForwarder
from .payment_client import PaymentProcessorClient, ProcessorResponse, get_payment_client

__all__ = [
    "CorsPolicy", "CorsRequest", "cors_headers", "preflight_response",
    "PricingEngine", "Quote", "get_pricing_engine",
    "EndpointIdentity", "GroupPolicy", "ResolvedRoute", "RouteTable", "build_route_table",
    "ForwardResult", "UpstreamForwarder",
    "PaymentProcessorClient", "ProcessorResponse", "get_payment_client",
]
