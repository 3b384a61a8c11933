"""
Edge Configuration

Immutable configuration object built once from Settings at process start
and handed to every component by reference. Nothing mutates it after
construction; tests substitute a whole object through the get_edge_config
dependency.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict

from .config import Settings, get_settings
from .services.cors_negotiator import CorsPolicy, resolve_policy
from .services.route_resolver import (
    EndpointIdentity,
    GroupPolicy,
    RouteTable,
    build_route_table,
)


BOOKING_ENDPOINT = EndpointIdentity(tag="A", name="booking")
LOOKUP_ENDPOINT = EndpointIdentity(tag="B", name="lookup")
MANAGE_ENDPOINT = EndpointIdentity(tag="C", name="manage")
FALLBACK_ENDPOINT_NAME = "fallback"


@dataclass(frozen=True)
class PaymentConfig:
    secret_key: str = ""
    api_base: str = "https://api.stripe.com/v1"
    success_url_base: str = ""
    cancel_url_base: str = ""
    currency: str = "usd"
    idempotency_namespace: str = "pcl"
    timeout_seconds: float = 15.0

    @property
    def configured(self) -> bool:
        return bool(self.secret_key and self.success_url_base and self.cancel_url_base)


@dataclass(frozen=True)
class RelayConfig:
    url: str = ""
    secret: str = ""
    timeout_seconds: float = 10.0
    requires_secret: bool = False

    @property
    def configured(self) -> bool:
        if self.requires_secret:
            return bool(self.url and self.secret)
        return bool(self.url)


@dataclass(frozen=True)
class EdgeConfig:
    routes: RouteTable
    payment: PaymentConfig
    notify: RelayConfig
    sms: RelayConfig

    def readiness(self) -> Dict[str, bool]:
        """Configured/unconfigured flags for health reporting (no URLs or secrets)"""
        status = dict(self.routes.summary())
        status["payment"] = self.payment.configured
        status["notify"] = self.notify.configured
        status["sms"] = self.sms.configured
        return status


def build_route_table_from_settings(settings: Settings) -> RouteTable:
    """Route table: three endpoint identities, one group each, plus the fallback"""
    endpoints = (
        EndpointIdentity(BOOKING_ENDPOINT.tag, BOOKING_ENDPOINT.name, settings.script_url_a),
        EndpointIdentity(LOOKUP_ENDPOINT.tag, LOOKUP_ENDPOINT.name, settings.script_url_b),
        EndpointIdentity(MANAGE_ENDPOINT.tag, MANAGE_ENDPOINT.name, settings.script_url_c),
    )
    groups = (
        GroupPolicy(
            name="booking",
            endpoint=BOOKING_ENDPOINT.tag,
            operations=frozenset(settings.booking_operation_list),
            timeout_seconds=settings.booking_timeout_seconds,
            cors_policy=resolve_policy(settings.booking_cors_policy),
        ),
        GroupPolicy(
            name="lookup",
            endpoint=LOOKUP_ENDPOINT.tag,
            operations=frozenset(settings.lookup_operation_list),
            timeout_seconds=settings.lookup_timeout_seconds,
            cors_policy=resolve_policy(settings.lookup_cors_policy, CorsPolicy.MIRRORED),
        ),
        GroupPolicy(
            name="manage",
            endpoint=MANAGE_ENDPOINT.tag,
            operations=frozenset(settings.manage_operation_list),
            timeout_seconds=settings.manage_timeout_seconds,
            cors_policy=resolve_policy(settings.manage_cors_policy, CorsPolicy.MIRRORED),
        ),
    )
    fallback = GroupPolicy(
        name="fallback",
        endpoint=FALLBACK_ENDPOINT_NAME,
        timeout_seconds=settings.fallback_timeout_seconds,
        cors_policy=resolve_policy(settings.fallback_cors_policy),
    )
    return build_route_table(endpoints, groups, fallback, settings.script_url_fallback)


def build_edge_config(settings: Settings) -> EdgeConfig:
    """
    Build the process-wide configuration.

    Raises:
        ConfigurationError: an operation is listed in more than one group
    """
    return EdgeConfig(
        routes=build_route_table_from_settings(settings),
        payment=PaymentConfig(
            secret_key=settings.stripe_secret_key,
            api_base=settings.stripe_api_base,
            success_url_base=settings.success_url_base,
            cancel_url_base=settings.cancel_url_base,
            currency=settings.checkout_currency,
            idempotency_namespace=settings.idempotency_namespace,
            timeout_seconds=settings.payment_timeout_seconds,
        ),
        notify=RelayConfig(
            url=settings.slack_automations_url,
            secret=settings.inbound_secret,
            timeout_seconds=settings.notify_timeout_seconds,
            requires_secret=True,
        ),
        sms=RelayConfig(
            url=settings.apps_script_webapp_url,
            timeout_seconds=settings.sms_timeout_seconds,
        ),
    )


@lru_cache()
def get_edge_config() -> EdgeConfig:
    """Get the cached process-wide configuration"""
    return build_edge_config(get_settings())
