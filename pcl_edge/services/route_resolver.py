"""
Route Resolver

Maps a logical operation name (plus an optional override) to the upstream
script backend that serves it.

Resolution order:
1. Override is an absolute http(s) URL -> used verbatim
2. Override names a known endpoint (tag "A"/"B"/"C" or its name) -> its URL
3. Operation belongs to a configured group -> that group's endpoint
4. Process-wide fallback endpoint, when configured
5. Otherwise RoutingError("routing_unresolved")

An endpoint whose URL is not configured fails closed with a
ConfigurationError; it never falls through to a different backend.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlsplit

from ..errors import ConfigurationError, RoutingError
from .cors_negotiator import CorsPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EndpointIdentity:
    """A named upstream target; url is empty when not configured"""
    tag: str
    name: str
    url: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.url)


@dataclass(frozen=True)
class GroupPolicy:
    """Per-operation-group policy record: target endpoint, timeout, CORS policy"""
    name: str
    endpoint: str
    operations: frozenset = frozenset()
    timeout_seconds: float = 12.0
    cors_policy: CorsPolicy = CorsPolicy.WILDCARD


@dataclass(frozen=True)
class ResolvedRoute:
    operation: str
    url: str
    endpoint: str
    policy: GroupPolicy
    via: str


def is_absolute_url(value: str) -> bool:
    if not value:
        return False
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


@dataclass(frozen=True)
class RouteTable:
    """
    Immutable routing configuration built once per process.

    Raises ConfigurationError on construction when an operation appears in
    more than one group, so ambiguity is caught at startup rather than
    resolved arbitrarily per request.
    """
    endpoints: Tuple[EndpointIdentity, ...]
    groups: Tuple[GroupPolicy, ...]
    fallback: GroupPolicy
    fallback_url: str = ""
    _by_operation: Mapping[str, GroupPolicy] = field(init=False, repr=False, compare=False)
    _by_endpoint: Mapping[str, EndpointIdentity] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        by_operation: Dict[str, GroupPolicy] = {}
        for group in self.groups:
            for operation in group.operations:
                if operation in by_operation:
                    raise ConfigurationError(
                        "ambiguous_route",
                        f"Operation '{operation}' is listed in groups "
                        f"'{by_operation[operation].name}' and '{group.name}'",
                        details={"fn": operation, "groups": [by_operation[operation].name, group.name]}
                    )
                by_operation[operation] = group

        by_endpoint: Dict[str, EndpointIdentity] = {}
        for endpoint in self.endpoints:
            by_endpoint[endpoint.tag] = endpoint
            by_endpoint[endpoint.name] = endpoint

        for group in self.groups:
            if group.endpoint not in by_endpoint:
                raise ConfigurationError(
                    "unknown_endpoint",
                    f"Group '{group.name}' targets unknown endpoint '{group.endpoint}'",
                    details={"group": group.name, "endpoint": group.endpoint}
                )

        object.__setattr__(self, "_by_operation", MappingProxyType(by_operation))
        object.__setattr__(self, "_by_endpoint", MappingProxyType(by_endpoint))

    @property
    def has_fallback(self) -> bool:
        return bool(self.fallback_url)

    def endpoint(self, tag_or_name: str) -> Optional[EndpointIdentity]:
        return self._by_endpoint.get(tag_or_name)

    def group_for(self, operation: str) -> Optional[GroupPolicy]:
        return self._by_operation.get(operation)

    def policy_for(self, operation: str) -> GroupPolicy:
        """The group policy that applies to an operation (fallback policy when ungrouped)"""
        return self.group_for(operation) or self.fallback

    def _endpoint_route(self, operation: str, endpoint: EndpointIdentity, via: str) -> ResolvedRoute:
        if not endpoint.configured:
            raise ConfigurationError(
                "missing_config",
                f"Endpoint '{endpoint.name}' has no configured URL",
                details={"endpoint": endpoint.name}
            )
        return ResolvedRoute(
            operation=operation,
            url=endpoint.url,
            endpoint=endpoint.name,
            policy=self.policy_for(operation),
            via=via,
        )

    def resolve(self, operation: str, override: Optional[str] = None) -> ResolvedRoute:
        """
        Resolve an operation to an upstream URL.

        Raises:
            ConfigurationError: the selected endpoint has no URL
            RoutingError: nothing matched and no fallback is configured
        """
        operation = (operation or "").strip()
        override = (override or "").strip()

        if is_absolute_url(override):
            return ResolvedRoute(
                operation=operation,
                url=override,
                endpoint="override",
                policy=self.policy_for(operation),
                via="url_override",
            )

        if override:
            endpoint = self.endpoint(override)
            if endpoint:
                return self._endpoint_route(operation, endpoint, "endpoint_override")

        group = self.group_for(operation)
        if group:
            return self._endpoint_route(operation, self._by_endpoint[group.endpoint], "group")

        if self.has_fallback:
            logger.info(f"Operation '{operation}' not in any group, using fallback endpoint")
            return ResolvedRoute(
                operation=operation,
                url=self.fallback_url,
                endpoint=self.fallback.endpoint,
                policy=self.fallback,
                via="fallback",
            )

        raise RoutingError(operation)

    def summary(self) -> Dict[str, bool]:
        """Which endpoint identities are configured (never exposes URLs)"""
        status = {endpoint.name: endpoint.configured for endpoint in self.endpoints}
        status[self.fallback.endpoint] = self.has_fallback
        return status


def build_route_table(
    endpoints: Sequence[EndpointIdentity],
    groups: Sequence[GroupPolicy],
    fallback: GroupPolicy,
    fallback_url: str = ""
) -> RouteTable:
    """Factory function to build a route table"""
    return RouteTable(
        endpoints=tuple(endpoints),
        groups=tuple(groups),
        fallback=fallback,
        fallback_url=fallback_url or "",
    )
