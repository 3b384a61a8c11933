"""
Edge Error Taxonomy

Every failure this service reports to a browser is one of:
- ClientError: bad method, unparsable body, missing required field (4xx)
- ConfigurationError: a required URL or credential is absent
- UpstreamError: timeout, transport failure or non-2xx from a remote
- RoutingError: an operation matched no group and no fallback exists (400)

Errors render as the JSON envelope {ok: false, error: <code>, details?: ...}.
Surfaces that promise "always valid JSON" (general forwarding) render
ConfigurationError and UpstreamError softly with a 200 status; the payment
surface keeps the hard status codes.
"""

from typing import Any, Dict, Optional


class EdgeError(Exception):
    """Base class for failures surfaced to the caller as a JSON envelope"""

    status_code: int = 500
    softenable: bool = False

    def __init__(
        self,
        code: str,
        message: str = "",
        details: Any = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message or code)
        self.code = code
        self.message = message or code
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"ok": False, "error": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body

    def status_for(self, soft: bool) -> int:
        """HTTP status for this error on a hard or soft surface"""
        if soft and self.softenable:
            return 200
        return self.status_code


class ClientError(EdgeError):
    status_code = 400


class MethodNotAllowed(ClientError):
    status_code = 405

    def __init__(self, method: str = ""):
        super().__init__("method_not_allowed", f"Method {method} not allowed")


class ConfigurationError(EdgeError):
    status_code = 500
    softenable = True


class UpstreamError(EdgeError):
    status_code = 502
    softenable = True


class RoutingError(EdgeError):
    status_code = 400

    def __init__(self, operation: str):
        super().__init__(
            "routing_unresolved",
            f"No route for operation '{operation}'",
            details={"fn": operation}
        )
        self.operation = operation
