"""
Tests for the application shell: health probes, request ids, security
headers, error envelopes, configuration and log sanitization.
"""

import json
import logging

import pytest
from fastapi.testclient import TestClient

from pcl_edge.config import Settings
from pcl_edge.edge_config import get_edge_config
from pcl_edge.errors import ClientError, ConfigurationError, UpstreamError
from pcl_edge.main import app
from pcl_edge.utils.logging_config import JSONFormatter, request_id_var
from pcl_edge.utils.rate_limiter import limiter
from pcl_edge.utils.sanitization import redact_mapping, sanitize_for_log

from conftest import BOOKING_URL, make_config


ORIGIN = "https://widget.example.com"


class TestHealth:
    def test_health(self, client):
        """Basic health check reports ok"""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_liveness(self, client):
        """Liveness never depends on configuration"""
        assert client.get("/health/live").json()["status"] == "alive"

    def test_readiness_reports_flags_not_urls(self, client):
        """Readiness exposes configured flags only, never URLs or credentials"""
        response = client.get("/health/ready")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["components"] == {
            "booking": True,
            "lookup": True,
            "manage": True,
            "fallback": False,
            "payment": True,
            "notify": True,
            "sms": True,
        }
        assert BOOKING_URL not in response.text
        assert "sk_test" not in response.text

    def test_not_ready_without_any_backend(self, client, use_config):
        """No forwarding target at all means 503"""
        use_config(make_config(GOOGLE_SCRIPT_URL_A="", GOOGLE_SCRIPT_URL_B="", GOOGLE_SCRIPT_URL_C=""))
        response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"


class TestMiddleware:
    def test_request_id_echoed(self, client):
        """A caller-supplied X-Request-ID is kept"""
        response = client.get("/health/live", headers={"X-Request-ID": "abc123"})
        assert response.headers["x-request-id"] == "abc123"

    def test_request_id_generated(self, client):
        """A request id is generated when none is sent"""
        assert client.get("/health/live").headers["x-request-id"]

    def test_security_headers(self, client):
        """Security headers on every response"""
        response = client.get("/health/live")
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"


class TestRateLimiting:
    def test_notify_limit_returns_429_envelope(self, client):
        """Requests past the per-minute limit get the rate_limited envelope"""
        limiter.reset()
        limiter.enabled = True
        try:
            statuses = [
                client.post("/notify-created", json={}).status_code
                for _ in range(30)
            ]
            response = client.post("/notify-created", json={}, headers={"Origin": ORIGIN})
        finally:
            limiter.enabled = False
            limiter.reset()

        assert statuses == [400] * 30
        assert response.status_code == 429
        assert response.json() == {"ok": False, "error": "rate_limited"}
        assert response.headers["access-control-allow-origin"] == ORIGIN


class TestErrorEnvelope:
    def test_soft_rendering_only_for_config_and_upstream(self):
        """Soft surfaces only soften configuration and upstream failures"""
        assert ConfigurationError("missing_config").status_for(soft=True) == 200
        assert UpstreamError("upstream_error").status_for(soft=True) == 200
        assert ClientError("bad_json").status_for(soft=True) == 400
        assert ConfigurationError("missing_config").status_for(soft=False) == 500
        assert UpstreamError("payment_processor_error").status_for(soft=False) == 502

    def test_body_omits_empty_details(self):
        """details is omitted when there is nothing to report"""
        assert ClientError("bad_json").to_body() == {"ok": False, "error": "bad_json"}
        assert UpstreamError("x", details={"a": 1}).to_body() == {"ok": False, "error": "x", "details": {"a": 1}}

    def broken_request(self, error):
        """POST /proxy with get_edge_config raising the given exception"""
        def broken_config():
            raise error

        app.dependency_overrides[get_edge_config] = broken_config
        try:
            with TestClient(app, raise_server_exceptions=False) as test_client:
                return test_client.post("/proxy", json={"fn": "book"}, headers={"Origin": ORIGIN})
        finally:
            app.dependency_overrides.clear()

    def test_unexpected_exception_is_internal_error(self):
        """Anything that is not an EdgeError renders as internal_error"""
        response = self.broken_request(RuntimeError("boom"))
        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "internal_error"}

    def test_internal_error_carries_cors(self):
        """The browser can read the internal_error envelope"""
        response = self.broken_request(RuntimeError("boom"))
        assert response.headers["access-control-allow-origin"] == ORIGIN
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_edge_error_outside_a_surface_carries_cors(self):
        """EdgeErrors raised before a surface renders them keep their code and CORS"""
        response = self.broken_request(ConfigurationError("missing_config"))
        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "missing_config"}
        assert response.headers["access-control-allow-origin"] == ORIGIN


class TestSettings:
    def test_operation_lists_parsed(self):
        """Operation lists are trimmed, de-duplicated and keep their order"""
        settings = Settings(_env_file=None, MANAGE_OPERATIONS=" a, b ,,a ")
        assert settings.manage_operation_list == ["a", "b"]

    def test_invalid_cors_policy_rejected(self):
        """Unknown CORS policy names fail settings validation"""
        with pytest.raises(ValueError):
            Settings(_env_file=None, LOOKUP_CORS_POLICY="everyone")

    def test_urls_stripped_of_quotes(self):
        """Quoted env values are unwrapped"""
        settings = Settings(_env_file=None, GOOGLE_SCRIPT_URL_A=' "https://script.test/a" ')
        assert settings.script_url_a == "https://script.test/a"

    def test_edge_config_is_immutable(self):
        """EdgeConfig is frozen after construction"""
        config = make_config()
        with pytest.raises(AttributeError):
            config.payment = None


class TestLogging:
    def test_json_formatter_includes_request_id_and_data(self):
        """JSON log lines carry the request id and structured data"""
        token = request_id_var.set("req-1")
        try:
            record = logging.LogRecord("pcl_edge.test", logging.INFO, __file__, 1, "hello", None, None)
            record.extra_data = {"endpoint": "manage"}
            record.duration_ms = 12
            line = json.loads(JSONFormatter().format(record))
        finally:
            request_id_var.reset(token)

        assert line["message"] == "hello"
        assert line["request_id"] == "req-1"
        assert line["data"] == {"endpoint": "manage"}
        assert line["duration_ms"] == 12

    def test_sanitize_for_log_redacts_credentials(self):
        """Bearer tokens, secrets and card numbers are masked"""
        text = sanitize_for_log("Authorization: Bearer sk_live_abc123 secret=hunter2 card 4242 4242 4242 4242")
        assert "sk_live_abc123" not in text
        assert "hunter2" not in text
        assert "4242 4242" not in text

    def test_sanitize_for_log_truncates(self):
        """Log text is cut to the requested length"""
        assert len(sanitize_for_log("x" * 1000, 50)) == 50

    def test_redact_mapping(self):
        """Secret-looking keys are redacted at any depth"""
        redacted = redact_mapping({"booking_id": "PCL-1", "secret": "s3cret", "nested": {"api_key": "k"}})
        assert redacted == {"booking_id": "PCL-1", "secret": "[REDACTED]", "nested": {"api_key": "[REDACTED]"}}
