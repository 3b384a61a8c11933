"""
Shared fixtures: an explicit EdgeConfig, simulated upstreams behind
httpx.MockTransport, and a TestClient wired through dependency overrides.
"""

import sys
import os
import time

import httpx
import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pcl_edge.config import Settings
from pcl_edge.edge_config import build_edge_config, get_edge_config
from pcl_edge.main import app
from pcl_edge.services.notifier import FireAndForgetNotifier, get_notifier
from pcl_edge.utils.dependencies import get_http_transport
from pcl_edge.utils.rate_limiter import limiter


BOOKING_URL = "https://script.test/booking"
LOOKUP_URL = "https://script.test/lookup"
MANAGE_URL = "https://script.test/manage"
FALLBACK_URL = "https://script.test/fallback"
SMS_URL = "https://script.test/sms"
RELAY_URL = "https://relay.test/slack"
PROCESSOR_URL = "https://api.stripe.com/v1/checkout/sessions"

BASE_ENV = {
    "GOOGLE_SCRIPT_URL_A": BOOKING_URL,
    "GOOGLE_SCRIPT_URL_B": LOOKUP_URL,
    "GOOGLE_SCRIPT_URL_C": MANAGE_URL,
    "GOOGLE_SCRIPT_URL": "",
    "LOOKUP_OPERATIONS": "lookup_booking",
    "STRIPE_SECRET_KEY": "sk_test_abc123",
    "SUCCESS_URL_BASE": "https://pcl.test/thanks",
    "CANCEL_URL_BASE": "https://pcl.test/book",
    "SLACK_AUTOMATIONS_URL": RELAY_URL,
    "INBOUND_SECRET": "s3cret",
    "APPS_SCRIPT_WEBAPP_URL": SMS_URL,
}


def make_config(**overrides):
    """EdgeConfig from the test environment plus overrides (env-style names)"""
    values = dict(BASE_ENV)
    values.update(overrides)
    return build_edge_config(Settings(_env_file=None, **values))


class FakeUpstreams:
    """
    Routes MockTransport requests to per-URL handlers and records them.

    Handlers may be plain or async callables returning httpx.Response.
    """

    def __init__(self):
        self.handlers = {}
        self.requests = []

    def on(self, url, handler):
        self.handlers[url] = handler

    def on_json(self, url, body, status_code=200):
        self.on(url, lambda request: httpx.Response(status_code, json=body))

    def on_text(self, url, text, status_code=200, content_type="text/plain"):
        self.on(
            url,
            lambda request: httpx.Response(status_code, text=text, headers={"content-type": content_type})
        )

    def calls_to(self, url):
        return [r for r in self.requests if str(r.url).split("?")[0] == url]

    def __call__(self, request):
        self.requests.append(request)
        handler = self.handlers.get(str(request.url).split("?")[0])
        if handler is None:
            return httpx.Response(404, text="no handler")
        return handler(request)


def wait_until(predicate, timeout=2.0):
    """Poll for a condition produced by a detached task"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def upstreams():
    return FakeUpstreams()


@pytest.fixture
def edge_config():
    return make_config()


@pytest.fixture
def notifier(upstreams):
    return FireAndForgetNotifier(transport=httpx.MockTransport(upstreams))


@pytest.fixture
def client(edge_config, upstreams, notifier):
    """TestClient with config, outbound transport and notifier overridden"""
    limiter.enabled = False
    app.dependency_overrides[get_edge_config] = lambda: edge_config
    app.dependency_overrides[get_http_transport] = lambda: httpx.MockTransport(upstreams)
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def use_config():
    """Swap the EdgeConfig seen by the app for the rest of the test"""
    def _use(config):
        app.dependency_overrides[get_edge_config] = lambda: config
        return config
    return _use
