"""
Inbound SMS Relay

Translates the SMS provider's form-encoded webhook into a JSON call to the
script backend and hands the backend's XML reply back to the provider.
The provider always gets a 200 with XML, so it never retries a message.
"""

import json
from dataclasses import dataclass
from typing import Dict
from urllib.parse import parse_qsl

from ..edge_config import RelayConfig
from ..errors import ConfigurationError
from ..utils.logging_config import get_logger
from .upstream_forwarder import UpstreamForwarder

logger = get_logger(__name__)

SMS_OPERATION = "twilio_inbound"
ACK_XML = "<Response><Message>OK</Message></Response>"
DEFAULT_REPLY_XML = "<Response><Message>Thanks, we got your message.</Message></Response>"


@dataclass
class SmsReply:
    xml: str
    forwarded: bool = False


def parse_form(raw_body: bytes) -> Dict[str, str]:
    """Decode an x-www-form-urlencoded body; a repeated field keeps its last value"""
    text = (raw_body or b"").decode("utf-8", errors="replace")
    return dict(parse_qsl(text, keep_blank_values=True))


class SmsRelay:
    def __init__(self, relay: RelayConfig, forwarder: UpstreamForwarder):
        self.relay = relay
        self.forwarder = forwarder

    async def handle(self, raw_body: bytes) -> SmsReply:
        """
        Relay one inbound message.

        Raises:
            ConfigurationError("missing_config"): no backend URL configured
        """
        form = parse_form(raw_body)
        if not form.get("From") or not form.get("Body"):
            return SmsReply(xml=ACK_XML)

        if not self.relay.configured:
            logger.error("Inbound SMS received but APPS_SCRIPT_WEBAPP_URL is not set")
            raise ConfigurationError("missing_config", "SMS relay URL is not configured")

        payload = json.dumps({"fn": SMS_OPERATION, "form": form}).encode("utf-8")
        result = await self.forwarder.forward(
            self.relay.url,
            payload,
            content_type="application/json",
            timeout=self.relay.timeout_seconds,
            endpoint="sms",
        )
        if not result.ok or not result.text.strip():
            return SmsReply(xml=DEFAULT_REPLY_XML, forwarded=result.ok)
        return SmsReply(xml=result.text, forwarded=True)
