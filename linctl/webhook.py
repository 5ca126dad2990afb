"""Authentication gate and forwarding relay for inbound Linear webhooks.

A delivery is authentic only when its ``Linear-Signature`` header matches the
HMAC-SHA256 of the raw body AND the body's ``webhookTimestamp`` lies within
one minute of now. The signature is checked over the exact bytes that are
later parsed as JSON; nothing is re-serialized in between.
"""

import hashlib
import hmac
import json
import logging
import math
import time
from collections.abc import Callable

import httpx
from pydantic import BaseModel, ConfigDict

from linctl.errors import Unauthenticated

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "linear-signature"
TIMESTAMP_FIELD = "webhookTimestamp"
REPLAY_WINDOW_MS = 60_000

FORWARD_TIMESTAMP_HEADER = "x-linctl-timestamp"
FORWARD_SIGNATURE_HEADER = "x-linctl-signature"


def now_ms() -> int:
    return int(time.time() * 1000)


def hmac_hex(secret: str, body: bytes) -> str:
    """Lowercase hex HMAC-SHA256 of ``body``."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def constant_time_equals(received: str, expected: str) -> bool:
    """Compare two strings without short-circuiting on the first mismatch."""
    if len(received) != len(expected):
        return False
    diff = 0
    for got, want in zip(received, expected):
        diff |= ord(got) ^ ord(want)
    return diff == 0


class WebhookGate:
    def __init__(self, secret: str | None, clock: Callable[[], float] = now_ms) -> None:
        self._secret = secret
        self._clock = clock

    def authenticate(self, body: bytes, signature: str | None) -> dict:
        """Return the parsed payload of an authentic delivery.

        Raises Unauthenticated otherwise. The order of checks is fixed: secret,
        header, signature, then timestamp freshness.
        """
        if not self._secret:
            raise Unauthenticated("no webhook secret configured")
        if not signature:
            raise Unauthenticated("missing signature header")
        if not constant_time_equals(signature, hmac_hex(self._secret, body)):
            raise Unauthenticated("signature mismatch")

        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise Unauthenticated("body is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise Unauthenticated("body is not a JSON object")

        declared = payload.get(TIMESTAMP_FIELD)
        if isinstance(declared, bool) or not isinstance(declared, (int, float)) or not declared:
            raise Unauthenticated(f"missing {TIMESTAMP_FIELD}")
        if isinstance(declared, float) and not math.isfinite(declared):
            raise Unauthenticated(f"{TIMESTAMP_FIELD} outside replay window")
        try:
            skew = abs(self._clock() - declared)
        except OverflowError as exc:
            # integers past float range against a float clock
            raise Unauthenticated(f"{TIMESTAMP_FIELD} outside replay window") from exc
        if skew > REPLAY_WINDOW_MS:
            raise Unauthenticated(f"{TIMESTAMP_FIELD} outside replay window")
        return payload


class ForwardMessage(BaseModel):
    """A verified delivery queued for re-dispatch. Nobody observes the outcome."""

    model_config = ConfigDict(frozen=True)

    url: str
    body: bytes
    headers: dict[str, str]


class ForwardRelay:
    """Best-effort re-dispatch of verified deliveries to a downstream URL."""

    def __init__(
        self,
        url: str,
        signing_secret: str | None = None,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = now_ms,
    ) -> None:
        self.url = url
        self._signing_secret = signing_secret
        self._transport = transport
        self._clock = clock

    def build(self, body: bytes) -> ForwardMessage:
        headers = {
            "content-type": "application/json",
            FORWARD_TIMESTAMP_HEADER: str(int(self._clock())),
        }
        if self._signing_secret:
            headers[FORWARD_SIGNATURE_HEADER] = hmac_hex(self._signing_secret, body)
        return ForwardMessage(url=self.url, body=body, headers=headers)

    def deliver(self, message: ForwardMessage) -> None:
        """POST the message. Failures are logged, never raised."""
        try:
            with httpx.Client(transport=self._transport, timeout=30) as client:
                response = client.post(message.url, content=message.body, headers=message.headers)
        except httpx.HTTPError as exc:
            logger.warning("Forwarding to %s failed: %s", message.url, exc)
            return
        if response.is_error:
            logger.warning("Forwarding to %s returned %s", message.url, response.status_code)
        else:
            logger.debug("Forwarded delivery to %s (%s)", message.url, response.status_code)
