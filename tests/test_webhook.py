"""Tests for the webhook authentication gate and the forwarding relay."""

import hashlib
import hmac
import json
import logging

import httpx
import pytest

from linctl.errors import Unauthenticated
from linctl.webhook import (
    FORWARD_SIGNATURE_HEADER,
    FORWARD_TIMESTAMP_HEADER,
    ForwardRelay,
    WebhookGate,
    constant_time_equals,
    hmac_hex,
)

SECRET = "lin_wh_test_secret"
NOW = 1_700_000_000_000


def _body(**overrides) -> bytes:
    payload = {"action": "create", "type": "Issue", "data": {"id": "abc"}, "webhookTimestamp": NOW}
    payload.update(overrides)
    return json.dumps(payload).encode()


def _gate(secret: str | None = SECRET) -> WebhookGate:
    return WebhookGate(secret, clock=lambda: NOW)


class TestHmacHex:
    def test_rfc4231_vector(self) -> None:
        assert (
            hmac_hex("Jefe", b"what do ya want for nothing?")
            == "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"
        )

    def test_matches_stdlib(self) -> None:
        body = _body()
        assert hmac_hex(SECRET, body) == hmac.new(SECRET.encode(), body, hashlib.sha256).hexdigest()


class TestConstantTimeEquals:
    @pytest.mark.parametrize(
        ("a", "b", "expected"),
        [
            ("abc123", "abc123", True),
            ("", "", True),
            ("xbc123", "abc123", False),
            ("abc12x", "abc123", False),
            ("abc", "abc123", False),
            ("abc123", "ABC123", False),
        ],
    )
    def test_compare(self, a: str, b: str, expected: bool) -> None:
        assert constant_time_equals(a, b) is expected


class TestGate:
    def test_accepts_valid_delivery(self) -> None:
        body = _body()
        payload = _gate().authenticate(body, hmac_hex(SECRET, body))
        assert payload["type"] == "Issue"

    @pytest.mark.parametrize("secret", [None, ""])
    def test_rejects_everything_without_secret(self, secret: str | None) -> None:
        body = _body()
        with pytest.raises(Unauthenticated, match="no webhook secret"):
            _gate(secret).authenticate(body, hmac_hex(SECRET, body))

    @pytest.mark.parametrize("signature", [None, ""])
    def test_rejects_missing_signature(self, signature: str | None) -> None:
        with pytest.raises(Unauthenticated, match="missing signature"):
            _gate().authenticate(_body(), signature)

    def test_rejects_other_secret(self) -> None:
        body = _body()
        with pytest.raises(Unauthenticated, match="signature mismatch"):
            _gate().authenticate(body, hmac_hex("someone-else", body))

    def test_rejects_uppercase_signature(self) -> None:
        body = _body()
        with pytest.raises(Unauthenticated):
            _gate().authenticate(body, hmac_hex(SECRET, body).upper())

    def test_rejects_truncated_signature(self) -> None:
        body = _body()
        with pytest.raises(Unauthenticated):
            _gate().authenticate(body, hmac_hex(SECRET, body)[:-1])

    def test_any_flipped_byte_rejects(self) -> None:
        body = _body()
        signature = hmac_hex(SECRET, body)
        gate = _gate()
        for index in range(len(body)):
            tampered = bytearray(body)
            tampered[index] ^= 0x01
            with pytest.raises(Unauthenticated):
                gate.authenticate(bytes(tampered), signature)

    @pytest.mark.parametrize(
        ("offset", "accepted"),
        [
            (-59_000, True),
            (-60_000, True),
            (-60_001, False),
            (-61_000, False),
            (59_000, True),
            (61_000, False),
        ],
    )
    def test_replay_window(self, offset: int, accepted: bool) -> None:
        body = _body(webhookTimestamp=NOW + offset)
        signature = hmac_hex(SECRET, body)
        if accepted:
            assert _gate().authenticate(body, signature)["webhookTimestamp"] == NOW + offset
        else:
            with pytest.raises(Unauthenticated, match="replay window"):
                _gate().authenticate(body, signature)

    @pytest.mark.parametrize("timestamp", [None, 0, "1700000000000", True, 10**400, -(10**400)])
    def test_rejects_bad_timestamp(self, timestamp) -> None:
        body = _body(webhookTimestamp=timestamp)
        with pytest.raises(Unauthenticated, match="webhookTimestamp"):
            _gate().authenticate(body, hmac_hex(SECRET, body))

    @pytest.mark.parametrize("raw", [b"1e400", b"-1e400", b"NaN", b"Infinity"])
    def test_rejects_non_finite_timestamp(self, raw: bytes) -> None:
        body = b'{"type": "Issue", "webhookTimestamp": ' + raw + b"}"
        with pytest.raises(Unauthenticated, match="replay window"):
            _gate().authenticate(body, hmac_hex(SECRET, body))

    def test_huge_timestamp_against_float_clock(self) -> None:
        body = _body(webhookTimestamp=10**400)
        gate = WebhookGate(SECRET, clock=lambda: float(NOW))
        with pytest.raises(Unauthenticated, match="replay window"):
            gate.authenticate(body, hmac_hex(SECRET, body))

    def test_rejects_absent_timestamp(self) -> None:
        body = json.dumps({"type": "Issue"}).encode()
        with pytest.raises(Unauthenticated, match="missing webhookTimestamp"):
            _gate().authenticate(body, hmac_hex(SECRET, body))

    @pytest.mark.parametrize("body", [b"not json", b"[1, 2, 3]", b"\xff\xfe"])
    def test_rejects_signed_non_object(self, body: bytes) -> None:
        with pytest.raises(Unauthenticated):
            _gate().authenticate(body, hmac_hex(SECRET, body))


class TestForwardRelay:
    def test_build_signs_original_bytes(self) -> None:
        body = _body()
        relay = ForwardRelay("https://relay.example/hook", signing_secret="fwd_secret", clock=lambda: NOW + 5)

        message = relay.build(body)

        assert message.url == "https://relay.example/hook"
        assert message.body == body
        assert message.headers[FORWARD_TIMESTAMP_HEADER] == str(NOW + 5)
        assert message.headers[FORWARD_SIGNATURE_HEADER] == hmac_hex("fwd_secret", body)
        assert message.headers["content-type"] == "application/json"

    def test_build_without_secret_is_unsigned(self) -> None:
        message = ForwardRelay("https://relay.example/hook").build(_body())
        assert FORWARD_SIGNATURE_HEADER not in message.headers
        assert FORWARD_TIMESTAMP_HEADER in message.headers

    def test_deliver_posts_message(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        relay = ForwardRelay("https://relay.example/hook", "fwd_secret", transport=httpx.MockTransport(handler))
        message = relay.build(_body())
        relay.deliver(message)

        assert len(seen) == 1
        assert seen[0].method == "POST"
        assert str(seen[0].url) == "https://relay.example/hook"
        assert seen[0].content == message.body
        assert seen[0].headers[FORWARD_SIGNATURE_HEADER] == message.headers[FORWARD_SIGNATURE_HEADER]

    def test_deliver_swallows_transport_errors(self, caplog: pytest.LogCaptureFixture) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        relay = ForwardRelay("https://relay.example/hook", transport=httpx.MockTransport(handler))
        with caplog.at_level(logging.WARNING, logger="linctl.webhook"):
            relay.deliver(relay.build(_body()))
        assert "failed" in caplog.text

    def test_deliver_logs_error_status(self, caplog: pytest.LogCaptureFixture) -> None:
        relay = ForwardRelay(
            "https://relay.example/hook",
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        with caplog.at_level(logging.WARNING, logger="linctl.webhook"):
            relay.deliver(relay.build(_body()))
        assert "500" in caplog.text
