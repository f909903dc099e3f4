from __future__ import annotations

import pytest
from app.notifications.contracts import SigningFailedError
from app.notifications.vapid import import_vapid_private_key
from app.notifications.vapid_token import VAPID_TOKEN_TTL_SECONDS, audience_for_endpoint, build_vapid_jwt


@pytest.mark.parametrize(
  ("endpoint", "expected"),
  [
    ("https://fcm.googleapis.com/fcm/send/abc123", "https://fcm.googleapis.com"),
    ("https://updates.push.services.mozilla.com/wpush/v2/gAAAA?x=1", "https://updates.push.services.mozilla.com"),
    ("https://web.push.apple.com:443/QGuQyavXutnMH", "https://web.push.apple.com"),
    ("https://push.example.test:8443/sub/1", "https://push.example.test:8443"),
    ("HTTPS://Push.Example.Test/sub/1", "https://push.example.test"),
    ("https://[2001:db8::1]/push/abc", "https://[2001:db8::1]"),
    ("https://[2001:DB8::1]:8443/push/abc", "https://[2001:db8::1]:8443"),
  ],
)
def test_audience_is_endpoint_origin(endpoint, expected):
  assert audience_for_endpoint(endpoint) == expected


@pytest.mark.parametrize("endpoint", ["", "/relative/path", "fcm.googleapis.com/fcm/send/abc"])
def test_audience_rejects_non_absolute_endpoints(endpoint):
  with pytest.raises(ValueError):
    audience_for_endpoint(endpoint)


def test_jwt_verifies_and_carries_expected_claims(vapid_config, verify_vapid_jwt):
  signing_key = import_vapid_private_key(vapid_config.private_key)
  token = build_vapid_jwt(audience="https://fcm.googleapis.com", subject="mailto:admin@locaboard.fr", signing_key=signing_key, now=1_700_000_000)

  header, claims = verify_vapid_jwt(token)
  assert header == {"typ": "JWT", "alg": "ES256"}
  assert claims == {"aud": "https://fcm.googleapis.com", "exp": 1_700_000_000 + 43200, "sub": "mailto:admin@locaboard.fr"}
  assert VAPID_TOKEN_TTL_SECONDS == 43200


def test_jwt_segments_are_unpadded(vapid_config):
  signing_key = import_vapid_private_key(vapid_config.private_key)
  token = build_vapid_jwt(audience="https://fcm.googleapis.com", subject="mailto:a@b.c", signing_key=signing_key)

  assert token.count(".") == 2
  assert "=" not in token
  assert "+" not in token and "/" not in token


def test_jwt_defaults_issue_time_to_now(monkeypatch, vapid_config, verify_vapid_jwt):
  monkeypatch.setattr("app.notifications.vapid_token.time.time", lambda: 1_000.9)
  signing_key = import_vapid_private_key(vapid_config.private_key)

  _, claims = verify_vapid_jwt(build_vapid_jwt(audience="https://a.test", subject="mailto:a@b.c", signing_key=signing_key))
  assert claims["exp"] == 1_000 + 43200


def test_jwt_signing_failure_is_wrapped():
  class _BrokenKey:
    def sign(self, data: bytes) -> bytes:
      raise RuntimeError("hsm offline")

  with pytest.raises(SigningFailedError, match="hsm offline"):
    build_vapid_jwt(audience="https://a.test", subject="mailto:a@b.c", signing_key=_BrokenKey())
