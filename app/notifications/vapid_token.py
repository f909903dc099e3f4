"""Compact ES256 JWS construction for VAPID (RFC 8292) authentication."""

from __future__ import annotations

import json
import time
import urllib.parse

from app.notifications import base64url
from app.notifications.contracts import SigningFailedError
from app.notifications.vapid import VapidSigningKey

VAPID_TOKEN_TTL_SECONDS = 12 * 3600

_JWT_HEADER = {"typ": "JWT", "alg": "ES256"}
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _encode_segment(value: dict) -> str:
  return base64url.encode(json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))


def audience_for_endpoint(endpoint: str) -> str:
  """Return the ``scheme://host`` origin a token for ``endpoint`` must be scoped to."""
  parsed = urllib.parse.urlsplit(endpoint)
  hostname = parsed.hostname
  if not parsed.scheme or not hostname:
    raise ValueError("Push endpoint must be an absolute URL")

  scheme = parsed.scheme.lower()
  # urlsplit strips the brackets from IPv6 literals.
  if ":" in hostname:
    hostname = f"[{hostname}]"
  audience = f"{scheme}://{hostname}"
  # Keep explicit non-default ports; the origin of https://host:443 is https://host.
  port = parsed.port
  if port is not None and port != _DEFAULT_PORTS.get(scheme):
    audience = f"{audience}:{port}"

  return audience


def build_vapid_jwt(*, audience: str, subject: str, signing_key: VapidSigningKey, now: int | None = None) -> str:
  """Build and sign a single-use VAPID token for one push service origin."""
  issued_at = int(time.time()) if now is None else now
  claims = {"aud": audience, "exp": issued_at + VAPID_TOKEN_TTL_SECONDS, "sub": subject}
  signing_input = f"{_encode_segment(_JWT_HEADER)}.{_encode_segment(claims)}"

  try:
    signature = signing_key.sign(signing_input.encode("utf-8"))
  except Exception as exc:  # noqa: BLE001
    raise SigningFailedError(f"VAPID token signing failed: {exc}") from exc

  return f"{signing_input}.{base64url.encode(signature)}"
