"""Unpadded URL-safe base64 helpers used for VAPID keys, JWT segments and signatures."""

from __future__ import annotations

import base64
import binascii

from app.notifications.contracts import DecodeError


def encode(data: bytes) -> str:
  """Encode bytes as base64url without trailing padding."""
  return base64.b64encode(data).decode("ascii").replace("+", "-").replace("/", "_").rstrip("=")


def decode(value: str) -> bytes:
  """Decode a base64url string, restoring padding as needed."""
  standard = value.replace("-", "+").replace("_", "/")
  padded = standard + "=" * (-len(standard) % 4)
  try:
    return base64.b64decode(padded, validate=True)
  except (binascii.Error, ValueError) as exc:
    raise DecodeError(f"Malformed base64url input: {exc}") from exc
