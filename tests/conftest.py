"""Test configuration for importing the application package."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

from app.notifications import base64url  # noqa: E402
from app.notifications.vapid import VapidConfig  # noqa: E402

TEST_PRIVATE_KEY = ec.generate_private_key(ec.SECP256R1())
TEST_PRIVATE_KEY_B64 = base64url.encode(TEST_PRIVATE_KEY.private_numbers().private_value.to_bytes(32, "big"))
TEST_PUBLIC_KEY_B64 = base64url.encode(TEST_PRIVATE_KEY.public_key().public_bytes(encoding=serialization.Encoding.X962, format=serialization.PublicFormat.UncompressedPoint))
TEST_SUBJECT = "mailto:ops@locaboard.test"

# Settings are cached on first import of app.main, so the environment must be in place first.
os.environ["LOCABOARD_ENV"] = "test"
os.environ["LOCABOARD_ALLOWED_ORIGINS"] = "http://localhost:5173"
os.environ["LOCABOARD_VAPID_PUBLIC_KEY"] = TEST_PUBLIC_KEY_B64
os.environ["LOCABOARD_VAPID_PRIVATE_KEY"] = TEST_PRIVATE_KEY_B64
os.environ["LOCABOARD_VAPID_SUBJECT"] = TEST_SUBJECT
os.environ.pop("LOCABOARD_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402


@pytest.fixture
def vapid_config() -> VapidConfig:
  return VapidConfig(public_key=TEST_PUBLIC_KEY_B64, private_key=TEST_PRIVATE_KEY_B64, subject=TEST_SUBJECT)


@pytest.fixture
def vapid_public_key() -> ec.EllipticCurvePublicKey:
  return TEST_PRIVATE_KEY.public_key()


@pytest.fixture
def verify_vapid_jwt(vapid_public_key):
  """Return a checker that verifies an ES256 token and yields its header and claims."""

  def _verify(token: str) -> tuple[dict, dict]:
    header_b64, payload_b64, signature_b64 = token.split(".")
    signature = base64url.decode(signature_b64)
    assert len(signature) == 64
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:], "big")
    # Raises InvalidSignature on mismatch.
    vapid_public_key.verify(encode_dss_signature(r, s), f"{header_b64}.{payload_b64}".encode("utf-8"), ec.ECDSA(hashes.SHA256()))
    return json.loads(base64url.decode(header_b64)), json.loads(base64url.decode(payload_b64))

  return _verify


@pytest.fixture
def subscription_store():
  store = AsyncMock()
  store.list_for_user.return_value = []
  return store


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"
