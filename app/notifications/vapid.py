"""VAPID key handling.

The configured private key is a bare 32-byte P-256 scalar encoded as base64url. It is
imported by wrapping it in a minimal PKCS8 ``PrivateKeyInfo`` envelope; when the
backend refuses that DER, the scalar is derived directly as a raw EC private key.
Either way callers only receive a ``VapidSigningKey``, which can sign but never
export the private scalar.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from app.notifications import base64url
from app.notifications.contracts import DecodeError, InvalidKeyMaterialError

logger = logging.getLogger(__name__)

P256_PRIVATE_KEY_LENGTH = 32
P256_COORDINATE_LENGTH = 32
P256_UNCOMPRESSED_POINT_LENGTH = 65

# DER prefix of PrivateKeyInfo { version 0, AlgorithmIdentifier { id-ecPublicKey 1.2.840.10045.2.1,
# prime256v1 1.2.840.10045.3.1.7 }, OCTET STRING { ECPrivateKey { version 1, privateKey OCTET STRING (32) } } }.
# The 32-byte scalar is appended verbatim.
PKCS8_P256_PREFIX = bytes.fromhex("3041020100301306072a8648ce3d020106082a8648ce3d030107042730250201010420")


@dataclass(frozen=True)
class VapidConfig:
  """Deployment-wide VAPID key pair and contact subject."""

  public_key: str
  private_key: str
  subject: str

  def __repr__(self) -> str:
    return f"VapidConfig(public_key={self.public_key!r}, private_key=<redacted>, subject={self.subject!r})"


class VapidSigningKey:
  """Sign-only handle around an ECDSA P-256 private key."""

  __slots__ = ("_key",)

  def __init__(self, key: ec.EllipticCurvePrivateKey) -> None:
    if not isinstance(key.curve, ec.SECP256R1):
      raise InvalidKeyMaterialError(f"VAPID key must use curve P-256, got {key.curve.name}")
    self._key = key

  def __repr__(self) -> str:
    return "VapidSigningKey(curve=P-256)"

  def sign(self, data: bytes) -> bytes:
    """Return the JOSE ES256 signature of ``data``: raw ``r || s``, 64 bytes."""
    der_signature = self._key.sign(data, ec.ECDSA(hashes.SHA256()))
    r, s = decode_dss_signature(der_signature)
    return r.to_bytes(P256_COORDINATE_LENGTH, "big") + s.to_bytes(P256_COORDINATE_LENGTH, "big")

  def public_point(self) -> bytes:
    """Return the matching public key as an uncompressed X9.62 point."""
    return self._key.public_key().public_bytes(encoding=serialization.Encoding.X962, format=serialization.PublicFormat.UncompressedPoint)


def _import_pkcs8(raw: bytes) -> ec.EllipticCurvePrivateKey:
  key = serialization.load_der_private_key(PKCS8_P256_PREFIX + raw, password=None)
  if not isinstance(key, ec.EllipticCurvePrivateKey):
    raise ValueError(f"PKCS8 envelope yielded a non-EC key: {type(key).__name__}")
  return key


def _import_raw(raw: bytes) -> ec.EllipticCurvePrivateKey:
  return ec.derive_private_key(int.from_bytes(raw, "big"), ec.SECP256R1())


def import_vapid_private_key(private_key_b64: str) -> VapidSigningKey:
  """Turn a base64url P-256 private scalar into a sign-only key."""
  try:
    raw = base64url.decode(private_key_b64.strip())
  except DecodeError as exc:
    raise InvalidKeyMaterialError("VAPID private key is not valid base64url") from exc

  if len(raw) != P256_PRIVATE_KEY_LENGTH:
    raise InvalidKeyMaterialError(f"VAPID private key must be {P256_PRIVATE_KEY_LENGTH} bytes, got {len(raw)}")

  try:
    return VapidSigningKey(_import_pkcs8(raw))
  except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
    logger.debug("PKCS8 import of VAPID key failed, falling back to raw scalar import: %s", exc)

  try:
    return VapidSigningKey(_import_raw(raw))
  except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
    raise InvalidKeyMaterialError("VAPID private key is not a valid P-256 scalar") from exc


def validate_vapid_config(config: VapidConfig) -> VapidSigningKey:
  """Import the private key and check the configured public key belongs to it."""
  signing_key = import_vapid_private_key(config.private_key)

  try:
    public_raw = base64url.decode(config.public_key.strip())
  except DecodeError as exc:
    raise InvalidKeyMaterialError("VAPID public key is not valid base64url") from exc

  if len(public_raw) != P256_UNCOMPRESSED_POINT_LENGTH or public_raw[0] != 0x04:
    raise InvalidKeyMaterialError(f"VAPID public key must be a {P256_UNCOMPRESSED_POINT_LENGTH}-byte uncompressed P-256 point")

  if public_raw != signing_key.public_point():
    raise InvalidKeyMaterialError("VAPID public key does not match the private key")

  return signing_key
