"""Generate a VAPID key pair for the push service.

Prints the three LOCABOARD_VAPID_* lines to paste into the deployment environment.
The private key is the raw 32-byte P-256 scalar and the public key the 65-byte
uncompressed point, both base64url without padding.
"""

from __future__ import annotations

import argparse
import logging

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.notifications import base64url
from app.notifications.vapid import P256_PRIVATE_KEY_LENGTH, VapidConfig, validate_vapid_config

logger = logging.getLogger(__name__)


def generate_vapid_keys(subject: str) -> VapidConfig:
  """Create a fresh key pair and check it round-trips through the importer."""
  private_key = ec.generate_private_key(ec.SECP256R1())
  private_raw = private_key.private_numbers().private_value.to_bytes(P256_PRIVATE_KEY_LENGTH, "big")
  public_raw = private_key.public_key().public_bytes(encoding=serialization.Encoding.X962, format=serialization.PublicFormat.UncompressedPoint)
  config = VapidConfig(public_key=base64url.encode(public_raw), private_key=base64url.encode(private_raw), subject=subject)
  validate_vapid_config(config)
  return config


def main() -> None:
  """Print a new key pair as environment assignments."""
  logging.basicConfig(level=logging.INFO)
  parser = argparse.ArgumentParser(description=__doc__)
  parser.add_argument("--subject", default="mailto:admin@locaboard.fr", help="Contact URI sent to push services (mailto: or https://).")
  args = parser.parse_args()

  config = generate_vapid_keys(args.subject)
  logger.info("Generated VAPID key pair; keep the private key out of source control.")
  print(f"LOCABOARD_VAPID_PUBLIC_KEY={config.public_key}")
  print(f"LOCABOARD_VAPID_PRIVATE_KEY={config.private_key}")
  print(f"LOCABOARD_VAPID_SUBJECT={config.subject}")


if __name__ == "__main__":
  main()
