"""Startup environment contract for the push service and the migrator.

Each process checks only the keys it uses. Keys are echoed to the log at startup with
secrets redacted, so a misconfigured deploy is visible before the first dispatch.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from app.notifications import base64url
from app.notifications.contracts import DecodeError
from app.notifications.vapid import P256_PRIVATE_KEY_LENGTH, P256_UNCOMPRESSED_POINT_LENGTH

EnvTarget = Literal["service", "migrator"]
EnvValidator = Callable[[str], str | None]
_BASE64URL_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_ENVIRONMENT_NAMES = frozenset({"dev", "development", "stage", "staging", "prod", "production", "test", "testing"})


@dataclass(frozen=True)
class EnvVarDefinition:
  """One contract entry: where a key is read, whether it may be logged, and how it is checked."""

  name: str
  required: bool
  secret: bool
  targets: frozenset[str]
  validator: EnvValidator | None = None
  aliases: tuple[str, ...] = ()

  def resolve(self) -> str:
    for key in (self.name, *self.aliases):
      raw = os.getenv(key)
      if raw is not None:
        return raw
    return ""


class EnvContractError(RuntimeError):
  """Raised when required runtime environment keys are missing or invalid."""


def _validate_environment_name(value: str) -> str | None:
  if value.strip().lower() in _ENVIRONMENT_NAMES:
    return None
  return "must be one of: development, stage, production, test (or aliases)."


def _validate_allowed_origins(value: str) -> str | None:
  origins = [origin.strip() for origin in value.split(",") if origin.strip()]
  if not origins:
    return "must include at least one origin."
  if "*" in origins:
    return "must not include wildcard origins."
  return None


def _key_of_length(expected: int) -> EnvValidator:
  """Build a validator for a base64url key that must decode to ``expected`` bytes."""

  def _validate(value: str) -> str | None:
    # Keys pasted as standard base64 or PEM are the usual deploy mistake.
    if not _BASE64URL_RE.fullmatch(value.strip()):
      return "must be unpadded base64url."
    try:
      decoded = base64url.decode(value.strip())
    except DecodeError:
      return "must be unpadded base64url."
    if len(decoded) != expected:
      return f"must decode to {expected} bytes, got {len(decoded)}."
    return None

  return _validate


def _validate_vapid_subject(value: str) -> str | None:
  if value.strip().startswith(("mailto:", "https://")):
    return None
  return "must start with 'mailto:' or 'https://'."


_SERVICE = frozenset({"service"})
_BOTH = frozenset({"service", "migrator"})

REQUIRED_ENV_REGISTRY: tuple[EnvVarDefinition, ...] = (
  EnvVarDefinition(name="LOCABOARD_ENV", required=True, secret=False, targets=_SERVICE, validator=_validate_environment_name),
  EnvVarDefinition(name="LOCABOARD_ALLOWED_ORIGINS", required=True, secret=False, targets=_SERVICE, validator=_validate_allowed_origins),
  EnvVarDefinition(name="LOCABOARD_PG_DSN", required=True, secret=True, targets=_BOTH, aliases=("DATABASE_URL",)),
  EnvVarDefinition(name="LOCABOARD_VAPID_PUBLIC_KEY", required=True, secret=False, targets=_SERVICE, validator=_key_of_length(P256_UNCOMPRESSED_POINT_LENGTH)),
  EnvVarDefinition(name="LOCABOARD_VAPID_PRIVATE_KEY", required=True, secret=True, targets=_SERVICE, validator=_key_of_length(P256_PRIVATE_KEY_LENGTH)),
  EnvVarDefinition(name="LOCABOARD_VAPID_SUBJECT", required=False, secret=False, targets=_SERVICE, validator=_validate_vapid_subject),
)


def validate_env_values(*, target: EnvTarget, env_map: dict[str, str]) -> list[str]:
  """Return one message per violated rule for the keys ``target`` reads."""
  errors: list[str] = []
  for definition in REQUIRED_ENV_REGISTRY:
    if target not in definition.targets:
      continue

    value = env_map.get(definition.name, "").strip()
    if not value:
      if definition.required:
        errors.append(f"{definition.name}: required variable is missing.")
      continue

    problem = definition.validator(value) if definition.validator else None
    if problem:
      errors.append(f"{definition.name}: {problem}")

  return errors


def validate_runtime_env_or_raise(*, logger: logging.Logger, target: EnvTarget) -> None:
  """Log the contract keys for ``target`` and raise when enforcement is on and a rule fails."""
  # Off by default so CI can boot the image without secrets; deploys set LOCABOARD_ENV_CONTRACT_ENFORCE=1.
  enforce = os.getenv("LOCABOARD_ENV_CONTRACT_ENFORCE", "").strip().lower() in {"1", "true", "yes", "on"}

  resolved: dict[str, str] = {}
  for definition in REQUIRED_ENV_REGISTRY:
    if target not in definition.targets:
      continue
    value = definition.resolve()
    resolved[definition.name] = value
    shown = "<redacted>" if definition.secret else (value or "<missing>")
    logger.info("ENV_CHECK key=%s value=%s", definition.name, shown)

  errors = validate_env_values(target=target, env_map=resolved)
  if not errors:
    logger.info("ENV_CHECK status=ok target=%s checked=%d", target, len(resolved))
    return

  message = f"ENV_CHECK status=failed target={target} violations:\n- " + "\n- ".join(errors)
  if enforce:
    logger.error(message)
    raise EnvContractError(message)

  logger.warning("ENV_CHECK enforcement disabled by LOCABOARD_ENV_CONTRACT_ENFORCE=0")
  logger.warning(message)
