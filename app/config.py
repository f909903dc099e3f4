"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.notifications.vapid import VapidConfig
from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

DEFAULT_VAPID_SUBJECT = "mailto:admin@locaboard.fr"
DEFAULT_PUSH_URL = "/LocaBoard/"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the LocaBoard push service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  log_http_bodies: bool
  log_http_body_bytes: int
  pg_dsn: str | None
  pg_connect_timeout: int
  vapid_public_key: str | None
  vapid_private_key: str | None
  vapid_subject: str
  push_timeout_seconds: float
  push_ttl_seconds: int
  push_default_url: str

  @property
  def vapid_config(self) -> VapidConfig | None:
    """Return the VAPID key pair when both halves are configured."""
    if not self.vapid_public_key or not self.vapid_private_key:
      return None

    return VapidConfig(public_key=self.vapid_public_key, private_key=self.vapid_private_key, subject=self.vapid_subject)


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("LOCABOARD_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("LOCABOARD_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("LOCABOARD_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None

  value = raw.strip()
  return value or None


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")

  return value


def _resolve_pg_dsn() -> str | None:
  return _optional_str(os.getenv("LOCABOARD_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("LOCABOARD_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("LOCABOARD_DEBUG"))

  log_max_bytes = _positive_int("LOCABOARD_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("LOCABOARD_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("LOCABOARD_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("LOCABOARD_LOG_HTTP_4XX"))
  # Allow opt-in logging of HTTP request/response bodies with a size cap.
  log_http_bodies = _parse_bool(os.getenv("LOCABOARD_LOG_HTTP_BODIES"))
  log_http_body_bytes = _positive_int("LOCABOARD_LOG_HTTP_BODY_BYTES", "2048")

  vapid_public_key = _optional_str(os.getenv("LOCABOARD_VAPID_PUBLIC_KEY"))
  vapid_private_key = _optional_str(os.getenv("LOCABOARD_VAPID_PRIVATE_KEY"))
  vapid_subject = _optional_str(os.getenv("LOCABOARD_VAPID_SUBJECT")) or DEFAULT_VAPID_SUBJECT
  if not (vapid_subject.startswith("mailto:") or vapid_subject.startswith("https://")):
    raise ValueError("LOCABOARD_VAPID_SUBJECT must start with 'mailto:' or 'https://'.")

  push_timeout_seconds = float(os.getenv("LOCABOARD_PUSH_TIMEOUT_SECONDS", "10"))
  if push_timeout_seconds <= 0:
    raise ValueError("LOCABOARD_PUSH_TIMEOUT_SECONDS must be positive.")

  push_ttl_seconds = int(os.getenv("LOCABOARD_PUSH_TTL_SECONDS", "86400"))
  if push_ttl_seconds < 0:
    raise ValueError("LOCABOARD_PUSH_TTL_SECONDS must be zero or a positive integer.")

  push_default_url = _optional_str(os.getenv("LOCABOARD_PUSH_DEFAULT_URL")) or DEFAULT_PUSH_URL

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("LOCABOARD_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    log_http_bodies=log_http_bodies,
    log_http_body_bytes=log_http_body_bytes,
    pg_dsn=_resolve_pg_dsn(),
    pg_connect_timeout=_positive_int("LOCABOARD_PG_CONNECT_TIMEOUT", "10"),
    vapid_public_key=vapid_public_key,
    vapid_private_key=vapid_private_key,
    vapid_subject=vapid_subject,
    push_timeout_seconds=push_timeout_seconds,
    push_ttl_seconds=push_ttl_seconds,
    push_default_url=push_default_url,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring the full service configuration."""

  return DatabaseSettings(debug=_parse_bool(os.getenv("LOCABOARD_DEBUG")), pg_dsn=_resolve_pg_dsn(), pg_connect_timeout=_positive_int("LOCABOARD_PG_CONNECT_TIMEOUT", "10"))
