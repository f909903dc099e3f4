import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.database import dispose_engine
from app.core.env_contract import EnvContractError, validate_runtime_env_or_raise
from app.core.logging import initialize_logging
from app.notifications.contracts import InvalidKeyMaterialError
from app.notifications.vapid import validate_vapid_config


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and refuse to serve with unusable VAPID configuration."""
  from app.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("app.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
    # Enforce startup env contracts before app dependencies are initialized.
    validate_runtime_env_or_raise(logger=logger, target="service")
  except EnvContractError:
    logger.error("Environment contract failed; refusing to start the service.", exc_info=True)
    raise
  except Exception:
    # Log initialization failures but allow the app to continue starting.
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  vapid_config = settings.vapid_config
  if vapid_config is None:
    logger.error("VAPID key pair is not configured; set LOCABOARD_VAPID_PUBLIC_KEY and LOCABOARD_VAPID_PRIVATE_KEY.")
    raise RuntimeError("VAPID key pair is not configured.")

  try:
    validate_vapid_config(vapid_config)
  except InvalidKeyMaterialError:
    logger.error("VAPID key pair rejected; refusing to start the service.", exc_info=True)
    raise

  logger.info("VAPID key pair loaded subject=%s", vapid_config.subject)

  try:
    yield
  finally:
    await dispose_engine()
