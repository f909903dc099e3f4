"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from app.config import get_settings
from app.notifications.dispatcher import PushDispatcher
from app.notifications.factory import build_push_dispatcher


@lru_cache(maxsize=1)
def get_push_dispatcher() -> PushDispatcher:
  """Build the process-wide dispatcher on first use."""
  return build_push_dispatcher(get_settings())
