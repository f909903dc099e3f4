"""Factory helpers for notification services."""

from __future__ import annotations

from app.config import Settings
from app.notifications.contracts import InvalidKeyMaterialError
from app.notifications.dispatcher import PushDispatcher
from app.notifications.push_sender import WebPushSender
from app.notifications.push_subscription_repo import PushSubscriptionRepository


def build_push_dispatcher(settings: Settings) -> PushDispatcher:
  """Construct the push dispatcher from environment configuration."""
  vapid_config = settings.vapid_config
  if vapid_config is None:
    raise InvalidKeyMaterialError("VAPID key pair is not configured")

  sender = WebPushSender(vapid_public_key=vapid_config.public_key, timeout_seconds=settings.push_timeout_seconds, ttl_seconds=settings.push_ttl_seconds)
  return PushDispatcher(vapid_config=vapid_config, sender=sender, store=PushSubscriptionRepository(), default_url=settings.push_default_url, attempt_timeout_seconds=settings.push_timeout_seconds)
