"""Fan-out of one notification to every push subscription a user holds."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from app.notifications.contracts import DispatchOutcome, DispatchSummary, MissingFieldsError, PushMessage, PushSender, PushSubscriptionEntry, SigningFailedError, SubscriptionStore, SubscriptionStoreError
from app.notifications.push_sender import encode_push_body
from app.notifications.vapid import VapidConfig, VapidSigningKey, import_vapid_private_key
from app.notifications.vapid_token import audience_for_endpoint, build_vapid_jwt

logger = logging.getLogger(__name__)

EXPIRED_STATUSES = frozenset({404, 410})
_REQUIRED_FIELDS = ("user_id", "titre", "message")


def parse_push_request(payload: Any) -> PushMessage:
  """Validate a decoded request body before any store access or cryptography."""
  if not isinstance(payload, dict):
    raise MissingFieldsError("Request body must be a JSON object")

  missing = [name for name in _REQUIRED_FIELDS if not isinstance(payload.get(name), str) or not payload[name]]
  if missing:
    raise MissingFieldsError(f"Missing fields: {', '.join(missing)}")

  url = payload.get("url")
  if url is not None and not isinstance(url, str):
    raise MissingFieldsError("Field url must be a string")

  return PushMessage(user_id=payload["user_id"], titre=payload["titre"], message=payload["message"], url=url or None)


def classify_outcome(outcome: DispatchOutcome) -> str:
  """Map one delivery outcome to ``sent``, ``expired`` or ``dropped``."""
  if outcome.status_code is None:
    return "dropped"

  if outcome.status_code < 300:
    return "sent"

  if outcome.status_code in EXPIRED_STATUSES:
    return "expired"

  return "dropped"


def _short_endpoint(endpoint: str) -> str:
  return endpoint if len(endpoint) <= 60 else f"{endpoint[:60]}..."


class PushDispatcher:
  """Loads a user's subscriptions, delivers concurrently and prunes dead endpoints."""

  def __init__(self, *, vapid_config: VapidConfig, sender: PushSender, store: SubscriptionStore, default_url: str = "/LocaBoard/", attempt_timeout_seconds: float = 10.0) -> None:
    self._vapid_config = vapid_config
    self._sender = sender
    self._store = store
    self._default_url = default_url
    self._attempt_timeout_seconds = attempt_timeout_seconds
    self._signing_key: VapidSigningKey | None = None

  def _get_signing_key(self) -> VapidSigningKey:
    # Imported on first use; the key pair never changes for the life of the process.
    if self._signing_key is None:
      self._signing_key = import_vapid_private_key(self._vapid_config.private_key)
    return self._signing_key

  async def dispatch(self, message: PushMessage) -> DispatchSummary:
    """Deliver ``message`` to every subscription of ``message.user_id``."""
    try:
      subscriptions = await self._store.list_for_user(user_id=message.user_id)
    except Exception as exc:  # noqa: BLE001
      logger.error("Push subscription lookup failed user_id=%s error=%s", message.user_id, exc, exc_info=True)
      raise SubscriptionStoreError("Subscription store unavailable") from exc

    if not subscriptions:
      logger.info("Push dispatch skipped user_id=%s subscriptions=0", message.user_id)
      return DispatchSummary(sent=0, expired=0)

    # An unusable key aborts the whole call; nothing could be signed.
    signing_key = self._get_signing_key()
    body = encode_push_body(message, default_url=self._default_url)

    async with self._sender.client() as client:
      outcomes = await asyncio.gather(*(self._deliver(client, subscription=subscription, signing_key=signing_key, body=body) for subscription in subscriptions), return_exceptions=True)

    sent = 0
    dropped = 0
    expired_endpoints: list[str] = []
    for subscription, outcome in zip(subscriptions, outcomes, strict=True):
      if isinstance(outcome, BaseException):
        # _deliver converts expected failures into outcomes.
        logger.error("Push delivery task crashed endpoint=%s", _short_endpoint(subscription.endpoint), exc_info=outcome)
        dropped += 1
        continue

      classification = classify_outcome(outcome)
      if classification == "sent":
        sent += 1
      elif classification == "expired":
        logger.info("Push subscription expired status=%s endpoint=%s", outcome.status_code, _short_endpoint(outcome.endpoint))
        expired_endpoints.append(outcome.endpoint)
      else:
        logger.warning("Push delivery dropped status=%s error=%s endpoint=%s", outcome.status_code, outcome.error, _short_endpoint(outcome.endpoint))
        dropped += 1

    if expired_endpoints:
      await self._prune(expired_endpoints)

    logger.info("Push dispatch complete user_id=%s subscriptions=%d sent=%d expired=%d dropped=%d", message.user_id, len(subscriptions), sent, len(expired_endpoints), dropped)
    return DispatchSummary(sent=sent, expired=len(expired_endpoints), dropped=dropped)

  async def _deliver(self, client: httpx.AsyncClient, *, subscription: PushSubscriptionEntry, signing_key: VapidSigningKey, body: bytes) -> DispatchOutcome:
    """Sign a token scoped to this endpoint's origin and deliver once."""
    endpoint = subscription.endpoint
    try:
      audience = audience_for_endpoint(endpoint)
      token = build_vapid_jwt(audience=audience, subject=self._vapid_config.subject, signing_key=signing_key)
    except (ValueError, SigningFailedError) as exc:
      return DispatchOutcome(endpoint=endpoint, error=f"{type(exc).__name__}: {exc}")

    try:
      return await asyncio.wait_for(self._sender.send(client, endpoint=endpoint, token=token, body=body), timeout=self._attempt_timeout_seconds)
    except asyncio.TimeoutError:
      return DispatchOutcome(endpoint=endpoint, error=f"timeout after {self._attempt_timeout_seconds}s")

  async def _prune(self, endpoints: list[str]) -> None:
    """Delete expired endpoints in one batch; failures are retried by the next dispatch."""
    try:
      await self._store.delete_by_endpoints(endpoints=endpoints)
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed deleting expired push subscriptions count=%d error=%s", len(endpoints), exc, exc_info=True)
