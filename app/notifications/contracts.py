"""Contracts for Web Push dispatch: payloads, outcomes, collaborators and errors."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import httpx


@dataclass(frozen=True)
class PushSubscriptionEntry:
  """A browser push subscription as read from the subscription store."""

  user_id: str
  endpoint: str
  p256dh_key: str
  auth_key: str


@dataclass(frozen=True)
class PushMessage:
  """A validated inbound dispatch request."""

  user_id: str
  titre: str
  message: str
  url: str | None = None


@dataclass(frozen=True)
class DispatchOutcome:
  """Result of a single delivery attempt; exactly one of status_code/error is set."""

  endpoint: str
  status_code: int | None = None
  error: str | None = None


@dataclass(frozen=True)
class DispatchSummary:
  """Aggregate counts returned to the caller of a dispatch."""

  sent: int
  expired: int
  dropped: int = 0

  def as_response(self) -> dict[str, int]:
    return {"sent": self.sent, "expired": self.expired}


class NotificationError(Exception):
  """Base class for all push dispatch failures."""


class DecodeError(NotificationError, ValueError):
  """Raised when a base64url string cannot be decoded."""


class InvalidKeyMaterialError(NotificationError):
  """Raised when the VAPID key pair cannot be turned into a signing key."""


class SigningFailedError(NotificationError):
  """Raised when signing a VAPID token fails."""


class MissingFieldsError(NotificationError, ValueError):
  """Raised when a dispatch request lacks a required field."""


class SubscriptionStoreError(NotificationError):
  """Raised when subscriptions cannot be loaded for a user."""


class PushSender(Protocol):
  """Delivery contract for a single authenticated Web Push request."""

  def client(self) -> httpx.AsyncClient:
    """Return a new HTTP client to share across one dispatch call."""

  async def send(self, client: httpx.AsyncClient, *, endpoint: str, token: str, body: bytes) -> DispatchOutcome:
    """POST a payload to a push service endpoint and report the outcome."""


class SubscriptionStore(Protocol):
  """The two subscription store operations the dispatcher depends on."""

  async def list_for_user(self, *, user_id: str) -> list[PushSubscriptionEntry]:
    """List every subscription registered for a user."""

  async def delete_by_endpoints(self, *, endpoints: Sequence[str]) -> None:
    """Delete all subscriptions matching the given endpoints in one batch."""
