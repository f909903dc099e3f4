"""Web Push Protocol (RFC 8030) delivery with VAPID authentication."""

from __future__ import annotations

import json
import logging

import httpx

from app.notifications.contracts import DispatchOutcome, PushMessage, PushSender

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 86400


def build_authorization_header(*, token: str, public_key: str) -> str:
  """Format the VAPID ``Authorization`` header value."""
  return f"vapid t={token}, k={public_key}"


def encode_push_body(message: PushMessage, *, default_url: str) -> bytes:
  """Serialize the plaintext notification payload delivered to the browser."""
  payload = {"titre": message.titre, "message": message.message, "url": message.url or default_url}
  return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class WebPushSender(PushSender):
  """`httpx` backed sender issuing one unencrypted, VAPID-signed POST per subscription."""

  def __init__(self, *, vapid_public_key: str, timeout_seconds: float = 10.0, ttl_seconds: int = DEFAULT_TTL_SECONDS, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._vapid_public_key = vapid_public_key
    self._timeout_seconds = timeout_seconds
    self._ttl_seconds = ttl_seconds
    self._transport = transport

  def client(self) -> httpx.AsyncClient:
    """Build a client with the per-attempt timeout applied to every phase."""
    return httpx.AsyncClient(timeout=httpx.Timeout(self._timeout_seconds), transport=self._transport)

  async def send(self, client: httpx.AsyncClient, *, endpoint: str, token: str, body: bytes) -> DispatchOutcome:
    """POST the payload and return the push service status, or the network error."""
    headers = {
      "Authorization": build_authorization_header(token=token, public_key=self._vapid_public_key),
      "Content-Type": "application/octet-stream",
      "Content-Length": str(len(body)),
      "TTL": str(self._ttl_seconds),
    }

    try:
      response = await client.post(endpoint, content=body, headers=headers)
    except httpx.TimeoutException as exc:
      return DispatchOutcome(endpoint=endpoint, error=f"timeout: {type(exc).__name__}")
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
      return DispatchOutcome(endpoint=endpoint, error=f"{type(exc).__name__}: {exc}")

    if response.status_code >= 300:
      # Push services explain rejections in the body; keep a short excerpt for operators.
      logger.debug("Push service responded status=%s body=%s", response.status_code, response.text[:200])

    return DispatchOutcome(endpoint=endpoint, status_code=response.status_code)
