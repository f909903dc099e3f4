from __future__ import annotations

import json

import httpx
import pytest
from app.notifications.contracts import PushMessage
from app.notifications.push_sender import WebPushSender, build_authorization_header, encode_push_body

_ENDPOINT = "https://fcm.googleapis.com/fcm/send/abc"


def _sender(handler, **kwargs) -> WebPushSender:
  return WebPushSender(vapid_public_key="BPUBLIC", transport=httpx.MockTransport(handler), **kwargs)


def test_authorization_header_uses_vapid_scheme():
  assert build_authorization_header(token="a.b.c", public_key="BPUB") == "vapid t=a.b.c, k=BPUB"


def test_push_body_falls_back_to_default_url():
  body = encode_push_body(PushMessage(user_id="u1", titre="Nouvelle réservation", message="Chalet du lac"), default_url="/LocaBoard/")
  assert body == '{"titre":"Nouvelle réservation","message":"Chalet du lac","url":"/LocaBoard/"}'.encode("utf-8")


def test_push_body_keeps_explicit_url():
  body = encode_push_body(PushMessage(user_id="u1", titre="t", message="m", url="/LocaBoard/#/reservations/42"), default_url="/LocaBoard/")
  assert json.loads(body)["url"] == "/LocaBoard/#/reservations/42"


@pytest.mark.anyio
async def test_send_posts_expected_headers_and_body():
  captured = {}

  def _handler(request: httpx.Request) -> httpx.Response:
    captured["request"] = request
    return httpx.Response(201)

  sender = _sender(_handler)
  body = b'{"titre":"t","message":"m","url":"/LocaBoard/"}'
  async with sender.client() as client:
    outcome = await sender.send(client, endpoint=_ENDPOINT, token="h.p.s", body=body)

  assert outcome.status_code == 201
  assert outcome.error is None
  request = captured["request"]
  assert request.method == "POST"
  assert str(request.url) == _ENDPOINT
  assert request.headers["authorization"] == "vapid t=h.p.s, k=BPUBLIC"
  assert request.headers["content-type"] == "application/octet-stream"
  assert request.headers["content-length"] == str(len(body))
  assert request.headers["ttl"] == "86400"
  assert request.content == body


@pytest.mark.anyio
async def test_send_uses_configured_ttl():
  captured = {}

  def _handler(request: httpx.Request) -> httpx.Response:
    captured["ttl"] = request.headers["ttl"]
    return httpx.Response(201)

  sender = _sender(_handler, ttl_seconds=60)
  async with sender.client() as client:
    await sender.send(client, endpoint=_ENDPOINT, token="h.p.s", body=b"{}")

  assert captured["ttl"] == "60"


@pytest.mark.anyio
async def test_send_reports_rejection_status_without_raising():
  sender = _sender(lambda request: httpx.Response(410, text="push subscription has unsubscribed or expired"))
  async with sender.client() as client:
    outcome = await sender.send(client, endpoint=_ENDPOINT, token="h.p.s", body=b"{}")

  assert outcome.status_code == 410
  assert outcome.error is None


@pytest.mark.anyio
async def test_send_converts_network_errors_to_outcome():
  def _handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)

  sender = _sender(_handler)
  async with sender.client() as client:
    outcome = await sender.send(client, endpoint=_ENDPOINT, token="h.p.s", body=b"{}")

  assert outcome.status_code is None
  assert outcome.error is not None
  assert "ConnectError" in outcome.error


@pytest.mark.anyio
async def test_send_converts_timeouts_to_outcome():
  def _handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("read timed out", request=request)

  sender = _sender(_handler)
  async with sender.client() as client:
    outcome = await sender.send(client, endpoint=_ENDPOINT, token="h.p.s", body=b"{}")

  assert outcome.status_code is None
  assert outcome.error.startswith("timeout")
