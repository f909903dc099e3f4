"""Route for dispatching a Web Push notification to every device of a user."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.deps import get_push_dispatcher
from app.notifications.contracts import MissingFieldsError, PushMessage
from app.notifications.dispatcher import PushDispatcher, parse_push_request

router = APIRouter()


async def read_push_message(request: Request) -> PushMessage:
  """Decode and validate the request body."""
  raw_body = await request.body()
  try:
    payload = json.loads(raw_body)
  except (json.JSONDecodeError, UnicodeDecodeError) as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON") from exc

  try:
    return parse_push_request(payload)
  except MissingFieldsError as exc:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


# Dependencies resolve in declaration order: the body is validated before the dispatcher or its keys are built.
@router.post("/send")
async def send_push_notification(message: PushMessage = Depends(read_push_message), dispatcher: PushDispatcher = Depends(get_push_dispatcher)) -> dict[str, int]:  # noqa: B008
  """Deliver ``{titre, message, url?}`` to all subscriptions of ``user_id``."""
  summary = await dispatcher.dispatch(message)
  return summary.as_response()
