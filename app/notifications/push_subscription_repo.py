"""Repository helpers for Web Push subscription persistence."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import get_session_factory
from app.notifications.contracts import PushSubscriptionEntry, SubscriptionStore
from app.schema.push_subscriptions import PushSubscriptionRow


class PushSubscriptionRepository(SubscriptionStore):
  """Read and prune push subscriptions in Postgres."""

  def __init__(self, *, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory

  def _resolve_session_factory(self) -> async_sessionmaker[AsyncSession]:
    session_factory = self._session_factory or get_session_factory()
    if session_factory is None:
      raise RuntimeError("Database connection is not configured (LOCABOARD_PG_DSN is missing).")
    return session_factory

  async def list_for_user(self, *, user_id: str) -> list[PushSubscriptionEntry]:
    """List all push subscriptions for a user."""
    async with self._resolve_session_factory()() as session:
      return await self._list_for_user_with_session(session=session, user_id=user_id)

  async def _list_for_user_with_session(self, *, session: AsyncSession, user_id: str) -> list[PushSubscriptionEntry]:
    # Fetch all rows so each registered browser can receive the event.
    stmt = select(PushSubscriptionRow).where(PushSubscriptionRow.user_id == user_id)
    result = await session.execute(stmt)
    rows = result.scalars().all()
    return [PushSubscriptionEntry(user_id=row.user_id, endpoint=row.endpoint, p256dh_key=row.p256dh_key, auth_key=row.auth_key) for row in rows]

  async def delete_by_endpoints(self, *, endpoints: Sequence[str]) -> None:
    """Delete subscriptions by endpoint regardless of owner."""
    if not endpoints:
      return

    async with self._resolve_session_factory()() as session:
      await self._delete_by_endpoints_with_session(session=session, endpoints=endpoints)

  async def _delete_by_endpoints_with_session(self, *, session: AsyncSession, endpoints: Sequence[str]) -> None:
    # One statement for the whole batch keeps cleanup a single writer per dispatch.
    stmt = delete(PushSubscriptionRow).where(PushSubscriptionRow.endpoint.in_(list(endpoints)))
    await session.execute(stmt)
    await session.commit()
