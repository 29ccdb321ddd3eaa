"""Repository helpers for Web Push subscription persistence."""

from __future__ import annotations

import uuid

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session_factory
from app.notifications.contracts import PushKeys, Subscription
from app.schema.push_subscriptions import PushSubscriptionRecord


def _to_subscription(row: PushSubscriptionRecord) -> Subscription:
  return Subscription(id=row.id, owner_id=row.owner_id, endpoint=row.endpoint, keys=PushKeys(p256dh=row.p256dh, auth=row.auth), created_at=row.created_at, user_agent=row.user_agent)


class PushSubscriptionRepository:
  """Persist and manage push subscriptions in Postgres."""

  async def get_by_endpoint(self, endpoint: str) -> Subscription | None:
    """Fetch the subscription registered for an endpoint."""
    session_factory = get_session_factory()
    if session_factory is None:
      return None

    async with session_factory() as session:
      row = await self._get_by_endpoint_with_session(session=session, endpoint=endpoint)
      return _to_subscription(row) if row is not None else None

  async def _get_by_endpoint_with_session(self, *, session: AsyncSession, endpoint: str) -> PushSubscriptionRecord | None:
    stmt = select(PushSubscriptionRecord).where(PushSubscriptionRecord.endpoint == endpoint)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()

  async def create_if_absent(self, *, owner_id: uuid.UUID, endpoint: str, keys: PushKeys, user_agent: str | None = None) -> Subscription:
    """Insert a subscription unless the endpoint exists; return the stored row either way."""
    session_factory = get_session_factory()
    if session_factory is None:
      raise RuntimeError("Database connection is not configured (PUSH_PG_DSN is missing).")

    async with session_factory() as session:
      return await self._create_if_absent_with_session(session=session, owner_id=owner_id, endpoint=endpoint, keys=keys, user_agent=user_agent)

  async def _create_if_absent_with_session(self, *, session: AsyncSession, owner_id: uuid.UUID, endpoint: str, keys: PushKeys, user_agent: str | None) -> Subscription:
    # Do nothing on conflict so a racing registration keeps the first owner and keys.
    stmt = insert(PushSubscriptionRecord).values(id=uuid.uuid4(), owner_id=owner_id, endpoint=endpoint, p256dh=keys.p256dh, auth=keys.auth, user_agent=user_agent)
    stmt = stmt.on_conflict_do_nothing(index_elements=["endpoint"])
    await session.execute(stmt)
    await session.commit()

    row = await self._get_by_endpoint_with_session(session=session, endpoint=endpoint)
    if row is None:
      # The row was deleted between insert and read; surface it as a storage error.
      raise RuntimeError("Push subscription vanished immediately after registration.")
    return _to_subscription(row)

  async def list_for_owner(self, owner_id: uuid.UUID) -> list[Subscription]:
    """List all push subscriptions for a user."""
    return await self.list_for_owners([owner_id])

  async def list_for_owners(self, owner_ids: list[uuid.UUID]) -> list[Subscription]:
    """List push subscriptions for a set of users in a stable order."""
    session_factory = get_session_factory()
    if session_factory is None or not owner_ids:
      return []

    async with session_factory() as session:
      stmt = select(PushSubscriptionRecord).where(PushSubscriptionRecord.owner_id.in_(owner_ids)).order_by(PushSubscriptionRecord.created_at, PushSubscriptionRecord.id)
      result = await session.execute(stmt)
      return [_to_subscription(row) for row in result.scalars().all()]

  async def delete_by_id(self, subscription_id: uuid.UUID) -> bool:
    """Delete a subscription by primary key and report whether a row was removed."""
    session_factory = get_session_factory()
    if session_factory is None:
      return False

    async with session_factory() as session:
      result = await session.execute(delete(PushSubscriptionRecord).where(PushSubscriptionRecord.id == subscription_id))
      await session.commit()
      return bool(result.rowcount)

  async def delete_by_endpoint(self, endpoint: str) -> bool:
    """Delete subscriptions by endpoint regardless of owner."""
    session_factory = get_session_factory()
    if session_factory is None:
      return False

    async with session_factory() as session:
      result = await session.execute(delete(PushSubscriptionRecord).where(PushSubscriptionRecord.endpoint == endpoint))
      await session.commit()
      return bool(result.rowcount)
