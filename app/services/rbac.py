"""Role membership lookups used to fan notifications out to a role."""

from __future__ import annotations

import uuid

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session_factory
from app.schema.sql import Role, User


async def list_user_ids_for_role(session: AsyncSession, role: str) -> list[uuid.UUID]:
  """Return ids of users whose role matches by name, or by id when `role` is a UUID."""
  conditions = [Role.name == role]
  try:
    conditions.append(Role.id == uuid.UUID(role))
  except ValueError:
    pass

  stmt = select(User.id).join(Role, User.role_id == Role.id).where(or_(*conditions)).order_by(User.created_at, User.id)
  result = await session.execute(stmt)
  return list(result.scalars().all())


class RoleMembershipRepository:
  """Role membership lookup backed by the users and roles tables."""

  async def list_member_ids(self, role: str) -> list[uuid.UUID]:
    session_factory = get_session_factory()
    if session_factory is None:
      return []

    async with session_factory() as session:
      return await list_user_ids_for_role(session, role)
