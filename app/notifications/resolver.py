"""Resolution of logical notification targets into concrete subscriptions."""

from __future__ import annotations

import logging
import uuid

from app.notifications.contracts import InvalidTargetError, RoleMembershipLookup, Subscription, SubscriptionStore, TargetKind, TargetSpec

logger = logging.getLogger(__name__)


class TargetResolver:
  """Turn a user or role target into the list of subscriptions to notify."""

  def __init__(self, *, store: SubscriptionStore, roles: RoleMembershipLookup) -> None:
    self._store = store
    self._roles = roles

  async def resolve(self, target: TargetSpec) -> list[Subscription]:
    """Return every subscription the target covers; an empty list is not an error."""
    if target.kind is TargetKind.USER:
      subscriptions = await self._store.list_for_owner(_parse_user_id(target.id))
    elif target.kind is TargetKind.ROLE:
      member_ids = await self._roles.list_member_ids(target.id)
      subscriptions = await self._store.list_for_owners(list(dict.fromkeys(member_ids))) if member_ids else []
    else:
      raise InvalidTargetError(f"Unsupported target type: {target.kind}")

    resolved = _unique_by_id(subscriptions)
    logger.debug("Resolved target kind=%s id=%s to %d subscription(s)", target.kind.value, target.id, len(resolved))
    return resolved


def _parse_user_id(raw: str) -> uuid.UUID:
  try:
    return uuid.UUID(raw)
  except ValueError as exc:
    raise InvalidTargetError(f"User target id is not a valid user id: {raw}") from exc


def _unique_by_id(subscriptions: list[Subscription]) -> list[Subscription]:
  seen: set[uuid.UUID] = set()
  unique: list[Subscription] = []
  for subscription in subscriptions:
    if subscription.id in seen:
      continue
    seen.add(subscription.id)
    unique.append(subscription)
  return unique
