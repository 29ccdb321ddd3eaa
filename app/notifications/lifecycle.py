"""Registration and removal of browser push subscriptions."""

from __future__ import annotations

import logging
import uuid

from app.notifications.contracts import InvalidSubscriptionError, PushKeys, Subscription, SubscriptionForbiddenError, SubscriptionNotFoundError, SubscriptionStore
from app.utils.endpoints import endpoint_host

logger = logging.getLogger(__name__)


class SubscriptionLifecycleManager:
  """Idempotent registration and owner-scoped removal of subscriptions."""

  def __init__(self, *, store: SubscriptionStore) -> None:
    self._store = store

  async def register(self, *, owner_id: uuid.UUID, endpoint: str | None, keys: PushKeys | None, user_agent: str | None = None) -> Subscription:
    """Store a subscription, or return the existing one for this endpoint unchanged."""
    normalized_endpoint = (endpoint or "").strip()
    p256dh = (keys.p256dh if keys else "").strip()
    auth = (keys.auth if keys else "").strip()
    if not normalized_endpoint or not p256dh or not auth:
      raise InvalidSubscriptionError("Incomplete subscription: endpoint, p256dh and auth are required.")

    existing = await self._store.get_by_endpoint(normalized_endpoint)
    if existing is not None:
      # Ownership is never reassigned on re-registration, even for a different caller.
      if existing.owner_id != owner_id:
        logger.warning("Endpoint re-registered by a different user host=%s owner=%s caller=%s", endpoint_host(normalized_endpoint), existing.owner_id, owner_id)
      return existing

    # The store resolves concurrent registrations of one endpoint through its unique key.
    subscription = await self._store.create_if_absent(owner_id=owner_id, endpoint=normalized_endpoint, keys=PushKeys(p256dh=p256dh, auth=auth), user_agent=user_agent)
    logger.info("Registered push subscription id=%s owner=%s host=%s", subscription.id, subscription.owner_id, endpoint_host(normalized_endpoint))
    return subscription

  async def find_for_owner(self, *, owner_id: uuid.UUID, endpoint: str) -> Subscription | None:
    """Return the caller's subscription for an endpoint so clients can re-derive their state."""
    subscription = await self._store.get_by_endpoint(endpoint.strip())
    if subscription is None or subscription.owner_id != owner_id:
      return None
    return subscription

  async def unregister(self, *, requester_id: uuid.UUID, endpoint: str | None) -> None:
    """Delete a subscription after checking that the requester owns it."""
    normalized_endpoint = (endpoint or "").strip()
    if not normalized_endpoint:
      raise InvalidSubscriptionError("Endpoint is required.")

    subscription = await self._store.get_by_endpoint(normalized_endpoint)
    if subscription is None:
      raise SubscriptionNotFoundError("Subscription not found.")

    if subscription.owner_id != requester_id:
      raise SubscriptionForbiddenError("You are not allowed to delete this subscription.")

    # By id: a row re-created under this endpoint after the lookup belongs to someone else.
    removed = await self._store.delete_by_id(subscription.id)
    if not removed:
      raise SubscriptionNotFoundError("Subscription not found.")
    logger.info("Unregistered push subscription id=%s owner=%s", subscription.id, requester_id)

  async def unregister_unconditional(self, *, endpoint: str | None) -> None:
    """Delete a subscription without an ownership check.

    Narrower-trust path kept for legacy clients only; prefer `unregister`.
    """
    normalized_endpoint = (endpoint or "").strip()
    if not normalized_endpoint:
      raise InvalidSubscriptionError("Endpoint is required.")

    removed = await self._store.delete_by_endpoint(normalized_endpoint)
    if not removed:
      raise SubscriptionNotFoundError("Subscription not found.")
    logger.warning("Push subscription removed without ownership check host=%s", endpoint_host(normalized_endpoint))
