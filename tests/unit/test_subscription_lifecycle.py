from __future__ import annotations

import dataclasses
import uuid

import pytest
from app.notifications.contracts import InvalidSubscriptionError, PushKeys, SubscriptionForbiddenError, SubscriptionNotFoundError
from app.notifications.lifecycle import SubscriptionLifecycleManager


ENDPOINT = "https://fcm.googleapis.com/fcm/send/device-token-1"
P256DH = "BEl6f5Y8X5Y_u7d8mV_AbpZfXfTLT3s1O3L4wM1x8QY2_5qWQ-jxJq7uKjv8mQ4I"
AUTH = "gq8Yh5xA9l2mQ6pR"
KEYS = PushKeys(p256dh=P256DH, auth=AUTH)


@pytest.mark.anyio
async def test_register_is_idempotent(store):
  manager = SubscriptionLifecycleManager(store=store)
  owner = uuid.uuid4()

  first = await manager.register(owner_id=owner, endpoint=ENDPOINT, keys=KEYS, user_agent="Firefox")
  second = await manager.register(owner_id=owner, endpoint=ENDPOINT, keys=KEYS)

  assert first.id == second.id
  assert len(store.rows) == 1
  assert first.user_agent == "Firefox"


@pytest.mark.anyio
async def test_register_by_another_user_keeps_original_owner(store):
  manager = SubscriptionLifecycleManager(store=store)
  owner, other = uuid.uuid4(), uuid.uuid4()

  await manager.register(owner_id=owner, endpoint=ENDPOINT, keys=KEYS)
  again = await manager.register(owner_id=other, endpoint=ENDPOINT, keys=PushKeys(p256dh="other", auth="other"))

  assert again.owner_id == owner
  assert again.keys == KEYS
  assert len(store.rows) == 1


@pytest.mark.anyio
@pytest.mark.parametrize("endpoint, keys", [("", KEYS), ("   ", KEYS), (None, KEYS), (ENDPOINT, None), (ENDPOINT, PushKeys(p256dh="", auth=AUTH)), (ENDPOINT, PushKeys(p256dh=P256DH, auth=" "))])
async def test_incomplete_registration_is_rejected(store, endpoint, keys):
  manager = SubscriptionLifecycleManager(store=store)
  with pytest.raises(InvalidSubscriptionError):
    await manager.register(owner_id=uuid.uuid4(), endpoint=endpoint, keys=keys)
  assert store.rows == {}


@pytest.mark.anyio
async def test_owner_can_unregister(store):
  manager = SubscriptionLifecycleManager(store=store)
  owner = uuid.uuid4()
  await manager.register(owner_id=owner, endpoint=ENDPOINT, keys=KEYS)

  await manager.unregister(requester_id=owner, endpoint=ENDPOINT)

  assert store.rows == {}


@pytest.mark.anyio
async def test_unregister_by_non_owner_is_forbidden(store):
  manager = SubscriptionLifecycleManager(store=store)
  await manager.register(owner_id=uuid.uuid4(), endpoint=ENDPOINT, keys=KEYS)

  with pytest.raises(SubscriptionForbiddenError):
    await manager.unregister(requester_id=uuid.uuid4(), endpoint=ENDPOINT)

  assert ENDPOINT in store.rows


@pytest.mark.anyio
async def test_unregister_leaves_row_recreated_by_another_user_after_lookup(store, monkeypatch):
  manager = SubscriptionLifecycleManager(store=store)
  owner, other = uuid.uuid4(), uuid.uuid4()
  original = await manager.register(owner_id=owner, endpoint=ENDPOINT, keys=KEYS)
  replacement = dataclasses.replace(original, id=uuid.uuid4(), owner_id=other)
  lookup = store.get_by_endpoint

  async def lookup_then_recreate(endpoint):
    found = await lookup(endpoint)
    # The owner's row is dropped and the endpoint re-registered by another user before the delete runs.
    store.rows[endpoint] = replacement
    return found

  monkeypatch.setattr(store, "get_by_endpoint", lookup_then_recreate)

  with pytest.raises(SubscriptionNotFoundError):
    await manager.unregister(requester_id=owner, endpoint=ENDPOINT)

  assert store.rows[ENDPOINT] == replacement
  assert store.deleted_ids == []


@pytest.mark.anyio
async def test_unregister_unknown_endpoint_is_not_found(store):
  manager = SubscriptionLifecycleManager(store=store)
  with pytest.raises(SubscriptionNotFoundError):
    await manager.unregister(requester_id=uuid.uuid4(), endpoint=ENDPOINT)


@pytest.mark.anyio
async def test_unregister_requires_endpoint(store):
  manager = SubscriptionLifecycleManager(store=store)
  with pytest.raises(InvalidSubscriptionError):
    await manager.unregister(requester_id=uuid.uuid4(), endpoint="")


@pytest.mark.anyio
async def test_unconditional_unregister_ignores_ownership(store):
  manager = SubscriptionLifecycleManager(store=store)
  await manager.register(owner_id=uuid.uuid4(), endpoint=ENDPOINT, keys=KEYS)

  await manager.unregister_unconditional(endpoint=ENDPOINT)

  assert store.rows == {}
  with pytest.raises(SubscriptionNotFoundError):
    await manager.unregister_unconditional(endpoint=ENDPOINT)


@pytest.mark.anyio
async def test_find_for_owner_hides_other_users_subscriptions(store):
  manager = SubscriptionLifecycleManager(store=store)
  owner = uuid.uuid4()
  await manager.register(owner_id=owner, endpoint=ENDPOINT, keys=KEYS)

  assert (await manager.find_for_owner(owner_id=owner, endpoint=ENDPOINT)).endpoint == ENDPOINT
  assert await manager.find_for_owner(owner_id=uuid.uuid4(), endpoint=ENDPOINT) is None
