"""Test configuration for importing the application package."""

from __future__ import annotations

import datetime
import os
import sys
import threading
import uuid
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

# Settings are loaded at import time; provide the minimum runtime contract before importing the app.
os.environ.setdefault("PUSH_ALLOWED_ORIGINS", "http://localhost:3000")
os.environ.setdefault("PUSH_NOTIFICATIONS_ENABLED", "false")

import pytest  # noqa: E402

from app.notifications.contracts import PushDeliveryError, PushKeys, Subscription  # noqa: E402

P256DH = "BEl6f5Y8X5Y_u7d8mV_AbpZfXfTLT3s1O3L4wM1x8QY2_5qWQ-jxJq7uKjv8mQ4I"
AUTH = "gq8Yh5xA9l2mQ6pR"


class InMemorySubscriptionStore:
  """Subscription store keyed by endpoint, with hooks for injecting delete failures."""

  def __init__(self) -> None:
    self.rows: dict[str, Subscription] = {}
    self.failing_deletes: set[uuid.UUID] = set()
    self.deleted_ids: list[uuid.UUID] = []

  def add(self, subscription: Subscription) -> Subscription:
    self.rows[subscription.endpoint] = subscription
    return subscription

  async def get_by_endpoint(self, endpoint: str) -> Subscription | None:
    return self.rows.get(endpoint)

  async def create_if_absent(self, *, owner_id: uuid.UUID, endpoint: str, keys: PushKeys, user_agent: str | None = None) -> Subscription:
    if endpoint not in self.rows:
      self.rows[endpoint] = Subscription(id=uuid.uuid4(), owner_id=owner_id, endpoint=endpoint, keys=keys, created_at=datetime.datetime.now(datetime.UTC), user_agent=user_agent)
    return self.rows[endpoint]

  async def list_for_owner(self, owner_id: uuid.UUID) -> list[Subscription]:
    return [row for row in self.rows.values() if row.owner_id == owner_id]

  async def list_for_owners(self, owner_ids: list[uuid.UUID]) -> list[Subscription]:
    wanted = set(owner_ids)
    return [row for row in self.rows.values() if row.owner_id in wanted]

  async def delete_by_id(self, subscription_id: uuid.UUID) -> bool:
    if subscription_id in self.failing_deletes:
      raise RuntimeError("database unavailable")
    for endpoint, row in list(self.rows.items()):
      if row.id == subscription_id:
        del self.rows[endpoint]
        self.deleted_ids.append(subscription_id)
        return True
    return False

  async def delete_by_endpoint(self, endpoint: str) -> bool:
    return self.rows.pop(endpoint, None) is not None


class StaticRoleDirectory:
  def __init__(self, members: dict[str, list[uuid.UUID]] | None = None) -> None:
    self.members = members or {}

  async def list_member_ids(self, role: str) -> list[uuid.UUID]:
    return list(self.members.get(role, []))


class ScriptedPushSender:
  """Push transport that fails selected endpoints and records every attempt."""

  def __init__(self, failures: dict[str, Exception] | None = None) -> None:
    self.failures = failures or {}
    self.sent: list[tuple[str, str]] = []
    self._lock = threading.Lock()

  def send(self, subscription: Subscription, data: str) -> None:
    with self._lock:
      self.sent.append((subscription.endpoint, data))
    failure = self.failures.get(subscription.endpoint)
    if failure is not None:
      raise failure


def make_subscription(owner_id: uuid.UUID | None = None, *, endpoint: str | None = None, p256dh: str = P256DH, auth: str = AUTH) -> Subscription:
  return Subscription(
    id=uuid.uuid4(), owner_id=owner_id or uuid.uuid4(), endpoint=endpoint or f"https://fcm.googleapis.com/fcm/send/{uuid.uuid4().hex}", keys=PushKeys(p256dh=p256dh, auth=auth), created_at=datetime.datetime.now(datetime.UTC)
  )


def gone(status_code: int = 410) -> PushDeliveryError:
  return PushDeliveryError(f"Push failed: {status_code} Gone", status_code=status_code)


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def store() -> InMemorySubscriptionStore:
  return InMemorySubscriptionStore()


@pytest.fixture
def roles() -> StaticRoleDirectory:
  return StaticRoleDirectory()


@pytest.fixture
def subscription_factory():
  return make_subscription


@pytest.fixture
def gone_error():
  return gone


@pytest.fixture
def sender_factory():
  return ScriptedPushSender
