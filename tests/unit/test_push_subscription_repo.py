from __future__ import annotations

import datetime
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from app.notifications.contracts import PushKeys
from app.notifications.push_subscription_repo import PushSubscriptionRepository
from app.schema.push_subscriptions import PushSubscriptionRecord
from app.services.rbac import list_user_ids_for_role
from sqlalchemy.dialects import postgresql


class _FakeResult:
  def __init__(self, *, scalar=None, scalars=None, rowcount: int = 0) -> None:
    self._scalar = scalar
    self._scalars = scalars or []
    self.rowcount = rowcount

  def scalar_one_or_none(self):
    return self._scalar

  def scalars(self):
    return SimpleNamespace(all=lambda: list(self._scalars))


class _FakeSession:
  def __init__(self, *results: _FakeResult) -> None:
    self._results = list(results)
    self.statements = []
    self.commit = AsyncMock()

  async def execute(self, stmt):
    self.statements.append(stmt)
    return self._results.pop(0)

  async def __aenter__(self):
    return self

  async def __aexit__(self, *exc_info):
    return False


def _sql(stmt) -> str:
  return str(stmt.compile(dialect=postgresql.dialect()))


def _row(owner_id: uuid.UUID, endpoint: str = "https://fcm.googleapis.com/fcm/send/abc") -> PushSubscriptionRecord:
  return PushSubscriptionRecord(id=uuid.uuid4(), owner_id=owner_id, endpoint=endpoint, p256dh="p256dh", auth="auth", user_agent="Firefox", created_at=datetime.datetime.now(datetime.UTC))


@pytest.mark.anyio
async def test_repository_without_database_reads_nothing(monkeypatch):
  monkeypatch.setattr("app.notifications.push_subscription_repo.get_session_factory", lambda: None)
  repo = PushSubscriptionRepository()

  assert await repo.get_by_endpoint("https://fcm.googleapis.com/fcm/send/abc") is None
  assert await repo.list_for_owner(uuid.uuid4()) == []
  assert await repo.delete_by_id(uuid.uuid4()) is False
  assert await repo.delete_by_endpoint("https://fcm.googleapis.com/fcm/send/abc") is False
  with pytest.raises(RuntimeError):
    await repo.create_if_absent(owner_id=uuid.uuid4(), endpoint="https://fcm.googleapis.com/fcm/send/abc", keys=PushKeys(p256dh="p", auth="a"))


@pytest.mark.anyio
async def test_create_if_absent_ignores_endpoint_conflicts(monkeypatch):
  owner = uuid.uuid4()
  stored = _row(owner)
  session = _FakeSession(_FakeResult(rowcount=0), _FakeResult(scalar=stored))
  monkeypatch.setattr("app.notifications.push_subscription_repo.get_session_factory", lambda: lambda: session)

  subscription = await PushSubscriptionRepository().create_if_absent(owner_id=uuid.uuid4(), endpoint=stored.endpoint, keys=PushKeys(p256dh="other", auth="other"))

  assert "ON CONFLICT (endpoint) DO NOTHING" in _sql(session.statements[0])
  session.commit.assert_awaited_once()
  # The stored row wins over the racing caller's values.
  assert subscription.owner_id == owner
  assert subscription.keys == PushKeys(p256dh="p256dh", auth="auth")
  assert subscription.id == stored.id


@pytest.mark.anyio
async def test_list_for_owners_maps_rows(monkeypatch):
  owner = uuid.uuid4()
  rows = [_row(owner, "https://fcm.googleapis.com/fcm/send/a"), _row(owner, "https://fcm.googleapis.com/fcm/send/b")]
  session = _FakeSession(_FakeResult(scalars=rows))
  monkeypatch.setattr("app.notifications.push_subscription_repo.get_session_factory", lambda: lambda: session)

  subscriptions = await PushSubscriptionRepository().list_for_owners([owner])

  assert [subscription.endpoint for subscription in subscriptions] == ["https://fcm.googleapis.com/fcm/send/a", "https://fcm.googleapis.com/fcm/send/b"]
  assert "ORDER BY web_push_subscriptions.created_at, web_push_subscriptions.id" in _sql(session.statements[0])


@pytest.mark.anyio
async def test_delete_reports_whether_a_row_was_removed(monkeypatch):
  session = _FakeSession(_FakeResult(rowcount=1), _FakeResult(rowcount=0))
  monkeypatch.setattr("app.notifications.push_subscription_repo.get_session_factory", lambda: lambda: session)
  repo = PushSubscriptionRepository()

  assert await repo.delete_by_id(uuid.uuid4()) is True
  assert await repo.delete_by_id(uuid.uuid4()) is False
  assert session.commit.await_count == 2


@pytest.mark.anyio
async def test_role_lookup_matches_by_name():
  session = _FakeSession(_FakeResult(scalars=[]))
  await list_user_ids_for_role(session, "STAFF")
  sql = _sql(session.statements[0])
  assert "roles.name" in sql
  assert "roles.id =" not in sql


@pytest.mark.anyio
async def test_role_lookup_also_matches_by_id_for_uuid_values():
  member = uuid.uuid4()
  session = _FakeSession(_FakeResult(scalars=[member]))

  assert await list_user_ids_for_role(session, str(uuid.uuid4())) == [member]
  assert "roles.id =" in _sql(session.statements[0])
