"""Contracts for push subscription lifecycle and notification dispatch."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any, Protocol


class TargetKind(str, Enum):
  USER = "user"
  ROLE = "role"


class FailureKind(str, Enum):
  TRANSIENT = "transient"
  PERMANENT = "permanent"


class DispatchStatus(str, Enum):
  SENT = "sent"
  FAILED = "failed"
  NO_RECIPIENTS = "no_recipients"


class PushDispatchError(Exception):
  """Base class for caller-facing errors that abort a subscription or dispatch operation."""

  status_code: int = HTTPStatus.BAD_REQUEST


class InvalidRequestError(PushDispatchError):
  """Raised when a dispatch request is missing its title, message or target."""


class InvalidTargetError(PushDispatchError):
  """Raised when a target kind is unknown or its id cannot identify a recipient."""


class InvalidSubscriptionError(PushDispatchError):
  """Raised when a registration lacks an endpoint or one of its keys."""


class InvalidPayloadError(PushDispatchError):
  """Raised before any network attempt when the batch cannot be encrypted or rendered."""


class SubscriptionNotFoundError(PushDispatchError):
  """Raised when no subscription exists for the requested endpoint."""

  status_code = HTTPStatus.NOT_FOUND


class SubscriptionForbiddenError(PushDispatchError):
  """Raised when a caller tries to remove a subscription they do not own."""

  status_code = HTTPStatus.FORBIDDEN


class PushDeliveryError(Exception):
  """Raised by a push transport when a single delivery attempt fails."""

  def __init__(self, message: str, *, status_code: int | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code


@dataclass(frozen=True)
class TargetSpec:
  """Logical recipient descriptor: one user, or every user holding a role."""

  kind: TargetKind
  id: str

  @classmethod
  def parse(cls, kind: str | None, target_id: str | None) -> TargetSpec:
    """Build a target from raw request values, rejecting unknown kinds."""
    normalized_id = (target_id or "").strip()
    if not normalized_id:
      raise InvalidRequestError("Target id is required.")

    normalized_kind = (kind or "").strip().lower()
    try:
      target_kind = TargetKind(normalized_kind)
    except ValueError as exc:
      raise InvalidTargetError(f'Invalid target type: {kind}. Use "user" or "role".') from exc

    return cls(kind=target_kind, id=normalized_id)


@dataclass(frozen=True)
class PushKeys:
  """Browser key material the push transport needs to encrypt payloads."""

  p256dh: str
  auth: str


@dataclass(frozen=True)
class Subscription:
  """A registered push endpoint owned by one user."""

  id: uuid.UUID
  owner_id: uuid.UUID
  endpoint: str
  keys: PushKeys
  created_at: datetime.datetime | None = None
  user_agent: str | None = None


@dataclass(frozen=True)
class NotificationAction:
  action_id: str
  label: str
  icon: str | None = None


@dataclass(frozen=True)
class NotificationPayload:
  """Notification content; optional fields are filled from defaults at dispatch time."""

  title: str
  body: str
  icon: str | None = None
  badge: str | None = None
  vibration: tuple[int, ...] | None = None
  actions: tuple[NotificationAction, ...] | None = None
  data: dict[str, Any] = field(default_factory=dict)
  renotify: bool | None = None
  require_interaction: bool | None = None
  lang: str | None = None


@dataclass(frozen=True)
class DeliveryOutcome:
  """Result of one send attempt, bound to the subscription it was sent to."""

  subscription: Subscription
  succeeded: bool
  error_message: str | None = None
  status_code: int | None = None

  @property
  def subscription_id(self) -> uuid.UUID:
    return self.subscription.id

  @property
  def endpoint(self) -> str:
    return self.subscription.endpoint


@dataclass(frozen=True)
class DeliveryError:
  endpoint: str
  subscription_id: uuid.UUID
  error_message: str


@dataclass(frozen=True)
class DispatchReport:
  """Aggregate result of one dispatch request."""

  status: DispatchStatus
  message: str
  sent_count: int = 0
  failed_count: int = 0
  total_count: int = 0
  deleted_subscription_count: int = 0
  errors: tuple[DeliveryError, ...] = ()

  @property
  def success(self) -> bool:
    return self.sent_count > 0

  def to_response(self) -> dict[str, Any]:
    """Render the report as the dispatch endpoint's JSON body."""
    body: dict[str, Any] = {
      "success": self.success,
      "status": self.status.value,
      "message": self.message,
      "sent": self.sent_count,
      "failed": self.failed_count,
      "total": self.total_count,
      "deleted": self.deleted_subscription_count,
    }
    if self.errors:
      body["errors"] = [{"endpoint": error.endpoint, "subscriptionId": str(error.subscription_id), "error": error.error_message} for error in self.errors]
    return body


@dataclass(frozen=True)
class DispatchRequest:
  """Raw dispatch request as received from an operator, before validation."""

  title: str | None
  message: str | None
  target_type: str | None
  target_id: str | None
  data: dict[str, Any] | None = None
  icon: str | None = None
  badge: str | None = None
  vibrate: tuple[int, ...] | None = None
  actions: tuple[NotificationAction, ...] | None = None


class PushSender(Protocol):
  """Delivery contract for a single push endpoint."""

  def send(self, subscription: Subscription, data: str) -> None:
    """Deliver a serialized payload synchronously or raise `PushDeliveryError`."""


class SubscriptionStore(Protocol):
  """Durable subscription storage keyed by endpoint."""

  async def get_by_endpoint(self, endpoint: str) -> Subscription | None: ...

  async def create_if_absent(self, *, owner_id: uuid.UUID, endpoint: str, keys: PushKeys, user_agent: str | None = None) -> Subscription: ...

  async def list_for_owner(self, owner_id: uuid.UUID) -> list[Subscription]: ...

  async def list_for_owners(self, owner_ids: list[uuid.UUID]) -> list[Subscription]: ...

  async def delete_by_id(self, subscription_id: uuid.UUID) -> bool: ...

  async def delete_by_endpoint(self, endpoint: str) -> bool: ...


class RoleMembershipLookup(Protocol):
  """Resolves which users hold a role."""

  async def list_member_ids(self, role: str) -> list[uuid.UUID]: ...
