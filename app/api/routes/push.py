"""Routes for Web Push subscription lifecycle management and notification dispatch."""

from __future__ import annotations

import logging
import re
import urllib.parse
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from app.api.deps import get_notification_service, get_subscription_manager
from app.config import Settings, get_settings
from app.core.security import get_current_active_user
from app.notifications.contracts import DispatchRequest, NotificationAction, PushDispatchError, PushKeys, Subscription
from app.notifications.lifecycle import SubscriptionLifecycleManager
from app.notifications.service import NotificationDispatchService
from app.schema.sql import User

logger = logging.getLogger(__name__)

_BASE64_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")

router = APIRouter()


def _normalize_endpoint(value: str) -> str:
  """Require HTTPS endpoints; empty values are left for the lifecycle manager to reject."""
  normalized = value.strip()
  if not normalized:
    return normalized

  parsed = urllib.parse.urlparse(normalized)
  if parsed.scheme.lower() != "https" or not parsed.hostname:
    raise PydanticCustomError("push_endpoint_https", "endpoint must be an https URL.")

  return normalized


def _normalize_key(value: str, *, name: str) -> str:
  normalized = value.strip()
  if normalized and not _BASE64_RE.fullmatch(normalized):
    raise PydanticCustomError("push_key_format", "{name} must be base64url encoded.", {"name": name})
  return normalized


class PushSubscriptionKeys(BaseModel):
  """Browser-provided key material for Web Push encryption."""

  p256dh: str = Field(default="", max_length=512)
  auth: str = Field(default="", max_length=256)
  model_config = ConfigDict(extra="forbid")

  @field_validator("p256dh")
  @classmethod
  def validate_p256dh(cls, value: str) -> str:
    return _normalize_key(value, name="p256dh")

  @field_validator("auth")
  @classmethod
  def validate_auth(cls, value: str) -> str:
    return _normalize_key(value, name="auth")


class PushSubscribeRequest(BaseModel):
  """Standard browser push subscription object payload."""

  endpoint: str = Field(default="", max_length=2048)
  expiration_time: int | None = Field(default=None, alias="expirationTime")
  keys: PushSubscriptionKeys | None = None
  model_config = ConfigDict(extra="forbid", populate_by_name=True)

  @field_validator("endpoint")
  @classmethod
  def validate_endpoint(cls, value: str) -> str:
    return _normalize_endpoint(value)


class PushUnsubscribeRequest(BaseModel):
  """Payload for deleting an existing push subscription."""

  endpoint: str = Field(default="", max_length=2048)
  model_config = ConfigDict(extra="ignore")

  @field_validator("endpoint")
  @classmethod
  def validate_endpoint(cls, value: str) -> str:
    return value.strip()


class NotificationActionBody(BaseModel):
  action: str = Field(min_length=1, max_length=64)
  title: str = Field(min_length=1, max_length=128)
  icon: str | None = None


class DispatchTargetBody(BaseModel):
  type: str | None = None
  id: str | int | None = None


class DispatchRequestBody(BaseModel):
  """Operator request to notify a user or every user holding a role."""

  title: str | None = None
  message: str | None = None
  target: DispatchTargetBody | None = None
  data: dict[str, Any] | None = None
  icon: str | None = None
  badge: str | None = None
  vibrate: list[int] | None = None
  actions: list[NotificationActionBody] | None = None

  def to_dispatch_request(self) -> DispatchRequest:
    target_id = None if self.target is None or self.target.id is None else str(self.target.id)
    actions = tuple(NotificationAction(action_id=item.action, label=item.title, icon=item.icon) for item in self.actions) if self.actions else None
    return DispatchRequest(
      title=self.title,
      message=self.message,
      target_type=self.target.type if self.target else None,
      target_id=target_id,
      data=self.data,
      icon=self.icon,
      badge=self.badge,
      vibrate=tuple(self.vibrate) if self.vibrate else None,
      actions=actions,
    )


def _subscription_body(subscription: Subscription) -> dict[str, str]:
  return {"endpoint": subscription.endpoint, "p256dh": subscription.keys.p256dh, "auth": subscription.keys.auth}


@router.get("/vapid-public-key")
async def get_vapid_public_key(settings: Settings = Depends(get_settings)) -> dict[str, str]:  # noqa: B008
  """Expose the VAPID public key browsers need to create a subscription."""
  if not settings.push_vapid_public_key:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Push notifications are not configured")
  return {"publicKey": settings.push_vapid_public_key}


@router.post("/subscribe")
async def subscribe_to_push(
  payload: PushSubscribeRequest,
  current_user: User = Depends(get_current_active_user),  # noqa: B008
  manager: SubscriptionLifecycleManager = Depends(get_subscription_manager),  # noqa: B008
  user_agent: str | None = Header(default=None),
) -> dict[str, Any]:
  """Register the authenticated user's browser push subscription, idempotent by endpoint."""
  # Clamp user agent size to reduce storage abuse while keeping device context.
  normalized_user_agent = None
  if user_agent:
    normalized_user_agent = user_agent.strip()[:512] or None
  keys = PushKeys(p256dh=payload.keys.p256dh, auth=payload.keys.auth) if payload.keys else None

  try:
    subscription = await manager.register(owner_id=current_user.id, endpoint=payload.endpoint, keys=keys, user_agent=normalized_user_agent)
  except PushDispatchError:
    raise
  except Exception as exc:  # noqa: BLE001
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save push subscription") from exc

  return {"success": True, "message": "Subscription registered", "subscription": _subscription_body(subscription)}


@router.get("/subscription")
async def get_push_subscription(
  endpoint: str = Query(min_length=1, max_length=2048),
  current_user: User = Depends(get_current_active_user),  # noqa: B008
  manager: SubscriptionLifecycleManager = Depends(get_subscription_manager),  # noqa: B008
) -> dict[str, Any]:
  """Report whether this browser's endpoint is registered to the caller."""
  subscription = await manager.find_for_owner(owner_id=current_user.id, endpoint=endpoint)
  return {"subscribed": subscription is not None, "endpoint": endpoint.strip()}


@router.post("/unsubscribe")
async def unsubscribe_from_push(
  payload: PushUnsubscribeRequest,
  current_user: User = Depends(get_current_active_user),  # noqa: B008
  manager: SubscriptionLifecycleManager = Depends(get_subscription_manager),  # noqa: B008
) -> dict[str, Any]:
  """Delete a push subscription owned by the authenticated user."""
  await manager.unregister(requester_id=current_user.id, endpoint=payload.endpoint)
  return {"success": True, "message": "Subscription deleted"}


@router.delete("/subscribe")
async def legacy_unsubscribe_from_push(
  payload: PushUnsubscribeRequest,
  current_user: User = Depends(get_current_active_user),  # noqa: B008
  manager: SubscriptionLifecycleManager = Depends(get_subscription_manager),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
) -> dict[str, Any]:
  """Deprecated unsubscribe that skips the ownership check; use POST /unsubscribe."""
  if not settings.push_legacy_unsubscribe_enabled:
    raise HTTPException(status_code=status.HTTP_410_GONE, detail="Legacy unsubscribe is disabled; use POST /v1/push/unsubscribe")

  logger.warning("Legacy unsubscribe used by user_id=%s", current_user.id)
  await manager.unregister_unconditional(endpoint=payload.endpoint)
  return {"success": True, "message": "Subscription deleted"}


@router.post("/send")
async def send_push_notification(
  payload: DispatchRequestBody,
  current_user: User = Depends(get_current_active_user),  # noqa: B008
  service: NotificationDispatchService = Depends(get_notification_service),  # noqa: B008
) -> dict[str, Any]:
  """Send a notification to a user or a role and report per-endpoint results."""
  logger.info("Push dispatch requested by user_id=%s", current_user.id)
  report = await service.dispatch_request(payload.to_dispatch_request())
  return report.to_response()
