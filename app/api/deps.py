"""Shared FastAPI dependencies for the push notification routes."""

from __future__ import annotations

from functools import lru_cache

from app.config import get_settings
from app.notifications.factory import build_notification_service, build_subscription_manager
from app.notifications.lifecycle import SubscriptionLifecycleManager
from app.notifications.service import NotificationDispatchService


@lru_cache(maxsize=1)
def get_notification_service() -> NotificationDispatchService:
  """Build the dispatch pipeline once per process."""
  return build_notification_service(get_settings())


@lru_cache(maxsize=1)
def get_subscription_manager() -> SubscriptionLifecycleManager:
  """Build the subscription lifecycle manager once per process."""
  return build_subscription_manager()
