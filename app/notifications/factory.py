"""Factory helpers for notification services."""

from __future__ import annotations

import logging

from app.config import Settings
from app.notifications.classifier import VocabularyFailureClassifier
from app.notifications.contracts import PushSender, RoleMembershipLookup, SubscriptionStore
from app.notifications.dispatcher import DispatchEngine
from app.notifications.lifecycle import SubscriptionLifecycleManager
from app.notifications.payload import PayloadDefaults
from app.notifications.push_sender import NullPushSender, VapidConfig, WebPushSender
from app.notifications.push_subscription_repo import PushSubscriptionRepository
from app.notifications.reconciler import Reconciler
from app.notifications.resolver import TargetResolver
from app.notifications.service import NotificationDispatchService
from app.services.rbac import RoleMembershipRepository

logger = logging.getLogger(__name__)


def build_push_sender(settings: Settings) -> PushSender:
  """Select the Web Push transport, or a no-op sender when push is not configured."""
  if settings.push_notifications_enabled and settings.push_vapid_public_key and settings.push_vapid_private_key and settings.push_vapid_sub:
    vapid_config = VapidConfig(public_key=settings.push_vapid_public_key, private_key=settings.push_vapid_private_key, sub=settings.push_vapid_sub)
    return WebPushSender(vapid_config=vapid_config, timeout_seconds=settings.push_send_timeout_seconds)

  logger.info("Push notifications disabled or VAPID keys missing; using NullPushSender.")
  return NullPushSender()


def build_notification_service(settings: Settings, *, store: SubscriptionStore | None = None, roles: RoleMembershipLookup | None = None, push_sender: PushSender | None = None) -> NotificationDispatchService:
  """Construct the dispatch pipeline based on environment configuration."""
  effective_store: SubscriptionStore = store if store is not None else PushSubscriptionRepository()
  effective_roles: RoleMembershipLookup = roles if roles is not None else RoleMembershipRepository()
  effective_sender = push_sender if push_sender is not None else build_push_sender(settings)

  classifier = VocabularyFailureClassifier()
  engine = DispatchEngine(push_sender=effective_sender, defaults=PayloadDefaults.from_settings(settings), max_concurrency=settings.push_max_concurrent_sends)
  return NotificationDispatchService(
    resolver=TargetResolver(store=effective_store, roles=effective_roles), engine=engine, classifier=classifier, reconciler=Reconciler(store=effective_store, classifier=classifier)
  )


def build_subscription_manager(*, store: SubscriptionStore | None = None) -> SubscriptionLifecycleManager:
  """Construct the lifecycle manager over the configured subscription store."""
  return SubscriptionLifecycleManager(store=store if store is not None else PushSubscriptionRepository())
