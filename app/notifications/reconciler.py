"""Removal of permanently dead push subscriptions after a dispatch."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable

from app.notifications.classifier import FailureClassifier, is_permanent_failure
from app.notifications.contracts import DeliveryOutcome, Subscription, SubscriptionStore
from app.utils.endpoints import endpoint_host

logger = logging.getLogger(__name__)


class Reconciler:
  """Delete subscriptions whose delivery failed permanently."""

  def __init__(self, *, store: SubscriptionStore, classifier: FailureClassifier) -> None:
    self._store = store
    self._classifier = classifier

  def dead_subscriptions(self, outcomes: Iterable[DeliveryOutcome]) -> list[Subscription]:
    """Return permanently failed subscriptions, once each, in outcome order."""
    seen: set[uuid.UUID] = set()
    dead: list[Subscription] = []
    for outcome in outcomes:
      if outcome.subscription_id in seen or not is_permanent_failure(self._classifier, outcome):
        continue
      seen.add(outcome.subscription_id)
      dead.append(outcome.subscription)
    return dead

  async def reconcile(self, outcomes: Iterable[DeliveryOutcome]) -> int:
    """Delete dead subscriptions and return how many rows were actually removed."""
    deleted = 0
    for subscription in self.dead_subscriptions(outcomes):
      try:
        removed = await self._store.delete_by_id(subscription.id)
      except Exception as exc:  # noqa: BLE001
        # One failed delete must not stop the rest.
        logger.error("Failed deleting dead push subscription id=%s host=%s error=%s", subscription.id, endpoint_host(subscription.endpoint), exc, exc_info=True)
        continue

      if removed:
        deleted += 1

    if deleted:
      logger.info("Removed %d dead push subscription(s).", deleted)
    return deleted
