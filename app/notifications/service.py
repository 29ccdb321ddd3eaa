"""Notification dispatch orchestration: resolve, fan out, classify, reconcile, report."""

from __future__ import annotations

import logging

from app.notifications.classifier import FailureClassifier
from app.notifications.contracts import DeliveryError, DeliveryOutcome, DispatchReport, DispatchRequest, DispatchStatus, InvalidRequestError, NotificationPayload, TargetSpec
from app.notifications.dispatcher import DispatchEngine
from app.notifications.reconciler import Reconciler
from app.notifications.resolver import TargetResolver
from app.utils.endpoints import endpoint_host

logger = logging.getLogger(__name__)


def build_dispatch_inputs(request: DispatchRequest) -> tuple[TargetSpec, NotificationPayload]:
  """Validate a raw request and split it into a target and a payload."""
  title = (request.title or "").strip()
  message = (request.message or "").strip()
  if not title or not message or request.target_type is None or request.target_id is None:
    raise InvalidRequestError("Missing data. Title, message and target are required.")

  target = TargetSpec.parse(request.target_type, request.target_id)
  payload = NotificationPayload(title=title, body=message, icon=request.icon, badge=request.badge, vibration=request.vibrate, actions=request.actions, data=dict(request.data or {}))
  return target, payload


def build_report(outcomes: list[DeliveryOutcome], *, deleted: int) -> DispatchReport:
  """Fold per-subscription outcomes into the caller-facing report."""
  sent = sum(1 for outcome in outcomes if outcome.succeeded)
  # Each outcome carries its own subscription, so filtering keeps endpoints correctly attributed.
  errors = tuple(DeliveryError(endpoint=outcome.endpoint, subscription_id=outcome.subscription_id, error_message=outcome.error_message or "Unknown delivery error") for outcome in outcomes if not outcome.succeeded)
  if sent > 0:
    status, message = DispatchStatus.SENT, f"{sent} notification(s) sent successfully"
  else:
    status, message = DispatchStatus.FAILED, "Failed to send notifications"
  return DispatchReport(status=status, message=message, sent_count=sent, failed_count=len(errors), total_count=len(outcomes), deleted_subscription_count=deleted, errors=errors)


class NotificationDispatchService:
  """Send one notification to a user or role and clean up dead endpoints."""

  def __init__(self, *, resolver: TargetResolver, engine: DispatchEngine, classifier: FailureClassifier, reconciler: Reconciler) -> None:
    self._resolver = resolver
    self._engine = engine
    self._classifier = classifier
    self._reconciler = reconciler

  async def dispatch_request(self, request: DispatchRequest) -> DispatchReport:
    """Validate a raw request, then dispatch it."""
    target, payload = build_dispatch_inputs(request)
    return await self.send(target, payload)

  async def send(self, target: TargetSpec, payload: NotificationPayload) -> DispatchReport:
    """Deliver a payload to every subscription of the target and report the outcome."""
    subscriptions = await self._resolver.resolve(target)
    if not subscriptions:
      logger.info("No push subscriptions for target kind=%s id=%s", target.kind.value, target.id)
      return DispatchReport(status=DispatchStatus.NO_RECIPIENTS, message=f"No subscription found for {target.kind.value} with id: {target.id}")

    logger.info("Dispatching push notification to %d subscription(s) target kind=%s id=%s", len(subscriptions), target.kind.value, target.id)
    outcomes = await self._engine.dispatch(subscriptions, payload)

    for outcome in outcomes:
      if outcome.succeeded:
        continue
      kind = self._classifier.classify(outcome)
      logger.warning("Push delivery failed host=%s kind=%s status=%s error=%s", endpoint_host(outcome.endpoint), kind.value, outcome.status_code, outcome.error_message)

    deleted = await self._reconciler.reconcile(outcomes)
    report = build_report(outcomes, deleted=deleted)
    logger.info("Push dispatch finished sent=%d failed=%d total=%d deleted=%d", report.sent_count, report.failed_count, report.total_count, report.deleted_subscription_count)
    return report
