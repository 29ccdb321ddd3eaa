"""Concurrent fan-out of one notification to many push subscriptions."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

from starlette.concurrency import run_in_threadpool

from app.notifications.contracts import DeliveryOutcome, InvalidPayloadError, NotificationPayload, PushDeliveryError, PushSender, Subscription
from app.notifications.payload import PayloadDefaults, normalize_payload, serialize_payload
from app.utils.endpoints import endpoint_host

logger = logging.getLogger(__name__)


def _validate_subscriptions(subscriptions: Sequence[Subscription]) -> None:
  for subscription in subscriptions:
    if not subscription.endpoint or not subscription.keys.p256dh or not subscription.keys.auth:
      raise InvalidPayloadError(f"Subscription {subscription.id} is missing its endpoint or encryption keys.")


class DispatchEngine:
  """Send one payload to every subscription and settle all attempts.

  `outcomes[i]` always belongs to `subscriptions[i]`: each outcome carries its
  subscription, so later filtering cannot break the association.
  """

  def __init__(self, *, push_sender: PushSender, defaults: PayloadDefaults | None = None, max_concurrency: int = 32, clock: Callable[[], float] = time.time) -> None:
    if max_concurrency <= 0:
      raise ValueError("max_concurrency must be a positive integer.")
    self._push_sender = push_sender
    self._defaults = defaults or PayloadDefaults()
    self._max_concurrency = max_concurrency
    self._clock = clock

  async def dispatch(self, subscriptions: Sequence[Subscription], payload: NotificationPayload) -> list[DeliveryOutcome]:
    """Deliver the payload to each subscription concurrently and return one outcome per subscription."""
    # Reject malformed input before the first network call.
    _validate_subscriptions(subscriptions)
    normalized = normalize_payload(payload, defaults=self._defaults, timestamp_ms=int(self._clock() * 1000))
    data = serialize_payload(normalized)

    if not subscriptions:
      return []

    semaphore = asyncio.Semaphore(self._max_concurrency)

    async def _attempt(subscription: Subscription) -> DeliveryOutcome:
      async with semaphore:
        return await self._send_one(subscription, data)

    outcomes = await asyncio.gather(*(_attempt(subscription) for subscription in subscriptions))
    return list(outcomes)

  async def _send_one(self, subscription: Subscription, data: str) -> DeliveryOutcome:
    try:
      await run_in_threadpool(self._push_sender.send, subscription, data)
    except PushDeliveryError as exc:
      return DeliveryOutcome(subscription=subscription, succeeded=False, error_message=str(exc) or type(exc).__name__, status_code=exc.status_code)
    except Exception as exc:  # noqa: BLE001
      # A misbehaving transport must not take sibling attempts down with it.
      logger.error("Push transport raised unexpectedly host=%s error=%s", endpoint_host(subscription.endpoint), exc, exc_info=True)
      return DeliveryOutcome(subscription=subscription, succeeded=False, error_message=str(exc) or type(exc).__name__)

    return DeliveryOutcome(subscription=subscription, succeeded=True)
