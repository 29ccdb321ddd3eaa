"""Push notification transport implementations."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests
from pywebpush import WebPushException, webpush

from app.notifications.contracts import PushDeliveryError, PushSender, Subscription
from app.utils.endpoints import endpoint_host

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VapidConfig:
  """Configuration required to sign Web Push requests."""

  public_key: str
  private_key: str
  sub: str


class WebPushSender(PushSender):
  """`pywebpush` backed sender that reports every failure as `PushDeliveryError`.

  No retries happen here: a transient failure is reported once and left to the caller.
  """

  def __init__(self, *, vapid_config: VapidConfig, timeout_seconds: float = 10.0) -> None:
    self._vapid_config = vapid_config
    self._timeout_seconds = timeout_seconds

  def send(self, subscription: Subscription, data: str) -> None:
    """Encrypt and deliver a serialized payload to one endpoint."""
    subscription_info = {"endpoint": subscription.endpoint, "keys": {"p256dh": subscription.keys.p256dh, "auth": subscription.keys.auth}}

    # Sign with VAPID so browser push services can verify origin.
    try:
      webpush(subscription_info=subscription_info, data=data, vapid_private_key=self._vapid_config.private_key, vapid_claims={"sub": self._vapid_config.sub}, timeout=self._timeout_seconds)
    except WebPushException as exc:
      status_code = _extract_status_code(exc)
      raise PushDeliveryError(f"Push service rejected delivery (status={status_code if status_code is not None else 'unknown'}): {exc}", status_code=status_code) from exc
    except requests.exceptions.Timeout as exc:
      raise PushDeliveryError(f"Push delivery timed out after {self._timeout_seconds}s") from exc
    except requests.exceptions.RequestException as exc:
      raise PushDeliveryError(f"Push transport error: {exc}") from exc


class NullPushSender(PushSender):
  """No-op push sender used when push notifications are disabled or unconfigured."""

  def send(self, subscription: Subscription, data: str) -> None:
    """Drop the notification while recording a debug log."""
    logger.debug("Push notifications disabled; dropping push host=%s bytes=%d", endpoint_host(subscription.endpoint), len(data))


def _extract_status_code(exc: WebPushException) -> int | None:
  """Extract an HTTP status code from a pywebpush exception when available."""
  response = getattr(exc, "response", None)
  if response is None:
    return None

  status = getattr(response, "status_code", None)
  if isinstance(status, int):
    return status

  return None
