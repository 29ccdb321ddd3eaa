"""Classification of failed deliveries into transient and permanent failures."""

from __future__ import annotations

from typing import Protocol

from app.notifications.contracts import DeliveryOutcome, FailureKind

PERMANENT_STATUS_CODES = frozenset({404, 410})

# Matched case-insensitively against the transport's error text.
PERMANENT_ERROR_MARKERS = ("404", "410", "invalid", "expired", "unsubscribed", "not found", "gone", "received unexpected response code")


class FailureClassifier(Protocol):
  def classify(self, outcome: DeliveryOutcome) -> FailureKind: ...


class VocabularyFailureClassifier:
  """Label an endpoint dead when the push service says it no longer exists.

  A structured status code, when the transport provides one, decides alone:
  404/410 are permanent and every other code (5xx, 429, 413...) is transient,
  whatever the response body says. The error text is matched against a fixed
  vocabulary only when no status code is available.
  """

  def __init__(self, *, markers: tuple[str, ...] = PERMANENT_ERROR_MARKERS, status_codes: frozenset[int] = PERMANENT_STATUS_CODES) -> None:
    self._markers = tuple(marker.lower() for marker in markers)
    self._status_codes = status_codes

  def classify(self, outcome: DeliveryOutcome) -> FailureKind:
    """Return the failure kind for a failed outcome."""
    if outcome.succeeded:
      raise ValueError("Only failed delivery outcomes can be classified.")

    if outcome.status_code is not None:
      if outcome.status_code in self._status_codes:
        return FailureKind.PERMANENT
      return FailureKind.TRANSIENT

    message = (outcome.error_message or "").lower()
    if any(marker in message for marker in self._markers):
      return FailureKind.PERMANENT

    return FailureKind.TRANSIENT


def is_permanent_failure(classifier: FailureClassifier, outcome: DeliveryOutcome) -> bool:
  return not outcome.succeeded and classifier.classify(outcome) is FailureKind.PERMANENT
