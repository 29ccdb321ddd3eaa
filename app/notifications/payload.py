"""Normalization and wire serialization of notification payloads."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Any

from app.config import Settings
from app.notifications.contracts import InvalidPayloadError, NotificationAction, NotificationPayload

DEFAULT_ICON = "/icons/PWA/android/android-launchericon-144-144.png"
DEFAULT_BADGE = "/icons/PWA/android/android-launchericon-48-48.png"
DEFAULT_VIBRATION_PATTERN = (400, 100, 200)
DEFAULT_PATH = "/"
DEFAULT_LANG = "fr"


@dataclass(frozen=True)
class PayloadDefaults:
  """Values applied to every payload field the sender left empty."""

  icon: str = DEFAULT_ICON
  badge: str = DEFAULT_BADGE
  vibration: tuple[int, ...] = DEFAULT_VIBRATION_PATTERN
  actions: tuple[NotificationAction, ...] = (NotificationAction(action_id="open", label="Ouvrir"), NotificationAction(action_id="close", label="Fermer"))
  renotify: bool = True
  require_interaction: bool = True
  lang: str | None = DEFAULT_LANG

  @classmethod
  def from_settings(cls, settings: Settings) -> PayloadDefaults:
    actions = (NotificationAction(action_id="open", label=settings.push_action_open_label), NotificationAction(action_id="close", label=settings.push_action_close_label))
    return cls(icon=settings.push_default_icon, badge=settings.push_default_badge, actions=actions, renotify=settings.push_renotify, require_interaction=settings.push_require_interaction, lang=settings.push_notification_lang)


def normalize_payload(payload: NotificationPayload, *, defaults: PayloadDefaults, timestamp_ms: int) -> NotificationPayload:
  """Fill defaults and stamp dispatch metadata so every recipient gets the same payload."""
  title = (payload.title or "").strip()
  body = (payload.body or "").strip()
  if not title or not body:
    raise InvalidPayloadError("Notification title and body must be non-empty.")

  data = dict(payload.data or {})
  # An empty path is treated like a missing one.
  data["path"] = data.get("path") or DEFAULT_PATH
  data["timestamp"] = timestamp_ms

  return replace(
    payload,
    title=title,
    body=body,
    icon=payload.icon or defaults.icon,
    badge=payload.badge or defaults.badge,
    vibration=tuple(payload.vibration) if payload.vibration else defaults.vibration,
    actions=tuple(payload.actions) if payload.actions else defaults.actions,
    data=data,
    renotify=defaults.renotify if payload.renotify is None else payload.renotify,
    require_interaction=defaults.require_interaction if payload.require_interaction is None else payload.require_interaction,
    lang=payload.lang or defaults.lang,
  )


def _action_to_wire(action: NotificationAction) -> dict[str, str]:
  wire = {"action": action.action_id, "title": action.label}
  if action.icon:
    wire["icon"] = action.icon
  return wire


def serialize_payload(payload: NotificationPayload) -> str:
  """Encode a normalized payload in the shape the service worker reads."""
  wire: dict[str, Any] = {
    "title": payload.title,
    "body": payload.body,
    # Service workers written against the legacy API read `message`.
    "message": payload.body,
    "icon": payload.icon,
    "badge": payload.badge,
    "vibrate": list(payload.vibration or ()),
    "actions": [_action_to_wire(action) for action in payload.actions or ()],
    "data": payload.data,
    "renotify": bool(payload.renotify),
    "requireInteraction": bool(payload.require_interaction),
  }
  if payload.lang:
    wire["lang"] = payload.lang
  try:
    return json.dumps(wire, ensure_ascii=False, separators=(",", ":"))
  except (TypeError, ValueError) as exc:
    raise InvalidPayloadError(f"Notification data is not JSON serializable: {exc}") from exc
