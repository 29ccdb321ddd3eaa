from __future__ import annotations

import json
from dataclasses import replace

import pytest
from app.config import get_settings
from app.notifications.contracts import InvalidPayloadError, NotificationPayload
from app.notifications.payload import DEFAULT_VIBRATION_PATTERN, PayloadDefaults, normalize_payload, serialize_payload


def test_normalize_fills_defaults_and_stamps_metadata():
  payload = normalize_payload(NotificationPayload(title=" Hello ", body="World", data={"path": ""}), defaults=PayloadDefaults(), timestamp_ms=123)

  assert payload.title == "Hello"
  assert payload.vibration == DEFAULT_VIBRATION_PATTERN
  assert [action.label for action in payload.actions] == ["Ouvrir", "Fermer"]
  assert payload.data == {"path": "/", "timestamp": 123}


def test_normalize_does_not_mutate_caller_data():
  data = {"kind": "reminder"}
  normalize_payload(NotificationPayload(title="a", body="b", data=data), defaults=PayloadDefaults(), timestamp_ms=1)
  assert data == {"kind": "reminder"}


@pytest.mark.parametrize("title, body", [("", "b"), ("a", ""), ("  ", "b")])
def test_normalize_rejects_empty_content(title, body):
  with pytest.raises(InvalidPayloadError):
    normalize_payload(NotificationPayload(title=title, body=body), defaults=PayloadDefaults(), timestamp_ms=1)


def test_serialize_rejects_unserializable_data():
  payload = normalize_payload(NotificationPayload(title="a", body="b"), defaults=PayloadDefaults(), timestamp_ms=1)
  with pytest.raises(InvalidPayloadError):
    serialize_payload(replace(payload, data={"when": object()}))


def test_serialize_keeps_non_ascii_text():
  payload = normalize_payload(NotificationPayload(title="Réunion", body="Salle 2"), defaults=PayloadDefaults(), timestamp_ms=1)
  assert "Réunion" in serialize_payload(payload)
  assert json.loads(serialize_payload(payload))["message"] == "Salle 2"


def test_defaults_follow_settings():
  settings = replace(get_settings(), push_default_icon="/brand.png", push_action_open_label="Open", push_action_close_label="Close")
  defaults = PayloadDefaults.from_settings(settings)

  assert defaults.icon == "/brand.png"
  assert [action.label for action in defaults.actions] == ["Open", "Close"]


def test_display_options_default_to_sticky_french_notifications():
  wire = json.loads(serialize_payload(normalize_payload(NotificationPayload(title="a", body="b"), defaults=PayloadDefaults(), timestamp_ms=1)))

  assert wire["renotify"] is True
  assert wire["requireInteraction"] is True
  assert wire["lang"] == "fr"


def test_display_options_follow_settings_and_sender_overrides():
  settings = replace(get_settings(), push_renotify=False, push_require_interaction=False, push_notification_lang=None)
  defaults = PayloadDefaults.from_settings(settings)

  wire = json.loads(serialize_payload(normalize_payload(NotificationPayload(title="a", body="b"), defaults=defaults, timestamp_ms=1)))
  assert wire["renotify"] is False
  assert wire["requireInteraction"] is False
  assert "lang" not in wire

  overridden = normalize_payload(NotificationPayload(title="a", body="b", renotify=True, lang="en"), defaults=defaults, timestamp_ms=1)
  assert overridden.renotify is True
  assert overridden.require_interaction is False
  assert overridden.lang == "en"


def test_settings_read_display_options_from_environment(monkeypatch):
  monkeypatch.setenv("PUSH_RENOTIFY", "false")
  monkeypatch.setenv("PUSH_NOTIFICATION_LANG", "")
  get_settings.cache_clear()
  try:
    settings = get_settings()
  finally:
    get_settings.cache_clear()

  assert settings.push_renotify is False
  assert settings.push_require_interaction is True
  assert settings.push_notification_lang is None
