"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the push dispatch service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  push_notifications_enabled: bool
  push_vapid_public_key: str | None
  push_vapid_private_key: str | None
  push_vapid_sub: str | None
  push_send_timeout_seconds: float
  push_max_concurrent_sends: int
  push_default_icon: str
  push_default_badge: str
  push_action_open_label: str
  push_action_close_label: str
  push_renotify: bool
  push_require_interaction: bool
  push_notification_lang: str | None
  push_legacy_unsubscribe_enabled: bool


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("PUSH_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("PUSH_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("PUSH_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _resolve_vapid_sub() -> str | None:
  """Prefer an explicit VAPID subject and fall back to the contact mailbox."""
  explicit = _optional_str(os.getenv("PUSH_VAPID_SUB"))
  if explicit:
    return explicit

  email = _optional_str(os.getenv("PUSH_WEB_PUSH_EMAIL"))
  if email:
    return f"mailto:{email}"

  return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("PUSH_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("PUSH_DEBUG"))

  log_max_bytes = int(os.getenv("PUSH_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("PUSH_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("PUSH_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("PUSH_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("PUSH_LOG_HTTP_4XX"))

  pg_connect_timeout = int(os.getenv("PUSH_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("PUSH_PG_CONNECT_TIMEOUT must be a positive integer.")

  push_notifications_enabled = _parse_bool(os.getenv("PUSH_NOTIFICATIONS_ENABLED"))
  push_vapid_public_key = _optional_str(os.getenv("PUSH_VAPID_PUBLIC_KEY"))
  push_vapid_private_key = _optional_str(os.getenv("PUSH_VAPID_PRIVATE_KEY"))
  push_vapid_sub = _resolve_vapid_sub()

  push_send_timeout_seconds = float(os.getenv("PUSH_SEND_TIMEOUT_SECONDS", "10"))
  if push_send_timeout_seconds <= 0:
    raise ValueError("PUSH_SEND_TIMEOUT_SECONDS must be a positive number.")

  # Bound outbound connections so a large role fan-out cannot open one socket per device at once.
  push_max_concurrent_sends = int(os.getenv("PUSH_MAX_CONCURRENT_SENDS", "32"))
  if push_max_concurrent_sends <= 0:
    raise ValueError("PUSH_MAX_CONCURRENT_SENDS must be a positive integer.")

  # Validate push configuration only when push notifications are enabled.
  if push_notifications_enabled:
    if not push_vapid_public_key:
      raise ValueError("PUSH_VAPID_PUBLIC_KEY must be set when push notifications are enabled.")

    if not push_vapid_private_key:
      raise ValueError("PUSH_VAPID_PRIVATE_KEY must be set when push notifications are enabled.")

    if not push_vapid_sub:
      raise ValueError("PUSH_VAPID_SUB or PUSH_WEB_PUSH_EMAIL must be set when push notifications are enabled.")

    if not (push_vapid_sub.startswith("mailto:") or push_vapid_sub.startswith("https://")):
      raise ValueError("PUSH_VAPID_SUB must start with 'mailto:' or 'https://'.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("PUSH_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=os.getenv("PUSH_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=pg_connect_timeout,
    firebase_project_id=_optional_str(os.getenv("PUSH_FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("PUSH_FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    push_notifications_enabled=push_notifications_enabled,
    push_vapid_public_key=push_vapid_public_key,
    push_vapid_private_key=push_vapid_private_key,
    push_vapid_sub=push_vapid_sub,
    push_send_timeout_seconds=push_send_timeout_seconds,
    push_max_concurrent_sends=push_max_concurrent_sends,
    push_default_icon=(os.getenv("PUSH_DEFAULT_ICON") or "/icons/PWA/android/android-launchericon-144-144.png").strip(),
    push_default_badge=(os.getenv("PUSH_DEFAULT_BADGE") or "/icons/PWA/android/android-launchericon-48-48.png").strip(),
    push_action_open_label=(os.getenv("PUSH_ACTION_OPEN_LABEL") or "Ouvrir").strip(),
    push_action_close_label=(os.getenv("PUSH_ACTION_CLOSE_LABEL") or "Fermer").strip(),
    push_renotify=_parse_bool(os.getenv("PUSH_RENOTIFY", "true")),
    push_require_interaction=_parse_bool(os.getenv("PUSH_REQUIRE_INTERACTION", "true")),
    # Set PUSH_NOTIFICATION_LANG to an empty string to leave the language to the browser.
    push_notification_lang=_optional_str(os.getenv("PUSH_NOTIFICATION_LANG", "fr")),
    push_legacy_unsubscribe_enabled=_parse_bool(os.getenv("PUSH_LEGACY_UNSUBSCRIBE_ENABLED")),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations don't require unrelated env vars.
  debug = _parse_bool(os.getenv("PUSH_DEBUG"))
  pg_connect_timeout = int(os.getenv("PUSH_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("PUSH_PG_CONNECT_TIMEOUT must be a positive integer.")

  # Support fallback to DATABASE_URL for backward compatibility
  pg_dsn = os.getenv("PUSH_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
