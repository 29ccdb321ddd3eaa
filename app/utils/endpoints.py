"""Helpers for handling push endpoint URLs."""

from __future__ import annotations

import urllib.parse


def endpoint_host(endpoint: str) -> str:
  """Return only the push service host so logs never carry full endpoint tokens."""
  return urllib.parse.urlparse(endpoint).hostname or "<unknown>"
