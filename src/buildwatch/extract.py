"""Locate and decode the configuration block embedded in the monitored page.

The page carries its host context in a ``<script id="...">`` element whose body
is URL-encoded JSON. Extraction is a pure function over the page text and
distinguishes three outcomes: the block is absent, the block is present but
cannot be decoded, or the block decoded into a payload.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import re
from typing import Any, Union
from urllib.parse import unquote_to_bytes

from buildwatch.config import SETTINGS

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class ConfigFound:
    payload: Any


@dataclass(frozen=True)
class ConfigNotFound:
    marker_id: str


@dataclass(frozen=True)
class ConfigParseError:
    message: str


ExtractResult = Union[ConfigFound, ConfigNotFound, ConfigParseError]


def _marker_pattern(marker_id: str) -> re.Pattern:
    return re.compile(
        rf'<script id="{re.escape(marker_id)}"[^>]*>([\s\S]*?)</script>',
    )


def percent_decode(text: str) -> str:
    """Strict URL-component decoding.

    Raises ``ValueError`` for a ``%`` not followed by two hex digits or for
    escapes that do not form valid UTF-8.
    """
    if match := _MALFORMED_ESCAPE.search(text):
        raise ValueError(f"Malformed percent escape at offset {match.start()}")
    return unquote_to_bytes(text).decode("utf-8")


def extract_config(page_text: str, marker_id: str = SETTINGS.MARKER_ID) -> ExtractResult:
    match = _marker_pattern(marker_id).search(page_text)
    if match is None:
        return ConfigNotFound(marker_id)

    content = match.group(1).strip()
    try:
        decoded = percent_decode(content)
    except ValueError as exc:
        return ConfigParseError(f"Failed to decode config block: {exc}")

    try:
        payload = json.loads(decoded)
    except json.JSONDecodeError as exc:
        return ConfigParseError(f"Failed to parse config JSON: {exc}")

    return ConfigFound(payload)
