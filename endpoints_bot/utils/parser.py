"""
Message grammar for the Endpoints bot.

Users talk to the bot with a handful of fixed prefixes:
- "list" or "/list"                  -> list all endpoints
- "scan: category\\ncontent..."       -> set prompt, optionally scan content
- "text: content..."                 -> scan content with the last prompt
- "get: /category/slug"              -> fetch endpoint data
- "file: /category/slug/name.pdf"    -> fetch a single file

Parsing is total: anything else is "unknown", never an exception.
"""

import re
from typing import Optional

from endpoints_bot.models import ParsedMessage

MAX_INPUT_LENGTH = 1000
MAX_CAPTION_LENGTH = 100

COMMAND_PREFIXES = ("scan:", "text:", "get:", "file:")

_SCAN_RE = re.compile(r"^scan:\s*(.+)", re.IGNORECASE | re.DOTALL)
_TEXT_RE = re.compile(r"^text:\s*(.+)", re.IGNORECASE | re.DOTALL)
_GET_RE = re.compile(r"^get:\s*(.+)", re.IGNORECASE)
_FILE_RE = re.compile(r"^file:\s*(.+)", re.IGNORECASE)
_ANGLE_BRACKETS_RE = re.compile(r"[<>]")


def _normalize_path(raw: str) -> str:
    path = raw.strip()
    if not path.startswith("/"):
        path = "/" + path
    return path


def parse_message(text: str) -> ParsedMessage:
    """Classify a user message into one of the fixed intents."""
    trimmed = (text or "").strip()
    lower = trimmed.lower()

    if lower in ("list", "/list"):
        return ParsedMessage(type="list")

    # "scan: category" or "scan: category\nContent here..."
    match = _SCAN_RE.match(trimmed)
    if match:
        lines = match.group(1).split("\n")
        prompt = lines[0].strip()
        content = "\n".join(lines[1:]).strip()
        return ParsedMessage(type="scan", prompt=prompt, content=content or None)

    # "text: Content to scan..." (uses last prompt)
    match = _TEXT_RE.match(trimmed)
    if match:
        return ParsedMessage(type="text", content=match.group(1).strip())

    match = _GET_RE.match(trimmed)
    if match:
        return ParsedMessage(type="get", path=_normalize_path(match.group(1)))

    match = _FILE_RE.match(trimmed)
    if match:
        return ParsedMessage(type="file", path=_normalize_path(match.group(1)))

    return ParsedMessage(type="unknown")


def is_file_caption(text: str) -> bool:
    """
    Check if an upload caption is a usable prompt rather than a command.

    Captions are short category names like "job tracker" or "receipts".
    """
    trimmed = (text or "").strip()
    lower = trimmed.lower()

    if lower.startswith(COMMAND_PREFIXES) or lower == "list" or lower.startswith("/"):
        return False

    return 0 < len(trimmed) < MAX_CAPTION_LENGTH


def sanitize(value: str) -> str:
    """
    Strip angle brackets, trim and cap length.

    Applied to everything sent to the Endpoints API or echoed to the user.
    Trailing whitespace is trimmed again after truncation so the result is
    stable under repeated application.
    """
    cleaned = _ANGLE_BRACKETS_RE.sub("", value or "").strip()
    return cleaned[:MAX_INPUT_LENGTH].rstrip()


def parse_path(path: str) -> Optional[dict]:
    """
    Split an endpoint path into category and slug.

    "/job-tracker/january" -> {"category": "job-tracker", "slug": "january"}
    "/job-tracker"         -> {"category": "job-tracker", "slug": None}
    """
    parts = [part for part in (path or "").strip("/").split("/") if part]
    if not parts:
        return None

    return {
        "category": parts[0],
        "slug": "/".join(parts[1:]) if len(parts) > 1 else None,
    }
