"""
Inline keyboard layouts.

Buttons are plain Bot API dicts so they can go straight into
reply_markup.inline_keyboard.
"""

from typing import Optional

from endpoints_bot.config import get_settings
from endpoints_bot.models import EndpointListItem
from .events import Buttons

MAX_ENDPOINT_BUTTONS = 10

# Telegram rejects callback_data longer than this many bytes
MAX_CALLBACK_DATA_BYTES = 64

# Callback payloads for the pending-file decision
FILE_MODE_ROWS = "file_mode:rows"
FILE_MODE_WHOLE = "file_mode:whole"
FILE_MODE_CANCEL = "file_mode:cancel"


def _web_url(path: str = "") -> str:
    return f"{get_settings().endpoints_web_url.rstrip('/')}{path}"


def _path_callback(action: str, path: str) -> Optional[str]:
    """Callback payload for a path action, or None if it exceeds the Telegram limit."""
    data = f"{action}:{path}"
    if len(data.encode("utf-8")) > MAX_CALLBACK_DATA_BYTES:
        return None
    return data


def welcome_keyboard() -> Buttons:
    return [
        [{"text": "🔑 Get API Key", "url": _web_url("/api-keys")}],
        [
            {"text": "📖 How it works", "callback_data": "help"},
            {"text": "⚙️ Setup API Key", "callback_data": "setup"},
        ],
    ]


def setup_keyboard() -> Buttons:
    return [
        [{"text": "🔑 Get API Key", "url": _web_url("/api-keys")}],
        [{"text": "✅ I have my key", "callback_data": "setup_ready"}],
    ]


def api_key_saved_keyboard() -> Buttons:
    return [[
        {"text": "📊 Check Status", "callback_data": "status"},
        {"text": "📋 List Endpoints", "callback_data": "list"},
    ]]


def endpoints_list_keyboard(endpoints: list[EndpointListItem]) -> Buttons:
    """One button per endpoint, grouped by category, capped for Telegram limits."""
    by_category: dict[str, list[EndpointListItem]] = {}
    for endpoint in endpoints:
        by_category.setdefault(endpoint.category, []).append(endpoint)

    ordered = [endpoint for group in by_category.values() for endpoint in group]
    buttons = []
    for endpoint in ordered[:MAX_ENDPOINT_BUTTONS]:
        callback = _path_callback("get", endpoint.path)
        if callback:
            buttons.append([{"text": f"📁 {endpoint.path}", "callback_data": callback}])
        else:
            buttons.append([{"text": f"📁 {endpoint.path}", "url": _web_url(endpoint.path)}])

    if len(endpoints) > MAX_ENDPOINT_BUTTONS:
        buttons.append([{"text": "📖 View all on web", "callback_data": "web_link"}])

    return buttons


def endpoint_detail_keyboard(path: str) -> Buttons:
    row = []
    callback = _path_callback("refresh", path)
    if callback:
        row.append({"text": "🔄 Refresh", "callback_data": callback})
    row.append({"text": "🌐 View on web", "url": _web_url(path)})
    return [row]


def error_help_keyboard() -> Buttons:
    return [[
        {"text": "📖 Show Help", "callback_data": "help"},
        {"text": "⚙️ Setup", "callback_data": "setup"},
    ]]


def scan_success_keyboard(path: str) -> Buttons:
    buttons = []
    callback = _path_callback("get", path)
    if callback:
        buttons.append([{"text": "📁 View Endpoint", "callback_data": callback}])
    buttons.append([{"text": "🌐 Open in Browser", "url": _web_url(path)}])
    return buttons


def file_mode_keyboard() -> Buttons:
    return [
        [
            {"text": "✅ One item per row", "callback_data": FILE_MODE_ROWS},
            {"text": "📄 Whole file", "callback_data": FILE_MODE_WHOLE},
        ],
        [{"text": "❌ Cancel", "callback_data": FILE_MODE_CANCEL}],
    ]
