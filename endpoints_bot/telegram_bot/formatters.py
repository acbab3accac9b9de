"""
User-facing message text (Telegram Markdown).
"""

import json
import re
from datetime import datetime

from endpoints_bot.models import (
    EndpointDataResult,
    EndpointListItem,
    ScanResult,
    StatsResult,
)

# Legacy Markdown parse mode only treats these as markup
_MARKDOWN_SPECIAL_RE = re.compile(r"([_*`\[])")


def format_welcome() -> str:
    return """🚀 *Welcome to Endpoints Bot!*

I help you scan documents and manage your endpoints from Telegram.

To get started, I need your API key from endpoints.work/api-keys"""


def format_help() -> str:
    return """📖 *How to use Endpoints Bot*

*Scanning Files*
Upload a photo or document with a caption like:
`job tracker` or `leads - acme corp`

*Scanning Text*
```
scan: job tracker
Meeting notes here...
```

*Getting Data*
`get: /job-tracker/january`

*Listing Endpoints*
Type `list` or /list

*Commands*
/start - Welcome & setup
/help - This message
/setup - Configure API key
/list - Show all endpoints
/status - Check connection & usage
/reset - Forget your API key and prompt"""


def format_scan_result(result: ScanResult) -> str:
    if not result.success:
        return f"❌ *Scan Failed*\n\n{result.error or 'Unknown error occurred'}"

    if not result.endpoint or not result.item:
        return "❌ *Scan Failed*\n\nNo data returned"

    message = "✅ *Scanned Successfully*\n\n"
    message += f"📁 *Endpoint:* `{result.endpoint.path}`\n"
    message += f"📝 *Title:* {result.item.title}\n"

    if result.item.entities:
        message += "\n*Extracted Data:*\n"
        for key, value in result.item.entities.items():
            display = json.dumps(value) if isinstance(value, (dict, list)) else str(value)
            message += f"• *{key}:* {display[:100]}\n"

    return message


def format_endpoints_list(endpoints: list[EndpointListItem]) -> str:
    if not endpoints:
        return "📋 *Your Endpoints*\n\nNo endpoints found. Upload a file to create your first one!"

    by_category: dict[str, list[EndpointListItem]] = {}
    for endpoint in endpoints:
        by_category.setdefault(endpoint.category, []).append(endpoint)

    message = "📋 *Your Endpoints*\n\n"
    for category, group in by_category.items():
        message += f"*{category}*\n"
        for endpoint in group[:5]:
            message += f"  └ `{endpoint.path}` ({endpoint.item_count} items)\n"
        if len(group) > 5:
            message += f"  └ _...and {len(group) - 5} more_\n"
        message += "\n"

    message += "\n_Tap an endpoint to view details_"
    return message


def format_list_failure(error: str | None) -> str:
    return f"❌ *Could not load endpoints*\n\n{error or 'Could not connect to Endpoints API'}"


def _progress_bar(percent: int) -> str:
    filled = max(0, min(10, round(percent / 10)))
    return "▓" * filled + "░" * (10 - filled)


def format_stats(result: StatsResult) -> str:
    if not result.success:
        return f"❌ *Status Check Failed*\n\n{result.error or 'Could not connect to Endpoints API'}"

    usage = result.usage
    if not usage:
        return "❌ *Status Check Failed*\n\nNo usage data returned"

    percent = round(usage.parses_this_month / usage.parse_limit * 100) if usage.parse_limit else 0

    return f"""📊 *API Status*

✅ Connected to Endpoints API

*Plan:* {usage.tier}
*Usage:* {usage.parses_this_month} / {usage.parse_limit} parses
{_progress_bar(percent)} {percent}%

_Resets at the start of each billing cycle_"""


def format_endpoint_data(result: EndpointDataResult) -> str:
    if not result.success:
        return f"❌ *Error*\n\n{result.error or 'Could not fetch endpoint data'}"

    data = result.data
    if not data:
        return "❌ *Error*\n\nNo data returned"

    message = f"📁 *{data.path}*\n\n"
    message += f"*Total Items:* {data.total_items}\n\n"

    if not data.items:
        return message + "_No items in this endpoint_"

    message += "*Recent Items:*\n"
    for item in data.items[:5]:
        message += f"• {item.title} _({_format_date(item.created_at)})_\n"

    if len(data.items) > 5:
        message += f"\n_...and {data.total_items - 5} more items_"

    return message


def _format_date(value: str | None) -> str:
    if not value:
        return "unknown date"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        return value


def format_unknown_command() -> str:
    return """❓ I didn't understand that. Here's how to use me:

📎 *Scan a file:* Upload with caption like `job tracker`
📝 *Scan text:* Start with `scan: category` then your text
📥 *Get data:* `get: /category/slug`
📋 *List all:* Type `list` or /list

Need help? /help"""


def format_api_key_prompt() -> str:
    return """🔑 *Setup API Key*

Please send me your Endpoints API key.

You can get one at: endpoints.work/api-keys

_Your key will be stored securely and used to connect to your Endpoints account._"""


def format_api_key_saved() -> str:
    return """✅ *API Key Saved!*

Your bot is now connected to Endpoints.

Try uploading a document or use /status to check your account."""


def format_missing_api_key() -> str:
    return """⚠️ *API Key Required*

You haven't set up your API key yet.

Use /setup to configure your Endpoints API key."""


def format_prompt_set(prompt: str) -> str:
    return f"✅ Prompt set to: *{escape_markdown(prompt)}*\n\nNow send me text or a file to scan."


def format_file_mode_question(filename: str, prompt: str) -> str:
    return (
        f"📊 *{escape_markdown(filename)}* looks like a table.\n\n"
        f"Prompt: *{escape_markdown(prompt)}*\n\n"
        "Should I save each row as a separate item, or scan the whole file as one?"
    )


def escape_markdown(text: str) -> str:
    """Escape user text for parse_mode=Markdown."""
    return _MARKDOWN_SPECIAL_RE.sub(r"\\\1", text)
