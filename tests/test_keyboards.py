"""
Tests for inline keyboard layouts.
"""

from endpoints_bot.models import EndpointListItem
from endpoints_bot.telegram_bot.keyboards import (
    MAX_CALLBACK_DATA_BYTES,
    endpoint_detail_keyboard,
    endpoints_list_keyboard,
    scan_success_keyboard,
)

LONG_PATH = "/" + "a" * 30 + "/" + "b" * 40


def _callbacks(buttons) -> list[str]:
    return [button["callback_data"] for row in buttons for button in row if "callback_data" in button]


class TestPathCallbacks:
    """Path buttons must stay within Telegram's callback_data limit."""

    def test_short_path_gets_callback(self):
        buttons = scan_success_keyboard("/leads/acme")
        assert buttons[0][0]["callback_data"] == "get:/leads/acme"
        assert buttons[1][0]["url"].endswith("/leads/acme")

    def test_long_path_scan_success_keeps_only_web_link(self):
        buttons = scan_success_keyboard(LONG_PATH)
        assert _callbacks(buttons) == []
        assert buttons == [[{"text": "🌐 Open in Browser", "url": buttons[0][0]["url"]}]]
        assert buttons[0][0]["url"].endswith(LONG_PATH)

    def test_long_path_detail_drops_refresh(self):
        buttons = endpoint_detail_keyboard(LONG_PATH)
        assert _callbacks(buttons) == []
        assert len(buttons[0]) == 1
        assert "url" in buttons[0][0]

    def test_long_path_in_list_becomes_url_button(self):
        endpoints = [
            EndpointListItem(path="/leads/acme", category="leads", slug="acme"),
            EndpointListItem(path=LONG_PATH, category="a" * 30, slug="b" * 40),
        ]
        buttons = endpoints_list_keyboard(endpoints)
        assert len(buttons) == 2
        assert buttons[0][0]["callback_data"] == "get:/leads/acme"
        assert "callback_data" not in buttons[1][0]
        assert buttons[1][0]["url"].endswith(LONG_PATH)

    def test_multibyte_path_measured_in_bytes(self):
        path = "/" + "é" * 31  # 36 characters but 67 bytes with the prefix
        assert len(f"get:{path}") <= MAX_CALLBACK_DATA_BYTES
        assert _callbacks(scan_success_keyboard(path)) == []

    def test_every_callback_fits(self):
        for path in ["/a/b", LONG_PATH, "/" + "x" * 59]:
            buttons = scan_success_keyboard(path) + endpoint_detail_keyboard(path)
            for data in _callbacks(buttons):
                assert len(data.encode("utf-8")) <= MAX_CALLBACK_DATA_BYTES
