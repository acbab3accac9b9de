"""
Tests for reply delivery over the Bot API.
"""

import asyncio

import httpx
import pytest

from endpoints_bot.telegram_bot import telegram_api
from endpoints_bot.telegram_bot.events import Reply


def _bad_request(description: str) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://api.telegram.org/botX/sendMessage")
    response = httpx.Response(400, json={"ok": False, "description": description}, request=request)
    return httpx.HTTPStatusError("400 Bad Request", request=request, response=response)


@pytest.fixture
def sent(monkeypatch) -> list:
    calls: list = []
    errors: list = []

    async def fake_send_message(chat_id, text, parse_mode=None):
        calls.append(parse_mode)
        if errors:
            raise errors.pop(0)
        return {"ok": True}

    monkeypatch.setattr(telegram_api, "send_message", fake_send_message)
    return calls, errors


def test_markdown_parse_error_falls_back_to_plain_text(sent):
    calls, errors = sent
    errors.append(_bad_request("Bad Request: can't parse entities: unclosed tag"))

    result = asyncio.run(telegram_api.send_reply(7, Reply("*broken")))

    assert result == {"ok": True}
    assert calls == ["Markdown", None]


def test_other_bad_request_is_not_retried(sent):
    calls, errors = sent
    errors.append(_bad_request("Bad Request: BUTTON_DATA_INVALID"))

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(telegram_api.send_reply(7, Reply("ok")))
    assert calls == ["Markdown"]
