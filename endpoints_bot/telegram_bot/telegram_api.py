"""
Telegram Bot API client for sending messages.

Simple wrapper for sending replies back to Telegram.
"""

import httpx
from typing import Optional

from endpoints_bot.config import get_settings
from .events import Buttons, Reply
from .logging_config import bot_logger as logger


def _api_url(method: str) -> str:
    settings = get_settings()
    return f"https://api.telegram.org/bot{settings.telegram_bot_token}/{method}"


async def send_message(chat_id: int, text: str, parse_mode: Optional[str] = None) -> dict:
    """
    Send message to Telegram user.

    Args:
        chat_id: Telegram chat ID
        text: Message text
        parse_mode: Optional parse mode (Markdown, HTML)
    """
    payload = {
        "chat_id": chat_id,
        "text": text
    }

    if parse_mode:
        payload["parse_mode"] = parse_mode

    async with httpx.AsyncClient() as client:
        response = await client.post(_api_url("sendMessage"), json=payload)
        response.raise_for_status()
        return response.json()


async def send_chat_action(chat_id: int, action: str = "typing") -> None:
    """
    Send chat action (typing indicator).

    Args:
        chat_id: Telegram chat ID
        action: Action type (typing, upload_document, upload_photo)
    """
    async with httpx.AsyncClient() as client:
        await client.post(_api_url("sendChatAction"), json={"chat_id": chat_id, "action": action})


async def send_message_with_buttons(
    chat_id: int,
    text: str,
    buttons: Buttons,
    parse_mode: Optional[str] = None
) -> dict:
    """
    Send message with inline keyboard buttons.

    Args:
        chat_id: Telegram chat ID
        text: Message text
        buttons: 2D array of button dicts, each with 'text' and either
                 'callback_data' or 'url'
                 Example: [[{"text": "Yes", "callback_data": "file_mode:rows"}]]
        parse_mode: Optional parse mode (Markdown, HTML)

    Returns:
        Response dict with message_id
    """
    payload = {
        "chat_id": chat_id,
        "text": text,
        "reply_markup": {
            "inline_keyboard": buttons
        }
    }

    if parse_mode:
        payload["parse_mode"] = parse_mode

    async with httpx.AsyncClient() as client:
        response = await client.post(_api_url("sendMessage"), json=payload)
        response.raise_for_status()
        return response.json()


async def send_reply(chat_id: int, reply: Reply) -> dict:
    """
    Deliver an orchestrator reply.

    If Telegram cannot parse the Markdown (unbalanced entities in user or
    API data), the same text is sent again as plain text. Other 400s
    propagate.
    """
    async def _send(parse_mode: Optional[str]) -> dict:
        if reply.buttons:
            return await send_message_with_buttons(chat_id, reply.text, reply.buttons, parse_mode)
        return await send_message(chat_id, reply.text, parse_mode)

    try:
        return await _send(reply.parse_mode)
    except httpx.HTTPStatusError as e:
        if reply.parse_mode and e.response.status_code == 400 and "parse entities" in e.response.text:
            logger.warning(f"Markdown rejected for chat_id={chat_id}, resending as plain text")
            return await _send(None)
        raise
