"""
Telegram message, command and callback handlers.

ARCHITECTURE: thin adapters, NO business logic here.
- Translate each telegram.Update into one inbound event
- Hand it to the ConversationOrchestrator
- Send the single Reply back through the Bot API

File bodies are downloaded lazily, only after the orchestrator has checked
the API key, the size limit and the prompt.
"""

import time
from typing import Optional

from telegram import Update
from telegram.constants import ChatType
from telegram.ext import ContextTypes

from .events import ButtonPressEvent, CommandEvent, FileEvent, InboundEvent, TextEvent
from .logging_config import bot_logger as logger
from .orchestrator import ConversationOrchestrator, build_orchestrator
from .telegram_api import send_chat_action, send_reply

# Global orchestrator (initialized once)
_orchestrator: Optional[ConversationOrchestrator] = None


def get_orchestrator() -> ConversationOrchestrator:
    """Get or create the conversation orchestrator singleton."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator()
    return _orchestrator


def _is_private(update: Update) -> bool:
    chat = update.effective_chat
    return chat is not None and chat.type == ChatType.PRIVATE


async def _dispatch(chat_id: int, event: InboundEvent) -> None:
    """Run one event through the orchestrator and deliver its reply."""
    async def on_busy(action: str) -> None:
        await send_chat_action(chat_id, action)

    reply = await get_orchestrator().handle(event, on_busy=on_busy)
    await send_reply(chat_id, reply)


async def handle_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start, /help, /setup, /list, /status, /reset and unknown commands."""
    user = update.effective_user
    text = update.message.text or ""

    # "/status@EndpointsBot extra" -> "status"
    command = text.split()[0].lstrip("/").split("@")[0] if text.strip() else ""

    await _dispatch(
        update.effective_chat.id,
        CommandEvent(user_id=user.id, command=command, is_private=_is_private(update)),
    )


async def handle_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text: API key submissions and the scan/text/get/file/list grammar."""
    user = update.effective_user

    await _dispatch(
        update.effective_chat.id,
        TextEvent(user_id=user.id, text=update.message.text or "", is_private=_is_private(update)),
    )


async def handle_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle document upload."""
    user = update.effective_user
    document = update.message.document

    async def download() -> bytes:
        file = await context.bot.get_file(document.file_id)
        return bytes(await file.download_as_bytearray())

    await _dispatch(
        update.effective_chat.id,
        FileEvent(
            user_id=user.id,
            filename=document.file_name or "document",
            mime_type=document.mime_type or "application/octet-stream",
            download=download,
            file_size=document.file_size,
            caption=update.message.caption,
            is_private=_is_private(update),
        ),
    )


async def handle_photo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle photo upload. Telegram sends several sizes, the last one is the largest."""
    user = update.effective_user
    photos = update.message.photo
    if not photos:
        return

    photo = photos[-1]

    async def download() -> bytes:
        file = await context.bot.get_file(photo.file_id)
        return bytes(await file.download_as_bytearray())

    await _dispatch(
        update.effective_chat.id,
        FileEvent(
            user_id=user.id,
            filename=f"photo_{int(time.time() * 1000)}.jpg",
            mime_type="image/jpeg",
            download=download,
            file_size=photo.file_size,
            caption=update.message.caption,
            is_photo=True,
            is_private=_is_private(update),
        ),
    )


async def handle_callback_query(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle inline keyboard button callbacks.

    Callback data format: "action" or "action:param"
    - help, setup, setup_ready, status, list, web_link, cancel
    - get:{path}, refresh:{path}
    - file_mode:rows, file_mode:whole, file_mode:cancel
    """
    query = update.callback_query
    user = update.effective_user

    # Answer the callback to remove loading state
    await query.answer()

    chat_id = query.message.chat.id if query.message else user.id

    await _dispatch(
        chat_id,
        ButtonPressEvent(user_id=user.id, data=query.data or "", is_private=_is_private(update)),
    )


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle errors in handlers."""
    logger.error(f"Bot error: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(
                "❌ Error processing message.\n"
                "Try again or use /help"
            )
        except Exception as e:
            logger.error(f"Failed to send error reply: {e}")
