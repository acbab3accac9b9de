"""
Main Telegram bot handler.

Uses python-telegram-bot library in webhook mode (behind FastAPI)
or polling mode for local development.
"""

from telegram import BotCommand, Update
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters

from endpoints_bot.config import get_settings
from .logging_config import bot_logger as logger
from .handlers import (
    handle_command,
    handle_text_message,
    handle_document,
    handle_photo,
    handle_callback_query,
    handle_error,
)

BOT_COMMANDS = [
    ("start", "Welcome & setup"),
    ("help", "How to use this bot"),
    ("setup", "Configure API key"),
    ("list", "Show all endpoints"),
    ("status", "Check connection & usage"),
    ("reset", "Forget API key and prompt"),
]

ALLOWED_UPDATES = ["message", "callback_query"]


# Global application instance (initialized once)
_application: Application | None = None


def get_bot_application() -> Application:
    """Get or create telegram bot application."""
    global _application

    if _application is None:
        settings = get_settings()

        _application = (
            Application.builder()
            .token(settings.telegram_bot_token)
            .build()
        )

        # Commands first so "/list" never reaches the text grammar twice
        _application.add_handler(
            CommandHandler([name for name, _ in BOT_COMMANDS], handle_command)
        )
        _application.add_handler(MessageHandler(filters.COMMAND, handle_command))

        # Callback queries (inline keyboard buttons)
        _application.add_handler(CallbackQueryHandler(handle_callback_query))

        # File uploads
        _application.add_handler(MessageHandler(filters.Document.ALL, handle_document))
        _application.add_handler(MessageHandler(filters.PHOTO, handle_photo))

        # Text messages
        _application.add_handler(
            MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text_message)
        )

        _application.add_error_handler(handle_error)

        logger.info("Telegram bot application initialized")

    return _application


async def set_bot_commands(app: Application) -> None:
    """Publish the command menu."""
    await app.bot.set_my_commands([BotCommand(name, description) for name, description in BOT_COMMANDS])


async def handle_telegram_update(update_data: dict) -> None:
    """
    Process incoming webhook update from Telegram.

    This is called by FastAPI webhook endpoint.
    Runs handlers in background (fire-and-forget).
    """
    try:
        app = get_bot_application()

        update = Update.de_json(update_data, app.bot)

        if update:
            await app.process_update(update)
        else:
            logger.warning("Received invalid update data")

    except Exception as e:
        logger.error(f"Failed to process update: {e}", exc_info=True)


async def initialize_bot() -> None:
    """
    Initialize bot application and register the webhook (call on startup).
    """
    settings = get_settings()
    app = get_bot_application()
    await app.initialize()
    await set_bot_commands(app)

    if settings.webhook_url:
        await app.bot.set_webhook(
            settings.webhook_url,
            secret_token=settings.telegram_webhook_secret or None,
            allowed_updates=ALLOWED_UPDATES,
            drop_pending_updates=True,
        )
        logger.info(f"Webhook set to {settings.webhook_url}")

    logger.info("Bot initialized successfully")


async def shutdown_bot() -> None:
    """
    Shutdown bot application (call on shutdown).
    """
    global _application
    if _application:
        await _application.shutdown()
        logger.info("Bot shut down")

    await _close_api_client()


async def _close_api_client() -> None:
    from endpoints_bot.services.endpoints_api import get_api_client
    await get_api_client().close()
    logger.info("Endpoints API client closed")


async def _post_init(app: Application) -> None:
    await set_bot_commands(app)


async def _post_shutdown(app: Application) -> None:
    await _close_api_client()


def run_polling() -> None:
    """
    Start the bot in polling mode (for development).

    Drops pending updates so old messages aren't replayed on restart.
    """
    app = get_bot_application()
    app.post_init = _post_init
    app.post_shutdown = _post_shutdown
    logger.info("Starting bot in polling mode...")
    app.run_polling(allowed_updates=ALLOWED_UPDATES, drop_pending_updates=True)
