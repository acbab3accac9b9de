"""
Run the bot: `python -m endpoints_bot`.

Webhook mode (FastAPI + uvicorn) when WEBHOOK_URL is set,
polling mode otherwise.
"""

from endpoints_bot.config import get_settings


def main() -> None:
    settings = get_settings()

    if settings.webhook_url:
        import uvicorn
        from endpoints_bot.main import app

        uvicorn.run(app, host="0.0.0.0", port=settings.port)
    else:
        from endpoints_bot.telegram_bot.bot import run_polling

        run_polling()


if __name__ == "__main__":
    main()
