"""
Logging configuration for the Endpoints bot.
"""

import logging
import sys

def setup_logging():
    """Setup the bot logger with a stdout handler."""

    logger = logging.getLogger("endpoints_bot")
    logger.setLevel(logging.DEBUG)

    # Re-imports must not stack handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    # Keep bot lines out of uvicorn's root handlers
    logger.propagate = False

    return logger

# Global logger instance
bot_logger = setup_logging()
