"""
Endpoints Bot: scan documents into endpoints.work from Telegram.
"""

__version__ = "0.1.0"
