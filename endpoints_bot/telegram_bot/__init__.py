"""
Telegram Bot module for Endpoints Bot.

ARCHITECTURE: Thin transport layer around one orchestrator.
- Receives updates from Telegram (webhook or polling)
- Converts them to inbound events (text, command, file, button press)
- ConversationOrchestrator decides the single reply
- Reply goes back through the Bot API

State lives in services:
- SessionStore - encrypted API key + last prompt per user
- PendingFileStore - uploads waiting for a processing-mode decision
"""

