"""
Transport-independent inbound events and outbound replies.

Telegram handlers translate each Update into exactly one of these events,
and the orchestrator answers each event with exactly one Reply.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Union

# Rows of inline buttons in Bot API shape:
# [[{"text": "Yes", "callback_data": "file_mode:rows"}], [{"text": "Web", "url": "..."}]]
Buttons = list[list[dict]]


@dataclass
class TextEvent:
    user_id: int
    text: str
    is_private: bool = True


@dataclass
class CommandEvent:
    user_id: int
    command: str  # without the leading slash, e.g. "start"
    is_private: bool = True


@dataclass
class FileEvent:
    """
    Uploaded document or photo.

    The file body is fetched lazily through `download` so size and
    credential checks run before anything is transferred.
    """
    user_id: int
    filename: str
    mime_type: str
    download: Callable[[], Awaitable[bytes]]
    file_size: Optional[int] = None
    caption: Optional[str] = None
    is_photo: bool = False
    is_private: bool = True


@dataclass
class ButtonPressEvent:
    user_id: int
    data: str
    is_private: bool = True


InboundEvent = Union[TextEvent, CommandEvent, FileEvent, ButtonPressEvent]


@dataclass
class Reply:
    text: str
    buttons: Buttons = field(default_factory=list)
    parse_mode: Optional[str] = "Markdown"
