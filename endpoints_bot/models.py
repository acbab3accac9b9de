from dataclasses import dataclass
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """Base for payloads that travel as camelCase JSON."""
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Session state
# =============================================================================

class UserSession(CamelModel):
    """Per-user bot state. In memory the API key is plaintext."""
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    last_prompt: Optional[str] = Field(default=None, alias="lastPrompt")
    linked_at: Optional[str] = Field(default=None, alias="linkedAt")

    def __repr__(self) -> str:
        # Keep the key out of logs and tracebacks
        masked = "***" if self.api_key else None
        return f"UserSession(api_key={masked!r}, last_prompt={self.last_prompt!r}, linked_at={self.linked_at!r})"

    __str__ = __repr__


# =============================================================================
# Parsed user intent
# =============================================================================

MessageType = Literal["list", "scan", "text", "get", "file", "unknown"]


@dataclass(frozen=True)
class ParsedMessage:
    """Classified user message. Only the fields of its type are set."""
    type: MessageType
    prompt: Optional[str] = None
    content: Optional[str] = None
    path: Optional[str] = None


@dataclass
class PendingFile:
    """Uploaded file waiting for the user's processing-mode decision."""
    buffer: bytes
    prompt: str
    filename: str
    mime_type: str
    created_at: float = 0.0


# =============================================================================
# Endpoints API results
# =============================================================================

class EndpointRef(CamelModel):
    path: str
    category: str = ""
    slug: str = ""


class ScannedItem(CamelModel):
    id: str
    title: str = ""
    entities: dict[str, Any] = Field(default_factory=dict)


class ScanResult(CamelModel):
    success: bool
    endpoint: Optional[EndpointRef] = None
    item: Optional[ScannedItem] = None
    error: Optional[str] = None


class EndpointListItem(CamelModel):
    path: str
    category: str = ""
    slug: str = ""
    item_count: int = Field(default=0, alias="itemCount")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")


class EndpointListResult(CamelModel):
    success: bool
    endpoints: list[EndpointListItem] = Field(default_factory=list)
    error: Optional[str] = None


class EndpointItem(CamelModel):
    id: str
    title: str = ""
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    entities: dict[str, Any] = Field(default_factory=dict)


class EndpointData(CamelModel):
    path: str
    items: list[EndpointItem] = Field(default_factory=list)
    total_items: int = Field(default=0, alias="totalItems")


class EndpointDataResult(CamelModel):
    success: bool
    data: Optional[EndpointData] = None
    error: Optional[str] = None


class UsageStats(CamelModel):
    parses_this_month: int = Field(default=0, alias="parsesThisMonth")
    parse_limit: int = Field(default=0, alias="parseLimit")
    tier: str = "free"
    storage_used: Optional[int] = Field(default=None, alias="storageUsed")
    storage_limit: Optional[int] = Field(default=None, alias="storageLimit")


class StatsResult(CamelModel):
    success: bool
    usage: Optional[UsageStats] = None
    error: Optional[str] = None
