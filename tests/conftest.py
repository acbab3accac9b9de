import os

# Settings are read from the environment on first use
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "123456:test-token")
os.environ.setdefault("SESSION_BACKEND", "memory")

import pytest

from endpoints_bot.config import Settings
from endpoints_bot.models import (
    EndpointDataResult,
    EndpointListResult,
    ScanResult,
    StatsResult,
)
from endpoints_bot.services.crypto import CredentialCipher
from endpoints_bot.services.pending import PendingFileStore
from endpoints_bot.services.session import SessionStore
from endpoints_bot.services.storage import InMemoryKeyValueStore
from endpoints_bot.telegram_bot.orchestrator import ConversationOrchestrator

VALID_KEY = "ep_live_0123456789abcdef"


class FakeEndpointsAPI:
    """Records calls and returns canned results. fail=True makes every call raise."""

    def __init__(self):
        self.calls: list[tuple] = []
        self.fail = False
        self.valid_keys = {VALID_KEY}
        self.scan_result = ScanResult(
            success=True,
            endpoint={"path": "/job-tracker/january", "category": "job-tracker", "slug": "january"},
            item={"id": "item_1", "title": "Meeting notes", "entities": {"company": "Acme"}},
        )
        self.list_result = EndpointListResult(
            success=True,
            endpoints=[{"path": "/job-tracker/january", "category": "job-tracker", "slug": "january", "itemCount": 3}],
        )
        self.data_result = EndpointDataResult(
            success=True,
            data={"path": "/leads/acme", "items": [], "totalItems": 0},
        )
        self.stats_result = StatsResult(
            success=True,
            usage={"parsesThisMonth": 5, "parseLimit": 100, "tier": "free"},
        )

    def _record(self, *call):
        self.calls.append(call)
        if self.fail:
            raise RuntimeError("backend unavailable")

    def calls_to(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]

    async def scan_text(self, api_key, prompt, text):
        self._record("scan_text", api_key, prompt, text)
        return self.scan_result

    async def scan_file(self, api_key, prompt, buffer, filename, mime_type, options=None):
        self._record("scan_file", api_key, prompt, buffer, filename, mime_type, options)
        return self.scan_result

    async def list_endpoints(self, api_key):
        self._record("list_endpoints", api_key)
        return self.list_result

    async def get_endpoint_data(self, api_key, path):
        self._record("get_endpoint_data", api_key, path)
        return self.data_result

    async def get_usage_stats(self, api_key):
        self._record("get_usage_stats", api_key)
        return self.stats_result

    async def validate_api_key(self, api_key):
        self._record("validate_api_key", api_key)
        return api_key in self.valid_keys


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="123456:test-token",
        session_backend="memory",
        endpoints_web_url="https://endpoints.work",
    )


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def cipher() -> CredentialCipher:
    return CredentialCipher("test-secret")


@pytest.fixture
def sessions(kv_store, cipher) -> SessionStore:
    return SessionStore(kv_store, cipher)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def pending_files(clock) -> PendingFileStore:
    return PendingFileStore(ttl_seconds=600, max_entries=10, clock=clock)


@pytest.fixture
def api() -> FakeEndpointsAPI:
    return FakeEndpointsAPI()


@pytest.fixture
def orchestrator(sessions, pending_files, api, settings) -> ConversationOrchestrator:
    return ConversationOrchestrator(sessions, pending_files, api, settings)
