"""
Per-user session storage for the Endpoints bot.

One record per Telegram user id:
    {"apiKey": "iv:ciphertext", "lastPrompt": "...", "linkedAt": "..."}

Only the API key is encrypted at rest. Callers always get a plaintext
UserSession; a key that no longer decrypts (corruption, rotated secret)
is dropped from the returned session and replaced on the next save.

Concurrent events for the same user race on get -> update; the last
update wins.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from endpoints_bot.models import UserSession
from endpoints_bot.services.crypto import CredentialCipher, DecryptionError
from endpoints_bot.services.storage import KeyValueStore
from endpoints_bot.telegram_bot.logging_config import bot_logger as logger

NAMESPACE = "sessions"


class SessionStore:
    """Encrypted session records on top of a key-value store."""

    def __init__(self, store: KeyValueStore, cipher: CredentialCipher):
        self.store = store
        self.cipher = cipher

    @staticmethod
    def _key(user_id: int | str) -> str:
        return f"{NAMESPACE}:{user_id}"

    async def get(self, user_id: int | str) -> UserSession:
        """Load a session. Missing records yield an empty session."""
        data = await self.store.get(self._key(user_id))
        if not data:
            return UserSession()

        data = dict(data)
        encrypted_key = data.get("apiKey")
        if encrypted_key:
            try:
                data["apiKey"] = self.cipher.decrypt(encrypted_key)
            except DecryptionError:
                logger.warning(f"Stored API key for user_id={user_id} could not be decrypted, dropping it")
                data["apiKey"] = None

        return UserSession.model_validate(data)

    async def save(self, user_id: int | str, session: UserSession) -> None:
        data = session.model_dump(by_alias=True, exclude_none=True)
        if session.api_key:
            data["apiKey"] = self.cipher.encrypt(session.api_key)
        await self.store.set(self._key(user_id), data)

    async def update(self, user_id: int | str, **fields: Any) -> UserSession:
        """Merge fields into the stored session and persist it."""
        current = await self.get(user_id)
        updated = current.model_copy(update=fields)
        await self.save(user_id, updated)
        return updated

    async def clear(self, user_id: int | str) -> None:
        await self.store.delete(self._key(user_id))
        logger.info(f"Cleared session for user_id={user_id}")

    async def set_api_key(self, user_id: int | str, api_key: str) -> UserSession:
        """Store a validated key. linked_at is stamped only when the first key is linked."""
        current = await self.get(user_id)
        linked_at = current.linked_at or datetime.now(timezone.utc).isoformat()
        return await self.update(user_id, api_key=api_key, linked_at=linked_at)

    async def get_api_key(self, user_id: int | str) -> Optional[str]:
        session = await self.get(user_id)
        return session.api_key

    async def has_api_key(self, user_id: int | str) -> bool:
        return bool(await self.get_api_key(user_id))

    async def set_last_prompt(self, user_id: int | str, prompt: str) -> UserSession:
        return await self.update(user_id, last_prompt=prompt)

    async def get_last_prompt(self, user_id: int | str) -> Optional[str]:
        session = await self.get(user_id)
        return session.last_prompt
