"""
Tests for session encryption and storage.

Run with: pytest tests/test_session.py -v
"""

import asyncio

import pytest
from endpoints_bot.models import UserSession
from endpoints_bot.services.crypto import CredentialCipher, DecryptionError
from endpoints_bot.services.session import SessionStore
from endpoints_bot.services.storage import SQLiteKeyValueStore

USER_ID = 42
API_KEY = "ep_live_0123456789abcdef"


class TestCredentialCipher:
    """Tests for CredentialCipher."""

    def test_round_trip(self, cipher):
        assert cipher.decrypt(cipher.encrypt(API_KEY)) == API_KEY

    def test_round_trip_unicode(self, cipher):
        assert cipher.decrypt(cipher.encrypt("ключ-🔑")) == "ключ-🔑"

    def test_fresh_iv_per_encryption(self, cipher):
        """Same plaintext encrypts differently every time."""
        first = cipher.encrypt(API_KEY)
        second = cipher.encrypt(API_KEY)
        assert first != second
        assert first.split(":")[0] != second.split(":")[0]

    def test_token_format(self, cipher):
        iv_hex, ciphertext_hex = cipher.encrypt(API_KEY).split(":")
        assert len(bytes.fromhex(iv_hex)) == 16
        assert len(bytes.fromhex(ciphertext_hex)) % 16 == 0
        assert API_KEY not in ciphertext_hex

    def test_wrong_secret_fails(self, cipher):
        token = cipher.encrypt(API_KEY)
        # Wrong key almost always breaks the padding; if not, it yields garbage
        try:
            result = CredentialCipher("other-secret").decrypt(token)
        except DecryptionError:
            return
        assert result != API_KEY

    @pytest.mark.parametrize("token", ["", "not-a-token", "zz:zz", "00:", "abcd:abcd"])
    def test_malformed_tokens(self, cipher, token):
        with pytest.raises(DecryptionError):
            cipher.decrypt(token)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            CredentialCipher("")


class TestSessionStore:
    """Tests for SessionStore on the in-memory backend."""

    def test_missing_session_is_empty(self, sessions):
        session = asyncio.run(sessions.get(USER_ID))
        assert session == UserSession()
        assert session.api_key is None

    def test_api_key_round_trip(self, sessions):
        asyncio.run(sessions.update(USER_ID, api_key=API_KEY))
        assert asyncio.run(sessions.get(USER_ID)).api_key == API_KEY

    def test_api_key_encrypted_at_rest(self, sessions, kv_store):
        asyncio.run(sessions.set_api_key(USER_ID, API_KEY))
        stored = kv_store.raw(f"sessions:{USER_ID}")
        assert stored["apiKey"] != API_KEY
        assert ":" in stored["apiKey"]
        assert stored["linkedAt"]

    def test_update_merges_fields(self, sessions):
        asyncio.run(sessions.set_api_key(USER_ID, API_KEY))
        asyncio.run(sessions.set_last_prompt(USER_ID, "receipts"))

        session = asyncio.run(sessions.get(USER_ID))
        assert session.api_key == API_KEY
        assert session.last_prompt == "receipts"
        assert session.linked_at is not None

    def test_update_returns_plaintext_view(self, sessions):
        result = asyncio.run(sessions.update(USER_ID, api_key=API_KEY, last_prompt="leads"))
        assert result.api_key == API_KEY
        assert result.last_prompt == "leads"

    def test_wrappers(self, sessions):
        assert asyncio.run(sessions.has_api_key(USER_ID)) is False
        assert asyncio.run(sessions.get_last_prompt(USER_ID)) is None

        asyncio.run(sessions.set_api_key(USER_ID, API_KEY))
        asyncio.run(sessions.set_last_prompt(USER_ID, "job tracker"))

        assert asyncio.run(sessions.has_api_key(USER_ID)) is True
        assert asyncio.run(sessions.get_api_key(USER_ID)) == API_KEY
        assert asyncio.run(sessions.get_last_prompt(USER_ID)) == "job tracker"

    def test_linked_at_kept_when_key_replaced(self, sessions):
        first = asyncio.run(sessions.set_api_key(USER_ID, API_KEY)).linked_at
        second = asyncio.run(sessions.set_api_key(USER_ID, "ep_live_fedcba9876543210"))
        assert second.linked_at == first
        assert second.api_key == "ep_live_fedcba9876543210"

    def test_linked_at_restamped_after_clear(self, sessions, kv_store):
        kv_store.put_raw(f"sessions:{USER_ID}", {"linkedAt": "2020-01-01T00:00:00+00:00"})
        asyncio.run(sessions.clear(USER_ID))
        session = asyncio.run(sessions.set_api_key(USER_ID, API_KEY))
        assert session.linked_at != "2020-01-01T00:00:00+00:00"

    def test_clear(self, sessions, kv_store):
        asyncio.run(sessions.set_api_key(USER_ID, API_KEY))
        asyncio.run(sessions.clear(USER_ID))
        assert kv_store.raw(f"sessions:{USER_ID}") is None
        assert asyncio.run(sessions.get(USER_ID)) == UserSession()

    def test_users_are_isolated(self, sessions):
        asyncio.run(sessions.set_last_prompt(1, "receipts"))
        asyncio.run(sessions.set_last_prompt(2, "leads"))
        assert asyncio.run(sessions.get_last_prompt(1)) == "receipts"
        assert asyncio.run(sessions.get_last_prompt(2)) == "leads"

    def test_corrupted_key_dropped_rest_preserved(self, sessions, kv_store):
        """A key that no longer decrypts reads as absent; the prompt survives."""
        kv_store.put_raw(f"sessions:{USER_ID}", {
            "apiKey": "deadbeef:not-hex",
            "lastPrompt": "receipts",
            "linkedAt": "2026-01-01T00:00:00+00:00",
        })

        session = asyncio.run(sessions.get(USER_ID))
        assert session.api_key is None
        assert session.last_prompt == "receipts"
        assert session.linked_at == "2026-01-01T00:00:00+00:00"

    def test_rotated_secret_heals_on_next_save(self, kv_store):
        old = SessionStore(kv_store, CredentialCipher("old-secret"))
        asyncio.run(old.set_api_key(USER_ID, API_KEY))
        asyncio.run(old.set_last_prompt(USER_ID, "receipts"))

        new = SessionStore(kv_store, CredentialCipher("new-secret"))
        session = asyncio.run(new.get(USER_ID))
        assert session.api_key != API_KEY
        assert session.last_prompt == "receipts"

        asyncio.run(new.set_api_key(USER_ID, "ep_live_fedcba9876543210"))
        assert asyncio.run(new.get_api_key(USER_ID)) == "ep_live_fedcba9876543210"

    def test_repr_masks_api_key(self):
        session = UserSession(api_key=API_KEY, last_prompt="receipts")
        assert API_KEY not in repr(session)
        assert API_KEY not in str(session)


class TestSQLiteBackend:
    """Session storage on SQLite."""

    def test_round_trip_on_disk(self, tmp_path, cipher):
        store = SQLiteKeyValueStore(str(tmp_path / "data" / "bot.sqlite"))
        sessions = SessionStore(store, cipher)

        asyncio.run(sessions.set_api_key(USER_ID, API_KEY))
        asyncio.run(sessions.set_last_prompt(USER_ID, "receipts"))

        reopened = SessionStore(SQLiteKeyValueStore(str(tmp_path / "data" / "bot.sqlite")), cipher)
        session = asyncio.run(reopened.get(USER_ID))
        assert session.api_key == API_KEY
        assert session.last_prompt == "receipts"

    def test_in_memory_database(self, cipher):
        sessions = SessionStore(SQLiteKeyValueStore(":memory:"), cipher)
        asyncio.run(sessions.set_last_prompt(USER_ID, "leads"))
        assert asyncio.run(sessions.get_last_prompt(USER_ID)) == "leads"

        asyncio.run(sessions.clear(USER_ID))
        assert asyncio.run(sessions.get(USER_ID)) == UserSession()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])


def test_storage_module_documented():
    from endpoints_bot.services import storage
    assert storage.__doc__ and "Key-value storage" in storage.__doc__
