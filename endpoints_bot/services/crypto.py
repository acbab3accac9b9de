"""
Encryption for secrets stored in user sessions.

AES-256-CBC with a key derived from an operator secret (SHA-256).
Every call to encrypt() uses a fresh random IV, stored in front of the
ciphertext as "iv_hex:ciphertext_hex" so decryption needs nothing else.
"""

import hashlib
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

IV_SIZE = 16


class DecryptionError(Exception):
    """Stored value could not be decrypted (corrupted or wrong key)."""


class CredentialCipher:
    """Symmetric cipher for API keys at rest."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Encryption secret must not be empty")
        self._key = hashlib.sha256(secret.encode("utf-8")).digest()

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_SIZE)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return iv.hex() + ":" + ciphertext.hex()

    def decrypt(self, token: str) -> str:
        """Decrypt an "iv:ciphertext" token. Raises DecryptionError on any failure."""
        try:
            iv_hex, ciphertext_hex = token.split(":", 1)
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(ciphertext_hex)

            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8")
        except (ValueError, TypeError, AttributeError) as e:
            raise DecryptionError(str(e)) from e
