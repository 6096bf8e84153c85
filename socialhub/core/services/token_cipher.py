"""Reversible encryption for OAuth tokens stored in platform_connections.

Stored format is ``hex(iv):hex(ciphertext)``: AES-256-CBC with PKCS#7
padding and a fresh 16-byte IV for every call.
"""

from __future__ import annotations

import os
import re

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

IV_SIZE = 16
KEY_SIZE = 32

_CIPHERTEXT_RE = re.compile(r"^(?:[0-9a-f]{2})+:(?:[0-9a-f]{2})+$")


class TokenDecryptionError(Exception):
    """Raised when a stored token cannot be decrypted."""


class TokenCipher:
    def __init__(self, key: bytes):
        if len(key) != KEY_SIZE:
            raise ValueError(f"Token encryption key must be {KEY_SIZE} bytes, got {len(key)}")
        self._key = key

    @classmethod
    def from_hex(cls, hex_key: str) -> "TokenCipher":
        try:
            key = bytes.fromhex(hex_key)
        except ValueError as exc:
            raise ValueError("Token encryption key must be hex encoded") from exc
        return cls(key)

    @staticmethod
    def looks_encrypted(value: str | None) -> bool:
        return bool(value) and _CIPHERTEXT_RE.match(value) is not None

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, value: str) -> str:
        iv_hex, sep, ct_hex = (value or "").partition(":")
        if not sep:
            raise TokenDecryptionError("Token is not in iv:ciphertext format")
        try:
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(ct_hex)
        except ValueError as exc:
            raise TokenDecryptionError("Token is not hex encoded") from exc
        if len(iv) != IV_SIZE or not ciphertext or len(ciphertext) % IV_SIZE:
            raise TokenDecryptionError("Token has an invalid length")

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            raw = unpadder.update(padded) + unpadder.finalize()
            return raw.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as exc:
            raise TokenDecryptionError("Token could not be decrypted with the configured key") from exc

    def encrypt_optional(self, plaintext: str | None) -> str | None:
        return self.encrypt(plaintext) if plaintext else None
