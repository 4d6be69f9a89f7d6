"""
Content decryption applied before parsing encrypted vendor files.

Encrypted files carry a 16-byte IV followed by AES-CBC ciphertext with
PKCS7 padding.
"""

import base64
import os
from typing import Protocol

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from file_exchange.core.errors import DecryptionError

IV_SIZE = 16
VALID_KEY_SIZES = (16, 24, 32)


class Decryptor(Protocol):
    def decrypt(self, data: bytes) -> bytes: ...


class AesCbcDecryptor:
    """
    AES-CBC decryption with the IV prepended to the ciphertext.

    ``encrypt`` produces the same layout and is used by tooling and tests.
    """

    def __init__(self, key: bytes):
        if len(key) not in VALID_KEY_SIZES:
            raise DecryptionError(f"AES key must be 16, 24 or 32 bytes, got {len(key)}")
        self._key = key

    @classmethod
    def from_base64(cls, encoded_key: str) -> "AesCbcDecryptor":
        try:
            key = base64.b64decode(encoded_key, validate=True)
        except ValueError as e:
            raise DecryptionError(f"Decryption key is not valid base64: {e}") from e
        return cls(key)

    def decrypt(self, data: bytes) -> bytes:
        """
        Decrypt IV-prefixed ciphertext.

        Raises:
            DecryptionError: If the data is truncated, misaligned or badly padded
        """
        if len(data) < IV_SIZE * 2 or (len(data) - IV_SIZE) % IV_SIZE:
            raise DecryptionError(f"Encrypted content has invalid length {len(data)}")

        iv, ciphertext = data[:IV_SIZE], data[IV_SIZE:]
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptionError("Encrypted content has invalid padding (wrong key?)") from e

    def encrypt(self, data: bytes) -> bytes:
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(data) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        return iv + encryptor.update(padded) + encryptor.finalize()
