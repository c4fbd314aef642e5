"""AES-128-ECB payload cipher.

Protocol 3.1 wraps the ciphertext in base64; 3.3 sends it raw. Both use
PKCS7 padding to the 16-byte block size.
"""

from __future__ import annotations

import base64
import binascii

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..errors import DecryptError

BLOCK_SIZE = 16


class AESCipher:
    """Encrypts and decrypts payloads with a device's local key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != BLOCK_SIZE:
            raise ValueError(f"AES key must be {BLOCK_SIZE} bytes, got {len(key)}")
        self._key = key

    def _cipher(self) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.ECB())

    def encrypt(self, data: bytes, use_base64: bool = False) -> bytes:
        padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
        padded = padder.update(data) + padder.finalize()
        encryptor = self._cipher().encryptor()
        encrypted = encryptor.update(padded) + encryptor.finalize()
        if use_base64:
            return base64.b64encode(encrypted)
        return encrypted

    def decrypt(self, data: bytes, use_base64: bool = False) -> bytes:
        """Decrypt and unpad ``data``.

        Raises:
            DecryptError: If the input is not valid base64, not a whole
                number of blocks, or the padding is wrong (which is what a
                wrong key usually looks like).
        """
        if use_base64:
            try:
                data = base64.b64decode(data, validate=True)
            except binascii.Error as e:
                raise DecryptError(f"Payload is not valid base64: {e}") from e
        if not data or len(data) % BLOCK_SIZE:
            raise DecryptError(
                f"Ciphertext length {len(data)} is not a multiple of {BLOCK_SIZE}"
            )
        decryptor = self._cipher().decryptor()
        padded = decryptor.update(data) + decryptor.finalize()
        unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
        try:
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as e:
            raise DecryptError("Bad padding after decryption (wrong key?)") from e
