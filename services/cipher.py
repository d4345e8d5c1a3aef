"""Symmetric ciphers used to protect stored catalog passwords.

Ciphertexts are produced in an encrypt-then-MAC layout::

    hex(HMAC-SHA256) + base64(iv + CBC ciphertext)

The random IV doubles as the PBKDF2 salt, and the configured key is
stretched into one key for the block cipher and one for the HMAC.  The
HMAC also covers the algorithm name, so a value written under one
algorithm never decrypts under another one with the same key.
"""

from __future__ import annotations

import base64
import os
from dataclasses import dataclass
from typing import Callable, Optional, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.decrepit.ciphers import algorithms as decrepit_algorithms
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

# Value of ``ils_encryption_algo`` / CLI argument meaning "store plaintext"
DISABLED = "none"
PBKDF2_ITERATIONS = 5000
MAC_HEX_LENGTH = 64


class UnsupportedAlgorithmError(ValueError):
    """Raised for an algorithm name with no cipher behind it."""


class DecryptionError(ValueError):
    """Raised when a stored value cannot be decrypted with the given cipher."""


@dataclass(frozen=True)
class CipherAlgorithm:
    name: str
    factory: Callable
    key_size: int  # bytes
    block_size: int  # bits


ALGORITHMS = {
    "aes": CipherAlgorithm("aes", algorithms.AES, 32, 128),
    "blowfish": CipherAlgorithm("blowfish", decrepit_algorithms.Blowfish, 56, 64),
    "camellia": CipherAlgorithm("camellia", decrepit_algorithms.Camellia, 32, 128),
    "cast5": CipherAlgorithm("cast5", decrepit_algorithms.CAST5, 16, 64),
    "des3": CipherAlgorithm("des3", decrepit_algorithms.TripleDES, 24, 64),
    "seed": CipherAlgorithm("seed", decrepit_algorithms.SEED, 16, 128),
}


@dataclass(frozen=True)
class EncryptionDisabled:
    """Catalog passwords are kept in the legacy plaintext column."""

    algorithm = DISABLED
    enabled = False


@dataclass(frozen=True)
class EncryptionEnabled:
    """Catalog passwords are encrypted with ``algorithm`` and ``key``."""

    algorithm: str
    key: str
    enabled = True


EncryptionSetting = Union[EncryptionDisabled, EncryptionEnabled]


def parse_setting(algorithm: str, key: Optional[str]) -> EncryptionSetting:
    """Turn a textual algorithm name (possibly ``"none"``) into a setting."""
    name = (algorithm or "").strip().lower()
    if name == DISABLED:
        return EncryptionDisabled()
    if not key:
        raise ValueError(f"Algorithm {algorithm!r} requires an encryption key")
    return EncryptionEnabled(algorithm=name, key=key)


def get_cipher_algorithm(name: str) -> Optional[CipherAlgorithm]:
    """Return the algorithm registered as ``name``, or None for ``"none"``."""
    normalized = (name or "").strip().lower()
    if normalized == DISABLED:
        return None
    try:
        return ALGORITHMS[normalized]
    except KeyError:
        raise UnsupportedAlgorithmError(
            f"The algorithm '{name}' is not supported; expected one of: "
            + ", ".join(sorted(ALGORITHMS))
        ) from None


class BlockCipher:
    """An algorithm bound to a key."""

    def __init__(self, algorithm: CipherAlgorithm, key: str):
        if not key:
            raise ValueError("Encryption key must not be empty")
        self.algorithm = algorithm
        self._key = key.encode("utf-8")

    def __repr__(self) -> str:
        return f"BlockCipher({self.algorithm.name!r})"

    @property
    def _iv_length(self) -> int:
        return self.algorithm.block_size // 8

    def _derive_keys(self, salt: bytes) -> tuple[bytes, bytes]:
        size = self.algorithm.key_size
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=size * 2,
            salt=salt,
            iterations=PBKDF2_ITERATIONS,
        )
        material = kdf.derive(self._key)
        return material[:size], material[size:]

    def _mac(self, mac_key: bytes, payload: bytes) -> hmac.HMAC:
        h = hmac.HMAC(mac_key, hashes.SHA256())
        h.update(self.algorithm.name.encode("ascii"))
        h.update(payload)
        return h

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(self._iv_length)
        enc_key, mac_key = self._derive_keys(iv)
        padder = padding.PKCS7(self.algorithm.block_size).padder()
        data = padder.update(plaintext.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(self.algorithm.factory(enc_key), modes.CBC(iv)).encryptor()
        payload = iv + encryptor.update(data) + encryptor.finalize()
        tag = self._mac(mac_key, payload).finalize()
        return tag.hex() + base64.b64encode(payload).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        if not ciphertext or len(ciphertext) <= MAC_HEX_LENGTH:
            raise DecryptionError("Encrypted value is too short")
        try:
            tag = bytes.fromhex(ciphertext[:MAC_HEX_LENGTH])
            payload = base64.b64decode(ciphertext[MAC_HEX_LENGTH:], validate=True)
        except ValueError as exc:
            raise DecryptionError(f"Encrypted value is malformed: {exc}") from exc
        if len(payload) <= self._iv_length:
            raise DecryptionError("Encrypted value is too short")

        iv, body = payload[: self._iv_length], payload[self._iv_length:]
        enc_key, mac_key = self._derive_keys(iv)
        try:
            self._mac(mac_key, payload).verify(tag)
        except InvalidSignature:
            raise DecryptionError(
                f"Authentication failed for {self.algorithm.name}; wrong key or algorithm?"
            ) from None

        decryptor = Cipher(self.algorithm.factory(enc_key), modes.CBC(iv)).decryptor()
        try:
            data = decryptor.update(body) + decryptor.finalize()
            unpadder = padding.PKCS7(self.algorithm.block_size).unpadder()
            return (unpadder.update(data) + unpadder.finalize()).decode("utf-8")
        except ValueError as exc:
            raise DecryptionError(f"Decrypted value is corrupt: {exc}") from exc


def build_cipher(setting: EncryptionSetting) -> Optional[BlockCipher]:
    """Return a cipher for ``setting``; None when encryption is disabled."""
    algorithm = get_cipher_algorithm(setting.algorithm)
    if algorithm is None:
        return None
    return BlockCipher(algorithm, setting.key)
