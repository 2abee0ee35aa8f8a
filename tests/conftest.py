"""
Pytest configuration and fixtures for cryptvault tests.
"""

from __future__ import annotations

import base64
from typing import Callable

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from cryptvault import CryptVault, KeyVersion, KeyVersionRegistry

KEY_BASE64 = "VGltVGhlSW5jcmVkaWJsZURldmVsb3BlclNlY3JldCE="
SECOND_KEY_BASE64 = "IqWTpi549pJDZ1kuc9HppcMxtPfu2SP6Idlh+tz4LL4="
WRONG_KEY_BASE64 = "VGhpcyBpcyB0aGUgd3Jvbmcga2V5LCBJJ20gc29ycnk="

PLAIN_TEXT = "The quick brown fox jumps over the lazy dog"
PLAIN_BYTES = PLAIN_TEXT.encode("utf-8")
LOREM = (
    b"Lorem ipsum dolor sit amet, consectetur adipiscing elit, sed do eiusmod "
    b"tempor incididunt ut labore et dolore magna aliqua."
)


@pytest.fixture
def key() -> bytes:
    """The 256-bit key registered as version 1."""
    return base64.b64decode(KEY_BASE64)


@pytest.fixture
def second_key() -> bytes:
    return base64.b64decode(SECOND_KEY_BASE64)


@pytest.fixture
def wrong_key() -> bytes:
    return base64.b64decode(WRONG_KEY_BASE64)


@pytest.fixture
def registry(key: bytes) -> KeyVersionRegistry:
    """Registry holding version 1 as AES-256-CBC."""
    return KeyVersionRegistry.of(KeyVersion(1, "AES/CBC/PKCS5Padding", key))


@pytest.fixture
def vault(registry: KeyVersionRegistry) -> CryptVault:
    """Create a vault over the single-version registry."""
    return CryptVault(registry)


@pytest.fixture
def make_legacy_blob() -> Callable[[int, bytes, bytes, bytes], bytes]:
    """
    Build a blob in the pre-envelope format.

    The blob is written with the cryptography primitives directly, independent
    of the code under test: signed version byte, 16-byte IV, AES/CBC/PKCS5Padding.
    """

    def _make(leading_byte: int, key: bytes, cleartext: bytes, iv: bytes = bytes(range(16))) -> bytes:
        padder = padding.PKCS7(128).padder()
        padded = padder.update(cleartext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return bytes((leading_byte,)) + iv + ciphertext

    return _make
