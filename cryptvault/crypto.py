"""
Cipher primitives resolved from transformation strings.

This module provides:
- Transformation: parsed "algorithm/mode/padding" descriptor that encrypts
  and decrypts with the matching cryptography primitive
- EncryptedData: algorithm parameters and ciphertext produced by one encryption
- generate_random_bytes / generate_key: CSPRNG helpers

Transformations are resolved through lookup tables (name -> factory). Every
encrypt/decrypt call builds a fresh cipher context, so a Transformation can be
shared between threads.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Type

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, CipherAlgorithm, algorithms, modes

from .errors import MalformedParameters, UnsupportedTransformation

# Cryptographic constants
DEFAULT_TRANSFORMATION: str = "AES/CBC/PKCS5Padding"
AES_256_KEY_SIZE: int = 32  # 256 bits
GCM_NONCE_SIZE: int = 12  # 96 bits
GCM_TAG_SIZE: int = 16  # 128 bits

RandomBytes = Callable[[int], bytes]


def generate_random_bytes(length: int) -> bytes:
    """
    Generate cryptographically secure random bytes.

    Args:
        length: Number of bytes to generate

    Returns:
        Random bytes of specified length
    """
    return secrets.token_bytes(length)


def generate_key(size: int = AES_256_KEY_SIZE) -> bytes:
    """Generate a random secret key (32 bytes / AES-256 by default)."""
    return generate_random_bytes(size)


# =============================================================================
# Capability Tables
# =============================================================================


@dataclass(frozen=True)
class _ModeSpec:
    factory: Callable[..., modes.Mode]
    parameter_size: Optional[int] = None  # None: one cipher block
    tag_size: int = 0
    # stream and AEAD modes take cleartext of any length
    accepts_padding: bool = True


_ALGORITHMS: Dict[str, Type[CipherAlgorithm]] = {
    "AES": algorithms.AES,
}

_MODES: Dict[str, _ModeSpec] = {
    "CBC": _ModeSpec(modes.CBC),
    "CTR": _ModeSpec(modes.CTR, accepts_padding=False),
    "ECB": _ModeSpec(lambda parameters: modes.ECB(), parameter_size=0),
    "GCM": _ModeSpec(
        modes.GCM, parameter_size=GCM_NONCE_SIZE, tag_size=GCM_TAG_SIZE, accepts_padding=False
    ),
}

# True when the padding scheme pads to the cipher block size
_PADDINGS: Dict[str, bool] = {
    "NOPADDING": False,
    "PKCS5PADDING": True,
    "PKCS7PADDING": True,
}


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class EncryptedData:
    """
    Output of a single encryption.

    ``parameters`` holds the encoded algorithm parameters (the raw IV or nonce,
    empty for ECB). For GCM the 16-byte authentication tag is appended to
    ``ciphertext``.
    """

    parameters: bytes
    ciphertext: bytes


@dataclass(frozen=True)
class Transformation:
    """
    Parsed "algorithm/mode/padding" descriptor, e.g. ``AES/CBC/PKCS5Padding``.

    Names are case-insensitive. A bare algorithm name ("AES") means
    ``ECB`` mode with ``PKCS5Padding``.
    """

    name: str
    algorithm: str
    mode: str
    padding: str

    @classmethod
    def parse(cls, name: str) -> Transformation:
        """
        Resolve a transformation string.

        Args:
            name: Transformation such as "AES/CTR/NoPadding"

        Returns:
            Transformation instance

        Raises:
            UnsupportedTransformation: If any segment is unknown, or padding is
                requested for a mode that cannot use it
        """
        if not isinstance(name, str) or not name.strip():
            raise UnsupportedTransformation(f"Invalid transformation: {name!r}")

        segments = [segment.strip().upper() for segment in name.split("/")]
        if len(segments) == 1:
            segments += ["ECB", "PKCS5PADDING"]
        if len(segments) != 3:
            raise UnsupportedTransformation(
                f"Invalid transformation {name!r}: expected algorithm/mode/padding"
            )

        algorithm, mode, pad = segments
        if algorithm not in _ALGORITHMS:
            raise UnsupportedTransformation(f"Unsupported algorithm {algorithm!r} in {name!r}")
        if mode not in _MODES:
            raise UnsupportedTransformation(f"Unsupported mode {mode!r} in {name!r}")
        if pad not in _PADDINGS:
            raise UnsupportedTransformation(f"Unsupported padding {pad!r} in {name!r}")
        if _PADDINGS[pad] and not _MODES[mode].accepts_padding:
            raise UnsupportedTransformation(f"Mode {mode!r} does not support padding in {name!r}")

        return cls(name=name, algorithm=algorithm, mode=mode, padding=pad)

    @property
    def block_size(self) -> int:
        """Cipher block size in bytes."""
        return _ALGORITHMS[self.algorithm].block_size // 8

    @property
    def parameter_length(self) -> int:
        """Length of the encoded algorithm parameters in bytes."""
        size = _MODES[self.mode].parameter_size
        return self.block_size if size is None else size

    @property
    def padded(self) -> bool:
        return _PADDINGS[self.padding]

    def ciphertext_length(self, cleartext_length: int) -> int:
        """Ciphertext length (including any authentication tag) for a cleartext length."""
        length = cleartext_length
        if self.padded:
            length = (cleartext_length // self.block_size + 1) * self.block_size
        return length + _MODES[self.mode].tag_size

    def decode_parameters(self, encoded: bytes) -> bytes:
        """
        Validate encoded algorithm parameters taken from a blob.

        Raises:
            MalformedParameters: If the length does not fit this transformation
        """
        if len(encoded) != self.parameter_length:
            raise MalformedParameters(
                f"{self.name} expects {self.parameter_length} bytes of algorithm "
                f"parameters, got {len(encoded)}"
            )
        return bytes(encoded)

    def encrypt(
        self,
        key: bytes,
        cleartext: bytes,
        parameters: Optional[bytes] = None,
        random_bytes: RandomBytes = generate_random_bytes,
    ) -> EncryptedData:
        """
        Encrypt cleartext.

        Args:
            key: Raw secret key; its size must suit the algorithm
            cleartext: Data to encrypt
            parameters: Optional IV/nonce; generated with ``random_bytes`` if omitted
            random_bytes: CSPRNG used for parameter generation

        Returns:
            EncryptedData with the parameters actually used

        Raises:
            ValueError: If the key or parameters do not fit (from cryptography)
        """
        if parameters is None:
            parameters = random_bytes(self.parameter_length)
        elif len(parameters) != self.parameter_length:
            raise ValueError(
                f"{self.name} requires {self.parameter_length} bytes of algorithm "
                f"parameters, got {len(parameters)}"
            )

        if self.padded:
            padder = padding.PKCS7(self.block_size * 8).padder()
            cleartext = padder.update(cleartext) + padder.finalize()

        encryptor = Cipher(self._algorithm(key), self._mode(parameters)).encryptor()
        ciphertext = encryptor.update(cleartext) + encryptor.finalize()
        if _MODES[self.mode].tag_size:
            ciphertext += encryptor.tag

        return EncryptedData(parameters=bytes(parameters), ciphertext=ciphertext)

    def decrypt(self, key: bytes, encrypted: EncryptedData) -> bytes:
        """
        Decrypt ciphertext.

        Raises:
            ValueError: On bad key size, parameters, length or padding
            cryptography.exceptions.InvalidTag: If authentication fails (GCM)
        """
        ciphertext = encrypted.ciphertext
        tag = None
        tag_size = _MODES[self.mode].tag_size
        if tag_size:
            if len(ciphertext) < tag_size:
                raise ValueError("Ciphertext is shorter than the authentication tag")
            ciphertext, tag = ciphertext[:-tag_size], ciphertext[-tag_size:]

        decryptor = Cipher(self._algorithm(key), self._mode(encrypted.parameters, tag)).decryptor()
        cleartext = decryptor.update(ciphertext) + decryptor.finalize()

        if self.padded:
            unpadder = padding.PKCS7(self.block_size * 8).unpadder()
            cleartext = unpadder.update(cleartext) + unpadder.finalize()
        return cleartext

    def _algorithm(self, key: bytes) -> CipherAlgorithm:
        return _ALGORITHMS[self.algorithm](key)

    def _mode(self, parameters: bytes, tag: Optional[bytes] = None) -> modes.Mode:
        factory = _MODES[self.mode].factory
        if tag is None:
            return factory(parameters)
        return factory(parameters, tag)
