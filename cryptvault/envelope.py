"""
Binary envelope formats.

Current protocol (all single-byte fields unsigned):

    offset 0        : 0x00               protocol marker
    offset 1        : key version        0-255
    offset 2        : paramLen           0-255
    offset 3..3+L   : algorithm parameters (raw IV/nonce, L = paramLen)
    offset 3+L..end : ciphertext

Legacy protocol (decrypt only):

    offset 0        : key version as a signed byte shifted by -128 (0x81 = version 1)
    offset 1..17    : 16-byte IV
    offset 17..end  : AES/CBC/PKCS5Padding ciphertext

A legacy blob for version 128 starts with 0x00 and cannot be told apart from
the current protocol. Decoding always treats 0x00 as the current protocol.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import MalformedEnvelope

PROTOCOL_VERSION: int = 0x00
HEADER_SIZE: int = 3
MAX_PARAMETERS_LENGTH: int = 255
LEGACY_IV_SIZE: int = 16
LEGACY_TRANSFORMATION: str = "AES/CBC/PKCS5Padding"

MIN_SIGNED_BYTE: int = -128


def to_signed_byte(version: int) -> int:
    """Encode a version the way the legacy format stored it (1 -> 0x81)."""
    return (version + MIN_SIGNED_BYTE) & 0xFF


def from_signed_byte(value: int) -> int:
    """Decode a legacy leading byte to its version (0x81 -> 1, 0x00 -> 128)."""
    value &= 0xFF
    signed = value - 256 if value > 127 else value
    return signed - MIN_SIGNED_BYTE


def encrypted_blob_size(parameter_length: int, ciphertext_length: int) -> int:
    """Total size of a current-protocol blob."""
    return HEADER_SIZE + parameter_length + ciphertext_length


@dataclass
class Envelope:
    """Decoded current-protocol blob."""

    key_version: int
    parameters: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        """
        Serialize to the current protocol.

        Raises:
            MalformedEnvelope: If the version or parameters do not fit a byte
        """
        if not 0 <= self.key_version <= 255:
            raise MalformedEnvelope(f"Key version must fit in a byte, got {self.key_version}")
        if len(self.parameters) > MAX_PARAMETERS_LENGTH:
            raise MalformedEnvelope(
                f"Algorithm parameters too large: at most {MAX_PARAMETERS_LENGTH} bytes, "
                f"got {len(self.parameters)}"
            )
        header = bytes((PROTOCOL_VERSION, self.key_version, len(self.parameters)))
        return header + self.parameters + self.ciphertext

    @classmethod
    def from_bytes(cls, blob: bytes) -> Envelope:
        """
        Parse a current-protocol blob.

        Args:
            blob: Raw blob bytes

        Returns:
            Envelope instance

        Raises:
            MalformedEnvelope: If the blob is truncated or not current protocol
        """
        if len(blob) < HEADER_SIZE:
            raise MalformedEnvelope(
                f"Blob too small: expected at least {HEADER_SIZE} bytes, got {len(blob)}"
            )
        if blob[0] != PROTOCOL_VERSION:
            raise MalformedEnvelope(f"Not a protocol {PROTOCOL_VERSION} blob: leading byte {blob[0]:#04x}")

        parameters_end = HEADER_SIZE + blob[2]
        if len(blob) < parameters_end:
            raise MalformedEnvelope(
                f"Blob too small: header declares {blob[2]} bytes of algorithm parameters, "
                f"only {len(blob) - HEADER_SIZE} present"
            )
        return cls(
            key_version=blob[1],
            parameters=bytes(blob[HEADER_SIZE:parameters_end]),
            ciphertext=bytes(blob[parameters_end:]),
        )


@dataclass
class LegacyEnvelope:
    """Decoded legacy-protocol blob."""

    key_version: int
    iv: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        """Serialize to the legacy protocol."""
        if len(self.iv) != LEGACY_IV_SIZE:
            raise MalformedEnvelope(f"Legacy IV must be {LEGACY_IV_SIZE} bytes, got {len(self.iv)}")
        return bytes((to_signed_byte(self.key_version),)) + self.iv + self.ciphertext

    @classmethod
    def from_bytes(cls, blob: bytes) -> LegacyEnvelope:
        """
        Parse a legacy-protocol blob.

        Raises:
            MalformedEnvelope: If the blob is shorter than marker + IV
        """
        if len(blob) < 1 + LEGACY_IV_SIZE:
            raise MalformedEnvelope(
                f"Legacy blob too small: expected at least {1 + LEGACY_IV_SIZE} bytes, got {len(blob)}"
            )
        return cls(
            key_version=from_signed_byte(blob[0]),
            iv=bytes(blob[1 : 1 + LEGACY_IV_SIZE]),
            ciphertext=bytes(blob[1 + LEGACY_IV_SIZE :]),
        )
