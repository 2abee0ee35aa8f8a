"""
Exception classes for cryptvault operations.

Every error raised by this package derives from CryptVaultError. Errors are
grouped by where they originate:

- KeyVersionError: registry misuse and key selection (caller-fixable)
- DecodeError: blobs that cannot be decoded (untrusted or foreign input)
- CryptOperationFailure: the underlying cipher refused the operation
"""

from __future__ import annotations

from typing import Optional


class CryptVaultError(Exception):
    """Base exception for all cryptvault operations."""

    pass


# =============================================================================
# Key Version Errors
# =============================================================================


class KeyVersionError(CryptVaultError):
    """A key version was misused or could not be selected."""

    pass


class InvalidVersion(KeyVersionError):
    """Version number is outside the allowed range."""

    pass


class DuplicateVersion(KeyVersionError):
    """Version number is already registered."""

    pass


class UnknownVersion(KeyVersionError):
    """Version number is not registered."""

    pass


class NoDefaultSet(KeyVersionError):
    """No default key version has been established."""

    pass


class LegacyKeyRejected(KeyVersionError):
    """Legacy key versions may only be used for decryption."""

    pass


# =============================================================================
# Decode Errors
# =============================================================================


class DecodeError(CryptVaultError):
    """An encrypted blob could not be decoded."""

    pass


class MalformedEnvelope(DecodeError):
    """Blob is too short or its header is inconsistent."""

    pass


class MalformedParameters(DecodeError):
    """Encoded algorithm parameters do not fit the transformation."""

    pass


class UnknownProtocolVersion(DecodeError):
    """Leading byte is neither the current protocol nor a registered legacy version."""

    pass


class UnknownKeyVersion(DecodeError):
    """Blob references a key version that is not registered."""

    pass


# =============================================================================
# Cipher and Configuration Errors
# =============================================================================


class CryptOperationFailure(CryptVaultError):
    """
    The underlying cipher failed to encrypt or decrypt.

    Wraps bad key sizes, parameter mismatches, padding and tag failures under
    a single type. The original exception is available as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        key_version: Optional[int] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.key_version = key_version
        self.operation = operation


class UnsupportedTransformation(CryptVaultError):
    """Transformation names an unknown algorithm, mode or padding."""

    pass


class InvalidConfiguration(CryptVaultError):
    """Key versions could not be built from configuration."""

    pass
