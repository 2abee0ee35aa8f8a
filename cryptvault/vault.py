"""
Versioned encryption service.

This module provides:
- CryptVault: encrypts under a registered key version and decrypts any blob
  produced by a registered version, including legacy-format blobs

Encrypt flow:
1. Select the key version (explicit, or the registry default)
2. Encrypt with the version's transformation; a fresh IV/nonce is generated
   unless the caller supplies one
3. Frame version, parameters and ciphertext as an Envelope

Decrypt flow, decided by the first byte:
- 0x00: current protocol, key version and parameters read from the envelope
- otherwise: legacy protocol if the byte names a registered legacy version,
  else UnknownProtocolVersion
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from cryptography.exceptions import InvalidTag, UnsupportedAlgorithm

from .crypto import EncryptedData, RandomBytes, Transformation, generate_random_bytes
from .envelope import (
    LEGACY_TRANSFORMATION,
    PROTOCOL_VERSION,
    Envelope,
    LegacyEnvelope,
    encrypted_blob_size,
)
from .errors import (
    CryptOperationFailure,
    LegacyKeyRejected,
    MalformedEnvelope,
    UnknownKeyVersion,
    UnknownProtocolVersion,
    UnknownVersion,
)
from .keys import KeyVersion, KeyVersionRegistry

logger = logging.getLogger(__name__)

_LEGACY_CIPHER = Transformation.parse(LEGACY_TRANSFORMATION)

# Everything the cipher layer may raise for bad keys, parameters or data
_CIPHER_ERRORS = (ValueError, TypeError, InvalidTag, UnsupportedAlgorithm)


@contextmanager
def _crypt_operation(key_version: int, operation: str) -> Iterator[None]:
    try:
        yield
    except _CIPHER_ERRORS as e:
        raise CryptOperationFailure(
            f"{type(e).__name__} caught while {operation}ing with key version {key_version}",
            key_version=key_version,
            operation=operation,
        ) from e


class CryptVault:
    """
    Encrypts and decrypts self-describing blobs with versioned keys.

    The vault holds no per-call state; every operation builds its own cipher
    context, so one instance can serve many threads once the registry is
    fully populated.
    """

    def __init__(
        self,
        key_versions: KeyVersionRegistry,
        random_bytes: RandomBytes = generate_random_bytes,
    ) -> None:
        """
        Initialize CryptVault.

        Args:
            key_versions: Registry of usable key versions
            random_bytes: CSPRNG for IV/nonce generation
        """
        self._key_versions = key_versions
        self._random_bytes = random_bytes

    @classmethod
    def of(cls, *key_versions: KeyVersion) -> CryptVault:
        """Create a vault over a new registry holding ``key_versions``."""
        return cls(KeyVersionRegistry.of(*key_versions))

    @property
    def key_versions(self) -> KeyVersionRegistry:
        """Get the key version registry."""
        return self._key_versions

    def size(self) -> int:
        """Amount of key versions registered."""
        return len(self._key_versions)

    __len__ = size

    def encrypt(
        self,
        cleartext: bytes,
        key_version: Union[KeyVersion, int, None] = None,
        parameters: Optional[bytes] = None,
    ) -> bytes:
        """
        Encrypt cleartext into a current-protocol blob.

        Args:
            cleartext: Data to encrypt
            key_version: KeyVersion or version number; the default if omitted
            parameters: Optional IV/nonce; generated per call if omitted

        Returns:
            Encrypted blob

        Raises:
            NoDefaultSet: If no version is given and the registry has no default
            UnknownVersion: If the given version is not registered, or a KeyVersion
                differs from the one registered under its number
            LegacyKeyRejected: If the selected version is legacy
            CryptOperationFailure: If the cipher rejects key, parameters or data
        """
        selected = self._select(key_version)
        if selected.legacy:
            raise LegacyKeyRejected(f"cannot encrypt with legacy key version {selected.version}")

        with _crypt_operation(selected.version, "encrypt"):
            encrypted = selected.cipher.encrypt(
                selected.key, cleartext, parameters, self._random_bytes
            )

        return Envelope(
            key_version=selected.version,
            parameters=encrypted.parameters,
            ciphertext=encrypted.ciphertext,
        ).to_bytes()

    def decrypt(self, blob: bytes) -> bytes:
        """
        Decrypt a blob produced by this library (current or legacy protocol).

        Args:
            blob: Encrypted blob

        Returns:
            Decrypted cleartext

        Raises:
            MalformedEnvelope: If the blob is empty or truncated
            UnknownProtocolVersion: If the leading byte is not recognized
            UnknownKeyVersion: If the referenced key version is not registered
            MalformedParameters: If the algorithm parameters do not fit
            CryptOperationFailure: If the cipher fails (wrong key, tampering, bad padding)
        """
        if not blob:
            raise MalformedEnvelope("Blob is empty")

        if blob[0] == PROTOCOL_VERSION:
            return self._decrypt_current(blob)

        if self._key_versions.is_legacy(blob[0]):
            return self._decrypt_legacy(blob)

        raise UnknownProtocolVersion(
            f"cryptvault protocol version in encrypted blob is unknown: {blob[0]:#04x}"
        )

    def encrypted_blob_size(
        self,
        cleartext_length: int,
        key_version: Union[KeyVersion, int, None] = None,
    ) -> int:
        """
        Size of the blob ``encrypt`` produces for a cleartext of given length.

        Raises:
            NoDefaultSet: If no version is given and the registry has no default
            UnknownVersion: If the given version is not registered
        """
        cipher = self._select(key_version).cipher
        return encrypted_blob_size(
            cipher.parameter_length, cipher.ciphertext_length(cleartext_length)
        )

    def _select(self, key_version: Union[KeyVersion, int, None]) -> KeyVersion:
        if key_version is None:
            return self._key_versions.get_default()
        if isinstance(key_version, KeyVersion):
            # the blob names only the version number, so it must resolve to this exact key
            if (
                key_version.version not in self._key_versions
                or self._key_versions.get(key_version.version) != key_version
            ):
                raise UnknownVersion(
                    f"Key version {key_version.version} does not match the registered version"
                )
            return key_version

        selected = self._key_versions.get(key_version)
        if selected is None:
            raise UnknownVersion(f"Version {key_version} is not registered")
        return selected

    def _decrypt_current(self, blob: bytes) -> bytes:
        envelope = Envelope.from_bytes(blob)
        if envelope.key_version not in self._key_versions:
            raise UnknownKeyVersion(f"Key version {envelope.key_version} is not registered")
        key_version = self._key_versions.get(envelope.key_version)

        cipher = key_version.cipher
        parameters = cipher.decode_parameters(envelope.parameters)

        with _crypt_operation(key_version.version, "decrypt"):
            return cipher.decrypt(
                key_version.key, EncryptedData(parameters=parameters, ciphertext=envelope.ciphertext)
            )

    def _decrypt_legacy(self, blob: bytes) -> bytes:
        envelope = LegacyEnvelope.from_bytes(blob)
        key_version = self._key_versions.get(envelope.key_version)
        logger.debug("Decrypting legacy blob with key version %d", key_version.version)

        # Legacy blobs were always AES/CBC/PKCS5Padding, whatever the version declares
        with _crypt_operation(key_version.version, "decrypt"):
            return _LEGACY_CIPHER.decrypt(
                key_version.key, EncryptedData(parameters=envelope.iv, ciphertext=envelope.ciphertext)
            )
