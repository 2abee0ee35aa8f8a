"""
Key versions and the registry that holds them.

This module provides:
- KeyVersion: immutable (version, transformation, key, legacy) record
- KeyVersionRegistry: versioned key lookup with a default for new encryptions

A registry is built once at startup and only read afterwards, so it needs no
locking.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional

from .crypto import DEFAULT_TRANSFORMATION, Transformation
from .envelope import from_signed_byte
from .errors import (
    DuplicateVersion,
    InvalidVersion,
    NoDefaultSet,
    UnknownVersion,
)

logger = logging.getLogger(__name__)

# A version is stored in a single byte of the blob
MAX_VERSION: int = 255
# Registries reserve 0; the smallest registrable version
MIN_VERSION: int = 1


@dataclass(frozen=True)
class KeyVersion:
    """
    A numbered (key, transformation) pair.

    Legacy versions were written by the previous blob format and can only be
    used for decryption.
    """

    version: int
    transformation: str = DEFAULT_TRANSFORMATION
    key: bytes = field(default=b"", repr=False)
    legacy: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.version, int) or not 0 <= self.version <= MAX_VERSION:
            raise InvalidVersion(f"Version must fit in a byte, got {self.version!r}")
        # Normalize bytearray/memoryview so the record stays immutable
        object.__setattr__(self, "key", bytes(self.key))

    @classmethod
    def from_base64(
        cls,
        version: int,
        transformation: str,
        key_base64: str,
        legacy: bool = False,
    ) -> KeyVersion:
        """
        Create a KeyVersion from a base64-encoded key.

        Raises:
            ValueError: If ``key_base64`` is not valid base64
        """
        try:
            key = base64.b64decode(key_base64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Key for version {version} is not valid base64") from e
        return cls(version=version, transformation=transformation, key=key, legacy=legacy)

    @property
    def cipher(self) -> Transformation:
        """Resolve this version's transformation."""
        return Transformation.parse(self.transformation)


class KeyVersionRegistry:
    """
    Registered key versions, indexed by version number.

    The default version is used for encryptions that do not name a version.
    Adding a version with a higher number than the current default makes it
    the new default, unless a default was chosen with ``set_default``.
    """

    def __init__(self) -> None:
        self._versions: Dict[int, KeyVersion] = {}
        self._default: Optional[KeyVersion] = None
        self._default_pinned = False

    @classmethod
    def of(cls, *key_versions: KeyVersion) -> KeyVersionRegistry:
        """Create a registry holding ``key_versions``."""
        registry = cls()
        registry.add_all(key_versions)
        return registry

    def add(self, key_version: KeyVersion) -> None:
        """
        Register a key version.

        Args:
            key_version: The version to add

        Raises:
            InvalidVersion: If the version is outside [1, 255]
            DuplicateVersion: If the version is already registered
            UnsupportedTransformation: If the transformation cannot be resolved
        """
        if self.get(key_version.version) is not None:
            raise DuplicateVersion(f"Version {key_version.version} is already registered")
        Transformation.parse(key_version.transformation)

        self._versions[key_version.version] = key_version
        logger.debug(
            "Registered key version %d (%s%s)",
            key_version.version,
            key_version.transformation,
            ", legacy" if key_version.legacy else "",
        )

        if self._default is None or (
            not self._default_pinned and key_version.version > self._default.version
        ):
            self._default = key_version

    def add_all(self, key_versions: Iterable[KeyVersion]) -> None:
        """Register several key versions in order."""
        for key_version in key_versions:
            self.add(key_version)

    def get(self, version: int) -> Optional[KeyVersion]:
        """
        Look up a key version.

        Args:
            version: Version number in [1, 255]

        Returns:
            The KeyVersion, or None if it is not registered

        Raises:
            InvalidVersion: If the version is outside [1, 255]
        """
        if not isinstance(version, int) or not MIN_VERSION <= version <= MAX_VERSION:
            raise InvalidVersion(
                f"Versions must be in range [{MIN_VERSION}, {MAX_VERSION}], got {version!r}"
            )
        return self._versions.get(version)

    def get_default(self) -> KeyVersion:
        """
        Get the version used for unqualified encryptions.

        Raises:
            NoDefaultSet: If no version was ever registered or selected
        """
        if self._default is None:
            raise NoDefaultSet("No default key version set")
        return self._default

    def set_default(self, version: int) -> None:
        """
        Select the version used for unqualified encryptions.

        Raises:
            UnknownVersion: If the version is not registered
        """
        key_version = self._versions.get(version)
        if key_version is None:
            raise UnknownVersion(f"No version {version} registered; cannot make it the default")
        self._default = key_version
        self._default_pinned = True
        logger.debug("Default key version set to %d", version)

    def is_legacy(self, version_byte: int) -> bool:
        """
        Report whether a leading blob byte names a registered legacy version.

        Args:
            version_byte: Raw first byte of a blob (0-255)

        Returns:
            True only if the mapped version is registered and marked legacy
        """
        key_version = self._versions.get(from_signed_byte(version_byte))
        return key_version is not None and key_version.legacy

    def __contains__(self, version: object) -> bool:
        return version in self._versions

    def __iter__(self) -> Iterator[KeyVersion]:
        return iter(sorted(self._versions.values(), key=lambda kv: kv.version))

    def __len__(self) -> int:
        return len(self._versions)

    def __repr__(self) -> str:
        default = self._default.version if self._default else None
        return f"KeyVersionRegistry(versions={sorted(self._versions)}, default={default})"
