"""
Tests for KeyVersion and KeyVersionRegistry.
"""

from __future__ import annotations

import dataclasses

import pytest

from cryptvault import (
    DEFAULT_TRANSFORMATION,
    DuplicateVersion,
    InvalidVersion,
    KeyVersion,
    KeyVersionRegistry,
    NoDefaultSet,
    Transformation,
    UnknownVersion,
    UnsupportedTransformation,
)

from conftest import KEY_BASE64


# =============================================================================
# KeyVersion
# =============================================================================


def test_key_version_defaults(key: bytes) -> None:
    key_version = KeyVersion(1, key=key)

    assert key_version.transformation == DEFAULT_TRANSFORMATION
    assert key_version.legacy is False
    assert key_version.cipher == Transformation.parse("AES/CBC/PKCS5Padding")


def test_key_version_is_immutable(key: bytes) -> None:
    key_version = KeyVersion(1, "AES/CBC/PKCS5Padding", key)

    with pytest.raises(dataclasses.FrozenInstanceError):
        key_version.version = 2  # type: ignore[misc]


def test_key_version_normalizes_mutable_key() -> None:
    material = bytearray(32)
    key_version = KeyVersion(1, "AES/CBC/PKCS5Padding", material)
    material[0] = 0xFF

    assert isinstance(key_version.key, bytes)
    assert key_version.key == bytes(32)


def test_key_version_repr_hides_key(key: bytes) -> None:
    text = repr(KeyVersion(1, "AES/CBC/PKCS5Padding", key))

    assert "key=" not in text
    assert key.decode("ascii") not in text


@pytest.mark.parametrize("version", [-1, 256, 1000])
def test_key_version_must_fit_in_a_byte(version: int, key: bytes) -> None:
    with pytest.raises(InvalidVersion):
        KeyVersion(version, "AES/CBC/PKCS5Padding", key)


def test_key_version_zero_is_constructible(key: bytes) -> None:
    assert KeyVersion(0, "AES/CBC/PKCS5Padding", key).version == 0


def test_from_base64(key: bytes) -> None:
    key_version = KeyVersion.from_base64(3, "AES/CTR/NoPadding", KEY_BASE64, legacy=True)

    assert key_version.version == 3
    assert key_version.transformation == "AES/CTR/NoPadding"
    assert key_version.key == key
    assert key_version.legacy is True


def test_from_base64_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        KeyVersion.from_base64(1, "AES/CBC/PKCS5Padding", "not base64!")


# =============================================================================
# Registry: add / get
# =============================================================================


def test_get_registered_version(registry: KeyVersionRegistry) -> None:
    key_version = registry.get(1)

    assert key_version is not None
    assert key_version.version == 1


def test_get_unregistered_version_returns_none(registry: KeyVersionRegistry) -> None:
    assert registry.get(2) is None


@pytest.mark.parametrize("version", [0, -1, 256])
def test_get_out_of_range_raises(version: int, registry: KeyVersionRegistry) -> None:
    with pytest.raises(InvalidVersion):
        registry.get(version)


def test_add_duplicate_raises(registry: KeyVersionRegistry, second_key: bytes) -> None:
    with pytest.raises(DuplicateVersion):
        registry.add(KeyVersion(1, "AES/CTR/NoPadding", second_key))

    # the original registration is untouched
    assert registry.get(1).transformation == "AES/CBC/PKCS5Padding"


def test_add_version_zero_raises(key: bytes) -> None:
    registry = KeyVersionRegistry()

    with pytest.raises(InvalidVersion):
        registry.add(KeyVersion(0, "AES/CBC/PKCS5Padding", key))
    assert len(registry) == 0


@pytest.mark.parametrize("transformation", ["DES/CBC/PKCS5Padding", "AES/GCM/PKCS5Padding"])
def test_add_unsupported_transformation_raises(transformation: str, key: bytes) -> None:
    registry = KeyVersionRegistry()

    with pytest.raises(UnsupportedTransformation):
        registry.add(KeyVersion(1, transformation, key))
    assert len(registry) == 0
    with pytest.raises(NoDefaultSet):
        registry.get_default()


def test_len_iter_and_contains(key: bytes, second_key: bytes) -> None:
    registry = KeyVersionRegistry.of(
        KeyVersion(5, key=key),
        KeyVersion(2, key=second_key),
        KeyVersion(9, key=key),
    )

    assert len(registry) == 3
    assert [kv.version for kv in registry] == [2, 5, 9]
    assert 5 in registry
    assert 3 not in registry
    assert 0 not in registry


# =============================================================================
# Registry: default version
# =============================================================================


def test_empty_registry_has_no_default() -> None:
    with pytest.raises(NoDefaultSet):
        KeyVersionRegistry().get_default()


def test_first_added_version_becomes_default(key: bytes) -> None:
    registry = KeyVersionRegistry()
    registry.add(KeyVersion(7, key=key))

    assert registry.get_default().version == 7


def test_highest_version_is_default(key: bytes, second_key: bytes) -> None:
    registry = KeyVersionRegistry.of(KeyVersion(1, key=key))
    registry.add(KeyVersion(2, key=second_key))

    assert registry.get_default().version == 2


def test_lower_version_does_not_replace_default(key: bytes, second_key: bytes) -> None:
    registry = KeyVersionRegistry.of(KeyVersion(5, key=key))
    registry.add(KeyVersion(3, key=second_key))

    assert registry.get_default().version == 5


def test_set_default(key: bytes, second_key: bytes) -> None:
    registry = KeyVersionRegistry.of(KeyVersion(1, key=key), KeyVersion(2, key=second_key))
    registry.set_default(1)

    assert registry.get_default().version == 1


def test_explicit_default_survives_higher_registration(key: bytes, second_key: bytes) -> None:
    registry = KeyVersionRegistry.of(KeyVersion(1, key=key), KeyVersion(2, key=second_key))
    registry.set_default(1)
    registry.add(KeyVersion(3, key=key))

    assert registry.get_default().version == 1


@pytest.mark.parametrize("version", [2, 0, 300])
def test_set_default_unknown_version(version: int, registry: KeyVersionRegistry) -> None:
    with pytest.raises(UnknownVersion):
        registry.set_default(version)

    assert registry.get_default().version == 1


# =============================================================================
# Registry: legacy predicate
# =============================================================================


def test_is_legacy_for_registered_legacy_version(key: bytes) -> None:
    registry = KeyVersionRegistry.of(KeyVersion(1, key=key, legacy=True))

    # 0x81 (-127 as a signed byte) was version 1 in the legacy numbering
    assert registry.is_legacy(0x81) is True


def test_is_legacy_false_for_non_legacy_version(registry: KeyVersionRegistry) -> None:
    assert registry.is_legacy(0x81) is False


def test_is_legacy_false_for_unregistered_version(key: bytes) -> None:
    registry = KeyVersionRegistry.of(KeyVersion(1, key=key, legacy=True))

    assert registry.is_legacy(0x82) is False


@pytest.mark.parametrize("byte", range(256))
def test_is_legacy_never_raises(byte: int, registry: KeyVersionRegistry) -> None:
    assert registry.is_legacy(byte) in (True, False)


def test_is_legacy_maps_zero_byte_to_version_128(key: bytes) -> None:
    registry = KeyVersionRegistry.of(KeyVersion(128, key=key, legacy=True))

    assert registry.is_legacy(0x00) is True
    assert registry.is_legacy(0x80) is False
