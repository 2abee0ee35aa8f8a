"""
Building a CryptVault from configuration.

Key versions are read from a mapping, or from environment variables
(optionally loaded from a .env file):

    CRYPTVAULT_KEYS_0_VERSION=1
    CRYPTVAULT_KEYS_0_KEY=<base64 key>
    CRYPTVAULT_KEYS_0_TRANSFORMATION=AES/CBC/PKCS5Padding   (optional)
    CRYPTVAULT_KEYS_0_LEGACY=false                          (optional)
    CRYPTVAULT_KEYS_1_VERSION=2
    ...
    CRYPTVAULT_DEFAULT_KEY=1                                (optional)

The vault is only built when ``CRYPTVAULT_KEYS_0_KEY`` is set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from dotenv import dotenv_values

from .crypto import DEFAULT_TRANSFORMATION
from .errors import InvalidConfiguration, KeyVersionError, UnsupportedTransformation
from .keys import MAX_VERSION, MIN_VERSION, KeyVersion, KeyVersionRegistry
from .vault import CryptVault

ENV_PREFIX: str = "CRYPTVAULT_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"", "0", "false", "no", "off"}


# =============================================================================
# Settings
# =============================================================================


@dataclass
class KeyVersionSettings:
    """One configured key version; ``key`` is base64-encoded."""

    version: int
    key: Optional[str] = field(default=None, repr=False)
    transformation: Optional[str] = None
    legacy: bool = False


@dataclass
class VaultSettings:
    """All configured key versions plus an optional explicit default."""

    keys: List[KeyVersionSettings] = field(default_factory=list)
    default_key: Optional[int] = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> VaultSettings:
        """
        Parse settings from a nested mapping (e.g. loaded from YAML or JSON).

        Expected shape::

            {"keys": [{"version": 1, "key": "...", "transformation": "...",
                       "legacy": False}],
             "default_key": 1}

        Raises:
            InvalidConfiguration: If a value has the wrong type
        """
        keys = []
        for index, entry in enumerate(mapping.get("keys") or []):
            if not isinstance(entry, Mapping):
                raise InvalidConfiguration(f"keys[{index}] must be a mapping")
            keys.append(
                KeyVersionSettings(
                    version=_parse_int(entry.get("version"), f"keys[{index}].version"),
                    key=entry.get("key"),
                    transformation=entry.get("transformation"),
                    legacy=_parse_bool(entry.get("legacy", False), f"keys[{index}].legacy"),
                )
            )

        default_key = None
        for name in ("default_key", "default-key", "defaultKey"):
            if mapping.get(name) is not None:
                default_key = _parse_int(mapping[name], name)
                break

        return cls(keys=keys, default_key=default_key)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[Union[str, Path]] = None,
    ) -> VaultSettings:
        """
        Parse settings from environment variables.

        Args:
            environ: Variables to read; defaults to ``os.environ``
            env_file: Optional .env file; its values never override ``environ``

        Raises:
            InvalidConfiguration: If a value cannot be parsed
        """
        variables = _environment(environ, env_file)

        keys = []
        index = 0
        while any(name.startswith(f"{ENV_PREFIX}KEYS_{index}_") for name in variables):
            prefix = f"{ENV_PREFIX}KEYS_{index}_"
            keys.append(
                KeyVersionSettings(
                    version=_parse_int(variables.get(prefix + "VERSION"), prefix + "VERSION"),
                    key=variables.get(prefix + "KEY"),
                    transformation=variables.get(prefix + "TRANSFORMATION") or None,
                    legacy=_parse_bool(variables.get(prefix + "LEGACY", ""), prefix + "LEGACY"),
                )
            )
            index += 1

        default_key = variables.get(f"{ENV_PREFIX}DEFAULT_KEY")
        return cls(
            keys=keys,
            default_key=_parse_int(default_key, f"{ENV_PREFIX}DEFAULT_KEY") if default_key else None,
        )


# =============================================================================
# Construction
# =============================================================================


def build_registry(settings: VaultSettings) -> KeyVersionRegistry:
    """
    Build a key version registry from settings.

    Transformations are resolved eagerly so a typo fails at startup rather
    than on the first encryption.

    Raises:
        InvalidConfiguration: If no keys are configured, a key is missing or not
            base64, a version is outside [1, 255] or duplicated, a transformation
            is unsupported, or the default version is not registered
    """
    if not settings.keys:
        raise InvalidConfiguration("No key versions configured")

    registry = KeyVersionRegistry()
    for props in settings.keys:
        if not props.key:
            raise InvalidConfiguration(f"Key version {props.version} has no key")
        if not MIN_VERSION <= props.version <= MAX_VERSION:
            raise InvalidConfiguration(
                f"Version should be in [{MIN_VERSION}, {MAX_VERSION}], got {props.version}"
            )

        transformation = props.transformation or DEFAULT_TRANSFORMATION
        try:
            key_version = KeyVersion.from_base64(
                props.version, transformation, props.key, props.legacy
            )
            registry.add(key_version)
        except (UnsupportedTransformation, KeyVersionError, ValueError) as e:
            raise InvalidConfiguration(f"Key version {props.version}: {e}") from e

    if settings.default_key is not None:
        if not MIN_VERSION <= settings.default_key <= MAX_VERSION:
            raise InvalidConfiguration(
                f"Default key version should be in [{MIN_VERSION}, {MAX_VERSION}], "
                f"was {settings.default_key}"
            )
        if settings.default_key not in registry:
            raise InvalidConfiguration(
                f"No version {settings.default_key} registered; cannot make default"
            )
        registry.set_default(settings.default_key)

    return registry


def is_configured(
    environ: Optional[Mapping[str, str]] = None,
    env_file: Optional[Union[str, Path]] = None,
) -> bool:
    """Report whether at least the first key is present in the environment."""
    return bool(_environment(environ, env_file).get(f"{ENV_PREFIX}KEYS_0_KEY"))


def load_vault(
    environ: Optional[Mapping[str, str]] = None,
    env_file: Optional[Union[str, Path]] = None,
) -> Optional[CryptVault]:
    """
    Build a CryptVault from the environment.

    Returns:
        CryptVault, or None when no keys are configured

    Raises:
        InvalidConfiguration: If keys are configured but invalid
    """
    if not is_configured(environ, env_file):
        return None
    settings = VaultSettings.from_env(environ, env_file)
    return CryptVault(build_registry(settings))


# =============================================================================
# Helpers
# =============================================================================


def _environment(
    environ: Optional[Mapping[str, str]],
    env_file: Optional[Union[str, Path]],
) -> Dict[str, str]:
    variables: Dict[str, str] = {}
    if env_file is not None:
        variables.update(
            {name: value for name, value in dotenv_values(env_file).items() if value is not None}
        )
    variables.update(os.environ if environ is None else environ)
    return variables


def _parse_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{name} must be an integer, got {value!r}")


def _parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise InvalidConfiguration(f"{name} must be a boolean, got {value!r}")
