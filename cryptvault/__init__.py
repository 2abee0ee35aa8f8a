"""
CryptVault

Versioned symmetric encryption with self-describing blobs. Every blob records
the key version and the algorithm parameters it was encrypted with, so
callers never track which key or IV was used.

Quick Start
-----------
```python
from cryptvault import CryptVault, KeyVersion, generate_key

vault = CryptVault.of(
    KeyVersion.from_base64(1, "AES/CBC/PKCS5Padding", "VGltVGhlSW5jcmVkaWJsZURldmVsb3BlclNlY3JldCE="),
    KeyVersion(2, "AES/GCM/NoPadding", key=generate_key()),
)

blob = vault.encrypt(b"Sensitive data")      # version 2, the highest, is the default
vault.decrypt(blob)                          # b"Sensitive data"
```

Key Features
------------
- **Key Rotation**: Any number of live key versions; the highest is the default
- **Legacy Keys**: Decrypt-only versions, including blobs in the pre-envelope format
- **Per-Version Transformations**: AES in CBC, CTR, GCM or ECB mode
- **Configuration**: Build the vault from CRYPTVAULT_* variables or a .env file
"""

__version__ = "2.0.0"

# =============================================================================
# Crypto Exports
# =============================================================================

from .crypto import (
    AES_256_KEY_SIZE,
    DEFAULT_TRANSFORMATION,
    EncryptedData,
    Transformation,
    generate_key,
    generate_random_bytes,
)

# =============================================================================
# Envelope Exports
# =============================================================================

from .envelope import (
    LEGACY_TRANSFORMATION,
    PROTOCOL_VERSION,
    Envelope,
    LegacyEnvelope,
    from_signed_byte,
    to_signed_byte,
)

# =============================================================================
# Error Exports
# =============================================================================

from .errors import (
    CryptOperationFailure,
    CryptVaultError,
    DecodeError,
    DuplicateVersion,
    InvalidConfiguration,
    InvalidVersion,
    KeyVersionError,
    LegacyKeyRejected,
    MalformedEnvelope,
    MalformedParameters,
    NoDefaultSet,
    UnknownKeyVersion,
    UnknownProtocolVersion,
    UnknownVersion,
    UnsupportedTransformation,
)

# =============================================================================
# Key and Vault Exports (Primary API)
# =============================================================================

from .keys import KeyVersion, KeyVersionRegistry
from .vault import CryptVault
from .config import (
    KeyVersionSettings,
    VaultSettings,
    build_registry,
    is_configured,
    load_vault,
)

# =============================================================================
# Public API
# =============================================================================

__all__ = [
    # Version
    "__version__",
    # Crypto
    "AES_256_KEY_SIZE",
    "DEFAULT_TRANSFORMATION",
    "EncryptedData",
    "Transformation",
    "generate_key",
    "generate_random_bytes",
    # Envelope
    "LEGACY_TRANSFORMATION",
    "PROTOCOL_VERSION",
    "Envelope",
    "LegacyEnvelope",
    "from_signed_byte",
    "to_signed_byte",
    # Errors
    "CryptVaultError",
    "KeyVersionError",
    "InvalidVersion",
    "DuplicateVersion",
    "UnknownVersion",
    "NoDefaultSet",
    "LegacyKeyRejected",
    "DecodeError",
    "MalformedEnvelope",
    "MalformedParameters",
    "UnknownProtocolVersion",
    "UnknownKeyVersion",
    "CryptOperationFailure",
    "UnsupportedTransformation",
    "InvalidConfiguration",
    # Keys and vault (Primary API)
    "KeyVersion",
    "KeyVersionRegistry",
    "CryptVault",
    # Configuration
    "KeyVersionSettings",
    "VaultSettings",
    "build_registry",
    "is_configured",
    "load_vault",
]
