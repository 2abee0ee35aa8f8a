"""
CryptVault Benchmark CLI.

Usage:
    cryptvault-benchmark [--size BYTES] [--iterations N] [--env-file PATH]

Or run directly:
    python -m cryptvault.benchmark

Keys are taken from CRYPTVAULT_* environment variables (or a .env file). When
none are configured, a demo vault with ephemeral keys is benchmarked instead.
"""

from __future__ import annotations

import argparse
import sys
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from cryptvault.config import load_vault
from cryptvault.crypto import generate_key, generate_random_bytes
from cryptvault.errors import CryptOperationFailure, CryptVaultError
from cryptvault.keys import KeyVersion
from cryptvault.vault import CryptVault

DEMO_TRANSFORMATIONS = (
    "AES/CBC/PKCS5Padding",
    "AES/CTR/NoPadding",
    "AES/GCM/NoPadding",
    "AES/ECB/PKCS5Padding",
)


@dataclass
class BenchmarkResult:
    """Timings for one key version."""

    version: int
    transformation: str
    iterations: int
    blob_size: int
    encrypt_seconds: float
    decrypt_seconds: float

    @property
    def encrypt_rate(self) -> float:
        return self.iterations / self.encrypt_seconds if self.encrypt_seconds else 0.0

    @property
    def decrypt_rate(self) -> float:
        return self.iterations / self.decrypt_seconds if self.decrypt_seconds else 0.0


def demo_vault() -> CryptVault:
    """Vault with one ephemeral 256-bit key per demo transformation."""
    return CryptVault.of(
        *(
            KeyVersion(version=index, transformation=transformation, key=generate_key())
            for index, transformation in enumerate(DEMO_TRANSFORMATIONS, start=1)
        )
    )


def run_benchmark(
    vault: CryptVault,
    cleartext_size: int = 1024,
    iterations: int = 1000,
) -> List[BenchmarkResult]:
    """
    Time encrypt and decrypt for every non-legacy key version.

    Args:
        vault: Vault to benchmark
        cleartext_size: Size of the random cleartext in bytes
        iterations: Operations per direction and version

    Returns:
        One BenchmarkResult per benchmarked version

    Raises:
        CryptOperationFailure: If a round trip does not reproduce the cleartext
    """
    cleartext = generate_random_bytes(cleartext_size)
    results = []

    for key_version in vault.key_versions:
        if key_version.legacy:
            continue

        encrypt_start = time.perf_counter()
        for _ in range(iterations):
            blob = vault.encrypt(cleartext, key_version)
        encrypt_seconds = time.perf_counter() - encrypt_start

        blob = vault.encrypt(cleartext, key_version)
        decrypt_start = time.perf_counter()
        for _ in range(iterations):
            recovered = vault.decrypt(blob)
        decrypt_seconds = time.perf_counter() - decrypt_start

        if iterations and recovered != cleartext:
            raise CryptOperationFailure(
                f"Round trip mismatch for key version {key_version.version}",
                key_version=key_version.version,
                operation="decrypt",
            )

        results.append(
            BenchmarkResult(
                version=key_version.version,
                transformation=key_version.transformation,
                iterations=iterations,
                blob_size=len(blob),
                encrypt_seconds=encrypt_seconds,
                decrypt_seconds=decrypt_seconds,
            )
        )

    return results


def _print_results(results: Sequence[BenchmarkResult], cleartext_size: int) -> None:
    print("=" * 70)
    print("                    BENCHMARK SUMMARY")
    print("=" * 70 + "\n")

    print(f"  {'ver':>3}  {'transformation':<24} {'blob':>7} {'encrypt/s':>12} {'decrypt/s':>12}")
    print("  " + "-" * 64)
    for result in results:
        print(
            f"  {result.version:>3}  {result.transformation:<24} {result.blob_size:>7} "
            f"{result.encrypt_rate:>12.2f} {result.decrypt_rate:>12.2f}"
        )

    print("\nTest Configuration:")
    print(f"  - Cleartext size: {cleartext_size} bytes")
    if results:
        print(f"  - Iterations per operation: {results[0].iterations}")
    print(f"  - Key versions benchmarked: {len(results)}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point for cryptvault-benchmark command."""
    parser = argparse.ArgumentParser(prog="cryptvault-benchmark", description=__doc__.splitlines()[1])
    parser.add_argument("--size", type=int, default=1024, help="cleartext size in bytes")
    parser.add_argument("--iterations", type=int, default=1000, help="operations per version")
    parser.add_argument("--env-file", default=None, help=".env file with CRYPTVAULT_* variables")
    args = parser.parse_args(argv)

    print("=== CryptVault Benchmark ===\n")

    load_dotenv(args.env_file)
    try:
        vault = load_vault()
    except CryptVaultError as e:
        print(f"[ERROR] Invalid configuration: {e}")
        return 1
    if vault is None:
        print("[STARTUP] No CRYPTVAULT_KEYS_* configured, using ephemeral demo keys")
        vault = demo_vault()
    print(f"[STARTUP] {vault.size()} key versions, default v{vault.key_versions.get_default().version}\n")

    try:
        results = run_benchmark(vault, args.size, args.iterations)
    except CryptOperationFailure as e:
        print(f"[ERROR] {e}")
        return 1

    _print_results(results, args.size)
    return 0


if __name__ == "__main__":
    sys.exit(main())
