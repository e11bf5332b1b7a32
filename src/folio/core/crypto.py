"""
Content hashing.

Digests used to compare build outputs across runs.
"""

from __future__ import annotations

import hashlib
from pathlib import Path


def compute_directory_hash(
    dir_path: Path,
    algorithm: str = "sha256",
    prefix: bool = True,
) -> str:
    """Compute a combined hash for all files in a directory.

    Hashes all files recursively, sorted by path, to get a deterministic
    hash representing the directory's contents.

    Args:
        dir_path: Path to directory to hash
        algorithm: Hash algorithm (sha256, sha1, md5, etc.)
        prefix: Include algorithm prefix (e.g., "sha256:abc123...")

    Returns:
        Hash string representing directory contents

    Raises:
        FileNotFoundError: If directory doesn't exist
        ValueError: If path is not a directory
    """
    dir_path = Path(dir_path)
    if not dir_path.exists():
        raise FileNotFoundError(f"Cannot hash non-existent directory: {dir_path}")
    if not dir_path.is_dir():
        raise ValueError(f"Path is not a directory: {dir_path}")

    try:
        hasher = hashlib.new(algorithm)
    except ValueError as e:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}") from e

    # Relative paths in POSIX form so the digest does not depend on the OS
    all_files = sorted(
        (p for p in dir_path.rglob("*") if p.is_file()),
        key=lambda p: p.relative_to(dir_path).as_posix(),
    )

    for file_path in all_files:
        hasher.update(file_path.relative_to(dir_path).as_posix().encode("utf-8"))
        hasher.update(b"\0")
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(8192), b""):
                hasher.update(chunk)

    digest = hasher.hexdigest()
    return f"{algorithm}:{digest}" if prefix else digest
