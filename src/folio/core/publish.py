"""
Staged output and atomic publishing.

A build writes every page into a temporary directory next to the output
directory. Only a fully successful build renames it into place, so a failed
or cancelled build never leaves a half-updated site live.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from folio.render.pipeline import OutputDocument

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def staging_directory(out_dir: Path) -> Iterator[Path]:
    """Yield a fresh staging directory beside out_dir.

    The directory is removed on exit unless it was published (moved away).
    """
    out_dir = Path(out_dir)
    out_dir.parent.mkdir(parents=True, exist_ok=True)
    staging = Path(
        tempfile.mkdtemp(dir=out_dir.parent, prefix=f".{out_dir.name}.staging-")
    )
    # mkdtemp creates 0700; the published site must be world-readable
    staging.chmod(0o755)
    logger.debug("Staging output in %s", staging)
    try:
        yield staging
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)


def write_documents(documents: Iterable[OutputDocument], root: Path) -> int:
    """Write rendered documents under root.

    Returns:
        Number of files written

    Raises:
        ValueError: If a document path escapes root
    """
    root = Path(root)
    count = 0
    for doc in documents:
        rel = PurePosixPath(doc.path)
        if rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"Refusing to write outside output directory: {doc.path}")
        target = root.joinpath(*rel.parts)
        target.parent.mkdir(parents=True, exist_ok=True)
        # newline="" keeps output bytes identical across platforms
        with open(target, "w", encoding="utf-8", newline="") as f:
            f.write(doc.content)
        count += 1
    return count


def publish(staging: Path, out_dir: Path) -> None:
    """Atomically replace out_dir with the contents of staging.

    The previous output is renamed aside first and only deleted once the new
    tree is in place; if the final rename fails the old tree is restored.
    """
    staging = Path(staging)
    out_dir = Path(out_dir)

    previous: Path | None = None
    if out_dir.exists():
        previous = Path(
            tempfile.mkdtemp(dir=out_dir.parent, prefix=f".{out_dir.name}.previous-")
        )
        # mkdtemp created the directory; os.replace needs the name free
        previous.rmdir()
        os.replace(out_dir, previous)

    try:
        os.replace(staging, out_dir)
    except OSError:
        if previous is not None:
            os.replace(previous, out_dir)
        raise

    if previous is not None:
        shutil.rmtree(previous, ignore_errors=True)
    logger.info("Published %s", out_dir)
