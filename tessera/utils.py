"""Filesystem helpers for Tessera.

Functions:
    ensure_clean_dir: Ensure a directory exists and is empty.
    is_within: Check that a path stays inside a base directory.
"""

from __future__ import annotations

import shutil
from pathlib import Path


def ensure_clean_dir(path: Path) -> None:
    """Ensure a directory exists and is empty.

    If the directory exists, removes all contents. Creates the
    directory if it doesn't exist.

    Args:
        path: Directory path to clean or create.
    """
    if path.exists():
        shutil.rmtree(str(path), ignore_errors=True)
        if path.exists():
            # Fallback for stubborn directories
            for item in path.rglob("*"):
                if item.is_file():
                    item.unlink()
            for item in sorted(
                [p for p in path.rglob("*") if p.is_dir()], reverse=True
            ):
                item.rmdir()
            path.rmdir()
    path.mkdir(parents=True, exist_ok=True)


def is_within(path: Path, base: Path) -> bool:
    """Check whether ``path`` resolves to a location inside ``base``.

    Examples:
        >>> is_within(Path("src/images/a.png"), Path("src"))
        True

        >>> is_within(Path("src/../secret.png"), Path("src"))
        False
    """
    resolved = path.resolve()
    root = base.resolve()
    return resolved == root or root in resolved.parents
