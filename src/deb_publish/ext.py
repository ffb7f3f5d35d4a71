"""Module to handle the input packages.

Implements:
- `PACKAGE_EXTENSION`: The extension every published package must carry.
- `check_ext`: Ensure a path carries the package extension.
- `expand_inputs`: Expand paths and globs into the list of packages.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from deb_publish.errors import InputValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from deb_publish.utils import StrPath

logger = logging.getLogger("deb_publish")

PACKAGE_EXTENSION = ".deb"


class ExtensionError(InputValidationError):
    """File extension not supported."""


def check_ext(path: StrPath) -> Path:
    """Ensure `path` is a Debian binary package by its extension.

    Raises:
        ExtensionError: If the extension is not `.deb`.
    """
    path = Path(path)
    if path.suffix != PACKAGE_EXTENSION:
        raise ExtensionError(f"non-{PACKAGE_EXTENSION} file matched: {path}")
    return path


def expand_inputs(patterns: Iterable[StrPath]) -> list[Path]:
    """Expand paths or globs into existing package files.

    Patterns without glob characters are taken as they are. Every match must be
    a file with the `.deb` extension. Duplicates are dropped.

    Args:
        patterns: Paths or glob patterns.

    Returns:
        The matched packages in the order of the patterns, each sorted.

    Raises:
        InputValidationError: If nothing matched.
        ExtensionError: If a match is not a `.deb` file.
    """
    patterns = [str(p) for p in patterns]
    matches: dict[Path, None] = {}
    for pattern in patterns:
        for match in sorted(glob.glob(pattern)):  # noqa: PTH207
            matches[Path(match)] = None

    if not matches:
        raise InputValidationError(
            f"did not match any {PACKAGE_EXTENSION} files: {' '.join(patterns)}"
        )

    debs: list[Path] = []
    for match in matches:
        deb = check_ext(match)
        if not deb.is_file():
            raise InputValidationError(f"not a file: {deb}")
        debs.append(deb)

    logger.debug("Resolved %d package(s) from %s", len(debs), patterns)
    return debs


__all__ = ["PACKAGE_EXTENSION", "ExtensionError", "check_ext", "expand_inputs"]
