"""Utilities for the deb_publish package."""

from __future__ import annotations

import hashlib
import logging
from os import PathLike
from pathlib import Path
from typing import TYPE_CHECKING, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger("deb_publish")

StrPath: TypeAlias = str | PathLike[str]

FOUR_MB = 4 * 1024 * 1024
DIGESTS = ("md5", "sha1", "sha256", "sha512")


def checksums(
    file: StrPath, algorithms: Iterable[str] = DIGESTS
) -> tuple[int, dict[str, str]]:
    """Returns the size and the hex digests of `file`, read in 4 MB chunks."""
    hash_funcs = {name: hashlib.new(name) for name in algorithms}
    size = 0
    with Path(file).open("rb") as f:
        for chunk in iter(lambda: f.read(FOUR_MB), b""):
            size += len(chunk)
            for hash_func in hash_funcs.values():
                hash_func.update(chunk)

    return size, {name: func.hexdigest() for name, func in hash_funcs.items()}


def unique(items: Iterable[str]) -> tuple[str, ...]:
    """Drop duplicates, keep the first occurrence order."""
    return tuple(dict.fromkeys(items))


__all__ = ["DIGESTS", "FOUR_MB", "StrPath", "checksums", "unique"]
