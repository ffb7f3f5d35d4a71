"""Expands the `tempfile` module.

Implements:
- `AtomicFile`: Write a file next to its target and rename it into place.
- `atomic_write_bytes`: Atomically replace a file with the given content.
- `atomic_copy`: Atomically copy a file.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType

    from deb_publish.utils import StrPath

logger = logging.getLogger("deb_publish")

TEMP_PREFIX = ".tmp-"


class AtomicFile:
    """A temporary file which replaces `target` when the context exits cleanly.

    The temporary file lives in the directory of `target` so the final
    `os.replace` never crosses a filesystem. On any exception it is removed and
    `target` is left untouched.

    Attributes:
        target (Path): The file to be replaced.
        mode (int): The permissions of the final file.
    """

    def __init__(self, target: StrPath, mode: int = 0o644) -> None:
        """Initialize the class.

        Args:
            target: The file to be replaced.
            mode: The permissions of the final file. Defaults to 0o644.
        """
        self.target = Path(target)
        self.mode = mode
        self._file: IO[bytes] | None = None

    def __enter__(self) -> IO[bytes]:
        """Create the temporary file.

        Returns:
            The temporary file opened for binary writing.
        """
        self._file = tempfile.NamedTemporaryFile(  # noqa: SIM115
            mode="wb",
            prefix=f"{TEMP_PREFIX}{self.target.name}.",
            dir=self.target.parent,
            delete=False,
        )
        return self._file

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Move the temporary file into place or remove it."""
        if self._file is None:
            return

        tmp = Path(self._file.name)
        try:
            self._file.close()
            if exc_type is None:
                tmp.chmod(self.mode)
                os.replace(tmp, self.target)
                logger.debug("Wrote %s", self.target)
        finally:
            tmp.unlink(missing_ok=True)
            self._file = None


def atomic_write_bytes(target: StrPath, content: bytes) -> None:
    """Replace `target` with `content`."""
    with AtomicFile(target) as f:
        f.write(content)


def atomic_copy(src: StrPath, target: StrPath) -> None:
    """Copy `src` to `target`, replacing an existing file."""
    with AtomicFile(target) as f, Path(src).open("rb") as source:
        shutil.copyfileobj(source, f)


def is_temp_file(path: StrPath) -> bool:
    """Whether `path` is an in-flight file of `AtomicFile`."""
    return Path(path).name.startswith(TEMP_PREFIX)


__all__ = [
    "TEMP_PREFIX",
    "AtomicFile",
    "atomic_copy",
    "atomic_write_bytes",
    "is_temp_file",
]
