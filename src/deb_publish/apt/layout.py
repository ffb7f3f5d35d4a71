"""Directory layout of an apt repository.

Implements:
- `RepoLayout`: The pool and distribution directories for one publish.
- `resolve_layout`: Derive the layout from the repository names.
- `pool_dir`: The pool directory of a package.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from deb_publish.errors import InvalidInputError
from deb_publish.utils import unique

if TYPE_CHECKING:
    from collections.abc import Sequence

    from deb_publish.utils import StrPath

logger = logging.getLogger("deb_publish")


@dataclass(frozen=True)
class RepoLayout:
    """Resolved directories of a repository for one publish.

    Attributes:
        repo: The repository root.
        pool_dir: `pool/<component>/<letter>/<package>`.
        dist_dir: `dists/<dist>`.
        binary_dirs: `dists/<dist>/<component>/binary-<arch>` by architecture.
    """

    repo: Path
    pool_dir: Path
    dist_dir: Path
    binary_dirs: dict[str, Path]

    @property
    def arches(self) -> tuple[str, ...]:
        """The architectures in their configured order."""
        return tuple(self.binary_dirs)

    def binary_dirs_of(self, component: str) -> dict[str, Path]:
        """The `binary-<arch>` directories of another component."""
        _check_name("component", component)
        return {
            arch: self.dist_dir / component / f"binary-{arch}" for arch in self.arches
        }

    def ensure(self) -> None:
        """Create all directories. Safe to call repeatedly."""
        for path in (self.pool_dir, self.dist_dir, *self.binary_dirs.values()):
            path.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured %s", path)


def _check_name(kind: str, name: str) -> None:
    if not name or not name.strip():
        raise InvalidInputError(f"{kind} must not be empty")
    if "/" in name or "\\" in name or name in {".", ".."}:
        raise InvalidInputError(f"{kind} is not a valid path segment: {name!r}")


def pool_dir(repo: StrPath, component: str, package_name: str) -> Path:
    """The pool directory of `package_name` in `component`."""
    letter = package_name[0].lower()
    return Path(repo) / "pool" / component / letter / package_name


def resolve_layout(
    repo: StrPath,
    component: str,
    dist: str,
    package_name: str,
    arches: Sequence[str],
) -> RepoLayout:
    """Derive the repository layout.

    Args:
        repo: The repository root.
        component: The component, e.g. main.
        dist: The distribution, e.g. stable.
        package_name: The package name, determines the pool subdirectory.
        arches: The architectures, duplicates are dropped.

    Returns:
        The layout. Nothing is created yet, see `RepoLayout.ensure`.

    Raises:
        InvalidInputError: If a name is empty or the architecture list is empty.
    """
    _check_name("component", component)
    _check_name("distribution", dist)
    _check_name("package name", package_name)

    arches = unique(arches)
    if not arches:
        raise InvalidInputError("architecture list is empty")
    for arch in arches:
        _check_name("architecture", arch)

    repo = Path(repo)
    dist_dir = repo / "dists" / dist
    return RepoLayout(
        repo=repo,
        pool_dir=pool_dir(repo, component, package_name),
        dist_dir=dist_dir,
        binary_dirs={arch: dist_dir / component / f"binary-{arch}" for arch in arches},
    )


__all__ = ["RepoLayout", "pool_dir", "resolve_layout"]
