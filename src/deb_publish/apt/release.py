"""The Release file of a distribution.

Implements:
- `ReleaseFile`: The Release header and its checksum manifest.
- `verify_architectures`: Ensure the index directories match the architectures.
- `build_release`: Collect the manifest of the distribution directory.
- `write_release`: Replace the Release file and drop stale signatures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from deb_publish.errors import MetadataError
from deb_publish.temp import atomic_write_bytes, is_temp_file
from deb_publish.utils import checksums, unique

if TYPE_CHECKING:
    from collections.abc import Sequence

    from deb_publish.utils import StrPath

logger = logging.getLogger("deb_publish")

RELEASE = "Release"
INRELEASE = "InRelease"
RELEASE_GPG = "Release.gpg"
SIGNED_FILES = frozenset({RELEASE, INRELEASE, RELEASE_GPG})

# Section header and hashlib name, in the order apt-ftparchive writes them
HASH_SECTIONS = (
    ("MD5Sum", "md5"),
    ("SHA1", "sha1"),
    ("SHA256", "sha256"),
    ("SHA512", "sha512"),
)
DATE_FORMAT = "%a, %d %b %Y %H:%M:%S UTC"


@dataclass(frozen=True)
class ManifestEntry:
    """Checksums and size of a file below the distribution directory."""

    path: str
    size: int
    digests: dict[str, str]


@dataclass
class ReleaseFile:
    """The content of `dists/<dist>/Release`.

    Attributes:
        origin: Origin field.
        label: Label field.
        suite: Suite field.
        codename: Codename field.
        description: Description field.
        components: Components in their configured order.
        arches: Architectures in their configured order.
        date: Time of generation.
        manifest: Files below the distribution directory.
    """

    origin: str
    label: str
    suite: str
    codename: str
    description: str
    components: tuple[str, ...]
    arches: tuple[str, ...]
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    manifest: list[ManifestEntry] = field(default_factory=list)

    def header(self) -> list[str]:
        """The leading fields."""
        return [
            f"Origin: {self.origin}",
            f"Label: {self.label}",
            f"Suite: {self.suite}",
            f"Codename: {self.codename}",
            f"Date: {self.date.astimezone(timezone.utc).strftime(DATE_FORMAT)}",
            f"Architectures: {' '.join(self.arches)}",
            f"Components: {' '.join(self.components)}",
            f"Description: {self.description}",
        ]

    def hash_lines(self) -> list[str]:
        """The checksum sections."""
        lines: list[str] = []
        for header, name in HASH_SECTIONS:
            lines.append(f"{header}:")
            lines.extend(
                f" {entry.digests[name]} {entry.size:>16} {entry.path}"
                for entry in self.manifest
            )
        return lines

    def __str__(self) -> str:
        return "\n".join(self.header() + self.hash_lines()) + "\n"


def _non_empty_dirs(parent: Path) -> set[str]:
    return {
        path.name
        for path in parent.iterdir()
        if path.is_dir() and any(path.iterdir())
    }


def verify_architectures(
    dist_dir: StrPath,
    components: Sequence[str],
    arches: Sequence[str],
    *,
    complete: bool = True,
) -> None:
    """Ensure the index directories on disk are exactly the advertised ones.

    Every declared component must hold a non-empty `binary-<arch>` directory for
    each architecture and no other non-empty `binary-*` directory. Directories of
    undeclared components are rejected as well.

    With `complete=False` missing directories are accepted, so the tree can be
    checked before a publish writes its indices.

    Raises:
        MetadataError: On any mismatch or if the tree cannot be read.
    """
    dist_dir = Path(dist_dir)
    if not complete and not dist_dir.exists():
        return
    expected = {f"binary-{arch}" for arch in arches}
    try:
        present_components = _non_empty_dirs(dist_dir)
        undeclared = sorted(present_components - set(components))
        if undeclared:
            raise MetadataError(
                f"{dist_dir} contains undeclared component(s): {', '.join(undeclared)}"
            )

        for component in components:
            component_dir = dist_dir / component
            present = (
                {
                    name
                    for name in _non_empty_dirs(component_dir)
                    if name.startswith("binary-")
                }
                if component_dir.is_dir()
                else set()
            )
            missing = sorted(expected - present)
            if missing and complete:
                raise MetadataError(
                    f"{component_dir} lacks index directories: {', '.join(missing)}"
                )
            extra = sorted(present - expected)
            if extra:
                raise MetadataError(
                    f"{component_dir} has index directories of undeclared"
                    f" architectures: {', '.join(extra)}"
                )
    except OSError as err:
        raise MetadataError(f"cannot enumerate {dist_dir}: {err}") from err


def collect_manifest(dist_dir: StrPath) -> list[ManifestEntry]:
    """Checksum every file below `dist_dir` except the Release files themselves.

    Raises:
        MetadataError: If the directory cannot be enumerated or read.
    """
    dist_dir = Path(dist_dir)
    if not dist_dir.is_dir():
        raise MetadataError(f"distribution directory does not exist: {dist_dir}")

    manifest: list[ManifestEntry] = []
    try:
        files = sorted(
            path
            for path in dist_dir.rglob("*")
            if path.is_file() and not is_temp_file(path)
        )
        for path in files:
            rel_path = path.relative_to(dist_dir)
            if rel_path.parent == Path() and rel_path.name in SIGNED_FILES:
                continue
            size, digests = checksums(path)
            manifest.append(ManifestEntry(rel_path.as_posix(), size, digests))
    except OSError as err:
        raise MetadataError(f"cannot enumerate {dist_dir}: {err}") from err

    return manifest


def build_release(  # noqa: PLR0913
    dist_dir: StrPath,
    *,
    origin: str,
    label: str,
    suite: str,
    codename: str,
    description: str,
    components: Sequence[str],
    arches: Sequence[str],
    date: datetime | None = None,
) -> ReleaseFile:
    """Assemble the Release file of the distribution at `dist_dir`.

    Must run after every index of the publish has been written, since the
    manifest embeds their checksums.

    Raises:
        MetadataError: If the distribution tree is unreadable or inconsistent.
    """
    components, arches = unique(components), unique(arches)
    verify_architectures(dist_dir, components, arches)

    release = ReleaseFile(
        origin=origin,
        label=label,
        suite=suite,
        codename=codename,
        description=description,
        components=components,
        arches=arches,
        manifest=collect_manifest(dist_dir),
    )
    if date is not None:
        release.date = date
    return release


def write_release(dist_dir: StrPath, release: ReleaseFile) -> Path:
    """Write `Release`, removing signatures of the previous content first."""
    release_file = Path(dist_dir) / RELEASE
    try:
        for name in (INRELEASE, RELEASE_GPG):
            release_file.with_name(name).unlink(missing_ok=True)
        atomic_write_bytes(release_file, str(release).encode("utf-8"))
    except OSError as err:
        raise MetadataError(f"cannot write {release_file}: {err}") from err

    logger.info("Wrote %s listing %d file(s)", release_file, len(release.manifest))
    return release_file


__all__ = [
    "HASH_SECTIONS",
    "INRELEASE",
    "RELEASE",
    "RELEASE_GPG",
    "ManifestEntry",
    "ReleaseFile",
    "build_release",
    "collect_manifest",
    "verify_architectures",
    "write_release",
]
