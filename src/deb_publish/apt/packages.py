"""Package indices of the apt repository.

Implements:
- `PoolPackage`: A package in the pool with its control fields and checksums.
- `read_control`: The checked control fields of a package file.
- `scan_pool`: Read all packages below `pool/<component>`.
- `render_packages`: The content of the `Packages` file for one architecture.
- `write_packages_index`: Write `Packages` and `Packages.gz`.
- `build_indices`: Regenerate the indices of all architectures.
"""

from __future__ import annotations

import gzip
import logging
import tarfile
from concurrent.futures import ThreadPoolExecutor
from contextlib import closing
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING

from debian import deb822
from debian.arfile import ArError
from debian.debfile import DebError, DebFile
from debian.debian_support import Version

from deb_publish.errors import ScanError
from deb_publish.ext import PACKAGE_EXTENSION
from deb_publish.temp import atomic_write_bytes, is_temp_file
from deb_publish.utils import checksums

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from deb_publish.utils import StrPath

logger = logging.getLogger("deb_publish")

REQUIRED_FIELDS = ("Package", "Version", "Architecture")
ARCH_ALL = "all"

# Order in which dpkg-scanpackages writes the fields, unknown fields follow
# in the order of the control file.
HEAD_FIELDS = (
    "Package",
    "Package-Type",
    "Source",
    "Version",
    "Built-Using",
    "Kernel-Version",
    "Built-For-Profiles",
    "Auto-Built-Package",
    "Architecture",
    "Subarchitecture",
    "Installer-Menu-Item",
    "Essential",
    "Origin",
    "Bugs",
    "Maintainer",
    "Installed-Size",
    "Pre-Depends",
    "Depends",
    "Recommends",
    "Suggests",
    "Breaks",
    "Conflicts",
    "Enhances",
    "Replaces",
    "Provides",
)
INDEX_FIELDS = ("Filename", "Size", "MD5sum", "SHA1", "SHA256")
TAIL_FIELDS = ("Section", "Priority", "Multi-Arch", "Homepage", "Description", "Tag")

_READ_ERRORS = (
    ArError,
    DebError,
    KeyError,
    OSError,
    UnicodeDecodeError,
    ValueError,
    tarfile.TarError,
)


@dataclass(frozen=True)
class PoolPackage:
    """A package in the pool.

    Attributes:
        control: The fields of the control file.
        filename: Path of the package relative to the repository root.
        size: Size in bytes.
        md5: MD5 hex digest.
        sha1: SHA1 hex digest.
        sha256: SHA256 hex digest.
    """

    control: Mapping[str, str]
    filename: str
    size: int
    md5: str
    sha1: str
    sha256: str

    @property
    def name(self) -> str:
        """The package name."""
        return self.control["Package"]

    @property
    def version(self) -> Version:
        """The package version, ordered like dpkg does."""
        return Version(self.control["Version"])

    @property
    def arch(self) -> str:
        """The package architecture."""
        return self.control["Architecture"]

    def matches(self, arch: str) -> bool:
        """Whether the package belongs into the index of `arch`."""
        return self.arch in {arch, ARCH_ALL}

    def sort_key(self) -> tuple[str, Version, str, str]:
        """Sort by name, version, architecture and filename."""
        return self.name, self.version, self.arch, self.filename

    def stanza(self) -> deb822.Packages:
        """The entry of the package in a `Packages` file."""
        index_fields = {
            "Filename": self.filename,
            "Size": str(self.size),
            "MD5sum": self.md5,
            "SHA1": self.sha1,
            "SHA256": self.sha256,
        }
        stanza = deb822.Packages()
        for field in HEAD_FIELDS:
            if field in self.control:
                stanza[field] = self.control[field]
        for field, value in index_fields.items():
            stanza[field] = value
        for field in TAIL_FIELDS:
            if field in self.control:
                stanza[field] = self.control[field]
        known = {*HEAD_FIELDS, *INDEX_FIELDS, *TAIL_FIELDS}
        for field, value in self.control.items():
            if field not in known:
                stanza[field] = value
        return stanza


def read_control(deb: StrPath) -> dict[str, str]:
    """Read and check the control fields of `deb`.

    Raises:
        ScanError: If the package is unreadable or lacks a required field.
    """
    try:
        with closing(DebFile(filename=str(deb))) as debfile:
            control = dict(debfile.debcontrol())
    except _READ_ERRORS as err:
        raise ScanError(f"cannot read {deb}: {err}") from err

    missing = [field for field in REQUIRED_FIELDS if not control.get(field)]
    if missing:
        raise ScanError(f"{deb} lacks control field(s): {', '.join(missing)}")
    try:
        Version(control["Version"])
    except ValueError as err:
        raise ScanError(f"{deb} has an invalid version: {err}") from err
    return control


def read_package(repo: StrPath, deb: StrPath) -> PoolPackage:
    """Read the control fields and checksums of `deb`.

    Args:
        repo: The repository root, `Filename` is relative to it.
        deb: The package file below `repo`.

    Raises:
        ScanError: If the package is unreadable or lacks a required field.
    """
    repo, deb = Path(repo), Path(deb)
    control = read_control(deb)
    try:
        size, digests = checksums(deb, ("md5", "sha1", "sha256"))
    except OSError as err:
        raise ScanError(f"cannot read {deb}: {err}") from err

    return PoolPackage(
        control=control,
        filename=deb.relative_to(repo).as_posix(),
        size=size,
        md5=digests["md5"],
        sha1=digests["sha1"],
        sha256=digests["sha256"],
    )


def scan_pool(repo: StrPath, component: str) -> list[PoolPackage]:
    """Read every package below `pool/<component>`, recursively.

    Raises:
        ScanError: If the pool is unreadable or contains a malformed package.
    """
    repo = Path(repo)
    pool = repo / "pool" / component
    logger.info("Scanning %s", pool)
    try:
        debs = sorted(
            path
            for path in pool.rglob(f"*{PACKAGE_EXTENSION}")
            if path.is_file() and not is_temp_file(path)
        )
    except OSError as err:
        raise ScanError(f"cannot scan {pool}: {err}") from err

    packages = [read_package(repo, deb) for deb in debs]
    logger.debug("Found %d package(s) in %s", len(packages), pool)
    return packages


def render_packages(packages: Iterable[PoolPackage], arch: str) -> str:
    """Create the `Packages` content for `arch`.

    Includes the packages of `arch` and of `all`, sorted so that an unchanged
    pool renders the same text.
    """
    matching = sorted(
        (p for p in packages if p.matches(arch)), key=PoolPackage.sort_key
    )
    return "".join(package.stanza().dump() + "\n" for package in matching)


def compress(content: bytes) -> bytes:
    """Gzip `content` reproducibly, without name and timestamp."""
    packages_gz_io = BytesIO()
    with gzip.GzipFile(
        filename="", fileobj=packages_gz_io, mode="wb", compresslevel=9, mtime=0
    ) as f:
        f.write(content)
    packages_gz = packages_gz_io.getvalue()
    packages_gz_io.close()
    return packages_gz


def write_packages_index(binary_dir: StrPath, packages: str) -> tuple[Path, Path]:
    """Write the `Packages` and `Packages.gz` files into `binary_dir`."""
    packages_file = Path(binary_dir) / "Packages"
    packages_gz_file = packages_file.with_suffix(".gz")
    content = packages.encode("utf-8")

    atomic_write_bytes(packages_file, content)
    atomic_write_bytes(packages_gz_file, compress(content))
    return packages_file, packages_gz_file


def build_indices(
    repo: StrPath,
    component: str,
    binary_dirs: Mapping[str, Path],
    jobs: int = 1,
) -> dict[str, Path]:
    """Regenerate the index of every architecture from the whole pool.

    Args:
        repo: The repository root.
        component: The component whose pool is scanned.
        binary_dirs: The `binary-<arch>` directory of each architecture.
        jobs: Number of architectures written in parallel.

    Returns:
        The `Packages` file of each architecture.

    Raises:
        ScanError: If a package in the pool is unreadable or malformed.
    """
    packages = scan_pool(repo, component)

    def _write(arch: str) -> Path:
        content = render_packages(packages, arch)
        if not content:
            logger.warning("No packages for %s in %s", arch, component)
        packages_file, _ = write_packages_index(binary_dirs[arch], content)
        logger.info("Indexed %s", packages_file)
        return packages_file

    arches: Sequence[str] = list(binary_dirs)
    if jobs > 1 and len(arches) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            written = list(executor.map(_write, arches))
    else:
        written = [_write(arch) for arch in arches]

    return dict(zip(arches, written, strict=True))


__all__ = [
    "PoolPackage",
    "build_indices",
    "compress",
    "read_control",
    "read_package",
    "render_packages",
    "scan_pool",
    "write_packages_index",
]
