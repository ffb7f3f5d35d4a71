"""Publish Debian packages into a signed apt repository.

Implements:
- `PublishConf`: Everything a publish needs, already resolved.
- `copy_to_pool`: Copy the packages into their pool directory.
- `publish`: Run layout, pool copy, indices, Release and signing in order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from deb_publish import gpg
from deb_publish.apt.layout import resolve_layout
from deb_publish.apt.packages import build_indices, read_control
from deb_publish.apt.release import (
    build_release,
    verify_architectures,
    write_release,
)
from deb_publish.errors import ConfigurationError, ScanError
from deb_publish.ext import expand_inputs
from deb_publish.temp import atomic_copy
from deb_publish.utils import unique

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from deb_publish.utils import StrPath

logger = logging.getLogger("deb_publish")

DEFAULT_ORIGIN = "Custom Repository"
DEFAULT_LABEL = "Custom"
DEFAULT_DESCRIPTION = "A set of packages not available in the official repositories."


@dataclass(frozen=True)
class PublishConf:
    """Configuration for publishing packages.

    `suite` and `codename` default to `dist`, `components` to `component`.
    """

    repo: StrPath
    debs: Sequence[StrPath]
    package_name: str
    key_id: str
    dist: str = "stable"
    component: str = "main"
    arches: Sequence[str] = ("amd64",)
    passphrase: str | None = field(default=None, repr=False)
    origin: str = DEFAULT_ORIGIN
    label: str = DEFAULT_LABEL
    suite: str | None = None
    codename: str | None = None
    description: str = DEFAULT_DESCRIPTION
    components: Sequence[str] | None = None
    gnupghome: StrPath | None = None
    gpgbinary: str = "gpg"
    jobs: int = 1
    date: datetime | None = None

    def validate(self) -> None:
        """Check the required parameters.

        Raises:
            ConfigurationError: If a required parameter is missing or invalid.
        """
        if not str(self.repo):
            raise ConfigurationError("repository directory is required")
        if not self.debs:
            raise ConfigurationError("at least one package path is required")
        if not self.package_name:
            raise ConfigurationError("package name is required")
        if not self.key_id:
            raise ConfigurationError("signing key is required")
        if not unique(self.arches):
            raise ConfigurationError("architecture list is empty")
        if self.component not in self.release_components:
            raise ConfigurationError(
                f"component {self.component} is missing from the Release components"
            )
        if self.jobs < 1:
            raise ConfigurationError(f"jobs must be positive, got {self.jobs}")

    @property
    def release_components(self) -> tuple[str, ...]:
        """Components advertised in the Release file."""
        return unique(self.components or (self.component,))


def copy_to_pool(debs: Sequence[StrPath], pool_dir: StrPath) -> list[Path]:
    """Copy `debs` into `pool_dir`, replacing packages of the same name.

    Raises:
        ScanError: If a package cannot be copied.
    """
    copied: list[Path] = []
    for raw_deb in debs:
        deb = Path(raw_deb)
        target = Path(pool_dir) / deb.name
        try:
            atomic_copy(deb, target)
        except OSError as err:
            raise ScanError(f"cannot copy {deb} to {target}: {err}") from err
        logger.debug("Copied %s to %s", deb, target)
        copied.append(target)
    return copied


def publish(conf: PublishConf) -> Path:
    """Publish packages and regenerate the signed metadata.

    The stages run strictly in order and each one fails the whole publish.
    Nothing on disk changes before the configuration, the input packages and
    the existing index directories are validated.

    Args:
        conf: The publish configuration.

    Returns:
        The written Release file.

    Raises:
        ConfigurationError: If the configuration is invalid.
        InputValidationError: If the inputs match nothing or are not packages.
        ScanError: If an input package is malformed or the pool cannot be read.
        MetadataError: If the distribution tree is unreadable or inconsistent.
        SigningError: If signing failed.
    """
    conf.validate()
    layout = resolve_layout(
        conf.repo, conf.component, conf.dist, conf.package_name, conf.arches
    )
    index_dirs = {c: layout.binary_dirs_of(c) for c in conf.release_components}
    debs = expand_inputs(conf.debs)
    for deb in debs:
        read_control(deb)
    # the existing indices must fit the configured architectures
    verify_architectures(
        layout.dist_dir, conf.release_components, layout.arches, complete=False
    )

    logger.info("Publishing %d package(s) to %s", len(debs), layout.repo)
    layout.ensure()
    copy_to_pool(debs, layout.pool_dir)

    for component, binary_dirs in index_dirs.items():
        for binary_dir in binary_dirs.values():
            binary_dir.mkdir(parents=True, exist_ok=True)
        build_indices(layout.repo, component, binary_dirs, conf.jobs)

    release = build_release(
        layout.dist_dir,
        origin=conf.origin,
        label=conf.label,
        suite=conf.suite or conf.dist,
        codename=conf.codename or conf.dist,
        description=conf.description,
        components=conf.release_components,
        arches=layout.arches,
        date=conf.date,
    )
    release_file = write_release(layout.dist_dir, release)

    gpg.sign_release(
        release_file,
        conf.key_id,
        conf.passphrase,
        gnupghome=conf.gnupghome,
        gpgbinary=conf.gpgbinary,
    )
    logger.info("Published %s", layout.dist_dir)
    return release_file


__all__ = ["PublishConf", "copy_to_pool", "publish"]
