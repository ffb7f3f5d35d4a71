"""CLI interface for the deb_publish.apt package.

Every option falls back to the environment variable of the same meaning, so the
command can be driven entirely from a CI environment.
"""

from __future__ import annotations

import argparse
import logging
import os
import re
from pathlib import Path
from typing import TYPE_CHECKING

from deb_publish.apt.publish import (
    DEFAULT_DESCRIPTION,
    DEFAULT_LABEL,
    DEFAULT_ORIGIN,
    PublishConf,
    publish,
)
from deb_publish.errors import ConfigurationError, PublishError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = logging.getLogger("deb_publish")


def _split(values: Sequence[str] | str | None) -> list[str]:
    """Split whitespace or comma separated values."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    return [item for value in values for item in re.split(r"[\s,]+", value) if item]


def _require(value: str | None, name: str, env: str) -> str:
    if not value:
        raise ConfigurationError(f"{name} is required (option or {env})")
    return value


def build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    """Create the argument parser with defaults taken from `environ`."""
    dist = environ.get("DIST") or "stable"
    parser = argparse.ArgumentParser(
        description="Publish Debian packages to a signed APT repository",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "repo",
        nargs="?",
        type=Path,
        default=environ.get("REPO_DIR"),
        help="Directory of the repository (settable by REPO_DIR)",
    )
    parser.add_argument(
        "debs",
        nargs="*",
        default=_split(environ.get("DEB_PATH")),
        help="Packages or globs to publish (settable by DEB_PATH)",
    )
    parser.add_argument(
        "-d", "--dist", type=str, default=dist, help="Distribution (DIST)"
    )
    parser.add_argument(
        "-c",
        "--component",
        type=str,
        default=environ.get("COMPONENT") or "main",
        help="Component (COMPONENT)",
    )
    parser.add_argument(
        "-a",
        "--arches",
        type=str,
        nargs="+",
        default=environ.get("ARCHES") or environ.get("ARCH") or "amd64",
        help="Architectures (ARCHES, falls back to ARCH)",
    )
    parser.add_argument(
        "-p",
        "--package-name",
        type=str,
        default=environ.get("PACKAGE_NAME"),
        help="Name of the package, selects the pool directory (PACKAGE_NAME)",
    )
    parser.add_argument(
        "-k",
        "--key-id",
        type=str,
        default=environ.get("GPG_KEY_FPR"),
        help="Fingerprint of the signing key (GPG_KEY_FPR)",
    )
    parser.add_argument(
        "--gnupghome",
        type=Path,
        default=environ.get("GNUPGHOME"),
        help="GnuPG home directory (GNUPGHOME)",
    )
    parser.add_argument(
        "--origin",
        type=str,
        default=environ.get("ORIGIN") or DEFAULT_ORIGIN,
        help="Release origin (ORIGIN)",
    )
    parser.add_argument(
        "--label",
        type=str,
        default=environ.get("LABEL") or DEFAULT_LABEL,
        help="Release label (LABEL)",
    )
    parser.add_argument(
        "--suite", type=str, default=environ.get("SUITE"), help="Suite (SUITE)"
    )
    parser.add_argument(
        "--codename",
        type=str,
        default=environ.get("CODENAME"),
        help="Codename (CODENAME)",
    )
    parser.add_argument(
        "--description",
        type=str,
        default=environ.get("DESCRIPTION") or DEFAULT_DESCRIPTION,
        help="Release description (DESCRIPTION)",
    )
    parser.add_argument(
        "-j", "--jobs", type=int, default=1, help="Architectures indexed in parallel"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def parse_publish_args(
    argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None
) -> tuple[PublishConf, bool]:
    """Parse CLI arguments and the environment.

    The passphrase is only read from GPG_PASSPHRASE, never from the command line.

    Returns:
        The configuration and whether verbose logging was requested.

    Raises:
        ConfigurationError: If a required parameter is missing.
    """
    environ = os.environ if environ is None else environ
    args = build_parser(environ).parse_args(argv)

    repo = _require(str(args.repo) if args.repo else None, "repository", "REPO_DIR")
    if not args.debs:
        raise ConfigurationError("packages are required (arguments or DEB_PATH)")
    arches = _split(args.arches)
    if not arches:
        raise ConfigurationError("architecture list is empty (option or ARCHES)")

    conf = PublishConf(
        repo=Path(repo),
        debs=list(args.debs),
        package_name=_require(args.package_name, "package name", "PACKAGE_NAME"),
        key_id=_require(args.key_id, "signing key", "GPG_KEY_FPR"),
        dist=args.dist,
        component=args.component,
        arches=arches,
        passphrase=environ.get("GPG_PASSPHRASE") or None,
        origin=args.origin,
        label=args.label,
        suite=args.suite,
        codename=args.codename,
        description=args.description,
        gnupghome=args.gnupghome,
        jobs=args.jobs,
    )
    return conf, args.verbose


def publish_cli(argv: Sequence[str] | None = None) -> int:
    """Publish packages from CLI arguments."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    try:
        conf, verbose = parse_publish_args(argv)
        if verbose:
            logger.setLevel(logging.DEBUG)
        publish(conf)
    except PublishError as err:
        logger.error("[%s] %s", err.stage, err)  # noqa: TRY400
        return 1

    return 0


__all__ = ["build_parser", "parse_publish_args", "publish_cli"]
