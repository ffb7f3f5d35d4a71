"""Exceptions raised while publishing to an apt repository.

Every exception carries the `stage` of the pipeline it belongs to, which the CLI
reports next to the cause.
"""

from __future__ import annotations


class PublishError(Exception):
    """Publishing failed."""

    stage = "publish"


class ConfigurationError(PublishError):
    """A required parameter is missing or invalid."""

    stage = "config"


class InvalidInputError(ConfigurationError):
    """The repository layout cannot be derived from the given names."""

    stage = "layout"


class InputValidationError(PublishError):
    """The input packages did not match or have the wrong type."""

    stage = "input"


class ScanError(PublishError):
    """A package in the pool is unreadable or malformed."""

    stage = "index"


class MetadataError(PublishError):
    """The distribution tree cannot be enumerated or is inconsistent."""

    stage = "release"


class SigningError(PublishError):
    """Signing the Release file failed."""

    stage = "sign"


class KeyNotFoundError(SigningError):
    """The key identity does not resolve to a usable secret key."""


class SigningFailedError(SigningError):
    """GnuPG rejected the signing operation."""


class SignatureIOError(SigningError):
    """A signature file could not be written."""


__all__ = [
    "ConfigurationError",
    "InputValidationError",
    "InvalidInputError",
    "KeyNotFoundError",
    "MetadataError",
    "PublishError",
    "ScanError",
    "SignatureIOError",
    "SigningError",
    "SigningFailedError",
]
