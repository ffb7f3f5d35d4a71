"""Publish Debian packages into a static, signed apt repository."""

from __future__ import annotations

from deb_publish.errors import (
    ConfigurationError,
    InputValidationError,
    InvalidInputError,
    KeyNotFoundError,
    MetadataError,
    PublishError,
    ScanError,
    SignatureIOError,
    SigningError,
    SigningFailedError,
)
from deb_publish.ext import PACKAGE_EXTENSION, ExtensionError, expand_inputs
from deb_publish.gpg import RepoGPG, sign_release
from deb_publish.temp import AtomicFile, atomic_copy, atomic_write_bytes
from deb_publish.utils import checksums, unique

__all__ = [
    "PACKAGE_EXTENSION",
    "AtomicFile",
    "ConfigurationError",
    "ExtensionError",
    "InputValidationError",
    "InvalidInputError",
    "KeyNotFoundError",
    "MetadataError",
    "PublishError",
    "RepoGPG",
    "ScanError",
    "SignatureIOError",
    "SigningError",
    "SigningFailedError",
    "atomic_copy",
    "atomic_write_bytes",
    "checksums",
    "expand_inputs",
    "sign_release",
    "unique",
]
