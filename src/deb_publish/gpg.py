"""Signing of the Release file.

Implements:
- `RepoGPG`: `gnupg.GPG` with key lookup and signing of in-memory content.
- `sign_release`: Create `InRelease` and `Release.gpg` next to `Release`.

The passphrase only travels to gpg through its stdin pipe and is never
written to disk or logged.
"""

from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, Any

import gnupg

from deb_publish.errors import (
    KeyNotFoundError,
    SignatureIOError,
    SigningFailedError,
)
from deb_publish.temp import atomic_write_bytes

if TYPE_CHECKING:
    from deb_publish.utils import StrPath

logger = logging.getLogger("deb_publish")

SIGN_ARGS = ["--pinentry-mode", "loopback", "--digest-algo", "SHA512"]
UNUSABLE_VALIDITY = frozenset("erdi")


class RepoGPG(gnupg.GPG):
    """GPG class with additional methods."""

    def secret_key(self, key_id: str) -> dict[str, Any]:
        """Return the secret key matching `key_id`.

        Raises:
            KeyNotFoundError: If no usable signing key matches.
        """
        keys = self.list_keys(secret=True, keys=[key_id])
        if not keys:
            raise KeyNotFoundError(f"no secret key for {key_id}")

        for key in keys:
            if key.get("trust") in UNUSABLE_VALIDITY:
                continue
            capabilities = key.get("cap")
            if capabilities and "s" not in capabilities.lower():
                continue
            return key

        raise KeyNotFoundError(f"secret key {key_id} cannot be used for signing")

    def sign_bytes(
        self,
        content: bytes,
        key_id: str,
        passphrase: str | None = None,
        detach: bool = False,
    ) -> bytes:
        """Sign `content` as ASCII armor, clearsigned unless `detach`.

        Raises:
            SigningFailedError: If gpg rejected the operation.
        """
        try:
            result = self.sign_file(
                BytesIO(content),
                keyid=key_id,
                passphrase=passphrase,
                clearsign=not detach,
                detach=detach,
                binary=False,
                extra_args=SIGN_ARGS,
            )
        except ValueError as err:
            # python-gnupg refuses passphrases with line breaks
            raise SigningFailedError(f"signing with {key_id} rejected: {err}") from err

        if not result or not result.data:
            stderr = (getattr(result, "stderr", "") or "").strip().splitlines()
            reason = result.status or (stderr[-1] if stderr else "unknown error")
            raise SigningFailedError(f"signing with {key_id} failed: {reason}")

        return bytes(result.data)


def sign_release(
    release_file: StrPath,
    key_id: str,
    passphrase: str | None = None,
    gnupghome: StrPath | None = None,
    gpgbinary: str = "gpg",
) -> tuple[Path, Path]:
    """Sign the Release file and create the InRelease and Release.gpg files.

    Both signatures cover the same bytes of `release_file`, read once.

    Args:
        release_file: The Release file.
        key_id: Fingerprint or other identity of the secret key.
        passphrase: Passphrase of the key. Defaults to None.
        gnupghome: The GnuPG home directory. Defaults to gpg's default.
        gpgbinary: The gpg executable. Defaults to gpg.

    Returns:
        The InRelease and Release.gpg files.

    Raises:
        KeyNotFoundError: If `key_id` is no usable secret key.
        SigningFailedError: If signing failed.
        SignatureIOError: If a signature could not be written.
    """
    release_file = Path(release_file)
    inrelease_file = release_file.with_name("InRelease")
    release_gpg = release_file.with_suffix(".gpg")

    try:
        gpg = RepoGPG(
            gpgbinary=gpgbinary,
            gnupghome=str(gnupghome) if gnupghome else None,
        )
    except (OSError, ValueError) as err:
        raise SigningFailedError(f"cannot run {gpgbinary}: {err}") from err

    key = gpg.secret_key(key_id)
    logger.info("Signing %s with %s", release_file, key.get("fingerprint", key_id))

    try:
        content = release_file.read_bytes()
    except OSError as err:
        raise SignatureIOError(f"cannot read {release_file}: {err}") from err

    # --clearsign
    clearsigned = gpg.sign_bytes(content, key_id, passphrase or None)
    # -abs: --armor --detach-sign --sign
    detached = gpg.sign_bytes(content, key_id, passphrase or None, detach=True)

    try:
        atomic_write_bytes(inrelease_file, clearsigned)
        atomic_write_bytes(release_gpg, detached)
    except OSError as err:
        raise SignatureIOError(f"cannot write signature: {err}") from err

    return inrelease_file, release_gpg


__all__ = ["RepoGPG", "sign_release"]
