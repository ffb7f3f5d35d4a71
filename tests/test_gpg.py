# %%
"""Test signing of the Release file."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from conftest import PASSPHRASE, requires_gpg

from deb_publish.errors import KeyNotFoundError, SignatureIOError, SigningFailedError
from deb_publish.gpg import RepoGPG, sign_release

if TYPE_CHECKING:
    from pathlib import Path

    from conftest import Keyring

pytestmark = requires_gpg


@pytest.fixture
def release_file(tmp_path: Path) -> Path:
    """A Release file to sign."""
    dist_dir = tmp_path / "dists" / "stable"
    dist_dir.mkdir(parents=True)
    release_file = dist_dir / "Release"
    release_file.write_text("Origin: Custom Repository\nSuite: stable\n", "utf-8")
    return release_file


def _files_containing(root: Path, secret: bytes) -> list[Path]:
    return [p for p in root.rglob("*") if p.is_file() and secret in p.read_bytes()]


def test_sign_release(release_file: Path, keyring: Keyring) -> None:
    """Test both signatures verify against the Release content."""
    inrelease, release_gpg = sign_release(
        release_file, keyring.fingerprint, gnupghome=keyring.home
    )

    assert inrelease == release_file.with_name("InRelease")
    assert release_gpg == release_file.with_name("Release.gpg")
    gpg = keyring.gpg()

    clearsigned = inrelease.read_bytes()
    assert clearsigned.startswith(b"-----BEGIN PGP SIGNED MESSAGE-----")
    assert b"Origin: Custom Repository" in clearsigned
    verified = gpg.verify(clearsigned)
    assert verified.valid
    assert verified.fingerprint == keyring.fingerprint

    assert release_gpg.read_bytes().startswith(b"-----BEGIN PGP SIGNATURE-----")
    verified = gpg.verify_data(str(release_gpg), release_file.read_bytes())
    assert verified.valid


def test_detached_signature_binds_content(release_file: Path, keyring: Keyring) -> None:
    """Test the detached signature fails once the Release changes."""
    _, release_gpg = sign_release(
        release_file, keyring.fingerprint, gnupghome=keyring.home
    )

    tampered = release_file.read_bytes() + b"Codename: evil\n"
    assert not keyring.gpg().verify_data(str(release_gpg), tampered).valid


def test_sign_with_passphrase(
    release_file: Path, protected_keyring: Keyring, tmp_path: Path
) -> None:
    """Test a protected key signs and the passphrase stays off disk."""
    inrelease, _ = sign_release(
        release_file,
        protected_keyring.fingerprint,
        PASSPHRASE,
        gnupghome=protected_keyring.home,
    )

    assert protected_keyring.gpg().verify(inrelease.read_bytes()).valid
    assert _files_containing(tmp_path, PASSPHRASE.encode()) == []


@pytest.mark.parametrize("passphrase", ["wrong passphrase", None])
def test_sign_with_bad_passphrase(
    release_file: Path,
    protected_keyring: Keyring,
    tmp_path: Path,
    passphrase: str | None,
) -> None:
    """Test a wrong or missing passphrase fails without signature files."""
    with pytest.raises(SigningFailedError):
        sign_release(
            release_file,
            protected_keyring.fingerprint,
            passphrase,
            gnupghome=protected_keyring.home,
        )

    assert not release_file.with_name("InRelease").exists()
    assert not release_file.with_name("Release.gpg").exists()
    if passphrase:
        assert _files_containing(tmp_path, passphrase.encode()) == []


def test_unknown_key(release_file: Path, keyring: Keyring) -> None:
    """Test an identity without secret key."""
    with pytest.raises(KeyNotFoundError):
        sign_release(release_file, "0" * 40, gnupghome=keyring.home)


def test_secret_key(keyring: Keyring) -> None:
    """Test the secret key lookup."""
    gpg = RepoGPG(gnupghome=str(keyring.home))
    assert gpg.secret_key(keyring.fingerprint)["fingerprint"] == keyring.fingerprint


def test_missing_release(tmp_path: Path, keyring: Keyring) -> None:
    """Test a missing Release file is an IO failure."""
    with pytest.raises(SignatureIOError):
        sign_release(tmp_path / "Release", keyring.fingerprint, gnupghome=keyring.home)
