# %%
"""Fixtures for the deb_publish tests."""

from __future__ import annotations

import gzip
import io
import shutil
import subprocess
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import gnupg
import pytest

if TYPE_CHECKING:
    from collections.abc import Callable, Generator, Mapping

PASSPHRASE = "correct horse battery staple"

requires_gpg = pytest.mark.skipif(shutil.which("gpg") is None, reason="needs gpg")


def _tar_gz(files: Mapping[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mtime = 0
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
    return gzip.compress(buffer.getvalue(), mtime=0)


def _ar(members: list[tuple[str, bytes]]) -> bytes:
    out = [b"!<arch>\n"]
    for name, content in members:
        header = (
            f"{name:<16}{0:<12}{0:<6}{0:<6}{'100644':<8}{len(content):<10}`\n"
        ).encode("ascii")
        out.append(header)
        out.append(content)
        if len(content) % 2:
            out.append(b"\n")
    return b"".join(out)


def write_deb(
    path: Path,
    control: Mapping[str, str],
    payload: bytes = b"hello\n",
) -> Path:
    """Write a minimal Debian binary package with the given control fields."""
    control_text = "".join(f"{key}: {value}\n" for key, value in control.items())
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(
        _ar(
            [
                ("debian-binary", b"2.0\n"),
                ("control.tar.gz", _tar_gz({"./control": control_text.encode()})),
                ("data.tar.gz", _tar_gz({"./usr/share/doc/pkg/README": payload})),
            ]
        )
    )
    return path


@pytest.fixture
def make_deb(tmp_path: Path) -> Callable[..., Path]:
    """Factory for `.deb` files in `tmp_path/incoming`."""

    def _make_deb(
        name: str = "mytool",
        version: str = "1.0.0",
        arch: str = "amd64",
        directory: Path | None = None,
        **fields: str,
    ) -> Path:
        control = {
            "Package": name,
            "Version": version,
            "Architecture": arch,
            "Maintainer": "Jane Doe <jane@example.com>",
            "Installed-Size": "12",
            **{key.replace("_", "-"): value for key, value in fields.items()},
            "Description": f"{name} for tests\n Longer description of {name}.",
        }
        # an empty value leaves the field out
        control = {key: value for key, value in control.items() if value}
        target = (directory or tmp_path / "incoming") / f"{name}_{version}_{arch}.deb"
        return write_deb(target, control, payload=f"{name} {version}\n".encode())

    return _make_deb


@dataclass(frozen=True)
class Keyring:
    """A throwaway GnuPG home with one secret key."""

    home: Path
    fingerprint: str
    passphrase: str | None

    def gpg(self) -> gnupg.GPG:
        """A GPG instance on this home."""
        return gnupg.GPG(gnupghome=str(self.home))


def _gpgconf(home: Path, *args: str) -> None:
    if shutil.which("gpgconf"):
        subprocess.run(  # noqa: S603
            ["gpgconf", "--homedir", str(home), *args],  # noqa: S607
            check=False,
            capture_output=True,
        )


def _keyring(home: Path, passphrase: str | None) -> Generator[Keyring]:
    home.chmod(0o700)
    # no cached passphrases, a wrong one must always be rejected
    (home / "gpg-agent.conf").write_text(
        "allow-loopback-pinentry\ndefault-cache-ttl 0\nmax-cache-ttl 0\n", "utf-8"
    )
    _gpgconf(home, "--launch", "gpg-agent")
    gpg = gnupg.GPG(gnupghome=str(home), options=["--pinentry-mode", "loopback"])
    protection = {"passphrase": passphrase} if passphrase else {"no_protection": True}
    input_data = gpg.gen_key_input(
        Key_Type="RSA",
        Key_Length=2048,
        Name_Real="Repo Signing",
        Name_Email="repo@example.com",
        Expire_Date=0,
        **protection,
    )
    key = gpg.gen_key(input_data)
    if not key.fingerprint:
        # a fresh home may still be creating its keybox
        key = gpg.gen_key(input_data)
    assert key.fingerprint, key.stderr

    yield Keyring(home, key.fingerprint, passphrase)

    _gpgconf(home, "--kill", "gpg-agent")


@pytest.fixture(scope="session")
def keyring(tmp_path_factory: pytest.TempPathFactory) -> Generator[Keyring]:
    """A key without passphrase."""
    if shutil.which("gpg") is None:
        pytest.skip("needs gpg")
    yield from _keyring(tmp_path_factory.mktemp("gnupg"), None)


@pytest.fixture(scope="session")
def protected_keyring(tmp_path_factory: pytest.TempPathFactory) -> Generator[Keyring]:
    """A key protected by `PASSPHRASE`."""
    if shutil.which("gpg") is None:
        pytest.skip("needs gpg")
    yield from _keyring(tmp_path_factory.mktemp("gnupg"), PASSPHRASE)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """The repository root, not created yet."""
    return tmp_path / "repo"
