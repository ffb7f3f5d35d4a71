# %%
"""Test the input package resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from deb_publish.errors import InputValidationError
from deb_publish.ext import ExtensionError, check_ext, expand_inputs

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def test_expand_glob(make_deb: Callable[..., Path], tmp_path: Path) -> None:
    """Test a glob expands to the sorted matches."""
    second = make_deb("zeta")
    first = make_deb("alpha")

    assert expand_inputs([tmp_path / "incoming" / "*.deb"]) == [first, second]


def test_expand_plain_paths(make_deb: Callable[..., Path]) -> None:
    """Test plain paths keep their order and duplicates are dropped."""
    first = make_deb("alpha")
    second = make_deb("zeta")

    assert expand_inputs([second, first, second]) == [second, first]


def test_expand_no_match(tmp_path: Path) -> None:
    """Test an empty match is an error."""
    with pytest.raises(InputValidationError, match="did not match"):
        expand_inputs([tmp_path / "*.deb"])


def test_expand_wrong_extension(make_deb: Callable[..., Path], tmp_path: Path) -> None:
    """Test a matched file without the package extension is an error."""
    make_deb()
    (tmp_path / "incoming" / "notes.txt").write_text("x", "utf-8")

    with pytest.raises(ExtensionError, match="notes.txt"):
        expand_inputs([tmp_path / "incoming" / "*"])


def test_check_ext() -> None:
    """Test the extension check."""
    assert check_ext("a/b_1.0_amd64.deb").name == "b_1.0_amd64.deb"
    with pytest.raises(ExtensionError):
        check_ext("a/b_1.0_amd64.deb.sig")
