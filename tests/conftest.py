"""Pytest configuration and fixtures."""

import shutil
from pathlib import Path
from typing import Callable

import pytest

from formaudit.formula.loader import Formula, formula_from_text
from tap_helpers import BASE_FORMULA, git


@pytest.fixture
def make_formula(tmp_path: Path) -> Callable[..., Formula]:
    """Build a Formula from source text, written to a temporary file."""

    def _make(text: str, name: str = "foo") -> Formula:
        path = tmp_path / f"{name}.rb"
        path.write_text(text, encoding="utf-8")
        return formula_from_text(text, path)

    return _make


@pytest.fixture
def git_tap(tmp_path: Path) -> Path:
    """A git repository with Formula/foo.rb committed (revision 2, version_scheme 1)."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    tap = tmp_path / "tap"
    (tap / "Formula").mkdir(parents=True)
    (tap / "Formula" / "foo.rb").write_text(BASE_FORMULA, encoding="utf-8")

    git(tap, "init", "-q")
    git(tap, "add", "--all")
    git(tap, "commit", "-q", "-m", "init")
    return tap
