"""Tests for version invariants between working copy and last commit."""

import pytest

from formaudit.formula.invariants import check_invariants
from formaudit.formula.loader import snapshot_fields
from formaudit.models import FieldSnapshot
from formaudit.vcs import UNTRACKED


@pytest.mark.parametrize(
    "current, historical, expected",
    [
        (
            FieldSnapshot(revision=1, version="1.0"),
            FieldSnapshot(revision=2, version="1.0"),
            ["revision should not decrease (from 2 to 1)"],
        ),
        (
            FieldSnapshot(revision=0, version="1.1"),
            FieldSnapshot(revision=2, version="1.0"),
            [],
        ),
        (
            FieldSnapshot(revision=2, version="1.1"),
            FieldSnapshot(revision=2, version="1.0"),
            ["'revision 2' should be removed"],
        ),
        (
            FieldSnapshot(version_scheme=0, version="1.0"),
            FieldSnapshot(version_scheme=1, version="1.0"),
            ["version_scheme should not decrease (from 1 to 0)"],
        ),
        (
            FieldSnapshot(revision=0, version="0.9"),
            FieldSnapshot(revision=0, version="1.0"),
            ["stable version should not decrease (from 1.0 to 0.9)"],
        ),
        (
            FieldSnapshot(revision=0, version_scheme=2, version="0.9"),
            FieldSnapshot(revision=0, version_scheme=1, version="1.0"),
            [],
        ),
    ],
)
def test_scenarios(current: FieldSnapshot, historical: FieldSnapshot, expected: list[str]) -> None:
    assert check_invariants(current, historical) == expected


@pytest.mark.parametrize(
    "snapshot",
    [
        FieldSnapshot(),
        FieldSnapshot(revision=3, version_scheme=2, version="2.4.1"),
        FieldSnapshot(revision=0, version="1.0"),
        FieldSnapshot(version="not-a-pep440-version"),
    ],
)
def test_reflexive(snapshot: FieldSnapshot) -> None:
    assert check_invariants(snapshot, snapshot) == []


@pytest.mark.parametrize("historical", [UNTRACKED, None])
def test_untracked_history_yields_nothing(historical) -> None:
    current = FieldSnapshot(revision=9, version_scheme=0, version="0.1")
    assert check_invariants(current, historical) == []


def test_removed_revision_with_same_version_is_a_decrease() -> None:
    current = FieldSnapshot(revision=None, version="1.0")
    historical = FieldSnapshot(revision=2, version="1.0")
    assert check_invariants(current, historical) == ["revision should not decrease (from 2 to 0)"]


def test_revision_jump_after_version_bump() -> None:
    current = FieldSnapshot(revision=4, version="1.1")
    historical = FieldSnapshot(revision=2, version="1.0")
    assert check_invariants(current, historical) == [
        "revisions should only increment by 1",
        "'revision 4' should be removed",
    ]


@pytest.mark.parametrize("before", [None, 0, 2])
def test_any_revision_after_version_bump_should_be_removed(before) -> None:
    current = FieldSnapshot(revision=1, version="1.1")
    historical = FieldSnapshot(revision=before, version="1.0")
    assert check_invariants(current, historical) == ["'revision 1' should be removed"]


def test_revision_jump_with_same_version() -> None:
    current = FieldSnapshot(revision=3, version="1.0")
    historical = FieldSnapshot(revision=1, version="1.0")
    assert check_invariants(current, historical) == ["revisions should only increment by 1"]


def test_version_scheme_jump() -> None:
    current = FieldSnapshot(version_scheme=3, version="1.1")
    historical = FieldSnapshot(version_scheme=1, version="1.0")
    assert check_invariants(current, historical) == ["version_schemes should only increment by 1"]


def test_version_scheme_decrease_with_new_version() -> None:
    current = FieldSnapshot(version="1.1")
    historical = FieldSnapshot(revision=None, version_scheme=1, version="1.0")
    assert check_invariants(current, historical) == ["version_scheme should not decrease (from 1 to 0)"]


def test_incomparable_versions_skip_version_linked_rules() -> None:
    current = FieldSnapshot(revision=1, version=None)
    historical = FieldSnapshot(revision=5, version="1.0")
    assert check_invariants(current, historical) == []


def test_decrease_with_scheme_bump_still_polices_scheme_step() -> None:
    current = FieldSnapshot(version_scheme=3, version="0.9")
    historical = FieldSnapshot(version_scheme=1, version="1.0")
    assert check_invariants(current, historical) == ["version_schemes should only increment by 1"]


def test_absent_and_zero_are_distinct_but_compare_equal() -> None:
    absent = FieldSnapshot(version="1.0")
    zero = FieldSnapshot(revision=0, version_scheme=0, version="1.0")
    assert absent != zero
    assert check_invariants(absent, zero) == []
    assert check_invariants(zero, absent) == []


def test_unparsable_history_degrades_to_untracked() -> None:
    historical = snapshot_fields("\x00\x01 not a formula")
    assert historical is None
    assert check_invariants(FieldSnapshot(revision=1, version="1.0"), historical) == []


def test_snapshots_from_text() -> None:
    text = """class Foo < Formula
  url "https://example.com/foo-1.0.tar.gz"
  revision 2
  version_scheme 1
end
"""
    assert snapshot_fields(text) == FieldSnapshot(revision=2, version_scheme=1, version="1.0")


def test_snapshot_prefers_stable_block_and_explicit_version() -> None:
    text = """class Foo < Formula
  stable do
    url "https://example.com/foo-latest.tar.gz"
    version "2.5"
  end
  devel do
    url "https://example.com/foo-3.0-beta.tar.gz"
  end
  resource "bar" do
    url "https://example.com/bar-9.9.tar.gz"
  end
end
"""
    assert snapshot_fields(text) == FieldSnapshot(version="2.5")


def test_snapshot_uses_git_tag() -> None:
    text = 'class Foo < Formula\n  url "https://github.com/org/foo.git", tag: "v1.3.0", revision: "abc123"\nend\n'
    assert snapshot_fields(text) == FieldSnapshot(version="1.3.0")


def test_snapshot_ignores_nested_revision() -> None:
    text = 'class Foo < Formula\n  url "https://example.com/foo-1.0.tgz"\n  if OS.mac?\n    revision 3\n  end\nend\n'
    assert snapshot_fields(text) == FieldSnapshot(version="1.0")


@pytest.mark.parametrize(
    "before, after",
    [
        ("openssl-1.0.2k.tar.gz", "openssl-1.0.2j.tar.gz"),
        ("openssh-7.4p1.tar.gz", "openssh-7.3p1.tar.gz"),
        ("foo-1.1-src.tar.gz", "foo-1.0-src.tar.gz"),
    ],
)
def test_version_decrease_with_suffixed_versions(before: str, after: str) -> None:
    template = 'class Foo < Formula\n  url "https://example.com/{}"\nend\n'
    historical = snapshot_fields(template.format(before))
    current = snapshot_fields(template.format(after))
    assert historical.version is not None
    assert check_invariants(current, historical) == [
        f"stable version should not decrease (from {historical.version} to {current.version})"
    ]
