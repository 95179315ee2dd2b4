"""
Version invariants between a formula's working copy and its last commit.

Three coupled fields are policed against exactly one baseline, the most
recently committed revision of the file:

- version_scheme: never decreases; increases by at most 1
- stable version: never decreases unless version_scheme was increased
- revision: never decreases for the same version; is reset when the
  version is bumped; increases by at most 1
"""

from __future__ import annotations

from ..models import FieldSnapshot, VersionComparison
from ..vcs import Untracked
from .versions import compare_versions


def check_version_scheme(current: FieldSnapshot, historical: FieldSnapshot) -> list[str]:
    before = historical.effective_version_scheme
    after = current.effective_version_scheme
    if after < before:
        return [f"version_scheme should not decrease (from {before} to {after})"]
    if after > before + 1:
        return ["version_schemes should only increment by 1"]
    return []


def check_version(
    current: FieldSnapshot,
    historical: FieldSnapshot,
    delta: VersionComparison,
) -> list[str]:
    if delta != VersionComparison.LESS:
        return []
    if current.effective_version_scheme > historical.effective_version_scheme:
        return []
    return [f"stable version should not decrease (from {historical.version} to {current.version})"]


def check_revision(
    current: FieldSnapshot,
    historical: FieldSnapshot,
    delta: VersionComparison,
) -> list[str]:
    before = historical.effective_revision
    after = current.effective_revision

    if delta == VersionComparison.EQUAL:
        if after < before:
            return [f"revision should not decrease (from {before} to {after})"]
        if after > before + 1:
            return ["revisions should only increment by 1"]
        return []

    if delta == VersionComparison.GREATER:
        # A version bump resets the baseline to 0, so any revision must go
        removed = f"'revision {after}' should be removed"
        if after and after == before:
            return [removed]
        problems = []
        if after > 1:
            problems.append("revisions should only increment by 1")
        if after:
            problems.append(removed)
        return problems

    return []


def check_invariants(
    current: FieldSnapshot,
    historical: FieldSnapshot | Untracked | None,
) -> list[str]:
    """Compare current fields against the last committed ones.

    Untracked history (no commit, failed retrieval, unparsable content)
    yields no problems.
    """
    if not isinstance(historical, FieldSnapshot):
        return []

    delta = compare_versions(current.version, historical.version)

    problems: list[str] = []
    problems.extend(check_version_scheme(current, historical))
    problems.extend(check_version(current, historical, delta))
    problems.extend(check_revision(current, historical, delta))
    return problems
