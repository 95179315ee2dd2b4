"""Audit rules for formula validation."""

from __future__ import annotations

import logging
from typing import Literal

from ..models import AuditResult
from ..vcs import UNTRACKED, RevisionSource, StaticRevisionSource
from .invariants import check_invariants
from .loader import Formula, snapshot_fields
from .ordering import check_containment, check_exclusions, check_test_block, validate_ordering

logger = logging.getLogger(__name__)


RULE_EXPLANATIONS = {
    "trailing-newline": {
        "name": "Trailing Newline",
        "summary": "Formula files must end with a newline.",
        "strict": False,
    },
    "data-end": {
        "name": "DATA / __END__ Pairing",
        "summary": "An inline `patch :DATA` needs an `__END__` section, and `__END__` is only allowed when DATA is used.",
        "strict": False,
    },
    "component-order": {
        "name": "Component Order",
        "summary": "Declarations follow the canonical order (desc, homepage, url, ... , test). "
        "Contents of stable/devel/head blocks are ordered the same way.",
        "strict": True,
    },
    "mutual-exclusion": {
        "name": "Mutual Exclusion",
        "summary": "`head` with `head do`, or `bottle :unneeded/:disable` with `bottle do`, must not appear together.",
        "strict": True,
    },
    "stable-containment": {
        "name": "Stable Containment",
        "summary": "When a `stable do` block exists, url/checksum/mirror belong inside it.",
        "strict": True,
    },
    "missing-test": {
        "name": "Missing Test",
        "summary": "Every formula should have a `test do` block.",
        "strict": True,
    },
    "version-invariant": {
        "name": "Version Invariants",
        "summary": "Compared with the last commit: version_scheme and revision never decrease and "
        "step by at most 1, revision resets on a version bump, and the stable version only "
        "decreases together with a version_scheme increase.",
        "strict": False,
    },
}


def get_rule_ids() -> list[str]:
    return list(RULE_EXPLANATIONS)


class FormulaAuditor:
    """Runs the audits for one formula and accumulates its problems.

    One auditor serves one audit pass; `problems` is append-only while it runs.
    """

    def __init__(
        self,
        formula: Formula,
        *,
        strict: bool = False,
        revision_source: RevisionSource | None = None,
    ):
        self.formula = formula
        self.strict = strict
        self.revision_source = revision_source or StaticRevisionSource()
        self.results: list[AuditResult] = []

    @property
    def problems(self) -> list[str]:
        return [r.message for r in self.results]

    def problem(
        self,
        message: str,
        rule: str,
        line: int | None = None,
        level: Literal["error", "warning", "info"] = "error",
    ) -> None:
        self.results.append(
            AuditResult(level=level, rule=rule, file=self.formula.path, message=message, line=line)
        )

    def run_all(self) -> list[AuditResult]:
        """Run every audit and return the accumulated findings."""
        self.audit_file()
        self.audit_class()
        self.audit_revision_and_version_scheme()
        return self.results

    def audit_file(self) -> None:
        """File-level checks, plus structural ordering in strict mode."""
        text = self.formula.text

        if not text.trailing_newline:
            self.problem("File should end with a newline", "trailing-newline")

        if text.has_data and not text.has_end:
            self.problem("'DATA' was found, but no '__END__'", "data-end")
        if text.has_end and not text.has_data:
            self.problem("'__END__' was found, but 'DATA' is not used", "data-end")

        if not self.strict:
            return

        for violation in validate_ordering(self.formula.events):
            self.problem(violation.message, "component-order", line=violation.later_line)
        for message in check_containment(self.formula.events):
            self.problem(message, "stable-containment")
        for message in check_exclusions(self.formula.events):
            self.problem(message, "mutual-exclusion")

    def audit_class(self) -> None:
        if not self.strict:
            return
        for message in check_test_block(self.formula.events):
            self.problem(message, "missing-test", level="warning")

    def audit_revision_and_version_scheme(self) -> None:
        """Compare the working copy with its last committed revision."""
        current = self.formula.snapshot()
        if current is None:
            logger.debug("%s: no formula class found; skipping version invariants", self.formula.path)
            return

        try:
            committed = self.revision_source.fetch_last_committed(self.formula.path)
        except Exception as exc:
            logger.warning("%s: history lookup failed (%s); treating as untracked", self.formula.path, exc)
            committed = UNTRACKED

        historical = None if committed is UNTRACKED else snapshot_fields(committed)
        for message in check_invariants(current, historical):
            self.problem(message, "version-invariant")
