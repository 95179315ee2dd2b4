"""Formula loading and version-field snapshots."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from ..models import DeclarationEvent, DeclarationKind, FieldSnapshot
from .parser import ScriptText, extract_declarations, is_formula_source
from .versions import first_quoted, version_from_tag, version_from_url

logger = logging.getLogger(__name__)

INTEGER_PATTERN = re.compile(r"^(\d+)\b")


@dataclass
class Formula:
    """A formula file with its text model and extracted declarations."""

    path: Path
    text: ScriptText
    events: list[DeclarationEvent] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.path.stem

    def present(self, kind: DeclarationKind) -> bool:
        return any(e.kind == kind for e in self.events)

    def top_level(self) -> list[DeclarationEvent]:
        """Events declared directly in the formula class body."""
        return [e for e in self.events if e.parent is None]

    def snapshot(self) -> FieldSnapshot | None:
        return snapshot_from_events(self.events) if is_formula_source(self.text.text) else None


def load_formula(path: Path) -> Formula:
    """Load a single formula file and extract its declarations."""
    text = path.read_text(encoding="utf-8")
    return formula_from_text(text, path)


def formula_from_text(text: str, path: Path) -> Formula:
    return Formula(path=path, text=ScriptText(text), events=extract_declarations(text))


def _parse_integer(event: DeclarationEvent) -> int | None:
    match = INTEGER_PATTERN.match(event.argument)
    if not match:
        logger.debug("Ignoring non-integer `%s` on line %d", event.kind.label, event.line)
        return None
    return int(match.group(1))


def _in_stable_scope(event: DeclarationEvent, events: list[DeclarationEvent]) -> bool:
    if event.parent is None:
        return True
    parent = events[event.parent]
    return parent.kind == DeclarationKind.STABLE_BLOCK and parent.parent is None


def snapshot_from_events(events: list[DeclarationEvent]) -> FieldSnapshot:
    """Collect revision, version_scheme and stable version from declarations.

    The stable version is an explicit `version` declaration when present,
    otherwise derived from the stable url (or its git tag).
    """
    revision: int | None = None
    version_scheme: int | None = None
    explicit_version: str | None = None
    url_argument: str | None = None
    has_stable_block = any(
        e.kind == DeclarationKind.STABLE_BLOCK and e.parent is None for e in events
    )

    for event in events:
        if event.kind == DeclarationKind.REVISION and event.parent is None:
            revision = _parse_integer(event)
        elif event.kind == DeclarationKind.VERSION_SCHEME and event.parent is None:
            version_scheme = _parse_integer(event)
        elif event.kind in (DeclarationKind.URL, DeclarationKind.VERSION):
            if not _in_stable_scope(event, events):
                continue
            # A stable block overrides class-level download declarations
            if has_stable_block and event.parent is None:
                continue
            if event.kind == DeclarationKind.URL and url_argument is None:
                url_argument = event.argument
            elif event.kind == DeclarationKind.VERSION and explicit_version is None:
                explicit_version = first_quoted(event.argument)

    version = explicit_version
    if version is None and url_argument is not None:
        version = version_from_tag(url_argument)
        if version is None:
            url = first_quoted(url_argument)
            version = version_from_url(url) if url else None

    return FieldSnapshot(revision=revision, version_scheme=version_scheme, version=version)


def snapshot_fields(text: str) -> FieldSnapshot | None:
    """Parse formula source into a FieldSnapshot.

    Returns None when the text does not contain a formula definition.
    """
    if not is_formula_source(text):
        logger.debug("Text does not define a formula class; no field snapshot")
        return None
    return snapshot_from_events(extract_declarations(text))
