"""Data models for formula auditing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal


class DeclarationKind(str, Enum):
    """DSL elements the extractor recognises.

    The value doubles as the label used in problem messages.
    """

    INCLUDE = "include directive"
    DESC = "desc"
    HOMEPAGE = "homepage"
    URL = "url"
    MIRROR = "mirror"
    VERSION = "version"
    CHECKSUM = "checksum"
    REVISION = "revision"
    VERSION_SCHEME = "version_scheme"
    HEAD = "head"
    STABLE_BLOCK = "stable block"
    BOTTLE_BLOCK = "bottle block"
    DEVEL_BLOCK = "devel block"
    HEAD_BLOCK = "head block"
    BOTTLE_MODIFIER = "bottle modifier"
    KEG_ONLY = "keg_only"
    OPTION = "option"
    DEPENDS_ON = "depends_on"
    CONFLICTS_WITH = "conflicts_with"
    RESOURCE = "resource"
    INSTALL = "install method"
    CAVEATS = "caveats method"
    PLIST = "plist block"
    TEST = "test block"
    # Nesting only; never ranked.
    OTHER_BLOCK = "block"
    OTHER_METHOD = "method"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class DeclarationEvent:
    """One occurrence of a DSL element in a script."""

    kind: DeclarationKind
    line: int  # 1-based
    parent: int | None = None  # index of the enclosing block event, None at class-body level
    argument: str = ""  # raw text after the keyword
    opens_block: bool = False


@dataclass(frozen=True)
class OrderingViolation:
    """`later_kind` appeared after `earlier_kind` but ranks before it."""

    earlier_kind: DeclarationKind
    earlier_line: int
    later_kind: DeclarationKind
    later_line: int

    @property
    def message(self) -> str:
        return (
            f"`{self.later_kind.label}` (line {self.later_line}) should be put before "
            f"`{self.earlier_kind.label}` (line {self.earlier_line})"
        )

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class FieldSnapshot:
    """The version-tracked fields of one textual revision of a formula.

    ``None`` means the field is not declared, which is distinct from ``0``
    even though both compare as zero.
    """

    revision: int | None = None
    version_scheme: int | None = None
    version: str | None = None

    @property
    def effective_revision(self) -> int:
        return self.revision or 0

    @property
    def effective_version_scheme(self) -> int:
        return self.version_scheme or 0


class VersionComparison(str, Enum):
    LESS = "less"
    EQUAL = "equal"
    GREATER = "greater"
    INCOMPARABLE = "incomparable"


@dataclass
class AuditResult:
    """A single audit finding."""

    level: Literal["error", "warning", "info"]
    rule: str
    file: Path
    message: str
    line: int | None = None

    def __str__(self) -> str:
        loc = f"{self.file.name}"
        if self.line:
            loc += f":{self.line}"
        return f"{self.level.upper()}: [{self.rule}] {loc} - {self.message}"
