"""Formula text model and declaration extraction."""

from __future__ import annotations

import logging
import re

from ..models import DeclarationEvent, DeclarationKind

logger = logging.getLogger(__name__)

# Matches the formula class header, e.g. `class Foo < Formula`
FORMULA_CLASS_PATTERN = re.compile(r"^\s*class\s+[A-Z]\w*\s*<\s*[\w:]+", re.MULTILINE)

DATA_PATTERN = re.compile(r"^[^#]*\bDATA\b", re.MULTILINE)
END_PATTERN = re.compile(r"^__END__$", re.MULTILINE)

# Match <<EOS, <<-EOS, <<~EOS and quoted variants
HEREDOC_PATTERN = re.compile(r"<<[~-]?(['\"]?)([A-Z_][A-Z0-9_]*)\1")

STATEMENT_PATTERN = re.compile(r"^([a-z_][a-zA-Z0-9_]*[?!]?)(?:\s+(.*))?$")
DO_BLOCK_PATTERN = re.compile(r"\bdo(?:\s*\|[^|]*\|)?$")
DEF_PATTERN = re.compile(r"^def\s+(?:self\.)?([a-zA-Z_]\w*[?!=]?)")
CONTROL_PATTERN = re.compile(r"^(?:if|unless|case|begin|while|until|for|module)\b")
ASSIGNED_CONTROL_PATTERN = re.compile(r"=\s*(?:if|unless|case|begin)\b")
END_STATEMENT_PATTERN = re.compile(r"^end\b")
INLINE_END_PATTERN = re.compile(r"\send$")
BOTTLE_MODIFIER_PATTERN = re.compile(r"^:(?:unneeded|disable)\b")
STRING_LITERAL_PATTERN = re.compile(r"""'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*\"""")

# Call-style declarations recognised at any depth
ATTRIBUTE_KINDS: dict[str, DeclarationKind] = {
    "desc": DeclarationKind.DESC,
    "homepage": DeclarationKind.HOMEPAGE,
    "url": DeclarationKind.URL,
    "mirror": DeclarationKind.MIRROR,
    "sha1": DeclarationKind.CHECKSUM,
    "sha256": DeclarationKind.CHECKSUM,
    "revision": DeclarationKind.REVISION,
    "version_scheme": DeclarationKind.VERSION_SCHEME,
    "head": DeclarationKind.HEAD,
    "keg_only": DeclarationKind.KEG_ONLY,
    "option": DeclarationKind.OPTION,
    "depends_on": DeclarationKind.DEPENDS_ON,
    "conflicts_with": DeclarationKind.CONFLICTS_WITH,
    "plist_options": DeclarationKind.PLIST,
}

BLOCK_KINDS: dict[str, DeclarationKind] = {
    "stable": DeclarationKind.STABLE_BLOCK,
    "devel": DeclarationKind.DEVEL_BLOCK,
    "head": DeclarationKind.HEAD_BLOCK,
    "bottle": DeclarationKind.BOTTLE_BLOCK,
    "resource": DeclarationKind.RESOURCE,
    "go_resource": DeclarationKind.RESOURCE,
    "test": DeclarationKind.TEST,
}

METHOD_KINDS: dict[str, DeclarationKind] = {
    "install": DeclarationKind.INSTALL,
    "caveats": DeclarationKind.CAVEATS,
    "plist": DeclarationKind.PLIST,
}


class ScriptText:
    """Line-indexed view over the raw text of a formula file."""

    def __init__(self, text: str):
        self.text = text
        self.lines = text.split("\n")

    def __contains__(self, needle: str) -> bool:
        return needle in self.text

    def line_number(self, pattern: str | re.Pattern[str]) -> int | None:
        """Return the 1-based number of the first line matching `pattern`."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        for index, line in enumerate(self.lines, start=1):
            if regex.search(line):
                return index
        return None

    @property
    def trailing_newline(self) -> bool:
        return self.text.endswith("\n")

    @property
    def has_data(self) -> bool:
        return DATA_PATTERN.search(self.text) is not None

    @property
    def has_end(self) -> bool:
        return END_PATTERN.search(self.text) is not None

    @property
    def without_patch(self) -> str:
        """Text before the `__END__` marker, without trailing whitespace."""
        return self.text.split("\n__END__")[0].strip()


def split_statements(line: str) -> list[str]:
    """Split a source line on `;`, dropping trailing comments.

    Quoted strings are respected so `"a; b"` and `"#{x}"` stay intact.
    """
    statements = []
    current: list[str] = []
    quote: str | None = None
    escaped = False

    for char in line:
        if quote:
            current.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
            current.append(char)
        elif char == "#":
            break
        elif char == ";":
            statements.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    statements.append("".join(current).strip())
    return [s for s in statements if s]


class _Extractor:
    """Walks formula source once, tracking `do`/`def`/control blocks against `end`."""

    def __init__(self) -> None:
        self.events: list[DeclarationEvent] = []
        # Each frame is the index of the opening event, or None for the formula class body
        self.stack: list[int | None] = []
        self.seen_formula_class = False

    def _parent(self) -> int | None:
        return self.stack[-1] if self.stack else None

    def _emit(self, kind: DeclarationKind, line: int, argument: str = "", opens_block: bool = False) -> None:
        event = DeclarationEvent(
            kind=kind,
            line=line,
            parent=self._parent(),
            argument=argument,
            opens_block=opens_block,
        )
        self.events.append(event)
        if opens_block:
            self.stack.append(len(self.events) - 1)

    def statement(self, stmt: str, line: int) -> None:
        if END_STATEMENT_PATTERN.match(stmt):
            if self.stack:
                self.stack.pop()
            else:
                logger.debug("Unbalanced `end` on line %d", line)
            return

        if stmt.startswith("class ") or stmt == "class":
            if not self.seen_formula_class and not self.stack and FORMULA_CLASS_PATTERN.match(stmt):
                self.seen_formula_class = True
                self.stack.append(None)
            else:
                self._emit(DeclarationKind.OTHER_BLOCK, line, stmt, opens_block=True)
            return

        def_match = DEF_PATTERN.match(stmt)
        if def_match:
            name = def_match.group(1)
            kind = METHOD_KINDS.get(name, DeclarationKind.OTHER_METHOD)
            self._emit(kind, line, name, opens_block=True)
            return

        # Keywords inside string arguments (`"--style=case"`) never open blocks
        code = STRING_LITERAL_PATTERN.sub('""', stmt)

        if CONTROL_PATTERN.match(code) or ASSIGNED_CONTROL_PATTERN.search(code):
            # `if x then y end` closes on the same line
            closed = INLINE_END_PATTERN.search(code) is not None
            self._emit(DeclarationKind.OTHER_BLOCK, line, stmt, opens_block=not closed)
            return

        match = STATEMENT_PATTERN.match(stmt)
        keyword = match.group(1) if match else ""
        argument = (match.group(2) or "").strip() if match else ""

        if DO_BLOCK_PATTERN.search(code):
            kind = BLOCK_KINDS.get(keyword, DeclarationKind.OTHER_BLOCK)
            argument = DO_BLOCK_PATTERN.sub("", argument).strip()
            self._emit(kind, line, argument, opens_block=True)
            return

        if not match:
            return

        if keyword == "version":
            if argument.startswith(("'", '"')):
                self._emit(DeclarationKind.VERSION, line, argument)
        elif keyword == "include":
            if argument.startswith("Language::"):
                self._emit(DeclarationKind.INCLUDE, line, argument)
        elif keyword == "bottle":
            if BOTTLE_MODIFIER_PATTERN.match(argument):
                self._emit(DeclarationKind.BOTTLE_MODIFIER, line, argument)
        elif keyword == "head" and not argument:
            logger.debug("Bare `head` without a URL on line %d", line)
        elif keyword in ATTRIBUTE_KINDS:
            self._emit(ATTRIBUTE_KINDS[keyword], line, argument)


def extract_declarations(text: str) -> list[DeclarationEvent]:
    """Extract declaration events from formula source, in source order.

    Comments, heredoc bodies and anything after `__END__` are skipped.
    Constructs that cannot be recognised are not emitted.
    """
    extractor = _Extractor()
    heredoc_terminator: str | None = None

    for line_number, raw in enumerate(text.split("\n"), start=1):
        stripped = raw.strip()

        if heredoc_terminator is not None:
            if stripped == heredoc_terminator:
                heredoc_terminator = None
            continue

        if stripped == "__END__":
            break
        if not stripped or stripped.startswith("#"):
            continue

        for stmt in split_statements(stripped):
            extractor.statement(stmt, line_number)

        heredoc = HEREDOC_PATTERN.search(stripped)
        if heredoc:
            heredoc_terminator = heredoc.group(2)

    if extractor.stack:
        logger.debug("%d block(s) left open at end of file", len(extractor.stack))

    return extractor.events


def is_formula_source(text: str) -> bool:
    """Whether `text` contains a formula class definition."""
    return FORMULA_CLASS_PATTERN.search(text) is not None
