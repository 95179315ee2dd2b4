"""Canonical declaration order and structural placement rules.

Ranks are configuration: reordering the table never touches the validator.
Kinds sharing a tier (repeated `resource` blocks, `plist_options` and
`def plist`) never violate ordering against each other.
"""

from __future__ import annotations

from ..models import DeclarationEvent, DeclarationKind, OrderingViolation

K = DeclarationKind

# Canonical order (lower tier first)
COMPONENT_RANKS: dict[DeclarationKind, int] = {
    K.INCLUDE: 0,
    K.DESC: 1,
    K.HOMEPAGE: 2,
    K.URL: 3,
    K.MIRROR: 4,
    K.VERSION: 5,
    K.CHECKSUM: 6,
    K.REVISION: 7,
    K.VERSION_SCHEME: 8,
    K.HEAD: 9,
    K.STABLE_BLOCK: 10,
    K.BOTTLE_BLOCK: 11,
    K.DEVEL_BLOCK: 12,
    K.HEAD_BLOCK: 13,
    K.BOTTLE_MODIFIER: 14,
    K.KEG_ONLY: 15,
    K.OPTION: 16,
    K.DEPENDS_ON: 17,
    K.CONFLICTS_WITH: 18,
    K.RESOURCE: 19,
    K.INSTALL: 20,
    K.CAVEATS: 21,
    K.PLIST: 22,
    K.TEST: 23,
}

# Source-variant blocks whose contents are ordered like the class body
TRANSPARENT_BLOCKS = frozenset({K.STABLE_BLOCK, K.DEVEL_BLOCK, K.HEAD_BLOCK})

# Class-level declarations that belong inside an existing stable block
STABLE_CONTAINED = (K.URL, K.CHECKSUM, K.MIRROR)

# Pairs that must not both be declared at class level
MUTUALLY_EXCLUSIVE: tuple[tuple[DeclarationKind, DeclarationKind, str], ...] = (
    (K.HEAD, K.HEAD_BLOCK, "Should not have both `head` and `head do`"),
    (K.BOTTLE_MODIFIER, K.BOTTLE_BLOCK, "Should not have `bottle :unneeded/:disable` and `bottle do`"),
)

MISSING_TEST_MESSAGE = "A `test do` test block should be added"


def _is_ranked(event: DeclarationEvent, events: list[DeclarationEvent]) -> bool:
    """Whether an event sits in the class body or a class-level stable/devel/head block."""
    if event.parent is None:
        return True
    parent = events[event.parent]
    return parent.kind in TRANSPARENT_BLOCKS and parent.parent is None


def validate_ordering(events: list[DeclarationEvent]) -> list[OrderingViolation]:
    """Report declarations that appear after a declaration of a later tier.

    Each scope (the class body and every stable/devel/head block) tracks its
    own running maximum. An out-of-order event is paired with the nearest
    preceding event in its scope that holds a higher tier.
    """
    violations: list[OrderingViolation] = []
    # Scope key is the enclosing block index, None for the class body
    history: dict[int | None, list[tuple[int, DeclarationEvent]]] = {}
    maxima: dict[int | None, int] = {}

    for event in events:
        rank = COMPONENT_RANKS.get(event.kind)
        if rank is None:
            continue
        if not _is_ranked(event, events):
            continue
        scope = event.parent

        seen = history.setdefault(scope, [])
        highest = maxima.get(scope)

        if highest is not None and rank < highest:
            earlier = next(prev for prev_rank, prev in reversed(seen) if prev_rank > rank)
            violations.append(
                OrderingViolation(
                    earlier_kind=earlier.kind,
                    earlier_line=earlier.line,
                    later_kind=event.kind,
                    later_line=event.line,
                )
            )
        else:
            maxima[scope] = rank

        seen.append((rank, event))

    return violations


def _class_level_kinds(events: list[DeclarationEvent]) -> set[DeclarationKind]:
    return {e.kind for e in events if e.parent is None}


def check_exclusions(events: list[DeclarationEvent]) -> list[str]:
    """Report mutually exclusive declarations present together."""
    present = _class_level_kinds(events)
    return [message for first, second, message in MUTUALLY_EXCLUSIVE if first in present and second in present]


def check_containment(events: list[DeclarationEvent]) -> list[str]:
    """Report download declarations left outside an existing stable block."""
    present = _class_level_kinds(events)
    if K.STABLE_BLOCK not in present:
        return []
    return [
        f"`{kind.label}` should be put inside `{K.STABLE_BLOCK.label}`"
        for kind in STABLE_CONTAINED
        if kind in present
    ]


def check_test_block(events: list[DeclarationEvent]) -> list[str]:
    if K.TEST in _class_level_kinds(events):
        return []
    return [MISSING_TEST_MESSAGE]
