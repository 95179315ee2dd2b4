"""Tests for canonical ordering, exclusion and containment rules."""

import pytest

from formaudit.formula.ordering import (
    COMPONENT_RANKS,
    check_containment,
    check_exclusions,
    check_test_block,
    validate_ordering,
)
from formaudit.formula.parser import extract_declarations
from formaudit.models import DeclarationEvent
from formaudit.models import DeclarationKind as K


def _messages(events: list[DeclarationEvent]) -> list[str]:
    return [v.message for v in validate_ordering(events)]


def test_homepage_after_url() -> None:
    events = [DeclarationEvent(K.URL, 2), DeclarationEvent(K.HOMEPAGE, 3)]
    assert _messages(events) == ["`homepage` (line 3) should be put before `url` (line 2)"]


def test_canonically_ordered_sequence_has_no_violations() -> None:
    ordered = sorted(COMPONENT_RANKS, key=COMPONENT_RANKS.__getitem__)
    events = [DeclarationEvent(kind, line) for line, kind in enumerate(ordered, start=2)]
    assert validate_ordering(events) == []


def test_single_misplaced_event_yields_one_violation() -> None:
    kinds = [K.DESC, K.HOMEPAGE, K.URL, K.CHECKSUM, K.DEPENDS_ON, K.INSTALL, K.TEST]
    events = [DeclarationEvent(kind, line) for line, kind in enumerate(kinds, start=2)]
    # Move `desc` after `depends_on`
    moved = [events[1], events[2], events[3], events[4], events[0], events[5], events[6]]
    moved = [DeclarationEvent(e.kind, line) for line, e in enumerate(moved, start=2)]

    violations = validate_ordering(moved)
    assert len(violations) == 1
    assert violations[0].later_kind == K.DESC
    assert violations[0].earlier_kind == K.DEPENDS_ON


def test_repeated_resources_never_violate() -> None:
    events = [
        DeclarationEvent(K.URL, 2),
        DeclarationEvent(K.RESOURCE, 4, opens_block=True),
        DeclarationEvent(K.RESOURCE, 8, opens_block=True),
        DeclarationEvent(K.RESOURCE, 12, opens_block=True),
    ]
    assert validate_ordering(events) == []


def test_violation_pairs_with_nearest_preceding_higher_rank() -> None:
    events = [
        DeclarationEvent(K.URL, 2),
        DeclarationEvent(K.TEST, 3),
        DeclarationEvent(K.PLIST, 7),
        DeclarationEvent(K.INSTALL, 9),
    ]
    assert _messages(events) == [
        "`plist block` (line 7) should be put before `test block` (line 3)",
        "`install method` (line 9) should be put before `plist block` (line 7)",
    ]


def test_resource_contents_are_atomic() -> None:
    text = """class Foo < Formula
  url "https://example.com/foo-1.0.tgz"

  resource "foo2" do
    url "https://example.com/foo-2.0.tgz"
  end

  depends_on "openssl"
end
"""
    assert _messages(extract_declarations(text)) == [
        "`depends_on` (line 8) should be put before `resource` (line 4)"
    ]


def test_stable_block_contents_are_ordered_in_their_own_scope() -> None:
    text = """class Foo < Formula
  desc "Foo"
  stable do
    sha256 "abc"
    url "https://example.com/foo-1.0.tgz"
  end
  depends_on "bar"
end
"""
    assert _messages(extract_declarations(text)) == [
        "`url` (line 5) should be put before `checksum` (line 4)"
    ]


def test_nested_url_in_stable_does_not_conflict_with_class_body() -> None:
    text = """class Foo < Formula
  homepage "https://example.com"
  stable do
    url "https://example.com/foo-1.0.tgz"
    depends_on "bar"
  end
  devel do
    url "https://example.com/foo-1.1-beta.tgz"
  end
end
"""
    assert validate_ordering(extract_declarations(text)) == []


def test_unranked_kinds_are_ignored() -> None:
    events = [DeclarationEvent(K.TEST, 2), DeclarationEvent(K.OTHER_BLOCK, 5), DeclarationEvent(K.OTHER_METHOD, 8)]
    assert validate_ordering(events) == []


def test_head_attribute_and_block_are_exclusive() -> None:
    events = extract_declarations(
        'class Foo < Formula\n  head "http://example.com/foo.git"\n  head do\n    # stuff\n  end\nend\n'
    )
    assert check_exclusions(events) == ["Should not have both `head` and `head do`"]


def test_bottle_block_and_modifier_are_exclusive() -> None:
    events = extract_declarations(
        'class Foo < Formula\n  bottle do\n  end\n  bottle :disable, "reasons"\nend\n'
    )
    assert check_exclusions(events) == ["Should not have `bottle :unneeded/:disable` and `bottle do`"]


@pytest.mark.parametrize(
    "body",
    [
        '  head "http://example.com/foo.git"\n',
        "  bottle :unneeded\n",
        "  bottle do\n  end\n",
    ],
)
def test_single_variant_is_not_exclusive(body: str) -> None:
    events = extract_declarations(f"class Foo < Formula\n{body}end\n")
    assert check_exclusions(events) == []


def test_url_outside_stable_block() -> None:
    events = extract_declarations(
        'class Foo < Formula\n  url "http://example.com/foo-1.0.tgz"\n  stable do\n    # stuff\n  end\nend\n'
    )
    assert check_containment(events) == ["`url` should be put inside `stable block`"]


def test_checksum_and_mirror_outside_stable_block() -> None:
    text = """class Foo < Formula
  url "http://example.com/foo-1.0.tgz"
  mirror "http://mirror.example.com/foo-1.0.tgz"
  sha256 "abc"
  stable do
  end
end
"""
    assert check_containment(extract_declarations(text)) == [
        "`url` should be put inside `stable block`",
        "`checksum` should be put inside `stable block`",
        "`mirror` should be put inside `stable block`",
    ]


def test_url_inside_stable_block_is_contained() -> None:
    events = extract_declarations(
        'class Foo < Formula\n  stable do\n    url "http://example.com/foo-1.0.tgz"\n    sha256 "abc"\n  end\nend\n'
    )
    assert check_containment(events) == []


def test_no_stable_block_means_no_containment_rule() -> None:
    events = extract_declarations('class Foo < Formula\n  url "http://example.com/foo-1.0.tgz"\nend\n')
    assert check_containment(events) == []


def test_missing_test_block() -> None:
    without = extract_declarations('class Foo < Formula\n  url "http://example.com/foo-1.0.tgz"\nend\n')
    assert check_test_block(without) == ["A `test do` test block should be added"]

    with_test = extract_declarations('class Foo < Formula\n  test do\n    system "true"\n  end\nend\n')
    assert check_test_block(with_test) == []
