"""
Tests for the Section Analyzer
==============================
"""

import pytest

from policy_compare.models import ChangeType, DiffOptions
from policy_compare.sections import (
    SectionAnalyzer,
    count_sections,
    normalize_section_number,
    section_sort_key,
)


@pytest.fixture
def analyzer() -> SectionAnalyzer:
    return SectionAnalyzer()


POLICY_TEXT = """Preamble text that belongs to no section.
1. Purpose
This policy governs conduct.
It applies at all times.
2.1 Scope
Applies to staff.
Section 3: Enforcement
Violations result in discipline."""


class TestParseSections:
    """Tests for parse_sections."""

    def test_headings_and_bodies(self, analyzer):
        sections = analyzer.parse_sections(POLICY_TEXT)

        assert [(s.number, s.title) for s in sections] == [
            ("1", "Purpose"),
            ("2.1", "Scope"),
            ("3", "Enforcement"),
        ]
        assert sections[0].content == "This policy governs conduct.\nIt applies at all times."
        assert sections[2].content == "Violations result in discipline."

    def test_preamble_is_discarded(self, analyzer):
        sections = analyzer.parse_sections(POLICY_TEXT)
        assert all("Preamble" not in s.content for s in sections)

    def test_no_headings(self, analyzer):
        assert analyzer.parse_sections("Just prose.\nMore prose.") == []
        assert analyzer.parse_sections("") == []

    def test_count_sections(self):
        assert count_sections(POLICY_TEXT) == 3
        assert count_sections("") == 0


class TestSectionNumbers:
    """Tests for section number helpers."""

    @pytest.mark.parametrize("marker,expected", [
        ("1.", "1"),
        ("2.1", "2.1"),
        ("Section 3:", "3"),
        ("Section 12", "12"),
    ])
    def test_normalize(self, marker, expected):
        assert normalize_section_number(marker) == expected

    def test_numeric_ordering(self):
        numbers = ["10", "2", "1.10", "1.2"]
        assert sorted(numbers, key=section_sort_key) == ["1.2", "1.10", "2", "10"]


class TestCompareSections:
    """Tests for compare_sections."""

    def test_same_number_body_change_is_modified(self, analyzer):
        """Matching by number yields one Modified entry and no Added/Removed ones."""
        source = "1. Purpose\nGeneral rules.\n2. Scope\nApplies to contractors."
        target = "1. Purpose\nGeneral rules.\n2. Scope\nApplies to contractors and interns."

        comparisons = analyzer.compare_sections(source, target)
        scope = [c for c in comparisons if c.section_number == "2"]

        assert len(scope) == 1
        assert scope[0].status == ChangeType.MODIFIED
        assert scope[0].changes
        assert all(c.status != ChangeType.ADDED for c in comparisons)
        assert all(c.status != ChangeType.REMOVED for c in comparisons)

    def test_added_and_unchanged_sections(self, analyzer):
        source = "1. Purpose\nThis policy governs conduct.\n2. Scope\nApplies to all staff."
        target = ("1. Purpose\nThis policy governs employee conduct.\n2. Scope\n"
                  "Applies to all staff.\n3. Enforcement\nViolations result in discipline.")

        comparisons = analyzer.compare_sections(source, target, DiffOptions(word_level=True))

        assert [(c.section_number, c.status) for c in comparisons] == [
            ("1", ChangeType.MODIFIED),
            ("2", ChangeType.UNCHANGED),
            ("3", ChangeType.ADDED),
        ]
        purpose = comparisons[0]
        assert len(purpose.changes) == 1
        change = purpose.changes[0]
        assert change.change_type == ChangeType.MODIFIED
        assert change.section_number == "1"
        assert change.section_title == "Purpose"
        assert any(w.change_type == ChangeType.ADDED and w.text == "employee"
                   for w in change.word_changes)

        added = comparisons[2]
        assert added.new_content == "Violations result in discipline."
        assert added.original_content is None

    def test_removed_section(self, analyzer):
        source = "1. Purpose\nText.\n2. Retired Rule\nOld text."
        target = "1. Purpose\nText."

        comparisons = analyzer.compare_sections(source, target)

        assert comparisons[1].section_number == "2"
        assert comparisons[1].status == ChangeType.REMOVED
        assert comparisons[1].original_content == "Old text."
        assert comparisons[1].new_content is None

    def test_renumbered_section_matches_by_title(self, analyzer):
        source = "1. Purpose\nA.\n2. Code of Conduct\nB."
        target = "1. Purpose\nA.\n3. Code of Conduct\nB."

        comparisons = analyzer.compare_sections(source, target)

        assert [(c.section_number, c.status) for c in comparisons] == [
            ("1", ChangeType.UNCHANGED),
            ("2", ChangeType.UNCHANGED),
        ]

    def test_target_claimed_once(self, analyzer):
        """Two source sections with the same title cannot share one target."""
        source = "1. Training\nA.\n2. Training\nB."
        target = "1. Training\nA."

        comparisons = analyzer.compare_sections(source, target)

        assert [(c.section_number, c.status) for c in comparisons] == [
            ("1", ChangeType.UNCHANGED),
            ("2", ChangeType.REMOVED),
        ]

    def test_results_sorted_numerically(self, analyzer):
        text = "10. Ten\nx\n2. Two\ny"
        comparisons = analyzer.compare_sections(text, text)
        assert [c.section_number for c in comparisons] == ["2", "10"]

    def test_options_applied_to_section_bodies(self, analyzer):
        source = "1. Purpose\nAll Staff Must Comply."
        target = "1. Purpose\nall staff must comply."

        default = analyzer.compare_sections(source, target)
        ignoring = analyzer.compare_sections(source, target, DiffOptions(ignore_case=True))

        assert default[0].status == ChangeType.MODIFIED
        assert ignoring[0].status == ChangeType.UNCHANGED
        assert ignoring[0].changes == []

    def test_sub_sections_empty(self, analyzer):
        comparisons = analyzer.compare_sections("1. A\nx", "1. A\ny")
        assert comparisons[0].sub_sections == []
