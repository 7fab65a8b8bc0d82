"""
Tests for the Document Differ
=============================
Line diff, word diff, modification and move detection, significance
classification and side-by-side alignment.
"""

import pytest

from policy_compare.differ import DocumentDiffer, calculate_similarity, compute_lcs
from policy_compare.models import (
    BlockType,
    ChangeType,
    DiffOptions,
    DiffThresholds,
    Significance,
)


@pytest.fixture
def differ() -> DocumentDiffer:
    """Differ with default thresholds."""
    return DocumentDiffer()


def replay(source, changes):
    """Apply a change list to source lines: drop removed positions, insert new ones."""
    removed = {
        c.original_position for c in changes
        if c.change_type in (ChangeType.REMOVED, ChangeType.MODIFIED, ChangeType.MOVED)
    }
    lines = [line for idx, line in enumerate(source) if idx not in removed]
    inserts = sorted(
        (c.new_position, c.new_text) for c in changes
        if c.change_type in (ChangeType.ADDED, ChangeType.MODIFIED, ChangeType.MOVED)
    )
    for position, text in inserts:
        lines.insert(position, text)
    return lines


LINE_PAIRS = [
    (["a", "b", "c"], ["a", "x", "c", "d"]),
    ([], ["only new"]),
    (["only old"], []),
    (["a", "b", "c", "d"], ["d", "c", "b", "a"]),
    (["a", "a", "b"], ["b", "a", "a", "a"]),
    (["1. Purpose", "Text one.", "2. Scope"], ["2. Scope", "1. Purpose", "Text two."]),
]


class TestLineDiff:
    """Tests for compute_line_diff."""

    @pytest.mark.parametrize("source,target", LINE_PAIRS)
    def test_replay_reconstructs_target(self, differ, source, target):
        """Applying the change list to the source yields the target."""
        changes = differ.compute_line_diff(source, target)
        assert replay(source, changes) == target

    @pytest.mark.parametrize("source,target", LINE_PAIRS)
    def test_replay_after_refinement(self, differ, source, target):
        """Moves and modifications keep both positions, so replay still works."""
        options = DiffOptions(word_level=True, detect_moves=True)
        changes = differ.compute_line_diff(source, target, options)
        changes = differ.detect_moves(changes, options)
        changes = differ.detect_modifications(changes, options)
        assert replay(source, changes) == target

    @pytest.mark.parametrize("lines", [[], ["one"], ["a", "b", "a", "c"]])
    def test_identical_input_has_no_changes(self, differ, lines):
        """Comparing a sequence with itself yields nothing."""
        assert differ.compute_line_diff(lines, list(lines)) == []

    def test_change_ids_are_sequential(self, differ):
        changes = differ.compute_line_diff(["a", "b"], ["c", "d"])
        assert [c.id for c in changes] == ["change-1", "change-2", "change-3", "change-4"]

    def test_removed_before_added_between_matches(self, differ):
        changes = differ.compute_line_diff(["keep", "old", "end"], ["keep", "new", "end"])
        assert [c.change_type for c in changes] == [ChangeType.REMOVED, ChangeType.ADDED]
        assert changes[0].original_text == "old"
        assert changes[0].original_position == 1
        assert changes[0].new_text is None
        assert changes[1].new_text == "new"
        assert changes[1].new_position == 1
        assert changes[1].original_text is None

    def test_ignore_case(self, differ):
        options = DiffOptions(ignore_case=True)
        assert differ.compute_line_diff(["Hello World"], ["hello world"], options) == []

    def test_ignore_whitespace(self, differ):
        options = DiffOptions(ignore_whitespace=True)
        assert differ.compute_changes("a   b\n\n  c ", "a b\nc", options) == []

    def test_blank_lines_are_ignored(self, differ):
        assert differ.compute_changes("a\n\n\nb", "a\nb") == []

    def test_empty_texts(self, differ):
        assert differ.compute_changes("", "") == []
        changes = differ.compute_changes("", "New line")
        assert len(changes) == 1
        assert changes[0].change_type == ChangeType.ADDED

    def test_section_number_extracted(self, differ):
        changes = differ.compute_line_diff([], ["2.1 Scope"])
        assert changes[0].section_number == "2.1"
        assert changes[0].block_type == BlockType.HEADING


class TestBlockType:
    """Tests for block type detection."""

    @pytest.mark.parametrize("line,expected", [
        ("# Title", BlockType.HEADING),
        ("1.2 Scope", BlockType.HEADING),
        ("- bullet item", BlockType.LIST),
        ("• bullet item", BlockType.LIST),
        ("| Role | Owner |", BlockType.TABLE),
        ("See ![logo](img/logo.png)", BlockType.IMAGE),
        ("Plain paragraph text.", BlockType.PARAGRAPH),
    ])
    def test_detect_block_type(self, differ, line, expected):
        assert differ.detect_block_type(line) == expected

    def test_extract_section_number(self, differ):
        assert differ.extract_section_number("3.4 Leave") == "3.4"
        assert differ.extract_section_number("Leave policy") is None


class TestWordDiff:
    """Tests for compute_word_diff."""

    @pytest.mark.parametrize("source,target", [
        ("The quick brown fox", "The quick red fox"),
        ("", "all new words here"),
        ("all old words", ""),
        ("a b a b", "b a b a"),
        ("  padded   text ", "padded text again"),
    ])
    def test_replay_reconstructs_target_tokens(self, differ, source, target):
        words = differ.compute_word_diff(source, target)
        kept = [w.text for w in words if w.change_type in (ChangeType.UNCHANGED, ChangeType.ADDED)]
        assert kept == target.split()
        original = [w.text for w in words if w.change_type in (ChangeType.UNCHANGED, ChangeType.REMOVED)]
        assert original == source.split()

    def test_positions_are_sequential(self, differ):
        words = differ.compute_word_diff("one two three", "one 2 three four")
        assert [w.position for w in words] == list(range(len(words)))

    def test_single_substitution(self, differ):
        words = differ.compute_word_diff("The quick brown fox", "The quick red fox")
        assert [(w.change_type, w.text) for w in words] == [
            (ChangeType.UNCHANGED, "The"),
            (ChangeType.UNCHANGED, "quick"),
            (ChangeType.REMOVED, "brown"),
            (ChangeType.ADDED, "red"),
            (ChangeType.UNCHANGED, "fox"),
        ]


class TestModificationDetection:
    """Tests for detect_modifications."""

    def test_similar_pair_becomes_modification(self, differ):
        """Jaccard 3/5 = 0.6 exceeds 0.5, so the pair is one modification."""
        changes = differ.compute_line_diff(["The quick brown fox"], ["The quick red fox"])
        result = differ.detect_modifications(changes)

        assert len(result) == 1
        change = result[0]
        assert change.change_type == ChangeType.MODIFIED
        assert change.original_text == "The quick brown fox"
        assert change.new_text == "The quick red fox"
        assert change.original_position == 0
        assert change.new_position == 0
        assert any(w.change_type == ChangeType.ADDED and w.text == "red" for w in change.word_changes)
        assert 'diff-word-removed' in change.original_html
        assert 'diff-word-added' in change.new_html

    def test_dissimilar_pair_is_kept(self, differ):
        changes = differ.compute_line_diff(["The quick brown fox"], ["A slow green turtle"])
        result = differ.detect_modifications(changes)
        assert [c.change_type for c in result] == [ChangeType.REMOVED, ChangeType.ADDED]

    def test_exactly_half_similarity_is_not_enough(self, differ):
        """2 shared words out of 4 gives 0.5, which does not exceed the threshold."""
        changes = differ.compute_line_diff(["alpha beta gamma"], ["alpha beta delta"])
        assert len(differ.detect_modifications(changes)) == 2

    def test_pair_within_window(self, differ):
        target = ["one", "two", "three", "alpha beta gamma epsilon"]
        changes = differ.compute_line_diff(["alpha beta gamma delta"], target)
        result = differ.detect_modifications(changes)
        assert sum(1 for c in result if c.change_type == ChangeType.MODIFIED) == 1
        assert len(result) == 4

    def test_pair_outside_window(self, differ):
        target = ["one", "two", "three", "four", "alpha beta gamma epsilon"]
        changes = differ.compute_line_diff(["alpha beta gamma delta"], target)
        result = differ.detect_modifications(changes)
        assert all(c.change_type != ChangeType.MODIFIED for c in result)

    def test_window_is_configurable(self):
        differ = DocumentDiffer(DiffThresholds(modification_window=10))
        target = ["one", "two", "three", "four", "alpha beta gamma epsilon"]
        changes = differ.compute_line_diff(["alpha beta gamma delta"], target)
        result = differ.detect_modifications(changes)
        assert sum(1 for c in result if c.change_type == ChangeType.MODIFIED) == 1

    def test_word_level_option_drives_pipeline(self, differ):
        source = "The quick brown fox"
        target = "The quick red fox"
        assert len(differ.compute_changes(source, target)) == 2
        result = differ.compute_changes(source, target, DiffOptions(word_level=True))
        assert len(result) == 1
        assert result[0].change_type == ChangeType.MODIFIED


class TestMoveDetection:
    """Tests for detect_moves."""

    def test_moved_line(self, differ):
        changes = differ.compute_changes(
            "alpha\nbeta\ngamma", "beta\ngamma\nalpha", DiffOptions(detect_moves=True)
        )
        assert len(changes) == 1
        move = changes[0]
        assert move.change_type == ChangeType.MOVED
        assert move.original_position == 0
        assert move.new_position == 2
        assert move.significance == Significance.COSMETIC

    def test_moves_off_by_default(self, differ):
        changes = differ.compute_changes("alpha\nbeta\ngamma", "beta\ngamma\nalpha")
        assert [c.change_type for c in changes] == [ChangeType.REMOVED, ChangeType.ADDED]

    def test_move_respects_ignore_case(self, differ):
        options = DiffOptions(detect_moves=True, ignore_case=True)
        changes = differ.compute_changes("Alpha\nbeta", "beta\nALPHA", options)
        assert [c.change_type for c in changes] == [ChangeType.MOVED]


class TestSignificance:
    """Tests for assess_significance."""

    def test_punctuation_only_is_cosmetic(self, differ):
        assert differ.assess_significance(
            "Employees must comply.", "Employees must comply!!"
        ) == Significance.COSMETIC

    def test_case_only_is_cosmetic(self, differ):
        assert differ.assess_significance("Annual Leave", "annual leave") == Significance.COSMETIC

    def test_unrelated_sentences_are_major(self, differ):
        original = " ".join(f"old{i}" for i in range(20))
        new = " ".join(f"new{i}" for i in range(20))
        assert differ.assess_significance(original, new) == Significance.MAJOR

    def test_small_edit_is_minor(self, differ):
        assert differ.assess_significance(
            "All staff must complete annual training on time",
            "All staff must complete annual training promptly"
        ) == Significance.MINOR

    def test_large_word_delta_is_major(self):
        differ = DocumentDiffer(DiffThresholds(major_change_ratio=1.0))
        original = "staff must report incidents"
        new = original + " " + " ".join(f"extra{i}" for i in range(11))
        assert differ.assess_significance(original, new) == Significance.MAJOR

    def test_added_line_is_major(self, differ):
        changes = differ.compute_line_diff([], ["A new obligation applies."])
        assert changes[0].significance == Significance.MAJOR

    def test_added_punctuation_line_is_cosmetic(self, differ):
        changes = differ.compute_line_diff([], ["..."])
        assert changes[0].significance == Significance.COSMETIC


class TestAlignBlocks:
    """Tests for align_blocks."""

    @pytest.mark.parametrize("left,right", [
        ("a\nb\nc", "a\nc\nd"),
        ("", "x"),
        ("x\n\ny", "x\ny\n\n"),
        ("same", "same"),
    ])
    def test_unchanged_iff_both_sides_present(self, differ, left, right):
        for block in differ.align_blocks(left, right):
            both = block.left_content is not None and block.right_content is not None
            assert (block.change_type == ChangeType.UNCHANGED) == both

    def test_rows_and_numbering(self, differ):
        blocks = differ.align_blocks("a\nb\nc", "a\nc\nd")
        assert [(b.left_content, b.right_content, b.change_type) for b in blocks] == [
            ("a", "a", ChangeType.UNCHANGED),
            ("b", None, ChangeType.REMOVED),
            ("c", "c", ChangeType.UNCHANGED),
            (None, "d", ChangeType.ADDED),
        ]
        assert [b.line_number for b in blocks] == [1, 2, 3, 4]
        assert 'diff-highlight-removed' in blocks[1].diff_html['left']
        assert 'diff-highlight-added' in blocks[3].diff_html['right']
        assert blocks[0].diff_html is None

    def test_blank_lines_are_kept(self, differ):
        blocks = differ.align_blocks("a\n\nb", "a\n\nb")
        assert len(blocks) == 3
        assert blocks[1].left_content == ""

    def test_markup_is_escaped(self, differ):
        blocks = differ.align_blocks("", "<script>")
        added = [b for b in blocks if b.change_type == ChangeType.ADDED][0]
        assert '&lt;script&gt;' in added.diff_html['right']


class TestHelpers:
    """Tests for module-level helpers."""

    def test_similarity(self):
        assert calculate_similarity("The quick brown fox", "the quick red fox") == pytest.approx(0.6)
        assert calculate_similarity("", "") == 0.0

    def test_lcs_matches(self):
        assert compute_lcs(["a", "b", "c"], ["b", "c", "d"]) == [(1, 0), (2, 1)]
