"""
Policy Document Differ v1.0.0
=============================
LCS-based line and word diff with change classification.

Line-level changes come from a classic longest-common-subsequence table.
Nearby remove/add pairs that are really one edit are merged into
modifications with a word-level diff, identical lines that changed place
can be reported as moves, and every change gets a Major/Minor/Cosmetic
significance.

Rendered per-side HTML for modifications uses diff-match-patch.
"""

import re
import html
from dataclasses import replace
from typing import Iterator, List, Optional, Sequence, Tuple

import diff_match_patch as dmp_module

from config_logging import get_logger
from .models import (
    AlignedBlock,
    BlockType,
    ChangeItem,
    ChangeType,
    DiffOptions,
    DiffThresholds,
    Significance,
    WordChange,
)

logger = get_logger('policy_compare.differ')

WHITESPACE_RUN = re.compile(r'\s+')
MARKDOWN_HEADING = re.compile(r'^#{1,6}\s')
NUMBERED_HEADING = re.compile(r'^[\d.]+\s')
BULLET_ITEM = re.compile(r'^[-*•]\s')
NUMBERED_ITEM = re.compile(r'^\d+\.\s')
TABLE_ROW = re.compile(r'\|.*\|')
MARKDOWN_IMAGE = re.compile(r'!\[.*\]\(.*\)')
LEADING_NUMBER = re.compile(r'^([\d.]+)')
COSMETIC_CHARS = re.compile(r'[\s.,;:!?\'"()\[\]{}]')


# =============================================================================
# SEQUENCE HELPERS
# =============================================================================

def normalize_line(line: str, options: Optional[DiffOptions] = None) -> str:
    """Apply ignore-whitespace / ignore-case normalization for equality tests."""
    if options is not None and options.ignore_whitespace:
        line = WHITESPACE_RUN.sub(' ', line).strip()
    if options is not None and options.ignore_case:
        line = line.lower()
    return line


def compute_lcs(
    source: Sequence[str],
    target: Sequence[str],
    options: Optional[DiffOptions] = None
) -> List[Tuple[int, int]]:
    """
    Compute the longest common subsequence of two sequences.

    Args:
        source: Source items (lines or words)
        target: Target items
        options: Normalization applied before comparing items

    Returns:
        Ordered (source_index, target_index) pairs of matched items
    """
    a = [normalize_line(item, options) for item in source]
    b = [normalize_line(item, options) for item in target]
    m, n = len(a), len(b)

    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        row = dp[i]
        prev = dp[i - 1]
        item = a[i - 1]
        for j in range(1, n + 1):
            if item == b[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    matches = []
    i, j = m, n
    while i > 0 and j > 0:
        if a[i - 1] == b[j - 1]:
            matches.append((i - 1, j - 1))
            i -= 1
            j -= 1
        elif dp[i - 1][j] > dp[i][j - 1]:
            i -= 1
        else:
            j -= 1

    matches.reverse()
    return matches


def walk_alignment(
    matches: List[Tuple[int, int]],
    source_len: int,
    target_len: int
) -> Iterator[Tuple[str, Optional[int], Optional[int]]]:
    """
    Turn LCS matches into an ordered edit script.

    Yields ('delete', i, None), ('insert', None, j) and ('equal', i, j).
    Between two matches all deletions come before insertions.
    """
    i = j = 0
    for match_i, match_j in matches:
        while i < match_i:
            yield 'delete', i, None
            i += 1
        while j < match_j:
            yield 'insert', None, j
            j += 1
        yield 'equal', i, j
        i += 1
        j += 1

    while i < source_len:
        yield 'delete', i, None
        i += 1
    while j < target_len:
        yield 'insert', None, j
        j += 1


def calculate_similarity(text1: str, text2: str) -> float:
    """Jaccard similarity of the lowercase word sets of two strings."""
    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def count_words(content: str) -> int:
    """Count whitespace-separated words."""
    return len(content.split())


# =============================================================================
# DIFF ENGINE
# =============================================================================

class DocumentDiffer:
    """
    Policy document comparison engine.

    Stateless apart from its thresholds, so one instance can serve
    concurrent comparisons.
    """

    def __init__(self, thresholds: Optional[DiffThresholds] = None):
        """
        Initialize the differ.

        Args:
            thresholds: Heuristic thresholds; defaults are used if omitted
        """
        self.thresholds = thresholds or DiffThresholds()

        self.dmp = dmp_module.diff_match_patch()
        self.dmp.Diff_Timeout = 2.0  # Max 2 seconds per diff
        self.dmp.Diff_EditCost = 4

    # -------------------------------------------------------------------------
    # Line level
    # -------------------------------------------------------------------------

    def split_into_blocks(self, content: str, options: Optional[DiffOptions] = None) -> List[str]:
        """
        Split content into comparable, non-blank lines.

        Args:
            content: Document text
            options: With ignore_whitespace, whitespace runs are collapsed

        Returns:
            List of non-empty lines
        """
        lines = (content or '').split('\n')

        if options is not None and options.ignore_whitespace:
            lines = [WHITESPACE_RUN.sub(' ', line).strip() for line in lines]

        return [line for line in lines if len(line) > 0]

    def compute_changes(
        self,
        source_text: str,
        target_text: str,
        options: Optional[DiffOptions] = None
    ) -> List[ChangeItem]:
        """
        Full change pipeline for two document texts.

        Splits both texts into blocks, computes the line diff, then applies
        move detection and modification detection when requested.
        """
        options = options or DiffOptions()

        source_lines = self.split_into_blocks(source_text, options)
        target_lines = self.split_into_blocks(target_text, options)
        logger.debug(f"Line counts: source={len(source_lines)}, target={len(target_lines)}")

        changes = self.compute_line_diff(source_lines, target_lines, options)

        if options.detect_moves:
            changes = self.detect_moves(changes, options)

        if options.word_level:
            changes = self.detect_modifications(changes, options)

        return changes

    def compute_line_diff(
        self,
        source_lines: Sequence[str],
        target_lines: Sequence[str],
        options: Optional[DiffOptions] = None
    ) -> List[ChangeItem]:
        """
        Compute the line-level edit script between two line sequences.

        Args:
            source_lines: Non-blank source lines
            target_lines: Non-blank target lines
            options: Normalization for line equality

        Returns:
            Removed and Added changes in edit-script order; matched lines
            produce no entry
        """
        matches = compute_lcs(source_lines, target_lines, options)
        changes: List[ChangeItem] = []

        for tag, i, j in walk_alignment(matches, len(source_lines), len(target_lines)):
            if tag == 'delete':
                text = source_lines[i]
                changes.append(self._create_change(
                    len(changes) + 1, ChangeType.REMOVED, text,
                    significance=self.assess_significance(text, ''),
                    original_text=text,
                    original_position=i
                ))
            elif tag == 'insert':
                text = target_lines[j]
                changes.append(self._create_change(
                    len(changes) + 1, ChangeType.ADDED, text,
                    significance=self.assess_significance('', text),
                    new_text=text,
                    new_position=j
                ))

        return changes

    def detect_moves(
        self,
        changes: List[ChangeItem],
        options: Optional[DiffOptions] = None
    ) -> List[ChangeItem]:
        """
        Pair removed and added lines with identical content into moves.

        Lines are keyed by their normalized text, so a pair is found at any
        distance. Each added line is used at most once, earliest first. The
        move takes the place of the removed line in the list.
        """
        added_by_key = {}
        for idx, change in enumerate(changes):
            if change.change_type == ChangeType.ADDED:
                key = normalize_line(change.new_text or '', options)
                added_by_key.setdefault(key, []).append(idx)

        pairs = {}
        consumed = set()
        for idx, change in enumerate(changes):
            if change.change_type != ChangeType.REMOVED:
                continue
            candidates = added_by_key.get(normalize_line(change.original_text or '', options))
            if candidates:
                added_idx = candidates.pop(0)
                pairs[idx] = added_idx
                consumed.add(added_idx)

        result = []
        for idx, change in enumerate(changes):
            if idx in consumed:
                continue
            if idx in pairs:
                added = changes[pairs[idx]]
                result.append(replace(
                    change,
                    change_type=ChangeType.MOVED,
                    new_text=added.new_text,
                    new_position=added.new_position,
                    significance=self.assess_significance(
                        change.original_text or '', added.new_text or ''
                    )
                ))
            else:
                result.append(change)

        if pairs:
            logger.debug(f"Detected {len(pairs)} moved line(s)")
        return result

    def detect_modifications(
        self,
        changes: List[ChangeItem],
        options: Optional[DiffOptions] = None
    ) -> List[ChangeItem]:
        """
        Merge nearby similar remove/add pairs into modifications.

        For each Removed change the following changes inside the window are
        scanned for an unconsumed Added change whose word-set similarity
        exceeds the threshold. The first such change wins.
        """
        window = self.thresholds.modification_window
        threshold = self.thresholds.modification_similarity
        result = []
        used = set()

        for i, change in enumerate(changes):
            if i in used:
                continue

            if change.change_type == ChangeType.REMOVED:
                for j in range(i + 1, min(i + window, len(changes))):
                    if j in used:
                        continue

                    candidate = changes[j]
                    if candidate.change_type != ChangeType.ADDED:
                        continue

                    original_text = change.original_text or ''
                    new_text = candidate.new_text or ''
                    if calculate_similarity(original_text, new_text) > threshold:
                        original_html, new_html = self._render_modified_html(
                            original_text, new_text
                        )
                        result.append(replace(
                            change,
                            change_type=ChangeType.MODIFIED,
                            new_text=new_text,
                            new_position=candidate.new_position,
                            word_changes=self.compute_word_diff(original_text, new_text, options),
                            significance=self.assess_significance(original_text, new_text),
                            original_html=original_html,
                            new_html=new_html
                        ))
                        used.add(i)
                        used.add(j)
                        break

            if i not in used:
                result.append(change)
                used.add(i)

        return result

    # -------------------------------------------------------------------------
    # Word level
    # -------------------------------------------------------------------------

    def compute_word_diff(
        self,
        source_text: str,
        target_text: str,
        options: Optional[DiffOptions] = None
    ) -> List[WordChange]:
        """
        Word-level diff of two strings.

        Tokenizes on whitespace and runs the same LCS. Unchanged entries
        carry the target's spelling of the word.
        """
        source_words = source_text.split()
        target_words = target_text.split()
        matches = compute_lcs(source_words, target_words, options)

        words: List[WordChange] = []
        for tag, i, j in walk_alignment(matches, len(source_words), len(target_words)):
            if tag == 'delete':
                words.append(WordChange(ChangeType.REMOVED, source_words[i], len(words)))
            elif tag == 'insert':
                words.append(WordChange(ChangeType.ADDED, target_words[j], len(words)))
            else:
                words.append(WordChange(ChangeType.UNCHANGED, target_words[j], len(words)))

        return words

    def assess_significance(self, original_text: str, new_text: str) -> Significance:
        """
        Classify how substantive a change is.

        Cosmetic when only whitespace, punctuation or case differ. Major when
        the share of changed words or the word-count delta crosses its
        threshold. Minor otherwise.
        """
        normalized_original = COSMETIC_CHARS.sub('', original_text).lower()
        normalized_new = COSMETIC_CHARS.sub('', new_text).lower()

        if normalized_original == normalized_new:
            return Significance.COSMETIC

        original_words = original_text.lower().split()
        new_words = new_text.lower().split()
        new_word_set = set(new_words)

        common_words = [w for w in original_words if w in new_word_set]
        total_words = max(len(original_words), len(new_words))
        change_ratio = 1 - (len(common_words) / total_words) if total_words else 0.0

        if (change_ratio > self.thresholds.major_change_ratio
                or abs(len(original_words) - len(new_words)) > self.thresholds.major_word_delta):
            return Significance.MAJOR

        return Significance.MINOR

    # -------------------------------------------------------------------------
    # Side-by-side
    # -------------------------------------------------------------------------

    def align_blocks(
        self,
        left_text: str,
        right_text: str,
        options: Optional[DiffOptions] = None
    ) -> List[AlignedBlock]:
        """
        Align two texts line by line for a side-by-side view.

        Blank lines are kept. Rows are numbered from 1 independently of
        the original line numbers.
        """
        left_lines = (left_text or '').split('\n')
        right_lines = (right_text or '').split('\n')
        matches = compute_lcs(left_lines, right_lines, options)

        blocks: List[AlignedBlock] = []
        for tag, i, j in walk_alignment(matches, len(left_lines), len(right_lines)):
            line_number = len(blocks) + 1
            if tag == 'delete':
                blocks.append(AlignedBlock(
                    line_number=line_number,
                    left_content=left_lines[i],
                    right_content=None,
                    change_type=ChangeType.REMOVED,
                    diff_html={'left': self._generate_removed_html(left_lines[i]), 'right': ''}
                ))
            elif tag == 'insert':
                blocks.append(AlignedBlock(
                    line_number=line_number,
                    left_content=None,
                    right_content=right_lines[j],
                    change_type=ChangeType.ADDED,
                    diff_html={'left': '', 'right': self._generate_added_html(right_lines[j])}
                ))
            else:
                blocks.append(AlignedBlock(
                    line_number=line_number,
                    left_content=left_lines[i],
                    right_content=right_lines[j],
                    change_type=ChangeType.UNCHANGED
                ))

        return blocks

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def detect_block_type(self, content: str) -> BlockType:
        """Detect the block type of a line from its leading markup."""
        if MARKDOWN_HEADING.match(content) or NUMBERED_HEADING.match(content):
            return BlockType.HEADING
        if BULLET_ITEM.match(content) or NUMBERED_ITEM.match(content):
            return BlockType.LIST
        if TABLE_ROW.search(content):
            return BlockType.TABLE
        if MARKDOWN_IMAGE.search(content):
            return BlockType.IMAGE
        return BlockType.PARAGRAPH

    def extract_section_number(self, content: str) -> Optional[str]:
        """Return the leading section number of a line, if any."""
        match = LEADING_NUMBER.match(content)
        return match.group(1) if match else None

    def _create_change(
        self,
        number: int,
        change_type: ChangeType,
        text: str,
        **fields
    ) -> ChangeItem:
        """Create a ChangeItem with id, block type and section number filled in."""
        return ChangeItem(
            id=f"change-{number}",
            change_type=change_type,
            block_type=self.detect_block_type(text),
            section_number=self.extract_section_number(text),
            **fields
        )

    def _render_modified_html(self, old_line: str, new_line: str) -> Tuple[str, str]:
        """
        Render both sides of a modified line with inline highlighting.

        Returns:
            Tuple of (old_html, new_html)
        """
        diffs = self.dmp.diff_main(old_line, new_line)
        self.dmp.diff_cleanupSemantic(diffs)

        old_html_parts = []
        new_html_parts = []

        for op, text in diffs:
            escaped_text = html.escape(text)

            if op == self.dmp.DIFF_EQUAL:
                old_html_parts.append(escaped_text)
                new_html_parts.append(escaped_text)
            elif op == self.dmp.DIFF_DELETE:
                old_html_parts.append(
                    f'<span class="diff-word-removed">{escaped_text}</span>'
                )
            elif op == self.dmp.DIFF_INSERT:
                new_html_parts.append(
                    f'<span class="diff-word-added">{escaped_text}</span>'
                )

        return ''.join(old_html_parts), ''.join(new_html_parts)

    def _generate_added_html(self, text: str) -> str:
        """Generate HTML for an added line."""
        return f'<span class="diff-highlight-added">{html.escape(text)}</span>'

    def _generate_removed_html(self, text: str) -> str:
        """Generate HTML for a removed line."""
        return f'<span class="diff-highlight-removed">{html.escape(text)}</span>'
