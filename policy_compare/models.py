"""
Policy Comparison Models v1.0.0
===============================
Data classes for policy versions and comparison results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional, Any


class ChangeType(Enum):
    """Kind of difference between two versions."""
    ADDED = "Added"
    REMOVED = "Removed"
    MODIFIED = "Modified"
    MOVED = "Moved"
    UNCHANGED = "Unchanged"


class BlockType(Enum):
    """Content block classification of a changed line."""
    PARAGRAPH = "Paragraph"
    HEADING = "Heading"
    LIST = "List"
    TABLE = "Table"
    IMAGE = "Image"
    SECTION = "Section"


class Significance(Enum):
    """How substantive a single change is."""
    MAJOR = "Major"
    MINOR = "Minor"
    COSMETIC = "Cosmetic"


@dataclass
class DiffOptions:
    """
    Options controlling a comparison.

    Attributes:
        ignore_whitespace: Collapse whitespace runs before comparing lines
        ignore_case: Compare lines case-insensitively
        word_level: Merge similar remove/add pairs into modifications
        detect_moves: Pair identical removed/added lines into moves
    """
    ignore_whitespace: bool = False
    ignore_case: bool = False
    word_level: bool = False
    detect_moves: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'DiffOptions':
        """Build options from a request payload, ignoring unknown keys."""
        data = data or {}
        return cls(
            ignore_whitespace=bool(data.get('ignore_whitespace', False)),
            ignore_case=bool(data.get('ignore_case', False)),
            word_level=bool(data.get('word_level', False)),
            detect_moves=bool(data.get('detect_moves', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ignore_whitespace': self.ignore_whitespace,
            'ignore_case': self.ignore_case,
            'word_level': self.word_level,
            'detect_moves': self.detect_moves
        }


@dataclass(frozen=True)
class DiffThresholds:
    """Tunable heuristics of the diff engine."""
    modification_similarity: float = 0.5   # Jaccard needed to pair remove/add
    modification_window: int = 5           # Removed item plus 4 following changes
    major_change_ratio: float = 0.3
    major_word_delta: int = 10
    section_title_similarity: float = 0.8


@dataclass(frozen=True)
class UserIdentity:
    """The user performing an operation."""
    id: Optional[int]
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name}


@dataclass
class PolicyDocument:
    """A policy document and its current, not yet versioned, content."""
    id: int
    title: str
    content: str = ""
    description: str = ""
    status: str = "Draft"
    effective_date: Optional[str] = None
    modified_date: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'description': self.description,
            'status': self.status,
            'effective_date': self.effective_date,
            'modified_date': self.modified_date
        }


@dataclass(frozen=True)
class Version:
    """
    Immutable snapshot of a document's text.

    The ephemeral "current" version built for previews has id None and
    version_number 0.
    """
    id: Optional[int]
    document_id: int
    version: str
    version_number: int
    title: str
    content: str
    content_html: Optional[str] = None
    summary: Optional[str] = None
    effective_date: Optional[str] = None
    created_date: str = ""
    created_by_id: Optional[int] = None
    created_by_name: str = ""
    change_notes: Optional[str] = None
    status: str = ""
    word_count: Optional[int] = None
    section_count: Optional[int] = None

    def to_dict(self, include_content: bool = True) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            'id': self.id,
            'document_id': self.document_id,
            'version': self.version,
            'version_number': self.version_number,
            'title': self.title,
            'summary': self.summary,
            'effective_date': self.effective_date,
            'created_date': self.created_date,
            'created_by_id': self.created_by_id,
            'created_by_name': self.created_by_name,
            'change_notes': self.change_notes,
            'status': self.status,
            'word_count': self.word_count,
            'section_count': self.section_count
        }
        if include_content:
            data['content'] = self.content
            data['content_html'] = self.content_html
        return data


@dataclass
class WordChange:
    """A single token of a word-level diff."""
    change_type: ChangeType  # ADDED, REMOVED or UNCHANGED
    text: str
    position: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.change_type.value,
            'text': self.text,
            'position': self.position
        }


@dataclass
class ChangeItem:
    """
    One detected difference between a source and target version.

    Added items carry only the new_* fields, Removed items only the
    original_* fields. Modified and Moved items carry both; Modified items
    also carry the word-level diff between the two texts.

    Attributes:
        id: Sequential identifier within a comparison ("change-1", ...)
        change_type: Kind of change
        block_type: Detected block type of the line
        significance: Major, Minor or Cosmetic
        section_number: Leading section number of the line, or the
            enclosing section for section-level comparisons
        section_title: Enclosing section title for section-level comparisons
        original_text: Source line (Removed/Modified/Moved)
        original_html: Rendered source side of a modification
        original_position: Index in the source's non-blank lines
        new_text: Target line (Added/Modified/Moved)
        new_html: Rendered target side of a modification
        new_position: Index in the target's non-blank lines
        word_changes: Word-level diff for modifications
        category: Optional free-form category
    """
    id: str
    change_type: ChangeType
    block_type: BlockType
    significance: Significance
    section_number: Optional[str] = None
    section_title: Optional[str] = None
    original_text: Optional[str] = None
    original_html: Optional[str] = None
    original_position: Optional[int] = None
    new_text: Optional[str] = None
    new_html: Optional[str] = None
    new_position: Optional[int] = None
    word_changes: List[WordChange] = field(default_factory=list)
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'type': self.change_type.value,
            'block_type': self.block_type.value,
            'significance': self.significance.value,
            'section_number': self.section_number,
            'section_title': self.section_title,
            'original_text': self.original_text,
            'original_html': self.original_html,
            'original_position': self.original_position,
            'new_text': self.new_text,
            'new_html': self.new_html,
            'new_position': self.new_position,
            'word_changes': [w.to_dict() for w in self.word_changes],
            'category': self.category
        }


@dataclass
class Section:
    """A numbered or labelled section of a document."""
    number: str
    title: str
    content: str = ""


@dataclass
class SectionComparison:
    """
    Result of matching one section across two versions.

    An Unchanged section has no changes. Added sections have no original
    content and Removed sections have no new content.
    """
    section_number: str
    section_title: str
    status: ChangeType
    original_content: Optional[str] = None
    new_content: Optional[str] = None
    changes: List[ChangeItem] = field(default_factory=list)
    sub_sections: List['SectionComparison'] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'section_number': self.section_number,
            'section_title': self.section_title,
            'status': self.status.value,
            'original_content': self.original_content,
            'new_content': self.new_content,
            'changes': [c.to_dict() for c in self.changes],
            'sub_sections': [s.to_dict() for s in self.sub_sections]
        }


@dataclass
class ComparisonSummary:
    """Aggregate statistics of a comparison."""
    total_changes: int = 0
    additions: int = 0
    deletions: int = 0
    modifications: int = 0
    moves: int = 0
    major_changes: int = 0
    minor_changes: int = 0
    cosmetic_changes: int = 0
    word_count_change: int = 0
    percentage_changed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'total_changes': self.total_changes,
            'additions': self.additions,
            'deletions': self.deletions,
            'modifications': self.modifications,
            'moves': self.moves,
            'major_changes': self.major_changes,
            'minor_changes': self.minor_changes,
            'cosmetic_changes': self.cosmetic_changes,
            'word_count_change': self.word_count_change,
            'percentage_changed': self.percentage_changed
        }


@dataclass
class ComparisonResult:
    """Complete result of comparing two versions."""
    source_version: Version
    target_version: Version
    summary: ComparisonSummary
    changes: List[ChangeItem] = field(default_factory=list)
    section_comparisons: List[SectionComparison] = field(default_factory=list)
    compared_date: str = ""
    compared_by_id: Optional[int] = None
    compared_by_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'source_version': self.source_version.to_dict(include_content=False),
            'target_version': self.target_version.to_dict(include_content=False),
            'summary': self.summary.to_dict(),
            'changes': [c.to_dict() for c in self.changes],
            'section_comparisons': [s.to_dict() for s in self.section_comparisons],
            'compared_date': self.compared_date,
            'compared_by_id': self.compared_by_id,
            'compared_by_name': self.compared_by_name
        }


@dataclass
class AlignedBlock:
    """
    One row of the side-by-side view.

    Added rows have no left content, Removed rows have no right content,
    Unchanged rows have both.
    """
    line_number: int
    left_content: Optional[str]
    right_content: Optional[str]
    change_type: ChangeType
    diff_html: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'line_number': self.line_number,
            'left_content': self.left_content,
            'right_content': self.right_content,
            'change_type': self.change_type.value,
            'diff_html': self.diff_html
        }


@dataclass
class SideBySideView:
    """Two versions and their aligned rows."""
    left_version: Version
    right_version: Version
    aligned_blocks: List[AlignedBlock] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'left_version': self.left_version.to_dict(include_content=False),
            'right_version': self.right_version.to_dict(include_content=False),
            'aligned_blocks': [b.to_dict() for b in self.aligned_blocks]
        }


@dataclass
class ComparisonHistoryRecord:
    """Aggregate-only record of a comparison run."""
    document_id: int
    source_version_id: Optional[int]
    target_version_id: Optional[int]
    title: str = ""
    total_changes: int = 0
    additions: int = 0
    deletions: int = 0
    modifications: int = 0
    word_count_change: int = 0
    percentage_changed: int = 0
    compared_by_id: Optional[int] = None
    compared_by_name: str = ""
    compared_date: str = ""
    id: Optional[int] = None

    @classmethod
    def from_result(cls, result: ComparisonResult) -> 'ComparisonHistoryRecord':
        source = result.source_version
        target = result.target_version
        summary = result.summary
        return cls(
            document_id=source.document_id,
            source_version_id=source.id,
            target_version_id=target.id,
            title=f"{source.title} v{source.version} vs v{target.version}",
            total_changes=summary.total_changes,
            additions=summary.additions,
            deletions=summary.deletions,
            modifications=summary.modifications,
            word_count_change=summary.word_count_change,
            percentage_changed=summary.percentage_changed,
            compared_by_id=result.compared_by_id,
            compared_by_name=result.compared_by_name,
            compared_date=result.compared_date
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'document_id': self.document_id,
            'source_version_id': self.source_version_id,
            'target_version_id': self.target_version_id,
            'title': self.title,
            'total_changes': self.total_changes,
            'additions': self.additions,
            'deletions': self.deletions,
            'modifications': self.modifications,
            'word_count_change': self.word_count_change,
            'percentage_changed': self.percentage_changed,
            'compared_by_id': self.compared_by_id,
            'compared_by_name': self.compared_by_name,
            'compared_date': self.compared_date
        }
