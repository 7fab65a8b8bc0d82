"""
Policy Comparison Service v1.0.0
================================
Entry point tying together version retrieval, line and section diffs,
summary statistics and comparison history.
"""

import math
import os
from datetime import datetime, timezone
from typing import Callable, List, Optional

from config_logging import (
    AppConfig,
    NotFoundError,
    ValidationError,
    get_config,
    get_logger,
)
from .differ import DocumentDiffer, count_words
from .models import (
    ChangeItem,
    ChangeType,
    ComparisonHistoryRecord,
    ComparisonResult,
    ComparisonSummary,
    DiffOptions,
    Significance,
    SideBySideView,
    UserIdentity,
    Version,
)
from .sections import SectionAnalyzer, count_sections
from .store import VersionStore

logger = get_logger('policy_compare.service')

IdentityProvider = Callable[[], UserIdentity]


def default_identity() -> UserIdentity:
    """Identity of the OS user running the process."""
    return UserIdentity(None, os.environ.get('USERNAME', os.environ.get('USER', 'unknown')))


class PolicyComparisonService:
    """
    Compares policy versions held in a version store.

    Each call is independent: versions are immutable and the differ keeps
    no per-call state, so one service may serve concurrent requests.
    """

    def __init__(
        self,
        store: VersionStore,
        identity_provider: Optional[IdentityProvider] = None,
        config: Optional[AppConfig] = None,
        differ: Optional[DocumentDiffer] = None,
        analyzer: Optional[SectionAnalyzer] = None
    ):
        self.store = store
        self.identity_provider = identity_provider or default_identity
        self.config = config or get_config()
        self.differ = differ or DocumentDiffer(self.config.diff_thresholds())
        self.analyzer = analyzer or SectionAnalyzer(self.differ)

    # -------------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------------

    def get_document_versions(self, document_id: int) -> List[Version]:
        """Get versions of a document, newest first."""
        return self.store.get_versions_for_document(document_id)

    def create_version(self, document_id: int, content: str,
                       change_notes: Optional[str] = None) -> Version:
        """Commit content as the document's next version, stamped with the current user."""
        return self.store.create_version(
            document_id, content, change_notes, created_by=self.identity_provider()
        )

    def get_comparison_history(self, document_id: int) -> List[ComparisonHistoryRecord]:
        """Get past comparisons for a document, newest first."""
        return self.store.get_comparison_history(document_id)

    # -------------------------------------------------------------------------
    # Comparison
    # -------------------------------------------------------------------------

    def compare_versions(
        self,
        source_version_id: int,
        target_version_id: int,
        options: Optional[DiffOptions] = None
    ) -> ComparisonResult:
        """
        Compare two committed versions.

        The result is recorded in comparison history; a failure to record
        it is logged and does not affect the returned result.

        Raises:
            NotFoundError: If either version does not exist
            ValidationError: If a version exceeds the line ceiling
        """
        source = self._require_version(source_version_id)
        target = self._require_version(target_version_id)

        with logger.log_operation('compare_versions',
                                  source_version_id=source_version_id,
                                  target_version_id=target_version_id):
            result = self._compare(source, target, options)

        self._save_history(result)
        return result

    def compare_with_version(
        self,
        document_id: int,
        previous_version_id: int,
        options: Optional[DiffOptions] = None
    ) -> ComparisonResult:
        """
        Preview the document's live content against a committed version.

        The live content is wrapped in an ephemeral version with no id.
        Nothing is recorded in history.

        Raises:
            NotFoundError: If the document or the version does not exist
        """
        document = self.store.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found",
                                resource='document', resource_id=document_id)

        previous = self._require_version(previous_version_id)
        identity = self.identity_provider()

        current = Version(
            id=None,
            document_id=document.id,
            version='Current',
            version_number=0,
            title=document.title,
            content=document.content,
            summary=document.description,
            effective_date=document.effective_date,
            created_date=datetime.now(timezone.utc).isoformat(),
            created_by_id=identity.id,
            created_by_name=identity.name,
            status=document.status,
            word_count=count_words(document.content),
            section_count=count_sections(document.content)
        )

        with logger.log_operation('compare_with_version',
                                  document_id=document_id,
                                  previous_version_id=previous_version_id):
            return self._compare(previous, current, options, identity)

    def get_side_by_side_view(
        self,
        left_version_id: int,
        right_version_id: int,
        options: Optional[DiffOptions] = None
    ) -> SideBySideView:
        """
        Align two versions line by line.

        Raises:
            NotFoundError: If either version does not exist
        """
        left = self._require_version(left_version_id)
        right = self._require_version(right_version_id)
        self._check_size(left)
        self._check_size(right)

        blocks = self.differ.align_blocks(left.content, right.content, options or DiffOptions())
        return SideBySideView(left_version=left, right_version=right, aligned_blocks=blocks)

    def compute_summary(
        self,
        changes: List[ChangeItem],
        source: Version,
        target: Version
    ) -> ComparisonSummary:
        """
        Compute aggregate statistics.

        The percentage is changes per source line (blank lines included),
        so it can exceed 100 when few long lines replace many short ones.
        """
        source_words = source.word_count if source.word_count is not None else count_words(source.content)
        target_words = target.word_count if target.word_count is not None else count_words(target.content)

        total_source_lines = len(source.content.split('\n'))
        percentage = math.floor(100 * len(changes) / total_source_lines + 0.5) if total_source_lines else 0

        return ComparisonSummary(
            total_changes=len(changes),
            additions=sum(1 for c in changes if c.change_type == ChangeType.ADDED),
            deletions=sum(1 for c in changes if c.change_type == ChangeType.REMOVED),
            modifications=sum(1 for c in changes if c.change_type == ChangeType.MODIFIED),
            moves=sum(1 for c in changes if c.change_type == ChangeType.MOVED),
            major_changes=sum(1 for c in changes if c.significance == Significance.MAJOR),
            minor_changes=sum(1 for c in changes if c.significance == Significance.MINOR),
            cosmetic_changes=sum(1 for c in changes if c.significance == Significance.COSMETIC),
            word_count_change=target_words - source_words,
            percentage_changed=percentage
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _compare(
        self,
        source: Version,
        target: Version,
        options: Optional[DiffOptions],
        identity: Optional[UserIdentity] = None
    ) -> ComparisonResult:
        options = options or DiffOptions()
        self._check_size(source)
        self._check_size(target)

        changes = self.differ.compute_changes(source.content, target.content, options)
        sections = self.analyzer.compare_sections(source.content, target.content, options)
        summary = self.compute_summary(changes, source, target)
        identity = identity or self.identity_provider()

        logger.info(
            f"Compared {source.version} -> {target.version}: {summary.total_changes} changes "
            f"(+{summary.additions}, -{summary.deletions}, ~{summary.modifications})"
        )

        return ComparisonResult(
            source_version=source,
            target_version=target,
            summary=summary,
            changes=changes,
            section_comparisons=sections,
            compared_date=datetime.now(timezone.utc).isoformat(),
            compared_by_id=identity.id,
            compared_by_name=identity.name
        )

    def _require_version(self, version_id: int) -> Version:
        version = self.store.get_version(version_id)
        if version is None:
            logger.warning(f"Version {version_id} not found")
            raise NotFoundError(f"Version {version_id} not found",
                                resource='version', resource_id=version_id)
        return version

    def _check_size(self, version: Version):
        line_count = len(version.content.split('\n'))
        if line_count > self.config.max_document_lines:
            raise ValidationError(
                f"Version {version.version} has {line_count} lines; "
                f"the limit is {self.config.max_document_lines}",
                field='content'
            )

    def _save_history(self, result: ComparisonResult):
        """Record a comparison; failures are logged and suppressed."""
        try:
            self.store.save_comparison_history(ComparisonHistoryRecord.from_result(result))
        except Exception as e:
            logger.warning(f"Failed to save comparison history: {e}")
