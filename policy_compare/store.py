"""
Version Store Contract
======================
Interface the comparison service needs from version storage.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import ComparisonHistoryRecord, PolicyDocument, UserIdentity, Version


class VersionStore(ABC):
    """
    Append-only store of document versions and comparison history.

    Implementations map their own storage rows to the typed models; the
    comparison service never sees raw rows.
    """

    @abstractmethod
    def get_document(self, document_id: int) -> Optional[PolicyDocument]:
        """Return the document with its live content, or None."""

    @abstractmethod
    def get_version(self, version_id: int) -> Optional[Version]:
        """Return a version, or None if it does not exist."""

    @abstractmethod
    def get_versions_for_document(self, document_id: int, limit: int = 100) -> List[Version]:
        """Return the versions of a document, newest first."""

    @abstractmethod
    def create_version(
        self,
        document_id: int,
        content: str,
        change_notes: Optional[str] = None,
        created_by: Optional[UserIdentity] = None
    ) -> Version:
        """Commit content as the document's next sequential version."""

    @abstractmethod
    def save_comparison_history(self, record: ComparisonHistoryRecord) -> int:
        """Persist an aggregate comparison record and return its id."""

    @abstractmethod
    def get_comparison_history(self, document_id: int, limit: int = 50) -> List[ComparisonHistoryRecord]:
        """Return comparison records for a document, newest first."""
