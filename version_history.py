#!/usr/bin/env python3
"""
Policy Version History v1.0
===========================
SQLite storage for policy documents, their committed versions, and the
aggregate history of comparisons run between them.

Features:
- Policy documents with live (not yet versioned) content
- Append-only versions with sequential numbering per document
- Word and section counts captured at commit time
- Comparison history records (counts only, no change lists)
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from config_logging import VERSION, NotFoundError, get_config, get_logger
from policy_compare.differ import count_words
from policy_compare.models import (
    ComparisonHistoryRecord,
    PolicyDocument,
    UserIdentity,
    Version,
)
from policy_compare.sections import count_sections
from policy_compare.store import VersionStore

__version__ = VERSION
_logger = get_logger('version_history')

DB_TIMEOUT_SECONDS = 30  # Wait for a concurrent writer's lock


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class VersionHistoryDB(VersionStore):
    """Database for tracking policy versions and comparisons."""

    def __init__(self, db_path: str = None):
        """Initialize the database."""
        if db_path is None:
            db_path = get_config().db_path or str(Path(__file__).parent / "policy_versions.db")

        self.db_path = db_path
        self._init_database()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection."""
        conn = sqlite3.connect(self.db_path, timeout=DB_TIMEOUT_SECONDS)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_database(self):
        """Initialize database tables."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()

            # Documents table - live content of each policy
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS policy_documents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    content TEXT DEFAULT '',
                    description TEXT DEFAULT '',
                    status TEXT DEFAULT 'Draft',
                    effective_date TEXT,
                    modified_date TEXT
                )
            ''')

            # Versions table - immutable snapshots
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS policy_versions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    document_id INTEGER NOT NULL,
                    version TEXT NOT NULL,
                    version_number INTEGER NOT NULL,
                    title TEXT,
                    content TEXT DEFAULT '',
                    content_html TEXT,
                    summary TEXT,
                    effective_date TEXT,
                    created_date TEXT,
                    created_by_id INTEGER,
                    created_by_name TEXT,
                    change_notes TEXT,
                    status TEXT,
                    word_count INTEGER,
                    section_count INTEGER,
                    FOREIGN KEY (document_id) REFERENCES policy_documents(id),
                    UNIQUE(document_id, version_number)
                )
            ''')

            # Comparison history - aggregate counts only
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS comparison_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    document_id INTEGER NOT NULL,
                    source_version_id INTEGER,
                    target_version_id INTEGER,
                    title TEXT,
                    total_changes INTEGER DEFAULT 0,
                    additions INTEGER DEFAULT 0,
                    deletions INTEGER DEFAULT 0,
                    modifications INTEGER DEFAULT 0,
                    word_count_change INTEGER DEFAULT 0,
                    percentage_changed INTEGER DEFAULT 0,
                    compared_by_id INTEGER,
                    compared_by_name TEXT,
                    compared_date TEXT
                )
            ''')

            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_versions_document
                ON policy_versions(document_id, version_number)
            ''')
            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_history_document
                ON comparison_history(document_id, compared_date)
            ''')

            conn.commit()
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def create_document(self, title: str, content: str = "", description: str = "",
                        status: str = "Draft", effective_date: str = None) -> PolicyDocument:
        """Create a policy document."""
        modified = _now()
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO policy_documents
                    (title, content, description, status, effective_date, modified_date)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (title, content, description, status, effective_date, modified))
            conn.commit()
            document_id = cursor.lastrowid
        finally:
            conn.close()

        _logger.info(f"Created document {document_id}: {title}")
        return PolicyDocument(
            id=document_id,
            title=title,
            content=content,
            description=description,
            status=status,
            effective_date=effective_date,
            modified_date=modified
        )

    def get_document(self, document_id: int) -> Optional[PolicyDocument]:
        """Get document by ID."""
        conn = self._get_connection()
        try:
            row = conn.execute(
                'SELECT * FROM policy_documents WHERE id = ?', (document_id,)
            ).fetchone()
        finally:
            conn.close()

        if not row:
            return None

        return PolicyDocument(
            id=row['id'],
            title=row['title'],
            content=row['content'] or '',
            description=row['description'] or '',
            status=row['status'] or 'Draft',
            effective_date=row['effective_date'],
            modified_date=row['modified_date'] or ''
        )

    def update_document_content(self, document_id: int, content: str) -> bool:
        """Replace the live content of a document. Returns False if it does not exist."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute('''
                UPDATE policy_documents SET content = ?, modified_date = ?
                WHERE id = ?
            ''', (content, _now(), document_id))
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    # -------------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------------

    def get_version(self, version_id: int) -> Optional[Version]:
        """Get a single version by ID."""
        conn = self._get_connection()
        try:
            row = conn.execute(
                'SELECT * FROM policy_versions WHERE id = ?', (version_id,)
            ).fetchone()
        finally:
            conn.close()

        return self._row_to_version(row) if row else None

    def get_versions_for_document(self, document_id: int, limit: int = 100) -> List[Version]:
        """Get versions of a document, newest first."""
        conn = self._get_connection()
        try:
            rows = conn.execute('''
                SELECT * FROM policy_versions
                WHERE document_id = ?
                ORDER BY version_number DESC
                LIMIT ?
            ''', (document_id, limit)).fetchall()
        finally:
            conn.close()

        return [self._row_to_version(row) for row in rows]

    def create_version(
        self,
        document_id: int,
        content: str,
        change_notes: Optional[str] = None,
        created_by: Optional[UserIdentity] = None
    ) -> Version:
        """
        Commit content as the next version of a document.

        Summary, effective date and status are copied from the document.

        Raises:
            NotFoundError: If the document does not exist
        """
        document = self.get_document(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found",
                                resource='document', resource_id=document_id)

        created_by = created_by or UserIdentity(None, 'unknown')
        created_date = _now()

        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            # Hold the write lock from reading the max number through the insert
            cursor.execute('BEGIN IMMEDIATE')
            cursor.execute(
                'SELECT MAX(version_number) FROM policy_versions WHERE document_id = ?',
                (document_id,)
            )
            current_max = cursor.fetchone()[0]
            version_number = (current_max or 0) + 1

            values = {
                'document_id': document_id,
                'version': f"{version_number}.0",
                'version_number': version_number,
                'title': f"{document.title} - v{version_number}",
                'content': content,
                'summary': document.description,
                'effective_date': document.effective_date,
                'created_date': created_date,
                'created_by_id': created_by.id,
                'created_by_name': created_by.name,
                'change_notes': change_notes,
                'status': document.status,
                'word_count': count_words(content),
                'section_count': count_sections(content),
            }
            columns = ', '.join(values)
            placeholders = ', '.join('?' for _ in values)
            cursor.execute(
                f'INSERT INTO policy_versions ({columns}) VALUES ({placeholders})',
                tuple(values.values())
            )
            conn.commit()
            version_id = cursor.lastrowid
        finally:
            conn.close()

        _logger.info(f"Created version {version_number} for document {document_id}")
        return Version(id=version_id, **values)

    # -------------------------------------------------------------------------
    # Comparison history
    # -------------------------------------------------------------------------

    def save_comparison_history(self, record: ComparisonHistoryRecord) -> int:
        """Persist an aggregate comparison record."""
        conn = self._get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO comparison_history
                    (document_id, source_version_id, target_version_id, title,
                     total_changes, additions, deletions, modifications,
                     word_count_change, percentage_changed,
                     compared_by_id, compared_by_name, compared_date)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                record.document_id, record.source_version_id, record.target_version_id,
                record.title, record.total_changes, record.additions, record.deletions,
                record.modifications, record.word_count_change, record.percentage_changed,
                record.compared_by_id, record.compared_by_name,
                record.compared_date or _now()
            ))
            conn.commit()
            return cursor.lastrowid
        finally:
            conn.close()

    def get_comparison_history(self, document_id: int, limit: int = 50) -> List[ComparisonHistoryRecord]:
        """Get comparison records for a document, newest first."""
        conn = self._get_connection()
        try:
            rows = conn.execute('''
                SELECT * FROM comparison_history
                WHERE document_id = ?
                ORDER BY compared_date DESC, id DESC
                LIMIT ?
            ''', (document_id, limit)).fetchall()
        finally:
            conn.close()

        return [ComparisonHistoryRecord(
            id=row['id'],
            document_id=row['document_id'],
            source_version_id=row['source_version_id'],
            target_version_id=row['target_version_id'],
            title=row['title'] or '',
            total_changes=row['total_changes'] or 0,
            additions=row['additions'] or 0,
            deletions=row['deletions'] or 0,
            modifications=row['modifications'] or 0,
            word_count_change=row['word_count_change'] or 0,
            percentage_changed=row['percentage_changed'] or 0,
            compared_by_id=row['compared_by_id'],
            compared_by_name=row['compared_by_name'] or '',
            compared_date=row['compared_date'] or ''
        ) for row in rows]

    def _row_to_version(self, row: sqlite3.Row) -> Version:
        return Version(
            id=row['id'],
            document_id=row['document_id'],
            version=row['version'],
            version_number=row['version_number'],
            title=row['title'] or '',
            content=row['content'] or '',
            content_html=row['content_html'],
            summary=row['summary'],
            effective_date=row['effective_date'],
            created_date=row['created_date'] or '',
            created_by_id=row['created_by_id'],
            created_by_name=row['created_by_name'] or '',
            change_notes=row['change_notes'],
            status=row['status'] or '',
            word_count=row['word_count'],
            section_count=row['section_count']
        )
