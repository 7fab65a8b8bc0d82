"""
Policy Comparison Module v1.0.0
===============================
Version comparison for policy documents.

Features:
- LCS line diff with Added/Removed/Modified/Moved classification
- Word-level diff of modified lines
- Major/Minor/Cosmetic significance of each change
- Section-aware comparison of numbered documents
- Side-by-side alignment and HTML rendering helpers
- Comparison history recorded per document
"""

from .routes import init_policy_compare, pc_blueprint
from .differ import DocumentDiffer
from .sections import SectionAnalyzer
from .service import PolicyComparisonService
from .store import VersionStore
from .models import (
    AlignedBlock,
    ChangeItem,
    ChangeType,
    BlockType,
    ComparisonResult,
    DiffOptions,
    SectionComparison,
    Significance,
    Version,
    WordChange
)

__version__ = "1.0.0"
__all__ = [
    'pc_blueprint',
    'init_policy_compare',
    'DocumentDiffer',
    'SectionAnalyzer',
    'PolicyComparisonService',
    'VersionStore',
    'AlignedBlock',
    'ChangeItem',
    'ChangeType',
    'BlockType',
    'ComparisonResult',
    'DiffOptions',
    'SectionComparison',
    'Significance',
    'Version',
    'WordChange'
]
