"""
Section Analyzer v1.0.0
=======================
Splits policy text into numbered sections and matches them across
versions so changes can be reported per section.

Recognized headings:
- Outline numbers followed by a title: "1. Purpose", "2.1 Scope"
- Explicit markers: "Section 3: Enforcement"

Text before the first heading belongs to no section and is not compared.
"""

import re
from typing import List, Optional, Tuple

from config_logging import get_logger
from .differ import DocumentDiffer, calculate_similarity
from .models import ChangeType, DiffOptions, Section, SectionComparison

logger = get_logger('policy_compare.sections')

SECTION_HEADING = re.compile(r'^((?:\d+\.)+\d*|Section\s+\d+:?)[ \t]*(\S.*?)\s*$')


def normalize_section_number(marker: str) -> str:
    """Reduce a heading marker to its bare number ("1." -> "1", "Section 3:" -> "3")."""
    marker = marker.strip()
    if marker.startswith('Section'):
        marker = marker[len('Section'):]
    return marker.replace(':', '').strip().rstrip('.')


def section_sort_key(number: str) -> Tuple[int, ...]:
    """Numeric ordering key so that "2" sorts before "10"."""
    return tuple(int(part) for part in number.split('.') if part.isdigit())


def count_sections(content: str) -> int:
    """Count heading lines in a document."""
    return sum(1 for line in (content or '').split('\n') if SECTION_HEADING.match(line))


class SectionAnalyzer:
    """Parses and compares document sections."""

    def __init__(self, differ: Optional[DocumentDiffer] = None):
        self.differ = differ or DocumentDiffer()

    @property
    def title_threshold(self) -> float:
        return self.differ.thresholds.section_title_similarity

    def parse_sections(self, content: str) -> List[Section]:
        """
        Parse content into sections.

        Args:
            content: Document text

        Returns:
            Sections in document order; empty when no heading is found
        """
        sections: List[Section] = []
        current: Optional[Section] = None
        body: List[str] = []

        for line in (content or '').split('\n'):
            match = SECTION_HEADING.match(line)
            if match:
                if current is not None:
                    current.content = '\n'.join(body).strip()
                    sections.append(current)
                current = Section(
                    number=normalize_section_number(match.group(1)),
                    title=match.group(2).strip()
                )
                body = []
            elif current is not None:
                body.append(line)

        if current is not None:
            current.content = '\n'.join(body).strip()
            sections.append(current)

        return sections

    def compare_sections(
        self,
        source_text: str,
        target_text: str,
        options: Optional[DiffOptions] = None
    ) -> List[SectionComparison]:
        """
        Match sections across two texts and diff each matched pair.

        A target section matches when it has the same number or a title
        similar enough to the source title; each target is claimed once.
        Unmatched source sections are Removed, unclaimed target sections
        are Added.

        Returns:
            Section comparisons in numeric section order
        """
        source_sections = self.parse_sections(source_text)
        target_sections = self.parse_sections(target_text)

        comparisons: List[SectionComparison] = []
        claimed = set()

        for source in source_sections:
            match_idx = self._find_match(source, target_sections, claimed)

            if match_idx is None:
                comparisons.append(SectionComparison(
                    section_number=source.number,
                    section_title=source.title,
                    status=ChangeType.REMOVED,
                    original_content=source.content
                ))
                continue

            claimed.add(match_idx)
            target = target_sections[match_idx]
            changes = self.differ.compute_changes(source.content, target.content, options)
            for change in changes:
                change.section_number = source.number
                change.section_title = source.title

            comparisons.append(SectionComparison(
                section_number=source.number,
                section_title=source.title,
                status=ChangeType.MODIFIED if changes else ChangeType.UNCHANGED,
                original_content=source.content,
                new_content=target.content,
                changes=changes
            ))

        for idx, target in enumerate(target_sections):
            if idx not in claimed:
                comparisons.append(SectionComparison(
                    section_number=target.number,
                    section_title=target.title,
                    status=ChangeType.ADDED,
                    new_content=target.content
                ))

        logger.debug(
            f"Compared sections: source={len(source_sections)}, "
            f"target={len(target_sections)}, matched={len(claimed)}"
        )

        return sorted(comparisons, key=lambda c: section_sort_key(c.section_number))

    def _find_match(
        self,
        source: Section,
        targets: List[Section],
        claimed: set
    ) -> Optional[int]:
        for idx, target in enumerate(targets):
            if idx in claimed:
                continue
            if (target.number == source.number
                    or calculate_similarity(target.title, source.title) > self.title_threshold):
                return idx
        return None
