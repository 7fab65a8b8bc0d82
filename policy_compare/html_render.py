"""
Diff HTML Rendering
===================
Markup helpers for unified, side-by-side and inline word diffs.
All document text is escaped.
"""

import html
from typing import List

from .models import ChangeType, ComparisonResult, SideBySideView, WordChange


def highlight_added(text: str) -> str:
    """Wrap text as an added span."""
    return f'<span class="diff-highlight-added">{html.escape(text)}</span>'


def highlight_removed(text: str) -> str:
    """Wrap text as a removed span."""
    return f'<span class="diff-highlight-removed">{html.escape(text)}</span>'


def generate_unified_diff_html(comparison: ComparisonResult) -> str:
    """
    Render a comparison as a unified diff.

    Modified and moved lines show the removed line followed by the added
    one; modified lines use their inline-highlighted HTML when present.
    """
    parts = [
        '<div class="diff-unified">',
        '<div class="diff-header">',
        f'<span class="version-old">- {html.escape(comparison.source_version.version)}</span>',
        f'<span class="version-new">+ {html.escape(comparison.target_version.version)}</span>',
        '</div>',
        '<div class="diff-content">',
    ]

    for change in comparison.changes:
        old_line = change.original_html or html.escape(change.original_text or '')
        new_line = change.new_html or html.escape(change.new_text or '')

        if change.change_type == ChangeType.REMOVED:
            parts.append(f'<div class="diff-line diff-removed">- {old_line}</div>')
        elif change.change_type == ChangeType.ADDED:
            parts.append(f'<div class="diff-line diff-added">+ {new_line}</div>')
        elif change.change_type in (ChangeType.MODIFIED, ChangeType.MOVED):
            css = 'diff-moved' if change.change_type == ChangeType.MOVED else ''
            parts.append(f'<div class="diff-line diff-removed {css}">- {old_line}</div>')
            parts.append(f'<div class="diff-line diff-added {css}">+ {new_line}</div>')

    parts.append('</div></div>')
    return '\n'.join(parts)


def generate_side_by_side_html(view: SideBySideView) -> str:
    """Render aligned blocks as a two-column table of rows."""
    parts = [
        '<div class="diff-sidebyside">',
        '<div class="diff-header">',
        f'<div class="diff-col-header">{html.escape(view.left_version.version)}</div>',
        f'<div class="diff-col-header">{html.escape(view.right_version.version)}</div>',
        '</div>',
        '<div class="diff-content">',
    ]

    for block in view.aligned_blocks:
        left_class = 'diff-removed' if block.change_type == ChangeType.REMOVED else ''
        right_class = 'diff-added' if block.change_type == ChangeType.ADDED else ''
        diff_html = block.diff_html or {}
        left = diff_html.get('left') or html.escape(block.left_content or '')
        right = diff_html.get('right') or html.escape(block.right_content or '')

        parts.append(
            '<div class="diff-row">'
            f'<div class="diff-line-number">{block.line_number}</div>'
            f'<div class="diff-left {left_class}">{left}</div>'
            f'<div class="diff-right {right_class}">{right}</div>'
            '</div>'
        )

    parts.append('</div></div>')
    return '\n'.join(parts)


def generate_inline_diff_html(word_changes: List[WordChange]) -> str:
    """Render a word diff inline with <del>/<ins> markup."""
    tokens = []
    for change in word_changes:
        text = html.escape(change.text)
        if change.change_type == ChangeType.REMOVED:
            tokens.append(f'<del class="diff-word-removed">{text}</del>')
        elif change.change_type == ChangeType.ADDED:
            tokens.append(f'<ins class="diff-word-added">{text}</ins>')
        else:
            tokens.append(text)
    return ' '.join(tokens)
