"""
Tests for diff HTML rendering
=============================
"""

from policy_compare.differ import DocumentDiffer
from policy_compare.html_render import (
    generate_inline_diff_html,
    generate_side_by_side_html,
    generate_unified_diff_html,
    highlight_added,
    highlight_removed,
)
from policy_compare.models import (
    ChangeType,
    ComparisonResult,
    ComparisonSummary,
    DiffOptions,
    SideBySideView,
    Version,
    WordChange,
)


def _version(version_id, label, content):
    return Version(id=version_id, document_id=1, version=label,
                   version_number=version_id, title="Doc", content=content)


def test_highlight_escapes_text():
    assert highlight_added("a < b") == '<span class="diff-highlight-added">a &lt; b</span>'
    assert highlight_removed("&") == '<span class="diff-highlight-removed">&amp;</span>'


def test_inline_diff():
    words = [
        WordChange(ChangeType.UNCHANGED, "Staff", 0),
        WordChange(ChangeType.REMOVED, "<may>", 1),
        WordChange(ChangeType.ADDED, "must", 2),
        WordChange(ChangeType.UNCHANGED, "comply", 3),
    ]
    assert generate_inline_diff_html(words) == (
        'Staff <del class="diff-word-removed">&lt;may&gt;</del> '
        '<ins class="diff-word-added">must</ins> comply'
    )


def test_unified_diff():
    differ = DocumentDiffer()
    source = _version(1, "1.0", "keep\nold line\nThe quick brown fox")
    target = _version(2, "2.0", "keep\nThe quick red fox\nnew line")
    changes = differ.compute_changes(source.content, target.content, DiffOptions(word_level=True))
    result = ComparisonResult(source_version=source, target_version=target,
                              summary=ComparisonSummary(), changes=changes)

    markup = generate_unified_diff_html(result)

    assert markup.startswith('<div class="diff-unified">')
    assert '- 1.0' in markup
    assert '+ 2.0' in markup
    assert 'diff-removed' in markup
    assert 'diff-added' in markup
    assert 'keep' not in markup


def test_side_by_side():
    differ = DocumentDiffer()
    left = _version(1, "1.0", "same\nold")
    right = _version(2, "2.0", "same\nnew")
    view = SideBySideView(left_version=left, right_version=right,
                          aligned_blocks=differ.align_blocks(left.content, right.content))

    markup = generate_side_by_side_html(view)

    assert markup.count('class="diff-row"') == 3
    assert 'diff-highlight-removed' in markup
    assert 'diff-highlight-added' in markup
