#!/usr/bin/env python3
"""
Fix Engine - Rewrites chart text for a selection of auto-fixable issues

Fixes are applied in original line order; within a line, chord re-casings
run left to right with a running column shift, then the whitespace strip.
Every applied fix appends exactly one FormattingChange.

Each fix kind only ever improves its own sub-score and leaves the others
untouched:
- collapsing a blank run only removes penalized Blank lines
- stripping a lyric line keeps every chord's relative offset
- re-casing a chord never widens it and makes it recognized
- a section label is only inserted before a block no header covers
- merging a chord line into its lyric keeps the pair's single-line score
"""

import logging
from typing import Dict, List, Optional, Tuple

from .chords import ChordPatternDetector, merge_chord_line
from .detector import IssueDetector
from .models import (
    ChangeType,
    CollapseBlankLines,
    FormattingChange,
    InlineChordLine,
    InsertSectionLabel,
    QualityIssue,
    RecaseChord,
    StripWhitespace,
)
from .options import FormattingOptions
from .parser import ChartParser

logger = logging.getLogger(__name__)

WHOLE_LINE = (0, float('inf'))


class _SpanClaims:
    """Character spans already claimed by accepted fixes, per line"""

    def __init__(self):
        self._spans: Dict[Tuple[int, str], List[Tuple[float, float]]] = {}

    def try_claim(self, claims: List[Tuple[int, str, Tuple[float, float]]]) -> bool:
        """Claim every span or none of them"""
        for line_number, channel, (start, end) in claims:
            for other_start, other_end in self._spans.get((line_number, channel), []):
                if start < other_end and other_start < end:
                    return False
                if start == end == other_start == other_end:
                    return False
        for line_number, channel, span in claims:
            self._spans.setdefault((line_number, channel), []).append(span)
        return True


class FixEngine:
    """Applies auto-fixable issues to chart text"""

    @staticmethod
    def apply(text: str, selected_issues: Optional[List[QualityIssue]] = None,
              options: Optional[FormattingOptions] = None) -> Tuple[str, List[FormattingChange]]:
        """Apply ``selected_issues`` to ``text``.

        An empty or missing selection means every auto-fixable issue the
        detector finds in ``text`` under ``options``. Issues that are not
        auto-fixable, overlap an earlier selected issue, or no longer match
        the text are skipped.
        """
        if not selected_issues:
            selected_issues = IssueDetector.detect(ChartParser.parse(text), options=options)

        raw_lines = text.split('\n')
        accepted = FixEngine._accept(raw_lines, selected_issues)
        return FixEngine._rewrite(raw_lines, accepted)

    @staticmethod
    def _claims_for(raw_lines: List[str], fix) -> Optional[list]:
        """Spans a fix touches, or None when the fix doesn't match the text"""
        count = len(raw_lines)

        if isinstance(fix, CollapseBlankLines):
            last = fix.first_line + fix.run_length - 1
            if fix.run_length < 2 or fix.first_line < 1 or last > count:
                return None
            run = raw_lines[fix.first_line - 1:last]
            if any(line.strip() for line in run):
                return None
            return [(n, 'text', WHOLE_LINE) for n in range(fix.first_line + 1, last + 1)]

        if isinstance(fix, StripWhitespace):
            if not 1 <= fix.line_number <= count:
                return None
            raw = raw_lines[fix.line_number - 1]
            if not raw.strip() or raw == raw.strip():
                return None
            lead = len(raw) - len(raw.lstrip())
            trail_start = len(raw.rstrip())
            claims = []
            if lead:
                claims.append((fix.line_number, 'text', (0, lead)))
            if trail_start < len(raw):
                claims.append((fix.line_number, 'text', (trail_start, len(raw))))
            return claims

        if isinstance(fix, RecaseChord):
            if not 1 <= fix.line_number <= count:
                return None
            raw = raw_lines[fix.line_number - 1]
            end = fix.column + len(fix.before)
            if fix.column < 1 or raw[fix.column - 1:fix.column] != '[' or raw[fix.column:end] != fix.before:
                return None
            if raw[end:end + 1] != ']':
                return None
            return [(fix.line_number, 'text', (fix.column - 1, end + 1))]

        if isinstance(fix, InsertSectionLabel):
            if not 1 <= fix.line_number <= count or not fix.label:
                return None
            if '[' in fix.label or ']' in fix.label:
                return None
            return [(fix.line_number, 'insert', (0, 0))]

        if isinstance(fix, InlineChordLine):
            if not 1 <= fix.chord_line < count:
                return None
            chord_text, lyric_text = raw_lines[fix.chord_line - 1], raw_lines[fix.chord_line]
            if not ChordPatternDetector.is_strict_chord_line(chord_text):
                return None
            if not ChordPatternDetector.is_plain_lyric(lyric_text):
                return None
            lyric_line = fix.chord_line + 1
            return [
                (fix.chord_line, 'text', WHOLE_LINE),
                (lyric_line, 'text', WHOLE_LINE),
                (lyric_line, 'insert', (0, 0)),
            ]

        return None

    @staticmethod
    def _accept(raw_lines: List[str], issues: List[QualityIssue]) -> List[Tuple[QualityIssue, object]]:
        """Filter issues down to fixes that match the text and don't overlap"""
        claims = _SpanClaims()
        accepted = []
        for issue in issues:
            if not issue.auto_fixable or issue.fix is None:
                continue
            spans = FixEngine._claims_for(raw_lines, issue.fix)
            if spans is None:
                logger.debug("Dropping fix for %s: no longer matches the text", issue.id)
                continue
            if not claims.try_claim(spans):
                logger.debug("Dropping fix for %s: overlaps an earlier fix", issue.id)
                continue
            accepted.append((issue, issue.fix))
        return accepted

    @staticmethod
    def _rewrite(raw_lines: List[str], accepted) -> Tuple[str, List[FormattingChange]]:
        inserts = {}
        collapses = {}
        removed = set()
        recases: Dict[int, list] = {}
        strips = {}
        merges = {}

        for issue, fix in accepted:
            if isinstance(fix, InsertSectionLabel):
                inserts[fix.line_number] = (issue, fix)
            elif isinstance(fix, CollapseBlankLines):
                collapses[fix.first_line] = (issue, fix)
                removed.update(range(fix.first_line + 1, fix.first_line + fix.run_length))
            elif isinstance(fix, RecaseChord):
                recases.setdefault(fix.line_number, []).append((issue, fix))
            elif isinstance(fix, StripWhitespace):
                strips[fix.line_number] = (issue, fix)
            elif isinstance(fix, InlineChordLine):
                merges[fix.chord_line] = (issue, fix)
                removed.add(fix.chord_line + 1)

        output = []
        changes = []

        for line_number, raw in enumerate(raw_lines, 1):
            if line_number in inserts:
                issue, fix = inserts[line_number]
                header = f'[{fix.label}]'
                output.append(header)
                changes.append(FormattingChange(
                    ChangeType.SECTION_LABELED,
                    f"Added section label '{fix.label}'",
                    before='', after=header,
                    line_number=line_number, issue_id=issue.id,
                ))

            if line_number in collapses:
                issue, fix = collapses[line_number]
                run = raw_lines[line_number - 1:line_number - 1 + fix.run_length]
                changes.append(FormattingChange(
                    ChangeType.BLANK_LINES_REMOVED,
                    f'Collapsed {fix.run_length} blank lines into one',
                    before='\n'.join(run), after=raw,
                    line_number=line_number, issue_id=issue.id,
                ))

            if line_number in removed:
                continue

            if line_number in merges:
                issue, fix = merges[line_number]
                lyric = raw_lines[line_number]
                merged = merge_chord_line(raw, lyric)
                output.append(merged)
                changes.append(FormattingChange(
                    ChangeType.CHORDS_INLINED,
                    'Moved chords from the line above into the lyric',
                    before=f'{raw}\n{lyric}', after=merged,
                    line_number=line_number, issue_id=issue.id,
                ))
                continue

            line = raw
            shift = 0
            for issue, fix in sorted(recases.get(line_number, []), key=lambda item: item[1].column):
                column = fix.column + shift
                line = line[:column] + fix.after + line[column + len(fix.before):]
                shift += len(fix.after) - len(fix.before)
                changes.append(FormattingChange(
                    ChangeType.CHORD_REFORMATTED,
                    f"Reformatted chord '{fix.before}' as '{fix.after}'",
                    before=f'[{fix.before}]', after=f'[{fix.after}]',
                    line_number=line_number, issue_id=issue.id,
                ))

            if line_number in strips:
                issue, fix = strips[line_number]
                stripped = line.strip()
                changes.append(FormattingChange(
                    ChangeType.SPACING_NORMALIZED,
                    'Removed leading/trailing whitespace',
                    before=line, after=stripped,
                    line_number=line_number, issue_id=issue.id,
                ))
                line = stripped

            output.append(line)

        return '\n'.join(output), changes
