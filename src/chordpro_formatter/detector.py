#!/usr/bin/env python3
"""
Issue Detector - Expands scoring deficiencies into concrete issues

Each rule family walks the parsed chart and reports line-addressable
issues. Auto-fixable issues carry the fix payload the fix engine needs, so
the fixer never has to re-derive what the detector meant.

Severity:
- critical: title or artist missing
- high:     chords that collide when rendered
- medium:   unrecognized/non-canonical chords, section structure problems
- low:      cosmetic spacing, chords written above the lyrics, missing key
"""

from typing import List, Optional

from .chords import ChordGrammar, ChordPatternDetector, merge_chord_line
from .metadata import EXPECTED_METADATA, MetadataExtractor
from .models import (
    ChordPattern,
    CollapseBlankLines,
    InlineChordLine,
    InsertSectionLabel,
    IssueKind,
    LineKind,
    ParsedLine,
    QualityIssue,
    QualityScore,
    RecaseChord,
    Severity,
    StripWhitespace,
)
from .options import FormattingOptions
from .parser import ChartParser
from .scorer import QualityScorer
from .structure import StructureDetector


METADATA_SEVERITY = {
    'title': Severity.CRITICAL,
    'artist': Severity.CRITICAL,
    'key': Severity.LOW,
}


class _IssueCollector:
    """Assigns run-unique ids as issues are added"""

    def __init__(self):
        self.issues: List[QualityIssue] = []

    def add(self, kind: IssueKind, severity: Severity, description: str, suggestion: str,
            line_number: Optional[int] = None, fix=None):
        self.issues.append(QualityIssue(
            id=f'{kind.value}-{len(self.issues) + 1}',
            kind=kind,
            description=description,
            suggestion=suggestion,
            severity=severity,
            auto_fixable=fix is not None,
            line_number=line_number,
            fix=fix,
        ))


class IssueDetector:
    """Runs the rule battery over a parsed chart"""

    @staticmethod
    def detect(lines: List[ParsedLine], score: Optional[QualityScore] = None,
               options: Optional[FormattingOptions] = None) -> List[QualityIssue]:
        """Return issues in detection order.

        A family whose sub-score is already perfect is skipped; disabled
        families (per ``options``) report nothing. Chord-over-lyric lines are
        converted to inline chords whenever ``standardize_chords`` is on and
        the target pattern is inline brackets, whatever the scores.
        """
        if options is None:
            options = FormattingOptions()
        if score is None:
            score = QualityScorer.score(lines)

        collector = _IssueCollector()

        # Chord-over-lyric pairs are rewritten whole, whitespace included
        pairs = []
        if options.standardize_chords and options.target_pattern == ChordPattern.INLINE_BRACKETS:
            pairs = IssueDetector.convertible_pairs(lines)
        merged = {line.line_number for pair in pairs for line in pair}

        if score.spacing < 1.0:
            if options.remove_extra_blank_lines:
                IssueDetector._blank_runs(lines, collector)
            if options.fix_spacing:
                IssueDetector._stray_whitespace(lines, collector, skip=merged)

        if score.alignment < 1.0 and options.align_chords:
            IssueDetector._collisions(lines, collector)

        if score.chord_format < 1.0 and options.standardize_chords:
            IssueDetector._chord_tokens(lines, collector)

        if pairs:
            IssueDetector._chord_style(pairs, collector)

        if score.structure < 1.0 and options.auto_label_sections:
            IssueDetector._structure(lines, collector)

        if score.metadata < 1.0 and options.extract_metadata:
            IssueDetector._metadata(lines, collector)

        return collector.issues

    @staticmethod
    def _blank_runs(lines: List[ParsedLine], collector: _IssueCollector):
        for run in QualityScorer.blank_runs(lines):
            first = run[0].line_number
            collector.add(
                IssueKind.EXCESS_BLANK_LINES, Severity.LOW,
                f'{len(run)} consecutive blank lines',
                'Collapse to a single blank line',
                line_number=first,
                fix=CollapseBlankLines(first_line=first, run_length=len(run)),
            )

    @staticmethod
    def _stray_whitespace(lines: List[ParsedLine], collector: _IssueCollector, skip=frozenset()):
        for line in lines:
            if line.line_number in skip or not QualityScorer.has_stray_whitespace(line):
                continue
            raw = line.raw_text
            where = []
            if raw != raw.lstrip():
                where.append('leading')
            if raw != raw.rstrip():
                where.append('trailing')
            collector.add(
                IssueKind.STRAY_WHITESPACE, Severity.LOW,
                f'Line has {" and ".join(where)} whitespace',
                'Remove the extra whitespace',
                line_number=line.line_number,
                fix=StripWhitespace(line.line_number),
            )

    @staticmethod
    def _collisions(lines: List[ParsedLine], collector: _IssueCollector):
        for line in lines:
            if line.kind != LineKind.CHORD_LYRIC:
                continue
            colliding = QualityScorer.collisions(line)
            if not colliding:
                continue
            pairs = ', '.join(
                f'{line.chord_positions[i - 1].chord}/{line.chord_positions[i].chord}'
                for i in colliding
            )
            collector.add(
                IssueKind.CHORD_COLLISION, Severity.HIGH,
                f'Chords overlap when rendered: {pairs}',
                'Add lyric space between the chords or move one to the next syllable',
                line_number=line.line_number,
            )

    @staticmethod
    def _chord_tokens(lines: List[ParsedLine], collector: _IssueCollector):
        for line in lines:
            if line.kind != LineKind.CHORD_LYRIC or not line.chord_positions:
                continue
            spans = ChartParser.find_chord_spans(line.raw_text)
            for (open_idx, _), position in zip(spans, line.chord_positions):
                token = position.chord
                if ChordGrammar.is_recognized(token):
                    continue
                canonical = ChordGrammar.canonical_form(token)
                if canonical is not None:
                    collector.add(
                        IssueKind.NONCANONICAL_CHORD, Severity.MEDIUM,
                        f"Chord '{token}' is not in canonical form",
                        f"Write it as '{canonical}'",
                        line_number=line.line_number,
                        fix=RecaseChord(line.line_number, open_idx + 1, token, canonical),
                    )
                elif ChordGrammar.is_ambiguous(token):
                    collector.add(
                        IssueKind.UNRECOGNIZED_CHORD, Severity.MEDIUM,
                        f"Chord '{token}' is ambiguous (major or minor?)",
                        'Spell the chord quality explicitly, e.g. maj7 or m7',
                        line_number=line.line_number,
                    )
                else:
                    collector.add(
                        IssueKind.UNRECOGNIZED_CHORD, Severity.MEDIUM,
                        f"Unrecognized chord '{token}'",
                        'Check the chord spelling',
                        line_number=line.line_number,
                    )

    @staticmethod
    def convertible_pairs(lines: List[ParsedLine]):
        """Chord-over-lyric pairs whose merged line keeps every chord clear of the next"""
        pairs = []
        for chord_line, lyric_line in ChordPatternDetector.chord_over_lyric_pairs(lines):
            merged = ChartParser.parse_line(
                merge_chord_line(chord_line.raw_text, lyric_line.raw_text), chord_line.line_number
            )
            if merged.kind != LineKind.CHORD_LYRIC or merged.chords != chord_line.raw_text.split():
                continue
            if QualityScorer.collisions(merged) or QualityScorer.has_stray_whitespace(merged):
                continue
            pairs.append((chord_line, lyric_line))
        return pairs

    @staticmethod
    def _chord_style(pairs, collector: _IssueCollector):
        for chord_line, lyric_line in pairs:
            collector.add(
                IssueKind.CHORD_STYLE, Severity.LOW,
                f'Chords on line {chord_line.line_number} sit above the lyric instead of inline',
                'Move the chords into the lyric line as [chord] tokens',
                line_number=chord_line.line_number,
                fix=InlineChordLine(chord_line.line_number),
            )

    @staticmethod
    def _structure(lines: List[ParsedLine], collector: _IssueCollector):
        if StructureDetector.needs_labels(lines):
            blocks = StructureDetector.find_blocks(lines)
            labels = StructureDetector.infer_labels(blocks)
            for block in blocks:
                if block.labeled:
                    continue
                label = labels[block.start_line]
                collector.add(
                    IssueKind.MISSING_SECTION_LABEL, Severity.MEDIUM,
                    f'Section starting at line {block.start_line} has no label',
                    f"Label it '[{label}]'",
                    line_number=block.start_line,
                    fix=InsertSectionLabel(block.start_line, label),
                )

        for header in StructureDetector.empty_headers(lines):
            collector.add(
                IssueKind.EMPTY_SECTION, Severity.MEDIUM,
                f"Section '{header.section_name}' has no lyrics or chords",
                'Add content under the header or remove it',
                line_number=header.line_number,
            )

    @staticmethod
    def _metadata(lines: List[ParsedLine], collector: _IssueCollector):
        present = MetadataExtractor.present_fields(lines)

        for name in EXPECTED_METADATA:
            if name in present:
                continue

            empty_line = next(
                (line for line in lines
                 if line.kind == LineKind.DIRECTIVE and line.directive == name),
                None
            )
            if empty_line is not None:
                description = f'{name.capitalize()} directive has no value'
            else:
                description = f'Missing {name}'

            suggestion = f'Add {{{name}: ...}}'
            if name == 'key':
                inferred_key = MetadataExtractor.infer_key(lines)
                if inferred_key:
                    suggestion = f'Add {{key: ...}}; the chords suggest {inferred_key}'

            collector.add(
                IssueKind.MISSING_METADATA, METADATA_SEVERITY[name],
                description, suggestion,
                line_number=empty_line.line_number if empty_line else None,
            )
