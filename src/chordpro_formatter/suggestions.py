"""
Suggestion Generator - Advisory recommendations built from aggregate issue patterns

Suggestions cover what the fix engine can't do mechanically: chords that
need a musician's judgement, colliding chords, empty sections, missing
metadata and converting to another chord display convention. They are
never applied automatically.
"""

from collections import Counter
from typing import List, Optional

from .chords import ChordGrammar, ChordPatternDetector
from .metadata import EXPECTED_METADATA, MetadataExtractor
from .models import (
    ChordPattern,
    FormattingSuggestion,
    Impact,
    IssueKind,
    LineKind,
    ParsedLine,
    QualityIssue,
    QualityScore,
)
from .options import FormattingOptions
from .scorer import QualityScorer


# Sub-score below which the matching suggestion is rated a major improvement
MAJOR_IMPACT_BELOW = 0.6
MODERATE_IMPACT_BELOW = 0.8

PATTERN_NAMES = {
    ChordPattern.INLINE_BRACKETS: 'inline [bracketed] chords',
    ChordPattern.CHORD_OVER_LYRIC: 'chords above the lyrics',
    ChordPattern.NASHVILLE: 'Nashville numbers',
    ChordPattern.MIXED: 'a mix of chord styles',
}


def impact_for(sub_score: float) -> Impact:
    if sub_score < MAJOR_IMPACT_BELOW:
        return Impact.MAJOR
    if sub_score < MODERATE_IMPACT_BELOW:
        return Impact.MODERATE
    return Impact.MINOR


def _lines_text(issues: List[QualityIssue]) -> str:
    numbers = sorted({issue.line_number for issue in issues if issue.line_number is not None})
    if not numbers:
        return ''
    shown = ', '.join(str(n) for n in numbers[:5])
    if len(numbers) > 5:
        shown += f' and {len(numbers) - 5} more'
    return f" (line{'s' if len(numbers) > 1 else ''} {shown})"


class SuggestionGenerator:
    """Turns a chart's issue list into a short list of recommendations"""

    @staticmethod
    def generate(lines: List[ParsedLine], issues: List[QualityIssue],
                 options: Optional[FormattingOptions] = None,
                 score: Optional[QualityScore] = None) -> List[FormattingSuggestion]:
        if options is None:
            options = FormattingOptions()
        if score is None:
            score = QualityScorer.score(lines)

        by_kind = {}
        for issue in issues:
            by_kind.setdefault(issue.kind, []).append(issue)

        suggestions = []

        collisions = by_kind.get(IssueKind.CHORD_COLLISION, [])
        if collisions:
            suggestions.append(FormattingSuggestion(
                title='Space Out Crowded Chords',
                description=(
                    f'{len(collisions)} line(s) have chords that overlap when shown above '
                    f'the lyrics{_lines_text(collisions)}. Move a chord to a later syllable '
                    'or add space in the lyric.'
                ),
                impact=impact_for(score.alignment),
            ))

        unrecognized = by_kind.get(IssueKind.UNRECOGNIZED_CHORD, [])
        if unrecognized:
            tokens = Counter(
                chord for line in lines if line.kind == LineKind.CHORD_LYRIC
                for chord in line.chords if ChordGrammar.canonical_form(chord) is None
            )
            listed = ', '.join(token for token, _ in tokens.most_common(5))
            suggestions.append(FormattingSuggestion(
                title='Review Chord Spelling',
                description=(
                    f'{len(unrecognized)} chord(s) could not be read as standard chord names: '
                    f'{listed}. Check them against the recording or sheet music.'
                ),
                impact=impact_for(score.chord_format),
            ))

        empty = by_kind.get(IssueKind.EMPTY_SECTION, [])
        if empty:
            suggestions.append(FormattingSuggestion(
                title='Fill In Empty Sections',
                description=(
                    f'{len(empty)} section header(s) have nothing under them{_lines_text(empty)}. '
                    'Add the lyrics or remove the header.'
                ),
                impact=impact_for(score.structure),
            ))

        missing = by_kind.get(IssueKind.MISSING_METADATA, [])
        if missing:
            present = MetadataExtractor.present_fields(lines)
            absent = [name for name in EXPECTED_METADATA if name not in present]
            description = f'Add {" and ".join(absent)} directives so the song is easy to find and play.'
            inferred_key = MetadataExtractor.infer_key(lines)
            if inferred_key and 'key' in absent:
                description += f' The chords suggest the key of {inferred_key}.'
            suggestions.append(FormattingSuggestion(
                title='Add Missing Metadata',
                description=description,
                impact=impact_for(score.metadata),
            ))

        # Chord lines the fix engine converts itself need no advice
        pattern = ChordPatternDetector.detect(lines)
        if (pattern not in (ChordPattern.UNKNOWN, options.target_pattern)
                and IssueKind.CHORD_STYLE not in by_kind):
            suggestions.append(FormattingSuggestion(
                title='Convert Chord Style',
                description=(
                    f'This chart uses {PATTERN_NAMES[pattern]}; the preferred style is '
                    f'{PATTERN_NAMES.get(options.target_pattern, options.target_pattern.value)}.'
                ),
                impact=Impact.MODERATE if pattern == ChordPattern.MIXED else Impact.MINOR,
            ))

        return suggestions
