"""
Data structures for the formatting engine

Everything here is plain data: parsed lines, scores, issues, the fix
payloads the detector hands to the fix engine, and the per-document and
batch results returned to callers.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional, Union

import yaml


GRADE_BANDS = (
    (90, 'A'),
    (80, 'B'),
    (70, 'C'),
    (60, 'D'),
)


def grade_for(percentage: int) -> str:
    """Letter grade for a 0-100 percentage"""
    for threshold, grade in GRADE_BANDS:
        if percentage >= threshold:
            return grade
    return 'F'


class LineKind(str, Enum):
    """Classification of one chart line"""
    DIRECTIVE = 'directive'
    SECTION_HEADER = 'section-header'
    CHORD_LYRIC = 'chord-lyric'
    BLANK = 'blank'


class Severity(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


class IssueKind(str, Enum):
    """Rule family that produced an issue"""
    EXCESS_BLANK_LINES = 'excess-blank-lines'
    STRAY_WHITESPACE = 'stray-whitespace'
    CHORD_COLLISION = 'chord-collision'
    NONCANONICAL_CHORD = 'noncanonical-chord'
    UNRECOGNIZED_CHORD = 'unrecognized-chord'
    CHORD_STYLE = 'chord-style'
    MISSING_SECTION_LABEL = 'missing-section-label'
    EMPTY_SECTION = 'empty-section'
    MISSING_METADATA = 'missing-metadata'


class ChangeType(str, Enum):
    BLANK_LINES_REMOVED = 'blank-lines-removed'
    SPACING_NORMALIZED = 'spacing-normalized'
    CHORD_REFORMATTED = 'chord-reformatted'
    CHORDS_INLINED = 'chords-inlined'
    SECTION_LABELED = 'section-labeled'


class Impact(str, Enum):
    """Expected score improvement category of a suggestion"""
    MINOR = 'minor'
    MODERATE = 'moderate'
    MAJOR = 'major'


class ChordPattern(str, Enum):
    """Chord display conventions a chart can use"""
    INLINE_BRACKETS = 'inline-brackets'      # [C]Amazing [Am]grace
    CHORD_OVER_LYRIC = 'chord-over-lyric'    # chords on the line above
    NASHVILLE = 'nashville'                  # 1 4 5 numbers
    MIXED = 'mixed'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class ChordPosition:
    """A chord token and the lyric offset it sits above"""
    chord: str
    offset: int


@dataclass
class ParsedLine:
    """One chart line after classification.

    ``line_number`` is 1-based and refers to the text that was parsed; it is
    never renumbered, so issues keep pointing at the original text even
    after fixes insert or remove lines.
    """
    kind: LineKind
    raw_text: str
    line_number: int
    directive: Optional[str] = None        # Directive lines only, lower-cased
    value: Optional[str] = None            # None when the directive has no value
    section_name: Optional[str] = None     # SectionHeader lines only
    chord_positions: List[ChordPosition] = field(default_factory=list)
    lyric_text: str = ''

    @property
    def chords(self) -> List[str]:
        return [cp.chord for cp in self.chord_positions]


@dataclass(frozen=True)
class QualityScore:
    """Five sub-scores in [0, 1] plus the weighted overall score"""
    spacing: float
    alignment: float
    structure: float
    chord_format: float
    metadata: float
    overall: float

    @property
    def percentage(self) -> int:
        # Halves round up: 0.625 is 63%
        return int(self.overall * 100 + 0.5)

    @property
    def grade(self) -> str:
        return grade_for(self.percentage)

    def sub_scores(self) -> Dict[str, float]:
        return {
            'spacing': self.spacing,
            'alignment': self.alignment,
            'structure': self.structure,
            'chord_format': self.chord_format,
            'metadata': self.metadata,
        }

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['percentage'] = self.percentage
        data['grade'] = self.grade
        return data


# Fix payloads. The detector attaches one of these to every auto-fixable
# issue; the fix engine dispatches on the payload type.

@dataclass(frozen=True)
class CollapseBlankLines:
    """Drop the extra blank lines of a run, keeping its first line"""
    first_line: int
    run_length: int


@dataclass(frozen=True)
class StripWhitespace:
    line_number: int


@dataclass(frozen=True)
class RecaseChord:
    """Replace the bracketed chord starting at ``column`` of the raw line"""
    line_number: int
    column: int           # index of the chord's first character after '['
    before: str
    after: str


@dataclass(frozen=True)
class InsertSectionLabel:
    """Insert a ``[label]`` header line before ``line_number``"""
    line_number: int
    label: str


@dataclass(frozen=True)
class InlineChordLine:
    """Merge the bare chord line at ``chord_line`` into the lyric line below it"""
    chord_line: int


FixAction = Union[CollapseBlankLines, StripWhitespace, RecaseChord, InsertSectionLabel, InlineChordLine]


@dataclass
class QualityIssue:
    """A discrete formatting problem found by the detector"""
    id: str
    kind: IssueKind
    description: str
    suggestion: str
    severity: Severity
    auto_fixable: bool
    line_number: Optional[int] = None     # None for document-wide issues
    fix: Optional[FixAction] = None

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'kind': self.kind.value,
            'description': self.description,
            'line_number': self.line_number,
            'suggestion': self.suggestion,
            'severity': self.severity.value,
            'auto_fixable': self.auto_fixable,
        }


@dataclass
class FormattingSuggestion:
    """Advisory recommendation; never applied automatically"""
    title: str
    description: str
    impact: Impact

    def to_dict(self) -> Dict:
        return {
            'title': self.title,
            'description': self.description,
            'impact': self.impact.value,
        }


@dataclass
class FormattingChange:
    """One atomic transformation performed by the fix engine"""
    type: ChangeType
    description: str
    before: str
    after: str
    line_number: Optional[int] = None
    issue_id: Optional[str] = None

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['type'] = self.type.value
        return data


@dataclass
class SongMetadata:
    """Metadata read from a chart's directives"""
    title: Optional[str] = None
    artist: Optional[str] = None
    key: Optional[str] = None
    tempo: Optional[int] = None
    time_signature: Optional[str] = None
    capo: Optional[int] = None
    inferred_key: Optional[str] = None    # Guess from chord roots when key is missing

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class DetectedSection:
    """A block of lyric lines and the label it carries or would be given"""
    start_line: int
    label: Optional[str]
    labeled: bool

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class FormattingResult:
    """Analysis and fix outcome for a single chart.

    ``quality_score`` is the score of ``original_text``; ``issues`` always
    refer to line numbers of ``original_text``.
    """
    original_text: str
    formatted_text: str
    quality_score: QualityScore
    formatted_score: QualityScore
    issues: List[QualityIssue] = field(default_factory=list)
    suggestions: List[FormattingSuggestion] = field(default_factory=list)
    changes: List[FormattingChange] = field(default_factory=list)
    detected_pattern: ChordPattern = ChordPattern.UNKNOWN
    extracted_chords: List[str] = field(default_factory=list)
    extracted_metadata: SongMetadata = field(default_factory=SongMetadata)
    sections: List[DetectedSection] = field(default_factory=list)

    @property
    def issues_fixed(self) -> int:
        return len(self.changes)

    @property
    def improvement(self) -> float:
        return self.formatted_score.overall - self.quality_score.overall

    def to_dict(self) -> Dict:
        return {
            'original_text': self.original_text,
            'formatted_text': self.formatted_text,
            'quality_score': self.quality_score.to_dict(),
            'formatted_score': self.formatted_score.to_dict(),
            'issues': [issue.to_dict() for issue in self.issues],
            'suggestions': [s.to_dict() for s in self.suggestions],
            'changes': [c.to_dict() for c in self.changes],
            'detected_pattern': self.detected_pattern.value,
            'extracted_chords': list(self.extracted_chords),
            'extracted_metadata': self.extracted_metadata.to_dict(),
            'sections': [s.to_dict() for s in self.sections],
        }

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False, allow_unicode=True, sort_keys=False)


@dataclass
class BatchFormattingResult:
    """Outcome of formatting a collection of charts"""
    results: Dict[str, FormattingResult] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)   # document id -> error message
    total_songs: int = 0
    success_count: int = 0
    failure_count: int = 0
    cancelled_count: int = 0
    average_quality_improvement: float = 0.0
    total_issues_fixed: int = 0

    @property
    def success_rate(self) -> float:
        if self.total_songs == 0:
            return 0.0
        return self.success_count / self.total_songs

    def to_dict(self) -> Dict:
        return {
            'total_songs': self.total_songs,
            'success_count': self.success_count,
            'failure_count': self.failure_count,
            'cancelled_count': self.cancelled_count,
            'average_quality_improvement': self.average_quality_improvement,
            'total_issues_fixed': self.total_issues_fixed,
            'results': {doc_id: result.to_dict() for doc_id, result in self.results.items()},
            'failures': dict(self.failures),
        }

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False, allow_unicode=True, sort_keys=False)
