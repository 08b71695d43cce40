"""
ChordPro Formatter - Formatting intelligence for chord charts

This package scores the formatting of chord-annotated lyric sheets,
reports concrete issues, applies the mechanical fixes, and runs the same
pipeline over whole song collections with progress reporting and undo.
"""

from .models import (
    LineKind,
    Severity,
    IssueKind,
    ChangeType,
    Impact,
    ChordPattern,
    ChordPosition,
    ParsedLine,
    QualityScore,
    QualityIssue,
    CollapseBlankLines,
    StripWhitespace,
    RecaseChord,
    InsertSectionLabel,
    InlineChordLine,
    FormattingSuggestion,
    FormattingChange,
    SongMetadata,
    DetectedSection,
    FormattingResult,
    BatchFormattingResult,
    grade_for,
)

from .options import FormattingOptions, PRESETS, load_options
from .errors import FormattingError, InvariantViolation, OptionsError

from .parser import ChartParser
from .chords import ChordGrammar, ChordPatternDetector
from .structure import StructureDetector
from .metadata import MetadataExtractor
from .scorer import QualityScorer, SCORE_WEIGHTS
from .detector import IssueDetector
from .suggestions import SuggestionGenerator
from .fixer import FixEngine

from .engine import FormattingEngine
from .batch import BatchOrchestrator

__version__ = "0.1.0"

__all__ = [
    # Data structures
    'LineKind',
    'Severity',
    'IssueKind',
    'ChangeType',
    'Impact',
    'ChordPattern',
    'ChordPosition',
    'ParsedLine',
    'QualityScore',
    'QualityIssue',
    'CollapseBlankLines',
    'StripWhitespace',
    'RecaseChord',
    'InsertSectionLabel',
    'InlineChordLine',
    'FormattingSuggestion',
    'FormattingChange',
    'SongMetadata',
    'DetectedSection',
    'FormattingResult',
    'BatchFormattingResult',
    'grade_for',
    # Configuration and errors
    'FormattingOptions',
    'PRESETS',
    'load_options',
    'FormattingError',
    'InvariantViolation',
    'OptionsError',
    # Pipeline components
    'ChartParser',
    'ChordGrammar',
    'ChordPatternDetector',
    'StructureDetector',
    'MetadataExtractor',
    'QualityScorer',
    'SCORE_WEIGHTS',
    'IssueDetector',
    'SuggestionGenerator',
    'FixEngine',
    # Entry points
    'FormattingEngine',
    'BatchOrchestrator',
]
