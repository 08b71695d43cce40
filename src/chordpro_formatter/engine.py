#!/usr/bin/env python3
"""
Formatting Engine - Single-document analysis and auto-fix

Pipeline for one chart:

1. Parse the text into classified lines
2. Score the original text
3. Detect issues (gated by the options)
4. Apply every auto-fixable issue
5. Re-score the fixed text and check no sub-score went down

The engine holds no state between calls, so one instance can be shared
across threads.
"""

import asyncio
import logging
import time
from functools import partial
from typing import List, Optional, Tuple

from .chords import ChordPatternDetector, unique_chords
from .detector import IssueDetector
from .errors import InvariantViolation
from .fixer import FixEngine
from .metadata import MetadataExtractor
from .models import (
    FormattingChange,
    FormattingResult,
    QualityIssue,
    QualityScore,
    SongMetadata,
)
from .options import FormattingOptions
from .parser import ChartParser
from .scorer import QualityScorer
from .structure import StructureDetector
from .suggestions import SuggestionGenerator

logger = logging.getLogger(__name__)


class FormattingEngine:
    """Analyzes and fixes chord charts"""

    def __init__(self, options: Optional[FormattingOptions] = None):
        self.options = options or FormattingOptions()

    def get_quality_score(self, text: str) -> QualityScore:
        return QualityScorer.score(ChartParser.parse(text))

    def detect_issues(self, text: str, options: Optional[FormattingOptions] = None) -> List[QualityIssue]:
        return IssueDetector.detect(ChartParser.parse(text), options=options or self.options)

    def apply_fixes(self, text: str, issues: Optional[List[QualityIssue]] = None,
                    options: Optional[FormattingOptions] = None) -> Tuple[str, List[FormattingChange]]:
        """Apply the given issues' fixes to ``text``.

        With no issues, every auto-fixable issue found in ``text`` is fixed.
        """
        return FixEngine.apply(text, issues, options or self.options)

    def preview_formatting(self, text: str, options: Optional[FormattingOptions] = None) -> FormattingResult:
        """Analyze ``text`` without changing it"""
        return self._analyze(text, options or self.options, apply=False)

    def format_song(self, text: str, options: Optional[FormattingOptions] = None) -> FormattingResult:
        """Analyze ``text`` and apply every auto-fixable issue.

        Raises InvariantViolation if the fixed text scores lower than the
        original in any sub-score.
        """
        return self._analyze(text, options or self.options, apply=True)

    async def format_song_async(self, text: str, options: Optional[FormattingOptions] = None) -> FormattingResult:
        """Run format_song in the default executor so the event loop isn't blocked"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(self.format_song, text, options))

    def _analyze(self, text: str, options: FormattingOptions, apply: bool) -> FormattingResult:
        start = time.perf_counter()

        lines = ChartParser.parse(text)
        before = QualityScorer.score(lines)
        issues = IssueDetector.detect(lines, before, options)
        suggestions = SuggestionGenerator.generate(lines, issues, options, before)

        formatted_text, changes = text, []
        after = before
        if apply and issues:
            formatted_text, changes = FixEngine.apply(text, issues, options)
            if changes:
                after = QualityScorer.score(ChartParser.parse(formatted_text))
                self._check_monotonic(before, after)

        metadata = MetadataExtractor.extract(lines) if options.extract_metadata else SongMetadata()

        result = FormattingResult(
            original_text=text,
            formatted_text=formatted_text,
            quality_score=before,
            formatted_score=after,
            issues=issues,
            suggestions=suggestions,
            changes=changes,
            detected_pattern=ChordPatternDetector.detect(lines),
            extracted_chords=unique_chords(lines),
            extracted_metadata=metadata,
            sections=StructureDetector.sections(lines),
        )

        logger.debug(
            "Formatted %d lines in %.1fms: %d issues, %d changes, score %d%% -> %d%%",
            len(lines), (time.perf_counter() - start) * 1000,
            len(issues), len(changes), before.percentage, after.percentage,
        )
        return result

    @staticmethod
    def _check_monotonic(before: QualityScore, after: QualityScore):
        for name, value in before.sub_scores().items():
            fixed = after.sub_scores()[name]
            if fixed < value:
                raise InvariantViolation(
                    f"Fixes lowered the {name} score from {value:.3f} to {fixed:.3f}",
                    dimension=name,
                )


def format_song(text: str, options: Optional[FormattingOptions] = None) -> FormattingResult:
    return FormattingEngine(options).format_song(text)


def preview_formatting(text: str, options: Optional[FormattingOptions] = None) -> FormattingResult:
    return FormattingEngine(options).preview_formatting(text)


def get_quality_score(text: str) -> QualityScore:
    return QualityScorer.score(ChartParser.parse(text))
