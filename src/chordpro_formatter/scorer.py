#!/usr/bin/env python3
"""
Quality Scorer - Rates the formatting of a parsed chart

Five independent sub-scores, each in [0, 1]:

1. spacing      - excess blank lines and stray whitespace on lyric lines
2. alignment    - inline chords that would collide when rendered
3. structure    - section labels present and no empty sections
4. chord_format - chord tokens that follow the chord grammar
5. metadata     - title, artist and key directives present

The overall score is the SCORE_WEIGHTS-weighted sum. All of it is a pure
function of the parsed lines.
"""

from typing import Dict, List

from .chords import ChordGrammar, ChordPatternDetector
from .metadata import EXPECTED_METADATA, MetadataExtractor
from .models import LineKind, ParsedLine, QualityScore
from .structure import StructureDetector


SCORE_WEIGHTS: Dict[str, float] = {
    'spacing': 0.2,
    'alignment': 0.2,
    'structure': 0.2,
    'chord_format': 0.2,
    'metadata': 0.2,
}


class QualityScorer:
    """Computes QualityScore for a parsed chart"""

    @staticmethod
    def score(lines: List[ParsedLine]) -> QualityScore:
        sub_scores = {
            'spacing': QualityScorer.spacing_score(lines),
            'alignment': QualityScorer.alignment_score(lines),
            'structure': QualityScorer.structure_score(lines),
            'chord_format': QualityScorer.chord_format_score(lines),
            'metadata': QualityScorer.metadata_score(lines),
        }
        overall = sum(SCORE_WEIGHTS[name] * value for name, value in sub_scores.items())
        # Clamp float noise from the weighted sum
        overall = max(0.0, min(1.0, overall))
        return QualityScore(overall=overall, **sub_scores)

    # Spacing

    @staticmethod
    def blank_runs(lines: List[ParsedLine]) -> List[List[ParsedLine]]:
        """Runs of two or more consecutive Blank lines"""
        runs = []
        current = []
        for line in lines:
            if line.kind == LineKind.BLANK:
                current.append(line)
                continue
            if len(current) >= 2:
                runs.append(current)
            current = []
        if len(current) >= 2:
            runs.append(current)
        return runs

    @staticmethod
    def has_stray_whitespace(line: ParsedLine) -> bool:
        return line.kind == LineKind.CHORD_LYRIC and line.raw_text != line.raw_text.strip()

    @staticmethod
    def spacing_score(lines: List[ParsedLine]) -> float:
        """A chord-over-lyric pair counts as one line, penalized once"""
        if not lines:
            return 1.0
        pairs = ChordPatternDetector.chord_over_lyric_pairs(lines)
        paired = {line.line_number for pair in pairs for line in pair}

        penalized = sum(len(run) - 1 for run in QualityScorer.blank_runs(lines))
        penalized += sum(
            1 for line in lines
            if line.line_number not in paired and QualityScorer.has_stray_whitespace(line)
        )
        penalized += sum(1 for pair in pairs if any(map(QualityScorer.has_stray_whitespace, pair)))
        return max(0.0, 1.0 - penalized / (len(lines) - len(pairs)))

    # Alignment

    @staticmethod
    def collisions(line: ParsedLine) -> List[int]:
        """Indexes of chords that overlap the chord before them"""
        colliding = []
        positions = line.chord_positions
        for index in range(1, len(positions)):
            previous = positions[index - 1]
            current = positions[index]
            if current.offset <= previous.offset or current.offset < previous.offset + len(previous.chord):
                colliding.append(index)
        return colliding

    @staticmethod
    def alignment_score(lines: List[ParsedLine]) -> float:
        lyric_lines = [line for line in lines if line.kind == LineKind.CHORD_LYRIC]
        if not lyric_lines:
            return 1.0
        # Both lines of a chord-over-lyric pair pass; count the pair once
        pairs = len(ChordPatternDetector.chord_over_lyric_pairs(lines))
        passing = sum(1 for line in lyric_lines if not QualityScorer.collisions(line))
        return (passing - pairs) / (len(lyric_lines) - pairs)

    # Structure

    @staticmethod
    def structure_checks(lines: List[ParsedLine]) -> List[bool]:
        """One entry per structural check, True when it passes"""
        checks = []
        if StructureDetector.needs_labels(lines):
            checks.extend(block.labeled for block in StructureDetector.find_blocks(lines))

        empty = {line.line_number for line in StructureDetector.empty_headers(lines)}
        checks.extend(
            line.line_number not in empty
            for line in lines if line.kind == LineKind.SECTION_HEADER
        )
        return checks

    @staticmethod
    def structure_score(lines: List[ParsedLine]) -> float:
        checks = QualityScorer.structure_checks(lines)
        if not checks:
            return 1.0
        return sum(checks) / len(checks)

    # Chord format

    @staticmethod
    def chord_format_score(lines: List[ParsedLine]) -> float:
        """Share of recognized chords, inline tokens and bare chord lines alike"""
        chords = []
        for line in lines:
            if line.kind != LineKind.CHORD_LYRIC:
                continue
            if ChordPatternDetector.is_strict_chord_line(line.raw_text):
                chords.extend(line.raw_text.split())
            else:
                chords.extend(line.chords)
        if not chords:
            return 1.0
        recognized = sum(1 for chord in chords if ChordGrammar.is_recognized(chord))
        return recognized / len(chords)

    # Metadata

    @staticmethod
    def metadata_score(lines: List[ParsedLine]) -> float:
        present = MetadataExtractor.present_fields(lines)
        return len(present) / len(EXPECTED_METADATA)
