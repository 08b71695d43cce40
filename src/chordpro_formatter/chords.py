"""
Chord grammar and chord-pattern detection

A recognized chord is ROOT [ACCIDENTAL] [SUFFIX] [/BASS], e.g. G, F#m7,
Bbmaj7, Dsus4, C/E, Am7b5. Anything else is an opaque token: the engine
never tries to correct musical content, it only restores canonical casing
and accidental spelling when the intended chord is unambiguous.
"""

import re
from typing import Dict, List, Optional, Tuple

from .models import ChordPattern, LineKind, ParsedLine


_SUFFIX = (
    r'(?:maj|min|dim|aug|sus|add|m|M|\+|°|ø)?'
    r'(?:\d{1,2})?'
    r'(?:(?:maj|sus|add|b|#)\d{1,2})*'
    r'(?:\([^()]*\))?'
)
CHORD_RE = re.compile(r'^[A-G](?:#|b)?' + _SUFFIX + r'(?:/[A-G](?:#|b)?)?$')
NO_CHORD = {'N.C.', 'NC'}

# Loose split used for re-casing: root, accidental, suffix, optional bass
_LOOSE_RE = re.compile(r'^([A-Ga-g])(#|b)?(.*?)(?:/([A-Ga-g])(#|b)?)?$')

NASHVILLE_RE = re.compile(r'^[b#]?[1-7](?:m|maj7|7|sus4?|dim|\+)?(?:/[b#]?[1-7])?$')
ROOT_RE = re.compile(r'^([A-G](?:#|b)?)')

# A bare-word line counts as a chord line when this share of its words are chords
CHORD_LINE_RATIO = 0.7
# Share of chord-bearing lines a pattern needs before it counts as present
SIGNIFICANT_PATTERN_SHARE = 0.2


class ChordGrammar:
    """Recognition and canonicalization of chord tokens"""

    @staticmethod
    def is_recognized(token: str) -> bool:
        return token in NO_CHORD or bool(CHORD_RE.match(token))

    @staticmethod
    def _variants(token: str):
        """Loosely split a token; returns (as_written, lowered_suffix, suffix) or None"""
        cleaned = re.sub(r'\s+', '', token).replace('♯', '#').replace('♭', 'b')
        match = _LOOSE_RE.match(cleaned)
        if not match:
            return None
        root, accidental, suffix, bass, bass_accidental = match.groups()

        def build(sfx: str) -> str:
            chord = root.upper() + (accidental or '') + sfx
            if bass:
                chord += '/' + bass.upper() + (bass_accidental or '')
            return chord

        return build(suffix), build(suffix.lower()), suffix

    @staticmethod
    def is_ambiguous(token: str) -> bool:
        """True when casing is the only thing wrong but the quality can't be told apart.

        An upper-case ``M`` reads as major while ``m`` reads as minor, so an
        all-caps suffix like ``M7SUS4`` can't be safely lower-cased.
        """
        if ChordGrammar.is_recognized(token):
            return False
        variants = ChordGrammar._variants(token)
        if not variants:
            return False
        as_written, lowered, suffix = variants
        if ChordGrammar.is_recognized(as_written) or not ChordGrammar.is_recognized(lowered):
            return False
        return suffix.startswith('M') and not suffix.upper().startswith(('MAJ', 'MIN'))

    @staticmethod
    def canonical_form(token: str) -> Optional[str]:
        """Canonical spelling of a chord token, or None when it can't be determined.

        Recognized tokens are returned unchanged.
        """
        if ChordGrammar.is_recognized(token):
            return token
        if ChordGrammar.is_ambiguous(token):
            return None
        variants = ChordGrammar._variants(token)
        if not variants:
            return None
        as_written, lowered, _ = variants
        if ChordGrammar.is_recognized(as_written):
            return as_written
        if ChordGrammar.is_recognized(lowered):
            return lowered
        return None

    @staticmethod
    def root(chord: str) -> Optional[str]:
        match = ROOT_RE.match(chord)
        return match.group(1) if match else None


class ChordPatternDetector:
    """Works out which chord display convention a chart uses"""

    @staticmethod
    def is_bare_chord_line(text: str) -> bool:
        """Line of space-separated chord names with no brackets (chord-over-lyric)"""
        if '[' in text or ']' in text:
            return False
        words = text.split()
        if not words:
            return False
        chord_words = sum(1 for word in words if ChordGrammar.is_recognized(word))
        return chord_words / len(words) > CHORD_LINE_RATIO

    @staticmethod
    def is_strict_chord_line(text: str) -> bool:
        """Bare chord line where every word is a recognized chord"""
        if '[' in text or ']' in text:
            return False
        words = text.split()
        return bool(words) and all(ChordGrammar.is_recognized(word) for word in words)

    @staticmethod
    def is_plain_lyric(text: str) -> bool:
        """Non-blank line with no brackets or braces that isn't itself a chord line"""
        if not text.strip() or any(ch in text for ch in '[]{}'):
            return False
        return not ChordPatternDetector.is_strict_chord_line(text)

    @staticmethod
    def chord_over_lyric_pairs(lines: List[ParsedLine]) -> List[Tuple[ParsedLine, ParsedLine]]:
        """(chord line, lyric line) pairs where a bare chord line sits directly above a lyric.

        A pair renders as a single line of lyrics with chords, so scoring
        counts it once.
        """
        pairs = []
        index = 0
        while index < len(lines) - 1:
            chord_line, lyric_line = lines[index], lines[index + 1]
            if (chord_line.kind == LineKind.CHORD_LYRIC and lyric_line.kind == LineKind.CHORD_LYRIC
                    and ChordPatternDetector.is_strict_chord_line(chord_line.raw_text)
                    and ChordPatternDetector.is_plain_lyric(lyric_line.raw_text)):
                pairs.append((chord_line, lyric_line))
                index += 2
            else:
                index += 1
        return pairs

    @staticmethod
    def is_nashville_line(text: str) -> bool:
        if '[' in text or ']' in text:
            return False
        words = text.split()
        if not words:
            return False
        numbers = sum(1 for word in words if NASHVILLE_RE.match(word))
        return numbers / len(words) > CHORD_LINE_RATIO

    @staticmethod
    def analyze(lines: List[ParsedLine]) -> Dict[ChordPattern, int]:
        """Count chord-bearing lines per convention"""
        counts = {
            ChordPattern.INLINE_BRACKETS: 0,
            ChordPattern.CHORD_OVER_LYRIC: 0,
            ChordPattern.NASHVILLE: 0,
        }
        for line in lines:
            if line.kind != LineKind.CHORD_LYRIC:
                continue
            if line.chord_positions:
                counts[ChordPattern.INLINE_BRACKETS] += 1
            elif ChordPatternDetector.is_nashville_line(line.raw_text):
                counts[ChordPattern.NASHVILLE] += 1
            elif ChordPatternDetector.is_bare_chord_line(line.raw_text):
                counts[ChordPattern.CHORD_OVER_LYRIC] += 1
        return counts

    @staticmethod
    def detect(lines: List[ParsedLine]) -> ChordPattern:
        counts = ChordPatternDetector.analyze(lines)
        total = sum(counts.values())
        if total == 0:
            return ChordPattern.UNKNOWN

        significant = [
            pattern for pattern, count in counts.items()
            if count / total > SIGNIFICANT_PATTERN_SHARE
        ]
        if len(significant) > 1:
            return ChordPattern.MIXED
        return max(counts, key=lambda pattern: counts[pattern])


def merge_chord_line(chord_text: str, lyric_text: str) -> str:
    """Rewrite a chord line and the lyric line below it as one line of inline chords.

    Each chord lands at its column over the lyric. Indentation shared by both
    lines is dropped, and a lyric shorter than the chord line is padded so
    trailing chords keep their columns.

    >>> merge_chord_line('G       C', 'Amazing grace')
    '[G]Amazing [C]grace'
    """
    chords = [(match.start(), match.group()) for match in re.finditer(r'\S+', chord_text)]
    lyric = lyric_text.rstrip()
    indent = min(len(lyric) - len(lyric.lstrip()), chords[0][0])
    lyric = lyric[indent:]

    parts = []
    cursor = 0
    for column, chord in chords:
        column -= indent
        if column > len(lyric):
            lyric = lyric.ljust(column)
        parts.append(lyric[cursor:column])
        parts.append(f'[{chord}]')
        cursor = column
    parts.append(lyric[cursor:])
    return ''.join(parts)


def unique_chords(lines: List[ParsedLine]) -> List[str]:
    """Chord tokens in first-seen order"""
    seen = {}
    for line in lines:
        for chord in line.chords:
            seen.setdefault(chord, None)
    return list(seen)
