#!/usr/bin/env python3
"""
Chart Parser - Classifies the lines of a chord-annotated lyric sheet

Every line becomes a ParsedLine of one of four kinds, checked in priority
order:

1. Blank         - only whitespace
2. Directive     - {title: Amazing Grace}, {start_of_chorus}
3. SectionHeader - the whole line is a single bracket pair, e.g. [Chorus]
4. ChordLyric    - everything else; inline [C]chords are pulled out and
                   anchored to the lyric character that follows them

Parsing never fails. Malformed brackets are kept as literal lyric text.
"""

import re
from typing import List, Optional, Tuple

from .models import ChordPosition, LineKind, ParsedLine


DIRECTIVE_RE = re.compile(r'^\s*\{\s*([A-Za-z][\w-]*)\s*(?::(.*))?\}\s*$')
SECTION_HEADER_RE = re.compile(r'^\[([^\[\]]*)\]$')

DIRECTIVE_ALIASES = {
    't': 'title',
    'st': 'subtitle',
    'c': 'comment',
    'ci': 'comment_italic',
    'cb': 'comment_box',
    'soc': 'start_of_chorus',
    'eoc': 'end_of_chorus',
    'sov': 'start_of_verse',
    'eov': 'end_of_verse',
    'sob': 'start_of_bridge',
    'eob': 'end_of_bridge',
    'sot': 'start_of_tab',
    'eot': 'end_of_tab',
}


class ChartParser:
    """Turns chart text into a list of ParsedLine"""

    @staticmethod
    def parse(text: str) -> List[ParsedLine]:
        """Classify every line of ``text``; line numbers are 1-based"""
        return [
            ChartParser.parse_line(raw, number)
            for number, raw in enumerate(text.split('\n'), 1)
        ]

    @staticmethod
    def parse_line(raw: str, line_number: int) -> ParsedLine:
        stripped = raw.strip()

        if not stripped:
            return ParsedLine(LineKind.BLANK, raw, line_number)

        directive = ChartParser.parse_directive(raw)
        if directive:
            name, value = directive
            return ParsedLine(LineKind.DIRECTIVE, raw, line_number, directive=name, value=value)

        header = SECTION_HEADER_RE.match(stripped)
        if header:
            return ParsedLine(
                LineKind.SECTION_HEADER, raw, line_number,
                section_name=header.group(1).strip()
            )

        lyric, positions = ChartParser.split_chords(raw)
        return ParsedLine(
            LineKind.CHORD_LYRIC, raw, line_number,
            chord_positions=positions, lyric_text=lyric
        )

    @staticmethod
    def parse_directive(raw: str) -> Optional[Tuple[str, Optional[str]]]:
        """Return (directive, value) for a {directive: value} line, else None"""
        match = DIRECTIVE_RE.match(raw)
        if not match:
            return None
        name = match.group(1).lower()
        name = DIRECTIVE_ALIASES.get(name, name)
        value = match.group(2)
        if value is not None:
            value = value.strip() or None
        return name, value

    @staticmethod
    def find_chord_spans(raw: str) -> List[Tuple[int, int]]:
        """(open, close) bracket indices of every well-formed inline chord.

        A chord runs from '[' to the next ']' with no '[' in between; an
        unmatched bracket is left alone.
        """
        spans = []
        i = 0
        while i < len(raw):
            if raw[i] == '[':
                close = raw.find(']', i + 1)
                nested = raw.find('[', i + 1)
                if close == -1:
                    break
                if nested != -1 and nested < close:
                    # Inner '[' starts the candidate instead
                    i = nested
                    continue
                spans.append((i, close))
                i = close + 1
            else:
                i += 1
        return spans

    @staticmethod
    def split_chords(raw: str) -> Tuple[str, List[ChordPosition]]:
        """Remove chord tokens from a line, recording the lyric offset of each"""
        lyric_parts = []
        positions = []
        lyric_length = 0
        cursor = 0

        for open_idx, close_idx in ChartParser.find_chord_spans(raw):
            segment = raw[cursor:open_idx]
            lyric_parts.append(segment)
            lyric_length += len(segment)
            positions.append(ChordPosition(raw[open_idx + 1:close_idx], lyric_length))
            cursor = close_idx + 1

        lyric_parts.append(raw[cursor:])
        return ''.join(lyric_parts), positions


def parse(text: str) -> List[ParsedLine]:
    return ChartParser.parse(text)
