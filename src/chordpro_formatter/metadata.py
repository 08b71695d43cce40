"""
Metadata extraction from chart directives
"""

import re
from collections import Counter
from typing import List, Optional

from .chords import ChordGrammar
from .models import LineKind, ParsedLine, SongMetadata


# Directive kinds that must carry a value for full metadata marks
EXPECTED_METADATA = ('title', 'artist', 'key')

ARTIST_DIRECTIVES = ('artist', 'subtitle')


class MetadataExtractor:
    """Reads title/artist/key/tempo/time/capo from directive lines"""

    @staticmethod
    def directive_values(lines: List[ParsedLine]) -> dict:
        """First non-empty value per directive name"""
        values = {}
        for line in lines:
            if line.kind == LineKind.DIRECTIVE and line.value:
                values.setdefault(line.directive, line.value)
        return values

    @staticmethod
    def present_fields(lines: List[ParsedLine]) -> List[str]:
        """Expected metadata fields that have a value, in EXPECTED_METADATA order"""
        values = MetadataExtractor.directive_values(lines)
        present = []
        for name in EXPECTED_METADATA:
            if name == 'artist':
                found = any(values.get(d) for d in ARTIST_DIRECTIVES)
            else:
                found = bool(values.get(name))
            if found:
                present.append(name)
        return present

    @staticmethod
    def extract(lines: List[ParsedLine]) -> SongMetadata:
        values = MetadataExtractor.directive_values(lines)

        artist = values.get('artist') or values.get('subtitle')
        key = values.get('key')

        return SongMetadata(
            title=values.get('title'),
            artist=artist,
            key=key,
            tempo=MetadataExtractor._parse_int(values.get('tempo')),
            time_signature=values.get('time'),
            capo=MetadataExtractor._parse_int(values.get('capo')),
            inferred_key=None if key else MetadataExtractor.infer_key(lines),
        )

    @staticmethod
    def infer_key(lines: List[ParsedLine]) -> Optional[str]:
        """Guess the key as the most frequent root among recognized chords"""
        roots = Counter()
        for line in lines:
            for chord in line.chords:
                if ChordGrammar.is_recognized(chord):
                    root = ChordGrammar.root(chord)
                    if root:
                        roots[root] += 1
        if not roots:
            return None
        return roots.most_common(1)[0][0]

    @staticmethod
    def _parse_int(value: Optional[str]) -> Optional[int]:
        if not value:
            return None
        match = re.search(r'\d+', value)
        return int(match.group()) if match else None
