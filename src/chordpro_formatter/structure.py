"""
Section structure of a parsed chart

A block is a maximal run of consecutive ChordLyric lines. A block is
labeled when a section header or a section/comment directive appears after
the previous block (blank lines and other directives may sit in between),
or when it sits inside an open {start_of_*} ... {end_of_*} environment.
"""

from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Dict, List, Optional

from .chords import ChordPatternDetector
from .models import DetectedSection, LineKind, ParsedLine


# Charts shorter than this (in ChordLyric lines) need no section labels
MIN_LYRIC_LINES_FOR_SECTIONS = 4
# Two blocks with at least this lyric similarity are treated as a repeated chorus
REPEAT_SIMILARITY = 0.7

LABEL_DIRECTIVES = {'comment', 'comment_italic', 'comment_box'}


@dataclass
class SectionBlock:
    """Consecutive ChordLyric lines"""
    lines: List[ParsedLine] = field(default_factory=list)
    labeled: bool = False
    label: Optional[str] = None

    @property
    def start_line(self) -> int:
        return self.lines[0].line_number

    @property
    def content(self) -> str:
        """Normalized lyric content used for repetition matching; bare chord lines are skipped"""
        return ' '.join(
            ' '.join(line.lyric_text.lower().split()) for line in self.lines
            if not ChordPatternDetector.is_strict_chord_line(line.raw_text)
        ).strip()


class StructureDetector:
    """Finds section blocks and infers labels for the unlabeled ones"""

    @staticmethod
    def find_blocks(lines: List[ParsedLine]) -> List[SectionBlock]:
        blocks = []
        current = None
        pending_label = False
        pending_name = None
        inside_environment = False

        for line in lines:
            if line.kind == LineKind.CHORD_LYRIC:
                if current is None:
                    current = SectionBlock(
                        labeled=pending_label or inside_environment,
                        label=pending_name if (pending_label or inside_environment) else None,
                    )
                    pending_label = False
                    pending_name = None
                current.lines.append(line)
                continue

            if current is not None:
                blocks.append(current)
                current = None

            if line.kind == LineKind.BLANK:
                continue

            if line.kind == LineKind.SECTION_HEADER:
                pending_label = True
                pending_name = line.section_name
            elif line.directive.startswith('start_of_'):
                inside_environment = True
                pending_label = True
                pending_name = line.value or line.directive[len('start_of_'):]
            elif line.directive.startswith('end_of_'):
                inside_environment = False
            elif line.directive in LABEL_DIRECTIVES:
                pending_label = True
                pending_name = line.value
            # Other directives (key, tempo, ...) neither add nor clear a label

        if current is not None:
            blocks.append(current)

        return blocks

    @staticmethod
    def lyric_line_count(lines: List[ParsedLine]) -> int:
        """ChordLyric lines, counting a chord-over-lyric pair once"""
        count = sum(1 for line in lines if line.kind == LineKind.CHORD_LYRIC)
        return count - len(ChordPatternDetector.chord_over_lyric_pairs(lines))

    @staticmethod
    def needs_labels(lines: List[ParsedLine]) -> bool:
        return StructureDetector.lyric_line_count(lines) >= MIN_LYRIC_LINES_FOR_SECTIONS

    @staticmethod
    def empty_headers(lines: List[ParsedLine]) -> List[ParsedLine]:
        """Section headers with no ChordLyric line before the next header"""
        empty = []
        open_header = None
        has_content = False

        for line in lines:
            if line.kind == LineKind.SECTION_HEADER:
                if open_header is not None and not has_content:
                    empty.append(open_header)
                open_header = line
                has_content = False
            elif line.kind == LineKind.CHORD_LYRIC:
                has_content = True

        if open_header is not None and not has_content:
            empty.append(open_header)
        return empty

    @staticmethod
    def _is_repeated(index: int, contents: List[str]) -> bool:
        content = contents[index]
        if not content:
            return False
        for other_index, other in enumerate(contents):
            if other_index == index or not other:
                continue
            if SequenceMatcher(None, content, other).ratio() >= REPEAT_SIMILARITY:
                return True
        return False

    @staticmethod
    def infer_labels(blocks: List[SectionBlock]) -> Dict[int, str]:
        """Map start line -> inferred label for every unlabeled block.

        Heuristic, in document order:
        - a block with no lyric text is "Instrumental"
        - the first block is always a verse
        - a later block whose lyrics repeat elsewhere in the chart is "Chorus"
        - anything else is "Verse n", counting verse headers already present
        """
        contents = [block.content for block in blocks]
        labels = {}
        verse_count = 0

        for index, block in enumerate(blocks):
            if block.labeled:
                if block.label and block.label.lower().startswith('verse'):
                    verse_count += 1
                continue

            if not any(ch.isalnum() for ch in contents[index]):
                labels[block.start_line] = 'Instrumental'
            elif index > 0 and StructureDetector._is_repeated(index, contents):
                labels[block.start_line] = 'Chorus'
            else:
                verse_count += 1
                labels[block.start_line] = f'Verse {verse_count}'

        return labels

    @staticmethod
    def sections(lines: List[ParsedLine]) -> List[DetectedSection]:
        """Every block with its existing label, or the inferred one when unlabeled"""
        blocks = StructureDetector.find_blocks(lines)
        inferred = StructureDetector.infer_labels(blocks)
        return [
            DetectedSection(
                start_line=block.start_line,
                label=block.label if block.labeled else inferred[block.start_line],
                labeled=block.labeled,
            )
            for block in blocks
        ]
