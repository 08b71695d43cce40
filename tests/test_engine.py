"""
Tests for the single-document formatting engine
"""

import asyncio

import pytest
import yaml

from chordpro_formatter import (
    ChangeType,
    ChordPattern,
    DetectedSection,
    FormattingEngine,
    FormattingOptions,
    Impact,
    InvariantViolation,
    IssueKind,
    QualityScore,
    SongMetadata,
)
from chordpro_formatter.engine import format_song, get_quality_score, preview_formatting


class TestFormatSong:
    """Tests for FormattingEngine.format_song()"""

    def test_example_chart(self):
        result = FormattingEngine().format_song("{title: }\n\n\n[G]Amazing [c]grace")
        assert result.formatted_text == "{title: }\n\n[G]Amazing [C]grace"
        assert result.issues_fixed == 2
        remaining = [issue for issue in result.issues if not issue.auto_fixable]
        assert [issue.kind for issue in remaining] == [IssueKind.MISSING_METADATA] * 3
        assert remaining[0].description == 'Title directive has no value'

    def test_messy_chart_scores(self, messy_chart):
        result = format_song(messy_chart)
        assert result.quality_score.percentage == 56
        assert result.formatted_score.spacing == 1.0
        assert result.formatted_score.structure == 1.0
        assert result.formatted_score.chord_format == 1.0
        assert result.formatted_score.metadata == pytest.approx(1 / 3)
        assert result.improvement > 0

    def test_original_text_is_kept(self, messy_chart):
        result = format_song(messy_chart)
        assert result.original_text == messy_chart
        assert result.formatted_text != messy_chart

    def test_clean_chart(self, clean_chart):
        result = format_song(clean_chart)
        assert result.formatted_text == clean_chart
        assert result.changes == []
        assert result.issues == []
        assert result.formatted_score == result.quality_score

    def test_extracted_data(self, clean_chart):
        result = format_song(clean_chart)
        assert result.detected_pattern == ChordPattern.INLINE_BRACKETS
        assert result.extracted_chords == ['G', 'C', 'D']
        assert result.extracted_metadata.title == 'Amazing Grace'
        assert result.extracted_metadata.artist == 'John Newton'
        assert result.extracted_metadata.key == 'G'
        assert result.extracted_metadata.inferred_key is None

    def test_inferred_key(self, messy_chart):
        metadata = format_song(messy_chart).extracted_metadata
        assert metadata.key is None
        assert metadata.inferred_key == 'G'

    def test_metadata_fields(self):
        text = "{title: X}\n{time: 3/4}\n{tempo: 96 bpm}\n{capo: 2}"
        metadata = format_song(text).extracted_metadata
        assert metadata.time_signature == '3/4'
        assert metadata.tempo == 96
        assert metadata.capo == 2

    def test_metadata_extraction_can_be_disabled(self, clean_chart):
        result = format_song(clean_chart, FormattingOptions(extract_metadata=False))
        assert result.extracted_metadata == SongMetadata()

    def test_all_rules_disabled(self, messy_chart):
        options = FormattingOptions.from_dict({
            'remove_extra_blank_lines': False,
            'align_chords': False,
            'fix_spacing': False,
            'auto_label_sections': False,
            'standardize_chords': False,
            'extract_metadata': False,
        })
        result = format_song(messy_chart, options)
        assert result.issues == []
        assert result.changes == []
        assert result.formatted_text == messy_chart

    def test_per_call_options_override_engine_options(self, messy_chart):
        engine = FormattingEngine(FormattingOptions.preset('minimal'))
        assert '[Verse 1]' not in engine.format_song(messy_chart).formatted_text
        assert '[Verse 1]' in engine.format_song(messy_chart, FormattingOptions()).formatted_text

    def test_serializes_to_yaml(self, messy_chart):
        data = yaml.safe_load(format_song(messy_chart).to_yaml())
        assert data['quality_score']['grade'] == 'F'
        assert data['detected_pattern'] == 'inline-brackets'
        assert data['changes'][0]['type'] == 'blank-lines-removed'


class TestPreviewAndHelpers:
    """Tests for preview_formatting(), apply_fixes() and get_quality_score()"""

    def test_preview_does_not_change_text(self, messy_chart):
        result = preview_formatting(messy_chart)
        assert result.formatted_text == messy_chart
        assert result.changes == []
        assert result.issues
        assert result.formatted_score == result.quality_score

    def test_apply_fixes(self, messy_chart):
        engine = FormattingEngine()
        formatted, changes = engine.apply_fixes(messy_chart)
        assert formatted == engine.format_song(messy_chart).formatted_text
        assert len(changes) == 6

    def test_apply_selected_fixes(self, messy_chart):
        engine = FormattingEngine()
        issues = [
            issue for issue in engine.detect_issues(messy_chart)
            if issue.kind == IssueKind.STRAY_WHITESPACE
        ]
        formatted, changes = engine.apply_fixes(messy_chart, issues)
        assert len(changes) == 1
        assert 'sound   ' not in formatted

    def test_get_quality_score(self, clean_chart):
        assert get_quality_score(clean_chart).percentage == 100
        assert FormattingEngine().get_quality_score(clean_chart).grade == 'A'


class TestSuggestions:
    """Tests for the suggestions attached to a result"""

    def titles(self, text, options=None):
        return [s.title for s in preview_formatting(text, options).suggestions]

    def test_clean_chart_has_no_suggestions(self, clean_chart):
        assert self.titles(clean_chart) == []

    def test_collision_suggestion(self):
        result = preview_formatting('{title: X}\n{artist: Y}\n{key: G}\n[G][C]like me')
        assert [s.title for s in result.suggestions] == ['Space Out Crowded Chords']
        assert result.suggestions[0].impact == Impact.MAJOR
        assert 'line 4' in result.suggestions[0].description

    def test_unrecognized_chord_suggestion(self):
        result = preview_formatting('{title: X}\n{artist: Y}\n{key: G}\n[Xyz]la [G]la')
        suggestion = result.suggestions[0]
        assert suggestion.title == 'Review Chord Spelling'
        assert 'Xyz' in suggestion.description

    def test_metadata_suggestion_mentions_inferred_key(self, messy_chart):
        result = preview_formatting(messy_chart)
        metadata = [s for s in result.suggestions if s.title == 'Add Missing Metadata'][0]
        assert 'artist and key' in metadata.description
        assert 'key of G' in metadata.description
        assert metadata.impact == Impact.MAJOR

    def test_pattern_conversion_suggestion(self, clean_chart):
        options = FormattingOptions(target_pattern=ChordPattern.CHORD_OVER_LYRIC)
        assert self.titles(clean_chart, options) == ['Convert Chord Style']

    def test_empty_section_suggestion(self):
        titles = self.titles('{title: X}\n{artist: Y}\n{key: G}\n[Intro]\n\n[Verse]\n[G]la la')
        assert titles == ['Fill In Empty Sections']


class TestAsync:
    def test_format_song_async(self, messy_chart):
        engine = FormattingEngine()
        result = asyncio.run(engine.format_song_async(messy_chart))
        assert result == engine.format_song(messy_chart)


class TestMonotonicCheck:
    """Tests for the guard against fixes that lower a sub-score"""

    def test_lower_sub_score_raises(self):
        before = QualityScore(1.0, 1.0, 1.0, 1.0, 1.0, 1.0)
        after = QualityScore(1.0, 0.5, 1.0, 1.0, 1.0, 0.9)
        with pytest.raises(InvariantViolation) as excinfo:
            FormattingEngine._check_monotonic(before, after)
        assert excinfo.value.dimension == 'alignment'

    def test_equal_scores_pass(self):
        score = QualityScore(0.5, 1.0, 0.0, 1.0, 1.0, 0.7)
        FormattingEngine._check_monotonic(score, score)


class TestChordOverLyricConversion:
    """Tests for converging chord-over-lyric charts on inline chords"""

    chart = "{title: T}\n{artist: A}\n{key: G}\nG       C\nAmazing grace\nD       G\nhow sweet the sound"

    def test_chords_move_inline(self):
        result = format_song(self.chart)
        assert result.detected_pattern == ChordPattern.CHORD_OVER_LYRIC
        assert result.formatted_text == (
            "{title: T}\n{artist: A}\n{key: G}\n"
            "[G]Amazing [C]grace\n"
            "[D]how swee[G]t the sound"
        )
        assert [change.type for change in result.changes] == [ChangeType.CHORDS_INLINED] * 2
        assert result.formatted_score == result.quality_score

    def test_second_pass_changes_nothing(self):
        once = format_song(self.chart).formatted_text
        assert format_song(once).changes == []

    def test_no_conversion_suggestion_when_converting(self):
        titles = [s.title for s in preview_formatting(self.chart).suggestions]
        assert 'Convert Chord Style' not in titles

    def test_minimal_preset_keeps_chord_lines(self):
        result = format_song(self.chart, FormattingOptions.preset('minimal'))
        assert result.formatted_text == self.chart
        assert [s.title for s in result.suggestions] == []


class TestSections:
    """Tests for FormattingResult.sections"""

    def test_inferred_labels(self, repeated_chorus_chart):
        sections = preview_formatting(repeated_chorus_chart).sections
        assert sections == [
            DetectedSection(5, 'Verse 1', False),
            DetectedSection(8, 'Chorus', False),
            DetectedSection(11, 'Verse 2', False),
            DetectedSection(14, 'Chorus', False),
        ]

    def test_existing_labels(self, clean_chart):
        sections = format_song(clean_chart).sections
        assert sections == [
            DetectedSection(6, 'Verse 1', True),
            DetectedSection(10, 'Verse 2', True),
        ]

    def test_sections_describe_the_original_text(self, messy_chart):
        result = format_song(messy_chart)
        assert [section.start_line for section in result.sections] == [5, 8]
        assert not any(section.labeled for section in result.sections)

    def test_serialized(self, clean_chart):
        data = format_song(clean_chart).to_dict()
        assert data['sections'][0] == {'start_line': 6, 'label': 'Verse 1', 'labeled': True}
