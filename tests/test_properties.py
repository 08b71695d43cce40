"""
Property tests over seeded random charts

Charts are assembled from a fixed pool of tricky lines (see conftest.py),
so every run sees the same inputs.
"""

import random

from conftest import build_random_chart

from chordpro_formatter import (
    BatchOrchestrator,
    ChordPatternDetector,
    FixEngine,
    FormattingEngine,
    IssueDetector,
    QualityScorer,
)
from chordpro_formatter.parser import parse


def score_of(text):
    return QualityScorer.score(parse(text))


class TestDeterminism:
    def test_scoring_is_repeatable(self, random_charts):
        for text in random_charts:
            assert score_of(text) == score_of(text)

    def test_formatting_is_repeatable(self, random_charts):
        engine = FormattingEngine()
        for text in random_charts[:50]:
            assert engine.format_song(text) == engine.format_song(text)


class TestMonotonicity:
    """Fixes never lower any sub-score"""

    def test_full_fix(self, random_charts):
        engine = FormattingEngine()
        for text in random_charts:
            result = engine.format_song(text)
            before = result.quality_score.sub_scores()
            after = result.formatted_score.sub_scores()
            for name, value in before.items():
                assert after[name] >= value, (name, text)
            assert result.formatted_score.overall >= result.quality_score.overall - 1e-9

    def test_random_subsets(self, random_charts):
        rng = random.Random(7)
        for text in random_charts:
            issues = [i for i in IssueDetector.detect(parse(text)) if i.auto_fixable]
            subset = [issue for issue in issues if rng.random() < 0.5]
            if not subset:
                continue
            formatted, _ = FixEngine.apply(text, subset)
            before = score_of(text).sub_scores()
            after = score_of(formatted).sub_scores()
            for name, value in before.items():
                assert after[name] >= value, (name, text)


class TestIdempotence:
    def test_second_pass_changes_nothing(self, random_charts):
        engine = FormattingEngine()
        for text in random_charts:
            once = engine.format_song(text).formatted_text
            second = engine.format_song(once)
            assert second.changes == [], text
            assert second.formatted_text == once


class TestDetectorFixerConsistency:
    def test_every_fixable_issue_is_applied(self, random_charts):
        for text in random_charts:
            issues = [i for i in IssueDetector.detect(parse(text)) if i.auto_fixable]
            _, changes = FixEngine.apply(text, issues)
            assert sorted(c.issue_id for c in changes) == sorted(i.id for i in issues), text

    def test_changes_only_come_from_selected_issues(self, random_charts):
        rng = random.Random(11)
        for text in random_charts:
            issues = [i for i in IssueDetector.detect(parse(text)) if i.auto_fixable]
            subset = [issue for issue in issues if rng.random() < 0.5]
            if not subset:
                continue
            _, changes = FixEngine.apply(text, subset)
            assert {c.issue_id for c in changes} <= {i.id for i in subset}


class TestBatchProperties:
    def test_batch_matches_individual_runs(self):
        rng = random.Random(3)
        documents = {f'doc-{i}': build_random_chart(rng) for i in range(10)}
        result = BatchOrchestrator(max_workers=4).batch_format(documents)
        engine = FormattingEngine()
        assert result.success_count == 10
        for doc_id, text in documents.items():
            assert result.results[doc_id] == engine.format_song(text)

    def test_undo_after_apply(self):
        rng = random.Random(5)
        documents = {f'doc-{i}': build_random_chart(rng) for i in range(10)}
        store = dict(documents)
        result = BatchOrchestrator().batch_format(store)
        BatchOrchestrator.apply_all(result, store)
        BatchOrchestrator.undo_all(result, store)
        assert store == documents
        BatchOrchestrator.undo_all(result, store)
        assert store == documents


class TestChordOverLyricCharts:
    """The same guarantees on charts written with chords above the lyrics"""

    def test_full_fix_is_monotonic(self, chord_over_lyric_charts):
        engine = FormattingEngine()
        for text in chord_over_lyric_charts:
            result = engine.format_song(text)
            before = result.quality_score.sub_scores()
            after = result.formatted_score.sub_scores()
            for name, value in before.items():
                assert after[name] >= value, (name, text)

    def test_random_subsets_are_monotonic(self, chord_over_lyric_charts):
        rng = random.Random(13)
        for text in chord_over_lyric_charts:
            issues = [i for i in IssueDetector.detect(parse(text)) if i.auto_fixable]
            subset = [issue for issue in issues if rng.random() < 0.5]
            if not subset:
                continue
            formatted, _ = FixEngine.apply(text, subset)
            before = score_of(text).sub_scores()
            after = score_of(formatted).sub_scores()
            for name, value in before.items():
                assert after[name] >= value, (name, text)

    def test_second_pass_changes_nothing(self, chord_over_lyric_charts):
        engine = FormattingEngine()
        for text in chord_over_lyric_charts:
            once = engine.format_song(text).formatted_text
            assert engine.format_song(once).changes == [], text

    def test_every_fixable_issue_is_applied(self, chord_over_lyric_charts):
        for text in chord_over_lyric_charts:
            issues = [i for i in IssueDetector.detect(parse(text)) if i.auto_fixable]
            _, changes = FixEngine.apply(text, issues)
            assert sorted(c.issue_id for c in changes) == sorted(i.id for i in issues), text

    def test_no_chord_line_left_above_a_lyric(self, chord_over_lyric_charts):
        engine = FormattingEngine()
        for text in chord_over_lyric_charts:
            formatted = engine.format_song(text).formatted_text
            assert ChordPatternDetector.chord_over_lyric_pairs(parse(formatted)) == [], text
