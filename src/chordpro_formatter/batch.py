#!/usr/bin/env python3
"""
Batch Orchestrator - Formats a collection of charts in parallel

Documents are independent: each one runs the full single-document
pipeline in a worker thread, and a failure in one never affects the
others. Progress is reported from the collecting thread only, so the
callback sees a strictly increasing fraction that ends at exactly 1.0.

The orchestrator never reads or writes the caller's document store while
formatting; apply_all() and undo_all() write results back afterwards.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Mapping, MutableMapping, Optional, Tuple

from .engine import FormattingEngine
from .models import BatchFormattingResult, FormattingResult
from .options import FormattingOptions

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8

ProgressCallback = Callable[[float], None]


class BatchOrchestrator:
    """Runs the formatting engine over many documents"""

    def __init__(self, engine: Optional[FormattingEngine] = None, max_workers: int = DEFAULT_MAX_WORKERS):
        self.engine = engine or FormattingEngine()
        self.max_workers = max_workers

    def _format_one(self, doc_id: str, text: str,
                    options: FormattingOptions) -> Tuple[Optional[FormattingResult], Optional[str]]:
        """
        Format a single document

        Returns: (FormattingResult or None, error message or None)
        """
        try:
            return self.engine.format_song(text, options), None
        except Exception as e:
            logger.warning("Formatting failed for %s: %s", doc_id, e)
            return None, f"{type(e).__name__}: {e}"

    def batch_format(self, documents: Mapping[str, str],
                     options: Optional[FormattingOptions] = None,
                     on_progress: Optional[ProgressCallback] = None,
                     cancel_event: Optional[threading.Event] = None) -> BatchFormattingResult:
        """
        Format every document in ``documents`` (id -> chart text)

        Args:
            options: Formatting options applied to every document
            on_progress: Called with completed/total after each document
            cancel_event: Once set, documents not yet started are skipped;
                documents already running finish normally

        Returns: BatchFormattingResult with results and failures keyed by id
        """
        options = options or self.engine.options
        total = len(documents)
        start_time = time.time()

        logger.info("Formatting %d documents with %d workers", total, self.max_workers)

        if total == 0:
            if on_progress:
                on_progress(1.0)
            return BatchFormattingResult()

        outcomes = {}
        cancelled = 0
        stopping = False

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_id = {
                executor.submit(self._format_one, doc_id, text, options): doc_id
                for doc_id, text in documents.items()
            }

            completed = 0
            for future in as_completed(future_to_id):
                if future.cancelled():
                    continue

                doc_id = future_to_id[future]
                outcomes[doc_id] = future.result()
                completed += 1

                if on_progress:
                    on_progress(completed / total)

                if cancel_event is not None and cancel_event.is_set() and not stopping:
                    stopping = True
                    cancelled = sum(1 for pending in future_to_id if pending.cancel())
                    if cancelled:
                        logger.info("Batch cancelled; skipping %d documents", cancelled)

        # Keep the caller's document order regardless of completion order
        result = BatchFormattingResult(total_songs=total, cancelled_count=cancelled)
        for doc_id in documents:
            if doc_id not in outcomes:
                continue
            formatted, error = outcomes[doc_id]
            if error is not None:
                result.failures[doc_id] = error
            else:
                result.results[doc_id] = formatted

        result.success_count = len(result.results)
        result.failure_count = len(result.failures)
        result.total_issues_fixed = sum(r.issues_fixed for r in result.results.values())
        if result.results:
            result.average_quality_improvement = (
                sum(r.improvement for r in result.results.values()) / result.success_count
            )

        logger.info(
            "Batch finished in %.2fs: %d succeeded, %d failed, %d cancelled",
            time.time() - start_time, result.success_count, result.failure_count, cancelled,
        )
        return result

    @staticmethod
    def apply_all(result: BatchFormattingResult, store: MutableMapping[str, str]) -> int:
        """Write every successful document's formatted text into ``store``"""
        for doc_id, formatted in result.results.items():
            store[doc_id] = formatted.formatted_text
        return len(result.results)

    @staticmethod
    def undo_all(result: BatchFormattingResult, store: MutableMapping[str, str]) -> int:
        """Restore every successful document's original text in ``store``.

        Failed documents were never formatted and are left alone. Running
        this twice has the same effect as running it once.
        """
        for doc_id, formatted in result.results.items():
            store[doc_id] = formatted.original_text
        return len(result.results)

    @staticmethod
    def generate_report(result: BatchFormattingResult) -> str:
        """Generate summary report"""
        total = result.total_songs
        success_rate = result.success_rate * 100

        report = []
        report.append("=" * 60)
        report.append("BATCH FORMATTING REPORT")
        report.append("=" * 60)
        report.append(f"Total songs:     {total}")
        report.append(f"Successful:      {result.success_count} ({success_rate:.1f}%)")
        report.append(f"Failed:          {result.failure_count}")
        if result.cancelled_count:
            report.append(f"Cancelled:       {result.cancelled_count}")
        report.append(f"Issues fixed:    {result.total_issues_fixed}")
        report.append(f"Avg improvement: {result.average_quality_improvement * 100:+.1f} points")
        report.append("")

        if result.results:
            grade_counts = {}
            for formatted in result.results.values():
                grade = formatted.formatted_score.grade
                grade_counts[grade] = grade_counts.get(grade, 0) + 1

            report.append("Grades after formatting:")
            for grade, count in sorted(grade_counts.items()):
                pct = count / result.success_count * 100
                report.append(f"  {grade:3} {count:6} ({pct:.1f}%)")
            report.append("")

            remaining = {}
            for formatted in result.results.values():
                for issue in formatted.issues:
                    if not issue.auto_fixable:
                        remaining[issue.kind.value] = remaining.get(issue.kind.value, 0) + 1
            if remaining:
                report.append("Issues needing manual attention:")
                for kind, count in sorted(remaining.items(), key=lambda x: -x[1]):
                    report.append(f"  [{count:4}] {kind}")
                report.append("")

        if result.failures:
            report.append("Failures:")
            for doc_id, error in sorted(result.failures.items()):
                # Truncate long errors
                if len(error) > 60:
                    error = error[:57] + "..."
                report.append(f"  {doc_id}: {error}")
            report.append("")

        report.append("=" * 60)

        return "\n".join(report)
