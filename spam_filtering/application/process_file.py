# application/process_file.py
from __future__ import annotations
import contextlib
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO, Union

from spam_filtering.application.parse_submission import parse_submission
from spam_filtering.application.threshold_filter import fallback_results, filter_query
from spam_filtering.domain.entities import THRESHOLDS, FileReport, SubmissionFile
from spam_filtering.domain.errors import OutputError, TaskCancelled
from spam_filtering.domain.interfaces import ScoreLookup
from spam_filtering.infrastructure.logger import get_logger

logger = get_logger(__name__)

PART_SUFFIX = ".part"


def output_paths(
    path: Path,
    input_root: Path,
    output_dir_for: Callable[[int], Path],
) -> Dict[int, Path]:
    """threshold -> output file; the input's path below `input_root` is mirrored under each threshold dir."""
    rel = Path(path).relative_to(input_root)
    return {t: Path(output_dir_for(t)) / rel for t in THRESHOLDS}


def _part(target: Path) -> Path:
    return target.with_name(target.name + PART_SUFFIX)


def _discard(targets: Dict[int, Path], renamed: List[Path]):
    for target in targets.values():
        with contextlib.suppress(FileNotFoundError):
            _part(target).unlink()
    # runs of a file are committed together or not at all
    for target in renamed:
        with contextlib.suppress(FileNotFoundError):
            target.unlink()


def _write_runs(
    submission: SubmissionFile,
    targets: Dict[int, Path],
    scorer: ScoreLookup,
    no_documents_id: str,
    cancel_event: Optional[threading.Event],
    report: FileReport,
):
    path, run_tag = submission.path, submission.run_tag
    with contextlib.ExitStack() as stack:
        writers: Dict[int, TextIO] = {}
        for t, target in targets.items():
            target.parent.mkdir(parents=True, exist_ok=True)
            writers[t] = stack.enter_context(
                open(_part(target), "w", encoding="ascii", newline="\n")
            )

        for query_id, entries in submission.entries.items():
            report.queries += 1
            report.documents += len(entries)
            try:
                filtered = filter_query(query_id, entries, scorer, no_documents_id, cancel_event)
                results = filtered.results
                report.lookup_failures += filtered.lookup_failures
                report.fallbacks += filtered.fallbacks
            except TaskCancelled:
                raise
            except Exception as e:
                # the query still has to show up in every run
                logger.exception(f"{path}: query {query_id} failed, writing placeholder only ({e})")
                report.failed_queries.append(query_id)
                results = fallback_results(no_documents_id)
                report.fallbacks += len(THRESHOLDS)

            try:
                for t in THRESHOLDS:
                    out = writers[t]
                    for fe in results[t]:
                        out.write(fe.to_trec_line(query_id, run_tag))
            except UnicodeEncodeError as e:
                raise OutputError(f"{path}: query {query_id} is not US-ASCII: {e}") from e


def process_submission_file(
    path: Union[str, Path],
    input_root: Union[str, Path],
    output_dir_for: Callable[[int], Path],
    scorer: ScoreLookup,
    no_documents_id: str,
    cancel_event: Optional[threading.Event] = None,
) -> FileReport:
    """
    Filter one submission file into one run per spam threshold.

    Output is staged in `<target>.part` files that are renamed into place only
    after every query was written; on any error or cancellation the staged files
    are removed, so a target either holds a complete run or does not exist.
    A ParseError is raised before any output file is created.
    """
    start = time.time()
    path = Path(path)
    submission = parse_submission(path)
    targets = output_paths(path, Path(input_root), output_dir_for)
    report = FileReport(path=str(path), run_tag=submission.run_tag)

    committed = False
    renamed: List[Path] = []
    try:
        try:
            _write_runs(submission, targets, scorer, no_documents_id, cancel_event, report)
            # writers are flushed and closed at this point
            for target in targets.values():
                os.replace(_part(target), target)
                renamed.append(target)
        except OSError as e:
            raise OutputError(f"{path}: {type(e).__name__}: {e}") from e
        committed = True
    finally:
        if not committed:
            _discard(targets, renamed)
        submission.entries.clear()

    report.elapsed_s = time.time() - start
    logger.info(
        f"{path.name}: {report.queries} queries, {report.documents} docs, "
        f"{report.lookup_failures} lookup failures, {report.fallbacks} placeholders "
        f"in {report.elapsed_s:.2f}s"
    )
    return report
