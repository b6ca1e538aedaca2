# application/scheduler.py
from __future__ import annotations
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple, Union

from tqdm import tqdm

from spam_filtering.domain.entities import FileReport, RunReport
from spam_filtering.domain.errors import TaskCancelled
from spam_filtering.infrastructure.logger import format_elapsed, get_logger

logger = get_logger(__name__)

# (submission path, cancel event) -> report; raises on file level failure
FileTask = Callable[[Path, threading.Event], FileReport]


class ProgressCounter:
    """Finished/total task counts, updated from worker callbacks and read by the waiting loop."""

    def __init__(self, total: int):
        self.total = total
        self._completed = 0
        self._lock = threading.Lock()

    def increment(self):
        with self._lock:
            self._completed += 1

    def snapshot(self) -> Tuple[int, int]:
        with self._lock:
            return self._completed, self.total

    def percentage(self) -> float:
        done, total = self.snapshot()
        return 100.0 * done / total if total else 100.0


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def run_pipeline(
    input_files: Iterable[Union[str, Path]],
    task: FileTask,
    num_threads: int = 4,
    timeout_s: Optional[float] = None,
    poll_interval_s: float = 10.0,
    cancel_event: Optional[threading.Event] = None,
    show_progress: bool = True,
) -> RunReport:
    """
    Run `task` once per input file on a pool of `num_threads` workers and wait
    for all of them, logging progress every `poll_interval_s` seconds.

    A failing file is recorded in the report and never retried; its siblings
    keep running. When `timeout_s` elapses, or `cancel_event` is set from
    outside, or the wait is interrupted, queued files are dropped and running
    ones are told to stop through `cancel_event`.
    """
    files = list(dict.fromkeys(Path(p) for p in input_files))
    report = RunReport(discovered=len(files))
    if not files:
        logger.warning("no submission files to process")
        return report

    cancel_event = cancel_event if cancel_event is not None else threading.Event()
    progress = ProgressCounter(len(files))
    start = time.time()
    deadline = start + timeout_s if timeout_s else None

    logger.info(f"there are {len(files)} many TREC submission files found to be processed with {num_threads} threads")

    futures: Dict[Future, Path] = {}
    executor = ThreadPoolExecutor(max_workers=num_threads, thread_name_prefix="spam-filter")
    bar = tqdm(total=len(files), desc="Filtering submissions", unit="file", disable=not show_progress)
    shown = 0
    stop = False
    try:
        for p in files:
            fut = executor.submit(task, p, cancel_event)
            fut.add_done_callback(lambda _f: progress.increment())
            futures[fut] = p

        pending = set(futures)
        while pending:
            if cancel_event.is_set():
                logger.error(f"cancellation requested, abandoning {len(pending)} unfinished tasks")
                stop = True
                break
            wait_s = poll_interval_s
            if deadline is not None:
                remaining = deadline - time.time()
                if remaining <= 0:
                    logger.error(f"global timeout of {timeout_s}s exceeded, cancelling {len(pending)} unfinished tasks")
                    report.timed_out = True
                    stop = True
                    break
                wait_s = min(wait_s, remaining)

            _, pending = wait(pending, timeout=wait_s)
            done, _total = progress.snapshot()
            bar.update(done - shown)
            shown = done
            logger.info(f"{progress.percentage():.2f} percentage completed in {format_elapsed(time.time() - start)}")
    except KeyboardInterrupt:
        logger.error("interrupted, cancelling unfinished tasks")
        report.interrupted = True
        stop = True
    finally:
        if stop:
            cancel_event.set()
        executor.shutdown(wait=True, cancel_futures=stop)
        done, _total = progress.snapshot()
        bar.update(done - shown)
        bar.close()

    for fut, p in futures.items():
        key = str(p)
        if fut.cancelled():
            report.cancelled.append(key)
            continue
        exc = fut.exception()
        if exc is None:
            report.completed.append(fut.result())
        elif isinstance(exc, TaskCancelled):
            report.cancelled.append(key)
        else:
            report.failed[key] = _describe(exc)

    report.elapsed_s = time.time() - start
    log_summary(report)
    return report


def log_summary(report: RunReport):
    logger.info(
        f"Spam filtering completed in {format_elapsed(report.elapsed_s)}: "
        f"{report.discovered} discovered, {len(report.completed)} completed, "
        f"{len(report.failed)} failed, {len(report.cancelled)} cancelled"
        + (" (timed out)" if report.timed_out else "")
    )
    for path, reason in sorted(report.failed.items()):
        logger.error(f"FAILED {path}: {reason}")
