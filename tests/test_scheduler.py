import threading
from pathlib import Path

from spam_filtering.application.process_file import output_paths, process_submission_file
from spam_filtering.application.scheduler import ProgressCounter, run_pipeline
from spam_filtering.domain.entities import FileReport, THRESHOLDS

NO_DOCS = "clueweb09-en0000-00-00000"


def _task(input_root, out_for, scorer):
    def run(path, cancel_event):
        return process_submission_file(path, input_root, out_for, scorer, NO_DOCS, cancel_event=cancel_event)
    return run


def _out_for(root):
    return lambda t: root / f"spam_{t}_runs"


def test_progress_counter():
    c = ProgressCounter(4)
    assert c.snapshot() == (0, 4)
    threads = [threading.Thread(target=c.increment) for _ in range(4)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()
    assert c.snapshot() == (4, 4)
    assert c.percentage() == 100.0


def test_malformed_file_is_isolated(tmp_path, write_run, make_scorer):
    input_root = tmp_path / "base_spam_runs"
    good = [write_run(input_root / f"run{i}.txt", [(1, f"d{i}", 1.0), (2, f"e{i}", 0.5)]) for i in range(3)]
    bad = input_root / "broken.txt"
    bad.write_text("1 Q0 d 1 1.0\n", encoding="utf-8")
    scorer = make_scorer({f"{p}{i}": 40 for p in "de" for i in range(3)})
    out_for = _out_for(tmp_path)

    report = run_pipeline(good + [bad], _task(input_root, out_for, scorer), num_threads=2,
                          poll_interval_s=0.05, show_progress=False)

    assert report.discovered == 4
    assert sorted(r.path for r in report.completed) == sorted(str(p) for p in good)
    assert list(report.failed) == [str(bad)]
    assert report.failed[str(bad)].startswith("ParseError")
    assert not report.ok
    for p in good:
        for target in output_paths(p, input_root, out_for).values():
            assert target.exists()
    assert not any(target.exists() for target in output_paths(bad, input_root, out_for).values())


def test_task_exception_does_not_stop_siblings(tmp_path):
    seen = []
    lock = threading.Lock()

    def task(path, cancel_event):
        if path.name == "explode":
            raise OSError("disk full")
        with lock:
            seen.append(path.name)
        return FileReport(path=str(path), run_tag="t")

    paths = [tmp_path / n for n in ("a", "explode", "b", "c")]
    report = run_pipeline(paths, task, num_threads=3, poll_interval_s=0.05, show_progress=False)

    assert sorted(seen) == ["a", "b", "c"]
    assert [r.path for r in report.completed] == [str(tmp_path / n) for n in ("a", "b", "c")]
    assert report.failed == {str(tmp_path / "explode"): "OSError: disk full"}


def test_duplicate_paths_are_processed_once(tmp_path):
    calls = []

    def task(path, cancel_event):
        calls.append(path)
        return FileReport(path=str(path), run_tag="t")

    p = tmp_path / "x.txt"
    report = run_pipeline([p, str(p), Path(str(p))], task, num_threads=2, poll_interval_s=0.05,
                          show_progress=False)

    assert calls == [p]
    assert report.discovered == 1
    assert report.ok


def test_global_timeout_cancels_and_leaves_no_partial_files(tmp_path, write_run, make_scorer):
    input_root = tmp_path / "base_spam_runs"
    rows = [(1, f"d{i}", 1.0) for i in range(40)]
    files = [write_run(input_root / f"slow{i}.txt", rows) for i in range(3)]
    scorer = make_scorer({d: 70 for _q, d, _s in rows}, delay_s=0.02)
    out_for = _out_for(tmp_path)

    report = run_pipeline(files, _task(input_root, out_for, scorer), num_threads=1, timeout_s=0.2,
                          poll_interval_s=0.05, show_progress=False)

    assert report.timed_out
    assert len(report.completed) + len(report.cancelled) + len(report.failed) == 3
    assert report.cancelled
    assert not report.failed
    for t in THRESHOLDS:
        assert list(out_for(t).rglob("*.part")) == []
    for f in report.cancelled:
        assert not any(target.exists() for target in output_paths(Path(f), input_root, out_for).values())


def test_preset_cancel_event_runs_nothing_to_completion(tmp_path, write_run, make_scorer):
    input_root = tmp_path / "in"
    files = [write_run(input_root / f"r{i}.txt", [(1, "a", 1.0)]) for i in range(4)]
    cancel = threading.Event()
    cancel.set()
    task = _task(input_root, _out_for(tmp_path), make_scorer({"a": 50}))

    report = run_pipeline(files, task, num_threads=2, cancel_event=cancel, poll_interval_s=0.05,
                          show_progress=False)

    assert report.completed == []
    assert sorted(report.cancelled) == sorted(str(f) for f in files)


def test_no_input_files():
    report = run_pipeline([], lambda p, e: None, show_progress=False)
    assert report.discovered == 0
    assert report.ok


def test_report_to_dict(tmp_path):
    def task(path, cancel_event):
        return FileReport(path=str(path), run_tag="t", queries=2)

    report = run_pipeline([tmp_path / "a.txt"], task, poll_interval_s=0.05, show_progress=False)

    d = report.to_dict()
    assert d["discovered"] == 1
    assert d["completed"][0]["queries"] == 2
    assert d["failed"] == {}
    assert d["timed_out"] is False


def test_failed_file_is_reported_once(tmp_path, monkeypatch):
    from spam_filtering.application import scheduler

    errors = []
    monkeypatch.setattr(scheduler.logger, "error", lambda msg, *a, **kw: errors.append(msg))

    def task(path, cancel_event):
        raise OSError("disk full")

    report = run_pipeline([tmp_path / "x.txt"], task, poll_interval_s=0.05, show_progress=False)

    assert list(report.failed) == [str(tmp_path / "x.txt")]
    assert [m for m in errors if "disk full" in m] == [f"FAILED {tmp_path / 'x.txt'}: OSError: disk full"]
