import threading
import time
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import pytest

from spam_filtering.domain.errors import NotFoundError
from spam_filtering.domain.interfaces import ScoreLookup


class FakeScoreLookup(ScoreLookup):
    """In-memory percentiles; unknown ids raise NotFoundError, ids in `errors` raise the mapped exception."""

    def __init__(self, percentiles: Dict[str, int], errors: Optional[Dict[str, Exception]] = None,
                 delay_s: float = 0.0, on_lookup=None):
        self.percentiles = dict(percentiles)
        self.errors = dict(errors or {})
        self.delay_s = delay_s
        self.on_lookup = on_lookup
        self.calls = []
        self._lock = threading.Lock()

    def lookup(self, doc_id: str) -> int:
        with self._lock:
            self.calls.append(doc_id)
            n = len(self.calls)
        if self.on_lookup is not None:
            self.on_lookup(n, doc_id)
        if self.delay_s:
            time.sleep(self.delay_s)
        if doc_id in self.errors:
            raise self.errors[doc_id]
        if doc_id not in self.percentiles:
            raise NotFoundError(doc_id, "unknown document")
        return self.percentiles[doc_id]


@pytest.fixture
def make_scorer():
    return FakeScoreLookup


@pytest.fixture
def write_run():
    """write_run(path, [(qid, docid, score), ...], tag) -> path, in `qid Q0 docid rank score tag` format."""

    def _write(path: Path, rows: Iterable[Tuple[int, str, float]], tag: str = "runA") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        ranks: Dict[int, int] = {}
        with open(path, "w", encoding="utf-8") as f:
            for qid, doc_id, score in rows:
                ranks[qid] = ranks.get(qid, 0) + 1
                f.write(f"{qid} Q0 {doc_id} {ranks[qid]} {score} {tag}\n")
        return path

    return _write
