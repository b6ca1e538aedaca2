# domain/entities.py
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

# Spam percentile cutoffs; one output run per value.
THRESHOLDS: Tuple[int, ...] = tuple(range(5, 100, 5))
# TREC submissions accept at most this many documents per topic.
MAX_RESULTS_PER_QUERY = 1000


@dataclass(frozen=True)
class RankedEntry:
    doc_id: str
    score: float


@dataclass
class SubmissionFile:
    path: Path
    run_tag: str
    # query_id -> entries in file order; dict order is first-seen query order
    entries: Dict[int, List[RankedEntry]]

    def num_documents(self) -> int:
        return sum(len(v) for v in self.entries.values())


@dataclass(frozen=True)
class FilteredEntry:
    doc_id: str
    rank: int
    score: float
    fallback: bool = False

    def to_trec_line(self, query_id: int, run_tag: str) -> str:
        score = "0" if self.fallback else repr(float(self.score))
        return f"{query_id}\tQ0\t{self.doc_id}\t{self.rank}\t{score}\t{run_tag}\n"


@dataclass
class FilteredQuery:
    query_id: int
    results: Dict[int, List[FilteredEntry]]
    lookups: int = 0
    lookup_failures: int = 0
    fallbacks: int = 0


@dataclass
class FileReport:
    path: str
    run_tag: str
    queries: int = 0
    documents: int = 0
    lookup_failures: int = 0
    fallbacks: int = 0
    failed_queries: List[int] = field(default_factory=list)
    elapsed_s: float = 0.0


@dataclass
class RunReport:
    discovered: int
    completed: List[FileReport] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    cancelled: List[str] = field(default_factory=list)
    timed_out: bool = False
    interrupted: bool = False
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed and not self.cancelled and not self.timed_out and not self.interrupted

    def to_dict(self) -> dict:
        return {
            "discovered": self.discovered,
            "completed": [asdict(r) for r in self.completed],
            "failed": dict(self.failed),
            "cancelled": list(self.cancelled),
            "timed_out": self.timed_out,
            "interrupted": self.interrupted,
            "elapsed_s": round(self.elapsed_s, 3),
        }
