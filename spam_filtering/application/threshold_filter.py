# application/threshold_filter.py
from __future__ import annotations
import threading
from typing import Dict, List, Optional, Sequence

from spam_filtering.domain.entities import (
    MAX_RESULTS_PER_QUERY,
    THRESHOLDS,
    FilteredEntry,
    FilteredQuery,
    RankedEntry,
)
from spam_filtering.domain.errors import LookupFailure, TaskCancelled
from spam_filtering.domain.interfaces import ScoreLookup
from spam_filtering.infrastructure.logger import get_logger

logger = get_logger(__name__)


def fallback_results(no_documents_id: str) -> Dict[int, List[FilteredEntry]]:
    """The single placeholder line TREC expects for a topic without documents, for every threshold."""
    return {t: [FilteredEntry(no_documents_id, 1, 0.0, fallback=True)] for t in THRESHOLDS}


def filter_query(
    query_id: int,
    entries: Sequence[RankedEntry],
    scorer: ScoreLookup,
    no_documents_id: str,
    cancel_event: Optional[threading.Event] = None,
) -> FilteredQuery:
    """
    One pass over `entries`: each document is looked up once and appended to
    every threshold it clears until that threshold holds MAX_RESULTS_PER_QUERY.
    Input order is kept; entries are not assumed to be sorted by score.
    """
    results: Dict[int, List[FilteredEntry]] = {t: [] for t in THRESHOLDS}
    out = FilteredQuery(query_id=query_id, results=results)

    for entry in entries:
        if cancel_event is not None and cancel_event.is_set():
            raise TaskCancelled(f"cancelled while filtering query {query_id}")
        out.lookups += 1
        try:
            percentile = scorer.lookup(entry.doc_id)
        except LookupFailure as e:
            out.lookup_failures += 1
            logger.warning(f"query {query_id}: skipping {entry.doc_id} ({type(e).__name__}: {e})")
            continue

        for t in THRESHOLDS:
            accepted = results[t]
            if percentile < t or len(accepted) >= MAX_RESULTS_PER_QUERY:
                continue
            accepted.append(FilteredEntry(entry.doc_id, len(accepted) + 1, entry.score))

    for t in THRESHOLDS:
        if not results[t]:
            results[t].append(FilteredEntry(no_documents_id, 1, 0.0, fallback=True))
            out.fallbacks += 1
    return out
