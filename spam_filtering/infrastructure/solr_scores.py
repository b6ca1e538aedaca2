# infrastructure/solr_scores.py
from __future__ import annotations
import threading
from typing import List, Optional

import requests

from spam_filtering.domain.errors import NotFoundError, PercentileValidationError, ServiceError
from spam_filtering.domain.interfaces import ScoreLookup
from spam_filtering.infrastructure.logger import get_logger

logger = get_logger(__name__)


class SolrScoreLookup(ScoreLookup):
    """
    Waterloo spam percentiles served from a Solr core holding one document per
    ClueWeb id with an integer `percentile` field.
    """

    def __init__(self, core_url: str, query_field: Optional[str] = None, timeout_s: float = 30):
        self.core_url = core_url.rstrip("/")
        self.query_field = query_field
        self.timeout = timeout_s
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    def _session(self) -> requests.Session:
        # requests.Session is not thread safe; keep one per worker thread
        s = getattr(self._local, "session", None)
        if s is None:
            s = requests.Session()
            s.headers.update({"Accept": "application/json"})
            self._local.session = s
            with self._lock:
                self._sessions.append(s)
        return s

    def _query(self, doc_id: str) -> str:
        if self.query_field:
            escaped = doc_id.replace("\\", "\\\\").replace('"', '\\"')
            return f'{self.query_field}:"{escaped}"'
        return doc_id

    def lookup(self, doc_id: str) -> int:
        params = {
            "q": self._query(doc_id),
            "fl": "percentile",
            "omitHeader": "true",
            "echoParams": "none",
            "wt": "json",
            "rows": 2,
        }
        try:
            r = self._session().get(f"{self.core_url}/select", params=params, timeout=self.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise ServiceError(doc_id, f"{type(e).__name__}: {e}") from e

        resp = data.get("response") or {}
        docs = resp.get("docs") or []
        num_found = resp.get("numFound", len(docs))

        if not docs:
            logger.warning(f"cannot find docID {doc_id} in {self.core_url}")
            raise NotFoundError(doc_id, f"no hit in {self.core_url}")
        if num_found != 1:
            logger.warning(f"docID {doc_id} returned {num_found} many hits!")

        value = docs[0].get("percentile")
        if isinstance(value, list):
            value = value[0] if value else None
        if value is None or isinstance(value, bool):
            raise ServiceError(doc_id, f"hit has no usable percentile field: {docs[0]}")
        try:
            percentile = int(value)
        except (TypeError, ValueError) as e:
            raise ServiceError(doc_id, f"percentile is not an integer: {value!r}") from e
        if percentile != value and not isinstance(value, str):
            raise ServiceError(doc_id, f"percentile is not an integer: {value!r}")

        if 0 <= percentile < 100:
            return percentile
        raise PercentileValidationError(doc_id, percentile)

    def close(self):
        with self._lock:
            for s in self._sessions:
                s.close()
            self._sessions.clear()
        self._local = threading.local()
