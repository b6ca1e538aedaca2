# application/parse_submission.py
from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Union

from spam_filtering.domain.entities import RankedEntry, SubmissionFile
from spam_filtering.domain.errors import ParseError

NUM_COLUMNS = 6


def parse_submission(path: Union[str, Path]) -> SubmissionFile:
    """
    Read a TREC run file (`qid Q0 docid rank score tag`, whitespace separated).
    Entries keep file order within each query; queries keep first-seen order.
    The Q0 and rank columns are not interpreted.
    """
    path = Path(path)
    entries: Dict[int, List[RankedEntry]] = {}
    run_tag = None

    with open(path, "rb") as f:
        for line_no, raw in enumerate(f, start=1):
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ParseError(path, f"not valid UTF-8: {e}", line_no) from None
            cols = line.split()
            if not cols:
                continue
            if len(cols) != NUM_COLUMNS:
                raise ParseError(path, f"expected {NUM_COLUMNS} columns, found {len(cols)}: {line.rstrip()!r}", line_no)
            qid, _q0, doc_id, _rank, score, tag = cols
            try:
                query_id = int(qid)
            except ValueError:
                raise ParseError(path, f"query id is not an integer: {qid!r}", line_no) from None
            try:
                value = float(score)
            except ValueError:
                raise ParseError(path, f"score is not a number: {score!r}", line_no) from None

            if run_tag is None:
                run_tag = tag
            entries.setdefault(query_id, []).append(RankedEntry(doc_id, value))

    if not run_tag:
        raise ParseError(path, "no run tag found (file has no result lines)")
    return SubmissionFile(path=path, run_tag=run_tag, entries=entries)
