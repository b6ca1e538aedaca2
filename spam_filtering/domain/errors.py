# domain/errors.py
from __future__ import annotations
from pathlib import Path
from typing import Optional, Union


class SpamFilterError(Exception):
    """Base class for every error raised by the filtering pipeline."""


class ConfigError(SpamFilterError):
    pass


class ParseError(SpamFilterError):
    """A submission file could not be read as `qid Q0 docid rank score tag` lines."""

    def __init__(self, path: Union[str, Path], message: str, line_no: Optional[int] = None):
        self.path = str(path)
        self.line_no = line_no
        where = f"{self.path}:{line_no}" if line_no is not None else self.path
        super().__init__(f"{where}: {message}")


# ---------- document scoped ----------
class LookupFailure(SpamFilterError):
    def __init__(self, doc_id: str, message: str):
        self.doc_id = doc_id
        super().__init__(f"{doc_id}: {message}")


class NotFoundError(LookupFailure):
    pass


class ServiceError(LookupFailure):
    pass


class PercentileValidationError(LookupFailure):
    def __init__(self, doc_id: str, percentile):
        self.percentile = percentile
        super().__init__(doc_id, f"percentile invalid {percentile}")


# ---------- file scoped ----------
class OutputError(SpamFilterError):
    pass


class TaskCancelled(SpamFilterError):
    pass
