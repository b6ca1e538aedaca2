# domain/interfaces.py


class ScoreLookup:
    """
    Spam percentile source. `lookup` blocks until the service answers and must
    be callable from several worker threads at once.
    Returns an int in [0, 100) or raises a LookupFailure subclass
    (NotFoundError, ServiceError, PercentileValidationError).
    """

    def lookup(self, doc_id: str) -> int:
        raise NotImplementedError

    def close(self):
        pass
