"""
Exceptions raised by the facet engine.

Only the catalog fetch boundary raises. Payload parsing and predicate
evaluation degrade instead of failing, so there is no parse error type.
"""


class FacetEngineError(Exception):
    """Base class for facet engine errors."""
    pass


class CatalogFetchError(FacetEngineError):
    """
    Raised when in-stock candidates cannot be fetched from the item store.

    Terminal for the query call: no partial result is returned. The caller
    is expected to show a retryable error state.
    """

    retryable = True

    def __init__(self, message: str, source: str = "item_store"):
        super().__init__(message)
        self.source = source
