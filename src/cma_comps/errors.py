class CmaError(Exception):
    """Base class for comparable search errors."""


class ConfigurationError(CmaError):
    """The listings provider is not usable (e.g. missing credentials)."""


class ListingsClientError(CmaError):
    """A single provider call failed.

    Raised by listings clients; the address search treats it as an empty
    result for that (tier, status) pair.
    """

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(CmaError):
    """Provider failure on a path that has no fallback (criteria search)."""


class SearchValidationError(CmaError):
    """The request carries nothing to search for."""
