"""Errors raised by the response aggregation pipeline."""


class ConfigurationError(Exception):
    """Raised when a response is tagged with a request type no processor handles."""
    pass


class DuplicateFinishError(Exception):
    """Raised when a request type is finished twice for the same organization."""
    pass
