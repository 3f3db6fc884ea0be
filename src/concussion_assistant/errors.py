class InvalidInput(ValueError):
    """Required input missing or empty; raised before any analysis runs."""


class RecordNotFound(KeyError):
    """No analysis record stored under the requested id."""


class ProviderError(RuntimeError):
    """Hosted chat-completion call failed, timed out or is not configured."""


class ParseError(ValueError):
    """Hosted model replied with content that is not the expected JSON."""


class StoreUnavailable(ConnectionError):
    """Key-value store could not be reached; callers may retry."""
