"""Custom exception classes for the application."""


class PromoFinderException(Exception):
    """Base exception for all PromoFinder errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class SourceError(PromoFinderException):
    """Raised inside a source adapter when a query cannot be answered.

    The adapter base class converts it into a typed failure result,
    so it never reaches the aggregate caller.
    """

    def __init__(self, source: str, kind: str, message: str):
        self.source = source
        self.kind = kind
        super().__init__(f"Source error for {source} ({kind}): {message}")


class TranslationProviderError(PromoFinderException):
    """Raised by a translation provider; the provider chain moves on."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"Translation provider {provider} failed: {message}")


class AggregationConfigError(PromoFinderException):
    """Raised when the aggregator cannot run at all (e.g. no sources configured)."""
