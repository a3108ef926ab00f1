"""
Exception hierarchy shared by the scraping, classification and store layers.

Component-internal failures (one adapter, one scoring call) are absorbed where
they happen; only the operation-level errors below reach callers.
"""


class AggregatorError(Exception):
    """Base class for all aggregator errors."""


class SourceUnavailable(AggregatorError):
    """A source adapter could not produce results (network, parse, timeout, config)."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class ClassificationFailure(AggregatorError):
    """The scoring service failed or returned an unusable payload."""


class ScrapeCancelled(AggregatorError):
    """The run was stopped by the user or the caller."""


class NoResults(AggregatorError):
    """A scrape finished without producing a single posting."""


class OrchestratorBusy(AggregatorError):
    """A run was requested while another one is still in progress."""


class BackendUnreachable(AggregatorError):
    """The HTTP control surface could not be reached."""

    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Backend unreachable at {url} ({reason}). "
            "Check BACKEND_URL in your settings and that the server is running."
        )
        self.url = url
        self.reason = reason
