"""Failure taxonomy for the crawl, matching and enrichment pipeline.

Each class marks the narrowest scope it is allowed to stop: a row, a site's
batch, or (for configuration problems only) the whole run.
"""


class ProbateMonitorError(Exception):
    """Base class for pipeline errors"""


class ConfigurationError(ProbateMonitorError):
    """Bad configuration; surfaced to the caller immediately"""


class UnsupportedSiteError(ConfigurationError):
    def __init__(self, site: str):
        super().__init__(f"Unsupported site: {site}")
        self.site = site


class NavigationFailure(ProbateMonitorError):
    """A page load, form submit or element wait failed or timed out. Retryable."""


class BlockedOrCaptcha(ProbateMonitorError):
    """The source site showed a CAPTCHA, access-denied or rate-limit page"""


class ExtractionFieldMissing(ProbateMonitorError):
    """A detail field could not be extracted; the field stays empty"""

    def __init__(self, field: str):
        super().__init__(f"Field not found: {field}")
        self.field = field


class MalformedRow(ProbateMonitorError):
    """A result row lacks a case number or decedent name"""


class PersistenceFailure(ProbateMonitorError):
    """The bulk insert transaction failed and was rolled back"""


class ProviderFailure(ProbateMonitorError):
    """An enrichment provider call failed"""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class CrawlCancelled(ProbateMonitorError):
    """The run-level cancellation signal was observed"""
