"""
Error taxonomy for a crawl run.
Planning and sink errors end the run; fetch errors only end the current page.
"""


class CrawlError(Exception):
    """Base class for every error raised by the crawler."""


class PlanningError(CrawlError, ValueError):
    """Malformed input detected before any page is fetched."""


class FetchError(CrawlError):
    """A single page could not be retrieved with the requested mode."""

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url


class NetworkError(FetchError):
    pass


class FetchTimeoutError(FetchError):
    pass


class HttpStatusError(FetchError):
    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(url, f"HTTP {status_code}")
        self.status_code = status_code


class MalformedBodyError(FetchError):
    pass


class ContentNotFoundError(CrawlError):
    """The quote list never appeared on a rendered page; treated as an empty page."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Quote list not found on {url}")
        self.url = url


class SinkError(CrawlError):
    """Accepted records could not be delivered to the sink."""


class ParseError(CrawlError):
    """A page parser failed on fetched markup; the page counts as empty."""
