from typing import Optional


class ScraperError(Exception):
    """Base class for errors raised by stackscraper."""


class InvalidURLError(ScraperError, ValueError):
    """A URL is malformed, or no document source was given."""


class RuleFileError(ScraperError):
    """A rule file cannot be read, decoded or written."""


class FetchError(ScraperError):
    """The page could not be fetched."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class UserAgentError(ScraperError, LookupError):
    """No user agents are configured."""


class SettingsError(ScraperError, ValueError):
    """Environment settings have invalid values."""
