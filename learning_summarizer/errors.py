"""Exception types shared by the scraping pipeline."""

from typing import Iterable


class SummarizerError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(SummarizerError):
    """One or more settings are missing or invalid."""

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("Configuration validation failed:\n" + "\n".join(f"- {e}" for e in self.errors))


class BrowserNotInitializedError(SummarizerError):
    """An operation needed a browser, context or page that is not open yet."""


class SessionNotFoundError(SummarizerError, FileNotFoundError):
    """No stored session state exists for the profile."""


class SessionExpiredError(SummarizerError):
    """Navigation was redirected to a login wall; re-authenticate instead of retrying."""

    def __init__(self, url: str, landed_on: str):
        self.url = url
        self.landed_on = landed_on
        super().__init__(f"Session expired: navigating to {url} redirected to {landed_on}")


class NavigationError(SummarizerError):
    """A page could not be loaded after all retry attempts."""

    def __init__(self, url: str, attempts: int, cause: Exception = None):
        self.url = url
        self.attempts = attempts
        self.cause = cause
        message = f"Failed to load {url} after {attempts} attempt(s)"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class AuthenticationError(SummarizerError):
    """Interactive login did not end on the learning platform."""
