import logging
from typing import Optional, Sequence
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError

from .errors import NavigationError, SessionExpiredError
from .retry import retry_async

logger = logging.getLogger(__name__)

LEARNING_HOME_URL = "https://www.linkedin.com/learning/"
NAVIGATION_TIMEOUT_MS = 30000

# Leading path segments of the sign-in pages a session can be bounced to.
LOGIN_SEGMENTS = frozenset(("login", "uas", "checkpoint", "authwall", "signup"))

# Elements only rendered for a signed-in member.
AUTHENTICATED_LANDMARKS = (
    "[data-test-id='global-nav']",
    ".global-nav__me",
    "img.global-nav__me-photo",
    "[data-live-test-me-menu]",
)


def is_login_url(url: str) -> bool:
    segments = [s for s in urlparse(url or "").path.lower().split("/") if s]
    if not segments:
        return False
    if segments[0] in LOGIN_SEGMENTS:
        return True
    return segments[0] == "learning" and len(segments) > 1 and segments[1] == "login"


def is_learning_url(url: str) -> bool:
    parsed = urlparse(url or "")
    host = (parsed.hostname or "").lower()
    on_linkedin = host == "linkedin.com" or host.endswith(".linkedin.com")
    return on_linkedin and parsed.path.lower().startswith("/learning")


class Navigator:
    """Page loads with bounded retries and login-wall detection."""

    def __init__(self, page: Page, timeout_ms: int = NAVIGATION_TIMEOUT_MS, base_delay: float = 2.0, sleep=None):
        self.page = page
        self.timeout_ms = timeout_ms
        self.base_delay = base_delay
        self._sleep = sleep

    async def goto_with_retry(self, url: str, max_attempts: int = 3) -> None:
        """Navigate to ``url``, retrying timeouts with exponential backoff.

        Raises NavigationError once attempts are exhausted and
        SessionExpiredError (never retried) when redirected to a login page.
        """
        if not url or not url.strip():
            raise ValueError("URL must not be empty")
        attempts = 0

        async def attempt() -> None:
            nonlocal attempts
            attempts += 1
            logger.debug(f"Navigating to {url} (attempt {attempts}/{max_attempts})")
            await self.page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)

        kwargs = dict(
            max_attempts=max_attempts,
            base_delay=self.base_delay,
            retry_on=(PlaywrightTimeoutError,),
            description=f"Navigation to {url}",
        )
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        try:
            await retry_async(attempt, **kwargs)
        except PlaywrightError as e:
            raise NavigationError(url, attempts, e) from e

        if is_login_url(self.page.url):
            logger.warning(f"Redirected to login page while loading {url}: {self.page.url}")
            raise SessionExpiredError(url, self.page.url)

    async def validate_live_session(self) -> bool:
        """Check that the current context is signed in. Never raises."""
        try:
            logger.info("Validating session by navigating to LinkedIn Learning...")
            await self.page.goto(LEARNING_HOME_URL, wait_until="networkidle", timeout=self.timeout_ms)
            current_url = self.page.url
            if is_login_url(current_url):
                logger.info("Session expired - redirected to login page.")
                return False
            for selector in AUTHENTICATED_LANDMARKS:
                if await self.page.query_selector(selector) is not None:
                    logger.debug(f"Authenticated landmark found: {selector}")
                    return True
            logger.warning(f"Session validation failed - no signed-in landmark on {current_url}")
            return False
        except Exception as e:
            logger.warning(f"Session validation failed: {e}")
            return False

    async def wait_for_any(self, selectors: Sequence[str], timeout_ms: int = 10000) -> Optional[str]:
        """Wait for any of the CSS ``selectors`` to attach; return the page's match or None."""
        combined = ", ".join(selectors)
        try:
            element = await self.page.wait_for_selector(combined, state="attached", timeout=timeout_ms)
        except PlaywrightError as e:
            logger.debug(f"None of {len(selectors)} landmark selectors attached: {e}")
            return None
        return combined if element is not None else None
