"""
Persisted browser session state.

The stored ``state.json`` is Playwright's storage-state export (cookies and
per-origin localStorage). It is treated as opaque: it is only ever checked
for presence and then proven by loading it into a live page.
"""

import logging
import shutil
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from playwright.async_api import Browser, BrowserContext, Page

from .errors import BrowserNotInitializedError, SessionNotFoundError

logger = logging.getLogger(__name__)

STATE_FILENAME = "state.json"

SessionValidator = Callable[[Page], Awaitable[bool]]


class SessionStore:
    """Stores one authenticated session per profile directory."""

    def __init__(self, profile: str, base_dir: Union[str, Path, None] = None):
        self.profile = profile
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()

    @property
    def path(self) -> Path:
        return self.base_dir / self.profile

    @property
    def state_file(self) -> Path:
        return self.path / STATE_FILENAME

    def exists(self) -> bool:
        return self.state_file.is_file()

    async def has_valid_session(self, browser: Browser, validator: SessionValidator) -> Optional[BrowserContext]:
        """Load the stored session and prove it against the live site.

        Returns the live context when the session is valid, otherwise None.
        Any stored state that cannot be proven live is deleted.
        """
        if not self.path.is_dir():
            logger.info("No existing session found.")
            return None
        if not self.exists():
            logger.info("Session state file not found.")
            return None

        logger.info(f"Found existing session '{self.profile}', validating...")
        context = None
        try:
            context = await self.load(browser)
            page = context.pages[0] if context.pages else await context.new_page()
            if await validator(page):
                logger.info("Session is valid.")
                return context
            logger.warning("Session validation failed.")
        except Exception as e:
            logger.warning(f"Session validation error: {e}")

        if context is not None:
            try:
                await context.close()
            except Exception as e:
                logger.debug(f"Error while closing rejected session context: {e}")
        self.cleanup()
        return None

    async def save(self, context: Optional[BrowserContext]) -> Path:
        """Write the context's storage state to ``state.json``."""
        if context is None:
            raise BrowserNotInitializedError("No browser context to save.")
        self.path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Saving session to: {self.path}")
        await context.storage_state(path=str(self.state_file))
        logger.info("Session saved successfully.")
        return self.state_file

    async def load(self, browser: Optional[Browser]) -> BrowserContext:
        """Create a new browser context seeded with the stored state."""
        if browser is None:
            raise BrowserNotInitializedError("Browser not initialized.")
        if not self.exists():
            raise SessionNotFoundError(f"Session state file not found: {self.state_file}")
        logger.info("Loading saved session...")
        return await browser.new_context(storage_state=str(self.state_file))

    def cleanup(self) -> bool:
        """Delete the profile directory. Best-effort: failures are only logged."""
        if not self.path.exists():
            return False
        try:
            shutil.rmtree(self.path)
        except OSError as e:
            logger.warning(f"Could not clean up session directory {self.path}: {e}")
            return False
        logger.info("Cleaned up stored session data.")
        return True
