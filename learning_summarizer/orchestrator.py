"""
Batch driver: one browser, one context, one page, used strictly in sequence.

The orchestrator owns the Playwright objects for the whole run and hands the
page to the discoverer and extractor per call. Failures are contained at the
lesson and course boundaries; only authentication failures end the run.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from .config import Settings
from .discovery import CourseDiscoverer, canonicalize_course_url
from .errors import AuthenticationError, BrowserNotInitializedError, SessionExpiredError
from .models import BatchReport, Course, CourseResult, Lesson
from .navigator import Navigator, is_learning_url, is_login_url
from .session_store import SessionStore
from .transcript import TranscriptExtractor, TranscriptOutcome

logger = logging.getLogger(__name__)

LOGIN_URL = "https://www.linkedin.com/learning/login"

CourseHook = Callable[[Course, BatchReport], Optional[Awaitable[None]]]


class BatchOrchestrator:
    def __init__(
        self,
        settings: Settings,
        session_store: Optional[SessionStore] = None,
        prompt: Callable[[str], str] = input,
        sleep=asyncio.sleep,
        playwright_factory=async_playwright,
    ):
        self.settings = settings
        self.session_store = session_store or SessionStore(settings.SESSION_PROFILE)
        self._prompt = prompt
        self._sleep = sleep
        self._playwright_factory = playwright_factory
        self._playwright_manager = None
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._headless = settings.HEADLESS
        self._extractor: Optional[TranscriptExtractor] = None

    async def __aenter__(self) -> "BatchOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise BrowserNotInitializedError("No active browser page. Call ensure_authenticated() first.")
        return self._page

    async def initialize_browser(self, headless: Optional[bool] = None) -> Browser:
        if self.playwright is None:
            self._playwright_manager = self._playwright_factory()
            self.playwright = await self._playwright_manager.start()
        if self.browser is None:
            self._headless = self.settings.HEADLESS if headless is None else headless
            logger.info("Initializing browser...")
            self.browser = await self.playwright.chromium.launch(headless=self._headless)
            logger.info(f"Browser initialized (headless: {self._headless})")
        return self.browser

    async def _use_context(self, context: BrowserContext) -> None:
        if self.context is not None and self.context is not context:
            try:
                await self.context.close()
            except Exception as e:
                logger.debug(f"Error while closing previous context: {e}")
        self.context = context
        self._page = context.pages[0] if context.pages else await context.new_page()
        self._extractor = None

    async def ensure_authenticated(self) -> None:
        """Reuse a stored session that proves live, otherwise log in by hand."""
        await self.initialize_browser()
        context = await self.session_store.has_valid_session(
            self.browser, lambda page: Navigator(page).validate_live_session()
        )
        if context is not None:
            await self._use_context(context)
            return
        await self.login_interactively()
        await self.session_store.save(self.context)

    async def login_interactively(self) -> None:
        if self.browser is None:
            raise BrowserNotInitializedError("Browser not initialized.")

        print("\n" + "=" * 60)
        print("LINKEDIN LEARNING LOGIN REQUIRED")
        print("=" * 60)
        print("A browser window will open for you to log in to LinkedIn Learning.")
        print("  1. Complete the login process (email/password)")
        print("  2. Complete any 2FA if prompted")
        print("  3. Make sure you reach the LinkedIn Learning homepage")
        print("  4. Return to this console and press ENTER")
        print("=" * 60)

        # Login always needs a visible window, whatever HEADLESS says.
        if self._headless:
            logger.info("Switching to headed mode for interactive login...")
            await self._close_browser()
            await self.initialize_browser(headless=False)

        context = await self.browser.new_context()
        await self._use_context(context)
        logger.info("Navigating to LinkedIn Learning login page...")
        await self._page.goto(LOGIN_URL)

        await asyncio.to_thread(
            self._prompt,
            "\nPress ENTER after you have logged in and can see the LinkedIn Learning homepage...",
        )

        current_url = self._page.url
        if not is_learning_url(current_url) or is_login_url(current_url):
            raise AuthenticationError(
                f"Expected to be logged in to LinkedIn Learning, but the browser is on {current_url}"
            )
        logger.info("Login completed successfully.")

    def _navigator(self) -> Navigator:
        return Navigator(self.page, sleep=self._sleep)

    def _transcript_extractor(self) -> TranscriptExtractor:
        if self._extractor is None or self._extractor.page is not self._page:
            self._extractor = TranscriptExtractor(self.page, self._navigator(), self.settings, sleep=self._sleep)
        return self._extractor

    async def process_course(self, url: str) -> Course:
        """Load a course page and return it with metadata and (transcript-less) lessons."""
        canonical = canonicalize_course_url(url)
        if canonical != url:
            logger.info(f"Using course root {canonical} for {url}")
        logger.info(f"Processing course: {canonical}")

        await self._navigator().goto_with_retry(canonical)
        course = Course(url=canonical)
        discoverer = CourseDiscoverer(self.page)
        await discoverer.extract_metadata(course)
        course.lessons = await discoverer.discover_lessons(canonical)
        if course.lessons:
            course.total_lessons = len(course.lessons)
        else:
            logger.warning(f"No lessons discovered for {canonical}")
        return course

    async def _extract_with_reauth(self, lesson: Lesson) -> TranscriptOutcome:
        try:
            return await self._transcript_extractor().extract_lesson_transcript(lesson)
        except SessionExpiredError as e:
            logger.warning(f"{e}; re-authenticating before retrying lesson {lesson.lesson_number}")
            await self.ensure_authenticated()
            return await self._transcript_extractor().extract_lesson_transcript(lesson)

    async def process_lesson_transcripts(self, lessons: Optional[Iterable[Lesson]]) -> BatchReport:
        """Extract transcripts one lesson at a time. Never raises for a lesson."""
        lessons = list(lessons or [])
        report = BatchReport(total=len(lessons))
        if not lessons:
            logger.info("No lessons to process.")
            return report

        for index, lesson in enumerate(lessons):
            if index > 0 and self.settings.LESSON_DELAY > 0:
                await self._sleep(self.settings.LESSON_DELAY)
            logger.info(f"[{index + 1}/{len(lessons)}] Extracting transcript: {lesson.title}")
            try:
                outcome = await self._extract_with_reauth(lesson)
            except AuthenticationError:
                raise
            except Exception as e:
                report.failed += 1
                report.failed_lessons.append(lesson.identifier)
                logger.error(f"Lesson {lesson.lesson_number} '{lesson.title}' failed ({lesson.url}): {e}")
                continue
            if outcome is TranscriptOutcome.EXTRACTED:
                report.successful += 1
            else:
                report.no_transcript += 1

        logger.info(report.render())
        return report

    async def _process_course_with_reauth(self, url: str) -> Course:
        try:
            return await self.process_course(url)
        except SessionExpiredError as e:
            logger.warning(f"{e}; re-authenticating and retrying course")
            await self.ensure_authenticated()
            return await self.process_course(url)

    async def run(self, urls: Iterable[str], on_course: Optional[CourseHook] = None) -> List[CourseResult]:
        """Process each course URL in order; one course failing never stops the next."""
        urls = list(urls)
        results = list()
        await self.ensure_authenticated()
        for index, url in enumerate(urls, 1):
            logger.info(f"=== Course {index}/{len(urls)}: {url}")
            result = CourseResult(course_url=url)
            try:
                course = await self._process_course_with_reauth(url)
                result.course = course
                result.report = await self.process_lesson_transcripts(course.lessons)
                if on_course is not None:
                    outcome = on_course(course, result.report)
                    if inspect.isawaitable(outcome):
                        await outcome
            except AuthenticationError:
                raise
            except Exception as e:
                result.error = f"{type(e).__name__}: {e}"
                logger.error(f"Course {url} failed: {e}")
            results.append(result)
        return results

    async def _close_browser(self) -> None:
        for name in ("_page", "context", "browser"):
            handle = getattr(self, name)
            if handle is None:
                continue
            try:
                await handle.close()
            except Exception as e:
                logger.warning(f"Error while closing {name.strip('_')}: {e}")
            setattr(self, name, None)
        self._extractor = None

    async def close(self) -> None:
        await self._close_browser()
        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception as e:
                logger.warning(f"Error while stopping Playwright: {e}")
            self.playwright = None
            self._playwright_manager = None


def summarize_results(results: List[CourseResult]) -> Tuple[BatchReport, str]:
    """Combined lesson counters plus a printable end-of-run report."""
    combined = BatchReport()
    lines = ["", "=" * 60, "RUN SUMMARY", "=" * 60]
    for result in results:
        if result.course is not None:
            # lessons extracted before an output failure still count
            combined.merge(result.report)
            line = f"{result.course.title}: {result.report.successful}/{result.report.total} transcripts"
            lines.append(f"OK     {line}" if result.ok else f"FAILED {line} ({result.error})")
        else:
            lines.append(f"FAILED {result.course_url}: {result.error}")
    lines.append("")
    lines.append(combined.render())
    return combined, "\n".join(lines)
