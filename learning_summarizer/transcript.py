"""
Per-lesson transcript extraction.

A lesson is loaded, its "Transcript" tab opened, the interactive (time-synced)
rendering switched off unless timestamps were requested, and the text read
back from the first content selector that has any. Long transcripts render
lazily, so past a length threshold the panel is scrolled and re-read until it
stops growing.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from playwright.async_api import ElementHandle, Error as PlaywrightError, Page

from .cleaning import clean_transcript_text, format_timestamped_lines
from .config import Settings
from .dom import element_text, first_matches, first_visible, joined_text
from .errors import SessionExpiredError
from .models import Lesson
from .navigator import Navigator
from .retry import retry_async

logger = logging.getLogger(__name__)

PLAYER_LANDMARKS = (
    "video",
    ".classroom-media-screen",
    ".classroom-workspace",
    "[data-test-id='video-player']",
    ".vjs-tech",
)

TRANSCRIPT_TAB_SELECTORS = (
    "button[data-test-id='transcript-tab']",
    ".classroom-workspace-tabs button:has-text('Transcript')",
    "[role='tab']:has-text('Transcript')",
    "button:has-text('Transcript')",
    "a:has-text('Transcript')",
    "text=Transcript",
)

INTERACTIVE_TOGGLE_SELECTORS = (
    ".classroom-transcript__interactive-toggle [role='switch']",
    "button[role='switch'][aria-label*='nteractive']",
    "input[type='checkbox'][aria-label*='nteractive']",
    "button[aria-pressed][aria-label*='nteractive']",
    "[data-state][aria-label*='nteractive']",
)

INTERACTIVE_LABEL_SELECTORS = (
    "label:has-text('Interactive transcript')",
    "text=Interactive transcript",
)

# Present only while the transcript is rendered as clickable segments.
INTERACTIVE_SEGMENT_SELECTORS = (
    ".transcript-line",
    "[data-test-id='transcript-line']",
    ".classroom-transcript__line",
)

TRANSCRIPT_CONTENT_SELECTORS = (
    ".classroom-transcript__content",
    "[data-test-id='transcript-content']",
    ".transcript-content",
    ".classroom-transcript",
    "[class*='transcript'] p",
)

# (row, timestamp, text) selector triples.
TIMESTAMP_STRATEGIES = (
    (".transcript-line", ".transcript-line__timestamp", ".transcript-line__text"),
    ("[data-test-id='transcript-line']", "[data-test-id='transcript-timestamp']", "[data-test-id='transcript-text']"),
    (".classroom-transcript__line", "time", ".classroom-transcript__text"),
    ("[class*='transcript'] li", "[class*='timestamp']", "[class*='text']"),
)

SCROLL_CONTAINER_SELECTORS = (
    ".classroom-transcript__content",
    "[data-test-id='transcript-content']",
    ".classroom-transcript",
    "[class*='transcript'][class*='scroll']",
)

ON_STATES = ("true", "on", "checked")
OFF_STATES = ("false", "off", "unchecked")

LANDMARK_TIMEOUT_MS = 10000
TAB_TIMEOUT_MS = 5000
TAB_BUDGET_MS = 15000
SCROLL_PAUSE_MS = 1000


class TranscriptOutcome(str, Enum):
    EXTRACTED = "extracted"
    NO_TRANSCRIPT = "no_transcript"


async def toggle_state(element: ElementHandle) -> Optional[bool]:
    """Whether a switch-like element is on; None when it exposes no state."""
    for attribute in ("aria-checked", "aria-pressed", "data-state"):
        value = await element.get_attribute(attribute)
        if value is None:
            continue
        value = value.strip().lower()
        if value in ON_STATES:
            return True
        if value in OFF_STATES:
            return False
    if await element.get_attribute("checked") is not None:
        return True
    return None


class TranscriptExtractor:
    def __init__(
        self,
        page: Page,
        navigator: Navigator,
        settings: Settings,
        max_attempts: int = 3,
        base_delay: float = 2.0,
        sleep=asyncio.sleep,
    ):
        self.page = page
        self.navigator = navigator
        self.keep_timestamps = settings.KEEP_TIMESTAMPS
        self.max_scroll_rounds = settings.MAX_SCROLL_ROUNDS
        self.single_pass_threshold = settings.SINGLE_PASS_THRESHOLD
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.scroll_pause_ms = SCROLL_PAUSE_MS
        self._sleep = sleep

    async def click_transcript_tab(self) -> bool:
        """Open the transcript panel. False when the lesson has no transcript tab."""
        found = await first_visible(self.page, TRANSCRIPT_TAB_SELECTORS, TAB_TIMEOUT_MS, TAB_BUDGET_MS)
        if found is None:
            return False
        selector, tab = found
        logger.debug(f"Clicking transcript tab via {selector!r}")
        await tab.click()
        await self.navigator.wait_for_any(TRANSCRIPT_CONTENT_SELECTORS[:4], TAB_TIMEOUT_MS)
        return True

    async def _interactive_segments_present(self) -> bool:
        _, segments = await first_matches(self.page, INTERACTIVE_SEGMENT_SELECTORS)
        return bool(segments)

    async def disable_interactive_transcripts(self) -> bool:
        """Switch the interactive transcript off. Returns True if a click was made."""
        for selector in INTERACTIVE_TOGGLE_SELECTORS:
            try:
                toggles = await self.page.query_selector_all(selector)
            except PlaywrightError as e:
                logger.debug(f"Toggle selector {selector!r} failed: {e}")
                continue
            for toggle in toggles:
                state = await toggle_state(toggle)
                if state is None:
                    continue
                if not state:
                    logger.debug("Interactive transcript already off")
                    return False
                await toggle.click()
                logger.info("Disabled interactive transcript")
                return True

        # No stateful switch; use the label only while segments are still shown.
        if not await self._interactive_segments_present():
            return False
        found = await first_visible(self.page, INTERACTIVE_LABEL_SELECTORS, 2000)
        if found is None:
            logger.debug("No interactive transcript control found")
            return False
        await found[1].click()
        logger.info("Disabled interactive transcript via its label")
        return True

    async def extract_timestamped_text(self) -> str:
        for row_selector, time_selector, text_selector in TIMESTAMP_STRATEGIES:
            try:
                rows = await self.page.query_selector_all(row_selector)
            except PlaywrightError as e:
                logger.debug(f"Timestamp row selector {row_selector!r} failed: {e}")
                continue
            pairs = list()
            for row in rows:
                time_el = await row.query_selector(time_selector)
                text_el = await row.query_selector(text_selector)
                if time_el is None or text_el is None:
                    continue
                pairs.append((await element_text(time_el), await element_text(text_el)))
            if pairs:
                logger.debug(f"Read {len(pairs)} timestamped line(s) via {row_selector!r}")
                return format_timestamped_lines(pairs)
        return ""

    async def extract_plain_text(self) -> str:
        found = await joined_text(self.page, TRANSCRIPT_CONTENT_SELECTORS)
        return found[1] if found else ""

    async def _scroll_to_bottom(self, container: Optional[ElementHandle]) -> None:
        if container is not None:
            await container.evaluate("el => { el.scrollTop = el.scrollHeight; }")
        else:
            await self.page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
        await self.page.wait_for_timeout(self.scroll_pause_ms)

    async def scroll_and_extract(self, initial_text: str) -> str:
        """Scroll the transcript panel until its text stops growing.

        Stops after two consecutive rounds without growth or after
        ``max_scroll_rounds`` rounds. The last extraction is returned either
        way; completeness is not otherwise verified.
        """
        _, containers = await first_matches(self.page, SCROLL_CONTAINER_SELECTORS)
        container = containers[0] if containers else None
        text = initial_text
        stalled = 0
        for round_number in range(1, self.max_scroll_rounds + 1):
            await self._scroll_to_bottom(container)
            latest = await self.extract_plain_text()
            if len(latest) > len(text):
                stalled = 0
            else:
                stalled += 1
            logger.debug(f"Scroll round {round_number}: {len(text)} -> {len(latest)} chars")
            text = latest
            if stalled >= 2:
                break
        return text

    async def extract_transcript_text(self) -> str:
        if self.keep_timestamps:
            text = await self.extract_timestamped_text()
            if text:
                return text
            logger.info("No timestamped transcript lines found; using plain text")
        text = await self.extract_plain_text()
        if len(text) < self.single_pass_threshold:
            return text
        logger.info(f"Transcript is {len(text)} chars; scrolling to load the rest")
        return await self.scroll_and_extract(text)

    async def _extract_once(self, lesson: Lesson) -> TranscriptOutcome:
        await self.navigator.goto_with_retry(lesson.url)
        if await self.navigator.wait_for_any(PLAYER_LANDMARKS, LANDMARK_TIMEOUT_MS) is None:
            logger.warning(f"No video player found for lesson {lesson.lesson_number}: {lesson.url}")

        if not await self.click_transcript_tab():
            lesson.mark_without_transcript()
            logger.info(f"Lesson {lesson.lesson_number} '{lesson.title}' has no transcript tab")
            return TranscriptOutcome.NO_TRANSCRIPT

        if not self.keep_timestamps:
            await self.disable_interactive_transcripts()

        raw = await self.extract_transcript_text()
        lesson.set_transcript(clean_transcript_text(raw))
        if not lesson.has_transcript:
            logger.info(f"Lesson {lesson.lesson_number} '{lesson.title}' transcript panel was empty")
            return TranscriptOutcome.NO_TRANSCRIPT
        logger.info(f"Extracted transcript for lesson {lesson.lesson_number} '{lesson.title}' ({len(lesson.transcript)} chars)")
        return TranscriptOutcome.EXTRACTED

    async def extract_lesson_transcript(self, lesson: Lesson) -> TranscriptOutcome:
        """Extract and clean one lesson's transcript, retrying the whole sequence.

        The lesson is always stamped; if every attempt fails it is left
        without a transcript and the last error is re-raised.
        """
        if lesson is None:
            raise ValueError("lesson is required")
        try:
            return await retry_async(
                lambda: self._extract_once(lesson),
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                give_up_on=(SessionExpiredError,),
                description=f"Transcript extraction for lesson {lesson.lesson_number} '{lesson.title}' ({lesson.url})",
                sleep=self._sleep,
            )
        except Exception:
            lesson.mark_without_transcript()
            raise
