"""
Shared pytest fixtures and an in-memory stand-in for the Playwright page API.
Browser-facing code is exercised against these fakes, so no browser or
network is needed.
"""

import json
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from learning_summarizer.config import Settings
from learning_summarizer.models import Course, Lesson


class FakeElement:
    """Element handle whose text may be a string or a zero-arg callable."""

    def __init__(self, text="", attrs: Optional[Dict[str, str]] = None, children=None, on_click: Callable = None):
        self._text = text
        self.attrs = dict(attrs or {})
        self.children: Dict[str, List["FakeElement"]] = dict(children or {})
        self.on_click = on_click
        self.clicks = 0
        self.text_reads = 0
        self.evaluated: List[str] = []

    async def inner_text(self) -> str:
        self.text_reads += 1
        return self._text() if callable(self._text) else self._text

    async def text_content(self) -> str:
        return self._text() if callable(self._text) else self._text

    async def get_attribute(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    async def query_selector(self, selector: str) -> Optional["FakeElement"]:
        matches = self.children.get(selector, [])
        return matches[0] if matches else None

    async def query_selector_all(self, selector: str) -> List["FakeElement"]:
        return list(self.children.get(selector, []))

    async def click(self) -> None:
        self.clicks += 1
        if self.on_click is not None:
            self.on_click(self)

    async def evaluate(self, expression: str) -> None:
        self.evaluated.append(expression)


class FakePage:
    """Selector lookups are answered from ``elements``; navigation is scripted."""

    def __init__(self, elements: Optional[Dict[str, List[FakeElement]]] = None, url: str = "about:blank"):
        self.elements: Dict[str, List[FakeElement]] = dict(elements or {})
        self.url = url
        self.visited: List[str] = []
        self.goto_effects: Dict[str, list] = {}
        self.redirects: Dict[str, str] = {}
        self.broken_selectors = set()
        self.waits: List[int] = []
        self.closed = False

    def _lookup(self, selector: str) -> List[FakeElement]:
        if selector in self.broken_selectors:
            raise PlaywrightError(f"Unsupported selector: {selector}")
        return list(self.elements.get(selector, []))

    async def goto(self, url: str, wait_until: str = None, timeout: int = None) -> None:
        self.visited.append(url)
        effects = self.goto_effects.get(url)
        if effects:
            effect = effects.pop(0) if len(effects) > 1 else effects[0]
            if isinstance(effect, BaseException):
                raise effect
        self.url = self.redirects.get(url, url)

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        matches = self._lookup(selector)
        return matches[0] if matches else None

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        return self._lookup(selector)

    async def wait_for_selector(self, selector: str, state: str = "visible", timeout: int = None) -> FakeElement:
        for part in selector.split(", "):
            matches = self._lookup(part)
            if matches:
                return matches[0]
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")

    async def evaluate(self, expression: str) -> None:
        return None

    async def wait_for_timeout(self, timeout: int) -> None:
        self.waits.append(timeout)

    async def close(self) -> None:
        self.closed = True


class FakeContext:
    def __init__(self, page: Optional[FakePage] = None, storage_state: Optional[str] = None):
        self.pages = [page] if page is not None else []
        self.storage_state_path = storage_state
        self.closed = False

    async def new_page(self) -> FakePage:
        page = FakePage()
        self.pages.append(page)
        return page

    async def storage_state(self, path: str) -> dict:
        state = {"cookies": [{"name": "li_at", "value": "token"}], "origins": []}
        Path(path).write_text(json.dumps(state), encoding="utf-8")
        return state

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, page: Optional[FakePage] = None):
        self.page = page
        self.contexts: List[FakeContext] = []
        self.closed = False

    async def new_context(self, storage_state: Optional[str] = None) -> FakeContext:
        context = FakeContext(self.page or FakePage(), storage_state=storage_state)
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True


async def no_sleep(delay: float) -> None:
    return None


class RecordingSleep:
    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


COURSE_URL = "https://www.linkedin.com/learning/python-essentials"


def make_settings(**overrides) -> Settings:
    values = dict(
        OPENAI_API_KEY="sk-test-1234567890abcd",
        HEADLESS=True,
        LESSON_DELAY=0,
        MAX_SCROLL_ROUNDS=10,
        SINGLE_PASS_THRESHOLD=5000,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def sample_course():
    """Course with two transcribed lessons and one without a transcript."""
    course = Course(
        url=COURSE_URL,
        title="Python Essentials",
        instructor="Dr. Test Instructor",
        description="Learn the basics of Python.",
        total_lessons=3,
    )
    first = Lesson(lesson_number=1, title="Welcome", url=f"{COURSE_URL}/welcome", duration="1m 30s")
    first.set_transcript("Welcome to the course. We will learn Python.")
    second = Lesson(lesson_number=2, title="Variables & Types", url=f"{COURSE_URL}/variables")
    second.set_transcript("A variable is a name bound to a value.\n\nTypes describe values.")
    third = Lesson(lesson_number=3, title="Quiz", url=f"{COURSE_URL}/quiz")
    third.mark_without_transcript()
    course.lessons = [first, second, third]
    return course
