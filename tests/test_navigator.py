"""
Tests for navigation retries, login-wall detection and the retry combinator.
"""

import asyncio

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from conftest import COURSE_URL, FakeElement, FakePage, RecordingSleep, no_sleep
from learning_summarizer.errors import NavigationError, SessionExpiredError
from learning_summarizer.navigator import AUTHENTICATED_LANDMARKS, LEARNING_HOME_URL, Navigator, is_learning_url, is_login_url
from learning_summarizer.retry import backoff_delay, retry_async

SIGNED_IN = AUTHENTICATED_LANDMARKS[0]
CHECKPOINT_COURSE_URL = "https://www.linkedin.com/learning/checkpoint-firewall-essentials"


@pytest.mark.unit
class TestUrlPredicates:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.linkedin.com/login",
            "https://www.linkedin.com/learning/login?redirect=/learning/x",
            "https://www.linkedin.com/uas/login",
            "https://www.linkedin.com/checkpoint/lg/login-submit",
            "https://www.linkedin.com/authwall?trk=x",
        ],
    )
    def test_login_urls(self, url):
        assert is_login_url(url)

    def test_course_url_is_not_login(self):
        assert not is_login_url(COURSE_URL)
        assert not is_login_url("")

    @pytest.mark.parametrize(
        "url",
        [
            f"{CHECKPOINT_COURSE_URL}/welcome",
            "https://www.linkedin.com/learning/login-security-fundamentals",
            "https://www.linkedin.com/learning/signup-flows-in-ux-design/intro",
            "https://www.linkedin.com/learning/authwall-patterns",
        ],
    )
    def test_course_slugs_starting_with_login_words(self, url):
        assert not is_login_url(url)

    def test_learning_url(self):
        assert is_learning_url(COURSE_URL)
        assert not is_learning_url("https://www.linkedin.com/feed/")
        assert not is_learning_url("https://learning.example.com/learning/x")


@pytest.mark.unit
class TestGotoWithRetry:
    def test_success_first_try(self):
        page = FakePage()
        asyncio.run(Navigator(page, sleep=no_sleep).goto_with_retry(COURSE_URL))
        assert page.visited == [COURSE_URL]
        assert page.url == COURSE_URL

    def test_retries_timeouts_with_backoff(self):
        page = FakePage()
        page.goto_effects[COURSE_URL] = [PlaywrightTimeoutError("slow"), PlaywrightTimeoutError("slow"), None]
        sleep = RecordingSleep()

        asyncio.run(Navigator(page, sleep=sleep).goto_with_retry(COURSE_URL))

        assert len(page.visited) == 3
        assert sleep.delays == [2.0, 4.0]

    def test_gives_up_after_max_attempts(self):
        page = FakePage()
        page.goto_effects[COURSE_URL] = [PlaywrightTimeoutError("slow")]

        with pytest.raises(NavigationError) as exc_info:
            asyncio.run(Navigator(page, sleep=no_sleep).goto_with_retry(COURSE_URL, max_attempts=3))

        assert exc_info.value.attempts == 3
        assert exc_info.value.url == COURSE_URL
        assert len(page.visited) == 3

    def test_login_redirect_raises_session_expired(self):
        page = FakePage()
        page.redirects[COURSE_URL] = "https://www.linkedin.com/learning/login"

        with pytest.raises(SessionExpiredError) as exc_info:
            asyncio.run(Navigator(page, sleep=no_sleep).goto_with_retry(COURSE_URL))

        assert exc_info.value.landed_on == "https://www.linkedin.com/learning/login"
        assert len(page.visited) == 1

    def test_course_named_like_a_login_page_loads(self):
        page = FakePage()
        asyncio.run(Navigator(page, sleep=no_sleep).goto_with_retry(CHECKPOINT_COURSE_URL))
        assert page.url == CHECKPOINT_COURSE_URL

    def test_empty_url_rejected(self):
        with pytest.raises(ValueError):
            asyncio.run(Navigator(FakePage()).goto_with_retry("  "))


@pytest.mark.unit
class TestValidateLiveSession:
    def test_landmark_means_signed_in(self):
        page = FakePage({SIGNED_IN: [FakeElement()]})
        assert asyncio.run(Navigator(page).validate_live_session()) is True
        assert page.visited == [LEARNING_HOME_URL]

    def test_login_redirect_means_signed_out(self):
        page = FakePage({SIGNED_IN: [FakeElement()]})
        page.redirects[LEARNING_HOME_URL] = "https://www.linkedin.com/login"
        assert asyncio.run(Navigator(page).validate_live_session()) is False

    def test_navigation_error_is_swallowed(self):
        page = FakePage()
        page.goto_effects[LEARNING_HOME_URL] = [PlaywrightTimeoutError("slow")]
        assert asyncio.run(Navigator(page).validate_live_session()) is False

    def test_learning_page_without_landmark_is_rejected(self):
        page = FakePage({"nav": [FakeElement()]})
        assert asyncio.run(Navigator(page).validate_live_session()) is False
        assert page.url == LEARNING_HOME_URL

    def test_unexpected_page_is_rejected(self):
        page = FakePage()
        page.redirects[LEARNING_HOME_URL] = "https://www.example.com/"
        assert asyncio.run(Navigator(page).validate_live_session()) is False


@pytest.mark.unit
class TestRetryAsync:
    def test_backoff_delay(self):
        assert [backoff_delay(n, 2.0) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]
        assert backoff_delay(5, 2.0, max_delay=10.0) == 10.0

    def test_returns_first_success(self):
        calls = []

        async def operation():
            calls.append(1)
            if len(calls) < 2:
                raise RuntimeError("flaky")
            return "done"

        sleep = RecordingSleep()
        assert asyncio.run(retry_async(operation, base_delay=1.0, sleep=sleep)) == "done"
        assert sleep.delays == [1.0]

    def test_give_up_on_propagates_immediately(self):
        calls = []

        async def operation():
            calls.append(1)
            raise SessionExpiredError("https://a", "https://a/login")

        with pytest.raises(SessionExpiredError):
            asyncio.run(retry_async(operation, give_up_on=(SessionExpiredError,), sleep=no_sleep))
        assert len(calls) == 1

    def test_unlisted_errors_are_not_retried(self):
        calls = []

        async def operation():
            calls.append(1)
            raise KeyError("nope")

        with pytest.raises(KeyError):
            asyncio.run(retry_async(operation, retry_on=(RuntimeError,), sleep=no_sleep))
        assert len(calls) == 1

    def test_reraises_last_error(self):
        async def operation():
            raise RuntimeError("always")

        sleep = RecordingSleep()
        with pytest.raises(RuntimeError, match="always"):
            asyncio.run(retry_async(operation, max_attempts=3, base_delay=2.0, sleep=sleep))
        assert sleep.delays == [2.0, 4.0]

    def test_invalid_attempts(self):
        async def operation():
            return None

        with pytest.raises(ValueError):
            asyncio.run(retry_async(operation, max_attempts=0))
