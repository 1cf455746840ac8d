"""
Course metadata and lesson discovery.

LinkedIn Learning renders its table of contents client-side and changes the
markup often, so every lookup is an ordered list of selectors, most specific
first. The URL and title rules below decide which of the matched anchors are
lessons of *this* course rather than site navigation.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse, urlunparse

from playwright.async_api import Error as PlaywrightError, Page

from .dom import Probe, element_text, first_matches, first_text
from .models import UNKNOWN_DESCRIPTION, UNKNOWN_INSTRUCTOR, UNKNOWN_TITLE, Course, Lesson, utc_now

logger = logging.getLogger(__name__)

PLATFORM_ORIGIN = "https://www.linkedin.com"
PLATFORM_DOMAIN = "linkedin.com"
LEARNING_SEGMENT = "learning"

TITLE_PROBES = (
    Probe("h1.classroom-nav__title"),
    Probe(".classroom-layout__header h1"),
    Probe("h1.top-card-layout__title"),
    Probe("[data-test-id='course-title']"),
    Probe("h1"),
    Probe("meta[property='og:title']", "content"),
)

INSTRUCTOR_PROBES = (
    Probe("[data-test-id='instructor-name']"),
    Probe(".instructor__name"),
    Probe(".classroom-workspace-overview__instructor-name"),
    Probe(".course-instructors__name"),
    Probe(".authors-entity__name"),
    Probe("a[href*='/learning/instructors/']"),
)

DESCRIPTION_PROBES = (
    Probe("[data-test-id='course-description']"),
    Probe(".classroom-workspace-overview__description"),
    Probe(".course-description__text"),
    Probe(".show-more-less-html__markup"),
    Probe("meta[name='description']", "content"),
    Probe("meta[property='og:description']", "content"),
)

# Used only for the advisory lesson count before discovery runs.
TOC_ITEM_SELECTORS = (
    ".classroom-toc-item",
    "[data-test-id='toc-item']",
    ".course-toc__item",
    ".table-of-contents__item",
)

# Site-specific containers first, bare nav/aside links as the weakest fallback.
LESSON_LINK_SELECTORS = (
    "a.classroom-toc-item__link",
    ".classroom-toc-section__items a[href]",
    "[data-test-id='toc-item'] a[href]",
    ".course-toc__item a[href]",
    ".table-of-contents a[href*='/learning/']",
    "section[class*='toc'] a[href*='/learning/']",
    "nav a[href*='/learning/']",
    "aside a[href*='/learning/']",
)

NAVIGATION_LABELS = frozenset(
    label.lower()
    for label in (
        "Home",
        "Search",
        "Profile",
        "Logout",
        "Log out",
        "Sign out",
        "Sign in",
        "Notifications",
        "Messaging",
        "My Learning",
        "My Library",
        "Browse",
        "Settings",
        "Help",
        "Learning",
        "LinkedIn Learning",
        "Me",
        "Try Premium",
        "Saved",
        "History",
        "Collections",
        "Skip to main content",
    )
)

# /learning/<section> paths that are site areas, not courses
RESERVED_LEARNING_SECTIONS = frozenset(
    {
        "browse",
        "topics",
        "paths",
        "subscription",
        "search",
        "me",
        "login",
        "instructors",
        "certificates",
        "collections",
        "help",
        "settings",
        "signup",
    }
)

HELP_SEGMENTS = frozenset({"help", "support"})

DURATION_SUFFIX = re.compile(r"\s*\(?((?:\d+\s*h\s*)?(?:\d+\s*m\s*)?(?:\d+\s*s)?)\s*\)?\s*$", re.IGNORECASE)
DURATION_LINE = re.compile(r"^\(?\s*(?:\d+\s*h\s*)?(?:\d+\s*m\s*)?(?:\d+\s*s)?\s*\)?$", re.IGNORECASE)


def _path_segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def _is_platform_host(host: Optional[str]) -> bool:
    host = (host or "").lower()
    return host == PLATFORM_DOMAIN or host.endswith("." + PLATFORM_DOMAIN)


def normalize_href(href: Optional[str]) -> Optional[str]:
    """Absolute https URL for an anchor href, without query string or fragment."""
    if not href:
        return None
    href = href.strip()
    if href.startswith("//"):
        href = "https:" + href
    elif href.startswith("/"):
        href = PLATFORM_ORIGIN + href
    parsed = urlparse(href)
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        return None
    path = parsed.path.rstrip("/") or "/"
    return urlunparse((parsed.scheme.lower(), parsed.netloc.lower(), path, "", "", ""))


def _course_segments(url: str) -> Optional[List[str]]:
    """Path segments up to and including the course slug."""
    segments = _path_segments(urlparse(url or "").path)
    lowered = [s.lower() for s in segments]
    if LEARNING_SEGMENT not in lowered:
        return None
    start = lowered.index(LEARNING_SEGMENT)
    rest = segments[start + 1:]
    if rest and rest[0].lower() == "courses":
        rest = rest[1:]
        prefix = segments[: start + 2]
    else:
        prefix = segments[: start + 1]
    if not rest:
        return None
    return prefix + [rest[0]]


def course_slug(url: str) -> Optional[str]:
    segments = _course_segments(url)
    return segments[-1] if segments else None


def canonicalize_course_url(url: str) -> str:
    """Truncate a course or lesson deep-link to ``<origin>/learning/<slug>``."""
    url = (url or "").strip()
    if url.startswith("//"):
        url = "https:" + url
    parsed = urlparse(url)
    segments = _course_segments(url)
    if not segments or not parsed.netloc:
        return url
    return urlunparse((parsed.scheme.lower() or "https", parsed.netloc.lower(), "/" + "/".join(segments), "", "", ""))


def is_valid_course_url(url: Optional[str]) -> bool:
    """Whether ``url`` looks like a LinkedIn Learning course (or lesson) URL."""
    if not url or not url.strip():
        return False
    url = url.strip()
    if url.startswith("//"):
        url = "https:" + url
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https") or not _is_platform_host(parsed.hostname):
        return False
    segments = [s.lower() for s in _path_segments(parsed.path)]
    if len(segments) < 2 or segments[0] != LEARNING_SEGMENT:
        return False
    if segments[1] == "courses":
        return len(segments) >= 3
    return segments[1] not in RESERVED_LEARNING_SECTIONS


def is_help_url(url: str) -> bool:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if host.split(".")[0] in HELP_SEGMENTS:
        return True
    return any(segment.lower() in HELP_SEGMENTS for segment in _path_segments(parsed.path))


def is_valid_lesson_url(url: Optional[str], course_url: str) -> bool:
    """Whether a discovered link belongs to the course at ``course_url``."""
    absolute = normalize_href(url)
    if absolute is None:
        return False
    parsed = urlparse(absolute)
    if not _is_platform_host(parsed.hostname):
        return False
    segments = [s.lower() for s in _path_segments(parsed.path)]
    if LEARNING_SEGMENT not in segments:
        return False

    canonical = normalize_href(canonicalize_course_url(course_url)) or ""
    if absolute.lower() == canonical.lower():
        return False
    if is_help_url(absolute):
        return False

    slug = (course_slug(course_url) or "").lower()
    if slug and slug in segments:
        return True
    # Candidate is an ancestor of a deep-linked course URL, below /learning itself.
    course_segments = [s.lower() for s in _path_segments(urlparse(normalize_href(course_url) or "").path)]
    learning_at = segments.index(LEARNING_SEGMENT)
    deeper_than_learning = len(segments) > learning_at + 1
    return deeper_than_learning and course_segments[: len(segments)] == segments


def is_valid_lesson_title(title: Optional[str]) -> bool:
    if not title or not title.strip():
        return False
    return title.strip().lower() not in NAVIGATION_LABELS


def split_title_and_duration(text: Optional[str]) -> Tuple[str, str]:
    """Pull the lesson title (and a trailing duration label) out of TOC text."""
    lines = [" ".join(line.split()) for line in (text or "").splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return "", ""
    title = lines[0]
    duration = ""
    for line in lines[1:]:
        if DURATION_LINE.match(line) and any(ch.isdigit() for ch in line):
            duration = line.strip("() ")
            break
    match = DURATION_SUFFIX.search(title)
    label = match.group(1).strip() if match else ""
    if match and match.start() > 0 and label and label[-1].lower() in "hms" and any(ch.isdigit() for ch in label):
        duration = duration or label
        title = title[: match.start()].rstrip(" -–")
    return title, duration


def clean_lesson_title(text: Optional[str]) -> str:
    return split_title_and_duration(text)[0]


def dedupe_candidates(candidates: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    """Drop repeated URLs, keeping the first occurrence and the original order."""
    seen = set()
    unique = list()
    for candidate in candidates:
        url = candidate["url"]
        if url in seen:
            continue
        seen.add(url)
        unique.append(candidate)
    return unique


def filter_lesson_candidates(candidates: Sequence[Dict[str, str]], course_url: str) -> List[Lesson]:
    """Apply the URL and title rules and number the survivors 1..n."""
    lessons = list()
    rejected: Dict[str, int] = dict()
    for candidate in candidates:
        if not is_valid_lesson_url(candidate["url"], course_url):
            rejected["url"] = rejected.get("url", 0) + 1
            logger.debug(f"Rejected lesson link (url): {candidate['url']}")
            continue
        if not is_valid_lesson_title(candidate["title"]):
            rejected["title"] = rejected.get("title", 0) + 1
            logger.debug(f"Rejected lesson link (title {candidate['title']!r}): {candidate['url']}")
            continue
        lessons.append(
            Lesson(
                lesson_number=len(lessons) + 1,
                title=candidate["title"],
                url=candidate["url"],
                duration=candidate.get("duration", ""),
            )
        )
    if rejected:
        logger.info(f"Filtered out {sum(rejected.values())} link(s): {rejected}")
    return lessons


class CourseDiscoverer:
    """Reads course metadata and the lesson list from a loaded course page."""

    def __init__(self, page: Page):
        self.page = page

    async def extract_metadata(self, course: Course) -> Course:
        """Fill in title, instructor, description and an estimated lesson count.

        Never raises; fields that cannot be found keep their sentinel values.
        """
        course.processed_at = utc_now()
        for field, probes, sentinel in (
            ("title", TITLE_PROBES, UNKNOWN_TITLE),
            ("instructor", INSTRUCTOR_PROBES, UNKNOWN_INSTRUCTOR),
            ("description", DESCRIPTION_PROBES, UNKNOWN_DESCRIPTION),
        ):
            try:
                found = await first_text(self.page, probes)
            except Exception as e:
                logger.warning(f"Could not extract course {field}: {e}")
                found = None
            if found:
                selector, value = found
                setattr(course, field, " ".join(value.split()))
                logger.debug(f"Course {field} from {selector!r}: {value[:80]}")
            else:
                setattr(course, field, sentinel)
                logger.warning(f"Course {field} not found on {course.url}; using '{sentinel}'")

        try:
            selector, items = await first_matches(self.page, TOC_ITEM_SELECTORS)
        except Exception as e:
            logger.debug(f"TOC item count failed: {e}")
            selector, items = None, []
        if items:
            course.total_lessons = len(items)
            logger.debug(f"Estimated {len(items)} lessons from {selector!r}")

        logger.info(f"Course found: {course.title} by {course.instructor}")
        return course

    async def _read_candidates(self, elements) -> List[Dict[str, str]]:
        candidates = list()
        for element in elements:
            try:
                href = await element.get_attribute("href")
                text = await element_text(element)
            except PlaywrightError as e:
                logger.debug(f"Skipping unreadable anchor: {e}")
                continue
            url = normalize_href(href)
            if url is None:
                continue
            title, duration = split_title_and_duration(text)
            candidates.append({"url": url, "title": title, "duration": duration})
        return candidates

    async def discover_lessons(self, course_url: str, selectors: Sequence[str] = LESSON_LINK_SELECTORS) -> List[Lesson]:
        """Ordered, de-duplicated lessons of the course shown on the page.

        Stops at the first selector with any raw matches, even if every match
        is later filtered out.
        """
        selector, elements = await first_matches(self.page, selectors)
        if not elements:
            logger.warning(f"No lesson links matched any of {len(selectors)} selectors on {course_url}")
            return []
        logger.info(f"Selector {selector!r} matched {len(elements)} link(s)")

        candidates = dedupe_candidates(await self._read_candidates(elements))
        lessons = filter_lesson_candidates(candidates, course_url)
        if not lessons:
            logger.warning(f"All {len(candidates)} candidate link(s) from {selector!r} were filtered out for {course_url}")
        else:
            logger.info(f"Discovered {len(lessons)} lesson(s)")
        return lessons
