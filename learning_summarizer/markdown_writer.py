"""
Markdown rendering of a processed course.

Layout under ``<output>/<course-title>/``::

    README.md             overview, table of contents, statistics
    full-transcript.md    every transcript in lesson order
    lessons/NN-title.md   one file per lesson that has a transcript
    ai_summary.md         when a course summary was generated
    ai_review.md          when a course review was generated
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

from .models import Course, Lesson, utc_now

logger = logging.getLogger(__name__)

INVALID_FILENAME_CHARS = '<>:"/\\|?*'
MAX_FILENAME_LENGTH = 100


def sanitize_filename(name: Optional[str]) -> str:
    """Lower-case, dash-separated name that is safe on every platform."""
    if not name or not name.strip():
        return "untitled"
    name = ''.join(c for c in name if ord(c) >= 32)
    for char in INVALID_FILENAME_CHARS:
        name = name.replace(char, '-' if char in '/\\|' else '')
    name = re.sub(r'\s+', '-', name.strip())
    name = re.sub(r'-+', '-', name).strip('-.')
    if len(name) > MAX_FILENAME_LENGTH:
        name = name[:MAX_FILENAME_LENGTH].rstrip('-')
    return name.lower() or "untitled"


def anchor_for(text: Optional[str]) -> str:
    if not text or not text.strip():
        return "section"
    anchor = re.sub(r'[^\w\s-]', '', text.lower())
    anchor = re.sub(r'[\s_]+', '-', anchor)
    return re.sub(r'-+', '-', anchor).strip('-') or "section"


def lesson_filename(lesson: Lesson, extension: str = "md") -> str:
    return f"{lesson.lesson_number:02d}-{sanitize_filename(lesson.title)}.{extension}"


def course_directory(output_dir: Union[str, Path], course: Course) -> Path:
    return Path(output_dir) / sanitize_filename(course.title)


def word_count(text: str) -> int:
    return len(text.split())


def _timestamp(value: Optional[datetime]) -> str:
    return (value or utc_now()).strftime("%Y-%m-%d %H:%M UTC")


class MarkdownWriter:
    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)

    def write(self, course: Course) -> Path:
        """Write every Markdown file for ``course`` and return its directory."""
        course_dir = course_directory(self.output_dir, course)
        lessons_dir = course_dir / "lessons"
        lessons_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Generating markdown files for: {course.title}")

        lessons = sorted(course.lessons_with_transcripts, key=lambda l: l.lesson_number)
        if not lessons:
            logger.info("No lessons with transcripts to write")
        for index, lesson in enumerate(lessons):
            path = lessons_dir / lesson_filename(lesson)
            path.write_text(self.render_lesson(course, lessons, index), encoding="utf-8")
            logger.debug(f"Generated: {path.name}")

        (course_dir / "README.md").write_text(self.render_readme(course), encoding="utf-8")
        (course_dir / "full-transcript.md").write_text(self.render_full_transcript(course), encoding="utf-8")
        if course.ai_summary:
            (course_dir / "ai_summary.md").write_text(course.ai_summary, encoding="utf-8")
        if course.ai_review:
            (course_dir / "ai_review.md").write_text(course.ai_review, encoding="utf-8")

        logger.info(f"Generated markdown files in: {course_dir}")
        return course_dir

    def _navigation(self, lessons: List[Lesson], index: int) -> str:
        links = list()
        if index > 0:
            previous = lessons[index - 1]
            links.append(f"[← Previous: {previous.title}]({lesson_filename(previous)})")
        links.append("[Course Overview](../README.md)")
        if index < len(lessons) - 1:
            following = lessons[index + 1]
            links.append(f"[Next: {following.title} →]({lesson_filename(following)})")
        return " | ".join(links)

    def render_lesson(self, course: Course, lessons: List[Lesson], index: int) -> str:
        lesson = lessons[index]
        navigation = self._navigation(lessons, index)
        lines = [
            f"# Lesson {lesson.lesson_number}: {lesson.title}",
            "",
            f"**Course:** [{course.title}](../README.md)",
            f"**Instructor:** {course.instructor}",
            f"**Lesson:** {lesson.lesson_number} of {course.total_lessons or len(course.lessons)}",
        ]
        if lesson.duration:
            lines.append(f"**Duration:** {lesson.duration}")
        lines += [f"**Extracted:** {_timestamp(lesson.extracted_at)}", "", navigation, ""]
        if lesson.ai_summary:
            lines += ["## AI Summary", "", lesson.ai_summary, "", "---", ""]
        lines += [
            "## Transcript",
            "",
            lesson.transcript,
            "",
            "---",
            "",
            navigation,
            "",
            "[Complete Transcript](../full-transcript.md)",
            "",
        ]
        return "\n".join(lines)

    def render_readme(self, course: Course) -> str:
        lessons = sorted(course.lessons_with_transcripts, key=lambda l: l.lesson_number)
        total = course.total_lessons or len(course.lessons)
        lines = [
            f"# {course.title}",
            "",
            f"**Instructor:** {course.instructor}",
            f"**URL:** {course.url}",
            f"**Total Lessons:** {total}",
            f"**Lessons with Transcripts:** {len(lessons)}",
            f"**Extracted:** {_timestamp(course.processed_at)}",
            "",
        ]
        if course.ai_summary:
            lines += ["## AI Course Summary", "", course.ai_summary, "", "---", ""]
        lines += ["## Course Overview", "", course.description, ""]
        if len(lessons) < total:
            lines += [f"**Note:** {total - len(lessons)} lesson(s) had no transcript and were skipped.", ""]

        lines += ["## Table of Contents", ""]
        if lessons:
            for lesson in lessons:
                duration = f" ({lesson.duration})" if lesson.duration else ""
                lines.append(f"{lesson.lesson_number}. [{lesson.title}](lessons/{lesson_filename(lesson)}){duration}")
        else:
            lines.append("*No lessons with transcripts available.*")
        lines.append("")

        lines += ["## Files", "", "- [Complete Transcript](full-transcript.md)"]
        if course.ai_summary:
            lines.append("- [AI Summary](ai_summary.md)")
        if course.ai_review:
            lines.append("- [AI Review](ai_review.md)")
        lines.append("")

        total_words = sum(word_count(l.transcript) for l in lessons)
        total_chars = sum(len(l.transcript) for l in lessons)
        success_rate = f"{len(lessons) / total:.0%}" if total else "n/a"
        lines += [
            "## Statistics",
            "",
            f"- **Success Rate:** {success_rate}",
            f"- **Total Words:** {total_words:,}",
            f"- **Total Characters:** {total_chars:,}",
            "",
        ]
        return "\n".join(lines)

    def render_full_transcript(self, course: Course) -> str:
        lessons = sorted(course.lessons_with_transcripts, key=lambda l: l.lesson_number)
        lines = [
            f"# {course.title} - Complete Transcript",
            "",
            f"**Instructor:** {course.instructor}",
            f"**Lessons with transcripts:** {len(lessons)}",
            "",
            "## Table of Contents",
            "",
        ]
        for lesson in lessons:
            heading = f"Lesson {lesson.lesson_number}: {lesson.title}"
            lines.append(f"{lesson.lesson_number}. [{heading}](#{anchor_for(heading)})")
        lines += ["", "---", ""]
        for lesson in lessons:
            lines += [
                f"## Lesson {lesson.lesson_number}: {lesson.title}",
                "",
                f"**Individual File:** [lessons/{lesson_filename(lesson)}](lessons/{lesson_filename(lesson)})",
                "",
                lesson.transcript,
                "",
                "---",
                "",
            ]
        return "\n".join(lines)
