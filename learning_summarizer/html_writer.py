import logging
import re
from html import escape
from pathlib import Path
from typing import List, Union

from .markdown_writer import course_directory, lesson_filename
from .models import Course, Lesson

logger = logging.getLogger(__name__)

THEMES = {
    "light": {
        "bg": "#ffffff",
        "bg_alt": "#f5f5f5",
        "text": "#333333",
        "muted": "#666666",
        "link": "#0066cc",
        "border": "#e0e0e0",
    },
    "dark": {
        "bg": "#1a1a1a",
        "bg_alt": "#2a2a2a",
        "text": "#e0e0e0",
        "muted": "#b0b0b0",
        "link": "#4a9eff",
        "border": "#404040",
    },
}

CSS_TEMPLATE = """:root {{
    --bg: {bg};
    --bg-alt: {bg_alt};
    --text: {text};
    --muted: {muted};
    --link: {link};
    --border: {border};
}}
body {{
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;
    line-height: 1.6;
    color: var(--text);
    background: var(--bg);
    margin: 0;
    padding: 20px;
}}
.container {{ max-width: 900px; margin: 0 auto; }}
h1 {{ border-bottom: 3px solid var(--border); padding-bottom: 10px; }}
h2 {{ border-bottom: 1px solid var(--border); padding-bottom: 5px; margin-top: 30px; }}
a {{ color: var(--link); }}
.meta, .navigation {{ background: var(--bg-alt); padding: 10px 15px; border-radius: 6px; margin: 15px 0; }}
.navigation a {{ margin-right: 15px; }}
.footer {{ color: var(--muted); font-size: 0.9em; margin-top: 40px; border-top: 1px solid var(--border); }}
"""

HEADING = re.compile(r"^(#{1,6})\s+(.*)$")
BULLET = re.compile(r"^\s*[-*]\s+(.*)$")
BOLD = re.compile(r"\*\*(.+?)\*\*")


def _inline(text: str) -> str:
    return BOLD.sub(r"<strong>\1</strong>", escape(text))


def markdown_to_html(markdown: str) -> str:
    """Small Markdown subset: headings, bullet lists, bold and paragraphs."""
    if not markdown or not markdown.strip():
        return ""
    blocks = list()
    for block in re.split(r"\n\s*\n", markdown.strip()):
        lines = block.splitlines()
        heading = HEADING.match(lines[0]) if len(lines) == 1 else None
        if heading:
            level = len(heading.group(1))
            blocks.append(f"<h{level}>{_inline(heading.group(2))}</h{level}>")
        elif all(BULLET.match(line) for line in lines):
            items = "".join(f"<li>{_inline(BULLET.match(line).group(1))}</li>" for line in lines)
            blocks.append(f"<ul>{items}</ul>")
        else:
            blocks.append("<p>" + "<br>".join(_inline(line) for line in lines) + "</p>")
    return "\n".join(blocks)


class HtmlWriter:
    def __init__(self, output_dir: Union[str, Path], theme: str = "light"):
        self.output_dir = Path(output_dir)
        self.theme = theme if theme in THEMES else "light"

    def stylesheet(self) -> str:
        return CSS_TEMPLATE.format(**THEMES[self.theme])

    def _page(self, title: str, body: str, css_path: str = "styles.css") -> str:
        return (
            "<!DOCTYPE html>\n"
            "<html lang=\"en\">\n"
            "<head>\n"
            "    <meta charset=\"UTF-8\">\n"
            "    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1.0\">\n"
            f"    <title>{escape(title)}</title>\n"
            f"    <link rel=\"stylesheet\" href=\"{css_path}\">\n"
            "</head>\n"
            "<body>\n"
            "<div class=\"container\">\n"
            f"{body}\n"
            "<div class=\"footer\"><p>Generated with LinkedIn Learning Summarizer</p></div>\n"
            "</div>\n"
            "</body>\n"
            "</html>\n"
        )

    def write(self, course: Course) -> Path:
        html_dir = course_directory(self.output_dir, course) / "html"
        lessons_dir = html_dir / "lessons"
        lessons_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Generating HTML files for: {course.title}")

        (html_dir / "styles.css").write_text(self.stylesheet(), encoding="utf-8")
        lessons = sorted(course.lessons_with_transcripts, key=lambda l: l.lesson_number)
        for index, lesson in enumerate(lessons):
            path = lessons_dir / lesson_filename(lesson, "html")
            path.write_text(self.render_lesson(course, lessons, index), encoding="utf-8")
        (html_dir / "index.html").write_text(self.render_index(course), encoding="utf-8")
        (html_dir / "full-transcript.html").write_text(self.render_full_transcript(course), encoding="utf-8")
        if course.ai_summary:
            (html_dir / "ai_summary.html").write_text(
                self._page(f"{course.title} - AI Summary", self._document(course, "AI Summary", course.ai_summary)),
                encoding="utf-8",
            )
        if course.ai_review:
            (html_dir / "ai_review.html").write_text(
                self._page(f"{course.title} - AI Review", self._document(course, "AI Review", course.ai_review)),
                encoding="utf-8",
            )
        logger.info(f"Generated HTML files in: {html_dir}")
        return html_dir

    def _document(self, course: Course, label: str, markdown: str) -> str:
        return (
            "<div class=\"navigation\"><a href=\"index.html\">← Course Overview</a></div>\n"
            f"<h1>{escape(course.title)} - {label}</h1>\n"
            f"<div class=\"content\">{markdown_to_html(markdown)}</div>"
        )

    def render_index(self, course: Course) -> str:
        lessons = sorted(course.lessons_with_transcripts, key=lambda l: l.lesson_number)
        parts = [
            f"<h1>{escape(course.title)}</h1>",
            "<div class=\"meta\">",
            f"<p><strong>Instructor:</strong> {escape(course.instructor)}</p>",
            f"<p><strong>Lessons with transcripts:</strong> {len(lessons)} of {course.total_lessons or len(course.lessons)}</p>",
            f"<p><a href=\"{escape(course.url)}\">View on LinkedIn Learning</a></p>",
            "</div>",
            f"<h2>Overview</h2>\n<p>{escape(course.description)}</p>",
        ]
        links = ["<a href=\"full-transcript.html\">Complete Transcript</a>"]
        if course.ai_summary:
            links.append("<a href=\"ai_summary.html\">AI Summary</a>")
        if course.ai_review:
            links.append("<a href=\"ai_review.html\">AI Review</a>")
        parts.append("<div class=\"navigation\">" + "".join(links) + "</div>")
        parts.append("<h2>Lessons</h2>")
        items: List[str] = list()
        for lesson in course.lessons:
            title = escape(lesson.title)
            if lesson.has_transcript:
                items.append(f"<li><a href=\"lessons/{lesson_filename(lesson, 'html')}\">{title}</a></li>")
            else:
                items.append(f"<li class=\"missing\">{title} <em>(no transcript)</em></li>")
        parts.append("<ol>" + "".join(items) + "</ol>" if items else "<p><em>No lessons found.</em></p>")
        return self._page(course.title, "\n".join(parts))

    def render_lesson(self, course: Course, lessons: List[Lesson], index: int) -> str:
        lesson = lessons[index]
        links = list()
        if index > 0:
            previous = lessons[index - 1]
            links.append(f"<a href=\"{lesson_filename(previous, 'html')}\">← {escape(previous.title)}</a>")
        links.append("<a href=\"../index.html\">Course Overview</a>")
        if index < len(lessons) - 1:
            following = lessons[index + 1]
            links.append(f"<a href=\"{lesson_filename(following, 'html')}\">{escape(following.title)} →</a>")
        navigation = "<div class=\"navigation\">" + "".join(links) + "</div>"
        body = [
            navigation,
            f"<h1>Lesson {lesson.lesson_number}: {escape(lesson.title)}</h1>",
        ]
        if lesson.ai_summary:
            body.append(f"<h2>AI Summary</h2>\n<div class=\"content\">{markdown_to_html(lesson.ai_summary)}</div>")
        body.append(f"<h2>Transcript</h2>\n<div class=\"content\">{markdown_to_html(lesson.transcript)}</div>")
        body.append(navigation)
        return self._page(f"{lesson.title} - {course.title}", "\n".join(body), "../styles.css")

    def render_full_transcript(self, course: Course) -> str:
        lessons = sorted(course.lessons_with_transcripts, key=lambda l: l.lesson_number)
        body = [
            "<div class=\"navigation\"><a href=\"index.html\">← Course Overview</a></div>",
            f"<h1>{escape(course.title)} - Complete Transcript</h1>",
        ]
        for lesson in lessons:
            body.append(
                "<section>"
                f"<h2>Lesson {lesson.lesson_number}: {escape(lesson.title)}</h2>"
                f"<div class=\"content\">{markdown_to_html(lesson.transcript)}</div>"
                "</section>"
            )
        return self._page(f"{course.title} - Complete Transcript", "\n".join(body))
