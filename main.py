'''
LinkedIn Learning transcript extractor and course summarizer.
Reads a list of course URLs, signs in once (reusing a saved browser session when it is still valid),
extracts every lesson transcript and writes Markdown/HTML course folders, optionally with AI summaries.

Features:
- Persistent login session, with interactive sign-in only when needed
- Per-lesson and per-course failure isolation with an end-of-run report
- Course summary and review through the OpenAI API

Usage:
    python main.py courses.txt
    python main.py courses.txt --headless false --output-dir ./transcripts
    python main.py --check-config
    python main.py --reset-session

courses.txt holds one course URL per line; blank lines and lines starting with # are ignored.
'''

import asyncio
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from learning_summarizer.config import Settings
from learning_summarizer.errors import AuthenticationError, ConfigurationError
from learning_summarizer.html_writer import HtmlWriter
from learning_summarizer.logging_setup import configure_logging
from learning_summarizer.markdown_writer import MarkdownWriter
from learning_summarizer.models import BatchReport, Course
from learning_summarizer.orchestrator import BatchOrchestrator, summarize_results
from learning_summarizer.session_store import SessionStore
from learning_summarizer.summarizer import CourseSummarizer
from learning_summarizer.url_file import read_url_file, split_valid_urls

logger = logging.getLogger(__name__)


def str_to_bool(v):
    """Convert string to boolean for argparse."""
    if isinstance(v, bool):
        return v
    if v.lower() in ('yes', 'true', 't', 'y', '1'):
        return True
    elif v.lower() in ('no', 'false', 'f', 'n', '0'):
        return False
    else:
        raise argparse.ArgumentTypeError('Boolean value expected.')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract LinkedIn Learning transcripts and summarize courses.")
    parser.add_argument('url_file', nargs='?', help='Text file with one course URL per line')
    parser.add_argument('--check-config', action='store_true', help='Print the effective configuration and validate it')
    parser.add_argument('--reset-session', action='store_true', help='Delete the saved LinkedIn session')
    parser.add_argument('--headless', type=str_to_bool, default=None, help='Run browser in headless mode (true/false)')
    parser.add_argument('--output-dir', help='Output directory for course folders (overrides .env)')
    parser.add_argument('--log-level', help='Logging level, e.g. DEBUG or INFO (overrides .env)')
    return parser


def check_config(settings: Settings) -> int:
    print("Configuration:")
    for line in settings.describe():
        print(f"  {line}")
    errors = settings.validation_errors()
    if errors:
        print("\nConfiguration is invalid:")
        for error in errors:
            print(f"  - {error}")
        return 1
    print("\nConfiguration is valid.")
    return 0


def reset_session(settings: Settings) -> int:
    store = SessionStore(settings.SESSION_PROFILE)
    if store.cleanup():
        print(f"Session '{settings.SESSION_PROFILE}' has been reset.")
    else:
        print(f"No saved session found at {store.path}.")
    return 0


class CourseOutput:
    """Per-course hook: optional AI enrichment, then Markdown and HTML output."""

    def __init__(self, settings: Settings, summarizer: Optional[CourseSummarizer] = None):
        self.settings = settings
        self.summarizer = summarizer
        self.markdown = MarkdownWriter(settings.OUTPUT_TRANSCRIPT_DIR)
        self.html = HtmlWriter(settings.OUTPUT_TRANSCRIPT_DIR, theme=settings.HTML_THEME) if settings.GENERATE_HTML else None
        self.written: List[Path] = []

    async def __call__(self, course: Course, report: BatchReport) -> None:
        if self.summarizer is not None and course.lessons_with_transcripts:
            logger.info(f"Generating AI content for: {course.title}")
            await self.summarizer.enrich(course)
        course_dir = self.markdown.write(course)
        logger.info(f"Markdown written to: {course_dir}")
        if self.html is not None:
            html_dir = self.html.write(course)
            logger.info(f"HTML written to: {html_dir}")
        self.written.append(course_dir)


async def process_url_file(settings: Settings, url_file: str) -> int:
    try:
        urls = read_url_file(url_file)
    except FileNotFoundError:
        logger.error(f"File not found: {url_file}")
        return 1

    valid, invalid = split_valid_urls(urls)
    for url in invalid:
        logger.warning(f"Skipping invalid course URL: {url}")
    if not valid:
        logger.error(f"No valid LinkedIn Learning course URLs found in {url_file}")
        return 1
    logger.info(f"Found {len(valid)} course URL(s) to process")

    if not settings.ENABLE_SCRAPING:
        logger.warning("ENABLE_SCRAPING is false; nothing to do.")
        return 0

    summarizer = CourseSummarizer(settings) if settings.ENABLE_AI_PROCESSING else None
    output = CourseOutput(settings, summarizer)

    try:
        async with BatchOrchestrator(settings) as orchestrator:
            results = await orchestrator.run(valid, on_course=output)
    except AuthenticationError as e:
        logger.error(f"Authentication failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"Batch run aborted: {e}")
        return 1

    _, summary = summarize_results(results)
    print(summary)
    return 0


async def main(argv: Optional[List[str]] = None) -> int:
    # Load settings from .env and allow override by CLI
    settings = Settings()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.headless is not None:
        settings.HEADLESS = args.headless
    if args.output_dir:
        settings.OUTPUT_TRANSCRIPT_DIR = args.output_dir
    if args.log_level:
        settings.LOG_LEVEL = args.log_level
    configure_logging(settings.LOG_LEVEL)

    if args.check_config:
        return check_config(settings)
    if args.reset_session:
        return reset_session(settings)
    if not args.url_file:
        parser.print_help()
        return 1

    try:
        settings.validate_all()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    return await process_url_file(settings, args.url_file)


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    run()
