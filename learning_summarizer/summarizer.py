"""
AI summaries and reviews of extracted transcripts via the OpenAI chat API.

Failures never propagate: after the retry budget is spent the caller gets a
Markdown notice instead of a summary, so the transcripts are still written.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from openai import APITimeoutError, OpenAI

from .config import Settings
from .models import Course
from .retry import retry_async

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 300
MAX_OUTPUT_TOKENS = 4000
TEMPERATURE = 0.3
TRUNCATE_AFTER_TIMEOUT = 10000
MIN_CHUNK_SIZE = 1000
REVIEW_SAMPLE_LESSONS = 3
REVIEW_SAMPLE_CHARS = 500

DEFAULT_SUMMARY_INSTRUCTIONS = """You are an expert course summarizer. Create a clear, structured, and concise summary of the course content.

## Format
Your output must be in Markdown with these sections:

### Course Summary
- 8-12 concise bullets capturing main learning outcomes

### Key Skills & Tools
- Specific tools, technologies, or frameworks covered

### Key Terminology
- Important terms with brief definitions

### Practical Takeaways
- 6-10 actionable steps learners can implement

## Guidelines
- Be faithful to the content; don't add outside knowledge
- Keep under 800 words
"""

DEFAULT_REVIEW_INSTRUCTIONS = """You are an expert course reviewer. Review this LinkedIn Learning course.

Score each category 1-5 (1=poor, 5=excellent) with a short evaluation:
1. Course Scope & Coverage
2. Clarity & Teaching Style
3. Engagement & Delivery
4. Practical Application
5. Learning Outcomes & Accuracy

Then list 2-4 strengths, 2-4 weaknesses, the best audience, and a final
score (average of the five) with a one-sentence assessment. Answer in Markdown.
"""


def estimate_tokens(text: str) -> int:
    return len(text) // 4


def chunk_text(text: str, chunk_size: int, overlap: int) -> List[str]:
    """Split ``text`` into ``chunk_size`` pieces that overlap by ``overlap`` chars."""
    if not text:
        return []
    if chunk_size < MIN_CHUNK_SIZE:
        logger.warning(f"Chunk size {chunk_size} is too small; using {MIN_CHUNK_SIZE}")
        chunk_size = MIN_CHUNK_SIZE
    overlap = max(0, min(overlap, chunk_size - 1))
    if len(text) <= chunk_size:
        return [text]
    chunks = list()
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunks.append(text[start:end])
        if end >= len(text):
            break
        start = end - overlap
    return chunks


def error_fallback(error: str) -> str:
    return (
        "# AI Processing Unavailable\n\n"
        "*AI summary could not be generated due to an error:*\n"
        f"> {error}\n\n"
        "*The transcript content is available in the lesson files.*"
    )


def load_instructions(path: str, default: str) -> str:
    try:
        file_path = Path(path)
        if file_path.is_file():
            content = file_path.read_text(encoding="utf-8")
            if content.strip():
                logger.info(f"Loaded AI instructions from: {path}")
                return content
        logger.info(f"Instruction file not found: {path}, using default instructions")
    except OSError as e:
        logger.warning(f"Error loading instruction file {path}: {e}; using default instructions")
    return default


class CourseSummarizer:
    def __init__(self, settings: Settings, client: Optional[OpenAI] = None, sleep=asyncio.sleep):
        if client is None and not settings.OPENAI_API_KEY.strip():
            raise ValueError("OpenAI API key is required but not configured")
        self.settings = settings
        self.model = settings.OPENAI_MODEL
        self.client = client or OpenAI(api_key=settings.OPENAI_API_KEY, timeout=REQUEST_TIMEOUT_SECONDS)
        self._sleep = sleep
        self._summary_instructions: Optional[str] = None
        self._review_instructions: Optional[str] = None
        logger.info(f"OpenAI summarizer initialized with model: {self.model}")

    @property
    def summary_instructions(self) -> str:
        if self._summary_instructions is None:
            self._summary_instructions = load_instructions(
                self.settings.SUMMARY_INSTRUCTION_PATH, DEFAULT_SUMMARY_INSTRUCTIONS
            )
        return self._summary_instructions

    @property
    def review_instructions(self) -> str:
        if self._review_instructions is None:
            self._review_instructions = load_instructions(
                self.settings.REVIEW_INSTRUCTION_PATH, DEFAULT_REVIEW_INSTRUCTIONS
            )
        return self._review_instructions

    def _complete(self, instructions: str, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": instructions},
                {"role": "user", "content": prompt},
            ],
            max_tokens=MAX_OUTPUT_TOKENS,
            temperature=TEMPERATURE,
        )
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise RuntimeError("No response content received from OpenAI")
        return content

    async def complete(self, instructions: str, prompt: str, max_attempts: int = 3) -> str:
        """One chat completion with retries; returns a fallback notice on failure."""
        state = {"prompt": prompt}
        logger.info(f"Sending request to OpenAI (~{estimate_tokens(prompt + instructions):,} tokens)...")

        async def attempt() -> str:
            try:
                return await asyncio.to_thread(self._complete, instructions, state["prompt"])
            except APITimeoutError:
                if len(state["prompt"]) > TRUNCATE_AFTER_TIMEOUT:
                    state["prompt"] = state["prompt"][:TRUNCATE_AFTER_TIMEOUT] + "\n\n[Content truncated due to timeout]"
                    logger.warning("OpenAI request timed out; truncating content for retry")
                raise

        try:
            return await retry_async(
                attempt,
                max_attempts=max_attempts,
                base_delay=2.0,
                max_delay=10.0,
                description="OpenAI request",
                sleep=self._sleep,
            )
        except Exception as e:
            logger.error(f"OpenAI API failed after {max_attempts} attempts: {e}")
            return error_fallback(str(e))

    async def summarize_lesson(self, transcript: str) -> str:
        if not transcript or not transcript.strip():
            return ""
        return await self.complete(
            self.summary_instructions, f"Please summarize this lesson transcript:\n\n{transcript}"
        )

    async def summarize_course(self, full_transcript: str) -> str:
        if not full_transcript or not full_transcript.strip():
            return ""
        if len(full_transcript) <= self.settings.MAP_CHUNK_SIZE:
            return await self.complete(
                self.summary_instructions,
                f"Please create a comprehensive course summary from this complete transcript:\n\n{full_transcript}",
            )

        chunks = chunk_text(full_transcript, self.settings.MAP_CHUNK_SIZE, self.settings.MAP_CHUNK_OVERLAP)
        logger.info(f"Summarizing {len(full_transcript):,} chars in {len(chunks)} chunks")
        partials = list()
        for index, chunk in enumerate(chunks, 1):
            logger.info(f"Processing chunk {index}/{len(chunks)} ({len(chunk):,} chars)")
            partials.append(
                await self.complete(
                    self.summary_instructions,
                    f"Please summarize this portion of a course transcript (chunk {index} of {len(chunks)}):\n\n{chunk}",
                )
            )
        combined = "\n\n---\n\n".join(partials)
        return await self.complete(
            self.summary_instructions,
            f"Please create a comprehensive course summary from these individual section summaries:\n\n{combined}",
        )

    def review_context(self, course: Course) -> str:
        lessons = sorted(course.lessons_with_transcripts, key=lambda l: l.lesson_number)
        lines = [
            f"**Course:** {course.title}",
            f"**Instructor:** {course.instructor}",
            f"**Total Lessons:** {course.total_lessons}",
            f"**Lessons with Transcripts:** {len(lessons)}",
            "",
            "**Table of Contents:**",
        ]
        lines += [f"{index}. {lesson.title}" for index, lesson in enumerate(lessons, 1)]
        lines += ["", "**Sample Transcripts:**"]
        for lesson in lessons[:REVIEW_SAMPLE_LESSONS]:
            sample = lesson.transcript
            if len(sample) > REVIEW_SAMPLE_CHARS:
                sample = sample[:REVIEW_SAMPLE_CHARS] + "..."
            lines += ["", f"### {lesson.title}", sample]
        return "\n".join(lines)

    async def review_course(self, course: Course) -> str:
        if not course.lessons_with_transcripts:
            return ""
        return await self.complete(
            self.review_instructions,
            f"Please review this LinkedIn Learning course:\n\n{self.review_context(course)}",
        )

    async def enrich(self, course: Course) -> Course:
        """Fill in the AI fields the settings ask for."""
        if self.settings.GENERATE_LESSON_SUMMARIES:
            for lesson in course.lessons_with_transcripts:
                logger.info(f"Summarizing lesson {lesson.lesson_number}: {lesson.title}")
                lesson.ai_summary = await self.summarize_lesson(lesson.transcript)
        if self.settings.GENERATE_COURSE_SUMMARY:
            course.ai_summary = await self.summarize_course(course.full_transcript)
        if self.settings.GENERATE_REVIEW:
            course.ai_review = await self.review_course(course)
        return course
