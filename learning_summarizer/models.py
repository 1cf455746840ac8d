from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

UNKNOWN_TITLE = "Unknown Course"
UNKNOWN_INSTRUCTOR = "Unknown Instructor"
UNKNOWN_DESCRIPTION = "No description available"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Lesson(BaseModel):
    """A single video lesson within a course"""

    lesson_number: int  # 1-based position in discovery order
    title: str
    url: str
    duration: str = ""  # TOC label such as "3m 12s", when shown
    transcript: str = ""
    has_transcript: bool = False
    extracted_at: Optional[datetime] = None  # stamped on every extraction attempt
    ai_summary: str = ""

    def set_transcript(self, text: str) -> None:
        """Store cleaned transcript text and stamp the attempt."""
        text = text or ""
        self.has_transcript = bool(text.strip())
        self.transcript = text if self.has_transcript else ""
        self.extracted_at = utc_now()

    def mark_without_transcript(self) -> None:
        self.transcript = ""
        self.has_transcript = False
        self.extracted_at = utc_now()

    @property
    def identifier(self) -> str:
        return f"{self.lesson_number}. {self.title} ({self.url})"


class Course(BaseModel):
    """A course page and the lessons discovered on it"""

    url: str = Field(frozen=True)
    title: str = UNKNOWN_TITLE
    instructor: str = UNKNOWN_INSTRUCTOR
    description: str = UNKNOWN_DESCRIPTION
    total_lessons: int = 0  # advisory, may differ from len(lessons)
    lessons: List[Lesson] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=utc_now)
    ai_summary: str = ""
    ai_review: str = ""

    @property
    def lessons_with_transcripts(self) -> List[Lesson]:
        return [lesson for lesson in self.lessons if lesson.has_transcript]

    @property
    def full_transcript(self) -> str:
        """All lesson transcripts in lesson order, separated by headings."""
        parts = list()
        for lesson in sorted(self.lessons_with_transcripts, key=lambda l: l.lesson_number):
            parts.append(f"## Lesson {lesson.lesson_number}: {lesson.title}\n\n{lesson.transcript}")
        return "\n\n".join(parts)


class BatchReport(BaseModel):
    """Outcome counters for one transcript pass"""

    total: int = 0
    successful: int = 0
    no_transcript: int = 0
    failed: int = 0
    failed_lessons: List[str] = Field(default_factory=list)

    def merge(self, other: "BatchReport") -> None:
        self.total += other.total
        self.successful += other.successful
        self.no_transcript += other.no_transcript
        self.failed += other.failed
        self.failed_lessons.extend(other.failed_lessons)

    def render(self) -> str:
        lines = [
            "Transcript extraction summary:",
            f"  Total lessons:   {self.total}",
            f"  Successful:      {self.successful}",
            f"  No transcript:   {self.no_transcript}",
            f"  Failed:          {self.failed}",
        ]
        if self.failed_lessons:
            lines.append("  Failed lessons:")
            lines.extend(f"    - {item}" for item in self.failed_lessons)
        return "\n".join(lines)


class CourseResult(BaseModel):
    """What happened to one course URL in a batch run"""

    course_url: str
    course: Optional[Course] = None
    report: BatchReport = Field(default_factory=BatchReport)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None
