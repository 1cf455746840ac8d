"""
Runtime settings for the summarizer.

Values come from environment variables and an optional ``.env`` file in the
working directory; CLI flags may override a few of them afterwards.
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings

from .errors import ConfigurationError


class Settings(BaseSettings):
    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"

    # File paths
    SUMMARY_INSTRUCTION_PATH: str = "./prompts/summary.txt"
    REVIEW_INSTRUCTION_PATH: str = "./prompts/review.txt"
    OUTPUT_TRANSCRIPT_DIR: str = "./output"

    # Browser
    HEADLESS: bool = True
    SESSION_PROFILE: str = "linkedin_session"

    # Transcript extraction
    KEEP_TIMESTAMPS: bool = False
    MAX_SCROLL_ROUNDS: int = 10
    SINGLE_PASS_THRESHOLD: int = 5000
    LESSON_DELAY: float = 2.0

    # Workflow switches
    ENABLE_SCRAPING: bool = True
    ENABLE_AI_PROCESSING: bool = True

    # AI processing
    GENERATE_COURSE_SUMMARY: bool = True
    GENERATE_LESSON_SUMMARIES: bool = False
    GENERATE_REVIEW: bool = True
    MAP_CHUNK_SIZE: int = 350000
    MAP_CHUNK_OVERLAP: int = 200

    # HTML output
    GENERATE_HTML: bool = True
    HTML_THEME: str = "light"

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def session_path(self) -> Path:
        return Path.cwd() / self.SESSION_PROFILE

    def validation_errors(self) -> List[str]:
        """Return every configuration problem, not just the first one."""
        errors = list()
        if self.ENABLE_AI_PROCESSING:
            if not self.OPENAI_API_KEY.strip():
                errors.append("OPENAI_API_KEY is required when ENABLE_AI_PROCESSING is true")
            if not self.OPENAI_MODEL.strip():
                errors.append("OPENAI_MODEL is required")
        if not self.OUTPUT_TRANSCRIPT_DIR.strip():
            errors.append("OUTPUT_TRANSCRIPT_DIR is required")
        if not self.SESSION_PROFILE.strip():
            errors.append("SESSION_PROFILE is required")
        if self.MAX_SCROLL_ROUNDS <= 0:
            errors.append("MAX_SCROLL_ROUNDS must be greater than 0")
        if self.SINGLE_PASS_THRESHOLD <= 0:
            errors.append("SINGLE_PASS_THRESHOLD must be greater than 0")
        if self.LESSON_DELAY < 0:
            errors.append("LESSON_DELAY must be 0 or greater")
        if self.MAP_CHUNK_SIZE <= 0:
            errors.append("MAP_CHUNK_SIZE must be greater than 0")
        if self.MAP_CHUNK_OVERLAP < 0:
            errors.append("MAP_CHUNK_OVERLAP must be 0 or greater")
        if self.MAP_CHUNK_OVERLAP >= self.MAP_CHUNK_SIZE:
            errors.append("MAP_CHUNK_OVERLAP must be less than MAP_CHUNK_SIZE")
        if self.HTML_THEME not in ("light", "dark"):
            errors.append("HTML_THEME must be 'light' or 'dark'")
        return errors

    def validate_all(self) -> None:
        errors = self.validation_errors()
        if errors:
            raise ConfigurationError(errors)

    def describe(self) -> List[str]:
        """Human-readable settings dump with the API key masked."""
        return [
            f"OpenAI Model: {self.OPENAI_MODEL}",
            f"OpenAI API Key: {mask_api_key(self.OPENAI_API_KEY)}",
            f"Output Directory: {self.OUTPUT_TRANSCRIPT_DIR}",
            f"Session Profile: {self.SESSION_PROFILE}",
            f"Headless Mode: {self.HEADLESS}",
            f"Keep Timestamps: {self.KEEP_TIMESTAMPS}",
            f"Max Scroll Rounds: {self.MAX_SCROLL_ROUNDS}",
            f"Single Pass Threshold: {self.SINGLE_PASS_THRESHOLD}",
            f"Lesson Delay: {self.LESSON_DELAY}s",
            f"Enable Scraping: {self.ENABLE_SCRAPING}",
            f"Enable AI Processing: {self.ENABLE_AI_PROCESSING}",
            f"Generate Course Summary: {self.GENERATE_COURSE_SUMMARY}",
            f"Generate Lesson Summaries: {self.GENERATE_LESSON_SUMMARIES}",
            f"Generate Review: {self.GENERATE_REVIEW}",
            f"Map Chunk Size: {self.MAP_CHUNK_SIZE}",
            f"Map Chunk Overlap: {self.MAP_CHUNK_OVERLAP}",
            f"Summary Instruction Path: {self.SUMMARY_INSTRUCTION_PATH}",
            f"Review Instruction Path: {self.REVIEW_INSTRUCTION_PATH}",
            f"Generate HTML: {self.GENERATE_HTML}",
            f"HTML Theme: {self.HTML_THEME}",
        ]


def mask_api_key(api_key: str) -> str:
    if not api_key or not api_key.strip():
        return "[NOT SET]"
    if len(api_key) <= 8:
        return "***"
    return f"{api_key[:4]}...{api_key[-4:]}"
