"""
Tests for the OpenAI-backed course summarizer.
OpenAI is never contacted; the chat client is a Mock.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import Mock

import httpx
import pytest
from openai import APITimeoutError

from conftest import make_settings, no_sleep
from learning_summarizer.summarizer import (
    DEFAULT_REVIEW_INSTRUCTIONS,
    DEFAULT_SUMMARY_INSTRUCTIONS,
    TRUNCATE_AFTER_TIMEOUT,
    CourseSummarizer,
    chunk_text,
    load_instructions,
)


def completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def timeout_error():
    return APITimeoutError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))


def make_summarizer(client, tmp_path, **overrides):
    overrides.setdefault("SUMMARY_INSTRUCTION_PATH", str(tmp_path / "missing-summary.txt"))
    overrides.setdefault("REVIEW_INSTRUCTION_PATH", str(tmp_path / "missing-review.txt"))
    return CourseSummarizer(make_settings(**overrides), client=client, sleep=no_sleep)


def sent_messages(client, call_index=-1):
    return client.chat.completions.create.call_args_list[call_index].kwargs["messages"]


@pytest.mark.unit
class TestChunkText:
    def test_short_text_is_one_chunk(self):
        assert chunk_text("abc", 1000, 10) == ["abc"]
        assert chunk_text("", 1000, 10) == []

    def test_chunks_overlap(self):
        text = "".join(chr(ord("a") + i % 26) for i in range(2500))
        chunks = chunk_text(text, 1000, 100)
        assert [len(c) for c in chunks] == [1000, 1000, 700]
        assert chunks[0][-100:] == chunks[1][:100]
        assert chunks[-1].endswith(text[-50:])

    def test_tiny_chunk_size_is_raised(self):
        assert len(chunk_text("x" * 1500, 10, 0)) == 2


@pytest.mark.unit
class TestInstructions:
    def test_defaults_when_file_missing(self, tmp_path):
        assert load_instructions(str(tmp_path / "nope.txt"), "default") == "default"

    def test_reads_instruction_file(self, tmp_path):
        path = tmp_path / "summary.txt"
        path.write_text("Custom instructions", encoding="utf-8")
        assert load_instructions(str(path), "default") == "Custom instructions"

    def test_blank_file_uses_default(self, tmp_path):
        path = tmp_path / "summary.txt"
        path.write_text("  \n", encoding="utf-8")
        assert load_instructions(str(path), "default") == "default"


@pytest.mark.unit
class TestCourseSummarizer:
    def test_requires_api_key_without_client(self):
        with pytest.raises(ValueError):
            CourseSummarizer(make_settings(OPENAI_API_KEY=""))

    def test_summarize_course_single_request(self, tmp_path):
        client = Mock()
        client.chat.completions.create.return_value = completion("## Course Summary\n- point")
        summarizer = make_summarizer(client, tmp_path)

        result = asyncio.run(summarizer.summarize_course("Full transcript text"))

        assert result == "## Course Summary\n- point"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"][0] == {"role": "system", "content": DEFAULT_SUMMARY_INSTRUCTIONS}
        assert "Full transcript text" in kwargs["messages"][1]["content"]

    def test_summarize_course_map_reduce(self, tmp_path):
        client = Mock()
        client.chat.completions.create.side_effect = [completion("part 1"), completion("part 2"), completion("final")]
        summarizer = make_summarizer(client, tmp_path, MAP_CHUNK_SIZE=1000, MAP_CHUNK_OVERLAP=0)

        result = asyncio.run(summarizer.summarize_course("y" * 2000))

        assert result == "final"
        assert client.chat.completions.create.call_count == 3
        assert "chunk 1 of 2" in sent_messages(client, 0)[1]["content"]
        reduce_prompt = sent_messages(client)[1]["content"]
        assert "part 1\n\n---\n\npart 2" in reduce_prompt

    def test_empty_transcript_skips_request(self, tmp_path):
        client = Mock()
        summarizer = make_summarizer(client, tmp_path)
        assert asyncio.run(summarizer.summarize_course("   ")) == ""
        assert asyncio.run(summarizer.summarize_lesson("")) == ""
        client.chat.completions.create.assert_not_called()

    def test_timeout_truncates_prompt_before_retry(self, tmp_path):
        client = Mock()
        client.chat.completions.create.side_effect = [timeout_error(), completion("ok")]
        summarizer = make_summarizer(client, tmp_path)

        result = asyncio.run(summarizer.summarize_lesson("z" * (TRUNCATE_AFTER_TIMEOUT * 2)))

        assert result == "ok"
        first_prompt = sent_messages(client, 0)[1]["content"]
        retried_prompt = sent_messages(client, 1)[1]["content"]
        assert len(first_prompt) > TRUNCATE_AFTER_TIMEOUT * 2
        assert retried_prompt.endswith("[Content truncated due to timeout]")
        assert len(retried_prompt) < TRUNCATE_AFTER_TIMEOUT + 100

    def test_failure_returns_fallback(self, tmp_path):
        client = Mock()
        client.chat.completions.create.side_effect = RuntimeError("service unavailable")
        summarizer = make_summarizer(client, tmp_path)

        result = asyncio.run(summarizer.summarize_lesson("Some text"))

        assert result.startswith("# AI Processing Unavailable")
        assert "service unavailable" in result
        assert client.chat.completions.create.call_count == 3

    def test_empty_response_is_retried(self, tmp_path):
        client = Mock()
        client.chat.completions.create.side_effect = [completion(""), completion("second try")]
        assert asyncio.run(make_summarizer(client, tmp_path).summarize_lesson("text")) == "second try"

    def test_review_context(self, tmp_path, sample_course):
        sample_course.lessons[0].set_transcript("w" * 800)
        context = make_summarizer(Mock(), tmp_path).review_context(sample_course)

        assert "**Course:** Python Essentials" in context
        assert "**Instructor:** Dr. Test Instructor" in context
        assert "1. Welcome\n2. Variables & Types" in context
        assert "w" * 500 + "..." in context
        assert "w" * 501 not in context

    def test_review_uses_review_instructions(self, tmp_path, sample_course):
        client = Mock()
        client.chat.completions.create.return_value = completion("Final Score: 4/5")
        result = asyncio.run(make_summarizer(client, tmp_path).review_course(sample_course))

        assert result == "Final Score: 4/5"
        assert sent_messages(client)[0]["content"] == DEFAULT_REVIEW_INSTRUCTIONS

    def test_enrich_follows_settings(self, tmp_path, sample_course):
        client = Mock()
        client.chat.completions.create.return_value = completion("generated")
        summarizer = make_summarizer(client, tmp_path, GENERATE_LESSON_SUMMARIES=True, GENERATE_REVIEW=False)

        asyncio.run(summarizer.enrich(sample_course))

        assert sample_course.ai_summary == "generated"
        assert sample_course.ai_review == ""
        assert [l.ai_summary for l in sample_course.lessons] == ["generated", "generated", ""]
        assert client.chat.completions.create.call_count == 3
