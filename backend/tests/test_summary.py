"""
Tests for summary.py - period summaries of task lists.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import DEFAULTS
from errors import UpstreamError
from models import LooseTask
from summary import NO_SUMMARY, build_summary, build_summary_prompt, render_task_bullets

TASKS = [
    LooseTask(title="Ship release", completed=True, notes="v2.1 out the door"),
    LooseTask(title="Write retro", completed=False),
]


class TestPrompt:

    def test_bullets(self):
        assert render_task_bullets(TASKS) == (
            "- Ship release [Completed]: v2.1 out the door\n"
            "- Write retro [Pending]"
        )

    @pytest.mark.parametrize("period, heading", [
        ("daily", "Date: 2025-01-24"),
        ("weekly", "Week: 2025-01-24"),
        ("monthly", "Month: 2025-01-24"),
    ])
    def test_period_templates(self, period, heading):
        prompt = build_summary_prompt(TASKS, period, "2025-01-24")
        assert heading in prompt
        assert "- Write retro [Pending]" in prompt

    def test_unknown_period_uses_generic_template(self):
        prompt = build_summary_prompt(TASKS, "quarterly", "Q1")
        assert prompt.startswith("Summarize the following tasks")
        assert "Q1" not in prompt


class TestBuildSummary:

    @pytest.mark.asyncio
    async def test_empty_list_skips_model(self, fake_model):
        summary = await build_summary([], "week", "2025-01-20", model=fake_model)
        assert summary == "There are no tasks to summarize for this week. Let's set some goals and make progress!"
        assert fake_model.calls == []

    @pytest.mark.asyncio
    async def test_returns_model_text(self, fake_model):
        fake_model.queue("  Great day! You shipped the release.  \n")

        summary = await build_summary(TASKS, "daily", "2025-01-24", model=fake_model)

        assert summary == "Great day! You shipped the release."
        call = fake_model.calls[0]
        assert call["max_tokens"] == DEFAULTS.summary_max_tokens
        assert call["temperature"] == DEFAULTS.summary_temperature
        assert call["system"] is None

    @pytest.mark.asyncio
    async def test_blank_reply(self, fake_model):
        fake_model.queue("   ")
        assert await build_summary(TASKS, "daily", "2025-01-24", model=fake_model) == NO_SUMMARY

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, fake_model):
        fake_model.queue(UpstreamError("API error: overloaded"))
        with pytest.raises(UpstreamError):
            await build_summary(TASKS, "daily", "2025-01-24", model=fake_model)
