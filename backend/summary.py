import logging
from typing import Iterable, Sequence

from config import DEFAULTS, SchedulingDefaults
from llm import LanguageModel
from prompts import GENERIC_SUMMARY_PROMPT, SUMMARY_PROMPTS

logger = logging.getLogger(__name__)

NO_SUMMARY = "No summary generated."


def empty_summary_message(period: str) -> str:
    return f"There are no tasks to summarize for this {period}. Let's set some goals and make progress!"


def render_task_bullets(tasks: Iterable) -> str:
    lines = []
    for task in tasks:
        status = "Completed" if task.completed else "Pending"
        line = f"- {task.title} [{status}]"
        if task.notes:
            line += f": {task.notes}"
        lines.append(line)
    return "\n".join(lines)


def build_summary_prompt(tasks: Iterable, period: str, period_date: str) -> str:
    template = SUMMARY_PROMPTS.get(period, GENERIC_SUMMARY_PROMPT)
    return template.format(date=period_date, tasks=render_task_bullets(tasks))


async def build_summary(
    tasks: Sequence,
    period_label: str,
    period_date: str,
    *,
    model: LanguageModel,
    defaults: SchedulingDefaults = DEFAULTS,
) -> str:
    """Ask the model for an upbeat summary of `tasks`.

    An empty task list never reaches the model. UpstreamError propagates.
    """
    if not tasks:
        return empty_summary_message(period_label)

    logger.info("Summarizing %d task(s) for %s %s", len(tasks), period_label, period_date)
    text = await model.complete(
        build_summary_prompt(tasks, period_label, period_date),
        max_tokens=defaults.summary_max_tokens,
        temperature=defaults.summary_temperature,
    )
    return text.strip() or NO_SUMMARY
