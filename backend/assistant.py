"""
Natural-language front end for the task store.

A chat message goes through two stages:
1. process_user_message asks the model to classify the message into one
   intent (CREATE/READ/UPDATE/DELETE) and returns a parsed AssistantReply.
2. For READ, analyze_tasks asks the model again for a detailed answer and
   falls back to a deterministic template (basic_analysis) when that fails.

The model never causes an error response: failures degrade to a READ reply
carrying an apology or the raw model text.
"""
import json
import logging
import os
import re
from datetime import date
from typing import Literal, Optional

import anthropic
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from errors import ExternalServiceError
from models import AssistantReply, ReplyData, Task
from prompts import ANALYSIS_PROMPT, ANALYSIS_SYSTEM_PROMPT, CONTEXT_HEADER, SYSTEM_PROMPT

load_dotenv()

logger = logging.getLogger(__name__)

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ASSISTANT_MODEL = os.getenv("ASSISTANT_MODEL", "claude-sonnet-4-5")

CLASSIFY_TEMPERATURE = 0.7
CLASSIFY_MAX_TOKENS = 1000
ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 1500

SAMPLE_SIZE = 5
APOLOGY_MESSAGE = "Sorry, something went wrong while handling your request. Please try again."

# Greedy: from the first "{" to the last "}" of the reply
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

_client: Optional[anthropic.AsyncAnthropic] = None


def get_client() -> anthropic.AsyncAnthropic:
    global _client
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=ANTHROPIC_API_KEY)
    return _client


class TaskSummary(BaseModel):
    title: str
    category: str
    priority: str
    completed: bool
    due_date: Optional[date] = None


class TaskContext(BaseModel):
    """Bounded digest of the current tasks, sent to the model with every message."""

    today: date
    total: int = 0
    completed: int = 0
    categories: dict[str, int] = Field(default_factory=dict)
    priorities: dict[str, int] = Field(default_factory=dict)
    today_count: int = 0
    today_completed: int = 0
    upcoming_count: int = 0
    past_count: int = 0
    no_date_count: int = 0
    today_tasks: list[TaskSummary] = Field(default_factory=list)
    upcoming_tasks: list[TaskSummary] = Field(default_factory=list)
    past_tasks: list[TaskSummary] = Field(default_factory=list)
    no_date_tasks: list[TaskSummary] = Field(default_factory=list)
    recent_tasks: list[TaskSummary] = Field(default_factory=list)

    def to_prompt(self) -> str:
        if not self.total:
            return "There are no tasks yet."
        return self.model_dump_json(indent=2)


class Analysis(BaseModel):
    text: str
    source: Literal["model", "template"]


def _summarize(tasks: list[Task]) -> list[TaskSummary]:
    return [
        TaskSummary(
            title=t.title,
            category=t.category,
            priority=t.priority,
            completed=t.completed,
            due_date=t.due_date,
        )
        for t in tasks[:SAMPLE_SIZE]
    ]


def build_task_context(tasks: list[Task], today: Optional[date] = None) -> TaskContext:
    """
    Bucket tasks by due date relative to today (today, upcoming, past, no date)
    and keep at most SAMPLE_SIZE samples per bucket. `tasks` is expected newest first.
    """
    today = today or date.today()
    today_tasks = [t for t in tasks if t.due_date == today]
    upcoming = [t for t in tasks if t.due_date and t.due_date > today]
    past = [t for t in tasks if t.due_date and t.due_date < today]
    no_date = [t for t in tasks if not t.due_date]

    categories: dict[str, int] = {}
    priorities: dict[str, int] = {}
    for task in tasks:
        categories[task.category] = categories.get(task.category, 0) + 1
        priorities[task.priority] = priorities.get(task.priority, 0) + 1

    return TaskContext(
        today=today,
        total=len(tasks),
        completed=sum(1 for t in tasks if t.completed),
        categories=categories,
        priorities=priorities,
        today_count=len(today_tasks),
        today_completed=sum(1 for t in today_tasks if t.completed),
        upcoming_count=len(upcoming),
        past_count=len(past),
        no_date_count=len(no_date),
        today_tasks=_summarize(today_tasks),
        upcoming_tasks=_summarize(upcoming),
        past_tasks=_summarize(past),
        no_date_tasks=_summarize(no_date),
        recent_tasks=_summarize(tasks),
    )


async def complete(system: str, messages: list[dict], temperature: float, max_tokens: int) -> str:
    """One chat-completion call. Returns the reply text."""
    if not ANTHROPIC_API_KEY or ANTHROPIC_API_KEY == "your-api-key-here":
        raise ExternalServiceError("API key not configured")

    response = await get_client().messages.create(
        model=ASSISTANT_MODEL,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system,
        messages=messages
    )
    text = "".join(block.text for block in response.content if block.type == "text").strip()
    if not text:
        raise ExternalServiceError("Empty response from model")
    return text


def extract_reply(text: str) -> Optional[AssistantReply]:
    """Parse the JSON object embedded in the model's reply. None if there is none."""
    match = JSON_OBJECT_PATTERN.search(text)
    if not match:
        return None
    try:
        return AssistantReply.model_validate(json.loads(match.group(0)))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Could not parse assistant reply: %s", e)
        return None


async def process_user_message(message: str, context: TaskContext) -> AssistantReply:
    try:
        raw = await complete(
            system=SYSTEM_PROMPT + CONTEXT_HEADER + context.to_prompt(),
            messages=[{"role": "user", "content": message}],
            temperature=CLASSIFY_TEMPERATURE,
            max_tokens=CLASSIFY_MAX_TOKENS,
        )
    except Exception:
        logger.exception("Assistant request failed")
        return AssistantReply(action="READ", message=APOLOGY_MESSAGE, data=ReplyData(response="An error occurred."))

    logger.info("Assistant response: %s", raw)

    reply = extract_reply(raw)
    if reply is None:
        return AssistantReply(action="READ", message=raw, data=ReplyData(response=raw))

    if reply.action == "READ":
        analysis = await analyze_tasks(message, context)
        reply.message = analysis.text
        reply.data.response = analysis.text
    return reply


async def analyze_tasks(query: str, context: TaskContext) -> Analysis:
    """Detailed answer for a READ request; deterministic template if the model call fails."""
    prompt = ANALYSIS_PROMPT.format(query=query, context=context.to_prompt(), today=context.today.isoformat())
    try:
        text = await complete(
            system=ANALYSIS_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
            temperature=ANALYSIS_TEMPERATURE,
            max_tokens=ANALYSIS_MAX_TOKENS,
        )
        return Analysis(text=text, source="model")
    except Exception:
        logger.exception("Detailed analysis failed, using template")
        return Analysis(text=basic_analysis(context, query), source="template")


def _percent(part: int, whole: int) -> int:
    return int(part * 100 / (whole or 1) + 0.5)


def _lines(items: list[str]) -> str:
    return "\n".join(items) if items else "- none"


def basic_analysis(context: TaskContext, query: str) -> str:
    """
    Template answer built from the context alone.
    Checked in order: questions about today, about categories, then a general summary.
    """
    lowered = query.lower()

    if "today" in lowered or "오늘" in query:
        done = [t for t in context.today_tasks if t.completed]
        pending = [t for t in context.today_tasks if not t.completed]
        return (
            f"## 📋 Today's tasks ({context.today.isoformat()})\n\n"
            f"### ✅ Done ({context.today_completed})\n"
            f"{_lines([f'- **{t.title}** ({t.category})' for t in done])}\n\n"
            f"### ⏰ Not done yet ({context.today_count - context.today_completed})\n"
            f"{_lines([f'- **{t.title}** ({t.category}, {t.priority})' for t in pending])}\n\n"
            f"### 📊 Progress\n"
            f"**{_percent(context.today_completed, context.today_count)}%** done"
        )

    if "categor" in lowered or "카테고리" in query:
        ranked = sorted(context.categories.items(), key=lambda item: item[1], reverse=True)
        top_name, top_count = ranked[0] if ranked else ("none", 0)
        return (
            "## 📊 Tasks by category\n\n"
            f"{_lines([f'- **{name}**: {count}' for name, count in ranked])}\n\n"
            "### 🏆 Largest category\n"
            f"**{top_name}** ({top_count})"
        )

    sections = [
        "## 📋 Task overview\n\n"
        "### 📊 Totals\n"
        f"- **Total**: {context.total}\n"
        f"- **Done**: {context.completed} ({_percent(context.completed, context.total)}%)\n"
        f"- **Not done**: {context.total - context.completed}"
    ]
    if context.today_count:
        sections.append(
            f"### 📝 Today ({context.today_count})\n"
            + "\n".join(f"- {'✅' if t.completed else '⏰'} **{t.title}** ({t.category})" for t in context.today_tasks)
        )
    else:
        sections.append("### 📝 Today\nNothing due today.")
    if context.upcoming_count:
        sections.append(
            f"### 🔮 Upcoming ({context.upcoming_count})\n"
            + "\n".join(f"- **{t.title}** ({t.due_date}, {t.category})" for t in context.upcoming_tasks[:3])
        )
    if context.past_count:
        sections.append(
            f"### ⚠️ Past due ({context.past_count})\n"
            + "\n".join(
                f"- **{t.title}** ({t.due_date}, {t.category}) {'✅' if t.completed else '❌'}"
                for t in context.past_tasks[:3]
            )
        )
    if context.no_date_count:
        sections.append(
            f"### 📌 No due date ({context.no_date_count})\n"
            + "\n".join(
                f"- {'✅' if t.completed else '⏰'} **{t.title}** ({t.category})" for t in context.no_date_tasks[:3]
            )
        )
    return "\n\n".join(sections)
