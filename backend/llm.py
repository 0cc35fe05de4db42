"""
Text-generation collaborator.

The model is asked for a reply that may embed an ACTION marker line
followed by a JSON payload. parse_action() finds the marker and the first
balanced {...} block after it; anything malformed is treated as plain text.
"""
import json
import logging
import re
from datetime import date, datetime
from typing import NamedTuple, Optional

import anthropic

from models import Task
from prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

ACTION_RE = re.compile(r"^[ \t]*ACTION:[ \t]*(CREATE|EDIT|DELETE)\b", re.IGNORECASE | re.MULTILINE)
ACTION_LINE_RE = re.compile(r"^[ \t]*ACTION:.*(?:\n|$)", re.IGNORECASE | re.MULTILINE)


class GenerationError(Exception):
    """The text-generation service could not produce a reply."""


class Action(NamedTuple):
    kind: str  # "create", "edit" or "delete"
    payload: dict
    prose: str  # text the model wrote before the marker


def find_json_block(text: str, start: int = 0) -> Optional[str]:
    """Return the first balanced {...} block at or after start, ignoring braces inside strings."""
    begin = text.find("{", start)
    if begin < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(begin, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[begin:i + 1]
    return None


def parse_action(reply: str) -> Optional[Action]:
    marker = ACTION_RE.search(reply or "")
    if not marker:
        return None

    block = find_json_block(reply, marker.end())
    if block is None:
        return None
    try:
        payload = json.loads(block)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None

    return Action(marker.group(1).lower(), payload, reply[:marker.start()].strip())


def strip_action_lines(reply: str) -> str:
    return ACTION_LINE_RE.sub("", reply or "").strip()


def format_task_context(tasks: list[Task]) -> str:
    if not tasks:
        return "No current tasks."
    lines = [
        f"- {task.title} ({task.date} {task.start_time}-{task.end_time}, "
        f"Priority: {task.priority.value}, id: {task.id})"
        for task in tasks
    ]
    return "Current tasks:\n" + "\n".join(lines)


async def generate(
    client: anthropic.AsyncAnthropic,
    model: str,
    message: str,
    tasks: list[Task],
    today: date
) -> str:
    """Ask the model about one user message, with the task list as context."""
    system_prompt = SYSTEM_PROMPT.format(
        today=today.isoformat(),
        now=datetime.now().strftime("%H:%M:%S"),
        task_context=format_task_context(tasks),
    )
    try:
        response = await client.messages.create(
            model=model,
            max_tokens=1024,
            system=system_prompt,
            messages=[{"role": "user", "content": message}]
        )
    except anthropic.APIError as e:
        raise GenerationError(str(e)) from e

    text = response.content[0].text
    logger.debug("Assistant response: %s", text)
    return text
