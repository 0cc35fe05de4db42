"""
One chat turn of the scheduling assistant.

respond() is the deterministic path: pending conflict choices, keyword
task extraction, conflict detection. It never touches storage; the Turn it
returns says what the caller should commit. handle_message() adds the
optional text-generation fallback for utterances the parser does not
recognise as task requests.
"""
import logging
import random
from datetime import date
from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel, ValidationError

import dialogue
from conflicts import find_conflicts
from extractor import ASSISTANT_DESCRIPTION, DEFAULT_TITLE, extract_task, is_task_request, pick_color
from llm import GenerationError, parse_action, strip_action_lines
from models import DATE_RE, TIME_RE, DialogueState, Priority, Task, TaskDraft, TaskUpdate, check_time_range
from times import DEFAULT_START, clamp_range

logger = logging.getLogger(__name__)

GENERIC_REPLY = (
    "I can help you create tasks and manage your schedule. Try something like "
    "'Add workout session next Monday at 7 AM' or 'Schedule meeting on June 15th, 2025 at 2 PM'."
)
APOLOGY = "Sorry, I couldn't reach the assistant service. Please try again."

Generator = Callable[[str, list[Task], date], Awaitable[str]]


class Turn(BaseModel):
    messages: list[str]
    state: DialogueState
    commit: Optional[TaskDraft] = None
    update_id: Optional[str] = None
    changes: dict[str, Any] = {}
    delete_id: Optional[str] = None
    handled: bool = True  # False when nothing recognised a task request


def confirmation(draft: TaskDraft) -> str:
    when = date.fromisoformat(draft.date).strftime("%A, %B %d, %Y")
    return (
        f'Great! I\'ve created a task "{draft.title}" for {when} from '
        f"{draft.start_time} to {draft.end_time}. You can view and edit it in your calendar."
    )


def plan_commit(draft: TaskDraft, state: DialogueState, tasks: list[Task], messages: list[str]) -> Turn:
    """Commit the draft, or park it on the session if it overlaps something."""
    conflicts = find_conflicts(draft, tasks)
    if conflicts:
        messages.append(dialogue.open_conflict(state, draft, conflicts))
        return Turn(messages=messages, state=state)
    messages.append(confirmation(draft))
    return Turn(messages=messages, state=state, commit=draft)


def respond(
    text: str,
    state: DialogueState,
    tasks: list[Task],
    today: Optional[date] = None,
    rng: Optional[random.Random] = None
) -> Turn:
    state = state.model_copy(deep=True)
    messages: list[str] = []

    if state.awaiting_choice:
        choice = dialogue.parse_choice(text)
        if choice is not None:
            resolution = dialogue.apply_choice(state, choice, tasks)
            messages.extend(resolution.messages)
            if resolution.draft is None:
                return Turn(messages=messages, state=state)
            messages.append(confirmation(resolution.draft))
            return Turn(messages=messages, state=state, commit=resolution.draft)

        if dialogue.is_cancel(text):
            title = state.pending.title
            dialogue.clear(state)
            return Turn(messages=[f'Okay, I won\'t create "{title}".'], state=state)

        if not is_task_request(text):
            return Turn(messages=[dialogue.reprompt(state)], state=state)

        # A fresh task request replaces the one waiting on a choice
        messages.append(f'I\'ve dropped "{state.pending.title}", which was waiting on a choice.')
        dialogue.clear(state)

    draft = extract_task(text, today, rng)
    if draft is None:
        return Turn(messages=[GENERIC_REPLY], state=state, handled=False)
    return plan_commit(draft, state, tasks, messages)


def draft_from_payload(payload: dict, today: date, rng: Optional[random.Random] = None) -> TaskDraft:
    """Build a draft from an ACTION:CREATE payload, defaulting whatever is missing or malformed."""
    title = str(payload.get("title") or "").strip() or DEFAULT_TITLE

    task_date = payload.get("date")
    if not isinstance(task_date, str) or not DATE_RE.match(task_date):
        task_date = today.isoformat()

    start = payload.get("startTime")
    if not isinstance(start, str) or not TIME_RE.match(start):
        start = DEFAULT_START
    end = payload.get("endTime")
    if not isinstance(end, str) or not TIME_RE.match(end):
        end = None
    start, end = clamp_range(start, end)

    priority = payload.get("priority")
    if priority not in {p.value for p in Priority}:
        priority = Priority.medium.value

    return TaskDraft(
        title=title,
        description=str(payload.get("description") or ASSISTANT_DESCRIPTION),
        date=task_date,
        start_time=start,
        end_time=end,
        priority=priority,
        color=pick_color(title, rng),
    )


def apply_action(reply: str, state: DialogueState, tasks: list[Task], today: date,
                 rng: Optional[random.Random] = None) -> Turn:
    action = parse_action(reply)
    if action is None:
        return Turn(messages=[strip_action_lines(reply) or GENERIC_REPLY], state=state)

    messages = [action.prose] if action.prose else []

    if action.kind == "create":
        return plan_commit(draft_from_payload(action.payload, today, rng), state, tasks, messages)

    task_id = action.payload.get("taskId")
    task = next((t for t in tasks if t.id == task_id), None)
    if task is None:
        messages.append("I couldn't find that task.")
        return Turn(messages=messages, state=state)

    if action.kind == "delete":
        messages.append(f'Deleted "{task.title}".')
        return Turn(messages=messages, state=state, delete_id=task.id)

    try:
        changes = TaskUpdate.model_validate(action.payload.get("changes") or {}).model_dump(exclude_none=True)
    except ValidationError:
        logger.warning("Ignoring malformed edit payload: %s", action.payload)
        return Turn(messages=[strip_action_lines(reply)], state=state)
    if not changes:
        messages.append(f'Nothing to change on "{task.title}".')
        return Turn(messages=messages, state=state)

    edited = task.model_copy(update=changes)
    try:
        check_time_range(edited.start_time, edited.end_time)
    except ValueError:
        logger.warning("Ignoring edit that ends before it starts: %s", action.payload)
        messages.append(
            f'I can\'t move "{task.title}" to {edited.start_time} - {edited.end_time}; '
            "it has to end after it starts on the same day."
        )
        return Turn(messages=messages, state=state)

    messages.append(f'Updated "{task.title}".')
    clashes = find_conflicts(edited, tasks, ignore_id=task.id)
    if clashes:
        names = ", ".join(f'"{c.title}"' for c in clashes)
        messages.append(f"Heads up: it now overlaps with {names}.")
    return Turn(messages=messages, state=state, update_id=task.id, changes=changes)


async def handle_message(
    text: str,
    state: DialogueState,
    tasks: list[Task],
    today: Optional[date] = None,
    generator: Optional[Generator] = None,
    rng: Optional[random.Random] = None
) -> Turn:
    today = today or date.today()
    turn = respond(text, state, tasks, today, rng)
    if turn.handled or generator is None:
        return turn

    try:
        reply = await generator(text, tasks, today)
    except GenerationError:
        logger.exception("Assistant service call failed")
        return Turn(messages=[APOLOGY], state=turn.state)
    return apply_action(reply, turn.state, tasks, today, rng)
