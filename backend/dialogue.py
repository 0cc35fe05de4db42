"""
Conflict-resolution dialogue.

IDLE -> AWAITING_CHOICE when a draft overlaps existing tasks, and back to
IDLE once the user picks 1, 2 or 3 (or cancels). All of it lives on the
DialogueState passed in, one per chat session.
"""
import re
from typing import Iterable, NamedTuple, Optional

from conflicts import alternative_slot, find_conflicts
from models import DialogueState, Task, TaskDraft

CHOICE_RE = re.compile(
    r"^\s*(?:option|choice|#)?\s*(1|2|3|one|two|three)\s*[.)!]?\s*$",
    re.IGNORECASE,
)
CHOICE_WORDS = {"1": 1, "2": 2, "3": 3, "one": 1, "two": 2, "three": 3}
CANCEL_RE = re.compile(r"^\s*(?:cancel|never\s*mind|nevermind|forget\s+it|stop)\b", re.IGNORECASE)


class Resolution(NamedTuple):
    draft: Optional[TaskDraft]  # task to commit, None if nothing is committed
    messages: list[str]


def parse_choice(text: str) -> Optional[int]:
    match = CHOICE_RE.match(text or "")
    if not match:
        return None
    return CHOICE_WORDS[match.group(1).lower()]


def is_cancel(text: str) -> bool:
    return bool(CANCEL_RE.match(text or ""))


def conflict_prompt(draft: TaskDraft, conflict: Task, others: int = 0) -> str:
    extra = ""
    if others:
        extra = f" (and {others} other task{'s' if others > 1 else ''})"
    return (
        f'"{draft.title}" ({draft.start_time} - {draft.end_time}) overlaps with '
        f'"{conflict.title}" ({conflict.start_time} - {conflict.end_time}){extra} on {draft.date}. '
        "What would you like to do?\n"
        f'1. Schedule "{draft.title}" at a different time\n'
        f'2. Move "{conflict.title}" instead\n'
        "3. Keep both and accept the overlap\n"
        "Reply with 1, 2 or 3."
    )


def open_conflict(state: DialogueState, draft: TaskDraft, conflicts: list[Task]) -> str:
    """Park the draft on the session and return the question to ask."""
    state.awaiting_choice = True
    state.pending = draft
    state.conflict = conflicts[0]
    return conflict_prompt(draft, conflicts[0], len(conflicts) - 1)


def reprompt(state: DialogueState) -> str:
    return "Please reply with 1, 2 or 3.\n" + conflict_prompt(state.pending, state.conflict)


def clear(state: DialogueState) -> None:
    state.awaiting_choice = False
    state.pending = None
    state.conflict = None


def apply_choice(state: DialogueState, choice: int, tasks: Iterable[Task] = ()) -> Resolution:
    """
    Resolve the pending draft against the current task list, which may have
    changed since the question was asked.
    """
    draft = state.pending
    tasks = list(tasks)
    if choice == 3:
        clear(state)
        return Resolution(draft, [])

    conflicts = find_conflicts(draft, tasks)
    if not conflicts:
        clear(state)
        return Resolution(draft, [f'"{draft.title}" no longer overlaps anything, so I kept its time.'])

    conflict = conflicts[0]
    slot = alternative_slot(draft, conflict, tasks)
    if slot is None:
        # Nothing left today after the conflict; keep waiting for another answer
        state.conflict = conflict
        return Resolution(None, [
            f'There is no room left on {draft.date} after "{conflict.title}". '
            "Reply 3 to keep the overlap, or cancel."
        ])

    messages = []
    if choice == 2:
        messages.append(
            f'Moving existing tasks isn\'t supported yet, so I\'ll move "{draft.title}" instead.'
        )
    clear(state)
    return Resolution(draft.model_copy(update={"start_time": slot.start, "end_time": slot.end}), messages)
