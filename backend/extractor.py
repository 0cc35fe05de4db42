"""
Turn one chat utterance into a TaskDraft.

extract_task() returns None only when the utterance does not look like a
task request at all; otherwise every field gets a best-effort value.
"""
import random
import re
from datetime import date
from typing import Optional

from dates import WEEKDAYS, resolve_date
from models import Priority, TaskDraft
from times import resolve_time

DEFAULT_TITLE = "New Task"
ASSISTANT_DESCRIPTION = "Created via assistant"


def _words(*phrases: str) -> re.Pattern:
    alternatives = "|".join(re.escape(p).replace(r"\ ", r"\s+") for p in phrases)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


INTENT_RE = _words(
    "create", "add", "schedule", "book", "plan", "set up", "setup", "make",
    "meeting", "appointment", "task", "reminder", "remind", "event",
)

# First entry that appears in the utterance names the task
TITLE_KEYWORDS = [
    ("meeting", "Meeting"),
    ("standup", "Standup"),
    ("stand-up", "Standup"),
    ("interview", "Interview"),
    ("workout", "Workout"),
    ("gym", "Gym Session"),
    ("yoga", "Yoga"),
    ("exercise", "Exercise"),
    ("breakfast", "Breakfast"),
    ("brunch", "Brunch"),
    ("lunch", "Lunch"),
    ("dinner", "Dinner"),
    ("coffee", "Coffee"),
    ("call", "Phone Call"),
    ("doctor", "Doctor Appointment"),
    ("dentist", "Dentist Appointment"),
    ("study", "Study Session"),
    ("homework", "Homework"),
    ("exam", "Exam"),
    ("class", "Class"),
    ("groceries", "Grocery Shopping"),
    ("grocery", "Grocery Shopping"),
    ("birthday", "Birthday"),
    ("party", "Party"),
    ("flight", "Flight"),
]
_TITLE_PATTERNS = [(re.compile(rf"\b{re.escape(k)}(?:e?s)?\b", re.IGNORECASE), t) for k, t in TITLE_KEYWORDS]

QUOTED_RE = re.compile(r"[\"“]([^\"”]+)[\"”]")
VERB_RE = re.compile(
    r"\b(?:create|add|schedule|book|plan|set\s+up|make|remind\s+me\s+(?:to|about))\s+(.+)",
    re.IGNORECASE,
)
WRAPPER_RE = re.compile(
    r"^(?:(?:a|an|the)\s+)?(?:new\s+)?(?:task|reminder|event)\s*(?:(?:called|named|to|for|about)\s+|:\s*)?",
    re.IGNORECASE,
)
STOP_RE = re.compile(
    r"\s+(?:at|on|for|from|to|by|in|every|next|this|coming|today|tonight|tomorrow|tmrw|"
    r"day\s+after|urgent|asap|" + "|".join(WEEKDAYS) + r")\b.*$|\s+\d.*$",
    re.IGNORECASE,
)
ARTICLE_RE = re.compile(r"^(?:a|an|the)\s+", re.IGNORECASE)

HIGH_PRIORITY_RE = _words("urgent", "urgently", "important", "asap", "high priority")
LOW_PRIORITY_RE = _words("low priority", "when possible", "whenever", "someday")

PALETTE = [
    "task-pastel-pink",
    "task-pastel-blue",
    "task-pastel-green",
    "task-pastel-yellow",
    "task-pastel-purple",
    "task-pastel-orange",
    "task-pastel-indigo",
    "task-pastel-teal",
]

COLOR_CATEGORIES = [
    (_words("meeting", "meetings", "call", "calls", "standup", "stand-up", "interview", "conference"), "task-pastel-blue"),
    (_words("workout", "gym", "exercise", "yoga", "run", "running", "training", "swim"), "task-pastel-green"),
    (_words("breakfast", "brunch", "lunch", "dinner", "coffee", "meal"), "task-pastel-orange"),
    (_words("doctor", "dentist", "medical", "hospital", "therapy", "checkup", "appointment"), "task-pastel-pink"),
    (_words("study", "class", "exam", "homework", "lecture", "revision"), "task-pastel-purple"),
    (_words("birthday", "party", "friends", "celebration"), "task-pastel-yellow"),
    (_words("flight", "travel", "trip", "train"), "task-pastel-teal"),
]


def is_task_request(text: str) -> bool:
    return bool(INTENT_RE.search(text or ""))


def _tidy(title: str) -> str:
    title = title.strip().strip(".,!?;:-").strip()
    title = ARTICLE_RE.sub("", title).strip()
    return title[:1].upper() + title[1:]


def extract_title(text: str) -> str:
    quoted = QUOTED_RE.search(text)
    if quoted and quoted.group(1).strip():
        return quoted.group(1).strip()

    for pattern, title in _TITLE_PATTERNS:
        if pattern.search(text):
            return title

    verb = VERB_RE.search(text)
    if verb:
        phrase = WRAPPER_RE.sub("", verb.group(1).strip())
        phrase = STOP_RE.sub("", " " + phrase)
        title = _tidy(phrase)
        if title:
            return title

    return DEFAULT_TITLE


def infer_priority(text: str) -> Priority:
    if HIGH_PRIORITY_RE.search(text):
        return Priority.high
    if LOW_PRIORITY_RE.search(text):
        return Priority.low
    return Priority.medium


def pick_color(text: str, rng: Optional[random.Random] = None) -> str:
    """Colour by category keyword, or a random pastel when nothing matches."""
    for pattern, color in COLOR_CATEGORIES:
        if pattern.search(text):
            return color
    return (rng or random).choice(PALETTE)


def extract_task(text: str, today: Optional[date] = None, rng: Optional[random.Random] = None) -> Optional[TaskDraft]:
    if not is_task_request(text):
        return None

    title = extract_title(text)
    start, end = resolve_time(text)
    return TaskDraft(
        title=title,
        description=ASSISTANT_DESCRIPTION,
        date=resolve_date(text, today),
        start_time=start,
        end_time=end,
        priority=infer_priority(text),
        color=pick_color(f"{title} {text}", rng),
        completed=False,
    )
