from typing import Iterable, Optional, Union

from models import Task, TaskDraft
from times import LAST_MINUTE, TimeRange, format_minutes, to_minutes


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """
    Half-open interval overlap on zero-padded HH:MM strings.
    String comparison matches numeric order for valid times.
    """
    return (
        (start_a >= start_b and start_a < end_b)
        or (end_a > start_b and end_a <= end_b)
        or (start_a <= start_b and end_a >= end_b)
    )


def find_conflicts(
    draft: Union[TaskDraft, Task],
    tasks: Iterable[Task],
    ignore_id: Optional[str] = None
) -> list[Task]:
    """
    Open tasks on the draft's date whose time range overlaps it.
    Keeps the order of `tasks`. ignore_id skips the task being edited.
    """
    return [
        task for task in tasks
        if task.date == draft.date
        and not task.completed
        and (ignore_id is None or getattr(task, "id", None) != ignore_id)
        and overlaps(draft.start_time, draft.end_time, task.start_time, task.end_time)
    ]


def _slot_after(draft: TaskDraft, task: Task) -> Optional[TimeRange]:
    start = to_minutes(task.end_time)
    if start % 60:
        start = (start // 60 + 1) * 60
    duration = max(to_minutes(draft.end_time) - to_minutes(draft.start_time), 1)
    end = start + duration
    if end > LAST_MINUTE:
        return None
    return TimeRange(format_minutes(start), format_minutes(end))


def alternative_slot(draft: TaskDraft, conflict: Task, tasks: Iterable[Task] = ()) -> Optional[TimeRange]:
    """
    Same-length slot starting when the conflict ends, rounded up to the
    next whole hour. If that slot clashes with any of `tasks`, move past the
    latest-ending clash and try again. None if it would not finish before
    midnight.
    """
    tasks = list(tasks)
    slot = _slot_after(draft, conflict)
    while slot is not None:
        moved = draft.model_copy(update={"start_time": slot.start, "end_time": slot.end})
        clashes = find_conflicts(moved, tasks)
        if not clashes:
            return slot
        # Every clash ends after the slot starts, so each pass moves later
        slot = _slot_after(draft, max(clashes, key=lambda task: task.end_time))
    return None
