import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class CamelModel(BaseModel):
    # The web client speaks camelCase (startTime); Python code uses snake_case.
    model_config = ConfigDict(populate_by_name=True)


def _check_date(value: Optional[str]) -> Optional[str]:
    if value is not None and not DATE_RE.match(value):
        raise ValueError("date must be YYYY-MM-DD")
    return value


def _check_time(value: Optional[str]) -> Optional[str]:
    if value is not None and not TIME_RE.match(value):
        raise ValueError("time must be HH:MM (24-hour)")
    return value


def check_time_range(start_time: str, end_time: str) -> None:
    # Tasks stay within one day, so the end must come after the start
    if end_time <= start_time:
        raise ValueError("endTime must be after startTime")


class TaskDraft(CamelModel):
    title: str = "New Task"
    description: str = ""
    date: str  # ISO format: YYYY-MM-DD
    start_time: str = Field(alias="startTime")  # HH:MM, 24-hour
    end_time: str = Field(alias="endTime")
    priority: Priority = Priority.medium
    color: str = "task-pastel-blue"
    completed: bool = False


class Task(TaskDraft):
    id: str
    created_at: str  # ISO format datetime string


class TaskCreate(CamelModel):
    title: str
    description: str = ""
    date: str
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    priority: Priority = Priority.medium
    color: str = "task-pastel-blue"

    @field_validator("date")
    @classmethod
    def date_format(cls, value):
        return _check_date(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def time_format(cls, value):
        return _check_time(value)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value.strip()

    @model_validator(mode="after")
    def end_after_start(self):
        check_time_range(self.start_time, self.end_time)
        return self


class TaskUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = Field(default=None, alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    priority: Optional[Priority] = None
    color: Optional[str] = None
    completed: Optional[bool] = None

    @field_validator("date")
    @classmethod
    def date_format(cls, value):
        return _check_date(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def time_format(cls, value):
        return _check_time(value)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.start_time is not None and self.end_time is not None:
            check_time_range(self.start_time, self.end_time)
        return self


class DialogueState(BaseModel):
    """Short-term memory of a conflict awaiting the user's numbered choice."""
    session_id: str = "default"
    awaiting_choice: bool = False
    pending: Optional[TaskDraft] = None
    conflict: Optional[Task] = None


class Message(BaseModel):
    role: str  # "user" or "assistant"
    content: str


class ChatRequest(BaseModel):
    message: str
    session_id: str = "default"


class ChatResponse(BaseModel):
    response: str
    messages: list[str]
    task: Optional[Task] = None
    awaiting_choice: bool = False
    tasks: list[Task]
