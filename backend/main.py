from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from datetime import date
from typing import Optional
import uuid
import os
import logging
import anthropic
from dotenv import load_dotenv

import llm
from assistant import Generator, handle_message
from conflicts import find_conflicts
from models import ChatRequest, ChatResponse, Task, TaskCreate, TaskDraft, TaskUpdate, check_time_range
from database import (
    init_db,
    get_all_tasks,
    get_tasks_for_date,
    get_task_db,
    create_task_db,
    update_task_db,
    delete_task_db,
    toggle_task_completed_db,
    get_conversation,
    save_conversation,
    get_dialogue_state,
    save_dialogue_state,
)

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("CORS_ORIGINS", "http://localhost:5173").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5")
client = None
if ANTHROPIC_API_KEY and ANTHROPIC_API_KEY != "your-api-key-here":
    client = anthropic.AsyncAnthropic(api_key=ANTHROPIC_API_KEY)


async def generate_reply(message: str, tasks: list[Task], today: date) -> str:
    return await llm.generate(client, ANTHROPIC_MODEL, message, tasks, today)


def get_generator() -> Optional[Generator]:
    """The assistant fallback, or None when no API key is configured."""
    return generate_reply if client is not None else None


@app.get("/tasks")
def get_tasks(date: Optional[str] = None) -> list[Task]:
    if date:
        return get_tasks_for_date(date)
    return get_all_tasks()


@app.post("/tasks")
def create_task(task_data: TaskCreate) -> Task:
    task_id = str(uuid.uuid4())
    return create_task_db(task_id, TaskDraft(**task_data.model_dump()))


@app.post("/tasks/check-conflicts")
def check_conflicts(task_data: TaskCreate) -> list[Task]:
    """Tasks the given one would overlap, without creating anything."""
    return find_conflicts(TaskDraft(**task_data.model_dump()), get_all_tasks())


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate) -> Task:
    existing = get_task_db(task_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Task not found")

    changes = task_data.model_dump(exclude_none=True)
    merged = existing.model_copy(update=changes)
    try:
        check_time_range(merged.start_time, merged.end_time)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = update_task_db(task_id, **changes)
    if not result:
        raise HTTPException(status_code=404, detail="Task not found")
    return result


@app.post("/tasks/{task_id}/toggle")
def toggle_task(task_id: str) -> Task:
    result = toggle_task_completed_db(task_id)
    if not result:
        raise HTTPException(status_code=404, detail="Task not found")
    return result


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str) -> dict:
    if not delete_task_db(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "deleted"}


@app.get("/conversation")
def get_conversation_endpoint(session_id: str = "default") -> list[dict]:
    """Get saved conversation history for a session."""
    return get_conversation(session_id)


@app.post("/chat")
async def chat(chat_request: ChatRequest) -> ChatResponse:
    """Run one assistant turn and apply whatever it decided to commit."""
    session_id = chat_request.session_id
    state = get_dialogue_state(session_id)

    turn = await handle_message(
        chat_request.message,
        state,
        get_all_tasks(),
        generator=get_generator(),
    )

    created = None
    if turn.commit:
        created = create_task_db(str(uuid.uuid4()), turn.commit)
        logger.info("Created task %s (%s %s-%s)", created.id, created.date, created.start_time, created.end_time)
    if turn.update_id:
        update_task_db(turn.update_id, **turn.changes)
    if turn.delete_id:
        delete_task_db(turn.delete_id)
    save_dialogue_state(turn.state)

    reply = "\n\n".join(turn.messages)
    conversation = get_conversation(session_id)
    conversation.append({"role": "user", "content": chat_request.message})
    conversation.append({"role": "assistant", "content": reply})
    save_conversation(session_id, conversation)

    return ChatResponse(
        response=reply,
        messages=turn.messages,
        task=created,
        awaiting_choice=turn.state.awaiting_choice,
        tasks=get_all_tasks(),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
