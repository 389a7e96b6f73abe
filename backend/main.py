import logging
import os
from contextlib import asynccontextmanager
from typing import Annotated

from dotenv import load_dotenv
from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import database
from assistant import build_task_context, process_user_message
from database import (
    create_task_db,
    delete_task_db,
    get_all_tasks,
    get_task_db,
    list_tasks_db,
    update_task_db,
)
from errors import NotFoundError, TaskError, TaskValidationError
from intents import execute
from models import ChatRequest, TaskCreate, TaskFilters, TaskUpdate

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    database.init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(exc: TaskError) -> JSONResponse:
    content = {"success": False, "error": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(TaskError)
async def task_error_handler(request: Request, exc: TaskError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(TaskValidationError.from_pydantic(exc))


@app.get("/tasks")
def list_tasks(filters: Annotated[TaskFilters, Query()]) -> dict:
    tasks = list_tasks_db(filters)
    return {"success": True, "data": tasks, "count": len(tasks)}


@app.post("/tasks", status_code=201)
def create_task(task_data: TaskCreate) -> dict:
    return {"success": True, "data": create_task_db(task_data)}


@app.get("/tasks/{task_id}")
def get_task(task_id: str) -> dict:
    task = get_task_db(task_id)
    if task is None:
        raise NotFoundError()
    return {"success": True, "data": task}


@app.put("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate) -> dict:
    task = update_task_db(task_id, **task_data.changes())
    if task is None:
        raise NotFoundError()
    return {"success": True, "data": task}


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str) -> dict:
    # Deleting an unknown id is not an error
    delete_task_db(task_id)
    return {"success": True, "message": "Task deleted successfully"}


@app.post("/assistant/chat")
async def chat(chat_request: ChatRequest) -> dict:
    """Route a natural-language message to one task operation and run it."""
    tasks = get_all_tasks()
    context = build_task_context(tasks)

    reply = await process_user_message(chat_request.message, context)

    result = None
    error = None
    try:
        result = execute(reply, tasks, context.today)
    except TaskValidationError as e:
        logger.warning("Assistant %s rejected: %s", reply.action, e.details)
        error = "; ".join(f"{d['field']}: {d['message']}" for d in e.details or []) or e.message
    except TaskError as e:
        logger.error("Assistant %s failed: %s", reply.action, e.message)
        error = "A database error occurred while applying the request."

    return {
        "success": error is None,
        "data": {
            "action": reply.action,
            "message": reply.message,
            "result": result,
            "error": error,
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
