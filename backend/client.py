"""
Client data layer for front ends: HTTP calls to the task API behind a query cache.

List and detail reads are cached for STALE_TIME_SECONDS. Every successful
mutation, including assistant actions that change tasks, drops all cached
"tasks" entries so the next read goes back to the server.
"""
import logging
import os
import time
from typing import Any, Callable, Optional

import httpx
from dotenv import load_dotenv

from models import Task, TaskCreate, TaskFilters, TaskUpdate

load_dotenv()

logger = logging.getLogger(__name__)

TASKS_API_URL = os.getenv("TASKS_API_URL", "http://localhost:8000")
STALE_TIME_SECONDS = 5 * 60
MUTATING_ACTIONS = frozenset({"CREATE", "UPDATE", "DELETE"})


class QueryCache:
    def __init__(self, stale_time: float = STALE_TIME_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.stale_time = stale_time
        self._clock = clock
        self._entries: dict[tuple, tuple[float, Any]] = {}

    def get(self, key: tuple) -> Optional[Any]:
        """Cached value, or None when missing or stale."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.stale_time:
            return None
        return value

    def set(self, key: tuple, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, prefix: str) -> None:
        """Drop every entry whose key starts with prefix."""
        for key in [k for k in self._entries if k[0] == prefix]:
            del self._entries[key]

    def __contains__(self, key: tuple) -> bool:
        return key in self._entries


def list_key(filters: TaskFilters) -> tuple:
    return ("tasks", "list", filters.model_dump_json())


def detail_key(task_id: str) -> tuple:
    return ("tasks", "detail", task_id)


class TaskClient:
    def __init__(
        self,
        base_url: str = TASKS_API_URL,
        http: Optional[httpx.Client] = None,
        cache: Optional[QueryCache] = None,
    ):
        self.http = http or httpx.Client(base_url=base_url, timeout=30.0)
        self.cache = cache or QueryCache()

    @staticmethod
    def _data(response: httpx.Response) -> Any:
        response.raise_for_status()
        return response.json()["data"]

    def list_tasks(self, filters: Optional[TaskFilters] = None) -> list[Task]:
        filters = filters or TaskFilters()
        key = list_key(filters)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        params = filters.model_dump(exclude_none=True)
        tasks = [Task.model_validate(item) for item in self._data(self.http.get("/tasks", params=params))]
        self.cache.set(key, tasks)
        return tasks

    def get_task(self, task_id: str) -> Task:
        key = detail_key(task_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        task = Task.model_validate(self._data(self.http.get(f"/tasks/{task_id}")))
        self.cache.set(key, task)
        return task

    def create_task(self, data: TaskCreate) -> Task:
        response = self.http.post("/tasks", json=data.model_dump(mode="json", exclude_none=True))
        task = Task.model_validate(self._data(response))
        self.cache.invalidate("tasks")
        return task

    def update_task(self, task_id: str, data: TaskUpdate) -> Task:
        task = Task.model_validate(self._data(self.http.put(f"/tasks/{task_id}", json=data.changes())))
        self.cache.invalidate("tasks")
        self.cache.set(detail_key(task.id), task)
        return task

    def delete_task(self, task_id: str) -> None:
        self.http.delete(f"/tasks/{task_id}").raise_for_status()
        self.cache.invalidate("tasks")

    def toggle_task(self, task: Task) -> Task:
        return self.update_task(task.id, TaskUpdate(completed=not task.completed))

    def chat(self, message: str) -> dict:
        """Send a message to the assistant. Returns {action, message, result, error}."""
        response = self.http.post("/assistant/chat", json={"message": message})
        data = self._data(response)
        if data["action"] in MUTATING_ACTIONS:
            self.cache.invalidate("tasks")
        return data
