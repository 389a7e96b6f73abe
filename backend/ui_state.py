"""
UI state for front ends.

Only `is_dark_mode` and `filter` survive a restart; `persisted()` is the
serialization boundary. Everything else resets when the state is loaded.
"""
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, get_args

from dotenv import load_dotenv

from models import Category, Priority, TaskFilters, TaskStatus

load_dotenv()

logger = logging.getLogger(__name__)

TASKS_UI_STATE = os.getenv("TASKS_UI_STATE", str(Path.home() / ".tasks-ui-state.json"))


@dataclass
class UIState:
    filter: TaskStatus = "all"
    search_term: str = ""
    selected_category: Optional[Category] = None
    selected_priority: Optional[Priority] = None
    editing_id: Optional[str] = None
    is_form_open: bool = False
    is_dark_mode: bool = True

    def set_filter(self, value: TaskStatus) -> None:
        if value not in get_args(TaskStatus):
            raise ValueError(f"Unknown status filter: {value}")
        self.filter = value

    def set_search_term(self, term: str) -> None:
        self.search_term = term

    def set_selected_category(self, category: Optional[Category]) -> None:
        self.selected_category = category

    def set_selected_priority(self, priority: Optional[Priority]) -> None:
        self.selected_priority = priority

    def set_editing_id(self, task_id: Optional[str]) -> None:
        self.editing_id = task_id

    def set_is_form_open(self, is_open: bool) -> None:
        self.is_form_open = is_open

    def toggle_dark_mode(self) -> None:
        self.is_dark_mode = not self.is_dark_mode

    def clear_filters(self) -> None:
        self.filter = "all"
        self.search_term = ""
        self.selected_category = None
        self.selected_priority = None

    def to_filters(self) -> TaskFilters:
        """Server-side filters for the list view (sorted by due date, soonest first)."""
        return TaskFilters(
            status=self.filter,
            category=self.selected_category,
            priority=self.selected_priority,
            search=self.search_term or None,
            sort_by="due_date",
            sort_order="asc",
        )

    def persisted(self) -> dict:
        return {"is_dark_mode": self.is_dark_mode, "filter": self.filter}

    def save(self, path: str = TASKS_UI_STATE) -> None:
        Path(path).write_text(json.dumps(self.persisted()), encoding="utf-8")

    @classmethod
    def load(cls, path: str = TASKS_UI_STATE) -> "UIState":
        """Fresh state with the persisted fields restored. Missing or unreadable files give defaults."""
        state = cls()
        file = Path(path)
        if not file.exists():
            return state
        try:
            saved = json.loads(file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable UI state %s: %s", path, e)
            return state
        if not isinstance(saved, dict):
            return state

        if isinstance(saved.get("is_dark_mode"), bool):
            state.is_dark_mode = saved["is_dark_mode"]
        if saved.get("filter") in get_args(TaskStatus):
            state.filter = saved["filter"]
        return state
