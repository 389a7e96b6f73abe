"""Execute a parsed AssistantReply against the task store."""
import logging
from datetime import date
from typing import Optional

from database import create_tasks_db, delete_tasks_db, find_tasks_db, update_task_db, update_tasks_db
from errors import TaskValidationError
from models import AssistantReply, Task, parse_conditions, parse_updates, resolve_due_date, validate_task_create

logger = logging.getLogger(__name__)


def fold_time_into_description(description: Optional[str], time_value: str) -> str:
    # No time-of-day column exists; the time is kept as text in the description
    if description:
        return f"{description} (time: {time_value})"
    return f"time: {time_value}"


def task_stats(tasks: list[Task], today: date) -> dict:
    categories: dict[str, int] = {}
    priorities: dict[str, int] = {}
    for task in tasks:
        categories[task.category] = categories.get(task.category, 0) + 1
        priorities[task.priority] = priorities.get(task.priority, 0) + 1
    due_today = [t for t in tasks if t.due_date == today]
    return {
        "total": len(tasks),
        "completed": sum(1 for t in tasks if t.completed),
        "pending": sum(1 for t in tasks if not t.completed),
        "today_total": len(due_today),
        "today_completed": sum(1 for t in due_today if t.completed),
        "categories": categories,
        "priorities": priorities,
    }


def handle_create(items: list, today: date) -> dict:
    """Validate each item on its own; invalid items are logged and skipped."""
    if not items:
        return {"message": "There were no tasks to create."}

    valid = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("Skipping task item that is not an object: %r", item)
            continue
        candidate = {key: value for key, value in item.items() if value is not None}
        if "due_date" in candidate:
            candidate["due_date"] = resolve_due_date(candidate["due_date"], today)
        try:
            valid.append(validate_task_create(candidate))
        except TaskValidationError as e:
            logger.warning("Skipping invalid task %r: %s", item, e.details)

    if not valid:
        return {"message": "None of the tasks were valid."}

    created = create_tasks_db(valid)
    return {"message": f"Created {len(created)} task(s).", "created": created}


def handle_read(tasks: list[Task], message: str, today: date) -> dict:
    return {"message": message or "Analyzed your tasks.", "stats": task_stats(tasks, today)}


def handle_update(raw_conditions: dict, raw_updates: dict, today: date) -> dict:
    conditions = parse_conditions(raw_conditions, today)
    update, time_value = parse_updates(raw_updates, today)

    if not conditions:
        return {"message": "No conditions were given, so no tasks were changed.", "updated": []}

    targets = find_tasks_db(conditions, today)
    if not targets:
        return {"message": "No tasks matched the conditions.", "updated": []}

    changes = update.changes()
    if time_value is None:
        if not changes:
            return {"message": "There was nothing to change.", "updated": []}
        updated = update_tasks_db([t.id for t in targets], **changes)
    else:
        updated = []
        for task in targets:
            description = fold_time_into_description(changes.get("description", task.description), time_value)
            result = update_task_db(task.id, **{**changes, "description": description})
            if result is not None:
                updated.append(result)

    return {"message": f"Updated {len(updated)} task(s).", "updated": updated}


def handle_delete(raw_conditions: dict, today: date) -> dict:
    conditions = parse_conditions(raw_conditions, today)
    if not conditions:
        return {"message": "No conditions were given, so no tasks were deleted.", "deleted": []}

    targets = find_tasks_db(conditions, today)
    if not targets:
        return {"message": "No tasks to delete were found.", "deleted": []}

    delete_tasks_db([t.id for t in targets])
    return {"message": f"Deleted {len(targets)} task(s).", "deleted": targets}


def execute(reply: AssistantReply, tasks: list[Task], today: Optional[date] = None) -> dict:
    """
    Dispatch on reply.action. Raises TaskValidationError for unsupported
    conditions or updates and StoreError when the store fails.
    """
    today = today or date.today()
    logger.info("Executing %s: %s", reply.action, reply.data.model_dump(exclude_defaults=True))

    if reply.action == "CREATE":
        return handle_create(reply.data.todos, today)
    if reply.action == "READ":
        return handle_read(tasks, reply.message, today)
    if reply.action == "UPDATE":
        return handle_update(reply.data.conditions, reply.data.updates, today)
    return handle_delete(reply.data.conditions, today)
