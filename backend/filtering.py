"""
In-memory equivalent of the store's list query.
Must stay in step with list_tasks_db in database.py.
"""
from models import PRIORITY_RANK, Task, TaskFilters


def casefold(value):
    return value.casefold() if isinstance(value, str) else value


def matches_search(task: Task, search: str) -> bool:
    """Case-insensitive substring match against title or description."""
    needle = casefold(search)
    return needle in casefold(task.title) or needle in casefold(task.description or "")


def matches_filters(task: Task, filters: TaskFilters) -> bool:
    if filters.status == "completed" and not task.completed:
        return False
    if filters.status == "pending" and task.completed:
        return False
    if filters.priority and task.priority != filters.priority:
        return False
    if filters.category and task.category != filters.category:
        return False
    if filters.search and not matches_search(task, filters.search):
        return False
    return True


def sort_key(task: Task, sort_by: str):
    if sort_by == "priority":
        return PRIORITY_RANK[task.priority]
    return getattr(task, sort_by)


def sort_tasks(tasks: list[Task], sort_by: str, sort_order: str) -> list[Task]:
    """
    Order by sort_by (missing due dates last in either direction),
    then incomplete before completed, then id.
    """
    ordered = sorted(tasks, key=lambda t: t.id)
    ordered.sort(key=lambda t: t.completed)
    present = [t for t in ordered if sort_key(t, sort_by) is not None]
    missing = [t for t in ordered if sort_key(t, sort_by) is None]
    present.sort(key=lambda t: sort_key(t, sort_by), reverse=sort_order == "desc")
    return present + missing


def filter_tasks(tasks: list[Task], filters: TaskFilters) -> list[Task]:
    selected = [t for t in tasks if matches_filters(t, filters)]
    return sort_tasks(selected, filters.sort_by, filters.sort_order)
