"""Plain-text views: badges, task cards, stats header and month calendar."""
import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from filtering import matches_filters
from models import PRIORITY_RANK, Task, TaskFilters
from ui_state import UIState

CATEGORY_EMOJIS = {
    "work": "💼",
    "personal": "🏠",
    "health": "🏃",
    "shopping": "🛒",
    "learning": "📚",
}

PRIORITY_EMOJIS = {
    "high": "🔥",
    "medium": "⚡",
    "low": "🌱",
}

# Calendar dot colors
COMPLETED_COLOR = "green"
PRIORITY_COLORS = {
    "high": "red",
    "medium": "orange",
    "low": "blue",
}
MAX_INDICATORS = 3

WEEKDAY_HEADER = "Su  Mo  Tu  We  Th  Fr  Sa"


def category_badge(category: str) -> str:
    return f"{CATEGORY_EMOJIS[category]} {category}"


def priority_badge(priority: str) -> str:
    return f"{PRIORITY_EMOJIS[priority]} {priority}"


def visible_tasks(tasks: list[Task], state: UIState) -> list[Task]:
    """
    Client-side re-filter of already fetched tasks, highest priority first,
    newest first within a priority. Close to, not identical with, the server order.
    """
    filters = TaskFilters(
        status=state.filter,
        category=state.selected_category,
        priority=state.selected_priority,
        search=state.search_term or None,
    )
    selected = [t for t in tasks if matches_filters(t, filters)]
    selected.sort(key=lambda t: t.created_at, reverse=True)
    selected.sort(key=lambda t: PRIORITY_RANK[t.priority], reverse=True)
    return selected


def header_stats(tasks: list[Task]) -> dict:
    return {
        "total": len(tasks),
        "completed": sum(1 for t in tasks if t.completed),
        "pending": sum(1 for t in tasks if not t.completed),
        "high_priority": sum(1 for t in tasks if t.priority == "high" and not t.completed),
    }


def task_card(task: Task, today: Optional[date] = None) -> str:
    today = today or date.today()
    checkbox = "[x]" if task.completed else "[ ]"
    line = f"{checkbox} {task.title}  {priority_badge(task.priority)}  {category_badge(task.category)}"
    if task.due_date:
        line += f"  due {task.due_date.isoformat()}"
        if not task.completed and task.due_date < today:
            line += " (overdue)"
    line += f"  #{task.id[:8]}"
    if task.description:
        line += f"\n    {task.description}"
    return line


def render_task_list(
    tasks: list[Task],
    state: UIState,
    today: Optional[date] = None,
    all_tasks: Optional[list[Task]] = None,
) -> str:
    """`tasks` is the server-filtered list; header counts come from `all_tasks` when given."""
    all_tasks = tasks if all_tasks is None else all_tasks
    stats = header_stats(all_tasks)
    header = (
        f"Total {stats['total']} | Done {stats['completed']} | "
        f"Pending {stats['pending']} | High priority {stats['high_priority']}"
    )
    shown = visible_tasks(tasks, state)
    if not shown:
        body = "No tasks match the current filters." if all_tasks else "No tasks yet. Add one to get started."
    else:
        body = "\n".join(task_card(t, today) for t in shown)
    return f"{header}\n\n{body}"


@dataclass
class CalendarDay:
    day: date
    in_month: bool
    is_today: bool
    is_selected: bool
    tasks: list[Task] = field(default_factory=list)

    @property
    def indicators(self) -> list[str]:
        """One dot color per task, at most MAX_INDICATORS."""
        return [
            COMPLETED_COLOR if t.completed else PRIORITY_COLORS[t.priority]
            for t in self.tasks[:MAX_INDICATORS]
        ]

    @property
    def has_overflow(self) -> bool:
        return len(self.tasks) > MAX_INDICATORS


@dataclass
class CalendarMonth:
    year: int
    month: int
    weeks: list[list[CalendarDay]]

    @property
    def title(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    def get(self, day: date) -> Optional[CalendarDay]:
        for week in self.weeks:
            for cell in week:
                if cell.day == day:
                    return cell
        return None


def calendar_month(
    year: int,
    month: int,
    tasks: list[Task],
    selected: Optional[date] = None,
    today: Optional[date] = None,
) -> CalendarMonth:
    """Weeks run Sunday to Saturday and include the spill-over days of adjacent months."""
    today = today or date.today()
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    start = first - timedelta(days=(first.weekday() + 1) % 7)
    end = last + timedelta(days=(5 - last.weekday()) % 7)

    by_date: dict[date, list[Task]] = {}
    for task in tasks:
        if task.due_date:
            by_date.setdefault(task.due_date, []).append(task)

    weeks = []
    current = start
    while current <= end:
        week = []
        for _ in range(7):
            week.append(
                CalendarDay(
                    day=current,
                    in_month=current.month == month,
                    is_today=current == today,
                    is_selected=current == selected,
                    tasks=by_date.get(current, []),
                )
            )
            current += timedelta(days=1)
        weeks.append(week)
    return CalendarMonth(year=year, month=month, weeks=weeks)


def render_calendar(month: CalendarMonth) -> str:
    """
    Month grid. A day is marked with * when it is today and followed by its
    task count; the selected day's tasks are listed below the grid.
    """
    lines = [month.title.center(len(WEEKDAY_HEADER)).rstrip(), WEEKDAY_HEADER]
    selected = None
    for week in month.weeks:
        cells = []
        for cell in week:
            marker = "*" if cell.is_today and cell.in_month else " "
            count = str(min(len(cell.tasks), 9)) if cell.tasks and cell.in_month else " "
            day_number = f"{cell.day.day:>2}" if cell.in_month else "  "
            cells.append(f"{day_number}{marker}{count}")
            if cell.is_selected:
                selected = cell
        lines.append("".join(cells).rstrip())

    if selected is not None:
        lines.append("")
        lines.append(selected.day.strftime("%A, %B %d, %Y"))
        if selected.tasks:
            lines.extend(task_card(t) for t in selected.tasks)
        else:
            lines.append("No tasks on this day.")
    return "\n".join(lines)
