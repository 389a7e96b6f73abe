"""
Tests for views.py - visible list ordering, header stats, task cards and the month calendar.
"""
import sys
import os
from datetime import date

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import Task
from ui_state import UIState
from views import (
    calendar_month,
    header_stats,
    render_calendar,
    render_task_list,
    task_card,
    visible_tasks,
)

TODAY = date(2026, 10, 18)


def task(title, created, priority="medium", completed=False, due=None, category="personal", description=None):
    return Task(
        id=f"{title.lower().replace(' ', '-')}-0000-0000",
        title=title,
        description=description,
        completed=completed,
        priority=priority,
        category=category,
        due_date=due,
        created_at=created,
        updated_at=created,
    )


class TestTaskList:
    def test_visible_order(self):
        tasks = [
            task("Old high", "2026-10-01T09:00:00", priority="high"),
            task("New low", "2026-10-05T09:00:00", priority="low"),
            task("New high", "2026-10-03T09:00:00", priority="high"),
            task("Medium", "2026-10-02T09:00:00"),
        ]
        shown = visible_tasks(tasks, UIState())
        assert [t.title for t in shown] == ["New high", "Old high", "Medium", "New low"]

    def test_visible_applies_state(self):
        tasks = [
            task("Groceries", "2026-10-01T09:00:00", category="shopping"),
            task("Report", "2026-10-02T09:00:00", category="work"),
            task("Done shopping", "2026-10-03T09:00:00", category="shopping", completed=True),
        ]
        state = UIState()
        state.set_selected_category("shopping")
        state.set_filter("pending")
        assert [t.title for t in visible_tasks(tasks, state)] == ["Groceries"]

        state.clear_filters()
        state.set_search_term("REP")
        assert [t.title for t in visible_tasks(tasks, state)] == ["Report"]

    def test_header_stats(self):
        tasks = [
            task("A", "2026-10-01T09:00:00", priority="high"),
            task("B", "2026-10-01T09:00:00", priority="high", completed=True),
            task("C", "2026-10-01T09:00:00"),
        ]
        assert header_stats(tasks) == {"total": 3, "completed": 1, "pending": 2, "high_priority": 1}

    def test_task_card(self):
        card = task_card(
            task("Taxes", "2026-10-01T09:00:00", priority="high", category="work", due=date(2026, 10, 15),
                 description="Bring receipts"),
            TODAY,
        )
        assert card.startswith("[ ] Taxes")
        assert "🔥 high" in card
        assert "💼 work" in card
        assert "due 2026-10-15 (overdue)" in card
        assert "#taxes-00" in card
        assert card.endswith("\n    Bring receipts")

    def test_completed_not_overdue(self):
        card = task_card(task("Taxes", "2026-10-01T09:00:00", completed=True, due=date(2026, 10, 15)), TODAY)
        assert card.startswith("[x]")
        assert "overdue" not in card

    def test_empty_messages(self):
        assert render_task_list([], UIState()).endswith("No tasks yet. Add one to get started.")

        state = UIState()
        state.set_filter("completed")
        text = render_task_list([task("Open", "2026-10-01T09:00:00")], state)
        assert text.startswith("Total 1 | Done 0 | Pending 1 | High priority 0")
        assert text.endswith("No tasks match the current filters.")


class TestCalendar:
    def test_grid_shape(self):
        # October 2026 starts on a Thursday and ends on a Saturday
        month = calendar_month(2026, 10, [], today=TODAY)

        assert month.title == "October 2026"
        assert all(len(week) == 7 for week in month.weeks)
        assert month.weeks[0][0].day == date(2026, 9, 27)
        assert month.weeks[0][0].in_month is False
        assert month.weeks[0][4].day == date(2026, 10, 1)
        assert month.weeks[-1][-1].day == date(2026, 10, 31)
        assert len(month.weeks) == 5
        assert month.get(TODAY).is_today is True

    def test_indicators(self):
        day = date(2026, 10, 20)
        tasks = [
            task("A", "2026-10-01T09:00:00", priority="high", due=day),
            task("B", "2026-10-01T09:00:00", completed=True, due=day),
            task("C", "2026-10-01T09:00:00", priority="low", due=day),
            task("D", "2026-10-01T09:00:00", due=day),
            task("No date", "2026-10-01T09:00:00"),
        ]
        month = calendar_month(2026, 10, tasks, today=TODAY)
        cell = month.get(day)

        assert cell.indicators == ["red", "green", "blue"]
        assert cell.has_overflow is True
        assert month.get(date(2026, 10, 21)).tasks == []

    def test_render_selected_day(self):
        day = date(2026, 10, 20)
        month = calendar_month(
            2026, 10, [task("Dentist", "2026-10-01T09:00:00", due=day)], selected=day, today=TODAY
        )
        text = render_calendar(month)
        lines = text.splitlines()

        assert lines[0].strip() == "October 2026"
        assert lines[1] == "Su  Mo  Tu  We  Th  Fr  Sa"
        assert "18* " in text
        assert "20 1" in text
        assert "Tuesday, October 20, 2026" in text
        assert "Dentist" in lines[-1]

    def test_render_empty_selected_day(self):
        month = calendar_month(2026, 10, [], selected=date(2026, 10, 5), today=TODAY)
        assert render_calendar(month).endswith("No tasks on this day.")
