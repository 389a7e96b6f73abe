"""
Terminal front end for the task API.

    python cli.py list --status pending --category work
    python cli.py add "Write report" -p high -c work --due tomorrow
    python cli.py done 3f2a
    python cli.py calendar --month 2026-10 --day 2026-10-18
    python cli.py chat "I finished working out"
"""
import argparse
import sys
from datetime import date
from typing import Optional

import httpx

from client import TaskClient
from errors import TaskValidationError
from models import CATEGORIES, PRIORITIES, resolve_due_date, validate_task_create, validate_task_update
from ui_state import TASKS_UI_STATE, UIState
from views import calendar_month, render_calendar, render_task_list, task_card


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tasks", description="Manage your tasks from the terminal.")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="Show tasks")
    list_cmd.add_argument("--status", choices=["all", "completed", "pending"])
    list_cmd.add_argument("--category", choices=CATEGORIES)
    list_cmd.add_argument("--priority", choices=PRIORITIES)
    list_cmd.add_argument("--search")

    for name in ("add", "edit"):
        cmd = sub.add_parser(name, help=f"{name.capitalize()} a task")
        if name == "add":
            cmd.add_argument("title")
        else:
            cmd.add_argument("task_id")
            cmd.add_argument("--title")
        cmd.add_argument("-d", "--description")
        cmd.add_argument("-p", "--priority", choices=PRIORITIES)
        cmd.add_argument("-c", "--category", choices=CATEGORIES)
        cmd.add_argument("--due", help="YYYY-MM-DD, today or tomorrow")

    done_cmd = sub.add_parser("done", help="Toggle a task's completed flag")
    done_cmd.add_argument("task_id")

    rm_cmd = sub.add_parser("rm", help="Delete a task")
    rm_cmd.add_argument("task_id")

    cal_cmd = sub.add_parser("calendar", help="Show a month calendar")
    cal_cmd.add_argument("--month", help="YYYY-MM (default: this month)")
    cal_cmd.add_argument("--day", help="YYYY-MM-DD to list that day's tasks")

    chat_cmd = sub.add_parser("chat", help="Ask the assistant")
    chat_cmd.add_argument("message", nargs="+")

    sub.add_parser("theme", help="Toggle dark mode")
    sub.add_parser("clear", help="Reset search, category, priority and status filters")
    return parser


def resolve_task_id(client: TaskClient, prefix: str) -> str:
    """Accept a full id or the short prefix shown in task cards."""
    matches = [t.id for t in client.list_tasks() if t.id.startswith(prefix)]
    if len(matches) != 1:
        raise LookupError(f"No unique task matches '{prefix}'")
    return matches[0]


def _task_fields(args) -> dict:
    fields = {}
    for name in ("title", "description", "priority", "category"):
        value = getattr(args, name, None)
        if value is not None:
            fields[name] = value
    if args.due is not None:
        fields["due_date"] = resolve_due_date(args.due, date.today())
    return fields


def run(args, client: TaskClient, state: UIState) -> str:
    if args.command == "list":
        if args.status:
            state.set_filter(args.status)
        if args.category:
            state.set_selected_category(args.category)
        if args.priority:
            state.set_selected_priority(args.priority)
        if args.search is not None:
            state.set_search_term(args.search)
        tasks = client.list_tasks(state.to_filters())
        return render_task_list(tasks, state, all_tasks=client.list_tasks())

    if args.command == "add":
        task = client.create_task(validate_task_create(_task_fields(args)))
        return f"Added: {task_card(task)}"

    if args.command == "edit":
        task_id = resolve_task_id(client, args.task_id)
        state.set_editing_id(task_id)
        task = client.update_task(task_id, validate_task_update(_task_fields(args)))
        state.set_editing_id(None)
        return f"Updated: {task_card(task)}"

    if args.command == "done":
        task = client.get_task(resolve_task_id(client, args.task_id))
        task = client.toggle_task(task)
        return f"{'Completed' if task.completed else 'Reopened'}: {task_card(task)}"

    if args.command == "rm":
        client.delete_task(resolve_task_id(client, args.task_id))
        return "Task deleted."

    if args.command == "calendar":
        today = date.today()
        year, month = (int(part) for part in args.month.split("-")) if args.month else (today.year, today.month)
        selected = date.fromisoformat(args.day) if args.day else None
        grid = calendar_month(year, month, client.list_tasks(), selected=selected, today=today)
        return render_calendar(grid)

    if args.command == "chat":
        data = client.chat(" ".join(args.message))
        reply = data["message"]
        if data.get("result") and data["result"].get("message") and data["action"] != "READ":
            reply += f"\n({data['result']['message']})"
        if data.get("error"):
            reply += f"\nError: {data['error']}"
        return reply

    if args.command == "theme":
        state.toggle_dark_mode()
        return f"Dark mode {'on' if state.is_dark_mode else 'off'}."

    state.clear_filters()
    return "Filters cleared."


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("error") or response.text
    except ValueError:
        return response.text


def main(argv: Optional[list[str]] = None, client: Optional[TaskClient] = None, state_path: str = TASKS_UI_STATE) -> int:
    args = build_parser().parse_args(argv)
    client = client or TaskClient()
    state = UIState.load(state_path)
    try:
        print(run(args, client, state))
    except TaskValidationError as e:
        for detail in e.details or []:
            print(f"Invalid {detail['field']}: {detail['message']}", file=sys.stderr)
        return 2
    except (LookupError, ValueError) as e:
        print(str(e), file=sys.stderr)
        return 1
    except httpx.HTTPStatusError as e:
        print(f"Request failed ({e.response.status_code}): {_error_message(e.response)}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"Could not reach the task API: {e}", file=sys.stderr)
        return 1
    finally:
        state.save(state_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
