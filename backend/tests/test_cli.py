"""
Tests for cli.py - commands run end to end against the app through TestClient.
"""
import json
import httpx
import pytest
import sys
import os
from datetime import date, timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cli import main
from client import TaskClient
from database import get_all_tasks


@pytest.fixture
def cli(app_client, tmp_path):
    client = TaskClient(http=app_client)
    state_path = str(tmp_path / "ui-state.json")

    def run(*argv):
        return main(list(argv), client=client, state_path=state_path)

    run.state_path = state_path
    return run


class TestCommands:
    def test_add_and_list(self, cli, capsys):
        assert cli("add", "Write report", "-p", "high", "-c", "work", "--due", "tomorrow") == 0
        assert "Added: [ ] Write report" in capsys.readouterr().out

        task = get_all_tasks()[0]
        assert task.priority == "high"
        assert task.due_date == date.today() + timedelta(days=1)

        assert cli("list") == 0
        out = capsys.readouterr().out
        assert out.startswith("Total 1 | Done 0 | Pending 1 | High priority 1")
        assert "Write report" in out

    def test_list_filters_persist(self, cli, capsys):
        cli("add", "Groceries", "-c", "shopping")
        cli("list", "--status", "completed")
        assert "No tasks match the current filters." in capsys.readouterr().out

        with open(cli.state_path, encoding="utf-8") as f:
            assert json.load(f)["filter"] == "completed"

        # Status filter is restored on the next run; category is not persisted
        cli("list")
        assert "No tasks match the current filters." in capsys.readouterr().out

        cli("clear")
        cli("list")
        assert "Groceries" in capsys.readouterr().out

    def test_done_and_rm_by_prefix(self, cli, capsys):
        cli("add", "Walk dog")
        task_id = get_all_tasks()[0].id

        assert cli("done", task_id[:8]) == 0
        assert "Completed: [x] Walk dog" in capsys.readouterr().out
        assert get_all_tasks()[0].completed is True

        assert cli("rm", task_id[:8]) == 0
        assert get_all_tasks() == []

    def test_edit(self, cli, capsys):
        cli("add", "Draft")
        task_id = get_all_tasks()[0].id

        assert cli("edit", task_id, "--title", "Final", "-d", "Send to Sam") == 0
        task = get_all_tasks()[0]
        assert task.title == "Final"
        assert task.description == "Send to Sam"

    def test_unknown_task(self, cli, capsys):
        assert cli("done", "nope") == 1
        assert "No unique task matches 'nope'" in capsys.readouterr().err

    def test_invalid_title(self, cli, capsys):
        assert cli("add", "x" * 101) == 2
        assert "Invalid title" in capsys.readouterr().err
        assert get_all_tasks() == []

    def test_theme_toggle_persists(self, cli, capsys):
        cli("theme")
        assert "Dark mode off." in capsys.readouterr().out
        cli("theme")
        assert "Dark mode on." in capsys.readouterr().out

    def test_calendar(self, cli, capsys):
        cli("add", "Dentist", "--due", "2026-10-20")
        capsys.readouterr()

        assert cli("calendar", "--month", "2026-10", "--day", "2026-10-20") == 0
        out = capsys.readouterr().out
        assert "October 2026" in out
        assert "Tuesday, October 20, 2026" in out
        assert "Dentist" in out

    def test_chat(self, cli, capsys, fake_model):
        fake_model.replies.append(json.dumps({
            "action": "CREATE", "message": "Added it.", "data": {"todos": [{"title": "Call mom"}]}
        }))

        assert cli("chat", "remind", "me", "to", "call", "mom") == 0
        out = capsys.readouterr().out
        assert "Added it." in out
        assert "(Created 1 task(s).)" in out
        assert fake_model.calls[0]["messages"][0]["content"] == "remind me to call mom"


class TestConnectionErrors:
    def run_with(self, handler, tmp_path, *argv):
        http = httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(handler))
        return main(list(argv), client=TaskClient(http=http), state_path=str(tmp_path / "ui-state.json"))

    def test_server_unreachable(self, tmp_path, capsys):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        assert self.run_with(refuse, tmp_path, "list") == 1
        assert "Could not reach the task API" in capsys.readouterr().err

    def test_non_json_error_body(self, tmp_path, capsys):
        def bad_gateway(request):
            return httpx.Response(502, text="Bad Gateway")

        assert self.run_with(bad_gateway, tmp_path, "list") == 1
        assert "Request failed (502): Bad Gateway" in capsys.readouterr().err
