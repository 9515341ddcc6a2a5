"""Tests for the command line entry point."""

import textwrap

import pytest

from chronozen.cli import build_parser, main


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "chronozen.yaml"
    path.write_text(textwrap.dedent(f"""
        data_dir: {tmp_path}/data
        medium: json
        permission: granted
    """))
    return str(path)


def run(config_path, *argv):
    return main(["--config", config_path, *argv])


def created_id(out):
    return [line for line in out.splitlines() if line.startswith("id: ")][-1][4:]


class TestEventCommands:

    def test_add_event_reports_reminder(self, config_path, capsys):
        code = run(config_path, "add-event", "Dentist", "--date", "2099-06-01",
                   "--start", "14:00", "--end", "15:00", "--remind", "15")
        out = capsys.readouterr().out
        assert code == 0
        assert 'Event Created: "Dentist" has been added.' in out
        assert "Reminder at 2099-06-01 13:45" in out

    def test_past_reminder_not_armed(self, config_path, capsys):
        run(config_path, "add-event", "Old", "--date", "2000-01-01", "--start", "09:00", "--remind", "5")
        assert "No reminder armed" in capsys.readouterr().out

    def test_invalid_event_exit_code(self, config_path, capsys):
        code = run(config_path, "add-event", "Bad", "--date", "2099-06-01", "--start", "10:00", "--end", "09:00")
        assert code == 1
        assert "End time must be after start time" in capsys.readouterr().err

    def test_edit_and_list(self, config_path, capsys):
        run(config_path, "add-event", "Standup", "--date", "2099-06-03", "--start", "09:00")
        event_id = created_id(capsys.readouterr().out)

        assert run(config_path, "edit-event", event_id, "--start", "10:00", "--end", "10:15") == 0
        assert "Event Updated" in capsys.readouterr().out

        run(config_path, "events", "--date", "2099-06-03")
        out = capsys.readouterr().out
        assert "10:00-10:15" in out
        assert "Standup" in out

    def test_edit_to_all_day(self, config_path, capsys):
        run(config_path, "add-event", "Trip", "--date", "2099-06-03", "--start", "09:00", "--remind", "30")
        event_id = created_id(capsys.readouterr().out)
        run(config_path, "edit-event", event_id, "--all-day")
        capsys.readouterr()
        run(config_path, "events")
        assert "all day" in capsys.readouterr().out

    def test_edit_unknown(self, config_path, capsys):
        assert run(config_path, "edit-event", "ghost", "--title", "x") == 1
        assert "Event not found: ghost" in capsys.readouterr().err

    def test_delete(self, config_path, capsys):
        run(config_path, "add-event", "Gone", "--date", "2099-06-03", "--all-day")
        event_id = created_id(capsys.readouterr().out)
        assert run(config_path, "delete-event", event_id) == 0
        assert run(config_path, "delete-event", event_id) == 1
        capsys.readouterr()
        run(config_path, "events")
        assert "No events found" in capsys.readouterr().out

    def test_week_lists_positions(self, config_path, capsys):
        run(config_path, "add-event", "Review", "--date", "2099-06-03", "--start", "09:00", "--end", "10:30")
        capsys.readouterr()
        run(config_path, "week", "2099-06-03")
        out = capsys.readouterr().out
        assert "top=540px height=90px  Review" in out

    def test_day_uses_day_scale(self, config_path, capsys):
        run(config_path, "add-event", "Review", "--date", "2099-06-03", "--start", "09:00", "--end", "10:30")
        capsys.readouterr()
        run(config_path, "day", "2099-06-03")
        assert "top=450px height=75px" in capsys.readouterr().out

    def test_bad_month(self, config_path, capsys):
        assert run(config_path, "events", "--month", "June") == 1


class TestTodoCommands:

    def test_add_toggle_list(self, config_path, capsys):
        run(config_path, "add-todo", "Buy milk", "--date", "2099-06-01")
        todo_id = created_id(capsys.readouterr().out)
        assert run(config_path, "toggle-todo", todo_id) == 0
        assert '"Buy milk" completed.' in capsys.readouterr().out
        run(config_path, "todos", "--date", "2099-06-01")
        assert "[x] Buy milk" in capsys.readouterr().out

    def test_delete_todo(self, config_path, capsys):
        run(config_path, "add-todo", "Walk", "--date", "2099-06-01")
        todo_id = created_id(capsys.readouterr().out)
        assert run(config_path, "delete-todo", todo_id) == 0
        capsys.readouterr()
        run(config_path, "todos")
        assert "No todos found" in capsys.readouterr().out


class TestArguments:

    def test_bad_date_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["add-event", "x", "--date", "2099-13-01"])

    def test_non_positive_reminder_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["add-event", "x", "--remind", "0"])

    def test_missing_config_file(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "nope.yaml"), "events"]) == 2
        assert "Config error" in capsys.readouterr().err


class TestPermissionCommand:

    @pytest.fixture
    def prompt_config(self, tmp_path):
        path = tmp_path / "prompt.yaml"
        path.write_text(f"data_dir: {tmp_path}/data\nmedium: json\npermission: prompt\n")
        return str(path)

    def test_grant_then_add_event_arms_reminder(self, prompt_config, capsys):
        assert run(prompt_config, "permission", "status") == 0
        assert "Notifications: unknown" in capsys.readouterr().out

        assert run(prompt_config, "permission", "grant") == 0
        capsys.readouterr()
        run(prompt_config, "add-event", "Dentist", "--date", "2099-06-01", "--start", "14:00", "--remind", "15")
        assert "Reminder at 2099-06-01 13:45" in capsys.readouterr().out

    def test_deny(self, prompt_config, capsys):
        run(prompt_config, "permission", "deny")
        capsys.readouterr()
        run(prompt_config, "add-event", "Dentist", "--date", "2099-06-01", "--start", "14:00", "--remind", "15")
        assert "No reminder armed" in capsys.readouterr().out

    def test_fixed_by_config(self, config_path, capsys):
        assert run(config_path, "permission", "deny") == 1
        assert "fixed by the config" in capsys.readouterr().err
        assert run(config_path, "permission", "status") == 0
        assert "Notifications: granted" in capsys.readouterr().out
