import json
import logging
from pathlib import Path

from qualibot_action import dependencies
from qualibot_action.core.logging import WorkflowCommandFormatter, escape_command_data
from qualibot_action.main import main
from tests.stubs import RecordingRunner, ScriptedService


def _set_inputs(monkeypatch, tmp_path: Path, *, pull_request: bool = True) -> Path:
    monkeypatch.setenv("INPUT_API-KEY", "key")
    monkeypatch.setenv("INPUT_ORG-ID", "org")
    monkeypatch.setenv("INPUT_PROJECT-ID", "proj")
    monkeypatch.setenv("INPUT_TARGET-URL", "https://preview.example")
    monkeypatch.setenv("INPUT_TIMEOUT", "0")
    monkeypatch.setenv("INPUT_COMMENT-ON-PR", "false")
    event = {"pull_request": {"number": 9, "title": "t", "head": {}, "base": {}, "user": {}}} if pull_request else {}
    event_path = tmp_path / "event.json"
    event_path.write_text(json.dumps(event), encoding="utf-8")
    monkeypatch.setenv("GITHUB_EVENT_PATH", str(event_path))
    return event_path


def test_main_reports_timeout_as_failure(monkeypatch, tmp_path: Path, capsys):
    _set_inputs(monkeypatch, tmp_path)
    service = ScriptedService([{"status": "running"}])
    runner = RecordingRunner()
    monkeypatch.setattr(dependencies, "get_testing_service", lambda: service)
    monkeypatch.setattr(dependencies, "get_runner", lambda: runner)

    exit_code = main()

    assert exit_code == 1
    assert "::error::QualiBot test timed out." in capsys.readouterr().out
    assert runner.outputs["status"] == "timeout"
    assert len(service.created) == 1


def test_main_skips_outside_pull_request(monkeypatch, tmp_path: Path, capsys):
    _set_inputs(monkeypatch, tmp_path, pull_request=False)
    service = ScriptedService([{"status": "completed"}])
    monkeypatch.setattr(dependencies, "get_testing_service", lambda: service)
    monkeypatch.setattr(dependencies, "get_runner", RecordingRunner)

    assert main() == 0
    assert service.created == []
    assert "::warning::No pull request context found." in capsys.readouterr().out


def test_main_missing_input_fails(monkeypatch, capsys):
    assert main() == 1
    assert "::error::Input required and not supplied: api-key" in capsys.readouterr().out


def test_workflow_command_formatter():
    formatter = WorkflowCommandFormatter("%(message)s")

    def record(level: int, msg: str) -> logging.LogRecord:
        return logging.LogRecord("qualibot_action", level, __file__, 1, msg, None, None)

    assert formatter.format(record(logging.INFO, "plain")) == "plain"
    assert formatter.format(record(logging.WARNING, "50% done\nnext")) == "::warning::50%25 done%0Anext"
    assert formatter.format(record(logging.ERROR, "bad")) == "::error::bad"
    assert formatter.format(record(logging.DEBUG, "dbg")) == "::debug::dbg"
    assert escape_command_data("a\r\nb") == "a%0D%0Ab"
