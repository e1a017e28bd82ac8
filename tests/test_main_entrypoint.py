"""Tests for feecalc.__main__ CLI entrypoint behavior."""

import sys
from types import SimpleNamespace

from typer.testing import CliRunner

from feecalc import __main__ as main_module


runner = CliRunner()


def test_main_shows_help_when_no_subcommand():
    """Default CLI mode should show help when no subcommand is provided."""
    result = runner.invoke(main_module.app, [])
    assert result.exit_code == 0
    assert "Payment fee calculator - CLI or API mode." in result.output


def test_main_runs_cli_commands():
    result = runner.invoke(main_module.app, ["request", "100"])
    assert result.exit_code == 0
    assert "$103.30" in result.output


def test_main_api_mode_runs_uvicorn(monkeypatch):
    """API mode should launch uvicorn with config host/port."""
    calls: dict[str, object] = {}

    def fake_run(*args, **kwargs):
        calls["args"] = args
        calls["kwargs"] = kwargs

    monkeypatch.setitem(sys.modules, "uvicorn", SimpleNamespace(run=fake_run))
    monkeypatch.setattr(
        main_module,
        "get_config",
        lambda: SimpleNamespace(api_host="127.0.0.1", api_port=9001),
    )

    result = runner.invoke(main_module.app, ["--mode", "api"])

    assert result.exit_code == 0
    assert calls["args"] == ("feecalc.api:app",)
    assert calls["kwargs"] == {
        "host": "127.0.0.1",
        "port": 9001,
        "reload": False,
    }


def test_main_api_mode_host_port_override(monkeypatch):
    calls: dict[str, object] = {}

    def fake_run(*args, **kwargs):
        calls.update(kwargs)

    monkeypatch.setitem(sys.modules, "uvicorn", SimpleNamespace(run=fake_run))

    result = runner.invoke(
        main_module.app, ["--mode", "API", "--host", "localhost", "--port", "8123"]
    )

    assert result.exit_code == 0
    assert calls == {"host": "localhost", "port": 8123, "reload": False}


def test_main_unknown_mode_is_rejected():
    result = runner.invoke(main_module.app, ["--mode", "not-a-mode"])
    assert result.exit_code == 2
