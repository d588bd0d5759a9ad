from __future__ import annotations

import json
import sys
import textwrap
from pathlib import Path

from typer.testing import CliRunner

from stackcontext.cli import app


def _write_script(path: Path, text: str) -> Path:
    script = path / "job.py"
    script.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return script


def test_run_reports_uncaught_error_as_json(tmp_path: Path) -> None:
    script = _write_script(
        tmp_path,
        """
        from stackcontext import add_context


        def work():
            add_context("order 7")
            raise RuntimeError("boom")


        work()
        """,
    )
    runner = CliRunner()
    result = runner.invoke(app, ["run", str(script)])
    assert result.exit_code == 1
    payload = json.loads(result.stdout)
    assert payload["exception"] == {"type": "RuntimeError", "message": "boom"}
    contexts = [
        meta["context"]
        for frame in payload["frames"]
        for meta in frame["meta"]
        if meta["meta"] == "context"
    ]
    assert contexts == ["order 7"]
    last = payload["frames"][-1]
    assert last["function"] == "work"
    assert last["thrown_here"] is True
    assert last["last_application"] is True
    assert last["project_file"] == "/job.py"
    assert payload["worth_reporting"] is True


def test_run_passes_arguments_and_exit_code(tmp_path: Path) -> None:
    script = _write_script(
        tmp_path,
        """
        import sys

        print(" ".join(sys.argv[1:]))
        sys.exit(3)
        """,
    )
    runner = CliRunner()
    result = runner.invoke(app, ["run", str(script), "alpha", "beta"])
    assert result.exit_code == 3
    assert result.stdout.strip() == "alpha beta"


def test_run_clean_script_exits_zero(tmp_path: Path) -> None:
    script = _write_script(tmp_path, "value = 1 + 1\n")
    runner = CliRunner()
    result = runner.invoke(app, ["run", str(script)])
    assert result.exit_code == 0
    assert result.stdout == ""


def test_run_script_can_import_sibling_modules(tmp_path: Path) -> None:
    (tmp_path / "job_helpers.py").write_text('GREETING = "hello from a sibling"\n', encoding="utf-8")
    script = _write_script(
        tmp_path,
        """
        import job_helpers

        print(job_helpers.GREETING)
        """,
    )
    saved_path = list(sys.path)
    runner = CliRunner()
    result = runner.invoke(app, ["run", str(script)])
    assert result.exit_code == 0
    assert result.stdout.strip() == "hello from a sibling"
    assert sys.path == saved_path
    sys.modules.pop("job_helpers", None)


def test_settings_prints_resolved_settings(tmp_path: Path) -> None:
    (tmp_path / "stackcontext.toml").write_text(
        '[reporting]\ndefault_channels = "stderr"\nlevel_when_not_known = "error"\n',
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(app, ["settings", "--root", str(tmp_path)])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["default_channels"] == ["stderr"]
    assert payload["level_when_not_known"] == "error"
    assert payload["enabled"] is True
