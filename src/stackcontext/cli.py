from __future__ import annotations

import json
import logging
import runpy
import sys
from pathlib import Path
from typing import List, Optional

import typer

from stackcontext.config import load_settings
from stackcontext.scope import ContextHandle, handle_scope
from stackcontext.settings import Settings

app = typer.Typer(add_completion=False)

logger = logging.getLogger(__name__)


def _script_settings(settings: Settings, script: Path) -> Settings:
    if settings.project_root is not None:
        return settings
    return settings.model_copy(update={"project_root": str(script.parent)})


def _exit_code(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    typer.echo(str(code), err=True)
    return 1


def run_script(script: Path, argv: List[str], handle: ContextHandle) -> int:
    """Run ``script`` as ``__main__``; report an uncaught error as JSON."""
    saved_argv = sys.argv
    saved_path = list(sys.path)
    sys.argv = [str(script), *argv]
    sys.path.insert(0, str(script.parent))
    try:
        runpy.run_path(str(script), run_name="__main__")
    except SystemExit as exc:
        return _exit_code(exc.code)
    except Exception as exc:
        logger.debug("script %s raised %s", script, type(exc).__name__)
        context = handle.exception_context(exc)
        typer.echo(json.dumps(context.as_payload(), indent=2, default=str))
        return 1
    finally:
        sys.argv = saved_argv
        sys.path[:] = saved_path
    return 0


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run(
    ctx: typer.Context,
    script: Path = typer.Argument(..., exists=True, dir_okay=False),
    root: Optional[Path] = typer.Option(None, "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Run a Python script and print the annotated stack of an uncaught error."""
    script = script.resolve()
    settings = _script_settings(load_settings(root=root, config_path=config), script)
    with handle_scope(settings=settings) as handle:
        exit_code = run_script(script, list(ctx.args), handle)
    raise typer.Exit(code=exit_code)


@app.command("settings")
def show_settings(
    root: Optional[Path] = typer.Option(None, "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Print the resolved settings as JSON."""
    settings = load_settings(root=root, config_path=config)
    typer.echo(json.dumps(settings.model_dump(), indent=2, sort_keys=True))


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
