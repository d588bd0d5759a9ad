from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from stackcontext.config import load_config, load_settings
from stackcontext.exceptions import ContextInitialisationError
from stackcontext.path_policy import PathPolicy, resolve_project_file
from stackcontext.settings import Settings


def _write_config(path: Path, text: str) -> Path:
    config_path = path / "stackcontext.toml"
    config_path.write_text(textwrap.dedent(text).strip() + "\n", encoding="utf-8")
    return config_path


def test_load_settings_reads_both_sections(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        """
        [context]
        enabled = false
        project_root = "app"
        vendor_dirs = "third_party, .venv"

        [reporting]
        channels_when_known = ["slack", "daily"]
        channels_when_not_known = "stderr,daily"
        default_channels = ["stack"]
        level_when_known = "info"
        level_when_not_known = "error"
        report = false
        """,
    )
    settings = load_settings(root=tmp_path, environ={})
    assert settings.enabled is False
    assert settings.project_root == str((tmp_path / "app").resolve())
    assert settings.vendor_dirs == ["third_party", ".venv"]
    assert settings.channels_when_known == ["slack", "daily"]
    assert settings.channels_when_not_known == ["stderr", "daily"]
    assert settings.level_when_known == "info"
    assert settings.level_when_not_known == "error"
    assert settings.report is False
    assert settings.resolved_report() is False


def test_missing_or_malformed_config_gives_defaults(tmp_path: Path) -> None:
    assert load_config(root=tmp_path) == {}
    _write_config(tmp_path, "[context\nenabled = ")
    assert load_config(root=tmp_path) == {}
    settings = load_settings(root=tmp_path, environ={})
    assert settings == Settings()
    assert settings.resolved_report() is True


def test_environment_overrides_the_file(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        """
        [context]
        enabled = true
        project_root = "app"
        """,
    )
    other_root = tmp_path / "other"
    settings = load_settings(
        config_path=config_path,
        environ={"STACKCONTEXT_ENABLED": "off", "STACKCONTEXT_PROJECT_ROOT": str(other_root)},
    )
    assert settings.enabled is False
    assert settings.project_root == str(other_root.resolve())


def test_unrecognised_enabled_value_falls_back_to_the_file(tmp_path: Path) -> None:
    _write_config(tmp_path, "[context]\nenabled = false\n")
    settings = load_settings(root=tmp_path, environ={"STACKCONTEXT_ENABLED": "maybe"})
    assert settings.enabled is False


def test_pick_best_channels_falls_back_to_defaults() -> None:
    settings = Settings(channels_when_known=["slack"], default_channels=["stack"])
    assert settings.pick_best_channels(True) == ["slack"]
    assert settings.pick_best_channels(False) == ["stack"]


def test_pick_best_level() -> None:
    settings = Settings(level_when_known="", level_when_not_known="critical")
    assert settings.pick_best_level(True) is None
    assert settings.pick_best_level(False) == "critical"
    with pytest.raises(ContextInitialisationError):
        Settings(level_when_known="fatal").pick_best_level(True)


def test_resolve_project_file_keeps_leading_separator() -> None:
    assert resolve_project_file("/srv/app/src/orders.py", "/srv/app/") == "/src/orders.py"
    assert resolve_project_file("/srv/app/src/orders.py", "/srv/app") == "/src/orders.py"
    assert resolve_project_file("/srv/application.py", "/srv/app") == "/srv/application.py"
    assert resolve_project_file("/srv/app/x.py", None) == "/srv/app/x.py"


def test_application_files() -> None:
    policy = PathPolicy(project_root="/srv/app")
    assert policy.is_application_file("/srv/app/src/orders.py") is True
    assert policy.is_application_file("/srv/app/vendor/lib.py") is False
    assert policy.is_application_file("/srv/app/.venv/lib/python3.12/x.py") is False
    assert policy.is_application_file("/srv/app/build/lib/site-packages/x.py") is False
    assert policy.is_application_file("/srv/app/vendors.py") is True
    assert policy.is_application_file("/usr/lib/python3.12/json/__init__.py") is False
    assert policy.is_application_file("<frozen runpy>") is False
    assert PathPolicy().is_application_file("/usr/lib/python3.12/json/__init__.py") is True


def test_custom_vendor_dirs() -> None:
    policy = PathPolicy(project_root="/srv/app", vendor_dirs=("third_party/libs",))
    assert policy.is_application_file("/srv/app/third_party/libs/x.py") is False
    assert policy.is_application_file("/srv/app/vendor/x.py") is True
