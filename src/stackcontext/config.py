from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

from stackcontext.settings import Settings

DEFAULT_CONFIG_NAME = "stackcontext.toml"
ENABLED_ENV = "STACKCONTEXT_ENABLED"
PROJECT_ROOT_ENV = "STACKCONTEXT_PROJECT_ROOT"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}

logger = logging.getLogger(__name__)


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        logger.debug("ignoring malformed config file %s", path)
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def _section(data: TomlTable, name: str) -> TomlTable:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def _normalize_name_list(value: TomlValue) -> list[str]:
    items: list[str] = []
    if value is None:
        return items
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple)):
        for item in value:
            if isinstance(item, str):
                items.extend(part.strip() for part in item.split(",") if part.strip())
    return items


def _as_optional_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def _as_optional_str(value: TomlValue) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _resolve_root(value: object, base: Path) -> str | None:
    if not value:
        return None
    path = Path(str(value)).expanduser()
    if not path.is_absolute():
        path = base / path
    return str(path.resolve())


def settings_from_tables(
    context: Mapping[str, TomlValue],
    reporting: Mapping[str, TomlValue],
    *,
    base: Path,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    environ = os.environ if environ is None else environ
    payload: dict[str, object] = {}

    enabled = _as_optional_bool(environ.get(ENABLED_ENV))
    if enabled is None:
        enabled = _as_optional_bool(context.get("enabled"))
    if enabled is not None:
        payload["enabled"] = enabled

    project_root = _resolve_root(environ.get(PROJECT_ROOT_ENV), Path.cwd())
    if project_root is None:
        project_root = _resolve_root(context.get("project_root"), base)
    payload["project_root"] = project_root

    if "vendor_dirs" in context:
        payload["vendor_dirs"] = _normalize_name_list(context.get("vendor_dirs"))

    for key in ("channels_when_known", "channels_when_not_known", "default_channels"):
        if key in reporting:
            payload[key] = _normalize_name_list(reporting.get(key))
    for key in ("level_when_known", "level_when_not_known"):
        payload[key] = _as_optional_str(reporting.get(key))
    payload["report"] = _as_optional_bool(reporting.get("report"))

    return Settings(**payload)


def load_settings(
    root: Path | None = None,
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Settings from ``stackcontext.toml`` with environment overrides applied.

    A relative ``project_root`` in the file is taken relative to the
    directory the file lives in.
    """
    data = load_config(root=root, config_path=config_path)
    if config_path is not None:
        base = config_path.parent
    else:
        base = root if root is not None else Path.cwd()
    return settings_from_tables(
        _section(data, "context"),
        _section(data, "reporting"),
        base=base,
        environ=environ,
    )
