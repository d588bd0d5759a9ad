from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_VENDOR_DIRS: tuple[str, ...] = (".venv", "venv", ".tox", "vendor")
_LIBRARY_DIRS = frozenset({"site-packages", "dist-packages"})


def _root_text(project_root: str) -> str:
    return project_root.rstrip(os.sep)


def resolve_project_file(file: str, project_root: str | None) -> str:
    """``file`` relative to the project root, keeping its leading separator.

    Files outside the root come back unchanged.
    """
    if not project_root:
        return file
    root = _root_text(project_root)
    if file.startswith(root + os.sep):
        return file[len(root):]
    return file


@dataclass(frozen=True)
class PathPolicy:
    project_root: str | None = None
    vendor_dirs: tuple[str, ...] = DEFAULT_VENDOR_DIRS

    def project_file(self, file: str) -> str:
        return resolve_project_file(file, self.project_root)

    def is_application_file(self, file: str) -> bool:
        # Without a root there is nothing to tell vendor code apart by.
        if not self.project_root:
            return True
        root = _root_text(self.project_root)
        if not file.startswith(root + os.sep):
            return False
        relative = file[len(root) + 1:]
        for vendor_dir in self.vendor_dirs:
            vendor_dir = vendor_dir.strip(os.sep)
            if vendor_dir and (
                relative == vendor_dir or relative.startswith(vendor_dir + os.sep)
            ):
                return False
        parts = relative.split(os.sep)
        return not any(part in _LIBRARY_DIRS for part in parts)
