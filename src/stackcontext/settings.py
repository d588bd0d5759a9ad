from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from stackcontext.exceptions import ContextInitialisationError
from stackcontext.model import LEVELS
from stackcontext.path_policy import DEFAULT_VENDOR_DIRS, PathPolicy


class Settings(BaseModel):
    """Resolved configuration for one execution context."""

    enabled: bool = True
    project_root: Optional[str] = None
    vendor_dirs: List[str] = list(DEFAULT_VENDOR_DIRS)
    channels_when_known: List[str] = []
    channels_when_not_known: List[str] = []
    default_channels: List[str] = ["stack"]
    level_when_known: Optional[str] = None
    level_when_not_known: Optional[str] = None
    report: Optional[bool] = None

    def path_policy(self) -> PathPolicy:
        return PathPolicy(
            project_root=self.project_root,
            vendor_dirs=tuple(self.vendor_dirs),
        )

    def pick_best_channels(self, is_known: bool) -> list[str]:
        channels = self.channels_when_known if is_known else self.channels_when_not_known
        channels = [channel for channel in channels if channel]
        if channels:
            return channels
        return [channel for channel in self.default_channels if channel]

    def pick_best_level(self, is_known: bool) -> str | None:
        level = self.level_when_known if is_known else self.level_when_not_known
        if not level:
            return None
        if level not in LEVELS:
            raise ContextInitialisationError.level_not_allowed(level, LEVELS)
        return level

    def resolved_report(self) -> bool:
        return True if self.report is None else self.report
