"""Clustering of Meta values by the call site they were recorded at."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from stackcontext.callstack.frame import Frame
from stackcontext.callstack.meta import Meta
from stackcontext.model import JSONObject


@dataclass(frozen=True)
class MetaGroup:
    file: str
    project_file: str
    line: int
    function: str
    class_name: str
    call_type: str
    meta: tuple[Meta, ...]
    in_application_frame: bool
    in_last_application_frame: bool
    in_last_frame: bool
    thrown_here: bool
    caught_here: bool

    @classmethod
    def from_frame_and_meta(cls, frame: Frame, metas: Sequence[Meta]) -> "MetaGroup":
        first = metas[0]
        return cls(
            file=first.file,
            project_file=first.project_file,
            line=first.line,
            function=first.function,
            class_name=first.class_name,
            call_type=first.call_type,
            meta=tuple(metas),
            in_application_frame=frame.is_application_frame,
            in_last_application_frame=frame.is_last_application_frame,
            in_last_frame=frame.is_last_frame,
            thrown_here=frame.thrown_here,
            caught_here=frame.caught_here,
        )

    @property
    def in_vendor_frame(self) -> bool:
        return not self.in_application_frame

    def as_payload(self) -> JSONObject:
        return {
            "file": self.file,
            "project_file": self.project_file,
            "line": self.line,
            "function": self.function,
            "class": self.class_name,
            "type": self.call_type,
            "application": self.in_application_frame,
            "last_application": self.in_last_application_frame,
            "last": self.in_last_frame,
            "thrown_here": self.thrown_here,
            "caught_here": self.caught_here,
            "meta": [meta.as_payload() for meta in self.meta],
        }


def build_meta_groups(
    frames: Sequence[Frame],
    kinds: tuple[type[Meta], ...] = (),
    *,
    reversed_order: bool = False,
) -> list[MetaGroup]:
    """Group the Meta of ``frames`` by file and same-or-next line.

    ``frames`` in reversed (innermost first) order are grouped in stack order
    and the groups are reversed afterwards, so the composition of each group
    does not depend on presentation order.
    """
    ordered = list(reversed(frames)) if reversed_order else list(frames)
    grouped: list[tuple[Frame, list[Meta]]] = []
    last_file: str | None = None
    last_line: int | None = None
    for frame in ordered:
        for meta in frame.get_meta(kinds):
            adjacent = last_line is not None and meta.line in (last_line, last_line + 1)
            if not grouped or meta.file != last_file or not adjacent:
                grouped.append((frame, []))
                last_file = meta.file
            last_line = meta.line
            grouped[-1][1].append(meta)
    groups = [MetaGroup.from_frame_and_meta(frame, metas) for frame, metas in grouped]
    if reversed_order:
        groups.reverse()
    return groups
