"""Typed Meta values attached to call stack frames.

The set of variants is closed: ``ContextMeta`` and ``CallMeta`` come from
recorded meta-data, the other three are synthesized while a Context assembles
its call stack.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import ClassVar

from stackcontext.model import FrameDescriptor, JSONObject


@dataclass(frozen=True)
class Meta:
    frame: FrameDescriptor
    project_file: str

    label: ClassVar[str] = "meta"

    @property
    def file(self) -> str:
        return self.frame.file or ""

    @property
    def line(self) -> int:
        return self.frame.line or 0

    @property
    def function(self) -> str:
        return self.frame.function or ""

    @property
    def class_name(self) -> str:
        return self.frame.class_name or ""

    @property
    def call_type(self) -> str:
        return self.frame.call_type or ""

    def as_payload(self) -> JSONObject:
        return {
            "meta": self.label,
            "file": self.file,
            "project_file": self.project_file,
            "line": self.line,
            "function": self.function,
            "class": self.class_name,
            "type": self.call_type,
        }


@dataclass(frozen=True)
class ContextMeta(Meta):
    context: object = None

    label: ClassVar[str] = "context"

    def as_payload(self) -> JSONObject:
        payload = super().as_payload()
        value = self.context
        payload["context"] = dict(value) if isinstance(value, dict) else str(value)
        return payload


@dataclass(frozen=True)
class CallMeta(Meta):
    caught_here: bool = False
    known: tuple[str, ...] = ()

    label: ClassVar[str] = "call"

    def as_payload(self) -> JSONObject:
        payload = super().as_payload()
        payload["caught_here"] = self.caught_here
        payload["known"] = list(self.known)
        return payload


@dataclass(frozen=True)
class ExceptionThrownMeta(Meta):
    label: ClassVar[str] = "exception-thrown"


@dataclass(frozen=True)
class ExceptionCaughtMeta(Meta):
    label: ClassVar[str] = "exception-caught"


@dataclass(frozen=True)
class LastApplicationFrameMeta(Meta):
    label: ClassVar[str] = "last-application-frame"


META_VARIANTS: tuple[type[Meta], ...] = (
    ContextMeta,
    CallMeta,
    ExceptionThrownMeta,
    ExceptionCaughtMeta,
    LastApplicationFrameMeta,
)


def flatten_kinds(kinds: Iterable[object]) -> tuple[type[Meta], ...]:
    """Meta classes from ``kinds``, which may hold classes or lists of them."""
    flat: list[type[Meta]] = []
    for kind in kinds:
        if isinstance(kind, (list, tuple, set, frozenset)):
            flat.extend(flatten_kinds(kind))
        elif isinstance(kind, type) and issubclass(kind, Meta):
            if kind not in flat:
                flat.append(kind)
        else:
            raise TypeError(f"not a Meta class: {kind!r}")
    return tuple(flat)


def filter_meta(metas: Iterable[Meta], kinds: tuple[type[Meta], ...]) -> list[Meta]:
    if not kinds:
        return list(metas)
    return [meta for meta in metas if isinstance(meta, kinds)]
