"""Value types shared by the recording engine and the Context builder."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TypeAlias


JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
JSONObject: TypeAlias = dict[str, JSONValue]

Identifier: TypeAlias = int | str | None
MetaValue: TypeAlias = str | Mapping[str, object]

CONTEXT_DATA = "context-data"
CALL_MARKER = "call-marker"

CALL_TYPE_INSTANCE = "->"
CALL_TYPE_STATIC = "::"

TOP_FUNCTION = "[top]"

LEVELS: tuple[str, ...] = (
    "debug",
    "info",
    "notice",
    "warning",
    "error",
    "critical",
    "alert",
    "emergency",
)


@dataclass(frozen=True)
class FrameDescriptor:
    """One normalized stack position.

    ``object_id`` is the small integer an ``ObjectIdentities`` registry handed
    out for the frame's bound object, never the object itself.
    """

    file: str | None = None
    line: int | None = None
    function: str | None = None
    class_name: str | None = None
    call_type: str | None = None
    object_id: int | None = None

    def as_payload(self) -> JSONObject:
        return {
            "file": self.file,
            "line": self.line,
            "function": self.function,
            "class": self.class_name,
            "type": self.call_type,
            "object": self.object_id,
        }


@dataclass(frozen=True)
class MetaEntry:
    kind: str
    identifier: Identifier
    ordinal: int
    frame: FrameDescriptor
    value: object

    def same_slot(self, kind: str, line: int | None) -> bool:
        return self.kind == kind and self.frame.line == line


def same_identifier(left: Identifier, right: Identifier) -> bool:
    # 123 and "123" are different keys, and so are True and 1.
    return type(left) is type(right) and left == right
