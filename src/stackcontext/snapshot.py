"""Stack introspection and normalization.

Raw records are plain mappings with the keys ``file``, ``line``, ``function``,
``class``, ``object``, ``type`` and ``args``, innermost frame first. Python
frames already report the line executing inside each function, so the records
produced here need no shifting. Records in the call-site convention (each
record naming where its function was called from) are shifted by one position
when ``normalize_stack(..., call_sites=True)`` is used.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from types import FrameType
from typing import TypeAlias

from stackcontext.exceptions import ContextRuntimeError
from stackcontext.model import (
    CALL_TYPE_INSTANCE,
    CALL_TYPE_STATIC,
    TOP_FUNCTION,
    FrameDescriptor,
)

RawFrame: TypeAlias = dict[str, object]
FrameGetter: TypeAlias = Callable[[], FrameType | None]

logger = logging.getLogger(__name__)


class ObjectIdentities:
    """Hands out 1, 2, 3... to the objects seen bound to stack frames.

    Identities are never reused. An object is held until ``retain`` is called
    without its identity, so a recycled ``id()`` cannot land on an identity
    that is still in use.
    """

    def __init__(self) -> None:
        self._table: dict[int, tuple[int, object]] = {}
        self._next = 0

    def __len__(self) -> int:
        return len(self._table)

    def identify(self, obj: object) -> int | None:
        if obj is None:
            return None
        key = id(obj)
        entry = self._table.get(key)
        if entry is None:
            self._next += 1
            entry = (self._next, obj)
            self._table[key] = entry
        return entry[0]

    def retain(self, identities: Iterable[int]) -> None:
        """Let go of every object whose identity is not in ``identities``."""
        keep = set(identities)
        dropped = [key for key, entry in self._table.items() if entry[0] not in keep]
        for key in dropped:
            del self._table[key]
        if dropped:
            logger.debug("released %d object identities", len(dropped))


def _normalize_qualname(qualname: str) -> str:
    return qualname.replace(".<locals>.", ".")


def _frame_owner(frame: FrameType) -> tuple[object, str | None, str | None]:
    code = frame.f_code
    if code.co_argcount == 0:
        return None, None, None
    first = code.co_varnames[0]
    if first not in ("self", "cls"):
        return None, None, None
    bound = frame.f_locals.get(first)
    if bound is None:
        return None, None, None
    qualname = _normalize_qualname(code.co_qualname)
    if "." in qualname:
        class_name = qualname.rsplit(".", 1)[0]
    elif isinstance(bound, type):
        class_name = bound.__name__
    else:
        class_name = type(bound).__name__
    if first == "cls":
        return None, class_name, CALL_TYPE_STATIC
    return bound, class_name, CALL_TYPE_INSTANCE


def frame_record(
    frame: FrameType,
    *,
    line: int | None = None,
    with_object: bool = True,
) -> RawFrame:
    bound, class_name, call_type = _frame_owner(frame)
    return {
        "file": frame.f_code.co_filename,
        "line": frame.f_lineno if line is None else line,
        "function": frame.f_code.co_name,
        "class": class_name,
        "object": bound if with_object else None,
        "type": call_type,
    }


def live_records(*, frame_getter: FrameGetter = inspect.currentframe) -> list[RawFrame]:
    """Raw records for the live stack, innermost first.

    The frame ``frame_getter`` returns is the introspection call itself and is
    left out; the first record is whoever called ``live_records``.
    """
    frame = frame_getter()
    records: list[RawFrame] = []
    if frame is None:
        return records
    frame = frame.f_back
    while frame is not None:
        records.append(frame_record(frame))
        frame = frame.f_back
    return records


def error_records(error: BaseException) -> list[RawFrame] | None:
    """Raw records for the stack ``error`` unwound through, innermost first.

    The traceback entries come first (the raise site leading), followed by
    the frames still below the one that caught the error. No bound objects
    are carried. Returns None for an error that was never raised.
    """
    tb = error.__traceback__
    if tb is None:
        return None
    outer_frame = tb.tb_frame.f_back
    unwound: list[RawFrame] = []
    while tb is not None:
        unwound.append(frame_record(tb.tb_frame, line=tb.tb_lineno, with_object=False))
        tb = tb.tb_next
    unwound.reverse()
    while outer_frame is not None:
        unwound.append(frame_record(outer_frame, with_object=False))
        outer_frame = outer_frame.f_back
    return unwound


def step_back(records: Sequence[RawFrame], frames_back: int) -> list[RawFrame]:
    if frames_back < 0:
        raise ContextRuntimeError.invalid_frames_back(frames_back)
    if frames_back >= len(records):
        raise ContextRuntimeError.too_many_frames_back(frames_back, len(records))
    return list(records[frames_back:])


def _shift_call_sites(
    records: list[RawFrame],
    file: str | None,
    line: int | None,
) -> list[RawFrame]:
    shifted: list[RawFrame] = []
    for record in records:
        next_file = record.get("file")
        next_line = record.get("line")
        shifted.append({**record, "file": file, "line": line})
        file, line = next_file, next_line
    shifted.append({"file": file, "line": line, "function": TOP_FUNCTION})
    return shifted


def _is_phantom(record: Mapping[str, object]) -> bool:
    return not record.get("file") or not record.get("line")


def _descriptor(record: Mapping[str, object], identities: ObjectIdentities) -> FrameDescriptor:
    line = record.get("line")
    return FrameDescriptor(
        file=record.get("file"),
        line=int(line) if line is not None else None,
        function=record.get("function"),
        class_name=record.get("class"),
        call_type=record.get("type"),
        object_id=identities.identify(record.get("object")),
    )


def normalize_stack(
    records: Iterable[Mapping[str, object]],
    identities: ObjectIdentities,
    *,
    call_sites: bool = False,
    file: str | None = None,
    line: int | None = None,
) -> list[FrameDescriptor]:
    """Turn raw records (innermost first) into descriptors (outermost first).

    ``args`` are dropped and bound objects become registry identities. Leading
    records with no file or line are phantom frames and are skipped. With
    ``call_sites`` the records are shifted one position first, ``file`` and
    ``line`` seeding the innermost one, and a ``[top]`` record is appended
    for the outermost position.
    """
    prepared = [dict(record) for record in records]
    if call_sites:
        prepared = _shift_call_sites(prepared, file, line)
    skipped = 0
    while prepared and _is_phantom(prepared[0]):
        prepared.pop(0)
        skipped += 1
    if skipped:
        logger.debug("skipped %d phantom frame(s)", skipped)
    descriptors = [_descriptor(record, identities) for record in prepared]
    descriptors.reverse()
    return descriptors
