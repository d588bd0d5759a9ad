"""Divergence search between a remembered stack and a newly observed one."""

from __future__ import annotations

from collections.abc import Sequence

from stackcontext.model import FrameDescriptor

IDENTITY_FIELDS: tuple[str, ...] = (
    "file",
    "object_id",
    "function",
    "class_name",
    "call_type",
)
# Traces captured from a raised error lack bound objects.
ERROR_TRACE_FIELDS: tuple[str, ...] = ("file", "line")


def _field(frame: FrameDescriptor | None, name: str) -> object:
    if frame is None:
        return None
    return getattr(frame, name)


def _identity_differs(
    new_frame: FrameDescriptor | None,
    old_frame: FrameDescriptor | None,
    fields: Sequence[str],
) -> bool:
    return any(_field(new_frame, name) != _field(old_frame, name) for name in fields)


def find_divergence(
    old: Sequence[FrameDescriptor],
    new: Sequence[FrameDescriptor],
    fields: Sequence[str] = (),
) -> int:
    """Index of the first remembered frame that is no longer live.

    Both stacks are outermost first. Everything stored at or beyond the
    returned index belongs to frames that have been popped. When only the
    line of the first mismatched frame moved, the frame itself is still live
    (it went on to issue a different call) and the cut lands one past it.

    With ``fields`` only those fields decide the mismatch, and only the
    identity fields among them decide whether the frame itself changed.
    """
    if fields:
        return _divergence_on_fields(old, new, fields)
    if not old or not new:
        return 0
    index = 0
    for index, new_frame in enumerate(new):
        if index >= len(old) or new_frame != old[index]:
            break
    old_frame = old[index] if index < len(old) else None
    if _identity_differs(new[index], old_frame, IDENTITY_FIELDS):
        return index
    return index + 1


def _divergence_on_fields(
    old: Sequence[FrameDescriptor],
    new: Sequence[FrameDescriptor],
    fields: Sequence[str],
) -> int:
    if not new:
        return 0
    index = 0
    old_frame: FrameDescriptor | None = None
    for index, new_frame in enumerate(new):
        if index >= len(old):
            old_frame = None
            break
        old_frame = old[index]
        if _identity_differs(new_frame, old_frame, fields):
            break
    identity = [name for name in IDENTITY_FIELDS if name in fields]
    if _identity_differs(new[index], old_frame, identity):
        return index
    return index + 1
