from __future__ import annotations

import pytest

from stackcontext.callstack import (
    CallMeta,
    CallStack,
    ContextMeta,
    ExceptionThrownMeta,
    Frame,
    LastApplicationFrameMeta,
)
from stackcontext.model import FrameDescriptor


def _descriptor(file: str, line: int, function: str = "handle") -> FrameDescriptor:
    return FrameDescriptor(file=file, line=line, function=function)


def _annotated_stack() -> CallStack:
    a10 = _descriptor("/app/a.py", 10, "main")
    a11 = _descriptor("/app/a.py", 11, "route")
    b5 = _descriptor("/app/b.py", 5, "handle")
    b9 = _descriptor("/app/b.py", 9, "fail")
    return CallStack(
        [
            Frame(a10, "/a.py", (ContextMeta(a10, "/a.py", context="user 7"),), is_application_frame=True),
            Frame(a11, "/a.py", (CallMeta(a11, "/a.py"),), is_application_frame=True),
            Frame(
                b5,
                "/b.py",
                (
                    ContextMeta(b5, "/b.py", context="order 3"),
                    LastApplicationFrameMeta(b5, "/b.py"),
                ),
                is_application_frame=True,
                is_last_application_frame=True,
            ),
            Frame(
                b9,
                "/b.py",
                (ExceptionThrownMeta(b9, "/b.py"),),
                is_last_frame=True,
                thrown_here=True,
            ),
        ]
    )


def test_meta_groups_join_same_and_next_lines() -> None:
    groups = _annotated_stack().meta_groups()
    assert [[type(meta) for meta in group.meta] for group in groups] == [
        [ContextMeta, CallMeta],
        [ContextMeta, LastApplicationFrameMeta],
        [ExceptionThrownMeta],
    ]
    assert [(group.file, group.line) for group in groups] == [
        ("/app/a.py", 10),
        ("/app/b.py", 5),
        ("/app/b.py", 9),
    ]


def test_meta_groups_take_flags_from_the_first_meta_frame() -> None:
    groups = _annotated_stack().meta_groups()
    assert groups[0].function == "main"
    assert groups[1].in_last_application_frame is True
    assert groups[2].thrown_here is True
    assert groups[2].in_last_frame is True
    assert groups[2].in_vendor_frame is True


def test_meta_groups_of_reversed_stack_are_reversed_groups() -> None:
    stack = _annotated_stack()
    reversed_stack = stack.copy().reverse()
    assert reversed_stack.meta_groups() == list(reversed(stack.meta_groups()))
    assert reversed_stack.meta_groups(ContextMeta) == list(
        reversed(stack.meta_groups(ContextMeta))
    )


def test_meta_groups_can_be_filtered_by_kind() -> None:
    groups = _annotated_stack().meta_groups(ContextMeta)
    assert [[meta.context for meta in group.meta] for group in groups] == [
        ["user 7"],
        ["order 3"],
    ]


def test_get_meta_accepts_classes_and_lists_of_classes() -> None:
    stack = _annotated_stack()
    assert len(stack.get_meta()) == 5
    assert [type(meta) for meta in stack.get_meta(ContextMeta, [CallMeta])] == [
        ContextMeta,
        CallMeta,
        ContextMeta,
    ]


def test_reverse_flips_order_in_place_and_copy_is_independent() -> None:
    stack = _annotated_stack()
    copy = stack.copy()
    assert stack.reverse() is stack
    assert stack.is_reversed is True
    assert stack[0].function == "fail"
    assert copy[0].function == "main"
    assert copy.is_reversed is False


def test_flag_lookups() -> None:
    stack = _annotated_stack()
    assert stack.last_application_frame_index() == 2
    assert stack.last_application_frame().function == "handle"
    assert stack.exception_thrown_frame_index() == 3
    assert stack.exception_caught_frame_index() is None
    assert stack.exception_caught_frame() is None


def test_call_stack_only_holds_frames() -> None:
    stack = _annotated_stack()
    with pytest.raises(TypeError):
        stack[0] = "not a frame"
    with pytest.raises(TypeError):
        CallStack(["not a frame"])


def test_with_meta_returns_a_new_frame() -> None:
    descriptor = _descriptor("/app/a.py", 3)
    frame = Frame(descriptor, "/a.py")
    updated = frame.with_meta(ExceptionThrownMeta(descriptor, "/a.py"), thrown_here=True)
    assert frame.meta == ()
    assert frame.thrown_here is False
    assert updated.thrown_here is True
    assert [type(meta) for meta in updated.get_meta()] == [ExceptionThrownMeta]


def test_get_meta_rejects_non_meta_kinds() -> None:
    with pytest.raises(TypeError):
        _annotated_stack().get_meta(str)
