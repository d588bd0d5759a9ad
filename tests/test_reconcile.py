from __future__ import annotations

from stackcontext.model import FrameDescriptor
from stackcontext.reconcile import ERROR_TRACE_FIELDS, find_divergence


def _frame(
    function: str,
    line: int,
    *,
    file: str = "/app/service.py",
    object_id: int | None = None,
) -> FrameDescriptor:
    return FrameDescriptor(file=file, line=line, function=function, object_id=object_id)


OLD = [_frame("main", 1), _frame("handle", 2), _frame("load", 3)]


def test_identical_stacks_do_not_diverge() -> None:
    assert find_divergence(OLD, list(OLD)) == 3


def test_empty_stacks_diverge_at_zero() -> None:
    assert find_divergence([], OLD) == 0
    assert find_divergence(OLD, []) == 0


def test_moved_line_keeps_the_frame() -> None:
    new = [_frame("main", 1), _frame("handle", 2), _frame("load", 9)]
    assert find_divergence(OLD, new) == 3


def test_moved_line_in_a_middle_frame_prunes_deeper_frames() -> None:
    new = [_frame("main", 1), _frame("handle", 5)]
    assert find_divergence(OLD, new) == 2


def test_changed_function_prunes_from_that_frame() -> None:
    new = [_frame("main", 1), _frame("render", 2)]
    assert find_divergence(OLD, new) == 1


def test_changed_object_prunes_from_that_frame() -> None:
    old = [_frame("main", 1), _frame("handle", 2, object_id=1)]
    new = [_frame("main", 1), _frame("handle", 2, object_id=2)]
    assert find_divergence(old, new) == 1


def test_deeper_new_stack_diverges_where_old_ends() -> None:
    new = list(OLD) + [_frame("parse", 4)]
    assert find_divergence(OLD, new) == 3


def test_popped_frames_diverge_past_the_surviving_frames() -> None:
    old = list(OLD) + [_frame("parse", 4), _frame("decode", 5)]
    assert find_divergence(old, list(OLD)) == 3


def test_error_trace_comparison_ignores_objects() -> None:
    old = [_frame("main", 1), _frame("handle", 2, object_id=1)]
    new = [_frame("main", 1), _frame("handle", 2)]
    assert find_divergence(old, new, ERROR_TRACE_FIELDS) == 2


def test_error_trace_comparison_keeps_frame_on_line_change() -> None:
    new = [_frame("main", 1), _frame("handle", 8), _frame("fail", 30)]
    assert find_divergence(OLD, new, ERROR_TRACE_FIELDS) == 2


def test_error_trace_comparison_prunes_on_file_change() -> None:
    new = [_frame("main", 1), _frame("handle", 2, file="/app/other.py")]
    assert find_divergence(OLD, new, ERROR_TRACE_FIELDS) == 1
