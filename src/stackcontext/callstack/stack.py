from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

from stackcontext.callstack.frame import Frame
from stackcontext.callstack.groups import MetaGroup, build_meta_groups
from stackcontext.callstack.meta import Meta, filter_meta, flatten_kinds


def _checked(frame: object) -> Frame:
    if not isinstance(frame, Frame):
        raise TypeError(f"CallStack can only hold Frame values, not {type(frame).__name__}")
    return frame


class CallStack:
    """Ordered frames, oldest first until ``reverse()`` flips them."""

    def __init__(self, frames: Iterable[Frame] = (), *, is_reversed: bool = False) -> None:
        self._frames = [_checked(frame) for frame in frames]
        self._reversed = is_reversed

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)

    def __getitem__(self, index: int) -> Frame:
        return self._frames[index]

    def __setitem__(self, index: int, frame: Frame) -> None:
        self._frames[index] = _checked(frame)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CallStack):
            return NotImplemented
        return self._frames == other._frames and self._reversed == other._reversed

    @property
    def is_reversed(self) -> bool:
        return self._reversed

    def frames(self) -> tuple[Frame, ...]:
        return tuple(self._frames)

    def reverse(self) -> "CallStack":
        self._frames.reverse()
        self._reversed = not self._reversed
        return self

    def copy(self) -> "CallStack":
        return CallStack(self._frames, is_reversed=self._reversed)

    def get_meta(self, *kinds: object) -> list[Meta]:
        flat = flatten_kinds(kinds)
        return [meta for frame in self._frames for meta in filter_meta(frame.meta, flat)]

    def meta_groups(self, *kinds: object) -> list[MetaGroup]:
        return build_meta_groups(
            self._frames,
            flatten_kinds(kinds),
            reversed_order=self._reversed,
        )

    def _first_index(self, predicate: Callable[[Frame], bool]) -> int | None:
        for index, frame in enumerate(self._frames):
            if predicate(frame):
                return index
        return None

    def _first(self, predicate: Callable[[Frame], bool]) -> Frame | None:
        index = self._first_index(predicate)
        return None if index is None else self._frames[index]

    def last_application_frame_index(self) -> int | None:
        return self._first_index(lambda frame: frame.is_last_application_frame)

    def last_application_frame(self) -> Frame | None:
        return self._first(lambda frame: frame.is_last_application_frame)

    def exception_thrown_frame_index(self) -> int | None:
        return self._first_index(lambda frame: frame.thrown_here)

    def exception_thrown_frame(self) -> Frame | None:
        return self._first(lambda frame: frame.thrown_here)

    def exception_caught_frame_index(self) -> int | None:
        return self._first_index(lambda frame: frame.caught_here)

    def exception_caught_frame(self) -> Frame | None:
        return self._first(lambda frame: frame.caught_here)
