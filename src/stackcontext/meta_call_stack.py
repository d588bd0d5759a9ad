"""The frame-indexed meta-data store."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace as replace_entry

from stackcontext.model import (
    CALL_MARKER,
    FrameDescriptor,
    Identifier,
    MetaEntry,
    MetaValue,
    same_identifier,
)
from stackcontext.reconcile import ERROR_TRACE_FIELDS, find_divergence

logger = logging.getLogger(__name__)


def _own_value(value: object) -> object:
    if isinstance(value, Mapping):
        return dict(value)
    return value


def resolve_insertion_index(
    entries: list[MetaEntry],
    kind: str,
    line: int | None,
    ordinal: int,
) -> int:
    """Position for a new entry within one frame's entry list.

    Entries of the same kind recorded from the same line with an ordinal at or
    past ``ordinal`` are earlier passes over the same call; they are removed
    from ``entries`` and the new entry takes the first of their places.
    Otherwise the entry goes right after the last same kind and line entry,
    or at the end.
    """
    first: int | None = None
    kept: list[MetaEntry] = []
    for position, entry in enumerate(entries):
        if entry.same_slot(kind, line) and entry.ordinal >= ordinal:
            if first is None:
                first = position
            continue
        kept.append(entry)
    if first is not None:
        entries[:] = kept
        return first

    last_similar: int | None = None
    for position, entry in enumerate(entries):
        if entry.same_slot(kind, line):
            last_similar = position
    if last_similar is not None:
        return last_similar + 1
    return len(entries)


class MetaCallStack:
    """Meta-data entries keyed by their position in the remembered stack.

    Stacks handed in are normalized descriptors, outermost first. The keys
    present are always positions in the most recently remembered stack.
    """

    def __init__(self) -> None:
        self._stack: list[FrameDescriptor] = []
        self._entries: dict[int, list[MetaEntry]] = {}

    @property
    def stack(self) -> tuple[FrameDescriptor, ...]:
        return tuple(self._stack)

    def entries(self) -> dict[int, tuple[MetaEntry, ...]]:
        return {index: tuple(entries) for index, entries in sorted(self._entries.items())}

    def entries_at(self, index: int) -> tuple[MetaEntry, ...]:
        return tuple(self._entries.get(index, ()))

    def record(
        self,
        kind: str,
        identifier: Identifier,
        values: Sequence[MetaValue],
        stack: Sequence[FrameDescriptor],
        *,
        remove_kinds_at_top: Iterable[str] = (),
    ) -> None:
        self.replace_stack(stack)
        self.remove_kinds_at_top(remove_kinds_at_top)
        if not self._stack:
            logger.debug("nothing to record %s against: empty stack", kind)
            return
        if not values:
            return
        top = len(self._stack) - 1
        frame = self._stack[top]
        entries = self._entries.setdefault(top, [])
        for ordinal, value in enumerate(values):
            position = resolve_insertion_index(entries, kind, frame.line, ordinal)
            entries.insert(
                position,
                MetaEntry(
                    kind=kind,
                    identifier=identifier,
                    ordinal=ordinal,
                    frame=frame,
                    value=_own_value(value),
                ),
            )

    def replace(self, kind: str, identifier: Identifier, value: MetaValue) -> int:
        """Overwrite the value of every entry with this kind and identifier.

        Returns how many entries changed; no match is not an error.
        """
        replaced = 0
        for entries in self._entries.values():
            for position, entry in enumerate(entries):
                if entry.kind != kind or not same_identifier(entry.identifier, identifier):
                    continue
                entries[position] = replace_entry(entry, value=_own_value(value))
                replaced += 1
        return replaced

    def identities_in_use(self) -> set[int]:
        """Object identities the remembered stack or a call marker refers to."""
        in_use = {frame.object_id for frame in self._stack if frame.object_id is not None}
        for entries in self._entries.values():
            for entry in entries:
                if entry.kind == CALL_MARKER and isinstance(entry.identifier, int):
                    in_use.add(entry.identifier)
        return in_use

    def replace_stack(self, stack: Sequence[FrameDescriptor]) -> list[int]:
        pruned = self.prune_against(stack)
        self._stack = list(stack)
        return pruned

    def prune_against(
        self,
        stack: Sequence[FrameDescriptor],
        fields: Sequence[str] = (),
    ) -> list[int]:
        cut = find_divergence(self._stack, stack, fields)
        pruned = sorted(index for index in self._entries if index >= cut)
        for index in pruned:
            del self._entries[index]
        if pruned:
            logger.debug("pruned meta-data at frame(s) %s", pruned)
        return pruned

    def prune_against_live(self, stack: Sequence[FrameDescriptor]) -> list[int]:
        return self.prune_against(stack)

    def prune_against_error(self, stack: Sequence[FrameDescriptor]) -> list[int]:
        return self.prune_against(stack, ERROR_TRACE_FIELDS)

    def remove_kinds_at_top(self, kinds: Iterable[str]) -> None:
        kinds = tuple(kinds)
        if not kinds or not self._stack:
            return
        top = len(self._stack) - 1
        entries = self._entries.get(top)
        if entries is None:
            return
        entries[:] = [entry for entry in entries if entry.kind not in kinds]
