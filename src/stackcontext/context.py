"""The Context aggregate and the assembly of its call stack."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Union

from stackcontext.callstack.frame import Frame
from stackcontext.callstack.meta import (
    CallMeta,
    ContextMeta,
    ExceptionCaughtMeta,
    ExceptionThrownMeta,
    LastApplicationFrameMeta,
    Meta,
)
from stackcontext.callstack.stack import CallStack
from stackcontext.exceptions import ContextInitialisationError
from stackcontext.meta_call_stack import MetaCallStack
from stackcontext.model import (
    CALL_MARKER,
    CONTEXT_DATA,
    FrameDescriptor,
    Identifier,
    JSONObject,
    MetaEntry,
    same_identifier,
)
from stackcontext.path_policy import PathPolicy
from stackcontext.reconcile import ERROR_TRACE_FIELDS
from stackcontext.snapshot import ObjectIdentities, RawFrame, normalize_stack

Rethrow = Union[bool, Callable[..., object], BaseException]

_NOT_WORTH_REPORTING: tuple[dict[type[Meta], int], ...] = (
    {},
    {ExceptionThrownMeta: 1},
    {LastApplicationFrameMeta: 1},
    {ExceptionThrownMeta: 1, LastApplicationFrameMeta: 1},
)

logger = logging.getLogger(__name__)


def meta_counts_worth_reporting(counts: Mapping[type[Meta], int]) -> bool:
    """False when the Meta present say nothing beyond where an error happened."""
    return {kind: count for kind, count in counts.items() if count} not in _NOT_WORTH_REPORTING


@dataclass(frozen=True)
class AssembledCallStack:
    call_stack: CallStack
    known: tuple[str, ...]
    worth_reporting: bool


def _materialize(
    entry: MetaEntry,
    paths: PathPolicy,
    error: BaseException | None,
    catcher_identity: Identifier,
) -> Meta:
    project_file = paths.project_file(entry.frame.file or "")
    if entry.kind == CONTEXT_DATA:
        return ContextMeta(entry.frame, project_file, context=entry.value)
    if entry.kind == CALL_MARKER:
        value = entry.value if isinstance(entry.value, Mapping) else {}
        known = tuple(str(item) for item in value.get("known", ()) or ())
        caught_here = error is not None and same_identifier(entry.identifier, catcher_identity)
        return CallMeta(entry.frame, project_file, caught_here=caught_here, known=known)
    raise ContextInitialisationError.invalid_meta_kind(entry.kind)


def assemble_call_stack(
    stack: Sequence[FrameDescriptor],
    entries: Mapping[int, Sequence[MetaEntry]],
    *,
    paths: PathPolicy,
    enabled: bool = True,
    error: BaseException | None = None,
    catcher_identity: Identifier = None,
) -> AssembledCallStack:
    """Combine a normalized stack with the meta-data stored against it.

    Besides the recorded Meta, the last application frame gets a
    ``LastApplicationFrameMeta``, and with an error the innermost frame gets an
    ``ExceptionThrownMeta`` and the frame whose call marker caught it an
    ``ExceptionCaughtMeta`` lined up with that marker.
    """
    frames: list[Frame] = []
    last_application: int | None = None
    caught_index: int | None = None
    caught_by: CallMeta | None = None
    for index, descriptor in enumerate(stack):
        metas: list[Meta] = []
        if enabled:
            for entry in entries.get(index, ()):
                meta = _materialize(entry, paths, error, catcher_identity)
                metas.append(meta)
                if isinstance(meta, CallMeta) and meta.caught_here:
                    caught_index, caught_by = index, meta
        file = descriptor.file or ""
        is_application = paths.is_application_file(file)
        frames.append(
            Frame(
                descriptor=descriptor,
                project_file=paths.project_file(file),
                meta=tuple(metas),
                is_application_frame=is_application,
                is_last_frame=index == len(stack) - 1,
            )
        )
        if is_application:
            last_application = index

    call_stack = CallStack(frames)
    if not enabled:
        return AssembledCallStack(call_stack, (), False)

    if last_application is not None:
        frame = call_stack[last_application]
        call_stack[last_application] = frame.with_meta(
            LastApplicationFrameMeta(frame.descriptor, frame.project_file),
            last_application=True,
        )
    if error is not None and len(call_stack):
        frame = call_stack[len(call_stack) - 1]
        call_stack[len(call_stack) - 1] = frame.with_meta(
            ExceptionThrownMeta(frame.descriptor, frame.project_file),
            thrown_here=True,
        )
    if error is not None and caught_index is not None and caught_by is not None:
        frame = call_stack[caught_index]
        aligned = replace(frame.descriptor, line=caught_by.frame.line)
        call_stack[caught_index] = frame.with_meta(
            ExceptionCaughtMeta(aligned, frame.project_file),
            caught_here=True,
        )

    known = tuple(issue for meta in call_stack.get_meta(CallMeta) for issue in meta.known)
    counts = Counter(type(meta) for meta in call_stack.get_meta())
    return AssembledCallStack(call_stack, known, meta_counts_worth_reporting(counts))


def _normalize_args(values: Iterable[object]) -> list[str]:
    flat: list[str] = []
    for value in values:
        items = value if isinstance(value, (list, tuple, set, frozenset)) else [value]
        for item in items:
            if item and item not in flat:
                flat.append(item)
    return flat


class Context:
    """What is known about an error, or about one point in execution.

    The call stack is assembled on first use, pruning the MetaCallStack
    against the captured trace at that moment. Settings such as channels and
    level stay adjustable through the fluent setters.
    """

    def __init__(
        self,
        *,
        records: Sequence[RawFrame],
        meta_call_stack: MetaCallStack,
        identities: ObjectIdentities,
        paths: PathPolicy,
        enabled: bool = True,
        error: BaseException | None = None,
        error_trace: bool = False,
        catcher_identity: Identifier = None,
        trace_identifiers: Mapping[str, object] | None = None,
        channels: Sequence[str] = (),
        level: str | None = None,
        report: bool = False,
        rethrow: Rethrow = False,
        default: object = None,
    ) -> None:
        self._records = list(records)
        self._meta_call_stack = meta_call_stack
        self._identities = identities
        self._paths = paths
        self._enabled = enabled
        self._error = error
        self._error_trace = error_trace
        self._catcher_identity = catcher_identity
        self._trace_identifiers = dict(trace_identifiers or {})
        self._channels = list(channels)
        self._level = level
        self._report = report
        self._rethrow = rethrow
        self._default = default
        self._known_override: list[str] | None = None
        self._assembled: AssembledCallStack | None = None

    def _assemble(self) -> AssembledCallStack:
        if self._assembled is not None:
            return self._assembled
        stack = normalize_stack(self._records, self._identities)
        if self._error_trace:
            self._meta_call_stack.prune_against(stack, ERROR_TRACE_FIELDS)
        else:
            self._meta_call_stack.prune_against(stack)
        self._assembled = assemble_call_stack(
            stack,
            self._meta_call_stack.entries(),
            paths=self._paths,
            enabled=self._enabled,
            error=self._error,
            catcher_identity=self._catcher_identity,
        )
        logger.debug(
            "assembled call stack of %d frame(s), worth reporting: %s",
            len(self._assembled.call_stack),
            self._assembled.worth_reporting,
        )
        return self._assembled

    def exception(self) -> BaseException | None:
        return self._error

    def call_stack(self) -> CallStack:
        return self._assemble().call_stack.copy()

    def stack_trace(self) -> CallStack:
        return self._assemble().call_stack.copy().reverse()

    def trace_identifiers(self) -> dict[str, object]:
        return dict(self._trace_identifiers)

    def known_issues(self) -> list[str]:
        if self._known_override is not None:
            return list(self._known_override)
        return list(self._assemble().known)

    def has_known_issues(self) -> bool:
        return bool(self.known_issues())

    def channels(self) -> list[str]:
        return list(self._channels)

    def level(self) -> str | None:
        return self._level

    def report(self) -> bool:
        return self._report

    def rethrow(self) -> Rethrow:
        return self._rethrow

    def default(self) -> object:
        return self._default

    def worth_reporting(self) -> bool:
        return self._assemble().worth_reporting

    def set_trace_identifiers(self, trace_identifiers: Mapping[str, object]) -> "Context":
        self._trace_identifiers = dict(trace_identifiers)
        return self

    def set_known_issues(self, *issues: str | Sequence[str]) -> "Context":
        self._known_override = _normalize_args(issues)
        return self

    def set_channels(self, *channels: str | Sequence[str]) -> "Context":
        self._channels = _normalize_args(channels)
        return self

    def set_level(self, level: str | None) -> "Context":
        self._level = level
        return self

    def debug(self) -> "Context":
        return self.set_level("debug")

    def info(self) -> "Context":
        return self.set_level("info")

    def notice(self) -> "Context":
        return self.set_level("notice")

    def warning(self) -> "Context":
        return self.set_level("warning")

    def error(self) -> "Context":
        return self.set_level("error")

    def critical(self) -> "Context":
        return self.set_level("critical")

    def alert(self) -> "Context":
        return self.set_level("alert")

    def emergency(self) -> "Context":
        return self.set_level("emergency")

    def set_report(self, report: bool = True) -> "Context":
        self._report = report
        return self

    def dont_report(self) -> "Context":
        return self.set_report(False)

    def set_rethrow(self, rethrow: Rethrow = True) -> "Context":
        self._rethrow = rethrow
        return self

    def dont_rethrow(self) -> "Context":
        return self.set_rethrow(False)

    def suppress(self) -> "Context":
        return self.dont_report().dont_rethrow()

    def set_default(self, default: object) -> "Context":
        self._default = default
        return self

    def as_payload(self) -> JSONObject:
        error = self._error
        return {
            "exception": None
            if error is None
            else {"type": type(error).__name__, "message": str(error)},
            "trace_identifiers": {
                name: value if isinstance(value, (str, int)) else str(value)
                for name, value in self._trace_identifiers.items()
            },
            "known": self.known_issues(),
            "channels": self.channels(),
            "level": self._level,
            "report": self._report,
            "rethrow": bool(self._rethrow),
            "worth_reporting": self.worth_reporting(),
            "frames": [frame.as_payload() for frame in self.call_stack()],
        }
