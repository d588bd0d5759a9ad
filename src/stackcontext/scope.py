"""Per execution context state and the carrier that makes it current.

A ``ContextHandle`` owns everything one request or run records: the
MetaCallStack, the object identities it was keyed with, trace identifiers
and the Contexts built for errors. ``handle_scope()`` installs one for the
duration of a ``with`` block.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from contextvars import ContextVar, Token

from stackcontext.context import Context
from stackcontext.exceptions import ContextRuntimeError
from stackcontext.meta_call_stack import MetaCallStack
from stackcontext.model import CALL_MARKER, CONTEXT_DATA, Identifier, MetaValue
from stackcontext.settings import Settings
from stackcontext.snapshot import (
    ObjectIdentities,
    error_records,
    live_records,
    normalize_stack,
    step_back,
)

logger = logging.getLogger(__name__)


class ContextHandle:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings if settings is not None else Settings()
        self.identities = ObjectIdentities()
        self.meta_call_stack = MetaCallStack()
        self._trace_identifiers: dict[str, object] = {}
        self._error_contexts: dict[int, tuple[BaseException, Context]] = {}

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def record(
        self,
        kind: str,
        identifier: Identifier,
        values: Sequence[MetaValue],
        frames_back: int = 0,
        remove_kinds_at_top: Iterable[str] = (),
    ) -> None:
        """Store ``values`` against the caller's frame.

        ``frames_back`` attributes them to a frame further down instead, for
        wrappers that should not appear as the recording frame themselves.
        """
        if not self.enabled:
            return
        if frames_back < 0:
            raise ContextRuntimeError.invalid_frames_back(frames_back)
        records = step_back(live_records(), frames_back + 1)
        stack = normalize_stack(records, self.identities)
        self.meta_call_stack.record(
            kind,
            identifier,
            list(values),
            stack,
            remove_kinds_at_top=remove_kinds_at_top,
        )
        self.identities.retain(self.meta_call_stack.identities_in_use())

    def record_value(
        self,
        kind: str,
        identifier: Identifier,
        value: MetaValue,
        frames_back: int = 0,
        remove_kinds_at_top: Iterable[str] = (),
    ) -> None:
        if frames_back < 0:
            raise ContextRuntimeError.invalid_frames_back(frames_back)
        self.record(kind, identifier, [value], frames_back + 1, remove_kinds_at_top)

    def replace(self, kind: str, identifier: Identifier, value: MetaValue) -> None:
        if not self.enabled:
            return
        self.meta_call_stack.replace(kind, identifier, value)

    def add_context(self, *values: MetaValue, frames_back: int = 0) -> None:
        if frames_back < 0:
            raise ContextRuntimeError.invalid_frames_back(frames_back)
        self.record(
            CONTEXT_DATA,
            None,
            values,
            frames_back + 1,
            remove_kinds_at_top=(CALL_MARKER,),
        )

    def object_identity(self, obj: object) -> int | None:
        return self.identities.identify(obj)

    def mark_call(
        self,
        catcher: object,
        known: Iterable[str] = (),
        frames_back: int = 0,
    ) -> int | None:
        """Record that ``catcher`` is wrapping a call made from the caller's frame.

        Returns the catcher identity to hand to ``build_from_error`` when the
        catcher handles an error.
        """
        if frames_back < 0:
            raise ContextRuntimeError.invalid_frames_back(frames_back)
        identity = self.object_identity(catcher)
        self.record(CALL_MARKER, identity, [{"known": list(known)}], frames_back + 1)
        return identity

    def build_from_here(self, frames_back: int = 0) -> Context:
        if frames_back < 0:
            raise ContextRuntimeError.invalid_frames_back(frames_back)
        records = step_back(live_records(), frames_back + 1)
        return Context(
            records=records,
            meta_call_stack=self.meta_call_stack,
            identities=self.identities,
            paths=self.settings.path_policy(),
            enabled=self.enabled,
            trace_identifiers=self._trace_identifiers,
            channels=self.settings.pick_best_channels(False),
        )

    def build_from_error(
        self,
        error: BaseException,
        is_known: bool = False,
        catcher_identity: Identifier = None,
        frames_back: int = 0,
    ) -> Context:
        """Context for ``error``, built from its traceback once it was raised.

        An error that was never raised is placed on the caller's live stack;
        ``frames_back`` moves it further down, as for ``build_from_here``.
        """
        if frames_back < 0:
            raise ContextRuntimeError.invalid_frames_back(frames_back)
        records = error_records(error)
        error_trace = records is not None
        if records is None:
            records = step_back(live_records(), frames_back + 1)
        context = Context(
            records=records,
            meta_call_stack=self.meta_call_stack,
            identities=self.identities,
            paths=self.settings.path_policy(),
            enabled=self.enabled,
            error=error,
            error_trace=error_trace,
            catcher_identity=catcher_identity,
            trace_identifiers=self._trace_identifiers,
            channels=self.settings.pick_best_channels(is_known),
            level=self.settings.pick_best_level(is_known),
            report=self.settings.resolved_report(),
        )
        self.remember_exception_context(error, context)
        return context

    def trace_identifier(self, value: int | str, name: str | None = None) -> None:
        self._trace_identifiers["" if name is None else str(name)] = value

    def trace_identifiers(self) -> dict[str, object]:
        return dict(self._trace_identifiers)

    def remember_exception_context(self, error: BaseException, context: Context) -> None:
        self._error_contexts[id(error)] = (error, context)

    def remembered_exception_context(self, error: BaseException) -> Context | None:
        entry = self._error_contexts.get(id(error))
        if entry is None or entry[0] is not error:
            return None
        return entry[1]

    def latest_exception_context(self) -> Context | None:
        if not self._error_contexts:
            return None
        return next(reversed(self._error_contexts.values()))[1]

    def forget_exception_context(self, error: BaseException) -> None:
        entry = self._error_contexts.get(id(error))
        if entry is not None and entry[0] is error:
            del self._error_contexts[id(error)]

    def exception_context(self, error: BaseException, frames_back: int = 0) -> Context:
        if frames_back < 0:
            raise ContextRuntimeError.invalid_frames_back(frames_back)
        remembered = self.remembered_exception_context(error)
        if remembered is not None:
            return remembered
        return self.build_from_error(error, frames_back=frames_back + 1)


_handle_var: ContextVar[ContextHandle | None] = ContextVar(
    "stackcontext_handle", default=None
)


def set_handle(handle: ContextHandle) -> Token:
    return _handle_var.set(handle)


def reset_handle(token: Token) -> None:
    _handle_var.reset(token)


def current_handle() -> ContextHandle:
    handle = _handle_var.get()
    if handle is None:
        raise ContextRuntimeError.no_active_handle()
    return handle


@contextmanager
def handle_scope(
    handle: ContextHandle | None = None,
    *,
    settings: Settings | None = None,
):
    if handle is None:
        handle = ContextHandle(settings)
    token = set_handle(handle)
    logger.debug("entered handle scope (enabled=%s)", handle.enabled)
    try:
        yield handle
    finally:
        reset_handle(token)
        logger.debug("left handle scope")
