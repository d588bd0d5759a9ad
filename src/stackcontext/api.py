"""Caller-facing functions bound to the active handle."""

from __future__ import annotations

from stackcontext.context import Context
from stackcontext.exceptions import ContextRuntimeError
from stackcontext.model import MetaValue
from stackcontext.scope import current_handle


def add_context(*values: MetaValue) -> None:
    """Remember ``values`` against the calling frame until it returns."""
    current_handle().add_context(*values, frames_back=1)


def build_context_here(frames_back: int = 0) -> Context:
    if frames_back < 0:
        raise ContextRuntimeError.invalid_frames_back(frames_back)
    return current_handle().build_from_here(frames_back + 1)


def exception_context(error: BaseException) -> Context:
    return current_handle().exception_context(error, frames_back=1)


def trace_identifier(value: int | str, name: str | None = None) -> None:
    current_handle().trace_identifier(value, name)
