"""Error taxonomy for stackcontext."""

from __future__ import annotations


class StackContextError(Exception):
    """Base class for every error raised by stackcontext."""


class ContextRuntimeError(StackContextError):
    """A caller passed an argument the engine cannot act on."""

    @classmethod
    def invalid_frames_back(cls, frames_back: int) -> "ContextRuntimeError":
        return cls(f"Invalid frames back: {frames_back} (must be >= 0)")

    @classmethod
    def too_many_frames_back(cls, frames_back: int, depth: int) -> "ContextRuntimeError":
        return cls(
            f"Too many frames back: {frames_back} (stack depth is {depth}, "
            "at least one frame must remain)"
        )

    @classmethod
    def no_active_handle(cls) -> "ContextRuntimeError":
        return cls("No stackcontext handle is active; use handle_scope()")


class ContextInitialisationError(StackContextError):
    """A Context could not be assembled from stored state or settings."""

    @classmethod
    def invalid_meta_kind(cls, kind: object) -> "ContextInitialisationError":
        return cls(f"Invalid meta kind {kind!r}")

    @classmethod
    def level_not_allowed(
        cls, level: object, allowed: tuple[str, ...]
    ) -> "ContextInitialisationError":
        return cls(
            f"Level {level!r} is not allowed; expected one of: {', '.join(allowed)}"
        )
