from stackcontext.api import add_context, build_context_here, exception_context, trace_identifier
from stackcontext.context import Context
from stackcontext.exceptions import (
    ContextInitialisationError,
    ContextRuntimeError,
    StackContextError,
)
from stackcontext.scope import ContextHandle, current_handle, handle_scope
from stackcontext.settings import Settings

__version__ = "0.1.0"

__all__ = [
    "Context",
    "ContextHandle",
    "ContextInitialisationError",
    "ContextRuntimeError",
    "Settings",
    "StackContextError",
    "add_context",
    "build_context_here",
    "current_handle",
    "exception_context",
    "handle_scope",
    "trace_identifier",
]
