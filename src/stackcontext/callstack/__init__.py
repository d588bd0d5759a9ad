from stackcontext.callstack.frame import Frame
from stackcontext.callstack.groups import MetaGroup
from stackcontext.callstack.meta import (
    CallMeta,
    ContextMeta,
    ExceptionCaughtMeta,
    ExceptionThrownMeta,
    LastApplicationFrameMeta,
    Meta,
)
from stackcontext.callstack.stack import CallStack

__all__ = [
    "CallMeta",
    "CallStack",
    "ContextMeta",
    "ExceptionCaughtMeta",
    "ExceptionThrownMeta",
    "Frame",
    "LastApplicationFrameMeta",
    "Meta",
    "MetaGroup",
]
