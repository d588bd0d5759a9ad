from __future__ import annotations

from dataclasses import dataclass, replace

from stackcontext.callstack.meta import Meta, filter_meta, flatten_kinds
from stackcontext.model import FrameDescriptor, JSONObject


@dataclass(frozen=True)
class Frame:
    """One position of an assembled call stack.

    Frames are never changed after construction. Attaching a Meta yields a
    new Frame, so a Frame handed out earlier keeps what it had.
    """

    descriptor: FrameDescriptor
    project_file: str
    meta: tuple[Meta, ...] = ()
    is_application_frame: bool = False
    is_last_application_frame: bool = False
    is_last_frame: bool = False
    thrown_here: bool = False
    caught_here: bool = False

    @property
    def file(self) -> str:
        return self.descriptor.file or ""

    @property
    def line(self) -> int:
        return self.descriptor.line or 0

    @property
    def function(self) -> str:
        return self.descriptor.function or ""

    @property
    def class_name(self) -> str:
        return self.descriptor.class_name or ""

    @property
    def call_type(self) -> str:
        return self.descriptor.call_type or ""

    @property
    def object_id(self) -> int | None:
        return self.descriptor.object_id

    @property
    def is_vendor_frame(self) -> bool:
        return not self.is_application_frame

    def get_meta(self, *kinds: object) -> list[Meta]:
        return filter_meta(self.meta, flatten_kinds(kinds))

    def with_meta(
        self,
        meta: Meta,
        *,
        thrown_here: bool = False,
        last_application: bool = False,
        caught_here: bool = False,
    ) -> "Frame":
        return replace(
            self,
            meta=self.meta + (meta,),
            is_last_application_frame=self.is_last_application_frame or last_application,
            thrown_here=self.thrown_here or thrown_here,
            caught_here=self.caught_here or caught_here,
        )

    def as_payload(self) -> JSONObject:
        payload = self.descriptor.as_payload()
        payload.pop("object", None)
        payload.update(
            {
                "project_file": self.project_file,
                "application": self.is_application_frame,
                "last_application": self.is_last_application_frame,
                "last": self.is_last_frame,
                "thrown_here": self.thrown_here,
                "caught_here": self.caught_here,
                "meta": [meta.as_payload() for meta in self.meta],
            }
        )
        return payload
