"""Core data contracts: call frames and error chains."""

from __future__ import annotations

from typing import Iterator

from pydantic import BaseModel, Field

from stackhash.core.defaults import DEFAULT_MAX_CHAIN_DEPTH


class CallFrame(BaseModel, frozen=True):
    """One stack entry, identified by its call site.

    ``file_name`` is optional: its presence marks a source-backed frame.
    A negative ``line_number`` marks a synthetic frame (generated code,
    ``exec``'d strings, interpreter internals).
    """

    class_name: str = Field(description="Owning class or module of the call site.")
    method_name: str = Field(description="Function or method name at the call site.")
    file_name: str | None = Field(default=None, description="Source file, if any.")
    line_number: int = Field(default=-1, description="Line number; negative when unknown.")

    @property
    def is_synthetic(self) -> bool:
        return self.file_name is None or self.line_number < 0


class ErrorFrame(BaseModel):
    """One error in a cause chain.

    ``stack_frames`` runs from the throw site (index 0) outward to the
    callers.  ``cause`` links to the parent error; it is a plain
    reference and may point back into the chain (a cycle), so equality
    between frames must always be tested with ``is``.

    ``suppressed`` holds side errors attached to this level (exception
    group members).  They are rendered but never hashed.
    """

    type_identity: str = Field(description="Fully qualified name of the error type.")
    message: str | None = Field(default=None, description="Human text; not hashed.")
    stack_frames: list[CallFrame | None] = Field(default_factory=list)
    cause: ErrorFrame | None = None
    suppressed: list[ErrorFrame] = Field(default_factory=list)

    def iter_chain(self, max_depth: int = DEFAULT_MAX_CHAIN_DEPTH) -> Iterator[ErrorFrame]:
        """Yield this frame and its causes, outermost first.

        Stops at the first missing cause, at the first frame already
        yielded (cycle), or after *max_depth* frames.
        """
        seen: set[int] = set()
        current: ErrorFrame | None = self
        while current is not None and id(current) not in seen and len(seen) < max_depth:
            seen.add(id(current))
            yield current
            current = current.cause


ErrorLike = ErrorFrame | BaseException
