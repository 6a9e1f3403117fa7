"""Conversion of live Python exceptions into :class:`ErrorFrame` chains.

Python tracebacks list frames outermost call first; error frames list
them throw site first, so the order is reversed here.  Frames whose code
was compiled from a pseudo file (``<string>``, ``<frozen importlib._bootstrap>``,
``<stdin>``) lose their file name, which makes them synthetic and keeps
them out of the signature.
"""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from types import FrameType, TracebackType

from stackhash.core.defaults import DEFAULT_MAX_CHAIN_DEPTH
from stackhash.core.types import CallFrame, ErrorFrame, ErrorLike

logger = logging.getLogger(__name__)


def type_identity_of(exc_type: type[BaseException]) -> str:
    """Return ``"<module>.<qualname>"`` for *exc_type*."""
    return f"{exc_type.__module__}.{exc_type.__qualname__}"


def _is_pseudo_file(filename: str) -> bool:
    return filename.startswith("<") and filename.endswith(">")


def _call_frame(frame: FrameType, lineno: int | None) -> CallFrame:
    code = frame.f_code
    filename = code.co_filename
    return CallFrame(
        class_name=str(frame.f_globals.get("__name__", "<unknown>")),
        method_name=code.co_qualname,
        file_name=None if not filename or _is_pseudo_file(filename) else Path(filename).name,
        line_number=lineno if lineno is not None else -1,
    )


def call_frames_from_traceback(tb: TracebackType | None) -> list[CallFrame | None]:
    """Walk *tb* and return its frames, throw site first."""
    frames: list[CallFrame | None] = []
    while tb is not None:
        frames.append(_call_frame(tb.tb_frame, tb.tb_lineno))
        tb = tb.tb_next
    frames.reverse()
    return frames


def cause_of(exc: BaseException) -> BaseException | None:
    """Return the parent of *exc* the way the interpreter displays it.

    An explicit ``raise ... from`` cause wins; otherwise the implicit
    context is used unless it was suppressed with ``from None``.
    """
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def _message_of(exc: BaseException) -> str | None:
    text = str(exc)
    return text or None


def _convert_chain(
    exc: BaseException,
    converted: dict[int, ErrorFrame],
    max_depth: int,
) -> tuple[ErrorFrame, list[tuple[ErrorFrame, BaseExceptionGroup]]]:
    """Convert the cause chain of *exc*; return its root and the groups met on the way."""
    root: ErrorFrame | None = None
    previous: ErrorFrame | None = None
    current: BaseException | None = exc
    groups: list[tuple[ErrorFrame, BaseExceptionGroup]] = []
    depth = 0

    while current is not None:
        existing = converted.get(id(current))
        if existing is not None:
            # Revisited exception: re-link to the frame already built so
            # the cycle survives conversion.
            if previous is None:
                return existing, groups
            previous.cause = existing
            break
        if depth >= max_depth:
            logger.warning(
                "Exception chain deeper than %d levels; conversion truncated at %s",
                max_depth,
                type_identity_of(type(current)),
            )
            break

        frame = ErrorFrame(
            type_identity=type_identity_of(type(current)),
            message=_message_of(current),
            stack_frames=call_frames_from_traceback(current.__traceback__),
        )
        converted[id(current)] = frame
        if isinstance(current, BaseExceptionGroup):
            groups.append((frame, current))

        if previous is None:
            root = frame
        else:
            previous.cause = frame
        previous = frame
        current = cause_of(current)
        depth += 1

    assert root is not None
    return root, groups


def error_frame_from_exception(
    exc: BaseException,
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
    *,
    include_suppressed: bool = True,
) -> ErrorFrame:
    """Convert *exc* and its cause chain into an :class:`ErrorFrame` chain.

    At most *max_depth* levels of the cause chain are converted, and
    exception groups are expanded at most *max_depth* levels deep.
    Exception group members become ``suppressed`` entries unless
    *include_suppressed* is false.
    """
    if max_depth < 1:
        raise ValueError(f"max_depth must be >= 1, got {max_depth}")
    converted: dict[int, ErrorFrame] = {}
    root, groups = _convert_chain(exc, converted, max_depth)
    if not include_suppressed:
        return root

    pending = deque((frame, group, 1) for frame, group in groups)
    while pending:
        frame, group, nesting = pending.popleft()
        if nesting > max_depth:
            logger.warning(
                "Exception groups nested deeper than %d levels; %s members dropped",
                max_depth,
                frame.type_identity,
            )
            continue
        members: list[ErrorFrame] = []
        for member in group.exceptions:
            member_root, member_groups = _convert_chain(member, converted, max_depth)
            members.append(member_root)
            pending.extend((f, g, nesting + 1) for f, g in member_groups)
        frame.suppressed = members
    return root


def as_error_frame(
    error: ErrorLike | None,
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
    *,
    include_suppressed: bool = True,
) -> ErrorFrame:
    """Normalise *error* to an :class:`ErrorFrame`.

    Raises:
        ValueError: If *error* is ``None``.
        TypeError: If *error* is neither an ``ErrorFrame`` nor an exception.
    """
    if error is None:
        raise ValueError("error must not be None")
    if isinstance(error, ErrorFrame):
        return error
    if isinstance(error, BaseException):
        return error_frame_from_exception(error, max_depth, include_suppressed=include_suppressed)
    raise TypeError(f"expected ErrorFrame or BaseException, got {type(error).__name__}")
