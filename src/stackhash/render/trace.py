"""Signature-prefixed stack trace rendering.

Renders an error chain outermost first::

    #09D9B255> app.errors.FetchError: could not load things
    	at app.client.Client.fetch(client.py:24)
    	at app.main.run(main.py:16)
    	Suppressed: app.errors.CloseError: socket already closed
    		at app.client.Client.close(client.py:51)
    		... 1 common frames omitted
    Caused by: #00029F0F> builtins.TimeoutError: read timed out
    	at app.http.get(http.py:38)
    	... 2 common frames omitted

Each primary chain level takes the next signature from the front of the
sequence; suppressed branches are rendered without one.  When the
sequence runs out the remaining levels simply have no prefix.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Sequence

from stackhash.core.adapter import as_error_frame
from stackhash.core.defaults import (
    CAUSED_BY,
    DEFAULT_MAX_CHAIN_DEPTH,
    HASH_PREFIX,
    HASH_SUFFIX,
    SUPPRESSED,
    UNKNOWN_SOURCE,
)
from stackhash.core.hashing import hex_hashes
from stackhash.core.types import CallFrame, ErrorFrame, ErrorLike

logger = logging.getLogger(__name__)

REGULAR_INDENT = 1
SUPPRESSED_INDENT = 1


def format_call_frame(frame: CallFrame) -> str:
    """Format one frame as ``cls.method(file:line)``."""
    if frame.file_name is None:
        location = UNKNOWN_SOURCE
    elif frame.line_number < 0:
        location = frame.file_name
    else:
        location = f"{frame.file_name}:{frame.line_number}"
    return f"{frame.class_name}.{frame.method_name}({location})"


def format_header(frame: ErrorFrame, signature: str | None = None) -> str:
    """Format the first line of a level, with its signature prefix if given."""
    prefix = f"{HASH_PREFIX}{signature}{HASH_SUFFIX}" if signature else ""
    if frame.message is None:
        return f"{prefix}{frame.type_identity}"
    return f"{prefix}{frame.type_identity}: {frame.message}"


def common_frame_count(
    frames: Sequence[CallFrame | None],
    enclosing: Sequence[CallFrame | None],
) -> int:
    """Count trailing frames *frames* shares with its enclosing trace."""
    count = 0
    i, j = len(frames) - 1, len(enclosing) - 1
    while i >= 0 and j >= 0 and frames[i] == enclosing[j]:
        count += 1
        i -= 1
        j -= 1
    return count


@dataclass
class _Pending:
    frame: ErrorFrame
    label: str
    indent: int
    nesting: int
    primary: bool
    enclosing: Sequence[CallFrame | None]


def _append_chain(
    lines: list[str],
    root: ErrorFrame,
    signatures: deque[str],
    max_depth: int,
) -> None:
    # Depth first with an explicit stack: a level's suppressed branches
    # are fully rendered before its cause.
    stack = [_Pending(root, "", REGULAR_INDENT, 0, True, ())]
    seen: set[int] = set()
    while stack:
        item = stack.pop()
        current = item.frame
        head = "\t" * (item.indent - 1) + item.label
        if id(current) in seen:
            lines.append(f"{head}[CIRCULAR REFERENCE: {current.type_identity}]")
            continue
        seen.add(id(current))

        signature = signatures.popleft() if item.primary and signatures else None
        lines.append(head + format_header(current, signature))

        body = "\t" * item.indent
        common = common_frame_count(current.stack_frames, item.enclosing)
        for call_frame in current.stack_frames[: len(current.stack_frames) - common]:
            if call_frame is not None:
                lines.append(f"{body}at {format_call_frame(call_frame)}")
        if common:
            lines.append(f"{body}... {common} common frames omitted")

        if current.cause is not None:
            stack.append(
                _Pending(current.cause, CAUSED_BY, item.indent, item.nesting, item.primary, current.stack_frames)
            )
        if not current.suppressed:
            continue
        if item.nesting >= max_depth:
            logger.warning(
                "Suppressed errors nested deeper than %d levels; omitted below %s",
                max_depth,
                current.type_identity,
            )
            lines.append(f"{body}... {len(current.suppressed)} suppressed errors omitted")
            continue
        for side in reversed(current.suppressed):
            stack.append(
                _Pending(
                    side, SUPPRESSED, item.indent + SUPPRESSED_INDENT,
                    item.nesting + 1, False, current.stack_frames,
                )
            )


def render_trace(
    error: ErrorLike | None,
    signatures: deque[str] | None = None,
    *,
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
) -> str:
    """Render *error* as a stack trace whose levels carry their signatures.

    Args:
        error: Outermost error, as an :class:`ErrorFrame` or a live exception.
        signatures: Signature sequence to consume.  Computed from *error*
            when ``None``; pass an empty deque to render without prefixes.
            Consumed destructively.
        max_depth: Chain depth limit used when converting or hashing, and
            the deepest nesting of suppressed errors that is rendered.

    Returns:
        The rendered trace, newline terminated.
    """
    root = as_error_frame(error, max_depth)
    if signatures is None:
        signatures = hex_hashes(root, max_depth=max_depth)

    lines: list[str] = []
    _append_chain(lines, root, signatures, max_depth)
    return "\n".join(lines) + "\n"
