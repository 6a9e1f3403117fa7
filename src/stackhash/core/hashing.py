"""Stack signature hashing for error chains.

Two occurrences of the same fault (same error types along the cause
chain, same call path) get the same signature even when their messages,
timestamps or threads differ.  One signed 32-bit hash is computed per
chain level; each level folds in its cause's hash, its own type and its
source-backed call frames::

    hash = cause_hash (or 0)
    hash = 31 * hash + string_hash(type_identity)
    for each kept frame:
        hash = 31 * hash + ((string_hash(cls) * 31 + string_hash(method)) * 31 + line)

Frame file names never enter the hash, so moving code between files
keeps the signature as long as the line stays put.  This is a
fingerprint, not a digest: collisions are tolerated.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

from stackhash.core.adapter import as_error_frame
from stackhash.core.defaults import DEFAULT_MAX_CHAIN_DEPTH, HASH_HEX_WIDTH, HASH_MULTIPLIER
from stackhash.core.types import CallFrame, ErrorFrame, ErrorLike

logger = logging.getLogger(__name__)

_MASK_32 = 0xFFFFFFFF
_SIGN_BIT = 0x80000000


def _to_int32(value: int) -> int:
    value &= _MASK_32
    return value - (1 << 32) if value & _SIGN_BIT else value


def java_string_hash(text: str) -> int:
    """Polynomial string hash over UTF-16 code units, wrapped to signed 32 bits.

    Matches ``java.lang.String#hashCode`` so signatures agree with JVM
    services hashing the same names.  Unlike the builtin :func:`hash`,
    the result is identical across processes.
    """
    data = text.encode("utf-16-be", "surrogatepass")
    result = 0
    for i in range(0, len(data), 2):
        result = (HASH_MULTIPLIER * result + ((data[i] << 8) | data[i + 1])) & _MASK_32
    return _to_int32(result)


def is_skipped(frame: CallFrame | None) -> bool:
    """Return True for frames that must not contribute to a signature."""
    return frame is None or frame.is_synthetic


def call_frame_hash(frame: CallFrame) -> int:
    result = java_string_hash(frame.class_name)
    result = HASH_MULTIPLIER * result + java_string_hash(frame.method_name)
    result = HASH_MULTIPLIER * result + frame.line_number
    return _to_int32(result)


def to_hex(value: int) -> str:
    """Render the low 32 bits of *value* as 8 uppercase hex digits."""
    return f"{value & _MASK_32:0{HASH_HEX_WIDTH}X}"


def _fold_level(seed: int, frame: ErrorFrame) -> int:
    result = _to_int32(HASH_MULTIPLIER * seed + java_string_hash(frame.type_identity))
    for call_frame in frame.stack_frames:
        if is_skipped(call_frame):
            continue
        result = _to_int32(HASH_MULTIPLIER * result + call_frame_hash(call_frame))
    return result


def _chain(error: ErrorLike | None, max_depth: int, include_suppressed: bool = False) -> list[ErrorFrame]:
    if max_depth < 1:
        raise ValueError(f"max_depth must be >= 1, got {max_depth}")
    root = as_error_frame(error, max_depth, include_suppressed=include_suppressed)
    levels = list(root.iter_chain(max_depth))
    tail = levels[-1].cause
    if tail is not None and not any(tail is level for level in levels):
        logger.warning(
            "Error chain deeper than %d levels; hashing truncated at %s",
            max_depth,
            levels[-1].type_identity,
        )
    return levels


def _hash_levels(levels: list[ErrorFrame]) -> list[int]:
    hashes: list[int] = []
    running = 0
    for frame in reversed(levels):
        running = _fold_level(running, frame)
        hashes.append(running)
    hashes.reverse()
    return hashes


def level_hashes(error: ErrorLike | None, *, max_depth: int = DEFAULT_MAX_CHAIN_DEPTH) -> list[int]:
    """Compute the signed 32-bit hash of every chain level, outermost first.

    The innermost level is hashed first (seed 0) and each outer level
    folds in the hash of the level below it.  A cause link pointing back
    into the chain ends it, so a self-caused error hashes like one with
    no cause.

    Args:
        error: Outermost error, as an :class:`ErrorFrame` or a live exception.
        max_depth: Maximum number of chain levels to hash.

    Returns:
        One hash per level; element 0 belongs to *error* itself.

    Raises:
        ValueError: If *error* is ``None`` or *max_depth* < 1.
        TypeError: If *error* is not an error.
    """
    return _hash_levels(_chain(error, max_depth))


def hex_hashes(error: ErrorLike | None, *, max_depth: int = DEFAULT_MAX_CHAIN_DEPTH) -> deque[str]:
    """Return the signature sequence of *error*, outermost level first.

    The deque is freshly built per call and meant to be consumed by one
    renderer with :meth:`~collections.deque.popleft`.
    """
    return deque(to_hex(value) for value in level_hashes(error, max_depth=max_depth))


def hex_hash(error: ErrorLike | None, *, max_depth: int = DEFAULT_MAX_CHAIN_DEPTH) -> str:
    """Return the signature of the outermost level only."""
    return hex_hashes(error, max_depth=max_depth)[0]


@dataclass(frozen=True, eq=False)
class SignedLevel:
    """A chain level paired with its signature."""

    frame: ErrorFrame
    signature: str


def signed_chain(error: ErrorLike | None, *, max_depth: int = DEFAULT_MAX_CHAIN_DEPTH) -> list[SignedLevel]:
    """Pair each chain level with its signature, outermost first.

    Unlike :func:`hex_hashes`, callers need not replay the chain walk in
    lockstep to know which signature belongs to which level.
    """
    levels = _chain(error, max_depth, include_suppressed=True)
    return [
        SignedLevel(frame=frame, signature=to_hex(value))
        for frame, value in zip(levels, _hash_levels(levels))
    ]
