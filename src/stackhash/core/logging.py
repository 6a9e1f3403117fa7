"""Logging integration: stack signatures on log records and in rendered traces.

Two pieces, usable separately:

- :class:`StackHashFilter` stamps every record with a ``stack_hash``
  attribute so format strings can use ``%(stack_hash)s``.
- :class:`StackHashFormatter` renders attached exceptions with
  :func:`~stackhash.render.trace.render_trace`, prefixing each chain
  level with its signature.

Usage::

    handler = logging.StreamHandler()
    handler.setFormatter(StackHashFormatter("%(levelname)s [%(stack_hash)s] %(message)s"))
    logging.getLogger().addHandler(handler)
"""

from __future__ import annotations

import logging
from typing import IO, TYPE_CHECKING, Any, Literal

from stackhash.core.defaults import DEFAULT_MAX_CHAIN_DEPTH, DEFAULT_STACK_HASH_FALLBACK
from stackhash.core.hashing import hex_hash
from stackhash.render.trace import render_trace

if TYPE_CHECKING:
    from stackhash.core.config import StackHashConfig

_ExcInfo = tuple[Any, Any, Any] | None


def _exception_of(exc_info: _ExcInfo) -> BaseException | None:
    if not exc_info:
        return None
    value = exc_info[1]
    return value if isinstance(value, BaseException) else None


def stack_hash_for_record(
    record: logging.LogRecord,
    default: str = DEFAULT_STACK_HASH_FALLBACK,
    max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
) -> str:
    """Return the outer signature of *record*'s exception, or *default* if it has none."""
    exc = _exception_of(record.exc_info)
    if exc is None:
        return default
    return hex_hash(exc, max_depth=max_depth)


class StackHashFilter(logging.Filter):
    """A :class:`logging.Filter` that sets ``record.stack_hash`` on every record.

    Records without an exception get *default*, which is configurable
    because an empty field and a placeholder such as ``"-"`` suit
    different log pipelines.  The filter never drops records.
    """

    def __init__(
        self,
        default: str = DEFAULT_STACK_HASH_FALLBACK,
        max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
    ) -> None:
        super().__init__()
        self.default = default
        self.max_depth = max_depth

    def filter(self, record: logging.LogRecord) -> bool:
        record.stack_hash = stack_hash_for_record(record, self.default, self.max_depth)
        return True


class StackHashFormatter(logging.Formatter):
    """A :class:`logging.Formatter` that prints signature-prefixed traces."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "%",
        *,
        default: str = DEFAULT_STACK_HASH_FALLBACK,
        max_depth: int = DEFAULT_MAX_CHAIN_DEPTH,
    ) -> None:
        super().__init__(fmt, datefmt, style)
        self.default = default
        self.max_depth = max_depth

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "stack_hash"):
            record.stack_hash = stack_hash_for_record(record, self.default, self.max_depth)
        # exc_text is a cache shared by every handler; keep other
        # formatters' traces out of ours and ours out of theirs.
        cached = record.exc_text
        record.exc_text = None
        try:
            return super().format(record)
        finally:
            record.exc_text = cached

    def formatException(self, ei: Any) -> str:  # noqa: N802
        exc = _exception_of(ei)
        if exc is None:
            return super().formatException(ei)
        return render_trace(exc, max_depth=self.max_depth).rstrip("\n")


def install_stack_hash_filter(
    logger: logging.Logger | None = None,
    *,
    handler_level: bool = False,
    default: str = DEFAULT_STACK_HASH_FALLBACK,
) -> StackHashFilter:
    """Attach a :class:`StackHashFilter` to *logger* (or the root logger).

    Args:
        logger: Target logger.  Defaults to the root logger if ``None``.
        handler_level: If ``True``, install on each handler of *logger*
            instead of the logger itself.  Logger-level filters do not
            see records propagated from child loggers.
        default: Value used for records without an exception.

    Returns:
        The filter instance that was installed (useful for later removal).
    """
    filt = StackHashFilter(default)
    target = logger or logging.getLogger()

    if handler_level:
        for handler in target.handlers:
            handler.addFilter(filt)
    else:
        target.addFilter(filt)

    return filt


def configure_logging(
    config: StackHashConfig,
    logger: logging.Logger | None = None,
    *,
    stream: IO[str] | None = None,
) -> logging.Handler:
    """Add a stream handler formatting records with signatures to *logger*.

    Returns:
        The handler that was added.
    """
    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        StackHashFormatter(
            config.log_format,
            default=config.default_value,
            max_depth=config.max_chain_depth,
        )
    )
    (logger or logging.getLogger()).addHandler(handler)
    return handler
