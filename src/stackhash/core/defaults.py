"""Centralised default constants for stackhash.

Every project-wide magic number / string lives here.
Import these instead of hard-coding values in function signatures or CLI options.
"""

from __future__ import annotations

from typing import Final

# ── Hashing ──
HASH_MULTIPLIER: Final[int] = 31
HASH_HEX_WIDTH: Final[int] = 8
DEFAULT_MAX_CHAIN_DEPTH: Final[int] = 1024

# ── Rendering ──
HASH_PREFIX: Final[str] = "#"
HASH_SUFFIX: Final[str] = "> "
CAUSED_BY: Final[str] = "Caused by: "
SUPPRESSED: Final[str] = "Suppressed: "
UNKNOWN_SOURCE: Final[str] = "Unknown Source"

# ── Logging ──
DEFAULT_STACK_HASH_FALLBACK: Final[str] = ""
DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)-5s %(name)s - %(message)s"

# ── Config ──
CONFIG_FILENAME: Final[str] = "stackhash.json"
