"""Shared fixtures for the stackhash test suite."""

from __future__ import annotations

from typing import Callable

import pytest

from stackhash.core.types import CallFrame, ErrorFrame


def build_chain(
    outer_file: str = "A.java",
    outer_line: int = 10,
    inner_line: int = 20,
) -> ErrorFrame:
    """Two-level chain: ``A`` thrown at ``A.m1`` caused by ``B`` thrown at ``B.m2``."""
    inner = ErrorFrame(
        type_identity="B",
        message="inner failure",
        stack_frames=[CallFrame(class_name="B", method_name="m2", file_name="B.java", line_number=inner_line)],
    )
    return ErrorFrame(
        type_identity="A",
        message="outer failure",
        stack_frames=[CallFrame(class_name="A", method_name="m1", file_name=outer_file, line_number=outer_line)],
        cause=inner,
    )


@pytest.fixture()
def chain_factory() -> Callable[..., ErrorFrame]:
    return build_chain


@pytest.fixture()
def two_level_chain() -> ErrorFrame:
    return build_chain()


@pytest.fixture()
def json_chain() -> dict:
    """A two-level chain in its JSON form, as read by the CLI."""
    return {
        "type_identity": "app.errors.FetchError",
        "message": "could not load things",
        "stack_frames": [
            {"class_name": "app.client.Client", "method_name": "fetch", "file_name": "client.py", "line_number": 24},
            {"class_name": "app.main", "method_name": "run", "file_name": "main.py", "line_number": 16},
        ],
        "cause": {
            "type_identity": "builtins.TimeoutError",
            "message": "read timed out",
            "stack_frames": [
                {"class_name": "app.http", "method_name": "get", "file_name": "http.py", "line_number": 38},
                {"class_name": "app.main", "method_name": "run", "file_name": "main.py", "line_number": 16},
            ],
        },
    }
