"""Tests for converting live exceptions into error frame chains."""

from __future__ import annotations

import logging

import pytest

from stackhash.core.adapter import (
    as_error_frame,
    call_frames_from_traceback,
    cause_of,
    error_frame_from_exception,
    type_identity_of,
)
from stackhash.core.hashing import hex_hash, hex_hashes
from stackhash.core.types import ErrorFrame


class FetchError(Exception):
    pass


def _raise_value_error(message: str) -> None:
    raise ValueError(message)


def _raise_value_error_elsewhere(message: str) -> None:
    raise ValueError(message)


def _capture(func, *args) -> BaseException:
    try:
        func(*args)
    except BaseException as exc:  # noqa: BLE001
        return exc
    raise AssertionError("expected an exception")


def _wrapped(message: str) -> None:
    try:
        _raise_value_error(message)
    except ValueError as exc:
        raise FetchError("fetch failed") from exc


class TestTypeIdentity:
    def test_builtin(self) -> None:
        assert type_identity_of(ValueError) == "builtins.ValueError"

    def test_qualified_with_module(self) -> None:
        assert type_identity_of(FetchError) == f"{__name__}.FetchError"


class TestCallFrames:
    def test_throw_site_first(self) -> None:
        exc = _capture(_raise_value_error, "x")
        frames = call_frames_from_traceback(exc.__traceback__)
        assert frames[0] is not None and frames[0].method_name == "_raise_value_error"
        assert frames[-1] is not None and frames[-1].method_name == "_capture"

    def test_module_and_file_recorded(self) -> None:
        frame = call_frames_from_traceback(_capture(_raise_value_error, "x").__traceback__)[0]
        assert frame is not None
        assert frame.class_name == __name__
        assert frame.file_name == "test_core_adapter.py"
        assert frame.line_number > 0

    def test_pseudo_file_frames_are_synthetic(self) -> None:
        namespace: dict = {}
        exec(compile("def boom():\n    raise KeyError('k')\n", "<string>", "exec"), namespace)
        frames = call_frames_from_traceback(_capture(namespace["boom"]).__traceback__)
        assert frames[0] is not None
        assert frames[0].file_name is None
        assert frames[0].is_synthetic

    def test_empty_traceback(self) -> None:
        assert call_frames_from_traceback(None) == []


class TestCauseOf:
    def test_explicit_cause(self) -> None:
        exc = _capture(_wrapped, "x")
        assert isinstance(cause_of(exc), ValueError)

    def test_implicit_context(self) -> None:
        def handler_fails() -> None:
            try:
                raise KeyError("k")
            except KeyError:
                raise RuntimeError("while handling")

        assert isinstance(cause_of(_capture(handler_fails)), KeyError)

    def test_suppressed_context(self) -> None:
        def hides_context() -> None:
            try:
                raise KeyError("k")
            except KeyError:
                raise RuntimeError("clean") from None

        assert cause_of(_capture(hides_context)) is None


class TestErrorFrameFromException:
    def test_converts_cause_chain(self) -> None:
        frame = error_frame_from_exception(_capture(_wrapped, "x"))
        assert frame.type_identity == f"{__name__}.FetchError"
        assert frame.message == "fetch failed"
        assert frame.cause is not None
        assert frame.cause.type_identity == "builtins.ValueError"
        assert frame.cause.cause is None

    def test_empty_message_is_none(self) -> None:
        assert error_frame_from_exception(ValueError()).message is None

    def test_self_cause_kept_as_cycle(self) -> None:
        exc = ValueError("loop")
        exc.__cause__ = exc
        frame = error_frame_from_exception(exc)
        assert frame.cause is frame

    def test_exception_group_members_become_suppressed(self) -> None:
        group = ExceptionGroup("many", [ValueError("a"), KeyError("b")])
        frame = error_frame_from_exception(group)
        assert [s.type_identity for s in frame.suppressed] == ["builtins.ValueError", "builtins.KeyError"]

    def test_depth_limit_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        exc: BaseException = ValueError("0")
        root = exc
        for i in range(1, 10):
            nxt = ValueError(str(i))
            exc.__cause__ = nxt
            exc = nxt
        with caplog.at_level(logging.WARNING, logger="stackhash.core.adapter"):
            frame = error_frame_from_exception(root, max_depth=3)
        assert len(list(frame.iter_chain())) == 3
        assert "truncated" in caplog.text

    def test_nested_groups_bounded(self, caplog: pytest.LogCaptureFixture) -> None:
        group: BaseException = ValueError("leaf")
        for _ in range(50):
            group = ExceptionGroup("g", [group])
        with caplog.at_level(logging.WARNING, logger="stackhash.core.adapter"):
            frame = error_frame_from_exception(group, max_depth=5)
        nesting = 0
        while frame.suppressed:
            frame = frame.suppressed[0]
            nesting += 1
        assert nesting == 5
        assert "nested deeper" in caplog.text

    def test_members_skipped_when_not_requested(self) -> None:
        group = ExceptionGroup("many", [ValueError("a")])
        assert error_frame_from_exception(group, include_suppressed=False).suppressed == []

    def test_invalid_depth(self) -> None:
        with pytest.raises(ValueError):
            error_frame_from_exception(ValueError(), max_depth=0)


class TestAsErrorFrame:
    def test_passes_error_frames_through(self) -> None:
        frame = ErrorFrame(type_identity="A")
        assert as_error_frame(frame) is frame

    def test_none_rejected(self) -> None:
        with pytest.raises(ValueError):
            as_error_frame(None)

    def test_other_types_rejected(self) -> None:
        with pytest.raises(TypeError):
            as_error_frame(42)  # type: ignore[arg-type]


class TestLiveExceptionSignatures:
    def test_same_site_different_message_same_hash(self) -> None:
        first = _capture(_raise_value_error, "user 1 not found")
        second = _capture(_raise_value_error, "user 2 not found")
        assert hex_hash(first) == hex_hash(second)

    def test_different_site_different_hash(self) -> None:
        first = _capture(_raise_value_error, "x")
        second = _capture(_raise_value_error_elsewhere, "x")
        assert hex_hash(first) != hex_hash(second)

    def test_chained_exception_has_one_hash_per_level(self) -> None:
        hashes = hex_hashes(_capture(_wrapped, "x"))
        assert len(hashes) == 2

    def test_self_caused_exception_hashes_like_plain(self) -> None:
        looped = _capture(_raise_value_error, "x")
        plain = _capture(_raise_value_error, "x")
        looped.__cause__ = looped
        assert list(hex_hashes(looped)) == list(hex_hashes(plain))

    def test_deeply_nested_groups_hash_without_recursion(self) -> None:
        group: BaseException = ValueError("leaf")
        for _ in range(3000):
            group = ExceptionGroup("g", [group])
        assert hex_hash(group) == hex_hash(ExceptionGroup("g", [ValueError("other")]))
