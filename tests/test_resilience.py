from __future__ import annotations

import logging

import pytest

from pdftextx.cmap import IDENTITY_H
from pdftextx.colorspace import DEVICE_RGB
from pdftextx.resilience import FAILURE_POLICIES, FailureClass, WarningLog, isolate


def test_every_failure_class_has_a_policy() -> None:
    assert set(FAILURE_POLICIES) == set(FailureClass)


@pytest.mark.parametrize(
    ("failure", "expected"),
    [
        (FailureClass.MISSING_CMAP, IDENTITY_H),
        (FailureClass.MALFORMED_COLORSPACE, DEVICE_RGB),
        (FailureClass.EMPTY_PATH_POINT, (0.0, 0.0)),
        (FailureClass.UNKNOWN_GLYPH_NAME, None),
        (FailureClass.TYPE1_PROGRAM, None),
    ],
)
def test_recover_returns_policy_fallback(failure: FailureClass, expected: object) -> None:
    log = WarningLog()
    assert log.recover(failure, font="Demo") == expected
    assert log.count(failure) == 1


def test_recover_formats_message_and_logs(caplog: pytest.LogCaptureFixture) -> None:
    log = WarningLog()
    with caplog.at_level(logging.WARNING, logger="pdftextx.warnings"):
        log.recover(FailureClass.UNKNOWN_GLYPH_NAME, font="Demo", glyph="zzz", code=66)

    event = log.events[0]
    assert event.font == "Demo"
    assert "'zzz'" in event.message and "66" in event.message
    assert "[unknown_glyph_name]" in caplog.text


def test_missing_template_fields_render_as_placeholder() -> None:
    log = WarningLog()
    log.recover(FailureClass.WIDTHS_MISMATCH, font="Demo")
    assert "?" in log.events[0].message


def test_scope_context_is_attached_to_events() -> None:
    log = WarningLog()
    with log.scope(page=3):
        log.recover(FailureClass.NO_FONT_SELECTED, operator="Tj")
    log.recover(FailureClass.NO_FONT_SELECTED, operator="TJ")

    assert [event.page for event in log] == [3, None]
    assert "Page 3" in log.events[0].message


def test_isolate_turns_exceptions_into_fallback() -> None:
    log = WarningLog()

    def explode() -> None:
        raise RuntimeError("boom")

    result = isolate(explode, log=log, failure=FailureClass.MISSING_CMAP, context={"font": "Demo"})

    assert result is IDENTITY_H
    assert len(log) == 1
    assert "boom" in log.events[0].message


def test_isolate_passes_through_results() -> None:
    log = WarningLog()
    assert isolate(lambda value: value * 2, 21, log=log, failure=FailureClass.XOBJECT) == 42
    assert len(log) == 0


def test_broken_log_handler_does_not_interrupt() -> None:
    class Exploding(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            raise RuntimeError("sink down")

        def handleError(self, record: logging.LogRecord) -> None:
            raise RuntimeError("still down")

    logger = logging.getLogger("pdftextx.tests.exploding")
    logger.addHandler(Exploding())
    logger.propagate = False
    try:
        log = WarningLog(logger)
        assert log.recover(FailureClass.WIDTHS_MISMATCH, font="Demo") is None
        assert len(log) == 1
    finally:
        logger.handlers.clear()
