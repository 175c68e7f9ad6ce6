"""Tests for barcode capture timing and scope rules."""

import pytest

from scanner import (
    ACCUMULATING, IDLE, SCOPE_SCOPED, TARGET_BARCODE_INPUT, TARGET_TEXT_INPUT,
    BarcodeCapture,
)


@pytest.fixture
def scans():
    return []


def _capture(scans, clock, **kwargs):
    return BarcodeCapture(scans.append, clock=clock, **kwargs)


def _type(capture, text, target="other"):
    for char in text:
        capture.handle_key(char, target)


def test_enter_emits_token_and_suppresses_default(scans, clock) -> None:
    capture = _capture(scans, clock)
    _type(capture, "4006381333931")

    assert capture.state == ACCUMULATING
    assert capture.handle_key("Enter") is True
    assert scans == ["4006381333931"]
    assert capture.state == IDLE


def test_short_buffer_on_enter_is_cleared_silently(scans, clock) -> None:
    capture = _capture(scans, clock)
    _type(capture, "ab")

    assert capture.handle_key("Enter") is False
    assert scans == []
    assert capture.buffer == ""


def test_decay_emits_for_scanners_without_enter(scans, clock) -> None:
    capture = _capture(scans, clock, decay_ms=150)
    _type(capture, "12345")
    clock.advance(149)
    capture.tick()
    assert scans == []

    clock.advance(1)
    capture.tick()
    assert scans == ["12345"]
    assert capture.state == IDLE


def test_decay_discards_short_burst(scans, clock) -> None:
    capture = _capture(scans, clock)
    _type(capture, "x")
    clock.advance(200)
    capture.tick()

    assert scans == []
    assert capture.buffer == ""


def test_each_key_rearms_decay(scans, clock) -> None:
    capture = _capture(scans, clock, decay_ms=150)
    for char in "98765":
        capture.handle_key(char)
        clock.advance(100)
    capture.tick()
    assert scans == []

    clock.advance(60)
    capture.tick()
    assert scans == ["98765"]


def test_stale_buffer_flushes_before_next_key(scans, clock) -> None:
    capture = _capture(scans, clock, cooldown_ms=0)
    _type(capture, "111")
    clock.advance(500)
    _type(capture, "222")
    capture.handle_key("Enter")

    assert scans == ["111", "222"]


def test_enter_followed_by_decay_yields_one_token(scans, clock) -> None:
    capture = _capture(scans, clock)
    _type(capture, "555000")
    capture.handle_key("Enter")
    clock.advance(200)
    capture.tick()

    assert scans == ["555000"]


def test_second_scan_inside_cooldown_is_dropped(scans, clock) -> None:
    capture = _capture(scans, clock, cooldown_ms=500)
    capture.feed_text("ABC123")
    clock.advance(100)
    capture.feed_text("ABC123")

    assert scans == ["ABC123"]

    clock.advance(500)
    capture.feed_text("ABC123")
    assert scans == ["ABC123", "ABC123"]


def test_modifier_and_navigation_keys_are_ignored(scans, clock) -> None:
    capture = _capture(scans, clock)
    for key in ["Shift", "A", "Shift_L", "b", "BackSpace", "Tab", "c", "ArrowLeft"]:
        capture.handle_key(key)
    capture.handle_key("Return")

    assert scans == ["Abc"]


def test_named_keys_do_not_enter_buffer(scans, clock) -> None:
    capture = _capture(scans, clock)
    capture.handle_key("F1")

    assert capture.state == IDLE


def test_global_scope_ignores_ordinary_text_inputs(scans, clock) -> None:
    capture = _capture(scans, clock)
    _type(capture, "search", TARGET_TEXT_INPUT)
    capture.handle_key("Enter", TARGET_TEXT_INPUT)
    _type(capture, "777888", TARGET_BARCODE_INPUT)
    capture.handle_key("Enter", TARGET_BARCODE_INPUT)

    assert scans == ["777888"]


def test_scoped_capture_only_listens_to_barcode_input(scans, clock) -> None:
    capture = _capture(scans, clock, scope=SCOPE_SCOPED)
    capture.feed_text("123456")
    assert scans == []

    capture.feed_text("123456", TARGET_BARCODE_INPUT)
    assert scans == ["123456"]


def test_unknown_scope_rejected(scans) -> None:
    with pytest.raises(ValueError):
        BarcodeCapture(scans.append, scope="window")
