"""Tests for curses key normalization."""
import curses

import pytest

from idxwatch.infrastructure.terminal import normalize_key


@pytest.mark.parametrize(
    "raw,expected",
    [
        (curses.KEY_UP, "up"),
        (curses.KEY_DOWN, "down"),
        (curses.KEY_LEFT, "left"),
        (curses.KEY_RIGHT, "right"),
        (curses.KEY_ENTER, "enter"),
        (curses.KEY_BACKSPACE, "backspace"),
        ("\n", "enter"),
        ("\r", "enter"),
        ("\x1b", "esc"),
        ("\t", "tab"),
        ("\x7f", "backspace"),
        ("a", "a"),
        ("D", "D"),
        ("?", "?"),
        (ord("j"), "j"),
    ],
)
def test_normalize_key(raw, expected):
    assert normalize_key(raw) == expected


@pytest.mark.parametrize("raw", [None, curses.KEY_F1, "\x01", curses.KEY_RESIZE])
def test_ignored_keys(raw):
    assert normalize_key(raw) is None
