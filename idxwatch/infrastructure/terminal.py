"""curses terminal adapter: key polling and frame painting."""
import curses
import logging
from typing import Dict, Optional, Union

from idxwatch.domain.entities import AlertTrigger
from idxwatch.infrastructure import renderer
from idxwatch.session.state import SessionSnapshot

logger = logging.getLogger(__name__)

_SPECIAL_KEYS: Dict[Union[int, str], str] = {
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_ENTER: "enter",
    curses.KEY_BACKSPACE: "backspace",
    "\n": "enter",
    "\r": "enter",
    "\x1b": "esc",
    "\t": "tab",
    "\x7f": "backspace",
    "\b": "backspace",
}


def normalize_key(raw: Union[int, str, None]) -> Optional[str]:
    """Map a curses key to a controller key name, or None to ignore it."""
    if raw is None:
        return None
    if raw in _SPECIAL_KEYS:
        return _SPECIAL_KEYS[raw]
    if isinstance(raw, int):
        if 32 <= raw < 127:
            return chr(raw)
        return None
    if len(raw) == 1 and raw.isprintable():
        return raw
    return None


class CursesTerminal:
    """Wraps the curses screen handed over by curses.wrapper."""

    def __init__(self, stdscr):
        self._screen = stdscr
        self._styles: Dict[str, int] = {}
        curses.curs_set(0)
        self._screen.keypad(True)
        self._init_styles()

    def _init_styles(self) -> None:
        base = {
            renderer.NORMAL: curses.A_NORMAL,
            renderer.HEADER: curses.A_BOLD,
            renderer.TITLE: curses.A_REVERSE | curses.A_BOLD,
            renderer.UP: curses.A_NORMAL,
            renderer.DOWN: curses.A_NORMAL,
            renderer.DIM: curses.A_DIM,
            renderer.SELECTED: curses.A_REVERSE,
            renderer.WARN: curses.A_BOLD,
        }
        if curses.has_colors():
            curses.start_color()
            try:
                curses.use_default_colors()
            except curses.error:
                logger.debug("Terminal has no default colors")
            curses.init_pair(1, curses.COLOR_GREEN, -1)
            curses.init_pair(2, curses.COLOR_RED, -1)
            curses.init_pair(3, curses.COLOR_YELLOW, -1)
            base[renderer.UP] = curses.color_pair(1)
            base[renderer.DOWN] = curses.color_pair(2)
            base[renderer.WARN] = curses.color_pair(3) | curses.A_BOLD
        self._styles = base

    def draw(self, snapshot: SessionSnapshot) -> int:
        height, width = self._screen.getmaxyx()
        frame = renderer.render(snapshot, width, height)
        self._screen.erase()
        for y, line in enumerate(frame.lines):
            x = 0
            for text, style in line:
                if x >= width:
                    break
                self._addstr(y, x, text[: width - x], self._styles.get(style, 0))
                x += len(text)
        self._screen.refresh()
        return frame.table_height

    def _addstr(self, y: int, x: int, text: str, attr: int) -> None:
        try:
            self._screen.addstr(y, x, text, attr)
        except curses.error:
            # Writing the bottom-right cell raises even though it succeeds
            pass

    def poll_key(self, timeout: float) -> Optional[str]:
        self._screen.timeout(int(timeout * 1000))
        try:
            raw = self._screen.get_wch()
        except curses.error:
            return None
        return normalize_key(raw)

    def bell(self, trigger: AlertTrigger) -> None:
        """Alert callback: beep once per trigger."""
        curses.beep()
