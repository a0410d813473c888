"""Selection, sort, filter and scroll state shared by every list view."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class ListViewState:
    """Cursor state for one list view.

    The row set itself is computed elsewhere; callers pass its length so the
    selection can be clamped whenever the set shrinks.
    """

    selected: int = 0
    sort_column: Optional[int] = None
    sort_descending: bool = False
    filter_text: str = ""
    offset: int = 0

    def move_up(self) -> None:
        if self.selected > 0:
            self.selected -= 1
        if self.selected < self.offset:
            self.offset = self.selected

    def move_down(self, row_count: int, viewport_height: int) -> None:
        if self.selected + 1 < row_count:
            self.selected += 1
        self.ensure_visible(viewport_height)

    def ensure_visible(self, viewport_height: int) -> None:
        """Scroll the minimum amount that keeps the selection on screen."""
        if self.selected < self.offset:
            self.offset = self.selected
        elif viewport_height > 0 and self.selected >= self.offset + viewport_height:
            self.offset = self.selected - viewport_height + 1

    def clamp(self, row_count: int) -> None:
        """Pull the selection back inside [0, row_count)."""
        if row_count <= 0:
            self.selected = 0
        elif self.selected >= row_count:
            self.selected = row_count - 1
        if self.offset > self.selected:
            self.offset = self.selected

    def reset_position(self) -> None:
        self.selected = 0
        self.offset = 0

    def cycle_sort(self, num_columns: int) -> None:
        """None -> 0 -> 1 -> ... -> num_columns - 1 -> None."""
        if self.sort_column is None:
            self.sort_column = 0
        elif self.sort_column + 1 < num_columns:
            self.sort_column += 1
        else:
            self.sort_column = None
        self.reset_position()

    def toggle_direction(self) -> None:
        self.sort_descending = not self.sort_descending
        self.reset_position()

    def set_filter(self, text: str) -> None:
        self.filter_text = text.upper()
        self.reset_position()

    def clear_filter(self) -> None:
        self.filter_text = ""
        self.reset_position()
