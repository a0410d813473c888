"""Tests for list view selection, sort and scroll state."""
from idxwatch.session.view_state import ListViewState


def test_cycle_sort_returns_to_none_once_per_cycle():
    """N+1 presses visit every column and land on "no sort" exactly once."""
    state = ListViewState()
    seen = []
    for _ in range(10 + 1):
        state.cycle_sort(10)
        seen.append(state.sort_column)
    assert seen == list(range(10)) + [None]
    assert seen.count(None) == 1


def test_cycle_sort_resets_selection_and_offset():
    state = ListViewState(selected=5, offset=3)
    state.cycle_sort(3)
    assert (state.selected, state.offset) == (0, 0)


def test_toggle_direction_twice_is_identity():
    state = ListViewState(sort_column=2)
    state.toggle_direction()
    state.toggle_direction()
    assert state.sort_descending is False
    assert state.sort_column == 2


def test_move_down_stops_at_last_row():
    state = ListViewState()
    for _ in range(4):
        state.move_down(row_count=4, viewport_height=20)
    assert state.selected == 3


def test_move_up_stops_at_zero():
    state = ListViewState()
    state.move_up()
    assert state.selected == 0


def test_minimal_scroll_down():
    """Moving past the viewport makes the selection the last visible row."""
    state = ListViewState()
    for _ in range(5):
        state.move_down(row_count=10, viewport_height=3)
    assert state.selected == 5
    assert state.offset == 3


def test_minimal_scroll_up():
    state = ListViewState(selected=5, offset=5)
    state.move_up()
    assert state.selected == 4
    assert state.offset == 4


def test_clamp_after_shrink():
    state = ListViewState(selected=7, offset=6)
    state.clamp(3)
    assert state.selected == 2
    assert state.offset == 2


def test_clamp_empty():
    state = ListViewState(selected=2)
    state.clamp(0)
    assert state.selected == 0


def test_filter_is_uppercased_and_resets_position():
    state = ListViewState(selected=3, offset=1)
    state.set_filter("bb")
    assert state.filter_text == "BB"
    assert (state.selected, state.offset) == (0, 0)
    state.clear_filter()
    assert state.filter_text == ""
