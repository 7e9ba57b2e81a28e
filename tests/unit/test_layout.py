"""Unit tests for tmux layout string parsing."""

import pytest

from orc.reconcile.layout import CellKind, LayoutParseError, is_canonical_main_vertical, parse_layout

pytestmark = pytest.mark.unit

MAIN_VERTICAL_3 = "b25f,200x50,0,0{100x50,0,0,1,99x50,101,0[99x25,101,0,2,99x24,101,26,3]}"


def test_parse_single_pane():
    cell = parse_layout("c4cd,80x24,0,0,7")

    assert cell.is_pane
    assert cell.pane_number == 7
    assert (cell.width, cell.height) == (80, 24)


def test_parse_nested_main_vertical():
    root = parse_layout(MAIN_VERTICAL_3)

    assert root.kind is CellKind.LEFT_RIGHT
    main, column = root.children
    assert main.is_pane and main.width == 100
    assert column.kind is CellKind.TOP_BOTTOM
    assert [c.pane_number for c in column.children] == [2, 3]
    assert root.pane_count() == 3


def test_parse_without_checksum():
    root = parse_layout("200x50,0,0{100x50,0,0,1,99x50,101,0,2}")

    assert root.pane_count() == 2


@pytest.mark.parametrize("layout", ["", "garbage", "200x50,0,0{100x50,0,0,1", "200x50,0,0{100x50,0,0,1}"])
def test_parse_rejects_malformed(layout):
    with pytest.raises(LayoutParseError):
        parse_layout(layout)


def test_canonical_three_panes():
    assert is_canonical_main_vertical(MAIN_VERTICAL_3, pane_count=3, window_width=200)


def test_canonical_respects_configured_width():
    assert not is_canonical_main_vertical(MAIN_VERTICAL_3, pane_count=3, window_width=200, main_pane_width_pct=60)


def test_main_width_within_tolerance():
    layout = "b25f,200x50,0,0{98x50,0,0,1,101x50,99,0[101x25,99,0,2,101x24,99,26,3]}"

    assert is_canonical_main_vertical(layout, pane_count=3, window_width=200, tolerance_cells=2)
    assert not is_canonical_main_vertical(layout, pane_count=3, window_width=200, tolerance_cells=1)


def test_even_split_of_three_is_not_canonical():
    layout = "e7e7,200x50,0,0{66x50,0,0,1,66x50,67,0,2,66x50,134,0,3}"

    assert not is_canonical_main_vertical(layout, pane_count=3, window_width=200)


def test_stacked_layout_is_not_canonical():
    layout = "e7e7,200x50,0,0[200x25,0,0,1,200x24,0,26,2]"

    assert not is_canonical_main_vertical(layout, pane_count=2, window_width=200)


def test_single_pane_is_always_canonical():
    assert is_canonical_main_vertical("c4cd,80x24,0,0,7", pane_count=1, window_width=80)


def test_pane_count_mismatch_is_not_canonical():
    assert not is_canonical_main_vertical(MAIN_VERTICAL_3, pane_count=4, window_width=200)


def test_unparsable_layout_is_not_canonical():
    assert not is_canonical_main_vertical("???", pane_count=1)
