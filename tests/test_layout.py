"""Layout 计算测试"""

import pytest

from edsession.errors import LayoutInconsistentError
from edsession.layout import apply_grid, apply_proportions, collapse_docked_views, compute_grid, rank
from edsession.models import Layout, TileRect


def grid_2x2() -> Layout:
    return Layout(
        grid_width=2,
        grid_height=2,
        tiles=[
            TileRect(0, 0, 0, 600, 400),
            TileRect(1, 600, 0, 600, 400),
            TileRect(2, 0, 400, 600, 400),
            TileRect(3, 600, 400, 600, 400),
        ],
    )


def tall_left() -> Layout:
    """左侧 tile 纵跨两行，右侧上下两个 tile"""
    return Layout(
        grid_width=2,
        grid_height=2,
        tiles=[
            TileRect(0, 0, 0, 400, 800),
            TileRect(1, 400, 0, 800, 300),
            TileRect(2, 400, 300, 800, 500),
        ],
    )


def wide_top_3x2() -> Layout:
    """3x2 网格，上方 tile 横跨三列"""
    return Layout(
        grid_width=3,
        grid_height=2,
        tiles=[
            TileRect(0, 0, 0, 900, 200),
            TileRect(1, 0, 200, 300, 600),
            TileRect(2, 300, 200, 300, 600),
            TileRect(3, 600, 200, 300, 600),
        ],
    )


def spans_per_row(plan) -> dict[int, int]:
    totals: dict[int, int] = {}
    for cell in plan.cells.values():
        for r in range(cell.row, cell.row + cell.row_span):
            totals[r] = totals.get(r, 0) + cell.column_span
    return totals


def spans_per_column(plan) -> dict[int, int]:
    totals: dict[int, int] = {}
    for cell in plan.cells.values():
        for c in range(cell.column, cell.column + cell.column_span):
            totals[c] = totals.get(c, 0) + cell.row_span
    return totals


class TestRank:
    def test_ranks_distinct_sorted(self):
        ranks, distinct = rank([600, 0, 600, 0])
        assert ranks == [1, 0, 1, 0]
        assert distinct == [0, 600]


class TestComputeGrid:
    """网格计算"""

    def test_plain_2x2(self):
        plan = compute_grid(grid_2x2())

        assert (plan.width, plan.height) == (2, 2)
        assert plan.positions() == {0: (0, 0), 1: (0, 1), 2: (1, 0), 3: (1, 1)}
        assert all(c.row_span == 1 and c.column_span == 1 for c in plan.cells.values())
        assert plan.row_heights == [0.5, 0.5]
        assert plan.column_widths == [0.5, 0.5]

    def test_row_span(self):
        plan = compute_grid(tall_left())

        left = plan.cells[0]
        assert (left.row, left.column, left.row_span, left.column_span) == (0, 0, 2, 1)
        assert plan.cells[1].row == 0
        assert plan.cells[2].row == 1
        assert plan.row_heights == pytest.approx([0.375, 0.625])
        assert plan.column_widths == pytest.approx([1 / 3, 2 / 3])

    def test_column_span(self):
        plan = compute_grid(wide_top_3x2())

        top = plan.cells[0]
        assert (top.row, top.column, top.row_span, top.column_span) == (0, 0, 1, 3)
        assert [plan.cells[n].column for n in (1, 2, 3)] == [0, 1, 2]

    @pytest.mark.parametrize("layout", [grid_2x2(), tall_left(), wide_top_3x2()])
    def test_spans_fill_every_row_and_column(self, layout):
        """每行 span 之和为 W，每列 span 之和为 H"""
        plan = compute_grid(layout)

        assert spans_per_row(plan) == {r: layout.grid_width for r in range(layout.grid_height)}
        assert spans_per_column(plan) == {c: layout.grid_height for c in range(layout.grid_width)}
        assert sum(plan.row_heights) == pytest.approx(1.0)
        assert sum(plan.column_widths) == pytest.approx(1.0)

    def test_pixel_scale_does_not_matter(self):
        small = Layout(2, 1, [TileRect(0, 0, 0, 30, 20), TileRect(1, 30, 0, 90, 20)])
        large = Layout(2, 1, [TileRect(0, 0, 0, 300, 200), TileRect(1, 300, 0, 900, 200)])

        assert compute_grid(small).column_widths == pytest.approx(compute_grid(large).column_widths)
        assert compute_grid(small).column_widths == pytest.approx([0.25, 0.75])

    def test_external_tiles_ignored(self):
        layout = grid_2x2()
        layout.tiles.append(TileRect(-1, 2000, 10, 300, 300))

        plan = compute_grid(layout)

        assert -1 not in plan.cells
        assert plan.tile_count == 4

    def test_single_tile_is_single_arrangement(self):
        plan = compute_grid(Layout(1, 1, [TileRect(0, 0, 0, 800, 600)]))

        assert plan.is_single
        assert plan.positions() == {0: (0, 0)}

    def test_no_docked_tiles(self):
        plan = compute_grid(Layout(1, 1, [TileRect(-1, 10, 10, 100, 100)]))

        assert plan.cells == {}
        assert not plan.is_single

    def test_wrong_column_count(self):
        layout = grid_2x2()
        layout.grid_width = 3

        with pytest.raises(LayoutInconsistentError):
            compute_grid(layout)

    def test_missing_tile(self):
        layout = grid_2x2()
        layout.tiles.pop()

        with pytest.raises(LayoutInconsistentError):
            compute_grid(layout)

    def test_overlapping_tiles(self):
        layout = Layout(
            2,
            2,
            [
                TileRect(0, 0, 0, 1200, 400),
                TileRect(1, 600, 0, 600, 800),
                TileRect(2, 0, 400, 600, 400),
            ],
        )

        with pytest.raises(LayoutInconsistentError):
            compute_grid(layout)

    def test_invalid_dimension(self):
        with pytest.raises(LayoutInconsistentError):
            compute_grid(Layout(0, 1, []))


class TestApplyGrid:
    """向窗口管理器应用网格"""

    def test_single_when_already_single(self, editor):
        apply_grid(editor, compute_grid(Layout(1, 1, [TileRect(0, 0, 0, 10, 10)])))

        assert editor.calls == []

    def test_single_from_grid(self, editor):
        editor.arrange(2, 1)

        apply_grid(editor, compute_grid(Layout(1, 1, [TileRect(0, 0, 0, 10, 10)])))

        assert editor.calls == [("set_single_arrangement",)]
        assert editor.is_single_arrangement()

    def test_plain_grid_has_no_spans(self, editor):
        apply_grid(editor, compute_grid(grid_2x2()))

        assert editor.names("set_grid_dimensions") == [("set_grid_dimensions", 2, 2)]
        assert editor.names("set_row_span") == []
        assert editor.names("set_column_span") == []

    def test_row_span_call(self, editor):
        apply_grid(editor, compute_grid(tall_left()))

        assert editor.names("set_row_span") == [("set_row_span", 0, 0, 2)]
        assert editor.names("set_column_span") == []

    def test_column_span_call(self, editor):
        apply_grid(editor, compute_grid(wide_top_3x2()))

        assert editor.names("set_column_span") == [("set_column_span", 0, 0, 3)]
        assert len(editor._regions()) == 4

    def test_both_spans(self, editor):
        """左上 tile 横跨两列、纵跨两行"""
        layout = Layout(
            3,
            3,
            [
                TileRect(0, 0, 0, 800, 800),
                TileRect(1, 800, 0, 400, 400),
                TileRect(2, 800, 400, 400, 400),
                TileRect(3, 800, 800, 400, 400),
                TileRect(4, 0, 800, 400, 400),
                TileRect(5, 400, 800, 400, 400),
            ],
        )
        apply_grid(editor, compute_grid(layout))

        assert editor.names("set_column_span") == [
            ("set_column_span", 0, 0, 2),
            ("set_column_span", 1, 0, 2),
        ]
        assert editor.names("set_row_span") == [("set_row_span", 0, 0, 2)]
        assert len(editor._regions()) == 6

    def test_collapse_moves_tiled_views_to_zero(self, editor):
        editor.arrange(2, 2)
        editor.add_open("/a.m", 0)
        editor.add_open("/b.m", 3)
        editor.add_open("/float.m", -1)

        moved = collapse_docked_views(editor)

        assert moved == 1
        assert editor.tiles == {"/a.m": 0, "/b.m": 0, "/float.m": -1}

    def test_two_tile_grid_keeps_views(self, editor):
        editor.arrange(2, 1)
        editor.add_open("/a.m", 1)
        layout = Layout(2, 1, [TileRect(0, 0, 0, 600, 800), TileRect(1, 600, 0, 600, 800)])

        apply_grid(editor, compute_grid(layout))

        assert editor.tiles["/a.m"] == 1

    def test_proportions(self, editor):
        plan = compute_grid(tall_left())
        apply_grid(editor, plan)

        apply_proportions(editor, plan)

        assert editor.row_heights == pytest.approx([0.375, 0.625])
        assert editor.column_widths == pytest.approx([1 / 3, 2 / 3])
