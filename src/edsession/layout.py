"""Layout recompute engine.

Turns a saved tile layout (pixel rectangles captured on some other screen)
into a grid plan: each docked tile's (row, column) is the rank of its start
coordinate among all distinct starts, and its span is the rank distance to its
end coordinate. Row heights and column widths are kept as proportions only.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

from .editor import EditorAdapter
from .errors import LayoutInconsistentError
from .models import Layout
from .telemetry import get_logger

logger = get_logger(__name__)


@dataclass
class GridCell:
    """Logical placement of one docked tile."""

    tile_number: int
    row: int
    column: int
    row_span: int = 1
    column_span: int = 1


@dataclass
class GridPlan:
    """What to ask the window manager for."""

    width: int
    height: int
    cells: dict[int, GridCell] = field(default_factory=dict)
    row_heights: list[float] = field(default_factory=list)
    column_widths: list[float] = field(default_factory=list)

    @property
    def is_single(self) -> bool:
        """One docked tile: request a single untiled arrangement."""
        return len(self.cells) == 1

    @property
    def tile_count(self) -> int:
        return len(self.cells)

    def positions(self) -> dict[int, tuple[int, int]]:
        """tile_number -> (row, column)"""
        return {n: (c.row, c.column) for n, c in self.cells.items()}


def rank(values: Sequence[float]) -> tuple[list[int], list[float]]:
    """0-based rank of each value among the sorted distinct values.

    Returns:
        (ranks, distinct sorted values)
    """
    distinct = sorted(set(values))
    lookup = {v: i for i, v in enumerate(distinct)}
    return [lookup[v] for v in values], distinct


def _normalize(extents: list[float]) -> list[float]:
    total = sum(extents)
    return [e / total for e in extents]


def compute_grid(layout: Layout) -> GridPlan:
    """Recompute grid placement, spans and proportions for a saved layout.

    Raises:
        LayoutInconsistentError: the docked tiles do not describe a
            grid_width x grid_height grid
    """
    width, height = layout.grid_width, layout.grid_height
    if width < 1 or height < 1:
        raise LayoutInconsistentError(f"Invalid grid dimension {width}x{height}")

    docked = layout.docked_tiles
    if len(docked) <= 1:
        cells = {t.tile_number: GridCell(t.tile_number, 0, 0) for t in docked}
        return GridPlan(width=1, height=1, cells=cells, row_heights=[1.0], column_widths=[1.0])

    columns, x_starts = rank([t.x for t in docked])
    rows, y_starts = rank([t.y for t in docked])
    column_ends, x_ends = rank([t.x + t.width for t in docked])
    row_ends, y_ends = rank([t.y + t.height for t in docked])

    if len(x_starts) != width or len(x_ends) != width or len(y_starts) != height or len(y_ends) != height:
        raise LayoutInconsistentError(
            f"Inconsistent start/end values and number of rows/columns: "
            f"grid {width}x{height}, column starts/ends {len(x_starts)}/{len(x_ends)}, "
            f"row starts/ends {len(y_starts)}/{len(y_ends)}"
        )

    cells: dict[int, GridCell] = {}
    occupied: dict[tuple[int, int], int] = {}
    for i, tile in enumerate(docked):
        cell = GridCell(
            tile_number=tile.tile_number,
            row=rows[i],
            column=columns[i],
            row_span=row_ends[i] + 1 - rows[i],
            column_span=column_ends[i] + 1 - columns[i],
        )
        if cell.row_span < 1 or cell.column_span < 1:
            raise LayoutInconsistentError(f"Tile {tile.tile_number} ends before it starts")
        for r in range(cell.row, cell.row + cell.row_span):
            for c in range(cell.column, cell.column + cell.column_span):
                if (r, c) in occupied:
                    raise LayoutInconsistentError(
                        f"Tiles {occupied[(r, c)]} and {tile.tile_number} overlap at row {r}, column {c}"
                    )
                occupied[(r, c)] = tile.tile_number
        cells[tile.tile_number] = cell

    if len(occupied) != width * height:
        raise LayoutInconsistentError(
            f"Docked tiles cover {len(occupied)} cells, grid {width}x{height} needs {width * height}"
        )

    column_extents = [end - start for start, end in zip(x_starts, x_ends)]
    row_extents = [end - start for start, end in zip(y_starts, y_ends)]
    if min(column_extents) <= 0 or min(row_extents) <= 0:
        raise LayoutInconsistentError("Non-positive row height or column width")

    return GridPlan(
        width=width,
        height=height,
        cells=cells,
        row_heights=_normalize(row_extents),
        column_widths=_normalize(column_extents),
    )


def collapse_docked_views(editor: EditorAdapter) -> int:
    """Move every docked view outside tile 0 into tile 0.

    Expanding spans can swallow views sitting in cells that get merged.

    Returns:
        Number of views moved
    """
    moved = 0
    for path in editor.list_open_files():
        handle = editor.resolve_handle(path)
        if handle is None:
            continue
        tile = editor.get_tile_of(handle)
        if tile is not None and tile > 0:
            editor.set_tile(handle, 0)
            moved += 1
    return moved


def apply_grid(editor: EditorAdapter, plan: GridPlan) -> None:
    """Ask the window manager for the plan's arrangement and spans."""
    if not plan.cells:
        logger.debug("[Layout] No docked tiles, arrangement left unchanged")
        return

    if plan.is_single:
        if editor.is_single_arrangement():
            logger.debug("[Layout] Already single arrangement")
        else:
            editor.set_single_arrangement()
        return

    editor.set_grid_dimensions(plan.width, plan.height)
    if plan.tile_count != 2:
        collapse_docked_views(editor)

    for tile_number in sorted(plan.cells):
        cell = plan.cells[tile_number]
        if cell.row_span == 1 and cell.column_span == 1:
            continue
        if cell.row_span == 1:
            editor.set_column_span(cell.row, cell.column, cell.column_span)
        elif cell.column_span == 1:
            editor.set_row_span(cell.row, cell.column, cell.row_span)
        else:
            for offset in range(cell.row_span):
                editor.set_column_span(cell.row + offset, cell.column, cell.column_span)
            editor.set_row_span(cell.row, cell.column, cell.row_span)

    logger.info(f"[Layout] Applied {plan.width}x{plan.height} grid with {plan.tile_count} tiles")


def apply_proportions(editor: EditorAdapter, plan: GridPlan) -> None:
    """Set row heights and column widths for a tiled plan."""
    if plan.tile_count < 2:
        return
    editor.set_row_heights(plan.row_heights)
    editor.set_column_widths(plan.column_widths)
