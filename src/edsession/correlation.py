"""Tile correlation.

Window managers number tiles by internal order, not by position. After a grid
is applied, one marker file is opened per logical tile and moved to live tile
0, 1, 2, ...; reading back where each marker landed and ranking those
positions into (row, column) gives the live tile for every logical tile.
"""

import time
from collections.abc import Sequence
from pathlib import Path

from . import config
from .editor import EditorAdapter
from .errors import CorrelationError, EditorError
from .layout import GridPlan, rank
from .telemetry import get_logger, metrics

logger = get_logger(__name__)


def correlate_positions(
    specified: dict[int, tuple[int, int]],
    live_positions: Sequence[tuple[float, float]],
) -> dict[int, int]:
    """Match logical tiles to live tiles by grid cell.

    Args:
        specified: logical tile_number -> (row, column)
        live_positions: (x, y) of live tile i, indexed by live tile number

    Returns:
        logical tile_number -> live tile number

    Raises:
        CorrelationError: a logical tile has no unique live match, or two
            logical tiles claim the same live tile
    """
    if len(live_positions) != len(specified):
        raise CorrelationError(
            f"{len(specified)} logical tiles but {len(live_positions)} live tiles"
        )

    columns, _ = rank([p[0] for p in live_positions])
    rows, _ = rank([p[1] for p in live_positions])
    live_cells = list(zip(rows, columns))

    mapping: dict[int, int] = {}
    claimed: dict[int, int] = {}
    for tile_number, cell in sorted(specified.items()):
        hits = [i for i, live in enumerate(live_cells) if live == cell]
        if not hits:
            raise CorrelationError(f"There was no tile correlation match found for tile {tile_number} at {cell}")
        if len(hits) > 1:
            raise CorrelationError(f"There was not a unique tile correlation match found for tile {tile_number} at {cell}")
        live = hits[0]
        if live in claimed:
            raise CorrelationError(f"Tiles {claimed[live]} and {tile_number} both map to live tile {live}")
        claimed[live] = tile_number
        mapping[tile_number] = live
    return mapping


class TileCorrelator:
    """Places marker files and reads back the live tile mapping."""

    def __init__(
        self,
        editor: EditorAdapter,
        marker_dir: Path | None = None,
        wait_seconds: float = config.MARKER_WAIT_SECONDS,
        poll_interval: float = config.MARKER_POLL_INTERVAL,
    ):
        self.editor = editor
        self.marker_dir = Path(marker_dir or config.MARKER_DIR)
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval
        self._markers: list[str] = []
        self._spare_markers: list[str] = []

    @property
    def marker_paths(self) -> list[str]:
        """Markers currently placed, one per logical tile in enumeration order."""
        return list(self._markers)

    def marker_path(self, index: int, spare: bool = False) -> str:
        suffix = "_" if spare else ""
        return str(self.marker_dir / f"{config.MARKER_PREFIX}{index}{suffix}{config.MARKER_SUFFIX}")

    def _create_marker(self, path: str) -> None:
        """Write an empty marker and wait (bounded) for it to exist."""
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_text("")
        deadline = time.monotonic() + self.wait_seconds
        while not Path(path).exists() and time.monotonic() < deadline:
            time.sleep(self.poll_interval)

    def _open_marker(self, path: str, tile_number: int) -> None:
        self._create_marker(path)
        self.editor.open_file(path)
        handle = self.editor.resolve_handle(path)
        if handle is None:
            raise CorrelationError(f"Can not retrieve client view for marker {path}")
        # start every marker at tile 0 so growth order is deterministic
        self.editor.set_tile(handle, 0)
        if tile_number != 0:
            self.editor.set_tile(handle, tile_number)

    def place_markers(self, plan: GridPlan, reapply_grid: bool = False) -> None:
        """Open one marker per logical tile and move marker i to live tile i.

        Args:
            plan: the applied grid plan
            reapply_grid: fill tile 0 with spare markers and apply the grid a
                second time first; going from a single arrangement to a
                two-cell grid does not redistribute views on the first try
        """
        if plan.tile_count < 2:
            return

        if reapply_grid:
            for i in range(plan.tile_count):
                path = self.marker_path(i, spare=True)
                self._open_marker(path, 0)
                self._spare_markers.append(path)
            self.editor.set_grid_dimensions(plan.width, plan.height)
            logger.debug("[Correlate] Grid re-applied after single arrangement")

        for i in range(plan.tile_count):
            path = self.marker_path(i)
            self._open_marker(path, i)
            self._markers.append(path)

        logger.debug(f"[Correlate] Placed {len(self._markers)} markers")

    def read_positions(self) -> list[tuple[float, float]]:
        positions = []
        for path in self._markers:
            handle = self.editor.resolve_handle(path)
            if handle is None:
                raise CorrelationError(f"Marker {path} is no longer open")
            geometry = self.editor.get_geometry(handle)
            positions.append((geometry.x, geometry.y))
        return positions

    def correlate(self, plan: GridPlan) -> dict[int, int]:
        """Return logical tile_number -> live tile number for the plan.

        Raises:
            CorrelationError: grid not realized, markers misplaced, or no bijection
        """
        if plan.tile_count < 2:
            return {n: 0 for n in plan.cells}

        try:
            if self.editor.get_grid_dimensions() != (plan.width, plan.height):
                raise CorrelationError("Tile layout has not been set properly or has been unset")

            positions = self.read_positions()
            if any(x < 0 or y < 0 for x, y in positions):
                raise CorrelationError("Invalid tile properties read during tile correlation")
            if len(set(positions)) == 1:
                raise CorrelationError("Test tiles not moved properly yet")

            mapping = correlate_positions(plan.positions(), positions)
        except CorrelationError as e:
            metrics.inc("correlate.fail")
            logger.error(f"[Correlate] {e}")
            raise

        logger.info(f"[Correlate] Logical to live tiles: {mapping}")
        return mapping

    def cleanup(self) -> None:
        """Close and delete every marker; missing ones are ignored.

        Marker files left open by an earlier run are closed as well.
        """
        stray = [p for p in self.editor.list_open_files() if self.is_marker(p)]
        for path in dict.fromkeys(self._markers + self._spare_markers + stray):
            if self.editor.resolve_handle(path) is not None:
                try:
                    self.editor.close_file(path)
                except EditorError as e:
                    logger.warning(f"[Correlate] Could not close marker {path}: {e}")
            try:
                Path(path).unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"[Correlate] Could not delete marker {path}: {e}")
        self._markers.clear()
        self._spare_markers.clear()

    def is_marker(self, path: str) -> bool:
        """Whether a path is one of this correlator's deterministic marker names."""
        name = Path(path).name
        if Path(path).parent != self.marker_dir:
            return False
        stem = name.removeprefix(config.MARKER_PREFIX).removesuffix(config.MARKER_SUFFIX).rstrip("_")
        return name.startswith(config.MARKER_PREFIX) and name.endswith(config.MARKER_SUFFIX) and stem.isdigit()
