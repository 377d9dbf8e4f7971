"""Snapshot capture: build a SessionRecord from the live editor state."""

from datetime import datetime

from .editor import EditorAdapter
from .models import FileEntry, Layout, SessionRecord, TileRect
from .telemetry import get_logger

logger = get_logger(__name__)


def capture_snapshot(editor: EditorAdapter, name: str, now: datetime | None = None) -> SessionRecord:
    """Snapshot open files, layout, active file and environment.

    Each floating window gets its own negative tile number (-1, -2, ...) in
    first-seen order. The first file seen in a tile records that tile's
    geometry.
    """
    now = now or datetime.now()
    grid_width, grid_height = editor.get_grid_dimensions()
    layout = Layout(grid_width=grid_width, grid_height=grid_height)
    files: list[FileEntry] = []
    seen: set[int] = set()

    for path in editor.list_open_files():
        handle = editor.resolve_handle(path)
        if handle is None:
            logger.warning(f"[Capture] Can not retrieve client view for {path}")
            continue

        tile_number = editor.get_tile_of(handle)
        if tile_number is None:
            tile_number = 0
        elif tile_number < 0:
            tile_number = min([t for t in seen if t < 0], default=0) - 1

        if tile_number not in seen:
            seen.add(tile_number)
            geometry = editor.get_geometry(handle)
            layout.tiles.append(
                TileRect(tile_number, geometry.x, geometry.y, geometry.width, geometry.height)
            )
        files.append(FileEntry(path=path, tile_number=tile_number))

    active = editor.get_active_file()
    record = SessionRecord(
        name=name,
        working_directory=editor.get_working_directory(),
        search_path=editor.get_search_path(),
        active_file=active.path if active else "",
        active_file_position=active.line if active else 1,
        last_used=now,
        last_saved=now,
        layout=layout,
        files=files,
    )
    logger.info(
        f"[Capture] {name}: {len(files)} files, {len(layout.tiles)} tiles, grid {grid_width}x{grid_height}"
    )
    return record
