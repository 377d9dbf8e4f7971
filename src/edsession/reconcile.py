"""File reconciliation.

Compares every file recorded in a session with what is open in the editor and
what exists on disk, asks the user where the answer is not obvious, and
schedules files for tile placement. Record changes are persisted as soon as
they are made.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from .editor import EditorAdapter, Geometry
from .models import FileEntry, Layout, SessionRecord
from .prompt import Prompt, ask_letter, ask_option
from .telemetry import get_logger, metrics

logger = get_logger(__name__)


class FileStatus(Enum):
    """Where a saved file was found, checked in this order."""

    NOT_FOUND = "not_found"
    OPEN_SAME = "open_same"
    OPENABLE_SAME = "openable_same"
    OPEN_DIFFERENT_LOCATION = "open_different_location"
    OPENABLE_DIFFERENT_LOCATION = "openable_different_location"


# answers for a file open under a different path
KEEP_OPEN, KEEP_OPEN_UPDATE, CLOSE_DROP, CLOSE_KEEP_ENTRY = 1, 2, 3, 4
# answers for a file loadable from a different path
OPEN_UPDATE, DROP, OPEN_NO_UPDATE, LEAVE_CLOSED = 1, 2, 3, 4


@dataclass
class Placement:
    """An open file to be moved into the tile of its session entry."""

    path: str
    tile_number: int


@dataclass
class ReconcileResult:
    placements: list[Placement] = field(default_factory=list)
    kept: set[str] = field(default_factory=set)  # open files accounted for by the session
    statuses: list[tuple[str, FileStatus]] = field(default_factory=list)

    def count(self, status: FileStatus) -> int:
        return sum(1 for _, s in self.statuses if s == status)


def base_name(path: str) -> str:
    return os.path.basename(path.replace("\\", "/"))


def classify(
    path: str, open_files: list[str], editor: EditorAdapter
) -> tuple[FileStatus, list[str]]:
    """Classify a saved path.

    Returns:
        (status, candidate live paths); candidates are the matching open
        files for OPEN_DIFFERENT_LOCATION and the located path for
        OPENABLE_DIFFERENT_LOCATION
    """
    if path in open_files:
        return FileStatus.OPEN_SAME, [path]
    if editor.file_exists(path):
        return FileStatus.OPENABLE_SAME, [path]

    name = base_name(path)
    open_elsewhere = [p for p in open_files if base_name(p) == name]
    if open_elsewhere:
        return FileStatus.OPEN_DIFFERENT_LOCATION, open_elsewhere

    located = editor.locate(name)
    if located:
        return FileStatus.OPENABLE_DIFFERENT_LOCATION, [located]
    return FileStatus.NOT_FOUND, []


class FileReconciler:
    """Decides open/close/relocate actions for one session being opened."""

    def __init__(self, editor: EditorAdapter, prompt: Prompt, persist: Callable[[], None]):
        self.editor = editor
        self.prompt = prompt
        self._persist = persist

    # === session entries ===

    def reconcile(self, record: SessionRecord) -> ReconcileResult:
        result = ReconcileResult()
        open_files = self.editor.list_open_files()

        # iterate over a copy: entries may be dropped or split while we go
        for entry in list(record.files):
            status, candidates = classify(entry.path, open_files, self.editor)
            result.statuses.append((entry.path, status))
            metrics.inc("reconcile.status", {"status": status.value})
            logger.debug(f"[Reconcile] {entry.path}: {status.value}")

            if status == FileStatus.NOT_FOUND:
                self._handle_not_found(record, entry)
            elif status == FileStatus.OPEN_SAME:
                result.kept.add(entry.path)
                result.placements.append(Placement(entry.path, entry.tile_number))
            elif status == FileStatus.OPENABLE_SAME:
                self.editor.open_file(entry.path)
                result.kept.add(entry.path)
                result.placements.append(Placement(entry.path, entry.tile_number))
            elif status == FileStatus.OPEN_DIFFERENT_LOCATION:
                self._handle_open_elsewhere(record, entry, candidates, result)
            else:
                self._handle_openable_elsewhere(record, entry, candidates[0], result)

        logger.info(
            f"[Reconcile] {record.name}: {len(result.placements)} files scheduled, "
            f"{result.count(FileStatus.NOT_FOUND)} not found"
        )
        return result

    def _handle_not_found(self, record: SessionRecord, entry: FileEntry) -> None:
        self.prompt.display_text(f'File "{entry.path}" not found.')
        answer = ask_letter(self.prompt, "Should this file be removed from the session [y/n]? ", "yn", "n")
        if answer == "y":
            self._drop(record, entry)

    def _handle_open_elsewhere(
        self, record: SessionRecord, entry: FileEntry, candidates: list[str], result: ReconcileResult
    ) -> None:
        if len(candidates) > 1:
            self.prompt.display_text(
                f'File "{entry.path}" not found in same location, but there are multiple files '
                f"open with the same name and different locations:"
            )
        else:
            self.prompt.display_text(
                f'File "{entry.path}" not found in same location, but there is a file open '
                f"with the same name in a different location:"
            )
        for path in candidates:
            self.prompt.display_text(f"  {path}")

        answer = ask_option(
            self.prompt,
            "Leave file(s) open and don't update session file location [1], "
            "leave file(s) open and update session file location(s) [2], "
            "close file(s) and remove file from session [3], "
            "close file(s) and don't change session [4]? ",
            (KEEP_OPEN, KEEP_OPEN_UPDATE, CLOSE_DROP, CLOSE_KEEP_ENTRY),
            KEEP_OPEN,
        )

        if answer in (KEEP_OPEN, KEEP_OPEN_UPDATE):
            result.kept.update(candidates)
            for path in candidates:
                result.placements.append(Placement(path, entry.tile_number))
            if answer == KEEP_OPEN_UPDATE:
                self._rewrite(record, entry, candidates)
            return

        for path in candidates:
            self.editor.close_file(path)
        if answer == CLOSE_DROP:
            self._drop(record, entry)

    def _handle_openable_elsewhere(
        self, record: SessionRecord, entry: FileEntry, located: str, result: ReconcileResult
    ) -> None:
        self.prompt.display_text(
            f'File "{entry.path}" not found in same location, but there is a file with the same '
            f"name in a different location: {located}"
        )
        answer = ask_option(
            self.prompt,
            "Open file and update session [1], leave closed and remove from session [2], "
            "open file without updating session [3], leave closed and don't change session [4]? ",
            (OPEN_UPDATE, DROP, OPEN_NO_UPDATE, LEAVE_CLOSED),
            LEAVE_CLOSED,
        )
        if answer in (OPEN_UPDATE, OPEN_NO_UPDATE):
            self.editor.open_file(located)
            result.kept.add(located)
            result.placements.append(Placement(located, entry.tile_number))
            if answer == OPEN_UPDATE:
                self._rewrite(record, entry, [located])
        elif answer == DROP:
            self._drop(record, entry)

    def _drop(self, record: SessionRecord, entry: FileEntry) -> None:
        record.files = [f for f in record.files if f is not entry]
        self._persist()
        logger.info(f"[Reconcile] Removed {entry.path} from {record.name}")

    def _rewrite(self, record: SessionRecord, entry: FileEntry, paths: list[str]) -> None:
        """Point the entry at paths[0]; extra paths become entries just before it."""
        position = next(i for i, f in enumerate(record.files) if f is entry)
        extra = [FileEntry(path=p, tile_number=entry.tile_number) for p in paths[1:]]
        record.files[position:position] = extra
        old_path, entry.path = entry.path, paths[0]
        self._persist()
        logger.info(f"[Reconcile] {old_path} -> {', '.join(paths)}")

    # === placement ===

    def place_files(self, placements: list[Placement], layout: Layout, tile_map: dict[int, int]) -> int:
        """Move scheduled files to their live tiles.

        Args:
            tile_map: logical docked tile_number -> live tile number

        Returns:
            Number of files placed
        """
        placed = 0
        for placement in placements:
            handle = self.editor.resolve_handle(placement.path)
            if handle is None:
                logger.warning(f"[Reconcile] Can not retrieve client view for {placement.path}")
                continue

            if placement.tile_number >= 0:
                if placement.tile_number not in tile_map:
                    logger.warning(
                        f"[Reconcile] Tile {placement.tile_number} of {placement.path} is not in the layout, using tile 0"
                    )
                self.editor.set_tile(handle, tile_map.get(placement.tile_number, 0))
            else:
                rect = layout.get_tile(placement.tile_number)
                if rect is not None:
                    self.editor.set_external(handle, Geometry(rect.x, rect.y, rect.width, rect.height))
                else:
                    current = self.editor.get_tile_of(handle)
                    if current is None or current >= 0:
                        self.editor.set_external(handle)
            placed += 1
        return placed

    # === files not in the session ===

    def handle_extra_files(self, kept: set[str], ignore: Callable[[str], bool], keep_tile: int = 0) -> list[str]:
        """Ask about open files that the session does not reference.

        Returns:
            Paths that were closed
        """
        extra = [p for p in self.editor.list_open_files() if p not in kept and not ignore(p)]
        if not extra:
            return []

        self.prompt.display_text("The following files are in the editor, but not in the opened session:")
        for path in extra:
            self.prompt.display_text(path)

        choice = ask_letter(
            self.prompt,
            "Should these files be closed [c], or keep them open with the loaded session files [k], "
            "or decide for individual files [i]? ",
            "cki",
            "k",
        )

        closed = []
        for path in extra:
            answer = choice
            if choice == "i":
                self.prompt.display_text(path)
                answer = ask_letter(self.prompt, "Close [c], or keep open [k]? ", "ck", "k")
            if answer == "c":
                self.editor.close_file(path)
                closed.append(path)
            else:
                handle = self.editor.resolve_handle(path)
                if handle is not None:
                    self.editor.set_tile(handle, keep_tile)

        logger.info(f"[Reconcile] {len(closed)} of {len(extra)} extra files closed")
        return closed
