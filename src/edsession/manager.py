"""SessionManager - save/open/delete/rename/view 命令入口

职责：
- 通过 SessionStore 读写 session
- 通过 choice 解析用户选择
- open 时串联布局计算、tile 关联、文件协调

编辑器和交互接口都由调用方注入。
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from . import config
from .capture import capture_snapshot
from .choice import parse_indices, resolve_choice
from .correlation import TileCorrelator
from .editor import EditorAdapter
from .errors import EditorError, LayoutInconsistentError, SessionError
from .layout import apply_grid, apply_proportions, compute_grid
from .models import SessionRecord
from .prompt import ConsolePrompt, Prompt, ask_letter
from .reconcile import FileReconciler, FileStatus
from .store import SessionStore
from .telemetry import get_logger, metrics

logger = get_logger(__name__)


@dataclass
class OpenReport:
    """open 的结果摘要"""

    name: str
    statuses: list[tuple[str, FileStatus]] = field(default_factory=list)
    tile_map: dict[int, int] = field(default_factory=dict)
    placed: int = 0
    closed: list[str] = field(default_factory=list)
    unrepaired_views: int = 0


class SessionManager:
    """Session 命令集合

    使用示例:
        manager = SessionManager(editor)
        manager.save("thisSession")
        manager.open()          # 显示列表并询问
        manager.manage()        # 交互式循环
    """

    def __init__(
        self,
        editor: EditorAdapter,
        prompt: Prompt | None = None,
        store: SessionStore | None = None,
        marker_dir: Path | None = None,
    ):
        self.editor = editor
        self.prompt = prompt or ConsolePrompt()
        self.store = store if store is not None else SessionStore()
        self.marker_dir = marker_dir

    # === 选择 ===

    def _select(self, name: str | None, allow_multiple: bool = False) -> list[int]:
        summaries = self.store.list()
        if not summaries:
            self.prompt.display_text("There are no saved sessions.")
            return []
        return resolve_choice(summaries, self.prompt, name=name, allow_multiple=allow_multiple)

    def _select_one(self, name: str | None) -> int | None:
        indices = self._select(name)
        return indices[0] if indices else None

    # === save ===

    def save(self, name: str | None = None) -> SessionRecord | None:
        """保存当前编辑器状态；同名（或输入 index）时覆盖原记录"""
        summaries = self.store.list()
        if name is None:
            if summaries:
                self.prompt.display_sessions(summaries, title="Existing session files")
                name = self.prompt.request_input(
                    "Choose a session to save to or type a new session name to save as a new session: "
                )
            else:
                name = self.prompt.request_input("Type a new session name to save as a new session: ")
            name = name.strip()
            if not name:
                self.prompt.display_text("Warning: Nothing updated as name not provided")
                return None

        match = self.store.find(name)
        if match is None:
            indices = parse_indices(name)
            if indices and len(indices) == 1 and 1 <= indices[0] <= len(self.store):
                match = indices[0]
                name = self.store.load(match).name

        record = capture_snapshot(self.editor, name)
        if match is not None:
            self.prompt.display_text(f"Saving to previous session: {name}")
            self.store.remove(match)
        else:
            self.prompt.display_text(f"Saving new session: {name}")
        self.store.append(record)
        self.store.persist()
        logger.info(f"[Manager] Saved session {name} ({len(record.files)} files)")
        return record

    # === open ===

    def open(self, name: str | None = None) -> OpenReport | None:
        """恢复一个 session

        Raises:
            LayoutInconsistentError: 保存的布局无法还原为网格
            CorrelationError: 逻辑 tile 和实际 tile 无法一一对应
        """
        index = self._select_one(name)
        if index is None:
            return None

        record = self.store.load(index)
        report = OpenReport(name=record.name)
        record.last_used = datetime.now()
        self.store.persist()

        self._restore_environment(record)
        report.unrepaired_views = self._repair_invalid_views()

        try:
            plan = compute_grid(record.layout)
        except LayoutInconsistentError as e:
            metrics.inc("open.error", {"reason": "layout"})
            logger.error(f"[Manager] {record.name}: {e}")
            raise

        reapply = plan.tile_count == 2 and plan.width * plan.height == 2 and self.editor.is_single_arrangement()
        apply_grid(self.editor, plan)

        reconciler = FileReconciler(self.editor, self.prompt, persist=self.store.persist)
        correlator = TileCorrelator(self.editor, marker_dir=self.marker_dir)
        try:
            correlator.place_markers(plan, reapply_grid=reapply)
            result = reconciler.reconcile(record)
            report.statuses = result.statuses
            apply_proportions(self.editor, plan)
            report.tile_map = correlator.correlate(plan)
            report.placed = reconciler.place_files(result.placements, record.layout, report.tile_map)
        finally:
            correlator.cleanup()

        report.closed = reconciler.handle_extra_files(
            result.kept, ignore=correlator.is_marker, keep_tile=report.tile_map.get(0, 0)
        )
        self._restore_active_file(record)
        self.store.persist()
        logger.info(f"[Manager] Opened session {record.name}: {report.placed} files placed")
        return report

    def _restore_environment(self, record: SessionRecord) -> None:
        if record.working_directory:
            self.editor.set_working_directory(record.working_directory)
        if record.search_path and self.editor.get_search_path() != record.search_path:
            self.prompt.display_text("Resetting to session path...")
            self.editor.set_search_path(record.search_path)

    def _repair_invalid_views(self) -> int:
        """把无效 view 移到 tile 0 尝试修复一次，返回仍然无效的数量"""
        handles = [
            (path, self.editor.resolve_handle(path)) for path in self.editor.list_open_files()
        ]
        handles = [(path, h) for path, h in handles if h is not None]
        invalid = [(path, h) for path, h in handles if not self.editor.is_valid_view(h)]
        if not invalid:
            return 0

        for path, handle in invalid:
            try:
                self.editor.set_tile(handle, 0)
            except EditorError as e:
                logger.debug(f"[Manager] Repair of {path} failed: {e}")
        self.prompt.display_text(
            f"{len(invalid)}/{len(handles)} invalid views found and attempt made to validate"
        )

        remaining = [path for path, h in invalid if not self.editor.is_valid_view(h)]
        for path in remaining:
            self.prompt.display_text(path)
        if remaining:
            self.prompt.display_text(f"{len(remaining)}/{len(handles)} invalid views still open")
            logger.warning(f"[Manager] {len(remaining)} invalid views could not be repaired")
        metrics.gauge("open.unrepaired_views", len(remaining))
        return len(remaining)

    def _restore_active_file(self, record: SessionRecord) -> None:
        if not record.active_file:
            return
        try:
            self.editor.open_and_focus(record.active_file, record.active_file_position)
        except EditorError as e:
            logger.warning(f"[Manager] Could not restore active file {record.active_file}: {e}")

    # === delete / rename / view ===

    def delete(self, name: str | None = None, confirm: bool = config.DELETE_CONFIRMATION) -> list[str]:
        """删除一个或多个 session，返回被删除的名称"""
        indices = list(dict.fromkeys(self._select(name, allow_multiple=True)))
        if not indices:
            return []

        if confirm:
            self.prompt.display_text("Delete session(s):")
            selected = [s for s in self.store.list() if s.index in indices]
            self.prompt.display_sessions(selected)
            if ask_letter(self.prompt, "Delete session(s) [y/n]? ", "yn", "n") != "y":
                return []

        records = [self.store.load(i) for i in indices]
        for record in records:
            self.store.remove(self.store.index_of(record))
        self.store.persist()
        names = [r.name for r in records]
        logger.info(f"[Manager] Deleted sessions {names}")
        return names

    def rename(self, name: str | None = None, new_name: str | None = None) -> str | None:
        """重命名 session，返回新名称；取消时返回 None"""
        index = self._select_one(name)
        if index is None:
            return None

        self.prompt.display_sessions([self.store.list()[index - 1]], title="Rename session")
        if new_name is None:
            new_name = self.prompt.request_input("What is the new name [enter without anything to cancel]? ").strip()
        if not new_name:
            return None

        old_name = self.store.load(index).name
        self.store.rename(index, new_name)
        self.store.persist()
        logger.info(f"[Manager] Renamed {old_name} -> {new_name}")
        return new_name

    def view(self, name: str | None = None) -> SessionRecord | None:
        """显示 session 的文件和布局"""
        index = self._select_one(name)
        if index is None:
            return None

        record = self.store.load(index)
        self.prompt.display_sessions([self.store.list()[index - 1]], title="View session files")
        for entry in record.files:
            if entry.tile_number <= -1:
                self.prompt.display_text(f" F{-entry.tile_number}: {entry.path}")
            else:
                self.prompt.display_text(f" T{entry.tile_number}: {entry.path}")

        layout = record.layout
        self.prompt.display_text(f"layout tile width, height: {layout.grid_width} {layout.grid_height}")
        rows = [
            [str(t.tile_number), f"{t.x:g}", f"{t.y:g}", f"{t.width:g}", f"{t.height:g}"]
            for t in sorted(layout.tiles, key=lambda t: t.tile_number)
        ]
        self.prompt.display_table(("tile", "x", "y", "w", "h"), rows, title="Tile locations")
        return record

    # === 交互式管理 ===

    def manage(self) -> None:
        """交互式循环，空输入或 [e] 退出"""
        commands = [
            ("s", "Save session", self.save),
            ("o", "Open session", self.open),
            ("r", "Rename session", self.rename),
            ("v", "View session files and details", self.view),
            ("d", "Delete session", self.delete),
            ("e", "Exit session manager", None),
        ]

        while True:
            self.prompt.display_text("\nSession Manager")
            for key, description, _ in commands:
                self.prompt.display_text(f" [{key}] {description}")
            answer = self.prompt.request_input("What would you like to do? ").strip().lower()
            if not answer or answer[0] == "e":
                return

            command = next((c for c in commands if c[0] == answer[0]), None)
            if command is None:
                self.prompt.display_text("Invalid choice, please try again")
                continue

            _, description, callback = command
            try:
                callback()
            except SessionError as e:
                logger.error(f"[Manager] {description} failed: {e}")
                self.prompt.display_text(f"{description} failed: {e}")
