"""Pytest 配置

提供测试用的假编辑器（模拟 tile 网格窗口管理器）和脚本化的交互接口。
"""

import os
from pathlib import Path

import pytest

from edsession.editor import ActiveFile, EditorAdapter, Geometry
from edsession.errors import EditorError
from edsession.prompt import Prompt
from edsession.store import SessionStore
from edsession.telemetry import metrics

CANVAS_WIDTH = 1200.0
CANVAS_HEIGHT = 800.0
EXTERNAL_DEFAULT = Geometry(50.0, 50.0, 400.0, 300.0)


class FakeEditor(EditorAdapter):
    """内存中的编辑器 + tile 窗口管理器

    - 网格 cell 可通过行/列 span 合并成一个 tile
    - 实际 tile 编号按列优先顺序分配（故意与行优先的逻辑顺序不同）
    - 每次调用记录在 calls 中
    """

    def __init__(self):
        self.open_files: list[str] = []
        self.tiles: dict[str, int] = {}  # path -> tile（-1 为浮动窗口）
        self.external: dict[str, Geometry] = {}
        self.invalid: set[str] = set()
        self.repairable: set[str] = set()
        self.disk: set[str] = set()
        self.search_index: dict[str, str] = {}  # 文件名 -> 完整路径
        self.active: ActiveFile | None = None
        self.working_directory = "/home/user"
        self.search_path = "/usr/lib/editor"
        self.single = True
        self.width = 1
        self.height = 1
        self.span_ops: list[tuple[str, int, int, int]] = []
        self.row_heights: list[float] = [1.0]
        self.column_widths: list[float] = [1.0]
        self.calls: list[tuple] = []

    # === 测试辅助 ===

    def arrange(self, width: int, height: int) -> None:
        """直接设置网格（不记录调用）"""
        self.single = width * height == 1
        self.width, self.height = width, height
        self.span_ops = []
        self.row_heights = [1.0 / height] * height
        self.column_widths = [1.0 / width] * width

    def add_open(self, path: str, tile: int = 0, geometry: Geometry | None = None) -> None:
        self.open_files.append(path)
        self.disk.add(path)
        self.tiles[path] = tile
        if tile < 0:
            self.external[path] = geometry or EXTERNAL_DEFAULT

    def names(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    def _regions(self) -> list[list[tuple[int, int]]]:
        """按 span 合并后的 tile 区域（列优先编号）"""
        owner = {(r, c): (r, c) for r in range(self.height) for c in range(self.width)}
        for kind, row, column, span in self.span_ops:
            anchor = owner[(row, column)]
            for k in range(1, span):
                target = (row, column + k) if kind == "column" else (row + k, column)
                if target not in owner:
                    continue
                merged = owner[target]
                for cell, value in owner.items():
                    if value == merged:
                        owner[cell] = anchor
        anchors = sorted(set(owner.values()), key=lambda rc: (rc[1], rc[0]))
        return [[cell for cell, value in owner.items() if value == a] for a in anchors]

    def _tile_geometry(self, tile: int) -> Geometry:
        if self.single:
            return Geometry(0.0, 0.0, CANVAS_WIDTH, CANVAS_HEIGHT)
        cells = self._regions()[tile]
        rows = sorted({r for r, _ in cells})
        columns = sorted({c for _, c in cells})
        x = sum(self.column_widths[: columns[0]]) * CANVAS_WIDTH
        y = sum(self.row_heights[: rows[0]]) * CANVAS_HEIGHT
        width = sum(self.column_widths[c] for c in columns) * CANVAS_WIDTH
        height = sum(self.row_heights[r] for r in rows) * CANVAS_HEIGHT
        return Geometry(round(x), round(y), round(width), round(height))

    def _require_open(self, path: str) -> None:
        if path not in self.open_files:
            raise EditorError(f"{path} is not open")

    # === 文件 ===

    def list_open_files(self) -> list[str]:
        return list(self.open_files)

    def get_active_file(self) -> ActiveFile | None:
        return self.active

    def open_file(self, path: str) -> None:
        self.calls.append(("open_file", path))
        if path not in self.open_files:
            self.open_files.append(path)
            self.tiles[path] = 0

    def close_file(self, path: str) -> None:
        self.calls.append(("close_file", path))
        self._require_open(path)
        self.open_files.remove(path)
        self.tiles.pop(path, None)
        self.external.pop(path, None)

    def open_and_focus(self, path: str, line: int) -> None:
        self.calls.append(("open_and_focus", path, line))
        if path not in self.open_files and not self.file_exists(path):
            raise EditorError(f"{path} does not exist")
        self.open_file(path)
        self.active = ActiveFile(path, line)

    def resolve_handle(self, path: str):
        return path if path in self.open_files else None

    def file_exists(self, path: str) -> bool:
        return path in self.disk or os.path.exists(path)

    def locate(self, name: str) -> str | None:
        return self.search_index.get(name)

    # === Tile ===

    def get_tile_of(self, handle) -> int | None:
        return self.tiles.get(handle)

    def get_geometry(self, handle) -> Geometry:
        tile = self.tiles[handle]
        if tile < 0:
            return self.external[handle]
        return self._tile_geometry(tile)

    def set_tile(self, handle, tile_number: int) -> None:
        self.calls.append(("set_tile", handle, tile_number))
        self._require_open(handle)
        tile_count = 1 if self.single else len(self._regions())
        if tile_number >= tile_count:
            raise EditorError(f"Tile {tile_number} does not exist")
        self.tiles[handle] = tile_number
        self.external.pop(handle, None)
        if handle in self.repairable:
            self.invalid.discard(handle)

    def set_external(self, handle, geometry: Geometry | None = None) -> None:
        self.calls.append(("set_external", handle, geometry))
        self._require_open(handle)
        self.tiles[handle] = -1
        self.external[handle] = geometry or EXTERNAL_DEFAULT

    def is_valid_view(self, handle) -> bool:
        return handle not in self.invalid

    # === 网格 ===

    def get_grid_dimensions(self) -> tuple[int, int]:
        return (1, 1) if self.single else (self.width, self.height)

    def is_single_arrangement(self) -> bool:
        return self.single

    def set_single_arrangement(self) -> None:
        self.calls.append(("set_single_arrangement",))
        self.arrange(1, 1)
        for path, tile in self.tiles.items():
            if tile > 0:
                self.tiles[path] = 0

    def set_grid_dimensions(self, width: int, height: int) -> None:
        self.calls.append(("set_grid_dimensions", width, height))
        self.arrange(width, height)
        self.single = False
        for path, tile in self.tiles.items():
            if tile >= width * height:
                self.tiles[path] = 0

    def set_column_span(self, row: int, column: int, span: int) -> None:
        self.calls.append(("set_column_span", row, column, span))
        self.span_ops.append(("column", row, column, span))

    def set_row_span(self, row: int, column: int, span: int) -> None:
        self.calls.append(("set_row_span", row, column, span))
        self.span_ops.append(("row", row, column, span))

    def set_row_heights(self, ratios: list[float]) -> None:
        self.calls.append(("set_row_heights", list(ratios)))
        self.row_heights = list(ratios)

    def set_column_widths(self, ratios: list[float]) -> None:
        self.calls.append(("set_column_widths", list(ratios)))
        self.column_widths = list(ratios)

    # === 环境 ===

    def get_working_directory(self) -> str:
        return self.working_directory

    def set_working_directory(self, path: str) -> None:
        self.calls.append(("set_working_directory", path))
        self.working_directory = path

    def get_search_path(self) -> str:
        return self.search_path

    def set_search_path(self, value: str) -> None:
        self.calls.append(("set_search_path", value))
        self.search_path = value


class ScriptedPrompt(Prompt):
    """按顺序返回预设回答；回答用完后返回空字符串（取消）"""

    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.questions: list[str] = []
        self.tables: list[tuple[list[str], list[list[str]], str]] = []
        self.texts: list[str] = []

    def display_table(self, columns, rows, title: str = "") -> None:
        self.tables.append((list(columns), [list(r) for r in rows], title))

    def request_input(self, text: str) -> str:
        self.questions.append(text)
        return self.answers.pop(0) if self.answers else ""

    def display_text(self, text: str) -> None:
        self.texts.append(text)

    def table_names(self, position: int = -1) -> list[str]:
        """某次显示的 session 表格中的名称列"""
        return [row[1] for row in self.tables[position][1]]


@pytest.fixture(autouse=True)
def reset_metrics():
    """每次测试前重置指标"""
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def editor():
    """空的假编辑器（单窗口状态）"""
    return FakeEditor()


@pytest.fixture
def make_prompt():
    """创建脚本化 prompt 的工厂"""
    return ScriptedPrompt


@pytest.fixture
def store_path(tmp_path) -> Path:
    return tmp_path / "sessions" / "savedSessions.json"


@pytest.fixture
def store(store_path) -> SessionStore:
    return SessionStore(store_path)


@pytest.fixture
def marker_dir(tmp_path) -> Path:
    return tmp_path / "markers"


@pytest.fixture
def make_editor():
    """创建额外假编辑器的工厂"""
    return FakeEditor
