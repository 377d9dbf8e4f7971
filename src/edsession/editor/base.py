"""Editor Adapter 抽象接口

session 恢复逻辑只通过这个接口访问编辑器和窗口管理器：
- 文件：列出/打开/关闭/定位
- Tile：查询和设置 view 所在 tile、像素几何
- 网格：尺寸、行列跨度、行高列宽比例
- 环境：工作目录和搜索路径

所有失败以 EditorError 抛出。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

# view 句柄由具体适配器决定（对象、id 字符串等）
ViewHandle = Any


@dataclass
class Geometry:
    """View 的像素几何（x, y 为左上角）"""

    x: float
    y: float
    width: float
    height: float


@dataclass
class ActiveFile:
    """当前焦点文件及光标所在行"""

    path: str
    line: int = 1


class EditorAdapter(ABC):
    """编辑器/窗口管理器适配器

    使用示例:
        editor = SomeEditorAdapter()
        for path in editor.list_open_files():
            handle = editor.resolve_handle(path)
            print(path, editor.get_tile_of(handle), editor.get_geometry(handle))
    """

    # === 文件 ===

    @abstractmethod
    def list_open_files(self) -> list[str]:
        """当前打开的文件（按编辑器枚举顺序）"""

    @abstractmethod
    def get_active_file(self) -> ActiveFile | None:
        """当前焦点文件，没有时返回 None"""

    @abstractmethod
    def open_file(self, path: str) -> None:
        """打开文件（已打开时不重复打开）"""

    @abstractmethod
    def close_file(self, path: str) -> None:
        """关闭文件"""

    @abstractmethod
    def open_and_focus(self, path: str, line: int) -> None:
        """打开文件、设为焦点并跳转到指定行"""

    @abstractmethod
    def resolve_handle(self, path: str) -> ViewHandle | None:
        """按路径查找已打开文件的 view 句柄，找不到返回 None"""

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        """完整路径是否存在且可加载"""

    @abstractmethod
    def locate(self, name: str) -> str | None:
        """按文件名在搜索路径中查找，返回完整路径或 None"""

    # === Tile ===

    @abstractmethod
    def get_tile_of(self, handle: ViewHandle) -> int | None:
        """View 所在 tile 编号；负数表示浮动窗口，None 表示位置未知"""

    @abstractmethod
    def get_geometry(self, handle: ViewHandle) -> Geometry:
        """View 所在 tile/窗口的像素几何"""

    @abstractmethod
    def set_tile(self, handle: ViewHandle, tile_number: int) -> None:
        """把 view 移动到指定 docked tile"""

    @abstractmethod
    def set_external(self, handle: ViewHandle, geometry: Geometry | None = None) -> None:
        """把 view 变为浮动窗口；geometry 为空时使用窗口管理器默认位置"""

    def is_valid_view(self, handle: ViewHandle) -> bool:
        """View 是否处于有效状态（默认总是有效）"""
        return True

    # === 网格 ===

    @abstractmethod
    def get_grid_dimensions(self) -> tuple[int, int]:
        """当前 tile 网格尺寸 (width, height)"""

    @abstractmethod
    def is_single_arrangement(self) -> bool:
        """是否处于单窗口（最大化、不分 tile）状态"""

    @abstractmethod
    def set_single_arrangement(self) -> None:
        """切换到单窗口状态"""

    @abstractmethod
    def set_grid_dimensions(self, width: int, height: int) -> None:
        """切换到 width x height 的 tile 网格"""

    @abstractmethod
    def set_column_span(self, row: int, column: int, span: int) -> None:
        """设置 (row, column) 处 tile 横跨的列数"""

    @abstractmethod
    def set_row_span(self, row: int, column: int, span: int) -> None:
        """设置 (row, column) 处 tile 纵跨的行数"""

    @abstractmethod
    def set_row_heights(self, ratios: list[float]) -> None:
        """设置各行高度比例（和为 1）"""

    @abstractmethod
    def set_column_widths(self, ratios: list[float]) -> None:
        """设置各列宽度比例（和为 1）"""

    # === 环境 ===

    @abstractmethod
    def get_working_directory(self) -> str:
        """当前工作目录"""

    @abstractmethod
    def set_working_directory(self, path: str) -> None:
        """切换工作目录"""

    @abstractmethod
    def get_search_path(self) -> str:
        """当前搜索路径（序列化后的字符串）"""

    @abstractmethod
    def set_search_path(self, value: str) -> None:
        """整体替换搜索路径"""
