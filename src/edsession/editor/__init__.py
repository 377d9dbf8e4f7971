"""Editor Adapter 模块

- EditorAdapter: 编辑器/窗口管理器能力接口
- Geometry, ActiveFile: 数据结构
"""

from .base import ActiveFile, EditorAdapter, Geometry, ViewHandle

__all__ = [
    "EditorAdapter",
    "ViewHandle",
    "Geometry",
    "ActiveFile",
]
