"""edsession - 编辑器 session 管理

保存/恢复打开的文件、tile 布局、焦点文件、工作目录和搜索路径。
"""

from .errors import (
    CorrelationError,
    EditorError,
    LayoutInconsistentError,
    SessionError,
    StoreCorruptError,
    StoreWriteError,
)
from .manager import OpenReport, SessionManager
from .models import FileEntry, Layout, SessionRecord, SessionSummary, TileRect
from .store import SessionStore

__all__ = [
    "SessionManager",
    "OpenReport",
    "SessionStore",
    "SessionRecord",
    "SessionSummary",
    "Layout",
    "TileRect",
    "FileEntry",
    "SessionError",
    "StoreCorruptError",
    "StoreWriteError",
    "LayoutInconsistentError",
    "CorrelationError",
    "EditorError",
]
