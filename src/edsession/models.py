"""Session 数据模型

SessionRecord 持有一个 Layout 和有序的 FileEntry 列表。
tile_number >= 0 表示网格中的 docked tile，<= -1 表示浮动（external）窗口。
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime

from . import config


@dataclass
class TileRect:
    """Tile 几何信息（保存时的像素坐标，仅作相对比例使用）"""

    tile_number: int
    x: float
    y: float
    width: float
    height: float

    @property
    def is_external(self) -> bool:
        return self.tile_number < 0

    @classmethod
    def from_dict(cls, data: dict) -> "TileRect":
        return cls(
            tile_number=int(data["tile_number"]),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
        )


@dataclass
class Layout:
    """Tile 网格布局"""

    grid_width: int = 1
    grid_height: int = 1
    tiles: list[TileRect] = field(default_factory=list)

    @property
    def docked_tiles(self) -> list[TileRect]:
        """网格内的 tile，按 tile 编号排序"""
        return sorted((t for t in self.tiles if t.tile_number >= 0), key=lambda t: t.tile_number)

    @property
    def external_tiles(self) -> list[TileRect]:
        return [t for t in self.tiles if t.tile_number < 0]

    def get_tile(self, tile_number: int) -> TileRect | None:
        for tile in self.tiles:
            if tile.tile_number == tile_number:
                return tile
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "Layout":
        return cls(
            grid_width=int(data["grid_width"]),
            grid_height=int(data["grid_height"]),
            tiles=[TileRect.from_dict(t) for t in data.get("tiles", [])],
        )


@dataclass
class FileEntry:
    """Session 中的一个文件，tile_number 相同的文件叠放在同一 tile"""

    path: str
    tile_number: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "FileEntry":
        return cls(path=str(data["path"]), tile_number=int(data.get("tile_number", 0)))


def _parse_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def format_time(value: datetime | None) -> str:
    """按表格格式显示时间"""
    return value.strftime(config.TIMESTAMP_FORMAT) if value else ""


@dataclass
class SessionRecord:
    """一个已保存的 session"""

    name: str
    working_directory: str = ""
    search_path: str = ""
    active_file: str = ""
    active_file_position: int = 1
    last_used: datetime | None = None
    last_saved: datetime | None = None
    layout: Layout = field(default_factory=Layout)
    files: list[FileEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        """转换为可序列化的字典"""
        data = asdict(self)
        data["last_used"] = self.last_used.isoformat() if self.last_used else None
        data["last_saved"] = self.last_saved.isoformat() if self.last_saved else None
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SessionRecord":
        """从字典恢复

        Raises:
            KeyError, ValueError, TypeError: 字段缺失或格式错误
        """
        return cls(
            name=str(data["name"]),
            working_directory=str(data.get("working_directory", "")),
            search_path=str(data.get("search_path", "")),
            active_file=str(data.get("active_file", "")),
            active_file_position=int(data.get("active_file_position", 1)),
            last_used=_parse_time(data.get("last_used")),
            last_saved=_parse_time(data.get("last_saved")),
            layout=Layout.from_dict(data["layout"]),
            files=[FileEntry.from_dict(f) for f in data.get("files", [])],
        )


@dataclass
class SessionSummary:
    """Session 列表中的一行（index 从 1 开始）"""

    index: int
    name: str
    file_count: int
    working_directory: str
    last_used: datetime | None
    last_saved: datetime | None

    COLUMNS = ("index", "name", "numFiles", "currentFolder", "lastUsed", "lastSaved")

    def as_row(self) -> list[str]:
        return [
            str(self.index),
            self.name,
            str(self.file_count),
            self.working_directory,
            format_time(self.last_used),
            format_time(self.last_saved),
        ]
