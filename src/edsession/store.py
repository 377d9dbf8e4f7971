"""Session 存储模块

提供 session 集合的持久化：
- 原子写入（temp + rename）
- checksum 校验（sha256）
- version 版本控制
- 损坏文件直接报错（不静默丢弃数据）
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
import time
from pathlib import Path

from . import config
from .errors import StoreCorruptError, StoreWriteError
from .models import SessionRecord, SessionSummary
from .telemetry import get_logger, metrics

logger = get_logger(__name__)


def _calculate_checksum(data: bytes) -> str:
    """计算 SHA256 checksum"""
    return hashlib.sha256(data).hexdigest()


def _encode(data: dict) -> bytes:
    return json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")


class SessionStore:
    """Session 集合（按插入顺序）

    index 从 1 开始，只在当前加载的实例内稳定：
    删除/重命名/覆盖保存都会改变后续记录的顺序。
    """

    def __init__(self, path: Path | None = None, version: int = config.STORE_VERSION):
        self.path = Path(path or config.STORE_FILE)
        self.version = version
        self._records: list[SessionRecord] = self._read()

    # === 读取 ===

    def _read(self) -> list[SessionRecord]:
        """读取文件，不存在时返回空集合

        Raises:
            StoreCorruptError: JSON 无法解析、版本不符、checksum 不符或记录格式错误
        """
        if not self.path.exists():
            logger.debug(f"[Store] File not found, starting empty: {self.path}")
            return []

        try:
            content = self.path.read_bytes()
            data = json.loads(content.decode("utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            metrics.inc("store.error", {"op": "load", "reason": "json"})
            raise StoreCorruptError(f"Could not read session store {self.path}: {e}") from e

        if not isinstance(data, dict):
            metrics.inc("store.error", {"op": "load", "reason": "format"})
            raise StoreCorruptError(f"Session store {self.path} is not a document")

        file_version = data.get("version", 1)
        if file_version != self.version:
            metrics.inc("store.error", {"op": "load", "reason": "version"})
            raise StoreCorruptError(
                f"Session store version mismatch: file={file_version}, expected={self.version}"
            )

        stored_checksum = data.pop("checksum", None)
        if stored_checksum and _calculate_checksum(_encode(data)) != stored_checksum:
            metrics.inc("store.error", {"op": "load", "reason": "checksum"})
            raise StoreCorruptError(f"Session store checksum mismatch: {self.path}")

        try:
            records = [SessionRecord.from_dict(item) for item in data.get("sessions", [])]
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            metrics.inc("store.error", {"op": "load", "reason": "record"})
            raise StoreCorruptError(f"Malformed session record in {self.path}: {e}") from e

        logger.info(f"[Store] Loaded {len(records)} sessions")
        return records

    def reload(self) -> None:
        """丢弃内存状态，重新读取文件"""
        self._records = self._read()

    # === 查询 ===

    def __len__(self) -> int:
        return len(self._records)

    def list(self) -> list[SessionSummary]:
        """所有 session 的摘要（index 从 1 开始）"""
        return [
            SessionSummary(
                index=i,
                name=record.name,
                file_count=len(record.files),
                working_directory=record.working_directory,
                last_used=record.last_used,
                last_saved=record.last_saved,
            )
            for i, record in enumerate(self._records, start=1)
        ]

    def load(self, index: int) -> SessionRecord:
        """按 index 获取记录（返回内部对象，修改后需 persist）"""
        return self._records[self._offset(index)]

    def find(self, name: str) -> int | None:
        """精确匹配名称，多条同名时返回最后一条的 index"""
        found = None
        for i, record in enumerate(self._records, start=1):
            if record.name == name:
                found = i
        return found

    def index_of(self, record: SessionRecord) -> int | None:
        for i, item in enumerate(self._records, start=1):
            if item is record:
                return i
        return None

    # === 修改 ===

    def append(self, record: SessionRecord) -> int:
        self._records.append(record)
        return len(self._records)

    def remove(self, index: int) -> SessionRecord:
        return self._records.pop(self._offset(index))

    def rename(self, index: int, new_name: str) -> int:
        """重命名：移除后重新追加到末尾，返回新 index"""
        record = self.remove(index)
        record.name = new_name
        return self.append(record)

    def _offset(self, index: int) -> int:
        if not 1 <= index <= len(self._records):
            raise IndexError(f"Session index out of range: {index}")
        return index - 1

    # === 写入 ===

    def persist(self) -> None:
        """整体写回文件

        使用 temp + rename 原子写入，包含 checksum 校验。

        Raises:
            StoreWriteError: 目标不可写；内存状态回退到上次保存的内容
        """
        data = {
            "version": self.version,
            "saved_at": time.time(),
            "sessions": [record.to_dict() for record in self._records],
        }
        data["checksum"] = _calculate_checksum(_encode(data))
        json_bytes = _encode(data)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                prefix="edsession_store_",
                suffix=".tmp",
                dir=self.path.parent,
            )
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(json_bytes)
                os.replace(temp_path, self.path)
            except Exception:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
        except OSError as e:
            logger.error(f"[Store] Save failed: {e}")
            metrics.inc("store.error", {"op": "save"})
            self._discard()
            raise StoreWriteError(f"Could not write session store {self.path}: {e}") from e

        logger.info(f"[Store] Saved {len(self._records)} sessions")

    def _discard(self) -> None:
        """写入失败后丢弃未保存的修改"""
        try:
            self._records = self._read()
        except StoreCorruptError:
            logger.warning("[Store] Could not reload store after failed save")
            self._records = []
