"""edsession 配置

配置分为以下几类：
- 存储配置：session 文件位置、版本
- Marker 配置：tile 关联用的临时文件
- 交互配置：删除确认、时间显示格式
"""

import os
from pathlib import Path

# === 存储配置 ===
HOME_DIR = Path(os.environ.get("EDSESSION_HOME", Path.home() / ".edsession"))
STORE_FILE = HOME_DIR / "savedSessions.json"  # 所有 session 保存在同一个文件
STORE_VERSION = 1  # 文件格式版本，不一致时视为损坏

# === Marker 配置 ===
MARKER_DIR = HOME_DIR / "markers"  # tile marker 文件目录
MARKER_PREFIX = "tile"
MARKER_SUFFIX = ".txt"
MARKER_WAIT_SECONDS = 1.0  # 等待 marker 文件落盘的上限（秒）
MARKER_POLL_INTERVAL = 0.01  # 轮询间隔（秒）

# === 交互配置 ===
DELETE_CONFIRMATION = True  # delete 默认需要确认
TIMESTAMP_FORMAT = "%d-%b-%Y %H:%M:%S"  # 表格中的时间格式
INPUT_PROMPT = "Please enter option index or name (hit enter without entering anything to cancel): "

# === 指标配置 ===
METRICS_ENABLED = True  # 是否启用指标收集
