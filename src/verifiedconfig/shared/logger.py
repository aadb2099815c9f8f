from __future__ import annotations

import logging
from typing import Optional, Union

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"未知的日志级别：{level!r}")
    return resolved


def set_global_log_level(
    level: Union[str, int], *, fmt: Optional[str] = None
) -> None:
    """
    设置全局日志级别（CLI 与脚本入口调用，库代码本身不配置 handler）

    Args:
        level: 日志级别，可以是字符串('DEBUG', 'INFO'等)或logging模块的级别常量
        fmt: 控制台输出格式，默认 DEFAULT_LOG_FORMAT
    """
    resolved = _resolve_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    if not root_logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(fmt or DEFAULT_LOG_FORMAT))
        root_logger.addHandler(console_handler)

    for handler in root_logger.handlers:
        handler.setLevel(resolved)
