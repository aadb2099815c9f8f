"""
存储设置（进程级、启动时初始化一次，之后只读）

来源优先级：
1. 环境变量 VERIFIEDCONFIG_BASE_DIR / VERIFIEDCONFIG_SECRET_KEY / VERIFIEDCONFIG_ACTIVE_DB
2. VERIFIEDCONFIG_SETTINGS_FILE 指向的 YAML 文件中的 `storage` 节

YAML 文件结构示例：
```yaml
storage:
  base_dir: /var/lib/app/config
  secret_key: xxx
  active_db: /var/lib/app/active.sqlite3  # 可选
```

注意：密钥轮换会使此前签名的所有文件校验失败（fail closed）。
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from verifiedconfig.shared.constants import (
    ACTIVE_DB_ENV,
    BASE_DIR_ENV,
    DEFAULT_ACTIVE_DB_FILENAME,
    SECRET_KEY_ENV,
    SETTINGS_FILE_ENV,
)
from verifiedconfig.shared.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _norm_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class StorageSettings:
    """
    Resolved storage settings injected into SignedStore / VerifiedStorage.

    Notes:
    - `secret_key` may be empty here; signing/verifying fails with
      ConfigurationError at use time, so read-only tooling can still list names.
    - `active_db_path` defaults to `<base_dir>/active.sqlite3`; ":memory:" is accepted.
    """

    base_dir: Path
    secret_key: str = ""
    active_db_path: Optional[Union[Path, str]] = None

    def __post_init__(self) -> None:
        raw_base_dir = _norm_str(self.base_dir)
        if not raw_base_dir:
            raise ConfigurationError("未配置存储根目录（base_dir 不能为空）")
        base_dir = Path(raw_base_dir)

        raw_active_db = _norm_str(self.active_db_path)
        if not raw_active_db:
            active_db_path: Union[Path, str] = base_dir / DEFAULT_ACTIVE_DB_FILENAME
        elif raw_active_db == ":memory:":
            active_db_path = raw_active_db
        else:
            active_db_path = Path(raw_active_db)

        object.__setattr__(self, "base_dir", base_dir)
        # 有意去掉首尾空白（环境变量 / YAML 常带换行）；此外不做任何处理
        object.__setattr__(self, "secret_key", _norm_str(self.secret_key))
        object.__setattr__(self, "active_db_path", active_db_path)

    @property
    def has_secret_key(self) -> bool:
        return bool(self.secret_key)

    def secret_key_bytes(self) -> bytes:
        """
        返回用于 HMAC 的密钥字节。

        Raises:
            ConfigurationError: 未设置密钥
        """
        if not self.secret_key:
            raise ConfigurationError(
                f"未设置签名密钥（环境变量 {SECRET_KEY_ENV} 或 storage.secret_key），无法签名/校验配置文件"
            )
        return self.secret_key.encode("utf-8")

    @classmethod
    def from_mapping(cls, section: Mapping[str, Any]) -> "StorageSettings":
        return cls(
            base_dir=_norm_str(section.get("base_dir")),
            secret_key=_norm_str(section.get("secret_key")),
            active_db_path=_norm_str(section.get("active_db")) or None,
        )

    @classmethod
    def from_env(cls) -> "StorageSettings":
        """
        从环境变量（以及可选的 YAML 设置文件）构建设置。

        Raises:
            ConfigurationError: 设置文件无效，或最终仍缺少 base_dir
        """
        section: Dict[str, Any] = {}
        settings_file = _norm_str(os.getenv(SETTINGS_FILE_ENV))
        if settings_file:
            section.update(load_settings_file(Path(settings_file)))

        overrides = {
            "base_dir": os.getenv(BASE_DIR_ENV),
            "secret_key": os.getenv(SECRET_KEY_ENV),
            "active_db": os.getenv(ACTIVE_DB_ENV),
        }
        for key, value in overrides.items():
            if _norm_str(value):
                section[key] = value

        if not _norm_str(section.get("base_dir")):
            raise ConfigurationError(
                f"未配置存储根目录，请设置环境变量 {BASE_DIR_ENV} 或 {SETTINGS_FILE_ENV}"
            )
        return cls.from_mapping(section)


def load_settings_file(path: Path) -> Dict[str, Any]:
    """
    加载 YAML 设置文件中的 `storage` 节。

    Returns:
        storage 节字典；文件为空或缺少 storage 节时返回空字典

    Raises:
        ConfigurationError: 文件不存在、无法读取、YAML 格式错误或结构不合法
    """
    try:
        raw_text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError(f"未找到设置文件：{path}") from e
    except OSError as e:
        raise ConfigurationError(f"读取设置文件失败：{path}（{e}）") from e

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"设置文件 YAML 格式错误：{e}") from e

    if data is None:
        logger.debug(f"设置文件为空: {path}")
        return {}

    if not isinstance(data, dict):
        raise ConfigurationError("设置文件根节点必须是 YAML mapping（dict）")

    storage = data.get("storage")
    if storage is None:
        return {}
    if not isinstance(storage, dict):
        raise ConfigurationError("设置文件中的 storage 类型错误（应为 dict）")
    return dict(storage)
