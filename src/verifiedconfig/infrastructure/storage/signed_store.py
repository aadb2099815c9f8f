"""
签名文件存储

每个配置名对应一个文件 `<base_dir>/<name>.xml`，内容格式：

    <hex HMAC-SHA512(payload)>\\n<payload>

设计要点：
- 写入采用“临时文件 + fsync + os.replace”发布，读者不会看到写了一半的文件
- 读取时重新计算签名，不匹配则抛出 IntegrityError；文件保持原样供排查，不做自动修复
- 不重试：I/O 异常直接向上抛出
"""

from __future__ import annotations

import binascii
import logging
import os
from pathlib import Path
import tempfile
from typing import List, Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac

from verifiedconfig.domain.tree import validate_config_name
from verifiedconfig.infrastructure.config.settings import StorageSettings
from verifiedconfig.shared.constants import SIGNED_FILE_SUFFIX
from verifiedconfig.shared.exceptions import ConfigurationError, IntegrityError

logger = logging.getLogger(__name__)

# SHA-512 摘要 64 字节 -> 128 个十六进制字符
SIGNATURE_HEX_LENGTH = 128


def _new_hmac(key: bytes) -> hmac.HMAC:
    return hmac.HMAC(key, hashes.SHA512())


def sign_payload(payload: bytes, key: bytes) -> str:
    h = _new_hmac(key)
    h.update(payload)
    return h.finalize().hex()


def _split_signed_content(content: bytes) -> Tuple[bytes, bytes]:
    signature_hex, sep, payload = content.partition(b"\n")
    if not sep:
        raise IntegrityError("签名文件格式错误：缺少签名行")
    if len(signature_hex) != SIGNATURE_HEX_LENGTH:
        raise IntegrityError("签名文件格式错误：签名长度不合法")
    try:
        signature = binascii.unhexlify(signature_hex)
    except (binascii.Error, ValueError) as e:
        raise IntegrityError("签名文件格式错误：签名不是十六进制") from e
    return signature, payload


class SignedStore:
    """File-per-name persistence with an embedded HMAC-SHA512 signature."""

    def __init__(self, settings: StorageSettings):
        self._settings = settings
        self.base_dir = settings.base_dir

    def path_for(self, name: str) -> Path:
        return self.base_dir / f"{validate_config_name(name)}{SIGNED_FILE_SUFFIX}"

    def _ensure_base_dir(self) -> None:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"存储根目录不可写：{self.base_dir}（{e}）") from e
        if not os.access(self.base_dir, os.W_OK):
            raise ConfigurationError(f"存储根目录不可写：{self.base_dir}")

    def write(self, name: str, payload: bytes) -> None:
        """
        签名并原子写入 payload。

        Raises:
            ConfigurationError: 未设置密钥或存储根目录不可写
            OSError: 其它 I/O 失败（不重试）
        """
        path = self.path_for(name)
        key = self._settings.secret_key_bytes()
        self._ensure_base_dir()

        signature = sign_payload(payload, key)
        content = signature.encode("ascii") + b"\n" + payload

        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.base_dir),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as tmp_handle:
                tmp_handle.write(content)
                tmp_handle.flush()
                os.fsync(tmp_handle.fileno())
            os.replace(tmp_path, str(path))
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise
        logger.debug(f"签名文件已写入: {path}")

    def _load(self, name: str) -> Optional[Tuple[bytes, bytes]]:
        path = self.path_for(name)
        try:
            content = path.read_bytes()
        except FileNotFoundError:
            return None
        return _split_signed_content(content)

    def _check(self, name: str, signature: bytes, payload: bytes) -> None:
        h = _new_hmac(self._settings.secret_key_bytes())
        h.update(payload)
        try:
            h.verify(signature)
        except InvalidSignature as e:
            raise IntegrityError(f"配置文件签名校验失败：{name}（文件可能被篡改，或签名密钥已变更）") from e

    def read(self, name: str) -> Optional[bytes]:
        """
        读取并校验签名文件。

        Returns:
            payload 字节；文件不存在时返回 None

        Raises:
            IntegrityError: 签名不匹配或文件结构损坏
            ConfigurationError: 未设置密钥
        """
        # 先确认密钥存在，避免无密钥时把缺失文件误报为“未设置”
        self._settings.secret_key_bytes()
        loaded = self._load(name)
        if loaded is None:
            return None
        signature, payload = loaded
        self._check(name, signature, payload)
        return payload

    def verify(self, name: str) -> bool:
        """
        校验签名（不抛 IntegrityError，用于诊断）。

        文件不存在返回 False；未设置密钥仍抛出 ConfigurationError（fail closed）。
        """
        try:
            return self.read(name) is not None
        except IntegrityError as e:
            logger.error(str(e))
            return False

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def delete(self, name: str) -> bool:
        """
        删除签名文件。

        Returns:
            True 表示删除了文件，False 表示文件原本就不存在
        """
        path = self.path_for(name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"签名文件已删除: {path}")
        return True

    def list_names(self, prefix: str = "") -> List[str]:
        """
        扫描存储目录，返回以 prefix 开头的配置名（按名称排序）。

        前缀按字面字符串匹配，不区分点分段：`foo` 同时匹配 `foo.bar` 与 `foobaz`。
        """
        if not self.base_dir.is_dir():
            return []

        names = set()
        for path in self.base_dir.glob(f"*{SIGNED_FILE_SUFFIX}"):
            if path.name.startswith(".") or not path.is_file():
                continue
            name = path.name[: -len(SIGNED_FILE_SUFFIX)]
            if not name.startswith(prefix):
                continue
            try:
                validate_config_name(name)
            except ValueError:
                logger.warning(f"跳过非配置文件（文件名不是合法的配置名）: {path}")
                continue
            names.add(name)
        return sorted(names)
