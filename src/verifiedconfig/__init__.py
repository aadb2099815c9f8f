"""
配置存储模块

提供签名文件 + 活动存储双后端的层级配置持久化，以及点分路径的配置对象 API
"""

from verifiedconfig.application.config_object import (
    ConfigObject,
    VerifiedConfigObject,
    config,
    get_default_storage,
)
from verifiedconfig.infrastructure.config.settings import StorageSettings
from verifiedconfig.infrastructure.storage.verified_storage import VerifiedStorage
from verifiedconfig.shared.exceptions import (
    ConfigStoreError,
    ConfigurationError,
    DecodeError,
    EncodeError,
    IntegrityError,
    WriteError,
)

__all__ = [
    "ConfigObject",
    "ConfigStoreError",
    "ConfigurationError",
    "DecodeError",
    "EncodeError",
    "IntegrityError",
    "StorageSettings",
    "VerifiedConfigObject",
    "VerifiedStorage",
    "WriteError",
    "config",
    "get_default_storage",
]
