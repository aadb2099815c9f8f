"""
配置存储异常定义

所有异常均携带面向用户的错误信息（args[0]）。
注意：读取从未写入过的配置名不是错误，会返回空树 / None。
"""

from __future__ import annotations


class ConfigStoreError(Exception):
    """Base class for configuration storage errors (user-facing message in args[0])."""


class IntegrityError(ConfigStoreError):
    """Raised when a signed file's signature does not match its payload."""


class ConfigurationError(ConfigStoreError):
    """Raised when the secret key is missing or the storage root is unusable."""


class DecodeError(ConfigStoreError):
    """Raised when stored hierarchical text cannot be decoded."""


class EncodeError(ConfigStoreError, ValueError):
    """Raised when a tree cannot be represented in the hierarchical text format."""


class WriteError(ConfigStoreError):
    """
    Raised when a write reached one backend but not the other.

    The backends are left as they are (no rollback).
    """
