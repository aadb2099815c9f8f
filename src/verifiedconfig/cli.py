"""
命令行工具：列出 / 查看 / 校验 / 导入配置

    python -m verifiedconfig list --prefix book
    python -m verifiedconfig get book.admin toolbar.visible
    python -m verifiedconfig verify
    python -m verifiedconfig import --prefix book

存储位置与密钥通过环境变量（VERIFIEDCONFIG_*）提供。
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import yaml

from verifiedconfig.application.config_object import config, get_default_storage
from verifiedconfig.shared.exceptions import ConfigStoreError
from verifiedconfig.shared.logger import set_global_log_level

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="verifiedconfig", description="签名配置存储管理工具"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="WARNING",
        help="设置日志级别，默认为WARNING",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="列出配置名")
    p_list.add_argument("--prefix", default="", help="配置名前缀（字面匹配）")
    p_list.add_argument(
        "--files", action="store_true", help="列出签名文件而不是活动存储中的配置"
    )

    p_get = sub.add_parser("get", help="查看配置内容（YAML 格式输出）")
    p_get.add_argument("name", help="配置名，如 book.admin")
    p_get.add_argument("path", nargs="?", default=None, help="点分路径，省略时输出整棵树")

    p_verify = sub.add_parser("verify", help="校验签名文件")
    p_verify.add_argument("--prefix", default="", help="配置名前缀（字面匹配）")

    p_import = sub.add_parser("import", help="将签名文件导入活动存储")
    p_import.add_argument("--prefix", default="", help="配置名前缀（字面匹配）")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    set_global_log_level(args.log_level)

    try:
        storage = get_default_storage()

        if args.command == "list":
            names = (
                storage.list_file_names(args.prefix)
                if args.files
                else storage.list_names(args.prefix)
            )
            for name in names:
                print(name)
            return 0

        if args.command == "get":
            value = config(args.name, storage=storage).get(args.path)
            if value is None:
                print(f"未设置：{args.name} {args.path}", file=sys.stderr)
                return 1
            if isinstance(value, str):
                print(value)
                return 0
            print(yaml.safe_dump(value, allow_unicode=True, default_flow_style=False), end="")
            return 0

        if args.command == "verify":
            results = storage.verify_all(args.prefix)
            failed = [name for name, ok in results.items() if not ok]
            for name in failed:
                print(f"FAIL {name}", file=sys.stderr)
            print(f"已校验 {len(results)} 个配置文件，失败 {len(failed)} 个")
            return 1 if failed else 0

        if args.command == "import":
            imported = storage.import_files(args.prefix)
            print(f"已导入 {len(imported)} 个配置")
            return 0

    except ConfigStoreError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    return 2
