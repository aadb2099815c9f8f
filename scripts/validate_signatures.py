#!/usr/bin/env python3
"""
Verify every signed config file under the configured storage root.

This script is intended to run as a local pre-commit hook (exported config
directories are versioned alongside the code).
"""

from __future__ import annotations

import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


from verifiedconfig.infrastructure.config.settings import StorageSettings  # noqa: E402
from verifiedconfig.infrastructure.storage.signed_store import SignedStore  # noqa: E402


def main() -> int:
    try:
        store = SignedStore(StorageSettings.from_env())
        failed = [name for name in store.list_names() if not store.verify(name)]
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    if failed:
        print("ERROR: 签名校验失败：以下配置文件被修改或签名密钥不匹配。", file=sys.stderr)
        for name in failed:
            print(f"- {name}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
