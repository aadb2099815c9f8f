"""
全局常量定义

存储项目级别的常量（环境变量名、文件格式约定等），供所有模块使用
"""

# 环境变量名
BASE_DIR_ENV = "VERIFIEDCONFIG_BASE_DIR"
SECRET_KEY_ENV = "VERIFIEDCONFIG_SECRET_KEY"
ACTIVE_DB_ENV = "VERIFIEDCONFIG_ACTIVE_DB"
SETTINGS_FILE_ENV = "VERIFIEDCONFIG_SETTINGS_FILE"

# 签名文件：每个配置名一个文件，<name>.xml
SIGNED_FILE_SUFFIX = ".xml"

# 活动存储默认文件名（位于 base_dir 下）
DEFAULT_ACTIVE_DB_FILENAME = "active.sqlite3"
ACTIVE_TABLE = "config"

# XML 编解码
ROOT_TAG = "config"
ATTRIBUTES_KEY = "#attributes"

# 布尔值规范化
TRUE_VALUE = "1"
FALSE_VALUE = "0"
