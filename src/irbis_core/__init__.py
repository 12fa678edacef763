# src/irbis_core/__init__.py
"""
irbis-core v1.0.0
IRBIS64 图书馆自动化服务器协议的异步客户端核心库。
"""

# 暴露核心配置
from .config import (
    IrbisConfig,
    create_config_from_dict,
    load_config_from_env,
    load_config_from_toml,
    parse_connection_string,
    to_connection_string,
)

# 暴露连接与状态
from .core import IrbisConnection

# 暴露异常体系 (方便上层 try-except)
from .exceptions import (
    ConfigError,
    IrbisError,
    NetworkError,
    ProtocolError,
    ServerError,
    StateError,
)
from .protocols import (
    IniFile,
    MarcRecord,
    MenuFile,
    RawRecord,
    RecordField,
    SubField,
)
from .state import ConnectionState, ConnectionStatus
from .utils import Encoding

__version__ = "1.0.0"

__all__ = [
    "IrbisConnection",
    "IrbisConfig",
    "ConnectionState",
    "ConnectionStatus",
    "Encoding",
    "create_config_from_dict",
    "load_config_from_env",
    "load_config_from_toml",
    "parse_connection_string",
    "to_connection_string",
    "MarcRecord",
    "RawRecord",
    "RecordField",
    "SubField",
    "IniFile",
    "MenuFile",
    "IrbisError",
    "ConfigError",
    "NetworkError",
    "ProtocolError",
    "ServerError",
    "StateError",
]
