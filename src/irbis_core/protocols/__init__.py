# src/irbis_core/protocols/__init__.py
"""
IRBIS 协议层 (Protocol Layer)

本包负责协议数据包的纯粹构建 (Build) 与解析 (Parse)。

- 不包含任何 socket 操作或网络 I/O。
- 不包含任何会话状态管理 (State)。
- 不依赖于 core 或 network 层。
"""

from . import constants
from .descriptors import (
    ClientInfo,
    DatabaseInfo,
    FoundLine,
    ProcessInfo,
    SearchScenario,
    ServerStat,
    TermInfo,
    TermPosting,
    UserInfo,
    VersionInfo,
)
from .ini import IniFile, IniLine, IniSection
from .menu import MenuEntry, MenuFile
from .parameters import (
    PostingParameters,
    SearchParameters,
    TableDefinition,
    TermParameters,
)
from .query import ClientQuery, ConnectionIdentity
from .records import MarcRecord, RawRecord, RecordField, SubField
from .response import ServerResponse
from .return_codes import READ_RECORD_CODES, READ_TERMS_CODES, describe_error

# 公共 API
__all__ = [
    "constants",
    "ClientQuery",
    "ConnectionIdentity",
    "ServerResponse",
    "READ_RECORD_CODES",
    "READ_TERMS_CODES",
    "describe_error",
    "MarcRecord",
    "RawRecord",
    "RecordField",
    "SubField",
    "IniFile",
    "IniLine",
    "IniSection",
    "MenuEntry",
    "MenuFile",
    "ClientInfo",
    "DatabaseInfo",
    "FoundLine",
    "ProcessInfo",
    "SearchScenario",
    "ServerStat",
    "TermInfo",
    "TermPosting",
    "UserInfo",
    "VersionInfo",
    "PostingParameters",
    "SearchParameters",
    "TableDefinition",
    "TermParameters",
]
