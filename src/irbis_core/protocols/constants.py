# src/irbis_core/protocols/constants.py
"""
IRBIS 协议层 - 常量定义

本模块定义了所有协议相关的命令码、分隔符和固定值。
采用命名空间 (Class Namespace) 组织。
"""

# =========================================================================
# 1. 命令码 (Command Mnemonics)
# =========================================================================


class Command:
    """客户端命令助记符"""

    # 会话
    REGISTER_CLIENT = "A"
    UNREGISTER_CLIENT = "B"
    NOP = "N"

    # 记录
    READ_RECORD = "C"
    UPDATE_RECORD = "D"
    ACTUALIZE_RECORD = "F"
    FORMAT_RECORD = "G"
    GET_MAX_MFN = "O"
    UNLOCK_RECORDS = "Q"

    # 检索与词典
    SEARCH = "K"
    READ_TERMS = "H"
    READ_TERMS_REVERSE = "P"
    READ_POSTINGS = "I"

    # 文件
    READ_DOCUMENT = "L"
    LIST_FILES = "!"
    UPDATE_INI_FILE = "8"
    PRINT = "7"

    # 数据库
    RECORD_LIST = "0"
    CREATE_DATABASE = "T"
    DELETE_DATABASE = "W"
    CREATE_DICTIONARY = "Z"
    RELOAD_DICTIONARY = "Y"
    RELOAD_MASTER_FILE = "X"
    EMPTY_DATABASE = "S"
    UNLOCK_DATABASE = "U"

    # 服务器管理
    GET_SERVER_VERSION = "1"
    GET_SERVER_STAT = "+1"
    GET_PROCESS_LIST = "+3"
    SET_USER_LIST = "+7"
    RESTART_SERVER = "+8"
    GET_USER_LIST = "+9"


# =========================================================================
# 2. 包结构 (Packet Structure)
# =========================================================================

LINE_FEED = b"\n"
CARRIAGE_RETURN = 0x0D
NEW_LINE = 0x0A

# 响应包头中 "echo/client id/query id" 之后的保留行数
RESPONSE_RESERVED_LINES = 7
# 请求包头末尾的空行数
QUERY_RESERVED_LINES = 3

# 记录编码
FIELD_DELIMITER = "\x1f\x1e"
SUBFIELD_MARKER = "^"
TAG_SEPARATOR = "#"
# DatabaseInfo 中 MFN 列表的分隔符
MFN_LIST_SEPARATOR = "\x1e"

# MNU 文件结束标记 (从第 5 个字符起)
MENU_STOP_MARKER = "*****"
MENU_TRIM_CHARS = "-=:"


# =========================================================================
# 3. 记录状态位 (Record Status)
# =========================================================================


class RecordStatus:
    LOGICALLY_DELETED = 1  # 记录已逻辑删除
    PHYSICALLY_DELETED = 2  # 记录已物理删除
    ABSENT = 4  # 记录不存在
    NON_ACTUALIZED = 8  # 记录未更新索引
    LAST_VERSION = 32  # 记录的最新版本
    LOCKED = 64  # 记录被锁定编辑

    DELETED = LOGICALLY_DELETED | PHYSICALLY_DELETED


# =========================================================================
# 4. 常用格式、检索前缀与逻辑运算 (Formats / Prefixes / Logic)
# =========================================================================

ALL_FORMAT = "&uf('+0')"
BRIEF_FORMAT = "@brief"
IBIS_FORMAT = "@ibiskw_h"
INFO_FORMAT = "@info_w"
OPTIMIZED_FORMAT = "@"

KEYWORD_PREFIX = "K="  # 关键词
AUTHOR_PREFIX = "A="  # 个人作者、编者
COLLECTIVE_PREFIX = "M="  # 团体或会议
TITLE_PREFIX = "T="  # 题名
INVENTORY_PREFIX = "IN="  # 登录号、条码或 RFID
INDEX_PREFIX = "I="  # 索书号


class Logic:
    """检索允许的逻辑运算层级"""

    OR = 0
    OR_AND = 1
    OR_AND_NOT = 2  # 默认
    OR_AND_NOT_FIELD = 3
    OR_AND_NOT_PHRASE = 4


# =========================================================================
# 5. 用户 INI 默认值 (UserInfo.encode)
# =========================================================================

DEFAULT_WORKSTATION_INI = {
    "C": "irbisc.ini",  # 编目
    "R": "irbisr.ini",  # 读者
    "B": "irbisb.ini",  # 流通
    "M": "irbism.ini",  # 采访
    "K": "irbisk.ini",  # 书目保障
    "A": "irbisa.ini",  # 管理员
}

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6666
DEFAULT_DATABASE = "IBIS"
DEFAULT_WORKSTATION = "C"
DEFAULT_DATABASE_LIST = "1..dbnam2.mnu"
