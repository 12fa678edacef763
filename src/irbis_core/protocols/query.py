# src/irbis_core/protocols/query.py
"""
IRBIS 请求构建器 (Query Builder)

负责将命令和参数组装为单个请求包。
本模块不包含任何 socket 操作，只做字节拼装。

包结构:
    <正文字节长度>\\n<正文>

正文的固定包头:
    命令码, 工作站代码, 命令码 (重复), 客户端 ID, 请求 ID, 密码, 用户名,
    3 个空行 (保留)
"""

import logging
from dataclasses import dataclass

from ..utils import Encoding, encode_text
from . import constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionIdentity:
    """请求包头所需的连接身份信息。

    Attributes:
        workstation: 工作站 (ARM) 代码，如 'C'。
        client_id: 客户端 ID。
        query_id: 当前请求序号。
        username: 用户名。
        password: 密码。
    """

    workstation: str
    client_id: int
    query_id: int
    username: str
    password: str


class ClientQuery:
    """客户端请求。只追加，构建一次、发送一次后丢弃。"""

    def __init__(self, identity: ConnectionIdentity, command: str) -> None:
        self.command = command
        self._accumulator = bytearray()

        self.add_ansi(command).new_line()
        self.add_ansi(identity.workstation).new_line()
        self.add_ansi(command).new_line()
        self.add(identity.client_id).new_line()
        self.add(identity.query_id).new_line()
        self.add_ansi(identity.password).new_line()
        self.add_ansi(identity.username).new_line()
        for _ in range(constants.QUERY_RESERVED_LINES):
            self.new_line()

    def add(self, value: object) -> "ClientQuery":
        """追加任意值的文本形式 (ANSI)，用于数字参数。"""
        if isinstance(value, bool):
            value = int(value)
        return self.add_ansi(str(value))

    def add_ansi(self, value: str) -> "ClientQuery":
        """追加服务器代码页 (ANSI) 文本。"""
        return self.add_text(value, Encoding.ANSI)

    def add_utf(self, value: str) -> "ClientQuery":
        """追加透传 (UTF-8) 文本，用于检索表达式与动态格式。"""
        return self.add_text(value, Encoding.UTF)

    def add_text(self, value: str, encoding: Encoding) -> "ClientQuery":
        self._accumulator.extend(encode_text(value, encoding))
        return self

    def new_line(self) -> "ClientQuery":
        self._accumulator.extend(constants.LINE_FEED)
        return self

    def add_arguments(self, arguments: list[tuple[Encoding, str]]) -> "ClientQuery":
        """按顺序追加 (编码, 值) 参数，每个参数各占一行。"""
        for encoding, value in arguments:
            self.add_text(value, encoding).new_line()
        return self

    def __len__(self) -> int:
        return len(self._accumulator)

    def encode(self) -> bytes:
        """生成最终的线路格式: 正文长度 + LF + 正文。

        长度必须在编码转换之后计算 (同一字符串在不同编码下字节数不同)。
        """
        body = bytes(self._accumulator)
        packet = str(len(body)).encode("ascii") + constants.LINE_FEED + body
        logger.debug(f"query: command={self.command!r} body_len={len(body)}")
        return packet

    def __bytes__(self) -> bytes:
        return self.encode()
