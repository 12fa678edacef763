# src/irbis_core/protocols/response.py
"""
IRBIS 响应解析器 (Response Parser)

负责把服务器返回的原始字节流解析为结构化的应答。
本模块是无状态的纯解析逻辑，不包含任何网络 I/O。

响应结构:
    命令回显 (ANSI), 客户端 ID, 请求 ID, 7 行保留,
    返回码, 命令相关的后续行...

行终止符为 CR LF，单独的 CR 或 LF 同样视为终止符。
"""

import logging
import re
from collections.abc import Iterable

from ..exceptions import ProtocolError, ServerError
from ..utils import Encoding, decode_text
from . import constants

logger = logging.getLogger(__name__)

# 带可选符号的十进制整数，只允许 ASCII 数字
_INTEGER = re.compile(r"[+-]?[0-9]+")


def scan_line(buffer: bytes, offset: int) -> tuple[bytes, int]:
    """从 offset 处读取一行。

    Args:
        buffer: 完整的响应字节流。
        offset: 起始游标。

    Returns:
        tuple[bytes, int]:
            - line: 游标与终止符之间的原始字节 (不含终止符)。
            - offset: 越过终止符之后的新游标。
              到达末尾时返回剩余部分，不要求终止符。
    """
    length = len(buffer)
    start = offset
    while offset < length:
        symbol = buffer[offset]
        if symbol == constants.CARRIAGE_RETURN:
            line = buffer[start:offset]
            offset += 1
            if offset < length and buffer[offset] == constants.NEW_LINE:
                offset += 1
            return line, offset
        if symbol == constants.NEW_LINE:
            return buffer[start:offset], offset + 1
        offset += 1

    return buffer[start:], length


def parse_int(text: str | bytes) -> int:
    """宽松的十进制整数解析，非数字或空串时返回 0。"""
    if isinstance(text, bytes):
        text = text.decode("ascii", "ignore")
    text = text.strip()
    if not _INTEGER.fullmatch(text):
        return 0
    return int(text)


class ServerResponse:
    """服务器应答。

    缓冲区在构造后不可变，游标只前进不后退。
    """

    def __init__(self, raw: bytes) -> None:
        """解析原始字节流并立即消费固定包头。

        Args:
            raw: 完整的响应字节流。

        Raises:
            ProtocolError: 响应为空，或在固定包头读完之前就已结束。
        """
        if not raw:
            raise ProtocolError("服务器返回了空响应")

        self._buffer = bytes(raw)
        self._offset = 0
        self._return_code: int | None = None

        self.command = decode_text(self._header_line(), Encoding.ANSI)
        self.client_id = parse_int(self._header_line())
        self.query_id = parse_int(self._header_line())
        for _ in range(constants.RESPONSE_RESERVED_LINES):
            self._header_line()

        logger.debug(
            f"response: command={self.command!r} client_id={self.client_id} "
            f"query_id={self.query_id} size={len(self._buffer)}"
        )

    # ------------------------------------------------------------------
    # 游标
    # ------------------------------------------------------------------

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def eof(self) -> bool:
        return self._offset >= len(self._buffer)

    @property
    def raw(self) -> bytes:
        return self._buffer

    def _header_line(self) -> bytes:
        """读取包头中的一行。包头的每一行都必须存在。"""
        if self.eof:
            raise ProtocolError(
                f"响应在包头内截断 (共 {len(self._buffer)} 字节)"
            )
        return self.get_line()

    def get_line(self) -> bytes:
        """读取一行原始字节并推进游标。"""
        line, self._offset = scan_line(self._buffer, self._offset)
        return line

    def read_line(self, encoding: Encoding) -> str:
        return decode_text(self.get_line(), encoding)

    def read_ansi(self) -> str:
        return self.read_line(Encoding.ANSI)

    def read_utf(self) -> str:
        return self.read_line(Encoding.UTF)

    def read_integer(self) -> int:
        return parse_int(self.get_line())

    # ------------------------------------------------------------------
    # 返回码
    # ------------------------------------------------------------------

    def get_return_code(self) -> int:
        """读取一行作为返回码并记录。

        每次调用都会推进游标，按约定每个响应只应读取一次。
        """
        self._return_code = self.read_integer()
        return self._return_code

    @property
    def return_code(self) -> int:
        """返回码 (首次访问时读取，之后使用缓存值)。"""
        if self._return_code is None:
            return self.get_return_code()
        return self._return_code

    def check_return_code(self, acceptable: Iterable[int] = ()) -> int:
        """校验返回码。

        Args:
            acceptable: 对当前命令而言可以接受的负返回码集合。

        Returns:
            int: 返回码。

        Raises:
            ServerError: 返回码为负且不在可接受集合中。
        """
        code = self.return_code
        if code < 0 and code not in set(acceptable):
            raise ServerError(code)
        return code

    # ------------------------------------------------------------------
    # 批量读取
    # ------------------------------------------------------------------

    def read_remaining_lines(self, encoding: Encoding) -> list[str]:
        """读取剩余所有行 (保留空行，部分格式依赖行位置)。"""
        result = []
        while not self.eof:
            result.append(self.read_line(encoding))
        return result

    def read_remaining_text(self, encoding: Encoding) -> str:
        """将剩余部分作为一整块文本返回，不做分行处理。"""
        chunk = self._buffer[self._offset :]
        self._offset = len(self._buffer)
        return decode_text(chunk, encoding)

    def read_remaining_ansi_lines(self) -> list[str]:
        return self.read_remaining_lines(Encoding.ANSI)

    def read_remaining_utf_lines(self) -> list[str]:
        return self.read_remaining_lines(Encoding.UTF)

    def read_remaining_ansi_text(self) -> str:
        return self.read_remaining_text(Encoding.ANSI)

    def read_remaining_utf_text(self) -> str:
        return self.read_remaining_text(Encoding.UTF)
