# File: src/irbis_core/utils.py
"""
IRBIS 核心库 - 文本编解码工具箱

同一个数据包中复用两种文本编码:
- ANSI: 服务器原生的 8 位代码页 (Windows-1251)。
- UTF: 由调用方提供的搜索表达式、动态格式等，按 UTF-8 原样透传。

此外还包含动态格式的清洗规则，以及 IRBIS 专用换行符的转换。
"""

from enum import Enum

# IRBIS 的字段/行分隔符 (同时作为大文本中的 "逻辑换行")
IRBIS_DELIMITER = "\x1f\x1e"


class Encoding(Enum):
    """数据包中每一行所使用的文本编码。"""

    ANSI = "cp1251"
    """服务器原生代码页 (Windows-1251)。"""

    UTF = "utf-8"
    """透传编码，不做代码页转换。"""

    @property
    def codec(self) -> str:
        return self.value


def encode_text(value: str, encoding: Encoding) -> bytes:
    """将文本按指定编码转换为字节流。

    无法映射到 Windows-1251 的字符会被替换为 '?'，与服务器的容错行为一致。

    Args:
        value: 原始文本。
        encoding: 目标编码。

    Returns:
        bytes: 编码后的字节流。
    """
    return value.encode(encoding.codec, "replace")


def decode_text(data: bytes, encoding: Encoding) -> str:
    """将字节流按指定编码还原为文本。

    Args:
        data: 原始字节流。
        encoding: 源编码。

    Returns:
        str: 解码后的文本。
    """
    return data.decode(encoding.codec, "replace")


def is_null_or_empty(text: str | None) -> bool:
    """字符串为 None、空串或仅包含空白？"""
    return not text or not text.strip()


def same_string(first: str, second: str) -> bool:
    """两个字符串在忽略大小写的情况下是否相同。"""
    return first.casefold() == second.casefold()


def irbis_to_dos(text: str) -> str:
    """将 IRBIS 专用换行符 (0x1F 0x1E) 替换为普通换行符。"""
    return text.replace(IRBIS_DELIMITER, "\n")


def irbis_to_lines(text: str) -> list[str]:
    """按 IRBIS 专用换行符拆分文本。"""
    return text.split(IRBIS_DELIMITER)


def remove_comments(text: str) -> str:
    """删除格式文本中的 `/* ... */` 注释。

    算法逻辑:
    1. 在单引号、双引号、竖线 (|) 包围的区间之外出现 `/*` 即视为注释开始。
    2. 注释一直延续到行尾；行终止符 (CR 或 LF) 本身保留。
    3. 引号区间内的 `/*` 原样保留。

    Args:
        text: 格式文本。

    Returns:
        str: 删除注释后的文本。
    """
    if not text or "/*" not in text:
        return text

    result = []
    state = ""
    index = 0
    length = len(text)

    while index < length:
        c = text[index]

        if state:
            # 处于引号区间内，遇到相同的引号即结束区间
            if c == state:
                state = ""
            result.append(c)
        elif c == "/" and index + 1 < length and text[index + 1] == "*":
            while index < length:
                c = text[index]
                if c in "\r\n":
                    result.append(c)
                    break
                index += 1
        elif c in "'\"|":
            state = c
            result.append(c)
        else:
            result.append(c)

        index += 1

    return "".join(result)


def prepare_format(text: str) -> str:
    """准备动态格式，以便发送到服务器。

    1. 删除注释 (见 remove_comments)。
    2. 如果结果中仍含控制字符 (< 0x20)，原样返回：服务器在部分场景下
       依赖这些控制字节，继续清洗会破坏格式。
    3. 否则删除所有控制字符。

    Args:
        text: 格式文本。

    Returns:
        str: 处理后的格式文本。
    """
    text = remove_comments(text)
    if not text:
        return text

    if any(c < " " for c in text):
        return text

    return "".join(c for c in text if c >= " ")
