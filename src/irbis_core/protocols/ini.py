# src/irbis_core/protocols/ini.py
"""
IRBIS INI 文件编解码

格式:
    [Section]
    Key=Value

不支持转义，值中可以包含 '='。键和节名的查找忽略大小写，返回第一个匹配项。
"""

import logging
from dataclasses import dataclass, field

from ..exceptions import ProtocolError
from ..utils import same_string

logger = logging.getLogger(__name__)


@dataclass
class IniLine:
    """INI 文件中的一行 "键=值"。"""

    key: str
    value: str = ""

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


@dataclass
class IniSection:
    """INI 文件的节，由若干 IniLine 组成。"""

    name: str = ""
    lines: list[IniLine] = field(default_factory=list)

    def find(self, key: str) -> IniLine | None:
        for line in self.lines:
            if same_string(line.key, key):
                return line
        return None

    def get_value(self, key: str, default: str = "") -> str:
        found = self.find(key)
        return found.value if found else default

    def set_value(self, key: str, value: str) -> "IniSection":
        """设置值：键已存在则覆盖，否则追加到末尾。"""
        item = self.find(key)
        if item:
            item.value = value
        else:
            self.lines.append(IniLine(key, value))
        return self

    def remove(self, key: str) -> "IniSection":
        """删除指定键的所有行。"""
        self.lines = [line for line in self.lines if not same_string(line.key, key)]
        return self

    def __contains__(self, key: str) -> bool:
        return self.find(key) is not None

    def __str__(self) -> str:
        return "\n".join([f"[{self.name}]", *(str(line) for line in self.lines)]) + "\n"


@dataclass
class IniFile:
    """INI 文件，由若干 IniSection 组成。"""

    sections: list[IniSection] = field(default_factory=list)

    def find_section(self, name: str) -> IniSection | None:
        for section in self.sections:
            if same_string(section.name, name):
                return section
        return None

    def get_or_create_section(self, name: str) -> IniSection:
        result = self.find_section(name)
        if result is None:
            result = IniSection(name)
            self.sections.append(result)
        return result

    def get_value(self, section_name: str, key: str, default: str = "") -> str:
        section = self.find_section(section_name)
        if section:
            return section.get_value(key, default)
        return default

    def set_value(self, section_name: str, key: str, value: str) -> "IniFile":
        self.get_or_create_section(section_name).set_value(key, value)
        return self

    def parse(self, lines: list[str]) -> "IniFile":
        """解析 INI 文件的文本行。

        Args:
            lines: INI 文件的各行。

        Returns:
            IniFile: 自身，便于链式调用。

        Raises:
            ProtocolError: 节内出现不含 '=' 的行。
        """
        section: IniSection | None = None

        for line in lines:
            trimmed = line.strip()
            if not trimmed:
                continue

            if trimmed.startswith("["):
                name = trimmed[1:]
                if name.endswith("]"):
                    name = name[:-1]
                section = IniSection(name)
                self.sections.append(section)
            elif section is not None:
                key, sep, value = trimmed.partition("=")
                if not sep:
                    raise ProtocolError(f"INI 行格式错误 (缺少 '='): {trimmed!r}")
                section.lines.append(IniLine(key, value))
            else:
                logger.debug(f"忽略节外的 INI 行: {trimmed!r}")

        return self

    @classmethod
    def from_lines(cls, lines: list[str]) -> "IniFile":
        return cls().parse(lines)

    def __str__(self) -> str:
        return "\n".join(str(section) for section in self.sections)
