# src/irbis_core/protocols/menu.py
"""
IRBIS MNU 文件 (菜单/目录) 编解码

MNU 文件由成对的行组成: 代码, 注释。
代码为空、代码本身为 '*****'，或代码从第 5 个字符起为 '*****' 时，列表结束。
"""

from dataclasses import dataclass, field

from ..utils import same_string
from .constants import MENU_STOP_MARKER, MENU_TRIM_CHARS


@dataclass
class MenuEntry:
    """菜单中的一对行。"""

    code: str = ""
    comment: str = ""

    def __str__(self) -> str:
        return f"{self.code} - {self.comment}"


@dataclass
class MenuFile:
    """MNU 文件，由 MenuEntry 组成。"""

    entries: list[MenuEntry] = field(default_factory=list)

    def add(self, code: str, comment: str) -> "MenuFile":
        self.entries.append(MenuEntry(code, comment))
        return self

    @staticmethod
    def trim_code(code: str) -> str:
        """去掉代码两端的 '-', '=', ':' 字符。"""
        return code.strip(MENU_TRIM_CHARS)

    def _find(self, code: str, normalize=lambda c: c) -> MenuEntry | None:
        for entry in self.entries:
            if same_string(normalize(entry.code), code):
                return entry
        return None

    def get_entry(self, code: str) -> MenuEntry | None:
        """查找代码对应的条目。

        依次尝试: 原样匹配、去空白后匹配、去标点后匹配 (均忽略大小写)。
        第三轮中条目代码同样去掉两端标点再比较。
        """
        found = self._find(code)
        if found:
            return found

        code = code.strip()
        found = self._find(code)
        if found:
            return found

        return self._find(
            self.trim_code(code), lambda c: self.trim_code(c.strip())
        )

    def get_value(self, code: str, default: str = "") -> str:
        entry = self.get_entry(code)
        return entry.comment if entry else default

    def parse(self, lines: list[str]) -> "MenuFile":
        """解析 MNU 文件的文本行 (两行一组)。"""
        for i in range(0, len(lines), 2):
            code = lines[i]
            if not code or MENU_STOP_MARKER in (code, code[5:]):
                break
            comment = lines[i + 1] if i + 1 < len(lines) else ""
            self.entries.append(MenuEntry(code, comment))
        return self

    @classmethod
    def from_lines(cls, lines: list[str]) -> "MenuFile":
        return cls().parse(lines)

    def __str__(self) -> str:
        return "".join(f"{entry}\n" for entry in self.entries)
