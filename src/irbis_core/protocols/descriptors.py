# src/irbis_core/protocols/descriptors.py
"""
IRBIS 定长位置描述符解析 (Positional Descriptors)

数据库、进程、客户端、用户、服务器统计等响应都是固定顺序的字符串行。
列表型响应以 "条目数量" + "每条目行数" 两行开头，之后按固定步长迭代。

解析策略为尽力而为: 响应过短时在第一个不完整的块处截断，不抛异常。
"""

import logging
from dataclasses import dataclass, field

from ..utils import is_null_or_empty, same_string
from .constants import DEFAULT_WORKSTATION_INI, MFN_LIST_SEPARATOR, TAG_SEPARATOR
from .ini import IniFile
from .menu import MenuFile
from .response import parse_int

logger = logging.getLogger(__name__)


def _parse_mfn_list(line: str) -> list[int]:
    """解析以 0x1E 分隔的 MFN 列表。"""
    return [parse_int(item) for item in line.split(MFN_LIST_SEPARATOR) if item]


def _line(lines: list[str], index: int) -> str:
    return lines[index] if index < len(lines) else ""


@dataclass
class DatabaseInfo:
    """IRBIS 数据库信息。"""

    name: str = ""
    description: str = ""
    max_mfn: int = 0
    logically_deleted_records: list[int] = field(default_factory=list)
    physically_deleted_records: list[int] = field(default_factory=list)
    non_actualized_records: list[int] = field(default_factory=list)
    locked_records: list[int] = field(default_factory=list)
    database_locked: bool = False
    read_only: bool = False

    @classmethod
    def parse_response(cls, lines: list[str]) -> "DatabaseInfo":
        """解析 RECORD_LIST ('0') 命令的响应。

        行布局: 逻辑删除列表, 物理删除列表, 未更新索引列表, 锁定列表,
        最大 MFN, 数据库锁定标志。
        """
        return cls(
            logically_deleted_records=_parse_mfn_list(_line(lines, 0)),
            physically_deleted_records=_parse_mfn_list(_line(lines, 1)),
            non_actualized_records=_parse_mfn_list(_line(lines, 2)),
            locked_records=_parse_mfn_list(_line(lines, 3)),
            max_mfn=parse_int(_line(lines, 4)),
            database_locked=parse_int(_line(lines, 5)) != 0,
        )

    @classmethod
    def parse_menu(cls, menu: MenuFile) -> list["DatabaseInfo"]:
        """从数据库列表 MNU 文件中获取数据库列表。

        名称以 '-' 开头的数据库为只读。
        """
        result = []
        for entry in menu.entries:
            name = entry.code
            read_only = name.startswith("-")
            if read_only:
                name = name[1:]
            result.append(
                cls(name=name, description=entry.comment, read_only=read_only)
            )
        return result

    def __str__(self) -> str:
        return self.name


@dataclass
class ProcessInfo:
    """IRBIS 服务器上运行中的进程。"""

    number: str = ""
    ip_address: str = ""
    name: str = ""
    client_id: str = ""
    workstation: str = ""
    started: str = ""
    last_command: str = ""
    command_number: str = ""
    process_id: str = ""
    state: str = ""

    FIELD_COUNT = 10

    @classmethod
    def parse(cls, lines: list[str]) -> list["ProcessInfo"]:
        result: list[ProcessInfo] = []
        process_count = parse_int(_line(lines, 0))
        lines_per_process = parse_int(_line(lines, 1))
        if not process_count or not lines_per_process:
            return result

        lines = lines[2:]
        for _ in range(process_count):
            if len(lines) < cls.FIELD_COUNT:
                logger.warning(f"进程列表不完整，已截断为 {len(result)} 项")
                break
            result.append(cls(*lines[: cls.FIELD_COUNT]))
            lines = lines[lines_per_process:]

        return result

    def __str__(self) -> str:
        return f"{self.number} {self.ip_address} {self.name}"


@dataclass
class VersionInfo:
    """IRBIS 服务器版本信息。"""

    organization: str = ""
    version: str = ""
    max_clients: int = 0
    connected_clients: int = 0

    @classmethod
    def parse(cls, lines: list[str]) -> "VersionInfo":
        # 部分服务器不返回授权机构名称
        if len(lines) == 3:
            return cls(
                version=lines[0],
                connected_clients=parse_int(lines[1]),
                max_clients=parse_int(lines[2]),
            )
        return cls(
            organization=_line(lines, 0),
            version=_line(lines, 1),
            connected_clients=parse_int(_line(lines, 2)),
            max_clients=parse_int(_line(lines, 3)),
        )

    def __str__(self) -> str:
        return self.version


@dataclass
class ClientInfo:
    """连接到 IRBIS 服务器的客户端 (不一定是当前客户端)。"""

    number: str = ""
    ip_address: str = ""
    port: str = ""
    name: str = ""
    id: str = ""
    workstation: str = ""
    registered: str = ""
    acknowledged: str = ""
    last_command: str = ""
    command_number: str = ""

    FIELD_COUNT = 10

    @classmethod
    def parse(cls, lines: list[str]) -> "ClientInfo":
        return cls(*(_line(lines, i) for i in range(cls.FIELD_COUNT)))

    def __str__(self) -> str:
        return self.ip_address


@dataclass
class UserInfo:
    """系统注册用户 (client_m.mnu)。"""

    number: str = ""
    name: str = ""
    password: str = ""
    cataloger: str = ""
    reader: str = ""
    circulation: str = ""
    acquisitions: str = ""
    provision: str = ""
    administrator: str = ""

    FIELD_COUNT = 9

    @staticmethod
    def _format_pair(prefix: str, value: str, default: str) -> str:
        if same_string(value, default):
            return ""
        return f"{prefix}={value};"

    def encode(self) -> str:
        """生成提交给服务器的用户表示。"""
        pairs = [
            ("C", self.cataloger),
            ("R", self.reader),
            ("B", self.circulation),
            ("M", self.acquisitions),
            ("K", self.provision),
            ("A", self.administrator),
        ]
        return f"{self.name}\r\n{self.password}\r\n" + "".join(
            self._format_pair(prefix, value, DEFAULT_WORKSTATION_INI[prefix])
            for prefix, value in pairs
        )

    @classmethod
    def parse(cls, lines: list[str]) -> list["UserInfo"]:
        result: list[UserInfo] = []
        user_count = parse_int(_line(lines, 0))
        lines_per_user = parse_int(_line(lines, 1))
        if not user_count or not lines_per_user:
            return result

        lines = lines[2:]
        for _ in range(user_count):
            if len(lines) < cls.FIELD_COUNT:
                break
            result.append(cls(*lines[: cls.FIELD_COUNT]))
            lines = lines[lines_per_user + 1 :]

        return result

    def __str__(self) -> str:
        return self.name


@dataclass
class ServerStat:
    """IRBIS 服务器运行统计。"""

    running_clients: list[ClientInfo] = field(default_factory=list)
    client_count: int = 0
    total_command_count: int = 0

    @classmethod
    def parse(cls, lines: list[str]) -> "ServerStat":
        result = cls(
            total_command_count=parse_int(_line(lines, 0)),
            client_count=parse_int(_line(lines, 1)),
        )
        lines_per_client = parse_int(_line(lines, 2))
        if not lines_per_client:
            return result

        lines = lines[3:]
        for _ in range(result.client_count):
            if len(lines) < ClientInfo.FIELD_COUNT:
                logger.warning(
                    f"客户端列表不完整，已截断为 {len(result.running_clients)} 项"
                )
                break
            result.running_clients.append(ClientInfo.parse(lines))
            lines = lines[lines_per_client + 1 :]

        return result


@dataclass
class TermInfo:
    """检索词典中的词条。"""

    count: int = 0
    text: str = ""

    @classmethod
    def parse(cls, lines: list[str]) -> list["TermInfo"]:
        result = []
        for line in lines:
            if is_null_or_empty(line):
                continue
            count, _, text = line.partition(TAG_SEPARATOR)
            result.append(cls(parse_int(count), text))
        return result

    def __str__(self) -> str:
        return f"{self.count}{TAG_SEPARATOR}{self.text}" if self.text else str(self.count)


@dataclass
class TermPosting:
    """词条在检索索引中的倒排记录 (Posting)。"""

    mfn: int = 0
    tag: int = 0
    occurrence: int = 0
    count: int = 0
    text: str = ""

    @classmethod
    def parse(cls, lines: list[str]) -> list["TermPosting"]:
        result = []
        for line in lines:
            parts = line.split(TAG_SEPARATOR, 4)
            if len(parts) < 4:
                break
            result.append(
                cls(
                    mfn=parse_int(parts[0]),
                    tag=parse_int(parts[1]),
                    occurrence=parse_int(parts[2]),
                    count=parse_int(parts[3]),
                    text=parts[4] if len(parts) > 4 else "",
                )
            )
        return result

    def __str__(self) -> str:
        return TAG_SEPARATOR.join(
            [str(self.mfn), str(self.tag), str(self.occurrence), str(self.count), self.text]
        )


@dataclass
class FoundLine:
    """检索结果中的一行: MFN 及 (可选的) 格式化描述。"""

    mfn: int = 0
    description: str = ""
    serial_number: int = 0

    @classmethod
    def parse(cls, lines: list[str]) -> list["FoundLine"]:
        result = []
        for index, line in enumerate(lines, start=1):
            if not line:
                continue
            mfn, _, description = line.partition(TAG_SEPARATOR)
            result.append(cls(parse_int(mfn), description, index))
        return result

    @staticmethod
    def to_mfn(found: list["FoundLine"]) -> list[int]:
        return [item.mfn for item in found]


@dataclass
class SearchScenario:
    """检索场景 (来自 INI 文件的 [SEARCH] 节)。"""

    name: str = ""
    prefix: str = ""
    dictionary_type: int = 0
    menu_name: str = ""
    old_format: str = ""
    correction: str = ""
    truncation: str = ""
    hint: str = ""
    mod_by_dic_auto: str = ""
    logic: str = ""
    advance: str = ""
    format: str = ""

    @classmethod
    def parse(cls, ini: IniFile) -> list["SearchScenario"]:
        result: list[SearchScenario] = []
        section = ini.find_section("SEARCH")
        if section is None:
            return result

        def get(name: str, index: int) -> str:
            return section.get_value(f"Item{name}{index}")

        count = parse_int(section.get_value("ItemNumb"))
        for i in range(count):
            result.append(
                cls(
                    name=get("Name", i),
                    prefix=get("Pref", i),
                    dictionary_type=parse_int(get("DictionType", i)),
                    menu_name=get("Menu", i),
                    correction=get("ModByDic", i),
                    truncation=get("Tranc", i),
                    hint=get("Hint", i),
                    mod_by_dic_auto=get("ModByDicAuto", i),
                    logic=get("Logic", i),
                    advance=get("Adv", i),
                    format=get("Pft", i),
                )
            )

        return result
