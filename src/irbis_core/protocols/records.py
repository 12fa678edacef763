# src/irbis_core/protocols/records.py
"""
IRBIS 书目记录编解码 (Record Codec)

客户端表示:
    第 0 行: MFN#状态
    第 1 行: 0#版本号
    其余每行一个字段: 标签#值^a子字段^b子字段...

提交到服务器时，各行之间使用 0x1F 0x1E 作为分隔符。
"""

from dataclasses import dataclass, field

from .constants import FIELD_DELIMITER, SUBFIELD_MARKER, TAG_SEPARATOR, RecordStatus
from .response import parse_int


@dataclass
class SubField:
    """子字段。由单字符代码和值组成。"""

    code: str = ""
    value: str = ""

    @classmethod
    def decode(cls, token: str) -> "SubField":
        return cls(code=token[:1], value=token[1:])

    def __str__(self) -> str:
        return f"{SUBFIELD_MARKER}{self.code}{self.value}"


@dataclass
class RecordField:
    """记录字段。由标签、(可选的) 值和任意数量的子字段组成。

    Attributes:
        tag: 字段标签。
        value: 第一个子字段分隔符之前的值。
        subfields: 按顺序排列的子字段。
    """

    tag: int = 0
    value: str = ""
    subfields: list[SubField] = field(default_factory=list)

    def add(self, code: str, value: str) -> "RecordField":
        """追加子字段并返回字段本身，便于链式调用。"""
        self.subfields.append(SubField(code, value))
        return self

    def get_first_subfield(self, code: str) -> SubField | None:
        code = code.lower()
        for subfield in self.subfields:
            if subfield.code.lower() == code:
                return subfield
        return None

    @classmethod
    def decode(cls, line: str) -> "RecordField":
        """从协议表示解码字段。

        Args:
            line: 形如 `200#^aTitle^eSubtitle` 的一行。

        Returns:
            RecordField: 解码后的字段。
        """
        tag, _, body = line.partition(TAG_SEPARATOR)
        result = cls(tag=parse_int(tag))

        if body.startswith(SUBFIELD_MARKER):
            tokens = body.split(SUBFIELD_MARKER)
        else:
            result.value, _, rest = body.partition(SUBFIELD_MARKER)
            tokens = rest.split(SUBFIELD_MARKER)

        for token in tokens:
            if token:
                result.subfields.append(SubField.decode(token))

        return result

    def __str__(self) -> str:
        return f"{self.tag}{TAG_SEPARATOR}{self.value}" + "".join(
            str(sf) for sf in self.subfields
        )


def _split_envelope(lines: list[str]) -> tuple[int, int, int]:
    """解析前两行: (MFN, 状态, 版本号)。"""
    first = lines[0].split(TAG_SEPARATOR) if lines else [""]
    mfn = parse_int(first[0])
    status = parse_int(first[1]) if len(first) > 1 else 0

    second = lines[1].split(TAG_SEPARATOR) if len(lines) > 1 else [""]
    version = parse_int(second[1]) if len(second) > 1 else 0

    return mfn, status, version


@dataclass
class MarcRecord:
    """书目记录。

    Attributes:
        database: 记录所在的数据库名。
        mfn: 记录在数据库中的编号。
        version: 记录版本号。
        status: 状态位 (见 RecordStatus)。
        fields: 按顺序排列的字段。
    """

    database: str = ""
    mfn: int = 0
    version: int = 0
    status: int = 0
    fields: list[RecordField] = field(default_factory=list)

    def add(self, tag: int, value: str = "") -> RecordField:
        """追加字段，返回新建的字段。"""
        result = RecordField(tag, value)
        self.fields.append(result)
        return result

    def decode(self, lines: list[str]) -> "MarcRecord":
        """解码服务器返回的记录行。空行会被跳过。"""
        self.mfn, self.status, self.version = _split_envelope(lines)
        self.fields = [RecordField.decode(line) for line in lines[2:] if line]
        return self

    def encode(self, delimiter: str = FIELD_DELIMITER) -> str:
        """编码为提交给服务器的文本。"""
        result = [
            f"{self.mfn}{TAG_SEPARATOR}{self.status}",
            f"0{TAG_SEPARATOR}{self.version}",
        ]
        result.extend(str(f) for f in self.fields)
        return "".join(line + delimiter for line in result)

    def fm(self, tag: int, code: str = "") -> str | None:
        """获取指定标签的第一个字段值 (或指定代码的子字段值)。"""
        for f in self.fields:
            if f.tag != tag:
                continue
            if not code:
                return f.value
            subfield = f.get_first_subfield(code)
            if subfield:
                return subfield.value
        return None

    def fma(self, tag: int, code: str = "") -> list[str]:
        """获取指定标签所有重复字段的非空值 (或子字段值)。"""
        result = []
        code = code.lower()
        for f in self.fields:
            if f.tag != tag:
                continue
            if code:
                result.extend(
                    sf.value for sf in f.subfields if sf.code.lower() == code and sf.value
                )
            elif f.value:
                result.append(f.value)
        return result

    def get_field(self, tag: int, occurrence: int = 0) -> RecordField | None:
        """获取指定标签的第 occurrence 次重复 (从 0 开始)。"""
        for f in self.fields:
            if f.tag == tag:
                if not occurrence:
                    return f
                occurrence -= 1
        return None

    def get_fields(self, tag: int) -> list[RecordField]:
        return [f for f in self.fields if f.tag == tag]

    @property
    def is_deleted(self) -> bool:
        """记录是否已删除 (逻辑删除或物理删除)。"""
        return bool(self.status & RecordStatus.DELETED)

    @property
    def is_locked(self) -> bool:
        return bool(self.status & RecordStatus.LOCKED)

    def __str__(self) -> str:
        return self.encode()


@dataclass
class RawRecord:
    """未解析字段的记录，字段保留为原始行，按需再解码。"""

    database: str = ""
    mfn: int = 0
    version: int = 0
    status: int = 0
    fields: list[str] = field(default_factory=list)

    def decode(self, lines: list[str]) -> "RawRecord":
        self.mfn, self.status, self.version = _split_envelope(lines)
        self.fields = list(lines[2:])
        return self

    def parse(self) -> MarcRecord:
        """将原始字段解码为完整的 MarcRecord。"""
        record = MarcRecord(
            database=self.database,
            mfn=self.mfn,
            version=self.version,
            status=self.status,
        )
        record.fields = [RecordField.decode(line) for line in self.fields if line]
        return record

    @property
    def is_deleted(self) -> bool:
        return bool(self.status & RecordStatus.DELETED)

    def encode(self, delimiter: str = FIELD_DELIMITER) -> str:
        result = [
            f"{self.mfn}{TAG_SEPARATOR}{self.status}",
            f"0{TAG_SEPARATOR}{self.version}",
            *self.fields,
        ]
        return "".join(line + delimiter for line in result)
