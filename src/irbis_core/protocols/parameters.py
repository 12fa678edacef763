# src/irbis_core/protocols/parameters.py
"""
IRBIS 命令参数 (Command Parameters)

检索、词典、倒排记录和表格打印命令使用的参数对象。
数据库名为空时，使用连接的当前数据库。
"""

from dataclasses import dataclass, field


@dataclass
class SearchParameters:
    """记录检索参数。

    Attributes:
        database: 数据库名。
        expression: 词典检索表达式。
        number_of_records: 需要返回的记录数 (0 表示由服务器决定)。
        first_record: 第一条记录的序号 (从 1 开始)。
        format: 用于格式化结果的格式 (为空则只返回 MFN)。
        min_mfn: 最小 MFN。
        max_mfn: 最大 MFN。
        sequential: 顺序检索表达式。
    """

    database: str = ""
    expression: str = ""
    number_of_records: int = 0
    first_record: int = 1
    format: str = ""
    min_mfn: int = 0
    max_mfn: int = 0
    sequential: str = ""


@dataclass
class TermParameters:
    """词典读取参数。"""

    database: str = ""
    start_term: str = ""
    number_of_terms: int = 0
    reverse_order: bool = False
    format: str = ""


@dataclass
class PostingParameters:
    """倒排记录读取参数。"""

    database: str = ""
    first_posting: int = 1
    format: str = ""
    number_of_postings: int = 0
    term: str = ""
    list_of_terms: list[str] = field(default_factory=list)


@dataclass
class TableDefinition:
    """表格打印 (PRINT) 命令的参数。"""

    database: str = ""
    table: str = ""
    mode: str = ""
    search_query: str = ""
    min_mfn: int = 0
    max_mfn: int = 0
    sequential_query: str = ""

    def __str__(self) -> str:
        return self.table
