# File: src/irbis_core/core.py
"""
IRBIS 连接 (Connection)

职责：
1. 资源组装：State + Network + Config。
2. 会话身份：客户端 ID、单调递增的请求 ID、凭据。
3. 命令分发：每个命令 = 构建请求 -> execute -> 校验返回码 -> 解析结果。

协议严格同步：同一连接上同时只有一个请求在途。
连接对象内部不加锁，并发调用需由调用方自行串行化。
"""

import logging
import random

from .config import IrbisConfig
from .exceptions import IrbisError, ServerError, StateError
from .network import NetworkClient
from .protocols import constants
from .protocols.constants import Command
from .protocols.descriptors import (
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
from .protocols.ini import IniFile
from .protocols.menu import MenuFile
from .protocols.parameters import (
    PostingParameters,
    SearchParameters,
    TableDefinition,
    TermParameters,
)
from .protocols.query import ClientQuery, ConnectionIdentity
from .protocols.records import MarcRecord, RawRecord
from .protocols.response import ServerResponse
from .protocols.return_codes import (
    CLIENT_ALREADY_REGISTERED,
    READ_RECORD_CODES,
    READ_TERMS_CODES,
)
from .state import ConnectionState, ConnectionStatus
from .utils import irbis_to_dos, irbis_to_lines, prepare_format

logger = logging.getLogger(__name__)

# 客户端 ID 的取值范围
CLIENT_ID_MIN = 100000
CLIENT_ID_MAX = 900000

# 客户端 ID 冲突 (-3337) 时重新注册的最大次数
MAX_REGISTER_ATTEMPTS = 5


class IrbisConnection:
    """IRBIS64 服务器连接 (Async)。"""

    def __init__(
        self,
        config: IrbisConfig,
        net_client: NetworkClient | None = None,
    ) -> None:
        """初始化连接。

        Args:
            config: 连接配置。
            net_client: 可选的传输层实现，需提供 `async send(bytes) -> bytes`。
        """
        self.config = config
        self.net_client = net_client or NetworkClient(config)
        self._state = ConnectionState()
        self.database = config.database

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state.is_connected

    # =====================================================================
    # 分发
    # =====================================================================

    def _identity(self) -> ConnectionIdentity:
        return ConnectionIdentity(
            workstation=self.config.workstation,
            client_id=self._state.client_id,
            query_id=self._state.query_id,
            username=self.config.username,
            password=self.config.password,
        )

    def new_query(self, command: str) -> ClientQuery:
        """以当前会话身份创建请求。"""
        return ClientQuery(self._identity(), command)

    def _require_connection(self) -> None:
        if not self._state.is_connected:
            raise StateError("尚未连接到服务器")

    async def execute(self, query: ClientQuery) -> ServerResponse:
        """发送请求并解析响应。

        请求成功送达后请求 ID 自增一次 (即使服务器随后报告错误)。

        Raises:
            NetworkError: 传输层失败。
            ProtocolError: 服务器返回空响应。
        """
        raw = await self.net_client.send(query.encode())
        self._state.query_id += 1
        return ServerResponse(raw)

    @staticmethod
    def _add_format(query: ClientQuery, format_text: str) -> ClientQuery:
        """追加格式参数：命名格式 (@name) 用 ANSI，动态格式清洗后用 UTF 透传。"""
        if not format_text or format_text.startswith("@"):
            return query.add_ansi(format_text)
        return query.add_utf(prepare_format(format_text))

    # =====================================================================
    # 会话
    # =====================================================================

    async def connect(self) -> str:
        """在服务器上注册客户端。

        客户端 ID 冲突 (-3337) 时换一个随机 ID 重新注册。

        Returns:
            str: 服务器返回的用户 INI 文本。

        Raises:
            ServerError: 服务器拒绝登录 (如密码错误)。
            NetworkError: 网络通信异常。
        """
        if self._state.is_connected:
            return self._state.ini_text

        for attempt in range(1, MAX_REGISTER_ATTEMPTS + 1):
            self._state.client_id = random.randint(CLIENT_ID_MIN, CLIENT_ID_MAX)
            self._state.query_id = 1

            query = self.new_query(Command.REGISTER_CLIENT)
            query.add_ansi(self.config.username).new_line()
            query.add_ansi(self.config.password)

            try:
                response = await self.execute(query)
            except IrbisError as e:
                self._state.status = ConnectionStatus.ERROR
                self._state.last_error = str(e)
                raise

            code = response.get_return_code()
            if code != CLIENT_ALREADY_REGISTERED:
                break
            logger.warning(
                f"客户端 ID {self._state.client_id} 已被占用，重新注册 ({attempt})"
            )

        if code < 0:
            error = ServerError(code)
            self._state.status = ConnectionStatus.ERROR
            self._state.last_error = str(error)
            raise error

        self._state.interval = response.read_integer()
        self._state.ini_text = "\n".join(response.read_remaining_ansi_lines())
        self._state.status = ConnectionStatus.CONNECTED
        logger.info(
            f"已连接到 {self.config.host}:{self.config.port} "
            f"(user={self.config.username}, client_id={self._state.client_id})"
        )
        return self._state.ini_text

    async def disconnect(self) -> None:
        """从服务器注销。未连接时直接返回。"""
        if not self._state.is_connected:
            return

        query = self.new_query(Command.UNREGISTER_CLIENT)
        query.add_ansi(self.config.username)
        try:
            await self.execute(query)
        finally:
            self._state.status = ConnectionStatus.DISCONNECTED
            logger.info(f"已断开连接 (client_id={self._state.client_id})")

    async def no_op(self) -> None:
        """空操作，用于定期向服务器确认连接仍然有效。"""
        self._require_connection()
        await self.execute(self.new_query(Command.NOP))

    async def __aenter__(self) -> "IrbisConnection":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    # =====================================================================
    # 记录
    # =====================================================================

    async def _read_record_lines(self, mfn: int, database: str) -> list[str]:
        query = self.new_query(Command.READ_RECORD)
        query.add_ansi(database).new_line()
        query.add(mfn).new_line()
        response = await self.execute(query)
        response.check_return_code(READ_RECORD_CODES)
        return response.read_remaining_utf_lines()

    async def read_record(self, mfn: int, database: str = "") -> MarcRecord:
        """读取指定 MFN 的记录。

        已删除、已锁定或缺少上一版本的记录不会抛出异常，
        调用方应检查返回记录的 status / is_deleted。
        """
        self._require_connection()
        database = database or self.database
        result = MarcRecord(database=database)
        result.decode(await self._read_record_lines(mfn, database))
        return result

    async def read_raw_record(self, mfn: int, database: str = "") -> RawRecord:
        """读取指定 MFN 的记录，字段保持未解析状态。"""
        self._require_connection()
        database = database or self.database
        result = RawRecord(database=database)
        result.decode(await self._read_record_lines(mfn, database))
        return result

    async def write_record(
        self,
        record: MarcRecord,
        lock: bool = False,
        actualize: bool = True,
    ) -> int:
        """保存记录 (新建或修改)。

        服务器返回保存后的记录，MFN、状态、版本号及字段会回写到 record。

        Returns:
            int: 数据库新的最大 MFN。
        """
        self._require_connection()
        database = record.database or self.database

        query = self.new_query(Command.UPDATE_RECORD)
        query.add_ansi(database).new_line()
        query.add(lock).new_line()
        query.add(actualize).new_line()
        query.add_utf(record.encode())
        response = await self.execute(query)
        max_mfn = response.check_return_code()

        first_line = response.read_utf()
        if first_line:
            record.decode([first_line, *irbis_to_lines(response.read_utf())])
        record.database = database
        return max_mfn

    async def delete_record(self, mfn: int, database: str = "") -> None:
        """逻辑删除记录 (设置状态位后重新保存)。"""
        record = await self.read_record(mfn, database)
        record.status |= constants.RecordStatus.LOGICALLY_DELETED
        await self.write_record(record)

    async def actualize_record(self, mfn: int, database: str = "") -> None:
        """更新指定记录的索引。"""
        self._require_connection()
        query = self.new_query(Command.ACTUALIZE_RECORD)
        query.add_ansi(database or self.database).new_line()
        query.add(mfn).new_line()
        response = await self.execute(query)
        response.check_return_code()

    async def unlock_records(self, mfn_list: list[int], database: str = "") -> None:
        self._require_connection()
        query = self.new_query(Command.UNLOCK_RECORDS)
        query.add_ansi(database or self.database).new_line()
        for mfn in mfn_list:
            query.add(mfn).new_line()
        response = await self.execute(query)
        response.check_return_code()

    async def format_record(self, format_text: str, mfn: int, database: str = "") -> str:
        """使用指定格式在服务器端格式化记录。"""
        self._require_connection()
        query = self.new_query(Command.FORMAT_RECORD)
        query.add_ansi(database or self.database).new_line()
        self._add_format(query, format_text).new_line()
        query.add(1).new_line()
        query.add(mfn).new_line()
        response = await self.execute(query)
        response.check_return_code()
        return response.read_remaining_utf_text()

    async def get_max_mfn(self, database: str = "") -> int:
        """获取数据库的最大 MFN (通过返回码传递)。"""
        self._require_connection()
        query = self.new_query(Command.GET_MAX_MFN)
        query.add_ansi(database or self.database)
        response = await self.execute(query)
        return response.check_return_code()

    # =====================================================================
    # 检索与词典
    # =====================================================================

    async def search(self, expression: str) -> list[int]:
        """简单检索，返回命中记录的 MFN 列表。"""
        found = await self.search_ex(SearchParameters(expression=expression))
        return FoundLine.to_mfn(found)

    async def search_ex(self, parameters: SearchParameters) -> list[FoundLine]:
        self._require_connection()
        query = self.new_query(Command.SEARCH)
        query.add_ansi(parameters.database or self.database).new_line()
        query.add_utf(parameters.expression).new_line()
        query.add(parameters.number_of_records).new_line()
        query.add(parameters.first_record).new_line()
        self._add_format(query, parameters.format).new_line()
        query.add(parameters.min_mfn).new_line()
        query.add(parameters.max_mfn).new_line()
        query.add_utf(parameters.sequential).new_line()
        response = await self.execute(query)
        response.check_return_code()

        total = response.read_integer()
        result = FoundLine.parse(response.read_remaining_utf_lines())
        logger.debug(f"search: expression={parameters.expression!r} total={total}")
        return result

    async def read_terms(self, start_term: str, number_of_terms: int = 100) -> list[TermInfo]:
        return await self.read_terms_ex(
            TermParameters(start_term=start_term, number_of_terms=number_of_terms)
        )

    async def read_terms_ex(self, parameters: TermParameters) -> list[TermInfo]:
        self._require_connection()
        command = Command.READ_TERMS_REVERSE if parameters.reverse_order else Command.READ_TERMS
        query = self.new_query(command)
        query.add_ansi(parameters.database or self.database).new_line()
        query.add_utf(parameters.start_term).new_line()
        query.add(parameters.number_of_terms).new_line()
        self._add_format(query, parameters.format).new_line()
        response = await self.execute(query)
        response.check_return_code(READ_TERMS_CODES)
        return TermInfo.parse(response.read_remaining_utf_lines())

    async def read_postings(self, parameters: PostingParameters) -> list[TermPosting]:
        self._require_connection()
        query = self.new_query(Command.READ_POSTINGS)
        query.add_ansi(parameters.database or self.database).new_line()
        query.add(parameters.number_of_postings).new_line()
        query.add(parameters.first_posting).new_line()
        self._add_format(query, parameters.format).new_line()
        for term in parameters.list_of_terms or [parameters.term]:
            query.add_utf(term).new_line()
        response = await self.execute(query)
        response.check_return_code(READ_TERMS_CODES)
        return TermPosting.parse(response.read_remaining_utf_lines())

    # =====================================================================
    # 文件
    # =====================================================================

    async def read_text_file(self, specification: str) -> str:
        """读取服务器上的文本文件，如 `3.IBIS.brief.pft`。

        该命令的响应中没有返回码，文件内容直接跟在包头之后。
        """
        self._require_connection()
        query = self.new_query(Command.READ_DOCUMENT)
        query.add_ansi(specification).new_line()
        response = await self.execute(query)
        return irbis_to_dos(response.read_ansi())

    async def read_ini_file(self, specification: str) -> IniFile | None:
        text = await self.read_text_file(specification)
        if not text.strip():
            return None
        return IniFile.from_lines(text.split("\n"))

    async def read_menu_file(self, specification: str) -> MenuFile | None:
        text = await self.read_text_file(specification)
        if not text:
            return None
        return MenuFile.from_lines(text.split("\n"))

    async def read_search_scenario(self, specification: str) -> list[SearchScenario]:
        ini = await self.read_ini_file(specification)
        if ini is None:
            return []
        return SearchScenario.parse(ini)

    async def list_files(self, specification: str) -> list[str]:
        self._require_connection()
        query = self.new_query(Command.LIST_FILES)
        query.add_ansi(specification).new_line()
        response = await self.execute(query)

        result = []
        for line in response.read_remaining_ansi_lines():
            result.extend(name for name in irbis_to_lines(line) if name.strip())
        return result

    async def update_ini_file(self, lines: list[str]) -> None:
        """更新服务器上当前用户 INI 文件中的行。"""
        self._require_connection()
        query = self.new_query(Command.UPDATE_INI_FILE)
        for line in lines:
            query.add_ansi(line).new_line()
        await self.execute(query)

    async def print_table(self, definition: TableDefinition) -> str:
        """在服务器端按表格模板输出记录。"""
        self._require_connection()
        query = self.new_query(Command.PRINT)
        query.add_ansi(definition.database or self.database).new_line()
        query.add_ansi(definition.table).new_line()
        query.add_ansi("").new_line()  # 表头 (不使用)
        query.add_ansi(definition.mode).new_line()
        query.add_utf(definition.search_query).new_line()
        query.add(definition.min_mfn).new_line()
        query.add(definition.max_mfn).new_line()
        query.add_utf(definition.sequential_query).new_line()
        query.add_ansi("")  # MFN 列表 (不使用)
        response = await self.execute(query)
        return response.read_remaining_utf_text()

    # =====================================================================
    # 数据库
    # =====================================================================

    async def get_database_info(self, database: str = "") -> DatabaseInfo:
        self._require_connection()
        database = database or self.database
        query = self.new_query(Command.RECORD_LIST)
        query.add_ansi(database)
        response = await self.execute(query)
        response.check_return_code()
        result = DatabaseInfo.parse_response(response.read_remaining_ansi_lines())
        result.name = database
        return result

    async def list_databases(
        self, specification: str = constants.DEFAULT_DATABASE_LIST
    ) -> list[DatabaseInfo]:
        menu = await self.read_menu_file(specification)
        if menu is None:
            return []
        return DatabaseInfo.parse_menu(menu)

    async def _database_command(self, command: str, database: str) -> None:
        self._require_connection()
        query = self.new_query(command)
        query.add_ansi(database or self.database).new_line()
        response = await self.execute(query)
        response.check_return_code()

    async def create_database(
        self, database: str, description: str, reader_access: bool = True
    ) -> None:
        self._require_connection()
        query = self.new_query(Command.CREATE_DATABASE)
        query.add_ansi(database).new_line()
        query.add_ansi(description).new_line()
        query.add(reader_access).new_line()
        response = await self.execute(query)
        response.check_return_code()

    async def delete_database(self, database: str) -> None:
        await self._database_command(Command.DELETE_DATABASE, database)

    async def create_dictionary(self, database: str = "") -> None:
        await self._database_command(Command.CREATE_DICTIONARY, database)

    async def reload_dictionary(self, database: str = "") -> None:
        await self._database_command(Command.RELOAD_DICTIONARY, database)

    async def reload_master_file(self, database: str = "") -> None:
        await self._database_command(Command.RELOAD_MASTER_FILE, database)

    async def truncate_database(self, database: str = "") -> None:
        await self._database_command(Command.EMPTY_DATABASE, database)

    async def unlock_database(self, database: str = "") -> None:
        await self._database_command(Command.UNLOCK_DATABASE, database)

    # =====================================================================
    # 服务器管理
    # =====================================================================

    async def _server_lines(self, command: str) -> list[str]:
        self._require_connection()
        response = await self.execute(self.new_query(command))
        response.check_return_code()
        return response.read_remaining_ansi_lines()

    async def get_server_version(self) -> VersionInfo:
        return VersionInfo.parse(await self._server_lines(Command.GET_SERVER_VERSION))

    async def get_server_stat(self) -> ServerStat:
        return ServerStat.parse(await self._server_lines(Command.GET_SERVER_STAT))

    async def list_processes(self) -> list[ProcessInfo]:
        return ProcessInfo.parse(await self._server_lines(Command.GET_PROCESS_LIST))

    async def get_user_list(self) -> list[UserInfo]:
        return UserInfo.parse(await self._server_lines(Command.GET_USER_LIST))

    async def update_user_list(self, users: list[UserInfo]) -> None:
        self._require_connection()
        query = self.new_query(Command.SET_USER_LIST)
        for user in users:
            query.add_ansi(user.encode()).new_line()
        response = await self.execute(query)
        response.check_return_code()

    async def restart_server(self) -> None:
        """重启服务器 (不断开已连接的客户端)。"""
        self._require_connection()
        await self.execute(self.new_query(Command.RESTART_SERVER))
