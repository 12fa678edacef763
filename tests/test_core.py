# tests/test_core.py
"""
测试 IrbisConnection 的会话管理与命令分发 [Asyncio Edition]。
网络层使用 AsyncMock，响应由 conftest.build_response 构造。
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from irbis_core import core as core_module
from irbis_core.exceptions import (
    NetworkError,
    ProtocolError,
    ServerError,
    StateError,
)
from irbis_core.protocols.parameters import (
    SearchParameters,
    TableDefinition,
    TermParameters,
)
from irbis_core.protocols.records import MarcRecord
from irbis_core.state import ConnectionStatus


def sent_lines(net: MagicMock, call_index: int = -1) -> list[bytes]:
    """取出第 call_index 次发送的请求正文，按 LF 拆分。"""
    packet = net.send.call_args_list[call_index].args[0]
    prefix, _, body = packet.partition(b"\n")
    assert int(prefix) == len(body)
    return body.split(b"\n")


# --- 会话 ---


@pytest.mark.asyncio
async def test_connect_success(connection, net, make_response, monkeypatch):
    monkeypatch.setattr(core_module.random, "randint", lambda a, b: 111111)
    net.send.return_value = make_response(
        ["0", "30", "[Main]", "User=librarian"], client_id=111111
    )

    ini_text = await connection.connect()

    assert ini_text == "[Main]\nUser=librarian"
    assert connection.connected
    assert connection.state.interval == 30
    assert connection.state.client_id == 111111
    assert connection.state.query_id == 2

    lines = sent_lines(net)
    assert lines[:7] == [b"A", b"C", b"A", b"111111", b"1", b"secret", b"librarian"]
    assert lines[7:] == [b"", b"", b"", b"librarian", b"secret"]


@pytest.mark.asyncio
async def test_connect_is_idempotent(connected, net):
    connected.state.ini_text = "cached"
    assert await connected.connect() == "cached"
    net.send.assert_not_called()


@pytest.mark.asyncio
async def test_connect_retries_on_client_id_collision(
    connection, net, make_response, monkeypatch
):
    """-3337 (客户端已注册) 时换一个 ID 重新注册"""
    ids = iter([111111, 222222])
    monkeypatch.setattr(core_module.random, "randint", lambda a, b: next(ids))
    net.send.side_effect = [
        make_response(["-3337"]),
        make_response(["0", "10"]),
    ]

    await connection.connect()

    assert net.send.call_count == 2
    assert sent_lines(net, 0)[3] == b"111111"
    assert sent_lines(net, 1)[3] == b"222222"
    # 每次重新注册都从 1 开始编号
    assert sent_lines(net, 1)[4] == b"1"
    assert connection.state.client_id == 222222


@pytest.mark.asyncio
async def test_connect_gives_up_after_max_attempts(connection, net, make_response):
    net.send.side_effect = lambda packet: make_response(["-3337"])

    with pytest.raises(ServerError) as exc_info:
        await connection.connect()

    assert exc_info.value.return_code == -3337
    assert net.send.call_count == core_module.MAX_REGISTER_ATTEMPTS


@pytest.mark.asyncio
async def test_connect_rejected(connection, net, make_response):
    net.send.return_value = make_response(["-4444"])

    with pytest.raises(ServerError) as exc_info:
        await connection.connect()

    assert exc_info.value.return_code == -4444
    assert exc_info.value.description == "Неверный пароль"
    assert connection.state.status == ConnectionStatus.ERROR
    assert "-4444" in connection.state.last_error


@pytest.mark.asyncio
async def test_connect_network_error(connection, net):
    net.send.side_effect = NetworkError("无法连接到服务器")

    with pytest.raises(NetworkError):
        await connection.connect()

    assert connection.state.status == ConnectionStatus.ERROR


@pytest.mark.asyncio
async def test_disconnect(connected, net, make_response):
    net.send.return_value = make_response(["0"], command="B")

    await connected.disconnect()

    assert connected.state.status == ConnectionStatus.DISCONNECTED
    lines = sent_lines(net)
    assert lines[0] == b"B"
    assert lines[-1] == b"librarian"


@pytest.mark.asyncio
async def test_disconnect_when_not_connected(connection, net):
    await connection.disconnect()
    net.send.assert_not_called()


@pytest.mark.asyncio
async def test_disconnect_marks_state_even_on_failure(connected, net):
    net.send.side_effect = NetworkError("通信错误")

    with pytest.raises(NetworkError):
        await connected.disconnect()

    assert connected.state.status == ConnectionStatus.DISCONNECTED


@pytest.mark.asyncio
async def test_context_manager(connection, net, make_response):
    net.send.side_effect = [
        make_response(["0", "30"]),
        make_response(["0"], command="N"),
        make_response(["0"], command="B"),
    ]

    async with connection as conn:
        assert conn.connected
        await conn.no_op()

    assert not connection.connected
    assert [sent_lines(net, i)[0] for i in range(3)] == [b"A", b"N", b"B"]


@pytest.mark.asyncio
async def test_commands_require_connection(connection, net):
    with pytest.raises(StateError):
        await connection.read_record(1)
    with pytest.raises(StateError):
        await connection.get_max_mfn()
    net.send.assert_not_called()


@pytest.mark.asyncio
async def test_query_id_increments_even_on_server_error(connected, net, make_response):
    net.send.side_effect = [
        make_response(["-140"], command="C"),
        make_response(["12"], command="O"),
    ]

    with pytest.raises(ServerError):
        await connected.read_record(999)
    assert connected.state.query_id == 6

    await connected.get_max_mfn()
    assert connected.state.query_id == 7
    assert sent_lines(net, 0)[4] == b"5"
    assert sent_lines(net, 1)[4] == b"6"


@pytest.mark.asyncio
async def test_query_id_unchanged_on_network_error(connected, net):
    net.send.side_effect = NetworkError("接收超时")

    with pytest.raises(NetworkError):
        await connected.get_max_mfn()

    assert connected.state.query_id == 5


@pytest.mark.asyncio
async def test_empty_response_is_protocol_error(connected, net):
    net.send.return_value = b""

    with pytest.raises(ProtocolError):
        await connected.no_op()


@pytest.mark.asyncio
async def test_truncated_response_is_protocol_error(connected, net):
    """被截断的应答不能被当作返回码为 0 的成功结果"""
    net.send.return_value = b"O\r\n123456\r\n5"

    with pytest.raises(ProtocolError):
        await connected.get_max_mfn()

    # 请求已送达，请求 ID 照常递增
    assert connected.state.query_id == 6


# --- 记录 ---


@pytest.mark.asyncio
async def test_read_record(connected, net, make_response):
    net.send.return_value = make_response(
        ["0", "15#32", "0#3", "200#^aTitle^fAuthor", "920#PAZK"], command="C"
    )

    record = await connected.read_record(15)

    assert record.database == "IBIS"
    assert (record.mfn, record.status, record.version) == (15, 32, 3)
    assert record.fm(200, "a") == "Title"
    assert not record.is_deleted

    lines = sent_lines(net)
    assert lines[10:12] == [b"IBIS", b"15"]


@pytest.mark.asyncio
async def test_read_record_logically_deleted_is_not_error(connected, net, make_response):
    """-600 对读取记录而言是可接受的返回码，调用方通过状态位判断"""
    net.send.return_value = make_response(
        ["-600", "15#1", "0#3", "200#^aTitle"], command="C"
    )

    record = await connected.read_record(15, "RDR")

    assert record.is_deleted
    assert record.database == "RDR"


@pytest.mark.asyncio
async def test_read_record_hard_error(connected, net, make_response):
    net.send.return_value = make_response(["-140"], command="C")

    with pytest.raises(ServerError) as exc_info:
        await connected.read_record(99999)

    assert exc_info.value.return_code == -140


@pytest.mark.asyncio
async def test_read_raw_record(connected, net, make_response):
    net.send.return_value = make_response(["0", "7#0", "0#1", "920#PAZK"], command="C")

    raw = await connected.read_raw_record(7)

    assert raw.fields == ["920#PAZK"]
    assert raw.parse().fm(920) == "PAZK"


@pytest.mark.asyncio
async def test_write_record(connected, net, make_response):
    record = MarcRecord()
    record.add(200).add("a", "Новая книга")
    # 响应中记录以 UTF-8 返回: 第一行为 MFN#状态，第二行为其余部分
    raw = make_response(["43"], command="D") + b"\r\n" + b"42#0\r\n"
    raw += "0#1\x1f\x1e200#^aНовая книга".encode("utf-8")
    net.send.return_value = raw

    max_mfn = await connected.write_record(record)

    assert max_mfn == 43
    assert record.mfn == 42
    assert record.version == 1
    assert record.database == "IBIS"
    assert record.fm(200, "a") == "Новая книга"

    assert sent_lines(net)[10:13] == [b"IBIS", b"0", b"1"]


@pytest.mark.asyncio
async def test_write_record_encodes_utf(connected, net, make_response):
    record = MarcRecord(database="RDR")
    record.add(10).add("a", "Ж")
    net.send.return_value = make_response(["5"], command="D")

    await connected.write_record(record, lock=True, actualize=False)

    lines = sent_lines(net)
    assert lines[10:13] == [b"RDR", b"1", b"0"]
    assert lines[13] == "0#0\x1f\x1e0#0\x1f\x1e10#^aЖ\x1f\x1e".encode("utf-8")


@pytest.mark.asyncio
async def test_get_max_mfn(connected, net, make_response):
    net.send.return_value = make_response(["120"], command="O")

    assert await connected.get_max_mfn("RDR") == 120
    assert sent_lines(net)[:1] == [b"O"]
    assert sent_lines(net)[-1] == b"RDR"


@pytest.mark.asyncio
async def test_format_record_sanitizes_dynamic_format(connected, net, make_response):
    raw = make_response(["0"], command="G") + b"\r\n" + "Толстой Л. Н.".encode("utf-8")
    net.send.return_value = raw

    text = await connected.format_record("v200^a, /* comment", 15)

    assert text == "Толстой Л. Н."
    lines = sent_lines(net)
    assert lines[10:14] == [b"IBIS", b"v200^a, ", b"1", b"15"]


@pytest.mark.asyncio
async def test_format_record_named_format(connected, net, make_response):
    net.send.return_value = make_response(["0", "brief"], command="G")

    await connected.format_record("@brief", 1)

    assert sent_lines(net)[11] == b"@brief"


# --- 检索与词典 ---


@pytest.mark.asyncio
async def test_search(connected, net, make_response):
    net.send.return_value = make_response(["0", "3", "10", "11", "12"], command="K")

    assert await connected.search('"A=ПУШКИН$"') == [10, 11, 12]

    lines = sent_lines(net)
    assert lines[10] == b"IBIS"
    assert lines[11] == '"A=ПУШКИН$"'.encode("utf-8")


@pytest.mark.asyncio
async def test_search_ex_with_format(connected, net, make_response):
    net.send.return_value = make_response(
        ["0", "2", "10#Пушкин. Сказки", "11#Пушкин. Стихи"],
        command="K",
        encoding="utf-8",
    )

    found = await connected.search_ex(
        SearchParameters(expression="A=$", number_of_records=2, format="@brief")
    )

    assert [(f.mfn, f.description) for f in found] == [
        (10, "Пушкин. Сказки"),
        (11, "Пушкин. Стихи"),
    ]
    assert sent_lines(net)[12:15] == [b"2", b"1", b"@brief"]


@pytest.mark.asyncio
async def test_search_error(connected, net, make_response):
    net.send.return_value = make_response(["-5555"], command="K")

    with pytest.raises(ServerError):
        await connected.search("bad(")


@pytest.mark.asyncio
async def test_read_terms_last_term_is_not_error(connected, net, make_response):
    """-203 (列表中最后一个词条) 对词典读取而言可以接受"""
    net.send.return_value = make_response(
        ["-203", "5#A=ТОЛСТОЙ"], command="H", encoding="utf-8"
    )

    terms = await connected.read_terms("A=ТОЛСТОЙ", 10)

    assert [(t.count, t.text) for t in terms] == [(5, "A=ТОЛСТОЙ")]
    assert sent_lines(net)[0] == b"H"


@pytest.mark.asyncio
async def test_read_terms_reverse(connected, net, make_response):
    net.send.return_value = make_response(["0"], command="P")

    assert await connected.read_terms_ex(TermParameters(start_term="A=", reverse_order=True)) == []
    assert sent_lines(net)[0] == b"P"


# --- 文件 ---


@pytest.mark.asyncio
async def test_read_text_file(connected, net, make_response):
    """该命令没有返回码，文件内容紧跟包头"""
    net.send.return_value = make_response(["line1\x1f\x1eline2\x1f\x1e"], command="L")

    assert await connected.read_text_file("3.IBIS.brief.pft") == "line1\nline2\n"
    assert sent_lines(net)[10] == b"3.IBIS.brief.pft"


@pytest.mark.asyncio
async def test_read_ini_file(connected, net, make_response):
    net.send.return_value = make_response(
        ["[SEARCH]\x1f\x1eItemNumb=1\x1f\x1eItemName0=Автор\x1f\x1eItemPref0=A="],
        command="L",
    )

    scenarios = await connected.read_search_scenario("3.IBIS.search.ini")

    assert [(s.name, s.prefix) for s in scenarios] == [("Автор", "A=")]


@pytest.mark.asyncio
async def test_read_ini_file_missing(connected, net, make_response):
    net.send.return_value = make_response([""], command="L")
    assert await connected.read_ini_file("3.IBIS.none.ini") is None


@pytest.mark.asyncio
async def test_list_databases(connected, net, make_response):
    net.send.return_value = make_response(
        ["IBIS\x1f\x1eКаталог\x1f\x1e-RDR\x1f\x1eЧитатели\x1f\x1e*****"], command="L"
    )

    databases = await connected.list_databases()

    assert [(d.name, d.read_only) for d in databases] == [("IBIS", False), ("RDR", True)]
    assert sent_lines(net)[10] == b"1..dbnam2.mnu"


@pytest.mark.asyncio
async def test_list_files(connected, net, make_response):
    net.send.return_value = make_response(["a.pft\x1f\x1eb.pft", "c.mnu"], command="!")
    assert await connected.list_files("3.IBIS.*.*") == ["a.pft", "b.pft", "c.mnu"]


# --- 数据库与服务器 ---


@pytest.mark.asyncio
async def test_get_database_info(connected, net, make_response):
    net.send.return_value = make_response(["0", "1\x1e2", "", "", "", "100", "0"], command="0")

    info = await connected.get_database_info()

    assert info.name == "IBIS"
    assert info.logically_deleted_records == [1, 2]
    assert info.max_mfn == 100
    assert not info.database_locked


@pytest.mark.asyncio
async def test_database_command_raises_on_error(connected, net, make_response):
    net.send.return_value = make_response(["-300"], command="U")

    with pytest.raises(ServerError):
        await connected.unlock_database("IBIS")


@pytest.mark.asyncio
async def test_get_server_version(connected, net, make_response):
    net.send.return_value = make_response(["0", "Library", "64.2020.1", "2", "50"], command="1")

    version = await connected.get_server_version()

    assert version.version == "64.2020.1"
    assert version.max_clients == 50


@pytest.mark.asyncio
async def test_list_processes(connected, net, make_response):
    block = ["1", "127.0.0.1", "librarian", "123456", "C", "t", "K", "3", "4242", "Active"]
    net.send.return_value = make_response(["0", "1", "10"] + block, command="+3")

    processes = await connected.list_processes()

    assert len(processes) == 1
    assert processes[0].process_id == "4242"
    assert sent_lines(net)[0] == b"+3"


@pytest.mark.asyncio
async def test_custom_transport(valid_config, make_response):
    """任何提供 async send(bytes) -> bytes 的对象都可以作为传输层"""
    from irbis_core.core import IrbisConnection

    transport = MagicMock()
    transport.send = AsyncMock(return_value=make_response(["0", "5"]))

    conn = IrbisConnection(valid_config, net_client=transport)
    await conn.connect()

    assert conn.connected
    transport.send.assert_awaited_once()


@pytest.mark.asyncio
async def test_print_table(connected, net, make_response):
    """表头与 MFN 列表两行固定为空，其余参数按顺序发送"""
    raw = make_response([], command="7") + b"\r\n" + "<table/>".encode("utf-8")
    net.send.return_value = raw

    text = await connected.print_table(
        TableDefinition(
            table="@tabf1w",
            mode="0",
            search_query='"A=ПУШКИН$"',
            min_mfn=1,
            max_mfn=100,
        )
    )

    assert text == "<table/>"
    assert sent_lines(net)[10:19] == [
        b"IBIS",
        b"@tabf1w",
        b"",
        b"0",
        '"A=ПУШКИН$"'.encode("utf-8"),
        b"1",
        b"100",
        b"",
        b"",
    ]


def test_table_definition_has_no_unsent_fields():
    with pytest.raises(TypeError):
        TableDefinition(headers=["Автор"])
    with pytest.raises(TypeError):
        TableDefinition(mfn_list=[1, 2])
