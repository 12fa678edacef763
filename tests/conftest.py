# tests/conftest.py
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# 确保 src 目录在 sys.path 中
src_path = Path(__file__).resolve().parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from irbis_core.config import IrbisConfig
from irbis_core.core import IrbisConnection
from irbis_core.protocols.query import ConnectionIdentity
from irbis_core.state import ConnectionStatus


def build_response(
    body: list[str],
    command: str = "A",
    client_id: int = 123456,
    query_id: int = 1,
    encoding: str = "cp1251",
) -> bytes:
    """构造服务器响应: 命令回显、客户端 ID、请求 ID、7 行保留，之后是 body。"""
    header = [command, str(client_id), str(query_id)] + [""] * 7
    return "\r\n".join(header + body).encode(encoding)


@pytest.fixture
def make_response():
    """[Fixture] 返回构造响应字节流的函数。"""
    return build_response


@pytest.fixture
def valid_config():
    """
    [Fixture] 返回一个测试用的 IrbisConfig 对象。
    """
    return IrbisConfig(
        username="librarian",
        password="secret",
        host="127.0.0.1",
        port=6666,
        database="IBIS",
        workstation="C",
        timeout=2.0,
    )


@pytest.fixture
def identity():
    return ConnectionIdentity(
        workstation="C",
        client_id=123456,
        query_id=1,
        username="librarian",
        password="secret",
    )


@pytest.fixture
def net():
    """[Fixture] 传输层 Mock：send 必须是 AsyncMock。"""
    client = MagicMock()
    client.send = AsyncMock()
    return client


@pytest.fixture
def connection(valid_config, net):
    """返回一个未连接的 IrbisConnection，网络层已 Mock。"""
    return IrbisConnection(valid_config, net_client=net)


@pytest.fixture
def connected(connection):
    """返回一个已处于 CONNECTED 状态的 IrbisConnection。"""
    connection.state.client_id = 123456
    connection.state.query_id = 5
    connection.state.status = ConnectionStatus.CONNECTED
    return connection
