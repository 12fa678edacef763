# tests/test_network.py
"""
测试 NetworkClient: 使用本地 asyncio 服务器模拟 IRBIS 服务器的
"一请求一连接" 行为。
"""

import asyncio
import socket
from dataclasses import replace

import pytest

from irbis_core.network import NetworkClient, NetworkError


async def _start_server(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, port


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.mark.asyncio
async def test_send_reads_until_close(valid_config):
    """客户端写入完整请求，读取响应直到服务器关闭连接"""
    received = []

    async def handler(reader, writer):
        length = int(await reader.readline())
        received.append(await reader.readexactly(length))
        writer.write(b"A\r\n1\r\n1\r\n")
        writer.write(b"0\r\n")
        await writer.drain()
        writer.close()

    server, port = await _start_server(handler)
    async with server:
        client = NetworkClient(replace(valid_config, port=port))
        data = await client.send(b"5\nhello")

    assert received == [b"hello"]
    assert data == b"A\r\n1\r\n1\r\n0\r\n"


@pytest.mark.asyncio
async def test_each_send_uses_new_connection(valid_config):
    connections = 0

    async def handler(reader, writer):
        nonlocal connections
        connections += 1
        length = int(await reader.readline())
        await reader.readexactly(length)
        writer.write(b"ok")
        writer.close()

    server, port = await _start_server(handler)
    async with server:
        client = NetworkClient(replace(valid_config, port=port))
        assert await client.send(b"1\nx") == b"ok"
        assert await client.send(b"1\ny") == b"ok"

    assert connections == 2


@pytest.mark.asyncio
async def test_connection_refused(valid_config):
    client = NetworkClient(replace(valid_config, port=_free_port()))

    with pytest.raises(NetworkError, match="无法连接"):
        await client.send(b"1\nx")


@pytest.mark.asyncio
async def test_receive_timeout(valid_config):
    """服务器不关闭连接时，读取超时转换为 NetworkError"""
    release = asyncio.Event()

    async def handler(reader, writer):
        await release.wait()
        writer.close()

    server, port = await _start_server(handler)
    async with server:
        client = NetworkClient(replace(valid_config, port=port, timeout=0.2))
        with pytest.raises(NetworkError, match="超时"):
            await client.send(b"1\nx")
        release.set()
