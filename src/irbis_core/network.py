# src/irbis_core/network.py
"""
IRBIS 核心库 - 网络模块 (Network) [Asyncio Edition]

封装 TCP 连接的建立、发送和接收逻辑。
IRBIS 协议每个请求使用一条独立的 TCP 连接:
打开 -> 写入完整请求 -> 读取直到对端关闭 -> 关闭。
该模块向会话层提供纯粹的 bytes 收发接口。
"""

import asyncio
import logging

from .config import IrbisConfig
from .exceptions import NetworkError

logger = logging.getLogger(__name__)


class NetworkClient:
    """
    封装 asyncio TCP 操作的客户端。
    """

    def __init__(self, config: IrbisConfig):
        self.config = config

    async def send(self, packet: bytes) -> bytes:
        """
        发送请求包并读取完整响应 (直到服务器关闭连接)。

        Args:
            packet: 已编码的请求包。

        Returns:
            bytes: 完整的响应字节流。

        Raises:
            NetworkError: 连接、写入、读取失败或超时。
        """
        target = (self.config.host, self.config.port)
        timeout = self.config.timeout

        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(*target), timeout=timeout
            )
        except asyncio.TimeoutError:
            raise NetworkError(f"连接超时 {target} ({timeout}s)") from None
        except OSError as e:
            raise NetworkError(f"无法连接到服务器 {target}: {e}") from e

        try:
            writer.write(packet)
            await asyncio.wait_for(writer.drain(), timeout=timeout)
            logger.debug(f"已发送 {len(packet)} 字节 -> {target}")

            data = await asyncio.wait_for(reader.read(), timeout=timeout)
            logger.debug(f"已接收 {len(data)} 字节 <- {target}")
            return data

        except asyncio.TimeoutError:
            raise NetworkError(f"接收超时 ({timeout}s)") from None
        except OSError as e:
            raise NetworkError(f"通信错误: {e}") from e
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"关闭连接时出错 (已忽略): {e}")
