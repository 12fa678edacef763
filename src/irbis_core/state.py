# File: src/irbis_core/state.py
"""
IRBIS 核心库 - 状态模块

负责定义和存储所有易变的会话状态。
本模块不包含业务逻辑，仅作为数据容器供 Connection 读写。
"""

from dataclasses import dataclass
from enum import Enum, auto


class ConnectionStatus(Enum):
    """连接的生命周期状态枚举。

    状态流转示意:
    IDLE -> CONNECTED -> DISCONNECTED
      |         |
      v         v
    ERROR     ERROR
    """

    IDLE = auto()
    """初始状态，连接对象已实例化但尚未登录。"""

    CONNECTED = auto()
    """已在服务器上注册 (REGISTER_CLIENT 成功)。"""

    DISCONNECTED = auto()
    """已注销。"""

    ERROR = auto()
    """发生了不可恢复的错误 (如网络故障、登录被拒绝)。"""


@dataclass
class ConnectionState:
    """存储 IRBIS 会话的易变状态数据。

    Attributes:
        client_id: 客户端 ID，登录时随机生成。
        query_id: 请求序号，每次成功发出请求后自增。
        status: 当前连接状态。
        interval: 服务器建议的 NOP 确认间隔 (分钟)。
        ini_text: 登录响应中返回的用户 INI 文本。
        last_error: 最近一次错误的描述。
    """

    client_id: int = 0
    query_id: int = 0

    status: ConnectionStatus = ConnectionStatus.IDLE
    interval: int = 0
    ini_text: str = ""
    last_error: str = ""

    @property
    def is_connected(self) -> bool:
        return self.status == ConnectionStatus.CONNECTED
