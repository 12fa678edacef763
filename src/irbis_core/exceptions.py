# File: src/irbis_core/exceptions.py
"""
IRBIS 核心库 - 异常体系 (Exceptions)

定义库内统一使用的异常类，以便上层应用能进行精细的错误处理。
"""


class IrbisError(Exception):
    """IRBIS 核心库的所有内部异常的基类。

    上层应用可以通过捕获此异常来处理所有由 irbis-core 抛出的已知错误。
    """

    pass


class ConfigError(IrbisError):
    """配置加载或校验失败。

    触发场景:
    1. 缺少必要字段 (如 username/password)。
    2. 字段格式错误 (如端口不是整数、连接字符串含未知键)。
    3. 找不到配置文件或环境变量。
    """

    pass


class NetworkError(IrbisError):
    """网络层面的错误 (I/O 级别)。

    触发场景:
    1. 无法建立 TCP 连接 (拒绝连接、DNS 解析失败)。
    2. 写入或读取超时。
    3. 读取过程中连接被重置。

    注意: 核心库从不自动重试，是否重试由上层决定。
    """

    pass


class ProtocolError(IrbisError):
    """协议交互错误 (逻辑级别)。

    触发场景:
    1. 响应包长度不足以容纳固定包头。
    2. 结构化文本违反格式 (如 INI 键值行缺少 '=')。
    """

    pass


class StateError(IrbisError):
    """会话状态错误。

    触发场景:
    1. 在未连接状态下执行服务器命令。
    """

    pass


class ServerError(IrbisError):
    """服务器返回了不可接受的负返回码 (业务层面的失败)。

    每个命令只接受特定的一组负返回码 (例如读取记录时的 "记录已逻辑删除")，
    其他负返回码都会转换为此异常。
    """

    def __init__(self, return_code: int, message: str | None = None) -> None:
        """初始化服务器错误。

        Args:
            return_code: 服务器返回的原始返回码。
            message: 可选的附加描述。缺省时使用返回码表中的标准描述。
        """
        # 延迟导入，避免与 protocols 包的循环依赖
        from .protocols.return_codes import describe_error

        self.return_code = return_code
        self.description = describe_error(return_code)
        super().__init__(message or self.description)

    def __str__(self) -> str:
        return f"[{self.return_code}] {self.args[0]}"
