"""
IRBIS 核心库 - 配置模块

负责连接配置的加载、解析与强类型转换。
支持从 TOML 文件、环境变量 (.env)、字典或连接字符串中加载配置。
"""

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .exceptions import ConfigError
from .protocols import constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IrbisConfig:
    """IrbisConnection 的强类型配置对象。

    所有字段均为只读 (frozen=True)，确保配置在运行时不可变。

    Attributes:
        username: 登录用户名。
        password: 登录密码。
        host: 服务器地址。
        port: 服务器端口 (通常为 6666)。
        database: 默认数据库名。
        workstation: 工作站 (ARM) 代码，如 'C' (编目)、'R' (读者)。
        timeout: 单次请求的网络超时 (秒)。
    """

    username: str
    password: str
    host: str = constants.DEFAULT_HOST
    port: int = constants.DEFAULT_PORT
    database: str = constants.DEFAULT_DATABASE
    workstation: str = constants.DEFAULT_WORKSTATION
    timeout: float = 30.0

    def __repr__(self) -> str:
        """
        覆盖默认的 repr，隐藏密码字段，防止日志泄露敏感信息。
        """
        return (
            f"<{self.__class__.__name__} "
            f"server={self.host}:{self.port}, "
            f"username='{self.username}', "
            f"password='******', "
            f"database='{self.database}', "
            f"workstation={self.workstation}>"
        )


def create_config_from_dict(raw_data: dict[str, Any]) -> IrbisConfig:
    """通用工厂：将字典转换为强类型配置对象。

    负责字段的清洗、默认值注入和类型转换。

    Args:
        raw_data: 原始配置字典 (来自 TOML、Env 或连接字符串)。

    Returns:
        IrbisConfig: 验证并转换后的配置对象。

    Raises:
        ConfigError: 当必要字段缺失或格式错误时抛出。
    """
    try:
        # --- 内部辅助函数 ---
        def _req(key: str) -> Any:
            """获取必要字段，缺失则报错"""
            if key not in raw_data:
                raise ConfigError(f"配置缺失: 缺少必要字段 '{key}'")
            return raw_data[key]

        def _get(key: str, default: Any) -> Any:
            """获取可选字段，缺失则使用默认值"""
            return raw_data.get(key, default)

        def _to_port(key: str) -> int:
            val = _get(key, constants.DEFAULT_PORT)
            try:
                port = int(val)
            except (TypeError, ValueError):
                raise ConfigError(f"端口格式无效 '{key}': {val}")
            if not 0 < port < 65536:
                raise ConfigError(f"端口超出范围 '{key}': {port}")
            return port

        def _to_timeout(key: str) -> float:
            val = _get(key, 30.0)
            try:
                timeout = float(val)
            except (TypeError, ValueError):
                raise ConfigError(f"超时格式无效 '{key}': {val}")
            if timeout <= 0:
                raise ConfigError(f"超时必须为正数 '{key}': {timeout}")
            return timeout

        # --- 构建对象 ---
        return IrbisConfig(
            username=str(_req("username")),
            password=str(_req("password")),
            host=str(_get("host", constants.DEFAULT_HOST)),
            port=_to_port("port"),
            database=str(_get("database", constants.DEFAULT_DATABASE)),
            workstation=str(_get("workstation", constants.DEFAULT_WORKSTATION)).upper(),
            timeout=_to_timeout("timeout"),
        )

    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"配置生成失败: {e}") from e


def load_config_from_toml(file_path: Path, profile: str = "default") -> IrbisConfig:
    """从 TOML 文件加载配置。

    支持多层级查找策略:
    1. [profile.xxx]: 优先查找指定的 profile 块。
    2. [irbis]: 单一连接的配置块。
    3. Root: 兼容根目录直接配置。

    Args:
        file_path: TOML 文件路径。
        profile: 配置预设名。默认为 "default"。

    Returns:
        IrbisConfig: 配置对象。

    Raises:
        ConfigError: 文件读取失败或 Profile 不存在。
    """
    if not file_path.exists():
        raise ConfigError(f"配置文件未找到: {file_path}")

    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"读取 TOML 失败: {e}") from e

    raw_config = {}

    if "profile" in data:
        if profile not in data["profile"]:
            if profile != "default":
                raise ConfigError(f"未找到预设: [profile.{profile}]")
        else:
            raw_config = data["profile"][profile]

    elif "irbis" in data:
        if profile != "default":
            logger.warning(f"配置仅包含 [irbis] 节，忽略 profile='{profile}'。")
        raw_config = data["irbis"]
    else:
        raw_config = data

    return create_config_from_dict(raw_config)


def load_config_from_env(env_file: Path | None = None) -> IrbisConfig:
    """从环境变量加载配置 (Docker/Cloud Friendly)。

    如果指定了 env_file (或当前目录存在 .env)，先将其载入环境变量。
    然后读取所有以 `IRBIS_` 开头的环境变量，例如 `IRBIS_USERNAME` -> `username`。

    Args:
        env_file: 可选的 .env 文件路径。

    Returns:
        IrbisConfig: 配置对象。

    Raises:
        ConfigError: 指定的 .env 不存在，或未检测到任何相关环境变量。
    """
    if env_file is not None:
        if not env_file.exists():
            raise ConfigError(f"环境文件未找到: {env_file}")
        load_dotenv(dotenv_path=env_file, override=True)
        logger.debug(f"已加载环境文件: {env_file}")
    else:
        load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    env_map = {
        "username": "USERNAME",
        "password": "PASSWORD",
        "host": "HOST",
        "port": "PORT",
        "database": "DATABASE",
        "workstation": "WORKSTATION",
        "timeout": "TIMEOUT",
    }

    raw_data = {}

    for cfg_key, env_suffix in env_map.items():
        val = os.environ.get(f"IRBIS_{env_suffix}")
        if val is not None:
            raw_data[cfg_key] = val

    if not raw_data:
        raise ConfigError("未检测到 IRBIS_ 前缀的环境变量")

    return create_config_from_dict(raw_data)


# 连接字符串中的键别名 (键 -> 配置字段)
_CONNECTION_STRING_KEYS = {
    "host": "host",
    "server": "host",
    "address": "host",
    "port": "port",
    "user": "username",
    "username": "username",
    "name": "username",
    "login": "username",
    "pwd": "password",
    "password": "password",
    "db": "database",
    "database": "database",
    "catalog": "database",
    "arm": "workstation",
    "workstation": "workstation",
}


def parse_connection_string(text: str) -> IrbisConfig:
    """解析连接字符串，如 `host=127.0.0.1;port=6666;user=1;password=1;`。

    Args:
        text: 以 ';' 分隔的 "键=值" 列表，键不区分大小写。

    Returns:
        IrbisConfig: 配置对象。

    Raises:
        ConfigError: 出现不含 '=' 的项或未知的键。
    """
    raw_data: dict[str, Any] = {}

    for item in text.split(";"):
        if not item.strip():
            continue
        name, sep, value = item.partition("=")
        if not sep:
            raise ConfigError(f"连接字符串格式错误: '{item}'")

        name = name.strip().lower()
        if name == "debug":
            continue
        if name not in _CONNECTION_STRING_KEYS:
            raise ConfigError(f"连接字符串包含未知的键: '{name}'")
        raw_data[_CONNECTION_STRING_KEYS[name]] = value.strip()

    return create_config_from_dict(raw_data)


def to_connection_string(config: IrbisConfig) -> str:
    """生成与配置等价的连接字符串 (包含明文密码)。"""
    return (
        f"host={config.host};port={config.port};"
        f"username={config.username};password={config.password};"
        f"database={config.database};arm={config.workstation};"
    )
