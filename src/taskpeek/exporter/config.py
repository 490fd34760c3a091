#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Exporter 配置模块

提供：
- Pydantic 配置模型
- YAML 配置文件加载
- 环境变量覆盖（TASKPEEK_ 前缀）
- 配置验证

示例 YAML 配置:
```yaml
exporter:
  listen_address: ":8080"
  metrics_path: "/metrics"
  interval: 10s
  verbose: false
  labels: "team,env"
  hostname_path: "/etc/host_hostname"
  memory_map_policy: first
  cpu_percent_mode: interval
  log:
    formatter: glog
    level: info
```
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from taskpeek.logs import LogConfig
from taskpeek.metrics.gauges import DEFAULT_PREFIX
from taskpeek.os.process.matcher import DEFAULT_RAW_MARKER, DEFAULT_RUNNER_MARKER
from taskpeek.os.process.sampler import CpuPercentMode, MemoryMapPolicy

logger = logging.getLogger(__name__)

ENV_PREFIX = "TASKPEEK"
CONFIG_SECTION = "exporter"


class ConfigError(Exception):
    """配置错误"""

    pass


# ======================== 时间解析工具 ========================


def parse_duration(value: Union[str, int, float, None]) -> float:
    """
    解析时间字符串为秒数

    支持格式:
    - 纯数字: 直接作为秒数
    - "30s": 30 秒
    - "5m": 5 分钟
    - "1h30m": 1 小时 30 分钟
    - "100ms": 100 毫秒

    Args:
        value: 时间字符串或数字

    Returns:
        秒数（float）

    Raises:
        ValueError: 无法解析
    """
    if value is None:
        return 0.0

    if isinstance(value, (int, float)):
        return float(value)

    value = str(value).strip().lower()
    if not value:
        return 0.0

    try:
        return float(value)
    except ValueError:
        pass

    unit_multipliers = {
        "ms": 0.001,
        "s": 1,
        "m": 60,
        "h": 3600,
        "d": 86400,
    }

    pattern = r"(\d+(?:\.\d+)?)(ms|s|m|h|d)"
    if not re.fullmatch(rf"(?:{pattern})+", value):
        raise ValueError(f"invalid duration: {value!r}")

    total_seconds = 0.0
    for num_str, unit in re.findall(pattern, value):
        total_seconds += float(num_str) * unit_multipliers[unit]
    return total_seconds


def parse_listen_address(address: str) -> Tuple[str, int]:
    """
    解析监听地址

    支持 "host:port" 与 ":port"（host 为空表示 0.0.0.0）

    Returns:
        (host, port)

    Raises:
        ValueError: 地址格式错误
    """
    host, sep, port_str = address.strip().rpartition(":")
    if not sep:
        raise ValueError(f"listen address must be host:port, got {address!r}")

    host = host.strip("[]") or "0.0.0.0"
    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"invalid port in listen address {address!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"port out of range in listen address {address!r}")
    return host, port


# ======================== 配置模型定义 ========================


class ExporterConfig(BaseModel):
    """Exporter 完整配置"""

    listen_address: str = Field(default=":8080", description="监听地址")
    metrics_path: str = Field(default="/metrics", description="指标端点路径")
    interval: float = Field(default=10.0, gt=0, description="采集间隔（秒）")
    verbose: bool = Field(default=False, description="输出更多日志")
    labels: str = Field(default="", description="逗号分隔的自定义标签名")
    hostname_path: str = Field(default="", description="主机名文件路径")
    metric_prefix: str = Field(default=DEFAULT_PREFIX, description="指标名前缀")
    runner_marker: str = Field(default=DEFAULT_RUNNER_MARKER, min_length=1)
    raw_marker: str = Field(default=DEFAULT_RAW_MARKER, min_length=1)
    memory_map_policy: MemoryMapPolicy = Field(
        default=MemoryMapPolicy.FIRST, description="内存映射区域聚合策略"
    )
    cpu_percent_mode: CpuPercentMode = Field(
        default=CpuPercentMode.INTERVAL, description="CPU 百分比来源"
    )
    log: LogConfig = Field(default_factory=LogConfig, description="日志配置")

    @field_validator("interval", mode="before")
    @classmethod
    def parse_interval(cls, v):
        """解析采集间隔"""
        return parse_duration(v)

    @field_validator("listen_address")
    @classmethod
    def check_listen_address(cls, v):
        parse_listen_address(v)
        return v

    @field_validator("metrics_path")
    @classmethod
    def check_metrics_path(cls, v):
        if not v.startswith("/"):
            raise ValueError(f"metrics path must start with '/', got {v!r}")
        return v

    @property
    def bind_address(self) -> Tuple[str, int]:
        """(host, port)"""
        return parse_listen_address(self.listen_address)


# ======================== 配置加载器 ========================


class ConfigLoader:
    """
    配置加载器

    优先级: overrides > 环境变量 > YAML 文件 > 默认值
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        初始化配置加载器

        Args:
            config_file: YAML 配置文件路径
        """
        self.config_file = config_file
        self._raw_config: Dict[str, Any] = {}

    def load(self) -> "ConfigLoader":
        """
        加载 YAML 配置文件

        Returns:
            self，支持链式调用
        """
        if self.config_file:
            self._load_from_file(self.config_file)
        return self

    def _load_from_file(self, file_path: str) -> None:
        """从文件加载配置"""
        path = Path(file_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {file_path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config file {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {file_path} must contain a mapping")

        # 允许整个文件即为 exporter 节点
        section = data.get(CONFIG_SECTION, data)
        self._deep_merge(self._raw_config, dict(section or {}))
        logger.info("Loaded config from %s", file_path)

    def load_from_dict(self, config_dict: Dict[str, Any]) -> "ConfigLoader":
        """
        从字典加载配置（覆盖已有值）

        Args:
            config_dict: 配置字典

        Returns:
            self
        """
        self._deep_merge(self._raw_config, config_dict)
        return self

    def load_from_env(self, prefix: str = ENV_PREFIX) -> "ConfigLoader":
        """
        从环境变量加载配置

        环境变量格式: {PREFIX}_INTERVAL、{PREFIX}_LOG_LEVEL

        Args:
            prefix: 环境变量前缀

        Returns:
            self
        """
        fields = set(ExporterConfig.model_fields)
        env_config: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(f"{prefix}_"):
                continue

            name = key[len(prefix) + 1 :].lower()
            if name.startswith("log_"):
                env_config.setdefault("log", {})[name[len("log_") :]] = value
            elif name in fields:
                env_config[name] = value
            else:
                logger.debug("Ignoring unknown environment variable %s", key)

        self._deep_merge(self._raw_config, env_config)
        return self

    def _deep_merge(self, base: Dict, override: Dict) -> Dict:
        """深度合并字典"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value
        return base

    def get_config(self) -> ExporterConfig:
        """
        获取解析后的配置

        Raises:
            ConfigError: 配置校验失败
        """
        try:
            return ExporterConfig(**self._raw_config)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


# ======================== 便捷函数 ========================


def load_config(
    config_file: Optional[str] = None,
    env_prefix: Optional[str] = ENV_PREFIX,
    overrides: Optional[Dict[str, Any]] = None,
) -> ExporterConfig:
    """
    加载 Exporter 配置

    优先级: overrides > env_prefix > config_file > 默认值

    示例:
        ```python
        config = load_config(config_file="taskpeek.yaml", overrides={"verbose": True})
        ```
    """
    loader = ConfigLoader(config_file).load()

    if env_prefix:
        loader.load_from_env(env_prefix)

    if overrides:
        loader.load_from_dict({k: v for k, v in overrides.items() if v is not None})

    return loader.get_config()
