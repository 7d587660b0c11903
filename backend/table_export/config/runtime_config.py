"""
运行期配置 - 读取 导出运行期参数 YAML

职责：
- 加载并发窗口/超时/排版/图片/进度等运行参数
- 提供环境变量覆盖机制
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class WindowStep(BaseModel):
    """并发窗口档位：数量 <= max_count 时使用 window"""

    max_count: int
    window: int


class ConcurrencyConfig(BaseModel):
    """并发配置（按附件数量分档）"""

    # 单条记录全部附件的下载/解码任务
    record_tiers: list[WindowStep] = Field(
        default_factory=lambda: [
            WindowStep(max_count=6, window=6),
            WindowStep(max_count=12, window=4),
            WindowStep(max_count=30, window=3),
        ]
    )
    record_default: int = 2

    # 单个附件字段内的子任务（逐个重试URL解析）
    field_tiers: list[WindowStep] = Field(
        default_factory=lambda: [
            WindowStep(max_count=4, window=4),
            WindowStep(max_count=12, window=3),
        ]
    )
    field_default: int = 2


class TimeoutConfig(BaseModel):
    """超时配置"""

    fetch_sec: float = 30.0
    backend_load_sec: float = 8.0


class AttachmentConfig(BaseModel):
    """附件配置"""

    embed: bool = True


class LayoutConfig(BaseModel):
    """排版配置（单位：磅）"""

    sample_rows: int = 30
    text_margin: float = 8.0
    min_column_width: float = 40.0
    max_column_width: float = 320.0
    default_row_height: float = 20.0
    image_spacing: float = 4.0


class ImageConfig(BaseModel):
    """图片尺寸上下限（单位：像素）"""

    max_width: int = 120
    max_height: int = 90
    min_width: int = 16
    min_height: int = 16


class ProgressConfig(BaseModel):
    """进度上报配置"""

    every_n_records: int = 10
    remaining_hide_sec: int = 10


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    output_dir: Path = Path("exports")

    # 各子配置
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    attachments: AttachmentConfig = Field(default_factory=AttachmentConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "TABLE_EXPORT_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        config = cls(
            concurrency=ConcurrencyConfig(**cls._extract(runtime_opts, "concurrency")),
            timeouts=TimeoutConfig(**cls._extract(runtime_opts, "timeouts")),
            attachments=AttachmentConfig(**cls._extract(runtime_opts, "attachments")),
            layout=LayoutConfig(**cls._extract(runtime_opts, "layout")),
            images=ImageConfig(**cls._extract(runtime_opts, "images")),
            progress=ProgressConfig(**cls._extract(runtime_opts, "progress")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
        )

        output_dir = runtime_opts.get("output_dir")
        if output_dir:
            config.output_dir = cls._resolve_path(Path(output_dir), base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    @staticmethod
    def _resolve_path(path: Path, base_dir: Path) -> Path:
        """相对路径按配置文件所在目录解析"""
        if path.is_absolute():
            return path
        return (base_dir / path).resolve()

    def ensure_dirs(self) -> None:
        """确保输出目录存在"""
        self.output_dir.mkdir(parents=True, exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None

DEFAULT_CONFIG_PATH = Path("config/导出运行期参数.yaml")


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_CONFIG_PATH
    _config = RuntimeConfig.from_yaml(path)
    return _config
