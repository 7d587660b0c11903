"""
格式规范加载器 - 读取 format_profiles.yaml

职责：
- 解析YAML并提供类型安全访问
- 提供每种输出格式的扩展名/默认文件名/渲染库/可接受图片格式/页面参数
- 缓存加载结果（避免重复解析）

使用方式：
    profiles = ProfileLoader.load()
    xlsx = profiles.get_profile("xlsx")
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

DEFAULT_PROFILES_PATH = Path(__file__).with_name("format_profiles.yaml")


class BackendSpec(BaseModel):
    """渲染库：按顺序尝试的模块及必需属性"""
    modules: list[str]
    required_attr: str


class PageSpec(BaseModel):
    """页面参数（单位：磅）"""
    paginated: bool = False
    header_retrofit: bool = False
    width: float | None = None
    height: float | None = None
    margin: float = 0.0
    cell_padding: float = 3.0


class FontSpec(BaseModel):
    """字体参数"""
    name: str
    size: float
    line_spacing: float = 1.3
    fallback: str | None = None


class FormatProfile(BaseModel):
    """单个输出格式的规范"""
    format: str
    label: str
    extension: str
    default_filename: str
    mime_type: str
    backend: BackendSpec
    accepted_image_formats: list[str] = Field(default_factory=lambda: ["png", "jpeg"])
    page: PageSpec = Field(default_factory=PageSpec)
    font: FontSpec

    @property
    def content_width(self) -> float | None:
        """可用内容宽度（无页面宽度时为None）"""
        if self.page.width is None:
            return None
        return self.page.width - 2 * self.page.margin

    @property
    def content_height(self) -> float | None:
        """可用内容高度（无页面高度时为None）"""
        if self.page.height is None:
            return None
        return self.page.height - 2 * self.page.margin


class ExportProfiles(BaseModel):
    """导出格式规范（format_profiles.yaml 的结构化表示）"""
    schema_version: str
    formats: dict[str, FormatProfile] = Field(default_factory=dict)

    def get_profile(self, fmt: str) -> FormatProfile:
        """获取格式规范"""
        key = str(fmt).lower().lstrip(".")
        if key not in self.formats:
            raise KeyError(f"不支持的导出格式: {fmt}")
        return self.formats[key]

    def list_formats(self) -> list[str]:
        """全部格式"""
        return list(self.formats)


class ProfileLoader:
    """规范加载器（缓存）"""

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, profiles_path: str | Path = DEFAULT_PROFILES_PATH) -> ExportProfiles:
        """加载并缓存规范"""
        path = Path(profiles_path)
        if not path.exists():
            raise FileNotFoundError(f"格式规范文件不存在: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        formats = {
            key: FormatProfile(format=key, **value)
            for key, value in (data.get("formats") or {}).items()
        }
        return ExportProfiles(schema_version=str(data.get("schema_version", "")), formats=formats)

    @classmethod
    def reload(cls, profiles_path: str | Path = DEFAULT_PROFILES_PATH) -> ExportProfiles:
        """强制重新加载（清除缓存）"""
        cls.load.cache_clear()
        return cls.load(profiles_path)


# 便捷函数
def load_profiles(profiles_path: str | Path = DEFAULT_PROFILES_PATH) -> ExportProfiles:
    """加载导出格式规范"""
    return ProfileLoader.load(profiles_path)
