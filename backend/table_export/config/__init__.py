"""
配置层 - 加载运行期配置与导出格式规范

职责：
- 加载 config/导出运行期参数.yaml（运行期参数，可被环境变量覆盖）
- 加载 format_profiles.yaml（各输出格式规范，随包分发）
- 提供类型安全的配置访问接口
"""

from .profile_loader import ExportProfiles, FormatProfile, ProfileLoader, load_profiles
from .runtime_config import RuntimeConfig, get_config, reload_config

__all__ = [
    "ProfileLoader",
    "ExportProfiles",
    "FormatProfile",
    "load_profiles",
    "RuntimeConfig",
    "get_config",
    "reload_config",
]
