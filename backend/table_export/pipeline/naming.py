"""
输出文件命名

- 用户名称为空 → 格式默认名（导出.xlsx 等）
- 缺少扩展名时补全
- 建议名称：<表名>-<视图名>，路径分隔符等非法字符替换为下划线
"""

from __future__ import annotations

import re

from ..config.profile_loader import FormatProfile

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]')


def resolve_file_name(name: str | None, profile: FormatProfile) -> str:
    """最终文件名"""
    safe = (name or "").strip()
    if not safe:
        return profile.default_filename
    if safe.lower().endswith(profile.extension.lower()):
        return safe
    return f"{safe}{profile.extension}"


def suggest_base_name(table_name: str | None, view_name: str | None) -> str:
    """建议的文件基础名"""
    if table_name and view_name:
        name = f"{table_name}-{view_name}"
    else:
        name = table_name or ""
    return _UNSAFE_CHARS.sub("_", name)
