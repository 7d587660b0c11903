"""
字段与附件模型 - 字段描述及附件单元格解析

字段描述在一次导出中只获取一次，之后不可变
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel


class FieldDescriptor(BaseModel):
    """字段描述"""
    id: str
    display_name: str
    is_attachment: bool = False

    model_config = {"frozen": True}


class AttachmentItem(BaseModel):
    """附件引用（单元格内按顺序排列）"""
    token: str | None = None
    file_name: str = ""

    model_config = {"frozen": True}


def parse_attachment_items(value: Any) -> list[AttachmentItem]:
    """
    解析附件单元格原始值

    支持：列表 / 单个映射；映射中取 token 与 name（或 file_name）。
    无法识别的元素保留位置，token为空（输出空单元格）。
    """
    if value is None or value == "":
        return []
    raw = value if isinstance(value, list) else [value]

    items: list[AttachmentItem] = []
    for entry in raw:
        if isinstance(entry, AttachmentItem):
            items.append(entry)
        elif isinstance(entry, dict):
            token = entry.get("token")
            name = entry.get("name") or entry.get("file_name") or ""
            items.append(AttachmentItem(token=str(token) if token else None, file_name=str(name)))
        else:
            items.append(AttachmentItem(token=None, file_name=normalize_value(entry)))
    return items


def normalize_value(value: Any) -> str:
    """将单元格原始值规整为文本"""
    if value is None:
        return ""
    if isinstance(value, list):
        return ",".join(normalize_value(v) for v in value)
    if isinstance(value, dict):
        text = value.get("text")
        if isinstance(text, str):
            return text
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            return str(value)
    return str(value)
