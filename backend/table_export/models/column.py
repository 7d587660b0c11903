"""
列规划条目模型

标量字段固定一列；附件字段每个槽位（附件序号）一列
"""

from __future__ import annotations

from pydantic import BaseModel


class ColumnPlanEntry(BaseModel):
    """输出列"""
    field_id: str
    header: str
    is_attachment: bool = False
    slot_index: int | None = None

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[str, int | None]:
        return (self.field_id, self.slot_index)
