"""
列规划模块 - 字段分类与输出列规划

子模块：
- classifier: 标量/附件字段划分
- column_plan: 只追加的列规划（附件槽位动态扩展）
"""

from .classifier import FieldPartition, classify_fields
from .column_plan import NOT_FOUND, ColumnPlan, slot_header

__all__ = [
    "FieldPartition",
    "classify_fields",
    "ColumnPlan",
    "NOT_FOUND",
    "slot_header",
]
