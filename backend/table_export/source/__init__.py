"""
数据源模块 - 多维表格访问

子模块：
- adapter: 能力探测与回退（表/视图选择、字段与记录列表、单元格文本）
- memory: 内存数据源（JSON/YAML）
"""

from .adapter import SourceAdapter, SourceCapabilities, TableAdapter
from .memory import InMemoryBase, InMemoryTable, InMemoryView

__all__ = [
    "SourceAdapter",
    "SourceCapabilities",
    "TableAdapter",
    "InMemoryBase",
    "InMemoryTable",
    "InMemoryView",
]
