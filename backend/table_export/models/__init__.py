"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- FieldDescriptor / AttachmentItem: 字段与附件引用
- ColumnPlanEntry: 输出列
- TextCell / ImageCell / EmptyCell: 单元格解析结果
- ExportJob: 导出任务状态与产物
"""

from .cell import EmptyCell, ImageCell, ResolvedCell, TextCell, cell_text
from .column import ColumnPlanEntry
from .field import AttachmentItem, FieldDescriptor, normalize_value, parse_attachment_items
from .job import ExportArtifact, ExportFormat, ExportJob, JobProgress, JobStatus

__all__ = [
    "FieldDescriptor",
    "AttachmentItem",
    "parse_attachment_items",
    "normalize_value",
    "ColumnPlanEntry",
    "TextCell",
    "ImageCell",
    "EmptyCell",
    "ResolvedCell",
    "cell_text",
    "ExportJob",
    "ExportFormat",
    "ExportArtifact",
    "JobProgress",
    "JobStatus",
]
