"""
流水线模块 - 导出编排

子模块：
- stages: 阶段与状态文案
- progress: 进度上报
- naming: 输出文件命名
- writer: 行写入（流式/缓冲）
- executor: 导出流水线
"""

from .executor import ExportPipeline, run_export
from .naming import resolve_file_name, suggest_base_name
from .progress import ProgressReporter
from .stages import EXPORT_STAGES, PipelineStage, StageEnum
from .writer import RowWriter

__all__ = [
    "ExportPipeline",
    "run_export",
    "resolve_file_name",
    "suggest_base_name",
    "ProgressReporter",
    "EXPORT_STAGES",
    "PipelineStage",
    "StageEnum",
    "RowWriter",
]
