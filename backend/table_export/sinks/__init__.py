"""
文档输出端模块 - 按格式创建输出端

子模块：
- loader: 渲染库惰性加载（进程级缓存）
- xlsx: openpyxl 输出端
- docx: python-docx 输出端
- pdf: reportlab 输出端
"""

from __future__ import annotations

from types import ModuleType

from ..config.profile_loader import FormatProfile
from ..interfaces import ExportError, IDocumentSink
from .docx import DocxSink
from .loader import BackendLoader
from .pdf import PdfSink, ReportlabMeasurer
from .xlsx import XlsxSink

_SINKS: dict[str, type[IDocumentSink]] = {
    "xlsx": XlsxSink,
    "docx": DocxSink,
    "pdf": PdfSink,
}


def create_sink(profile: FormatProfile, backend: ModuleType, title: str | None = None) -> IDocumentSink:
    """按格式规范创建输出端"""
    sink_cls = _SINKS.get(profile.format)
    if sink_cls is None:
        raise ExportError(f"不支持的导出格式: {profile.format}")
    return sink_cls(profile, backend, title)


__all__ = [
    "BackendLoader",
    "XlsxSink",
    "DocxSink",
    "PdfSink",
    "ReportlabMeasurer",
    "create_sink",
]
