"""
排版模块 - 测量、列宽、换行、行高、图片缩放、分页

子模块：
- measure: 文本测量接口
- engine: 排版引擎
- image_scaler: 图片缩放
- paginator: 分页
- models: 排版结构
"""

from .engine import PX_TO_PT, LayoutEngine, allocate_widths
from .image_scaler import ImageBounds, scale_image
from .measure import EstimatedMeasurer, TextMeasurer
from .models import CellLayout, ImagePlacement, LayoutPlan, RowLayout, SinkGeometry
from .paginator import Paginator, plan_page_breaks

__all__ = [
    "LayoutEngine",
    "allocate_widths",
    "PX_TO_PT",
    "ImageBounds",
    "scale_image",
    "TextMeasurer",
    "EstimatedMeasurer",
    "SinkGeometry",
    "ImagePlacement",
    "CellLayout",
    "RowLayout",
    "LayoutPlan",
    "Paginator",
    "plan_page_breaks",
]
