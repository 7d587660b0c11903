"""
排版模型 - 排版引擎的输入输出结构（派生数据，不持久化）

长度单位：磅（pt）；图片尺寸：像素
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config.profile_loader import FormatProfile


@dataclass(frozen=True)
class SinkGeometry:
    """输出端排版几何参数"""
    available_width: float | None  # None: 宽度不受限（电子表格）
    page_height: float | None  # None: 不分页
    font_size: float
    line_height: float
    cell_padding: float

    @property
    def bounded(self) -> bool:
        return self.available_width is not None

    @classmethod
    def from_profile(cls, profile: FormatProfile) -> SinkGeometry:
        """按格式规范构建（仅分页格式有页高）"""
        return cls(
            available_width=profile.content_width,
            page_height=profile.content_height if profile.page.paginated else None,
            font_size=profile.font.size,
            line_height=profile.font.size * profile.font.line_spacing,
            cell_padding=profile.page.cell_padding,
        )


@dataclass(frozen=True)
class ImagePlacement:
    """单元格内图片放置"""
    data: bytes = field(repr=False)
    format: str
    width: int
    height: int
    offset_y: float = 0.0


@dataclass
class CellLayout:
    """单元格排版结果"""
    text: str = ""
    lines: list[str] = field(default_factory=list)
    images: list[ImagePlacement] = field(default_factory=list)
    height: float = 0.0


@dataclass
class RowLayout:
    """行排版结果"""
    cells: list[CellLayout] = field(default_factory=list)
    height: float = 0.0


@dataclass
class LayoutPlan:
    """一次导出的排版汇总"""
    column_widths: list[float] = field(default_factory=list)
    header: RowLayout | None = None
    row_heights: list[float] = field(default_factory=list)
    # 分页前的数据行号（分页输出端）
    page_breaks: list[int] = field(default_factory=list)
