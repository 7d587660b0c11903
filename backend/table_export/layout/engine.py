"""
排版引擎 - 列宽分配、文本换行、行高计算

职责：
1. 期望列宽：表头与前 N 行样本的文本宽度（图片按图片上限宽度）+ 边距，不低于最小列宽
2. 列宽分配：受限宽度按比例分配（最小列宽保护、尾列吸收舍入差）；不受限时夹在 [最小, 最大]
3. 文本换行：按段落分词换行，超宽行再按字符重排（无词边界的文字）
4. 行高：max(文本高度, 图片高度, 默认行高)

依赖：
- 测量器（TextMeasurer）
- 图片缩放（image_scaler）

测试要点：
- test_sum_equals_available: 总宽等于可用宽度
- test_min_protected: 最小列宽保护
- test_equal_when_too_narrow: 过窄时均分
- test_cjk_char_fallback: 中文按字符换行
- test_image_vs_text: 行高取最大值
"""

from __future__ import annotations

import logging

from ..config.runtime_config import ImageConfig, LayoutConfig
from ..models import ImageCell, ResolvedCell, TextCell, cell_text
from .image_scaler import ImageBounds, scale_image
from .measure import TextMeasurer
from .models import CellLayout, ImagePlacement, RowLayout, SinkGeometry

logger = logging.getLogger(__name__)

# 像素 -> 磅（96dpi）
PX_TO_PT = 0.75


def allocate_widths(desired: list[float], available: float, min_width: float) -> list[float]:
    """
    按期望宽度比例分配可用宽度

    - min_width * n > available 时均分
    - 低于最小宽度的列补足，差额按富余量比例从其他列扣除
    - 舍入差额计入最后一列，保证总宽等于 available
    """
    n = len(desired)
    if n == 0:
        return []
    if min_width * n > available:
        return [available / n] * n

    total = sum(desired)
    if total <= 0:
        widths = [available / n] * n
    else:
        widths = [available * d / total for d in desired]

    deficit = sum(min_width - w for w in widths if w < min_width)
    if deficit > 0:
        slack = [w - min_width if w > min_width else 0.0 for w in widths]
        total_slack = sum(slack)
        widths = [
            min_width if w <= min_width else w - deficit * s / total_slack
            for w, s in zip(widths, slack)
        ]

    widths[-1] += available - sum(widths)
    return widths


class LayoutEngine:
    """排版引擎"""

    def __init__(
        self,
        geometry: SinkGeometry,
        measurer: TextMeasurer,
        layout_config: LayoutConfig | None = None,
        image_config: ImageConfig | None = None,
    ):
        self.geometry = geometry
        self.measurer = measurer
        self.config = layout_config or LayoutConfig()
        self.bounds = ImageBounds.from_config(image_config or ImageConfig())

    @property
    def image_cap_width(self) -> float:
        """图片列的期望宽度（磅）"""
        return self.bounds.max_width * PX_TO_PT + 2 * self.geometry.cell_padding

    # ------------------------------------------------------------------
    # 列宽
    # ------------------------------------------------------------------

    def _text_extent(self, text: str) -> float:
        fs = self.geometry.font_size
        if not text:
            return 0.0
        return max(self.measurer.text_width(line, fs) for line in text.split("\n"))

    def _cell_extent(self, cell: ResolvedCell) -> float:
        if isinstance(cell, ImageCell):
            return self.image_cap_width
        return self._text_extent(cell_text(cell)) + self.config.text_margin + 2 * self.geometry.cell_padding

    def desired_widths(self, headers: list[str], sample_rows: list[list[ResolvedCell]]) -> list[float]:
        """期望列宽（仅用前 sample_rows 行样本）"""
        pad = self.config.text_margin + 2 * self.geometry.cell_padding
        widths = [self._text_extent(h) + pad for h in headers]
        for row in sample_rows[: self.config.sample_rows]:
            for i, cell in enumerate(row[: len(widths)]):
                widths[i] = max(widths[i], self._cell_extent(cell))
        return [max(w, self.config.min_column_width) for w in widths]

    def column_widths(self, headers: list[str], sample_rows: list[list[ResolvedCell]]) -> list[float]:
        """最终列宽"""
        desired = self.desired_widths(headers, sample_rows)
        if not self.geometry.bounded:
            return [min(w, self.config.max_column_width) for w in desired]
        return allocate_widths(desired, self.geometry.available_width, self.config.min_column_width)

    def slot_width(self, header: str) -> float:
        """新增附件槽位列的宽度（不受限输出端）"""
        pad = self.config.text_margin + 2 * self.geometry.cell_padding
        desired = max(self._text_extent(header) + pad, self.image_cap_width, self.config.min_column_width)
        return min(desired, self.config.max_column_width)

    # ------------------------------------------------------------------
    # 换行与行高
    # ------------------------------------------------------------------

    def wrap_text(self, text: str, width: float, font_size: float | None = None) -> list[str]:
        """按列宽换行（width 为列宽，扣除内边距后排版）"""
        if not text:
            return []
        fs = font_size or self.geometry.font_size
        inner = max(1.0, width - 2 * self.geometry.cell_padding)

        lines: list[str] = []
        for paragraph in text.split("\n"):
            if not paragraph:
                lines.append("")
                continue
            for line in self.measurer.split_words(paragraph, inner, fs):
                if self.measurer.text_width(line, fs) <= inner:
                    lines.append(line)
                else:
                    lines.extend(self._wrap_chars(line, inner, fs))
        return lines

    def _wrap_chars(self, line: str, inner: float, font_size: float) -> list[str]:
        """逐字符换行（每行至少一个字符）"""
        out: list[str] = []
        current = ""
        for ch in line:
            if current and self.measurer.text_width(current + ch, font_size) > inner:
                out.append(current)
                current = ch
            else:
                current += ch
        if current:
            out.append(current)
        return out

    def layout_cell(self, cell: ResolvedCell, width: float) -> CellLayout:
        pad = self.geometry.cell_padding

        if isinstance(cell, ImageCell):
            available_px = max(1.0, (width - 2 * pad) / PX_TO_PT)
            w, h = scale_image(cell.natural_width, cell.natural_height, available_px, self.bounds)
            placement = ImagePlacement(data=cell.data, format=cell.format, width=w, height=h, offset_y=pad)
            return CellLayout(images=[placement], height=self._images_height([placement]))

        text = cell.text if isinstance(cell, TextCell) else ""
        lines = self.wrap_text(text, width)
        height = self.geometry.line_height * len(lines) + 2 * pad if lines else 0.0
        return CellLayout(text=text, lines=lines, height=height)

    def _images_height(self, images: list[ImagePlacement]) -> float:
        """纵向堆叠的图片高度（含间距与内边距）"""
        if not images:
            return 0.0
        stacked = sum(img.height * PX_TO_PT for img in images)
        stacked += self.config.image_spacing * (len(images) - 1)
        return stacked + 2 * self.geometry.cell_padding

    def layout_row(self, cells: list[ResolvedCell], widths: list[float]) -> RowLayout:
        """排版一行（cells 与 widths 等长）"""
        cell_layouts = [self.layout_cell(c, w) for c, w in zip(cells, widths)]
        height = max([c.height for c in cell_layouts] + [self.config.default_row_height])
        return RowLayout(cells=cell_layouts, height=height)

    def layout_header(self, headers: list[str], widths: list[float]) -> RowLayout:
        """表头行（高度取最高的换行表头）"""
        return self.layout_row([TextCell(h) for h in headers], widths)
