"""
PDF 输出端 - reportlab canvas

特点：
- A4 横向，固定页面，显式分页（每页重绘表头）
- 中文使用 CID 字体 STSong-Light，注册失败时回退 Helvetica
- 文本测量使用 reportlab 字体度量（stringWidth / simpleSplit）
- 单行高于整页时超出部分被页面裁剪

测试要点：
- test_pdf_page_break_redraws_header: 换页后页数增加
- test_place_image_requires_row: 未写入行时放图报错
"""

from __future__ import annotations

import logging
from io import BytesIO
from types import ModuleType

from ..config.profile_loader import FormatProfile
from ..interfaces import ExportError, IDocumentSink
from ..layout.engine import PX_TO_PT
from ..layout.measure import TextMeasurer
from ..layout.models import RowLayout, SinkGeometry
from ..models import ColumnPlanEntry

logger = logging.getLogger(__name__)

HEADER_FILL = (0.92, 0.92, 0.92)


def register_font(name: str, fallback: str | None = None) -> str:
    """注册 CID 字体，返回实际可用的字体名"""
    from reportlab.pdfbase import pdfmetrics
    from reportlab.pdfbase.cidfonts import UnicodeCIDFont

    if name in pdfmetrics.getRegisteredFontNames() or name in pdfmetrics.standardFonts:
        return name
    try:
        pdfmetrics.registerFont(UnicodeCIDFont(name))
        return name
    except Exception as e:
        if not fallback:
            raise ExportError(f"PDF 字体注册失败: {name}: {e}") from e
        logger.warning(f"PDF 字体 {name} 注册失败，回退 {fallback}: {e}")
        return fallback


class ReportlabMeasurer(TextMeasurer):
    """reportlab 字体度量"""

    def __init__(self, font_name: str):
        from reportlab.lib.utils import simpleSplit
        from reportlab.pdfbase.pdfmetrics import stringWidth

        self.font_name = font_name
        self._string_width = stringWidth
        self._simple_split = simpleSplit

    def text_width(self, text: str, font_size: float) -> float:
        return self._string_width(text, self.font_name, font_size)

    def split_words(self, text: str, max_width: float, font_size: float) -> list[str]:
        return self._simple_split(text, self.font_name, font_size, max_width) or [""]


class PdfSink(IDocumentSink):
    """PDF 输出端"""

    supports_header_retrofit = False
    paginated = True

    def __init__(self, profile: FormatProfile, backend: ModuleType, title: str | None = None):
        if profile.page.width is None or profile.page.height is None:
            raise ExportError("PDF 格式规范缺少页面尺寸")

        self.profile = profile
        self.page_width = profile.page.width
        self.page_height = profile.page.height
        self.margin = profile.page.margin

        self.font_name = register_font(profile.font.name, profile.font.fallback)
        self._buffer = BytesIO()
        self.canvas = backend.Canvas(self._buffer, pagesize=(self.page_width, self.page_height))
        if title:
            self.canvas.setTitle(title)

        self._geometry = SinkGeometry.from_profile(profile)
        self._measurer = ReportlabMeasurer(self.font_name)
        self._widths: dict[int, float] = {}
        self._row_tops: dict[int, float] = {}
        self._cursor = self.page_height - self.margin
        self.page_count = 1

    @property
    def geometry(self) -> SinkGeometry:
        return self._geometry

    @property
    def measurer(self) -> TextMeasurer:
        return self._measurer

    @property
    def bottom(self) -> float:
        return self.margin

    def _column_x(self, col_index: int) -> float:
        return self.margin + sum(self._widths.get(i, 0.0) for i in range(1, col_index))

    def _draw_row(self, layout: RowLayout, fill: tuple[float, float, float] | None = None) -> float:
        """在游标处绘制一行，返回行顶 y"""
        c = self.canvas
        top = self._cursor
        height = layout.height
        pad = self._geometry.cell_padding
        font_size = self._geometry.font_size
        line_height = self._geometry.line_height

        c.setLineWidth(0.5)
        for col, cell_layout in enumerate(layout.cells, start=1):
            x = self._column_x(col)
            width = self._widths.get(col, 0.0)
            if fill is not None:
                c.setFillColorRGB(*fill)
                c.rect(x, top - height, width, height, stroke=1, fill=1)
                c.setFillColorRGB(0, 0, 0)
            else:
                c.rect(x, top - height, width, height, stroke=1, fill=0)

            c.setFont(self.font_name, font_size)
            baseline = top - pad - font_size
            for line in cell_layout.lines:
                if baseline < self.bottom:
                    break
                c.drawString(x + pad, baseline, line)
                baseline -= line_height

        self._cursor = top - height
        return top

    def add_header_row(self, columns: list[ColumnPlanEntry], layout: RowLayout) -> None:
        self._row_tops[0] = self._draw_row(layout, fill=HEADER_FILL)

    def add_data_row(self, row_index: int, layout: RowLayout) -> None:
        self._row_tops[row_index] = self._draw_row(layout)

    def place_image(
        self,
        row_index: int,
        col_index: int,
        data: bytes,
        fmt: str,
        width: int,
        height: int,
        offset_y: float = 0.0,
    ) -> None:
        from reportlab.lib.utils import ImageReader

        top = self._row_tops.get(row_index)
        if top is None:
            raise ExportError(f"图片所在行尚未写入: {row_index}")

        w_pt = width * PX_TO_PT
        h_pt = height * PX_TO_PT
        x = self._column_x(col_index) + self._geometry.cell_padding
        y = top - offset_y - h_pt
        self.canvas.drawImage(ImageReader(BytesIO(data)), x, y, width=w_pt, height=h_pt, mask="auto")

    def set_column_width(self, col_index: int, width_pt: float) -> None:
        self._widths[col_index] = width_pt

    def set_row_height(self, row_index: int, height_pt: float) -> None:
        # 行高已由排版结果决定，绘制时直接使用
        return None

    def add_page_break(self) -> None:
        self.canvas.showPage()
        self._cursor = self.page_height - self.margin
        self._row_tops.clear()
        self.page_count += 1

    def finalize(self) -> bytes:
        try:
            self.canvas.save()
        except Exception as e:
            raise ExportError(f"PDF 文件生成失败: {e}") from e
        return self._buffer.getvalue()
