"""
Word 输出端 - python-docx

特点：
- 横向页面，表格宽度受限于版心宽度
- 流式排版：分页由 Word 完成，表头行标记为每页重复
- 不支持回填表头（全部记录解析完成后再写表头）
"""

from __future__ import annotations

import logging
import re
from io import BytesIO
from types import ModuleType

from ..config.profile_loader import FormatProfile
from ..interfaces import ExportError, IDocumentSink
from ..layout.engine import PX_TO_PT
from ..layout.measure import EstimatedMeasurer, TextMeasurer
from ..layout.models import CellLayout, RowLayout, SinkGeometry
from ..models import ColumnPlanEntry

logger = logging.getLogger(__name__)

# XML 1.0 不允许的控制字符（保留 \t \n \r）
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


class DocxSink(IDocumentSink):
    """Word 输出端"""

    supports_header_retrofit = False
    paginated = False

    def __init__(self, profile: FormatProfile, backend: ModuleType, title: str | None = None):
        from docx.enum.section import WD_ORIENT
        from docx.shared import Pt

        self.profile = profile
        self.document = backend.Document()

        section = self.document.sections[0]
        section.orientation = WD_ORIENT.LANDSCAPE
        if profile.page.width and profile.page.height:
            section.page_width = Pt(profile.page.width)
            section.page_height = Pt(profile.page.height)
        margin = Pt(profile.page.margin)
        section.left_margin = margin
        section.right_margin = margin
        section.top_margin = margin
        section.bottom_margin = margin

        if title:
            heading = self.document.add_paragraph()
            self._add_run(heading, title, bold=True)

        self._geometry = SinkGeometry.from_profile(profile)
        self._measurer = EstimatedMeasurer()
        self._table = None
        self._rows: dict[int, object] = {}
        self._widths: dict[int, float] = {}

    @property
    def geometry(self) -> SinkGeometry:
        return self._geometry

    @property
    def measurer(self) -> TextMeasurer:
        return self._measurer

    def _add_run(self, paragraph, text: str, bold: bool = False):
        from docx.oxml.ns import qn
        from docx.shared import Pt

        run = paragraph.add_run(_CONTROL_CHARS.sub("", text))
        run.bold = bold
        run.font.size = Pt(self.profile.font.size)
        run.font.name = self.profile.font.name
        # 中文字体需单独设置 eastAsia
        run._element.get_or_add_rPr().get_or_add_rFonts().set(qn("w:eastAsia"), self.profile.font.name)
        return run

    def _fill_cell(self, cell, cell_layout: CellLayout, bold: bool = False) -> None:
        paragraph = cell.paragraphs[0]
        if cell_layout.text:
            self._add_run(paragraph, cell_layout.text, bold=bold)

    def _apply_width(self, col_index: int) -> None:
        from docx.shared import Pt

        if self._table is None or col_index not in self._widths:
            return
        width = Pt(self._widths[col_index])
        self._table.columns[col_index - 1].width = width
        for row in self._table.rows:
            row.cells[col_index - 1].width = width

    def add_header_row(self, columns: list[ColumnPlanEntry], layout: RowLayout) -> None:
        from docx.oxml import OxmlElement
        from docx.oxml.ns import qn

        self._table = self.document.add_table(rows=1, cols=max(1, len(columns)))
        self._table.style = "Table Grid"
        self._table.autofit = False

        header = self._table.rows[0]
        tr_pr = header._tr.get_or_add_trPr()
        repeat = OxmlElement("w:tblHeader")
        repeat.set(qn("w:val"), "true")
        tr_pr.append(repeat)

        for i, cell_layout in enumerate(layout.cells):
            self._fill_cell(header.cells[i], cell_layout, bold=True)
        self._rows[0] = header

        for col_index in self._widths:
            self._apply_width(col_index)

    def add_data_row(self, row_index: int, layout: RowLayout) -> None:
        from docx.shared import Pt

        if self._table is None:
            raise ExportError("表头尚未写入")
        row = self._table.add_row()
        for i, cell_layout in enumerate(layout.cells):
            self._fill_cell(row.cells[i], cell_layout)
        self._rows[row_index] = row
        for col_index, width in self._widths.items():
            row.cells[col_index - 1].width = Pt(width)

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
        from docx.shared import Pt

        row = self._rows.get(row_index)
        if row is None:
            raise ExportError(f"图片所在行尚未写入: {row_index}")
        cell = row.cells[col_index - 1]
        paragraph = cell.paragraphs[-1]
        if paragraph.runs:
            paragraph = cell.add_paragraph()
        run = paragraph.add_run()
        run.add_picture(BytesIO(data), width=Pt(width * PX_TO_PT), height=Pt(height * PX_TO_PT))

    def set_column_width(self, col_index: int, width_pt: float) -> None:
        self._widths[col_index] = width_pt
        self._apply_width(col_index)

    def set_row_height(self, row_index: int, height_pt: float) -> None:
        from docx.enum.table import WD_ROW_HEIGHT_RULE
        from docx.shared import Pt

        row = self._rows.get(row_index)
        if row is None:
            return
        row.height = Pt(height_pt)
        row.height_rule = WD_ROW_HEIGHT_RULE.AT_LEAST

    def finalize(self) -> bytes:
        if self._table is None:
            raise ExportError("Word 文件生成失败: 表格为空")
        buf = BytesIO()
        try:
            self.document.save(buf)
        except Exception as e:
            raise ExportError(f"Word 文件生成失败: {e}") from e
        return buf.getvalue()
