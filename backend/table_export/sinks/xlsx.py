"""
Excel 输出端 - openpyxl

特点：
- 宽度不受限、不分页
- 支持回填表头（附件槽位新增时立即写表头）
- 行号映射：表头 → 第1行，数据行 n → 第 n+1 行
- 文本一律按字符串写入（不解释为公式），并去除 Excel 不允许的控制字符
"""

from __future__ import annotations

import logging
from io import BytesIO
from types import ModuleType

from ..config.profile_loader import FormatProfile
from ..interfaces import ExportError, IDocumentSink
from ..layout.measure import EstimatedMeasurer, TextMeasurer
from ..layout.models import RowLayout, SinkGeometry
from ..models import ColumnPlanEntry

logger = logging.getLogger(__name__)


def points_to_chars(width_pt: float) -> float:
    """磅 -> Excel 列宽（字符数，默认字体最大数字宽 7px + 5px 边距）"""
    px = width_pt / 0.75
    return round(max(1.0, (px - 5) / 7), 2)


class XlsxSink(IDocumentSink):
    """Excel 输出端"""

    supports_header_retrofit = True
    paginated = False

    def __init__(self, profile: FormatProfile, backend: ModuleType, sheet_title: str | None = None):
        from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
        from openpyxl.styles import Alignment, Font
        from openpyxl.utils import get_column_letter

        self.profile = profile
        self._get_column_letter = get_column_letter
        self._illegal_chars = ILLEGAL_CHARACTERS_RE
        self._header_font = Font(name=profile.font.name, size=profile.font.size, bold=True)
        self._body_font = Font(name=profile.font.name, size=profile.font.size)
        self._header_align = Alignment(wrap_text=True, vertical="center")
        self._body_align = Alignment(wrap_text=True, vertical="top")

        self.workbook = backend.Workbook()
        self.sheet = self.workbook.active
        if sheet_title:
            # 工作表名最长31字符且不含特殊字符
            safe = "".join(c for c in sheet_title if c not in '[]:*?/\\')[:31]
            self.sheet.title = safe or "Sheet1"

        self._geometry = SinkGeometry.from_profile(profile)
        self._measurer = EstimatedMeasurer()
        self._rows: set[int] = set()

    @property
    def geometry(self) -> SinkGeometry:
        return self._geometry

    @property
    def measurer(self) -> TextMeasurer:
        return self._measurer

    def _write_text(self, row: int, col: int, text: str):
        cell = self.sheet.cell(row=row, column=col, value=self._illegal_chars.sub("", text))
        cell.data_type = "s"
        return cell

    def _write_header(self, col_index: int, header: str) -> None:
        cell = self._write_text(1, col_index, header)
        cell.font = self._header_font
        cell.alignment = self._header_align

    def add_header_row(self, columns: list[ColumnPlanEntry], layout: RowLayout) -> None:
        for i, column in enumerate(columns, start=1):
            self._write_header(i, column.header)
        self.sheet.freeze_panes = "A2"
        self._rows.add(0)

    def update_header(self, col_index: int, header: str) -> None:
        self._write_header(col_index, header)

    def add_data_row(self, row_index: int, layout: RowLayout) -> None:
        excel_row = row_index + 1
        for col, cell_layout in enumerate(layout.cells, start=1):
            if not cell_layout.text:
                continue
            cell = self._write_text(excel_row, col, cell_layout.text)
            cell.font = self._body_font
            cell.alignment = self._body_align
        self._rows.add(row_index)

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
        from openpyxl.drawing.image import Image

        if row_index not in self._rows:
            raise ExportError(f"图片所在行尚未写入: {row_index}")

        image = Image(BytesIO(data))
        image.width = width
        image.height = height
        anchor = f"{self._get_column_letter(col_index)}{row_index + 1}"
        self.sheet.add_image(image, anchor)

    def set_column_width(self, col_index: int, width_pt: float) -> None:
        letter = self._get_column_letter(col_index)
        self.sheet.column_dimensions[letter].width = points_to_chars(width_pt)

    def set_row_height(self, row_index: int, height_pt: float) -> None:
        self.sheet.row_dimensions[row_index + 1].height = round(height_pt, 2)

    def finalize(self) -> bytes:
        buf = BytesIO()
        try:
            self.workbook.save(buf)
        except Exception as e:
            raise ExportError(f"Excel 文件生成失败: {e}") from e
        return buf.getvalue()
