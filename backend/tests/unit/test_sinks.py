"""
输出端单元测试（Excel / Word / PDF 输出端、行写入器）
"""

from io import BytesIO

import docx
import openpyxl
import pytest
from docx.oxml.ns import qn
from pypdf import PdfReader
from reportlab.pdfgen import canvas

from table_export.config import ExportProfiles
from table_export.config.runtime_config import ImageConfig, LayoutConfig
from table_export.interfaces import ExportError, IDocumentSink
from table_export.layout import CellLayout, EstimatedMeasurer, LayoutEngine, RowLayout, SinkGeometry
from table_export.models import ColumnPlanEntry, FieldDescriptor, ImageCell, TextCell
from table_export.planning import ColumnPlan
from table_export.pipeline.writer import RowWriter
from table_export.sinks import DocxSink, PdfSink, ReportlabMeasurer, XlsxSink, create_sink

COLUMNS = [
    ColumnPlanEntry(field_id="f1", header="名称"),
    ColumnPlanEntry(field_id="f2", header="照片(1)", is_attachment=True, slot_index=0),
]


def _row(*texts: str, height: float = 20.0) -> RowLayout:
    return RowLayout(cells=[CellLayout(text=t, lines=[t] if t else []) for t in texts], height=height)


class TestXlsxSink:
    """Excel 输出端测试"""

    def test_header_rows_and_image(self, profiles: ExportProfiles, png_bytes):
        sink = XlsxSink(profiles.get_profile("xlsx"), openpyxl, sheet_title="项目/清单")
        sink.set_column_width(1, 100)
        sink.add_header_row(COLUMNS[:1], _row("名称"))
        sink.update_header(2, "照片(1)")
        sink.add_data_row(1, _row("一号楼", ""))
        sink.set_row_height(1, 50)
        sink.place_image(1, 2, png_bytes, "png", 120, 60)

        assert sink.sheet._images[0].anchor == "B2"

        ws = openpyxl.load_workbook(BytesIO(sink.finalize())).active
        assert ws.title == "项目清单"
        assert ws["A1"].value == "名称"
        assert ws["B1"].value == "照片(1)"
        assert ws["A2"].value == "一号楼"
        assert ws["B2"].value is None
        assert ws.row_dimensions[2].height == 50
        assert ws.column_dimensions["A"].width == pytest.approx(18.33)
        assert ws.freeze_panes == "A2"

    def test_place_image_requires_row(self, profiles: ExportProfiles, png_bytes):
        sink = XlsxSink(profiles.get_profile("xlsx"), openpyxl)
        with pytest.raises(ExportError, match="尚未写入"):
            sink.place_image(3, 1, png_bytes, "png", 10, 10)

    def test_control_characters_stripped(self, profiles: ExportProfiles):
        sink = XlsxSink(profiles.get_profile("xlsx"), openpyxl)
        sink.add_header_row(COLUMNS[:1], _row("名\x01称"))
        sink.add_data_row(1, _row("第一行\x0b第二行"))

        ws = openpyxl.load_workbook(BytesIO(sink.finalize())).active
        assert ws["A1"].value == "名称"
        assert ws["A2"].value == "第一行第二行"

    def test_formula_like_text_kept_as_string(self, profiles: ExportProfiles):
        sink = XlsxSink(profiles.get_profile("xlsx"), openpyxl)
        sink.add_header_row(COLUMNS[:1], _row("名称"))
        sink.add_data_row(1, _row("=1+1"))

        ws = openpyxl.load_workbook(BytesIO(sink.finalize())).active
        assert ws["A2"].value == "=1+1"
        assert ws["A2"].data_type == "s"

    def test_geometry_unbounded(self, profiles: ExportProfiles):
        sink = XlsxSink(profiles.get_profile("xlsx"), openpyxl)
        assert not sink.geometry.bounded
        assert sink.geometry.page_height is None


class TestDocxSink:
    """Word 输出端测试"""

    def _sink(self, profiles: ExportProfiles) -> DocxSink:
        return DocxSink(profiles.get_profile("docx"), docx, title="项目清单")

    def test_table_header_repeat_and_picture(self, profiles: ExportProfiles, png_bytes):
        sink = self._sink(profiles)
        sink.set_column_width(1, 100)
        sink.set_column_width(2, 120)
        sink.add_header_row(COLUMNS, _row("名称", "照片(1)"))
        sink.add_data_row(1, _row("一号楼", ""))
        sink.place_image(1, 2, png_bytes, "png", 120, 60)
        sink.set_row_height(1, 60)

        document = docx.Document(BytesIO(sink.finalize()))
        assert document.paragraphs[0].text == "项目清单"
        table = document.tables[0]
        assert [c.text for c in table.rows[0].cells] == ["名称", "照片(1)"]
        assert table.rows[1].cells[0].text == "一号楼"
        assert table.rows[0]._tr.trPr.find(qn("w:tblHeader")) is not None
        assert len(document.inline_shapes) == 1

    def test_control_characters_stripped(self, profiles: ExportProfiles):
        sink = self._sink(profiles)
        sink.add_header_row(COLUMNS[:1], _row("名称"))
        sink.add_data_row(1, _row("第一行\x0b第二行"))

        document = docx.Document(BytesIO(sink.finalize()))
        assert document.tables[0].rows[1].cells[0].text == "第一行第二行"

    def test_data_row_before_header(self, profiles: ExportProfiles):
        with pytest.raises(ExportError):
            self._sink(profiles).add_data_row(1, _row("x"))

    def test_finalize_without_table(self, profiles: ExportProfiles):
        with pytest.raises(ExportError, match="表格为空"):
            self._sink(profiles).finalize()

    def test_update_header_not_supported(self, profiles: ExportProfiles):
        sink = self._sink(profiles)
        assert not sink.supports_header_retrofit
        with pytest.raises(NotImplementedError):
            sink.update_header(2, "照片(2)")


class TestPdfSink:
    """PDF 输出端测试"""

    def _sink(self, profiles: ExportProfiles) -> PdfSink:
        sink = PdfSink(profiles.get_profile("pdf"), canvas, title="项目清单")
        sink.set_column_width(1, 200)
        sink.set_column_width(2, 200)
        return sink

    def test_pdf_page_break_redraws_header(self, profiles: ExportProfiles, png_bytes):
        sink = self._sink(profiles)
        sink.add_header_row(COLUMNS, _row("名称", "照片(1)"))
        sink.add_data_row(1, _row("一号楼", ""))
        sink.add_page_break()
        sink.add_header_row(COLUMNS, _row("名称", "照片(1)"))
        sink.add_data_row(2, _row("二号楼", "", height=80))
        sink.place_image(2, 2, png_bytes, "png", 120, 60, offset_y=3)

        assert sink.page_count == 2
        reader = PdfReader(BytesIO(sink.finalize()))
        assert len(reader.pages) == 2

    def test_place_image_requires_row(self, profiles: ExportProfiles, png_bytes):
        sink = self._sink(profiles)
        sink.add_header_row(COLUMNS, _row("名称", "照片(1)"))
        sink.add_data_row(1, _row("一号楼", ""))
        sink.add_page_break()
        # 换页后上一页的行不再可放图
        with pytest.raises(ExportError, match="尚未写入"):
            sink.place_image(1, 2, png_bytes, "png", 10, 10)

    def test_geometry_bounded(self, profiles: ExportProfiles):
        profile = profiles.get_profile("pdf")
        sink = PdfSink(profile, canvas)
        assert sink.geometry.available_width == pytest.approx(profile.page.width - 2 * profile.page.margin)
        assert sink.geometry.page_height == pytest.approx(profile.page.height - 2 * profile.page.margin)

    def test_measurer_split(self, profiles: ExportProfiles):
        measurer = ReportlabMeasurer(PdfSink(profiles.get_profile("pdf"), canvas).font_name)
        assert measurer.text_width("abc", 10) > 0
        lines = measurer.split_words("alpha beta gamma delta epsilon", 60, 10)
        assert len(lines) > 1
        assert all(measurer.text_width(line, 10) <= 60 for line in lines)


class TestCreateSink:
    """输出端工厂测试"""

    def test_by_format(self, profiles: ExportProfiles):
        assert isinstance(create_sink(profiles.get_profile("xlsx"), openpyxl), XlsxSink)
        assert isinstance(create_sink(profiles.get_profile("docx"), docx), DocxSink)

    def test_unknown_format(self, profiles: ExportProfiles):
        profile = profiles.get_profile("xlsx").model_copy(update={"format": "csv"})
        with pytest.raises(ExportError, match="不支持"):
            create_sink(profile, openpyxl)


# ============================================================================
# 行写入器
# ============================================================================

class RecordingSink(IDocumentSink):
    """记录调用顺序的输出端"""

    def __init__(self, retrofit: bool = False, paginated: bool = False, page_height: float | None = None):
        self.supports_header_retrofit = retrofit
        self.paginated = paginated
        self._geometry = SinkGeometry(
            available_width=None if retrofit else 400.0,
            page_height=page_height,
            font_size=10.0,
            line_height=13.0,
            cell_padding=3.0,
        )
        self.calls: list[tuple] = []

    @property
    def geometry(self) -> SinkGeometry:
        return self._geometry

    @property
    def measurer(self):
        return EstimatedMeasurer()

    def add_header_row(self, columns, layout):
        self.calls.append(("header", [c.header for c in columns]))

    def update_header(self, col_index, header):
        self.calls.append(("update_header", col_index, header))

    def add_data_row(self, row_index, layout):
        self.calls.append(("row", row_index, [c.text for c in layout.cells]))

    def place_image(self, row_index, col_index, data, fmt, width, height, offset_y=0.0):
        self.calls.append(("image", row_index, col_index))

    def set_column_width(self, col_index, width_pt):
        self.calls.append(("width", col_index))

    def set_row_height(self, row_index, height_pt):
        pass

    def add_page_break(self):
        self.calls.append(("break",))

    def finalize(self):
        return b""

    def named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


def _writer(sink: RecordingSink, plan: ColumnPlan, sample_rows: int = 30) -> RowWriter:
    engine = LayoutEngine(sink.geometry, sink.measurer, LayoutConfig(sample_rows=sample_rows), ImageConfig())
    return RowWriter(sink, engine, plan, sample_rows=sample_rows)


def _plan() -> ColumnPlan:
    return ColumnPlan.build_initial([
        FieldDescriptor(id="f1", display_name="名称"),
        FieldDescriptor(id="f2", display_name="照片", is_attachment=True),
    ])


class TestRowWriter:
    """行写入器测试"""

    def test_streaming_retrofits_new_slot_header(self):
        sink = RecordingSink(retrofit=True)
        plan = _plan()
        writer = _writer(sink, plan, sample_rows=2)

        writer.add([TextCell("a")])
        assert sink.calls == []
        writer.add([TextCell("b")])
        assert sink.named("header") == [("header", ["名称"])]

        plan.ensure_slot("f2", 0, "照片")
        writer.add([TextCell("c"), TextCell("x.pdf")])
        layout = writer.close()

        assert sink.named("update_header") == [("update_header", 2, "照片(1)")]
        assert sink.named("row") == [("row", 1, ["a"]), ("row", 2, ["b"]), ("row", 3, ["c", "x.pdf"])]
        assert len(layout.column_widths) == 2

    def test_buffered_header_after_all_rows(self, png_bytes):
        sink = RecordingSink(retrofit=False)
        plan = _plan()
        writer = _writer(sink, plan)

        writer.add([TextCell("a")])
        plan.ensure_slot("f2", 1, "照片")
        writer.add([TextCell("b"), ImageCell(png_bytes, "png", 200, 100), TextCell("c.pdf")])
        assert sink.calls == []

        layout = writer.close()
        assert sink.named("header") == [("header", ["名称", "照片(1)", "照片(2)"])]
        # 先到的短行补齐空单元格
        assert sink.named("row")[0] == ("row", 1, ["a", "", ""])
        assert sink.named("image") == [("image", 2, 2)]
        assert sum(layout.column_widths) == pytest.approx(400)
        assert sink.named("update_header") == []

    def test_page_break_redraws_header(self):
        # 表头 20 + 每行 20，页高 100：每页 4 行
        sink = RecordingSink(paginated=True, page_height=100.0)
        plan = ColumnPlan.build_initial([FieldDescriptor(id="f1", display_name="h")])
        writer = _writer(sink, plan)
        for i in range(6):
            writer.add([TextCell(str(i))])
        layout = writer.close()

        assert layout.page_breaks == [5]
        assert len(sink.named("header")) == 2
        names = [c[0] for c in sink.calls]
        i = names.index("break")
        assert names[i + 1] == "header"
        assert sink.calls[i + 2][:2] == ("row", 5)

    def test_close_without_rows_writes_header(self):
        sink = RecordingSink(retrofit=True)
        writer = _writer(sink, _plan())
        layout = writer.close()
        assert sink.named("header") == [("header", ["名称"])]
        assert layout.row_heights == []
