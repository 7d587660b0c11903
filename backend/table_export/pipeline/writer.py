"""
行写入器 - 按输出端能力缓冲或流式写入

模式：
- 流式（支持回填表头的输出端）：缓冲前 N 行样本计算列宽后写表头，之后逐行写入；
  新增附件槽位时立即设置列宽并回填表头
- 缓冲（不支持回填表头的输出端）：全部行到齐后再计算列宽、写表头

写入顺序（每行）：分页判断 → add_data_row → set_row_height → place_image

测试要点：
- test_streaming_retrofits_new_slot_header: 流式模式回填表头
- test_buffered_header_after_all_rows: 缓冲模式表头包含全部槽位
- test_page_break_redraws_header: 换页后重绘表头
"""

from __future__ import annotations

import logging

from ..interfaces import IDocumentSink
from ..layout import LayoutEngine, LayoutPlan, Paginator, RowLayout
from ..models import ColumnPlanEntry, EmptyCell, ResolvedCell
from ..planning import ColumnPlan

logger = logging.getLogger(__name__)


class RowWriter:
    """行写入器"""

    def __init__(
        self,
        sink: IDocumentSink,
        engine: LayoutEngine,
        plan: ColumnPlan,
        sample_rows: int = 30,
    ):
        self.sink = sink
        self.engine = engine
        self.plan = plan
        # 流式模式下的样本窗口；缓冲模式等全部行到齐
        self.window: int | None = max(1, sample_rows) if sink.supports_header_retrofit else None

        self.layout = LayoutPlan()
        self.header_layout: RowLayout | None = None
        self.paginator: Paginator | None = None
        self.started = False
        self.rows_written = 0
        self._buffer: list[list[ResolvedCell]] = []

    @property
    def streaming(self) -> bool:
        return self.window is not None

    def add(self, cells: list[ResolvedCell]) -> None:
        """提交一行（按记录顺序）"""
        if self.started:
            self._emit(cells)
            return
        self._buffer.append(cells)
        if self.window is not None and len(self._buffer) >= self.window:
            self._start()

    def close(self) -> LayoutPlan:
        """结束写入（未开始时以现有缓冲写表头与全部行）"""
        if not self.started:
            self._start()
        return self.layout

    def _start(self) -> None:
        headers = self.plan.headers
        widths = self.engine.column_widths(headers, self._buffer)
        self.layout.column_widths = list(widths)
        for i, width in enumerate(widths, start=1):
            self.sink.set_column_width(i, width)

        self.header_layout = self.engine.layout_header(headers, widths)
        self.layout.header = self.header_layout
        self._write_header()

        if self.sink.paginated and self.sink.geometry.page_height is not None:
            self.paginator = Paginator(self.sink.geometry.page_height, self.header_layout.height)
        if self.sink.supports_header_retrofit:
            self.plan.subscribe(self._on_slot_created)

        self.started = True
        logger.info(f"写入表头: {len(headers)} 列, 缓冲 {len(self._buffer)} 行")

        buffered, self._buffer = self._buffer, []
        for cells in buffered:
            self._emit(cells)

    def _write_header(self) -> None:
        self.sink.add_header_row(self.plan.columns, self.header_layout)
        self.sink.set_row_height(0, self.header_layout.height)

    def _on_slot_created(self, position: int, entry: ColumnPlanEntry) -> None:
        width = self.engine.slot_width(entry.header)
        while len(self.layout.column_widths) < position:
            self.layout.column_widths.append(width)
        self.sink.set_column_width(position, width)
        self.sink.update_header(position, entry.header)

    def _emit(self, cells: list[ResolvedCell]) -> None:
        widths = self.layout.column_widths
        padded = list(cells[: len(widths)]) + [EmptyCell()] * max(0, len(widths) - len(cells))
        row_layout = self.engine.layout_row(padded, widths)

        row_index = self.rows_written + 1
        if self.paginator is not None and self.paginator.place(row_layout.height):
            self.sink.add_page_break()
            self._write_header()
            self.layout.page_breaks.append(row_index)

        self.sink.add_data_row(row_index, row_layout)
        self.sink.set_row_height(row_index, row_layout.height)
        for col, cell_layout in enumerate(row_layout.cells, start=1):
            for image in cell_layout.images:
                self.sink.place_image(
                    row_index, col, image.data, image.format, image.width, image.height, image.offset_y
                )

        self.layout.row_heights.append(row_layout.height)
        self.rows_written = row_index
