"""
模块接口契约 - 定义各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换

数据源接口只声明必需成员；可选能力（活动表/活动视图/视图列表/
可见字段与记录/单元格文本）由 source.adapter.SourceAdapter 在构造时
统一探测，记录在 SourceCapabilities 中。

使用方式：
    from table_export.interfaces import IDocumentSink

    class MySink(IDocumentSink):
        def add_header_row(self, columns, layout) -> None:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .layout.measure import TextMeasurer
    from .layout.models import RowLayout, SinkGeometry
    from .models import ColumnPlanEntry


# ============================================================================
# 数据源接口
# ============================================================================

class IView(ABC):
    """视图接口

    可选能力：
    - get_visible_field_ids() -> list[str]
    - get_visible_record_ids() -> list[str]
    """

    id: str

    @abstractmethod
    async def get_name(self) -> str:
        """视图名称"""
        ...


class ITable(ABC):
    """数据表接口

    可选能力：
    - get_view_list() -> list[IView]
    - get_active_view() -> IView | None
    - get_cell_string(field_id, record_id) -> str | None
    """

    id: str

    @abstractmethod
    async def get_name(self) -> str:
        """数据表名称"""
        ...

    @abstractmethod
    async def get_field_ids(self) -> list[str]:
        """全部字段ID（表定义顺序）"""
        ...

    @abstractmethod
    async def get_record_ids(self) -> list[str]:
        """全部记录ID（数据源迭代顺序）"""
        ...

    @abstractmethod
    async def get_field_name(self, field_id: str) -> str:
        """字段显示名"""
        ...

    @abstractmethod
    async def get_cell_value(self, field_id: str, record_id: str) -> Any:
        """单元格原始值"""
        ...

    @abstractmethod
    async def get_attachment_field_ids(self) -> list[str]:
        """附件类型字段ID（字段元数据查询）"""
        ...

    @abstractmethod
    async def get_attachment_urls(
        self,
        tokens: list[str],
        field_id: str,
        record_id: str,
    ) -> list[str | None]:
        """
        批量解析附件下载地址

        Args:
            tokens: 附件token列表
            field_id: 附件字段ID
            record_id: 记录ID

        Returns:
            与tokens一一对应的URL列表（无法解析的位置为None）
        """
        ...


class IBase(ABC):
    """多维表格接口

    可选能力：
    - get_active_table() -> ITable
    """

    @abstractmethod
    async def get_table_list(self) -> list[ITable]:
        """全部数据表"""
        ...

    @abstractmethod
    async def get_table_by_id(self, table_id: str) -> ITable:
        """按ID获取数据表"""
        ...


# ============================================================================
# 文档输出端接口
# ============================================================================

class IDocumentSink(ABC):
    """
    文档输出端接口 - 每种输出格式一个实现

    约定：
    - 行号：0 为表头行，数据行从 1 开始
    - 列号：从 1 开始
    - 行必须先通过 add_data_row 注册，才能在该行放置图片
    """

    # 已写出的表头单元格可否随机改写（附件列动态扩展时回填表头）
    supports_header_retrofit: bool = False
    # 是否由本端计算分页（固定页面尺寸）
    paginated: bool = False

    @property
    @abstractmethod
    def geometry(self) -> SinkGeometry:
        """排版几何参数（可用宽度/页高/字号/行高/内边距）"""
        ...

    @property
    @abstractmethod
    def measurer(self) -> TextMeasurer:
        """文本测量器"""
        ...

    @abstractmethod
    def add_header_row(self, columns: list[ColumnPlanEntry], layout: RowLayout) -> None:
        """写入表头行（分页输出端每页调用一次）"""
        ...

    def update_header(self, col_index: int, header: str) -> None:
        """回填新增列的表头单元格"""
        raise NotImplementedError(f"{type(self).__name__} 不支持回填表头")

    @abstractmethod
    def add_data_row(self, row_index: int, layout: RowLayout) -> None:
        """写入数据行（注册行位置）"""
        ...

    @abstractmethod
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
        """
        在已注册的行放置图片

        Args:
            row_index: 数据行号
            col_index: 列号
            data: 图片字节
            fmt: 图片格式（png/jpeg/gif...）
            width: 输出宽度（像素）
            height: 输出高度（像素）
            offset_y: 单元格内纵向偏移（磅）
        """
        ...

    @abstractmethod
    def set_column_width(self, col_index: int, width_pt: float) -> None:
        """设置列宽（磅）"""
        ...

    @abstractmethod
    def set_row_height(self, row_index: int, height_pt: float) -> None:
        """设置行高（磅）"""
        ...

    def add_page_break(self) -> None:
        """分页（仅分页输出端需要实现）"""
        return None

    @abstractmethod
    def finalize(self) -> bytes:
        """
        生成最终文件

        Raises:
            ExportError: 生成失败（致命）
        """
        ...


# ============================================================================
# 异常定义
# ============================================================================

class TableExportError(Exception):
    """基础异常"""
    pass


class DataSourceError(TableExportError):
    """数据源错误（无法获取数据表等）"""
    pass


class AttachmentError(TableExportError):
    """附件解析错误（仅在解析器内部流转，始终回退为文本）"""
    pass


class BackendLoadError(TableExportError):
    """渲染库加载错误（致命）"""
    pass


class LayoutError(TableExportError):
    """排版错误"""
    pass


class ExportError(TableExportError):
    """导出错误"""
    pass
