"""
数据源适配器 - 统一访问多维表格

职责：
1. 构造时一次性探测可选能力（活动表/活动视图/视图列表/可见字段与记录/单元格文本）
2. 数据表选择：指定ID → 活动表 → 第一张表
3. 视图选择：指定ID → 活动视图 → 无视图（不过滤）
4. 字段/记录列表：视图可见列表失败或缺失时回退为全表列表
5. 单元格文本：缺少 get_cell_string 时回退为原始值规整

测试要点：
- test_detect_in_memory: 能力探测结果
- test_table_fallback_to_first: 活动表不可用时取第一张表
- test_view_lists_fallback: 视图不提供可见列表时回退全表
- test_cell_string_fallback: 无单元格文本能力时规整原始值
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from ..interfaces import DataSourceError, IBase, ITable, IView
from ..models import FieldDescriptor, normalize_value

logger = logging.getLogger(__name__)


def _has_method(obj: Any, name: str) -> bool:
    return obj is not None and callable(getattr(obj, name, None))


class SourceCapabilities(BaseModel):
    """可选能力（构造时探测，之后不再逐次探测）"""
    active_table: bool = False
    view_list: bool = False
    active_view: bool = False
    cell_string: bool = False
    visible_field_ids: bool = False
    visible_record_ids: bool = False

    @classmethod
    def detect_base(cls, base: Any) -> SourceCapabilities:
        return cls(active_table=_has_method(base, "get_active_table"))

    @classmethod
    def detect_table(cls, table: Any, view: Any | None = None) -> SourceCapabilities:
        return cls(
            view_list=_has_method(table, "get_view_list"),
            active_view=_has_method(table, "get_active_view"),
            cell_string=_has_method(table, "get_cell_string"),
            visible_field_ids=_has_method(view, "get_visible_field_ids"),
            visible_record_ids=_has_method(view, "get_visible_record_ids"),
        )


class TableAdapter:
    """数据表适配器（绑定可选视图）"""

    def __init__(self, table: ITable, view: IView | None = None):
        self.table = table
        self.view = view
        self.capabilities = SourceCapabilities.detect_table(table, view)

    @property
    def table_id(self) -> str:
        return self.table.id

    async def get_table_name(self) -> str:
        return await self.table.get_name()

    async def get_view_name(self) -> str | None:
        if self.view is None:
            return None
        return await self.view.get_name()

    async def get_field_ids(self) -> list[str]:
        """视图可见字段（回退全表字段）"""
        if self.capabilities.visible_field_ids:
            try:
                return list(await self.view.get_visible_field_ids())
            except Exception as e:
                logger.warning(f"视图可见字段获取失败，回退全表字段: {e}")
        return list(await self.table.get_field_ids())

    async def get_record_ids(self) -> list[str]:
        """视图可见记录（回退全表记录）"""
        if self.capabilities.visible_record_ids:
            try:
                return list(await self.view.get_visible_record_ids())
            except Exception as e:
                logger.warning(f"视图可见记录获取失败，回退全表记录: {e}")
        return list(await self.table.get_record_ids())

    async def get_field_name(self, field_id: str) -> str:
        """字段显示名（为空时用字段ID）"""
        try:
            name = await self.table.get_field_name(field_id)
        except Exception as e:
            logger.warning(f"字段名获取失败 {field_id}: {e}")
            return field_id
        return name or field_id

    async def get_attachment_field_ids(self) -> list[str]:
        return list(await self.table.get_attachment_field_ids() or [])

    async def get_fields(self, field_ids: list[str]) -> list[FieldDescriptor]:
        """按顺序构建字段描述（一次导出只调用一次）"""
        attachment_ids = set(await self.get_attachment_field_ids())
        fields = []
        for fid in field_ids:
            fields.append(
                FieldDescriptor(
                    id=fid,
                    display_name=await self.get_field_name(fid),
                    is_attachment=fid in attachment_ids,
                )
            )
        return fields

    async def get_cell_value(self, field_id: str, record_id: str) -> Any:
        return await self.table.get_cell_value(field_id, record_id)

    async def get_cell_string(self, field_id: str, record_id: str) -> str:
        """单元格显示文本，失败时为空串"""
        try:
            if self.capabilities.cell_string:
                text = await self.table.get_cell_string(field_id, record_id)
                return "" if text is None else str(text)
            return normalize_value(await self.table.get_cell_value(field_id, record_id))
        except Exception as e:
            logger.warning(f"单元格读取失败 {record_id}/{field_id}: {e}")
            return ""

    async def get_attachment_urls(
        self,
        tokens: list[str],
        field_id: str,
        record_id: str,
    ) -> list[str | None]:
        return list(await self.table.get_attachment_urls(tokens, field_id, record_id) or [])


class SourceAdapter:
    """多维表格适配器"""

    def __init__(self, base: IBase):
        self.base = base
        self.capabilities = SourceCapabilities.detect_base(base)

    async def open_table(
        self,
        table_id: str | None = None,
        view_id: str | None = None,
    ) -> TableAdapter:
        """选择数据表与视图"""
        table = await self._select_table(table_id)
        view = await self._select_view(table, view_id)
        return TableAdapter(table, view)

    async def list_tables(self) -> list[tuple[str, str]]:
        """(表ID, 表名) 列表"""
        tables = await self.base.get_table_list()
        return [(t.id, await t.get_name()) for t in tables or []]

    async def _select_table(self, table_id: str | None) -> ITable:
        if table_id:
            return await self.base.get_table_by_id(table_id)

        if self.capabilities.active_table:
            try:
                table = await self.base.get_active_table()
                if table is not None:
                    return table
            except Exception as e:
                logger.warning(f"活动数据表获取失败，回退第一张表: {e}")

        tables = await self.base.get_table_list()
        if not tables:
            raise DataSourceError("无法获取数据表")
        return tables[0]

    async def _select_view(self, table: ITable, view_id: str | None) -> IView | None:
        caps = SourceCapabilities.detect_table(table)

        if view_id and caps.view_list:
            try:
                for view in await table.get_view_list() or []:
                    if view.id == view_id:
                        return view
            except Exception as e:
                logger.warning(f"视图列表获取失败: {e}")

        if caps.active_view:
            try:
                return await table.get_active_view()
            except Exception as e:
                logger.warning(f"活动视图获取失败，不按视图过滤: {e}")

        return None
