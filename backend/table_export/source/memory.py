"""
内存数据源 - 以字典/文件描述的多维表格（测试与命令行工具使用）

数据格式（JSON 或 YAML）：
    active_table: tbl1            # 可选
    tables:
      - id: tbl1
        name: 项目清单
        fields:
          - {id: f1, name: 名称}
          - {id: f2, name: 照片, type: attachment}
        records:
          - id: r1
            cells:
              f1: 样例
              f2: [{token: t1, name: a.png}]
        views:
          - {id: v1, name: 全部, field_ids: [f1, f2], record_ids: [r1]}
        active_view: v1           # 可选
        attachment_urls: {t1: "https://example.com/a.png"}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from ..interfaces import DataSourceError, IBase, ITable, IView


class InMemoryView(IView):
    """内存视图"""

    def __init__(
        self,
        view_id: str,
        name: str = "",
        field_ids: list[str] | None = None,
        record_ids: list[str] | None = None,
    ):
        self.id = view_id
        self.name = name or view_id
        self.field_ids = field_ids
        self.record_ids = record_ids

    async def get_name(self) -> str:
        return self.name

    async def get_visible_field_ids(self) -> list[str]:
        if self.field_ids is None:
            raise DataSourceError(f"视图 {self.id} 未定义可见字段")
        return list(self.field_ids)

    async def get_visible_record_ids(self) -> list[str]:
        if self.record_ids is None:
            raise DataSourceError(f"视图 {self.id} 未定义可见记录")
        return list(self.record_ids)


class InMemoryTable(ITable):
    """内存数据表"""

    def __init__(
        self,
        table_id: str,
        name: str = "",
        fields: list[dict[str, Any]] | None = None,
        records: list[dict[str, Any]] | None = None,
        views: list[InMemoryView] | None = None,
        active_view_id: str | None = None,
        attachment_urls: dict[str, str] | None = None,
    ):
        self.id = table_id
        self.name = name or table_id
        self.fields = list(fields or [])
        self.records = list(records or [])
        self.views = list(views or [])
        self.active_view_id = active_view_id
        self.attachment_urls = dict(attachment_urls or {})
        # 记录批量URL解析调用次数（测试断言用）
        self.url_calls: list[tuple[str, str, list[str]]] = []

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InMemoryTable:
        views = [
            InMemoryView(
                view_id=str(v["id"]),
                name=v.get("name", ""),
                field_ids=v.get("field_ids"),
                record_ids=v.get("record_ids"),
            )
            for v in data.get("views") or []
        ]
        return cls(
            table_id=str(data["id"]),
            name=data.get("name", ""),
            fields=data.get("fields"),
            records=data.get("records"),
            views=views,
            active_view_id=data.get("active_view"),
            attachment_urls=data.get("attachment_urls"),
        )

    def _record(self, record_id: str) -> dict[str, Any]:
        for record in self.records:
            if str(record.get("id")) == record_id:
                return record
        raise DataSourceError(f"记录不存在: {record_id}")

    async def get_name(self) -> str:
        return self.name

    async def get_field_ids(self) -> list[str]:
        return [str(f["id"]) for f in self.fields]

    async def get_record_ids(self) -> list[str]:
        return [str(r["id"]) for r in self.records]

    async def get_field_name(self, field_id: str) -> str:
        for f in self.fields:
            if str(f["id"]) == field_id:
                return f.get("name") or field_id
        raise DataSourceError(f"字段不存在: {field_id}")

    async def get_cell_value(self, field_id: str, record_id: str) -> Any:
        return (self._record(record_id).get("cells") or {}).get(field_id)

    async def get_attachment_field_ids(self) -> list[str]:
        return [str(f["id"]) for f in self.fields if f.get("type") == "attachment"]

    async def get_attachment_urls(
        self,
        tokens: list[str],
        field_id: str,
        record_id: str,
    ) -> list[str | None]:
        self.url_calls.append((record_id, field_id, list(tokens)))
        return [self.attachment_urls.get(t) for t in tokens]

    async def get_view_list(self) -> list[IView]:
        return list(self.views)

    async def get_active_view(self) -> IView | None:
        for view in self.views:
            if view.id == self.active_view_id:
                return view
        return None


class InMemoryBase(IBase):
    """内存多维表格"""

    def __init__(self, tables: list[InMemoryTable], active_table_id: str | None = None):
        self.tables = list(tables)
        self.active_table_id = active_table_id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InMemoryBase:
        tables = [InMemoryTable.from_dict(t) for t in data.get("tables") or []]
        return cls(tables, active_table_id=data.get("active_table"))

    @classmethod
    def from_file(cls, path: str | Path) -> InMemoryBase:
        """从 JSON/YAML 文件加载"""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"数据文件不存在: {path}")

        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    async def get_table_list(self) -> list[ITable]:
        return list(self.tables)

    async def get_table_by_id(self, table_id: str) -> ITable:
        for table in self.tables:
            if table.id == table_id:
                return table
        raise DataSourceError(f"数据表不存在: {table_id}")

    async def get_active_table(self) -> ITable | None:
        if self.active_table_id is None:
            return None
        return await self.get_table_by_id(self.active_table_id)
