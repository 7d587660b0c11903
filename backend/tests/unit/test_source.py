"""
数据源适配单元测试（能力探测、表/视图回退、单元格文本）
"""

import json
from pathlib import Path

import pytest

from table_export.interfaces import DataSourceError, IBase, ITable
from table_export.source import InMemoryBase, InMemoryTable, InMemoryView, SourceAdapter, SourceCapabilities


class MinimalTable(ITable):
    """只实现必需成员的数据表"""

    def __init__(self, table_id: str = "min"):
        self.id = table_id

    async def get_name(self):
        return "最小表"

    async def get_field_ids(self):
        return ["a", "b"]

    async def get_record_ids(self):
        return ["r1"]

    async def get_field_name(self, field_id):
        return "" if field_id == "b" else "字段A"

    async def get_cell_value(self, field_id, record_id):
        if field_id == "b":
            raise RuntimeError("boom")
        return [{"text": "x"}, {"text": "y"}]

    async def get_attachment_field_ids(self):
        return []

    async def get_attachment_urls(self, tokens, field_id, record_id):
        return [None] * len(tokens)


class MinimalBase(IBase):
    def __init__(self, tables):
        self.tables = tables

    async def get_table_list(self):
        return list(self.tables)

    async def get_table_by_id(self, table_id):
        return next(t for t in self.tables if t.id == table_id)


def _base() -> InMemoryBase:
    view_all = InMemoryView("v_all", "全部")
    view_some = InMemoryView("v_some", "部分", field_ids=["f2"], record_ids=["r2"])
    t1 = InMemoryTable(
        "t1",
        "表一",
        fields=[{"id": "f1", "name": "名称"}, {"id": "f2", "name": "附件", "type": "attachment"}],
        records=[{"id": "r1", "cells": {"f1": "甲"}}, {"id": "r2", "cells": {"f1": None}}],
        views=[view_all, view_some],
        active_view_id="v_all",
    )
    t2 = InMemoryTable("t2", "表二")
    return InMemoryBase([t1, t2], active_table_id="t2")


class TestCapabilities:
    """能力探测测试"""

    def test_detect_in_memory(self):
        base = _base()
        assert SourceCapabilities.detect_base(base).active_table
        caps = SourceCapabilities.detect_table(base.tables[0], base.tables[0].views[0])
        assert caps.view_list and caps.active_view
        assert caps.visible_field_ids and caps.visible_record_ids
        assert not caps.cell_string

    def test_detect_minimal(self):
        caps = SourceCapabilities.detect_table(MinimalTable())
        assert not caps.view_list
        assert not caps.active_view
        assert not caps.visible_field_ids


class TestTableSelection:
    """数据表/视图选择测试"""

    @pytest.mark.anyio
    async def test_explicit_table_and_view(self):
        table = await SourceAdapter(_base()).open_table("t1", "v_some")
        assert table.table_id == "t1"
        assert await table.get_view_name() == "部分"
        assert await table.get_field_ids() == ["f2"]
        assert await table.get_record_ids() == ["r2"]

    @pytest.mark.anyio
    async def test_active_table(self):
        table = await SourceAdapter(_base()).open_table()
        assert table.table_id == "t2"

    @pytest.mark.anyio
    async def test_active_view_when_id_unknown(self):
        table = await SourceAdapter(_base()).open_table("t1", "v_missing")
        assert await table.get_view_name() == "全部"

    @pytest.mark.anyio
    async def test_view_lists_fallback(self):
        # 活动视图未定义可见列表：回退全表
        table = await SourceAdapter(_base()).open_table("t1")
        assert await table.get_field_ids() == ["f1", "f2"]
        assert await table.get_record_ids() == ["r1", "r2"]

    @pytest.mark.anyio
    async def test_table_fallback_to_first(self):
        adapter = SourceAdapter(MinimalBase([MinimalTable("m1"), MinimalTable("m2")]))
        assert not adapter.capabilities.active_table
        table = await adapter.open_table()
        assert table.table_id == "m1"
        assert table.view is None

    @pytest.mark.anyio
    async def test_no_table(self):
        with pytest.raises(DataSourceError, match="无法获取数据表"):
            await SourceAdapter(MinimalBase([])).open_table()


class TestCells:
    """字段与单元格测试"""

    @pytest.mark.anyio
    async def test_get_fields(self):
        table = await SourceAdapter(_base()).open_table("t1")
        fields = await table.get_fields(await table.get_field_ids())
        assert [(f.id, f.display_name, f.is_attachment) for f in fields] == [
            ("f1", "名称", False),
            ("f2", "附件", True),
        ]

    @pytest.mark.anyio
    async def test_field_name_falls_back_to_id(self):
        table = await SourceAdapter(MinimalBase([MinimalTable()])).open_table()
        assert await table.get_field_name("b") == "b"

    @pytest.mark.anyio
    async def test_cell_string_fallback(self):
        table = await SourceAdapter(MinimalBase([MinimalTable()])).open_table()
        assert await table.get_cell_string("a", "r1") == "x,y"
        assert await table.get_cell_string("b", "r1") == ""

    @pytest.mark.anyio
    async def test_empty_value_is_empty_string(self):
        table = await SourceAdapter(_base()).open_table("t1")
        assert await table.get_cell_string("f1", "r2") == ""
        assert await table.get_cell_string("f1", "r1") == "甲"


class TestInMemoryBase:
    """内存数据源测试"""

    def test_from_yaml_file(self, temp_dir: Path):
        path = temp_dir / "data.yaml"
        path.write_text(
            "active_table: a\n"
            "tables:\n"
            "  - id: a\n"
            "    name: 表A\n"
            "    fields: [{id: f1, name: 名称}]\n"
            "    records: [{id: r1, cells: {f1: 值}}]\n",
            encoding="utf-8",
        )
        base = InMemoryBase.from_file(path)
        assert base.active_table_id == "a"
        assert base.tables[0].name == "表A"

    def test_from_json_file(self, temp_dir: Path, table_data):
        path = temp_dir / "data.json"
        path.write_text(json.dumps(table_data([{"id": "r1", "cells": {}}]), ensure_ascii=False), encoding="utf-8")
        base = InMemoryBase.from_file(path)
        assert base.tables[0].id == "tbl1"

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(FileNotFoundError):
            InMemoryBase.from_file(temp_dir / "none.json")

    @pytest.mark.anyio
    async def test_unknown_table(self):
        with pytest.raises(DataSourceError):
            await _base().get_table_by_id("zzz")
