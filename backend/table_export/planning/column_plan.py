"""
列规划器 - 构建有序、只追加的输出列列表

职责：
1. 标量字段按字段顺序各占一列
2. 附件字段初始无列，按记录中出现的附件序号逐个追加槽位列
3. 提供 (字段, 槽位) -> 列位置 的查询（每次变更后重建索引）
4. 新槽位创建时通知订阅者（支持回填表头的输出端立即写表头）

约束：
- 列一旦创建位置不变，列数只增不减
- ensure_slot 需以记录附件列表的最大序号调用，保证该记录的槽位连续存在

测试要点：
- test_build_initial_scalar_only: 初始只含标量列
- test_ensure_slot_appends_missing: 补齐缺失槽位
- test_ensure_slot_idempotent: 幂等
- test_index_of_not_found: 未找到返回 NOT_FOUND
- test_listener_called_per_new_slot: 新槽位通知
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from ..models import ColumnPlanEntry, FieldDescriptor

NOT_FOUND = -1

SlotListener = Callable[[int, ColumnPlanEntry], None]


def slot_header(header_base: str, slot_index: int) -> str:
    """附件槽位列表头：<字段名>(<序号+1>)"""
    return f"{header_base}({slot_index + 1})"


class ColumnPlan:
    """列规划"""

    def __init__(self) -> None:
        self._columns: list[ColumnPlanEntry] = []
        self._index: dict[tuple[str, int | None], int] = {}
        self._slot_counts: dict[str, int] = {}
        self._listeners: list[SlotListener] = []

    @classmethod
    def build_initial(cls, fields: Iterable[FieldDescriptor]) -> ColumnPlan:
        """按字段顺序生成标量列，附件字段暂不出列"""
        plan = cls()
        for f in fields:
            if f.is_attachment:
                plan._slot_counts.setdefault(f.id, 0)
                continue
            plan._columns.append(
                ColumnPlanEntry(field_id=f.id, header=f.display_name or f.id, is_attachment=False)
            )
        plan._rebuild_index()
        return plan

    @property
    def columns(self) -> list[ColumnPlanEntry]:
        return list(self._columns)

    @property
    def headers(self) -> list[str]:
        return [c.header for c in self._columns]

    def __len__(self) -> int:
        return len(self._columns)

    def slot_count(self, field_id: str) -> int:
        """附件字段已创建的槽位数"""
        return self._slot_counts.get(field_id, 0)

    def subscribe(self, listener: SlotListener) -> None:
        """订阅新槽位创建事件：listener(列位置, 列条目)"""
        self._listeners.append(listener)

    def ensure_slot(self, field_id: str, slot_index: int, header_base: str) -> int:
        """
        确保附件字段的槽位 [0, slot_index] 全部存在

        Returns:
            slot_index 对应的列位置（从1开始）
        """
        if slot_index < 0:
            raise ValueError(f"槽位序号不能为负: {slot_index}")

        current = self._slot_counts.get(field_id, 0)
        created: list[tuple[int, ColumnPlanEntry]] = []
        if slot_index >= current:
            for i in range(current, slot_index + 1):
                entry = ColumnPlanEntry(
                    field_id=field_id,
                    header=slot_header(header_base, i),
                    is_attachment=True,
                    slot_index=i,
                )
                self._columns.append(entry)
                created.append((len(self._columns), entry))
            self._slot_counts[field_id] = slot_index + 1
            self._rebuild_index()

        for position, entry in created:
            for listener in self._listeners:
                listener(position, entry)

        return self.index_of(field_id, slot_index)

    def index_of(self, field_id: str, slot_index: int | None = None) -> int:
        """查询列位置（从1开始），不存在返回 NOT_FOUND"""
        return self._index.get((field_id, slot_index), NOT_FOUND)

    def _rebuild_index(self) -> None:
        self._index = {entry.key: i + 1 for i, entry in enumerate(self._columns)}
