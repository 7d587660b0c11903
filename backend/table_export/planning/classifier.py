"""
字段分类器 - 区分标量字段与附件字段

职责：
1. 按数据源的附件字段元数据（或字段描述自身标记）识别附件字段
2. 输出两个互斥且保持原字段顺序的ID列表

测试要点：
- test_partition_preserves_order: 保持原字段顺序
- test_partition_disjoint: 两组互斥
- test_empty_fields: 无字段时输出空结果
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models import FieldDescriptor


@dataclass
class FieldPartition:
    """字段分组结果"""
    scalar_ids: list[str] = field(default_factory=list)
    attachment_ids: list[str] = field(default_factory=list)

    def is_attachment(self, field_id: str) -> bool:
        return field_id in self.attachment_ids


def classify_fields(
    fields: Iterable[FieldDescriptor],
    attachment_field_ids: Iterable[str] = (),
) -> FieldPartition:
    """划分标量字段与附件字段"""
    attachment_set = set(attachment_field_ids)
    partition = FieldPartition()
    seen: set[str] = set()
    for f in fields:
        if f.id in seen:
            continue
        seen.add(f.id)
        if f.is_attachment or f.id in attachment_set:
            partition.attachment_ids.append(f.id)
        else:
            partition.scalar_ids.append(f.id)
    return partition
