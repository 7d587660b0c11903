"""
有界并发执行器 - 按窗口大小并发执行一组异步任务

职责：
1. 窗口档位：按任务数量选择并发窗口
2. run_bounded: 任务组 + CapacityLimiter，同时运行的任务数不超过窗口
3. 结果按任务原始下标返回（与完成顺序无关）

测试要点：
- test_record_tiers: 档位边界（6/12/30）
- test_results_ordered_by_index: 结果顺序
- test_limit_respected: 同时运行数不超过窗口
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

import anyio

from ..config.runtime_config import WindowStep

T = TypeVar("T")


@dataclass(frozen=True)
class WindowTier:
    """并发窗口档位表：数量 <= max_count 的第一档生效，否则用 default"""
    steps: tuple[tuple[int, int], ...] = field(default_factory=tuple)
    default: int = 2

    @classmethod
    def from_config(cls, steps: Sequence[WindowStep], default: int) -> WindowTier:
        ordered = sorted((s.max_count, s.window) for s in steps)
        return cls(steps=tuple(ordered), default=default)

    def window_for(self, count: int) -> int:
        for max_count, window in self.steps:
            if count <= max_count:
                return max(1, window)
        return max(1, self.default)


async def run_bounded(
    tasks: Sequence[Callable[[], Awaitable[T]]],
    limit: int,
) -> list[T]:
    """
    有界并发执行

    Args:
        tasks: 无参协程工厂列表
        limit: 最大同时运行数

    Returns:
        与 tasks 一一对应的结果列表
    """
    results: list[Any] = [None] * len(tasks)
    if not tasks:
        return results

    limiter = anyio.CapacityLimiter(max(1, limit))

    async def _run(index: int, task: Callable[[], Awaitable[T]]) -> None:
        async with limiter:
            results[index] = await task()

    async with anyio.create_task_group() as tg:
        for i, task in enumerate(tasks):
            tg.start_soon(_run, i, task)

    return results
