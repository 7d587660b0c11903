"""
导出流水线阶段定义

职责：
1. 定义各阶段名称与对应的状态文案
2. 供进度上报器记录当前阶段

测试要点：
- test_stage_status_messages: 阶段文案
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StageEnum(str, Enum):
    """导出阶段枚举"""
    PREPARE = "PREPARE"
    COLLECT = "COLLECT"
    LOAD_BACKEND = "LOAD_BACKEND"
    RENDER = "RENDER"
    GENERATE = "GENERATE"
    DONE = "DONE"


@dataclass(frozen=True)
class PipelineStage:
    """流水线阶段"""
    name: str
    status: str  # 状态文案模板（str.format）

    def message(self, **kwargs) -> str:
        return self.status.format(**kwargs)


EXPORT_STAGES: dict[StageEnum, PipelineStage] = {
    StageEnum.PREPARE: PipelineStage(StageEnum.PREPARE.value, "准备中"),
    StageEnum.COLLECT: PipelineStage(StageEnum.COLLECT.value, "收集字段与记录"),
    StageEnum.LOAD_BACKEND: PipelineStage(StageEnum.LOAD_BACKEND.value, "已加载 {label} 库"),
    StageEnum.RENDER: PipelineStage(StageEnum.RENDER.value, "写入 {done}/{total}"),
    StageEnum.GENERATE: PipelineStage(StageEnum.GENERATE.value, "生成文件"),
    StageEnum.DONE: PipelineStage(StageEnum.DONE.value, "导出完成"),
}

FAILED_STATUS = "导出失败: {error}"
