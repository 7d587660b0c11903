"""
进度上报器 - 状态文案、记录进度、剩余时间估算

职责：
1. 阶段状态文案回调（status）
2. 记录进度回调（progress），每 N 条记录及最后一条上报一次
3. 同步更新任务进度模型
4. 剩余时间估算：按已完成速率推算，附在写入文案后，10秒以内不显示

测试要点：
- test_progress_every_ten_and_last: 25 条记录上报 0/10/20/25
- test_status_shows_remaining: 写入文案附带预计剩余
- test_progress_monotonic_and_job_updated: 进度不回退
- test_format_remaining_short: 1分05秒 / 45秒 / 10秒内为空
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable

from ..config.runtime_config import ProgressConfig
from ..models import ExportJob
from .stages import EXPORT_STAGES, FAILED_STATUS, StageEnum

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]
ProgressCallback = Callable[[int, int], None]


class ProgressReporter:
    """进度上报器"""

    def __init__(
        self,
        job: ExportJob | None = None,
        on_status: StatusCallback | None = None,
        on_progress: ProgressCallback | None = None,
        config: ProgressConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.job = job
        self.on_status = on_status
        self.on_progress = on_progress
        self.config = config or ProgressConfig()
        self.clock = clock
        self.done = 0
        self.total = 0
        self._started_at: float | None = None

    def start(self) -> None:
        """开始新一轮（进度清零）"""
        self.done = 0
        self.total = 0
        self._started_at = None
        if self.on_progress is not None:
            self.on_progress(0, 0)
        self.enter(StageEnum.PREPARE)

    def status(self, message: str) -> None:
        logger.info(message)
        if self.job is not None:
            self.job.progress.message = message
        if self.on_status is not None:
            self.on_status(message)

    def enter(self, stage: StageEnum, suffix: str = "", **kwargs) -> None:
        """进入阶段并上报阶段文案（suffix 追加在文案后）"""
        spec = EXPORT_STAGES[stage]
        if self.job is not None:
            self.job.progress.stage = spec.name
        self.status(spec.message(**kwargs) + suffix)

    def fail(self, error: Exception | str) -> None:
        self.status(FAILED_STATUS.format(error=error))

    def set_total(self, total: int) -> None:
        """确定记录总数并开始计时"""
        self.total = total
        self._started_at = self.clock()
        if self.job is not None:
            self.job.progress.total = total
        if self.on_progress is not None:
            self.on_progress(self.done, total)

    def record_done(self) -> None:
        """完成一条记录"""
        if self._started_at is None:
            self._started_at = self.clock()
        self.done = min(self.done + 1, self.total) if self.total else self.done + 1
        if self.job is not None:
            self.job.progress.done = self.done

        every = max(1, self.config.every_n_records)
        if self.done % every == 0 or self.done == self.total:
            if self.on_progress is not None:
                self.on_progress(self.done, self.total)
            remaining = self.format_remaining()
            suffix = f" 预计剩余：{remaining}" if remaining else ""
            self.enter(StageEnum.RENDER, suffix, done=self.done, total=self.total)

    def remaining_seconds(self) -> int | None:
        """预计剩余秒数（无法估算时为None）"""
        if self._started_at is None or not self.total or not self.done:
            return None
        elapsed = self.clock() - self._started_at
        if elapsed <= 0:
            return None
        left = (self.total - self.done) / (self.done / elapsed)
        if left <= 0:
            return None
        return math.ceil(left)

    def format_remaining(self) -> str:
        """剩余时间文案：1分05秒 / 45秒；不超过隐藏阈值时为空"""
        seconds = self.remaining_seconds()
        if not seconds or seconds <= self.config.remaining_hide_sec:
            return ""
        minutes, secs = divmod(seconds, 60)
        if minutes:
            return f"{minutes}分{secs:02d}秒"
        return f"{secs:02d}秒"
