"""
导出任务模型 - 定义一次导出的状态与生命周期

每次导出新建，完成或失败后丢弃，不做持久化
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """任务状态枚举"""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ExportFormat(str, Enum):
    """输出格式"""
    XLSX = "xlsx"
    DOCX = "docx"
    PDF = "pdf"


class ExportArtifact(BaseModel):
    """导出产物（可下载的二进制文件）"""
    file_name: str
    mime_type: str
    content: bytes = Field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    def save(self, output_dir: Path) -> Path:
        """写入目录，返回文件路径"""
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / self.file_name
        path.write_bytes(self.content)
        return path


class JobProgress(BaseModel):
    """任务进度"""
    stage: str = "INIT"
    done: int = 0
    total: int = 0
    message: str = ""

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return round(self.done * 100 / self.total)


class ExportJob(BaseModel):
    """导出任务"""
    job_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    format: ExportFormat

    # 输入
    file_name: str | None = None  # None 时按 <表名>-<视图名> 自动命名
    table_id: str | None = None
    view_id: str | None = None
    embed_attachments: bool | None = None  # None 时取运行期配置

    # 状态
    status: JobStatus = JobStatus.QUEUED
    progress: JobProgress = Field(default_factory=JobProgress)

    # 产物
    artifact: ExportArtifact | None = None

    # 结果
    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def mark_running(self, stage: str = "PREPARE") -> None:
        """标记为运行中（进度清零）"""
        self.status = JobStatus.RUNNING
        self.started_at = datetime.now()
        self.progress = JobProgress(stage=stage)

    def mark_succeeded(self, artifact: ExportArtifact) -> None:
        """标记为成功"""
        self.status = JobStatus.SUCCEEDED
        self.finished_at = datetime.now()
        self.artifact = artifact

    def mark_failed(self, error: str) -> None:
        """标记为失败（不保留任何产物）"""
        self.status = JobStatus.FAILED
        self.finished_at = datetime.now()
        self.artifact = None
        self.errors.append(error)

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)
