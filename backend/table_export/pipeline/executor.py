"""
导出流水线执行器 - 编排一次导出

职责：
1. 选择数据表/视图，收集字段与记录
2. 加载目标格式的渲染库，创建输出端
3. 逐条记录：扩展附件槽位 → 解析附件 → 组装行 → 写入
4. 生成文件并返回产物
5. 任何未恢复的错误：记录日志、标记任务失败、上报"导出失败"并重新抛出（不产出文件）

测试要点：
- test_export_xlsx_scalar_and_slots: 槽位扩展与空单元格
- test_non_image_attachment_fallback: 非图片附件回退文件名
- test_backend_load_failure: 渲染库缺失时失败且无产物
- test_progress_reported_every_ten: 进度上报
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import anyio
import httpx

from ..attachments import AttachmentFetcher, AttachmentResolver, WindowTier
from ..config import ExportProfiles, FormatProfile, RuntimeConfig, get_config, load_profiles
from ..interfaces import IBase
from ..layout import LayoutEngine
from ..models import (
    AttachmentItem,
    EmptyCell,
    ExportArtifact,
    ExportFormat,
    ExportJob,
    ResolvedCell,
    TextCell,
    parse_attachment_items,
)
from ..planning import ColumnPlan, classify_fields
from ..sinks import BackendLoader, create_sink
from ..source import SourceAdapter, TableAdapter
from .naming import resolve_file_name, suggest_base_name
from .progress import ProgressCallback, ProgressReporter, StatusCallback
from .stages import StageEnum
from .writer import RowWriter

logger = logging.getLogger(__name__)


class ExportPipeline:
    """导出流水线"""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        profiles: ExportProfiles | None = None,
        loader: BackendLoader | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or get_config()
        self.profiles = profiles or load_profiles()
        self.loader = loader or BackendLoader(timeout_sec=self.config.timeouts.backend_load_sec)
        self.http_client = http_client
        self.clock = clock

    async def run(
        self,
        job: ExportJob,
        base: IBase,
        on_status: StatusCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ExportArtifact:
        """执行导出"""
        reporter = ProgressReporter(job, on_status, on_progress, self.config.progress, self.clock)
        job.mark_running(StageEnum.PREPARE.value)
        reporter.start()
        logger.info(f"[{job.job_id}] 开始导出: {job.format.value}")

        try:
            artifact = await self._export(job, base, reporter)
        except Exception as e:
            logger.exception(f"导出失败: {job.job_id}")
            job.mark_failed(str(e))
            reporter.fail(e)
            raise

        job.mark_succeeded(artifact)
        reporter.enter(StageEnum.DONE)
        logger.info(f"[{job.job_id}] 导出完成: {artifact.file_name} ({artifact.size} bytes)")
        return artifact

    async def _export(self, job: ExportJob, base: IBase, reporter: ProgressReporter) -> ExportArtifact:
        profile = self.profiles.get_profile(job.format.value)

        # 1. 数据表与字段
        table = await SourceAdapter(base).open_table(job.table_id, job.view_id)
        reporter.enter(StageEnum.COLLECT)
        field_ids = await table.get_field_ids()
        record_ids = await table.get_record_ids()
        fields = await table.get_fields(field_ids)
        partition = classify_fields(fields)
        reporter.set_total(len(record_ids))
        logger.info(
            f"字段 {len(fields)} 个（附件 {len(partition.attachment_ids)} 个），记录 {len(record_ids)} 条"
        )

        # 2. 渲染库与输出端
        backend = await self.loader.load(profile)
        reporter.enter(StageEnum.LOAD_BACKEND, label=profile.label)

        table_name = await table.get_table_name()
        view_name = await table.get_view_name()
        sink = create_sink(profile, backend, table_name)
        engine = LayoutEngine(sink.geometry, sink.measurer, self.config.layout, self.config.images)
        plan = ColumnPlan.build_initial(fields)
        writer = RowWriter(sink, engine, plan, sample_rows=self.config.layout.sample_rows)

        # 3. 逐条记录
        names = {f.id: f.display_name for f in fields}
        async with AttachmentFetcher(self.http_client, self.config.timeouts.fetch_sec) as fetcher:
            resolver = self._build_resolver(job, table, fetcher, profile)
            for record_id in record_ids:
                row = await self._build_row(table, plan, resolver, partition.attachment_ids, names, record_id)
                writer.add(row)
                reporter.record_done()

        layout = writer.close()
        if layout.page_breaks:
            logger.info(f"分页 {len(layout.page_breaks) + 1} 页")

        # 4. 生成文件
        reporter.enter(StageEnum.GENERATE)
        content = sink.finalize()
        file_name = job.file_name
        if file_name is None:
            file_name = suggest_base_name(table_name, view_name)
        return ExportArtifact(
            file_name=resolve_file_name(file_name, profile),
            mime_type=profile.mime_type,
            content=content,
        )

    def _build_resolver(
        self,
        job: ExportJob,
        table: TableAdapter,
        fetcher: AttachmentFetcher,
        profile: FormatProfile,
    ) -> AttachmentResolver:
        concurrency = self.config.concurrency
        embed = job.embed_attachments
        if embed is None:
            embed = self.config.attachments.embed

        def _on_fallback(item: AttachmentItem, reason: str) -> None:
            job.add_flag(f"附件回退:{item.file_name}")

        return AttachmentResolver(
            table,
            fetcher,
            embed=embed,
            accepted_formats=profile.accepted_image_formats,
            record_tier=WindowTier.from_config(concurrency.record_tiers, concurrency.record_default),
            field_tier=WindowTier.from_config(concurrency.field_tiers, concurrency.field_default),
            on_fallback=_on_fallback,
        )

    async def _build_row(
        self,
        table: TableAdapter,
        plan: ColumnPlan,
        resolver: AttachmentResolver,
        attachment_ids: list[str],
        names: dict[str, str],
        record_id: str,
    ) -> list[ResolvedCell]:
        """组装一行：先按附件数扩展槽位，再解析附件与标量"""
        items_by_field: dict[str, list[AttachmentItem]] = {}
        for fid in attachment_ids:
            try:
                value = await table.get_cell_value(fid, record_id)
            except Exception as e:
                logger.warning(f"附件单元格读取失败 {record_id}/{fid}: {e}")
                continue
            items = parse_attachment_items(value)
            if items:
                plan.ensure_slot(fid, len(items) - 1, names[fid])
                items_by_field[fid] = items

        resolved = await resolver.resolve_record(record_id, items_by_field)

        row: list[ResolvedCell] = []
        for column in plan.columns:
            if not column.is_attachment:
                row.append(TextCell(await table.get_cell_string(column.field_id, record_id)))
                continue
            cells = resolved.get(column.field_id, [])
            slot = column.slot_index or 0
            row.append(cells[slot] if slot < len(cells) else EmptyCell())
        return row


def run_export(
    base: IBase,
    export_format: ExportFormat | str,
    file_name: str | None = None,
    *,
    table_id: str | None = None,
    view_id: str | None = None,
    embed_attachments: bool | None = None,
    config: RuntimeConfig | None = None,
    on_status: StatusCallback | None = None,
    on_progress: ProgressCallback | None = None,
) -> tuple[ExportJob, ExportArtifact]:
    """同步执行一次导出（命令行使用）"""
    job = ExportJob(
        format=ExportFormat(export_format),
        file_name=file_name,
        table_id=table_id,
        view_id=view_id,
        embed_attachments=embed_attachments,
    )
    pipeline = ExportPipeline(config=config)

    async def _main() -> ExportArtifact:
        return await pipeline.run(job, base, on_status, on_progress)

    artifact = anyio.run(_main)
    return job, artifact

