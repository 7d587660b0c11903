"""
附件解析器 - 将一条记录的附件单元格解析为可嵌入图片或回退文本

职责：
1. 不嵌入附件时：每个附件输出文件名文本，不访问网络
2. 每个 (记录, 字段) 批量解析一次下载地址；未解析的 token 逐个重试一次
3. 下载并检查 content-type：非图片回退文件名；输出端不接受的图片格式转 PNG
4. 一条记录的全部下载/解码任务按附件总数选择并发窗口
5. 结果按附件原始位置写入

依赖：
- anyio: 有界并发、线程池解码
- httpx: 下载（见 fetcher）
- Pillow: 解码与重编码（见 normalizer）

测试要点：
- test_embed_disabled_no_network: 不嵌入时不解析URL
- test_batch_then_individual_retry: 批量失败的 token 单独重试
- test_images_and_non_image: 非图片内容回退文件名
- test_results_written_by_position: 结果位置与完成顺序无关
- test_unexpected_error_falls_back: 单个附件的任意异常只回退该附件
"""

from __future__ import annotations

import logging
from collections.abc import Callable

import anyio

from ..interfaces import AttachmentError
from ..models import AttachmentItem, EmptyCell, ResolvedCell, TextCell
from ..source import TableAdapter
from .executor import WindowTier, run_bounded
from .fetcher import AttachmentFetcher
from .normalizer import normalize_image

logger = logging.getLogger(__name__)

FallbackCallback = Callable[[AttachmentItem, str], None]


class AttachmentResolver:
    """附件解析器"""

    def __init__(
        self,
        table: TableAdapter,
        fetcher: AttachmentFetcher,
        *,
        embed: bool = True,
        accepted_formats: list[str] | None = None,
        record_tier: WindowTier | None = None,
        field_tier: WindowTier | None = None,
        on_fallback: FallbackCallback | None = None,
    ):
        self.table = table
        self.fetcher = fetcher
        self.embed = embed
        self.accepted_formats = list(accepted_formats or ["png", "jpeg"])
        self.record_tier = record_tier or WindowTier(steps=((6, 6), (12, 4), (30, 3)), default=2)
        self.field_tier = field_tier or WindowTier(steps=((4, 4), (12, 3)), default=2)
        self.on_fallback = on_fallback

    async def resolve_record(
        self,
        record_id: str,
        items_by_field: dict[str, list[AttachmentItem]],
    ) -> dict[str, list[ResolvedCell]]:
        """
        解析一条记录的全部附件字段

        Returns:
            {字段ID: 与附件列表等长的解析结果}
        """
        results: dict[str, list[ResolvedCell]] = {
            fid: [EmptyCell()] * len(items) for fid, items in items_by_field.items()
        }

        if not self.embed:
            for fid, items in items_by_field.items():
                for i, item in enumerate(items):
                    if item.token:
                        results[fid][i] = TextCell(item.file_name)
            return results

        # 1. 各字段解析下载地址
        field_ids = [fid for fid, items in items_by_field.items() if any(it.token for it in items)]
        url_lists = await run_bounded(
            [self._url_task(record_id, fid, items_by_field[fid]) for fid in field_ids],
            limit=max(1, len(field_ids)),
        )

        # 2. 汇总全部下载任务（按位置写回）
        jobs: list[tuple[str, int, AttachmentItem, str | None]] = []
        for fid, urls in zip(field_ids, url_lists):
            for i, item in enumerate(items_by_field[fid]):
                if item.token:
                    jobs.append((fid, i, item, urls[i]))

        window = self.record_tier.window_for(len(jobs))
        cells = await run_bounded([self._fetch_task(item, url) for _, _, item, url in jobs], limit=window)

        for (fid, i, _, _), cell in zip(jobs, cells):
            results[fid][i] = cell
        return results

    def _url_task(self, record_id: str, field_id: str, items: list[AttachmentItem]):
        async def _task() -> list[str | None]:
            return await self._resolve_urls(record_id, field_id, items)
        return _task

    def _fetch_task(self, item: AttachmentItem, url: str | None):
        async def _task() -> ResolvedCell:
            return await self._fetch_one(item, url)
        return _task

    async def _resolve_urls(
        self,
        record_id: str,
        field_id: str,
        items: list[AttachmentItem],
    ) -> list[str | None]:
        """批量解析一次，缺失的逐个重试一次"""
        positions = [i for i, item in enumerate(items) if item.token]
        tokens = [items[i].token for i in positions]
        urls: list[str | None] = [None] * len(items)

        try:
            batch = await self.table.get_attachment_urls(tokens, field_id, record_id)
        except Exception as e:
            logger.warning(f"批量解析附件地址失败 {record_id}/{field_id}: {e}")
            batch = []

        missing = []
        for k, pos in enumerate(positions):
            url = batch[k] if k < len(batch) else None
            if url:
                urls[pos] = url
            else:
                missing.append(pos)

        if missing:
            async def _retry(pos: int) -> str | None:
                try:
                    single = await self.table.get_attachment_urls([items[pos].token], field_id, record_id)
                except Exception as e:
                    logger.warning(f"附件地址重试失败 {items[pos].file_name}: {e}")
                    return None
                return single[0] if single else None

            retried = await run_bounded(
                [lambda p=pos: _retry(p) for pos in missing],
                limit=self.field_tier.window_for(len(missing)),
            )
            for pos, url in zip(missing, retried):
                urls[pos] = url or None

        return urls

    async def _fetch_one(self, item: AttachmentItem, url: str | None) -> ResolvedCell:
        if not url:
            return self._fallback(item, "无法获取下载地址")
        try:
            blob = await self.fetcher.fetch(url)
            if not blob.is_image:
                return self._fallback(item, f"非图片内容 {blob.content_type or '未知'}")
            return await anyio.to_thread.run_sync(normalize_image, blob.content, self.accepted_formats)
        except AttachmentError as e:
            return self._fallback(item, str(e))
        except Exception as e:
            # 单个附件的任何异常都不中断整条记录
            return self._fallback(item, f"{type(e).__name__}: {e}")

    def _fallback(self, item: AttachmentItem, reason: str) -> TextCell:
        logger.warning(f"附件回退为文件名 {item.file_name}: {reason}")
        if self.on_fallback is not None:
            self.on_fallback(item, reason)
        return TextCell(item.file_name)
