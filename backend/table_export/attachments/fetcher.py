"""
附件下载器 - httpx 异步客户端

单次下载超时由 anyio.fail_after 控制，超时或网络错误抛 AttachmentError
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import anyio
import httpx

from ..interfaces import AttachmentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedBlob:
    """下载结果"""
    content: bytes
    content_type: str

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def image_family(self) -> str:
        """image/jpeg -> jpeg；image/svg+xml -> svg"""
        subtype = self.content_type.partition("/")[2]
        family = subtype.split("+")[0].strip()
        return "jpeg" if family in ("jpg", "pjpeg") else family


class AttachmentFetcher:
    """附件下载器（可注入外部 httpx.AsyncClient）"""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout_sec: float = 30.0):
        self._client = client
        self._owns_client = client is None
        self.timeout_sec = timeout_sec

    async def __aenter__(self) -> AttachmentFetcher:
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
            self._owns_client = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> FetchedBlob:
        """下载单个附件"""
        if self._client is None:
            raise AttachmentError("下载器未打开")

        try:
            with anyio.fail_after(self.timeout_sec):
                response = await self._client.get(url)
                response.raise_for_status()
        except TimeoutError as e:
            raise AttachmentError(f"下载超时({self.timeout_sec}s): {url}") from e
        except httpx.HTTPError as e:
            raise AttachmentError(f"下载失败: {url}: {e}") from e

        content_type = response.headers.get("content-type", "")
        content_type = content_type.split(";")[0].strip().lower()
        logger.debug(f"已下载 {url} ({content_type}, {len(response.content)} bytes)")
        return FetchedBlob(content=response.content, content_type=content_type)
