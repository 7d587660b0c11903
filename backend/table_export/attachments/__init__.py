"""
附件模块 - 附件地址解析、下载与图片归一化

子模块：
- executor: 有界并发执行器与窗口档位
- fetcher: httpx 下载器
- normalizer: Pillow 解码/重编码
- resolver: 记录级附件解析
"""

from .executor import WindowTier, run_bounded
from .fetcher import AttachmentFetcher, FetchedBlob
from .normalizer import normalize_image
from .resolver import AttachmentResolver

__all__ = [
    "WindowTier",
    "run_bounded",
    "AttachmentFetcher",
    "FetchedBlob",
    "normalize_image",
    "AttachmentResolver",
]
