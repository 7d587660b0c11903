"""
pytest 配置与公共 fixtures

使用方式：
    @pytest.mark.anyio
    async def test_something(sample_base, http_client):
        ...
"""

from __future__ import annotations

import struct
import tempfile
import zlib
from collections.abc import Callable
from io import BytesIO
from pathlib import Path
from typing import Any, Generator

import httpx
import pytest
from PIL import Image

from table_export.config import ExportProfiles, RuntimeConfig, load_profiles
from table_export.models import ExportFormat, ExportJob
from table_export.source import InMemoryBase


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def runtime_config() -> RuntimeConfig:
    """运行期配置"""
    return RuntimeConfig()


@pytest.fixture(scope="session")
def profiles() -> ExportProfiles:
    """导出格式规范（会话级别缓存）"""
    return load_profiles()


# ============================================================================
# 图片 Fixtures
# ============================================================================

def make_image(size: tuple[int, int], fmt: str, mode: str = "RGB") -> bytes:
    color = (200, 80, 40, 255) if mode == "RGBA" else (200, 80, 40)
    buf = BytesIO()
    Image.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture(scope="session")
def png_bytes() -> bytes:
    """200x100 PNG"""
    return make_image((200, 100), "PNG")


@pytest.fixture(scope="session")
def jpeg_bytes() -> bytes:
    """60x40 JPEG"""
    return make_image((60, 40), "JPEG")


@pytest.fixture(scope="session")
def bmp_bytes() -> bytes:
    """50x50 BMP（PDF/Excel 不接受，需转 PNG）"""
    return make_image((50, 50), "BMP")


def make_oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """只有头部的 PNG（声明超大尺寸，超过 Pillow 解码上限）"""
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"") + chunk(b"IEND", b"")


@pytest.fixture(scope="session")
def oversized_png_bytes() -> bytes:
    """20000x20000 PNG 头"""
    return make_oversized_png()


# ============================================================================
# HTTP Fixtures
# ============================================================================

Routes = dict[str, tuple[bytes, str]]


@pytest.fixture
def make_http_client() -> Generator[Callable[[Routes], httpx.AsyncClient], None, None]:
    """
    按路由表构造 httpx 客户端：{url: (内容, content-type)}，未登记的地址返回 404

    客户端记录请求过的 URL 到 client.requested
    """
    def _make(routes: Routes) -> httpx.AsyncClient:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            requested.append(url)
            if url not in routes:
                return httpx.Response(404)
            content, content_type = routes[url]
            return httpx.Response(200, content=content, headers={"content-type": content_type})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client.requested = requested  # type: ignore[attr-defined]
        return client

    yield _make


# ============================================================================
# 数据源 Fixtures
# ============================================================================

def build_table_data(records: list[dict[str, Any]], urls: dict[str, str] | None = None) -> dict[str, Any]:
    """构造单表数据：名称/备注/照片 三个字段"""
    return {
        "tables": [
            {
                "id": "tbl1",
                "name": "项目清单",
                "fields": [
                    {"id": "f_name", "name": "名称"},
                    {"id": "f_note", "name": "备注"},
                    {"id": "f_photo", "name": "照片", "type": "attachment"},
                ],
                "records": records,
                "views": [{"id": "v1", "name": "全部"}],
                "active_view": "v1",
                "attachment_urls": urls or {},
            }
        ]
    }


@pytest.fixture
def sample_base() -> InMemoryBase:
    """
    三条记录：
    - r1: 1 个附件（图片）
    - r2: 备注为空，无附件
    - r3: 3 个附件（图片 / 图片 / 非图片）
    """
    records = [
        {"id": "r1", "cells": {"f_name": "一号楼", "f_note": "完成", "f_photo": [{"token": "t1", "name": "a.png"}]}},
        {"id": "r2", "cells": {"f_name": "二号楼", "f_note": None}},
        {
            "id": "r3",
            "cells": {
                "f_name": "地下车库",
                "f_note": {"text": "复核"},
                "f_photo": [
                    {"token": "t2", "name": "b.png"},
                    {"token": "t3", "name": "c.jpg"},
                    {"token": "t4", "name": "验收单.pdf"},
                ],
            },
        },
    ]
    urls = {
        "t1": "https://files.test/t1",
        "t2": "https://files.test/t2",
        "t3": "https://files.test/t3",
        "t4": "https://files.test/t4",
    }
    return InMemoryBase.from_dict(build_table_data(records, urls))


@pytest.fixture
def sample_routes(png_bytes: bytes, jpeg_bytes: bytes) -> Routes:
    """sample_base 的附件下载路由"""
    return {
        "https://files.test/t1": (png_bytes, "image/png"),
        "https://files.test/t2": (png_bytes, "image/png"),
        "https://files.test/t3": (jpeg_bytes, "image/jpeg"),
        "https://files.test/t4": (b"%PDF-1.4 fake", "application/pdf"),
    }


# ============================================================================
# Job Fixtures
# ============================================================================

@pytest.fixture
def xlsx_job() -> ExportJob:
    return ExportJob(format=ExportFormat.XLSX, file_name="测试")


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def table_data() -> Callable[..., dict[str, Any]]:
    """单表数据构造函数（见 build_table_data）"""
    return build_table_data


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    """图片构造函数（见 make_image）"""
    return make_image
