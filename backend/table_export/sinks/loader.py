"""
渲染库加载器 - 按格式惰性加载文档渲染库

职责：
1. 进程级缓存：每种格式只成功加载一次
2. 同一格式同时只有一个加载过程（锁保护）
3. 按顺序尝试候选模块（工作线程中导入，每个候选有超时）
4. 检查必需属性（如 openpyxl.Workbook），缺失时报错并指明缺失能力

测试要点：
- test_load_cached: 第二次加载直接命中缓存
- test_missing_attr_raises: 缺少必需属性时 BackendLoadError 指明 模块.属性
- test_fallback_candidate: 首个候选失败时尝试下一个
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from types import ModuleType

import anyio

from ..config.profile_loader import FormatProfile
from ..interfaces import BackendLoadError

logger = logging.getLogger(__name__)

# 进程级缓存：格式 -> 已验证的模块
_MODULE_CACHE: dict[str, ModuleType] = {}


class BackendLoader:
    """渲染库加载器"""

    def __init__(
        self,
        timeout_sec: float = 8.0,
        importer: Callable[[str], ModuleType] = importlib.import_module,
        cache: dict[str, ModuleType] | None = None,
    ):
        self.timeout_sec = timeout_sec
        self.importer = importer
        self.cache = _MODULE_CACHE if cache is None else cache
        self._locks: dict[str, anyio.Lock] = {}

    def _lock_for(self, fmt: str) -> anyio.Lock:
        if fmt not in self._locks:
            self._locks[fmt] = anyio.Lock()
        return self._locks[fmt]

    async def load(self, profile: FormatProfile) -> ModuleType:
        """加载格式对应的渲染库（已缓存则直接返回）"""
        cached = self.cache.get(profile.format)
        if cached is not None:
            return cached

        async with self._lock_for(profile.format):
            cached = self.cache.get(profile.format)
            if cached is not None:
                return cached

            module = await self._load_candidates(profile)
            self.cache[profile.format] = module
            logger.info(f"已加载 {profile.label} 渲染库: {module.__name__}")
            return module

    async def _load_candidates(self, profile: FormatProfile) -> ModuleType:
        spec = profile.backend
        last_missing = f"{spec.modules[0] if spec.modules else '?'}.{spec.required_attr}"

        for name in spec.modules:
            try:
                with anyio.fail_after(self.timeout_sec):
                    module = await anyio.to_thread.run_sync(self.importer, name, abandon_on_cancel=True)
            except TimeoutError:
                logger.warning(f"渲染库加载超时({self.timeout_sec}s): {name}")
                last_missing = f"{name}.{spec.required_attr}"
                continue
            except ImportError as e:
                logger.warning(f"渲染库导入失败: {name}: {e}")
                last_missing = f"{name}.{spec.required_attr}"
                continue

            if callable(getattr(module, spec.required_attr, None)):
                return module
            logger.warning(f"渲染库缺少 {spec.required_attr}: {name}")
            last_missing = f"{name}.{spec.required_attr}"

        raise BackendLoadError(f"{profile.label} 渲染库不可用: {last_missing} 未找到")


def clear_cache() -> None:
    """清空进程级缓存"""
    _MODULE_CACHE.clear()
