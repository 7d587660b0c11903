"""
图片缩放 - 计算图片在单元格内的输出像素尺寸

规则：
- 上限比例 upper = min(min(最大宽, 可用宽)/原宽, 最大高/原高)
- 下限比例 lower = max(最小宽/原宽, 最小高/原高)
- 取 upper，夹在 [max(0, lower), upper] 内；两者冲突时下限优先
- 结果向下取整，至少 1 像素
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..config.runtime_config import ImageConfig
from ..interfaces import LayoutError


@dataclass(frozen=True)
class ImageBounds:
    """图片尺寸上下限（像素）"""
    max_width: int = 120
    max_height: int = 90
    min_width: int = 16
    min_height: int = 16

    @classmethod
    def from_config(cls, config: ImageConfig) -> ImageBounds:
        return cls(
            max_width=config.max_width,
            max_height=config.max_height,
            min_width=config.min_width,
            min_height=config.min_height,
        )


def scale_image(
    natural_width: int,
    natural_height: int,
    available_width: float | None,
    bounds: ImageBounds,
) -> tuple[int, int]:
    """
    计算输出尺寸

    Args:
        natural_width: 原始宽度（像素）
        natural_height: 原始高度（像素）
        available_width: 单元格可用宽度（像素），None 表示不受限
        bounds: 尺寸上下限

    Returns:
        (宽, 高) 像素
    """
    if natural_width <= 0 or natural_height <= 0:
        raise LayoutError(f"图片尺寸无效: {natural_width}x{natural_height}")

    cap_width = float(bounds.max_width)
    if available_width is not None:
        cap_width = min(cap_width, available_width)

    upper = min(cap_width / natural_width, bounds.max_height / natural_height)
    lower = max(bounds.min_width / natural_width, bounds.min_height / natural_height)
    ratio = max(max(0.0, lower), upper)

    # 消除浮点误差（如 400 * 0.3）
    width = max(1, math.floor(natural_width * ratio + 1e-9))
    height = max(1, math.floor(natural_height * ratio + 1e-9))
    return width, height
