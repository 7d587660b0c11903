"""
单元格解析结果 - 每个 (记录, 列) 一个

TextCell: 文本（标量值/附件回退文件名）
ImageCell: 可嵌入图片（已按输出端要求归一化编码）
EmptyCell: 空单元格
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextCell:
    text: str


@dataclass(frozen=True)
class ImageCell:
    data: bytes
    format: str
    natural_width: int
    natural_height: int

    def __repr__(self) -> str:
        return (
            f"ImageCell(format={self.format!r}, size={self.natural_width}x{self.natural_height}, "
            f"bytes={len(self.data)})"
        )


@dataclass(frozen=True)
class EmptyCell:
    pass


ResolvedCell = Union[TextCell, ImageCell, EmptyCell]


def cell_text(cell: ResolvedCell) -> str:
    """单元格文本（图片与空单元格为空串）"""
    if isinstance(cell, TextCell):
        return cell.text
    return ""
