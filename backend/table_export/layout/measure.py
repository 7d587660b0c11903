"""
文本测量器 - 排版引擎使用的测量接口（视为纯函数）

- TextMeasurer: 抽象接口，提供通用的贪心分词换行
- EstimatedMeasurer: 按东亚字符宽度估算（无渲染库时使用）
"""

from __future__ import annotations

import unicodedata
from abc import ABC, abstractmethod


class TextMeasurer(ABC):
    """文本测量接口"""

    @abstractmethod
    def text_width(self, text: str, font_size: float) -> float:
        """文本宽度（磅）"""
        ...

    def split_words(self, text: str, max_width: float, font_size: float) -> list[str]:
        """按空白分词的贪心换行（单词超宽时独占一行）"""
        words = text.split(" ")
        lines: list[str] = []
        current = ""
        for word in words:
            candidate = word if not current else f"{current} {word}"
            if not current or self.text_width(candidate, font_size) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
        return lines


class EstimatedMeasurer(TextMeasurer):
    """估算测量：全角字符按 1em，其余按 0.55em"""

    def __init__(self, narrow_em: float = 0.55, wide_em: float = 1.0):
        self.narrow_em = narrow_em
        self.wide_em = wide_em

    def text_width(self, text: str, font_size: float) -> float:
        units = 0.0
        for ch in text:
            if unicodedata.east_asian_width(ch) in ("W", "F"):
                units += self.wide_em
            else:
                units += self.narrow_em
        return units * font_size
