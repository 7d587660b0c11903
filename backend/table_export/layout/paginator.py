"""
分页器 - 固定页面输出端的换页判断

规则：
- 每页顶部重绘表头（表头高度只计算一次）
- 当前行放不下剩余页高时换页
- 单行高于整页时放在新页顶部（由输出端裁剪）
"""

from __future__ import annotations


class Paginator:
    """逐行换页判断"""

    def __init__(self, page_height: float, header_height: float):
        self.page_height = page_height
        self.header_height = header_height
        self.used = header_height
        self.page_count = 1
        self.rows_on_page = 0

    @property
    def remaining(self) -> float:
        return self.page_height - self.used

    def place(self, row_height: float) -> bool:
        """
        放置一行

        Returns:
            True 表示需要在此行之前换页
        """
        needs_break = self.rows_on_page > 0 and row_height > self.remaining
        if needs_break:
            self.page_count += 1
            self.used = self.header_height
            self.rows_on_page = 0
        self.used += row_height
        self.rows_on_page += 1
        return needs_break


def plan_page_breaks(row_heights: list[float], page_height: float, header_height: float) -> list[int]:
    """
    计算换页位置

    Returns:
        需要在其之前换页的数据行号（从1开始）
    """
    paginator = Paginator(page_height, header_height)
    return [i for i, h in enumerate(row_heights, start=1) if paginator.place(h)]
