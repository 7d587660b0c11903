"""
多维表格导出 - 后端核心模块

模块结构：
- config/       运行期配置与导出格式规范
- models/       数据模型定义
- source/       数据源适配（表/视图/字段/记录/附件URL）
- planning/     字段分类与列规划
- attachments/  附件解析（URL解析/下载/图片归一化/限流执行）
- layout/       文本测量/列宽分配/换行/行高/分页/图片缩放
- sinks/        文档输出端（Excel/Word/PDF）与渲染库加载
- pipeline/     导出流水线编排与进度上报
"""

__version__ = "0.1.0"
