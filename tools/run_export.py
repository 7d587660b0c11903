import argparse
import logging
import sys
from pathlib import Path


def _add_backend_to_path() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    backend_root = repo_root / "backend"
    if str(backend_root) not in sys.path:
        sys.path.insert(0, str(backend_root))


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Export a table from a JSON/YAML dataset to xlsx/docx/pdf."
    )
    parser.add_argument(
        "--source",
        required=True,
        help="数据文件（JSON/YAML，内存数据源格式）",
    )
    parser.add_argument(
        "--format",
        default="xlsx",
        choices=["xlsx", "docx", "pdf"],
        help="导出格式（默认：xlsx）",
    )
    parser.add_argument(
        "--name",
        default=None,
        help="文件名（不填时按 <表名>-<视图名>；空串时用默认名）",
    )
    parser.add_argument(
        "--out-dir",
        default="",
        help="输出目录（默认：运行期配置 output_dir）",
    )
    parser.add_argument("--table", default=None, help="数据表ID（默认：活动表/第一张表）")
    parser.add_argument("--view", default=None, help="视图ID（默认：活动视图）")
    parser.add_argument(
        "--no-embed",
        action="store_true",
        help="不嵌入附件图片，只输出文件名",
    )
    parser.add_argument(
        "--config",
        default="",
        help="运行期参数YAML（默认：config/导出运行期参数.yaml）",
    )
    args = parser.parse_args()

    _add_backend_to_path()
    from table_export.config import get_config, reload_config  # type: ignore
    from table_export.interfaces import TableExportError  # type: ignore
    from table_export.pipeline import run_export  # type: ignore
    from table_export.source import InMemoryBase  # type: ignore

    config = reload_config(args.config) if args.config else get_config()
    logging.basicConfig(
        level=config.logging.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        base = InMemoryBase.from_file(args.source)
        job, artifact = run_export(
            base,
            args.format,
            args.name,
            table_id=args.table,
            view_id=args.view,
            embed_attachments=False if args.no_embed else None,
            config=config,
            on_status=lambda message: print(f"状态 {message}"),
            on_progress=lambda done, total: print(f"进度 {done}/{total}"),
        )
    except (TableExportError, FileNotFoundError) as exc:
        print(f"导出失败: {exc}")
        return 1

    out_dir = Path(args.out_dir) if args.out_dir else config.output_dir
    path = artifact.save(out_dir)
    print(f"已导出: {path} ({artifact.size} bytes)")
    for flag in job.flags:
        print(f"告警: {flag}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
