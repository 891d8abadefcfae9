import argparse
import json
import logging
import os
import sys

from sqlclean.data_loading import file_columns, load_file, write_file
from sqlclean.df_util import DuplicateColumnsException
from sqlclean.dialects import DIALECTS, UnsupportedFeatureError
from sqlclean.guide import render_guide
from sqlclean.lint import lint_markdown
from sqlclean.pipeline import CleaningPipeline
from sqlclean.profiling import Profiler, checks_for, duplicate_row_count
from sqlclean.suggest import CONFS, suggest_operations

LOG_DIR = os.path.join(os.path.expanduser("~"), ".sqlclean", "logs")

log = logging.getLogger("sqlclean.cli")


def configure_logging(verbose: bool = False) -> None:
    os.makedirs(LOG_DIR, exist_ok=True)
    logging.basicConfig(
        filename=os.path.join(LOG_DIR, "sqlclean.log"),
        level=logging.DEBUG,
        format="%(asctime)s pid=%(process)d [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if verbose:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(name)s: %(message)s"))
        logging.getLogger().addHandler(handler)


def _read_ops(ops: str) -> CleaningPipeline:
    """OPS is a JSON list, or the path of a file holding one."""
    if os.path.exists(ops):
        with open(ops) as f:
            ops = f.read()
    return CleaningPipeline.from_json(ops)


def cmd_guide(args) -> int:
    text = render_guide(args.dialect)
    if args.output:
        with open(args.output, "w") as f:
            f.write(text)
        log.info("wrote %s guide to %s", args.dialect, args.output)
    else:
        sys.stdout.write(text)
    return 0


def cmd_sql(args) -> int:
    pipeline = _read_ops(args.ops)
    if args.columns:
        columns = [c.strip() for c in args.columns.split(",") if c.strip()]
    elif args.input:
        columns = file_columns(args.input)
    else:
        raise ValueError("give --columns or --input so the query knows the source columns")
    print(pipeline.to_sql(columns, source=args.source, dialect=args.dialect))
    return 0


def cmd_clean(args) -> int:
    pipeline = _read_ops(args.ops)
    df = load_file(args.input)
    cleaned = pipeline.transform(df)
    write_file(cleaned, args.output)
    log.info("cleaned %s: %d rows -> %d rows in %s", args.input, len(df), len(cleaned), args.output)
    return 0


def cmd_profile(args) -> int:
    df = load_file(args.input)
    summary, errors = Profiler(checks_for(df)).process_df(df)
    out = {
        "rows": len(df),
        "duplicate_rows": duplicate_row_count(df),
        "columns": summary,
    }
    if args.suggest:
        out["suggested_operations"] = suggest_operations(df, CONFS[args.suggest])
    for err in errors:
        print(err, file=sys.stderr)
    print(json.dumps(out, indent=2, default=str))
    return 0


def cmd_lint(args) -> int:
    with open(args.markdown) as f:
        issues = lint_markdown(f.read(), explain_duckdb=not args.no_explain)
    for issue in issues:
        print(f"{args.markdown}:{issue}")
    return 1 if issues else 0


def build_parser() -> argparse.ArgumentParser:
    dialects = sorted(DIALECTS)
    parser = argparse.ArgumentParser(prog="sqlclean", description="SQL data-cleaning recipes")
    parser.add_argument("--verbose", "-v", action="store_true", help="Also log to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("guide", help="Render the Markdown reference guide")
    p.add_argument("--dialect", default="tsql", choices=dialects)
    p.add_argument("--output", "-o", help="Write to a file instead of stdout")
    p.set_defaults(func=cmd_guide)

    p = sub.add_parser("sql", help="Render an operation list as one chained query")
    p.add_argument("ops", help="JSON operation list, or a file containing one")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--columns", help="Comma-separated source columns")
    group.add_argument("--input", help="Data file to read the source columns from")
    p.add_argument("--dialect", default="postgres", choices=dialects)
    p.add_argument("--source", default="your_table_name", help="Source table name")
    p.set_defaults(func=cmd_sql)

    p = sub.add_parser("clean", help="Apply an operation list to a data file")
    p.add_argument("ops", help="JSON operation list, or a file containing one")
    p.add_argument("input", help="CSV, TSV, Parquet or JSON file")
    p.add_argument("output", help="CSV or Parquet file")
    p.set_defaults(func=cmd_clean)

    p = sub.add_parser("profile", help="Profile a data file as JSON")
    p.add_argument("input", help="CSV, TSV, Parquet or JSON file")
    p.add_argument("--suggest", choices=sorted(CONFS), help="Also suggest cleaning operations")
    p.set_defaults(func=cmd_profile)

    p = sub.add_parser("lint", help="Check the SQL blocks of a Markdown file")
    p.add_argument("markdown")
    p.add_argument("--no-explain", action="store_true", help="Skip planning duckdb blocks")
    p.set_defaults(func=cmd_lint)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    log.info("sqlclean %s pid=%d", args.command, os.getpid())
    try:
        return args.func(args)
    except (ValueError, KeyError, OSError, UnsupportedFeatureError, DuplicateColumnsException) as e:
        log.exception("%s failed", args.command)
        msg = e.args[0] if isinstance(e, KeyError) and e.args else e
        print(f"sqlclean {args.command}: error: {msg}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
