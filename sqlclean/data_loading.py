import logging
import os

import pandas as pd
import polars as pl

log = logging.getLogger("sqlclean.data_loading")

READ_EXTENSIONS = (".csv", ".tsv", ".parquet", ".parq", ".json")
WRITE_EXTENSIONS = (".csv", ".parquet", ".parq")


def _ext(path: str) -> str:
    return os.path.splitext(path)[1].lower()


def load_file(path: str) -> pd.DataFrame:
    ext = _ext(path)
    log.debug("loading %s", path)
    if ext == ".csv":
        return pd.read_csv(path)
    elif ext == ".tsv":
        return pd.read_csv(path, sep="\t")
    elif ext in (".parquet", ".parq"):
        return pd.read_parquet(path)
    elif ext == ".json":
        return pd.read_json(path)
    else:
        raise ValueError(f"Unsupported file format: {ext}")


def load_file_lazy(path: str) -> pl.LazyFrame:
    """Open a file as a Polars LazyFrame; no data is read until collected."""
    ext = _ext(path)
    if ext in (".parquet", ".parq"):
        return pl.scan_parquet(path)
    elif ext == ".csv":
        return pl.scan_csv(path)
    elif ext == ".tsv":
        return pl.scan_csv(path, separator="\t")
    elif ext == ".json":
        return pl.scan_ndjson(path)
    else:
        raise ValueError(f"Unsupported file format for lazy loading: {ext}")


def file_columns(path: str) -> list:
    """Column names of a file, read from its schema rather than its rows."""
    if _ext(path) == ".json":
        # pandas reads JSON arrays, polars scans newline-delimited JSON
        return [str(c) for c in load_file(path).columns]
    return load_file_lazy(path).collect_schema().names()


def write_file(df: pd.DataFrame, path: str) -> None:
    ext = _ext(path)
    log.debug("writing %d rows to %s", len(df), path)
    if ext == ".csv":
        df.to_csv(path, index=False)
    elif ext in (".parquet", ".parq"):
        df.to_parquet(path, engine="pyarrow", index=False)
    else:
        raise ValueError(f"Unsupported output format: {ext}, expected one of {WRITE_EXTENSIONS}")
