"""Profiler: run a set of column checks over every column of a frame.

Usage::

    profiler = Profiler(PD_CHECKS)
    summary, errors = profiler.process_df(my_df)
    summary['salary']['null_frac']
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

import pandas as pd
import polars as pl

from .check_dag import DAGConfigError, build_check_dag, build_column_dag
from .check_func import MISSING, CheckFunc, RawDataFrame, RawSeries, collect_check_funcs
from .check_result import CheckError, CheckResult, Err, Ok, resolve_accumulator

log = logging.getLogger("sqlclean.profiling")

SummaryDict = Dict[str, Dict[str, Any]]


def _normalize_inputs(inputs: list) -> List[CheckFunc]:
    funcs: List[CheckFunc] = []
    for obj in inputs:
        collected = collect_check_funcs(obj)
        if not collected:
            raise TypeError(
                f"Cannot convert {obj!r} to a check. Expected CheckFunc, "
                f"@check-decorated function, or a class of @check methods.")
        funcs.extend(collected)
    return funcs


def _fail(accumulator, cf: CheckFunc, column_name: str, error: Exception, inputs=None) -> None:
    for key in cf.provides:
        accumulator[key.name] = Err(error=error, check_name=cf.name,
                                    column_name=column_name, inputs=inputs or {})


def _execute_check(cf: CheckFunc, accumulator: Dict[str, CheckResult], column_name: str,
                   raw_series=None, raw_dataframe=None) -> None:
    """Run one check, writing Ok or Err for each key it provides."""
    kwargs = {}
    for req in cf.requires:
        if req.type is RawSeries:
            kwargs[req.name] = raw_series
            continue
        if req.type is RawDataFrame:
            kwargs[req.name] = raw_dataframe
            continue
        result = accumulator.get(req.name)
        if result is None:
            _fail(accumulator, cf, column_name,
                  DAGConfigError(f"Required key '{req.name}' not computed before '{cf.name}'"))
            return
        if isinstance(result, Err):
            downstream = result.downstream(cf.name, req.name)
            for key in cf.provides:
                accumulator[key.name] = downstream
            return
        kwargs[req.name] = result.value

    try:
        result = cf.func(**kwargs)
    except Exception as e:
        if cf.default is not MISSING:
            for key in cf.provides:
                accumulator[key.name] = Ok(cf.default)
            return
        log.debug("check %s failed on %s: %r", cf.name, column_name, e)
        _fail(accumulator, cf, column_name, e, inputs=kwargs.copy())
        return

    if isinstance(result, dict) and any(key.name in result for key in cf.provides):
        for key in cf.provides:
            accumulator[key.name] = Ok(result.get(key.name))
    elif len(cf.provides) == 1:
        accumulator[cf.provides[0].name] = Ok(result)
    else:
        for key in cf.provides:
            accumulator[key.name] = Ok(result)


class Profiler:
    """Orders a set of checks once, then runs them column by column.

    Frames with more than ``sample_when_greater`` cells are profiled on a
    random sample of ``sample_rows`` rows.
    """

    sample_when_greater = 1_000_000
    sample_rows = 50_000
    sample_seed = 42

    def __init__(self, checks: list):
        self.all_check_funcs = _normalize_inputs(checks)
        # validates the whole set up front, raising DAGConfigError
        self.ordered_check_funcs = build_check_dag(self.all_check_funcs)
        self._key_to_func: Dict[str, CheckFunc] = {
            key.name: cf for cf in self.ordered_check_funcs for key in cf.provides}
        self.provided_keys = set(self._key_to_func)

    def process_column(self, column_name: str, column_dtype, raw_series=None,
                       raw_dataframe=None) -> Tuple[Dict[str, Any], List[CheckError]]:
        column_funcs = build_column_dag(self.all_check_funcs, column_dtype)
        accumulator: Dict[str, CheckResult] = {}
        for cf in column_funcs:
            _execute_check(cf, accumulator, column_name,
                           raw_series=raw_series, raw_dataframe=raw_dataframe)
        key_to_func = {key.name: cf for cf in column_funcs for key in cf.provides}
        return resolve_accumulator(accumulator, column_name, key_to_func)

    def operating_df(self, df):
        rows = len(df)
        if rows * len(df.columns) <= self.sample_when_greater:
            return df
        n = min(self.sample_rows, rows)
        log.info("profiling a %d row sample of %d rows", n, rows)
        if isinstance(df, pl.DataFrame):
            return df.sample(n=n, seed=self.sample_seed)
        return df.sample(n, random_state=self.sample_seed)

    def process_df(self, df) -> Tuple[SummaryDict, List[CheckError]]:
        """Profile every column. Returns (summary, errors)."""
        if isinstance(df, pl.LazyFrame):
            df = df.collect()
        if len(df) == 0:
            return {}, []
        df = self.operating_df(df)
        summary: SummaryDict = {}
        errors: List[CheckError] = []
        for col in df.columns:
            ser = df[col]
            col_result, col_errors = self.process_column(
                str(col), ser.dtype, raw_series=ser, raw_dataframe=df)
            summary[str(col)] = col_result
            errors.extend(col_errors)
        if errors:
            log.warning("%d checks failed while profiling", len(errors))
        return summary, errors

    def explain(self, key: str) -> str:
        """Describe the check that provides ``key``."""
        cf = self._key_to_func.get(key)
        if cf is None:
            raise KeyError(f"No check provides '{key}'")

        def _fmt(keys):
            return ', '.join(f"{k.name} ({getattr(k.type, '__name__', k.type)})" for k in keys)

        lines = [f"Check: {cf.name}",
                 f"  requires: {_fmt(cf.requires) or 'none'}",
                 f"  provides: {_fmt(cf.provides)}"]
        if cf.column_filter is not None:
            lines.append(f"  column_filter: {getattr(cf.column_filter, '__name__', repr(cf.column_filter))}")
        else:
            lines.append("  column_filter: None (all columns)")
        if cf.default is not MISSING:
            lines.append(f"  default: {cf.default!r}")
        return '\n'.join(lines)


def summary_to_frame(summary: SummaryDict) -> pd.DataFrame:
    """One row per check key, one column per profiled column."""
    return pd.DataFrame(summary)
