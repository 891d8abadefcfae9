import pandas as pd
import polars as pl

from .check_dag import DAGConfigError, build_check_dag, build_column_dag  # noqa: F401
from .check_func import MISSING, CheckFunc, CheckKey, RawDataFrame, RawSeries, check  # noqa: F401
from .check_result import CheckError, Err, Ok, UpstreamError  # noqa: F401
from .pd_checks import PD_CHECKS
from .pl_checks import PL_CHECKS
from .profiler import Profiler, summary_to_frame  # noqa: F401


def duplicate_row_count(df) -> int:
    """Rows that repeat an earlier row in every column."""
    if isinstance(df, pl.LazyFrame):
        df = df.collect()
    if isinstance(df, pl.DataFrame):
        return len(df) - len(df.unique())
    return int(pd.DataFrame(df).duplicated().sum())


def checks_for(df) -> list:
    """PD_CHECKS or PL_CHECKS, whichever fits the frame."""
    if isinstance(df, (pl.DataFrame, pl.LazyFrame)):
        return PL_CHECKS
    return PD_CHECKS


def profile(df):
    """Profile a pandas or polars frame with the default checks."""
    return Profiler(checks_for(df)).process_df(df)
