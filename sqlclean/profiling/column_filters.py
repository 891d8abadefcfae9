"""Dtype predicates that restrict a check to matching columns.

Every predicate accepts pandas and polars dtypes. Polars dtype equality
is loose against non-polars objects (``np.dtype('O') == pl.Int8`` is
True), so polars comparisons only happen after an isinstance check.
"""
from typing import Callable

import pandas as pd
import polars as pl


def _is_polars_dtype(dtype) -> bool:
    if isinstance(dtype, pl.DataType):
        return True
    return isinstance(dtype, type) and issubclass(dtype, pl.DataType)


def is_numeric(dtype) -> bool:
    if _is_polars_dtype(dtype):
        return dtype.is_numeric()
    try:
        return bool(pd.api.types.is_numeric_dtype(dtype))
    except TypeError:
        return False


def is_string(dtype) -> bool:
    """String or object columns."""
    if _is_polars_dtype(dtype):
        return dtype in (pl.Utf8, pl.String, pl.Categorical)
    try:
        return bool(pd.api.types.is_string_dtype(dtype) or pd.api.types.is_object_dtype(dtype))
    except TypeError:
        return False


def is_temporal(dtype) -> bool:
    if _is_polars_dtype(dtype):
        return dtype.is_temporal()
    try:
        return bool(pd.api.types.is_datetime64_any_dtype(dtype)
                    or pd.api.types.is_timedelta64_dtype(dtype))
    except TypeError:
        return False


def is_boolean(dtype) -> bool:
    if _is_polars_dtype(dtype):
        return dtype == pl.Boolean
    try:
        return bool(pd.api.types.is_bool_dtype(dtype))
    except TypeError:
        return False


def is_numeric_not_bool(dtype) -> bool:
    return is_numeric(dtype) and not is_boolean(dtype)


def any_of(*predicates: Callable) -> Callable:
    def combined(dtype) -> bool:
        return any(p(dtype) for p in predicates)
    combined.__name__ = f"any_of({', '.join(p.__name__ for p in predicates)})"
    return combined


def not_(predicate: Callable) -> Callable:
    def negated(dtype) -> bool:
        return not predicate(dtype)
    negated.__name__ = f"not_({predicate.__name__})"
    return negated
