"""Column checks for pandas frames.

These report what a column needs before it is clean: how many NULLs,
how many repeated values, stray whitespace, inconsistent casing,
numbers or dates stored as text, and z-score outliers.

Usage::

    from sqlclean.profiling import Profiler, PD_CHECKS

    summary, errors = Profiler(PD_CHECKS).process_df(my_df)
"""
from typing import TypedDict

import pandas as pd

from sqlclean.commands.outliers import outlier_mask, zscores
from sqlclean.commands.standardize import coerce_series

from .check_func import RawSeries, check
from .column_filters import is_numeric_not_bool, is_string

ZSCORE_THRESHOLD = 3.0


# ============================================================
# Typing
# ============================================================

TypingResult = TypedDict('TypingResult', {
    'dtype': str,
    'is_numeric': bool,
    'is_integer': bool,
    'is_float': bool,
    'is_bool': bool,
    'is_datetime': bool,
    'is_string': bool,
})


@check()
def typing_stats(ser: RawSeries) -> TypingResult:
    return {
        'dtype': str(ser.dtype),
        'is_numeric': bool(pd.api.types.is_numeric_dtype(ser)),
        'is_integer': bool(pd.api.types.is_integer_dtype(ser)),
        'is_float': bool(pd.api.types.is_float_dtype(ser)),
        'is_bool': bool(pd.api.types.is_bool_dtype(ser)),
        'is_datetime': bool(pd.api.types.is_datetime64_any_dtype(ser)),
        'is_string': bool(pd.api.types.is_string_dtype(ser) or pd.api.types.is_object_dtype(ser)),
    }


# ============================================================
# Counts
# ============================================================

BaseResult = TypedDict('BaseResult', {
    'length': int,
    'null_count': int,
    'distinct_count': int,
})


@check()
def base_stats(ser: RawSeries) -> BaseResult:
    return {
        'length': len(ser),
        'null_count': int(ser.isna().sum()),
        'distinct_count': int(ser.nunique(dropna=True)),
    }


@check(default=0.0)
def null_frac(null_count: int, length: int) -> float:
    return null_count / length


@check()
def duplicate_value_count(length: int, null_count: int, distinct_count: int) -> int:
    """Non-NULL values that repeat an earlier value."""
    return length - null_count - distinct_count


# ============================================================
# Numeric
# ============================================================

NumericResult = TypedDict('NumericResult', {
    'mean': float,
    'std': float,
})


@check(column_filter=is_numeric_not_bool)
def numeric_stats(ser: RawSeries) -> NumericResult:
    values = ser.astype('float64')
    return {'mean': float(values.mean()), 'std': float(values.std(ddof=1))}


OutlierResult = TypedDict('OutlierResult', {
    'zscore_outlier_count': int,
})


@check(column_filter=is_numeric_not_bool)
def zscore_outliers(ser: RawSeries) -> OutlierResult:
    return {'zscore_outlier_count': int(outlier_mask(zscores(ser), ZSCORE_THRESHOLD).sum())}


# ============================================================
# Text
# ============================================================

def _text_values(ser: pd.Series) -> pd.Series:
    return ser.dropna().astype('string')


def _parse_frac(ser: pd.Series, to: str) -> float:
    vals = _text_values(ser)
    if len(vals) == 0:
        return 0.0
    return float(coerce_series(vals.str.strip(), to).notna().mean())


TextResult = TypedDict('TextResult', {
    'whitespace_frac': float,
    'mixed_case_frac': float,
})


@check(column_filter=is_string)
def text_stats(ser: RawSeries) -> TextResult:
    """Share of values with stray edge spaces, and of values spelled in several casings."""
    vals = _text_values(ser)
    if len(vals) == 0:
        return {'whitespace_frac': 0.0, 'mixed_case_frac': 0.0}
    padded = vals != vals.str.strip(' ')
    folded = vals.str.lower()
    spellings = vals.groupby(folded).nunique()
    mixed = folded.map(spellings) > 1
    return {
        'whitespace_frac': float(padded.mean()),
        'mixed_case_frac': float(mixed.mean()),
    }


ParseResult = TypedDict('ParseResult', {
    'int_parse_frac': float,
    'float_parse_frac': float,
    'date_parse_frac': float,
    'bool_parse_frac': float,
})


@check(column_filter=is_string)
def parse_fracs(ser: RawSeries) -> ParseResult:
    """Share of non-NULL text values that cast_type would convert."""
    return {
        'int_parse_frac': _parse_frac(ser, 'int'),
        'float_parse_frac': _parse_frac(ser, 'float'),
        'date_parse_frac': _parse_frac(ser, 'date'),
        'bool_parse_frac': _parse_frac(ser, 'bool'),
    }


PD_CHECKS = [
    typing_stats,
    base_stats, null_frac, duplicate_value_count,
    numeric_stats, zscore_outliers,
    text_stats, parse_fracs,
]
