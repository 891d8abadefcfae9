"""Column checks for polars frames.

Mirrors pd_checks with the polars series API. Checks that only read
earlier results (null_frac, duplicate_value_count) are shared.
"""
import polars as pl

from sqlclean.commands.standardize import FALSY, TRUTHY

from .check_func import RawSeries, check
from .column_filters import is_numeric_not_bool, is_string
from .pd_checks import (
    ZSCORE_THRESHOLD, BaseResult, NumericResult, OutlierResult, ParseResult, TextResult, TypingResult,
    duplicate_value_count, null_frac,
)


@check()
def pl_typing_stats(ser: RawSeries) -> TypingResult:
    dt = ser.dtype
    return {
        'dtype': str(dt),
        'is_numeric': dt.is_numeric(),
        'is_integer': dt.is_integer(),
        'is_float': dt.is_float(),
        'is_bool': dt == pl.Boolean,
        'is_datetime': dt.is_temporal(),
        'is_string': dt in (pl.Utf8, pl.String),
    }


@check()
def pl_base_stats(ser: RawSeries) -> BaseResult:
    return {
        'length': len(ser),
        'null_count': int(ser.null_count()),
        'distinct_count': int(ser.drop_nulls().n_unique()),
    }


@check(column_filter=is_numeric_not_bool)
def pl_numeric_stats(ser: RawSeries) -> NumericResult:
    mean = ser.mean()
    std = ser.std(ddof=1)
    return {
        'mean': float(mean) if mean is not None else float('nan'),
        'std': float(std) if std is not None else float('nan'),
    }


@check(column_filter=is_numeric_not_bool)
def pl_zscore_outliers(ser: RawSeries) -> OutlierResult:
    values = ser.cast(pl.Float64).drop_nulls()
    sigma = values.std(ddof=1)
    if sigma is None or sigma == 0:
        return {'zscore_outlier_count': 0}
    z = (values - values.mean()) / sigma
    return {'zscore_outlier_count': int((z.abs() > ZSCORE_THRESHOLD).sum())}


def _text_values(ser: pl.Series) -> pl.Series:
    return ser.drop_nulls().cast(pl.Utf8)


@check(column_filter=is_string)
def pl_text_stats(ser: RawSeries) -> TextResult:
    vals = _text_values(ser)
    if len(vals) == 0:
        return {'whitespace_frac': 0.0, 'mixed_case_frac': 0.0}
    padded = vals != vals.str.strip_chars(' ')
    frame = pl.DataFrame({'v': vals, 'f': vals.str.to_lowercase()})
    spellings = frame.group_by('f').agg(pl.col('v').n_unique().alias('n'))
    mixed = frame.join(spellings, on='f')['n'] > 1
    return {
        'whitespace_frac': float(padded.mean()),
        'mixed_case_frac': float(mixed.mean()),
    }


@check(column_filter=is_string)
def pl_parse_fracs(ser: RawSeries) -> ParseResult:
    vals = _text_values(ser).str.strip_chars()
    if len(vals) == 0:
        return {'int_parse_frac': 0.0, 'float_parse_frac': 0.0,
                'date_parse_frac': 0.0, 'bool_parse_frac': 0.0}
    numbers = vals.cast(pl.Float64, strict=False)
    integral = numbers.is_not_null() & (numbers == numbers.floor())
    dates = vals.str.strptime(pl.Date, '%Y-%m-%d', strict=False)
    bools = vals.str.to_lowercase().is_in(list(TRUTHY + FALSY))
    return {
        'int_parse_frac': float(integral.fill_null(False).mean()),
        'float_parse_frac': float(numbers.is_not_null().mean()),
        'date_parse_frac': float(dates.is_not_null().mean()),
        'bool_parse_frac': float(bools.mean()),
    }


PL_CHECKS = [
    pl_typing_stats,
    pl_base_stats, null_frac, duplicate_value_count,
    pl_numeric_stats, pl_zscore_outliers,
    pl_text_stats, pl_parse_fracs,
]
