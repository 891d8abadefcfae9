"""Type and format standardization."""
import re

import numpy as np
import pandas as pd

from sqlclean.commands.base import Col, Command, s
from sqlclean.dialects import get_dialect
from sqlclean.sql_util import select

TRUTHY = ("true", "yes", "y", "t", "on", "1")
FALSY = ("false", "no", "n", "f", "off", "0")

CAST_TYPES = ('int', 'float', 'string', 'date', 'bool')
TIME_TOKENS = re.compile(r"%[HMS]")


def _to_bool(ser: pd.Series) -> pd.Series:
    text = ser.astype('string').str.strip().str.lower()
    out = pd.Series(pd.NA, index=ser.index, dtype='boolean')
    out[text.isin(TRUTHY).fillna(False).to_numpy(dtype=bool)] = True
    out[text.isin(FALSY).fillna(False).to_numpy(dtype=bool)] = False
    return out


def coerce_series(ser: pd.Series, to: str) -> pd.Series:
    """Cast a series, turning values that do not convert into NULL."""
    if to == 'int':
        numeric = pd.to_numeric(ser, errors='coerce').astype('float64')
        integral = numeric.where(np.floor(numeric) == numeric)
        return integral.astype('Int64')
    if to == 'float':
        return pd.to_numeric(ser, errors='coerce').astype('float64')
    if to == 'string':
        return ser.astype('string')
    if to == 'date':
        if pd.api.types.is_datetime64_any_dtype(ser):
            return ser.dt.normalize()
        return pd.to_datetime(ser, format='%Y-%m-%d', errors='coerce')
    if to == 'bool':
        return _to_bool(ser)
    raise ValueError(f"Unknown type {to!r}, expected one of {CAST_TYPES}")


def cast_expr(dialect, expr: str, to: str) -> str:
    if to == 'int':
        f = dialect.try_float(expr)
        return f"CASE WHEN FLOOR({f}) = {f} THEN {dialect.cast(f, 'int')} END"
    if to == 'float':
        return dialect.try_float(expr)
    if to == 'string':
        return dialect.cast(expr, 'string')
    if to == 'date':
        return dialect.try_date(expr)
    text = f"LOWER(TRIM({dialect.cast(expr, 'string')}))"
    truthy = ", ".join(dialect.literal(v) for v in TRUTHY)
    falsy = ", ".join(dialect.literal(v) for v in FALSY)
    return (f"CASE WHEN {text} IN ({truthy}) THEN {dialect.literal(True)} "
            f"WHEN {text} IN ({falsy}) THEN {dialect.literal(False)} END")


class CastType(Command):
    command_name = 'cast_type'
    category = 'standardize'
    description = 'Convert a column to a type; values that do not convert become NULL.'
    command_default = [s('cast_type'), 'salary', 'float']
    arg_choices = {'to': CAST_TYPES}

    @staticmethod
    def transform(df, col: Col, to='int'):
        out = df.copy()
        out[col] = coerce_series(df[col], to)
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, to='int'):
        dialect = get_dialect(dialect)
        return select(dialect, columns, source, replace={col: cast_expr(dialect, dialect.quote(col), to)})


class Trim(Command):
    command_name = 'trim'
    category = 'standardize'
    description = 'Remove leading and trailing spaces.'
    command_default = [s('trim'), 'name']

    @staticmethod
    def transform(df, col: Col):
        out = df.copy()
        out[col] = df[col].str.strip(' ')
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col):
        dialect = get_dialect(dialect)
        return select(dialect, columns, source, replace={col: f"TRIM({dialect.quote(col)})"})

    @staticmethod
    def statement_sql(dialect, table, columns, col):
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        return f"UPDATE {table}\nSET {q} = TRIM({q});"


class ChangeCase(Command):
    command_name = 'change_case'
    category = 'standardize'
    description = 'Normalize letter case to upper, lower or title case.'
    command_default = [s('change_case'), 'country', 'upper']
    arg_choices = {'case': ('upper', 'lower', 'title')}

    @staticmethod
    def transform(df, col: Col, case='upper'):
        out = df.copy()
        out[col] = getattr(df[col].str, case)()
        return out

    @staticmethod
    def case_expr(dialect, expr, case):
        if case == 'title':
            return dialect.initcap(expr)
        return f"{case.upper()}({expr})"

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, case='upper'):
        dialect = get_dialect(dialect)
        expr = ChangeCase.case_expr(dialect, dialect.quote(col), case)
        return select(dialect, columns, source, replace={col: expr})

    @staticmethod
    def statement_sql(dialect, table, columns, col, case='upper'):
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        return f"UPDATE {table}\nSET {q} = {ChangeCase.case_expr(dialect, q, case)};"


class FormatDate(Command):
    command_name = 'format_date'
    category = 'standardize'
    description = 'Render dates as text in one consistent format.'
    command_default = [s('format_date'), 'signup_date', '%Y-%m-%d']

    @staticmethod
    def transform(df, col: Col, fmt='%Y-%m-%d'):
        out = df.copy()
        out[col] = pd.to_datetime(df[col], errors='coerce').dt.strftime(fmt)
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, fmt='%Y-%m-%d'):
        dialect = get_dialect(dialect)
        kind = 'timestamp' if TIME_TOKENS.search(fmt) else 'date'
        expr = dialect.format_date(dialect.cast(dialect.quote(col), kind), fmt)
        return select(dialect, columns, source, replace={col: expr})


class MapValues(Command):
    command_name = 'map_values'
    category = 'standardize'
    description = 'Replace spelling variants with one canonical value.'
    command_default = [s('map_values'), 'gender', {'M': 'Male', 'F': 'Female'}]

    @staticmethod
    def transform(df, col: Col, mapping=None):
        mapping = mapping or {}
        out = df.copy()
        ser = df[col]
        hit = ser.isin(list(mapping)).to_numpy(dtype=bool)
        out[col] = ser.astype(object).where(~hit, ser.map(mapping))
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, mapping=None):
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        if not mapping:
            return select(dialect, columns, source)
        whens = " ".join(f"WHEN {dialect.literal(k)} THEN {dialect.literal(v)}" for k, v in mapping.items())
        return select(dialect, columns, source, replace={col: f"CASE {q} {whens} ELSE {q} END"})


class StripNonDigits(Command):
    command_name = 'strip_non_digits'
    category = 'standardize'
    description = 'Keep only the digits, e.g. to compare phone numbers.'
    command_default = [s('strip_non_digits'), 'phone']

    @staticmethod
    def transform(df, col: Col):
        out = df.copy()
        out[col] = df[col].astype('string').str.replace(r'[^0-9]', '', regex=True)
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col):
        dialect = get_dialect(dialect)
        expr = dialect.regex_replace(
            dialect.cast(dialect.quote(col), 'string'), dialect.literal('[^0-9]'), dialect.literal(''))
        return select(dialect, columns, source, replace={col: expr})


STANDARDIZE_COMMANDS = [CastType, Trim, ChangeCase, FormatDate, MapValues, StripNonDigits]
