"""Validation checks and the constraints that enforce them.

Each check can flag rows (adding a boolean column), keep the passing
rows, or keep the failing rows. NULL passes range, enum and pattern
checks, the same way a SQL CHECK constraint treats an unknown result.
"""
import re

import numpy as np
import pandas as pd

from sqlclean.commands.base import Col, Cols, Command, s
from sqlclean.dialects import get_dialect
from sqlclean.sql_util import (
    INDENT, CommandArgumentError, as_list, column_list, identifier_slug,
    output_with_extra, over_clause, select, select_list, subquery,
)

ACTIONS = ('flag', 'filter', 'invalid')

EMAIL_REGEX = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
EMAIL_LIKE = '%_@_%._%'

KEY_COUNT_COL = 'sqlclean_key_count'


def flag_column(col) -> str:
    return f"{col}_valid"


def apply_action(df: pd.DataFrame, valid, action: str, flag_col: str) -> pd.DataFrame:
    valid = np.asarray(valid, dtype=bool)
    if action == 'flag':
        out = df.copy()
        out[flag_col] = valid
        return out
    if action == 'filter':
        return df[valid]
    return df[~valid]


def render_action(dialect, source, columns, predicate, action, flag_col) -> str:
    """SELECT for a two-valued ``predicate`` that is true for passing rows."""
    if action == 'flag':
        return select(dialect, columns, source, extra=[(flag_col, dialect.bool_expr(predicate))])
    if action == 'filter':
        return select(dialect, columns, source, where=predicate)
    return select(dialect, columns, source, where=f"NOT ({predicate})")


def _not_null(ser: pd.Series, passed: pd.Series) -> np.ndarray:
    """NULLs pass; NA results from nullable comparisons count as failures."""
    passed = passed.astype('boolean').fillna(False).to_numpy(dtype=bool)
    return ser.isna().to_numpy(dtype=bool) | passed


def _add_constraint(dialect, table, name, body) -> str:
    dialect.require('alter_constraint')
    return f"ALTER TABLE {table}\nADD CONSTRAINT {dialect.quote(name)} {body};"


def range_condition(dialect, q, low, high) -> str:
    terms = []
    if low is not None:
        terms.append(f"{q} >= {dialect.literal(low)}")
    if high is not None:
        terms.append(f"{q} <= {dialect.literal(high)}")
    return " AND ".join(terms)


class RangeCheck(Command):
    command_name = 'range_check'
    category = 'validation'
    description = 'Check that values fall inside an inclusive range.'
    command_default = [s('range_check'), 'age', 0, 120, 'flag']
    arg_choices = {'action': ACTIONS}

    @staticmethod
    def _check_bounds(low, high):
        if low is None and high is None:
            raise CommandArgumentError("range_check: give at least one of low and high")

    @staticmethod
    def transform(df, col: Col, low=None, high=None, action='flag'):
        RangeCheck._check_bounds(low, high)
        ser = df[col]
        passed = pd.Series(True, index=ser.index)
        if low is not None:
            passed = passed & (ser >= low)
        if high is not None:
            passed = passed & (ser <= high)
        return apply_action(df, _not_null(ser, passed), action, flag_column(col))

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, low=None, high=None, action='flag'):
        RangeCheck._check_bounds(low, high)
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        predicate = f"({q} IS NULL OR ({range_condition(dialect, q, low, high)}))"
        return render_action(dialect, source, columns, predicate, action, flag_column(col))

    @staticmethod
    def output_columns(columns, col, low=None, high=None, action='flag'):
        return output_with_extra(columns, [flag_column(col)] if action == 'flag' else [])

    @staticmethod
    def statement_sql(dialect, table, columns, col, low=None, high=None, action='flag'):
        RangeCheck._check_bounds(low, high)
        dialect = get_dialect(dialect)
        name = f"chk_{identifier_slug(table, col)}_range"
        return _add_constraint(dialect, table, name,
                               f"CHECK ({range_condition(dialect, dialect.quote(col), low, high)})")


class EnumCheck(Command):
    command_name = 'enum_check'
    category = 'validation'
    description = 'Check that values come from an allowed set.'
    command_default = [s('enum_check'), 'status', ['active', 'inactive'], 'flag']
    arg_choices = {'action': ACTIONS}

    @staticmethod
    def _allowed(allowed):
        allowed = as_list(allowed)
        if not allowed:
            raise CommandArgumentError("enum_check: allowed must name at least one value")
        return allowed

    @staticmethod
    def transform(df, col: Col, allowed=None, action='flag'):
        allowed = EnumCheck._allowed(allowed)
        ser = df[col]
        return apply_action(df, _not_null(ser, ser.isin(allowed)), action, flag_column(col))

    @staticmethod
    def in_list(dialect, allowed):
        return ", ".join(dialect.literal(v) for v in allowed)

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, allowed=None, action='flag'):
        allowed = EnumCheck._allowed(allowed)
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        predicate = f"({q} IS NULL OR {q} IN ({EnumCheck.in_list(dialect, allowed)}))"
        return render_action(dialect, source, columns, predicate, action, flag_column(col))

    @staticmethod
    def output_columns(columns, col, allowed=None, action='flag'):
        return output_with_extra(columns, [flag_column(col)] if action == 'flag' else [])

    @staticmethod
    def statement_sql(dialect, table, columns, col, allowed=None, action='flag'):
        allowed = EnumCheck._allowed(allowed)
        dialect = get_dialect(dialect)
        name = f"chk_{identifier_slug(table, col)}_enum"
        body = f"CHECK ({dialect.quote(col)} IN ({EnumCheck.in_list(dialect, allowed)}))"
        return _add_constraint(dialect, table, name, body)


def unique_flag_column(cols) -> str:
    return "_".join(str(c) for c in as_list(cols)) + "_unique"


class UniqueCheck(Command):
    command_name = 'unique_check'
    category = 'validation'
    description = 'Check that a key identifies one row; rows sharing a key all fail.'
    command_default = [s('unique_check'), ['email'], 'flag']
    arg_choices = {'action': ACTIONS}

    @staticmethod
    def transform(df, cols: Cols, action='flag'):
        keys = as_list(cols)
        valid = ~df.duplicated(subset=keys, keep=False).to_numpy(dtype=bool)
        return apply_action(df, valid, action, unique_flag_column(keys))

    @staticmethod
    def transform_to_sql(dialect, source, columns, cols, action='flag'):
        dialect = get_dialect(dialect)
        keys = as_list(cols)
        window = over_clause(dialect, partition_by=keys)
        if action == 'flag':
            expr = dialect.bool_expr(f"COUNT(*) {window} = 1")
            return select(dialect, columns, source, extra=[(unique_flag_column(keys), expr)])
        counted = dialect.quote(KEY_COUNT_COL)
        inner = f"SELECT s.*, COUNT(*) {window} AS {counted}\nFROM {source} AS s"
        op = '=' if action == 'filter' else '>'
        return (f"SELECT\n{INDENT}{select_list(dialect, columns, prefix='keyed')}\n"
                f"FROM {subquery(inner, 'keyed')}\n"
                f"WHERE keyed.{counted} {op} 1")

    @staticmethod
    def output_columns(columns, cols, action='flag'):
        return output_with_extra(columns, [unique_flag_column(cols)] if action == 'flag' else [])

    @staticmethod
    def statement_sql(dialect, table, columns, cols, action='flag'):
        dialect = get_dialect(dialect)
        keys = as_list(cols)
        name = f"uq_{identifier_slug(table, *keys)}"
        return _add_constraint(dialect, table, name, f"UNIQUE ({column_list(dialect, keys)})")


def like_to_regex(pattern: str) -> str:
    """Anchored regex for a LIKE pattern (``%`` any run, ``_`` one character)."""
    parts = []
    for ch in pattern:
        if ch == '%':
            parts.append('.*')
        elif ch == '_':
            parts.append('.')
        else:
            parts.append(re.escape(ch))
    return '^' + ''.join(parts) + '$'


class PatternCheck(Command):
    """Format validation with a regular expression or a LIKE pattern.

    ``regex`` patterns use search semantics, so anchor them with ``^``/``$``
    to match the whole value. ``like`` patterns always match the whole
    value. LIKE is case-insensitive under the default collations of SQL
    Server and MySQL; the pandas rendering is case-sensitive.
    """
    command_name = 'pattern_check'
    category = 'validation'
    description = 'Check that text matches a format such as an email address.'
    command_default = [s('pattern_check'), 'email', EMAIL_REGEX, 'regex', 'flag']
    arg_choices = {'kind': ('regex', 'like'), 'action': ACTIONS}

    @staticmethod
    def transform(df, col: Col, pattern=EMAIL_REGEX, kind='regex', action='flag'):
        ser = df[col]
        text = ser.astype('string')
        if kind == 'like':
            passed = text.str.contains(like_to_regex(pattern), regex=True, flags=re.DOTALL)
        else:
            passed = text.str.contains(pattern, regex=True)
        return apply_action(df, _not_null(ser, passed), action, flag_column(col))

    @staticmethod
    def condition(dialect, col, pattern, kind):
        q = dialect.quote(col)
        if kind == 'like':
            return f"{q} LIKE {dialect.literal(pattern)}"
        return dialect.regex_match(dialect.cast(q, 'string'), dialect.literal(pattern))

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, pattern=EMAIL_REGEX, kind='regex', action='flag'):
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        predicate = f"({q} IS NULL OR {PatternCheck.condition(dialect, col, pattern, kind)})"
        return render_action(dialect, source, columns, predicate, action, flag_column(col))

    @staticmethod
    def output_columns(columns, col, pattern=EMAIL_REGEX, kind='regex', action='flag'):
        return output_with_extra(columns, [flag_column(col)] if action == 'flag' else [])

    @staticmethod
    def statement_sql(dialect, table, columns, col, pattern=EMAIL_REGEX, kind='regex', action='flag'):
        dialect = get_dialect(dialect)
        name = f"chk_{identifier_slug(table, col)}_format"
        body = f"CHECK ({PatternCheck.condition(dialect, col, pattern, kind)})"
        return _add_constraint(dialect, table, name, body)


VALIDATION_COMMANDS = [RangeCheck, EnumCheck, UniqueCheck, PatternCheck]
