"""SQL dialects the cleaning commands render for.

Each dialect quotes identifiers and renders string literals through
sqlglot's generator for the same engine, and spells the handful of
functions whose names differ between engines. Commands never branch
on dialect names for these; they ask the dialect.

Usage::

    from sqlclean.dialects import get_dialect

    d = get_dialect('postgres')
    d.quote('first name')   # '"first name"'
    d.literal("O'Brien")    # "'O''Brien'"
"""
import datetime
import math
import numbers
import re
from typing import Dict, FrozenSet, Optional

from sqlglot import exp


class UnknownDialectError(ValueError):
    pass


class UnsupportedFeatureError(Exception):
    """Raised when a technique cannot be expressed in the requested dialect."""

    def __init__(self, dialect_name: str, feature: str):
        self.dialect_name = dialect_name
        self.feature = feature
        super().__init__(f"{feature} is not supported by the {dialect_name} dialect")


# Search pattern for strings that parse as a float.  Written once and
# rendered through each dialect's literal(), which takes care of escaping.
NUMBER_PATTERN = r'^\s*[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?\s*$'
ISO_DATE_PATTERN = r'^\d{4}-\d{2}-\d{2}$'

_STRFTIME_TOKEN = re.compile(r'%[A-Za-z]')


class Dialect:
    """Base dialect. Subclasses override the spellings that differ."""

    name = 'ansi'
    label = 'ANSI SQL'
    # dialect name understood by sqlglot; None is its generic SQL
    sqlglot_dialect: Optional[str] = None
    true_literal = 'TRUE'
    false_literal = 'FALSE'
    type_names: Dict[str, str] = {
        'int': 'BIGINT',
        'float': 'DOUBLE PRECISION',
        'string': 'VARCHAR',
        'date': 'DATE',
        'timestamp': 'TIMESTAMP',
        'bool': 'BOOLEAN',
    }
    stddev = 'STDDEV_SAMP'
    features: FrozenSet[str] = frozenset()
    # strftime token -> dialect token, for format_date
    date_tokens: Dict[str, str] = {}
    # True when NULLS FIRST / NULLS LAST can be spelled in ORDER BY
    nulls_ordering = True

    def __repr__(self):
        return f"<Dialect {self.name}>"

    # ------------------------------------------------------------------
    # identifiers and literals
    # ------------------------------------------------------------------

    def quote(self, name) -> str:
        return exp.to_identifier(str(name), quoted=True).sql(dialect=self.sqlglot_dialect)

    def string_literal(self, value: str) -> str:
        return exp.Literal.string(value).sql(dialect=self.sqlglot_dialect)

    def literal(self, value) -> str:
        if value is None:
            return 'NULL'
        if isinstance(value, bool):
            return self.true_literal if value else self.false_literal
        if isinstance(value, numbers.Integral):
            return str(int(value))
        if isinstance(value, numbers.Real):
            if math.isnan(value):
                return 'NULL'
            return repr(float(value))
        if isinstance(value, (datetime.date, datetime.datetime)):
            return self.string_literal(value.isoformat())
        return self.string_literal(str(value))

    def type_name(self, kind: str) -> str:
        try:
            return self.type_names[kind]
        except KeyError:
            raise ValueError(f"Unknown column type {kind!r}, expected one of {sorted(self.type_names)}")

    def cast(self, expr: str, kind: str) -> str:
        return f"CAST({expr} AS {self.type_name(kind)})"

    # ------------------------------------------------------------------
    # feature flags
    # ------------------------------------------------------------------

    def supports(self, feature: str) -> bool:
        return feature in self.features

    def require(self, feature: str) -> None:
        if not self.supports(feature):
            raise UnsupportedFeatureError(self.name, feature)

    # ------------------------------------------------------------------
    # expressions
    # ------------------------------------------------------------------

    def bool_expr(self, predicate: str) -> str:
        """Turn a predicate into a two-valued boolean column."""
        return f"CASE WHEN {predicate} THEN {self.true_literal} ELSE {self.false_literal} END"

    def try_float(self, expr: str) -> str:
        text = self.cast(expr, 'string')
        return (f"CASE WHEN {self.regex_match(text, self.literal(NUMBER_PATTERN))} "
                f"THEN {self.cast(text, 'float')} END")

    def try_date(self, expr: str) -> str:
        text = self.cast(expr, 'string')
        return (f"CASE WHEN {self.regex_match(text, self.literal(ISO_DATE_PATTERN))} "
                f"THEN {self.cast(text, 'date')} END")

    def regex_match(self, expr: str, pattern_literal: str) -> str:
        raise UnsupportedFeatureError(self.name, 'regex')

    def regex_replace(self, expr: str, pattern_literal: str, replacement_literal: str) -> str:
        raise UnsupportedFeatureError(self.name, 'regex_replace')

    def median_scalar(self, expr: str, source: str) -> str:
        raise UnsupportedFeatureError(self.name, 'median')

    def select_top_one(self, select_list: str, rest: str) -> str:
        return f"SELECT {select_list} {rest} LIMIT 1"

    def split_part(self, expr: str, delimiter: str, index: int) -> str:
        return f"SPLIT_PART({expr}, {self.literal(delimiter)}, {index})"

    def initcap(self, expr: str) -> str:
        raise UnsupportedFeatureError(self.name, 'initcap')

    def format_date(self, expr: str, fmt: str) -> str:
        raise UnsupportedFeatureError(self.name, 'format_date')

    def translate_date_format(self, fmt: str) -> str:
        def _sub(match):
            token = match.group(0)
            if token not in self.date_tokens:
                raise UnsupportedFeatureError(self.name, f"date format token {token}")
            return self.date_tokens[token]
        return _STRFTIME_TOKEN.sub(_sub, fmt)

    def order_term(self, expr: str, descending: bool) -> str:
        """One ORDER BY term with NULLs last ascending, first descending."""
        if self.nulls_ordering:
            if descending:
                return f"{expr} DESC NULLS FIRST"
            return f"{expr} ASC NULLS LAST"
        if descending:
            return f"CASE WHEN {expr} IS NULL THEN 0 ELSE 1 END, {expr} DESC"
        return f"CASE WHEN {expr} IS NULL THEN 1 ELSE 0 END, {expr} ASC"

    def default_window_order(self) -> Optional[str]:
        """ORDER BY clause ROW_NUMBER() uses when no order is given."""
        return None


class TSqlDialect(Dialect):
    name = 'tsql'
    label = 'T-SQL (SQL Server)'
    sqlglot_dialect = 'tsql'
    true_literal = '1'
    false_literal = '0'
    type_names = {
        'int': 'BIGINT',
        'float': 'FLOAT',
        'string': 'NVARCHAR(MAX)',
        'date': 'DATE',
        'timestamp': 'DATETIME2',
        'bool': 'BIT',
    }
    stddev = 'STDEV'
    features = frozenset({'median', 'try_cast', 'split_part', 'alter_constraint', 'format_date'})
    date_tokens = {'%Y': 'yyyy', '%m': 'MM', '%d': 'dd', '%H': 'HH', '%M': 'mm', '%S': 'ss'}
    nulls_ordering = False

    def try_float(self, expr):
        return f"TRY_CAST({expr} AS FLOAT)"

    def try_date(self, expr):
        return f"TRY_CAST({expr} AS DATE)"

    def median_scalar(self, expr, source):
        return (f"(SELECT DISTINCT PERCENTILE_CONT(0.5) WITHIN GROUP (ORDER BY {expr}) OVER () "
                f"FROM {source})")

    def select_top_one(self, select_list, rest):
        return f"SELECT TOP 1 {select_list} {rest}"

    def split_part(self, expr, delimiter, index):
        if len(delimiter) != 1:
            raise UnsupportedFeatureError(self.name, 'multi-character split delimiter')
        return (f"(SELECT value FROM STRING_SPLIT({expr}, {self.literal(delimiter)}, 1) "
                f"WHERE ordinal = {index})")

    def format_date(self, expr, fmt):
        return f"FORMAT({expr}, {self.literal(self.translate_date_format(fmt))})"

    def default_window_order(self):
        return "ORDER BY (SELECT NULL)"


class PostgresDialect(Dialect):
    name = 'postgres'
    label = 'PostgreSQL'
    sqlglot_dialect = 'postgres'
    type_names = {
        'int': 'BIGINT',
        'float': 'DOUBLE PRECISION',
        'string': 'TEXT',
        'date': 'DATE',
        'timestamp': 'TIMESTAMP',
        'bool': 'BOOLEAN',
    }
    features = frozenset({
        'regex', 'regex_replace', 'median', 'initcap', 'split_part',
        'boolean', 'alter_constraint', 'format_date',
    })
    date_tokens = {'%Y': 'YYYY', '%m': 'MM', '%d': 'DD', '%H': 'HH24', '%M': 'MI', '%S': 'SS'}

    def regex_match(self, expr, pattern_literal):
        return f"{expr} ~ {pattern_literal}"

    def regex_replace(self, expr, pattern_literal, replacement_literal):
        return f"REGEXP_REPLACE({expr}, {pattern_literal}, {replacement_literal}, 'g')"

    def median_scalar(self, expr, source):
        return f"(SELECT PERCENTILE_CONT(0.5) WITHIN GROUP (ORDER BY {expr}) FROM {source})"

    def initcap(self, expr):
        return f"INITCAP({expr})"

    def format_date(self, expr, fmt):
        return f"TO_CHAR({expr}, {self.literal(self.translate_date_format(fmt))})"


class MySqlDialect(Dialect):
    name = 'mysql'
    label = 'MySQL 8'
    sqlglot_dialect = 'mysql'
    type_names = {
        'int': 'SIGNED',
        'float': 'DOUBLE',
        'string': 'CHAR',
        'date': 'DATE',
        'timestamp': 'DATETIME',
        'bool': 'UNSIGNED',
    }
    features = frozenset({'regex', 'regex_replace', 'split_part', 'alter_constraint', 'format_date'})
    date_tokens = {'%Y': '%Y', '%m': '%m', '%d': '%d', '%H': '%H', '%M': '%i', '%S': '%s'}
    nulls_ordering = False

    def try_date(self, expr):
        return f"STR_TO_DATE({expr}, '%Y-%m-%d')"

    def regex_match(self, expr, pattern_literal):
        return f"{expr} REGEXP {pattern_literal}"

    def regex_replace(self, expr, pattern_literal, replacement_literal):
        return f"REGEXP_REPLACE({expr}, {pattern_literal}, {replacement_literal})"

    def split_part(self, expr, delimiter, index):
        d = self.literal(delimiter)
        piece_count = f"(CHAR_LENGTH({expr}) - CHAR_LENGTH(REPLACE({expr}, {d}, ''))) / CHAR_LENGTH({d})"
        return (f"CASE WHEN {piece_count} >= {index - 1} "
                f"THEN SUBSTRING_INDEX(SUBSTRING_INDEX({expr}, {d}, {index}), {d}, -1) END")

    def format_date(self, expr, fmt):
        return f"DATE_FORMAT({expr}, {self.literal(self.translate_date_format(fmt))})"


class DuckDbDialect(Dialect):
    name = 'duckdb'
    label = 'DuckDB'
    sqlglot_dialect = 'duckdb'
    type_names = {
        'int': 'BIGINT',
        'float': 'DOUBLE',
        'string': 'VARCHAR',
        'date': 'DATE',
        'timestamp': 'TIMESTAMP',
        'bool': 'BOOLEAN',
    }
    features = frozenset({
        'regex', 'regex_replace', 'median', 'split_part', 'try_cast',
        'boolean', 'format_date',
    })
    date_tokens = {'%Y': '%Y', '%m': '%m', '%d': '%d', '%H': '%H', '%M': '%M', '%S': '%S'}

    def try_float(self, expr):
        return f"TRY_CAST({expr} AS DOUBLE)"

    def try_date(self, expr):
        return f"TRY_CAST({expr} AS DATE)"

    def regex_match(self, expr, pattern_literal):
        return f"regexp_matches({expr}, {pattern_literal})"

    def regex_replace(self, expr, pattern_literal, replacement_literal):
        return f"REGEXP_REPLACE({expr}, {pattern_literal}, {replacement_literal}, 'g')"

    def median_scalar(self, expr, source):
        return f"(SELECT MEDIAN({expr}) FROM {source})"

    def format_date(self, expr, fmt):
        return f"STRFTIME({expr}, {self.literal(self.translate_date_format(fmt))})"


DIALECTS: Dict[str, Dialect] = {
    d.name: d for d in (TSqlDialect(), PostgresDialect(), MySqlDialect(), DuckDbDialect())
}

_ALIASES = {
    'sqlserver': 'tsql',
    'mssql': 'tsql',
    't-sql': 'tsql',
    'postgresql': 'postgres',
    'pg': 'postgres',
}


def get_dialect(name) -> Dialect:
    """Resolve a dialect name (or pass a Dialect through)."""
    if isinstance(name, Dialect):
        return name
    key = str(name).strip().lower()
    key = _ALIASES.get(key, key)
    if key not in DIALECTS:
        raise UnknownDialectError(
            f"Unknown dialect {name!r}, expected one of {sorted(DIALECTS)}")
    return DIALECTS[key]
