"""NULL detection and imputation."""
import pandas as pd

from sqlclean.commands.base import Col, Cols, Command, s
from sqlclean.df_util import resolve_subset
from sqlclean.dialects import get_dialect
from sqlclean.sql_util import INDENT, output_with_extra, select


class NullCounts(Command):
    command_name = 'null_counts'
    category = 'nulls'
    description = 'Count the NULLs in every column.'
    command_default = [s('null_counts')]

    @staticmethod
    def transform(df):
        counts = df.isna().sum().astype('int64')
        return counts.to_frame().T.reset_index(drop=True)

    @staticmethod
    def transform_to_sql(dialect, source, columns):
        dialect = get_dialect(dialect)
        parts = [f"COUNT(*) - COUNT({dialect.quote(c)}) AS {dialect.quote(c)}" for c in columns]
        return f"SELECT\n{INDENT}" + f",\n{INDENT}".join(parts) + f"\nFROM {source}"


class FindNulls(Command):
    command_name = 'find_nulls'
    category = 'nulls'
    description = 'Show the rows where a column is NULL.'
    command_default = [s('find_nulls'), 'phone']

    @staticmethod
    def transform(df, col: Col):
        return df[df[col].isna()]

    @staticmethod
    def transform_to_sql(dialect, source, columns, col):
        dialect = get_dialect(dialect)
        return select(dialect, columns, source, where=f"{dialect.quote(col)} IS NULL")


class DropNulls(Command):
    command_name = 'drop_nulls'
    category = 'nulls'
    description = 'Remove rows that have a NULL in any of the given columns.'
    command_default = [s('drop_nulls'), ['email']]

    @staticmethod
    def transform(df, cols: Cols = None):
        return df.dropna(subset=resolve_subset(df.columns, cols))

    @staticmethod
    def transform_to_sql(dialect, source, columns, cols=None):
        dialect = get_dialect(dialect)
        where = " AND ".join(f"{dialect.quote(c)} IS NOT NULL" for c in resolve_subset(columns, cols))
        return select(dialect, columns, source, where=where)

    @staticmethod
    def statement_sql(dialect, table, columns, cols=None):
        dialect = get_dialect(dialect)
        where = " OR ".join(f"{dialect.quote(c)} IS NULL" for c in resolve_subset(columns, cols))
        return f"DELETE FROM {table}\nWHERE {where};"


class FillConstant(Command):
    command_name = 'fill_constant'
    category = 'nulls'
    description = 'Replace NULLs with a fixed value.'
    command_default = [s('fill_constant'), 'phone', 'unknown']

    @staticmethod
    def transform(df, col: Col, value):
        out = df.copy()
        out[col] = out[col].fillna(value)
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, value):
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        return select(dialect, columns, source, replace={col: f"COALESCE({q}, {dialect.literal(value)})"})

    @staticmethod
    def statement_sql(dialect, table, columns, col, value):
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        return f"UPDATE {table}\nSET {q} = {dialect.literal(value)}\nWHERE {q} IS NULL;"


def _aggregate_body(dialect, col, how, source):
    """SELECT returning the fill value in a single column named fill_value."""
    q = dialect.quote(col)
    if how == 'mean':
        return f"SELECT AVG({dialect.cast(q, 'float')}) AS fill_value FROM {source}"
    if how == 'min':
        return f"SELECT MIN({q}) AS fill_value FROM {source}"
    if how == 'max':
        return f"SELECT MAX({q}) AS fill_value FROM {source}"
    if how == 'median':
        return f"SELECT {dialect.median_scalar(q, source)} AS fill_value"
    # mode: most frequent non-NULL value, smallest value wins ties
    return dialect.select_top_one(
        f"{q} AS fill_value",
        f"FROM {source} WHERE {q} IS NOT NULL GROUP BY {q} ORDER BY COUNT(*) DESC, {q} ASC")


def _aggregate_scalar(dialect, col, how, source):
    if how == 'median':
        return dialect.median_scalar(dialect.quote(col), source)
    return f"({_aggregate_body(dialect, col, how, source)})"


class FillAggregate(Command):
    command_name = 'fill_aggregate'
    category = 'nulls'
    description = 'Replace NULLs with an aggregate (mean, median, min, max or mode) of the column.'
    command_default = [s('fill_aggregate'), 'salary', 'mean']
    arg_choices = {'how': ('mean', 'median', 'min', 'max', 'mode')}

    @staticmethod
    def fill_value(ser: pd.Series, how: str):
        if how in ('mean', 'median') and pd.api.types.is_numeric_dtype(ser):
            ser = ser.astype('float64')
        if how == 'mode':
            modes = ser.mode(dropna=True)
            return (modes.iloc[0] if len(modes) else None), ser
        return getattr(ser, how)(), ser

    @staticmethod
    def transform(df, col: Col, how='mean'):
        value, ser = FillAggregate.fill_value(df[col], how)
        out = df.copy()
        if value is None or pd.isna(value):
            return out
        out[col] = ser.fillna(value)
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, how='mean'):
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        scalar = _aggregate_scalar(dialect, col, how, source)
        if how in ('mean', 'median'):
            q = dialect.cast(q, 'float')
        expr = f"COALESCE({q}, {scalar})"
        return select(dialect, columns, source, replace={col: expr})

    @staticmethod
    def statement_sql(dialect, table, columns, col, how='mean'):
        dialect = get_dialect(dialect)
        q = dialect.quote(col)
        if dialect.name == 'mysql':
            # MySQL cannot read the UPDATE target in a subquery unless it is materialized
            scalar = f"(SELECT fill_value FROM ({_aggregate_body(dialect, col, how, table)}) AS agg)"
        else:
            scalar = _aggregate_scalar(dialect, col, how, table)
        return f"UPDATE {table}\nSET {q} = {scalar}\nWHERE {q} IS NULL;"


class CoalesceDisplay(Command):
    command_name = 'coalesce_display'
    category = 'nulls'
    description = 'Show a placeholder for NULLs in a text copy of the column, leaving the data alone.'
    command_default = [s('coalesce_display'), 'phone', 'N/A']

    @staticmethod
    def _new_col(col, new_col):
        return new_col or f"{col}_display"

    @staticmethod
    def transform(df, col: Col, placeholder='N/A', new_col=None):
        out = df.copy()
        out[CoalesceDisplay._new_col(col, new_col)] = df[col].astype('string').fillna(placeholder)
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, placeholder='N/A', new_col=None):
        dialect = get_dialect(dialect)
        expr = f"COALESCE({dialect.cast(dialect.quote(col), 'string')}, {dialect.literal(placeholder)})"
        return select(dialect, columns, source, extra=[(CoalesceDisplay._new_col(col, new_col), expr)])

    @staticmethod
    def output_columns(columns, col, placeholder='N/A', new_col=None):
        return output_with_extra(columns, [CoalesceDisplay._new_col(col, new_col)])


NULL_COMMANDS = [NullCounts, FindNulls, DropNulls, FillConstant, FillAggregate, CoalesceDisplay]
