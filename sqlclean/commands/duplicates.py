"""Duplicate detection and removal."""
import numpy as np
import pandas as pd

from sqlclean.commands.base import Cols, Command, OrderBy, s
from sqlclean.df_util import ordered_positions, resolve_subset
from sqlclean.dialects import get_dialect
from sqlclean.sql_util import (
    INDENT, ROW_NUMBER_COL, CommandArgumentError, column_list, normalize_order,
    over_clause, select_list, subquery,
)

DUPLICATE_COUNT_COL = 'duplicate_count'


class FindDuplicates(Command):
    command_name = 'find_duplicates'
    category = 'duplicates'
    description = 'List key values that occur more than once, with how often they occur.'
    command_default = [s('find_duplicates'), ['email']]

    @staticmethod
    def transform(df, subset: Cols = None):
        keys = resolve_subset(df.columns, subset)
        counts = df.groupby(keys, dropna=False, sort=False).size().reset_index(name=DUPLICATE_COUNT_COL)
        return counts[counts[DUPLICATE_COUNT_COL] > 1].reset_index(drop=True)

    @staticmethod
    def transform_to_sql(dialect, source, columns, subset=None):
        dialect = get_dialect(dialect)
        keys = column_list(dialect, resolve_subset(columns, subset))
        return (f"SELECT {keys}, COUNT(*) AS {dialect.quote(DUPLICATE_COUNT_COL)}\n"
                f"FROM {source}\n"
                f"GROUP BY {keys}\n"
                f"HAVING COUNT(*) > 1")

    @staticmethod
    def output_columns(columns, subset=None):
        return resolve_subset(columns, subset) + [DUPLICATE_COUNT_COL]


def _dedupe_window(dialect, keys, order_by, keep):
    if keep == 'last' and not normalize_order(order_by):
        raise CommandArgumentError("drop_duplicates: keep='last' needs order_by to be expressed in SQL")
    return over_clause(dialect, partition_by=keys, order_by=order_by,
                       reverse=(keep == 'last'), default_order=True)


class DropDuplicates(Command):
    command_name = 'drop_duplicates'
    category = 'duplicates'
    description = 'Keep one row per key, numbering rows with ROW_NUMBER() and keeping the first.'
    command_default = [s('drop_duplicates'), ['email'], 'first', [['signup_date', 'desc']]]
    arg_choices = {'keep': ('first', 'last')}

    @staticmethod
    def transform(df, subset: Cols = None, keep='first', order_by: OrderBy = None):
        keys = resolve_subset(df.columns, subset)
        positions = ordered_positions(df, normalize_order(order_by))
        ordered = df.iloc[positions]
        kept = ~ordered.duplicated(subset=keys, keep=keep).to_numpy()
        return df.iloc[np.sort(positions[kept])]

    @staticmethod
    def transform_to_sql(dialect, source, columns, subset=None, keep='first', order_by=None):
        dialect = get_dialect(dialect)
        keys = resolve_subset(columns, subset)
        window = _dedupe_window(dialect, keys, order_by, keep)
        inner = (f"SELECT s.*, ROW_NUMBER() {window} AS {dialect.quote(ROW_NUMBER_COL)}\n"
                 f"FROM {source} AS s")
        return (f"SELECT\n{INDENT}{select_list(dialect, columns, prefix='ranked')}\n"
                f"FROM {subquery(inner, 'ranked')}\n"
                f"WHERE ranked.{dialect.quote(ROW_NUMBER_COL)} = 1")

    @staticmethod
    def statement_sql(dialect, table, columns, subset=None, keep='first', order_by=None):
        """DELETE every row but the kept one, in place."""
        dialect = get_dialect(dialect)
        keys = resolve_subset(columns, subset)
        window = _dedupe_window(dialect, keys, order_by, keep)
        rn = dialect.quote(ROW_NUMBER_COL)
        if dialect.name == 'tsql':
            return (f"WITH ranked AS (\n"
                    f"{INDENT}SELECT *, ROW_NUMBER() {window} AS {rn}\n"
                    f"{INDENT}FROM {table}\n"
                    f")\n"
                    f"DELETE FROM ranked\n"
                    f"WHERE {rn} > 1;")

        if dialect.name == 'postgres':
            locator = 'ctid'
        elif dialect.name == 'duckdb':
            locator = 'rowid'
        else:
            order = normalize_order(order_by)
            if not order:
                raise CommandArgumentError(
                    f"drop_duplicates: {dialect.name} deletes by key, order_by must start with a unique key column")
            locator = dialect.quote(order[0][0])
        inner = (f"SELECT {locator}, ROW_NUMBER() {window} AS {rn}\n"
                 f"FROM {table}")
        return (f"DELETE FROM {table}\n"
                f"WHERE {locator} IN (\n"
                f"{INDENT}SELECT {locator}\n"
                f"{INDENT}FROM {subquery(inner, 'ranked')}\n"
                f"{INDENT}WHERE {rn} > 1\n"
                f");")


class CountDistinct(Command):
    """Compare total and distinct key counts to size a duplicate problem."""
    command_name = 'count_distinct'
    category = 'duplicates'
    description = 'Compare the total row count with the count of distinct keys.'
    command_default = [s('count_distinct'), ['email']]

    @staticmethod
    def transform(df, subset: Cols = None):
        keys = resolve_subset(df.columns, subset)
        distinct = len(df[keys].drop_duplicates())
        return pd.DataFrame({'total_rows': [len(df)], 'distinct_rows': [distinct]})

    @staticmethod
    def transform_to_sql(dialect, source, columns, subset=None):
        dialect = get_dialect(dialect)
        keys = column_list(dialect, resolve_subset(columns, subset))
        inner = f"SELECT DISTINCT {keys}\nFROM {source}"
        return (f"SELECT\n"
                f"{INDENT}(SELECT COUNT(*) FROM {source}) AS {dialect.quote('total_rows')},\n"
                f"{INDENT}COUNT(*) AS {dialect.quote('distinct_rows')}\n"
                f"FROM {subquery(inner, 'distinct_keys')}")

    @staticmethod
    def output_columns(columns, subset=None):
        return ['total_rows', 'distinct_rows']


DUPLICATE_COMMANDS = [FindDuplicates, CountDistinct, DropDuplicates]
