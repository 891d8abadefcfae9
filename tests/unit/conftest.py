import datetime
import numbers

import pandas as pd
import pytest

from sqlclean.commands import configure_cleaning
from sqlclean.samples import sample_tables
from sqlclean.sql_exec import run_sql


def plain(v):
    """A python value comparable across pandas and duckdb result dtypes."""
    if v is None:
        return None
    if not isinstance(v, (list, dict, tuple)) and pd.isna(v):
        return None
    if isinstance(v, bool) or type(v).__name__ == 'bool_':
        return bool(v)
    if isinstance(v, numbers.Integral):
        return int(v)
    if isinstance(v, numbers.Real):
        return round(float(v), 9)
    if isinstance(v, (pd.Timestamp, datetime.date)):
        return pd.Timestamp(v).isoformat()
    return v


def frame_rows(df, sort_by=None):
    df = df.reset_index(drop=True)
    if sort_by:
        df = df.sort_values(sort_by, kind='mergesort', na_position='first')
    return [[plain(v) for v in row] for row in df.itertuples(index=False, name=None)]


def assert_same_as_sql(command_kls, operations, df, table='your_table_name', sort_by=None):
    """Verify that transform() and the duckdb rendering of transform_to_sql() agree."""
    _a, _b, transform_df, transform_to_sql = configure_cleaning([command_kls])
    tdf = transform_df(operations, df.copy())
    sql = transform_to_sql(operations, df.columns, source=table, dialect='duckdb')
    sdf = run_sql(sql, **{table: df})
    assert list(sdf.columns) == list(tdf.columns)
    assert frame_rows(tdf, sort_by) == frame_rows(sdf, sort_by), sql
    return tdf


@pytest.fixture
def same():
    return assert_same_as_sql


@pytest.fixture
def tables():
    return sample_tables()


@pytest.fixture
def people(tables):
    return tables['your_table_name']


@pytest.fixture
def salaries(tables):
    return tables['employee_salaries']


@pytest.fixture
def sales(tables):
    return tables['store_sales']


@pytest.fixture
def rows():
    return frame_rows
