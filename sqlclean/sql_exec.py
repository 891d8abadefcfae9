"""Run rendered SQL over in-memory frames with DuckDB.

Frames are registered as views under their table names, so the SQL a
pipeline renders for ``dialect='duckdb'`` runs unchanged::

    run_sql(pipeline.to_sql(df.columns, dialect='duckdb'), your_table_name=df)
"""
import logging
from typing import Dict, Optional

import duckdb
import pandas as pd

log = logging.getLogger("sqlclean.sql_exec")


def connect(tables: Optional[Dict[str, pd.DataFrame]] = None,
            materialize: bool = False) -> duckdb.DuckDBPyConnection:
    """In-memory connection with ``tables`` registered as views, or copied
    into real tables when ``materialize`` (DELETE and UPDATE need those)."""
    conn = duckdb.connect(database=':memory:')
    for name, df in (tables or {}).items():
        if not materialize:
            conn.register(name, df)
            continue
        conn.register('sqlclean_input', df)
        conn.execute(f"CREATE TABLE {name} AS SELECT * FROM sqlclean_input")
        conn.unregister('sqlclean_input')
    return conn


def run_sql(sql: str, conn: Optional[duckdb.DuckDBPyConnection] = None, **tables) -> pd.DataFrame:
    """Execute one query and return its rows as a pandas frame."""
    own_conn = conn is None
    if own_conn:
        conn = connect(tables)
    else:
        for name, df in tables.items():
            conn.register(name, df)
    try:
        log.debug("executing %d chars of SQL over %s", len(sql), sorted(tables))
        return conn.execute(sql).fetchdf()
    finally:
        if own_conn:
            conn.close()


def explain(sql: str, conn: duckdb.DuckDBPyConnection) -> None:
    """Plan a statement without running it; raises duckdb.Error when it does not bind."""
    conn.execute(f"EXPLAIN {sql.rstrip().rstrip(';')}")


def run_statement(sql: str, df: pd.DataFrame, table: str = 'your_table_name') -> pd.DataFrame:
    """Run a DDL/DML statement against a copy of ``df`` stored as a real table.

    Returns the table's rows afterwards, in rowid order.
    """
    conn = connect({table: df}, materialize=True)
    try:
        conn.execute(sql)
        return conn.execute(f"SELECT * FROM {table} ORDER BY rowid").fetchdf()
    finally:
        conn.close()
