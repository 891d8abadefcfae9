"""Apply an operation list to a frame, or render it as one chained query.

    pipeline = CleaningPipeline([
        [s('trim'), 'name'],
        [s('drop_duplicates'), ['email'], 'first', [['signup_date', 'desc']]],
    ])
    cleaned = pipeline.transform(df)
    print(pipeline.to_sql(df.columns, dialect='tsql'))
"""
import json
import logging
from typing import Any, List

import pandas as pd
import polars as pl
from typing_extensions import override

from sqlclean.commands import DEFAULT_COMMANDS, configure_cleaning
from sqlclean.commands.base import UnknownCommandError, split_operation
from sqlclean.dialects import get_dialect
from sqlclean.sql_util import CommandArgumentError

log = logging.getLogger("sqlclean.pipeline")


class CleaningPipeline:
    command_klasses: List[type] = DEFAULT_COMMANDS

    def __init__(self, operations=None, command_klasses=None):
        if command_klasses is not None:
            self.command_klasses = command_klasses
        self.operations = [list(op) for op in (operations or [])]
        (self.command_defaults, self.command_patterns,
         self._transform_df, self._transform_to_sql) = configure_cleaning(self.command_klasses)
        self._klasses = {kls.command_name: kls for kls in self.command_klasses}

    def __repr__(self):
        return f"<{self.__class__.__name__} {[op[0]['symbol'] for op in self.operations]}>"

    def _command(self, symbol):
        if symbol not in self._klasses:
            raise UnknownCommandError(f"Unknown command {symbol!r}, known commands are {sorted(self._klasses)}")
        return self._klasses[symbol]

    def _prepare(self, df) -> pd.DataFrame:
        return df

    def _finish(self, df: pd.DataFrame) -> Any:
        return df

    def transform(self, df):
        """Apply every operation in order; the input frame is left untouched."""
        df = self._prepare(df)
        log.debug("transform %d operations over %d rows", len(self.operations), len(df))
        return self._finish(self._transform_df(self.operations, df))

    def to_sql(self, columns, source: str = 'your_table_name', dialect='postgres') -> str:
        dialect = get_dialect(dialect)
        log.debug("rendering %d operations for %s", len(self.operations), dialect.name)
        return self._transform_to_sql(self.operations, list(columns), source=source, dialect=dialect)

    def output_columns(self, columns) -> List:
        columns = list(columns)
        for op in self.operations:
            symbol, args = split_operation(op)
            kls = self._command(symbol)
            columns = kls.output_columns(columns, *kls.bind_args(args))
        return columns

    def statements(self, table: str, columns, dialect='postgres') -> List[str]:
        """The DDL/DML form of each operation, for operations that have one."""
        dialect = get_dialect(dialect)
        columns = list(columns)
        out = []
        for op in self.operations:
            symbol, args = split_operation(op)
            kls = self._command(symbol)
            bound = kls.bind_args(args)
            try:
                out.append(kls.statement_sql(dialect, table, columns, *bound))
            except NotImplementedError:
                log.debug("%s has no statement form", symbol)
            columns = kls.output_columns(columns, *bound)
        return out

    def to_json(self) -> str:
        return json.dumps(self.operations)

    @classmethod
    def from_json(cls, text: str, **kwargs):
        try:
            operations = json.loads(text)
        except json.JSONDecodeError as e:
            raise CommandArgumentError(f"Operations are not valid JSON: {e}") from e
        if not isinstance(operations, list):
            raise CommandArgumentError("Operations JSON must be a list of operations")
        return cls(operations, **kwargs)


class PolarsCleaningPipeline(CleaningPipeline):
    """Runs the pandas operations on a polars frame and hands polars back."""

    @override
    def _prepare(self, df) -> pd.DataFrame:
        if isinstance(df, pl.LazyFrame):
            df = df.collect()
        return df.to_pandas()

    @override
    def _finish(self, df: pd.DataFrame) -> pl.DataFrame:
        return pl.from_pandas(df.reset_index(drop=True))
