import logging
from typing import List

import numpy as np
import pandas as pd

from sqlclean.sql_util import as_list

log = logging.getLogger("sqlclean.df_util")


class DuplicateColumnsException(Exception):
    pass


class ColumnNotFoundError(KeyError):
    def __init__(self, missing, available):
        self.missing = list(missing)
        self.available = list(available)
        super().__init__(f"Columns {self.missing} not found, available columns are {self.available}")

    def __str__(self):
        return self.args[0]


def check_and_fix_df(df: pd.DataFrame) -> pd.DataFrame:
    if not df.columns.is_unique:
        dupes = df.columns[df.columns.duplicated()].tolist()
        raise DuplicateColumnsException(
            f"Your dataframe has duplicate columns {dupes}. sqlclean requires distinct column names")
    if not all(isinstance(c, str) for c in df.columns):
        log.debug("renaming non-string column labels to strings")
        df = df.rename(columns={c: str(c) for c in df.columns})
    return df


def check_columns(available, referenced) -> None:
    missing = [c for c in referenced if c not in available]
    if missing:
        raise ColumnNotFoundError(missing, available)


def resolve_subset(columns, subset) -> List:
    """Columns named by a subset argument; all columns when it is None."""
    cols = as_list(subset)
    if not cols:
        return list(columns)
    return cols


def ordered_positions(df: pd.DataFrame, order) -> np.ndarray:
    """Positional row order for ``order`` ([(column, descending), ...]).

    NULLs sort last ascending and first descending. Ties keep input
    order, so an empty ``order`` is the identity permutation.
    """
    positions = np.arange(len(df))
    # successive stable sorts, least significant key first
    for col, descending in reversed(order):
        ser = df[col].iloc[positions].reset_index(drop=True)
        idx = ser.sort_values(
            ascending=not descending, kind='mergesort',
            na_position='first' if descending else 'last',
        ).index.to_numpy()
        positions = positions[idx]
    return positions


def equals_previous(ser: pd.Series) -> np.ndarray:
    """Element i is True when ser[i] equals ser[i-1], NULL equal to NULL."""
    ser = ser.reset_index(drop=True)
    prev = ser.shift(1)
    same = (ser == prev)
    if hasattr(same, 'fillna'):
        same = same.fillna(False)
    both_null = ser.isna() & prev.isna()
    result = np.asarray(same, dtype=bool) | both_null.to_numpy(dtype=bool)
    if len(result):
        result[0] = False
    return result
