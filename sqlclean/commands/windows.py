"""Window functions: ranking, distribution and aggregates over a frame.

Every command takes ``order_by``, ``partition_by`` and ``new_col`` after
its own arguments. NULLs sort last ascending and first descending.
The pandas rendering breaks ties in the sort order by input order;
SQL engines break them arbitrarily, so give a unique ordering when
row_number, ntile or the framed aggregates must agree exactly.
"""
import numpy as np
import pandas as pd

from sqlclean.commands.base import Col, Cols, Command, OrderBy, s
from sqlclean.df_util import equals_previous, ordered_positions
from sqlclean.dialects import get_dialect
from sqlclean.sql_util import (
    CommandArgumentError, as_list, normalize_order, output_with_extra, over_clause, select,
)

AGGREGATES = ('sum', 'avg', 'min', 'max', 'count')

_PANDAS_AGG = {'sum': 'sum', 'avg': 'mean', 'min': 'min', 'max': 'max'}


class WindowFrame:
    """Rows of a frame laid out partition by partition in window order.

    Arrays indexed by sorted position: ``positions[i]`` is the row of the
    original frame at sorted position ``i``.
    """

    def __init__(self, df: pd.DataFrame, partition_by=None, order_by=None):
        n = len(df)
        keys = as_list(partition_by)
        if keys:
            groups = df.groupby(keys, dropna=False, sort=False).ngroup().to_numpy()
        else:
            groups = np.zeros(n, dtype=np.int64)
        order = normalize_order(order_by)
        positions = ordered_positions(df, order)
        positions = positions[np.argsort(groups[positions], kind='stable')]

        self.n = n
        self.positions = positions
        self.groups = groups[positions]
        idx = np.arange(n)

        new_group = np.ones(n, dtype=bool)
        new_group[1:] = self.groups[1:] != self.groups[:-1]
        # a peer shares its partition and every order value with the row before
        peer = ~new_group
        for col, _ in order:
            peer &= equals_previous(df[col].iloc[positions])
        self.group_start = np.maximum.accumulate(np.where(new_group, idx, 0)) if n else idx
        self.peer_start = np.maximum.accumulate(np.where(~peer, idx, 0)) if n else idx
        peer_id = np.cumsum(~peer) - 1
        peer_end = np.zeros(peer_id.max() + 1 if n else 0, dtype=np.int64)
        np.maximum.at(peer_end, peer_id, idx)
        self.peer_end = peer_end[peer_id]
        self.peer_id = peer_id
        self.size = np.bincount(self.groups)[self.groups] if n else idx

    def row_number(self) -> np.ndarray:
        return np.arange(self.n) - self.group_start + 1

    def rank(self) -> np.ndarray:
        return self.peer_start - self.group_start + 1

    def dense_rank(self) -> np.ndarray:
        return self.peer_id - self.peer_id[self.group_start] + 1

    def percent_rank(self) -> np.ndarray:
        denom = np.maximum(self.size - 1, 1)
        return np.where(self.size > 1, (self.rank() - 1) / denom, 0.0)

    def cume_dist(self) -> np.ndarray:
        return (self.peer_end - self.group_start + 1) / self.size

    def ntile(self, buckets: int) -> np.ndarray:
        k = self.row_number() - 1
        q, r = np.divmod(self.size, buckets)
        big = q + 1
        head = r * big
        return np.where(k < head, k // big + 1, r + (k - head) // np.maximum(q, 1) + 1)

    def sorted_series(self, ser: pd.Series) -> pd.Series:
        return ser.iloc[self.positions].reset_index(drop=True)

    def to_original(self, values) -> np.ndarray:
        """Put values computed in sorted order back in the frame's row order."""
        return pd.Series(np.asarray(values), index=self.positions).sort_index().to_numpy()


def _require_order(name, order_by):
    if not normalize_order(order_by):
        raise CommandArgumentError(f"{name}: order_by is required")


def _window_select(dialect, source, columns, new_col, func, partition_by, order_by,
                   frame=None, default_order=False):
    window = over_clause(dialect, partition_by=partition_by, order_by=order_by,
                         frame=frame, default_order=default_order)
    return select(dialect, columns, source, extra=[(new_col, f"{func} {window}")])


def _assign(df, new_col, values):
    out = df.copy()
    out[new_col] = values
    return out


class RowNumber(Command):
    command_name = 'row_number'
    category = 'windows'
    description = 'Number rows 1, 2, 3 ... within each partition.'
    command_default = [s('row_number'), [['sale_date', 'asc']], 'store_id']

    @staticmethod
    def transform(df, order_by: OrderBy = None, partition_by: Cols = None, new_col=None):
        wf = WindowFrame(df, partition_by, order_by)
        return _assign(df, new_col or 'row_number', wf.to_original(wf.row_number()))

    @staticmethod
    def transform_to_sql(dialect, source, columns, order_by=None, partition_by=None, new_col=None):
        dialect = get_dialect(dialect)
        return _window_select(dialect, source, columns, new_col or 'row_number', 'ROW_NUMBER()',
                              partition_by, order_by, default_order=True)

    @staticmethod
    def output_columns(columns, order_by=None, partition_by=None, new_col=None):
        return output_with_extra(columns, [new_col or 'row_number'])


class _RankingCommand(Command):
    """Shared shape of the order-required ranking and distribution commands."""
    category = 'windows'
    sql_function = ''

    @classmethod
    def values(cls, wf: WindowFrame) -> np.ndarray:
        raise NotImplementedError

    @classmethod
    def _transform(cls, df, order_by, partition_by, new_col):
        _require_order(cls.command_name, order_by)
        wf = WindowFrame(df, partition_by, order_by)
        return _assign(df, new_col or cls.command_name, wf.to_original(cls.values(wf)))

    @classmethod
    def _to_sql(cls, dialect, source, columns, order_by, partition_by, new_col):
        _require_order(cls.command_name, order_by)
        dialect = get_dialect(dialect)
        return _window_select(dialect, source, columns, new_col or cls.command_name,
                              cls.sql_function, partition_by, order_by)

    @classmethod
    def _output(cls, columns, new_col):
        return output_with_extra(columns, [new_col or cls.command_name])


class Rank(_RankingCommand):
    command_name = 'rank'
    description = 'Rank rows; ties share a rank and leave a gap after them.'
    command_default = [s('rank'), [['salary', 'desc']], 'department']
    sql_function = 'RANK()'

    @classmethod
    def values(cls, wf):
        return wf.rank()

    @staticmethod
    def transform(df, order_by: OrderBy = None, partition_by: Cols = None, new_col=None):
        return Rank._transform(df, order_by, partition_by, new_col)

    @staticmethod
    def transform_to_sql(dialect, source, columns, order_by=None, partition_by=None, new_col=None):
        return Rank._to_sql(dialect, source, columns, order_by, partition_by, new_col)

    @staticmethod
    def output_columns(columns, order_by=None, partition_by=None, new_col=None):
        return Rank._output(columns, new_col)


class DenseRank(_RankingCommand):
    command_name = 'dense_rank'
    description = 'Rank rows; ties share a rank with no gap after them.'
    command_default = [s('dense_rank'), [['salary', 'desc']], 'department']
    sql_function = 'DENSE_RANK()'

    @classmethod
    def values(cls, wf):
        return wf.dense_rank()

    @staticmethod
    def transform(df, order_by: OrderBy = None, partition_by: Cols = None, new_col=None):
        return DenseRank._transform(df, order_by, partition_by, new_col)

    @staticmethod
    def transform_to_sql(dialect, source, columns, order_by=None, partition_by=None, new_col=None):
        return DenseRank._to_sql(dialect, source, columns, order_by, partition_by, new_col)

    @staticmethod
    def output_columns(columns, order_by=None, partition_by=None, new_col=None):
        return DenseRank._output(columns, new_col)


class PercentRank(_RankingCommand):
    command_name = 'percent_rank'
    description = 'Relative rank (rank - 1) / (rows - 1), between 0 and 1.'
    command_default = [s('percent_rank'), [['salary', 'asc']], 'department']
    sql_function = 'PERCENT_RANK()'

    @classmethod
    def values(cls, wf):
        return wf.percent_rank()

    @staticmethod
    def transform(df, order_by: OrderBy = None, partition_by: Cols = None, new_col=None):
        return PercentRank._transform(df, order_by, partition_by, new_col)

    @staticmethod
    def transform_to_sql(dialect, source, columns, order_by=None, partition_by=None, new_col=None):
        return PercentRank._to_sql(dialect, source, columns, order_by, partition_by, new_col)

    @staticmethod
    def output_columns(columns, order_by=None, partition_by=None, new_col=None):
        return PercentRank._output(columns, new_col)


class CumeDist(_RankingCommand):
    command_name = 'cume_dist'
    description = 'Share of rows ordered at or before the current row, peers included.'
    command_default = [s('cume_dist'), [['salary', 'asc']], 'department']
    sql_function = 'CUME_DIST()'

    @classmethod
    def values(cls, wf):
        return wf.cume_dist()

    @staticmethod
    def transform(df, order_by: OrderBy = None, partition_by: Cols = None, new_col=None):
        return CumeDist._transform(df, order_by, partition_by, new_col)

    @staticmethod
    def transform_to_sql(dialect, source, columns, order_by=None, partition_by=None, new_col=None):
        return CumeDist._to_sql(dialect, source, columns, order_by, partition_by, new_col)

    @staticmethod
    def output_columns(columns, order_by=None, partition_by=None, new_col=None):
        return CumeDist._output(columns, new_col)


class Ntile(Command):
    command_name = 'ntile'
    category = 'windows'
    description = 'Split ordered rows into n buckets of near-equal size, larger buckets first.'
    command_default = [s('ntile'), 4, [['salary', 'desc']], None, 'salary_quartile']

    @staticmethod
    def _check(n, order_by):
        _require_order('ntile', order_by)
        if int(n) < 1:
            raise CommandArgumentError(f"ntile: n must be at least 1, got {n}")

    @staticmethod
    def transform(df, n=4, order_by: OrderBy = None, partition_by: Cols = None, new_col=None):
        Ntile._check(n, order_by)
        wf = WindowFrame(df, partition_by, order_by)
        return _assign(df, new_col or 'ntile', wf.to_original(wf.ntile(int(n))))

    @staticmethod
    def transform_to_sql(dialect, source, columns, n=4, order_by=None, partition_by=None, new_col=None):
        Ntile._check(n, order_by)
        dialect = get_dialect(dialect)
        return _window_select(dialect, source, columns, new_col or 'ntile', f"NTILE({int(n)})",
                              partition_by, order_by)

    @staticmethod
    def output_columns(columns, n=4, order_by=None, partition_by=None, new_col=None):
        return output_with_extra(columns, [new_col or 'ntile'])


def _rolled(wf, values, how, window=None):
    grouped = values.groupby(wf.groups, sort=False)
    if window is None:
        framed = grouped.expanding(min_periods=1)
    else:
        framed = grouped.rolling(window, min_periods=1)
    result = getattr(framed, _PANDAS_AGG[how])()
    return result.reset_index(level=0, drop=True).sort_index()


def _framed(wf, ser, how, window=None):
    """Aggregate over ROWS frames ending at each row; NULLs ignored.

    Only sum and avg read the column as numbers. min and max of text,
    dates or booleans compare the raw values, like SQL does.
    """
    values = wf.sorted_series(ser)
    if how == 'count':
        present = values.notna().astype('int64')
        return _rolled(wf, present, 'sum', window).astype('int64').to_numpy()
    numeric = pd.api.types.is_numeric_dtype(values) and not pd.api.types.is_bool_dtype(values)
    if how in ('sum', 'avg') or numeric:
        numbers = pd.to_numeric(values, errors='coerce').astype('float64')
        return _rolled(wf, numbers, how, window).to_numpy()
    codes, uniques = pd.factorize(values, sort=True)
    ranks = pd.Series(codes, dtype='float64').where(codes >= 0)
    picked = _rolled(wf, ranks, how, window).fillna(-1).astype('int64')
    return pd.Series(uniques).reindex(picked.to_numpy()).to_numpy()


def _aggregate_sql(dialect, col, how):
    q = dialect.quote(col)
    if how == 'avg':
        return f"AVG({dialect.cast(q, 'float')})"
    return f"{how.upper()}({q})"


class RunningAggregate(Command):
    """Cumulative aggregate from the start of the partition to the current row."""
    command_name = 'running_aggregate'
    category = 'windows'
    description = 'Running total (or avg, min, max, count) in window order.'
    command_default = [s('running_aggregate'), 'amount', 'sum', [['sale_date', 'asc']], 'store_id']
    arg_choices = {'how': AGGREGATES}

    @staticmethod
    def _new_col(col, how, new_col):
        return new_col or f"running_{how}_{col}"

    @staticmethod
    def transform(df, col: Col, how='sum', order_by: OrderBy = None, partition_by: Cols = None,
                  new_col=None):
        wf = WindowFrame(df, partition_by, order_by)
        values = _framed(wf, df[col], how)
        return _assign(df, RunningAggregate._new_col(col, how, new_col), wf.to_original(values))

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, how='sum', order_by=None, partition_by=None,
                         new_col=None):
        dialect = get_dialect(dialect)
        return _window_select(dialect, source, columns, RunningAggregate._new_col(col, how, new_col),
                              _aggregate_sql(dialect, col, how), partition_by, order_by,
                              frame='ROWS BETWEEN UNBOUNDED PRECEDING AND CURRENT ROW',
                              default_order=True)

    @staticmethod
    def output_columns(columns, col, how='sum', order_by=None, partition_by=None, new_col=None):
        return output_with_extra(columns, [RunningAggregate._new_col(col, how, new_col)])


class MovingAggregate(Command):
    """Aggregate over the current row and the ``window - 1`` rows before it."""
    command_name = 'moving_aggregate'
    category = 'windows'
    description = 'Moving average (or sum, min, max, count) over the last n rows.'
    command_default = [s('moving_aggregate'), 'amount', 3, 'avg', [['sale_date', 'asc']], 'store_id']
    arg_choices = {'how': AGGREGATES}

    @staticmethod
    def _check(window):
        if int(window) < 1:
            raise CommandArgumentError(f"moving_aggregate: window must be at least 1, got {window}")

    @staticmethod
    def _new_col(col, how, new_col):
        return new_col or f"moving_{how}_{col}"

    @staticmethod
    def transform(df, col: Col, window=3, how='avg', order_by: OrderBy = None,
                  partition_by: Cols = None, new_col=None):
        MovingAggregate._check(window)
        wf = WindowFrame(df, partition_by, order_by)
        values = _framed(wf, df[col], how, window=int(window))
        return _assign(df, MovingAggregate._new_col(col, how, new_col), wf.to_original(values))

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, window=3, how='avg', order_by=None,
                         partition_by=None, new_col=None):
        MovingAggregate._check(window)
        dialect = get_dialect(dialect)
        frame = f"ROWS BETWEEN {int(window) - 1} PRECEDING AND CURRENT ROW"
        return _window_select(dialect, source, columns, MovingAggregate._new_col(col, how, new_col),
                              _aggregate_sql(dialect, col, how), partition_by, order_by,
                              frame=frame, default_order=True)

    @staticmethod
    def output_columns(columns, col, window=3, how='avg', order_by=None, partition_by=None,
                       new_col=None):
        return output_with_extra(columns, [MovingAggregate._new_col(col, how, new_col)])


def _shifted(df, col, offset, order_by, partition_by):
    wf = WindowFrame(df, partition_by, order_by)
    shifted = wf.sorted_series(df[col]).groupby(wf.groups, sort=False).shift(offset)
    return shifted.set_axis(wf.positions).sort_index().array


class Lag(Command):
    command_name = 'lag'
    category = 'windows'
    description = 'Value from an earlier row in window order, e.g. the previous sale.'
    command_default = [s('lag'), 'amount', 1, [['sale_date', 'asc']], 'store_id']

    @staticmethod
    def transform(df, col: Col, offset=1, order_by: OrderBy = None, partition_by: Cols = None,
                  new_col=None):
        return _assign(df, new_col or f"lag_{col}", _shifted(df, col, int(offset), order_by, partition_by))

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, offset=1, order_by=None, partition_by=None,
                         new_col=None):
        dialect = get_dialect(dialect)
        return _window_select(dialect, source, columns, new_col or f"lag_{col}",
                              f"LAG({dialect.quote(col)}, {int(offset)})", partition_by, order_by,
                              default_order=True)

    @staticmethod
    def output_columns(columns, col, offset=1, order_by=None, partition_by=None, new_col=None):
        return output_with_extra(columns, [new_col or f"lag_{col}"])


class Lead(Command):
    command_name = 'lead'
    category = 'windows'
    description = 'Value from a later row in window order, e.g. the next sale.'
    command_default = [s('lead'), 'amount', 1, [['sale_date', 'asc']], 'store_id']

    @staticmethod
    def transform(df, col: Col, offset=1, order_by: OrderBy = None, partition_by: Cols = None,
                  new_col=None):
        return _assign(df, new_col or f"lead_{col}", _shifted(df, col, -int(offset), order_by, partition_by))

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, offset=1, order_by=None, partition_by=None,
                         new_col=None):
        dialect = get_dialect(dialect)
        return _window_select(dialect, source, columns, new_col or f"lead_{col}",
                              f"LEAD({dialect.quote(col)}, {int(offset)})", partition_by, order_by,
                              default_order=True)

    @staticmethod
    def output_columns(columns, col, offset=1, order_by=None, partition_by=None, new_col=None):
        return output_with_extra(columns, [new_col or f"lead_{col}"])


WINDOW_COMMANDS = [
    RowNumber, Rank, DenseRank, Ntile, PercentRank, CumeDist,
    RunningAggregate, MovingAggregate, Lag, Lead,
]
