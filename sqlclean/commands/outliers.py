"""Z-score outlier detection."""
import numpy as np
import pandas as pd

from sqlclean.commands.base import Col, Command, s
from sqlclean.dialects import get_dialect
from sqlclean.sql_util import INDENT, output_with_extra, select_list, subquery

Z_COL = 'sqlclean_z'


def zscores(ser: pd.Series) -> pd.Series:
    """(x - mean) / sample stddev; NULL wherever stddev is zero or undefined."""
    values = pd.to_numeric(ser, errors='coerce').astype('float64')
    sigma = values.std(ddof=1)
    if pd.isna(sigma) or sigma == 0:
        return pd.Series(np.nan, index=ser.index, dtype='float64')
    return (values - values.mean()) / sigma


def outlier_mask(z: pd.Series, threshold: float) -> np.ndarray:
    return (z.abs() > threshold).fillna(False).to_numpy(dtype=bool)


class ZScoreOutliers(Command):
    """Flag or remove values more than ``threshold`` sample standard
    deviations from the mean.

    ``flag`` adds ``<col>_zscore`` and ``<col>_is_outlier``, ``filter``
    drops outliers and ``only`` keeps just the outliers.
    """
    command_name = 'zscore_outliers'
    category = 'outliers'
    description = 'Find values whose z-score exceeds a threshold.'
    command_default = [s('zscore_outliers'), 'salary', 3.0, 'flag']
    arg_choices = {'action': ('flag', 'filter', 'only')}

    @staticmethod
    def new_cols(col):
        return [f"{col}_zscore", f"{col}_is_outlier"]

    @staticmethod
    def transform(df, col: Col, threshold=3.0, action='flag'):
        z = zscores(df[col])
        is_outlier = outlier_mask(z, threshold)
        if action == 'filter':
            return df[~is_outlier]
        if action == 'only':
            return df[is_outlier]
        z_col, flag_col = ZScoreOutliers.new_cols(col)
        out = df.copy()
        out[z_col] = z.to_numpy()
        out[flag_col] = is_outlier
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, threshold=3.0, action='flag'):
        dialect = get_dialect(dialect)
        x = dialect.cast(dialect.quote(col), 'float')
        z = dialect.quote(Z_COL)
        stats = f"SELECT AVG({x}) AS mu, {dialect.stddev}({x}) AS sigma\nFROM {source}"
        inner = (f"SELECT s.*, ({dialect.cast('s.' + dialect.quote(col), 'float')} - st.mu) "
                 f"/ NULLIF(st.sigma, 0) AS {z}\n"
                 f"FROM {source} AS s\n"
                 f"CROSS JOIN {subquery(stats, 'st')}")
        outlier = f"ABS(scored.{z}) > {dialect.literal(float(threshold))}"
        if action == 'flag':
            z_col, flag_col = ZScoreOutliers.new_cols(col)
            cols = select_list(dialect, columns, prefix='scored',
                               extra=[(z_col, f"scored.{z}"), (flag_col, dialect.bool_expr(outlier))])
            where = ''
        else:
            cols = select_list(dialect, columns, prefix='scored')
            # a NULL z-score is never an outlier
            if action == 'filter':
                where = f"\nWHERE scored.{z} IS NULL OR NOT ({outlier})"
            else:
                where = f"\nWHERE {outlier}"
        return f"SELECT\n{INDENT}{cols}\nFROM {subquery(inner, 'scored')}{where}"

    @staticmethod
    def output_columns(columns, col, threshold=3.0, action='flag'):
        if action != 'flag':
            return list(columns)
        return output_with_extra(columns, ZScoreOutliers.new_cols(col))


OUTLIER_COMMANDS = [ZScoreOutliers]
