import numpy as np
import pandas as pd
import pytest

from sqlclean.commands import s
from sqlclean.commands.outliers import ZScoreOutliers, outlier_mask, zscores


def test_zscores_sample_stddev():
    ser = pd.Series([1.0, 2.0, 3.0])
    assert zscores(ser).tolist() == pytest.approx([-1.0, 0.0, 1.0])


def test_zscores_constant_column():
    z = zscores(pd.Series([5, 5, 5]))
    assert z.isna().all()
    assert not outlier_mask(z, 3.0).any()


def test_zscores_single_value():
    assert zscores(pd.Series([7.0])).isna().all()


def test_null_never_outlier():
    z = zscores(pd.Series([1.0, None, 3.0]))
    assert outlier_mask(z, 0.5).tolist() == [True, False, True]


# ============================================================================
# zscore_outliers command
# ============================================================================

class TestZScoreOutliers:
    @pytest.mark.parametrize('action', ['flag', 'filter', 'only'])
    def test_matches_duckdb(self, salaries, same, action):
        same(ZScoreOutliers, [[s('zscore_outliers'), 'salary', 3.0, action]], salaries,
             table='employee_salaries', sort_by=['employee_id'])

    def test_flags_the_big_salary(self, salaries):
        out = ZScoreOutliers.transform(salaries, 'salary')
        assert out.loc[out['salary_is_outlier'], 'name'].tolist() == ['Ned']
        assert np.isnan(out['salary_zscore'].iloc[8])

    def test_only(self, salaries):
        out = ZScoreOutliers.transform(salaries, 'salary', 3.0, 'only')
        assert out['employee_id'].tolist() == [14]

    def test_filter_keeps_nulls(self, salaries):
        out = ZScoreOutliers.transform(salaries, 'salary', 3.0, 'filter')
        assert len(out) == 13
        assert out['salary'].isna().sum() == 1

    def test_lower_threshold(self, salaries, same):
        same(ZScoreOutliers, [[s('zscore_outliers'), 'salary', 0.5, 'filter']], salaries,
             table='employee_salaries', sort_by=['employee_id'])

    def test_constant_column_matches_duckdb(self, same):
        df = pd.DataFrame({'id': [1, 2, 3], 'x': [4.0, 4.0, 4.0]})
        tdf = same(ZScoreOutliers, [[s('zscore_outliers'), 'x', 3.0, 'flag']], df, table='t', sort_by=['id'])
        assert not tdf['x_is_outlier'].any()

    def test_tsql_stdev(self):
        sql = ZScoreOutliers.transform_to_sql('tsql', 't', ['x'], 'x')
        assert 'STDEV(CAST([x] AS FLOAT)) AS sigma' in sql
        assert 'NULLIF(st.sigma, 0)' in sql
        assert 'CASE WHEN ABS(scored.[sqlclean_z]) > 3.0 THEN 1 ELSE 0 END AS [x_is_outlier]' in sql

    def test_postgres_filter(self):
        sql = ZScoreOutliers.transform_to_sql('postgres', 't', ['x'], 'x', 2.5, 'filter')
        assert 'STDDEV_SAMP(CAST("x" AS DOUBLE PRECISION))' in sql
        assert sql.endswith('WHERE scored."sqlclean_z" IS NULL OR NOT (ABS(scored."sqlclean_z") > 2.5)')

    def test_output_columns(self):
        assert ZScoreOutliers.output_columns(['x'], 'x') == ['x', 'x_zscore', 'x_is_outlier']
        assert ZScoreOutliers.output_columns(['x'], 'x', 3.0, 'only') == ['x']
