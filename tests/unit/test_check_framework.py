"""Tests for the column check framework.

Tests for: check_func, check_result, check_dag, column_filters, profiler.
"""
import logging
from typing import TypedDict

import numpy as np
import pandas as pd
import polars as pl
import pytest

from sqlclean.profiling import (
    MISSING, CheckError, CheckFunc, CheckKey, DAGConfigError, Err, Ok, Profiler, RawSeries,
    UpstreamError, build_check_dag, build_column_dag, check, summary_to_frame,
)
from sqlclean.profiling.check_func import collect_check_funcs
from sqlclean.profiling.check_result import resolve_accumulator
from sqlclean.profiling.column_filters import (
    any_of, is_boolean, is_numeric, is_numeric_not_bool, is_string, is_temporal, not_,
)


# ============================================================================
# Test fixtures: checks
# ============================================================================

# The function name becomes the key in the DAG.

@check()
def length(ser: RawSeries) -> int:
    return len(ser)


@check()
def null_count(ser: RawSeries) -> int:
    return int(ser.isna().sum())


@check()
def distinct_count(ser: RawSeries) -> int:
    return int(ser.nunique())


@check()
def distinct_per(length: int, distinct_count: int) -> float:
    return distinct_count / length


@check(column_filter=is_numeric)
def mean_check(ser: RawSeries) -> float:
    return float(ser.mean())


@check(default=0.0)
def safe_ratio(length: int, null_count: int) -> float:
    return null_count / length


class EdgeStats(TypedDict):
    first: object
    last: object


@check()
def edge_stats(ser: RawSeries) -> EdgeStats:
    return {'first': ser.iloc[0], 'last': ser.iloc[-1]}


class Grouped:
    @staticmethod
    @check()
    def grp_length(ser: RawSeries) -> int:
        return len(ser)

    @staticmethod
    @check()
    def grp_null_count(ser: RawSeries) -> int:
        return int(ser.isna().sum())


# ============================================================================
# Tests: check_func
# ============================================================================

class TestCheckDecorator:
    def test_raw_series(self):
        cf = length._check_func
        assert cf.name == 'length'
        assert cf.requires[0].type is RawSeries
        assert cf.needs_raw is True
        assert cf.provides == [CheckKey('length', int)]

    def test_computed(self):
        cf = distinct_per._check_func
        assert cf.needs_raw is False
        assert {r.name for r in cf.requires} == {'length', 'distinct_count'}
        assert cf.provides[0].type is float

    def test_typed_dict_return(self):
        assert {p.name for p in edge_stats._check_func.provides} == {'first', 'last'}

    def test_column_filter_and_default(self):
        assert mean_check._check_func.column_filter is is_numeric
        assert safe_ratio._check_func.default == 0.0
        assert distinct_per._check_func.default is MISSING

    def test_key_repr_and_frozen(self):
        key = CheckKey('length', int)
        assert repr(key) == "CheckKey('length', int)"
        with pytest.raises(AttributeError):
            key.name = 'other'


class TestCollectCheckFuncs:
    def test_from_check_func(self):
        cf = length._check_func
        assert collect_check_funcs(cf) == [cf]

    def test_from_function(self):
        assert [f.name for f in collect_check_funcs(length)] == ['length']

    def test_from_class(self):
        assert {f.name for f in collect_check_funcs(Grouped)} == {'grp_length', 'grp_null_count'}

    def test_from_unknown(self):
        assert collect_check_funcs(42) == []


def test_missing_sentinel():
    assert not MISSING
    assert repr(MISSING) == '<MISSING>'


# ============================================================================
# Tests: check_result
# ============================================================================

class TestResults:
    def test_ok_frozen(self):
        with pytest.raises(AttributeError):
            Ok(1).value = 2

    def test_upstream_error(self):
        orig = ValueError('original')
        ue = UpstreamError('downstream', 'input_x', orig)
        assert 'downstream' in str(ue) and 'input_x' in str(ue)
        assert ue.original_error is orig

    def test_resolve_accumulator(self):
        acc = {'a': Ok(1), 'b': Err(ValueError('bad'), 'func', 'col1')}
        plain, errors = resolve_accumulator(acc, 'col1', {'b': length._check_func})
        assert plain == {'a': 1, 'b': None}
        assert errors[0].key == 'b'
        assert errors[0].check_func is length._check_func

    def test_reproduce_code_scalar(self):
        err = CheckError(column='col1', key='distinct_per', error=ZeroDivisionError('division by zero'),
                         check_func=distinct_per._check_func, inputs={'length': 0, 'distinct_count': 0})
        code = err.reproduce_code()
        assert 'distinct_per(length=0, distinct_count=0)' in code
        assert 'ZeroDivisionError' in code

    def test_reproduce_code_series(self):
        err = CheckError(column='col1', key='length', error=TypeError('test'),
                         check_func=length._check_func, inputs={'ser': pd.Series([1, 2])})
        code = err.reproduce_code()
        assert "ser = pd.Series([1, 2], dtype='int64')" in code

    def test_reproduce_code_polars_series(self):
        err = CheckError(column='col1', key='length', error=TypeError('test'),
                         check_func=length._check_func, inputs={'ser': pl.Series('col1', [1, None])})
        code = err.reproduce_code()
        assert "import polars as pl" in code
        assert "ser = pl.Series('col1', [1, None], dtype=pl.Int64)" in code
        assert code.splitlines()[-1].startswith('length(ser=ser)')

    def test_check_error_str(self):
        err = CheckError(column='col1', key='length', error=TypeError('test'), check_func=None)
        assert str(err) == 'col1.length: TypeError: test'

    def test_root_cause_through_chain(self):
        first = Err(ZeroDivisionError('division by zero'), 'distinct_per', 'col1')
        second = first.downstream('ratio_of_ratio', 'distinct_per').downstream('report', 'ratio_of_ratio')
        assert isinstance(second.error, UpstreamError)
        assert second.error.check_name == 'report'
        assert isinstance(second.error.root_cause, ZeroDivisionError)
        assert 'ZeroDivisionError' in str(second.error)

    def test_one_error_per_failed_check(self):
        bad = Err(KeyError('first'), 'edge_stats', 'col1')
        acc = {'length': Ok(2), 'first': bad, 'last': bad}
        plain, errors = resolve_accumulator(acc, 'col1', {'first': edge_stats._check_func})
        assert plain == {'length': 2, 'first': None, 'last': None}
        assert len(errors) == 1
        assert errors[0].keys == ('first', 'last')
        assert errors[0].check_func is edge_stats._check_func


# ============================================================================
# Tests: check_dag
# ============================================================================

class TestBuildCheckDag:
    def test_ordering(self):
        ordered = build_check_dag([distinct_per._check_func, length._check_func,
                                   distinct_count._check_func])
        names = [f.name for f in ordered]
        assert names.index('length') < names.index('distinct_per')
        assert names.index('distinct_count') < names.index('distinct_per')

    def test_missing_provider(self):
        with pytest.raises(DAGConfigError, match='distinct_count'):
            build_check_dag([length._check_func, distinct_per._check_func])

    def test_cycle(self):
        a = CheckFunc('a', lambda b: b, [CheckKey('b', int)], [CheckKey('a', int)], False)
        b = CheckFunc('b', lambda a: a, [CheckKey('a', int)], [CheckKey('b', int)], False)
        with pytest.raises(DAGConfigError, match='[Cc]ycle'):
            build_check_dag([a, b])

    def test_type_mismatch_logged(self, caplog):
        a = CheckFunc('a', lambda: 1.5, [], [CheckKey('x', float)], False)
        b = CheckFunc('b', lambda x: x, [CheckKey('x', int)], [CheckKey('y', int)], False)
        with caplog.at_level(logging.WARNING, logger='sqlclean.profiling.check_dag'):
            build_check_dag([a, b])
        assert "expects 'x' as int" in caplog.text

    def test_empty(self):
        assert build_check_dag([]) == []


class TestBuildColumnDag:
    def test_filters_by_dtype(self):
        funcs = [mean_check._check_func, length._check_func]
        assert len(build_column_dag(funcs, pd.Series([1]).dtype)) == 2
        assert [f.name for f in build_column_dag(funcs, pd.Series(['a']).dtype)] == ['length']

    def test_cascade_removal(self):
        ratio = CheckFunc('mean_ratio', lambda mean_check: mean_check,
                          [CheckKey('mean_check', float)], [CheckKey('mean_ratio', float)], False)
        funcs = [mean_check._check_func, ratio, length._check_func]
        assert [f.name for f in build_column_dag(funcs, pd.Series(['a']).dtype)] == ['length']


# ============================================================================
# Tests: column_filters
# ============================================================================

class TestColumnFilters:
    def test_pandas(self):
        assert is_numeric(pd.Series([1]).dtype)
        assert is_numeric(pd.Series([1], dtype='Float64').dtype)
        assert is_string(pd.Series(['a']).dtype)
        assert is_string(pd.Series(['a'], dtype='string').dtype)
        assert is_temporal(pd.Series(pd.to_datetime(['2024-01-01'])).dtype)
        assert is_boolean(pd.Series([True]).dtype)
        assert not is_numeric_not_bool(pd.Series([True]).dtype)

    def test_polars(self):
        assert is_numeric(pl.Int64)
        assert not is_numeric(pl.Utf8)
        assert is_string(pl.Utf8)
        assert is_temporal(pl.Date)
        assert is_boolean(pl.Boolean)
        assert not is_string(np.dtype('int64'))

    def test_combinators(self):
        num_or_str = any_of(is_numeric, is_string)
        assert num_or_str(pd.Series([1]).dtype)
        assert num_or_str(pd.Series(['a']).dtype)
        assert not num_or_str(pd.Series(pd.to_datetime(['2024-01-01'])).dtype)
        not_num = not_(is_numeric)
        assert not_num(pd.Series(['a']).dtype)
        assert not not_num(pd.Series([1]).dtype)
        assert num_or_str.__name__ == 'any_of(is_numeric, is_string)'


# ============================================================================
# Tests: Profiler
# ============================================================================

class TestProfiler:
    def test_process_column(self):
        profiler = Profiler([length, distinct_count, distinct_per])
        ser = pd.Series([1, 1, 2, 3])
        result, errors = profiler.process_column('x', ser.dtype, raw_series=ser)
        assert errors == []
        assert result == {'length': 4, 'distinct_count': 3, 'distinct_per': 0.75}

    def test_error_propagates_downstream(self):
        profiler = Profiler([length, distinct_count, distinct_per])
        ser = pd.Series([], dtype='int64')
        result, errors = profiler.process_column('x', ser.dtype, raw_series=ser)
        assert result['distinct_per'] is None
        assert isinstance(errors[0].error, ZeroDivisionError)

    def test_default_on_error(self):
        profiler = Profiler([length, null_count, safe_ratio])
        ser = pd.Series([], dtype='float64')
        result, errors = profiler.process_column('x', ser.dtype, raw_series=ser)
        assert result['safe_ratio'] == 0.0
        assert errors == []

    def test_upstream_error(self):
        @check()
        def broken(ser: RawSeries) -> int:
            raise ValueError('nope')

        @check()
        def downstream(broken: int) -> int:
            return broken + 1

        profiler = Profiler([broken, downstream])
        ser = pd.Series([1])
        result, errors = profiler.process_column('x', ser.dtype, raw_series=ser)
        assert result == {'broken': None, 'downstream': None}
        by_key = {e.key: e.error for e in errors}
        assert isinstance(by_key['downstream'], UpstreamError)

    def test_bad_input(self):
        with pytest.raises(TypeError, match='Cannot convert'):
            Profiler([42])

    def test_config_error_up_front(self):
        with pytest.raises(DAGConfigError):
            Profiler([distinct_per])

    def test_process_df(self):
        df = pd.DataFrame({'a': [1, 2, 2], 'b': ['x', None, 'x']})
        summary, errors = Profiler([length, null_count, mean_check]).process_df(df)
        assert errors == []
        assert summary['a'] == {'length': 3, 'null_count': 0, 'mean_check': pytest.approx(5 / 3)}
        assert 'mean_check' not in summary['b']
        assert summary_to_frame(summary).loc['null_count', 'b'] == 1

    def test_process_polars(self):
        df = pl.DataFrame({'a': [1, 2, None]})
        summary, _ = Profiler([length]).process_df(df.lazy())
        assert summary == {'a': {'length': 3}}

    def test_empty_frame(self):
        assert Profiler([length]).process_df(pd.DataFrame({'a': []})) == ({}, [])

    def test_sampling(self):
        class SmallProfiler(Profiler):
            sample_when_greater = 10
            sample_rows = 4

        df = pd.DataFrame({'a': range(20)})
        summary, _ = SmallProfiler([length]).process_df(df)
        assert summary['a']['length'] == 4

    def test_explain(self):
        text = Profiler([length, null_count, safe_ratio]).explain('safe_ratio')
        assert 'Check: safe_ratio' in text
        assert 'default: 0.0' in text
        with pytest.raises(KeyError):
            Profiler([length]).explain('nothing')
