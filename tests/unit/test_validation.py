import pandas as pd
import pytest

from sqlclean.commands import s
from sqlclean.commands.validation import (
    EMAIL_LIKE, EMAIL_REGEX, EnumCheck, PatternCheck, RangeCheck, UniqueCheck, like_to_regex,
)
from sqlclean.dialects import UnsupportedFeatureError
from sqlclean.sql_util import CommandArgumentError


# ============================================================================
# range_check
# ============================================================================

class TestRangeCheck:
    @pytest.mark.parametrize('action', ['flag', 'filter', 'invalid'])
    def test_matches_duckdb(self, people, same, action):
        same(RangeCheck, [[s('range_check'), 'age', 0, 120, action]], people, sort_by=['id'])

    def test_flag_values(self, people):
        out = RangeCheck.transform(people, 'age', 0, 120)
        # -1 and 130 fail, NULL passes
        assert out['age_valid'].tolist() == [True, True, True, False, True, True, False, True]

    def test_invalid_rows(self, people):
        out = RangeCheck.transform(people, 'age', 0, 120, 'invalid')
        assert out['id'].tolist() == [4, 7]

    def test_one_sided(self, people, same):
        tdf = same(RangeCheck, [[s('range_check'), 'age', None, 100, 'filter']], people, sort_by=['id'])
        assert 7 not in tdf['id'].tolist()
        assert 4 in tdf['id'].tolist()

    def test_needs_a_bound(self, people):
        with pytest.raises(CommandArgumentError, match='low and high'):
            RangeCheck.transform(people, 'age')

    def test_tsql_flag_is_bit(self):
        sql = RangeCheck.transform_to_sql('tsql', 't', ['age'], 'age', 0, 120)
        assert ('CASE WHEN ([age] IS NULL OR ([age] >= 0 AND [age] <= 120)) THEN 1 ELSE 0 END '
                'AS [age_valid]') in sql

    def test_constraint(self):
        stmt = RangeCheck.statement_sql('postgres', 'employee_salaries', ['salary'], 'salary', 0, None)
        assert stmt == ('ALTER TABLE employee_salaries\n'
                        'ADD CONSTRAINT "chk_employee_salaries_salary_range" CHECK ("salary" >= 0);')

    def test_constraint_not_in_duckdb(self):
        with pytest.raises(UnsupportedFeatureError):
            RangeCheck.statement_sql('duckdb', 't', ['age'], 'age', 0, 120)


# ============================================================================
# enum_check
# ============================================================================

class TestEnumCheck:
    @pytest.mark.parametrize('action', ['flag', 'filter', 'invalid'])
    def test_matches_duckdb(self, people, same, action):
        same(EnumCheck, [[s('enum_check'), 'status', ['active', 'inactive'], action]], people,
             sort_by=['id'])

    def test_invalid_rows(self, people):
        out = EnumCheck.transform(people, 'status', ['active', 'inactive'], 'invalid')
        assert out['id'].tolist() == [4]

    def test_needs_values(self, people):
        with pytest.raises(CommandArgumentError):
            EnumCheck.transform(people, 'status', [])

    def test_constraint(self):
        stmt = EnumCheck.statement_sql('mysql', 't', ['status'], 'status', ['a', 'b'])
        assert stmt == "ALTER TABLE t\nADD CONSTRAINT `chk_t_status_enum` CHECK (`status` IN ('a', 'b'));"


# ============================================================================
# unique_check
# ============================================================================

class TestUniqueCheck:
    @pytest.mark.parametrize('action', ['flag', 'filter', 'invalid'])
    def test_matches_duckdb(self, people, same, action):
        same(UniqueCheck, [[s('unique_check'), ['email'], action]], people, sort_by=['id'])

    def test_every_copy_fails(self, people):
        out = UniqueCheck.transform(people, ['email'], 'invalid')
        assert out['id'].tolist() == [1, 5]

    def test_compound_key(self):
        df = pd.DataFrame({'a': [1, 1, 2], 'b': ['x', 'y', 'x']})
        out = UniqueCheck.transform(df, ['a', 'b'])
        assert out['a_b_unique'].tolist() == [True, True, True]

    def test_flag_sql(self):
        sql = UniqueCheck.transform_to_sql('postgres', 't', ['a'], ['a'])
        assert ('CASE WHEN COUNT(*) OVER (PARTITION BY "a") = 1 THEN TRUE ELSE FALSE END '
                'AS "a_unique"') in sql

    def test_constraint(self):
        stmt = UniqueCheck.statement_sql('tsql', 'dbo.people', ['a', 'b'], ['a', 'b'])
        assert stmt == 'ALTER TABLE dbo.people\nADD CONSTRAINT [uq_dbo_people_a_b] UNIQUE ([a], [b]);'


# ============================================================================
# pattern_check
# ============================================================================

class TestPatternCheck:
    @pytest.mark.parametrize('action', ['flag', 'filter', 'invalid'])
    def test_regex_matches_duckdb(self, people, same, action):
        same(PatternCheck, [[s('pattern_check'), 'email', EMAIL_REGEX, 'regex', action]],
             people, sort_by=['id'])

    def test_like_matches_duckdb(self, people, same):
        tdf = same(PatternCheck, [[s('pattern_check'), 'email', EMAIL_LIKE, 'like', 'invalid']], people,
                   sort_by=['id'])
        assert tdf['id'].tolist() == [3]

    def test_email_regex(self, people):
        out = PatternCheck.transform(people, 'email')
        assert out['email_valid'].tolist() == [True, True, False, True, True, True, True, True]

    def test_like_to_regex(self):
        assert like_to_regex('a%b_') == '^a.*b.$'
        assert like_to_regex('1.5%') == r'^1\.5.*$'

    def test_tsql_needs_like(self):
        with pytest.raises(UnsupportedFeatureError):
            PatternCheck.transform_to_sql('tsql', 't', ['e'], 'e')
        sql = PatternCheck.transform_to_sql('tsql', 't', ['e'], 'e', EMAIL_LIKE, 'like', 'filter')
        assert sql.endswith("WHERE ([e] IS NULL OR [e] LIKE '%_@_%._%')")

    def test_constraint(self):
        stmt = PatternCheck.statement_sql('postgres', 't', ['e'], 'e')
        assert stmt.startswith('ALTER TABLE t\nADD CONSTRAINT "chk_t_e_format" CHECK (CAST("e" AS TEXT) ~ ')
