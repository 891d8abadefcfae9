import pytest

from sqlclean.dialects import get_dialect
from sqlclean.sql_util import (
    CommandArgumentError, as_list, as_statement, chain_ctes, identifier_slug, normalize_order,
    order_clause, over_clause, select, select_list,
)

PG = get_dialect('postgres')
TSQL = get_dialect('tsql')


def test_as_list():
    assert as_list(None) == []
    assert as_list('a') == ['a']
    assert as_list(('a', 'b')) == ['a', 'b']


# ============================================================================
# normalize_order
# ============================================================================

class TestNormalizeOrder:
    def test_single_name(self):
        assert normalize_order('a') == [('a', False)]

    def test_names(self):
        assert normalize_order(['a', 'b']) == [('a', False), ('b', False)]

    def test_pairs(self):
        assert normalize_order([('a', 'desc'), ['b', 'ASC']]) == [('a', True), ('b', False)]

    def test_bare_pair(self):
        assert normalize_order(['a', 'desc']) == [('a', True)]

    def test_two_names_not_a_pair(self):
        assert normalize_order(['a', 'b']) == [('a', False), ('b', False)]

    def test_none(self):
        assert normalize_order(None) == []

    def test_bad_direction(self):
        with pytest.raises(CommandArgumentError, match='asc'):
            normalize_order([['a', 'sideways']])


# ============================================================================
# select lists and clauses
# ============================================================================

def test_select_list_replace_and_extra():
    out = select_list(PG, ['a', 'b'], replace={'a': 'TRIM("a")'}, extra=[('c', '1'), ('b', '2')])
    assert out == 'TRIM("a") AS "a",\n    2 AS "b",\n    1 AS "c"'


def test_select_list_prefix():
    assert select_list(TSQL, ['a', 'b'], prefix='t') == 't.[a],\n    t.[b]'


def test_select_with_where():
    assert select(PG, ['a'], 'src', where='"a" IS NULL') == 'SELECT\n    "a"\nFROM src\nWHERE "a" IS NULL'


def test_order_clause_reverse():
    assert order_clause(PG, [('a', 'desc')]) == 'ORDER BY "a" DESC NULLS FIRST'
    assert order_clause(PG, [('a', 'desc')], reverse=True) == 'ORDER BY "a" ASC NULLS LAST'


class TestOverClause:
    def test_partition_and_order(self):
        assert (over_clause(PG, partition_by='g', order_by='a')
                == 'OVER (PARTITION BY "g" ORDER BY "a" ASC NULLS LAST)')

    def test_frame(self):
        out = over_clause(PG, order_by='a', frame='ROWS BETWEEN 2 PRECEDING AND CURRENT ROW')
        assert out.endswith('ROWS BETWEEN 2 PRECEDING AND CURRENT ROW)')

    def test_default_order(self):
        assert over_clause(TSQL, partition_by='g', default_order=True) == \
            'OVER (PARTITION BY [g] ORDER BY (SELECT NULL))'
        assert over_clause(PG, partition_by='g', default_order=True) == 'OVER (PARTITION BY "g")'

    def test_empty(self):
        assert over_clause(PG) == 'OVER ()'


# ============================================================================
# CTE chain and statements
# ============================================================================

def test_chain_ctes():
    sql = chain_ctes(['SELECT * FROM t', 'SELECT * FROM step_1'], 't')
    assert sql == ('WITH step_1 AS (\n    SELECT * FROM t\n),\n'
                   'step_2 AS (\n    SELECT * FROM step_1\n)\n'
                   'SELECT * FROM step_2;')


def test_chain_ctes_no_steps():
    assert chain_ctes([], 't') == 'SELECT * FROM t;'


def test_as_statement():
    assert as_statement('SELECT 1') == 'SELECT 1;'
    assert as_statement('SELECT 1;\n') == 'SELECT 1;'


def test_identifier_slug():
    assert identifier_slug('dbo.People', 'Signup Date') == 'dbo_people_signup_date'
