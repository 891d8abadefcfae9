import datetime

import pytest
import sqlglot

from sqlclean.dialects import (
    DIALECTS, UnknownDialectError, UnsupportedFeatureError, get_dialect,
)


# ============================================================================
# Resolving dialects
# ============================================================================

def test_get_dialect_names():
    assert set(DIALECTS) == {'tsql', 'postgres', 'mysql', 'duckdb'}
    for name, d in DIALECTS.items():
        assert get_dialect(name) is d


@pytest.mark.parametrize('alias, name', [
    ('sqlserver', 'tsql'), ('MSSQL', 'tsql'), ('T-SQL', 'tsql'),
    ('postgresql', 'postgres'), ('pg', 'postgres'), (' MySQL ', 'mysql'),
])
def test_get_dialect_aliases(alias, name):
    assert get_dialect(alias).name == name


def test_get_dialect_passes_dialect_through():
    d = DIALECTS['mysql']
    assert get_dialect(d) is d


def test_unknown_dialect():
    with pytest.raises(UnknownDialectError, match='oracle'):
        get_dialect('oracle')


# ============================================================================
# Quoting and literals
# ============================================================================

class TestQuote:
    def test_quote_styles(self):
        assert get_dialect('tsql').quote('first name') == '[first name]'
        assert get_dialect('postgres').quote('first name') == '"first name"'
        assert get_dialect('mysql').quote('first name') == '`first name`'
        assert get_dialect('duckdb').quote('first name') == '"first name"'

    def test_quote_escapes_closer(self):
        assert get_dialect('tsql').quote('a]b') == '[a]]b]'
        assert get_dialect('postgres').quote('a"b') == '"a""b"'
        assert get_dialect('mysql').quote('a`b') == '`a``b`'

    def test_quote_non_string(self):
        assert get_dialect('postgres').quote(3) == '"3"'

    @pytest.mark.parametrize('name', sorted(DIALECTS))
    def test_reads_back(self, name):
        d = get_dialect(name)
        odd = 'odd ]`" name'
        value = "it's a\\b"
        sql = f"SELECT {d.quote(odd)}, {d.literal(value)} FROM t"
        column, text = sqlglot.parse_one(sql, read=d.sqlglot_dialect).expressions
        assert column.name == odd
        assert text.this == value


class TestLiteral:
    def test_strings(self):
        assert get_dialect('postgres').literal("O'Brien") == "'O''Brien'"
        assert get_dialect('tsql').literal("O'Brien") == "'O''Brien'"

    def test_mysql_backslash(self):
        assert get_dialect('mysql').literal('a\\b') == "'a\\\\b'"
        assert get_dialect('postgres').literal('a\\b') == "'a\\b'"

    def test_null_and_nan(self):
        d = get_dialect('postgres')
        assert d.literal(None) == 'NULL'
        assert d.literal(float('nan')) == 'NULL'

    def test_booleans(self):
        assert get_dialect('postgres').literal(True) == 'TRUE'
        assert get_dialect('postgres').literal(False) == 'FALSE'
        assert get_dialect('tsql').literal(True) == '1'
        assert get_dialect('tsql').literal(False) == '0'

    def test_numbers(self):
        d = get_dialect('duckdb')
        assert d.literal(3) == '3'
        assert d.literal(2.5) == '2.5'
        assert d.literal(3.0) == '3.0'

    def test_dates(self):
        d = get_dialect('postgres')
        assert d.literal(datetime.date(2024, 1, 2)) == "'2024-01-02'"


# ============================================================================
# Types and casts
# ============================================================================

def test_cast_type_names():
    assert get_dialect('tsql').cast('x', 'string') == 'CAST(x AS NVARCHAR(MAX))'
    assert get_dialect('postgres').cast('x', 'float') == 'CAST(x AS DOUBLE PRECISION)'
    assert get_dialect('mysql').cast('x', 'int') == 'CAST(x AS SIGNED)'
    assert get_dialect('duckdb').cast('x', 'bool') == 'CAST(x AS BOOLEAN)'


def test_cast_unknown_type():
    with pytest.raises(ValueError, match='Unknown column type'):
        get_dialect('postgres').cast('x', 'blob')


def test_try_casts():
    assert get_dialect('tsql').try_float('x') == 'TRY_CAST(x AS FLOAT)'
    assert get_dialect('duckdb').try_date('x') == 'TRY_CAST(x AS DATE)'
    assert get_dialect('mysql').try_date('x') == "STR_TO_DATE(x, '%Y-%m-%d')"
    pg = get_dialect('postgres').try_float('x')
    assert pg.startswith('CASE WHEN CAST(x AS TEXT) ~ ')
    assert 'CAST(CAST(x AS TEXT) AS DOUBLE PRECISION)' in pg


# ============================================================================
# Ordering
# ============================================================================

class TestOrderTerm:
    def test_nulls_keywords(self):
        d = get_dialect('postgres')
        assert d.order_term('"a"', False) == '"a" ASC NULLS LAST'
        assert d.order_term('"a"', True) == '"a" DESC NULLS FIRST'

    def test_case_sort_key(self):
        d = get_dialect('tsql')
        assert d.order_term('[a]', False) == 'CASE WHEN [a] IS NULL THEN 1 ELSE 0 END, [a] ASC'
        assert d.order_term('[a]', True) == 'CASE WHEN [a] IS NULL THEN 0 ELSE 1 END, [a] DESC'
        assert get_dialect('mysql').order_term('`a`', False).startswith('CASE WHEN `a` IS NULL')

    def test_default_window_order(self):
        assert get_dialect('tsql').default_window_order() == 'ORDER BY (SELECT NULL)'
        assert get_dialect('postgres').default_window_order() is None


# ============================================================================
# Dialect-specific functions
# ============================================================================

class TestFeatures:
    def test_median(self):
        assert 'PERCENTILE_CONT(0.5)' in get_dialect('postgres').median_scalar('"x"', 't')
        assert 'OVER ()' in get_dialect('tsql').median_scalar('[x]', 't')
        assert get_dialect('duckdb').median_scalar('"x"', 't') == '(SELECT MEDIAN("x") FROM t)'
        with pytest.raises(UnsupportedFeatureError) as excinfo:
            get_dialect('mysql').median_scalar('`x`', 't')
        assert excinfo.value.dialect_name == 'mysql'
        assert excinfo.value.feature == 'median'

    def test_regex(self):
        assert get_dialect('postgres').regex_match('x', "'a'") == "x ~ 'a'"
        assert get_dialect('mysql').regex_match('x', "'a'") == "x REGEXP 'a'"
        assert get_dialect('duckdb').regex_match('x', "'a'") == "regexp_matches(x, 'a')"
        with pytest.raises(UnsupportedFeatureError):
            get_dialect('tsql').regex_match('x', "'a'")

    def test_initcap_postgres_only(self):
        assert get_dialect('postgres').initcap('x') == 'INITCAP(x)'
        for name in ('tsql', 'mysql', 'duckdb'):
            with pytest.raises(UnsupportedFeatureError):
                get_dialect(name).initcap('x')

    def test_top_one(self):
        assert get_dialect('tsql').select_top_one('a', 'FROM t') == 'SELECT TOP 1 a FROM t'
        assert get_dialect('postgres').select_top_one('a', 'FROM t') == 'SELECT a FROM t LIMIT 1'

    def test_split_part(self):
        assert get_dialect('postgres').split_part('x', ',', 2) == "SPLIT_PART(x, ',', 2)"
        tsql = get_dialect('tsql').split_part('x', ',', 2)
        assert "STRING_SPLIT(x, ',', 1)" in tsql and 'ordinal = 2' in tsql
        assert 'SUBSTRING_INDEX' in get_dialect('mysql').split_part('x', ',', 2)
        with pytest.raises(UnsupportedFeatureError):
            get_dialect('tsql').split_part('x', ', ', 1)

    def test_format_date(self):
        assert get_dialect('postgres').format_date('d', '%Y-%m-%d') == "TO_CHAR(d, 'YYYY-MM-DD')"
        assert get_dialect('tsql').format_date('d', '%d/%m/%Y') == "FORMAT(d, 'dd/MM/yyyy')"
        assert get_dialect('mysql').format_date('d', '%H:%M') == "DATE_FORMAT(d, '%H:%i')"
        assert get_dialect('duckdb').format_date('d', '%Y') == "STRFTIME(d, '%Y')"

    def test_format_date_unknown_token(self):
        with pytest.raises(UnsupportedFeatureError, match='%b'):
            get_dialect('postgres').format_date('d', '%d %b %Y')

    def test_require(self):
        get_dialect('postgres').require('alter_constraint')
        with pytest.raises(UnsupportedFeatureError):
            get_dialect('duckdb').require('alter_constraint')

    def test_bool_expr(self):
        assert get_dialect('tsql').bool_expr('a = 1') == 'CASE WHEN a = 1 THEN 1 ELSE 0 END'
        assert get_dialect('postgres').bool_expr('a = 1') == 'CASE WHEN a = 1 THEN TRUE ELSE FALSE END'
