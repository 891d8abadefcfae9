"""Render the Markdown reference guide of SQL cleaning snippets.

Every snippet is produced by the command that implements the technique,
against the example tables in ``sqlclean.samples``, so the guide and
the pandas behaviour cannot drift apart.
"""
import logging
from typing import List

from sqlclean.commands import CATEGORIES, DEFAULT_COMMANDS, commands_by_category, s
from sqlclean.dialects import DIALECTS, UnsupportedFeatureError, get_dialect
from sqlclean.pipeline import CleaningPipeline
from sqlclean.samples import SAMPLE_TABLES, table_for_columns
from sqlclean.sql_util import CommandArgumentError, as_statement

log = logging.getLogger("sqlclean.guide")

CATEGORY_TITLES = {
    'duplicates': 'Duplicates',
    'nulls': 'NULL values',
    'standardize': 'Standardizing types and formats',
    'validation': 'Validation',
    'strings': 'Splitting strings',
    'outliers': 'Outliers',
    'windows': 'Window functions',
}

CATEGORY_INTROS = {
    'duplicates': (
        "Find keys that occur more than once, then keep one row per key. "
        "ROW_NUMBER() numbers the rows of each key so everything past the first can go."),
    'nulls': (
        "Count and locate missing values before deciding how to treat them: drop the row, "
        "fill a constant or an aggregate, or substitute a placeholder only for display."),
    'standardize': (
        "Bring values of one column to one type and one spelling. Casts that cannot "
        "convert a value produce NULL instead of failing the query."),
    'validation': (
        "Check values against a range, a set of allowed values, a uniqueness rule or a "
        "format. A check can flag rows, keep the good ones, or list the bad ones; the "
        "constraint form makes the database enforce it from then on. NULL passes range, "
        "allowed-value and format checks, as it does in a CHECK constraint."),
    'strings': (
        "Split a delimited value into one column per piece. Missing and empty pieces are NULL."),
    'outliers': (
        "A z-score is how many sample standard deviations a value lies from the mean. "
        "Values beyond a threshold (3 by default) are flagged as outliers."),
    'windows': (
        "Window functions compute a value per row from related rows without collapsing "
        "them. NULLs sort last in ascending order and first in descending order."),
}

# chained example closing the guide
CTE_EXAMPLE = [
    [s('trim'), 'name'],
    [s('change_case'), 'country', 'upper'],
    [s('fill_constant'), 'phone', 'unknown'],
    [s('drop_duplicates'), ['email'], 'first', [['signup_date', 'desc']]],
]
CTE_SOURCE = 'your_table_name'


def _fence(dialect, sql: str) -> List[str]:
    return [f"```sql {dialect.name}", as_statement(sql), "```", ""]


def _unavailable(dialect, error) -> List[str]:
    return [f"> Not available in {dialect.label}: {error}.", ""]


def command_section(kls, dialect) -> List[str]:
    lines = [f"### {kls.command_name}", "", kls.description, ""]
    if kls.__doc__:
        lines += [" ".join(kls.__doc__.split()), ""]

    bound = kls.bind_args(kls.command_default[1:])
    referenced = kls.referenced_columns(bound)
    table = table_for_columns(referenced) if referenced else CTE_SOURCE
    columns = list(SAMPLE_TABLES[table]().columns)
    try:
        lines += _fence(dialect, kls.transform_to_sql(dialect, table, columns, *bound))
    except (UnsupportedFeatureError, CommandArgumentError) as e:
        log.debug("%s not rendered for %s: %s", kls.command_name, dialect.name, e)
        lines += _unavailable(dialect, e)

    try:
        statement = kls.statement_sql(dialect, table, columns, *bound)
    except NotImplementedError:
        return lines
    except (UnsupportedFeatureError, CommandArgumentError) as e:
        return lines + ["In place:", ""] + _unavailable(dialect, e)
    return lines + ["In place:", ""] + _fence(dialect, statement)


def cte_section(dialect) -> List[str]:
    pipeline = CleaningPipeline(CTE_EXAMPLE)
    columns = list(SAMPLE_TABLES[CTE_SOURCE]().columns)
    lines = [
        "## Chaining steps in a CTE", "",
        "Each step reads the one before it, so a whole cleaning pass is one query.", "",
    ]
    return lines + _fence(dialect, pipeline.to_sql(columns, source=CTE_SOURCE, dialect=dialect))


def render_guide(dialect='tsql', command_klasses=None) -> str:
    """The full guide as Markdown, with every snippet rendered for ``dialect``."""
    dialect = get_dialect(dialect)
    others = ", ".join(d.label for d in DIALECTS.values() if d.name != dialect.name)
    lines = [
        f"# Cleaning data with SQL ({dialect.label})", "",
        "Copy-ready queries for common cleaning tasks. The examples use three tables: "
        + ", ".join(f"`{name}`" for name in SAMPLE_TABLES) + ". "
        f"The same guide can be rendered for {others}.", "",
    ]
    grouped = commands_by_category(command_klasses or DEFAULT_COMMANDS)
    for category in CATEGORIES:
        if not grouped[category]:
            continue
        lines += [f"## {CATEGORY_TITLES[category]}", "", CATEGORY_INTROS[category], ""]
        for kls in grouped[category]:
            lines += command_section(kls, dialect)
    lines += cte_section(dialect)
    return "\n".join(lines).rstrip() + "\n"
