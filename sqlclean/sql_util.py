"""Helpers for assembling SQL text.

Column lists, ORDER BY / PARTITION BY clauses and the CTE chain that
strings cleaning steps together.
"""
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlclean.dialects import Dialect

INDENT = '    '
ROW_NUMBER_COL = 'sqlclean_rn'


class CommandArgumentError(ValueError):
    """A cleaning command got arguments it cannot work with."""
    pass


def as_list(cols) -> List:
    """Normalize a column argument: None -> [], scalar -> [scalar]."""
    if cols is None:
        return []
    if isinstance(cols, (list, tuple)):
        return list(cols)
    return [cols]


def normalize_order(order_by) -> List[Tuple[str, bool]]:
    """Normalize an order_by argument into [(column, descending), ...].

    Accepts a column name, a list of names, ``(name, 'desc')`` pairs, or
    ``[name, 'asc']`` lists (the shape JSON round-trips pairs into).
    """
    if order_by is None:
        return []
    if isinstance(order_by, str):
        return [(order_by, False)]
    if (isinstance(order_by, (list, tuple)) and len(order_by) == 2
            and isinstance(order_by[1], str) and order_by[1].lower() in ('asc', 'desc')):
        order_by = [order_by]
    terms = []
    for term in order_by:
        if isinstance(term, str):
            terms.append((term, False))
            continue
        if isinstance(term, (list, tuple)) and len(term) == 2:
            col, direction = term
            direction = str(direction).lower()
            if direction not in ('asc', 'desc'):
                raise CommandArgumentError(f"Sort direction must be 'asc' or 'desc', got {term[1]!r}")
            terms.append((col, direction == 'desc'))
            continue
        raise CommandArgumentError(f"Cannot interpret order term {term!r}")
    return terms


def column_list(dialect: Dialect, columns: Iterable) -> str:
    return ", ".join(dialect.quote(c) for c in columns)


def select_list(dialect: Dialect, columns: Sequence, replace=None, extra=None, prefix=None) -> str:
    """Render a select list over ``columns``.

    ``replace`` maps a column to the expression that takes its place.
    ``extra`` is a list of (alias, expression) appended at the end; an
    alias naming an existing column replaces that column instead, which
    mirrors ``df[alias] = ...`` in pandas.
    """
    replace = dict(replace or {})
    appended = []
    for alias, expr in extra or []:
        if alias in columns:
            replace[alias] = expr
        else:
            appended.append((alias, expr))

    parts = []
    for col in columns:
        if col in replace:
            parts.append(f"{replace[col]} AS {dialect.quote(col)}")
        elif prefix:
            parts.append(f"{prefix}.{dialect.quote(col)}")
        else:
            parts.append(dialect.quote(col))
    for alias, expr in appended:
        parts.append(f"{expr} AS {dialect.quote(alias)}")
    return (",\n" + INDENT).join(parts)


def output_with_extra(columns: Sequence, new_columns: Iterable) -> List:
    out = list(columns)
    for col in new_columns:
        if col not in out:
            out.append(col)
    return out


def select(dialect: Dialect, columns, source: str, replace=None, extra=None, where=None) -> str:
    sql = f"SELECT\n{INDENT}{select_list(dialect, columns, replace, extra)}\nFROM {source}"
    if where:
        sql += f"\nWHERE {where}"
    return sql


def partition_clause(dialect: Dialect, partition_by) -> str:
    cols = as_list(partition_by)
    if not cols:
        return ''
    return f"PARTITION BY {column_list(dialect, cols)}"


def order_clause(dialect: Dialect, order_by, reverse: bool = False) -> str:
    terms = normalize_order(order_by)
    if not terms:
        return ''
    rendered = [dialect.order_term(dialect.quote(col), desc != reverse) for col, desc in terms]
    return "ORDER BY " + ", ".join(rendered)


def over_clause(dialect: Dialect, partition_by=None, order_by=None, frame: Optional[str] = None,
                reverse: bool = False, default_order: bool = False) -> str:
    parts = []
    partition = partition_clause(dialect, partition_by)
    if partition:
        parts.append(partition)
    order = order_clause(dialect, order_by, reverse=reverse)
    if not order and default_order:
        order = dialect.default_window_order()
    if order:
        parts.append(order)
    if frame:
        parts.append(frame)
    return "OVER (" + " ".join(parts) + ")"


def indent(text: str, level: int = 1) -> str:
    pad = INDENT * level
    return "\n".join(pad + line if line else line for line in text.splitlines())


def subquery(sql: str, alias: str) -> str:
    return f"(\n{indent(sql)}\n) AS {alias}"


def chain_ctes(steps: Sequence[str], source: str, step_prefix: str = 'step') -> str:
    """Chain SELECT bodies as successive CTEs.

    ``steps`` are bodies that already read from the previous step's name
    (``step_1`` reads ``source``, ``step_2`` reads ``step_1`` ...).
    """
    if not steps:
        return f"SELECT * FROM {source};"
    ctes = []
    for i, body in enumerate(steps, start=1):
        ctes.append(f"{step_prefix}_{i} AS (\n{indent(body)}\n)")
    return "WITH " + ",\n".join(ctes) + f"\nSELECT * FROM {step_prefix}_{len(steps)};"


def as_statement(sql: str) -> str:
    sql = sql.rstrip()
    return sql if sql.endswith(';') else sql + ';'


def identifier_slug(*names) -> str:
    """Lowercase word-characters-only name for constraints."""
    joined = "_".join(str(n) for n in names)
    return re.sub(r'\W+', '_', joined).strip('_').lower()
