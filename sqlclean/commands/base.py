"""Core types for cleaning commands.

A Command bundles one cleaning technique three ways: a pandas
``transform``, a ``transform_to_sql`` that renders the equivalent SELECT,
and optionally a ``statement_sql`` for the DDL/DML form of the technique.

The transform signature IS the argument contract:
  - parameters after ``df`` are the operation arguments, in order
  - annotations with a marker type (Col, Cols, OrderBy) name the
    arguments that reference columns
  - parameter defaults are the operation defaults

Operations are lists: ``[s('fill_constant'), 'age', 0]``.
"""
import inspect
import logging
from typing import Dict, List, Sequence, Tuple, get_type_hints

from sqlclean.df_util import check_and_fix_df, check_columns
from sqlclean.dialects import get_dialect
from sqlclean.sql_util import CommandArgumentError, as_list, chain_ctes, normalize_order, select

log = logging.getLogger("sqlclean.commands")


class UnknownCommandError(KeyError):
    def __str__(self):
        return self.args[0]


# ---------------------------------------------------------------------------
# Marker types for column-referencing arguments
# ---------------------------------------------------------------------------

class Col:
    """Marker type: argument names one column."""
    pass


class Cols:
    """Marker type: argument names a column or a list of columns (None = all)."""
    pass


class OrderBy:
    """Marker type: argument is an order_by list (names or (name, dir) pairs)."""
    pass


COLUMN_MARKER_TYPES = (Col, Cols, OrderBy)


def s(symbol: str) -> Dict[str, str]:
    return {'symbol': symbol}


def _marker_args(func) -> Dict[str, type]:
    try:
        hints = get_type_hints(func)
    except Exception:
        hints = {}
    return {name: tp for name, tp in hints.items() if tp in COLUMN_MARKER_TYPES}


class Command(object):
    command_name: str = ''
    category: str = ''
    # one-line summary, used by the reference guide
    description: str = ''
    # example operation used by the guide and the CLI help
    command_default: List = []
    # allowed values for string arguments, by parameter name
    arg_choices: Dict[str, Tuple] = {}

    @staticmethod
    def transform(df, *args):
        return df

    @staticmethod
    def transform_to_sql(dialect, source, columns, *args):
        raise NotImplementedError

    @staticmethod
    def output_columns(columns, *args):
        return list(columns)

    @staticmethod
    def statement_sql(dialect, table, columns, *args):
        raise NotImplementedError

    # ------------------------------------------------------------------
    # argument handling
    # ------------------------------------------------------------------

    @classmethod
    def arg_names(cls) -> List[str]:
        params = list(inspect.signature(cls.transform).parameters)
        return params[1:]

    @classmethod
    def bind_args(cls, args: Sequence) -> List:
        """Fill defaults and validate choices; returns the full positional list."""
        sig = inspect.signature(cls.transform)
        try:
            bound = sig.bind(None, *args)
        except TypeError as e:
            raise CommandArgumentError(f"{cls.command_name}: {e}") from e
        bound.apply_defaults()
        values = list(bound.arguments.values())[1:]
        for name, value in zip(cls.arg_names(), values):
            choices = cls.arg_choices.get(name)
            if choices and value not in choices:
                raise CommandArgumentError(
                    f"{cls.command_name}: {name} must be one of {list(choices)}, got {value!r}")
        return values

    @classmethod
    def referenced_columns(cls, bound_args: Sequence) -> List:
        markers = _marker_args(cls.transform)
        cols = []
        for name, value in zip(cls.arg_names(), bound_args):
            marker = markers.get(name)
            if marker is None or value is None:
                continue
            if marker is OrderBy:
                cols.extend(col for col, _ in normalize_order(value))
            else:
                cols.extend(as_list(value))
        return cols


def split_operation(op) -> Tuple[str, List]:
    if not op or not isinstance(op[0], dict) or 'symbol' not in op[0]:
        raise CommandArgumentError(f"Operation must start with a symbol, got {op!r}")
    return op[0]['symbol'], list(op[1:])


def configure_cleaning(command_klasses):
    """Build the lookup tables and transform functions for a set of commands.

    Returns (command_defaults, command_patterns, transform_df, transform_to_sql).
    """
    registry: Dict[str, type] = {}
    command_defaults: Dict[str, List] = {}
    command_patterns: Dict[str, List] = {}
    for kls in command_klasses:
        registry[kls.command_name] = kls
        command_defaults[kls.command_name] = kls.command_default
        command_patterns[kls.command_name] = kls.arg_names()

    def lookup(symbol):
        if symbol not in registry:
            raise UnknownCommandError(
                f"Unknown command {symbol!r}, known commands are {sorted(registry)}")
        return registry[symbol]

    def transform_df(operations, df):
        df = check_and_fix_df(df)
        for op in operations:
            symbol, args = split_operation(op)
            kls = lookup(symbol)
            bound = kls.bind_args(args)
            check_columns(df.columns, kls.referenced_columns(bound))
            before = len(df)
            df = kls.transform(df, *bound)
            log.debug("%s rows %d -> %d", symbol, before, len(df))
        return df

    def transform_to_sql(operations, columns, source='your_table_name', dialect='postgres'):
        dialect = get_dialect(dialect)
        columns = list(columns)
        steps = []
        prev = source
        for i, op in enumerate(operations, start=1):
            symbol, args = split_operation(op)
            kls = lookup(symbol)
            bound = kls.bind_args(args)
            check_columns(columns, kls.referenced_columns(bound))
            steps.append(kls.transform_to_sql(dialect, prev, columns, *bound))
            columns = kls.output_columns(columns, *bound)
            prev = f"step_{i}"
        return chain_ctes(steps, source)

    return command_defaults, command_patterns, transform_df, transform_to_sql


class NoOp(Command):
    command_name = 'noop'
    description = 'Pass rows through unchanged.'
    command_default = [s('noop')]

    @staticmethod
    def transform(df):
        return df

    @staticmethod
    def transform_to_sql(dialect, source, columns):
        return select(get_dialect(dialect), columns, source)
