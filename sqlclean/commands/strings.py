"""String splitting."""
import pandas as pd

from sqlclean.commands.base import Col, Command, s
from sqlclean.dialects import get_dialect
from sqlclean.sql_util import CommandArgumentError, as_list, output_with_extra, select


def split_targets(col, parts, into):
    names = as_list(into)
    if not names:
        return [f"{col}_{i}" for i in range(1, parts + 1)]
    if len(names) != parts:
        raise CommandArgumentError(
            f"split_column: into names {len(names)} columns but parts is {parts}")
    return names


class SplitColumn(Command):
    """Split a delimited text column into one column per piece.

    Piece ``i`` lands in ``<col>_i`` unless ``into`` names the columns.
    Pieces past the end of the value and empty pieces are NULL.
    """
    command_name = 'split_column'
    category = 'strings'
    description = 'Split a delimited string into separate columns.'
    command_default = [s('split_column'), 'full_name', ' ', 2, ['first_name', 'last_name']]

    @staticmethod
    def _check(delimiter, parts):
        if not delimiter:
            raise CommandArgumentError("split_column: delimiter must not be empty")
        if int(parts) < 1:
            raise CommandArgumentError(f"split_column: parts must be at least 1, got {parts}")

    @staticmethod
    def transform(df, col: Col, delimiter=',', parts=2, into=None):
        SplitColumn._check(delimiter, parts)
        targets = split_targets(col, parts, into)
        pieces = df[col].astype('string').str.split(delimiter, regex=False, expand=True)
        out = df.copy()
        for i, name in enumerate(targets):
            if i in pieces.columns:
                piece = pieces[i].astype('string')
            else:
                piece = pd.Series(pd.NA, index=df.index, dtype='string')
            out[name] = piece.mask((piece == '').fillna(False))
        return out

    @staticmethod
    def transform_to_sql(dialect, source, columns, col, delimiter=',', parts=2, into=None):
        SplitColumn._check(delimiter, parts)
        dialect = get_dialect(dialect)
        text = dialect.cast(dialect.quote(col), 'string')
        extra = []
        for i, name in enumerate(split_targets(col, parts, into), start=1):
            extra.append((name, f"NULLIF({dialect.split_part(text, delimiter, i)}, '')"))
        return select(dialect, columns, source, extra=extra)

    @staticmethod
    def output_columns(columns, col, delimiter=',', parts=2, into=None):
        return output_with_extra(columns, split_targets(col, parts, into))


STRING_COMMANDS = [SplitColumn]
