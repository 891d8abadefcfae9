from sqlclean.commands.base import (  # noqa: F401
    Col, Cols, Command, NoOp, OrderBy, UnknownCommandError, configure_cleaning, s,
)
from sqlclean.commands.duplicates import DUPLICATE_COMMANDS
from sqlclean.commands.nulls import NULL_COMMANDS
from sqlclean.commands.outliers import OUTLIER_COMMANDS
from sqlclean.commands.standardize import STANDARDIZE_COMMANDS
from sqlclean.commands.strings import STRING_COMMANDS
from sqlclean.commands.validation import VALIDATION_COMMANDS
from sqlclean.commands.windows import WINDOW_COMMANDS

# guide order
CATEGORIES = ['duplicates', 'nulls', 'standardize', 'validation', 'strings', 'outliers', 'windows']

DEFAULT_COMMANDS = (
    DUPLICATE_COMMANDS + NULL_COMMANDS + STANDARDIZE_COMMANDS + VALIDATION_COMMANDS
    + STRING_COMMANDS + OUTLIER_COMMANDS + WINDOW_COMMANDS + [NoOp]
)


def commands_by_category(command_klasses=None):
    grouped = {cat: [] for cat in CATEGORIES}
    for kls in command_klasses or DEFAULT_COMMANDS:
        if kls.category in grouped:
            grouped[kls.category].append(kls)
    return grouped
