from sqlclean.commands import DEFAULT_COMMANDS, s  # noqa: F401
from sqlclean.dialects import get_dialect  # noqa: F401
from sqlclean.pipeline import CleaningPipeline, PolarsCleaningPipeline  # noqa: F401

__version__ = "0.4.0"
