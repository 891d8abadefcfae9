"""Per-key outcomes of running column checks.

The profiler fills an accumulator mapping each provided key to an ``Ok``
holding the value or an ``Err`` holding the exception. Configuration
problems never get this far: they raise DAGConfigError when the profiler
is built. When a check fails, every check reading one of its keys fails
too, with an UpstreamError that points back at the first failure.

``resolve_accumulator`` turns the accumulator into the plain summary
(``None`` where a key failed) plus one CheckError per failed check.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar, Union

import pandas as pd
import polars as pl

T = TypeVar('T')


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


class UpstreamError(Exception):
    """Raised in place of a check whose input ``failed_input`` is an Err."""

    def __init__(self, check_name: str, failed_input: str, original_error: Exception):
        self.check_name = check_name
        self.failed_input = failed_input
        self.original_error = original_error
        super().__init__(
            f"Cannot compute '{check_name}': input '{failed_input}' failed "
            f"({type(self.root_cause).__name__})")

    @property
    def root_cause(self) -> Exception:
        err = self.original_error
        while isinstance(err, UpstreamError):
            err = err.original_error
        return err


@dataclass(frozen=True)
class Err:
    error: Exception
    check_name: str
    column_name: str
    inputs: Dict[str, Any] = field(default_factory=dict)

    def downstream(self, check_name: str, failed_input: str) -> 'Err':
        """The Err recorded for a check that reads this failed key."""
        return Err(UpstreamError(check_name, failed_input, self.error), check_name, self.column_name)


CheckResult = Union[Ok, Err]


def _series_source(name: str, ser) -> Tuple[str, str]:
    """(import line, assignment) that rebuild a pandas or polars series."""
    if isinstance(ser, pl.Series):
        return "import polars as pl", f"{name} = pl.Series({ser.name!r}, {ser.to_list()!r}, dtype=pl.{ser.dtype})"
    return "import pandas as pd", f"{name} = pd.Series({ser.tolist()!r}, dtype='{ser.dtype}')"


@dataclass
class CheckError:
    """A check that failed on one column.

    ``key`` is the first key the check provides; ``keys`` lists all of
    them, since a TypedDict check fails as a whole.
    """
    column: str
    key: str
    error: Exception
    check_func: Any
    inputs: Dict[str, Any] = field(default_factory=dict)
    keys: Tuple[str, ...] = ()

    def __str__(self):
        return f"{self.column}.{self.key}: {type(self.error).__name__}: {self.error}"

    def reproduce_code(self) -> str:
        """Python that calls the check again with the inputs it failed on."""
        name = self.check_func.name
        imports: List[str] = []
        module = getattr(self.check_func.func, '__module__', None)
        if module:
            imports.append(f"from {module} import {name}")
        setup: List[str] = []
        args: List[str] = []
        for arg, value in self.inputs.items():
            if isinstance(value, (pd.Series, pl.Series)):
                imp, assign = _series_source(arg, value)
                if imp not in imports:
                    imports.append(imp)
                setup.append(assign)
                args.append(f"{arg}={arg}")
            elif isinstance(value, (pd.DataFrame, pl.DataFrame)):
                setup.append(f"{arg} = ...  # {type(value).__name__} with columns {list(value.columns)!r}")
                args.append(f"{arg}={arg}")
            else:
                args.append(f"{arg}={value!r}")
        call = f"{name}({', '.join(args)})  # raises {type(self.error).__name__}: {self.error}"
        header = f"# '{name}' failed on column '{self.column}'"
        return '\n'.join([header] + imports + setup + [call])


def resolve_accumulator(
    accumulator: Dict[str, CheckResult],
    column_name: str,
    key_to_func: Optional[Dict[str, Any]] = None,
) -> Tuple[Dict[str, Any], List[CheckError]]:
    """Plain values for the summary, and one CheckError per failed check."""
    key_to_func = key_to_func or {}
    plain = {key: result.value if isinstance(result, Ok) else None
             for key, result in accumulator.items()}

    failed: Dict[str, List[str]] = {}
    first_err: Dict[str, Err] = {}
    for key, result in accumulator.items():
        if isinstance(result, Err):
            failed.setdefault(result.check_name, []).append(key)
            first_err.setdefault(result.check_name, result)

    errors = []
    for check_name, keys in failed.items():
        err = first_err[check_name]
        errors.append(CheckError(column=column_name, key=keys[0], error=err.error,
                                 check_func=key_to_func.get(keys[0]), inputs=err.inputs,
                                 keys=tuple(keys)))
    return plain, errors
