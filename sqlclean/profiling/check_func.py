"""Column checks: the @check decorator and its marker types.

A check is a plain function. Its signature declares what it needs and
what it produces:
  - parameter names are the keys it requires from earlier checks
  - the return annotation names what it provides (a TypedDict provides
    each of its keys, anything else provides one key named after the
    function)
  - RawSeries / RawDataFrame parameters ask for the data itself
"""
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, get_type_hints


class _MissingSentinel:
    """No default was given to @check."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return '<MISSING>'

    def __bool__(self):
        return False


MISSING = _MissingSentinel()


class RawSeries:
    """Marker type: the column being profiled."""
    pass


class RawDataFrame:
    """Marker type: the whole frame being profiled."""
    pass


RAW_MARKER_TYPES = (RawSeries, RawDataFrame)


@dataclass(frozen=True)
class CheckKey:
    """A named, typed value in the check DAG."""
    name: str
    type: type

    def __repr__(self):
        type_name = getattr(self.type, '__name__', str(self.type))
        return f"CheckKey({self.name!r}, {type_name})"


@dataclass
class CheckFunc:
    """A registered check.

    Attributes:
        name: the function name
        func: the callable
        requires: keys the function takes as input
        provides: keys the function produces
        needs_raw: True if any parameter is RawSeries or RawDataFrame
        column_filter: optional predicate on the column dtype
        default: value used when the check raises (MISSING = report the error)
    """
    name: str
    func: Callable
    requires: List[CheckKey]
    provides: List[CheckKey]
    needs_raw: bool
    column_filter: Optional[Callable] = None
    default: Any = field(default_factory=lambda: MISSING)


def _is_typed_dict(tp) -> bool:
    if tp is None or not isinstance(tp, type):
        return False
    return hasattr(tp, '__required_keys__') or hasattr(tp, '__optional_keys__')


def _provides(func_name: str, return_type) -> List[CheckKey]:
    if return_type is inspect.Parameter.empty or return_type is None:
        return [CheckKey(func_name, Any)]
    if _is_typed_dict(return_type):
        return [CheckKey(key, val_type) for key, val_type in get_type_hints(return_type).items()]
    return [CheckKey(func_name, return_type)]


def _requires(sig: inspect.Signature, hints: dict):
    requires = []
    needs_raw = False
    for param_name in sig.parameters:
        param_type = hints.get(param_name, Any)
        if param_type in RAW_MARKER_TYPES:
            needs_raw = True
        requires.append(CheckKey(param_name, param_type))
    return requires, needs_raw


def check(column_filter=None, default=MISSING):
    """Register a function as a column check.

    Usage::

        @check(column_filter=is_numeric_not_bool)
        def mean(ser: RawSeries) -> float:
            return float(ser.mean())

        @check(default=0.0)
        def null_frac(null_count: int, length: int) -> float:
            return null_count / length
    """
    def decorator(func):
        sig = inspect.signature(func)
        try:
            hints = get_type_hints(func)
        except Exception:
            hints = {}
        requires, needs_raw = _requires(sig, hints)
        func._check_func = CheckFunc(
            name=func.__name__,
            func=func,
            requires=requires,
            provides=_provides(func.__name__, hints.get('return', inspect.Parameter.empty)),
            needs_raw=needs_raw,
            column_filter=column_filter,
            default=default,
        )
        return func

    return decorator


def collect_check_funcs(obj) -> List[CheckFunc]:
    """CheckFuncs from a CheckFunc, a @check function, or a class of @check methods."""
    if isinstance(obj, CheckFunc):
        return [obj]
    if callable(obj) and hasattr(obj, '_check_func'):
        return [obj._check_func]
    if isinstance(obj, type):
        funcs = []
        for name in sorted(dir(obj)):
            attr = getattr(obj, name, None)
            if callable(attr) and hasattr(attr, '_check_func'):
                funcs.append(attr._check_func)
        return funcs
    return []
