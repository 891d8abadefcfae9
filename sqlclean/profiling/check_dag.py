"""Dependency ordering for column checks."""
from __future__ import annotations

import graphlib
import logging
from typing import Any, Dict, List, Set, Tuple

from .check_func import RAW_MARKER_TYPES, CheckFunc, CheckKey

log = logging.getLogger("sqlclean.profiling.check_dag")


class DAGConfigError(Exception):
    """The set of checks cannot be ordered: a key has no provider, or a cycle exists."""
    pass


def build_check_dag(check_funcs: List[CheckFunc]) -> List[CheckFunc]:
    """Topologically sort checks so every check runs after its providers.

    Raises:
        DAGConfigError: if a required key has no provider, or if a cycle exists
    """
    if not check_funcs:
        return []

    provides_map: Dict[str, Tuple[CheckKey, CheckFunc]] = {}
    for cf in check_funcs:
        for key in cf.provides:
            provides_map[key.name] = (key, cf)

    for cf in check_funcs:
        for req in cf.requires:
            if req.type in RAW_MARKER_TYPES:
                continue
            if req.name not in provides_map:
                raise DAGConfigError(f"No check provides '{req.name}' (required by '{cf.name}')")
            provided, provider = provides_map[req.name]
            if (req.type is not Any and provided.type is not Any and req.type != provided.type
                    and not (isinstance(req.type, type) and isinstance(provided.type, type)
                             and issubclass(provided.type, req.type))):
                log.warning("'%s' expects '%s' as %s but '%s' provides %s",
                            cf.name, req.name, getattr(req.type, '__name__', req.type),
                            provider.name, getattr(provided.type, '__name__', provided.type))

    graph: Dict[str, Set[str]] = {}
    func_map: Dict[str, CheckFunc] = {}
    for cf in check_funcs:
        func_map[cf.name] = cf
        deps: Set[str] = set()
        for req in cf.requires:
            if req.type in RAW_MARKER_TYPES:
                continue
            provider = provides_map[req.name][1]
            if provider.name != cf.name:
                deps.add(provider.name)
        graph[cf.name] = deps

    try:
        order = list(graphlib.TopologicalSorter(graph).static_order())
    except graphlib.CycleError as e:
        raise DAGConfigError(f"Cycle detected in check DAG: {e}") from e
    return [func_map[name] for name in order if name in func_map]


def build_column_dag(all_check_funcs: List[CheckFunc], column_dtype) -> List[CheckFunc]:
    """Order the checks that apply to a column of ``column_dtype``.

    Checks whose column_filter rejects the dtype drop out, and so does
    every check that depends on one of them. That is not an error: the
    check just does not apply to this column.
    """
    candidates = [
        cf for cf in all_check_funcs
        if cf.column_filter is None or cf.column_filter(column_dtype)
    ]

    prev_count = -1
    while len(candidates) != prev_count:
        prev_count = len(candidates)
        provided = {key.name for cf in candidates for key in cf.provides}
        candidates = [
            cf for cf in candidates
            if all(req.type in RAW_MARKER_TYPES or req.name in provided for req in cf.requires)
        ]

    return build_check_dag(candidates)
