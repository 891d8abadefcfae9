"""Turn a column profile into a list of suggested cleaning operations.

    ops = suggest_operations(df, AggressiveCleaningConf)
    CleaningPipeline(ops).to_sql(df.columns, dialect='postgres')
"""
import logging
from typing import List

from sqlclean.commands.base import s
from sqlclean.profiling import Profiler, checks_for, duplicate_row_count
from sqlclean.profiling.pd_checks import ZSCORE_THRESHOLD

log = logging.getLogger("sqlclean.suggest")

# cast targets tried in order; '1'/'0' columns become int before bool
PARSE_ORDER = ('date', 'int', 'float', 'bool')


class CleaningConf:
    """Thresholds that decide which operations get suggested."""
    name = 'base'
    # share of text values that must parse before suggesting cast_type
    parse_threshold = 0.9
    # share of padded values above which trim is suggested
    whitespace_threshold = 0.0
    # NULL share at or above which a column is left for a human to decide
    null_drop_threshold = 0.5
    drop_duplicate_rows = True
    flag_outliers = True
    placeholder = 'N/A'


class ConservativeCleaningConf(CleaningConf):
    name = 'conservative'
    parse_threshold = 0.9
    whitespace_threshold = 0.1
    null_drop_threshold = 0.3
    flag_outliers = False


class AggressiveCleaningConf(CleaningConf):
    name = 'aggressive'
    parse_threshold = 0.7
    whitespace_threshold = 0.0
    null_drop_threshold = 0.8


CONFS = {kls.name: kls for kls in (ConservativeCleaningConf, AggressiveCleaningConf)}


def _cast_target(stats, conf) -> str:
    for kind in PARSE_ORDER:
        if (stats.get(f'{kind}_parse_frac') or 0.0) >= conf.parse_threshold:
            return kind
    return ''


def column_operations(col, stats, conf=ConservativeCleaningConf) -> List:
    ops = []
    if stats.get('is_string') and (stats.get('whitespace_frac') or 0.0) > conf.whitespace_threshold:
        ops.append([s('trim'), col])

    numeric = bool(stats.get('is_numeric')) and not stats.get('is_bool')
    if stats.get('is_string'):
        target = _cast_target(stats, conf)
        if target:
            ops.append([s('cast_type'), col, target])
            numeric = target in ('int', 'float')

    nf = stats.get('null_frac') or 0.0
    if 0 < nf < conf.null_drop_threshold:
        if numeric:
            ops.append([s('fill_aggregate'), col, 'median'])
        else:
            ops.append([s('coalesce_display'), col, conf.placeholder])

    if conf.flag_outliers and (stats.get('zscore_outlier_count') or 0) > 0:
        ops.append([s('zscore_outliers'), col, ZSCORE_THRESHOLD, 'flag'])
    return ops


def suggest_operations(df, conf=ConservativeCleaningConf) -> List:
    """Profile ``df`` (pandas or polars) and suggest operations for it."""
    if isinstance(conf, str):
        conf = CONFS[conf]
    summary, errors = Profiler(checks_for(df)).process_df(df)
    for err in errors:
        log.warning("profiling failed: %s", err)

    ops = []
    dupes = duplicate_row_count(df)
    if conf.drop_duplicate_rows and dupes:
        log.debug("%d duplicate rows", dupes)
        ops.append([s('drop_duplicates'), None, 'first'])
    for col, stats in summary.items():
        ops.extend(column_operations(col, stats, conf))
    log.debug("%s suggested %d operations", conf.name, len(ops))
    return ops
