"""Documentation check for the SQL blocks of a Markdown file.

Fenced blocks whose info string starts with ``sql`` are parsed with
sqlglot in the dialect named by the second word of the info string
(```` ```sql postgres ````), and must end with a semicolon. Blocks
without a dialect are read as generic SQL. Blocks tagged ``duckdb`` are
also planned with EXPLAIN against the example tables. A fence that is
never closed is reported at its opening line.
"""
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

import duckdb
import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError
from sqlglot.tokens import TokenType

from sqlclean.dialects import UnknownDialectError, get_dialect
from sqlclean.samples import sample_tables
from sqlclean.sql_exec import connect, explain

log = logging.getLogger("sqlclean.lint")

EXPLAINABLE = (exp.Select, exp.Union, exp.Delete, exp.Update, exp.Insert)

_FENCE = re.compile(r'^(\s*)(```+|~~~+)\s*(.*)$')

Block = Tuple[Optional[str], str, int]


@dataclass(frozen=True)
class LintIssue:
    line: int
    dialect: Optional[str]
    message: str

    def __str__(self):
        where = f" [{self.dialect}]" if self.dialect else ""
        return f"line {self.line}{where}: {self.message}"


def _block_dialect(info: List[str]) -> Optional[str]:
    return info[1].lower() if len(info) > 1 else None


def scan_fences(markdown: str) -> Tuple[List[Block], Optional[Tuple[List[str], int]]]:
    """SQL blocks, plus the info words and line of a fence left open at the end."""
    blocks = []
    open_fence = None
    for lineno, line in enumerate(markdown.splitlines(), start=1):
        m = _FENCE.match(line)
        if open_fence is None:
            if m:
                open_fence = (m.group(2), m.group(3).split(), lineno, [])
            continue
        fence, info, start, body = open_fence
        if m and m.group(2).startswith(fence) and not m.group(3).strip():
            if info and info[0].lower() == 'sql':
                blocks.append((_block_dialect(info), "\n".join(body), start))
            open_fence = None
            continue
        body.append(line)
    unclosed = (open_fence[1], open_fence[2]) if open_fence else None
    return blocks, unclosed


def extract_sql_blocks(markdown: str) -> List[Block]:
    """(dialect, sql, line) for each closed ```sql block; ``line`` is the opening fence."""
    return scan_fences(markdown)[0]


def sqlglot_dialect(dialect: Optional[str]) -> Optional[str]:
    if dialect is None:
        return None
    try:
        return get_dialect(dialect).sqlglot_dialect
    except UnknownDialectError:
        log.debug("no sqlglot dialect for %r, reading it as generic SQL", dialect)
        return None


def _parse_message(e: ParseError, read: Optional[str]) -> str:
    where = read or 'generic SQL'
    if not e.errors:
        return f"cannot parse as {where}: {str(e).splitlines()[0]}"
    first = e.errors[0]
    return f"cannot parse as {where}: {first['description']} (line {first['line']}, col {first['col']})"


def split_statements(sql: str, dialect: Optional[str] = None) -> List[str]:
    """Cut ``sql`` at the semicolons sqlglot's tokenizer sees outside quotes and comments."""
    statements = []
    start = 0
    for token in sqlglot.tokenize(sql, read=sqlglot_dialect(dialect)):
        if token.token_type == TokenType.SEMICOLON:
            statements.append(sql[start:token.end + 1])
            start = token.end + 1
    if sql[start:].strip():
        statements.append(sql[start:])
    return statements


def lint_sql(sql: str, dialect: Optional[str] = None) -> List[str]:
    """Problems found in one block, as messages."""
    if not sql.strip():
        return ["empty SQL block"]
    read = sqlglot_dialect(dialect)
    try:
        tokens = sqlglot.tokenize(sql, read=read)
        sqlglot.parse(sql, read=read)
    except TokenError as e:
        return [f"cannot tokenize as {read or 'generic SQL'}: {e}"]
    except ParseError as e:
        return [_parse_message(e, read)]
    if not tokens:
        return ["empty SQL block"]
    if tokens[-1].token_type != TokenType.SEMICOLON:
        return ["statement does not end with ';'"]
    return []


def _explain_problems(sql: str, conn) -> List[str]:
    problems = []
    for statement in split_statements(sql, 'duckdb'):
        parsed = sqlglot.parse(statement, read='duckdb')
        if not any(isinstance(e, EXPLAINABLE) for e in parsed):
            continue
        try:
            explain(statement, conn)
        except duckdb.Error as e:
            problems.append(f"duckdb cannot plan the statement: {str(e).splitlines()[0]}")
    return problems


def lint_markdown(markdown: str, explain_duckdb: bool = True) -> List[LintIssue]:
    blocks, unclosed = scan_fences(markdown)
    issues = []
    conn = None
    try:
        for dialect, sql, line in blocks:
            problems = lint_sql(sql, dialect)
            if dialect == 'duckdb' and explain_duckdb and not problems:
                if conn is None:
                    conn = connect(sample_tables(), materialize=True)
                problems = _explain_problems(sql, conn)
            issues.extend(LintIssue(line, dialect, p) for p in problems)
    finally:
        if conn is not None:
            conn.close()
    if unclosed is not None:
        info, line = unclosed
        dialect = _block_dialect(info) if info and info[0].lower() == 'sql' else None
        issues.append(LintIssue(line, dialect, "code fence is never closed"))
    log.debug("%d lint issues", len(issues))
    return issues
