"""Turn raw model output into a single executable SELECT statement.

Every step is a pure ``str -> str`` function and the pipeline never raises.
It is a textual best-effort pass, not a parser: anything still malformed is
left for DuckDB to reject at execution time with a precise message.
"""

from __future__ import annotations

import re
from typing import Callable, Tuple

FENCE_WITH_LANG_RE = re.compile(r"```[ \t]*(?:sql|duckdb)\b", re.IGNORECASE)
FENCE_RE = re.compile(r"```")
QUOTED_RE = re.compile(r"'(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"")
FROM_RE = re.compile(r"\bFROM\b", re.IGNORECASE)
# TOP is only rewritten in the column list: right after SELECT [DISTINCT] or at the start
TOP_RE = re.compile(
    r"(?:^\s*|\bSELECT\s+(?:DISTINCT\s+)?)(?P<top>TOP\s*\(?\s*(?P<n>\d+)\s*\)?\s*)",
    re.IGNORECASE,
)
LIMIT_RE = re.compile(r"\bLIMIT\s+\d+", re.IGNORECASE)
SELECT_RE = re.compile(r"\bSELECT\b", re.IGNORECASE)
# a CTE query, not prose that happens to start with "with"
WITH_START_RE = re.compile(r'^\s*WITH\s+(?:RECURSIVE\s+)?(?:"[^"]*"|\w+)\s*(?:\([^)]*\)\s*)?AS\b', re.IGNORECASE)


def mask_quoted(text: str) -> str:
    """Blank out the inside of '...' literals and "..." identifiers.

    The result has the same length as ``text``, so positions found in the
    masked text can be used to slice the original.
    """
    return QUOTED_RE.sub(lambda m: m.group(0)[0] + " " * (len(m.group(0)) - 2) + m.group(0)[-1], text)


def strip_code_fences(text: str) -> str:
    text = FENCE_WITH_LANG_RE.sub("", text)
    return FENCE_RE.sub("", text).strip()


def rewrite_top_to_limit(text: str) -> str:
    """Replace ``TOP n`` / ``TOP(n)`` in the column list with a trailing ``LIMIT n``.

    Only a TOP opening the column list and followed somewhere by a FROM is
    rewritten; quoted identifiers and string literals are never touched. The
    LIMIT is placed before the semicolon ending that statement, or appended
    with a semicolon when there is none. An existing LIMIT in the statement
    is kept.
    """
    masked = mask_quoted(text)
    top_match = TOP_RE.search(masked)
    if top_match is None or FROM_RE.search(masked, top_match.end()) is None:
        return text

    start, end = top_match.span("top")
    limit = top_match.group("n")
    text = text[:start] + text[end:]
    masked = masked[:start] + masked[end:]

    semi = masked.find(";", start)
    statement = text if semi == -1 else text[:semi]
    rest = "" if semi == -1 else text[semi:]
    statement = statement.rstrip()
    if not LIMIT_RE.search(masked[: len(statement)], start):
        statement = f"{statement} LIMIT {limit}"
    return f"{statement}{rest or ';'}".strip()


def truncate_to_first_statement(text: str) -> str:
    """Keep everything up to the first semicolon and end with exactly one."""
    semi = mask_quoted(text).find(";")
    head = text if semi == -1 else text[:semi]
    return head.rstrip() + ";"


def strip_leading_prose(text: str) -> str:
    if WITH_START_RE.match(text):
        return text
    match = SELECT_RE.search(text)
    if match is None:
        return text
    return text[match.start():]


SANITIZE_STEPS: Tuple[Callable[[str], str], ...] = (
    strip_code_fences,
    rewrite_top_to_limit,
    truncate_to_first_statement,
    strip_leading_prose,
)


def sanitize_sql(raw_text: str | None) -> str:
    """Run every sanitizing step in order and return the resulting SQL.

    For the shape the model is asked to produce the output starts with
    ``SELECT`` and ends with ``;``. Idempotent: sanitizing an already
    sanitized statement returns it unchanged.
    """
    text = raw_text or ""
    for step in SANITIZE_STEPS:
        text = step(text)
    return text.strip()
