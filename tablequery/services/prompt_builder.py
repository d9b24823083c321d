"""Prompt construction for question-to-SQL turns.

The instruction is assembled in a fixed order: persona, table name, column
list, rules, then recent turns. Each rule targets a mistake small local models
make on DuckDB (TOP instead of LIMIT, unquoted multi-word columns, vendor
date functions...). The sanitizer rewrites some of these after the fact, so
the rules and the sanitizer must stay in step.
"""

from __future__ import annotations

from typing import Dict, List

from tablequery.services.schema_registry import SchemaSnapshot

PERSONA = (
    "You are a strict SQL generator for DuckDB. You translate the user's question "
    "into exactly one DuckDB SELECT statement and output nothing else."
)

RULES = (
    "Use ONLY the columns listed above, spelled exactly as listed. Never guess or invent a column name.",
    "Output SQL only. No markdown, no code fences, no explanations.",
    "The statement MUST start with SELECT and MUST end with a single semicolon.",
    "Never use TOP or TOP(n). To limit rows, put LIMIT n at the very end of the statement.",
    "Always wrap column names in double quotes, e.g. \"<column name>\". "
    "This is mandatory for names containing spaces.",
    "Date arithmetic must use INTERVAL expressions, e.g. CURRENT_DATE - INTERVAL 30 DAY. "
    "Never use DATEADD, DATEDIFF, DATE_SUB, DATE_ADD or GETDATE.",
    "To turn a text column into a date, parse then format in two steps: "
    "strftime(strptime(\"<column>\", '<input format>'), '%Y-%m-%d').",
    "To group by more than one category, concatenate the category columns into one "
    "derived label column, e.g. \"<column a>\" || ' - ' || \"<column b>\" AS label, "
    "and group by that label.",
    "Query only the table named above. Never JOIN. Filter rows with WHERE clauses.",
)


def format_columns(snapshot: SchemaSnapshot) -> str:
    return "\n".join(f"- \"{name}\" ({col_type})" for name, col_type in snapshot.columns)


def build_system_prompt(snapshot: SchemaSnapshot, history_context: str = "") -> str:
    """Build the instruction string embedding schema, rules and recent turns.

    ``history_context`` is the output of ``ConversationHistory.recent_context()``.
    """
    rules = "\n".join(f"{i}. {rule}" for i, rule in enumerate(RULES, start=1))
    sections = [
        PERSONA,
        f"Table: {snapshot.table_name}",
        f"VALID COLUMNS:\n{format_columns(snapshot)}",
        f"RULES:\n{rules}",
    ]
    if history_context:
        sections.append(
            "PREVIOUS QUESTIONS (use them to resolve follow-up questions):\n" + history_context
        )
    return "\n\n".join(sections)


def build_messages(question: str, snapshot: SchemaSnapshot, history_context: str = "") -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": build_system_prompt(snapshot, history_context)},
        {"role": "user", "content": question},
    ]
