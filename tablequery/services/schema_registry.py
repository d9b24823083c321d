from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from tablequery.config import TABLE_NAME
from tablequery.errors import NoDatasetLoaded


@dataclass(frozen=True)
class SchemaSnapshot:
    """Column listing of the currently loaded dataset.

    ``columns`` is an ordered tuple of ``(name, type)`` pairs, with types as
    reported by DuckDB (``VARCHAR``, ``BIGINT``, ``DATE``...). A snapshot is
    never mutated; a new load produces a new one.
    """

    columns: Tuple[Tuple[str, str], ...]
    table_name: str = TABLE_NAME

    @property
    def column_names(self) -> List[str]:
        return [name for name, _ in self.columns]

    def to_dicts(self) -> List[dict]:
        return [{"name": name, "type": col_type} for name, col_type in self.columns]


class SchemaRegistry:
    """Holds the one current SchemaSnapshot of a session."""

    def __init__(self) -> None:
        self._current: Optional[SchemaSnapshot] = None

    def load(self, columns: Iterable[Tuple[str, str]], table_name: str = TABLE_NAME) -> SchemaSnapshot:
        snapshot = SchemaSnapshot(
            columns=tuple((str(name), str(col_type)) for name, col_type in columns),
            table_name=table_name,
        )
        self._current = snapshot
        return snapshot

    def current(self) -> SchemaSnapshot:
        if self._current is None:
            raise NoDatasetLoaded()
        return self._current

    @property
    def is_loaded(self) -> bool:
        return self._current is not None
