from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, List

from tablequery.config import settings


@dataclass(frozen=True)
class ConversationTurn:
    question: str
    sql: str


class ConversationHistory:
    """Bounded FIFO of (question, SQL) pairs used as follow-up context.

    Only turns whose SQL executed successfully are recorded. The log is read
    by the prompt builder and never replayed.
    """

    def __init__(self, max_turns: int | None = None) -> None:
        self.max_turns = max_turns if max_turns is not None else settings.history_turns
        self._turns: Deque[ConversationTurn] = deque(maxlen=self.max_turns)

    def record(self, question: str, sql: str) -> None:
        self._turns.append(ConversationTurn(question=question, sql=sql))

    def turns(self) -> List[ConversationTurn]:
        return list(self._turns)

    def recent_context(self) -> str:
        return "\n\n".join(f"Q: {t.question}\nSQL: {t.sql}" for t in self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)
