"""Shared test fixtures for tablequery."""

from __future__ import annotations

from typing import Dict, List, Sequence, Union

import pytest

from tablequery.services.data_manager import DataManager, DataSession
from tablequery.services.query_engine import QueryEngine

EMPLOYEES_CSV = (
    "Employee Name,Department,Absences,Salary\n"
    "Alice,Sales,3,52000.5\n"
    "Bob,Sales,5,48000.25\n"
    "Carol,Engineering,1,91000.125\n"
).encode("utf-8")

PRODUCTS_CSV = (
    "sku,product_title,units_sold\n"
    "A-1,Widget,10\n"
    "B-2,Gadget,7\n"
).encode("utf-8")


class FakeLLMClient:
    """In-memory stand-in for ``LLMClient``.

    Returns canned replies in order (an Exception instance is raised instead
    of returned) and records every ``messages`` list it was called with.
    """

    model = "fake-model"

    def __init__(self, replies: Sequence[Union[str, Exception]] = ()) -> None:
        self.replies: List[Union[str, Exception]] = list(replies)
        self.calls: List[List[Dict[str, str]]] = []

    def generate_sql_text(self, messages: List[Dict[str, str]]) -> str:
        self.calls.append(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def is_available(self) -> bool:
        return True

    @property
    def last_system_prompt(self) -> str:
        return self.calls[-1][0]["content"]


@pytest.fixture
def employees_csv() -> bytes:
    return EMPLOYEES_CSV


@pytest.fixture
def products_csv() -> bytes:
    return PRODUCTS_CSV


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def manager() -> DataManager:
    return DataManager()


@pytest.fixture
def empty_session(manager: DataManager) -> DataSession:
    return manager.create_session()


@pytest.fixture
def employees_session(manager: DataManager) -> DataSession:
    session = manager.create_session()
    manager.load_dataset(session, EMPLOYEES_CSV, "employees.csv")
    return session


@pytest.fixture
def make_engine(manager: DataManager):
    """Build a QueryEngine over ``manager`` whose model replies are canned."""

    def _make(*replies: Union[str, Exception]) -> QueryEngine:
        return QueryEngine(manager=manager, client=FakeLLMClient(replies))

    return _make
