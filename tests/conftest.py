from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import httpx
from langchain_core.messages import AIMessage
import pytest

from observability.publisher import TracePublisher
from retrieval.datasource import DataSourceError, DataSourceResolver


class FakeDataSource:
    """In-memory DataSource with per-table failure injection."""

    def __init__(
        self,
        tables: Dict[str, List[Dict[str, Any]]],
        failing_tables: Optional[set] = None,
        unreachable: bool = False,
    ):
        self.tables = tables
        self.failing_tables = failing_tables or set()
        self.unreachable = unreachable
        self.fetch_calls: List[tuple] = []

    def list_tables(self) -> List[str]:
        if self.unreachable:
            raise DataSourceError("Failed to obtain database connection: connection refused")
        return sorted(self.tables)

    def get_columns(self, table: str) -> List[str]:
        if table in self.failing_tables:
            raise DataSourceError(f"relation \"{table}\" is unavailable")
        rows = self.tables[table]
        return list(rows[0].keys()) if rows else []

    def fetch_rows(self, table: str, limit: int) -> List[Dict[str, Any]]:
        self.fetch_calls.append((table, limit))
        if table in self.failing_tables:
            raise DataSourceError(f"relation \"{table}\" is unavailable")
        # Ignores the limit; the router caps rows itself
        return list(self.tables[table])

    def ping(self) -> bool:
        return not self.unreachable


class FakeProvider:
    """ChatModelProvider double that echoes a fixed answer."""

    name = "openai"
    endpoint = "https://api.openai.com/v1"
    default_model = "gpt-3.5-turbo"

    def __init__(self, answer: str = "Echo answer", error: Optional[Exception] = None):
        self.answer = answer
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt, *, model=None, temperature=None, max_tokens=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.answer, {"model": model, "provider": self.name}


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def sample_tables() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "hospitals": [
            {"id": i, "name": f"Hospital {i}", "city": "Boston"} for i in range(1, 51)
        ],
        "employees": [
            {"id": 1, "name": "Ada", "department": "Engineering"},
            {"id": 2, "name": "Grace", "department": "Engineering"},
            {"id": 3, "name": "Linus", "department": "Operations"},
        ],
        "departments": [
            {"id": 1, "name": "Engineering"},
            {"id": 2, "name": "Operations"},
        ],
    }


@pytest.fixture
def fake_source() -> FakeDataSource:
    return FakeDataSource(sample_tables())


@pytest.fixture
def resolver(fake_source) -> DataSourceResolver:
    return DataSourceResolver(default=fake_source, sources={"ds-1": fake_source})


@pytest.fixture
def mock_publisher() -> MagicMock:
    """Publisher double recording forward() calls."""
    publisher = MagicMock(spec=TracePublisher)
    publisher.enabled = True
    return publisher


@pytest.fixture
def mock_llm():
    mock = MagicMock()
    # Mock ainvoke for chat model
    mock.ainvoke = AsyncMock(return_value=AIMessage(content="Mocked Response"))
    return mock
