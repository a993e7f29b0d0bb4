"""
Context Router

Selects the data subset relevant to a prompt and renders it as bounded text.

ROUTING (first matching rule wins, prompt is lower-cased):
1. "hospital"                        → hospital-tagged tables
2. "employee" / "staff" / "personnel" → personnel tables
3. "department"                      → department-tagged tables
otherwise                            → schema summary (tables + columns, no rows)

GUARANTEES:
- Never returns more than row_limit rows in total
- One failing table is skipped, never aborting the resolution
- Never raises: total failure yields an [context:error] diagnostic string
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from retrieval.datasource import DataSource, DataSourceError, DataSourceResolver


logger = logging.getLogger(__name__)


DEFAULT_ROW_LIMIT = 10
MAX_ROW_LIMIT = 20

SCHEMA_MARKER = "[context:schema]"
ERROR_MARKER = "[context:error]"


@dataclass(frozen=True)
class RoutingRule:
    """Keyword rule mapping a prompt to tagged tables."""

    name: str
    keywords: Tuple[str, ...]
    table_tag: str

    @property
    def marker(self) -> str:
        return f"[context:{self.name}]"

    def matches(self, prompt_lower: str) -> bool:
        return any(keyword in prompt_lower for keyword in self.keywords)

    def selects(self, table: str) -> bool:
        return self.table_tag in table.lower()


ROUTING_RULES: Tuple[RoutingRule, ...] = (
    RoutingRule(name="hospital", keywords=("hospital",), table_tag="hospital"),
    RoutingRule(name="personnel", keywords=("employee", "staff", "personnel"), table_tag="employee"),
    RoutingRule(name="department", keywords=("department",), table_tag="department"),
)


def _format_value(value: Any) -> str:
    if value is None:
        return "NULL"
    return str(value)


def format_rows(table: str, rows: Sequence[Dict[str, Any]]) -> str:
    lines = [f"Table {table} ({len(rows)} rows):"]
    for row in rows:
        lines.append("- " + ", ".join(f"{key}={_format_value(value)}" for key, value in row.items()))
    return "\n".join(lines)


class ContextRouter:
    """
    Resolves prompt → context text for one logical data source.

    Synchronous: callers on an event loop should run it in a worker thread.
    """

    def __init__(
        self,
        resolver: DataSourceResolver,
        row_limit: int = DEFAULT_ROW_LIMIT,
        rules: Sequence[RoutingRule] = ROUTING_RULES,
    ):
        if not 1 <= row_limit <= MAX_ROW_LIMIT:
            raise ValueError(f"row_limit must be between 1 and {MAX_ROW_LIMIT}, got {row_limit}")
        self._resolver = resolver
        self._row_limit = row_limit
        self._rules = tuple(rules)

    @property
    def row_limit(self) -> int:
        return self._row_limit

    def match_rule(self, prompt: str) -> Optional[RoutingRule]:
        """First rule whose keywords occur in the lower-cased prompt."""
        prompt_lower = (prompt or "").lower()
        for rule in self._rules:
            if rule.matches(prompt_lower):
                return rule
        return None

    def resolve_context(self, prompt: str, data_source_id: str) -> str:
        """
        Build the context block for a prompt.

        Args:
            prompt: User's natural-language question
            data_source_id: Logical data source identifier

        Returns:
            Context text starting with a [context:<kind>] marker
        """
        source = self._resolver.resolve(data_source_id)

        try:
            tables = source.list_tables()
        except DataSourceError as e:
            logger.warning(f"Could not list tables for data source '{data_source_id}': {e}")
            return self._error_context(data_source_id, [f"table listing failed: {e}"])

        rule = self.match_rule(prompt)
        if rule is not None:
            candidates = [table for table in tables if rule.selects(table)]
            if candidates:
                logger.info(f"Routing prompt to '{rule.name}' tables: {candidates}")
                return self._row_context(source, rule, candidates, data_source_id)
            logger.info(f"Rule '{rule.name}' matched but no tagged tables exist; using schema summary")

        return self._schema_context(source, tables, data_source_id)

    def _row_context(
        self,
        source: DataSource,
        rule: RoutingRule,
        candidates: List[str],
        data_source_id: str,
    ) -> str:
        sections: List[str] = []
        failures: List[str] = []
        remaining = self._row_limit

        for table in candidates:
            if remaining <= 0:
                break
            try:
                rows = source.fetch_rows(table, remaining)
            except DataSourceError as e:
                logger.warning(f"Skipping table '{table}' on data source '{data_source_id}': {e}")
                failures.append(f"{table}: {e}")
                continue

            # Hard cap, even if the source ignores the limit
            rows = list(rows)[:remaining]
            remaining -= len(rows)
            sections.append(format_rows(table, rows))

        if not sections:
            return self._error_context(data_source_id, failures)

        header = f"{rule.marker} Data from data source '{data_source_id}' (at most {self._row_limit} rows):"
        return "\n\n".join([header, *sections])

    def _schema_context(self, source: DataSource, tables: List[str], data_source_id: str) -> str:
        if not tables:
            return f"{SCHEMA_MARKER} Data source '{data_source_id}' has no tables."

        lines: List[str] = []
        failures: List[str] = []
        for table in tables:
            try:
                columns = source.get_columns(table)
            except DataSourceError as e:
                logger.warning(f"Skipping schema for table '{table}': {e}")
                failures.append(f"{table}: {e}")
                continue
            lines.append(f"- {table}: {', '.join(columns) if columns else '(no columns)'}")

        if not lines:
            return self._error_context(data_source_id, failures)

        header = f"{SCHEMA_MARKER} Available tables in data source '{data_source_id}':"
        return "\n".join([header, *lines])

    def _error_context(self, data_source_id: str, failures: List[str]) -> str:
        detail = "; ".join(failures) if failures else "no data could be retrieved"
        return f"{ERROR_MARKER} Could not retrieve data from data source '{data_source_id}': {detail}"
