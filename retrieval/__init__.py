# Retrieval Package
from retrieval.datasource import DataSource, DataSourceError, DataSourceResolver, PostgresDataSource
from retrieval.context_router import ContextRouter, RoutingRule, ROUTING_RULES
from retrieval.prompt_augmenter import augment
from retrieval.registry import DataSourceRegistry

__all__ = [
    "DataSource",
    "DataSourceError",
    "DataSourceResolver",
    "PostgresDataSource",
    "ContextRouter",
    "RoutingRule",
    "ROUTING_RULES",
    "augment",
    "DataSourceRegistry",
]
