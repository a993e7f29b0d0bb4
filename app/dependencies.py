"""
FastAPI Dependencies

All object creation happens here, not per request.
Settings are read once and turned into explicit config values; no component
reads the environment itself.

RULE: the query route calls exactly one entry point: QueryOrchestrator.execute()
"""

from functools import lru_cache

from app.core.config import Settings
from llm.langchain_adapter import ChatProvider, ProviderSettings
from observability.instrumentation import Instrumentor
from observability.publisher import PublisherConfig, TracePublisher
from orchestration.cross_validation import CrossValidationClient
from orchestration.query_orchestrator import OrchestratorConfig, QueryOrchestrator
from retrieval.context_router import ContextRouter
from retrieval.datasource import DataSourceResolver
from retrieval.registry import DataSourceRegistry


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


@lru_cache(maxsize=1)
def get_orchestrator_config() -> OrchestratorConfig:
    settings = get_settings()
    return OrchestratorConfig(
        api_key=settings.api_key,
        trace_endpoint=settings.trace_endpoint,
        cross_validation_endpoint=settings.cross_validation_endpoint,
        tracing_enabled=settings.tracing_enabled,
        cross_validation_timeout_s=settings.cross_validation_timeout_s,
        trace_timeout_ms=settings.trace_timeout_ms,
    )


@lru_cache(maxsize=1)
def get_publisher() -> TracePublisher:
    config = get_orchestrator_config()
    return TracePublisher(
        PublisherConfig(
            api_key=config.api_key,
            endpoint=config.trace_endpoint,
            enabled=config.tracing_enabled,
            timeout_ms=config.trace_timeout_ms,
            max_workers=get_settings().trace_max_workers,
        )
    )


@lru_cache(maxsize=1)
def get_instrumentor() -> Instrumentor:
    return Instrumentor(publisher=get_publisher())


@lru_cache(maxsize=1)
def get_resolver() -> DataSourceResolver:
    settings = get_settings()
    return DataSourceResolver.from_dsns(settings.database_url, settings.data_sources)


@lru_cache(maxsize=1)
def get_registry() -> DataSourceRegistry:
    settings = get_settings()
    return DataSourceRegistry(api_key=settings.api_key, endpoint=settings.registry_endpoint)


@lru_cache(maxsize=1)
def get_provider() -> ChatProvider:
    settings = get_settings()
    is_azure = bool(settings.azure_openai_endpoint)
    return ChatProvider(
        ProviderSettings(
            api_key=settings.openai_api_key,
            default_model=settings.default_model,
            default_temperature=settings.default_temperature,
            default_max_tokens=settings.default_max_tokens,
            base_url=settings.openai_base_url,
            request_timeout=settings.provider_timeout_s,
            azure_endpoint=settings.azure_openai_endpoint,
            azure_api_version=settings.azure_openai_api_version,
            azure_deployment=settings.azure_openai_deployment_name if is_azure else None,
        )
    )


@lru_cache(maxsize=1)
def get_orchestrator() -> QueryOrchestrator:
    """
    Create and cache the QueryOrchestrator.

    All components are wired here:
    - ContextRouter: prompt → bounded context text
    - ChatProvider: the AI provider call
    - TracePublisher: fire-and-forget trace forwarding
    - CrossValidationClient: awaited hallucination verdict
    """
    config = get_orchestrator_config()
    return QueryOrchestrator(
        config=config,
        context_router=ContextRouter(get_resolver(), row_limit=get_settings().context_row_limit),
        provider=get_provider(),
        publisher=get_publisher(),
        cross_validator=CrossValidationClient(
            api_key=config.api_key,
            endpoint=config.cross_validation_endpoint,
            timeout=config.cross_validation_timeout_s,
        ),
    )
