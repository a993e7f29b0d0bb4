"""
Query API Routes

Thin delegation layer to the query orchestrator and the connection registry.
Contains NO business logic, routing, or provider-specific code.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_orchestrator, get_registry
from orchestration.errors import ProviderCallError
from orchestration.query_orchestrator import QueryOrchestrator
from retrieval.registry import DataSourceRegistry
from schemas.datasource import DataSourceConnection
from schemas.query import QueryWithContextRequest, QueryWithContextResponse


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/query-with-context",
    response_model=QueryWithContextResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
@router.post(
    "/query",
    response_model=QueryWithContextResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    include_in_schema=False,
)
async def query_with_context(
    request: QueryWithContextRequest,
    orchestrator: QueryOrchestrator = Depends(get_orchestrator),
):
    """
    Answer a prompt using context from a data source.

    A provider failure returns 502 with the failure trace attached;
    every other partial failure degrades inside a 200 response.
    """
    try:
        return await orchestrator.execute(request)
    except ProviderCallError as e:
        return JSONResponse(
            status_code=502,
            content={
                "success": False,
                "error": str(e),
                "traceId": e.trace.trace_id,
                "trace": e.trace.to_dict(),
                "context": e.context,
            },
        )


@router.get("/data-sources", response_model=List[DataSourceConnection])
async def list_data_sources(
    active_only: bool = False,
    registry: DataSourceRegistry = Depends(get_registry),
) -> List[DataSourceConnection]:
    """Registered connections; never empty (falls back to the default connection)."""
    if active_only:
        return await registry.active_connections()
    return await registry.list_connections()
