"""
Trace Tracking API Route

Instruments an arbitrary outbound HTTP call on behalf of the caller and
returns the upstream response together with the recorded trace.
"""

from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.dependencies import get_instrumentor
from observability.errors import InstrumentedCallError
from observability.instrumentation import Instrumentor


router = APIRouter()


class TrackRequest(BaseModel):
    """Outbound call to perform and instrument."""
    url: str = Field(..., description="Target URL")
    method: str = Field(default="GET", description="HTTP method")
    body: Optional[Union[Dict[str, Any], List[Any], str]] = Field(
        default=None, description="JSON body (object or array) or raw string"
    )
    headers: Dict[str, str] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Caller metadata, e.g. prompt, provider")


@router.post("/traces/track")
async def track(
    request: TrackRequest,
    instrumentor: Instrumentor = Depends(get_instrumentor),
):
    """Perform the call; 502 with the failure trace if it could not complete."""
    json_body = request.body if isinstance(request.body, (dict, list)) else None
    content = request.body if isinstance(request.body, str) else None

    try:
        result = await instrumentor.track_fetch(
            request.url,
            request.method,
            json=json_body,
            content=content,
            headers=request.headers or None,
            metadata=request.metadata,
        )
    except InstrumentedCallError as e:
        return JSONResponse(
            status_code=502,
            content={
                "success": False,
                "error": str(e.cause),
                "trace": e.trace.to_dict(),
            },
        )

    return {
        "success": True,
        "statusCode": result.response.status_code,
        "body": result.response.text,
        "traceId": result.trace.trace_id,
        "trace": result.trace.to_dict(),
    }
