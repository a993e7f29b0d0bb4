import asyncio
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.logging import configure_logging
from app.dependencies import get_publisher, get_resolver, get_settings
from app.api.query import router as query_router
from app.api.traces import router as traces_router
from retrieval.datasource import DataSourceResolver

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    yield
    # Give in-flight trace forwards a moment before shutdown
    publisher = get_publisher()
    await publisher.drain(timeout=2.0)
    publisher.close()

app = FastAPI(
    title=settings.service_name,
    lifespan=lifespan
)

# CORS middleware - allow the UI to call the API
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query_router, prefix="/v1")
app.include_router(traces_router, prefix="/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "service": settings.service_name}


@app.get("/health/data")
async def data_health(resolver: DataSourceResolver = Depends(get_resolver)):
    online = await asyncio.to_thread(resolver.default.ping)
    return {"status": "online" if online else "offline"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port)
