"""
Scriptura - FastAPI Application

Thin HTTP surface over the reference engine: book listings, search and
JSON-LD lookup of scripture references. No engine logic lives here; routes
unwrap engine results and a single exception handler renders every
ScriptureError with its HTTP status.
"""
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Union
from contextlib import asynccontextmanager
import time
import uuid

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from opentelemetry import trace

from canon.model import Book, Canon, load_canon
from config import Config, get_config
from core.errors import ScriptureError, StorageError
from core.types import SearchKindLiteral, TestamentLiteral
from db.sql import SqlVerseStore
from db.store import VerseStore
from engine.assembler import Assembler
from engine.resolver import resolve_book
from engine.search import SearchEngine
from engine.types import ReferenceMatch
from observability import (
    setup_observability,
    shutdown_observability,
    get_logger,
)
from observability.tracing import instrument_fastapi, create_span
from observability.logging import bind_context, clear_context

API_VERSION = "1.0.0"
JSON_LD_MEDIA_TYPE = "application/ld+json"

logger = get_logger(__name__)


# Pydantic models for API
class BookSummary(BaseModel):
    """One book of the canon."""
    id: str = Field(..., description="USFM book code (e.g., JHN)")
    name: str
    slug: str
    order: int
    testament: TestamentLiteral
    chapter_count: int

    @classmethod
    def from_book(cls, book: Book) -> "BookSummary":
        return cls(
            id=book.id,
            name=book.name,
            slug=book.slug,
            order=book.order,
            testament=book.testament,
            chapter_count=book.chapter_count,
        )


class BookDetail(BookSummary):
    """A book with its aliases and versification."""
    aliases: List[str]
    single_chapter: bool
    verse_counts: List[int]

    @classmethod
    def from_book(cls, book: Book) -> "BookDetail":
        return cls(
            **BookSummary.from_book(book).model_dump(),
            aliases=list(book.aliases),
            single_chapter=book.single_chapter,
            verse_counts=list(book.verse_counts),
        )


class SearchHit(BaseModel):
    """A reference or text search result."""
    kind: SearchKindLiteral = Field(..., description="'reference' or 'text'")
    reference: str = Field(..., description="Canonical reference (e.g., John 3:16)")
    path: str = Field(..., description="URL form of the reference")
    relevance: float
    snippet: Optional[str] = None


class SearchResponse(BaseModel):
    """Search results for a query."""
    query: str
    kind: Union[SearchKindLiteral, Literal["none"]] = Field(..., description="'reference', 'text' or 'none'")
    count: int
    results: List[SearchHit]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    components: Dict[str, str]
    trace_id: Optional[str] = None


@dataclass
class Services:
    """Everything the routes need, built once per process."""
    canon: Canon
    store: VerseStore
    search: SearchEngine
    assembler: Assembler

    @classmethod
    def build(cls, config: Config, canon: Optional[Canon] = None,
              store: Optional[VerseStore] = None) -> "Services":
        canon = canon or load_canon(config.canon.path)
        if store is None:
            store = SqlVerseStore(
                config.database.url,
                canon=canon,
                pool_size=config.database.pool_size,
                max_overflow=config.database.max_overflow,
                pool_timeout=config.database.pool_timeout,
                echo=config.database.echo,
            )
        return cls(
            canon=canon,
            store=store,
            search=SearchEngine(canon, store, config.search, config.linked_data.known_translations),
            assembler=Assembler(canon, store, config.linked_data),
        )


def get_current_trace_id() -> Optional[str]:
    """Get current trace ID as hex string."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        if ctx.is_valid:
            return format(ctx.trace_id, "032x")
    return None


def get_services(request: Request) -> Services:
    return request.app.state.services


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build services unless they were injected, and release what we built."""
    config = get_config()
    setup_observability(
        service_name=config.observability.service_name,
        otlp_endpoint=config.observability.otlp_endpoint,
        tracing_enabled=config.observability.tracing_enabled,
        sample_rate=config.observability.get_sample_rate_for_env(),
        log_level=config.logging.level,
        json_logs=config.logging.json_format,
        environment=config.env.value,
        service_version=config.observability.service_version,
        log_file=config.logging.log_file if config.logging.log_to_file else None,
    )
    logger.info("Starting Scriptura API", phase="startup")

    owned = app.state.services is None
    if owned:
        with create_span("startup.services"):
            app.state.services = Services.build(config)
        logger.info("Services ready", books=len(app.state.services.canon))

    yield

    logger.info("Shutting down Scriptura API", phase="shutdown")
    if owned:
        await app.state.services.store.close()
        app.state.services = None
    shutdown_observability()


async def scripture_error_handler(request: Request, exc: ScriptureError) -> JSONResponse:
    """Render any ScriptureError with its own status code."""
    logger.info(
        "Request rejected",
        error_code=exc.error_code,
        status_code=exc.http_status,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def observability_middleware(request: Request, call_next):
    """Add request tracking with trace context."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    start_time = time.perf_counter()

    # Bind request context to all logs
    bind_context(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    try:
        response: Response = await call_next(request)
        duration = time.perf_counter() - start_time

        # Add trace ID to response headers
        trace_id = get_current_trace_id()
        if trace_id:
            response.headers["X-Trace-ID"] = trace_id

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration * 1000:.2f}ms"

        logger.info(
            "Request completed",
            status_code=response.status_code,
            duration_ms=duration * 1000,
        )

        return response
    except Exception as e:
        duration = time.perf_counter() - start_time
        logger.error("Request failed", error=str(e), duration_ms=duration * 1000)
        raise
    finally:
        clear_context()


router = APIRouter()


# Health endpoint
@router.get("/health", response_model=HealthResponse)
async def health_check(services: Services = Depends(get_services)):
    """Check API health and storage reachability."""
    with create_span("health_check", attributes={"endpoint": "/health"}) as span:
        components = {"canon": "healthy" if len(services.canon) else "empty"}
        try:
            translations = await services.store.translations()
            components["storage"] = "healthy" if translations else "empty"
        except StorageError as e:
            logger.warning("Storage unreachable", error=e)
            components["storage"] = "unavailable"

        overall = "healthy" if all(v == "healthy" for v in components.values()) else "degraded"
        span.set_attribute("health.status", overall)

        return HealthResponse(
            status=overall,
            version=API_VERSION,
            components=components,
            trace_id=get_current_trace_id(),
        )


# Book endpoints
@router.get("/api/books", response_model=List[BookSummary])
async def list_books(services: Services = Depends(get_services)):
    """All books in canonical order."""
    return [BookSummary.from_book(book) for book in services.canon.books]


@router.get("/api/books/{book}", response_model=BookDetail)
async def get_book(book: str, services: Services = Depends(get_services)):
    """One book by id, name or alias; a bare book name is enough here."""
    return BookDetail.from_book(resolve_book(book, services.canon).unwrap())


# Search endpoint
@router.get("/api/search", response_model=SearchResponse)
async def search(
    q: str = Query("", description="Reference or free text"),
    limit: Optional[int] = Query(None, ge=1, description="Maximum results"),
    translation: Optional[str] = Query(None, description="Restrict text hits to a translation"),
    services: Services = Depends(get_services),
):
    """Reference-first search; falls back to verse text."""
    results = await services.search.search(q, limit=limit, translation=translation)

    if not results:
        kind = "none"
    elif isinstance(results[0], ReferenceMatch):
        kind = "reference"
    else:
        kind = "text"

    logger.info("Search served", kind=kind, results=len(results))
    return SearchResponse(
        query=q,
        kind=kind,
        count=len(results),
        results=[SearchHit(**result.to_dict(services.canon)) for result in results],
    )


# Reference endpoint; registered last so the fixed /api routes win
@router.get("/api/{reference}.json")
async def reference_json_ld(
    reference: str,
    translation: Optional[str] = Query(None, description="Translation tag (e.g., KJV)"),
    services: Services = Depends(get_services),
):
    """JSON-LD document for a scripture reference."""
    citation = services.search.lookup(reference).unwrap()
    view = (await services.assembler.assemble(citation, translation)).unwrap()
    return JSONResponse(
        content=services.assembler.to_json_ld(view),
        media_type=JSON_LD_MEDIA_TYPE,
    )


def create_app(services: Optional[Services] = None, config: Optional[Config] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Pass ``services`` to serve a prepared canon and store (tests do);
    otherwise the lifespan builds them from configuration.
    """
    config = config or get_config()
    app = FastAPI(
        title="Scriptura API",
        description="Scripture reference resolution, search and linked data",
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.services = services

    origins = [origin.strip() for origin in config.api.cors_origins if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Accept", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-Trace-ID", "X-Response-Time"],
    )
    app.middleware("http")(observability_middleware)
    app.add_exception_handler(ScriptureError, scripture_error_handler)
    app.include_router(router)

    if config.observability.tracing_enabled:
        instrument_fastapi(app)

    return app


app = create_app()


def run_server():
    """Run the API server."""
    import uvicorn

    config = get_config()
    logger.info("Starting uvicorn server", host=config.api.host, port=config.api.port)
    uvicorn.run(
        "api.main:app",
        host=config.api.host,
        port=config.api.port,
        reload=config.api.reload,
        workers=config.api.workers,
    )


if __name__ == "__main__":
    run_server()
