"""
HTTP API

FastAPI application exposing chat, article ingestion, entity aggregation and
a health check. Every ArticleChatError is mapped to its HTTP status with a
JSON {"detail": ...} body.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .errors import ArticleChatError, ValidationError
from .main_pipeline import ArticleChatSystem

logger = logging.getLogger(__name__)


class ChatRequest(BaseModel):
    query: str = ""
    # Older clients send the question as "message"
    message: str = ""


class ChatResponse(BaseModel):
    answer: str


class ArticleRequest(BaseModel):
    url: str = ""


class ArticleResponse(BaseModel):
    url: str
    title: str
    excerpt: str
    summary: str
    sentiment: str
    topics: List[str] = Field(default_factory=list)
    entities: List[str] = Field(default_factory=list)
    processed_at: datetime


class EntitiesRequest(BaseModel):
    urls: List[str] = Field(default_factory=list)
    limit: int = Field(default=10, ge=1, le=100)


class EntityCountResponse(BaseModel):
    entity: str
    count: int


class EntitiesResponse(BaseModel):
    entities: List[EntityCountResponse] = Field(default_factory=list)
    count: int


class HealthResponse(BaseModel):
    status: str
    articles: int
    vectors: int


def build_router(system: ArticleChatSystem) -> APIRouter:
    """Routes bound to one system instance."""
    router = APIRouter()

    @router.post("/chat", response_model=ChatResponse)
    def chat(request: ChatRequest):
        """Answer a question about the ingested articles."""
        query = request.query.strip() or request.message.strip()
        if not query:
            raise ValidationError("Either 'query' or 'message' must be provided")
        answer = system.chat(query, system.new_request_context())
        return ChatResponse(answer=answer)

    @router.post("/articles", response_model=ArticleResponse, status_code=201)
    def add_article(request: ArticleRequest):
        """Fetch, analyze and store a new article."""
        article = system.add_article(request.url, system.new_request_context())
        return ArticleResponse(
            url=article.url,
            title=article.title,
            excerpt=article.excerpt,
            summary=article.summary,
            sentiment=article.sentiment,
            topics=article.topics,
            entities=article.entities,
            processed_at=article.processed_at,
        )

    @router.post("/entities", response_model=EntitiesResponse)
    def common_entities(request: EntitiesRequest):
        """Most mentioned entities across the given articles (all when empty)."""
        entities = system.find_common_entities(request.urls, limit=request.limit)
        return EntitiesResponse(
            entities=[EntityCountResponse(entity=e.entity, count=e.count) for e in entities],
            count=len(entities),
        )

    @router.get("/health", response_model=HealthResponse)
    def health():
        return HealthResponse(
            status="ok",
            articles=system.store.count(),
            vectors=system.vector_index.count(),
        )

    return router


def create_app(system: ArticleChatSystem, start_seed_ingestion: Optional[bool] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        system: The assembled system serving requests
        start_seed_ingestion: Start background seed ingestion on startup
            (defaults to the system's ingest_seed_on_startup setting)

    Returns:
        Configured FastAPI app
    """
    if start_seed_ingestion is None:
        start_seed_ingestion = system.config.ingest_seed_on_startup

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_seed_ingestion:
            system.start_seed_ingestion()
        yield

    app = FastAPI(
        title="Article Chat API",
        description="Ask questions about ingested news articles",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(ArticleChatError)
    async def handle_article_chat_error(request: Request, exc: ArticleChatError):
        if exc.http_status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=exc.http_status, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": "Invalid request body"})

    app.include_router(build_router(system))
    app.state.system = system
    return app
