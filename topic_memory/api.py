"""
HTTP API

FastAPI application exposing the question endpoint and the per-topic
partition interface:

- POST /api/query                     {question, topicHint?}
- POST /topics/{topic_key}/query      {question}
- POST /topics/{topic_key}/update     {articles, topicKey}
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .main_pipeline import TopicMemorySystem, UnknownTopicError
from .models import RawArticle

logger = logging.getLogger(__name__)


# --- Request models ---

class QueryRequest(BaseModel):
    question: str
    topicHint: Optional[str] = None


class PartitionQueryRequest(BaseModel):
    question: str


class RawArticleModel(BaseModel):
    title: str = ""
    content: str = ""
    url: str
    publishedAt: Optional[str] = None


class UpdateRequest(BaseModel):
    articles: List[RawArticleModel] = Field(default_factory=list)
    topicKey: str


def create_app(system: Optional[TopicMemorySystem] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        system: TopicMemorySystem to serve (default: built from configuration
            on startup)

    Returns:
        Configured FastAPI app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.system is None:
            app.state.system = TopicMemorySystem()
        service = app.state.system
        if service.config.scheduler_enabled:
            service.start_scheduler()
        try:
            yield
        finally:
            if service.scheduler.is_running():
                service.stop_scheduler()

    app = FastAPI(
        title="F1 Topic Memory",
        description="Topic-partitioned news knowledge base with question answering",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.system = system

    # Registered before CORSMiddleware so error responses still carry CORS headers
    @app.middleware("http")
    async def internal_error_handler(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(f"Error handling {request.url.path}: {exc}")
            return JSONResponse(status_code=500, content={"error": "Internal Error"})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    def _system(request: Request) -> TopicMemorySystem:
        return request.app.state.system

    @app.post("/api/query")
    async def api_query(body: QueryRequest, request: Request):
        if not body.question.strip():
            raise HTTPException(status_code=400, detail="question cannot be empty")

        result = await run_in_threadpool(
            _system(request).ask, body.question, body.topicHint
        )
        return {'answer': result['answer'], 'contextUsed': result['contextUsed']}

    @app.post("/topics/{topic_key}/query")
    async def partition_query(topic_key: str, body: PartitionQueryRequest, request: Request):
        try:
            result = await run_in_threadpool(
                _system(request).query_topic, topic_key, body.question
            )
        except UnknownTopicError:
            raise HTTPException(status_code=404, detail=f"Unknown topic: {topic_key}")
        return result.to_dict()

    @app.post("/topics/{topic_key}/update")
    async def partition_update(topic_key: str, body: UpdateRequest, request: Request):
        if body.topicKey != topic_key:
            raise HTTPException(
                status_code=400,
                detail="topicKey in body does not match the addressed partition"
            )

        articles = [RawArticle.from_dict(item.model_dump()) for item in body.articles]
        try:
            count = await run_in_threadpool(_system(request).update_topic, topic_key, articles)
        except UnknownTopicError:
            raise HTTPException(status_code=404, detail=f"Unknown topic: {topic_key}")
        return {'status': 'updated', 'count': count}

    return app
