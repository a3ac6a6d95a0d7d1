from fastapi import FastAPI, Depends, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field
from typing import List, Optional
import datetime, logging, time

from config.ingest_config import IngestConfig, load_ingest_config
from indexer.corpus_store import CorpusStore
from indexer.lexical_retriever import LexicalRetriever
from observability.prometheus_metrics import render_metrics, METRICS_CONTENT_TYPE
from .context import build_context_block, DEFAULT_CONTEXT_K

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"

class SearchRequest(BaseModel):
    q: str
    k: int = Field(default=DEFAULT_CONTEXT_K, ge=1, le=50)

class SearchHit(BaseModel):
    content: str
    url: str
    title: str
    section: Optional[str] = None
    score: float

class SearchResponse(BaseModel):
    query: str
    results: List[SearchHit]
    total: int
    took_ms: float

class ContextResponse(BaseModel):
    query: str
    context: str
    sources: int

def create_app(config: Optional[IngestConfig] = None,
               retriever: Optional[LexicalRetriever] = None) -> FastAPI:
    """Build the retrieval API.

    Args:
        config: Ingestion configuration (for the corpus path)
        retriever: Prebuilt retriever; one over the configured corpus
            store is created otherwise
    """
    if retriever is None:
        config = config or load_ingest_config()
        retriever = LexicalRetriever(CorpusStore(config.corpus_path))

    app = FastAPI(title="DocGround Retrieval API", version=API_VERSION)
    app.state.retriever = retriever

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": "DocGround Retrieval API",
            "version": API_VERSION,
            "docs": "/docs",
            "endpoints": ["/search", "/context", "/health", "/metrics"]
        }

    @app.get("/health")
    def health():
        return {"ok": True, "time": datetime.datetime.now(datetime.timezone.utc).isoformat()}

    @app.get("/metrics")
    def metrics():
        return Response(content=render_metrics(), media_type=METRICS_CONTENT_TYPE)

    # Sync handlers run in the threadpool; the store lock makes the first
    # corpus load single-flight across concurrent requests.
    @app.post("/search", response_model=SearchResponse)
    def search(req: SearchRequest, retriever: LexicalRetriever = Depends(get_retriever)):
        """Rank corpus chunks lexically against the query."""
        start = time.perf_counter()
        results = retriever.search(req.q, req.k)
        return SearchResponse(
            query=req.q,
            results=[SearchHit(**result.to_dict()) for result in results],
            total=len(results),
            took_ms=round((time.perf_counter() - start) * 1000, 2)
        )

    @app.post("/context", response_model=ContextResponse)
    def context(req: SearchRequest, retriever: LexicalRetriever = Depends(get_retriever)):
        """Formatted documentation context for the chat assistant."""
        results = retriever.search(req.q, req.k)
        return ContextResponse(query=req.q, context=build_context_block(results), sources=len(results))

    return app

def get_retriever(request: Request) -> LexicalRetriever:
    """Dependency returning the app's retriever."""
    return request.app.state.retriever
