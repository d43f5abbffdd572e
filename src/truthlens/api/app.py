"""FastAPI application exposing the TruthLens analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from truthlens.api.schemas import AnalyzeRequest, ErrorResponse, EvidenceModel, EvidenceResponse
from truthlens.config import Settings, get_settings
from truthlens.credibility import load_domain_table
from truthlens.errors import UpstreamError, ValidationError
from truthlens.metrics.observability import (
    PipelineMetrics,
    bind_correlation_id,
    clear_correlation_id,
    configure_logging,
    get_logger,
)
from truthlens.retrieval.service import RetrievalConfig, TavilyRetriever
from truthlens.services.generation import GenerationConfig, OpenAIChatBackend
from truthlens.services.pipeline import AnalysisPipeline, PipelineConfig

ANALYSIS_FAILED = "分析失败"
MALFORMED_REQUEST = "请求格式错误"
ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


@dataclass(frozen=True)
class AppDependencies:
    pipeline: AnalysisPipeline


class CorrelationIdMiddleware:
    """Binds a correlation id per request and stamps it, with the CORS headers, on every response.

    Plain ASGI rather than ``@app.middleware("http")``: the decorator form
    terminates a streamed body cleanly even when its iterator raises, which
    would hide a verdict cut off mid-stream from the client.
    """

    def __init__(self, app: ASGIApp, *, cors_headers: Mapping[str, str]) -> None:
        self.app = app
        self._cors_headers = dict(cors_headers)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        correlation_id = Headers(scope=scope).get("X-Request-ID") or uuid4().hex
        scope.setdefault("state", {})["correlation_id"] = correlation_id

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                headers["X-Correlation-ID"] = correlation_id
                for name, value in self._cors_headers.items():
                    headers[name] = value
            await send(message)

        bind_correlation_id(correlation_id)
        try:
            await self.app(scope, receive, send_with_headers)
        finally:
            clear_correlation_id()


def _build_dependencies(settings: Settings) -> AppDependencies:
    llm = OpenAIChatBackend(
        GenerationConfig(
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            timeout=settings.llm_timeout_seconds,
        ),
    )
    retriever = TavilyRetriever(
        RetrievalConfig(
            api_key=settings.tavily_api_key,
            endpoint=settings.tavily_endpoint,
            search_depth=settings.tavily_search_depth,
            include_raw_content=settings.tavily_include_raw_content,
            max_results=settings.search_max_results,
            timeout=settings.tavily_timeout_seconds,
        ),
    )
    pipeline = AnalysisPipeline(
        llm,
        retriever,
        domain_table=load_domain_table(settings.credibility_table_path),
        config=PipelineConfig(
            min_text_length=settings.min_text_length,
            keyword_max_tokens=settings.keyword_max_tokens,
            keyword_temperature=settings.keyword_temperature,
            search_max_results=settings.search_max_results,
            balanced_max_results=settings.balanced_max_results,
            excerpt_chars=settings.excerpt_chars,
            analysis_max_tokens=settings.analysis_max_tokens,
            analysis_temperature=settings.analysis_temperature,
            stage_timeout_seconds=settings.stage_timeout_seconds,
            stream_idle_timeout_seconds=settings.stream_idle_timeout_seconds,
        ),
    )
    return AppDependencies(pipeline=pipeline)


def create_app(*, settings: Settings | None = None, dependencies: AppDependencies | None = None) -> FastAPI:
    settings = settings or get_settings()
    deps = dependencies or _build_dependencies(settings)
    cors_headers = settings.cors_headers

    configure_logging()
    logger = get_logger("api")
    app = FastAPI(title="TruthLens API", version="0.1.0")
    app.state.dependencies = deps

    def error_response(status_code: int, message: str, correlation_id: str | None = None) -> JSONResponse:
        headers = dict(cors_headers)
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id
        return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump(), headers=headers)

    app.add_middleware(CorrelationIdMiddleware, cors_headers=cors_headers)

    @app.exception_handler(RequestValidationError)
    async def handle_malformed_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        PipelineMetrics.observe_request("rejected")
        logger.info("request.malformed", errors=len(exc.errors()))
        return error_response(status.HTTP_400_BAD_REQUEST, MALFORMED_REQUEST)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = getattr(request.state, "correlation_id", uuid4().hex)
        PipelineMetrics.observe_request("failed")
        logger.error("unhandled.error", correlation_id=correlation_id, detail=str(exc))
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ANALYSIS_FAILED, correlation_id)

    def get_dependencies(request: Request) -> AppDependencies:
        return request.app.state.dependencies

    def get_pipeline(dep: AppDependencies = Depends(get_dependencies)) -> AnalysisPipeline:
        return dep.pipeline

    def preflight() -> Response:
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=cors_headers)

    app.add_api_route("/api/analyze", preflight, methods=["OPTIONS"], include_in_schema=False)
    app.add_api_route("/api/evidence", preflight, methods=["OPTIONS"], include_in_schema=False)

    @app.post("/api/analyze", responses=ERROR_RESPONSES)
    async def analyze(
        payload: AnalyzeRequest,
        request: Request,
        pipeline: AnalysisPipeline = Depends(get_pipeline),
    ) -> Response:
        correlation_id = request.state.correlation_id
        try:
            relay = await pipeline.analyze(payload.text, correlation_id=correlation_id)
        except ValidationError as exc:
            PipelineMetrics.observe_request("rejected")
            return error_response(status.HTTP_400_BAD_REQUEST, str(exc))
        except UpstreamError as exc:
            PipelineMetrics.observe_request("failed")
            logger.error("analysis.failed", stage=exc.stage, detail=str(exc))
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, ANALYSIS_FAILED)
        PipelineMetrics.observe_request("streamed")
        return StreamingResponse(relay, media_type="text/plain; charset=utf-8", headers=cors_headers)

    @app.post("/api/evidence", response_model=EvidenceResponse, responses=ERROR_RESPONSES)
    async def balanced_evidence(
        payload: AnalyzeRequest,
        pipeline: AnalysisPipeline = Depends(get_pipeline),
    ) -> EvidenceResponse:
        try:
            evidence = await pipeline.gather_balanced_evidence(payload.text)
        except ValidationError as exc:
            return error_response(status.HTTP_400_BAD_REQUEST, str(exc))
        return EvidenceResponse(
            pro=[EvidenceModel.from_item(item) for item in evidence.pro],
            con=[EvidenceModel.from_item(item) for item in evidence.con],
        )

    @app.get("/metrics")
    async def metrics() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        from truthlens import __version__

        return {"status": "ok", "version": __version__, "environment": settings.environment}

    @app.head("/healthz")
    async def healthcheck_head() -> Response:
        return Response(status_code=status.HTTP_200_OK)

    @app.get("/livez")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    return app


app = create_app()
