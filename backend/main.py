import logging
import time
import uuid
from typing import List

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from database import DatasetStore, db
from engine import AnalysisEngine
from errors import AppError, ValidationError
from gemini import GeminiService
from ingest import parse_file
from schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    ContextualSuggestionsRequest,
    DatasetSummary,
    ErrorResponse,
    SuggestionsRequest,
    SuggestionsResponse,
    UploadResponse,
)
from validation import validate_prompt, validate_upload

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="DataDash API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "[%s] %s %s %d %.1fms",
        request_id, request.method, request.url.path, response.status_code, elapsed_ms,
    )
    return response


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s context=%s", exc, exc.context, exc_info=exc)
    else:
        logger.warning("%s context=%s", exc, exc.context)
    body = ErrorResponse(
        error=exc.message,
        request_id=_request_id(request),
        status=exc.status_code,
        type=exc.error_type,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(by_alias=True))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    body = ErrorResponse(
        error="Internal Server Error",
        request_id=_request_id(request),
        status=500,
        type="INTERNAL_ERROR",
    )
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True))


def get_store() -> DatasetStore:
    return db


_assistant = None


def get_assistant() -> GeminiService:
    global _assistant
    if _assistant is None:
        _assistant = GeminiService(settings)
    return _assistant


def get_engine(assistant=Depends(get_assistant)) -> AnalysisEngine:
    return AnalysisEngine(
        assistant,
        max_attempts=settings.chart_max_attempts,
        correlation_mode=settings.correlation_mode,
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/upload", response_model=UploadResponse, response_model_by_alias=True, response_model_exclude_none=True)
async def upload_dataset(file: UploadFile = File(...), store: DatasetStore = Depends(get_store)):
    filename = file.filename or ""
    content = await file.read()
    validate_upload(filename, len(content), settings.max_upload_bytes)

    dataset = parse_file(filename, content)
    file_id = store.save(dataset, name=filename)
    logger.info("Stored dataset %s from %s (%d rows)", file_id, filename, dataset.row_count)

    return UploadResponse(
        file_id=file_id,
        file_name=filename,
        columns=list(dataset.columns),
        summary=dict(dataset.summary),
    )


@app.get("/datasets", response_model=List[DatasetSummary], response_model_by_alias=True)
async def list_datasets(limit: int = 50, store: DatasetStore = Depends(get_store)):
    return [
        DatasetSummary(
            id=item.id,
            name=item.name,
            columns=item.dataset.column_names(),
            row_count=item.dataset.row_count,
        )
        for item in store.list(limit)
    ]


@app.post("/analyze", response_model=AnalyzeResponse, response_model_by_alias=True, response_model_exclude_none=True)
def analyze(
    req: AnalyzeRequest,
    store: DatasetStore = Depends(get_store),
    engine: AnalysisEngine = Depends(get_engine),
):
    if not req.file_id:
        raise ValidationError("fileId is required")
    if not req.prompt:
        raise ValidationError("prompt is required")

    dataset = store.get(req.file_id)
    validate_prompt(req.prompt, dataset.column_names())

    try:
        result = engine.process_analysis(dataset, req.prompt)
    except AppError as e:
        e.context.update({"fileId": req.file_id, "prompt": req.prompt})
        raise

    return AnalyzeResponse(
        insights=result.insights,
        charts=result.charts,
        chart_status=result.chart_status.value,
        chart_message=result.chart_message or None,
        retry_attempts=result.retry_attempts or None,
    )


@app.post("/suggestions", response_model=SuggestionsResponse)
def suggestions(req: SuggestionsRequest, assistant: GeminiService = Depends(get_assistant)):
    if not req.file_id:
        raise ValidationError("fileId is required")
    if not req.columns:
        raise ValidationError("columns are required")
    return SuggestionsResponse(suggestions=assistant.get_suggestions(req.columns, req.summary))


@app.post("/contextual-suggestions", response_model=SuggestionsResponse)
def contextual_suggestions(req: ContextualSuggestionsRequest, assistant: GeminiService = Depends(get_assistant)):
    if not req.file_id:
        raise ValidationError("fileId is required")
    if not req.recent_chats:
        raise ValidationError("recentChats are required")
    return SuggestionsResponse(suggestions=assistant.get_contextual_suggestions(req.recent_chats))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
