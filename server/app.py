from __future__ import annotations

import uuid
from functools import lru_cache
from typing import Any, Dict

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from listing_chat.completion import CompletionClient, UpstreamError
from listing_chat.config import ConfigurationError, Settings, get_settings
from listing_chat.drafts import DraftParseError, UnknownCategoryError, enhance_text, generate_listing_draft
from listing_chat.models import EnhanceRequest, ListingDraftRequest, TurnRequest
from listing_chat.parsing import loads_strict
from listing_chat.turn import NOT_CONFIGURED_MESSAGE, run_turn, upstream_error_message
from telemetry.logging_utils import REQUEST_ID, get_logger
from telemetry.metrics import fetch_metrics, summarize_metrics

load_dotenv()

logger = get_logger(__name__)

CORS_ALLOW_HEADERS = [
    "authorization",
    "x-client-info",
    "apikey",
    "content-type",
    "x-supabase-client-platform",
    "x-supabase-client-platform-version",
    "x-supabase-client-runtime",
    "x-supabase-client-runtime-version",
]

app = FastAPI(title="Listing Chat API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    token = REQUEST_ID.set(request_id)
    try:
        response = await call_next(request)
    finally:
        REQUEST_ID.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


@lru_cache(maxsize=4)
def _shared_completion_client(settings: Settings) -> CompletionClient:
    return CompletionClient(settings)


def get_completion_client(settings: Settings = Depends(get_settings)) -> CompletionClient:
    return _shared_completion_client(settings)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _describe_validation(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors()[:5]:
        loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    return loads_strict(raw) if raw else None


@app.options("/api/ai-conversation")
@app.options("/api/ai-listing")
@app.options("/api/ai-enhance")
def preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK)


@app.get("/health")
def health(settings: Settings = Depends(get_settings)) -> JSONResponse:
    body = {
        "status": "ok" if settings.configured else "error",
        "configured": settings.configured,
        "model": settings.model,
    }
    code = status.HTTP_200_OK if settings.configured else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(body, status_code=code)


@app.get("/api/metrics/summary")
def metrics_summary(limit: int = 500) -> Dict[str, Any]:
    return summarize_metrics(fetch_metrics(limit=max(1, min(limit, 5000))))


@app.post("/api/ai-conversation")
async def ai_conversation(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: CompletionClient = Depends(get_completion_client),
):
    if not settings.configured:
        logger.error("ai_not_configured", extra={"route": "ai-conversation"})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, NOT_CONFIGURED_MESSAGE)

    try:
        turn_request = TurnRequest.model_validate(await _read_json(request))
    except ValidationError as exc:
        logger.info("turn_request_invalid", extra={"errors": exc.error_count()})
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {_describe_validation(exc)}")
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request: body is not valid JSON")

    try:
        outcome = await run_in_threadpool(run_turn, turn_request, client)
    except ConfigurationError:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, NOT_CONFIGURED_MESSAGE)
    except Exception as exc:
        logger.exception("ai_conversation_error", extra={"category": turn_request.category})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Unknown error")

    if isinstance(outcome, UpstreamError):
        return _error(status.HTTP_502_BAD_GATEWAY, upstream_error_message(outcome))
    return {"result": outcome.to_payload()}


@app.post("/api/ai-listing")
async def ai_listing(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: CompletionClient = Depends(get_completion_client),
):
    if not settings.configured:
        logger.error("ai_not_configured", extra={"route": "ai-listing"})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, NOT_CONFIGURED_MESSAGE)

    try:
        draft_request = ListingDraftRequest.model_validate(await _read_json(request))
    except ValidationError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {_describe_validation(exc)}")
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request: body is not valid JSON")

    try:
        outcome = await run_in_threadpool(generate_listing_draft, draft_request, client)
    except UnknownCategoryError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))
    except DraftParseError as exc:
        return _error(status.HTTP_502_BAD_GATEWAY, str(exc))
    except ConfigurationError:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, NOT_CONFIGURED_MESSAGE)
    except Exception as exc:
        logger.exception("ai_listing_error", extra={"category": draft_request.category})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Unknown error")

    if isinstance(outcome, UpstreamError):
        return _error(status.HTTP_502_BAD_GATEWAY, upstream_error_message(outcome))
    return {"result": outcome}


@app.post("/api/ai-enhance")
async def ai_enhance(
    request: Request,
    settings: Settings = Depends(get_settings),
    client: CompletionClient = Depends(get_completion_client),
):
    if not settings.configured:
        logger.error("ai_not_configured", extra={"route": "ai-enhance"})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, NOT_CONFIGURED_MESSAGE)

    try:
        enhance_request = EnhanceRequest.model_validate(await _read_json(request))
    except ValidationError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid request: {_describe_validation(exc)}")
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request: body is not valid JSON")

    try:
        outcome = await run_in_threadpool(enhance_text, enhance_request, client)
    except ConfigurationError:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, NOT_CONFIGURED_MESSAGE)
    except Exception as exc:
        logger.exception("ai_enhance_error", extra={"tone": enhance_request.tone})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Unknown error")

    if isinstance(outcome, UpstreamError):
        return _error(status.HTTP_502_BAD_GATEWAY, upstream_error_message(outcome))
    return {"result": outcome}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("server.app:app", host="0.0.0.0", port=8000, reload=False)
