"""
FastAPI REST API for the ClearSign Contract Intelligence service.

Provides endpoints for:
- Contract risk assessment (text or image)
- Grounded chat about a contract
- Clause negotiation suggestions
- Translation of a prior assessment
"""

import base64
import binascii
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

try:
    # Try relative imports first (when run as module)
    from .config import PROVIDER_IDS, get_settings
    from .services.api_resilience import PROVIDER_BREAKERS, get_breaker_status
    from .services.cascade import CascadeOrchestrator
    from .services.errors import TranslationUnavailableError
    from .services.providers import make_adapter_factory
    from .services.task_registry import TaskRegistry
    from .workflows.assessment_workflow import AssessmentWorkflow
    from .workflows.chat_workflow import ChatWorkflow
    from .workflows.negotiation_workflow import NegotiationWorkflow
    from .workflows.translation_workflow import TranslationWorkflow
    from .utils.cancellation import CLIENT_CLOSED_REQUEST, ClientDisconnected, run_until_disconnect
    from .utils.decorators import handle_endpoint_errors
    from .utils.dependencies import (
        get_assessment_workflow,
        get_chat_workflow,
        get_negotiation_workflow,
        get_translation_workflow,
        set_workflows,
    )
    from .utils.logging import api_logger, setup_logging
    from .utils.request_context import (
        REQUEST_ID_HEADER,
        bind_task,
        clear_request_context,
        set_request_id,
    )
    from .models.schemas import (
        AnalysisResult,
        AnalyzeRequest,
        ChatRequest,
        ChatResponse,
        ErrorResponse,
        NegotiateRequest,
        NegotiationResult,
        TranslateRequest,
        TranslationResult,
    )
except ImportError:
    # Fall back to absolute imports (when run directly)
    from clearsign.config import PROVIDER_IDS, get_settings
    from clearsign.services.api_resilience import PROVIDER_BREAKERS, get_breaker_status
    from clearsign.services.cascade import CascadeOrchestrator
    from clearsign.services.errors import TranslationUnavailableError
    from clearsign.services.providers import make_adapter_factory
    from clearsign.services.task_registry import TaskRegistry
    from clearsign.workflows.assessment_workflow import AssessmentWorkflow
    from clearsign.workflows.chat_workflow import ChatWorkflow
    from clearsign.workflows.negotiation_workflow import NegotiationWorkflow
    from clearsign.workflows.translation_workflow import TranslationWorkflow
    from clearsign.utils.cancellation import CLIENT_CLOSED_REQUEST, ClientDisconnected, run_until_disconnect
    from clearsign.utils.decorators import handle_endpoint_errors
    from clearsign.utils.dependencies import (
        get_assessment_workflow,
        get_chat_workflow,
        get_negotiation_workflow,
        get_translation_workflow,
        set_workflows,
    )
    from clearsign.utils.logging import api_logger, setup_logging
    from clearsign.utils.request_context import (
        REQUEST_ID_HEADER,
        bind_task,
        clear_request_context,
        set_request_id,
    )
    from clearsign.models.schemas import (
        AnalysisResult,
        AnalyzeRequest,
        ChatRequest,
        ChatResponse,
        ErrorResponse,
        NegotiateRequest,
        NegotiationResult,
        TranslateRequest,
        TranslationResult,
    )

SERVICE_NAME = "ClearSign Contract Intelligence API"
SERVICE_VERSION = "1.0.0"

settings = get_settings()
setup_logging(log_level=settings.log_level, json_format=settings.log_json)
logger = api_logger


# Request Context Middleware
class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to set request ID for each request."""

    async def dispatch(self, request, call_next):
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()


app = FastAPI(
    title=SERVICE_NAME,
    description="Contract risk assessment with multi-provider LLM fallback",
    version=SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)

app.add_middleware(RequestContextMiddleware)


def build_workflows(app_settings):
    """Wire registry, orchestrator and the four task workflows."""
    registry = TaskRegistry(app_settings)
    orchestrator = CascadeOrchestrator(
        registry,
        make_adapter_factory(app_settings),
        attempt_timeout=app_settings.attempt_timeout,
        deadline=app_settings.cascade_deadline,
    )
    return {
        "assessment": AssessmentWorkflow(registry, orchestrator),
        "chat": ChatWorkflow(registry, orchestrator),
        "negotiation": NegotiationWorkflow(registry, orchestrator),
        "translation": TranslationWorkflow(registry, orchestrator),
    }


@app.on_event("startup")
async def startup_event():
    """
    Initialize workflows on application startup.
    """
    logger.info("startup", service=SERVICE_NAME)

    set_workflows(**build_workflows(settings))

    configured = settings.configured_providers()
    if not configured:
        logger.warning(
            "no_providers_configured",
            message="Assessment will use local analysis; other tasks return fallbacks"
        )
    logger.info("startup_complete", providers=configured)


def _error_body(error: str, message: str, details=None) -> dict:
    return ErrorResponse(error=error, message=message, details=details).model_dump(mode="json")


def decode_upload(body: AnalyzeRequest):
    """
    Turn an analyze request into (text, image, mime_type).

    Raises:
        ValueError: If the payload is absent, undecodable or unsupported
    """
    if body.text and body.text.strip():
        return body.text, None, None

    if not body.base64:
        raise ValueError("No file provided")

    payload = body.base64
    # Browsers send data URLs; keep only the encoded part
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    payload = "".join(payload.split())

    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Invalid base64 payload")

    if not raw:
        raise ValueError("No file provided")

    mime_type = (body.mime_type or "text/plain").lower()

    if mime_type.startswith("image/"):
        return None, raw, mime_type

    if mime_type == "application/pdf":
        raise ValueError("PDF documents must be submitted as extracted text")

    try:
        return raw.decode("utf-8"), None, None
    except UnicodeDecodeError:
        raise ValueError(f"Unsupported document encoding for {mime_type}")


@app.get("/", tags=["Health"])
async def root():
    """
    Health check endpoint.
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Detailed health check: configured providers and the state of every
    provider+model breaker used so far.

    With no provider configured the service still answers (local analysis
    and fallbacks), so it reports "degraded" rather than "down".
    """
    configured = settings.configured_providers()
    breakers = {
        source: get_breaker_status(breaker)
        for source, breaker in PROVIDER_BREAKERS.items()
    }
    any_open = any(status["state"] == "open" for status in breakers.values())

    return {
        "status": "healthy" if configured and not any_open else "degraded",
        "providers": {
            provider_id: "configured" if provider_id in configured else "missing"
            for provider_id in PROVIDER_IDS
        },
        "circuit_breakers": breakers,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.post("/api/analyze", response_model=AnalysisResult, tags=["Contracts"])
@handle_endpoint_errors("AnalysisError")
async def analyze_contract(
    body: AnalyzeRequest,
    request: Request,
    workflow=Depends(get_assessment_workflow)
):
    """
    Assess a contract for risks.

    Accepts extracted `text`, or a `base64` payload with `mimeType`
    (text or image). Never fails because providers are down: the local
    analyzer answers instead.

    Raises:
        400: No content, PDF without extracted text, or bad base64
    """
    bind_task("assessment")
    text, image, mime_type = decode_upload(body)

    logger.info(
        "analyze_request",
        chars=len(text) if text else 0,
        image_bytes=len(image) if image else 0,
        mime_type=mime_type
    )
    return await run_until_disconnect(
        request,
        workflow.run(text=text, image=image, mime_type=mime_type)
    )


@app.post("/api/chat", response_model=ChatResponse, tags=["Contracts"])
@handle_endpoint_errors("ChatError")
async def chat(
    body: ChatRequest,
    request: Request,
    workflow=Depends(get_chat_workflow)
):
    """
    Answer the user's latest message about a contract.

    Raises:
        400: Missing contract text, no messages, or last turn not from user
    """
    bind_task("chat")
    reply = await run_until_disconnect(
        request,
        workflow.run(contract_text=body.contract_text, messages=body.messages)
    )
    return ChatResponse(message=reply)


@app.post("/api/negotiate", response_model=NegotiationResult, tags=["Contracts"])
@handle_endpoint_errors("NegotiationError")
async def negotiate(
    body: NegotiateRequest,
    request: Request,
    workflow=Depends(get_negotiation_workflow)
):
    """
    Suggest a safer version of a risky clause.

    Raises:
        400: Missing clause
    """
    bind_task("negotiation")
    return await run_until_disconnect(
        request,
        workflow.run(
            clause=body.clause,
            explanation=body.explanation,
            context=body.context
        )
    )


@app.post("/api/translate", response_model=TranslationResult, tags=["Contracts"])
@handle_endpoint_errors("TranslationError")
async def translate(
    body: TranslateRequest,
    request: Request,
    workflow=Depends(get_translation_workflow)
):
    """
    Translate an assessment into another language.

    Falls back to translating only the summary (`isPartial: true`).

    Raises:
        400: Missing content or target language
        502: Neither full nor summary-only translation succeeded
    """
    bind_task("translation")
    try:
        return await run_until_disconnect(
            request,
            workflow.run(content=body.content, target_language=body.target_language)
        )
    except TranslationUnavailableError as e:
        raise HTTPException(
            status_code=502,
            detail={
                "error": "TranslationFailed",
                "message": str(e),
                "details": e.details
            }
        )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """
    Render request validation failures as 400 in the standard error shape.
    """
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "")
        }
        for err in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=_error_body("ValidationError", message, errors)
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """
    Flatten structured HTTPException details into the standard error shape.
    """
    if isinstance(exc.detail, dict):
        content = _error_body(
            exc.detail.get("error", "HTTPError"),
            exc.detail.get("message", ""),
            exc.detail.get("details")
        )
    else:
        content = _error_body("HTTPError", str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(ClientDisconnected)
async def client_disconnected_handler(request, exc: ClientDisconnected):
    """Nobody is listening; answer with an empty 499."""
    return Response(status_code=CLIENT_CLOSED_REQUEST)


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Global exception handler for unhandled errors.
    """
    logger.error("unhandled_exception", error=str(exc), exc_info=True)

    return JSONResponse(
        status_code=500,
        content=_error_body("InternalServerError", "An unexpected error occurred", str(exc))
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "clearsign.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
