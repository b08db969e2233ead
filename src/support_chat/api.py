from __future__ import annotations

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from support_chat.bootstrap import AppRuntime
from support_chat.errors import SupportChatError

CORS_ALLOW_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization", "X-Client-Info", "Apikey"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
}


class ChatRequest(BaseModel):
    # Optional so that missing fields surface as 400 from the orchestrator.
    userId: str | None = None
    sessionId: str | None = None
    message: str | None = None


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def build_router(runtime: AppRuntime) -> APIRouter:
    router = APIRouter()
    orchestrator = runtime.orchestrator

    @router.post("/chat")
    def chat(body: ChatRequest) -> dict:
        result = orchestrator.handle_turn(body.userId, body.message, session_id=body.sessionId or None)
        return result.to_dict()

    @router.get("/sessions")
    def sessions(userId: str | None = None) -> dict:
        records = orchestrator.list_sessions(userId)
        return {"sessions": [record.to_dict() for record in records]}

    @router.get("/history")
    def history(sessionId: str | None = None) -> dict:
        records = orchestrator.load_history(sessionId)
        return {"messages": [record.to_dict() for record in records]}

    return router


def create_app(runtime: AppRuntime, *, prefix: str = "") -> FastAPI:
    app = FastAPI(title="support-chat")
    app.state.runtime = runtime

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.middleware("http")
    async def short_circuit_options(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        return await call_next(request)

    @app.exception_handler(SupportChatError)
    async def handle_support_chat_error(request: Request, exc: SupportChatError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        else:
            logger.warning(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} malformed body: {exc.errors()}")
        return _error(400, "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = "Not found" if exc.status_code == 404 else str(exc.detail)
        return _error(exc.status_code, message)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        # Runs outside CORSMiddleware, so the headers are added here.
        return _error(500, str(exc), headers=CORS_HEADERS)

    app.include_router(build_router(runtime), prefix=prefix)
    return app
