"""HTTP/JSON 绑定。

路由（prefix 默认取 settings.api_prefix，health_prefix 缺省时同 prefix）：

    POST {prefix}/sessions                      创建会话
    GET  {prefix}/sessions                      列出会话
    GET  {prefix}/sessions/{session_id}         会话与消息日志
    POST {prefix}/sessions/{session_id}/messages 提交用户消息，返回 AI 消息
    GET  {health_prefix}/health                 存活探针，纯文本 "ok"

业务异常统一转换为 {"error": {"code", "message", "http_status"}} 信封。
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from devtalk_core.api.service import DevTalkService, check_health, get_default_service
from devtalk_core.config.settings import settings
from devtalk_core.domain.exceptions import BusinessError, InvalidRequest
from devtalk_core.domain.models import SessionStatus
from devtalk_core.infrastructure.logging.logger import logger


class MessagePayload(BaseModel):
    id: Optional[str] = None
    role: str = "USER"
    content: str
    status: Optional[str] = None


def _error_body(code: str, message: str, status_code: int, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "http_status": status_code,
            "details": details or {},
        }
    }


async def _business_error_handler(request: Request, exc: BusinessError) -> JSONResponse:
    logger.info(
        "Request rejected",
        extra={"extra": {"path": request.url.path, "error": exc.code, "http_status": exc.http_status}},
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=_error_body(exc.code, exc.message, exc.http_status, {k: str(v) for k, v in exc.extra.items()}),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_error_body(
            InvalidRequest.default_code,
            "request body failed validation",
            400,
            {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]},
        ),
    )


def register_error_handlers(target_app: FastAPI) -> None:
    target_app.add_exception_handler(BusinessError, _business_error_handler)
    target_app.add_exception_handler(RequestValidationError, _validation_error_handler)


def _service(request: Request) -> DevTalkService:
    return request.app.state.devtalk_service


def build_router() -> APIRouter:
    router = APIRouter()

    # 同步路由由 FastAPI 放入线程池执行，同一会话的并发提交在协调器内排队
    @router.post("/sessions")
    def create_session(request: Request):
        payload = _service(request).create_session()
        status_code = 201 if payload["status"] == SessionStatus.OK.value else 503
        return JSONResponse(status_code=status_code, content=payload)

    @router.get("/sessions/{session_id}")
    def get_session(session_id: str, request: Request):
        return _service(request).get_session(session_id)

    @router.post("/sessions/{session_id}/messages")
    def post_message(session_id: str, payload: MessagePayload, request: Request):
        return _service(request).post_message(session_id, payload.model_dump())

    @router.get("/sessions")
    def list_sessions(request: Request):
        return _service(request).list_sessions()

    return router


def build_health_router() -> APIRouter:
    router = APIRouter()

    @router.get("/health", response_class=PlainTextResponse)
    def health():
        return check_health()

    return router


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    app.state.devtalk_service.close()
    logger.info("Service closed")


def create_app(
    service: Optional[DevTalkService] = None,
    prefix: Optional[str] = None,
    health_prefix: Optional[str] = None,
) -> FastAPI:
    app = FastAPI(title="DevTalk", version="0.1.0", lifespan=_lifespan)
    app.state.devtalk_service = service or get_default_service()
    register_error_handlers(app)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )
    api_prefix = settings.api_prefix if prefix is None else prefix
    if health_prefix is None:
        health_prefix = settings.health_prefix if settings.health_prefix is not None else api_prefix
    app.include_router(build_router(), prefix=api_prefix)
    app.include_router(build_health_router(), prefix=health_prefix)
    return app
