"""
roomchat.main
~~~~~~~~~~~~~

应用入口 —— 显式构造房间注册表与连接处理器，挂载 Socket.IO、中间件与健康检查。
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import socketio
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from roomchat.api.deps import get_chat_server
from roomchat.api.socket import bind_handlers, create_socket_server
from roomchat.core.config import Settings, settings
from roomchat.core.logging import get_logger, setup_logging
from roomchat.schemas.api_response import ApiResponse
from roomchat.services.chat_server import ChatServer
from roomchat.services.message_relay import MessageRelay
from roomchat.services.presence import PresenceBroadcaster
from roomchat.services.room_registry import RoomRegistry

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


def create_app(config: Settings = settings) -> socketio.ASGIApp:
    """构造完整的 ASGI 应用。

    在接受任何连接之前按顺序创建 FastAPI、Socket.IO 服务器、
    ``RoomRegistry``、广播器、消息转发器和 ``ChatServer``，
    并将 ``ChatServer`` 挂在 ``app.state.chat_server`` 上。

    Returns:
        Socket.IO 在 ``SOCKETIO_PATH`` 处理实时连接，其余请求交给 FastAPI。
    """
    sio = create_socket_server(config)
    registry = RoomRegistry(config.USER_COLORS)
    broadcaster = PresenceBroadcaster(registry, sio)
    relay = MessageRelay(registry, broadcaster, config.FALLBACK_COLOR)
    chat_server = ChatServer(registry, broadcaster, relay)
    bind_handlers(sio, chat_server)

    # ── 生命周期 ──────────────────────────────────────────────────────
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """应用生命周期钩子，仅在 worker 启动/关闭时各执行一次。"""
        logger.info(
            "🚀 应用已启动 | env=%s | debug=%s | log_level=%s | socket_path=/%s",
            config.ENVIRONMENT,
            config.debug,
            config.effective_log_level,
            config.SOCKETIO_PATH,
        )
        yield
        chat_server.shutdown()
        logger.info("👋 应用已关闭")

    app: FastAPI = FastAPI(
        title=config.PROJECT_NAME,
        description="实时房间聊天后端",
        version=config.VERSION,
        debug=config.debug,
        lifespan=lifespan,
    )
    app.state.chat_server = chat_server

    # ── CORS 中间件 ───────────────────────────────────────────────────
    if config.allow_cors_all_origins:
        # dev / test 环境：允许所有来源，方便本地调试
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.CORS_ALLOWED_ORIGINS,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    # ── 全局异常处理器 ────────────────────────────────────────────────
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
        logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
        # 非 prod 环境返回详细错误信息，prod 环境隐藏内部细节
        detail = str(exc) if not config.is_prod else "服务器内部错误"
        response = ApiResponse.fail(msg=detail, code=500, data=None)
        return JSONResponse(
            status_code=500,
            content=response.model_dump(),
        )

    @app.get("/health", tags=["System"])
    async def health_check(chat: ChatServer = Depends(get_chat_server)) -> JSONResponse:
        """验证服务是否正常运行。

        Returns:
            包含服务状态和房间统计的 JSON 响应。
        """
        response = ApiResponse.ok(
            data={
                "status": "ok",
                "environment": config.ENVIRONMENT,
                "debug": config.debug,
                "log_level": config.effective_log_level,
                "rooms": chat.registry.room_count,
                "online": chat.registry.online_count,
            },
        )
        return JSONResponse(content=response.model_dump())

    return socketio.ASGIApp(sio, other_asgi_app=app, socketio_path=config.SOCKETIO_PATH)


app: socketio.ASGIApp = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "roomchat.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,  # 仅 dev 环境开启热重载
        log_level=settings.effective_log_level.lower(),
    )
