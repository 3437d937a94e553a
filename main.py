"""
Screen Designer 主入口：启动 FastAPI 后端服务。
"""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from designer import api
from designer.binding import BindingEngine
from designer.catalog import TemplateCatalog, builtin_templates
from designer.client import DesignerClient
from designer.config_loader import load_config
from designer.rendering import DesignRenderer, FontBook
from designer.script.sandbox import ScriptSandbox

# 日志配置
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan 事件处理：启动时载入模板目录，关闭时清理会话与 HTTP 客户端。"""
    catalog = await TemplateCatalog.load(app.state.client, app.state.config)
    logger.info(f"模板目录就绪：{len(catalog)} 个模板")
    app.state.catalog = catalog
    api.set_catalog(catalog)

    yield  # 应用运行中

    logger.info("正在关闭...")
    await api.close_sessions()
    await app.state.client.aclose()


def create_app() -> FastAPI:
    """创建并配置 FastAPI 应用。"""
    app = FastAPI(
        title="Screen Designer API",
        description="Compose e-ink screen designs from widgets, data bindings and drawings",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── 初始化核心组件 ────────────────────────────────────────
    logger.info("正在加载配置...")
    config = load_config()
    if config.backend.base_url:
        logger.info(f"设计存储后端：{config.backend.base_url}")
    else:
        logger.info("未配置后端，使用离线模式")

    client = DesignerClient(config.backend.base_url, timeout=config.backend.timeout)
    sandbox = ScriptSandbox(timeout_ms=config.script.timeout_ms)
    binding = BindingEngine(client, sandbox)
    renderer = DesignRenderer(
        binding,
        client,
        fonts=FontBook(config.render.fonts_dir),
        local_timezone=config.render.local_timezone,
        default_timezone=config.render.default_timezone,
    )

    # 启动前先用内置目录，lifespan 中替换为远程目录
    api.init_api(
        config=config,
        catalog=TemplateCatalog(config.templates or builtin_templates()),
        client=client,
        binding=binding,
        renderer=renderer,
    )

    # 注册 API 路由
    app.include_router(api.router)

    # 将组件存到 app.state，供 lifespan 访问
    app.state.config = config
    app.state.client = client

    return app


def main():
    """主入口。"""
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8500

    logger.info(f"启动 Screen Designer 后端 (port={port})...")

    app = create_app()

    uvicorn.run(
        app,
        host="127.0.0.1",
        port=port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
