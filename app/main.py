import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api import ai_router, drag_ws_router, risk_map_router, risk_router
from app.core.config import Settings, get_settings
from app.core.exceptions import RiskMapError
from app.db.database import create_db_engine, create_session_factory, init_db
from app.services.generation_service import GenerationService, build_chat_model

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, generation_service: Optional[GenerationService] = None) -> FastAPI:
    """
    프로세스 진입점. DB 엔진/세션 팩토리와 생성 서비스를 여기서 만들고 app.state에 둡니다.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    engine = create_db_engine(settings.database_url)
    init_db(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # 종료 시 커넥션 풀 정리
        app.state.engine.dispose()

    app = FastAPI(title="Risk Map AI", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.generation_service = generation_service or GenerationService(build_chat_model(settings))

    @app.exception_handler(RiskMapError)
    async def risk_map_error_handler(request: Request, exc: RiskMapError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} 실패: {exc.error_code} ({exc.message})")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    app.include_router(risk_map_router.router)
    app.include_router(risk_router.router)
    app.include_router(ai_router.router)
    app.include_router(drag_ws_router.router)
    return app
