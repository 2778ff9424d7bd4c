from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.services.generation_service import GenerationService
from app.services.risk_map_service import RiskMapService


def get_current_user_id(x_user_id: Optional[int] = Header(default=None)) -> int:
    """인증 자체는 범위 밖. 상위 계층이 넣어준 X-User-Id 헤더를 사용"""
    if x_user_id is None or x_user_id <= 0:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


def get_generation_service(request: Request) -> GenerationService:
    return request.app.state.generation_service


def get_risk_map_service(
    request: Request,
    db: Session = Depends(get_db),
    generation: GenerationService = Depends(get_generation_service),
) -> RiskMapService:
    return RiskMapService(
        db,
        generation=generation,
        title_prefix=request.app.state.settings.export_title_prefix,
    )
