from typing import List

from fastapi import APIRouter, Depends, Request, Response

from app.api.deps import get_current_user_id, get_risk_map_service
from app.schemas.risk_map import (
    GenerateRequest,
    GenerateResult,
    InsertResult,
    RiskMapCreate,
    RiskMapDetail,
    RiskMapOut,
)
from app.services.map_pdf import render_map_pdf
from app.services.risk_map_service import RiskMapService

router = APIRouter(prefix="/maps", tags=["Risk Maps"])

@router.get("", response_model=List[RiskMapOut])
def list_maps(
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    """로그인한 사용자의 맵 목록 (생성 순)"""
    return service.list_maps(user_id)

@router.post("", response_model=InsertResult, status_code=201)
def create_map(
    payload: RiskMapCreate,
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    map_id = service.create_map(
        user_id,
        title=payload.title,
        description=payload.description,
        diagram=payload.diagram,
        width=payload.width,
        height=payload.height,
    )
    return InsertResult(insert_id=map_id)

@router.post("/generate", response_model=GenerateResult, status_code=201)
def generate_map(
    payload: GenerateRequest,
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    """
    설명 한 줄로 평면도 생성 → 위험요소 식별 → 맵 저장 → 위험요소 자동 배치.
    위험요소 저장 도중 실패하면 502와 함께 이미 저장된 부분 결과를 반환합니다.
    """
    return service.generate_and_populate(user_id, payload.description, title=payload.title)

@router.get("/{map_id}", response_model=RiskMapDetail)
def get_map(
    map_id: int,
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    return service.get_map(map_id, user_id)

@router.delete("/{map_id}", status_code=204)
def delete_map(
    map_id: int,
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    service.delete_map(map_id, user_id)
    return Response(status_code=204)

@router.get("/{map_id}/export.pdf")
def export_map_pdf(
    map_id: int,
    request: Request,
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    detail = service.get_map(map_id, user_id)
    pdf = render_map_pdf(detail, footer_title=request.app.state.settings.export_title_prefix)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="risk-map-{map_id}.pdf"'},
    )
