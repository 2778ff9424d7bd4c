from fastapi import APIRouter, Depends, Response

from app.api.deps import get_current_user_id, get_risk_map_service
from app.schemas.risk import RiskCreate, RiskPositionUpdate, RiskUpdate
from app.schemas.risk_map import InsertResult
from app.services.risk_map_service import RiskMapService

router = APIRouter(prefix="/risks", tags=["Risks"])

# 위험요소 수동 추가
@router.post("", response_model=InsertResult, status_code=201)
def add_risk(
    payload: RiskCreate,
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    risk_id = service.add_risk(
        user_id,
        payload.map_id,
        category=payload.category,
        severity=payload.severity,
        label=payload.label,
        description=payload.description,
        x=payload.x,
        y=payload.y,
        radius=payload.radius,
        color=payload.color,
    )
    return InsertResult(insert_id=risk_id)

# 드래그 종료 후 위치 저장
@router.put("/{risk_id}/position", status_code=204)
def update_position(
    risk_id: int,
    payload: RiskPositionUpdate,
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    service.update_position(user_id, risk_id, payload.x, payload.y)
    return Response(status_code=204)

@router.patch("/{risk_id}", status_code=204)
def update_risk(
    risk_id: int,
    payload: RiskUpdate,
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    service.update_risk(user_id, risk_id, payload.model_dump(exclude_unset=True))
    return Response(status_code=204)

@router.delete("/{risk_id}", status_code=204)
def delete_risk(
    risk_id: int,
    user_id: int = Depends(get_current_user_id),
    service: RiskMapService = Depends(get_risk_map_service),
):
    service.delete_risk(user_id, risk_id)
    return Response(status_code=204)
