from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user_id, get_generation_service
from app.core.exceptions import InvalidInput
from app.schemas.generation import DescriptionRequest, DiagramResult, IdentifiedHazard
from app.services.generation_service import GenerationService

router = APIRouter(prefix="/ai", tags=["AI"])

def _require_description(payload: DescriptionRequest) -> str:
    if not payload.description.strip():
        raise InvalidInput("description must not be empty")
    return payload.description

@router.post("/diagram", response_model=DiagramResult)
def generate_diagram(
    payload: DescriptionRequest,
    user_id: int = Depends(get_current_user_id),
    generation: GenerationService = Depends(get_generation_service),
):
    """작업장 설명으로 SVG 평면도 생성"""
    return generation.generate_diagram(_require_description(payload))

@router.post("/hazards", response_model=List[IdentifiedHazard])
def identify_hazards(
    payload: DescriptionRequest,
    user_id: int = Depends(get_current_user_id),
    generation: GenerationService = Depends(get_generation_service),
):
    """작업장 설명으로 위험요소 목록 식별"""
    return generation.identify_hazards(_require_description(payload))
