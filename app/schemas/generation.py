from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from typing import Annotated, List

from app.models.enums import RiskCategory, Severity

class DescriptionRequest(BaseModel):
    description: str

# 평면도 생성 결과
class DiagramResult(BaseModel):
    diagram: str
    width: int = 1000
    height: int = 800
    elements: List[str] = []        # <text> 라벨 (배치 참고용)

# LLM이 식별한 위험요소 1건
class IdentifiedHazard(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: RiskCategory
    severity: Severity
    # 공백만 있는 라벨은 저장 단계가 아니라 응답 검증 단계에서 거부
    label: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    description: str
    suggested_count: int = Field(ge=1, le=10)

class HazardList(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hazards: List[IdentifiedHazard]
