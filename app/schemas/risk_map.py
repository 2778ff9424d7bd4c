from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from app.schemas.risk import RiskOut

# 맵 생성 요청용 (클라이언트 -> 서버)
class RiskMapCreate(BaseModel):
    title: str
    description: str
    diagram: str                                  # 평면도 SVG
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)

# 맵 조회 응답용
class RiskMapOut(BaseModel):
    id: int
    user_id: int
    title: str
    description: str
    diagram: str = Field(validation_alias="floor_plan_svg")
    width: int
    height: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# 맵 + 위험요소 전체
class RiskMapDetail(BaseModel):
    map: RiskMapOut
    risks: List[RiskOut]

class InsertResult(BaseModel):
    insert_id: int

# 설명 한 줄로 맵 생성 + 위험요소 자동 배치
class GenerateRequest(BaseModel):
    description: str
    title: Optional[str] = None

class GenerateResult(BaseModel):
    map_id: int
    diagram: str
    width: int
    height: int
    risks: List[RiskOut]
