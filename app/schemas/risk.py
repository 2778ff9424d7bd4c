from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime

from app.models.enums import RiskCategory, Severity

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

# 위험요소 추가 요청용
class RiskCreate(BaseModel):
    map_id: int
    category: RiskCategory
    severity: Severity
    label: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    radius: Optional[int] = Field(default=None, gt=0)   # 없으면 심각도 기준 기본값
    color: str = Field(pattern=HEX_COLOR_PATTERN)

# 드래그 위치 갱신
class RiskPositionUpdate(BaseModel):
    x: int = Field(ge=0)
    y: int = Field(ge=0)

# 부분 수정 (보낸 필드만 반영)
class RiskUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: Optional[RiskCategory] = None
    severity: Optional[Severity] = None
    label: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    x: Optional[int] = Field(default=None, ge=0)
    y: Optional[int] = Field(default=None, ge=0)
    radius: Optional[int] = Field(default=None, gt=0)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)

# 응답용
class RiskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    map_id: int
    category: RiskCategory = Field(validation_alias="type")
    severity: Severity
    label: str
    description: Optional[str] = None
    x: int = Field(validation_alias="x_position")
    y: int = Field(validation_alias="y_position")
    radius: int
    color: str
    created_at: datetime
    updated_at: datetime
