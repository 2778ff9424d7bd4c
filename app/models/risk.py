from sqlalchemy import Column, Integer, String, DateTime, Text, Enum
from app.db.database import Base
from app.models.enums import RiskCategory, Severity
from datetime import datetime


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Risk(Base):
    __tablename__ = "risks"

    id = Column(Integer, primary_key=True, index=True)
    map_id = Column(Integer, nullable=False, index=True)   # risk_maps.id 논리적 참조 (FK 제약 없음)
    type = Column(Enum(RiskCategory, name="risk_type", values_callable=_enum_values), nullable=False)
    severity = Column(Enum(Severity, name="risk_severity", values_callable=_enum_values), nullable=False)
    label = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    x_position = Column(Integer, nullable=False)
    y_position = Column(Integer, nullable=False)
    radius = Column(Integer, nullable=False, default=30)     # 원 반지름(px)
    color = Column(String(7), nullable=False)                # "#RRGGBB"
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
