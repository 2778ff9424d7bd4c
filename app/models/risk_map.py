from sqlalchemy import Column, Integer, String, DateTime, Text
from app.db.database import Base
from datetime import datetime

class RiskMap(Base):
    __tablename__ = "risk_maps"

    id = Column(Integer, primary_key=True, index=True)                 # 맵 고유 ID
    user_id = Column(Integer, nullable=False, index=True)              # 소유자
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)                         # 사용자가 입력한 작업장 설명
    floor_plan_svg = Column(Text, nullable=False)                      # 생성된 평면도 SVG
    width = Column(Integer, nullable=False, default=1000)
    height = Column(Integer, nullable=False, default=800)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # risks 테이블의 cascade 삭제는 DB가 아니라 서비스 계층(delete_map)에서 처리

