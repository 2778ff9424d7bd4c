from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.crud.base import persistence_guard, require_identity
from app.models.risk_map import RiskMap

# 맵 생성
def create_risk_map(
    db: Session,
    user_id: int,
    title: str,
    description: str,
    floor_plan_svg: str,
    width: int,
    height: int,
) -> int:
    with persistence_guard(db, "create risk map"):
        now = datetime.utcnow()
        risk_map = RiskMap(
            user_id=user_id,
            title=title,
            description=description,
            floor_plan_svg=floor_plan_svg,
            width=width,
            height=height,
            created_at=now,
            updated_at=now,
        )
        db.add(risk_map)
        db.commit()
        db.refresh(risk_map)
    return require_identity(risk_map, "create risk map")

# 맵 단건 조회 (소유자 확인은 서비스 계층에서)
def get_risk_map(db: Session, map_id: int) -> Optional[RiskMap]:
    with persistence_guard(db, "read risk map"):
        return db.query(RiskMap).filter(RiskMap.id == map_id).first()

# 사용자의 맵 목록 (생성 순)
def get_user_risk_maps(db: Session, user_id: int) -> List[RiskMap]:
    with persistence_guard(db, "list risk maps"):
        return (
            db.query(RiskMap)
            .filter(RiskMap.user_id == user_id)
            .order_by(RiskMap.created_at.asc(), RiskMap.id.asc())
            .all()
        )

# updated_at 갱신 (위험요소 변경 시)
def touch_risk_map(db: Session, map_id: int) -> None:
    with persistence_guard(db, "touch risk map"):
        db.query(RiskMap).filter(RiskMap.id == map_id).update(
            {RiskMap.updated_at: datetime.utcnow()}, synchronize_session=False
        )
        db.commit()

# 맵 삭제 (위험요소는 호출 전에 먼저 삭제되어 있어야 함)
def delete_risk_map(db: Session, map_id: int) -> int:
    with persistence_guard(db, "delete risk map"):
        deleted = db.query(RiskMap).filter(RiskMap.id == map_id).delete(synchronize_session=False)
        db.commit()
    return deleted
