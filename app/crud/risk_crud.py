from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.crud.base import persistence_guard, require_identity
from app.models.enums import RiskCategory, Severity
from app.models.risk import Risk

# 스키마 필드명 -> 컬럼명
FIELD_COLUMNS = {
    "category": "type",
    "severity": "severity",
    "label": "label",
    "description": "description",
    "x": "x_position",
    "y": "y_position",
    "radius": "radius",
    "color": "color",
}

# 위험요소 추가
def create_risk(
    db: Session,
    map_id: int,
    category: RiskCategory,
    severity: Severity,
    label: str,
    description: Optional[str],
    x: int,
    y: int,
    radius: int,
    color: str,
) -> int:
    with persistence_guard(db, "add risk"):
        now = datetime.utcnow()
        risk = Risk(
            map_id=map_id,
            type=category,
            severity=severity,
            label=label,
            description=description,
            x_position=x,
            y_position=y,
            radius=radius,
            color=color,
            created_at=now,
            updated_at=now,
        )
        db.add(risk)
        db.commit()
        db.refresh(risk)
    return require_identity(risk, "add risk")

def get_risk(db: Session, risk_id: int) -> Optional[Risk]:
    with persistence_guard(db, "read risk"):
        return db.query(Risk).filter(Risk.id == risk_id).first()

# 맵에 속한 위험요소 (삽입 순)
def get_map_risks(db: Session, map_id: int) -> List[Risk]:
    with persistence_guard(db, "list risks"):
        return db.query(Risk).filter(Risk.map_id == map_id).order_by(Risk.id.asc()).all()

# 부분 수정 (fields는 스키마 필드명 기준)
def update_risk(db: Session, risk_id: int, fields: Dict[str, Any]) -> int:
    values = {FIELD_COLUMNS[name]: value for name, value in fields.items()}
    if not values:
        return 0
    values["updated_at"] = datetime.utcnow()
    with persistence_guard(db, "update risk"):
        updated = db.query(Risk).filter(Risk.id == risk_id).update(values, synchronize_session=False)
        db.commit()
    return updated

# 드래그 위치 갱신
def update_risk_position(db: Session, risk_id: int, x: int, y: int) -> int:
    return update_risk(db, risk_id, {"x": x, "y": y})

def delete_risk(db: Session, risk_id: int) -> int:
    with persistence_guard(db, "delete risk"):
        deleted = db.query(Risk).filter(Risk.id == risk_id).delete(synchronize_session=False)
        db.commit()
    return deleted

# 맵의 위험요소 전체 삭제 (맵 삭제 1단계)
def delete_map_risks(db: Session, map_id: int) -> int:
    with persistence_guard(db, "delete map risks"):
        deleted = db.query(Risk).filter(Risk.map_id == map_id).delete(synchronize_session=False)
        db.commit()
    return deleted
