"""
맵/위험요소 서비스

사용자가 입력한 작업장 설명을 평면도 + 위험요소 집합으로 만들어 저장하는 단일 진입점.
모든 조회/변경은 호출자의 user_id 기준으로 소유권을 확인합니다.
다단계 쓰기(위험요소 삭제 -> 맵 삭제, 위험요소 일괄 삽입)는 트랜잭션으로 묶지 않으며,
중간 실패 시 부분 상태가 남는 것을 그대로 노출합니다.
"""
import logging
import random
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import (
    GenerationUnavailable,
    InvalidInput,
    NotFound,
    PartialPopulationError,
    Phase,
    RiskMapError,
)
from app.crud import risk_crud, risk_map_crud
from app.models.enums import RiskCategory, Severity
from app.models.risk import Risk
from app.models.risk_map import RiskMap
from app.schemas.risk import RiskOut
from app.schemas.risk_map import GenerateResult, RiskMapDetail, RiskMapOut
from app.services.generation_service import GenerationService
from app.services.layout import color_for_category, distributed_position, radius_for_severity

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1000
DEFAULT_HEIGHT = 800
DEFAULT_TITLE = "Risk Map"


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise InvalidInput(f"{field} must not be empty")
    return value


class RiskMapService:
    def __init__(
        self,
        db: Session,
        generation: Optional[GenerationService] = None,
        rng: Optional[random.Random] = None,
        title_prefix: str = DEFAULT_TITLE,
    ):
        self.db = db
        self.generation = generation
        self.rng = rng
        self.title_prefix = title_prefix

    # ── 소유권 확인 ──────────────────────────────────────────

    def _owned_map(self, map_id: int, owner_id: int) -> RiskMap:
        risk_map = risk_map_crud.get_risk_map(self.db, map_id)
        # 존재하지 않는 맵과 남의 맵을 같은 NotFound로 처리
        if risk_map is None or risk_map.user_id != owner_id:
            raise NotFound(f"Risk map {map_id} not found")
        return risk_map

    def _owned_risk(self, risk_id: int, owner_id: int) -> Risk:
        risk = risk_crud.get_risk(self.db, risk_id)
        if risk is None:
            raise NotFound(f"Risk {risk_id} not found")
        risk_map = risk_map_crud.get_risk_map(self.db, risk.map_id)
        if risk_map is None or risk_map.user_id != owner_id:
            raise NotFound(f"Risk {risk_id} not found")
        return risk

    @staticmethod
    def _check_bounds(risk_map: RiskMap, x: int, y: int) -> None:
        if not (0 <= x <= risk_map.width and 0 <= y <= risk_map.height):
            raise InvalidInput(
                f"Position ({x}, {y}) is outside the canvas {risk_map.width}x{risk_map.height}"
            )

    # ── 맵 ──────────────────────────────────────────────────

    def create_map(
        self,
        owner_id: int,
        title: str,
        description: str,
        diagram: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> int:
        _require_text(title, "title")
        _require_text(diagram, "diagram")
        width = width or DEFAULT_WIDTH
        height = height or DEFAULT_HEIGHT
        if width <= 0 or height <= 0:
            raise InvalidInput("width and height must be positive")

        map_id = risk_map_crud.create_risk_map(
            self.db,
            user_id=owner_id,
            title=title,
            description=description or "",
            floor_plan_svg=diagram,
            width=width,
            height=height,
        )
        logger.info(f"맵 생성 완료: map_id={map_id}, user_id={owner_id}")
        return map_id

    def get_map(self, map_id: int, owner_id: int) -> RiskMapDetail:
        risk_map = self._owned_map(map_id, owner_id)
        risks = risk_crud.get_map_risks(self.db, map_id)
        return RiskMapDetail(
            map=RiskMapOut.model_validate(risk_map),
            risks=[RiskOut.model_validate(r) for r in risks],
        )

    def list_maps(self, owner_id: int) -> List[RiskMapOut]:
        return [RiskMapOut.model_validate(m) for m in risk_map_crud.get_user_risk_maps(self.db, owner_id)]

    def delete_map(self, map_id: int, owner_id: int) -> None:
        self._owned_map(map_id, owner_id)
        # 순서 중요: 위험요소 먼저, 그 다음 맵 (DB가 cascade를 보장하지 않음)
        removed = risk_crud.delete_map_risks(self.db, map_id)
        risk_map_crud.delete_risk_map(self.db, map_id)
        logger.info(f"맵 삭제 완료: map_id={map_id}, 삭제된 위험요소 {removed}건")

    # ── 위험요소 ────────────────────────────────────────────

    def add_risk(
        self,
        owner_id: int,
        map_id: int,
        category: RiskCategory,
        severity: Severity,
        label: str,
        x: int,
        y: int,
        color: str,
        description: Optional[str] = None,
        radius: Optional[int] = None,
    ) -> int:
        risk_map = risk_map_crud.get_risk_map(self.db, map_id)
        if risk_map is None or risk_map.user_id != owner_id:
            raise InvalidInput(f"Risk map {map_id} does not exist")
        _require_text(label, "label")
        self._check_bounds(risk_map, x, y)
        if radius is None:
            radius = radius_for_severity(severity)
        elif radius <= 0:
            raise InvalidInput("radius must be positive")

        risk_id = risk_crud.create_risk(
            self.db,
            map_id=map_id,
            category=category,
            severity=severity,
            label=label,
            description=description,
            x=x,
            y=y,
            radius=radius,
            color=color,
        )
        risk_map_crud.touch_risk_map(self.db, map_id)
        return risk_id

    def update_position(self, owner_id: int, risk_id: int, x: int, y: int) -> None:
        risk = self._owned_risk(risk_id, owner_id)
        risk_map = risk_map_crud.get_risk_map(self.db, risk.map_id)
        self._check_bounds(risk_map, x, y)
        risk_crud.update_risk_position(self.db, risk_id, x, y)
        risk_map_crud.touch_risk_map(self.db, risk.map_id)

    def update_risk(self, owner_id: int, risk_id: int, fields: Dict[str, Any]) -> None:
        risk = self._owned_risk(risk_id, owner_id)
        if not fields:
            return
        for name, value in fields.items():
            # description만 null 허용
            if value is None and name != "description":
                raise InvalidInput(f"{name} must not be null")
        if "label" in fields:
            _require_text(fields["label"], "label")
        if "x" in fields or "y" in fields:
            risk_map = risk_map_crud.get_risk_map(self.db, risk.map_id)
            self._check_bounds(
                risk_map, fields.get("x", risk.x_position), fields.get("y", risk.y_position)
            )
        map_id = risk.map_id
        risk_crud.update_risk(self.db, risk_id, fields)
        risk_map_crud.touch_risk_map(self.db, map_id)

    def delete_risk(self, owner_id: int, risk_id: int) -> None:
        risk = self._owned_risk(risk_id, owner_id)
        map_id = risk.map_id
        risk_crud.delete_risk(self.db, risk_id)
        risk_map_crud.touch_risk_map(self.db, map_id)

    # ── 생성 + 자동 배치 ────────────────────────────────────

    def generate_and_populate(
        self, owner_id: int, description: str, title: Optional[str] = None
    ) -> GenerateResult:
        """
        1) 평면도 생성 2) 위험요소 식별 3) 맵 저장 4) 위험요소를 순서대로 배치/저장.
        모든 호출은 순차 실행되며 재시도하지 않습니다.
        4단계 도중 실패하면 이미 저장된 결과를 PartialPopulationError에 담아 던집니다.
        """
        _require_text(description, "description")
        if self.generation is None:
            raise GenerationUnavailable("Generation service is not available", phase=Phase.DIAGRAM_GENERATION)

        logger.info(f"평면도 생성 시작: user_id={owner_id}")
        diagram = self.generation.generate_diagram(description)

        logger.info("위험요소 식별 시작")
        hazards = self.generation.identify_hazards(description)

        try:
            map_id = self.create_map(
                owner_id,
                title=title or f"{self.title_prefix} - {date.today().isoformat()}",
                description=description,
                diagram=diagram.diagram,
                width=diagram.width,
                height=diagram.height,
            )
        except RiskMapError as e:
            e.phase = Phase.MAP_CREATION
            raise

        total = len(hazards)
        inserted: List[RiskOut] = []
        for index, hazard in enumerate(hazards):
            x, y = distributed_position(index, total, diagram.width, diagram.height, rng=self.rng)
            try:
                risk_id = self.add_risk(
                    owner_id,
                    map_id,
                    category=hazard.category,
                    severity=hazard.severity,
                    label=hazard.label,
                    description=hazard.description,
                    x=x,
                    y=y,
                    radius=radius_for_severity(hazard.severity),
                    color=color_for_category(hazard.category),
                )
                inserted_risk = RiskOut.model_validate(risk_crud.get_risk(self.db, risk_id))
            except RiskMapError as e:
                e.phase = Phase.HAZARD_INSERTION
                logger.error(f"위험요소 삽입 실패 ({index + 1}/{total}): {e.message}")
                partial = {
                    "map_id": map_id,
                    "diagram": diagram.diagram,
                    "width": diagram.width,
                    "height": diagram.height,
                    "risks": [r.model_dump(mode="json") for r in inserted],
                }
                raise PartialPopulationError(
                    f"Inserted {len(inserted)} of {total} hazards before failure: {e.message}",
                    partial=partial,
                    cause=e,
                ) from e
            inserted.append(inserted_risk)

        logger.info(f"맵 생성 완료: map_id={map_id}, 위험요소 {len(inserted)}건")
        return GenerateResult(
            map_id=map_id,
            diagram=diagram.diagram,
            width=diagram.width,
            height=diagram.height,
            risks=inserted,
        )
