from enum import Enum
from typing import Any, Dict, Optional


class Phase(str, Enum):
    """generate_and_populate 흐름의 단계 (어느 단계에서 실패했는지 구분)"""
    DIAGRAM_GENERATION = "diagram_generation"
    HAZARD_IDENTIFICATION = "hazard_identification"
    MAP_CREATION = "map_creation"
    HAZARD_INSERTION = "hazard_insertion"


class RiskMapError(Exception):
    """서비스 계층 예외의 공통 부모"""
    status_code = 500
    error_code = "risk_map_error"

    def __init__(self, message: str, phase: Optional[Phase] = None):
        super().__init__(message)
        self.message = message
        self.phase = phase

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "error": self.error_code,
            "phase": self.phase.value if self.phase else None,
        }


class InvalidInput(RiskMapError):
    status_code = 400
    error_code = "invalid_input"


class NotFound(RiskMapError):
    # 존재하지 않는 경우와 다른 사용자 소유인 경우를 구분하지 않음
    status_code = 404
    error_code = "not_found"


class GenerationFormatError(RiskMapError):
    status_code = 502
    error_code = "generation_format_error"


class GenerationUnavailable(RiskMapError):
    status_code = 503
    error_code = "generation_unavailable"


class PersistenceUnavailable(RiskMapError):
    status_code = 503
    error_code = "persistence_unavailable"


class PersistenceContractViolation(RiskMapError):
    status_code = 500
    error_code = "persistence_contract_violation"


class PartialPopulationError(RiskMapError):
    """
    위험요소 일괄 삽입 도중 실패한 경우.
    이미 저장된 맵과 위험요소는 롤백하지 않고 partial 결과로 함께 전달합니다.
    """
    status_code = 502
    error_code = "partial_population"

    def __init__(self, message: str, partial: Dict[str, Any], cause: RiskMapError):
        super().__init__(message, phase=Phase.HAZARD_INSERTION)
        self.partial = partial
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["cause"] = self.cause.error_code
        body["partial"] = self.partial
        return body
