from enum import Enum


class RiskCategory(str, Enum):
    """위험요소 분류 (닫힌 열거형)"""
    ACCIDENTAL = "accidental"
    CHEMICAL = "chemical"
    ERGONOMIC = "ergonomic"
    PHYSICAL = "physical"
    BIOLOGICAL = "biological"


class Severity(str, Enum):
    """심각도. 정의 순서가 곧 low < medium < high < critical 순서"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(Severity).index(self)


CATEGORY_LABELS = {
    RiskCategory.ACCIDENTAL: "Accidental",
    RiskCategory.CHEMICAL: "Chemical",
    RiskCategory.ERGONOMIC: "Ergonomic",
    RiskCategory.PHYSICAL: "Physical",
    RiskCategory.BIOLOGICAL: "Biological",
}

SEVERITY_LABELS = {
    Severity.LOW: "Low",
    Severity.MEDIUM: "Medium",
    Severity.HIGH: "High",
    Severity.CRITICAL: "Critical",
}
