"""
위험요소 마커 배치 엔진

자동 식별된 위험요소 N개를 캔버스 위에 겹치지 않게 분산 배치하고,
분류/심각도에 따라 색상과 반지름을 결정합니다. I/O 없는 순수 함수들입니다.
"""
import math
import random
from typing import Optional, Tuple, Union

from app.models.enums import RiskCategory, Severity

PADDING = 100       # 그리드 영역의 캔버스 여백
EDGE_MARGIN = 50    # 마커가 캔버스 경계에 닿지 않도록 하는 최소 거리
JITTER = 20         # 각 축의 무작위 흔들림 범위 [-20, +20]

DEFAULT_COLOR = "#999999"

CATEGORY_COLORS = {
    RiskCategory.ACCIDENTAL: "#FF6B6B",
    RiskCategory.CHEMICAL: "#FFD93D",
    RiskCategory.ERGONOMIC: "#6BCB77",
    RiskCategory.PHYSICAL: "#4D96FF",
    RiskCategory.BIOLOGICAL: "#FF6B9D",
}

SEVERITY_RADII = {
    Severity.LOW: 20,
    Severity.MEDIUM: 30,
    Severity.HIGH: 40,
    Severity.CRITICAL: 50,
}


def grid_shape(total: int) -> Tuple[int, int]:
    """(columns, rows): 정사각형에 가까운 그리드"""
    columns = math.ceil(math.sqrt(total))
    rows = math.ceil(total / columns)
    return columns, rows


def grid_cell(index: int, total: int) -> Tuple[int, int]:
    columns, _ = grid_shape(total)
    return index % columns, index // columns


def grid_cell_center(index: int, total: int, canvas_width: int, canvas_height: int) -> Tuple[float, float]:
    """jitter 적용 전 index번째 셀의 중심 좌표"""
    if total < 1:
        raise ValueError("total must be >= 1")
    if not 0 <= index < total:
        raise ValueError(f"index {index} out of range for total {total}")

    columns, rows = grid_shape(total)
    cell_width = (canvas_width - PADDING * 2) / columns
    cell_height = (canvas_height - PADDING * 2) / rows
    col, row = grid_cell(index, total)

    x = PADDING + col * cell_width + cell_width / 2
    y = PADDING + row * cell_height + cell_height / 2
    return x, y


def _clamp(value: float, low: float, high: float) -> float:
    # 캔버스가 너무 작아 low > high 이면 중앙으로 모음
    if low > high:
        return (low + high) / 2
    return max(low, min(high, value))


def distributed_position(
    index: int,
    total: int,
    canvas_width: int,
    canvas_height: int,
    rng: Optional[random.Random] = None,
) -> Tuple[int, int]:
    """
    index번째 위험요소의 (x, y) 좌표를 계산합니다.
    셀 중심 + 축별 균등 jitter([-20, 20]) 후 [50, W-50] x [50, H-50]로 clamp.
    total == 0 은 호출부에서 걸러야 합니다.
    """
    rng = rng or random
    cx, cy = grid_cell_center(index, total, canvas_width, canvas_height)

    x = cx + rng.uniform(-JITTER, JITTER)
    y = cy + rng.uniform(-JITTER, JITTER)

    x = _clamp(x, EDGE_MARGIN, canvas_width - EDGE_MARGIN)
    y = _clamp(y, EDGE_MARGIN, canvas_height - EDGE_MARGIN)
    return int(round(x)), int(round(y))


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


def color_for_category(category: Union[RiskCategory, str]) -> str:
    """분류별 고정 색상. 알 수 없는 분류는 회색"""
    member = _coerce(RiskCategory, category)
    if member is None:
        return DEFAULT_COLOR
    return CATEGORY_COLORS[member]


def radius_for_severity(severity: Union[Severity, str]) -> int:
    """심각도별 반지름(px). 알 수 없는 심각도는 medium 반지름"""
    member = _coerce(Severity, severity)
    if member is None:
        return SEVERITY_RADII[Severity.MEDIUM]
    return SEVERITY_RADII[member]
