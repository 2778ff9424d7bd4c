import logging
from typing import Any, Callable, Dict, Tuple

from app.services.debounce import Debounced, debounce

logger = logging.getLogger(__name__)


class DragSession:
    """
    WebSocket 연결 하나의 드래그 상태.
    마커별 로컬 위치는 move() 즉시 갱신하고, 영구 저장은 마커별 debounce를 거칩니다.
    """

    def __init__(self, persist: Callable[[int, int, int], Any], delay_ms: int):
        self.persist = persist
        self.delay_ms = delay_ms
        self.positions: Dict[int, Tuple[int, int]] = {}
        self._debouncers: Dict[int, Debounced] = {}

    def _debouncer(self, risk_id: int) -> Debounced:
        if risk_id not in self._debouncers:
            self._debouncers[risk_id] = debounce(self.persist, self.delay_ms)
        return self._debouncers[risk_id]

    def move(self, risk_id: int, x: int, y: int) -> Tuple[int, int]:
        # 로컬 상태는 debounce와 무관하게 즉시 반영
        self.positions[risk_id] = (x, y)
        self._debouncer(risk_id)(risk_id, x, y)
        return self.positions[risk_id]

    def pending(self, risk_id: int) -> bool:
        debounced = self._debouncers.get(risk_id)
        return debounced is not None and debounced.pending

    def close(self) -> None:
        """종료된 연결에 대해 저장이 실행되지 않도록 예약된 호출을 모두 취소"""
        cancelled = 0
        for debounced in self._debouncers.values():
            if debounced.pending:
                cancelled += 1
            debounced.cancel()
        self._debouncers.clear()
        if cancelled:
            logger.info(f"drag session closed, {cancelled} pending write(s) cancelled")
