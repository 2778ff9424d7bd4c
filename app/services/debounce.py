"""
드래그 위치 갱신 debounce

드래그 중 초당 수십 번 들어오는 위치 변경을 마커당 한 번의 저장 호출로 합칩니다.
화면(로컬 상태) 갱신은 매 호출마다 즉시, DB 저장만 움직임이 멈춘 뒤 delay_ms 후에 실행됩니다.
"""
import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class Debounced:
    """
    debounce(fn, delay_ms)가 돌려주는 래퍼.
    호출할 때마다 이전 예약을 취소하고 새로 예약하므로, 마지막 호출의 인자만 fn에 전달됩니다.
    하나의 이벤트 루프에서만 사용합니다 (타이머 콜백끼리 끼어들지 않음).
    """

    def __init__(self, fn: Callable[..., Any], delay_ms: int, loop: Optional[asyncio.AbstractEventLoop] = None):
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self.fn = fn
        self.delay = delay_ms / 1000
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Future] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args, **kwargs) -> None:
        loop = self._loop or asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire, args, kwargs)

    def _fire(self, args: Tuple, kwargs: Dict) -> None:
        self._handle = None
        try:
            result = self.fn(*args, **kwargs)
        except Exception:
            logger.exception("debounced call failed")
            return
        # 코루틴 함수면 태스크로 실행
        if inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result)
            self._task.add_done_callback(_log_task_error)

    def cancel(self) -> None:
        """예약된(아직 실행 전) 호출을 취소. 소비자 종료 시 호출"""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


def _log_task_error(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(f"debounced task failed: {error}")


def debounce(fn: Callable[..., Any], delay_ms: int, loop: Optional[asyncio.AbstractEventLoop] = None) -> Debounced:
    return Debounced(fn, delay_ms, loop=loop)
