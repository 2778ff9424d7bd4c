import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.core.exceptions import RiskMapError
from app.schemas.risk import RiskPositionUpdate
from app.services.drag_session import DragSession
from app.services.risk_map_service import RiskMapService

logger = logging.getLogger(__name__)

router = APIRouter()


def _user_id_from(websocket: WebSocket) -> int:
    raw = websocket.headers.get("x-user-id") or websocket.query_params.get("user_id")
    try:
        user_id = int(raw)
    except (TypeError, ValueError):
        return 0
    return user_id if user_id > 0 else 0


@router.websocket("/ws/maps/{map_id}/drag")
async def drag_ws(websocket: WebSocket, map_id: int):
    """
    드래그 중 위치 스트림 (risk_id, x, y 입력 → 즉시 위치 에코, DB 저장은 debounce)
    """
    user_id = _user_id_from(websocket)
    if not user_id:
        await websocket.close(code=4401)
        return

    app_state = websocket.app.state
    session_factory = app_state.session_factory

    def load_map():
        db = session_factory()
        try:
            return RiskMapService(db).get_map(map_id, user_id)
        finally:
            db.close()

    try:
        detail = await run_in_threadpool(load_map)
    except RiskMapError as e:
        logger.info(f"drag 세션 거부: map_id={map_id}, user_id={user_id} ({e.error_code})")
        await websocket.close(code=4404)
        return

    await websocket.accept()
    bounds = (detail.map.width, detail.map.height)
    known_risks = {risk.id for risk in detail.risks}

    def write_position(risk_id: int, x: int, y: int) -> None:
        db = session_factory()
        try:
            RiskMapService(db).update_position(user_id, risk_id, x, y)
        finally:
            db.close()

    async def persist(risk_id: int, x: int, y: int) -> None:
        await run_in_threadpool(write_position, risk_id, x, y)
        logger.info(f"위치 저장: risk_id={risk_id} ({x}, {y})")

    session = DragSession(persist, app_state.settings.position_debounce_ms)
    try:
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError:
                await websocket.send_json({"error": "message must be valid JSON"})
                continue
            if not isinstance(data, dict):
                await websocket.send_json({"error": "message must be a JSON object"})
                continue
            risk_id = data.get("risk_id")
            if not isinstance(risk_id, int) or risk_id not in known_risks:
                await websocket.send_json({"error": f"risk {risk_id} is not on map {map_id}"})
                continue
            try:
                position = RiskPositionUpdate(x=data.get("x"), y=data.get("y"))
            except ValidationError:
                await websocket.send_json({"error": "x and y must be non-negative integers"})
                continue
            if position.x > bounds[0] or position.y > bounds[1]:
                await websocket.send_json({"error": "position is outside the canvas"})
                continue

            x, y = session.move(risk_id, position.x, position.y)
            await websocket.send_json({"risk_id": risk_id, "x": x, "y": y, "pending": session.pending(risk_id)})
    except WebSocketDisconnect:
        logger.info(f"drag WebSocket 연결 종료 (map_id={map_id})")
    finally:
        session.close()
