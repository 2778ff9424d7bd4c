import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.main import create_app
from app.services.generation_service import GenerationService

from factories import SVG, DEFAULT_HAZARDS, hazard, hazards_json, risk_fields


def create_map(client, headers, title="Office"):
    response = client.post(
        "/maps",
        json={"title": title, "description": "10-person office", "diagram": SVG, "width": 1000, "height": 800},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["insert_id"]


def add_risk(client, headers, map_id, **overrides):
    response = client.post("/risks", json={"map_id": map_id, **risk_fields(**overrides)}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["insert_id"]


class TestAuth:
    def test_missing_user_header_rejected(self, client):
        assert client.get("/maps").status_code == 401

    def test_non_positive_user_rejected(self, client):
        assert client.get("/maps", headers={"X-User-Id": "0"}).status_code == 401


class TestMapsApi:
    def test_list_empty(self, client, user1):
        response = client.get("/maps", headers=user1)
        assert response.status_code == 200
        assert response.json() == []

    def test_create_then_list(self, client, user1):
        map_id = create_map(client, user1)
        maps = client.get("/maps", headers=user1).json()
        assert [(m["id"], m["title"]) for m in maps] == [(map_id, "Office")]
        assert maps[0]["diagram"] == SVG

    def test_dimensions_default(self, client, user1):
        response = client.post(
            "/maps", json={"title": "T", "description": "d", "diagram": SVG}, headers=user1
        )
        map_id = response.json()["insert_id"]
        body = client.get(f"/maps/{map_id}", headers=user1).json()
        assert (body["map"]["width"], body["map"]["height"]) == (1000, 800)

    def test_empty_title_is_400(self, client, user1):
        response = client.post("/maps", json={"title": "", "description": "d", "diagram": SVG}, headers=user1)
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"

    def test_missing_field_is_422(self, client, user1):
        assert client.post("/maps", json={"title": "T"}, headers=user1).status_code == 422

    def test_foreign_and_missing_maps_look_the_same(self, client, user1, user2):
        map_id = create_map(client, user1)
        foreign = client.get(f"/maps/{map_id}", headers=user2)
        missing = client.get("/maps/999", headers=user2)
        assert foreign.status_code == missing.status_code == 404
        assert foreign.json().keys() == missing.json().keys()
        assert foreign.json()["error"] == missing.json()["error"] == "not_found"

    def test_delete_cascades(self, client, user1):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)

        assert client.delete(f"/maps/{map_id}", headers=user1).status_code == 204
        assert client.get(f"/maps/{map_id}", headers=user1).status_code == 404
        assert client.delete(f"/risks/{risk_id}", headers=user1).status_code == 404

    def test_export_pdf(self, client, user1):
        map_id = create_map(client, user1)
        add_risk(client, user1, map_id)
        response = client.get(f"/maps/{map_id}/export.pdf", headers=user1)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_export_foreign_map_404(self, client, user1, user2):
        map_id = create_map(client, user1)
        assert client.get(f"/maps/{map_id}/export.pdf", headers=user2).status_code == 404


class TestRisksApi:
    def test_add_and_read_back(self, client, user1):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)

        risks = client.get(f"/maps/{map_id}", headers=user1).json()["risks"]
        assert len(risks) == 1
        assert risks[0]["id"] == risk_id
        assert risks[0]["radius"] == 40
        assert risks[0]["category"] == "ergonomic"

    @pytest.mark.parametrize(
        "overrides",
        [{"color": "red"}, {"color": "#12345"}, {"category": "electrical"}, {"severity": "extreme"}, {"x": -1}, {"radius": 0}],
    )
    def test_malformed_risk_is_422(self, client, user1, overrides):
        map_id = create_map(client, user1)
        response = client.post("/risks", json={"map_id": map_id, **risk_fields(**overrides)}, headers=user1)
        assert response.status_code == 422

    def test_add_to_missing_map_is_400(self, client, user1):
        response = client.post("/risks", json={"map_id": 999, **risk_fields()}, headers=user1)
        assert response.status_code == 400

    def test_update_position(self, client, user1):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)
        before = client.get(f"/maps/{map_id}", headers=user1).json()["risks"][0]

        response = client.put(f"/risks/{risk_id}/position", json={"x": 200, "y": 200}, headers=user1)
        assert response.status_code == 204

        after = client.get(f"/maps/{map_id}", headers=user1).json()["risks"][0]
        assert (after["x"], after["y"]) == (200, 200)
        for field in ("label", "category", "severity", "description", "radius", "color"):
            assert after[field] == before[field]

    def test_update_position_outside_canvas_is_400(self, client, user1):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)
        response = client.put(f"/risks/{risk_id}/position", json={"x": 5000, "y": 10}, headers=user1)
        assert response.status_code == 400

    def test_patch_fields(self, client, user1):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)
        response = client.patch(f"/risks/{risk_id}", json={"severity": "low", "color": "#000000"}, headers=user1)
        assert response.status_code == 204
        risk = client.get(f"/maps/{map_id}", headers=user1).json()["risks"][0]
        assert (risk["severity"], risk["color"], risk["label"]) == ("low", "#000000", "Poor posture")

    def test_patch_unknown_field_is_422(self, client, user1):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)
        assert client.patch(f"/risks/{risk_id}", json={"map_id": 5}, headers=user1).status_code == 422

    def test_other_user_cannot_mutate(self, client, user1, user2):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)
        assert client.put(f"/risks/{risk_id}/position", json={"x": 1, "y": 1}, headers=user2).status_code == 404
        assert client.patch(f"/risks/{risk_id}", json={"label": "x"}, headers=user2).status_code == 404
        assert client.delete(f"/risks/{risk_id}", headers=user2).status_code == 404
        assert client.post("/risks", json={"map_id": map_id, **risk_fields()}, headers=user2).status_code == 400


class TestGenerationApi:
    def test_generate_populates_map(self, client, user1):
        response = client.post("/maps/generate", json={"description": "10-person office"}, headers=user1)
        assert response.status_code == 201
        body = response.json()
        assert len(body["risks"]) == 4
        assert len({(r["x"], r["y"]) for r in body["risks"]}) == 4

        detail = client.get(f"/maps/{body['map_id']}", headers=user1).json()
        assert [r["label"] for r in detail["risks"]] == [r["label"] for r in body["risks"]]

    def test_generate_diagram_format_error(self, make_client, user1):
        client = make_client("sorry, no drawing", DEFAULT_HAZARDS)
        response = client.post("/maps/generate", json={"description": "office"}, headers=user1)
        assert response.status_code == 502
        assert response.json()["phase"] == "diagram_generation"
        assert client.get("/maps", headers=user1).json() == []

    def test_generate_hazard_format_error(self, make_client, user1):
        client = make_client(SVG, hazards_json(hazard(count=50)))
        response = client.post("/maps/generate", json={"description": "office"}, headers=user1)
        assert response.status_code == 502
        assert response.json()["phase"] == "hazard_identification"

    def test_generation_unconfigured_is_503(self, make_client, user1):
        client = make_client()
        response = client.post("/ai/diagram", json={"description": "office"}, headers=user1)
        assert response.status_code == 503
        assert response.json()["error"] == "generation_unavailable"

    def test_ai_diagram(self, make_client, user1):
        client = make_client(f"```\n{SVG}\n```")
        response = client.post("/ai/diagram", json={"description": "office"}, headers=user1)
        assert response.status_code == 200
        body = response.json()
        assert body["diagram"] == SVG
        assert (body["width"], body["height"]) == (1000, 800)

    def test_ai_hazards(self, make_client, user1):
        client = make_client(DEFAULT_HAZARDS)
        response = client.post("/ai/hazards", json={"description": "office"}, headers=user1)
        assert response.status_code == 200
        assert [h["category"] for h in response.json()] == ["ergonomic", "physical", "accidental", "chemical"]

    def test_ai_empty_description_is_400(self, client, user1):
        assert client.post("/ai/hazards", json={"description": " "}, headers=user1).status_code == 400


class TestDragWebSocket:
    def test_positions_echo_immediately_and_persist_once(self, client, user1):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)

        with client.websocket_connect(f"/ws/maps/{map_id}/drag", headers=user1) as ws:
            for step in range(5):
                ws.send_json({"risk_id": risk_id, "x": 300 + step, "y": 400 + step})
                echo = ws.receive_json()
                assert (echo["x"], echo["y"]) == (300 + step, 400 + step)
                assert echo["pending"] is True
            time.sleep(0.5)

        risk = client.get(f"/maps/{map_id}", headers=user1).json()["risks"][0]
        assert (risk["x"], risk["y"]) == (304, 404)

    def test_unknown_risk_reports_error(self, client, user1):
        map_id = create_map(client, user1)
        with client.websocket_connect(f"/ws/maps/{map_id}/drag", headers=user1) as ws:
            ws.send_json({"risk_id": 12345, "x": 1, "y": 1})
            assert "error" in ws.receive_json()

    def test_out_of_canvas_rejected(self, client, user1):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)
        with client.websocket_connect(f"/ws/maps/{map_id}/drag", headers=user1) as ws:
            ws.send_json({"risk_id": risk_id, "x": 5000, "y": 1})
            assert "error" in ws.receive_json()

    def test_foreign_map_connection_refused(self, client, user1, user2):
        map_id = create_map(client, user1)
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect(f"/ws/maps/{map_id}/drag", headers=user2) as ws:
                ws.receive_json()

    @pytest.mark.parametrize(
        "send",
        [
            lambda ws, risk_id: ws.send_json([1, 2, 3]),
            lambda ws, risk_id: ws.send_json("drag"),
            lambda ws, risk_id: ws.send_text("not json"),
            lambda ws, risk_id: ws.send_json({"risk_id": [risk_id], "x": 1, "y": 1}),
        ],
    )
    def test_malformed_message_keeps_connection_open(self, client, user1, send):
        map_id = create_map(client, user1)
        risk_id = add_risk(client, user1, map_id)
        with client.websocket_connect(f"/ws/maps/{map_id}/drag", headers=user1) as ws:
            send(ws, risk_id)
            assert "error" in ws.receive_json()

            ws.send_json({"risk_id": risk_id, "x": 10, "y": 20})
            echo = ws.receive_json()
            assert (echo["risk_id"], echo["x"], echo["y"]) == (risk_id, 10, 20)


class TestLifecycle:
    def test_engine_disposed_on_shutdown(self, settings, monkeypatch):
        app = create_app(settings, generation_service=GenerationService(None))
        disposed = []
        monkeypatch.setattr(app.state.engine, "dispose", lambda: disposed.append(True))

        with TestClient(app) as client:
            assert client.get("/maps", headers={"X-User-Id": "1"}).status_code == 200
            assert disposed == []
        assert disposed == [True]
