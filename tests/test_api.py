import os
import sys

from fastapi import FastAPI
from fastapi.testclient import TestClient

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from designer import api
from designer.binding import BindingEngine
from designer.catalog import TemplateCatalog, builtin_templates
from designer.config_loader import DesignerConfig
from designer.rendering import DesignRenderer, FontBook

CATALOG = TemplateCatalog(builtin_templates())
TEXT_ID = CATALOG.by_name("text").id
RECT_ID = CATALOG.by_name("rectangle").id


def _app() -> FastAPI:
    binding = BindingEngine()
    api.init_api(
        config=DesignerConfig(),
        catalog=CATALOG,
        client=None,
        binding=binding,
        renderer=DesignRenderer(binding, None, FontBook(), local_timezone="UTC"),
    )
    app = FastAPI()
    app.include_router(api.router)
    return app


def _open(client: TestClient, **design) -> str:
    response = client.post("/api/sessions", json={"design": {"width": 200, "height": 100, **design}})
    assert response.status_code == 200
    return response.json()["id"]


def test_templates_listing():
    with TestClient(_app()) as client:
        templates = client.get("/api/templates").json()
        assert templates[0]["name"] == "clock"
        assert "minWidth" in templates[0]
        assert "layout" in client.get("/api/templates/categories").json()


def test_widget_lifecycle():
    with TestClient(_app()) as client:
        sid = _open(client)

        widget = client.post(f"/api/sessions/{sid}/widgets", json={"templateId": TEXT_ID, "x": 5, "y": 5}).json()
        assert widget["id"] == -1
        assert widget["templateId"] == TEXT_ID

        patched = client.patch(f"/api/sessions/{sid}/widgets/-1", json={"rotation": 450})
        assert patched.json()["rotation"] == 90

        assert client.patch(f"/api/sessions/{sid}/widgets/-1", json={"bogus": 1}).status_code == 400
        assert client.patch(f"/api/sessions/{sid}/widgets/-9", json={"x": 1}).status_code == 404

        client.post(f"/api/sessions/{sid}/select", json={"widgetId": -1})
        assert client.delete(f"/api/sessions/{sid}/widgets/-1").status_code == 200
        assert client.get(f"/api/sessions/{sid}").json()["selectedId"] is None

        assert client.delete(f"/api/sessions/{sid}").status_code == 200
        assert client.get(f"/api/sessions/{sid}").status_code == 404


def test_copy_paste_and_payload():
    with TestClient(_app()) as client:
        sid = _open(client)
        client.post(f"/api/sessions/{sid}/widgets", json={"templateId": TEXT_ID, "x": 100, "y": 0})
        client.post(f"/api/sessions/{sid}/widgets/-1/copy")
        pasted = client.post(f"/api/sessions/{sid}/paste").json()

        # 150 wide on a 200 wide canvas
        assert (pasted["x"], pasted["y"]) == (50, 20)

        payload = client.get(f"/api/sessions/{sid}/payload").json()
        assert len(payload["widgets"]) == 2
        assert all("id" not in w and "template" not in w for w in payload["widgets"])
        client.delete(f"/api/sessions/{sid}")


def test_unknown_session_and_template():
    with TestClient(_app()) as client:
        assert client.get("/api/sessions/nope").status_code == 404
        sid = _open(client)
        assert client.post(f"/api/sessions/{sid}/widgets", json={"templateId": 999}).status_code == 404
        assert client.post(f"/api/sessions/{sid}/widgets", json={}).status_code == 422
        client.delete(f"/api/sessions/{sid}")


def test_save_without_backend():
    with TestClient(_app()) as client:
        sid = _open(client)
        assert client.post(f"/api/sessions/{sid}/save").status_code == 503
        client.delete(f"/api/sessions/{sid}")


def test_gesture_routes():
    with TestClient(_app()) as client:
        sid = _open(client, width=800, height=480)
        client.post(f"/api/sessions/{sid}/widgets", json={"templateId": RECT_ID, "x": 50, "y": 50})

        dragged = client.post(f"/api/sessions/{sid}/widgets/-1/drag", json={"pointerStart": [0, 0], "pointer": [-47, -48]}).json()
        assert (dragged["widget"]["x"], dragged["widget"]["y"]) == (0, 0)
        assert dragged["guides"]["vertical"] == [0]

        resized = client.post(
            f"/api/sessions/{sid}/widgets/-1/resize",
            json={"pointerStart": [0, 0], "pointer": [10, 10], "handle": "se"},
        ).json()
        assert (resized["width"], resized["height"]) == (40, 40)

        rotated = client.post(
            f"/api/sessions/{sid}/widgets/-1/rotate",
            json={"pointerStart": [40, 20], "pointer": [20, 40]},
        ).json()
        assert rotated["rotation"] == 90

        bad = client.post(f"/api/sessions/{sid}/widgets/-1/drag", json={"pointerStart": [0], "pointer": [1, 1]})
        assert bad.status_code == 422
        client.delete(f"/api/sessions/{sid}")


def test_preview_and_drawing():
    with TestClient(_app()) as client:
        sid = _open(client, background="#ffffff")
        client.post(f"/api/sessions/{sid}/widgets", json={"templateId": RECT_ID, "x": 0, "y": 0})

        preview = client.post(f"/api/sessions/{sid}/preview")
        assert preview.status_code == 200
        assert preview.headers["content-type"] == "image/png"
        assert preview.content.startswith(b"\x89PNG")

        stroke = client.post(f"/api/sessions/{sid}/drawing/stroke", json={"points": [[1, 1], [50, 50]], "size": 3}).json()
        assert stroke == {"position": 2, "canUndo": True, "canRedo": False}

        undo = client.post(f"/api/sessions/{sid}/drawing/undo").json()
        assert undo == {"changed": True, "canUndo": False, "canRedo": True}

        fill = client.post(f"/api/sessions/{sid}/drawing/fill", json={"x": 10, "y": 10, "color": "#ff0000"}).json()
        assert fill == {"changed": True, "position": 2}
        assert client.post(f"/api/sessions/{sid}/drawing/redo").json()["changed"] is False

        assert client.get(f"/api/sessions/{sid}/drawing.png").content.startswith(b"\x89PNG")
        client.delete(f"/api/sessions/{sid}")


def test_binding_and_script_routes():
    with TestClient(_app()) as client:
        value = client.post("/api/bindings/resolve", json={"data": {"a": {"b": [{"c": 5}]}}, "path": "a.b[0].c"})
        assert value.json() == {"value": 5}

        text = client.post("/api/bindings/interpolate", json={"template": "Hi {{name}}", "variables": {"name": "Sam"}})
        assert text.json() == {"result": "Hi Sam"}

        content = client.post("/api/bindings/content", json={
            "displayType": "list",
            "config": {"listStyle": "dash"},
            "data": ["a", "b"],
        })
        assert content.json() == {"content": ["- a", "- b"]}

        result = client.post("/api/scripts/execute", json={"code": "return $.n + 1;", "data": {"n": 1}}).json()
        assert result["success"] is True
        assert result["output"] == 2

        names = client.post("/api/scripts/declared-names", json={"code": "let a = 1; const b = 2;"})
        assert names.json() == ["a", "b"]
        assert client.post("/api/scripts/declared-names", json={"code": "let = ;"}).status_code == 400

        completions = client.post("/api/scripts/completions", json={"fields": [{"path": "temp", "type": "number"}]})
        assert completions.json()[0]["label"] == "$.temp"


def test_geometry_routes():
    with TestClient(_app()) as client:
        snapped = client.post("/api/geometry/snap", json={
            "rect": {"x": 3, "y": 150, "width": 100, "height": 50},
            "canvasWidth": 800,
            "canvasHeight": 480,
        }).json()
        assert snapped["x"] == 0
        assert snapped["guides"]["vertical"] == [0]

        resized = client.post("/api/geometry/resize", json={
            "rect": {"x": 50, "y": 50, "width": 100, "height": 100},
            "handle": "nw", "dx": 20, "dy": 20,
        }).json()
        assert resized == {"x": 70, "y": 70, "width": 80, "height": 80}
        assert client.post("/api/geometry/resize", json={"handle": "up"}).status_code == 422

        rotated = client.post("/api/geometry/rotate", json={"startRotation": 350, "startAngle": 0, "currentAngle": 20})
        assert rotated.json() == {"rotation": 10}


def test_script_preview_keeps_latest_edit():
    with TestClient(_app()) as client:
        sid = _open(client)
        first = client.post(f"/api/sessions/{sid}/script-preview", json={"code": "return 1;"}).json()
        second = client.post(f"/api/sessions/{sid}/script-preview", json={"code": "return $.v;", "data": {"v": 7}}).json()
        assert second["generation"] == first["generation"] + 1

        result = client.get(f"/api/sessions/{sid}/script-preview").json()["result"]
        assert result["success"] is True
        assert result["output"] == 7
        client.delete(f"/api/sessions/{sid}")
