from fastapi.testclient import TestClient

from frameforge import config, generation
from frameforge.completion import Completed, Incomplete
from frameforge.errors import ModelRefusal
from frameforge.main import app
from frameforge.models import ChatReply, ImageGeneration, UIDocument

client = TestClient(app)

IMAGE = "data:image/png;base64,iVBORw0KGgo="


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_api_status_shape():
    r = client.get("/api/status")
    assert r.status_code == 200
    body = r.json()
    assert body["service"] == "FrameForge API"
    assert body["status"] == "ok"
    assert "timestamp" in body


def test_llm_status_shape():
    r = client.get("/llm/status")
    assert r.status_code == 200
    body = r.json()
    assert body["provider"] == "openai"
    assert "has_token" in body
    assert body["max_output_tokens"] >= config.MIN_OUTPUT_TOKENS


def test_generate_ui_ok(monkeypatch):
    def fake(image, prompt, requester=None):
        assert image == IMAGE
        return ImageGeneration(
            document=UIDocument(html="<main>Hi</main>", css="main{color:red}", js=""),
            model="test-model",
        )

    monkeypatch.setattr(generation, "generate_from_image", fake)
    r = client.post("/api/generate-ui", json={"image": IMAGE, "prompt": "Homepage"})
    assert r.status_code == 200
    body = r.json()
    assert body["html"] == "<main>Hi</main>"
    assert body["css"] == "main{color:red}"
    assert body["js"] == ""
    assert body["model"] == "test-model"
    assert "<style>" in body["document"]
    assert "<script" not in body["document"]


def test_generate_ui_missing_image_is_400_without_model_call(monkeypatch):
    def never(req):
        raise AssertionError("model must not be called")

    monkeypatch.setattr(generation.completion, "request_completion", never)
    r = client.post("/api/generate-ui", json={"prompt": "x"})
    assert r.status_code == 400
    assert r.json()["kind"] == "validation_error"


def test_generate_ui_truncation_is_actionable(monkeypatch):
    monkeypatch.setattr(generation.completion, "request_completion", lambda req: Incomplete("length"))
    r = client.post("/api/generate-ui", json={"image": IMAGE})
    assert r.status_code == 502
    body = r.json()
    assert body["kind"] == "incomplete"
    assert config.MAX_TOKENS_ENV in body["error"]


def test_refusal_is_verbatim(monkeypatch):
    def refuse(image, prompt, requester=None):
        raise ModelRefusal("I can't help with that.")

    monkeypatch.setattr(generation, "generate_from_image", refuse)
    r = client.post("/api/generate-ui", json={"image": IMAGE})
    assert r.status_code == 422
    assert r.json()["error"] == "I can't help with that."


def test_detail_hidden_in_production(monkeypatch):
    monkeypatch.setattr(config, "SHOW_ERROR_DETAIL", False)
    monkeypatch.setattr(generation.completion, "request_completion", lambda req: Completed("no json here"))
    r = client.post("/api/generate-ui", json={"image": IMAGE})
    assert r.status_code == 502
    body = r.json()
    assert body["kind"] == "malformed_output"
    assert "detail" not in body


def test_detail_shown_outside_production(monkeypatch):
    monkeypatch.setattr(config, "SHOW_ERROR_DETAIL", True)
    monkeypatch.setattr(generation.completion, "request_completion", lambda req: Completed("no json here"))
    r = client.post("/api/generate-ui", json={"image": IMAGE})
    assert r.status_code == 502
    assert r.json().get("detail")


def test_chat_returns_updated_html(monkeypatch):
    captured = {}

    def fake(message, history, current_html, requester=None):
        captured["history"] = history
        captured["current_html"] = current_html
        return ChatReply(message="Updated.", updated_html="<!DOCTYPE html><html></html>")

    monkeypatch.setattr(generation, "generate_from_text", fake)
    payload = {
        "message": "make it blue",
        "history": [{"role": "user", "content": "hi"}],
        "currentHtml": "<p>x</p>",
    }
    r = client.post("/api/chat", json=payload)
    assert r.status_code == 200
    assert r.json() == {"message": "Updated.", "updatedHtml": "<!DOCTYPE html><html></html>"}
    assert captured["current_html"] == "<p>x</p>"
    assert captured["history"][0].role == "user"


def test_chat_conversational_reply_omits_updated_html(monkeypatch):
    monkeypatch.setattr(
        generation,
        "generate_from_text",
        lambda message, history, current_html, requester=None: ChatReply(message="Use the pen tool."),
    )
    r = client.post("/api/chat", json={"message": "how do I draw?"})
    assert r.status_code == 200
    assert r.json() == {"message": "Use the pen tool."}


def test_chat_empty_message_is_400():
    r = client.post("/api/chat", json={"message": "  "})
    assert r.status_code == 400


def test_chat_bad_history_role_is_400():
    r = client.post("/api/chat", json={"message": "x", "history": [{"role": "robot", "content": "x"}]})
    assert r.status_code == 400
    assert r.json()["kind"] == "validation_error"


def test_voice_endpoint(monkeypatch):
    monkeypatch.setattr(
        generation,
        "generate_from_voice_transcript",
        lambda transcript, history, current_html, requester=None: ChatReply(
            message="Updated.", updated_html="<!DOCTYPE html><html><body>v</body></html>"
        ),
    )
    r = client.post("/api/voice", json={"transcript": "add a banner", "currentHtml": "<p>x</p>"})
    assert r.status_code == 200
    assert r.json()["updatedHtml"].startswith("<!DOCTYPE html>")


def test_cors_allows_client_origin():
    origin = config.CLIENT_ORIGINS[0]
    r = client.options(
        "/api/chat",
        headers={"Origin": origin, "Access-Control-Request-Method": "POST"},
    )
    assert r.headers.get("access-control-allow-origin") == origin
